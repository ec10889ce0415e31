"""
Policy Recommendation Pipeline Stage
Turns risk assessments, threat detections and operator context into policy recommendations
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from nac_policy.core.cache import ResultCache
from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.analysis import (
    ImplementationComplexity,
    PolicyRecommendation,
    RecommendationPriority,
    RecommendationType,
    RiskAssessment,
    RiskLevel,
    ThreatDetection,
    ThreatSeverity,
)
from nac_policy.models.policy import Policy, PolicyDraft, PolicySource, PolicyType
from nac_policy.utils.helpers import short_id, to_json

logger = logging.getLogger(__name__)

# Canned recommendation shapes. Conditions and actions are kept as dicts here
# and rendered to JSON text when the recommendation is built.
RECOMMENDATION_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "emergency_quarantine": {
        "prefix": "quarantine-rec-",
        "recommendation_type": RecommendationType.NEW_POLICY,
        "confidence": 0.95,
        "priority": RecommendationPriority.CRITICAL,
        "reasoning": "Critical risk level detected - immediate quarantine required",
        "recommended_policy_name": "Emergency Quarantine Policy",
        "recommended_description": "Immediate quarantine for high-risk session",
        "recommended_policy_type": PolicyType.THREAT_RESPONSE,
        "conditions": {"riskScore": {"operator": ">", "value": 8.0}},
        "actions": {"action": "quarantine", "vlan": "quarantine_vlan"},
        "recommended_priority": 1,
        "expected_impact": 0.95,
        "risk_reduction": None,
        "complexity": ImplementationComplexity.SIMPLE,
        "estimated_implementation_time": 180,
    },
    "threat_response": {
        "prefix": "threat-resp-rec-",
        "recommendation_type": RecommendationType.NEW_POLICY,
        "confidence": 0.90,
        "priority": RecommendationPriority.URGENT,
        "reasoning": "High-risk session requires automated threat response",
        "recommended_policy_name": "Automated Threat Response",
        "recommended_description": "Automated response to detected threats",
        "recommended_policy_type": PolicyType.THREAT_RESPONSE,
        "conditions": {"threatDetected": True},
        "actions": {"action": "isolate", "notify": "security_team"},
        "recommended_priority": 2,
        "expected_impact": 0.88,
        "risk_reduction": 6.5,
        "complexity": ImplementationComplexity.MODERATE,
    },
    "enhanced_monitoring": {
        "prefix": "monitor-rec-",
        "recommendation_type": RecommendationType.POLICY_MODIFICATION,
        "confidence": 0.85,
        "priority": RecommendationPriority.HIGH,
        "reasoning": "High risk level requires enhanced monitoring",
        "recommended_policy_name": "Enhanced Monitoring Policy",
        "recommended_description": "Increased monitoring for high-risk sessions",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"riskScore": {"operator": ">", "value": 6.0}},
        "actions": {"action": "monitor", "level": "enhanced", "frequency": "high"},
        "recommended_priority": 3,
        "expected_impact": 0.75,
        "risk_reduction": 3.2,
        "complexity": ImplementationComplexity.SIMPLE,
    },
    "access_restriction": {
        "prefix": "restrict-rec-",
        "recommendation_type": RecommendationType.NEW_POLICY,
        "confidence": 0.82,
        "priority": RecommendationPriority.HIGH,
        "reasoning": "Risk level warrants access restrictions",
        "recommended_policy_name": "Access Restriction Policy",
        "recommended_description": "Restrict access for medium-high risk sessions",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"riskScore": {"operator": "between", "min": 6.0, "max": 8.0}},
        "actions": {"action": "restrict", "resources": "sensitive_data"},
        "recommended_priority": 4,
        "expected_impact": 0.70,
        "risk_reduction": 2.8,
        "complexity": ImplementationComplexity.MODERATE,
    },
    "posture_compliance": {
        "prefix": "posture-rec-",
        "recommendation_type": RecommendationType.NEW_POLICY,
        "confidence": 0.78,
        "priority": RecommendationPriority.MEDIUM,
        "reasoning": "Medium risk suggests need for posture compliance check",
        "recommended_policy_name": "Posture Compliance Policy",
        "recommended_description": "Ensure device compliance for medium risk sessions",
        "recommended_policy_type": PolicyType.POSTURE,
        "conditions": {"riskScore": {"operator": "between", "min": 4.0, "max": 6.0}},
        "actions": {"action": "check_posture", "remediate": True},
        "recommended_priority": 5,
        "expected_impact": 0.65,
        "risk_reduction": 2.0,
        "complexity": ImplementationComplexity.MODERATE,
    },
    "optimization": {
        "prefix": "optimize-rec-",
        "recommendation_type": RecommendationType.OPTIMIZATION,
        "confidence": 0.70,
        "priority": RecommendationPriority.LOW,
        "reasoning": "Low risk session - opportunity for policy optimization",
        "recommended_policy_name": "Policy Optimization",
        "recommended_description": "Optimize policies for better performance",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"optimize": True},
        "actions": {"action": "optimize", "target": "performance"},
        "recommended_priority": 10,
        "expected_impact": 0.60,
        "risk_reduction": 0.5,
        "complexity": ImplementationComplexity.COMPLEX,
    },
    "critical_threat": {
        "prefix": "critical-threat-rec-",
        "recommendation_type": RecommendationType.EMERGENCY_RESPONSE,
        "confidence": 0.98,
        "priority": RecommendationPriority.CRITICAL,
        "reasoning": "Critical threat detected: {threat_type}",
        "recommended_policy_name": "Critical Threat Response",
        "recommended_description": "Immediate response to critical threat",
        "recommended_policy_type": PolicyType.THREAT_RESPONSE,
        "conditions": None,
        "actions": {"action": "emergency_lockdown", "scope": "affected_segment"},
        "recommended_priority": 1,
        "expected_impact": 0.99,
        "risk_reduction": 9.0,
        "complexity": ImplementationComplexity.SIMPLE,
        "estimated_implementation_time": 120,
    },
    "high_threat": {
        "prefix": "high-threat-rec-",
        "recommendation_type": RecommendationType.NEW_POLICY,
        "confidence": 0.92,
        "priority": RecommendationPriority.URGENT,
        "reasoning": "High severity threat requires immediate containment",
        "recommended_policy_name": "High Threat Containment",
        "recommended_description": "Contain high severity threats",
        "recommended_policy_type": PolicyType.THREAT_RESPONSE,
        "conditions": {"threatSeverity": "HIGH"},
        "actions": {"action": "contain", "isolate": True},
        "recommended_priority": 2,
        "expected_impact": 0.90,
        "risk_reduction": 7.5,
        "complexity": ImplementationComplexity.MODERATE,
    },
    "medium_threat": {
        "prefix": "medium-threat-rec-",
        "recommendation_type": RecommendationType.POLICY_MODIFICATION,
        "confidence": 0.85,
        "priority": RecommendationPriority.HIGH,
        "reasoning": "Medium threat requires enhanced monitoring",
        "recommended_policy_name": "Medium Threat Monitoring",
        "recommended_description": "Enhanced monitoring for medium threats",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"threatSeverity": "MEDIUM"},
        "actions": {"action": "monitor", "alert": True},
        "recommended_priority": 5,
        "expected_impact": 0.75,
        "risk_reduction": 4.0,
        "complexity": ImplementationComplexity.SIMPLE,
    },
    "low_threat": {
        "prefix": "low-threat-rec-",
        "recommendation_type": RecommendationType.OPTIMIZATION,
        "confidence": 0.70,
        "priority": RecommendationPriority.LOW,
        "reasoning": "Low threat - log for analysis",
        "recommended_policy_name": "Low Threat Logging",
        "recommended_description": "Log low severity threats for analysis",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"threatSeverity": "LOW"},
        "actions": {"action": "log", "analyze": True},
        "recommended_priority": 8,
        "expected_impact": 0.60,
        "risk_reduction": 1.0,
        "complexity": ImplementationComplexity.SIMPLE,
    },
    "session": {
        "prefix": "session-rec-",
        "recommendation_type": RecommendationType.NEW_POLICY,
        "confidence": 0.87,
        "priority": RecommendationPriority.MEDIUM,
        "reasoning": "Session behavior analysis indicates need for enhanced monitoring",
        "recommended_policy_name": "Session-Specific Monitoring Policy",
        "recommended_description": "Enhanced monitoring for session {subject}",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": None,
        "actions": {"action": "monitor", "level": "enhanced"},
        "recommended_priority": 5,
        "expected_impact": 0.75,
        "risk_reduction": 2.5,
        "complexity": ImplementationComplexity.SIMPLE,
    },
    "user": {
        "prefix": "user-rec-",
        "recommendation_type": RecommendationType.POLICY_MODIFICATION,
        "confidence": 0.82,
        "priority": RecommendationPriority.LOW,
        "reasoning": "User behavior pattern analysis suggests policy adjustment",
        "recommended_policy_name": "User Behavior Policy",
        "recommended_description": "Adaptive policy for user {subject}",
        "recommended_policy_type": PolicyType.AUTHENTICATION,
        "conditions": None,
        "actions": {"action": "adapt", "level": "dynamic"},
        "recommended_priority": 3,
        "expected_impact": 0.65,
        "risk_reduction": 1.8,
        "complexity": ImplementationComplexity.MODERATE,
    },
    "emergency": {
        "prefix": "emergency-rec-",
        "recommendation_type": RecommendationType.EMERGENCY_RESPONSE,
        "confidence": 0.95,
        "priority": RecommendationPriority.CRITICAL,
        "reasoning": "Emergency situation detected requiring immediate policy response",
        "recommended_policy_name": "Emergency Response Policy",
        "recommended_description": "Immediate response to security emergency",
        "recommended_policy_type": PolicyType.THREAT_RESPONSE,
        "conditions": {"emergency": True},
        "actions": {"action": "lockdown", "scope": "network"},
        "recommended_priority": 1,
        "expected_impact": 0.98,
        "risk_reduction": 8.5,
        "complexity": ImplementationComplexity.SIMPLE,
        "estimated_implementation_time": 300,
    },
    "consolidation": {
        "prefix": "consolidate-rec-",
        "recommendation_type": RecommendationType.OPTIMIZATION,
        "confidence": 0.80,
        "priority": RecommendationPriority.MEDIUM,
        "reasoning": "Multiple similar policies detected - consolidation recommended",
        "recommended_policy_name": "Policy Consolidation",
        "recommended_description": "Consolidate {subject} similar policies",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"consolidate": True},
        "actions": None,
        "recommended_priority": 6,
        "expected_impact": 0.70,
        "risk_reduction": 0.0,
        "complexity": ImplementationComplexity.COMPLEX,
    },
    "conflict_resolution": {
        "prefix": "conflict-res-rec-",
        "recommendation_type": RecommendationType.POLICY_MODIFICATION,
        "confidence": 0.88,
        "priority": RecommendationPriority.HIGH,
        "reasoning": "Potential policy conflicts detected",
        "recommended_policy_name": "Conflict Resolution",
        "recommended_description": "Resolve conflicts between policies",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"resolve_conflicts": True},
        "actions": {"action": "resolve_conflicts", "method": "priority_based"},
        "recommended_priority": 3,
        "expected_impact": 0.85,
        "risk_reduction": 2.5,
        "complexity": ImplementationComplexity.MODERATE,
    },
    "performance": {
        "prefix": "perf-opt-rec-",
        "recommendation_type": RecommendationType.OPTIMIZATION,
        "confidence": 0.75,
        "priority": RecommendationPriority.LOW,
        "reasoning": "Policy execution performance can be improved",
        "recommended_policy_name": "Performance Optimization",
        "recommended_description": "Optimize policy execution performance",
        "recommended_policy_type": PolicyType.AUTHORIZATION,
        "conditions": {"optimize_performance": True},
        "actions": {"action": "optimize_execution", "target": "latency"},
        "recommended_priority": 9,
        "expected_impact": 0.65,
        "risk_reduction": 0.0,
        "complexity": ImplementationComplexity.COMPLEX,
    },
}

RISK_LEVEL_TEMPLATES = {
    RiskLevel.CRITICAL: ["emergency_quarantine", "threat_response"],
    RiskLevel.VERY_HIGH: ["emergency_quarantine", "threat_response"],
    RiskLevel.HIGH: ["enhanced_monitoring", "access_restriction"],
    RiskLevel.MEDIUM: ["posture_compliance"],
}
DEFAULT_RISK_TEMPLATES = ["optimization"]

THREAT_SEVERITY_TEMPLATES = {
    ThreatSeverity.CRITICAL: "critical_threat",
    ThreatSeverity.HIGH: "high_threat",
    ThreatSeverity.MEDIUM: "medium_threat",
}
DEFAULT_THREAT_TEMPLATE = "low_threat"

CONSOLIDATION_THRESHOLD = 10

class PolicyRecommender(ABC):
    model_version: str = ""

    @abstractmethod
    async def recommend_for_session(self, session_id: str) -> List[PolicyRecommendation]:
        pass

    @abstractmethod
    async def recommend_for_risk(self, assessment: RiskAssessment) -> List[PolicyRecommendation]:
        pass

    @abstractmethod
    async def recommend_for_threat(self, detection: ThreatDetection) -> List[PolicyRecommendation]:
        pass

    @abstractmethod
    async def recommend_for_user(self, user_name: str) -> List[PolicyRecommendation]:
        pass

    @abstractmethod
    async def recommend_optimizations(self, policies: List[Policy]) -> List[PolicyRecommendation]:
        pass

    @abstractmethod
    async def recommend_emergency(self, context: Dict[str, Any]) -> List[PolicyRecommendation]:
        pass

    @abstractmethod
    def get_recommendation(self, recommendation_id: str) -> PolicyRecommendation:
        pass

    @abstractmethod
    def get_recommendation_history(self, triggered_by: str) -> List[PolicyRecommendation]:
        pass

    @abstractmethod
    def implement(self, recommendation_id: str) -> PolicyDraft:
        pass

    @abstractmethod
    def reject(self, recommendation_id: str, feedback: Optional[str] = None) -> None:
        pass

def evaluate_recommendation(recommendation: PolicyRecommendation) -> float:
    """Expected effectiveness of a recommendation"""
    return recommendation.confidence * recommendation.expected_impact

def recommendation_to_draft(recommendation: PolicyRecommendation) -> PolicyDraft:
    return PolicyDraft(
        name=recommendation.recommended_policy_name,
        description=recommendation.recommended_description,
        policy_type=recommendation.recommended_policy_type,
        priority=recommendation.recommended_priority,
        conditions=recommendation.recommended_conditions,
        actions=recommendation.recommended_actions,
        risk_score=10.0 - recommendation.risk_reduction,
        ai_confidence=recommendation.confidence,
        source=PolicySource.AI_RECOMMENDED,
        created_by="AI-PolicyEngine"
    )

class HeuristicPolicyRecommender(PolicyRecommender):
    model_version = "PolicyAI-v1.5.0"

    def __init__(self, cache: Optional[ResultCache] = None):
        self.cache = cache if cache is not None else ResultCache("recommendations")

    def build(
        self,
        template_name: str,
        triggered_by: Optional[str],
        subject: Any = None,
        conditions: Optional[Dict[str, Any]] = None,
        actions: Optional[Dict[str, Any]] = None,
        **overrides
    ) -> PolicyRecommendation:
        """Instantiate a canned recommendation and store it in the cache"""
        template = dict(RECOMMENDATION_TEMPLATES[template_name])
        prefix = template.pop("prefix")
        template_conditions = template.pop("conditions")
        template_actions = template.pop("actions")

        template["recommended_description"] = template["recommended_description"].format(subject=subject)
        template.update(overrides)

        recommendation = PolicyRecommendation(
            recommendation_id=short_id(prefix),
            triggered_by=triggered_by,
            model_version=self.model_version,
            recommended_conditions=to_json(conditions if conditions is not None else template_conditions),
            recommended_actions=to_json(actions if actions is not None else template_actions),
            **template
        )
        self.cache.set(recommendation.recommendation_id, recommendation)
        return recommendation

    async def recommend_for_session(self, session_id: str) -> List[PolicyRecommendation]:
        logger.info(f"Generating session-specific recommendations for: {session_id}")
        return [
            self.build("session", session_id, subject=session_id, conditions={"sessionId": session_id})
        ]

    async def recommend_for_risk(self, assessment: RiskAssessment) -> List[PolicyRecommendation]:
        logger.info(f"Generating policy recommendations for risk assessment: {assessment.assessment_id}")
        evidence = [
            f"Risk score: {assessment.overall_risk_score}",
            f"Risk level: {assessment.risk_level.value}",
            f"AI confidence: {assessment.confidence}"
        ]
        recommendations = []

        for template_name in RISK_LEVEL_TEMPLATES.get(assessment.risk_level, DEFAULT_RISK_TEMPLATES):
            overrides = {}
            if template_name == "emergency_quarantine":
                overrides = {
                    "evidence_points": evidence,
                    "risk_reduction": assessment.overall_risk_score - 1.0
                }
            recommendations.append(self.build(template_name, assessment.subject, **overrides))

        return recommendations

    async def recommend_for_threat(self, detection: ThreatDetection) -> List[PolicyRecommendation]:
        logger.info(f"Generating policy recommendations for threat: {detection.detection_id}")
        template_name = THREAT_SEVERITY_TEMPLATES.get(detection.severity, DEFAULT_THREAT_TEMPLATE)

        overrides: Dict[str, Any] = {
            "context": {
                "threatType": detection.threat_type.value,
                "severity": detection.severity.value,
                "sessionId": detection.session_id
            }
        }
        if template_name == "critical_threat":
            overrides["reasoning"] = f"Critical threat detected: {detection.threat_type.value}"
            overrides["conditions"] = {"threatType": detection.threat_type.value}

        return [self.build(template_name, detection.detection_id, **overrides)]

    async def recommend_for_user(self, user_name: str) -> List[PolicyRecommendation]:
        logger.info(f"Generating user-specific recommendations for: {user_name}")
        return [
            self.build("user", user_name, subject=user_name, conditions={"userName": user_name})
        ]

    async def recommend_optimizations(self, policies: List[Policy]) -> List[PolicyRecommendation]:
        logger.info(f"Generating optimization recommendations for {len(policies)} policies")
        recommendations = []

        if len(policies) > CONSOLIDATION_THRESHOLD:
            recommendations.append(self.build(
                "consolidation", "policy-optimizer",
                subject=len(policies),
                actions={"action": "merge_policies", "count": len(policies)}
            ))

        recommendations.append(self.build("conflict_resolution", "policy-analyzer"))
        recommendations.append(self.build("performance", "performance-analyzer"))
        return recommendations

    async def recommend_emergency(self, context: Dict[str, Any]) -> List[PolicyRecommendation]:
        logger.info(f"Generating emergency recommendations for context: {list(context.keys())}")
        return [self.build("emergency", "emergency-system", context=dict(context))]

    async def evaluate(self, recommendation: PolicyRecommendation) -> float:
        logger.info(f"Evaluating recommendation: {recommendation.recommendation_id}")
        return evaluate_recommendation(recommendation)

    def get_recommendation(self, recommendation_id: str) -> PolicyRecommendation:
        recommendation = self.cache.get(recommendation_id)
        if recommendation is None:
            raise NotFoundError("Recommendation", recommendation_id)
        return recommendation

    def get_recommendation_history(self, triggered_by: str) -> List[PolicyRecommendation]:
        return [r for r in self.cache.values() if r.triggered_by == triggered_by]

    def implement(self, recommendation_id: str) -> PolicyDraft:
        logger.info(f"Implementing recommendation: {recommendation_id}")
        return recommendation_to_draft(self.get_recommendation(recommendation_id))

    def reject(self, recommendation_id: str, feedback: Optional[str] = None) -> None:
        logger.info(f"Rejecting recommendation {recommendation_id} with feedback: {feedback}")
        self.cache.delete(recommendation_id)

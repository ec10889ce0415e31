"""
Analysis result models
Risk assessments, threat detections and policy recommendations
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any, Optional
from datetime import datetime
from enum import Enum

from nac_policy.models.ordinal import OrdinalEnum
from nac_policy.models.policy import PolicyType
from nac_policy.utils.helpers import utc_now

class RiskLevel(OrdinalEnum):
    VERY_LOW = "VERY_LOW"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"
    CRITICAL = "CRITICAL"

    @property
    def score_range(self):
        return RISK_LEVEL_RANGES[self]

    @classmethod
    def from_score(cls, score: float) -> "RiskLevel":
        for level, (low, high) in RISK_LEVEL_RANGES.items():
            if low <= score < high:
                return level
        return cls.CRITICAL

RISK_LEVEL_RANGES = {
    RiskLevel.VERY_LOW: (0.0, 2.0),
    RiskLevel.LOW: (2.0, 4.0),
    RiskLevel.MEDIUM: (4.0, 6.0),
    RiskLevel.HIGH: (6.0, 8.0),
    RiskLevel.VERY_HIGH: (8.0, 10.0),
    RiskLevel.CRITICAL: (10.0, float("inf")),
}

class FactorType(str, Enum):
    BEHAVIORAL = "BEHAVIORAL"
    NETWORK = "NETWORK"
    DEVICE = "DEVICE"
    TEMPORAL = "TEMPORAL"
    GEOLOCATION = "GEOLOCATION"
    AUTHENTICATION = "AUTHENTICATION"
    THREAT_INTELLIGENCE = "THREAT_INTELLIGENCE"

class RiskFactor(BaseModel):
    factor_name: str
    weight: float
    score: float
    factor_type: FactorType
    description: Optional[str] = None

class RiskAssessment(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    assessment_id: str
    session_id: Optional[str] = None
    user_name: Optional[str] = None
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    overall_risk_score: float
    risk_level: RiskLevel
    confidence: float
    assessment_time: datetime = Field(default_factory=utc_now)
    model_version: str
    risk_factors: List[RiskFactor] = Field(default_factory=list)
    raw_features: Dict[str, Any] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)
    reason: Optional[str] = None

    @property
    def subject(self) -> Optional[str]:
        return self.session_id or self.user_name or self.mac_address

class ThreatType(str, Enum):
    MALWARE = "MALWARE"
    PHISHING = "PHISHING"
    DATA_EXFILTRATION = "DATA_EXFILTRATION"
    LATERAL_MOVEMENT = "LATERAL_MOVEMENT"
    PRIVILEGE_ESCALATION = "PRIVILEGE_ESCALATION"
    ANOMALOUS_BEHAVIOR = "ANOMALOUS_BEHAVIOR"
    BRUTE_FORCE = "BRUTE_FORCE"
    DDOS = "DDoS"
    INSIDER_THREAT = "INSIDER_THREAT"
    APT = "APT"
    ZERO_DAY = "ZERO_DAY"
    POLICY_VIOLATION = "POLICY_VIOLATION"
    COMPLIANCE_BREACH = "COMPLIANCE_BREACH"
    UNKNOWN = "UNKNOWN"

class ThreatSeverity(OrdinalEnum):
    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

class ThreatDetection(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    detection_id: str
    session_id: Optional[str] = None
    user_name: Optional[str] = None
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    threat_type: ThreatType
    severity: ThreatSeverity
    confidence: float
    detected_at: datetime = Field(default_factory=utc_now)
    model_version: str
    description: str
    indicators: List[str] = Field(default_factory=list)
    threat_data: Dict[str, Any] = Field(default_factory=dict)
    recommended_actions: List[str] = Field(default_factory=list)
    mitigation_strategy: Optional[str] = None
    is_active: bool = True
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

class RecommendationType(str, Enum):
    NEW_POLICY = "NEW_POLICY"
    POLICY_MODIFICATION = "POLICY_MODIFICATION"
    POLICY_DEACTIVATION = "POLICY_DEACTIVATION"
    POLICY_PRIORITY_CHANGE = "POLICY_PRIORITY_CHANGE"
    EMERGENCY_RESPONSE = "EMERGENCY_RESPONSE"
    OPTIMIZATION = "OPTIMIZATION"

class RecommendationPriority(OrdinalEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"
    CRITICAL = "CRITICAL"

class ImplementationComplexity(str, Enum):
    SIMPLE = "SIMPLE"
    MODERATE = "MODERATE"
    COMPLEX = "COMPLEX"
    VERY_COMPLEX = "VERY_COMPLEX"

class PolicyRecommendation(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    recommendation_id: str
    triggered_by: Optional[str] = None
    recommendation_type: RecommendationType
    confidence: float
    priority: RecommendationPriority
    generated_at: datetime = Field(default_factory=utc_now)
    model_version: str
    reasoning: str
    evidence_points: List[str] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)

    recommended_policy_name: str
    recommended_description: str
    recommended_policy_type: PolicyType
    recommended_conditions: str
    recommended_actions: str
    recommended_priority: int
    expected_impact: float
    risk_reduction: float

    complexity: ImplementationComplexity
    prerequisites: List[str] = Field(default_factory=list)
    side_effects: List[str] = Field(default_factory=list)
    rollback_plan: Optional[str] = None
    estimated_implementation_time: Optional[int] = None

    @property
    def action_summary(self) -> str:
        return self.recommended_actions

class AnalysisResult(BaseModel):
    session_id: str
    risk_assessment: Optional[RiskAssessment] = None
    threat_detections: List[ThreatDetection] = Field(default_factory=list)
    threat_severity: Optional[ThreatSeverity] = None
    recommendations: List[PolicyRecommendation] = Field(default_factory=list)
    governing_recommendation: Optional[PolicyRecommendation] = None
    policy_created: bool = False
    policy_id: Optional[str] = None
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    completed_at: datetime = Field(default_factory=utc_now)

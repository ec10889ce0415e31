"""
NAC Policy Intelligence - Models Module
Pydantic models for sessions, devices, events, analysis results and policies
"""

from nac_policy.models.ordinal import OrdinalEnum, highest
from nac_policy.models.session import (
    Session,
    SessionCreate,
    SessionState,
    AuthMethod,
    PostureStatus
)
from nac_policy.models.device import (
    Device,
    DeviceType,
    DeviceRiskLevel
)
from nac_policy.models.events import (
    NetworkEvent,
    EventType,
    EventSeverity
)
from nac_policy.models.policy import (
    Policy,
    PolicyDraft,
    PolicyUpdate,
    PolicyType,
    PolicyStatus,
    PolicySource
)
from nac_policy.models.analysis import (
    RiskAssessment,
    RiskFactor,
    RiskLevel,
    FactorType,
    ThreatDetection,
    ThreatType,
    ThreatSeverity,
    PolicyRecommendation,
    RecommendationType,
    RecommendationPriority,
    ImplementationComplexity,
    AnalysisResult
)

__all__ = [
    "OrdinalEnum",
    "highest",
    "Session",
    "SessionCreate",
    "SessionState",
    "AuthMethod",
    "PostureStatus",
    "Device",
    "DeviceType",
    "DeviceRiskLevel",
    "NetworkEvent",
    "EventType",
    "EventSeverity",
    "Policy",
    "PolicyDraft",
    "PolicyUpdate",
    "PolicyType",
    "PolicyStatus",
    "PolicySource",
    "RiskAssessment",
    "RiskFactor",
    "RiskLevel",
    "FactorType",
    "ThreatDetection",
    "ThreatType",
    "ThreatSeverity",
    "PolicyRecommendation",
    "RecommendationType",
    "RecommendationPriority",
    "ImplementationComplexity",
    "AnalysisResult"
]

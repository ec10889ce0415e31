"""
Policy models
Drafts emitted by the analysis pipeline and policies held by the orchestrator
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from nac_policy.utils.helpers import utc_now

class PolicyType(str, Enum):
    AUTHORIZATION = "AUTHORIZATION"
    AUTHENTICATION = "AUTHENTICATION"
    POSTURE = "POSTURE"
    PROFILING = "PROFILING"
    GUEST_ACCESS = "GUEST_ACCESS"
    DEVICE_COMPLIANCE = "DEVICE_COMPLIANCE"
    THREAT_RESPONSE = "THREAT_RESPONSE"

class PolicyStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DEPRECATED = "DEPRECATED"
    ROLLBACK_PENDING = "ROLLBACK_PENDING"

class PolicySource(str, Enum):
    MANUAL = "MANUAL"
    AI_RECOMMENDED = "AI_RECOMMENDED"
    AUTO_GENERATED = "AUTO_GENERATED"
    IMPORTED = "IMPORTED"

class PolicyDraft(BaseModel):
    name: str
    description: Optional[str] = None
    policy_type: PolicyType = PolicyType.AUTHORIZATION
    priority: int = 10
    conditions: str = "{}"
    actions: str = "{}"
    risk_score: Optional[float] = None
    ai_confidence: Optional[float] = None
    source: Optional[PolicySource] = None
    created_by: Optional[str] = None

class PolicyUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    policy_type: Optional[PolicyType] = None
    priority: Optional[int] = None
    conditions: Optional[str] = None
    actions: Optional[str] = None
    risk_score: Optional[float] = None
    ai_confidence: Optional[float] = None
    updated_by: Optional[str] = None

class Policy(BaseModel):
    policy_id: str
    name: str
    description: Optional[str] = None
    policy_type: PolicyType
    status: PolicyStatus = PolicyStatus.DRAFT
    priority: int
    conditions: str
    actions: str
    risk_score: Optional[float] = None
    ai_confidence: Optional[float] = None
    source: PolicySource = PolicySource.MANUAL
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    version: int = 1

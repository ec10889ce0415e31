"""
Network session models
The unit of analysis handed to the pipeline
"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum

class SessionState(str, Enum):
    STARTED = "STARTED"
    AUTHENTICATED = "AUTHENTICATED"
    AUTHORIZED = "AUTHORIZED"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DISCONNECTED = "DISCONNECTED"
    TERMINATED = "TERMINATED"
    QUARANTINED = "QUARANTINED"
    SUSPENDED = "SUSPENDED"

class AuthMethod(str, Enum):
    DOT1X = "DOT1X"
    MAB = "MAB"
    WEB_AUTH = "WEB_AUTH"
    GUEST = "GUEST"
    CERTIFICATE = "CERTIFICATE"
    RADIUS = "RADIUS"
    LDAP = "LDAP"
    ACTIVE_DIRECTORY = "ACTIVE_DIRECTORY"
    SAML = "SAML"
    OAUTH = "OAUTH"

class PostureStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    UNKNOWN = "UNKNOWN"

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps are read as UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

class Session(BaseModel):
    session_id: str
    user_name: str
    mac_address: str
    ip_address: str
    device_type: str = "Unknown"
    authentication_method: str = AuthMethod.DOT1X.value
    posture_status: Optional[str] = None
    session_state: SessionState = SessionState.ACTIVE
    location: Optional[str] = None
    nas_ip_address: Optional[str] = None
    ssid: Optional[str] = None
    start_time: Optional[datetime] = None
    last_update_time: Optional[datetime] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    # Analysis annotations, written by the pipeline coordinator
    risk_score: Optional[float] = None
    threat_level: Optional[str] = None
    ai_recommendation: Optional[str] = None

    @field_validator("start_time", "last_update_time")
    @classmethod
    def validate_timestamps(cls, v):
        return as_utc(v)

    @property
    def is_unknown_device(self) -> bool:
        return (self.device_type or "").lower() == "unknown"

    @property
    def is_guest(self) -> bool:
        return "GUEST" in (self.authentication_method or "").upper()

    @property
    def is_non_compliant(self) -> bool:
        return self.posture_status is not None and self.posture_status.upper() != PostureStatus.COMPLIANT.value

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.start_time is None:
            return None
        end = self.last_update_time or self.start_time
        if (end.tzinfo is None) != (self.start_time.tzinfo is None):
            return None
        return (end - self.start_time).total_seconds()

class SessionCreate(BaseModel):
    session_id: str
    user_name: str
    mac_address: str
    ip_address: str
    device_type: str = "Unknown"
    authentication_method: str = AuthMethod.DOT1X.value
    posture_status: Optional[str] = None
    session_state: SessionState = SessionState.ACTIVE
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    last_update_time: Optional[datetime] = None

    @field_validator("start_time", "last_update_time")
    @classmethod
    def validate_timestamps(cls, v):
        return as_utc(v)

    def to_session(self) -> Session:
        return Session(**self.model_dump())

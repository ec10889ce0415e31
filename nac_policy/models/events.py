"""
Network event models
"""

from pydantic import BaseModel, Field, computed_field
from typing import Dict, Any, Optional
from datetime import datetime
from enum import Enum

from nac_policy.models.ordinal import OrdinalEnum
from nac_policy.utils.helpers import utc_now

class EventType(str, Enum):
    DEVICE_CONNECTED = "DEVICE_CONNECTED"
    DEVICE_DISCONNECTED = "DEVICE_DISCONNECTED"
    AUTHENTICATION_SUCCESS = "AUTHENTICATION_SUCCESS"
    AUTHENTICATION_FAILURE = "AUTHENTICATION_FAILURE"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    POLICY_VIOLATION = "POLICY_VIOLATION"
    ANOMALOUS_BEHAVIOR = "ANOMALOUS_BEHAVIOR"
    COMPLIANCE_VIOLATION = "COMPLIANCE_VIOLATION"
    POSTURE_ASSESSMENT_FAILED = "POSTURE_ASSESSMENT_FAILED"
    IOT_DEVICE_ANOMALY = "IOT_DEVICE_ANOMALY"
    IOT_COMMUNICATION_PATTERN = "IOT_COMMUNICATION_PATTERN"
    MALWARE_DETECTED = "MALWARE_DETECTED"
    UNAUTHORIZED_ACCESS_ATTEMPT = "UNAUTHORIZED_ACCESS_ATTEMPT"
    PORT_SCAN_DETECTED = "PORT_SCAN_DETECTED"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title().replace("Iot", "IoT")

    @property
    def is_security_type(self) -> bool:
        return self in SECURITY_EVENT_TYPES

SECURITY_EVENT_TYPES = {
    EventType.SUSPICIOUS_ACTIVITY,
    EventType.POLICY_VIOLATION,
    EventType.ANOMALOUS_BEHAVIOR,
    EventType.MALWARE_DETECTED,
    EventType.UNAUTHORIZED_ACCESS_ATTEMPT,
    EventType.PORT_SCAN_DETECTED,
}

# Drawn from when a high-risk device raises a security incident
INCIDENT_EVENT_TYPES = [
    EventType.MALWARE_DETECTED,
    EventType.UNAUTHORIZED_ACCESS_ATTEMPT,
    EventType.SUSPICIOUS_ACTIVITY,
    EventType.PORT_SCAN_DETECTED,
    EventType.ANOMALOUS_BEHAVIOR,
]

class EventSeverity(OrdinalEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

class NetworkEvent(BaseModel):
    event_id: str
    device_id: str
    event_type: EventType
    severity: EventSeverity
    title: str
    description: str
    timestamp: datetime = Field(default_factory=utc_now)
    source: Optional[str] = None
    destination: Optional[str] = None
    event_data: Dict[str, Any] = Field(default_factory=dict)
    resolved: bool = False

    @computed_field
    @property
    def is_security_event(self) -> bool:
        return self.event_type.is_security_type or self.severity >= EventSeverity.HIGH

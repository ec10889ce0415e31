"""
Simulated device models
"""

from pydantic import BaseModel, Field, computed_field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from nac_policy.utils.helpers import utc_now

class DeviceType(str, Enum):
    LAPTOP = "LAPTOP"
    DESKTOP = "DESKTOP"
    MOBILE_PHONE = "MOBILE_PHONE"
    TABLET = "TABLET"
    IOT_SENSOR = "IOT_SENSOR"
    IOT_CAMERA = "IOT_CAMERA"
    IOT_PRINTER = "IOT_PRINTER"
    IOT_BADGE_READER = "IOT_BADGE_READER"
    SERVER = "SERVER"
    NETWORK_DEVICE = "NETWORK_DEVICE"
    MEDICAL_DEVICE = "MEDICAL_DEVICE"
    MANUFACTURING_EQUIPMENT = "MANUFACTURING_EQUIPMENT"
    POS_TERMINAL = "POS_TERMINAL"
    KIOSK = "KIOSK"
    SMART_TV = "SMART_TV"
    VOIP_PHONE = "VOIP_PHONE"
    UNKNOWN = "UNKNOWN"

    @property
    def display_name(self) -> str:
        return DEVICE_DISPLAY_NAMES[self]

    @property
    def is_iot(self) -> bool:
        return self.value.startswith("IOT_")

DEVICE_DISPLAY_NAMES = {
    DeviceType.LAPTOP: "Laptop",
    DeviceType.DESKTOP: "Desktop",
    DeviceType.MOBILE_PHONE: "Mobile Phone",
    DeviceType.TABLET: "Tablet",
    DeviceType.IOT_SENSOR: "IoT Sensor",
    DeviceType.IOT_CAMERA: "IoT Camera",
    DeviceType.IOT_PRINTER: "IoT Printer",
    DeviceType.IOT_BADGE_READER: "IoT Badge Reader",
    DeviceType.SERVER: "Server",
    DeviceType.NETWORK_DEVICE: "Network Device",
    DeviceType.MEDICAL_DEVICE: "Medical Device",
    DeviceType.MANUFACTURING_EQUIPMENT: "Manufacturing Equipment",
    DeviceType.POS_TERMINAL: "POS Terminal",
    DeviceType.KIOSK: "Kiosk",
    DeviceType.SMART_TV: "Smart TV",
    DeviceType.VOIP_PHONE: "VoIP Phone",
    DeviceType.UNKNOWN: "Unknown",
}

CORPORATE_DEVICE_TYPES = {
    DeviceType.LAPTOP,
    DeviceType.DESKTOP,
    DeviceType.SERVER,
    DeviceType.NETWORK_DEVICE,
}

# Bytes per device considered full utilization
EXPECTED_TRAFFIC_BYTES = {
    DeviceType.SERVER: 1_000_000_000,
    DeviceType.LAPTOP: 100_000_000,
    DeviceType.DESKTOP: 100_000_000,
    DeviceType.MOBILE_PHONE: 50_000_000,
    DeviceType.TABLET: 50_000_000,
}
DEFAULT_EXPECTED_TRAFFIC_BYTES = 10_000_000

class DeviceRiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_score(cls, score: float) -> "DeviceRiskLevel":
        # Bands are [0, 3.0], [3.1, 6.0], [6.1, 8.5], [8.6, 10]; values between
        # two bands belong to the upper one.
        if score <= 3.0:
            return cls.LOW
        if score <= 6.0:
            return cls.MEDIUM
        if score <= 8.5:
            return cls.HIGH
        return cls.CRITICAL

class Device(BaseModel):
    device_id: str
    device_name: str
    mac_address: str
    ip_address: str
    device_type: DeviceType = DeviceType.UNKNOWN
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    os_version: Optional[str] = None

    user_name: str
    user_department: Optional[str] = None
    user_role: Optional[str] = None

    location: Optional[str] = None
    building: Optional[str] = None
    floor: Optional[str] = None
    vlan: Optional[str] = None

    authentication_method: str = "DOT1X"
    posture_status: str = "COMPLIANT"

    risk_score: float = 0.0
    risk_level: DeviceRiskLevel = DeviceRiskLevel.LOW
    risk_factors: List[str] = Field(default_factory=list)

    first_seen: datetime = Field(default_factory=utc_now)
    last_seen: datetime = Field(default_factory=utc_now)
    bytes_transmitted: int = 0
    bytes_received: int = 0
    connection_count: int = 0
    is_active: bool = True

    normal_behavior_score: float = 1.0
    is_compliant: bool = True
    compliance_issues: List[str] = Field(default_factory=list)
    last_compliance_check: Optional[datetime] = None

    has_threat_indicators: bool = False
    threat_indicators: List[str] = Field(default_factory=list)
    threat_level: str = "LOW"

    @computed_field
    @property
    def is_high_risk(self) -> bool:
        return self.risk_level in (DeviceRiskLevel.HIGH, DeviceRiskLevel.CRITICAL)

    @computed_field
    @property
    def is_iot(self) -> bool:
        return self.device_type.is_iot

    @property
    def is_corporate(self) -> bool:
        return self.device_type in CORPORATE_DEVICE_TYPES

    @property
    def device_age_days(self) -> int:
        return (utc_now() - self.first_seen).days

    @computed_field
    @property
    def network_utilization(self) -> float:
        expected = EXPECTED_TRAFFIC_BYTES.get(self.device_type, DEFAULT_EXPECTED_TRAFFIC_BYTES)
        total = self.bytes_transmitted + self.bytes_received
        return min(1.0, total / expected)

    def update_risk_level(self):
        self.risk_level = DeviceRiskLevel.from_score(self.risk_score)

    def display_label(self) -> str:
        return f"{self.device_name} ({self.device_type.display_name}) - {self.user_name}"

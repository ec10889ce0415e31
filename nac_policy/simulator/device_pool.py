"""
Device Pool
Maintains the synthetic device population and its per-tick behavior
"""

import logging
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from nac_policy.core.config import SimulatorSettings
from nac_policy.models.device import Device, DeviceRiskLevel, DeviceType
from nac_policy.models.session import Session, SessionState
from nac_policy.utils.helpers import clamp, short_id, utc_now

logger = logging.getLogger(__name__)

LAPTOP_NAMES = ["John-Laptop", "Sarah-MacBook", "IT-Laptop-01", "Marketing-PC", "Finance-Workstation"]
MOBILE_NAMES = ["iPhone-12", "Samsung-Galaxy", "Corporate-iPad", "Guest-Phone", "BYOD-Device"]
IOT_NAMES = ["Printer-HP-01", "Camera-Axis-02", "Sensor-Temp-03", "Badge-Reader-04", "Smart-TV-05"]
SERVER_NAMES = ["DB-Server-01", "Web-Server-02", "File-Server-03", "Mail-Server-04", "Backup-Server-05"]

DEPARTMENTS = ["IT", "Marketing", "Finance", "HR", "Operations", "Sales", "Engineering", "Legal"]
USER_ROLES = ["Employee", "Manager", "Admin", "Contractor", "Guest", "Executive", "Intern"]
LOCATIONS = ["Building A", "Building B", "Building C", "Data Center", "Guest Area", "Conference Room"]

FIRST_NAMES = ["john", "sarah", "mike", "lisa", "david", "emma", "alex", "maria"]
LAST_NAMES = ["smith", "johnson", "brown", "davis", "wilson", "garcia", "martinez", "anderson"]

TYPE_BASE_RISK = {
    DeviceType.UNKNOWN: 4.0,
    DeviceType.MOBILE_PHONE: 2.0,
    DeviceType.TABLET: 2.0,
    DeviceType.IOT_SENSOR: 3.0,
    DeviceType.IOT_CAMERA: 3.0,
    DeviceType.SERVER: 1.0,
}
DEFAULT_TYPE_BASE_RISK = 1.5

AUTH_METHOD_RISK = {
    "GUEST": 2.0,
    "MAB": 1.5,
}

NON_COMPLIANT_RISK = 2.5
LOW_BEHAVIOR_RISK = 2.0
LOW_BEHAVIOR_THRESHOLD = 0.3
THREAT_INDICATOR_RISK = 3.0
NEW_DEVICE_RISK = 1.5
STALE_DEVICE_RISK = 1.0

MAX_TICK_BYTES = 10_000_000
MAX_INITIAL_BYTES = 1_000_000_000

def calculate_risk_score(device: Device) -> float:
    """Deterministic device risk, clamped to [0, 10]"""
    score = TYPE_BASE_RISK.get(device.device_type, DEFAULT_TYPE_BASE_RISK)
    score += AUTH_METHOD_RISK.get(device.authentication_method, 0.0)

    if not device.is_compliant:
        score += NON_COMPLIANT_RISK
    if device.normal_behavior_score < LOW_BEHAVIOR_THRESHOLD:
        score += LOW_BEHAVIOR_RISK
    if device.has_threat_indicators:
        score += THREAT_INDICATOR_RISK

    age_days = device.device_age_days
    if age_days < 1:
        score += NEW_DEVICE_RISK
    elif age_days > 365:
        score += STALE_DEVICE_RISK

    return clamp(score)

def risk_factors_for(device: Device) -> List[str]:
    factors = []
    if device.device_type == DeviceType.UNKNOWN:
        factors.append("Unknown device type")
    if device.authentication_method == "GUEST":
        factors.append("Guest network access")
    if not device.is_compliant:
        factors.append("Non-compliant posture")
    if device.normal_behavior_score < LOW_BEHAVIOR_THRESHOLD:
        factors.append("Abnormal behavior pattern")
    if device.has_threat_indicators:
        factors.append("Active threat indicators")
    if device.device_age_days < 1:
        factors.append("New device on network")
    if device.network_utilization > 0.8:
        factors.append("High network utilization")
    return factors

def device_to_session(device: Device) -> Session:
    return Session(
        session_id=device.device_id,
        user_name=device.user_name,
        mac_address=device.mac_address,
        ip_address=device.ip_address,
        device_type=device.device_type.display_name,
        authentication_method=device.authentication_method,
        posture_status=device.posture_status,
        session_state=SessionState.ACTIVE if device.is_active else SessionState.INACTIVE,
        location=device.location,
        start_time=device.first_seen,
        last_update_time=device.last_seen
    )

class DevicePool:
    def __init__(
        self,
        config: Optional[SimulatorSettings] = None,
        rng: Optional[np.random.Generator] = None,
        session_sink: Optional[Callable[[Session], object]] = None
    ):
        self.config = config or SimulatorSettings()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.session_sink = session_sink
        self.devices: Dict[str, Device] = {}

    def _pick(self, options: Sequence):
        return options[int(self.rng.integers(len(options)))]

    def _coin(self) -> bool:
        return bool(self.rng.random() < 0.5)

    def reconcile(self, target_count: int, scenario: str) -> List[Device]:
        """Resize the pool to target_count, advance every device one tick and hand its session on"""
        self._ensure_device_count(target_count, scenario)

        updated = []
        for device in list(self.devices.values()):
            self._update_activity(device)
            updated.append(device)

            if self.session_sink is not None:
                try:
                    self.session_sink(device_to_session(device))
                except Exception as e:
                    logger.warning(f"Failed to deliver session for device {device.device_id}: {e}")

        logger.debug(f"Updated {len(updated)} devices in pool")
        return updated

    def _ensure_device_count(self, target_count: int, scenario: str):
        current = len(self.devices)

        if current < target_count:
            for _ in range(target_count - current):
                device = self.create_device(scenario)
                self.devices[device.device_id] = device
            logger.info(f"Created {target_count - current} new devices for scenario: {scenario}")

        elif current > target_count:
            excess = current - target_count
            device_ids = list(self.devices.keys())
            for index in self.rng.choice(len(device_ids), size=excess, replace=False):
                del self.devices[device_ids[int(index)]]
            logger.info(f"Removed {excess} excess devices")

    def select_device_type(self, scenario: str) -> DeviceType:
        weights = {
            DeviceType(name): weight
            for name, weight in self.config.weights_for(scenario).items()
            if weight > 0
        }
        types = list(weights.keys())
        probabilities = np.array(list(weights.values()), dtype=float)
        probabilities /= probabilities.sum()
        return types[int(self.rng.choice(len(types), p=probabilities))]

    def _new_device_id(self) -> str:
        device_id = short_id("SIM-")
        while device_id in self.devices:
            device_id = short_id("SIM-")
        return device_id

    def create_device(self, scenario: str) -> Device:
        device_type = self.select_device_type(scenario)
        now = utc_now()
        is_compliant = bool(self.rng.random() > 0.2)
        risk_score = 1.0 + float(self.rng.random()) * 9.0

        return Device(
            device_id=self._new_device_id(),
            device_name=self._device_name(device_type),
            mac_address=self._mac_address(),
            ip_address=self._ip_address(),
            device_type=device_type,
            manufacturer=self._manufacturer(device_type),
            model=f"{device_type.display_name}-Model-{1 + int(self.rng.integers(10))}",
            os_version=self._os_version(device_type),
            user_name=f"{self._pick(FIRST_NAMES)}.{self._pick(LAST_NAMES)}",
            user_department=self._pick(DEPARTMENTS),
            user_role=self._pick(USER_ROLES),
            location=self._pick(LOCATIONS),
            building=f"Building {'ABC'[int(self.rng.integers(3))]}",
            floor=f"Floor {1 + int(self.rng.integers(5))}",
            vlan=f"VLAN-{100 + int(self.rng.integers(50))}",
            authentication_method=self._auth_method(device_type),
            posture_status="COMPLIANT" if is_compliant else "NON_COMPLIANT",
            risk_score=risk_score,
            risk_level=DeviceRiskLevel.from_score(risk_score),
            first_seen=now - timedelta(days=int(self.rng.integers(365))),
            last_seen=now,
            bytes_transmitted=int(self.rng.integers(MAX_INITIAL_BYTES)),
            bytes_received=int(self.rng.integers(MAX_INITIAL_BYTES)),
            connection_count=int(self.rng.integers(100)),
            is_active=bool(self.rng.random() > 0.1),
            normal_behavior_score=0.5 + float(self.rng.random()) * 0.5,
            is_compliant=is_compliant,
            last_compliance_check=now - timedelta(hours=int(self.rng.integers(24))),
            has_threat_indicators=bool(self.rng.random() < 0.1)
        )

    def _device_name(self, device_type: DeviceType) -> str:
        if device_type in (DeviceType.LAPTOP, DeviceType.DESKTOP):
            return f"{self._pick(LAPTOP_NAMES)}-{int(self.rng.integers(100))}"
        if device_type in (DeviceType.MOBILE_PHONE, DeviceType.TABLET):
            return f"{self._pick(MOBILE_NAMES)}-{int(self.rng.integers(100))}"
        if device_type == DeviceType.SERVER:
            return f"{self._pick(SERVER_NAMES)}-{int(self.rng.integers(10))}"
        return f"{self._pick(IOT_NAMES)}-{int(self.rng.integers(100))}"

    def _mac_address(self) -> str:
        return ":".join(f"{int(b):02x}" for b in self.rng.integers(0, 256, size=6))

    def _ip_address(self) -> str:
        host = 1 + int(self.rng.integers(254))
        segment = int(self.rng.integers(4))
        if segment == 0:
            return f"192.168.{1 + int(self.rng.integers(10))}.{host}"
        if segment == 1:
            return f"10.0.{1 + int(self.rng.integers(255))}.{host}"
        if segment == 2:
            return f"172.16.{1 + int(self.rng.integers(15))}.{host}"
        return f"192.168.100.{host}"

    def _manufacturer(self, device_type: DeviceType) -> str:
        if device_type in (DeviceType.LAPTOP, DeviceType.DESKTOP):
            return "Dell" if self._coin() else "HP"
        if device_type == DeviceType.MOBILE_PHONE:
            return "Apple" if self._coin() else "Samsung"
        if device_type == DeviceType.SERVER:
            return "Cisco"
        return "Generic"

    def _os_version(self, device_type: DeviceType) -> str:
        if device_type in (DeviceType.LAPTOP, DeviceType.DESKTOP):
            return f"Windows {10 + int(self.rng.integers(2))}"
        if device_type == DeviceType.MOBILE_PHONE:
            return "iOS 17" if self._coin() else "Android 14"
        if device_type == DeviceType.SERVER:
            return "Linux Ubuntu 22.04"
        return "Embedded OS"

    def _auth_method(self, device_type: DeviceType) -> str:
        if device_type.is_iot:
            return "MAB"
        return "DOT1X" if self._coin() else "GUEST"

    def _update_activity(self, device: Device):
        device.last_seen = utc_now()

        device.bytes_transmitted += int(self.rng.integers(MAX_TICK_BYTES))
        device.bytes_received += int(self.rng.integers(MAX_TICK_BYTES))

        if self.rng.random() < 0.3:
            device.connection_count += 1

        device.is_active = bool(self.rng.random() > 0.05)

        device.normal_behavior_score = clamp(
            device.normal_behavior_score + float(self.rng.normal(0.0, 0.1)), 0.0, 1.0
        )

        if self.rng.random() < 0.1:
            device.is_compliant = bool(self.rng.random() > 0.2)
            device.posture_status = "COMPLIANT" if device.is_compliant else "NON_COMPLIANT"
            device.last_compliance_check = utc_now()

        self._update_threat_indicators(device)

    def _update_threat_indicators(self, device: Device):
        indicators = []
        has_threats = False

        if self.rng.random() < 0.05:
            has_threats = True
            if device.device_type == DeviceType.UNKNOWN:
                indicators.append("Unidentified device behavior")
            if device.normal_behavior_score < 0.2:
                indicators.append("Suspicious network activity")
            if not device.is_compliant:
                indicators.append("Security policy violations")
            if self.rng.random() < 0.3:
                indicators.append("Unusual traffic patterns")
            if self.rng.random() < 0.2:
                indicators.append("Failed authentication attempts")

        device.has_threat_indicators = has_threats
        device.threat_indicators = indicators
        if not has_threats:
            device.threat_level = "LOW"
        else:
            device.threat_level = "HIGH" if len(indicators) > 2 else "MEDIUM"

    def update_risk_scores(self, devices: Optional[List[Device]] = None) -> int:
        """Re-score devices with Gaussian noise; only changes above 0.1 are applied"""
        updated = 0
        for device in devices if devices is not None else list(self.devices.values()):
            old_score = device.risk_score
            new_score = clamp(calculate_risk_score(device) + float(self.rng.normal(0.0, 0.5)))

            if abs(new_score - old_score) > 0.1:
                device.risk_score = new_score
                device.update_risk_level()
                device.risk_factors = risk_factors_for(device)
                updated += 1
                logger.debug(f"Updated risk score for {device.device_name}: {old_score:.1f} -> {new_score:.1f}")

        return updated

    def get_all_devices(self) -> List[Device]:
        return list(self.devices.values())

    def get_device(self, device_id: str) -> Optional[Device]:
        return self.devices.get(device_id)

    def get_devices_by_risk_level(self, risk_level: DeviceRiskLevel) -> List[Device]:
        return [d for d in self.devices.values() if d.risk_level == risk_level]

    def clear(self):
        self.devices.clear()

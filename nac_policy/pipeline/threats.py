"""
Threat Detection Pipeline Stage
Probabilistic threat detection over session attributes
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, Any, List, Optional

import numpy as np

from nac_policy.core.cache import ResultCache
from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.analysis import ThreatDetection, ThreatSeverity, ThreatType
from nac_policy.models.ordinal import highest
from nac_policy.models.session import Session
from nac_policy.utils.helpers import short_id, utc_now

logger = logging.getLogger(__name__)

BASE_DETECTION_PROBABILITY = 0.20
BEHAVIORAL_DETECTION_PROBABILITY = 0.30

THREAT_INDICATORS = {
    ThreatType.MALWARE: [
        "Suspicious process execution",
        "Unusual network connections",
        "File system modifications"
    ],
    ThreatType.PHISHING: [
        "Suspicious email links",
        "Credential harvesting attempts",
        "Social engineering indicators"
    ],
    ThreatType.DATA_EXFILTRATION: [
        "Large data transfers",
        "Unusual access patterns",
        "Encrypted communications"
    ],
    ThreatType.ANOMALOUS_BEHAVIOR: [
        "Behavioral deviation",
        "Unusual access times",
        "Abnormal resource usage"
    ],
}
DEFAULT_INDICATORS = ["Generic threat indicators"]

SEVERITY_ACTIONS = {
    ThreatSeverity.CRITICAL: ["Immediate isolation", "Emergency response", "Executive notification"],
    ThreatSeverity.HIGH: ["Quarantine", "Investigation", "Security team alert"],
    ThreatSeverity.MEDIUM: ["Enhanced monitoring", "Access restriction", "Logging"],
}
DEFAULT_ACTIONS = ["Monitor", "Log", "Analyze"]

TYPE_ACTIONS = {
    ThreatType.MALWARE: ["Antivirus scan", "System remediation"],
    ThreatType.DATA_EXFILTRATION: ["Network traffic analysis", "Data loss prevention"],
    ThreatType.INSIDER_THREAT: ["User investigation", "Access review"],
}

SEVERITY_POINT_ADJUSTMENTS = {
    ThreatType.MALWARE: 2,
    ThreatType.APT: 2,
    ThreatType.ZERO_DAY: 2,
    ThreatType.DATA_EXFILTRATION: 1,
    ThreatType.PRIVILEGE_ESCALATION: 1,
    ThreatType.POLICY_VIOLATION: -1,
    ThreatType.COMPLIANCE_BREACH: -1,
}

class ThreatDetector(ABC):
    model_version: str = ""

    @abstractmethod
    async def analyze(self, session: Session) -> List[ThreatDetection]:
        pass

    @abstractmethod
    async def analyze_user_behavior(self, user_name: str, sessions: List[Session]) -> List[ThreatDetection]:
        pass

    @abstractmethod
    async def analyze_device_behavior(self, mac_address: str, sessions: List[Session]) -> List[ThreatDetection]:
        pass

    @abstractmethod
    async def analyze_network_traffic(self, traffic_data: Dict[str, Any]) -> List[ThreatDetection]:
        pass

    @abstractmethod
    def get_active_threats(self) -> List[ThreatDetection]:
        pass

    @abstractmethod
    def get_threats_by_severity(self, severity: ThreatSeverity) -> List[ThreatDetection]:
        pass

    @abstractmethod
    def get_threat_history(self, session_id: str) -> List[ThreatDetection]:
        pass

    @abstractmethod
    def resolve_threat(self, detection_id: str, resolved_by: str) -> ThreatDetection:
        pass

    @abstractmethod
    def get_threat_statistics(self) -> Dict[str, Any]:
        pass

def detection_probability(session: Session) -> float:
    probability = BASE_DETECTION_PROBABILITY
    if session.is_unknown_device:
        probability += 0.30
    if session.is_guest:
        probability += 0.20
    if session.is_non_compliant:
        probability += 0.25
    return probability

def severity_for(threat_type: ThreatType, unknown_device: bool = False) -> ThreatSeverity:
    points = 2 + SEVERITY_POINT_ADJUSTMENTS.get(threat_type, 0)
    if unknown_device:
        points += 1

    if points >= 5:
        return ThreatSeverity.CRITICAL
    if points >= 4:
        return ThreatSeverity.HIGH
    if points >= 3:
        return ThreatSeverity.MEDIUM
    if points >= 2:
        return ThreatSeverity.LOW
    return ThreatSeverity.INFO

def indicators_for(threat_type: ThreatType) -> List[str]:
    return list(THREAT_INDICATORS.get(threat_type, DEFAULT_INDICATORS))

def actions_for(threat_type: ThreatType, severity: ThreatSeverity) -> List[str]:
    actions = list(SEVERITY_ACTIONS.get(severity, DEFAULT_ACTIONS))
    actions.extend(TYPE_ACTIONS.get(threat_type, []))
    return actions

def mitigation_for(threat_type: ThreatType, severity: ThreatSeverity) -> str:
    return (
        f"Implement {severity.value.lower()}-level response for {threat_type.value.lower()} "
        f"threat including containment, analysis, and remediation"
    )

class HeuristicThreatDetector(ThreatDetector):
    model_version = "ThreatAI-v3.2.1"

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        cache: Optional[ResultCache] = None
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.cache = cache if cache is not None else ResultCache("threats")
        self.threat_types = list(ThreatType)

    async def analyze(self, session: Session) -> List[ThreatDetection]:
        detections = []

        if self.rng.random() < detection_probability(session):
            detections.append(self._primary_detection(session))

        if self.rng.random() < BEHAVIORAL_DETECTION_PROBABILITY:
            detections.append(self._behavioral_detection(session))

        for detection in detections:
            self._store(detection)

        if detections:
            logger.info(f"{len(detections)} threat(s) detected for session {session.session_id}")
        return detections

    def _primary_detection(self, session: Session) -> ThreatDetection:
        threat_type = self.threat_types[int(self.rng.integers(0, len(self.threat_types)))]
        severity = severity_for(threat_type, session.is_unknown_device)

        return ThreatDetection(
            detection_id=short_id("threat-"),
            session_id=session.session_id,
            user_name=session.user_name,
            mac_address=session.mac_address,
            ip_address=session.ip_address,
            threat_type=threat_type,
            severity=severity,
            confidence=0.75 + self.rng.random() * 0.25,
            model_version=self.model_version,
            description=(
                f"{threat_type.value} threat detected with {severity.value} severity - "
                f"AI analysis indicates potential security risk"
            ),
            indicators=indicators_for(threat_type),
            threat_data=self._threat_data(session, threat_type),
            recommended_actions=actions_for(threat_type, severity),
            mitigation_strategy=mitigation_for(threat_type, severity)
        )

    def _behavioral_detection(self, session: Session) -> ThreatDetection:
        return ThreatDetection(
            detection_id=short_id("behavioral-threat-"),
            session_id=session.session_id,
            user_name=session.user_name,
            mac_address=session.mac_address,
            ip_address=session.ip_address,
            threat_type=ThreatType.ANOMALOUS_BEHAVIOR,
            severity=ThreatSeverity.MEDIUM,
            confidence=0.82,
            model_version=self.model_version,
            description="Anomalous user behavior pattern detected",
            indicators=["Unusual access patterns", "Abnormal session duration", "Unexpected resource access"],
            threat_data=self._threat_data(session, ThreatType.ANOMALOUS_BEHAVIOR),
            recommended_actions=["Enhanced monitoring", "User verification", "Access logging"],
            mitigation_strategy="Monitor and verify user identity"
        )

    def _threat_data(self, session: Session, threat_type: ThreatType) -> Dict[str, Any]:
        return {
            "sessionId": session.session_id,
            "threatType": threat_type.value,
            "detectionTime": utc_now().isoformat(),
            "sessionContext": {
                "deviceType": session.device_type or "unknown",
                "authMethod": session.authentication_method or "unknown",
                "location": session.location or "unknown"
            }
        }

    def _store(self, detection: ThreatDetection):
        self.cache.set(detection.detection_id, detection)

    async def _analyze_all(self, sessions: List[Session]) -> List[ThreatDetection]:
        detections = []
        for session in sessions:
            detections.extend(await self.analyze(session))
        return detections

    async def analyze_user_behavior(self, user_name: str, sessions: List[Session]) -> List[ThreatDetection]:
        logger.info(f"Analyzing user behavior for threats: {user_name}")
        detections = await self._analyze_all(sessions)
        if not detections:
            return detections

        severity = highest(d.severity for d in detections) or ThreatSeverity.LOW
        user_threat = ThreatDetection(
            detection_id=short_id("user-threat-"),
            user_name=user_name,
            threat_type=ThreatType.INSIDER_THREAT,
            severity=severity,
            confidence=0.78,
            model_version=self.model_version,
            description=f"User behavior analysis across {len(sessions)} sessions indicates potential insider threat",
            indicators=["Multiple threat detections", "Cross-session anomalies", "Behavioral pattern deviation"],
            threat_data={"userName": user_name, "sessionThreats": len(detections)},
            recommended_actions=["User investigation", "Access review", "Security interview"],
            mitigation_strategy="Comprehensive user behavior analysis and intervention"
        )
        self._store(user_threat)
        return detections + [user_threat]

    async def analyze_device_behavior(self, mac_address: str, sessions: List[Session]) -> List[ThreatDetection]:
        logger.info(f"Analyzing device behavior for threats: {mac_address}")
        detections = await self._analyze_all(sessions)
        if not detections:
            return detections

        device_threat = ThreatDetection(
            detection_id=short_id("device-threat-"),
            mac_address=mac_address,
            threat_type=ThreatType.MALWARE,
            severity=ThreatSeverity.HIGH,
            confidence=0.85,
            model_version=self.model_version,
            description=f"Device {mac_address} shows signs of compromise across {len(sessions)} sessions",
            indicators=["Multiple session threats", "Device behavior anomalies", "Potential malware indicators"],
            threat_data={"macAddress": mac_address, "sessionThreats": len(detections)},
            recommended_actions=["Device quarantine", "Malware scan", "Device reimaging"],
            mitigation_strategy="Isolate and remediate compromised device"
        )
        self._store(device_threat)
        return detections + [device_threat]

    async def analyze_network_traffic(self, traffic_data: Dict[str, Any]) -> List[ThreatDetection]:
        logger.info("Analyzing network traffic for threats")
        if "suspiciousPatterns" not in traffic_data:
            return []

        network_threat = ThreatDetection(
            detection_id=short_id("network-threat-"),
            threat_type=ThreatType.DATA_EXFILTRATION,
            severity=ThreatSeverity.HIGH,
            confidence=0.88,
            model_version=self.model_version,
            description="Suspicious network traffic patterns detected",
            indicators=["Unusual data volumes", "Suspicious destinations", "Encrypted tunneling"],
            threat_data=dict(traffic_data),
            recommended_actions=["Network isolation", "Traffic analysis", "Incident response"],
            mitigation_strategy="Block suspicious traffic and investigate"
        )
        self._store(network_threat)
        return [network_threat]

    def get_threat(self, detection_id: str) -> ThreatDetection:
        detection = self.cache.get(detection_id)
        if detection is None:
            raise NotFoundError("Threat detection", detection_id)
        return detection

    def get_active_threats(self) -> List[ThreatDetection]:
        return [d for d in self.cache.values() if d.is_active]

    def get_threats_by_severity(self, severity: ThreatSeverity) -> List[ThreatDetection]:
        return [d for d in self.cache.values() if d.severity == severity]

    def get_threat_history(self, session_id: str) -> List[ThreatDetection]:
        history = [d for d in self.cache.values() if d.session_id == session_id]
        return sorted(history, key=lambda d: d.detected_at)

    def resolve_threat(self, detection_id: str, resolved_by: str) -> ThreatDetection:
        detection = self.get_threat(detection_id)
        detection.is_active = False
        detection.resolved_at = utc_now()
        detection.resolved_by = resolved_by
        logger.info(f"Threat {detection_id} resolved by {resolved_by}")
        return detection

    def get_threat_statistics(self) -> Dict[str, Any]:
        detections = self.cache.values()
        active = sum(1 for d in detections if d.is_active)
        severity_counts = Counter(d.severity.value for d in detections)

        return {
            "total_threats": len(detections),
            "active_threats": active,
            "resolved_threats": len(detections) - active,
            "severity_breakdown": {s.value: severity_counts.get(s.value, 0) for s in ThreatSeverity},
            "model_version": self.model_version
        }

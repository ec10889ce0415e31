"""
Event Generator
Probabilistic network events, security incidents and pipeline triggers
"""

import logging
from datetime import timedelta
from typing import Callable, Dict, List, Optional

import numpy as np

from nac_policy.core.config import SimulatorSettings
from nac_policy.models.device import Device
from nac_policy.models.events import (
    EventSeverity,
    EventType,
    INCIDENT_EVENT_TYPES,
    NetworkEvent,
)
from nac_policy.models.session import Session
from nac_policy.simulator.device_pool import device_to_session
from nac_policy.utils.helpers import short_id, utc_now

logger = logging.getLogger(__name__)

BASE_EVENT_PROBABILITY = 0.10
HIGH_RISK_EVENT_BONUS = 0.20
NON_COMPLIANT_EVENT_BONUS = 0.15
THREAT_EVENT_BONUS = 0.25

SCENARIO_EVENT_MULTIPLIERS = {
    "datacenter": 0.5,
    "guest": 1.5,
    "retail": 1.5,
}

INCIDENT_PROBABILITY = 0.30
HIGH_RISK_TRIGGER_PROBABILITY = 0.40
SECURITY_EVENT_TRIGGER_PROBABILITY = 0.30
MAX_SECURITY_EVENT_TRIGGERS = 3

HIGH_IMPACT_EVENT_TYPES = {EventType.MALWARE_DETECTED, EventType.UNAUTHORIZED_ACCESS_ATTEMPT}

def event_probability(device: Device, scenario: str) -> float:
    probability = BASE_EVENT_PROBABILITY
    if device.is_high_risk:
        probability += HIGH_RISK_EVENT_BONUS
    if not device.is_compliant:
        probability += NON_COMPLIANT_EVENT_BONUS
    if device.has_threat_indicators:
        probability += THREAT_EVENT_BONUS
    return probability * SCENARIO_EVENT_MULTIPLIERS.get((scenario or "").lower(), 1.0)

def candidate_event_types(device: Device) -> List[EventType]:
    candidates = [EventType.DEVICE_CONNECTED, EventType.AUTHENTICATION_SUCCESS]

    if device.is_high_risk:
        candidates += [EventType.SUSPICIOUS_ACTIVITY, EventType.POLICY_VIOLATION, EventType.ANOMALOUS_BEHAVIOR]
    if not device.is_compliant:
        candidates += [EventType.COMPLIANCE_VIOLATION, EventType.POSTURE_ASSESSMENT_FAILED]
    if device.is_iot:
        candidates += [EventType.IOT_DEVICE_ANOMALY, EventType.IOT_COMMUNICATION_PATTERN]
    if device.has_threat_indicators:
        candidates += [EventType.MALWARE_DETECTED, EventType.UNAUTHORIZED_ACCESS_ATTEMPT]

    return candidates

class EventGenerator:
    def __init__(
        self,
        config: Optional[SimulatorSettings] = None,
        rng: Optional[np.random.Generator] = None,
        session_sink: Optional[Callable[[Session], object]] = None,
        max_cached_events: int = 10000,
        retention_hours: int = 24
    ):
        self.config = config or SimulatorSettings()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.session_sink = session_sink
        self.max_cached_events = max_cached_events
        self.retention_hours = retention_hours
        self.events: Dict[str, NetworkEvent] = {}

    def _coin(self) -> bool:
        return bool(self.rng.random() < 0.5)

    def generate(self, devices: List[Device], scenario: str) -> List[NetworkEvent]:
        events = [
            self.create_event(device)
            for device in devices
            if self.rng.random() < event_probability(device, scenario)
        ]

        cap = self.config.max_events_per_cycle
        if len(events) > cap:
            # The cap bounds kept events; every device still gets its draw
            kept = sorted(self.rng.choice(len(events), size=cap, replace=False))
            events = [events[int(i)] for i in kept]

        for event in events:
            self._store(event)

        logger.debug(f"Generated {len(events)} network events")
        return events

    def select_event_type(self, device: Device) -> EventType:
        candidates = candidate_event_types(device)
        return candidates[int(self.rng.integers(len(candidates)))]

    def select_severity(self, device: Device, event_type: EventType) -> EventSeverity:
        if event_type in HIGH_IMPACT_EVENT_TYPES:
            return EventSeverity.HIGH if self._coin() else EventSeverity.CRITICAL
        if device.is_high_risk:
            return EventSeverity.MEDIUM if self._coin() else EventSeverity.HIGH
        return EventSeverity.LOW if self._coin() else EventSeverity.MEDIUM

    def create_event(self, device: Device) -> NetworkEvent:
        event_type = self.select_event_type(device)
        return NetworkEvent(
            event_id=short_id("EVT-"),
            device_id=device.device_id,
            event_type=event_type,
            severity=self.select_severity(device, event_type),
            title=f"{event_type.display_name} detected on {device.device_name}",
            description=(
                f"{event_type.display_name} was detected on device {device.device_name} "
                f"({device.device_type.display_name}) owned by {device.user_name}. "
                f"Device risk score: {device.risk_score:.1f}. Location: {device.location}"
            ),
            source=device.ip_address,
            destination="Network",
            event_data={
                "deviceId": device.device_id,
                "deviceName": device.device_name,
                "deviceType": device.device_type.display_name,
                "riskScore": device.risk_score,
                "location": device.location,
                "userName": device.user_name
            }
        )

    def create_security_incident(self, device: Device) -> NetworkEvent:
        event_type = INCIDENT_EVENT_TYPES[int(self.rng.integers(len(INCIDENT_EVENT_TYPES)))]
        return NetworkEvent(
            event_id=short_id("SEC-"),
            device_id=device.device_id,
            event_type=event_type,
            severity=EventSeverity.HIGH,
            title=f"Security Incident: {event_type.display_name}",
            description=(
                f"Security incident detected on high-risk device {device.device_name}. "
                f"Risk score: {device.risk_score:.1f}. Immediate investigation required."
            ),
            source=device.ip_address,
            destination="Security Team",
            event_data={
                "deviceId": device.device_id,
                "riskScore": device.risk_score,
                "threatLevel": device.threat_level,
                "threatIndicators": list(device.threat_indicators)
            }
        )

    def generate_security_incidents(self, devices: List[Device]) -> int:
        incidents = 0
        for device in devices:
            if not device.is_high_risk:
                continue
            if self.rng.random() < INCIDENT_PROBABILITY:
                incident = self.create_security_incident(device)
                self._store(incident)
                incidents += 1
                self._push(device)
                logger.info(f"Security incident {incident.event_id} raised for {device.device_name}")
        return incidents

    def generate_policy_triggers(self, devices: List[Device], events: List[NetworkEvent]) -> int:
        """Push high-risk devices and devices behind security events into the analysis pipeline"""
        triggered = 0

        high_risk = [d for d in devices if d.is_high_risk]
        if high_risk and self.rng.random() < HIGH_RISK_TRIGGER_PROBABILITY:
            for device in high_risk:
                self._push(device)
            triggered += len(high_risk)

        security_events = [e for e in events if e.is_security_event]
        if security_events and self.rng.random() < SECURITY_EVENT_TRIGGER_PROBABILITY:
            by_id = {d.device_id: d for d in devices}
            for event in security_events[:MAX_SECURITY_EVENT_TRIGGERS]:
                device = by_id.get(event.device_id)
                if device is not None:
                    self._push(device)
                    triggered += 1

        return triggered

    def _push(self, device: Device):
        if self.session_sink is None:
            return
        try:
            self.session_sink(device_to_session(device))
        except Exception as e:
            logger.warning(f"Failed to push device {device.device_id} into the pipeline: {e}")

    def _store(self, event: NetworkEvent):
        self.events[event.event_id] = event
        while len(self.events) > self.max_cached_events:
            oldest = next(iter(self.events))
            del self.events[oldest]

    def purge(self, max_age_hours: Optional[int] = None) -> int:
        """Drop events older than the retention window"""
        hours = self.retention_hours if max_age_hours is None else max_age_hours
        cutoff = utc_now() - timedelta(hours=hours)
        expired = [event_id for event_id, e in self.events.items() if e.timestamp < cutoff]
        for event_id in expired:
            del self.events[event_id]
        return len(expired)

    def get_all_events(self) -> List[NetworkEvent]:
        return list(self.events.values())

    def get_event(self, event_id: str) -> Optional[NetworkEvent]:
        return self.events.get(event_id)

    def get_events_by_severity(self, severity: EventSeverity) -> List[NetworkEvent]:
        return [e for e in self.events.values() if e.severity == severity]

    def get_security_events(self) -> List[NetworkEvent]:
        return [e for e in self.events.values() if e.is_security_event]

    def get_unresolved_events(self) -> List[NetworkEvent]:
        return [e for e in self.events.values() if not e.resolved]

    def clear(self):
        self.events.clear()

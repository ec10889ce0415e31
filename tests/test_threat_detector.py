import asyncio
import pytest
from unittest.mock import MagicMock

from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.analysis import ThreatSeverity, ThreatType
from nac_policy.pipeline.threats import (
    HeuristicThreatDetector,
    detection_probability,
    severity_for,
)

from tests.conftest import make_risky_session, make_session

def scripted_detector(draws, threat_index=0):
    detector = HeuristicThreatDetector()
    detector.rng = MagicMock()
    detector.rng.random.side_effect = list(draws)
    detector.rng.integers.return_value = threat_index
    return detector

class TestDetectionProbability:
    def test_clean_session(self):
        assert detection_probability(make_session()) == pytest.approx(0.20)

    def test_risky_session(self):
        assert detection_probability(make_risky_session()) == pytest.approx(0.95)

class TestSeverityFor:
    def test_point_system(self):
        assert severity_for(ThreatType.MALWARE) == ThreatSeverity.HIGH
        assert severity_for(ThreatType.MALWARE, unknown_device=True) == ThreatSeverity.CRITICAL
        assert severity_for(ThreatType.DATA_EXFILTRATION) == ThreatSeverity.MEDIUM
        assert severity_for(ThreatType.PHISHING) == ThreatSeverity.LOW
        assert severity_for(ThreatType.POLICY_VIOLATION) == ThreatSeverity.INFO
        assert severity_for(ThreatType.COMPLIANCE_BREACH, unknown_device=True) == ThreatSeverity.LOW

class TestHeuristicThreatDetector:
    def test_no_detection(self):
        detector = scripted_detector([0.99, 0.99])
        assert asyncio.run(detector.analyze(make_session())) == []

    def test_primary_and_behavioral(self):
        malware = list(ThreatType).index(ThreatType.MALWARE)
        detector = scripted_detector([0.0, 0.5, 0.0], threat_index=malware)

        detections = asyncio.run(detector.analyze(make_risky_session()))

        assert len(detections) == 2
        primary, behavioral = detections
        assert primary.threat_type == ThreatType.MALWARE
        assert primary.severity == ThreatSeverity.CRITICAL
        assert primary.detection_id.startswith("threat-")
        assert primary.confidence == pytest.approx(0.875)
        assert "Antivirus scan" in primary.recommended_actions
        assert primary.threat_data["sessionContext"]["location"] == "unknown"
        assert behavioral.threat_type == ThreatType.ANOMALOUS_BEHAVIOR
        assert behavioral.severity == ThreatSeverity.MEDIUM
        assert behavioral.detection_id.startswith("behavioral-threat-")

    def test_risky_sessions_usually_detected(self, rng):
        detector = HeuristicThreatDetector(rng=rng)
        hits = sum(
            1 for i in range(200)
            if asyncio.run(detector.analyze(make_risky_session(session_id=f"s-{i}")))
        )
        assert hits >= 180

    def test_user_aggregate_uses_max_severity(self):
        malware = list(ThreatType).index(ThreatType.MALWARE)
        # session one: primary only; session two: behavioral only
        detector = scripted_detector([0.0, 0.5, 0.99, 0.99, 0.0], threat_index=malware)
        sessions = [make_session(session_id="a"), make_session(session_id="b")]

        detections = asyncio.run(detector.analyze_user_behavior("john.smith", sessions))

        user_threat = detections[-1]
        assert user_threat.threat_type == ThreatType.INSIDER_THREAT
        assert user_threat.severity == ThreatSeverity.HIGH
        assert user_threat.confidence == 0.78

    def test_user_aggregate_skipped_without_detections(self):
        detector = scripted_detector([0.99] * 4)
        sessions = [make_session(session_id="a"), make_session(session_id="b")]
        assert asyncio.run(detector.analyze_user_behavior("john.smith", sessions)) == []

    def test_device_aggregate(self):
        detector = scripted_detector([0.99, 0.0])
        detections = asyncio.run(detector.analyze_device_behavior("aa:bb", [make_session()]))
        device_threat = detections[-1]
        assert device_threat.threat_type == ThreatType.MALWARE
        assert device_threat.severity == ThreatSeverity.HIGH
        assert device_threat.mac_address == "aa:bb"

    def test_network_traffic(self, rng):
        detector = HeuristicThreatDetector(rng=rng)
        assert asyncio.run(detector.analyze_network_traffic({"bytes": 10})) == []
        detections = asyncio.run(detector.analyze_network_traffic({"suspiciousPatterns": ["tunnel"]}))
        assert detections[0].threat_type == ThreatType.DATA_EXFILTRATION
        assert detections[0].confidence == 0.88

    def test_resolve_threat(self):
        detector = scripted_detector([0.99, 0.0])
        detection = asyncio.run(detector.analyze(make_session()))[0]

        resolved = detector.resolve_threat(detection.detection_id, "analyst")

        assert not resolved.is_active
        assert resolved.resolved_by == "analyst"
        assert resolved.resolved_at is not None
        assert detector.get_active_threats() == []
        assert detector.get_threat_history("sess-001") == [resolved]

    def test_resolve_unknown_threat(self, rng):
        with pytest.raises(NotFoundError):
            HeuristicThreatDetector(rng=rng).resolve_threat("missing", "analyst")

    def test_statistics(self):
        detector = scripted_detector([0.99, 0.0])
        detection = asyncio.run(detector.analyze(make_session()))[0]
        detector.resolve_threat(detection.detection_id, "analyst")
        asyncio.run(detector.analyze_network_traffic({"suspiciousPatterns": True}))

        stats = detector.get_threat_statistics()

        assert stats["total_threats"] == 2
        assert stats["active_threats"] == 1
        assert stats["resolved_threats"] == 1
        assert stats["severity_breakdown"]["HIGH"] == 1
        assert stats["severity_breakdown"]["MEDIUM"] == 1

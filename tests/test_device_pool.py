import pytest
from datetime import timedelta
from unittest.mock import MagicMock

from nac_policy.core.config import SimulatorSettings
from nac_policy.models.device import DeviceRiskLevel, DeviceType
from nac_policy.models.session import SessionState
from nac_policy.simulator.device_pool import (
    DevicePool,
    calculate_risk_score,
    device_to_session,
    risk_factors_for,
)
from nac_policy.utils.helpers import utc_now

from tests.conftest import make_device

class TestCalculateRiskScore:
    def test_baseline_laptop(self):
        assert calculate_risk_score(make_device()) == pytest.approx(1.5)

    def test_penalties_accumulate(self):
        device = make_device(
            device_type=DeviceType.MOBILE_PHONE,
            authentication_method="MAB",
            is_compliant=False,
            normal_behavior_score=0.2
        )
        # 2.0 + 1.5 + 2.5 + 2.0
        assert calculate_risk_score(device) == pytest.approx(8.0)

    def test_new_and_stale_devices(self):
        new = make_device(first_seen=utc_now() - timedelta(hours=2))
        stale = make_device(first_seen=utc_now() - timedelta(days=400))
        assert calculate_risk_score(new) == pytest.approx(3.0)
        assert calculate_risk_score(stale) == pytest.approx(2.5)

    def test_clamped_to_ten(self):
        device = make_device(
            device_type=DeviceType.UNKNOWN,
            authentication_method="GUEST",
            is_compliant=False,
            normal_behavior_score=0.0,
            has_threat_indicators=True,
            first_seen=utc_now()
        )
        assert calculate_risk_score(device) == 10.0

    def test_risk_factors(self):
        device = make_device(device_type=DeviceType.UNKNOWN, authentication_method="GUEST", is_compliant=False)
        factors = risk_factors_for(device)
        assert "Unknown device type" in factors
        assert "Guest network access" in factors
        assert "Non-compliant posture" in factors

class TestDeviceToSession:
    def test_session_fields(self):
        device = make_device(is_active=False, posture_status="NON_COMPLIANT")
        session = device_to_session(device)
        assert session.session_id == device.device_id
        assert session.device_type == "Laptop"
        assert session.session_state == SessionState.INACTIVE
        assert session.is_non_compliant

class TestDevicePool:
    def test_reconcile_reaches_target(self, rng):
        pool = DevicePool(rng=rng)
        for target in (1, 25, 7, 40):
            devices = pool.reconcile(target, "office")
            assert len(devices) == target
            assert len(pool.devices) == target

    def test_reconcile_keeps_identifiers(self, rng):
        pool = DevicePool(rng=rng)
        pool.reconcile(20, "campus")
        first_ids = set(pool.devices)
        pool.reconcile(20, "campus")
        assert set(pool.devices) == first_ids

    def test_shrinking_removes_only_excess(self, rng):
        pool = DevicePool(rng=rng)
        pool.reconcile(30, "office")
        before = set(pool.devices)
        pool.reconcile(10, "office")
        after = set(pool.devices)
        assert after <= before
        assert len(after) == 10

    def test_identifiers_unique(self, rng):
        pool = DevicePool(rng=rng)
        devices = pool.reconcile(500, "office")
        assert len({d.device_id for d in devices}) == 500
        assert all(d.device_id.startswith("SIM-") for d in devices)

    def test_datacenter_mostly_servers(self, rng):
        pool = DevicePool(rng=rng)
        devices = pool.reconcile(400, "datacenter")
        servers = sum(1 for d in devices if d.device_type == DeviceType.SERVER)
        assert servers / len(devices) > 0.55

    def test_unknown_scenario_uses_office_table(self, rng):
        pool = DevicePool(rng=rng)
        office_types = set(SimulatorSettings().weights_for("office"))
        for _ in range(200):
            assert pool.select_device_type("spaceship").value in office_types

    def test_custom_weights_from_config(self, rng):
        config = SimulatorSettings(scenario_device_weights={"office": {"KIOSK": 1}})
        pool = DevicePool(config=config, rng=rng)
        devices = pool.reconcile(10, "office")
        assert all(d.device_type == DeviceType.KIOSK for d in devices)

    def test_created_device_consistency(self, rng):
        pool = DevicePool(rng=rng)
        for device in pool.reconcile(100, "healthcare"):
            assert 0.0 <= device.risk_score <= 10.0
            assert device.risk_level == DeviceRiskLevel.from_score(device.risk_score)
            assert device.posture_status == ("COMPLIANT" if device.is_compliant else "NON_COMPLIANT")
            assert 0.0 <= device.normal_behavior_score <= 1.0

    def test_sessions_pushed_to_sink(self, rng):
        sink = MagicMock()
        pool = DevicePool(rng=rng, session_sink=sink)
        pool.reconcile(5, "office")
        assert sink.call_count == 5

    def test_sink_failure_does_not_stop_tick(self, rng):
        sink = MagicMock(side_effect=RuntimeError("pipeline down"))
        pool = DevicePool(rng=rng, session_sink=sink)
        assert len(pool.reconcile(5, "office")) == 5

    def test_update_risk_scores_keeps_levels_in_sync(self, rng):
        pool = DevicePool(rng=rng)
        pool.reconcile(50, "retail")
        pool.update_risk_scores()
        for device in pool.get_all_devices():
            assert 0.0 <= device.risk_score <= 10.0
            assert device.risk_level == DeviceRiskLevel.from_score(device.risk_score)

    def test_threat_indicators_cleared_without_regeneration(self, rng):
        pool = DevicePool(rng=rng)
        device = make_device(has_threat_indicators=True, threat_indicators=["x"], threat_level="HIGH")
        pool.rng = MagicMock()
        pool.rng.random.return_value = 0.99
        pool._update_threat_indicators(device)
        assert not device.has_threat_indicators
        assert device.threat_indicators == []
        assert device.threat_level == "LOW"

    def test_get_devices_by_risk_level(self, rng):
        pool = DevicePool(rng=rng)
        pool.reconcile(60, "office")
        high = pool.get_devices_by_risk_level(DeviceRiskLevel.HIGH)
        assert all(d.risk_level == DeviceRiskLevel.HIGH for d in high)

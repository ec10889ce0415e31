import pytest
from fastapi.testclient import TestClient

from nac_policy.core.config import Settings, SimulatorSettings
from nac_policy.main import create_app

API = "/api/v1"

SESSION = {
    "session_id": "sess-api-1",
    "user_name": "guest.user",
    "mac_address": "AA:BB:CC:00:11:22",
    "ip_address": "192.168.100.20",
    "device_type": "Unknown",
    "authentication_method": "GUEST",
    "posture_status": "NON_COMPLIANT"
}

@pytest.fixture
def client():
    app_settings = Settings(
        autostart_simulator=False,
        random_seed=7,
        cleanup_interval_seconds=3600,
        simulator=SimulatorSettings(device_count=5)
    )
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client

class TestSystemEndpoints:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["components"]["simulator"] == "stopped"
        assert data["components"]["analysis_pipeline"] == "active"
        assert data["components"]["analysis_strategy"] == "heuristic"

class TestSimulatorEndpoints:
    def test_tick_populates_devices(self, client):
        summary = client.post(f"{API}/simulator/tick").json()

        assert summary["tick"] == 1
        assert summary["devices"] == 5
        assert len(client.get(f"{API}/simulator/devices").json()) == 5
        assert client.get(f"{API}/simulator/status").json()["tick_count"] == 1

    def test_device_lookup(self, client):
        client.post(f"{API}/simulator/tick")
        device = client.get(f"{API}/simulator/devices").json()[0]

        response = client.get(f"{API}/simulator/devices/{device['device_id']}")

        assert response.status_code == 200
        assert response.json()["mac_address"] == device["mac_address"]
        assert client.get(f"{API}/simulator/devices/SIM-missing").status_code == 404

    def test_devices_by_risk_level(self, client):
        client.post(f"{API}/simulator/tick")

        total = sum(
            len(client.get(f"{API}/simulator/devices/risk/{level}").json())
            for level in ("LOW", "MEDIUM", "HIGH", "CRITICAL")
        )

        assert total == 5

    def test_invalid_config_rejected(self, client):
        config = client.get(f"{API}/simulator/config").json()
        config["interval_seconds"] = 1

        response = client.put(f"{API}/simulator/config", json=config)

        assert response.status_code == 400
        assert response.json()["status"] == "error"
        assert client.get(f"{API}/simulator/config").json()["interval_seconds"] == 30

    def test_config_update(self, client):
        config = client.get(f"{API}/simulator/config").json()
        config["device_count"] = 3
        config["scenario"] = "Healthcare"

        response = client.put(f"{API}/simulator/config", json=config)
        client.post(f"{API}/simulator/tick")

        assert response.status_code == 200
        assert response.json()["configuration"]["scenario"] == "healthcare"
        assert len(client.get(f"{API}/simulator/devices").json()) == 3

    def test_start_and_stop(self, client):
        started = client.post(f"{API}/simulator/start")
        assert started.status_code == 200
        assert client.get(f"{API}/simulator/health").json()["status"] == "UP"

        stopped = client.post(f"{API}/simulator/stop")
        assert stopped.status_code == 200
        assert client.get(f"{API}/simulator/status").json()["running"] is False

    def test_statistics(self, client):
        client.post(f"{API}/simulator/tick")

        types = client.get(f"{API}/simulator/statistics/devices/types").json()
        risk = client.get(f"{API}/simulator/statistics/risk/distribution").json()

        assert sum(types.values()) == 5
        assert risk["total_devices"] == 5

class TestSessionEndpoints:
    def test_ingest_and_get(self, client):
        response = client.post(f"{API}/sessions/", json=SESSION)

        assert response.status_code == 201
        assert response.json()["start_time"] is not None
        assert client.get(f"{API}/sessions/sess-api-1").json()["user_name"] == "guest.user"
        assert len(client.get(f"{API}/sessions/", params={"user_name": "guest.user"}).json()) == 1

    def test_cleanup_with_naive_timestamps(self, client):
        naive = dict(SESSION, session_id="sess-naive", start_time="2024-01-01T12:00:00",
                     last_update_time="2024-01-01T12:00:00")
        client.post(f"{API}/sessions/", json=SESSION)
        client.post(f"{API}/sessions/", json=naive)

        response = client.delete(f"{API}/sessions/cleanup")

        assert response.status_code == 200
        assert client.get(f"{API}/sessions/sess-naive").status_code == 404
        assert client.get(f"{API}/sessions/sess-api-1").status_code == 200

    def test_missing_session(self, client):
        assert client.get(f"{API}/sessions/unknown").status_code == 404
        assert client.get(f"{API}/ai/risk/session/unknown").status_code == 404

    def test_comprehensive_analysis(self, client):
        client.post(f"{API}/sessions/", json=SESSION)

        response = client.post(f"{API}/ai/analyze/comprehensive/sess-api-1")

        assert response.status_code == 200
        result = response.json()
        assert result["session_id"] == "sess-api-1"
        assert result["risk_assessment"]["overall_risk_score"] >= 8.5
        assert result["recommendations"]
        assert result["policy_created"] is True
        policy = client.get(f"{API}/policies/{result['policy_id']}").json()
        assert policy["source"] == "AUTO_GENERATED"

    def test_pipeline_stats(self, client):
        assert client.get(f"{API}/sessions/pipeline/stats").status_code == 200
        assert client.get(f"{API}/sessions/health").json()["status"] == "UP"

class TestPolicyEndpoints:
    def test_policy_lifecycle(self, client):
        created = client.post(f"{API}/policies/", json={"name": "Block Rogue APs", "priority": 2})
        assert created.status_code == 201
        policy_id = created.json()["policy_id"]
        assert created.json()["status"] == "DRAFT"

        updated = client.put(f"{API}/policies/{policy_id}", json={"priority": 1, "updated_by": "netops"})
        assert updated.json()["version"] == 2

        activated = client.post(f"{API}/policies/{policy_id}/activate")
        assert activated.json()["status"] == "ACTIVE"
        assert len(client.get(f"{API}/policies/status/ACTIVE").json()) == 1

        deactivated = client.post(f"{API}/policies/{policy_id}/deactivate")
        assert deactivated.json()["status"] == "INACTIVE"

    def test_missing_policy(self, client):
        assert client.get(f"{API}/policies/missing").status_code == 404
        assert client.post(f"{API}/policies/missing/activate").status_code == 404

class TestAIEndpoints:
    def test_custom_risk(self, client):
        response = client.post(f"{API}/ai/risk/assess", json={"anomalyScore": 1.5, "threatIndicators": ["c2"]})

        assert response.status_code == 200
        assert response.json()["overall_risk_score"] == 8.5

    def test_emergency_recommendation_can_be_implemented(self, client):
        recommendations = client.post(
            f"{API}/ai/recommendations/emergency", json={"threatType": "APT"}
        ).json()
        recommendation_id = recommendations[0]["recommendation_id"]

        effectiveness = client.post(f"{API}/ai/recommendations/{recommendation_id}/evaluate").json()
        policy = client.post(f"{API}/ai/recommendations/{recommendation_id}/implement")

        assert 0.0 <= effectiveness["effectiveness"] <= 1.0
        assert policy.status_code == 200
        assert policy.json()["name"] == recommendations[0]["recommended_policy_name"]

    def test_rejected_recommendation_is_gone(self, client):
        recommendations = client.post(
            f"{API}/ai/recommendations/emergency", json={"threatType": "APT"}
        ).json()
        recommendation_id = recommendations[0]["recommendation_id"]

        client.post(f"{API}/ai/recommendations/{recommendation_id}/reject", json={"feedback": "too broad"})

        assert client.post(f"{API}/ai/recommendations/{recommendation_id}/implement").status_code == 404

    def test_optimization_uses_stored_policies(self, client):
        client.post(f"{API}/policies/", json={"name": "Legacy VLAN Policy"})

        response = client.post(f"{API}/ai/recommendations/optimization")

        assert response.status_code == 200

    def test_unknown_threat_resolution(self, client):
        response = client.post(f"{API}/ai/threats/unknown/resolve", json={"resolved_by": "soc"})

        assert response.status_code == 404

    def test_threat_statistics(self, client):
        data = client.get(f"{API}/ai/threats/statistics").json()

        assert data["total_threats"] == 0
        assert data["active_threats"] == 0

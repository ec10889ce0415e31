import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from nac_policy.core.config import Settings
from nac_policy.core.exceptions import ModelResponseError
from nac_policy.models.analysis import (
    RecommendationPriority,
    RiskLevel,
    ThreatSeverity,
    ThreatType,
)
from nac_policy.pipeline.model_backed import (
    ModelBackedPolicyRecommender,
    ModelBackedRiskScorer,
    ModelBackedThreatDetector,
    ModelClient,
    build_strategies,
    extract_json,
    parse_enum,
)
from nac_policy.pipeline.recommender import HeuristicPolicyRecommender
from nac_policy.pipeline.risk import HeuristicRiskScorer
from nac_policy.pipeline.threats import HeuristicThreatDetector

from tests.conftest import make_session

def model_client(response=None, error=None):
    client = MagicMock(spec=ModelClient)
    client.model_name = "gpt-4"
    if error is not None:
        client.complete_json = AsyncMock(side_effect=error)
    else:
        client.complete_json = AsyncMock(return_value=response)
    return client

class TestResponseParsing:
    def test_parse_enum_accepts_value_and_name(self):
        assert parse_enum(ThreatType, "MALWARE") == ThreatType.MALWARE
        assert parse_enum(ThreatType, "DDoS") == ThreatType.DDOS
        assert parse_enum(ThreatType, "ddos") == ThreatType.DDOS
        assert parse_enum(RiskLevel, RiskLevel.HIGH) == RiskLevel.HIGH

    def test_parse_enum_rejects_unknown(self):
        with pytest.raises(ModelResponseError):
            parse_enum(ThreatSeverity, "CATASTROPHIC")

    def test_extract_json_strips_markdown_fence(self):
        content = "Here you go:\n```json\n{\"overallRiskScore\": 4.2}\n```"
        assert extract_json(content) == {"overallRiskScore": 4.2}

    def test_extract_json_without_object(self):
        with pytest.raises(ModelResponseError):
            extract_json("no json here")

    def test_extract_json_invalid(self):
        with pytest.raises(ModelResponseError):
            extract_json("{not: valid}")

class TestModelClient:
    def test_complete_requires_api_key(self):
        client = ModelClient("http://localhost/v1/chat", api_key=None)

        with pytest.raises(ModelResponseError):
            asyncio.run(client.complete("system", "user"))

    def test_complete_json_parses_reply(self):
        client = ModelClient("http://localhost/v1/chat", api_key="sk-test")
        client.complete = AsyncMock(return_value="```{\"threats\": []}```")

        data = asyncio.run(client.complete_json("system", "user"))

        assert data == {"threats": []}

    def test_from_settings(self):
        client = ModelClient.from_settings(
            Settings(model_api_key="sk-test", model_name="gpt-4o", model_max_tokens=500)
        )

        assert client.api_key == "sk-test"
        assert client.model_name == "gpt-4o"
        assert client.max_tokens == 500

class TestModelBackedRiskScorer:
    def test_uses_model_response(self, rng):
        client = model_client({
            "overallRiskScore": 12.0,
            "confidence": 0.9,
            "reasoning": "Unmanaged device",
            "riskFactors": [{"factorName": "Device", "weight": 0.5, "score": 9.0}],
            "recommendations": ["Quarantine device"]
        })
        fallback = HeuristicRiskScorer(rng=rng)
        scorer = ModelBackedRiskScorer(client, fallback)

        assessment = asyncio.run(scorer.assess(make_session()))

        assert assessment.overall_risk_score == 10.0
        assert assessment.risk_level == RiskLevel.CRITICAL
        assert assessment.model_version == ModelBackedRiskScorer.model_version
        assert assessment.recommendations == ["Quarantine device"]
        assert fallback.get_risk_history("sess-001") == [assessment]

    def test_falls_back_on_model_error(self, rng):
        client = model_client(error=ModelResponseError("HTTP 500"))
        scorer = ModelBackedRiskScorer(client, HeuristicRiskScorer(rng=rng))

        assessment = asyncio.run(scorer.assess(make_session()))

        assert assessment.model_version == HeuristicRiskScorer.model_version

    def test_falls_back_on_malformed_response(self, rng):
        client = model_client({"riskLevel": "HIGH"})
        scorer = ModelBackedRiskScorer(client, HeuristicRiskScorer(rng=rng))

        assessment = asyncio.run(scorer.assess(make_session()))

        assert assessment.model_version == HeuristicRiskScorer.model_version

    def test_model_info_includes_fallback(self, rng):
        scorer = ModelBackedRiskScorer(model_client({}), HeuristicRiskScorer(rng=rng))

        info = scorer.get_model_info()

        assert info["provider"] == "OpenAI gpt-4"
        assert info["fallback"]["version"] == HeuristicRiskScorer.model_version

class TestModelBackedThreatDetector:
    def test_builds_detections(self, rng):
        client = model_client({"threats": [{
            "threatType": "LATERAL_MOVEMENT",
            "severity": "HIGH",
            "confidence": 0.8,
            "description": "East-west scanning",
            "recommendedActions": ["Segment host"]
        }]})
        fallback = HeuristicThreatDetector(rng=rng)
        detector = ModelBackedThreatDetector(client, fallback)

        detections = asyncio.run(detector.analyze(make_session()))

        assert len(detections) == 1
        assert detections[0].threat_type == ThreatType.LATERAL_MOVEMENT
        assert detections[0].severity == ThreatSeverity.HIGH
        assert fallback.get_threat_history("sess-001") == detections

    def test_empty_threat_list(self, rng):
        detector = ModelBackedThreatDetector(model_client({"threats": []}), HeuristicThreatDetector(rng=rng))

        assert asyncio.run(detector.analyze(make_session())) == []

    def test_missing_threat_list_falls_back(self):
        fallback = MagicMock(spec=HeuristicThreatDetector)
        fallback.analyze = AsyncMock(return_value=[])
        detector = ModelBackedThreatDetector(model_client({"result": "ok"}), fallback)
        session = make_session()

        asyncio.run(detector.analyze(session))

        fallback.analyze.assert_awaited_once_with(session)

class TestModelBackedPolicyRecommender:
    def test_builds_recommendations(self):
        client = model_client({"recommendations": [{
            "type": "NEW_POLICY",
            "priority": "URGENT",
            "confidence": 0.9,
            "policyName": "Quarantine Unmanaged Devices",
            "conditions": {"posture": "NON_COMPLIANT"},
            "actions": "{\"action\": \"quarantine\"}"
        }]})
        fallback = HeuristicPolicyRecommender()
        recommender = ModelBackedPolicyRecommender(client, fallback)
        risk = asyncio.run(HeuristicRiskScorer().assess(make_session()))

        recommendations = asyncio.run(recommender.recommend_for_risk(risk))

        assert len(recommendations) == 1
        rec = recommendations[0]
        assert rec.priority == RecommendationPriority.URGENT
        assert rec.triggered_by == "sess-001"
        assert "quarantine" in rec.recommended_actions
        assert "NON_COMPLIANT" in rec.recommended_conditions
        assert fallback.get_recommendation(rec.recommendation_id) is rec

    def test_emergency_falls_back(self):
        client = model_client(error=ModelResponseError("timeout"))
        recommender = ModelBackedPolicyRecommender(client, HeuristicPolicyRecommender())

        recommendations = asyncio.run(recommender.recommend_emergency({"threatType": "APT"}))

        assert recommendations
        assert all(r.model_version == HeuristicPolicyRecommender.model_version for r in recommendations)

class TestBuildStrategies:
    def test_heuristic_by_default(self):
        risk, threats, recommender = build_strategies(Settings())

        assert isinstance(risk, HeuristicRiskScorer)
        assert isinstance(threats, HeuristicThreatDetector)
        assert isinstance(recommender, HeuristicPolicyRecommender)

    def test_model_without_key_stays_heuristic(self):
        risk, _, _ = build_strategies(Settings(analysis_strategy="model", model_api_key=None))

        assert isinstance(risk, HeuristicRiskScorer)

    def test_model_with_key_wraps_given_instances(self):
        scorer = HeuristicRiskScorer()
        risk, threats, recommender = build_strategies(
            Settings(analysis_strategy="model", model_api_key="sk-test"),
            risk_scorer=scorer
        )

        assert isinstance(risk, ModelBackedRiskScorer)
        assert risk.fallback is scorer
        assert isinstance(threats, ModelBackedThreatDetector)
        assert isinstance(recommender, ModelBackedPolicyRecommender)

import asyncio
import pytest
from unittest.mock import MagicMock

from nac_policy.models.analysis import FactorType, RiskLevel
from nac_policy.pipeline.risk import HeuristicRiskScorer, base_risk_score

from tests.conftest import make_risky_session, make_session

class TestBaseRiskScore:
    def test_clean_session(self):
        assert base_risk_score(make_session()) == 5.0

    def test_every_penalty(self):
        assert base_risk_score(make_risky_session()) == pytest.approx(9.5)

class TestHeuristicRiskScorer:
    def test_risky_session_scores_high(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        for i in range(200):
            assessment = asyncio.run(scorer.assess(make_risky_session(session_id=f"s-{i}")))
            assert 8.5 <= assessment.overall_risk_score <= 10.0
            assert assessment.risk_level in (RiskLevel.VERY_HIGH, RiskLevel.CRITICAL)

    def test_worst_case_noise_clamps_at_ten(self):
        scorer = HeuristicRiskScorer()
        scorer.rng = MagicMock()
        scorer.rng.uniform.return_value = 1.0
        scorer.rng.random.return_value = 0.5
        assessment = asyncio.run(scorer.assess(make_risky_session()))
        assert assessment.overall_risk_score == 10.0
        assert assessment.risk_level == RiskLevel.CRITICAL

    def test_score_and_confidence_bounds(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        for i in range(100):
            assessment = asyncio.run(scorer.assess(make_session(session_id=f"s-{i}")))
            assert 4.0 <= assessment.overall_risk_score <= 6.0
            assert 0.85 <= assessment.confidence <= 1.0

    def test_three_weighted_factors(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        assessment = asyncio.run(scorer.assess(make_session()))
        factors = assessment.risk_factors
        assert [f.weight for f in factors] == [0.30, 0.25, 0.45]
        assert [f.factor_type for f in factors] == [
            FactorType.DEVICE, FactorType.AUTHENTICATION, FactorType.BEHAVIORAL
        ]
        assert 1.0 <= factors[2].score <= 9.0

    def test_assessment_metadata(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        assessment = asyncio.run(scorer.assess(make_session()))
        assert assessment.assessment_id.startswith("risk-")
        assert assessment.model_version == "RiskModel-v2.1.0"
        assert set(assessment.raw_features) == {
            "sessionDuration", "deviceType", "authMethod", "location", "timeOfDay"
        }

    def test_critical_recommendations(self):
        scorer = HeuristicRiskScorer()
        scorer.rng = MagicMock()
        scorer.rng.uniform.return_value = 1.0
        scorer.rng.random.return_value = 0.0
        assessment = asyncio.run(scorer.assess(make_risky_session()))
        assert "Immediate quarantine recommended" in assessment.recommendations

    def test_history_is_capped(self, rng):
        scorer = HeuristicRiskScorer(rng=rng, history_limit=20)
        for _ in range(25):
            asyncio.run(scorer.assess(make_session()))
        assert len(scorer.get_risk_history("sess-001")) == 20

    def test_high_risk_sessions(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        asyncio.run(scorer.assess(make_session(session_id="calm")))
        asyncio.run(scorer.assess(make_risky_session(session_id="risky")))
        high = scorer.get_high_risk_sessions(7.0)
        assert [a.session_id for a in high] == ["risky"]

    def test_user_risk_without_sessions(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        assessment = asyncio.run(scorer.assess_user_risk("nobody", []))
        assert assessment.overall_risk_score == 5.0
        assert assessment.risk_level == RiskLevel.MEDIUM
        assert assessment.confidence == 0.5
        assert assessment.assessment_id.startswith("user-risk-")

    def test_device_risk_averages_sessions(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        sessions = [make_session(session_id=f"s-{i}") for i in range(4)]
        assessment = asyncio.run(scorer.assess_device_risk("00:1b:44:11:3a:b7", sessions))
        assert assessment.confidence == 0.82
        assert assessment.mac_address == "00:1b:44:11:3a:b7"
        assert 4.0 <= assessment.overall_risk_score <= 6.0

    def test_custom_features(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        assessment = asyncio.run(scorer.assess_features({"anomalyScore": 1.5, "threatIndicators": ["x"]}))
        assert assessment.overall_risk_score == pytest.approx(8.5)
        assert assessment.confidence == 0.75
        assert assessment.assessment_id.startswith("custom-risk-")

    def test_custom_features_clamped(self, rng):
        scorer = HeuristicRiskScorer(rng=rng)
        assessment = asyncio.run(scorer.assess_features({"anomalyScore": 50}))
        assert assessment.overall_risk_score == 10.0

    def test_default_assessment(self, rng):
        assessment = HeuristicRiskScorer(rng=rng).default_assessment("missing")
        assert assessment.overall_risk_score == 5.0
        assert assessment.reason == "Default assessment - session not found"

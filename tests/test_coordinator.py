import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from nac_policy.models.analysis import (
    RecommendationPriority,
    RecommendationType,
    RiskAssessment,
    RiskLevel,
    ThreatSeverity,
)
from nac_policy.models.policy import PolicySource, PolicyStatus
from nac_policy.pipeline.coordinator import (
    analyze_session,
    AnalysisCoordinator,
    build_policy_draft,
    select_governing_recommendation,
    should_create_policy,
)
from nac_policy.pipeline.recommender import HeuristicPolicyRecommender
from nac_policy.pipeline.risk import HeuristicRiskScorer
from nac_policy.pipeline.threats import HeuristicThreatDetector
from nac_policy.services.orchestrator import PolicyOrchestrator

from tests.conftest import make_risky_session, make_session

def assessment(score):
    return RiskAssessment(
        assessment_id="risk-test",
        session_id="sess-001",
        overall_risk_score=score,
        risk_level=RiskLevel.from_score(score),
        confidence=0.9,
        model_version="test"
    )

def recommendation(template, **overrides):
    return HeuristicPolicyRecommender().build(template, "test", **overrides)

def make_coordinator(rng, **kwargs):
    return AnalysisCoordinator(
        HeuristicRiskScorer(rng=rng),
        HeuristicThreatDetector(rng=rng),
        HeuristicPolicyRecommender(),
        **kwargs
    )

class TestShouldCreatePolicy:
    def test_risk_above_threshold(self):
        assert should_create_policy(assessment(7.01), None, None)

    def test_risk_at_threshold_alone_is_not_enough(self):
        assert not should_create_policy(assessment(7.0), None, None)
        assert not should_create_policy(assessment(7.0), ThreatSeverity.MEDIUM, recommendation("session"))

    @pytest.mark.parametrize("severity", [ThreatSeverity.HIGH, ThreatSeverity.CRITICAL])
    def test_severe_threat(self, severity):
        assert should_create_policy(assessment(2.0), severity, None)

    def test_action_keywords(self):
        block = recommendation("session", actions={"action": "BLOCK", "scope": "port"})
        assert should_create_policy(assessment(2.0), None, block)
        assert should_create_policy(
            assessment(2.0), None, recommendation("emergency_quarantine", risk_reduction=1.0)
        )

class TestGoverningRecommendation:
    def test_highest_priority_wins(self):
        recs = [recommendation("session"), recommendation("high_threat"), recommendation("optimization")]
        assert select_governing_recommendation(recs).priority == RecommendationPriority.URGENT

    def test_confidence_breaks_ties(self):
        recs = [recommendation("emergency"), recommendation("critical_threat")]
        assert select_governing_recommendation(recs).confidence == 0.98

    def test_empty(self):
        assert select_governing_recommendation([]) is None

class TestBuildPolicyDraft:
    def test_draft_fields(self):
        session = make_session(device_type="Mobile Phone")
        rec = recommendation("high_threat")

        draft = build_policy_draft(session, assessment(8.123), ThreatSeverity.HIGH, rec)

        assert draft.name.startswith("AI-Policy-Mobile-Phone-")
        assert draft.description.startswith(
            "AI-generated policy for Mobile Phone device with risk score 8.12 and threat severity HIGH."
        )
        assert draft.description.endswith(f"Recommendation: {rec.recommended_actions}")
        assert draft.source == PolicySource.AUTO_GENERATED
        assert draft.risk_score == 8.123

    def test_missing_threat_severity(self):
        draft = build_policy_draft(make_session(), assessment(8.0), None, None)
        assert "threat severity NONE" in draft.description

class TestAnalysisCoordinator:
    def test_end_to_end_risky_session(self, rng):
        orchestrator = PolicyOrchestrator()
        coordinator = make_coordinator(rng, orchestrator=orchestrator)
        session = make_risky_session(session_state="ACTIVE")

        result = asyncio.run(coordinator.process(session))

        assert result.failed_stage is None
        assert result.risk_assessment.overall_risk_score >= 8.5
        assert result.risk_assessment.risk_level in (RiskLevel.VERY_HIGH, RiskLevel.CRITICAL)
        governing = result.governing_recommendation
        assert governing.recommendation_type in (
            RecommendationType.NEW_POLICY, RecommendationType.EMERGENCY_RESPONSE
        )
        assert governing.priority in (RecommendationPriority.CRITICAL, RecommendationPriority.URGENT)
        assert result.policy_created
        policy = orchestrator.get_by_id(result.policy_id)
        assert policy.status == PolicyStatus.DRAFT
        assert policy.source == PolicySource.AUTO_GENERATED

    def test_session_annotated(self, rng):
        coordinator = make_coordinator(rng)
        session = make_risky_session()

        result = asyncio.run(coordinator.process(session))

        assert session.risk_score == result.risk_assessment.overall_risk_score
        assert session.ai_recommendation == result.governing_recommendation.recommended_actions
        if result.threat_severity is not None:
            assert session.threat_level == result.threat_severity.value
        assert coordinator.get_result(session.session_id) is result

    def test_all_detections_kept(self, rng):
        coordinator = make_coordinator(rng)
        coordinator.threat_detector.rng = MagicMock()
        coordinator.threat_detector.rng.random.side_effect = [0.0, 0.5, 0.0]
        coordinator.threat_detector.rng.integers.return_value = 0

        result = asyncio.run(coordinator.process(make_session()))

        assert len(result.threat_detections) == 2
        assert result.threat_severity == max(d.severity for d in result.threat_detections)
        # session + risk + one per detection
        assert len(result.recommendations) == 1 + 1 + 2

    def test_calm_session_does_not_materialize(self, rng):
        orchestrator = PolicyOrchestrator()
        coordinator = make_coordinator(rng, orchestrator=orchestrator)
        coordinator.configure_stages(threat_detection_enabled=False)

        result = asyncio.run(coordinator.process(make_session()))

        assert not result.policy_created
        assert orchestrator.get_all() == []

    def test_stage_failure_aborts_remaining_stages(self, rng):
        coordinator = make_coordinator(rng)
        coordinator.threat_detector = MagicMock()
        coordinator.threat_detector.analyze = AsyncMock(side_effect=RuntimeError("detector offline"))
        coordinator.recommender = MagicMock()

        result = asyncio.run(coordinator.process(make_session()))

        assert result.failed_stage == "threat"
        assert "detector offline" in result.error
        assert result.risk_assessment is not None
        coordinator.recommender.recommend_for_session.assert_not_called()
        assert coordinator.failed_count == 1

    def test_stage_timeout(self, rng):
        async def stalled(session):
            await asyncio.sleep(5)

        coordinator = make_coordinator(rng, stage_timeout=0.01)
        coordinator.risk_scorer = MagicMock()
        coordinator.risk_scorer.assess = stalled

        result = asyncio.run(coordinator.process(make_session()))

        assert result.failed_stage == "risk"

    def test_drop_oldest(self, rng):
        coordinator = make_coordinator(rng, queue_size=2)
        for i in range(3):
            assert coordinator.submit(make_session(session_id=f"s-{i}"))
        assert coordinator.dropped_count == 1
        assert coordinator.queue.get_nowait().session_id == "s-1"

    def test_drop_newest(self, rng):
        coordinator = make_coordinator(rng, queue_size=2, queue_policy="drop_newest")
        results = [coordinator.submit(make_session(session_id=f"s-{i}")) for i in range(3)]
        assert results == [True, True, False]
        assert coordinator.queue.get_nowait().session_id == "s-0"

    def test_unknown_queue_policy(self, rng):
        with pytest.raises(ValueError):
            make_coordinator(rng, queue_policy="drop_all")

    def test_workers_drain_queue(self, rng):
        async def run():
            coordinator = make_coordinator(rng, worker_count=2)
            await coordinator.start()
            for i in range(5):
                coordinator.submit(make_session(session_id=f"s-{i}"))
            await coordinator.queue.join()
            await coordinator.stop()
            return coordinator

        coordinator = asyncio.run(run())

        stats = coordinator.get_stats()
        assert stats["processed_count"] == 5
        assert stats["submitted_count"] == 5
        assert stats["queue_size"] == 0
        assert not stats["is_running"]

    def test_analyze_session_with_default_strategies(self):
        result = asyncio.run(analyze_session(make_risky_session()))

        assert result.session_id == "sess-risky"
        assert result.failed_stage is None
        assert result.risk_assessment.overall_risk_score >= 8.5
        assert result.recommendations

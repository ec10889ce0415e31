"""
Analysis Pipeline Coordinator
Runs risk assessment, threat detection and policy recommendation for each session
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional

from nac_policy.core.cache import ResultCache
from nac_policy.models.analysis import (
    AnalysisResult,
    PolicyRecommendation,
    RiskAssessment,
    ThreatDetection,
    ThreatSeverity,
)
from nac_policy.models.ordinal import highest
from nac_policy.models.policy import PolicyDraft, PolicySource, PolicyType
from nac_policy.models.session import Session
from nac_policy.pipeline.recommender import PolicyRecommender
from nac_policy.pipeline.risk import RiskScorer
from nac_policy.pipeline.threats import ThreatDetector
from nac_policy.utils.helpers import epoch_millis, utc_now
from nac_policy.utils.logger import log_system_event

logger = logging.getLogger(__name__)

POLICY_RISK_THRESHOLD = 7.0
POLICY_THREAT_SEVERITIES = {ThreatSeverity.HIGH, ThreatSeverity.CRITICAL}
POLICY_ACTION_KEYWORDS = ("quarantine", "block")

QUEUE_POLICIES = ("drop_oldest", "drop_newest")

class StageError(Exception):
    def __init__(self, stage: str, error: Exception):
        self.stage = stage
        self.error = error
        super().__init__(f"{stage} stage failed: {error}")

def should_create_policy(
    risk: RiskAssessment,
    threat_severity: Optional[ThreatSeverity],
    recommendation: Optional[PolicyRecommendation]
) -> bool:
    if risk.overall_risk_score > POLICY_RISK_THRESHOLD:
        return True
    if threat_severity in POLICY_THREAT_SEVERITIES:
        return True
    if recommendation is not None:
        actions = recommendation.recommended_actions.lower()
        return any(keyword in actions for keyword in POLICY_ACTION_KEYWORDS)
    return False

def select_governing_recommendation(
    recommendations: List[PolicyRecommendation]
) -> Optional[PolicyRecommendation]:
    """Highest priority wins; confidence breaks ties"""
    if not recommendations:
        return None
    return max(recommendations, key=lambda r: (r.priority.level, r.confidence))

def build_policy_draft(
    session: Session,
    risk: RiskAssessment,
    threat_severity: Optional[ThreatSeverity],
    recommendation: Optional[PolicyRecommendation]
) -> PolicyDraft:
    device_type = session.device_type or "Unknown"
    actions = recommendation.recommended_actions if recommendation else "{}"
    severity = threat_severity.value if threat_severity else "NONE"

    return PolicyDraft(
        name=f"AI-Policy-{device_type.replace(' ', '-')}-{epoch_millis()}",
        description=(
            f"AI-generated policy for {device_type} device with risk score "
            f"{risk.overall_risk_score:.2f} and threat severity {severity}. "
            f"Recommendation: {actions}"
        ),
        policy_type=recommendation.recommended_policy_type if recommendation else PolicyType.THREAT_RESPONSE,
        priority=recommendation.recommended_priority if recommendation else 1,
        conditions=recommendation.recommended_conditions if recommendation else "{}",
        actions=actions,
        risk_score=risk.overall_risk_score,
        ai_confidence=recommendation.confidence if recommendation else risk.confidence,
        source=PolicySource.AUTO_GENERATED,
        created_by="AI-Pipeline"
    )

class AnalysisCoordinator:
    def __init__(
        self,
        risk_scorer: RiskScorer,
        threat_detector: ThreatDetector,
        recommender: PolicyRecommender,
        orchestrator=None,
        results: Optional[ResultCache] = None,
        queue_size: int = 1000,
        worker_count: int = 4,
        queue_policy: str = "drop_oldest",
        stage_timeout: Optional[float] = 30.0
    ):
        if queue_policy not in QUEUE_POLICIES:
            raise ValueError(f"Unknown queue policy: {queue_policy}")

        self.risk_scorer = risk_scorer
        self.threat_detector = threat_detector
        self.recommender = recommender
        self.orchestrator = orchestrator
        self.results = results if results is not None else ResultCache("analysis_results")

        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.worker_count = worker_count
        self.queue_policy = queue_policy
        self.stage_timeout = stage_timeout

        self.threat_detection_enabled = True
        self.recommendations_enabled = True

        self.is_running = False
        self.workers: List[asyncio.Task] = []

        self.submitted_count = 0
        self.processed_count = 0
        self.failed_count = 0
        self.dropped_count = 0
        self.materialized_count = 0

    async def start(self):
        if self.is_running:
            return
        self.is_running = True
        self.workers = [
            asyncio.create_task(self._worker(i)) for i in range(self.worker_count)
        ]
        logger.info(f"Analysis coordinator started with {self.worker_count} workers")

    async def stop(self):
        self.is_running = False
        for task in self.workers:
            task.cancel()
        await asyncio.gather(*self.workers, return_exceptions=True)
        self.workers = []
        logger.info("Analysis coordinator stopped")

    def configure_stages(self, threat_detection_enabled: bool = True, recommendations_enabled: bool = True):
        self.threat_detection_enabled = threat_detection_enabled
        self.recommendations_enabled = recommendations_enabled

    def submit(self, session: Session) -> bool:
        """Queue a session for analysis; returns False when it was dropped"""
        self.submitted_count += 1

        if self.queue.full():
            if self.queue_policy == "drop_newest":
                self.dropped_count += 1
                logger.warning(f"Pipeline queue full, dropping session {session.session_id}")
                return False

            dropped = self.queue.get_nowait()
            self.queue.task_done()
            self.dropped_count += 1
            logger.warning(f"Pipeline queue full, dropping oldest session {dropped.session_id}")

        self.queue.put_nowait(session)
        return True

    def submit_many(self, sessions: List[Session]) -> int:
        return sum(1 for session in sessions if self.submit(session))

    async def _worker(self, worker_id: int):
        while self.is_running:
            try:
                session = await self.queue.get()
            except asyncio.CancelledError:
                break

            try:
                await self.process(session)
            except asyncio.CancelledError:
                self.queue.task_done()
                break
            except Exception as e:
                logger.error(f"Pipeline worker {worker_id} error for session {session.session_id}: {e}")
            self.queue.task_done()

    async def _run_stage(self, stage: str, session: Session, coro):
        try:
            if self.stage_timeout:
                return await asyncio.wait_for(coro, timeout=self.stage_timeout)
            return await coro
        except asyncio.TimeoutError:
            raise StageError(stage, TimeoutError(f"timed out after {self.stage_timeout}s"))
        except Exception as e:
            raise StageError(stage, e)

    async def _recommend(
        self,
        session: Session,
        risk: RiskAssessment,
        detections: List[ThreatDetection]
    ) -> List[PolicyRecommendation]:
        recommendations = list(await self.recommender.recommend_for_session(session.session_id))
        recommendations.extend(await self.recommender.recommend_for_risk(risk))
        for detection in detections:
            recommendations.extend(await self.recommender.recommend_for_threat(detection))
        return recommendations

    async def process(self, session: Session) -> AnalysisResult:
        """Run the full chain for one session; stage failures abort the remaining stages"""
        result = AnalysisResult(session_id=session.session_id)

        try:
            risk = await self._run_stage("risk", session, self.risk_scorer.assess(session))
            result.risk_assessment = risk
            logger.debug(f"Risk assessment completed for {session.session_id}: {risk.overall_risk_score:.2f}")

            detections: List[ThreatDetection] = []
            if self.threat_detection_enabled:
                detections = await self._run_stage("threat", session, self.threat_detector.analyze(session))
            result.threat_detections = detections
            result.threat_severity = highest(d.severity for d in detections)

            recommendations: List[PolicyRecommendation] = []
            if self.recommendations_enabled:
                recommendations = await self._run_stage(
                    "recommendation", session, self._recommend(session, risk, detections)
                )
            result.recommendations = recommendations
            result.governing_recommendation = select_governing_recommendation(recommendations)

            self._annotate(session, result)

            if should_create_policy(risk, result.threat_severity, result.governing_recommendation):
                await self._run_stage("materialization", session, self._materialize(session, result))

            self.processed_count += 1

        except StageError as e:
            self.failed_count += 1
            result.failed_stage = e.stage
            result.error = str(e.error)
            logger.error(f"Pipeline {e.stage} stage failed for session {session.session_id}: {e.error}")

        result.completed_at = utc_now()
        self.results.set(session.session_id, result)
        return result

    def _annotate(self, session: Session, result: AnalysisResult):
        session.risk_score = result.risk_assessment.overall_risk_score
        session.threat_level = result.threat_severity.value if result.threat_severity else None
        if result.governing_recommendation is not None:
            session.ai_recommendation = result.governing_recommendation.action_summary
        session.last_update_time = utc_now()

    async def _materialize(self, session: Session, result: AnalysisResult):
        draft = build_policy_draft(
            session,
            result.risk_assessment,
            result.threat_severity,
            result.governing_recommendation
        )
        if self.orchestrator is None:
            result.policy_created = True
            logger.info(f"Policy draft built for {session.session_id} without orchestrator: {draft.name}")
            return

        policy = self.orchestrator.create(draft)
        result.policy_created = True
        result.policy_id = policy.policy_id
        self.materialized_count += 1
        log_system_event(
            logger,
            "policy_materialized",
            f"AI-recommended policy {draft.name} created for session {session.session_id}",
            extra_data={"policy_id": policy.policy_id, "risk_score": draft.risk_score}
        )

    def get_result(self, session_id: str) -> Optional[AnalysisResult]:
        return self.results.get(session_id)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "workers": len(self.workers),
            "queue_size": self.queue.qsize(),
            "queue_capacity": self.queue.maxsize,
            "queue_policy": self.queue_policy,
            "submitted_count": self.submitted_count,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "dropped_count": self.dropped_count,
            "materialized_count": self.materialized_count,
            "cached_results": len(self.results),
            "threat_detection_enabled": self.threat_detection_enabled,
            "recommendations_enabled": self.recommendations_enabled
        }

async def analyze_session(session: Session) -> AnalysisResult:
    from nac_policy.pipeline.recommender import HeuristicPolicyRecommender
    from nac_policy.pipeline.risk import HeuristicRiskScorer
    from nac_policy.pipeline.threats import HeuristicThreatDetector

    coordinator = AnalysisCoordinator(
        HeuristicRiskScorer(),
        HeuristicThreatDetector(),
        HeuristicPolicyRecommender()
    )
    return await coordinator.process(session)

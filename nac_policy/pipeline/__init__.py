"""
NAC Policy Intelligence - Pipeline Module
Session analysis: risk assessment, threat detection and policy recommendation
"""

from nac_policy.pipeline.risk import RiskScorer, HeuristicRiskScorer
from nac_policy.pipeline.threats import ThreatDetector, HeuristicThreatDetector
from nac_policy.pipeline.recommender import PolicyRecommender, HeuristicPolicyRecommender
from nac_policy.pipeline.model_backed import (
    ModelClient,
    ModelBackedRiskScorer,
    ModelBackedThreatDetector,
    ModelBackedPolicyRecommender,
    build_strategies
)
from nac_policy.pipeline.coordinator import (
    AnalysisCoordinator,
    should_create_policy,
    build_policy_draft,
    select_governing_recommendation,
    analyze_session
)

__all__ = [
    "RiskScorer",
    "HeuristicRiskScorer",
    "ThreatDetector",
    "HeuristicThreatDetector",
    "PolicyRecommender",
    "HeuristicPolicyRecommender",
    "ModelClient",
    "ModelBackedRiskScorer",
    "ModelBackedThreatDetector",
    "ModelBackedPolicyRecommender",
    "build_strategies",
    "AnalysisCoordinator",
    "should_create_policy",
    "build_policy_draft",
    "select_governing_recommendation",
    "analyze_session"
]

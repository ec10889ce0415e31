"""
AI Analysis API Endpoints
Risk assessment, threat detection and policy recommendation
"""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status
from typing import Any, Dict, List, Optional

from nac_policy.api.dependencies import (
    get_coordinator,
    get_orchestrator,
    get_recommender,
    get_risk_scorer,
    get_session_store,
    get_threat_detector,
    not_found,
)
from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.analysis import (
    AnalysisResult,
    PolicyRecommendation,
    RiskAssessment,
    ThreatDetection,
    ThreatSeverity,
)
from nac_policy.models.policy import Policy
from nac_policy.utils.helpers import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

def _session_or_404(session_store, session_id: str):
    try:
        return session_store.get(session_id)
    except NotFoundError as e:
        raise not_found(e)

# Risk assessment

@router.get("/risk/session/{session_id}", response_model=RiskAssessment)
async def assess_session_risk(
    session_id: str,
    session_store=Depends(get_session_store),
    risk_scorer=Depends(get_risk_scorer)
):
    logger.info(f"Assessing risk for session: {session_id}")
    return await risk_scorer.assess(_session_or_404(session_store, session_id))

@router.get("/risk/user/{user_name}", response_model=RiskAssessment)
async def assess_user_risk(
    user_name: str,
    session_store=Depends(get_session_store),
    risk_scorer=Depends(get_risk_scorer)
):
    return await risk_scorer.assess_user_risk(user_name, session_store.get_by_user(user_name))

@router.get("/risk/device/{mac_address}", response_model=RiskAssessment)
async def assess_device_risk(
    mac_address: str,
    session_store=Depends(get_session_store),
    risk_scorer=Depends(get_risk_scorer)
):
    return await risk_scorer.assess_device_risk(mac_address, session_store.get_by_mac(mac_address))

@router.post("/risk/assess", response_model=RiskAssessment)
async def assess_custom_risk(features: Dict[str, Any], risk_scorer=Depends(get_risk_scorer)):
    logger.info(f"Assessing custom risk with features: {list(features.keys())}")
    return await risk_scorer.assess_features(features)

@router.get("/risk/high-risk", response_model=List[RiskAssessment])
async def get_high_risk_sessions(threshold: float = 7.0, risk_scorer=Depends(get_risk_scorer)):
    return risk_scorer.get_high_risk_sessions(threshold)

@router.get("/risk/history/{session_id}", response_model=List[RiskAssessment])
async def get_risk_history(session_id: str, risk_scorer=Depends(get_risk_scorer)):
    return risk_scorer.get_risk_history(session_id)

@router.get("/risk/model-info")
async def get_risk_model_info(risk_scorer=Depends(get_risk_scorer)):
    return risk_scorer.get_model_info()

# Threat detection

@router.get("/threats/session/{session_id}", response_model=List[ThreatDetection])
async def analyze_session_threats(
    session_id: str,
    session_store=Depends(get_session_store),
    threat_detector=Depends(get_threat_detector)
):
    return await threat_detector.analyze(_session_or_404(session_store, session_id))

@router.get("/threats/user/{user_name}", response_model=List[ThreatDetection])
async def analyze_user_threats(
    user_name: str,
    session_store=Depends(get_session_store),
    threat_detector=Depends(get_threat_detector)
):
    return await threat_detector.analyze_user_behavior(user_name, session_store.get_by_user(user_name))

@router.get("/threats/device/{mac_address}", response_model=List[ThreatDetection])
async def analyze_device_threats(
    mac_address: str,
    session_store=Depends(get_session_store),
    threat_detector=Depends(get_threat_detector)
):
    return await threat_detector.analyze_device_behavior(mac_address, session_store.get_by_mac(mac_address))

@router.post("/threats/network", response_model=List[ThreatDetection])
async def analyze_network_threats(traffic_data: Dict[str, Any], threat_detector=Depends(get_threat_detector)):
    return await threat_detector.analyze_network_traffic(traffic_data)

@router.get("/threats/active", response_model=List[ThreatDetection])
async def get_active_threats(threat_detector=Depends(get_threat_detector)):
    return threat_detector.get_active_threats()

@router.get("/threats/severity/{severity}", response_model=List[ThreatDetection])
async def get_threats_by_severity(severity: ThreatSeverity, threat_detector=Depends(get_threat_detector)):
    return threat_detector.get_threats_by_severity(severity)

@router.get("/threats/history/{session_id}", response_model=List[ThreatDetection])
async def get_threat_history(session_id: str, threat_detector=Depends(get_threat_detector)):
    return threat_detector.get_threat_history(session_id)

@router.post("/threats/{detection_id}/resolve", response_model=ThreatDetection)
async def resolve_threat(
    detection_id: str,
    resolution: Dict[str, str] = Body(default_factory=dict),
    threat_detector=Depends(get_threat_detector)
):
    resolved_by = resolution.get("resolved_by") or resolution.get("resolvedBy") or "admin"
    try:
        return threat_detector.resolve_threat(detection_id, resolved_by)
    except NotFoundError as e:
        raise not_found(e)

@router.get("/threats/statistics")
async def get_threat_statistics(threat_detector=Depends(get_threat_detector)):
    return threat_detector.get_threat_statistics()

# Policy recommendations

@router.get("/recommendations/session/{session_id}", response_model=List[PolicyRecommendation])
async def get_session_recommendations(session_id: str, recommender=Depends(get_recommender)):
    return await recommender.recommend_for_session(session_id)

@router.get("/recommendations/user/{user_name}", response_model=List[PolicyRecommendation])
async def get_user_recommendations(user_name: str, recommender=Depends(get_recommender)):
    return await recommender.recommend_for_user(user_name)

@router.post("/recommendations/optimization", response_model=List[PolicyRecommendation])
async def get_optimization_recommendations(
    policies: Optional[List[Policy]] = Body(default=None),
    orchestrator=Depends(get_orchestrator),
    recommender=Depends(get_recommender)
):
    if policies is None:
        policies = orchestrator.get_all()
    return await recommender.recommend_optimizations(policies)

@router.post("/recommendations/emergency", response_model=List[PolicyRecommendation])
async def get_emergency_recommendations(context: Dict[str, Any], recommender=Depends(get_recommender)):
    logger.info(f"Getting emergency recommendations for context: {list(context.keys())}")
    return await recommender.recommend_emergency(context)

@router.post("/recommendations/{recommendation_id}/implement", response_model=Policy)
async def implement_recommendation(
    recommendation_id: str,
    recommender=Depends(get_recommender),
    orchestrator=Depends(get_orchestrator)
):
    try:
        draft = recommender.implement(recommendation_id)
    except NotFoundError as e:
        raise not_found(e)
    return orchestrator.create(draft)

@router.post("/recommendations/{recommendation_id}/reject")
async def reject_recommendation(
    recommendation_id: str,
    feedback: Dict[str, str] = Body(default_factory=dict),
    recommender=Depends(get_recommender)
):
    recommender.reject(recommendation_id, feedback.get("feedback"))
    return {"status": "success", "recommendation_id": recommendation_id}

@router.get("/recommendations/history/{triggered_by}", response_model=List[PolicyRecommendation])
async def get_recommendation_history(triggered_by: str, recommender=Depends(get_recommender)):
    return recommender.get_recommendation_history(triggered_by)

@router.post("/recommendations/{recommendation_id}/evaluate")
async def evaluate_recommendation(
    recommendation_id: str,
    recommendation: Optional[PolicyRecommendation] = Body(default=None),
    recommender=Depends(get_recommender)
):
    if recommendation is None:
        try:
            recommendation = recommender.get_recommendation(recommendation_id)
        except NotFoundError as e:
            raise not_found(e)
    return {"effectiveness": await recommender.evaluate(recommendation)}

# Combined analysis

@router.post("/analyze/comprehensive/{session_id}", response_model=AnalysisResult)
async def comprehensive_analysis(
    session_id: str,
    session_store=Depends(get_session_store),
    coordinator=Depends(get_coordinator)
):
    """Run the full analysis chain inline for a stored session"""
    session = _session_or_404(session_store, session_id)
    result = await coordinator.process(session)
    if result.failed_stage is not None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Analysis failed at {result.failed_stage}: {result.error}"
        )
    return result

@router.get("/health")
async def ai_health():
    return {
        "status": "UP",
        "service": "AI Policy Management",
        "timestamp": utc_now().isoformat()
    }

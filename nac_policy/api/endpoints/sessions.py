"""
Session API Endpoints
Session ingestion and pipeline monitoring
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional

from nac_policy.api.dependencies import get_coordinator, get_session_store, not_found
from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.analysis import AnalysisResult
from nac_policy.models.session import Session, SessionCreate

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/", response_model=Session, status_code=status.HTTP_201_CREATED)
async def ingest_session(session_data: SessionCreate, session_store=Depends(get_session_store)):
    logger.info(f"Received session {session_data.session_id} for user {session_data.user_name}")
    return session_store.receive(session_data.to_session())

@router.get("/", response_model=List[Session])
async def list_sessions(
    user_name: Optional[str] = None,
    active_only: bool = False,
    session_store=Depends(get_session_store)
):
    if user_name:
        return session_store.get_by_user(user_name)
    if active_only:
        return session_store.get_all_active()
    return list(session_store.sessions.values())

@router.get("/pipeline/stats")
async def get_pipeline_stats(coordinator=Depends(get_coordinator)):
    return coordinator.get_stats()

@router.get("/health")
async def session_store_health(session_store=Depends(get_session_store)):
    return session_store.health()

@router.delete("/cleanup")
async def cleanup_sessions(max_age_hours: int = 24, session_store=Depends(get_session_store)):
    removed = session_store.cleanup_old_sessions(max_age_hours)
    return {"status": "success", "removed_sessions": removed}

@router.get("/{session_id}", response_model=Session)
async def get_session(session_id: str, session_store=Depends(get_session_store)):
    try:
        return session_store.get(session_id)
    except NotFoundError as e:
        raise not_found(e)

@router.get("/{session_id}/analysis", response_model=AnalysisResult)
async def get_session_analysis(session_id: str, coordinator=Depends(get_coordinator)):
    result = coordinator.get_result(session_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No analysis result for session: {session_id}"
        )
    return result

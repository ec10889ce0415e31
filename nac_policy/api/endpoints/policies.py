"""
Policy API Endpoints
Policy lifecycle management
"""

from fastapi import APIRouter, Depends, status
from typing import List

from nac_policy.api.dependencies import get_orchestrator, not_found
from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.policy import Policy, PolicyDraft, PolicyStatus, PolicyUpdate
from nac_policy.utils.helpers import utc_now

router = APIRouter()

@router.post("/", response_model=Policy, status_code=status.HTTP_201_CREATED)
async def create_policy(draft: PolicyDraft, orchestrator=Depends(get_orchestrator)):
    return orchestrator.create(draft)

@router.get("/", response_model=List[Policy])
async def list_policies(orchestrator=Depends(get_orchestrator)):
    return orchestrator.get_all()

@router.get("/status/{policy_status}", response_model=List[Policy])
async def get_policies_by_status(policy_status: PolicyStatus, orchestrator=Depends(get_orchestrator)):
    return orchestrator.get_by_status(policy_status)

@router.get("/health")
async def policy_health(orchestrator=Depends(get_orchestrator)):
    return {
        "status": "UP",
        "timestamp": utc_now().isoformat(),
        "policies": orchestrator.get_stats()
    }

@router.get("/{policy_id}", response_model=Policy)
async def get_policy(policy_id: str, orchestrator=Depends(get_orchestrator)):
    try:
        return orchestrator.get_by_id(policy_id)
    except NotFoundError as e:
        raise not_found(e)

@router.put("/{policy_id}", response_model=Policy)
async def update_policy(policy_id: str, changes: PolicyUpdate, orchestrator=Depends(get_orchestrator)):
    try:
        return orchestrator.update(policy_id, changes)
    except NotFoundError as e:
        raise not_found(e)

@router.post("/{policy_id}/activate", response_model=Policy)
async def activate_policy(policy_id: str, orchestrator=Depends(get_orchestrator)):
    try:
        return orchestrator.activate(policy_id)
    except NotFoundError as e:
        raise not_found(e)

@router.post("/{policy_id}/deactivate", response_model=Policy)
async def deactivate_policy(policy_id: str, orchestrator=Depends(get_orchestrator)):
    try:
        return orchestrator.deactivate(policy_id)
    except NotFoundError as e:
        raise not_found(e)

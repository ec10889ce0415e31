"""
Policy Orchestrator
In-memory lifecycle management for NAC policies
"""

import logging
from typing import Dict, List

from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.policy import (
    Policy,
    PolicyDraft,
    PolicySource,
    PolicyStatus,
    PolicyUpdate,
)
from nac_policy.utils.helpers import generate_uuid, utc_now

logger = logging.getLogger(__name__)

DEFAULT_UPDATER = "admin"

class PolicyOrchestrator:
    def __init__(self):
        self.policies: Dict[str, Policy] = {}

    def create(self, draft: PolicyDraft) -> Policy:
        policy = Policy(
            policy_id=generate_uuid(),
            name=draft.name,
            description=draft.description,
            policy_type=draft.policy_type,
            status=PolicyStatus.DRAFT,
            priority=draft.priority,
            conditions=draft.conditions,
            actions=draft.actions,
            risk_score=draft.risk_score,
            ai_confidence=draft.ai_confidence,
            source=draft.source or PolicySource.MANUAL,
            created_by=draft.created_by
        )
        self.policies[policy.policy_id] = policy
        logger.info(f"Created policy {policy.name} ({policy.policy_id}) from {policy.source.value}")
        return policy

    def update(self, policy_id: str, changes: PolicyUpdate) -> Policy:
        policy = self.get_by_id(policy_id)

        for field, value in changes.model_dump(exclude_unset=True, exclude={"updated_by"}).items():
            if value is not None:
                setattr(policy, field, value)

        policy.updated_by = changes.updated_by or DEFAULT_UPDATER
        policy.updated_at = utc_now()
        policy.version += 1

        logger.info(f"Updated policy {policy_id} to version {policy.version}")
        return policy

    def _set_status(self, policy_id: str, status: PolicyStatus) -> Policy:
        policy = self.get_by_id(policy_id)
        policy.status = status
        policy.updated_at = utc_now()
        logger.info(f"Policy {policy_id} is now {status.value}")
        return policy

    def activate(self, policy_id: str) -> Policy:
        return self._set_status(policy_id, PolicyStatus.ACTIVE)

    def deactivate(self, policy_id: str) -> Policy:
        return self._set_status(policy_id, PolicyStatus.INACTIVE)

    def get_all(self) -> List[Policy]:
        return list(self.policies.values())

    def get_by_id(self, policy_id: str) -> Policy:
        policy = self.policies.get(policy_id)
        if policy is None:
            raise NotFoundError("Policy", policy_id)
        return policy

    def get_by_status(self, status: PolicyStatus) -> List[Policy]:
        return [p for p in self.policies.values() if p.status == status]

    def get_stats(self) -> Dict[str, int]:
        stats = {"total_policies": len(self.policies)}
        for status in PolicyStatus:
            stats[status.value.lower()] = sum(1 for p in self.policies.values() if p.status == status)
        return stats

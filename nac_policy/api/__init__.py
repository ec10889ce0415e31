"""
NAC Policy Intelligence - API Module
REST endpoints for the simulator, analysis pipeline, sessions and policies
"""

from nac_policy.api.endpoints import (
    simulator_router,
    ai_router,
    sessions_router,
    policies_router
)

__all__ = [
    "simulator_router",
    "ai_router",
    "sessions_router",
    "policies_router"
]

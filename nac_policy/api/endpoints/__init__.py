"""
API Endpoints Package
All REST API route handlers
"""

from nac_policy.api.endpoints.simulator import router as simulator_router
from nac_policy.api.endpoints.ai import router as ai_router
from nac_policy.api.endpoints.sessions import router as sessions_router
from nac_policy.api.endpoints.policies import router as policies_router

__all__ = [
    "simulator_router",
    "ai_router",
    "sessions_router",
    "policies_router"
]

"""
NAC Policy Intelligence - Services Module
Session ingestion and policy lifecycle services
"""

from nac_policy.services.session_store import SessionStore
from nac_policy.services.orchestrator import PolicyOrchestrator

__all__ = [
    "SessionStore",
    "PolicyOrchestrator"
]

"""
NAC Policy Intelligence - Workers Module
Background maintenance tasks
"""

from nac_policy.workers.cleanup_worker import CleanupWorker

__all__ = [
    "CleanupWorker"
]

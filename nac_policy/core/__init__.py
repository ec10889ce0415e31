"""
NAC Policy Intelligence - Core Module
Configuration, caching and error types
"""

from nac_policy.core.config import settings, Settings, SimulatorSettings
from nac_policy.core.cache import ResultCache
from nac_policy.core.exceptions import (
    NACPolicyError,
    NotFoundError,
    ConfigurationError,
    ModelResponseError
)

__all__ = [
    "settings",
    "Settings",
    "SimulatorSettings",
    "ResultCache",
    "NACPolicyError",
    "NotFoundError",
    "ConfigurationError",
    "ModelResponseError"
]

"""
NAC Policy Intelligence - Utilities Module
Logging setup and common helpers
"""

from nac_policy.utils.logger import setup_logging, log_system_event, configure_application_logging
from nac_policy.utils.helpers import (
    generate_uuid,
    short_id,
    clamp,
    utc_now,
    epoch_millis,
    to_json
)

__all__ = [
    "setup_logging",
    "log_system_event",
    "configure_application_logging",
    "generate_uuid",
    "short_id",
    "clamp",
    "utc_now",
    "epoch_millis",
    "to_json"
]

"""
NAC Policy Intelligence - Simulator Module
Synthetic devices, network events and the periodic simulation driver
"""

from nac_policy.simulator.device_pool import (
    DevicePool,
    calculate_risk_score,
    device_to_session
)
from nac_policy.simulator.events import EventGenerator
from nac_policy.simulator.network import NetworkSimulator

__all__ = [
    "DevicePool",
    "calculate_risk_score",
    "device_to_session",
    "EventGenerator",
    "NetworkSimulator"
]

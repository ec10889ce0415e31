import pytest
import numpy as np
from datetime import timedelta

from nac_policy.models.device import Device, DeviceType
from nac_policy.models.session import Session
from nac_policy.utils.helpers import utc_now

def make_session(**overrides) -> Session:
    data = {
        "session_id": "sess-001",
        "user_name": "john.smith",
        "mac_address": "00:1b:44:11:3a:b7",
        "ip_address": "192.168.1.10",
        "device_type": "Laptop",
        "authentication_method": "DOT1X",
        "posture_status": "COMPLIANT",
    }
    data.update(overrides)
    return Session(**data)

def make_risky_session(**overrides) -> Session:
    data = {
        "session_id": "sess-risky",
        "device_type": "unknown",
        "authentication_method": "GUEST",
        "posture_status": "NON_COMPLIANT",
    }
    data.update(overrides)
    return make_session(**data)

def make_device(**overrides) -> Device:
    now = utc_now()
    data = {
        "device_id": "SIM-test0001",
        "device_name": "IT-Laptop-01",
        "mac_address": "00:1b:44:11:3a:b7",
        "ip_address": "192.168.1.10",
        "device_type": DeviceType.LAPTOP,
        "user_name": "john.smith",
        "first_seen": now - timedelta(days=30),
        "last_seen": now,
    }
    data.update(overrides)
    return Device(**data)

@pytest.fixture
def rng():
    return np.random.default_rng(42)

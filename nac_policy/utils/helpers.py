"""
Helper Functions
Common utility functions and helpers
"""

import uuid
import json
from datetime import datetime, timezone
from typing import Any, Optional

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def generate_uuid() -> str:
    return str(uuid.uuid4())

def short_id(prefix: str = "") -> str:
    """Prefix followed by eight hex characters, e.g. ``risk-1a2b3c4d``"""
    return f"{prefix}{uuid.uuid4().hex[:8]}"

def clamp(value: float, lower: float = 0.0, upper: float = 10.0) -> float:
    return max(lower, min(upper, value))

def epoch_millis(timestamp: Optional[datetime] = None) -> int:
    timestamp = timestamp or utc_now()
    return int(timestamp.timestamp() * 1000)

def to_json(data: Any) -> str:
    return json.dumps(data, separators=(", ", ": "))

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional
from pathlib import Path

from nac_policy.core.exceptions import ConfigurationError

SCENARIOS = ["office", "campus", "datacenter", "healthcare", "manufacturing", "retail"]

DEFAULT_SCENARIO_WEIGHTS: Dict[str, Dict[str, float]] = {
    "office": {
        "LAPTOP": 25, "DESKTOP": 15, "MOBILE_PHONE": 20, "TABLET": 15, "SERVER": 10,
        "IOT_PRINTER": 5, "IOT_BADGE_READER": 3, "IOT_SENSOR": 2,
        "VOIP_PHONE": 3, "UNKNOWN": 2,
    },
    "campus": {
        "LAPTOP": 35, "MOBILE_PHONE": 25, "TABLET": 20, "SERVER": 10,
        "IOT_SENSOR": 3, "IOT_CAMERA": 2, "SMART_TV": 3, "UNKNOWN": 2,
    },
    "datacenter": {
        "SERVER": 70, "NETWORK_DEVICE": 10, "LAPTOP": 5, "MOBILE_PHONE": 5,
        "TABLET": 5, "IOT_SENSOR": 3, "UNKNOWN": 2,
    },
    "healthcare": {
        "LAPTOP": 30, "MOBILE_PHONE": 15, "TABLET": 10, "SERVER": 15,
        "MEDICAL_DEVICE": 12, "IOT_SENSOR": 8, "KIOSK": 5, "UNKNOWN": 5,
    },
    "manufacturing": {
        "LAPTOP": 20, "MOBILE_PHONE": 10, "TABLET": 5, "SERVER": 20,
        "MANUFACTURING_EQUIPMENT": 20, "IOT_SENSOR": 15, "IOT_CAMERA": 5, "UNKNOWN": 5,
    },
    "retail": {
        "LAPTOP": 10, "POS_TERMINAL": 15, "MOBILE_PHONE": 20, "TABLET": 15, "SERVER": 10,
        "KIOSK": 10, "IOT_CAMERA": 10, "SMART_TV": 5, "UNKNOWN": 5,
    },
}


class SimulatorSettings(BaseModel):
    interval_seconds: int = 30
    device_count: int = 50
    scenario: str = "office"
    enabled: bool = True

    policy_recommendations_enabled: bool = True
    threat_detection_enabled: bool = True
    risk_score_updates_enabled: bool = True

    security_incident_probability: float = 0.1
    network_event_probability: float = 0.2
    max_events_per_cycle: int = 10
    verbose_logging: bool = False

    scenario_device_weights: Dict[str, Dict[str, float]] = Field(
        default_factory=lambda: {name: dict(table) for name, table in DEFAULT_SCENARIO_WEIGHTS.items()}
    )

    @field_validator("scenario")
    @classmethod
    def normalize_scenario(cls, v):
        return (v or "office").strip().lower()

    def validate_ranges(self):
        if self.interval_seconds < 5:
            raise ConfigurationError("Simulation interval must be at least 5 seconds")
        if self.device_count < 1 or self.device_count > 10000:
            raise ConfigurationError("Device count must be between 1 and 10000")
        if not 0.0 <= self.security_incident_probability <= 1.0:
            raise ConfigurationError("Security incident probability must be between 0.0 and 1.0")
        if not 0.0 <= self.network_event_probability <= 1.0:
            raise ConfigurationError("Network event probability must be between 0.0 and 1.0")
        if self.max_events_per_cycle < 1:
            raise ConfigurationError("Max events per cycle must be at least 1")
        # models.device imports utils, whose package init loads this module
        from nac_policy.models.device import DeviceType

        for scenario, weights in self.scenario_device_weights.items():
            unknown = [name for name in weights if name not in DeviceType.__members__]
            if unknown:
                raise ConfigurationError(f"Scenario '{scenario}' has unknown device types: {unknown}")
            if not weights or sum(w for w in weights.values() if w > 0) <= 0:
                raise ConfigurationError(f"Scenario '{scenario}' has no positive device weights")
            if any(w < 0 for w in weights.values()):
                raise ConfigurationError(f"Scenario '{scenario}' has negative device weights")

    def weights_for(self, scenario: str) -> Dict[str, float]:
        table = self.scenario_device_weights.get((scenario or "").lower())
        if table is None:
            table = self.scenario_device_weights.get("office", DEFAULT_SCENARIO_WEIGHTS["office"])
        return table

    def summary(self) -> str:
        return (
            f"Simulator Configuration: interval={self.interval_seconds}s, devices={self.device_count}, "
            f"scenario={self.scenario}, enabled={self.enabled}, "
            f"recommendations={self.policy_recommendations_enabled}, "
            f"threat_detection={self.threat_detection_enabled}, "
            f"risk_updates={self.risk_score_updates_enabled}"
        )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NAC_",
        env_nested_delimiter="__",
        extra="ignore",
        protected_namespaces=(),
    )

    # Application Settings
    app_name: str = "NAC Policy Intelligence"
    version: str = "1.0.0"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # API Settings
    api_v1_str: str = "/api/v1"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    # Analysis strategy: "heuristic" or "model"
    analysis_strategy: str = "heuristic"
    model_endpoint: str = "https://api.openai.com/v1/chat/completions"
    model_api_key: Optional[str] = None
    model_name: str = "gpt-4"
    model_timeout_seconds: int = 60
    model_temperature: float = 0.3
    model_max_tokens: int = 1000

    # Pipeline Settings
    pipeline_queue_size: int = 1000
    pipeline_workers: int = 4
    pipeline_queue_policy: str = "drop_oldest"
    stage_timeout_seconds: Optional[float] = 30.0

    # Simulation Settings
    random_seed: Optional[int] = None
    autostart_simulator: bool = True

    # Retention Settings
    result_cache_size: int = 5000
    result_cache_ttl_seconds: int = 3600
    session_retention_hours: int = 24
    event_retention_hours: int = 24
    max_cached_events: int = 10000
    cleanup_interval_seconds: int = 300

    simulator: SimulatorSettings = Field(default_factory=SimulatorSettings)

    # Paths
    base_dir: Path = Path(__file__).parent.parent.parent
    logs_dir: Path = base_dir / "logs"

    @field_validator("analysis_strategy")
    @classmethod
    def check_strategy(cls, v):
        v = v.strip().lower()
        if v not in ("heuristic", "model"):
            raise ConfigurationError("analysis_strategy must be 'heuristic' or 'model'")
        return v

    @field_validator("pipeline_queue_policy")
    @classmethod
    def check_queue_policy(cls, v):
        v = v.strip().lower()
        if v not in ("drop_oldest", "drop_newest"):
            raise ConfigurationError("pipeline_queue_policy must be 'drop_oldest' or 'drop_newest'")
        return v

    @field_validator("pipeline_queue_size", "pipeline_workers", "result_cache_size")
    @classmethod
    def check_positive(cls, v):
        if v < 1:
            raise ConfigurationError("Pipeline and cache sizes must be at least 1")
        return v

    @property
    def use_model_strategy(self) -> bool:
        return self.analysis_strategy == "model" and bool(self.model_api_key)


settings = Settings()

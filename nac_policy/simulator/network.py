"""
Network Simulator
Periodic driver for device updates, network events and pipeline triggers
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime
from typing import Dict, Any, Optional

from nac_policy.core.config import SimulatorSettings
from nac_policy.models.device import DeviceRiskLevel
from nac_policy.simulator.device_pool import DevicePool
from nac_policy.simulator.events import EventGenerator
from nac_policy.utils.helpers import utc_now
from nac_policy.utils.logger import log_system_event

logger = logging.getLogger(__name__)

class NetworkSimulator:
    def __init__(
        self,
        config: SimulatorSettings,
        device_pool: DevicePool,
        event_generator: EventGenerator,
        coordinator=None
    ):
        self.config = config
        self.device_pool = device_pool
        self.event_generator = event_generator
        self.coordinator = coordinator

        self.is_running = False
        self._task: Optional[asyncio.Task] = None

        self.tick_count = 0
        self.last_tick_at: Optional[datetime] = None
        self.last_tick_summary: Dict[str, Any] = {}

        self._sync_components()

    def _sync_components(self):
        self.device_pool.config = self.config
        self.event_generator.config = self.config
        if self.coordinator is not None:
            self.coordinator.configure_stages(
                threat_detection_enabled=self.config.threat_detection_enabled,
                recommendations_enabled=self.config.policy_recommendations_enabled
            )

    def apply_config(self, config: SimulatorSettings) -> SimulatorSettings:
        """Validate and swap in a new configuration; the running loop picks it up on its next tick"""
        config.validate_ranges()
        self.config = config
        self._sync_components()
        logger.info(f"Simulator configuration updated: {config.summary()}")
        return config

    async def start(self) -> bool:
        self.config.validate_ranges()

        if not self.config.enabled:
            logger.info("Network simulator is disabled")
            return False

        if self.is_running:
            logger.warning("Network simulator already running")
            return True

        self.is_running = True
        self._task = asyncio.create_task(self._run_loop())
        log_system_event(logger, "simulator_started", self.config.summary())
        return True

    async def stop(self):
        """Stop scheduling ticks; analysis already queued keeps running"""
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log_system_event(logger, "simulator_stopped", "Network simulator stopped")

    async def _run_loop(self):
        try:
            while self.is_running:
                try:
                    self.run_tick()
                except Exception as e:
                    logger.error(f"Error during simulation cycle: {e}")

                await asyncio.sleep(self.config.interval_seconds)

        except asyncio.CancelledError:
            logger.info("Simulation loop cancelled")

    def run_tick(self) -> Dict[str, Any]:
        config = self.config
        scenario = config.scenario

        devices = self.device_pool.reconcile(config.device_count, scenario)
        events = self.event_generator.generate(devices, scenario)

        incidents = 0
        if config.threat_detection_enabled:
            incidents = self.event_generator.generate_security_incidents(devices)

        risk_updates = 0
        if config.risk_score_updates_enabled:
            risk_updates = self.device_pool.update_risk_scores(devices)

        triggers = 0
        if config.policy_recommendations_enabled:
            triggers = self.event_generator.generate_policy_triggers(devices, events)

        self.tick_count += 1
        self.last_tick_at = utc_now()
        self.last_tick_summary = {
            "tick": self.tick_count,
            "devices": len(devices),
            "events": len(events),
            "incidents": incidents,
            "risk_updates": risk_updates,
            "policy_triggers": triggers,
            "timestamp": self.last_tick_at.isoformat()
        }

        level = logging.INFO if config.verbose_logging else logging.DEBUG
        logger.log(
            level,
            f"Simulation cycle {self.tick_count}: {len(devices)} devices, {len(events)} events, "
            f"{incidents} incidents, {risk_updates} risk updates, {triggers} policy triggers"
        )
        return self.last_tick_summary

    def get_risk_distribution(self) -> Dict[str, int]:
        counts = Counter(d.risk_level for d in self.device_pool.get_all_devices())
        return {level.value.lower(): counts.get(level, 0) for level in DeviceRiskLevel}

    def get_status(self) -> Dict[str, Any]:
        devices = self.device_pool.get_all_devices()
        events = self.event_generator.get_all_events()

        return {
            "running": self.is_running,
            "timestamp": utc_now().isoformat(),
            "configuration": {
                "interval_seconds": self.config.interval_seconds,
                "device_count": self.config.device_count,
                "scenario": self.config.scenario,
                "enabled": self.config.enabled
            },
            "statistics": {
                "total_devices": len(devices),
                "active_devices": sum(1 for d in devices if d.is_active),
                "high_risk_devices": sum(1 for d in devices if d.is_high_risk),
                "total_events": len(events),
                "security_events": sum(1 for e in events if e.is_security_event),
                "unresolved_events": sum(1 for e in events if not e.resolved)
            },
            "risk_distribution": self.get_risk_distribution(),
            "tick_count": self.tick_count,
            "last_tick": self.last_tick_summary
        }

    def get_device_type_statistics(self) -> Dict[str, int]:
        counts = Counter(d.device_type.display_name for d in self.device_pool.get_all_devices())
        return dict(counts)

    def get_event_type_statistics(self) -> Dict[str, int]:
        counts = Counter(e.event_type.display_name for e in self.event_generator.get_all_events())
        return dict(counts)

    def get_risk_statistics(self) -> Dict[str, Any]:
        devices = self.device_pool.get_all_devices()
        average = sum(d.risk_score for d in devices) / len(devices) if devices else 0.0
        return {
            "average_risk_score": round(average, 2),
            "total_devices": len(devices),
            "risk_levels": self.get_risk_distribution()
        }

    def get_network_activity(self) -> Dict[str, Any]:
        devices = self.device_pool.get_all_devices()
        utilization = sum(d.network_utilization for d in devices) / len(devices) if devices else 0.0
        return {
            "total_bytes_transmitted": sum(d.bytes_transmitted for d in devices),
            "total_bytes_received": sum(d.bytes_received for d in devices),
            "total_connections": sum(d.connection_count for d in devices),
            "active_devices": sum(1 for d in devices if d.is_active),
            "average_utilization": round(utilization, 4)
        }

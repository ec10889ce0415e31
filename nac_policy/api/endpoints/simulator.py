"""
Simulator API Endpoints
Monitoring and control surface for the network simulator
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from typing import List

from nac_policy.api.dependencies import get_simulator
from nac_policy.core.config import SimulatorSettings
from nac_policy.core.exceptions import ConfigurationError
from nac_policy.models.device import Device, DeviceRiskLevel
from nac_policy.models.events import EventSeverity, NetworkEvent
from nac_policy.utils.helpers import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/status")
async def get_simulator_status(simulator=Depends(get_simulator)):
    return simulator.get_status()

@router.get("/devices", response_model=List[Device])
async def get_devices(simulator=Depends(get_simulator)):
    return simulator.device_pool.get_all_devices()

@router.get("/devices/risk/{risk_level}", response_model=List[Device])
async def get_devices_by_risk_level(risk_level: DeviceRiskLevel, simulator=Depends(get_simulator)):
    return simulator.device_pool.get_devices_by_risk_level(risk_level)

@router.get("/devices/{device_id}", response_model=Device)
async def get_device(device_id: str, simulator=Depends(get_simulator)):
    device = simulator.device_pool.get_device(device_id)
    if device is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Device not found: {device_id}"
        )
    return device

@router.get("/events", response_model=List[NetworkEvent])
async def get_events(simulator=Depends(get_simulator)):
    return simulator.event_generator.get_all_events()

@router.get("/events/severity/{severity}", response_model=List[NetworkEvent])
async def get_events_by_severity(severity: EventSeverity, simulator=Depends(get_simulator)):
    return simulator.event_generator.get_events_by_severity(severity)

@router.get("/events/security", response_model=List[NetworkEvent])
async def get_security_events(simulator=Depends(get_simulator)):
    return simulator.event_generator.get_security_events()

@router.get("/config", response_model=SimulatorSettings)
async def get_config(simulator=Depends(get_simulator)):
    return simulator.config

@router.put("/config")
async def update_config(config: SimulatorSettings, simulator=Depends(get_simulator)):
    try:
        simulator.apply_config(config)
    except ConfigurationError as e:
        logger.warning(f"Rejected simulator configuration: {e}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "error", "message": str(e)}
        )

    return {
        "status": "success",
        "message": "Configuration updated successfully",
        "configuration": config.model_dump()
    }

@router.get("/statistics/devices/types")
async def get_device_type_statistics(simulator=Depends(get_simulator)):
    return simulator.get_device_type_statistics()

@router.get("/statistics/events/types")
async def get_event_type_statistics(simulator=Depends(get_simulator)):
    return simulator.get_event_type_statistics()

@router.get("/statistics/risk/distribution")
async def get_risk_distribution(simulator=Depends(get_simulator)):
    return simulator.get_risk_statistics()

@router.get("/statistics/network/activity")
async def get_network_activity(simulator=Depends(get_simulator)):
    return simulator.get_network_activity()

@router.post("/start")
async def start_simulator(simulator=Depends(get_simulator)):
    try:
        started = await simulator.start()
    except ConfigurationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "error", "message": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to start simulator: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "message": f"Failed to start simulator: {e}"}
        )

    if not started:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "error", "message": "Simulator is disabled in configuration"}
        )

    return {
        "status": "success",
        "message": "Simulator started successfully",
        "timestamp": utc_now().isoformat()
    }

@router.post("/stop")
async def stop_simulator(simulator=Depends(get_simulator)):
    try:
        await simulator.stop()
    except Exception as e:
        logger.error(f"Failed to stop simulator: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "message": f"Failed to stop simulator: {e}"}
        )

    return {
        "status": "success",
        "message": "Simulator stopped successfully",
        "timestamp": utc_now().isoformat()
    }

@router.get("/health")
async def simulator_health(simulator=Depends(get_simulator)):
    return {
        "status": "UP" if simulator.is_running else "DOWN",
        "timestamp": utc_now().isoformat(),
        "version": "1.0.0"
    }

@router.post("/tick")
async def run_simulation_tick(simulator=Depends(get_simulator)):
    """Run a single simulation cycle immediately"""
    return simulator.run_tick()

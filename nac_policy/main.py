"""
NAC Policy Intelligence - Main FastAPI Application
Central entry point wiring the simulator, analysis pipeline and policy services
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import numpy as np
import uvicorn

from nac_policy.core.cache import ResultCache
from nac_policy.core.config import Settings, settings
from nac_policy.core.exceptions import ConfigurationError, NotFoundError
from nac_policy.api.endpoints import simulator, ai, sessions, policies
from nac_policy.pipeline.coordinator import AnalysisCoordinator
from nac_policy.pipeline.model_backed import build_strategies
from nac_policy.pipeline.recommender import HeuristicPolicyRecommender
from nac_policy.pipeline.risk import HeuristicRiskScorer
from nac_policy.pipeline.threats import HeuristicThreatDetector
from nac_policy.services.orchestrator import PolicyOrchestrator
from nac_policy.services.session_store import SessionStore
from nac_policy.simulator.device_pool import DevicePool
from nac_policy.simulator.events import EventGenerator
from nac_policy.simulator.network import NetworkSimulator
from nac_policy.utils.helpers import utc_now
from nac_policy.utils.logger import configure_application_logging
from nac_policy.workers.cleanup_worker import CleanupWorker

logger = configure_application_logging()

def build_components(app: FastAPI, app_settings: Settings):
    """Construct every component and attach it to the application state"""
    rng = np.random.default_rng(app_settings.random_seed)

    def cache(name: str) -> ResultCache:
        return ResultCache(
            name,
            max_entries=app_settings.result_cache_size,
            ttl_seconds=app_settings.result_cache_ttl_seconds
        )

    caches = [cache("risk"), cache("threats"), cache("recommendations"), cache("analysis_results")]

    risk_scorer, threat_detector, recommender = build_strategies(
        app_settings,
        risk_scorer=HeuristicRiskScorer(rng=rng, cache=caches[0]),
        threat_detector=HeuristicThreatDetector(rng=rng, cache=caches[1]),
        recommender=HeuristicPolicyRecommender(cache=caches[2])
    )

    orchestrator = PolicyOrchestrator()
    coordinator = AnalysisCoordinator(
        risk_scorer,
        threat_detector,
        recommender,
        orchestrator=orchestrator,
        results=caches[3],
        queue_size=app_settings.pipeline_queue_size,
        worker_count=app_settings.pipeline_workers,
        queue_policy=app_settings.pipeline_queue_policy,
        stage_timeout=app_settings.stage_timeout_seconds
    )
    session_store = SessionStore(coordinator=coordinator)

    simulator_config = app_settings.simulator.model_copy(deep=True)
    device_pool = DevicePool(config=simulator_config, rng=rng, session_sink=session_store.receive)
    event_generator = EventGenerator(
        config=simulator_config,
        rng=rng,
        session_sink=session_store.receive,
        max_cached_events=app_settings.max_cached_events,
        retention_hours=app_settings.event_retention_hours
    )
    network_simulator = NetworkSimulator(simulator_config, device_pool, event_generator, coordinator)

    cleanup_worker = CleanupWorker(
        session_store=session_store,
        event_generator=event_generator,
        caches=caches,
        cleanup_interval=app_settings.cleanup_interval_seconds,
        session_retention_hours=app_settings.session_retention_hours,
        event_retention_hours=app_settings.event_retention_hours
    )

    app.state.settings = app_settings
    app.state.risk_scorer = risk_scorer
    app.state.threat_detector = threat_detector
    app.state.recommender = recommender
    app.state.orchestrator = orchestrator
    app.state.coordinator = coordinator
    app.state.session_store = session_store
    app.state.simulator = network_simulator
    app.state.cleanup_worker = cleanup_worker

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan management
        Builds components on startup and stops background tasks on shutdown
        """
        logger.info("Starting NAC Policy Intelligence...")

        try:
            build_components(app, app_settings)

            await app.state.coordinator.start()
            logger.info("Analysis pipeline started")

            await app.state.cleanup_worker.start()
            logger.info("Cleanup worker started")

            if app_settings.autostart_simulator:
                if await app.state.simulator.start():
                    logger.info("Network simulator started")

            logger.info("NAC Policy Intelligence ready")
            yield

        except Exception as e:
            logger.error(f"Startup failed: {str(e)}")
            raise

        finally:
            logger.info("Shutting down NAC Policy Intelligence...")

            for name in ("simulator", "cleanup_worker", "coordinator"):
                component = getattr(app.state, name, None)
                if component is None:
                    continue
                try:
                    await component.stop()
                except Exception as e:
                    logger.error(f"Shutdown error in {name}: {str(e)}")

    app = FastAPI(
        title=app_settings.app_name,
        description="Network access control simulation with AI-driven policy recommendations",
        version=app_settings.version,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        simulator.router,
        prefix=f"{app_settings.api_v1_str}/simulator",
        tags=["Network Simulator"]
    )

    app.include_router(
        ai.router,
        prefix=f"{app_settings.api_v1_str}/ai",
        tags=["AI Analysis"]
    )

    app.include_router(
        sessions.router,
        prefix=f"{app_settings.api_v1_str}/sessions",
        tags=["Sessions"]
    )

    app.include_router(
        policies.router,
        prefix=f"{app_settings.api_v1_str}/policies",
        tags=["Policies"]
    )

    @app.get("/")
    async def root():
        """Root endpoint - System status"""
        return {
            "status": "operational",
            "system": app_settings.app_name,
            "version": app_settings.version,
            "message": "NAC policy intelligence running"
        }

    @app.get("/health")
    async def health_check(request: Request):
        state = request.app.state
        return {
            "status": "healthy",
            "timestamp": utc_now().isoformat(),
            "components": {
                "simulator": "running" if state.simulator.is_running else "stopped",
                "analysis_pipeline": "active" if state.coordinator.is_running else "stopped",
                "cleanup_worker": "running" if state.cleanup_worker.is_running else "stopped",
                "analysis_strategy": app_settings.analysis_strategy
            },
            "metrics": {
                "active_sessions": len(state.session_store.get_all_active()),
                "policies": len(state.orchestrator.get_all()),
                "pipeline": state.coordinator.get_stats()
            }
        }

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request, exc):
        return JSONResponse(
            status_code=404,
            content={"detail": str(exc)}
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request, exc):
        return JSONResponse(
            status_code=400,
            content={"status": "error", "message": str(exc)}
        )

    return app

app = create_app()

if __name__ == "__main__":

    uvicorn.run(
        "nac_policy.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )

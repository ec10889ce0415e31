"""
NAC Policy Intelligence - Startup Script
Command line entry point for the API server and offline simulation runs
"""

import sys
import asyncio
import argparse
import json

def setup_environment() -> bool:
    """Validate settings before launching anything"""
    try:
        from nac_policy.core.config import settings
        from nac_policy.utils.logger import configure_application_logging

        logger = configure_application_logging()

        settings.simulator.validate_ranges()

        if settings.analysis_strategy == "model" and not settings.model_api_key:
            logger.warning("NAC_MODEL_API_KEY not set, heuristic strategies will be used")

        logger.info("Environment validation successful")
        return True

    except Exception as e:
        print(f"Environment setup failed: {e}")
        return False

def run_development_server():
    try:
        import uvicorn
        from nac_policy.core.config import settings

        print("Starting NAC Policy Intelligence development server...")
        print(f"Host: {settings.host}")
        print(f"Port: {settings.port}")
        print(f"API Docs: http://{settings.host}:{settings.port}/api/docs")

        uvicorn.run(
            "nac_policy.main:app",
            host=settings.host,
            port=settings.port,
            reload=settings.debug,
            log_level="info",
            access_log=True
        )

    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print(f"Server error: {e}")
        sys.exit(1)

def run_production_server():
    try:
        import uvicorn
        from nac_policy.core.config import settings

        print("Starting NAC Policy Intelligence production server...")

        # Component state is in-memory, so a single worker process only
        uvicorn.run(
            "nac_policy.main:app",
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level="warning"
        )

    except Exception as e:
        print(f"Production server error: {e}")
        sys.exit(1)

async def run_simulation(ticks: int, scenario: str = None, seed: int = None) -> dict:
    """Run a fixed number of simulation cycles without the HTTP server"""
    from nac_policy.core.config import settings
    from nac_policy.main import build_components, create_app

    app_settings = settings.model_copy(deep=True)
    if scenario:
        app_settings.simulator.scenario = scenario.lower()
    if seed is not None:
        app_settings.random_seed = seed

    app = create_app(app_settings)
    build_components(app, app_settings)
    state = app.state

    state.simulator.config.validate_ranges()
    await state.coordinator.start()
    try:
        for _ in range(ticks):
            state.simulator.run_tick()
            await state.coordinator.queue.join()
    finally:
        await state.coordinator.stop()

    return {
        "ticks": ticks,
        "status": state.simulator.get_status(),
        "pipeline": state.coordinator.get_stats(),
        "policies": state.orchestrator.get_stats()
    }

def main():
    parser = argparse.ArgumentParser(description="NAC Policy Intelligence")
    parser.add_argument(
        "command",
        choices=["dev", "prod", "check", "simulate"],
        help="Command to execute"
    )
    parser.add_argument("--ticks", type=int, default=5, help="Simulation cycles to run (simulate)")
    parser.add_argument("--scenario", default=None, help="Scenario override (simulate)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (simulate)")

    args = parser.parse_args()

    if not setup_environment():
        sys.exit(1)

    if args.command == "dev":
        run_development_server()
    elif args.command == "prod":
        run_production_server()
    elif args.command == "simulate":
        summary = asyncio.run(run_simulation(args.ticks, args.scenario, args.seed))
        print(json.dumps(summary, indent=2, default=str))
    elif args.command == "check":
        print("System check completed - configuration valid")
        sys.exit(0)

if __name__ == "__main__":
    main()

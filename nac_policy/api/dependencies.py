"""
API Dependencies and Dependency Injection
Accessors for the components wired onto the application state
"""

from fastapi import HTTPException, Request, status

def _component(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Component not initialized: {name}"
        )
    return component

def get_simulator(request: Request):
    return _component(request, "simulator")

def get_risk_scorer(request: Request):
    return _component(request, "risk_scorer")

def get_threat_detector(request: Request):
    return _component(request, "threat_detector")

def get_recommender(request: Request):
    return _component(request, "recommender")

def get_coordinator(request: Request):
    return _component(request, "coordinator")

def get_session_store(request: Request):
    return _component(request, "session_store")

def get_orchestrator(request: Request):
    return _component(request, "orchestrator")

def get_cleanup_worker(request: Request):
    return _component(request, "cleanup_worker")

def not_found(e) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

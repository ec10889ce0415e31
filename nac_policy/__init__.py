"""
NAC Policy Intelligence
Network access control simulation and AI-driven policy recommendation
"""

__version__ = "1.0.0"
__author__ = "NAC Policy Intelligence Team"
__description__ = "Network access control simulator with risk, threat and policy analysis"

def create_application(app_settings=None):
    """Build the FastAPI application"""
    from nac_policy.main import create_app
    return create_app(app_settings)

__all__ = [
    "create_application"
]

"""API routers for all endpoints."""

from incident_risk.routers import incident_risk

__all__ = [
    "incident_risk",
]

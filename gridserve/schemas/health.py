"""
GridServe - API Schemas
========================

What:  Pydantic models for the service's own JSON endpoints.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and blob store status.
    Who:   Returned by GET /health for container and load balancer probes.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    blob_store: str = Field(description="MongoDB connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")

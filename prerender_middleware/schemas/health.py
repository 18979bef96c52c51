"""
Prerender Middleware - Health Schema
====================================

What:  Response model for GET /health.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(description="Always 'healthy' while the process serves requests")
    version: str = Field(description="Package version")
    service_url: str = Field(description="Rendering service base URL in use")
    token_configured: bool = Field(description="Whether X-Prerender-Token is sent")
    uptime_seconds: float = Field(description="Seconds since the module was loaded")

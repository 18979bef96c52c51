"""
Prerender Middleware - Health Check Route
=========================================

What:  Liveness endpoint for the demo/host application built by create_app().
How:   Reports the prerender configuration in use; it does not call the
       rendering service, whose outages are absorbed by the fail-open flow.
"""

import logging
import time

from fastapi import APIRouter, Request

from prerender_middleware import __version__
from prerender_middleware.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    config = request.app.state.prerender.config
    return HealthResponse(
        status="healthy",
        version=__version__,
        service_url=config.service_url,
        token_configured=bool(config.token),
        uptime_seconds=round(time.time() - _start_time, 2),
    )

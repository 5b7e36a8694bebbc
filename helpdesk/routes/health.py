"""
Health check endpoints

Provides two endpoints:
- GET /api/v1/health - Basic health check with session and responder info
- GET /api/v1/health/dependencies - Case-tracking store and LLM API status
"""
import asyncio
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from helpdesk import __version__
from helpdesk.config import get_settings
from helpdesk.routes.dependencies import get_orchestrator
from helpdesk.services.orchestrator import TurnOrchestrator
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["health"])

# Application start time for uptime calculation
APP_START_TIME = time.time()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """Basic health check response"""
    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    version: str = Field(..., description="Application version")
    uptime_seconds: float = Field(..., description="Application uptime in seconds")
    active_sessions: int = Field(..., description="Conversations currently held in memory")
    responder_domains: List[str] = Field(default_factory=list, description="Domains with a responder")


class DependencyStatus(BaseModel):
    """Status of a single dependency"""
    name: str = Field(..., description="Dependency name")
    status: str = Field(..., description="Status: healthy, degraded, unhealthy")
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    error_message: Optional[str] = Field(None, description="Error message if unhealthy")


class DependencyHealth(BaseModel):
    """Dependency health check response"""
    overall_status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    dependencies: Dict[str, DependencyStatus] = Field(..., description="Individual dependency statuses")
    checked_at: datetime = Field(default_factory=_utcnow, description="Check timestamp")


# ============================================================================
# Dependency Check Functions
# ============================================================================

async def check_ticket_store(orchestrator: TurnOrchestrator) -> DependencyStatus:
    """Read one row from the tickets table"""
    try:
        start = time.time()
        repo = orchestrator.ticket_service.ticket_repo
        await asyncio.wait_for(
            asyncio.to_thread(
                lambda: repo.client.table(repo.table_name).select("id").limit(1).execute()
            ),
            timeout=5.0
        )
        latency = (time.time() - start) * 1000
        return DependencyStatus(name="ticket_store", status="healthy", latency_ms=round(latency, 2))

    except asyncio.TimeoutError:
        logger.error("Ticket store health check timed out")
        return DependencyStatus(
            name="ticket_store",
            status="unhealthy",
            error_message="Request timed out after 5 seconds"
        )
    except Exception as e:
        logger.error(f"Ticket store health check failed: {e}")
        return DependencyStatus(name="ticket_store", status="unhealthy", error_message=str(e))


async def check_openai_api() -> DependencyStatus:
    """Check OpenAI API connectivity"""
    try:
        if not settings.openai_api_key:
            return DependencyStatus(
                name="openai_api",
                status="degraded",
                error_message="API key not configured"
            )

        start = time.time()
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(
                "https://api.openai.com/v1/models",
                headers={"Authorization": f"Bearer {settings.openai_api_key}"}
            )
            response.raise_for_status()

        latency = (time.time() - start) * 1000
        return DependencyStatus(name="openai_api", status="healthy", latency_ms=round(latency, 2))

    except httpx.TimeoutException:
        logger.error("OpenAI API health check timed out")
        return DependencyStatus(
            name="openai_api",
            status="unhealthy",
            error_message="Request timed out after 5 seconds"
        )
    except httpx.HTTPStatusError as e:
        logger.error(f"OpenAI API health check failed: {e}")
        return DependencyStatus(
            name="openai_api",
            status="unhealthy",
            error_message=f"HTTP {e.response.status_code}: {str(e)}"
        )
    except Exception as e:
        logger.error(f"OpenAI API health check failed: {e}")
        return DependencyStatus(name="openai_api", status="unhealthy", error_message=str(e))


def determine_overall_status(dependencies: Dict[str, DependencyStatus]) -> str:
    """
    Overall status from dependency health

    The ticket store degrades gracefully (fallback folios), so nothing here
    makes the service unhealthy on its own:
    - all healthy → "healthy"
    - any degraded/unhealthy → "degraded"
    """
    if any(dep.status in ("degraded", "unhealthy") for dep in dependencies.values()):
        return "degraded"
    return "healthy"


# ============================================================================
# API Endpoints
# ============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def basic_health_check(orchestrator: TurnOrchestrator = Depends(get_orchestrator)) -> HealthResponse:
    """
    Basic health check endpoint

    Does not check external dependencies.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
        active_sessions=len(orchestrator.sessions),
        responder_domains=[domain.value for domain in orchestrator.responder.domains],
    )


@router.get(
    "/dependencies",
    response_model=DependencyHealth,
    status_code=status.HTTP_200_OK,
    summary="Dependency health check",
)
async def dependency_health_check(
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> DependencyHealth:
    """Check the ticket store and the LLM API in parallel"""
    logger.info("Performing dependency health checks")
    ticket_store, openai_api = await asyncio.gather(
        check_ticket_store(orchestrator),
        check_openai_api(),
    )
    dependencies = {"ticket_store": ticket_store, "openai_api": openai_api}

    unhealthy = [name for name, dep in dependencies.items() if dep.status == "unhealthy"]
    if unhealthy:
        logger.warning(f"Unhealthy dependencies: {', '.join(unhealthy)}")

    return DependencyHealth(
        overall_status=determine_overall_status(dependencies),
        dependencies=dependencies,
    )

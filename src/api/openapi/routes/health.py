"""Health check endpoints."""

from enum import Enum

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from src.api.dependencies import FactoryDep, SettingsDep
from src.commons.telemetry import get_logger

router = APIRouter()

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health status of a single component."""

    name: str = Field(description="Component name")
    status: HealthStatus = Field(description="Component health status")
    latency_ms: float | None = Field(default=None, description="Health check latency")
    message: str | None = Field(default=None, description="Additional details")


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(description="Overall health status")
    version: str = Field(description="Application version")
    environment: str = Field(description="Deployment environment")
    components: list[ComponentHealth] = Field(
        default_factory=list,
        description="Individual component health",
    )


class LivenessResponse(BaseModel):
    """Simple liveness response."""

    status: str = Field(default="ok")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(description="Whether the service is ready to accept requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


@router.get(
    "/",
    response_class=PlainTextResponse,
    summary="Service banner",
    include_in_schema=False,
)
async def root(settings: SettingsDep) -> str:
    """Plain status text."""
    return f"{settings.app.name} is running"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Get overall health status of the blob store and document database.",
)
async def health_check(
    settings: SettingsDep,
    factory: FactoryDep,
) -> HealthResponse:
    """Check health of all service components."""
    checks = {
        "blob_storage": factory.get_blob_storage(),
        "document_db": factory.get_document_db(),
    }

    components: list[ComponentHealth] = []
    for name, provider in checks.items():
        result = await provider.health_check()
        components.append(
            ComponentHealth(
                name=name,
                status=HealthStatus.HEALTHY if result.healthy else HealthStatus.UNHEALTHY,
                latency_ms=round(result.latency_ms, 2),
                message=result.message,
            )
        )

    unhealthy = sum(1 for c in components if c.status == HealthStatus.UNHEALTHY)
    if unhealthy == 0:
        overall = HealthStatus.HEALTHY
    elif unhealthy < len(components):
        overall = HealthStatus.DEGRADED
    else:
        overall = HealthStatus.UNHEALTHY

    return HealthResponse(
        status=overall,
        version=settings.app.version,
        environment=settings.app.environment,
        components=components,
    )


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness check",
    description="Simple liveness check for Kubernetes.",
)
async def liveness() -> LivenessResponse:
    """Simple liveness check - just verifies the app is running."""
    return LivenessResponse(status="ok")


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description=(
        "Readiness check for Kubernetes. A blob store that failed to "
        "connect at startup is retried here."
    ),
)
async def readiness(
    factory: FactoryDep,
) -> ReadinessResponse:
    """Check if service is ready to accept requests."""
    blob_storage = factory.get_blob_storage()
    if not blob_storage.ready:
        try:
            await blob_storage.connect()
        except Exception as e:
            logger.warning(
                "Blob store still unavailable",
                extra={"backend": blob_storage.backend_name, "error": str(e)},
            )

    document_health = await factory.get_document_db().health_check()
    checks = {
        "blob_storage": blob_storage.ready,
        "document_db": document_health.healthy,
    }
    return ReadinessResponse(ready=all(checks.values()), checks=checks)

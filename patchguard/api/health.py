"""
Health check and metrics endpoints.
PII-safe: no user data in responses.
"""
from typing import Dict

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from patchguard.core.metrics import get_metrics_collector
from patchguard.services.projection.policies import get_policy_registry

router = APIRouter(tags=["health"])


# === Response Models ===

class HealthResponse(BaseModel):
    """Basic health check response."""
    ok: bool


class ReadyResponse(BaseModel):
    """Readiness check response."""
    ready: bool
    checks: Dict[str, bool]


class MetricsResponse(BaseModel):
    """Projection metrics response."""
    uptime_seconds: int = Field(alias="uptimeSeconds")
    projections: int
    kept_keys: int = Field(alias="keptKeys")
    dropped_keys: int = Field(alias="droppedKeys")
    policy_uses: Dict[str, int] = Field(alias="policyUses")
    errors: int
    error_codes: Dict[str, int] = Field(alias="errorCodes")

    class Config:
        populate_by_name = True


# === Endpoints ===

@router.get(
    "/healthz",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Returns 200 if the service is alive"
)
async def health_check() -> HealthResponse:
    return HealthResponse(ok=True)


@router.get(
    "/readyz",
    response_model=ReadyResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    description="Returns 200 if the service is ready to handle requests"
)
async def readiness_check() -> ReadyResponse:
    """
    Readiness probe.
    Ready once the allowlist policies are loaded.
    """
    checks = {"policies_loaded": bool(get_policy_registry().names())}
    return ReadyResponse(ready=all(checks.values()), checks=checks)


@router.get(
    "/v1/metrics",
    response_model=MetricsResponse,
    status_code=status.HTTP_200_OK,
    summary="Service metrics",
    description="Returns aggregated projection metrics (PII-safe)"
)
async def get_metrics() -> MetricsResponse:
    """
    Get aggregated metrics.

    PII-safe: counters only, no key names or values.
    """
    snapshot = get_metrics_collector().get_snapshot()
    return MetricsResponse(
        uptime_seconds=snapshot["uptime_seconds"],
        projections=snapshot["projections"],
        kept_keys=snapshot["kept_keys"],
        dropped_keys=snapshot["dropped_keys"],
        policy_uses=snapshot["policy_uses"],
        errors=snapshot["errors"],
        error_codes=snapshot["error_codes"],
    )

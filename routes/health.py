"""
Health and metrics endpoint.
"""
from fastapi import APIRouter, Depends

from dependencies import get_resilience, get_telemetry
from utils.process_resilience import ProcessResilienceLayer
from utils.telemetry import TurnTelemetry

router = APIRouter()


@router.get("/health")
async def health(
    resilience: ProcessResilienceLayer = Depends(get_resilience),
    telemetry: TurnTelemetry = Depends(get_telemetry)
):
    """Liveness, fault counters and turn statistics."""
    return {
        "status": "shutting_down" if resilience.is_shutting_down else "ok",
        **resilience.snapshot(),
        "turns": telemetry.snapshot(),
    }

"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/health -- simple health check
POST /api/v1/admin/sweep  -- run the expiry sweep now (admin)
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_booking_engine, get_current_identity
from src.api.middleware import DEFAULT_LIMIT, limiter
from src.api.responses import envelope
from src.api.schemas import HealthResponse, SweepResponse
from src.domain.entities import Identity
from src.services.bookings import BookingEngine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", summary="Health check")
async def health():
    return envelope("Vehicle Rental System API is running", HealthResponse())


@router.post("/sweep", summary="Auto-return expired bookings now")
@limiter.limit(DEFAULT_LIMIT)
async def run_sweep(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    engine: BookingEngine = Depends(get_booking_engine),
):
    returned = await engine.run_sweep(identity)
    return envelope(
        f"Auto-returned {returned} expired bookings", SweepResponse(returned=returned)
    )

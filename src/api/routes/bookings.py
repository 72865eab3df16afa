"""
Booking endpoints
=================

POST /api/v1/bookings              -- create a booking
GET  /api/v1/bookings              -- all bookings (admin) or your own (customer)
PUT  /api/v1/bookings/{booking_id} -- cancel or return
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_booking_engine, get_current_identity
from src.api.middleware import DEFAULT_LIMIT, limiter
from src.api.responses import envelope
from src.api.schemas import (
    AdminBookingResponse,
    BookingCreateRequest,
    BookingCreatedResponse,
    BookingResponse,
    BookingReturnedResponse,
    BookingUpdateRequest,
    CustomerBookingResponse,
)
from src.domain.entities import Identity
from src.domain.enums import BookingAction
from src.domain.errors import ValidationError
from src.services.bookings import BookingEngine, parse_action

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", status_code=201, summary="Create a booking")
@limiter.limit(DEFAULT_LIMIT)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    identity: Identity = Depends(get_current_identity),
    engine: BookingEngine = Depends(get_booking_engine),
):
    booking = await engine.create_booking(
        identity,
        customer_id=body.customer_id,
        vehicle_id=body.vehicle_id,
        rent_start_date=body.rent_start_date,
        rent_end_date=body.rent_end_date,
    )
    return envelope(
        "Booking created successfully", BookingCreatedResponse.model_validate(booking)
    )


@router.get("", summary="List bookings visible to the caller")
@limiter.limit(DEFAULT_LIMIT)
async def list_bookings(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    engine: BookingEngine = Depends(get_booking_engine),
):
    bookings = await engine.list_bookings(identity)
    if engine.sees_all_bookings(identity):
        return envelope(
            "Bookings retrieved successfully",
            [AdminBookingResponse.model_validate(b) for b in bookings],
        )
    return envelope(
        "Your bookings retrieved successfully",
        [CustomerBookingResponse.model_validate(b) for b in bookings],
    )


@router.put(
    "/{booking_id}",
    summary="Cancel or return a booking",
    description=(
        'Body: {"status": "cancelled" | "returned"} (or "action": '
        '"cancel" | "return").  Cancelling frees the vehicle and is only '
        "possible before the start date; returning is admin-only."
    ),
)
@limiter.limit(DEFAULT_LIMIT)
async def update_booking(
    request: Request,
    booking_id: int,
    body: BookingUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    engine: BookingEngine = Depends(get_booking_engine),
):
    requested = body.status or body.action
    if not requested:
        raise ValidationError('Invalid status. Must be "cancelled" or "returned"')
    action = parse_action(requested)

    booking = await engine.update_booking(identity, booking_id, action)
    if action is BookingAction.CANCEL:
        return envelope(
            "Booking cancelled successfully", BookingResponse.model_validate(booking)
        )
    return envelope(
        "Booking marked as returned. Vehicle is now available",
        BookingReturnedResponse.model_validate(booking),
    )

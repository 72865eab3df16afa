"""Pydantic request / response schemas for the REST API.

Request bodies are deliberately loose (plain ``str`` for enum-like fields,
dates as strings): the services validate them and report friendly,
typed errors.  Response models read straight from ORM rows.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel

from src.domain.enums import AvailabilityStatus, BookingStatus, UserRole, VehicleType


class ORMModel(BaseModel):
    model_config = {"from_attributes": True}


# ── Requests ──────────────────────────────────────────────────────────


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str
    phone: str
    role: Optional[str] = None


class SigninRequest(BaseModel):
    email: str
    password: str


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class VehicleCreateRequest(BaseModel):
    vehicle_name: str
    type: str
    registration_number: str
    daily_rent_price: float
    availability_status: str = AvailabilityStatus.AVAILABLE.value


class VehicleUpdateRequest(BaseModel):
    vehicle_name: Optional[str] = None
    type: Optional[str] = None
    registration_number: Optional[str] = None
    daily_rent_price: Optional[float] = None
    availability_status: Optional[str] = None


class BookingCreateRequest(BaseModel):
    customer_id: int
    vehicle_id: int
    rent_start_date: str
    rent_end_date: str


class BookingUpdateRequest(BaseModel):
    """``status`` and ``action`` are interchangeable; ``status`` wins."""

    status: Optional[str] = None
    action: Optional[str] = None


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(ORMModel):
    id: int
    name: str
    email: str
    phone: str
    role: UserRole


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class VehicleResponse(ORMModel):
    id: int
    vehicle_name: str
    type: VehicleType
    registration_number: str
    daily_rent_price: float
    availability_status: AvailabilityStatus


class _BookingBase(ORMModel):
    id: int
    vehicle_id: int
    rent_start_date: date
    rent_end_date: date
    total_price: float
    status: BookingStatus


class BookingResponse(_BookingBase):
    """A booking without embedded summaries (cancel result)."""

    customer_id: int


class VehiclePriceSummary(ORMModel):
    vehicle_name: str
    daily_rent_price: float


class VehicleRegistrationSummary(ORMModel):
    vehicle_name: str
    registration_number: str


class VehicleTypeSummary(VehicleRegistrationSummary):
    type: VehicleType


class VehicleAvailabilitySummary(ORMModel):
    availability_status: AvailabilityStatus


class CustomerSummary(ORMModel):
    name: str
    email: str


class BookingCreatedResponse(BookingResponse):
    vehicle: VehiclePriceSummary


class BookingReturnedResponse(BookingResponse):
    vehicle: VehicleAvailabilitySummary


class AdminBookingResponse(BookingResponse):
    customer: CustomerSummary
    vehicle: VehicleRegistrationSummary


class CustomerBookingResponse(_BookingBase):
    vehicle: VehicleTypeSummary


class SweepResponse(BaseModel):
    returned: int


class HealthResponse(BaseModel):
    status: str = "ok"

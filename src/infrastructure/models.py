"""
SQLAlchemy ORM models.

Tables
------
* ``users``     -- admins and customers
* ``vehicles``  -- rentable vehicles with their availability flag
* ``bookings``  -- date-bounded reservations of one vehicle by one customer

Indexes
-------
* **Unique** on ``users.email`` and ``vehicles.registration_number``; the
  unique constraint's own index serves the lookups by those columns.
* **B-Tree** on ``bookings.customer_id``, ``bookings.vehicle_id`` and
  ``bookings.status`` for the overlap check, role-scoped listings and the
  expiry sweep.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from src.domain.enums import AvailabilityStatus, BookingStatus, UserRole, VehicleType


def _enum(enum_cls, name: str) -> Enum:
    # Persist the lowercase values ("active"), not the member names.
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    role = Column(_enum(UserRole, "userrole"), default=UserRole.CUSTOMER, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_name = Column(String(255), nullable=False)
    type = Column(_enum(VehicleType, "vehicletype"), nullable=False)
    registration_number = Column(String(50), unique=True, nullable=False)
    daily_rent_price = Column(Numeric(10, 2), nullable=False)
    availability_status = Column(
        _enum(AvailabilityStatus, "availabilitystatus"),
        default=AvailabilityStatus.AVAILABLE,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("daily_rent_price > 0", name="ck_vehicles_rate_positive"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    vehicle_id = Column(
        Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False
    )
    rent_start_date = Column(Date, nullable=False)
    rent_end_date = Column(Date, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.ACTIVE,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    customer = relationship(UserModel, lazy="raise")
    vehicle = relationship(VehicleModel, lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "rent_end_date > rent_start_date", name="ck_bookings_dates_ordered"
        ),
        CheckConstraint("total_price > 0", name="ck_bookings_price_positive"),
        Index("idx_bookings_customer", "customer_id"),
        Index("idx_bookings_vehicle", "vehicle_id"),
        Index("idx_bookings_status", "status"),
    )

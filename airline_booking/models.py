from sqlalchemy import (
    Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, Numeric, ForeignKey, Index, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from airline_booking.database import Base

# ================================
# Flights & Seat Inventory
# ================================
class FlightRecord(Base):
    __tablename__ = "flights"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    flight_number = Column(String(10), nullable=False, index=True)
    airline = Column(String(100))
    origin = Column(String(3), nullable=False, index=True)
    destination = Column(String(3), nullable=False, index=True)
    departure_time = Column(DateTime(timezone=True), nullable=False, index=True)
    arrival_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    aircraft_type = Column(String(50))
    status = Column(String(20), nullable=False, default="SCHEDULED", index=True)

    # Prices
    base_price = Column(Numeric(10, 2))
    business_price = Column(Numeric(10, 2))
    first_class_price = Column(Numeric(10, 2))

    # Per-cabin capacity
    total_seats = Column(Integer, nullable=False, default=0)
    economy_seats = Column(Integer, nullable=False, default=0)
    business_seats = Column(Integer, nullable=False, default=0)
    first_class_seats = Column(Integer, nullable=False, default=0)

    # Per-cabin availability, kept in step with available_seats
    available_seats = Column(Integer, nullable=False, default=0)
    available_economy = Column(Integer, nullable=False, default=0)
    available_business = Column(Integer, nullable=False, default=0)
    available_first_class = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# ================================
# Passengers
# ================================
class PassengerRecord(Base):
    __tablename__ = "passengers"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    user_id = Column(String(100), index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    passport_number = Column(String(50), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=False)
    nationality = Column(String(50), nullable=False)
    gender = Column(String(10), nullable=False)
    passport_country = Column(String(50), nullable=False)
    passport_expiry = Column(Date, nullable=False)
    saved = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

# ================================
# Bookings & Tickets
# ================================
class BookingRecord(Base):
    __tablename__ = "bookings"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    booking_reference = Column(String(6), nullable=False, unique=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    payment_status = Column(String(20), nullable=False, default="PENDING")
    trip_type = Column(String(20), nullable=False, default="ONE_WAY")
    total_amount = Column(Numeric(10, 2), nullable=False)
    paid_amount = Column(Numeric(10, 2), nullable=False)
    refund_amount = Column(Numeric(10, 2))
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    confirmed_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    cancellation_reason = Column(Text)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=False)
    special_requests = Column(Text)
    # Bumped on every write; a save against a stale version is rejected
    version = Column(Integer, nullable=False, default=1)

    tickets = relationship(
        "TicketRecord", back_populates="booking", order_by="TicketRecord.id", cascade="all, delete-orphan"
    )

class TicketRecord(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        # One live ticket per seat on a flight; cancelled and voided tickets keep their seat code
        Index(
            "ix_tickets_live_seat", "flight_id", "seat_number", unique=True,
            sqlite_where=text("status NOT IN ('CANCELLED', 'VOIDED')"),
            postgresql_where=text("status NOT IN ('CANCELLED', 'VOIDED')"),
        ),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    booking_id = Column(BigInteger().with_variant(Integer, "sqlite"), ForeignKey("bookings.id"), nullable=False, index=True)
    ticket_number = Column(String(13), index=True)
    e_ticket_number = Column(String(6))
    flight_id = Column(BigInteger().with_variant(Integer, "sqlite"), ForeignKey("flights.id"), nullable=False, index=True)
    flight_number = Column(String(10), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    passenger_id = Column(BigInteger().with_variant(Integer, "sqlite"), ForeignKey("passengers.id"))
    passenger_name = Column(String(201), nullable=False)
    cabin_class = Column(String(20), nullable=False)
    seat_number = Column(String(4))
    seat_preference = Column(String(10))
    price = Column(Numeric(10, 2), nullable=False)
    base_fare = Column(Numeric(10, 2), nullable=False)
    taxes = Column(Numeric(10, 2), nullable=False)
    fare_type = Column(String(20), nullable=False)
    is_refundable = Column(Boolean, default=False)
    is_changeable = Column(Boolean, default=True)
    checked_baggage_kg = Column(Integer, default=0)
    hand_luggage_kg = Column(Integer, default=10)
    cancellation_fee = Column(Numeric(10, 2))
    status = Column(String(20), nullable=False, default="ISSUED", index=True)
    refund_amount = Column(Numeric(10, 2))
    cancelled_at = Column(DateTime(timezone=True))
    checked_in_at = Column(DateTime(timezone=True))
    boarded_at = Column(DateTime(timezone=True))

    booking = relationship("BookingRecord", back_populates="tickets")

# ================================
# Holidays (price calendar)
# ================================
class HolidayRecord(Base):
    __tablename__ = "holidays"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    country = Column(String(2), nullable=False, index=True)
    holiday_date = Column(Date, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)
    notes = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

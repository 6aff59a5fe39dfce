from pydantic import BaseModel, Field, PrivateAttr
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

from airline_booking.flights.schemas import CabinClass, SeatPreference

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    COMPLETED = "COMPLETED"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUND_PENDING = "REFUND_PENDING"
    REFUNDED = "REFUNDED"

class TicketStatus(str, Enum):
    """Ticket status enumeration"""
    ISSUED = "ISSUED"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    BOARDED = "BOARDED"
    USED = "USED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    VOIDED = "VOIDED"

class FareType(str, Enum):
    ECONOMY_STANDARD = "ECONOMY_STANDARD"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"

class TripType(str, Enum):
    ONE_WAY = "ONE_WAY"
    ROUND_TRIP = "ROUND_TRIP"

class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"

# Tickets that no longer hold a seat
RELEASED_TICKET_STATUSES = (TicketStatus.CANCELLED, TicketStatus.VOIDED)

# Passenger Information
class PassengerInfo(BaseModel):
    """Passenger details as submitted with a booking request"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    passport_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    gender: Optional[Gender] = None
    passport_country: Optional[str] = None
    passport_expiry: Optional[date] = None
    cabin_class: Optional[CabinClass] = None  # falls back to the request default
    seat_number: Optional[str] = None
    seat_preference: Optional[SeatPreference] = None
    save_for_future: bool = False

class Passenger(BaseModel):
    """Stored passenger, optionally saved against a user for reuse"""
    id: Optional[int] = None
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    passport_number: str
    date_of_birth: date
    nationality: str
    gender: Gender
    passport_country: str
    passport_expiry: date
    saved: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

# Ticket Models
class Ticket(BaseModel):
    """One passenger on one flight"""
    id: Optional[int] = None
    booking_reference: Optional[str] = None
    ticket_number: Optional[str] = None
    e_ticket_number: Optional[str] = None
    flight_id: int
    flight_number: str
    departure_time: datetime
    passenger_id: Optional[int] = None
    passenger_name: str
    cabin_class: CabinClass
    seat_number: Optional[str] = None
    seat_preference: Optional[SeatPreference] = None
    price: Decimal
    base_fare: Decimal
    taxes: Decimal
    fare_type: FareType
    is_refundable: bool
    is_changeable: bool = True
    checked_baggage_kg: int
    hand_luggage_kg: int = 10
    cancellation_fee: Optional[Decimal] = None
    status: TicketStatus = TicketStatus.ISSUED
    refund_amount: Optional[Decimal] = None
    cancelled_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    boarded_at: Optional[datetime] = None

    @property
    def holds_seat(self) -> bool:
        return self.status not in RELEASED_TICKET_STATUSES

# Booking Models
class Booking(BaseModel):
    """Booking with the tickets it owns"""
    id: Optional[int] = None
    booking_reference: str
    user_id: str
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    trip_type: TripType = TripType.ONE_WAY
    total_amount: Decimal = Decimal("0.00")
    paid_amount: Decimal = Decimal("0.00")
    refund_amount: Optional[Decimal] = None
    created_at: datetime
    expires_at: datetime
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    contact_email: str
    contact_phone: str
    special_requests: Optional[str] = None
    tickets: List[Ticket] = Field(default_factory=list)
    # version of the stored row this copy was loaded from; 0 until first save
    _version: int = PrivateAttr(default=0)

    def is_expired(self, now: datetime) -> bool:
        return self.status == BookingStatus.PENDING and now > self.expires_at

    def confirm(self, now: datetime) -> None:
        self.status = BookingStatus.CONFIRMED
        self.confirmed_at = now
        self.payment_status = PaymentStatus.PAID
        self.paid_amount = self.total_amount

    def mark_cancelled(self, reason: Optional[str], now: datetime) -> None:
        self.status = BookingStatus.CANCELLED
        self.cancelled_at = now
        self.cancellation_reason = reason
        if self.payment_status == PaymentStatus.PAID:
            self.payment_status = PaymentStatus.REFUND_PENDING

    def mark_expired(self) -> None:
        self.status = BookingStatus.EXPIRED

class CreateBookingRequest(BaseModel):
    """Booking request; add return_flight_id to book both legs at once"""
    flight_id: Optional[int] = None
    return_flight_id: Optional[int] = None
    default_cabin_class: Optional[CabinClass] = None
    passengers: List[PassengerInfo] = Field(default_factory=list)
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    special_requests: Optional[str] = None

class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None

class CheckInRequest(BaseModel):
    seat_number: Optional[str] = None

class RefundPercentageResponse(BaseModel):
    booking_reference: str
    refund_percentage: int
    hours_until_departure: Optional[float] = None

class ExpirationSweepResult(BaseModel):
    """Outcome of one pass over overdue PENDING bookings"""
    checked: int = 0
    expired: int = 0
    failed: int = 0

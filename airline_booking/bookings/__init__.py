"""
Booking & Ticketing Module

Booking lifecycle on top of the seat inventory and the pricing engine:

- Creation with all-or-nothing seat reservation across cabin classes and legs
- Confirmation within the 15-minute payment window
- Cancellation with tiered refunds and grouped seat release
- Time-triggered expiry of unpaid bookings
- Ticket check-in and boarding

Key Components:
- booking_service.py: Booking state machine
- refund.py: Refund tiers by hours until departure
- ticket_service.py: Ticket numbers, check-in and boarding
- expiration.py: Background sweep over overdue PENDING bookings
- repository.py: In-memory and SQLAlchemy booking and passenger stores
- router.py: FastAPI endpoints for bookings and tickets
- schemas.py: Pydantic models for bookings, tickets and passengers
"""

from .router import router
from .booking_service import BookingService
from .ticket_service import TicketNumberGenerator, TicketService
from .refund import RefundCalculator
from .expiration import BookingExpirationScheduler
from .repository import (
    BookingRepository, InMemoryBookingRepository, InMemoryPassengerRepository, PassengerRepository,
    SqlAlchemyBookingRepository, SqlAlchemyPassengerRepository
)
from .schemas import (
    Booking, BookingStatus, CreateBookingRequest, Passenger, PassengerInfo,
    PaymentStatus, Ticket, TicketStatus
)

__all__ = [
    "router",
    "BookingService",
    "TicketNumberGenerator",
    "TicketService",
    "RefundCalculator",
    "BookingExpirationScheduler",
    "BookingRepository",
    "InMemoryBookingRepository",
    "InMemoryPassengerRepository",
    "PassengerRepository",
    "SqlAlchemyBookingRepository",
    "SqlAlchemyPassengerRepository",
    "Booking",
    "BookingStatus",
    "CreateBookingRequest",
    "Passenger",
    "PassengerInfo",
    "PaymentStatus",
    "Ticket",
    "TicketStatus"
]

"""
Service wiring.

``build_services`` assembles one service graph: flight store, seat inventory,
pricing, seat assignment, bookings, tickets and the expiry sweep. Everything
that shares state (stores, lock registries, clock) is shared by construction.

With ``STORAGE_BACKEND=sql`` every store lives in the database, so a restart
keeps bookings and seat counters in step and several workers can share them.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from airline_booking.bookings.booking_service import BookingService
from airline_booking.bookings.expiration import BookingExpirationScheduler
from airline_booking.bookings.repository import (
    BookingRepository, InMemoryBookingRepository, InMemoryPassengerRepository,
    SqlAlchemyBookingRepository, SqlAlchemyPassengerRepository
)
from airline_booking.bookings.ticket_service import TicketNumberGenerator, TicketService
from airline_booking.config import Settings, settings as default_settings
from airline_booking.flights.flight_service import FlightService
from airline_booking.flights.inventory import SeatInventory, SqlSeatInventory
from airline_booking.flights.repository import (
    FlightRepository, InMemoryFlightRepository, SqlAlchemyFlightRepository
)
from airline_booking.flights.seat_service import SeatAssignmentService
from airline_booking.locks import LockRegistry
from airline_booking.notifications import LoggingNotificationService, NotificationService
from airline_booking.pricing.holidays import (
    HolidayRepository, InMemoryHolidayRepository, SqlAlchemyHolidayRepository
)
from airline_booking.pricing.pricing_service import PricingService
from airline_booking.pricing.roundtrip_service import RoundTripService
from airline_booking.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass
class Services:
    flight_repository: FlightRepository
    booking_repository: BookingRepository
    holiday_repository: HolidayRepository
    inventory: SeatInventory
    flights: FlightService
    seats: SeatAssignmentService
    pricing: PricingService
    round_trips: RoundTripService
    bookings: BookingService
    tickets: TicketService
    expiration: BookingExpirationScheduler


def build_services(
    app_settings: Optional[Settings] = None,
    clock: Clock = utc_now,
    session_factory: Optional[Callable[[], Session]] = None,
    notifications: Optional[NotificationService] = None,
) -> Services:
    app_settings = app_settings or default_settings
    flight_locks = LockRegistry("flights")
    booking_locks = LockRegistry("bookings")

    if app_settings.STORAGE_BACKEND == "sql":
        if session_factory is None:
            from airline_booking.database import SessionLocal, create_tables
            create_tables()
            session_factory = SessionLocal
        flight_repository = SqlAlchemyFlightRepository(session_factory)
        inventory = SqlSeatInventory(flight_repository, session_factory, flight_locks)
        booking_repository = SqlAlchemyBookingRepository(session_factory)
        passenger_repository = SqlAlchemyPassengerRepository(session_factory)
        holiday_repository = SqlAlchemyHolidayRepository(session_factory)
    else:
        flight_repository = InMemoryFlightRepository()
        inventory = SeatInventory(flight_repository, flight_locks)
        booking_repository = InMemoryBookingRepository()
        passenger_repository = InMemoryPassengerRepository()
        holiday_repository = InMemoryHolidayRepository()

    logger.info("Using %s storage", app_settings.STORAGE_BACKEND)

    flight_service = FlightService(flight_repository, app_settings.LOCAL_TIMEZONE)
    seat_service = SeatAssignmentService(booking_repository.occupied_seats)
    pricing_service = PricingService(
        flight_repository, clock, app_settings.LOCAL_TIMEZONE,
        holiday_repository=holiday_repository, holiday_country=app_settings.HOLIDAY_COUNTRY,
    )
    round_trip_service = RoundTripService(flight_service, pricing_service)

    booking_service = BookingService(
        booking_repository=booking_repository,
        passenger_repository=passenger_repository,
        flight_service=flight_service,
        inventory=inventory,
        pricing_service=pricing_service,
        seat_service=seat_service,
        ticket_numbers=TicketNumberGenerator(clock=clock),
        notifications=notifications or LoggingNotificationService(),
        booking_locks=booking_locks,
        clock=clock,
        expiration_minutes=app_settings.BOOKING_EXPIRATION_MINUTES,
        max_passengers=app_settings.MAX_PASSENGERS_PER_BOOKING,
        min_hours_before_departure=app_settings.MIN_HOURS_BEFORE_DEPARTURE,
    )
    ticket_service = TicketService(
        booking_repository, flight_service, inventory, seat_service, booking_locks, clock
    )

    return Services(
        flight_repository=flight_repository,
        booking_repository=booking_repository,
        holiday_repository=holiday_repository,
        inventory=inventory,
        flights=flight_service,
        seats=seat_service,
        pricing=pricing_service,
        round_trips=round_trip_service,
        bookings=booking_service,
        tickets=ticket_service,
        expiration=BookingExpirationScheduler(
            booking_service, app_settings.EXPIRATION_SWEEP_INTERVAL_SECONDS
        ),
    )

import itertools
import logging
import secrets
import threading
from datetime import timedelta
from typing import Optional, Tuple

from airline_booking.bookings.repository import BookingRepository
from airline_booking.bookings.schemas import Booking, Ticket, TicketStatus
from airline_booking.exceptions import AccessDenied, BookingNotFound, InvalidTransition
from airline_booking.flights.flight_service import FlightService
from airline_booking.flights.inventory import SeatInventory
from airline_booking.flights.seat_service import SeatAssignmentService
from airline_booking.locks import LockRegistry
from airline_booking.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)

E_TICKET_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CHECK_IN_OPENS = timedelta(hours=24)


class TicketNumberGenerator:
    """
    Issues 13-digit ticket numbers: airline prefix, 5 digits of the clock in
    milliseconds, 5 digits of a process-wide sequence.
    """

    def __init__(self, prefix: str = "555", clock: Clock = utc_now, start: int = 1):
        self.prefix = prefix
        self.clock = clock
        self._sequence = itertools.count(start)
        self._lock = threading.Lock()

    def next_ticket_number(self) -> str:
        with self._lock:
            count = next(self._sequence) % 100000
        millis = int(self.clock().timestamp() * 1000) % 100000
        return f"{self.prefix}{millis:05d}{count:05d}"

    @staticmethod
    def next_e_ticket_number() -> str:
        return "".join(secrets.choice(E_TICKET_ALPHABET) for _ in range(6))


class TicketService:
    """Check-in and boarding of issued tickets"""

    def __init__(
        self,
        booking_repository: BookingRepository,
        flight_service: FlightService,
        inventory: SeatInventory,
        seat_service: SeatAssignmentService,
        booking_locks: Optional[LockRegistry] = None,
        clock: Clock = utc_now,
    ):
        self.booking_repository = booking_repository
        self.flight_service = flight_service
        self.inventory = inventory
        self.seat_service = seat_service
        self.booking_locks = booking_locks or LockRegistry("bookings")
        self.clock = clock

    def get_ticket(self, ticket_id: int, user_id: Optional[str] = None) -> Tuple[Booking, Ticket]:
        found = self.booking_repository.find_ticket(ticket_id)
        if found is None:
            raise BookingNotFound(f"Ticket not found: {ticket_id}")
        booking, ticket = found
        if user_id is not None and booking.user_id != user_id:
            raise AccessDenied("Access denied")
        return booking, ticket

    def check_in(self, ticket_id: int, user_id: Optional[str] = None, seat_number: Optional[str] = None) -> Ticket:
        """
        Check in a CONFIRMED ticket during the 24 hours before departure,
        optionally moving to another free seat of the same cabin.
        """
        booking, _ = self.get_ticket(ticket_id, user_id)

        with self.booking_locks.hold(booking.booking_reference):
            booking, ticket = self.get_ticket(ticket_id, user_id)
            if ticket.status != TicketStatus.CONFIRMED:
                raise InvalidTransition(f"Cannot check in ticket in status: {ticket.status.value}")

            flight = self.flight_service.get_flight(ticket.flight_id)
            now = self.clock()
            if not flight.departure_time - CHECK_IN_OPENS <= now < flight.departure_time:
                raise InvalidTransition("Check-in is open during the 24 hours before departure")

            with self.inventory.hold(flight.id):
                requested = seat_number.strip().upper() if seat_number and seat_number.strip() else None
                if requested and requested != ticket.seat_number:
                    ticket.seat_number = self.seat_service.assign(flight, ticket.cabin_class, requested)

                ticket.status = TicketStatus.CHECKED_IN
                ticket.checked_in_at = now
                self.booking_repository.save(booking)

        logger.info("Ticket %s checked in, seat %s", ticket.ticket_number, ticket.seat_number)
        return ticket

    def board(self, ticket_id: int) -> Ticket:
        booking, _ = self.get_ticket(ticket_id)

        with self.booking_locks.hold(booking.booking_reference):
            booking, ticket = self.get_ticket(ticket_id)
            if ticket.status != TicketStatus.CHECKED_IN:
                raise InvalidTransition(f"Cannot board ticket in status: {ticket.status.value}")
            ticket.status = TicketStatus.BOARDED
            ticket.boarded_at = self.clock()
            self.booking_repository.save(booking)

        logger.info("Ticket %s boarded on flight %s", ticket.ticket_number, ticket.flight_number)
        return ticket

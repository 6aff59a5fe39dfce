import logging
import secrets
import threading
from collections import Counter
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from airline_booking.bookings.refund import RefundCalculator
from airline_booking.bookings.repository import BookingRepository, PassengerRepository
from airline_booking.bookings.schemas import (
    Booking, BookingStatus, CreateBookingRequest, FareType, Passenger, PassengerInfo,
    PaymentStatus, RefundPercentageResponse, Ticket, TicketStatus, TripType
)
from airline_booking.bookings.ticket_service import TicketNumberGenerator
from airline_booking.config import settings
from airline_booking.exceptions import (
    AccessDenied, BookingExpired, BookingNotFound, BookingSystemError, FlightNotBookable,
    InsufficientSeats, InvalidTransition, ValidationError
)
from airline_booking.flights.flight_service import FlightService
from airline_booking.flights.inventory import SeatInventory
from airline_booking.flights.schemas import CabinClass, Flight
from airline_booking.flights.seat_service import SeatAssignmentService
from airline_booking.locks import LockRegistry
from airline_booking.notifications import LoggingNotificationService, NotificationService
from airline_booking.pricing.pricing_service import PricingService, round2
from airline_booking.pricing.schemas import PricingQuote
from airline_booking.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFERENCE_LENGTH = 6
MAX_REFERENCE_ATTEMPTS = 100

TAX_SHARE = Decimal("0.15")

REFUNDABLE_CLASSES = (CabinClass.PREMIUM_ECONOMY, CabinClass.BUSINESS, CabinClass.FIRST_CLASS)

CHECKED_BAGGAGE_KG = {
    CabinClass.ECONOMY: 0,
    CabinClass.PREMIUM_ECONOMY: 23,
    CabinClass.BUSINESS: 32,
    CabinClass.FIRST_CLASS: 40,
}

FARE_TYPES = {
    CabinClass.ECONOMY: FareType.ECONOMY_STANDARD,
    CabinClass.PREMIUM_ECONOMY: FareType.PREMIUM_ECONOMY,
    CabinClass.BUSINESS: FareType.BUSINESS,
    CabinClass.FIRST_CLASS: FareType.FIRST,
}

REQUIRED_PASSENGER_FIELDS = (
    ("first_name", "Passenger first name is required"),
    ("last_name", "Passenger last name is required"),
    ("passport_number", "Passport number is required"),
    ("date_of_birth", "Date of birth is required"),
    ("nationality", "Nationality is required"),
    ("gender", "Gender is required"),
    ("passport_country", "Passport country is required"),
    ("passport_expiry", "Passport expiry date is required"),
)


class BookingService:
    """
    Booking state machine.

    PENDING -> CONFIRMED | CANCELLED | EXPIRED, CONFIRMED -> CANCELLED.
    Creation reserves seats all-or-nothing under the locks of every flight in
    the request. Confirm, cancel and expire run under the booking's own lock,
    so a confirm racing the expiry sweep sees whichever one committed first.
    """

    def __init__(
        self,
        booking_repository: BookingRepository,
        passenger_repository: PassengerRepository,
        flight_service: FlightService,
        inventory: SeatInventory,
        pricing_service: PricingService,
        seat_service: SeatAssignmentService,
        ticket_numbers: TicketNumberGenerator,
        notifications: Optional[NotificationService] = None,
        refund_calculator: Optional[RefundCalculator] = None,
        booking_locks: Optional[LockRegistry] = None,
        clock: Clock = utc_now,
        expiration_minutes: int = None,
        max_passengers: int = None,
        min_hours_before_departure: int = None,
    ):
        self.booking_repository = booking_repository
        self.passenger_repository = passenger_repository
        self.flight_service = flight_service
        self.inventory = inventory
        self.pricing_service = pricing_service
        self.seat_service = seat_service
        self.ticket_numbers = ticket_numbers
        self.notifications = notifications or LoggingNotificationService()
        self.refund_calculator = refund_calculator or RefundCalculator()
        self.booking_locks = booking_locks or LockRegistry("bookings")
        self.clock = clock
        self.expiration_minutes = expiration_minutes or settings.BOOKING_EXPIRATION_MINUTES
        self.max_passengers = max_passengers or settings.MAX_PASSENGERS_PER_BOOKING
        self.min_hours_before_departure = (
            settings.MIN_HOURS_BEFORE_DEPARTURE
            if min_hours_before_departure is None else min_hours_before_departure
        )
        self._reference_lock = threading.Lock()

    # === Create ===

    def create_booking(self, request: CreateBookingRequest, user_id: str) -> Booking:
        """Price, reserve and issue tickets for every passenger on every leg"""

        logger.info("Creating booking for user %s", user_id)
        self._validate_request(request)

        default_class = request.default_cabin_class or CabinClass.ECONOMY
        cabin_classes = [p.cabin_class or default_class for p in request.passengers]
        seats_by_class = Counter(cabin_classes)

        flight_ids = [request.flight_id]
        if request.return_flight_id is not None:
            flight_ids.append(request.return_flight_id)

        now = self.clock()
        booking_date = self.pricing_service.today()

        with self.inventory.hold(*flight_ids):
            flights = [self.flight_service.get_flight(flight_id) for flight_id in flight_ids]
            self._check_bookable(flights, now)

            # Snapshot prices before our own reservation moves occupancy
            quotes = {
                (flight.id, cabin): self.pricing_service.quote(flight, cabin, booking_date)
                for flight in flights for cabin in seats_by_class
            }

            reserved: List[Tuple[int, CabinClass, int]] = []
            try:
                for flight in flights:
                    for cabin, count in seats_by_class.items():
                        result = self.inventory.reserve(flight.id, cabin, count)
                        if not result:
                            raise InsufficientSeats(cabin, count, result.available, flight.flight_number)
                        reserved.append((flight.id, cabin, count))

                booking = self._issue_booking(request, user_id, flights, cabin_classes, quotes, now)
            except Exception:
                self._roll_back(reserved)
                raise

        logger.info(
            "Booking %s created: %d passengers, %d tickets, classes %s, total %s",
            booking.booking_reference, len(request.passengers), len(booking.tickets),
            {c.value: n for c, n in seats_by_class.items()}, booking.total_amount,
        )
        return booking

    def _validate_request(self, request: CreateBookingRequest) -> None:
        if request.flight_id is None:
            raise ValidationError("Flight ID is required")
        if not request.passengers:
            raise ValidationError("At least one passenger is required")
        if len(request.passengers) > self.max_passengers:
            raise ValidationError(f"Maximum {self.max_passengers} passengers per booking")
        if not (request.contact_email or "").strip():
            raise ValidationError("Contact email is required")
        if not (request.contact_phone or "").strip():
            raise ValidationError("Contact phone is required")
        if request.return_flight_id is not None and request.return_flight_id == request.flight_id:
            raise ValidationError("Return flight must differ from the outbound flight")

        for passenger in request.passengers:
            for field, message in REQUIRED_PASSENGER_FIELDS:
                value = getattr(passenger, field)
                if value is None or (isinstance(value, str) and not value.strip()):
                    raise ValidationError(message)

    def _check_bookable(self, flights: List[Flight], now) -> None:
        for flight in flights:
            if not flight.is_bookable(now, self.min_hours_before_departure):
                raise FlightNotBookable(f"Flight {flight.flight_number} is not available for booking")

        if len(flights) == 2:
            outbound, inbound = flights
            if inbound.origin != outbound.destination or inbound.destination != outbound.origin:
                raise ValidationError("Return flight must fly the outbound route in reverse")
            if inbound.departure_time <= outbound.arrival_time:
                raise ValidationError("Return flight must depart after the outbound flight arrives")

    def _issue_booking(
        self,
        request: CreateBookingRequest,
        user_id: str,
        flights: List[Flight],
        cabin_classes: List[CabinClass],
        quotes: Dict[Tuple[int, CabinClass], PricingQuote],
        now,
    ) -> Booking:
        passengers = [self._resolve_passenger(info, user_id) for info in request.passengers]

        # Seats handed out in this request, per flight
        pending: Dict[int, List[str]] = {flight.id: [] for flight in flights}
        tickets: List[Ticket] = []

        for leg, flight in enumerate(flights):
            for info, passenger, cabin in zip(request.passengers, passengers, cabin_classes):
                # An explicit seat number applies to the outbound leg only
                requested_seat = info.seat_number if leg == 0 else None
                seat = self.seat_service.assign(
                    flight, cabin, requested_seat, info.seat_preference, pending[flight.id]
                )
                pending[flight.id].append(seat)

                quote = quotes[(flight.id, cabin)]
                tickets.append(self._build_ticket(flight, passenger, info, cabin, seat, quote.total_price))
                logger.debug(
                    "Assigned %s seat %s on %s to %s (price %s)",
                    cabin.value, seat, flight.flight_number, passenger.full_name, quote.total_price,
                )

        for passenger in passengers:
            self.passenger_repository.save(passenger)
        for ticket, passenger in zip(tickets, passengers * len(flights)):
            ticket.passenger_id = passenger.id

        booking = Booking(
            booking_reference=self._generate_reference(),
            user_id=user_id,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            trip_type=TripType.ROUND_TRIP if len(flights) == 2 else TripType.ONE_WAY,
            total_amount=sum((t.price for t in tickets), Decimal("0.00")),
            created_at=now,
            expires_at=now + timedelta(minutes=self.expiration_minutes),
            contact_email=request.contact_email.strip(),
            contact_phone=request.contact_phone.strip(),
            special_requests=request.special_requests,
            tickets=tickets,
        )
        return self.booking_repository.save(booking)

    def _resolve_passenger(self, info: PassengerInfo, user_id: str) -> Passenger:
        if info.save_for_future:
            existing = self.passenger_repository.find_by_passport(user_id, info.passport_number)
            if existing is not None and existing.saved:
                return existing

        return Passenger(
            user_id=user_id,
            first_name=info.first_name.strip(),
            last_name=info.last_name.strip(),
            passport_number=info.passport_number.strip(),
            date_of_birth=info.date_of_birth,
            nationality=info.nationality,
            gender=info.gender,
            passport_country=info.passport_country,
            passport_expiry=info.passport_expiry,
            saved=info.save_for_future,
        )

    def _build_ticket(self, flight, passenger, info, cabin, seat, price) -> Ticket:
        taxes = round2(price * TAX_SHARE)
        return Ticket(
            ticket_number=self.ticket_numbers.next_ticket_number(),
            e_ticket_number=self.ticket_numbers.next_e_ticket_number(),
            flight_id=flight.id,
            flight_number=flight.flight_number,
            departure_time=flight.departure_time,
            passenger_name=passenger.full_name,
            cabin_class=cabin,
            seat_number=seat,
            seat_preference=info.seat_preference,
            price=price,
            base_fare=price - taxes,
            taxes=taxes,
            fare_type=FARE_TYPES[cabin],
            is_refundable=cabin in REFUNDABLE_CLASSES,
            is_changeable=True,
            checked_baggage_kg=CHECKED_BAGGAGE_KG[cabin],
            hand_luggage_kg=10,
            status=TicketStatus.ISSUED,
        )

    def _generate_reference(self) -> str:
        with self._reference_lock:
            for _ in range(MAX_REFERENCE_ATTEMPTS):
                reference = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))
                if not self.booking_repository.exists_reference(reference):
                    return reference
        raise BookingSystemError("Could not generate a unique booking reference", status_code=500)

    def _roll_back(self, reserved: List[Tuple[int, CabinClass, int]]) -> None:
        for flight_id, cabin, count in reversed(reserved):
            try:
                self.inventory.release(flight_id, cabin, count)
            except BookingSystemError:
                logger.exception("Rollback of %d %s seats on flight %s failed", count, cabin.value, flight_id)
        if reserved:
            logger.info("Rolled back %d reservations", len(reserved))

    # === Transitions ===

    def confirm_booking(self, booking_reference: str, user_id: Optional[str] = None) -> Booking:
        """Take payment (mocked) and confirm a PENDING booking inside its payment window"""

        expired_now = False
        with self.booking_locks.hold(booking_reference):
            booking = self._load(booking_reference, user_id)
            now = self.clock()

            if booking.status == BookingStatus.EXPIRED:
                raise BookingExpired(booking_reference)

            if booking.is_expired(now):
                logger.warning("Booking %s expired before confirmation", booking_reference)
                self._expire_locked(booking)
                expired_now = True
            elif booking.status != BookingStatus.PENDING:
                raise InvalidTransition(f"Cannot confirm booking in status: {booking.status.value}")
            else:
                booking.confirm(now)
                for ticket in booking.tickets:
                    ticket.status = TicketStatus.CONFIRMED
                self.booking_repository.save(booking)

        if expired_now:
            self._notify("booking_expired", booking)
            raise BookingExpired(booking_reference)

        logger.info("Booking %s confirmed, amount %s", booking_reference, booking.total_amount)
        self._notify("booking_confirmed", booking)
        return booking

    def cancel_booking(
        self, booking_reference: str, user_id: Optional[str] = None, reason: Optional[str] = None
    ) -> Booking:
        """Cancel with tiered refunds and give the seats back to inventory"""

        logger.info("Cancelling booking %s by user %s, reason: %s", booking_reference, user_id, reason)

        with self.booking_locks.hold(booking_reference):
            booking = self._load(booking_reference, user_id, denied_message="Not authorized to cancel this booking")

            if booking.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
                raise InvalidTransition(f"Booking cannot be cancelled. Status: {booking.status.value}")

            for ticket in booking.tickets:
                if ticket.status == TicketStatus.CANCELLED:
                    raise InvalidTransition(f"Ticket {ticket.ticket_number} already cancelled")
                if ticket.status in (TicketStatus.USED, TicketStatus.BOARDED):
                    raise InvalidTransition(f"Cannot cancel used ticket {ticket.ticket_number}")

            now = self.clock()
            flights = self._flights_of(booking)
            seats_to_release: Counter = Counter()
            total_refund = Decimal("0.00")

            for ticket in booking.tickets:
                hours = flights[ticket.flight_id].hours_until_departure(now)
                refund = self.refund_calculator.refund(ticket, hours)
                ticket.status = TicketStatus.CANCELLED
                ticket.refund_amount = refund
                ticket.cancelled_at = now
                total_refund += refund
                seats_to_release[(ticket.flight_id, ticket.cabin_class)] += 1
                logger.debug(
                    "Ticket %s cancelled, refund %s (%d%% tier)", ticket.ticket_number, refund,
                    self.refund_calculator.refund_percentage(ticket, hours),
                )

            booking.mark_cancelled(reason, now)
            booking.refund_amount = total_refund
            # Seats go back only once the cancellation is stored
            self.booking_repository.save(booking)
            released = self._release(seats_to_release)

        logger.info(
            "Booking %s cancelled. Released %d seats. Total refund: %s",
            booking_reference, released, total_refund,
        )
        self._notify("booking_cancelled", booking)
        return booking

    def expire_booking(self, booking_reference: str) -> Booking:
        """
        Expire a PENDING booking whose payment window has closed.

        Running it again on an EXPIRED booking does nothing. Any other state,
        or a booking still inside its window, is an invalid transition.
        """
        with self.booking_locks.hold(booking_reference):
            booking = self._load(booking_reference)

            if booking.status == BookingStatus.EXPIRED:
                logger.debug("Booking %s already expired", booking_reference)
                return booking
            if booking.status != BookingStatus.PENDING:
                raise InvalidTransition(f"Cannot expire booking in status: {booking.status.value}")
            if not booking.is_expired(self.clock()):
                raise InvalidTransition(f"Booking {booking_reference} is still within its payment window")

            self._expire_locked(booking)

        self._notify("booking_expired", booking)
        return booking

    def _expire_locked(self, booking: Booking) -> None:
        seats_to_release: Counter = Counter()
        for ticket in booking.tickets:
            if ticket.holds_seat:
                seats_to_release[(ticket.flight_id, ticket.cabin_class)] += 1
            ticket.status = TicketStatus.VOIDED

        booking.mark_expired()
        self.booking_repository.save(booking)
        released = self._release(seats_to_release)
        logger.info("Booking %s expired, released %d seats", booking.booking_reference, released)

    def _release(self, seats_to_release: Counter) -> int:
        """One release call per (flight, cabin class) group"""
        released = 0
        groups = sorted(seats_to_release.items(), key=lambda item: (item[0][0], item[0][1].value))
        for (flight_id, cabin), count in groups:
            released += self.inventory.release(flight_id, cabin, count)
        return released

    # === Queries ===

    def find_overdue_references(self) -> List[str]:
        return [b.booking_reference for b in self.booking_repository.find_expired(self.clock())]

    def get_booking(self, booking_reference: str, user_id: Optional[str] = None) -> Booking:
        return self._load(booking_reference, user_id)

    def get_user_bookings(self, user_id: str) -> List[Booking]:
        return self.booking_repository.list_by_user(user_id)

    def get_saved_passengers(self, user_id: str) -> List[Passenger]:
        return self.passenger_repository.find_saved(user_id)

    def get_refund_percentage(self, booking_reference: str, user_id: Optional[str] = None) -> RefundPercentageResponse:
        """Refund tier the whole booking would get if cancelled now"""
        booking = self._load(booking_reference, user_id)
        now = self.clock()
        flights = self._flights_of(booking)

        if not booking.tickets:
            return RefundPercentageResponse(booking_reference=booking_reference, refund_percentage=0)

        min_hours = min(flights[t.flight_id].hours_until_departure(now) for t in booking.tickets)
        return RefundPercentageResponse(
            booking_reference=booking_reference,
            refund_percentage=self.refund_calculator.booking_refund_percentage(booking.tickets, min_hours),
            hours_until_departure=round(min_hours, 2),
        )

    def _load(self, booking_reference: str, user_id: Optional[str] = None, denied_message: str = "Access denied") -> Booking:
        booking = self.booking_repository.get_by_reference(booking_reference)
        if booking is None:
            raise BookingNotFound(f"Booking not found with reference: {booking_reference}")
        if user_id is not None and booking.user_id != user_id:
            logger.warning("Access denied to booking %s for user %s", booking_reference, user_id)
            raise AccessDenied(denied_message)
        return booking

    def _flights_of(self, booking: Booking) -> Dict[int, Flight]:
        return {
            flight_id: self.flight_service.get_flight(flight_id)
            for flight_id in {t.flight_id for t in booking.tickets}
        }

    def _notify(self, event: str, booking: Booking) -> None:
        try:
            getattr(self.notifications, event)(booking)
        except Exception:
            logger.exception("Notification %s failed for booking %s", event, booking.booking_reference)

"""
Booking and passenger stores.

Bookings own their tickets, so a booking is saved and loaded as a whole.
The in-memory stores hand out live objects; the SQLAlchemy stores hand out
copies and reject a save made from a stale copy.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from airline_booking.bookings.schemas import (
    RELEASED_TICKET_STATUSES, Booking, BookingStatus, Passenger, Ticket
)
from airline_booking.exceptions import ConcurrentModification
from airline_booking.flights.repository import as_utc
from airline_booking.models import BookingRecord, PassengerRecord, TicketRecord


class BookingRepository(ABC):

    @abstractmethod
    def save(self, booking: Booking) -> Booking:
        """Insert or replace a booking, assigning ids to it and its tickets"""

    @abstractmethod
    def get_by_reference(self, booking_reference: str) -> Optional[Booking]:
        ...

    @abstractmethod
    def exists_reference(self, booking_reference: str) -> bool:
        ...

    @abstractmethod
    def list_by_user(self, user_id: str) -> List[Booking]:
        """A user's bookings, newest first"""

    @abstractmethod
    def find_expired(self, now: datetime) -> List[Booking]:
        """PENDING bookings whose payment window has closed"""

    @abstractmethod
    def occupied_seats(self, flight_id: int) -> Set[str]:
        """Seat codes held by live tickets on a flight"""

    @abstractmethod
    def find_ticket(self, ticket_id: int) -> Optional[Tuple[Booking, Ticket]]:
        ...


class InMemoryBookingRepository(BookingRepository):

    def __init__(self):
        self._bookings: Dict[str, Booking] = {}
        self._booking_ids = itertools.count(1)
        self._ticket_ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id is None:
                booking.id = next(self._booking_ids)
            for ticket in booking.tickets:
                if ticket.id is None:
                    ticket.id = next(self._ticket_ids)
                ticket.booking_reference = booking.booking_reference
            self._bookings[booking.booking_reference] = booking
        return booking

    def get_by_reference(self, booking_reference: str) -> Optional[Booking]:
        return self._bookings.get(booking_reference)

    def exists_reference(self, booking_reference: str) -> bool:
        return booking_reference in self._bookings

    def list_by_user(self, user_id: str) -> List[Booking]:
        bookings = [b for b in list(self._bookings.values()) if b.user_id == user_id]
        return sorted(bookings, key=lambda b: (b.created_at, b.id), reverse=True)

    def find_expired(self, now: datetime) -> List[Booking]:
        return [
            b for b in list(self._bookings.values())
            if b.status == BookingStatus.PENDING and b.expires_at < now
        ]

    def occupied_seats(self, flight_id: int) -> Set[str]:
        seats = set()
        for booking in list(self._bookings.values()):
            for ticket in booking.tickets:
                if ticket.flight_id == flight_id and ticket.seat_number and ticket.holds_seat:
                    seats.add(ticket.seat_number)
        return seats

    def find_ticket(self, ticket_id: int) -> Optional[Tuple[Booking, Ticket]]:
        for booking in list(self._bookings.values()):
            for ticket in booking.tickets:
                if ticket.id == ticket_id:
                    return booking, ticket
        return None

    def __len__(self) -> int:
        return len(self._bookings)


BOOKING_COLUMNS = (
    "booking_reference", "user_id", "status", "payment_status", "trip_type",
    "total_amount", "paid_amount", "refund_amount", "created_at", "expires_at",
    "confirmed_at", "cancelled_at", "cancellation_reason", "contact_email",
    "contact_phone", "special_requests",
)

TICKET_COLUMNS = (
    "ticket_number", "e_ticket_number", "flight_id", "flight_number", "departure_time",
    "passenger_id", "passenger_name", "cabin_class", "seat_number", "seat_preference",
    "price", "base_fare", "taxes", "fare_type", "is_refundable", "is_changeable",
    "checked_baggage_kg", "hand_luggage_kg", "cancellation_fee", "status",
    "refund_amount", "cancelled_at", "checked_in_at", "boarded_at",
)

PASSENGER_COLUMNS = (
    "user_id", "first_name", "last_name", "passport_number", "date_of_birth",
    "nationality", "gender", "passport_country", "passport_expiry", "saved",
)


def _column_value(value):
    return value.value if isinstance(value, Enum) else value


def _row(record, columns) -> dict:
    values = {}
    for column in columns:
        value = getattr(record, column)
        values[column] = as_utc(value) if isinstance(value, datetime) else value
    return values


def record_to_ticket(record: TicketRecord, booking_reference: str) -> Ticket:
    return Ticket(id=record.id, booking_reference=booking_reference, **_row(record, TICKET_COLUMNS))


def record_to_booking(record: BookingRecord) -> Booking:
    booking = Booking(
        id=record.id,
        tickets=[record_to_ticket(t, record.booking_reference) for t in record.tickets],
        **_row(record, BOOKING_COLUMNS),
    )
    booking._version = record.version
    return booking


class SqlAlchemyBookingRepository(BookingRepository):
    """
    Booking store backed by the ``bookings`` and ``tickets`` tables.

    Every save bumps the row's version and only applies to the version the
    booking was loaded from, so two workers cannot both move the same booking
    out of PENDING. A partial unique index keeps one live ticket per seat.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def save(self, booking: Booking) -> Booking:
        try:
            with self.session_factory() as db:
                if booking.id is None:
                    record = BookingRecord(version=1)
                    db.add(record)
                else:
                    result = db.execute(
                        update(BookingRecord)
                        .where(BookingRecord.id == booking.id, BookingRecord.version == booking._version)
                        .values(version=BookingRecord.version + 1)
                    )
                    if result.rowcount != 1:
                        raise ConcurrentModification(
                            f"Booking {booking.booking_reference} was changed by another request"
                        )
                    record = db.get(BookingRecord, booking.id)

                for column in BOOKING_COLUMNS:
                    setattr(record, column, _column_value(getattr(booking, column)))

                stored = {t.id: t for t in record.tickets}
                pairs = []
                for ticket in booking.tickets:
                    ticket.booking_reference = booking.booking_reference
                    ticket_record = stored.get(ticket.id)
                    if ticket_record is None:
                        ticket_record = TicketRecord()
                        record.tickets.append(ticket_record)
                    for column in TICKET_COLUMNS:
                        setattr(ticket_record, column, _column_value(getattr(ticket, column)))
                    pairs.append((ticket, ticket_record))

                db.commit()

                booking.id = record.id
                booking._version = record.version
                for ticket, ticket_record in pairs:
                    ticket.id = ticket_record.id
        except IntegrityError as e:
            raise ConcurrentModification(
                f"Booking {booking.booking_reference} conflicts with another booking's seats or reference"
            ) from e
        return booking

    def get_by_reference(self, booking_reference: str) -> Optional[Booking]:
        with self.session_factory() as db:
            record = db.scalars(
                select(BookingRecord)
                .options(selectinload(BookingRecord.tickets))
                .where(BookingRecord.booking_reference == booking_reference)
            ).first()
            return record_to_booking(record) if record else None

    def exists_reference(self, booking_reference: str) -> bool:
        with self.session_factory() as db:
            found = db.scalar(
                select(BookingRecord.id).where(BookingRecord.booking_reference == booking_reference)
            )
            return found is not None

    def list_by_user(self, user_id: str) -> List[Booking]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(BookingRecord)
                .options(selectinload(BookingRecord.tickets))
                .where(BookingRecord.user_id == user_id)
                .order_by(BookingRecord.created_at.desc(), BookingRecord.id.desc())
            ).all()
            return [record_to_booking(r) for r in rows]

    def find_expired(self, now: datetime) -> List[Booking]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(BookingRecord)
                .options(selectinload(BookingRecord.tickets))
                .where(
                    BookingRecord.status == BookingStatus.PENDING.value,
                    BookingRecord.expires_at < now,
                )
                .order_by(BookingRecord.expires_at)
            ).all()
            return [record_to_booking(r) for r in rows]

    def occupied_seats(self, flight_id: int) -> Set[str]:
        with self.session_factory() as db:
            seats = db.scalars(
                select(TicketRecord.seat_number).where(
                    TicketRecord.flight_id == flight_id,
                    TicketRecord.seat_number.isnot(None),
                    TicketRecord.status.notin_([s.value for s in RELEASED_TICKET_STATUSES]),
                )
            ).all()
            return set(seats)

    def find_ticket(self, ticket_id: int) -> Optional[Tuple[Booking, Ticket]]:
        with self.session_factory() as db:
            ticket_record = db.get(TicketRecord, ticket_id)
            if ticket_record is None:
                return None
            booking = record_to_booking(ticket_record.booking)
        ticket = next(t for t in booking.tickets if t.id == ticket_id)
        return booking, ticket

    def __len__(self) -> int:
        with self.session_factory() as db:
            return db.scalar(select(func.count()).select_from(BookingRecord))


class PassengerRepository(ABC):

    @abstractmethod
    def save(self, passenger: Passenger) -> Passenger:
        ...

    @abstractmethod
    def find_saved(self, user_id: str) -> List[Passenger]:
        ...

    @abstractmethod
    def find_by_passport(self, user_id: str, passport_number: str) -> Optional[Passenger]:
        ...


class InMemoryPassengerRepository(PassengerRepository):

    def __init__(self):
        self._passengers: Dict[int, Passenger] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(self, passenger: Passenger) -> Passenger:
        with self._lock:
            if passenger.id is None:
                passenger.id = next(self._ids)
            self._passengers[passenger.id] = passenger
        return passenger

    def find_saved(self, user_id: str) -> List[Passenger]:
        return [
            p for p in list(self._passengers.values())
            if p.user_id == user_id and p.saved
        ]

    def find_by_passport(self, user_id: str, passport_number: str) -> Optional[Passenger]:
        for passenger in list(self._passengers.values()):
            if passenger.user_id == user_id and passenger.passport_number == passport_number:
                return passenger
        return None


def record_to_passenger(record: PassengerRecord) -> Passenger:
    return Passenger(id=record.id, **_row(record, PASSENGER_COLUMNS))


class SqlAlchemyPassengerRepository(PassengerRepository):
    """Passenger store backed by the ``passengers`` table"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def save(self, passenger: Passenger) -> Passenger:
        with self.session_factory() as db:
            record = db.get(PassengerRecord, passenger.id) if passenger.id is not None else None
            if record is None:
                record = PassengerRecord()
                db.add(record)
            for column in PASSENGER_COLUMNS:
                setattr(record, column, _column_value(getattr(passenger, column)))
            db.commit()
            passenger.id = record.id
        return passenger

    def find_saved(self, user_id: str) -> List[Passenger]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(PassengerRecord)
                .where(PassengerRecord.user_id == user_id, PassengerRecord.saved.is_(True))
                .order_by(PassengerRecord.id)
            ).all()
            return [record_to_passenger(r) for r in rows]

    def find_by_passport(self, user_id: str, passport_number: str) -> Optional[Passenger]:
        with self.session_factory() as db:
            record = db.scalars(
                select(PassengerRecord)
                .where(
                    PassengerRecord.user_id == user_id,
                    PassengerRecord.passport_number == passport_number,
                )
                .order_by(PassengerRecord.saved.desc(), PassengerRecord.id)
            ).first()
            return record_to_passenger(record) if record else None

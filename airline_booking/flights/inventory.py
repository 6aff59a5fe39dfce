"""
Seat inventory: per-flight, per-cabin seat counters.

``reserve`` never raises for a shortage; it returns a ``ReservationResult``
and leaves the counters untouched when the cabin cannot cover the request.
Every check-then-decrement runs inside one critical section together with
the write to the flight store.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from airline_booking.exceptions import FlightNotFound, ValidationError
from airline_booking.flights.repository import FlightRepository
from airline_booking.flights.schemas import CabinClass, Flight, seat_fields
from airline_booking.locks import LockRegistry
from airline_booking.models import FlightRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationResult:
    ok: bool
    flight_id: int
    cabin_class: CabinClass
    requested: int
    available: int  # seats left in the cabin after the call

    def __bool__(self) -> bool:
        return self.ok


def _check_count(count: int) -> None:
    if count <= 0:
        raise ValidationError(f"Seat count must be positive, got {count}")


class SeatInventory:
    """Seat counters kept on flight objects, serialized with a per-flight lock"""

    def __init__(self, flight_repository: FlightRepository, locks: Optional[LockRegistry] = None):
        self.flight_repository = flight_repository
        self.locks = locks or LockRegistry("flights")

    @contextmanager
    def hold(self, *flight_ids: int) -> Iterator[None]:
        """Hold the locks of several flights, e.g. across a whole booking creation"""
        with self.locks.hold(*flight_ids):
            yield

    def _load(self, flight_id: int) -> Flight:
        flight = self.flight_repository.get(flight_id)
        if flight is None:
            raise FlightNotFound(flight_id)
        return flight

    def available(self, flight_id: int, cabin_class: CabinClass) -> int:
        return self._load(flight_id).available_for(cabin_class)

    def reserve(self, flight_id: int, cabin_class: CabinClass, count: int) -> ReservationResult:
        _check_count(count)
        with self.locks.hold(flight_id):
            flight = self._load(flight_id)
            _, available_field = seat_fields(cabin_class)
            available = getattr(flight, available_field) or 0

            if available < count:
                logger.debug(
                    "Cannot reserve %d %s seats on flight %s: %d available",
                    count, cabin_class.value, flight.flight_number, available,
                )
                return ReservationResult(False, flight_id, cabin_class, count, available)

            setattr(flight, available_field, available - count)
            flight.available_seats -= count
            self.flight_repository.save(flight)

        logger.debug("Reserved %d %s seats on flight %s", count, cabin_class.value, flight.flight_number)
        return ReservationResult(True, flight_id, cabin_class, count, available - count)

    def release(self, flight_id: int, cabin_class: CabinClass, count: int) -> int:
        """Return seats to a cabin, clamped to its capacity. Returns the seats actually released."""
        _check_count(count)
        with self.locks.hold(flight_id):
            flight = self._load(flight_id)
            total_field, available_field = seat_fields(cabin_class)
            current = getattr(flight, available_field) or 0
            restored = min(current + count, getattr(flight, total_field) or 0)
            released = max(restored - current, 0)

            setattr(flight, available_field, max(restored, current))
            flight.available_seats = min(flight.available_seats + released, flight.total_seats)
            self.flight_repository.save(flight)

        if released < count:
            logger.warning(
                "Release of %d %s seats on flight %s clamped to %d",
                count, cabin_class.value, flight.flight_number, released,
            )
        else:
            logger.debug("Released %d %s seats on flight %s", count, cabin_class.value, flight.flight_number)
        return released


class SqlSeatInventory(SeatInventory):
    """
    Seat counters kept in the ``flights`` table.

    Reserve is a single conditional UPDATE, so two processes can never both
    take the last seat: the row only changes while ``available >= count``.
    """

    def __init__(
        self,
        flight_repository: FlightRepository,
        session_factory: Callable[[], Session],
        locks: Optional[LockRegistry] = None,
    ):
        super().__init__(flight_repository, locks)
        self.session_factory = session_factory

    def reserve(self, flight_id: int, cabin_class: CabinClass, count: int) -> ReservationResult:
        _check_count(count)
        _, available_field = seat_fields(cabin_class)
        column = getattr(FlightRecord, available_field)

        with self.locks.hold(flight_id), self.session_factory() as db:
            result = db.execute(
                update(FlightRecord)
                .where(FlightRecord.id == flight_id, column >= count)
                .values({
                    available_field: column - count,
                    "available_seats": FlightRecord.available_seats - count,
                })
            )
            db.commit()
            record = db.get(FlightRecord, flight_id)
            if record is None:
                raise FlightNotFound(flight_id)
            db.refresh(record)
            available = getattr(record, available_field)

        ok = result.rowcount == 1
        logger.debug(
            "%s %d %s seats on flight %s (%d left)",
            "Reserved" if ok else "Could not reserve", count, cabin_class.value, flight_id, available,
        )
        return ReservationResult(ok, flight_id, cabin_class, count, available)

    def release(self, flight_id: int, cabin_class: CabinClass, count: int) -> int:
        _check_count(count)
        total_field, available_field = seat_fields(cabin_class)

        with self.locks.hold(flight_id), self.session_factory() as db:
            record = db.get(FlightRecord, flight_id, with_for_update=True)
            if record is None:
                raise FlightNotFound(flight_id)
            current = getattr(record, available_field)
            restored = min(current + count, getattr(record, total_field))
            released = max(restored - current, 0)
            if released:
                setattr(record, available_field, restored)
                record.available_seats = min(record.available_seats + released, record.total_seats)
            db.commit()

        if released < count:
            logger.warning(
                "Release of %d %s seats on flight %s clamped to %d",
                count, cabin_class.value, flight_id, released,
            )
        return released

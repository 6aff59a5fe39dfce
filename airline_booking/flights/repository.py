"""
Flight stores.

The services only need load/save/search from a flight store. The in-memory
store keeps live objects (what the lock-based inventory mutates); the
SQLAlchemy store maps flights onto the ``flights`` table.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from airline_booking.flights.schemas import Flight, FlightStatus
from airline_booking.models import FlightRecord


class FlightRepository(ABC):

    @abstractmethod
    def get(self, flight_id: int) -> Optional[Flight]:
        ...

    @abstractmethod
    def add(self, flight: Flight) -> Flight:
        """Persist a new flight, assigning its id"""

    @abstractmethod
    def save(self, flight: Flight) -> Flight:
        ...

    @abstractmethod
    def update_status(self, flight_id: int, status: FlightStatus) -> Optional[Flight]:
        """Change only the status column, leaving seat counters alone"""

    @abstractmethod
    def find_by_number(self, flight_number: str) -> List[Flight]:
        ...

    @abstractmethod
    def find_by_route(
        self, origin: str, destination: str, start: datetime, end: datetime
    ) -> List[Flight]:
        """Flights on a route departing in [start, end], ordered by departure"""


class InMemoryFlightRepository(FlightRepository):

    def __init__(self):
        self._flights: Dict[int, Flight] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def get(self, flight_id: int) -> Optional[Flight]:
        return self._flights.get(flight_id)

    def add(self, flight: Flight) -> Flight:
        with self._lock:
            if flight.id is None:
                flight.id = next(self._ids)
        self._flights[flight.id] = flight
        return flight

    def save(self, flight: Flight) -> Flight:
        self._flights[flight.id] = flight
        return flight

    def update_status(self, flight_id, status):
        flight = self._flights.get(flight_id)
        if flight is not None:
            flight.status = status
        return flight

    def find_by_number(self, flight_number: str) -> List[Flight]:
        matches = [f for f in self._flights.values() if f.flight_number == flight_number]
        return sorted(matches, key=lambda f: f.departure_time)

    def find_by_route(self, origin, destination, start, end):
        matches = [
            f for f in self._flights.values()
            if f.origin == origin and f.destination == destination
            and start <= f.departure_time <= end
        ]
        return sorted(matches, key=lambda f: (f.departure_time, f.id))


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def record_to_flight(record: FlightRecord) -> Flight:
    return Flight(
        id=record.id,
        flight_number=record.flight_number,
        airline=record.airline,
        origin=record.origin,
        destination=record.destination,
        departure_time=as_utc(record.departure_time),
        arrival_time=as_utc(record.arrival_time),
        duration_minutes=record.duration_minutes,
        aircraft_type=record.aircraft_type,
        status=record.status,
        base_price=record.base_price,
        business_price=record.business_price,
        first_class_price=record.first_class_price,
        total_seats=record.total_seats,
        economy_seats=record.economy_seats,
        business_seats=record.business_seats,
        first_class_seats=record.first_class_seats,
        available_seats=record.available_seats,
        available_economy=record.available_economy,
        available_business=record.available_business,
        available_first_class=record.available_first_class,
    )


FLIGHT_COLUMNS = (
    "flight_number", "airline", "origin", "destination", "departure_time",
    "arrival_time", "duration_minutes", "aircraft_type", "base_price",
    "business_price", "first_class_price", "total_seats", "economy_seats",
    "business_seats", "first_class_seats", "available_seats",
    "available_economy", "available_business", "available_first_class",
)


class SqlAlchemyFlightRepository(FlightRepository):
    """Flight store backed by the ``flights`` table"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, flight_id: int) -> Optional[Flight]:
        with self.session_factory() as db:
            record = db.get(FlightRecord, flight_id)
            return record_to_flight(record) if record else None

    def add(self, flight: Flight) -> Flight:
        with self.session_factory() as db:
            record = FlightRecord(status=flight.status.value)
            for column in FLIGHT_COLUMNS:
                setattr(record, column, getattr(flight, column))
            db.add(record)
            db.commit()
            db.refresh(record)
            return record_to_flight(record)

    def save(self, flight: Flight) -> Flight:
        with self.session_factory() as db:
            record = db.get(FlightRecord, flight.id)
            if record is None:
                record = FlightRecord(id=flight.id)
                db.add(record)
            for column in FLIGHT_COLUMNS:
                setattr(record, column, getattr(flight, column))
            record.status = flight.status.value
            db.commit()
            return flight

    def update_status(self, flight_id, status):
        with self.session_factory() as db:
            db.execute(
                update(FlightRecord)
                .where(FlightRecord.id == flight_id)
                .values(status=FlightStatus(status).value)
            )
            db.commit()
        return self.get(flight_id)

    def find_by_number(self, flight_number: str) -> List[Flight]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(FlightRecord)
                .where(FlightRecord.flight_number == flight_number)
                .order_by(FlightRecord.departure_time)
            ).all()
            return [record_to_flight(r) for r in rows]

    def find_by_route(self, origin, destination, start, end):
        with self.session_factory() as db:
            rows = db.scalars(
                select(FlightRecord)
                .where(
                    FlightRecord.origin == origin,
                    FlightRecord.destination == destination,
                    FlightRecord.departure_time >= start,
                    FlightRecord.departure_time <= end,
                )
                .order_by(FlightRecord.departure_time, FlightRecord.id)
            ).all()
            return [record_to_flight(r) for r in rows]

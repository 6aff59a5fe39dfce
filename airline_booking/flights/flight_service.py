import logging
from datetime import timezone
from decimal import Decimal
from typing import List

from airline_booking.config import settings
from airline_booking.exceptions import FlightNotFound, ValidationError
from airline_booking.flights.repository import FlightRepository
from airline_booking.flights.schemas import (
    CabinClass, CreateFlightRequest, Flight, FlightSearchRequest, FlightStatus
)
from airline_booking.flights.seat_service import generate_seats
from airline_booking.timeutils import day_bounds

logger = logging.getLogger(__name__)

FLEXIBLE_DATE_SPREAD_DAYS = 3

class FlightService:
    """Service for registering and looking up flights"""

    def __init__(self, repository: FlightRepository, local_timezone: str = None):
        self.repository = repository
        self.local_timezone = local_timezone or settings.LOCAL_TIMEZONE

    def register_flight(self, request: CreateFlightRequest) -> Flight:
        """Build a flight with its derived fields computed up front, then store it"""

        logger.info("Registering flight %s %s", request.flight_number, f"{request.origin}->{request.destination}")

        departure = self._as_utc(request.departure_time)
        arrival = self._as_utc(request.arrival_time)

        if arrival <= departure:
            raise ValidationError("Arrival time must be after departure time")
        if request.origin == request.destination:
            raise ValidationError("Origin and destination must differ")
        for label, price in (
            ("Base", request.base_price),
            ("Business", request.business_price),
            ("First class", request.first_class_price),
        ):
            if price is not None and price <= Decimal("0"):
                raise ValidationError(f"{label} price must be positive")

        total_seats = request.economy_seats + request.business_seats + request.first_class_seats
        if total_seats == 0:
            raise ValidationError("Flight must have at least one seat")
        for label, cabin_class, seats in (
            ("Economy", CabinClass.ECONOMY, request.economy_seats),
            ("Business", CabinClass.BUSINESS, request.business_seats),
            ("First class", CabinClass.FIRST_CLASS, request.first_class_seats),
        ):
            # every seat sold must have a seat code to assign
            capacity = len(generate_seats(cabin_class))
            if seats > capacity:
                raise ValidationError(f"{label} cabin has only {capacity} seats, got {seats}")

        flight = Flight(
            flight_number=request.flight_number.upper(),
            airline=request.airline,
            origin=request.origin,
            destination=request.destination,
            departure_time=departure,
            arrival_time=arrival,
            duration_minutes=int((arrival - departure).total_seconds() // 60),
            aircraft_type=request.aircraft_type,
            status=FlightStatus.SCHEDULED,
            base_price=request.base_price,
            business_price=request.business_price,
            first_class_price=request.first_class_price,
            total_seats=total_seats,
            economy_seats=request.economy_seats,
            business_seats=request.business_seats,
            first_class_seats=request.first_class_seats,
            available_seats=total_seats,
            available_economy=request.economy_seats,
            available_business=request.business_seats,
            available_first_class=request.first_class_seats,
        )

        flight = self.repository.add(flight)
        logger.info("Flight %s registered with id %s (%d seats)", flight.flight_number, flight.id, total_seats)
        return flight

    def get_flight(self, flight_id: int) -> Flight:
        flight = self.repository.get(flight_id)
        if flight is None:
            raise FlightNotFound(flight_id)
        return flight

    def get_flights_by_number(self, flight_number: str) -> List[Flight]:
        flights = self.repository.find_by_number(flight_number.upper())
        if not flights:
            raise FlightNotFound(flight_number)
        return flights

    def search_flights(self, request: FlightSearchRequest) -> List[Flight]:
        """Flights on a route for a local calendar day, optionally +/- 3 days"""
        spread = FLEXIBLE_DATE_SPREAD_DAYS if request.flexible_dates else 0
        start, end = day_bounds(request.departure_date, self.local_timezone, spread)
        flights = self.repository.find_by_route(
            request.origin.upper(), request.destination.upper(), start, end
        )
        logger.info(
            "Found %d flights %s -> %s around %s",
            len(flights), request.origin, request.destination, request.departure_date,
        )
        return flights

    def update_status(self, flight_id: int, status: FlightStatus) -> Flight:
        self.get_flight(flight_id)
        flight = self.repository.update_status(flight_id, status)
        logger.info("Flight %s status set to %s", flight.flight_number, status.value)
        return flight

    @staticmethod
    def _as_utc(value):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

"""
Flights Module

Flight registration and search, per-cabin seat inventory and seat assignment.

Key Components:
- flight_service.py: Flight registration, lookup, search and status updates
- inventory.py: Per-flight, per-cabin reserve/release (in-process locks or SQL)
- seat_service.py: Seat code assignment by cabin row range and preference
- repository.py: In-memory and SQLAlchemy flight stores
- router.py: FastAPI endpoints for flights and seat maps
- schemas.py: Pydantic models for flights
"""

from .router import router
from .flight_service import FlightService
from .inventory import ReservationResult, SeatInventory, SqlSeatInventory
from .seat_service import SeatAssignmentService
from .repository import FlightRepository, InMemoryFlightRepository, SqlAlchemyFlightRepository
from .schemas import (
    CabinClass, CreateFlightRequest, Flight, FlightSearchRequest, FlightStatus,
    FlightStatusUpdate, SeatMapResponse, SeatPreference
)

__all__ = [
    "router",
    "FlightService",
    "ReservationResult",
    "SeatInventory",
    "SqlSeatInventory",
    "SeatAssignmentService",
    "FlightRepository",
    "InMemoryFlightRepository",
    "SqlAlchemyFlightRepository",
    "CabinClass",
    "CreateFlightRequest",
    "Flight",
    "FlightSearchRequest",
    "FlightStatus",
    "FlightStatusUpdate",
    "SeatMapResponse",
    "SeatPreference"
]

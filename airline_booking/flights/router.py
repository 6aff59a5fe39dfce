from fastapi import APIRouter, Depends, Query, status
from typing import List
from datetime import date

from airline_booking.dependencies import get_flight_service, get_seat_service
from airline_booking.flights.flight_service import FlightService
from airline_booking.flights.schemas import (
    CabinClass, CreateFlightRequest, Flight, FlightSearchRequest, FlightStatusUpdate, SeatMapResponse
)
from airline_booking.flights.seat_service import SeatAssignmentService

router = APIRouter()

@router.post("/", response_model=Flight, status_code=status.HTTP_201_CREATED)
def register_flight(
    request: CreateFlightRequest,
    flight_service: FlightService = Depends(get_flight_service)
):
    """Register a new flight with its cabin layout and fares"""
    return flight_service.register_flight(request)

@router.get("/search", response_model=List[Flight])
def search_flights(
    origin: str = Query(..., min_length=3, max_length=3, description="Origin airport code"),
    destination: str = Query(..., min_length=3, max_length=3, description="Destination airport code"),
    departure_date: date = Query(..., description="Local departure date"),
    flexible_dates: bool = Query(False, description="Search +/- 3 days"),
    flight_service: FlightService = Depends(get_flight_service)
):
    """Search flights on a route for a date"""
    return flight_service.search_flights(FlightSearchRequest(
        origin=origin,
        destination=destination,
        departure_date=departure_date,
        flexible_dates=flexible_dates
    ))

@router.get("/number/{flight_number}", response_model=List[Flight])
def get_flights_by_number(
    flight_number: str,
    flight_service: FlightService = Depends(get_flight_service)
):
    return flight_service.get_flights_by_number(flight_number)

@router.get("/{flight_id}", response_model=Flight)
def get_flight(
    flight_id: int,
    flight_service: FlightService = Depends(get_flight_service)
):
    return flight_service.get_flight(flight_id)

@router.patch("/{flight_id}/status", response_model=Flight)
def update_flight_status(
    flight_id: int,
    update: FlightStatusUpdate,
    flight_service: FlightService = Depends(get_flight_service)
):
    """Update operational status (delays, cancellations)"""
    return flight_service.update_status(flight_id, update.status)

@router.get("/{flight_id}/seats", response_model=SeatMapResponse)
def get_seat_map(
    flight_id: int,
    cabin_class: CabinClass = Query(CabinClass.ECONOMY),
    flight_service: FlightService = Depends(get_flight_service),
    seat_service: SeatAssignmentService = Depends(get_seat_service)
):
    """Occupied seats for a cabin of the flight"""
    flight = flight_service.get_flight(flight_id)
    return seat_service.seat_map(flight, cabin_class)

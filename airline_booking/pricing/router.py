from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional
from datetime import date

from airline_booking.dependencies import get_pricing_service, get_round_trip_service
from airline_booking.flights.schemas import CabinClass
from airline_booking.pricing.pricing_service import PricingService
from airline_booking.pricing.roundtrip_service import RoundTripService
from airline_booking.pricing.schemas import (
    CalendarPriceResponse, CreateHolidayRequest, Holiday, PricingQuote, RoundTripDiscountResponse,
    RoundTripSearchRequest, RoundTripSearchResponse
)

router = APIRouter()

@router.get("/quote", response_model=PricingQuote)
def get_quote(
    flight_id: int = Query(..., description="Flight ID"),
    cabin_class: CabinClass = Query(CabinClass.ECONOMY),
    booking_date: Optional[date] = Query(None, description="Defaults to today"),
    pricing_service: PricingService = Depends(get_pricing_service)
):
    """Current dynamic price for one seat"""
    return pricing_service.quote_for_flight(flight_id, cabin_class, booking_date)

@router.get("/calendar", response_model=CalendarPriceResponse)
def get_price_calendar(
    origin: str = Query(..., min_length=3, max_length=3),
    destination: str = Query(..., min_length=3, max_length=3),
    month: str = Query(..., description="Month in YYYY-MM format"),
    cabin_class: CabinClass = Query(CabinClass.ECONOMY),
    pricing_service: PricingService = Depends(get_pricing_service)
):
    """Cheapest price per day over a month"""
    try:
        year, month_number = (int(part) for part in month.split("-"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Month must be in YYYY-MM format"
        )
    return pricing_service.calendar(origin, destination, year, month_number, cabin_class)

# Holidays
@router.post("/holidays", response_model=Holiday, status_code=status.HTTP_201_CREATED)
def add_holiday(
    request: CreateHolidayRequest,
    pricing_service: PricingService = Depends(get_pricing_service)
):
    """Flag a public holiday on the price calendar"""
    return pricing_service.add_holiday(request)

@router.get("/holidays", response_model=List[Holiday])
def list_holidays(
    country: Optional[str] = Query(None, min_length=2, max_length=2, description="Defaults to the configured country"),
    pricing_service: PricingService = Depends(get_pricing_service)
):
    return pricing_service.list_holidays(country)

# Round Trips
@router.post("/round-trip/search", response_model=RoundTripSearchResponse)
def search_round_trip(
    request: RoundTripSearchRequest,
    round_trip_service: RoundTripService = Depends(get_round_trip_service)
):
    """Outbound and return options with ranked combinations"""
    return round_trip_service.search_round_trip(request)

@router.get("/round-trip/discount", response_model=RoundTripDiscountResponse)
def get_round_trip_discount(
    outbound_flight_id: int = Query(...),
    return_flight_id: int = Query(...),
    cabin_class: CabinClass = Query(CabinClass.ECONOMY),
    round_trip_service: RoundTripService = Depends(get_round_trip_service)
):
    """Round-trip discount for a specific pair of flights"""
    return round_trip_service.calculate_discount(outbound_flight_id, return_flight_id, cabin_class)

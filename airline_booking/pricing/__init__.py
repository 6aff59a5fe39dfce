"""
Pricing Module

Dynamic fares recomputed on every request from cabin occupancy, days to
departure and departure weekday, plus the round-trip recommender.

Key Components:
- pricing_service.py: Quote computation, demand levels and the monthly price calendar
- holidays.py: Holiday stores flagged on the price calendar
- roundtrip_service.py: Round-trip search, combination scoring and discount quotes
- router.py: FastAPI endpoints for quotes, calendar and round trips
- schemas.py: Pydantic models for quotes and round-trip responses
"""

from .router import router
from .holidays import HolidayRepository, InMemoryHolidayRepository, SqlAlchemyHolidayRepository
from .pricing_service import PricingService
from .roundtrip_service import RoundTripService, generate_recommendations
from .schemas import (
    CalendarPriceResponse, CreateHolidayRequest, DemandLevel, FlightOption, Holiday, PricingQuote,
    RecommendationCategory, RecommendedCombination, RoundTripDiscountResponse, RoundTripSearchRequest, RoundTripSearchResponse
)

__all__ = [
    "router",
    "PricingService",
    "HolidayRepository",
    "InMemoryHolidayRepository",
    "SqlAlchemyHolidayRepository",
    "RoundTripService",
    "generate_recommendations",
    "CalendarPriceResponse",
    "CreateHolidayRequest",
    "DemandLevel",
    "FlightOption",
    "Holiday",
    "PricingQuote",
    "RecommendationCategory",
    "RecommendedCombination",
    "RoundTripDiscountResponse",
    "RoundTripSearchRequest",
    "RoundTripSearchResponse"
]

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date
from decimal import Decimal
from enum import Enum

from airline_booking.flights.schemas import CabinClass

class DemandLevel(str, Enum):
    """Coarse demand bucket from occupancy and days to departure"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

class RecommendationCategory(str, Enum):
    """What the quote tells the traveller to do, one per demand level"""
    BOOK_NOW = "BOOK_NOW"
    BOOK_SOON = "BOOK_SOON"
    FAIR_PRICE = "FAIR_PRICE"
    GOOD_TIME_TO_BOOK = "GOOD_TIME_TO_BOOK"

# Quote Models
class PricingQuote(BaseModel):
    """Dynamic price for one seat in a cabin, recomputed on every request"""
    flight_id: Optional[int] = None
    flight_number: Optional[str] = None
    cabin_class: CabinClass
    base_price: Decimal
    occupancy_multiplier: Decimal
    time_multiplier: Decimal
    day_of_week_multiplier: Decimal
    final_price: Decimal
    taxes: Decimal
    total_price: Decimal
    occupancy_percent: int
    days_until_departure: int
    demand_level: DemandLevel
    recommendation_category: RecommendationCategory
    recommendation: str
    currency: str = "USD"

class QuoteRequest(BaseModel):
    flight_id: int
    cabin_class: CabinClass = CabinClass.ECONOMY
    booking_date: Optional[date] = None

# Calendar Models
class CalendarDayPrice(BaseModel):
    date: date
    min_price: Decimal
    available_seats: int
    day_of_week: str
    is_weekend: bool
    is_cheapest: bool = False
    is_holiday: bool = False
    holiday_name: Optional[str] = None
    price_reason: str
    demand_level: DemandLevel
    flight_count: int

class CalendarPriceResponse(BaseModel):
    month: str  # YYYY-MM
    route: str
    cabin_class: CabinClass
    prices: List[CalendarDayPrice]
    cheapest_day: Optional[date] = None
    average_price: Decimal = Decimal("0")

# Holiday Models
class CreateHolidayRequest(BaseModel):
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2 code")
    holiday_date: date
    name: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = Field(None, max_length=255)

class Holiday(BaseModel):
    """Public holiday shown on the price calendar"""
    id: Optional[int] = None
    country: str
    holiday_date: date
    name: str
    is_active: bool = True
    notes: Optional[str] = None

# Round-trip Models
class FlightOption(BaseModel):
    """One priced leg offered for a round trip"""
    flight_id: int
    flight_number: str
    origin: str
    destination: str
    departure_time: str
    arrival_time: str
    duration: str  # "2h 35m"
    duration_minutes: int
    airline: Optional[str] = None
    base_price: Decimal
    dynamic_price: Decimal
    available_seats: int
    demand_level: DemandLevel
    price_reason: str

class RecommendedCombination(BaseModel):
    outbound_flight_id: int
    return_flight_id: int
    total_before_discount: Decimal
    total_after_discount: Decimal
    savings: Decimal
    total_duration: str
    score: int
    reason: str

class RoundTripSearchRequest(BaseModel):
    origin: str = Field(..., min_length=3, max_length=3)
    destination: str = Field(..., min_length=3, max_length=3)
    departure_date: date
    return_date: date
    cabin_class: CabinClass = CabinClass.ECONOMY
    flexible_dates: bool = False

class RoundTripSearchResponse(BaseModel):
    outbound_flights: List[FlightOption]
    return_flights: List[FlightOption]
    recommendations: List[RecommendedCombination]
    lowest_round_trip_price: Decimal
    round_trip_discount: Decimal
    discount_percent: Decimal

class FlightSummary(BaseModel):
    flight_id: int
    flight_number: str
    route: str
    departure_time: str
    arrival_time: str
    duration: str
    airline: Optional[str] = None
    available_seats: int

class RoundTripDiscountResponse(BaseModel):
    outbound_flight: FlightSummary
    return_flight: FlightSummary
    outbound_price: Decimal
    return_price: Decimal
    total_price_before_discount: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    total_price_after_discount: Decimal
    total_savings: Decimal
    is_good_deal: bool
    discount_message: str
    recommendation: str

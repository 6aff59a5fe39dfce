from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Tuple
from datetime import datetime, date, timedelta
from decimal import Decimal
from enum import Enum

class CabinClass(str, Enum):
    """Fare tier with its own seat pool and price"""
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST_CLASS = "FIRST_CLASS"

class FlightStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    DELAYED = "DELAYED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

class SeatPreference(str, Enum):
    WINDOW = "WINDOW"
    AISLE = "AISLE"
    MIDDLE = "MIDDLE"

# Premium economy sells from the economy pool
CABIN_SEAT_FIELDS = {
    CabinClass.ECONOMY: ("economy_seats", "available_economy"),
    CabinClass.PREMIUM_ECONOMY: ("economy_seats", "available_economy"),
    CabinClass.BUSINESS: ("business_seats", "available_business"),
    CabinClass.FIRST_CLASS: ("first_class_seats", "available_first_class"),
}

def seat_fields(cabin_class: CabinClass) -> Tuple[str, str]:
    """(total field, available field) of the seat pool a cabin class draws from"""
    return CABIN_SEAT_FIELDS[CabinClass(cabin_class)]

def seat_pool(cabin_class: CabinClass) -> str:
    return seat_fields(cabin_class)[0]

# Flight Models
class Flight(BaseModel):
    """Scheduled flight with per-cabin seat counters"""
    id: Optional[int] = None
    flight_number: str
    airline: Optional[str] = None
    origin: str
    destination: str
    departure_time: datetime
    arrival_time: datetime
    duration_minutes: int
    aircraft_type: Optional[str] = None
    status: FlightStatus = FlightStatus.SCHEDULED

    base_price: Optional[Decimal] = None
    business_price: Optional[Decimal] = None
    first_class_price: Optional[Decimal] = None

    total_seats: int = 0
    economy_seats: int = 0
    business_seats: int = 0
    first_class_seats: int = 0

    available_seats: int = 0
    available_economy: int = 0
    available_business: int = 0
    available_first_class: int = 0

    def total_for(self, cabin_class: CabinClass) -> int:
        return getattr(self, seat_fields(cabin_class)[0]) or 0

    def available_for(self, cabin_class: CabinClass) -> int:
        return getattr(self, seat_fields(cabin_class)[1]) or 0

    def hours_until_departure(self, now: datetime) -> float:
        return (self.departure_time - now).total_seconds() / 3600

    def is_bookable(self, now: datetime, min_hours_before_departure: int = 2) -> bool:
        return (
            self.status == FlightStatus.SCHEDULED
            and self.available_seats > 0
            and self.departure_time > now + timedelta(hours=min_hours_before_departure)
        )

    @property
    def route(self) -> str:
        return f"{self.origin} → {self.destination}"

class CreateFlightRequest(BaseModel):
    """Request to register a new flight"""
    flight_number: str = Field(..., min_length=2, max_length=10)
    airline: Optional[str] = None
    origin: str = Field(..., min_length=3, max_length=3)
    destination: str = Field(..., min_length=3, max_length=3)
    departure_time: datetime
    arrival_time: datetime
    aircraft_type: Optional[str] = None
    base_price: Decimal
    business_price: Optional[Decimal] = None
    first_class_price: Optional[Decimal] = None
    economy_seats: int = Field(0, ge=0)
    business_seats: int = Field(0, ge=0)
    first_class_seats: int = Field(0, ge=0)

    @field_validator('origin', 'destination')
    @classmethod
    def upper_airport_code(cls, v):
        return v.upper()

class FlightStatusUpdate(BaseModel):
    status: FlightStatus

class FlightSearchRequest(BaseModel):
    origin: str
    destination: str
    departure_date: date
    flexible_dates: bool = False

class SeatMapResponse(BaseModel):
    """Occupied seats of one cabin on a flight"""
    flight_id: int
    flight_number: str
    cabin_class: CabinClass
    occupied_seats: List[str]
    total_seats: int
    available_seats: int

import calendar
import logging
from collections import defaultdict
from datetime import MAXYEAR, MINYEAR, date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from airline_booking.config import settings
from airline_booking.exceptions import FlightNotFound, ValidationError
from airline_booking.flights.repository import FlightRepository
from airline_booking.flights.schemas import CabinClass, Flight, FlightStatus
from airline_booking.pricing.holidays import HolidayRepository, InMemoryHolidayRepository
from airline_booking.pricing.schemas import (
    CalendarDayPrice, CalendarPriceResponse, CreateHolidayRequest, DemandLevel, Holiday,
    PricingQuote, RecommendationCategory
)
from airline_booking.timeutils import Clock, day_bounds, local_date, utc_now

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
FALLBACK_BASE_PRICE = Decimal("100.00")
TAX_RATE = Decimal("0.15")
BUSINESS_FACTOR = Decimal("2.5")
FIRST_CLASS_FACTOR = Decimal("4.0")

# (occupancy rate strictly above, multiplier)
OCCUPANCY_TIERS = (
    (Decimal("0.90"), Decimal("1.50")),
    (Decimal("0.75"), Decimal("1.30")),
    (Decimal("0.50"), Decimal("1.15")),
)

# (days until departure at most, multiplier)
TIME_TIERS = (
    (1, Decimal("1.30")),
    (3, Decimal("1.15")),
    (7, Decimal("1.10")),
    (14, Decimal("1.05")),
)

# weekday() -> multiplier; Friday and Sunday peak, Wednesday off-peak
DAY_OF_WEEK_MULTIPLIERS = {
    4: Decimal("1.20"),
    6: Decimal("1.20"),
    2: Decimal("0.90"),
}

RECOMMENDATION_CATEGORIES = {
    DemandLevel.VERY_HIGH: RecommendationCategory.BOOK_NOW,
    DemandLevel.HIGH: RecommendationCategory.BOOK_SOON,
    DemandLevel.MEDIUM: RecommendationCategory.FAIR_PRICE,
    DemandLevel.LOW: RecommendationCategory.GOOD_TIME_TO_BOOK,
}

ONE = Decimal("1.00")


def round2(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _valid_price(value) -> Optional[Decimal]:
    if value is None:
        return None
    value = Decimal(value)
    return value if value > 0 else None


def occupancy_multiplier(rate: Decimal) -> Decimal:
    for threshold, multiplier in OCCUPANCY_TIERS:
        if rate > threshold:
            return multiplier
    return ONE


def time_multiplier(days_until_departure: int) -> Decimal:
    for max_days, multiplier in TIME_TIERS:
        if days_until_departure <= max_days:
            return multiplier
    return ONE


def day_of_week_multiplier(departure_day: date) -> Decimal:
    return DAY_OF_WEEK_MULTIPLIERS.get(departure_day.weekday(), ONE)


def demand_level(rate: Decimal, days_until_departure: int) -> DemandLevel:
    if rate > Decimal("0.80") or days_until_departure < 3:
        return DemandLevel.VERY_HIGH
    if rate > Decimal("0.60") or days_until_departure < 7:
        return DemandLevel.HIGH
    if rate > Decimal("0.40") or days_until_departure < 14:
        return DemandLevel.MEDIUM
    return DemandLevel.LOW


def recommendation_text(level: DemandLevel, occupancy_percent: int, days_until_departure: int) -> str:
    if level == DemandLevel.VERY_HIGH:
        if occupancy_percent > 90:
            return f"Only {100 - occupancy_percent}% seats left! Book now!"
        if days_until_departure <= 1:
            return "Last minute booking - prices are high!"
        return "High demand! Book now before sold out!"
    if level == DemandLevel.HIGH:
        if occupancy_percent > 70:
            return "Good price but filling up fast - book soon!"
        return "Popular flight - book within a week for best price"
    if level == DemandLevel.MEDIUM:
        if days_until_departure > 30:
            return "Great early bird price - excellent deal!"
        return "Fair price - consider booking soon"
    if days_until_departure > 60:
        return "Best price! Book early and save up to 15%"
    return "Low demand - good time to book at base price"


def calendar_price_reason(
    is_weekend: bool, level: DemandLevel, day: date, holiday: Optional[Holiday] = None
) -> str:
    if holiday is not None:
        return f"Holiday: {holiday.name}"
    if is_weekend:
        return "Weekend pricing"
    if level == DemandLevel.VERY_HIGH:
        return "High demand - limited seats"
    if level == DemandLevel.HIGH:
        return "Popular date"
    if day.weekday() in (0, 4):
        return "Popular travel day"
    return "Standard pricing"


class PricingService:
    """
    Dynamic pricing engine.

    A quote is pure arithmetic over the flight's current counters; nothing is
    cached, so two quotes a second apart may differ once a seat sells.
    """

    def __init__(
        self,
        flight_repository: FlightRepository,
        clock: Clock = utc_now,
        local_timezone: str = None,
        holiday_repository: Optional[HolidayRepository] = None,
        holiday_country: str = None,
    ):
        self.flight_repository = flight_repository
        self.clock = clock
        self.local_timezone = local_timezone or settings.LOCAL_TIMEZONE
        self.holiday_repository = holiday_repository or InMemoryHolidayRepository()
        self.holiday_country = (holiday_country or settings.HOLIDAY_COUNTRY).upper()

    def today(self) -> date:
        return local_date(self.clock(), self.local_timezone)

    def base_price_for(self, flight: Flight, cabin_class: CabinClass) -> Decimal:
        base = _valid_price(flight.base_price)
        if base is None:
            logger.warning(
                "Base price missing for flight %s, class %s. Using default %s",
                flight.flight_number, CabinClass(cabin_class).value, FALLBACK_BASE_PRICE,
            )
            base = FALLBACK_BASE_PRICE

        cabin_class = CabinClass(cabin_class)
        if cabin_class == CabinClass.BUSINESS:
            return _valid_price(flight.business_price) or base * BUSINESS_FACTOR
        if cabin_class == CabinClass.FIRST_CLASS:
            return _valid_price(flight.first_class_price) or base * FIRST_CLASS_FACTOR
        return base

    def occupancy(self, flight: Flight, cabin_class: CabinClass) -> Tuple[Decimal, int]:
        """(occupancy rate, whole percent) of the cabin's seat pool"""
        total = flight.total_for(cabin_class)
        available = flight.available_for(cabin_class)
        if total <= 0:
            return Decimal("0"), 0

        occupied = total - available
        if occupied < 0 or available < 0:
            logger.warning(
                "Invalid seat data for flight %s, class %s: total=%s, available=%s",
                flight.flight_number, CabinClass(cabin_class).value, total, available,
            )
            return Decimal("0"), 0

        rate = Decimal(occupied) / Decimal(total)
        return rate, occupied * 100 // total

    def days_until_departure(self, flight: Flight, booking_date: date) -> int:
        departure_day = local_date(flight.departure_time, self.local_timezone)
        return max((departure_day - booking_date).days, 0)

    def quote(
        self, flight: Flight, cabin_class: CabinClass, booking_date: Optional[date] = None
    ) -> PricingQuote:
        """Price one seat of a cabin for a booking made on ``booking_date``"""
        cabin_class = CabinClass(cabin_class)
        booking_date = booking_date or self.today()

        base_price = self.base_price_for(flight, cabin_class)
        rate, occupancy_percent = self.occupancy(flight, cabin_class)
        days = self.days_until_departure(flight, booking_date)
        departure_day = local_date(flight.departure_time, self.local_timezone)

        occ_mult = occupancy_multiplier(rate)
        time_mult = time_multiplier(days)
        dow_mult = day_of_week_multiplier(departure_day)

        final_price = round2(base_price * occ_mult * time_mult * dow_mult)
        taxes = round2(final_price * TAX_RATE)
        level = demand_level(rate, days)

        logger.debug(
            "Quoted %s %s: base=%s occ=%s time=%s dow=%s final=%s (%s)",
            flight.flight_number, cabin_class.value, base_price,
            occ_mult, time_mult, dow_mult, final_price, level.value,
        )

        return PricingQuote(
            flight_id=flight.id,
            flight_number=flight.flight_number,
            cabin_class=cabin_class,
            base_price=round2(base_price),
            occupancy_multiplier=occ_mult,
            time_multiplier=time_mult,
            day_of_week_multiplier=dow_mult,
            final_price=final_price,
            taxes=taxes,
            total_price=final_price + taxes,
            occupancy_percent=occupancy_percent,
            days_until_departure=days,
            demand_level=level,
            recommendation_category=RECOMMENDATION_CATEGORIES[level],
            recommendation=recommendation_text(level, occupancy_percent, days),
        )

    def quote_for_flight(
        self, flight_id: int, cabin_class: CabinClass, booking_date: Optional[date] = None
    ) -> PricingQuote:
        flight = self.flight_repository.get(flight_id)
        if flight is None:
            raise FlightNotFound(flight_id)
        return self.quote(flight, cabin_class, booking_date)

    def calendar(
        self,
        origin: str,
        destination: str,
        year: int,
        month: int,
        cabin_class: CabinClass = CabinClass.ECONOMY,
    ) -> CalendarPriceResponse:
        """Cheapest price per departure day of a month on a route"""
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")
        if not MINYEAR <= year <= MAXYEAR:
            raise ValidationError(f"Invalid year: {year}")

        origin, destination = origin.upper(), destination.upper()
        logger.info("Building price calendar %s -> %s for %04d-%02d", origin, destination, year, month)

        first_day = date(year, month, 1)
        last_day = date(year, month, calendar.monthrange(year, month)[1])
        start, _ = day_bounds(first_day, self.local_timezone)
        _, end = day_bounds(last_day, self.local_timezone)

        by_day: Dict[date, List[Flight]] = defaultdict(list)
        for flight in self.flight_repository.find_by_route(origin, destination, start, end):
            if flight.status == FlightStatus.CANCELLED:
                continue
            by_day[local_date(flight.departure_time, self.local_timezone)].append(flight)

        holidays: Dict[date, Holiday] = {}
        for holiday in self.holiday_repository.find_in_range(first_day, last_day, self.holiday_country):
            holidays.setdefault(holiday.holiday_date, holiday)

        booking_date = self.today()
        prices: List[CalendarDayPrice] = []
        day = first_day
        while day <= last_day:
            flights = by_day.get(day)
            if flights:
                prices.append(self._day_price(day, flights, cabin_class, booking_date, holidays.get(day)))
            day += timedelta(days=1)

        cheapest: Optional[CalendarDayPrice] = None
        for entry in prices:
            if cheapest is None or entry.min_price < cheapest.min_price:
                cheapest = entry
        if cheapest is not None:
            cheapest.is_cheapest = True

        average = Decimal("0")
        if prices:
            average = round2(sum((p.min_price for p in prices), Decimal("0")) / len(prices))

        return CalendarPriceResponse(
            month=f"{year:04d}-{month:02d}",
            route=f"{origin} → {destination}",
            cabin_class=cabin_class,
            prices=prices,
            cheapest_day=cheapest.date if cheapest else None,
            average_price=average,
        )

    def _day_price(self, day, flights, cabin_class, booking_date, holiday=None) -> CalendarDayPrice:
        cheapest_quote = None
        available = 0
        for flight in flights:
            quote = self.quote(flight, cabin_class, booking_date)
            if cheapest_quote is None or quote.final_price < cheapest_quote.final_price:
                cheapest_quote = quote
            available += flight.available_for(cabin_class)

        is_weekend = day.weekday() >= 5
        return CalendarDayPrice(
            date=day,
            min_price=cheapest_quote.final_price,
            available_seats=available,
            day_of_week=calendar.day_name[day.weekday()].upper(),
            is_weekend=is_weekend,
            is_holiday=holiday is not None,
            holiday_name=holiday.name if holiday else None,
            price_reason=calendar_price_reason(is_weekend, cheapest_quote.demand_level, day, holiday),
            demand_level=cheapest_quote.demand_level,
            flight_count=len(flights),
        )

    # === Holidays ===

    def add_holiday(self, request: CreateHolidayRequest) -> Holiday:
        holiday = self.holiday_repository.add(Holiday(
            country=request.country.upper(),
            holiday_date=request.holiday_date,
            name=request.name.strip(),
            notes=request.notes,
        ))
        logger.info("Holiday %s on %s added for %s", holiday.name, holiday.holiday_date, holiday.country)
        return holiday

    def list_holidays(self, country: Optional[str] = None) -> List[Holiday]:
        return self.holiday_repository.list_by_country((country or self.holiday_country).upper())

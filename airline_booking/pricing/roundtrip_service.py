import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from airline_booking.exceptions import ValidationError
from airline_booking.flights.flight_service import FlightService
from airline_booking.flights.schemas import CabinClass, Flight, FlightSearchRequest, FlightStatus
from airline_booking.pricing.pricing_service import PricingService, round2
from airline_booking.pricing.schemas import (
    DemandLevel, FlightOption, FlightSummary, PricingQuote, RecommendedCombination,
    RoundTripDiscountResponse, RoundTripSearchRequest, RoundTripSearchResponse
)

logger = logging.getLogger(__name__)

ROUND_TRIP_DISCOUNT = Decimal("0.05")
DISCOUNT_PERCENT = Decimal("5.0")
REFERENCE_ROUND_TRIP_PRICE = Decimal("350")
CENT_RATIO = Decimal("0.01")
MAX_RECOMMENDATIONS = 10
EARLY_BOOKING_DAYS = 30


def format_duration(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"


def apply_discount(total_before: Decimal):
    """(savings, total after) for the fixed round-trip discount"""
    savings = round2(total_before * ROUND_TRIP_DISCOUNT)
    return savings, total_before - savings


def calculate_score(outbound: FlightOption, inbound: FlightOption, total_price: Decimal) -> int:
    """Rank a pair 0-100 on price, seat availability and demand"""
    score = 50

    if total_price < REFERENCE_ROUND_TRIP_PRICE:
        ratio = ((REFERENCE_ROUND_TRIP_PRICE - total_price) / REFERENCE_ROUND_TRIP_PRICE).quantize(
            CENT_RATIO, rounding=ROUND_HALF_UP
        )
        score += min(int(ratio * 30), 30)

    seats = outbound.available_seats + inbound.available_seats
    if seats > 100:
        score += 10
    elif seats > 50:
        score += 5

    low_legs = [leg.demand_level for leg in (outbound, inbound)].count(DemandLevel.LOW)
    if low_legs == 2:
        score += 10
    elif low_legs == 1:
        score += 5

    if DemandLevel.VERY_HIGH in (outbound.demand_level, inbound.demand_level):
        score -= 10

    return max(0, min(100, score))


def recommendation_reason(score: int) -> str:
    if score >= 80:
        return "Best value - great price with good availability"
    if score >= 70:
        return "Recommended - balanced price and availability"
    if score >= 60:
        return "Good option - competitive pricing"
    if score >= 50:
        return "Standard option"
    return "Limited availability or higher price"


def generate_recommendations(
    outbound_options: List[FlightOption], return_options: List[FlightOption]
) -> List[RecommendedCombination]:
    """Every outbound x return pair, best score first, at most ten"""
    combinations = []
    for outbound in outbound_options:
        for inbound in return_options:
            total_before = outbound.dynamic_price + inbound.dynamic_price
            savings, total_after = apply_discount(total_before)
            score = calculate_score(outbound, inbound, total_after)
            total_minutes = outbound.duration_minutes + inbound.duration_minutes

            combinations.append(RecommendedCombination(
                outbound_flight_id=outbound.flight_id,
                return_flight_id=inbound.flight_id,
                total_before_discount=round2(total_before),
                total_after_discount=round2(total_after),
                savings=savings,
                total_duration=format_duration(total_minutes),
                score=score,
                reason=recommendation_reason(score),
            ))

    # sorted() is stable, so equal scores keep input order
    combinations = sorted(combinations, key=lambda c: c.score, reverse=True)
    return combinations[:MAX_RECOMMENDATIONS]


def is_good_deal(outbound: PricingQuote, inbound: PricingQuote) -> bool:
    calm = (DemandLevel.LOW, DemandLevel.MEDIUM)
    low_demand = outbound.demand_level in calm and inbound.demand_level in calm
    early_booking = (
        outbound.days_until_departure > EARLY_BOOKING_DAYS
        or inbound.days_until_departure > EARLY_BOOKING_DAYS
    )
    return low_demand or early_booking


def discount_recommendation(
    savings: Decimal, good_deal: bool, outbound_level: DemandLevel, return_level: DemandLevel
) -> str:
    if good_deal:
        return f"Excellent deal! Save ${savings:.2f} with round-trip booking. Book now!"
    if DemandLevel.VERY_HIGH in (outbound_level, return_level):
        return f"High demand detected. Still save ${savings:.2f} with round-trip - book soon!"
    return f"Save ${savings:.2f} by booking round-trip instead of separate tickets"


class RoundTripService:
    """Combines independently priced outbound and return flights"""

    def __init__(self, flight_service: FlightService, pricing_service: PricingService):
        self.flight_service = flight_service
        self.pricing_service = pricing_service

    def search_round_trip(self, request: RoundTripSearchRequest) -> RoundTripSearchResponse:
        if request.return_date < request.departure_date:
            raise ValidationError("Return date must not be before departure date")

        origin, destination = request.origin.upper(), request.destination.upper()
        logger.info(
            "Searching round trip %s -> %s (%s), return (%s)",
            origin, destination, request.departure_date, request.return_date,
        )

        outbound_flights = self.flight_service.search_flights(FlightSearchRequest(
            origin=origin, destination=destination,
            departure_date=request.departure_date, flexible_dates=request.flexible_dates,
        ))
        return_flights = self.flight_service.search_flights(FlightSearchRequest(
            origin=destination, destination=origin,
            departure_date=request.return_date, flexible_dates=request.flexible_dates,
        ))

        booking_date = self.pricing_service.today()
        outbound_options = self.to_options(outbound_flights, request.cabin_class, booking_date)
        return_options = self.to_options(return_flights, request.cabin_class, booking_date)
        recommendations = generate_recommendations(outbound_options, return_options)

        lowest = min((c.total_after_discount for c in recommendations), default=Decimal("0"))
        logger.info(
            "Round trip search: %d outbound, %d return, %d recommendations",
            len(outbound_options), len(return_options), len(recommendations),
        )

        return RoundTripSearchResponse(
            outbound_flights=outbound_options,
            return_flights=return_options,
            recommendations=recommendations,
            lowest_round_trip_price=lowest,
            round_trip_discount=round2(lowest * ROUND_TRIP_DISCOUNT),
            discount_percent=DISCOUNT_PERCENT,
        )

    def to_options(
        self, flights: List[Flight], cabin_class: CabinClass, booking_date: date
    ) -> List[FlightOption]:
        options = []
        for flight in flights:
            if flight.status == FlightStatus.CANCELLED:
                continue
            quote = self.pricing_service.quote(flight, cabin_class, booking_date)
            options.append(FlightOption(
                flight_id=flight.id,
                flight_number=flight.flight_number,
                origin=flight.origin,
                destination=flight.destination,
                departure_time=flight.departure_time.isoformat(),
                arrival_time=flight.arrival_time.isoformat(),
                duration=format_duration(flight.duration_minutes),
                duration_minutes=flight.duration_minutes,
                airline=flight.airline,
                base_price=quote.base_price,
                dynamic_price=quote.final_price,
                available_seats=flight.available_for(cabin_class),
                demand_level=quote.demand_level,
                price_reason=quote.recommendation,
            ))
        return options

    def calculate_discount(
        self,
        outbound_flight_id: int,
        return_flight_id: int,
        cabin_class: CabinClass = CabinClass.ECONOMY,
        booking_date: Optional[date] = None,
    ) -> RoundTripDiscountResponse:
        """Round-trip price of one specific pair, tax included"""
        logger.info(
            "Calculating round-trip discount: outbound=%s, return=%s, class=%s",
            outbound_flight_id, return_flight_id, CabinClass(cabin_class).value,
        )
        outbound = self.flight_service.get_flight(outbound_flight_id)
        inbound = self.flight_service.get_flight(return_flight_id)
        booking_date = booking_date or self.pricing_service.today()

        outbound_quote = self.pricing_service.quote(outbound, cabin_class, booking_date)
        return_quote = self.pricing_service.quote(inbound, cabin_class, booking_date)

        total_before = outbound_quote.total_price + return_quote.total_price
        savings, total_after = apply_discount(total_before)
        good_deal = is_good_deal(outbound_quote, return_quote)

        return RoundTripDiscountResponse(
            outbound_flight=self._summary(outbound, cabin_class),
            return_flight=self._summary(inbound, cabin_class),
            outbound_price=outbound_quote.total_price,
            return_price=return_quote.total_price,
            total_price_before_discount=total_before,
            discount_percent=DISCOUNT_PERCENT,
            discount_amount=savings,
            total_price_after_discount=total_after,
            total_savings=savings,
            is_good_deal=good_deal,
            discount_message="5% discount applied for round-trip booking",
            recommendation=discount_recommendation(
                savings, good_deal, outbound_quote.demand_level, return_quote.demand_level
            ),
        )

    @staticmethod
    def _summary(flight: Flight, cabin_class: CabinClass) -> FlightSummary:
        return FlightSummary(
            flight_id=flight.id,
            flight_number=flight.flight_number,
            route=flight.route,
            departure_time=flight.departure_time.isoformat(),
            arrival_time=flight.arrival_time.isoformat(),
            duration=format_duration(flight.duration_minutes),
            airline=flight.airline,
            available_seats=flight.available_for(cabin_class),
        )

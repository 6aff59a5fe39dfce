from datetime import date, timedelta
from decimal import Decimal

import pytest

from airline_booking.exceptions import FlightNotFound, ValidationError
from airline_booking.flights.schemas import FlightStatus
from airline_booking.pricing.roundtrip_service import (
    apply_discount, calculate_score, format_duration, generate_recommendations
)
from airline_booking.pricing.schemas import DemandLevel, FlightOption, RoundTripSearchRequest

from conftest import NOW


def option(flight_id=1, price="100.00", seats=60, level=DemandLevel.LOW, minutes=120) -> FlightOption:
    return FlightOption(
        flight_id=flight_id,
        flight_number=f"SU{flight_id:04d}",
        origin="SVO",
        destination="LED",
        departure_time="2026-03-12T12:00:00+00:00",
        arrival_time="2026-03-12T14:00:00+00:00",
        duration=format_duration(minutes),
        duration_minutes=minutes,
        base_price=Decimal(price),
        dynamic_price=Decimal(price),
        available_seats=seats,
        demand_level=level,
        price_reason="",
    )


class TestDiscount:

    @pytest.mark.parametrize("before, savings, after", [
        ("420.00", "21.00", "399.00"),
        ("333.33", "16.67", "316.66"),
        ("367.50", "18.38", "349.12"),
    ])
    def test_savings_and_total_add_up(self, before, savings, after):
        got_savings, got_after = apply_discount(Decimal(before))

        assert got_savings == Decimal(savings)
        assert got_after == Decimal(after)
        assert got_savings + got_after == Decimal(before)

    def test_durations(self):
        assert format_duration(155) == "2h 35m"
        assert format_duration(60) == "1h 0m"
        assert format_duration(0) == "0h 0m"


class TestScore:

    def test_cheap_pair_with_seats_and_low_demand(self):
        # 190 after discount: (350 - 190) / 350 = 0.46 -> 13 points
        assert calculate_score(option(1), option(2), Decimal("190.00")) == 83

    def test_very_high_demand_penalty(self):
        outbound = option(1, level=DemandLevel.VERY_HIGH)
        assert calculate_score(outbound, option(2), Decimal("190.00")) == 68

    def test_expensive_crowded_pair(self):
        outbound = option(1, seats=10, level=DemandLevel.HIGH)
        inbound = option(2, seats=10, level=DemandLevel.HIGH)
        assert calculate_score(outbound, inbound, Decimal("900.00")) == 50

    def test_price_bonus_is_capped_and_score_stays_in_range(self):
        score = calculate_score(option(1, seats=500), option(2, seats=500), Decimal("0.00"))
        assert score == 100

    def test_moderate_availability(self):
        outbound = option(1, seats=30, level=DemandLevel.MEDIUM)
        inbound = option(2, seats=30, level=DemandLevel.MEDIUM)
        assert calculate_score(outbound, inbound, Decimal("400.00")) == 55


class TestRecommendations:

    def test_top_ten_best_first(self):
        outbound = [option(i, price=str(80 + 20 * i)) for i in range(1, 5)]
        inbound = [option(10 + i, price=str(90 + 15 * i)) for i in range(1, 4)]

        recommendations = generate_recommendations(outbound, inbound)

        assert len(recommendations) == 10
        scores = [r.score for r in recommendations]
        assert scores == sorted(scores, reverse=True)
        assert all(0 <= s <= 100 for s in scores)

    def test_equal_scores_keep_input_order(self):
        outbound = [option(1), option(2)]
        inbound = [option(11), option(12)]

        recommendations = generate_recommendations(outbound, inbound)

        assert [(r.outbound_flight_id, r.return_flight_id) for r in recommendations] == [
            (1, 11), (1, 12), (2, 11), (2, 12),
        ]

    def test_combination_fields(self):
        [combination] = generate_recommendations(
            [option(1, minutes=155)], [option(2, minutes=220)]
        )

        assert combination.total_before_discount == Decimal("200.00")
        assert combination.savings == Decimal("10.00")
        assert combination.total_after_discount == Decimal("190.00")
        assert combination.total_duration == "6h 15m"
        assert combination.score == 83
        assert combination.reason == "Best value - great price with good availability"

    def test_no_options(self):
        assert generate_recommendations([], [option(2)]) == []


@pytest.fixture
def route(make_flight, services):
    outbound = make_flight()
    cheaper = make_flight(flight_number="SU1250", base_price=Decimal("150.00"))
    back = make_flight(
        flight_number="SU1235", origin="LED", destination="SVO",
        departure_time=NOW + timedelta(days=12),
    )
    cancelled = make_flight(flight_number="SU1299", base_price=Decimal("10.00"))
    services.flights.update_status(cancelled.id, FlightStatus.CANCELLED)
    return outbound, cheaper, back


class TestSearch:

    def test_search(self, services, route):
        outbound, cheaper, back = route

        response = services.round_trips.search_round_trip(RoundTripSearchRequest(
            origin="svo", destination="led",
            departure_date=date(2026, 3, 12), return_date=date(2026, 3, 14),
        ))

        assert {o.flight_id for o in response.outbound_flights} == {outbound.id, cheaper.id}
        assert [o.flight_id for o in response.return_flights] == [back.id]
        assert response.return_flights[0].duration == "2h 0m"
        assert response.return_flights[0].duration_minutes == 120
        assert response.return_flights[0].dynamic_price == Decimal("210.00")
        assert len(response.recommendations) == 2
        assert response.lowest_round_trip_price == Decimal("349.12")
        assert response.round_trip_discount == Decimal("17.46")
        assert response.discount_percent == Decimal("5.0")

    def test_return_before_departure(self, services, route):
        with pytest.raises(ValidationError):
            services.round_trips.search_round_trip(RoundTripSearchRequest(
                origin="SVO", destination="LED",
                departure_date=date(2026, 3, 14), return_date=date(2026, 3, 12),
            ))

    def test_no_return_flights(self, services, route):
        response = services.round_trips.search_round_trip(RoundTripSearchRequest(
            origin="SVO", destination="LED",
            departure_date=date(2026, 3, 12), return_date=date(2026, 3, 20),
        ))

        assert response.recommendations == []
        assert response.lowest_round_trip_price == Decimal("0")


class TestDiscountQuote:

    def test_pair_quote_includes_tax(self, services, route):
        outbound, _, back = route

        response = services.round_trips.calculate_discount(outbound.id, back.id)

        assert response.outbound_price == Decimal("241.50")
        assert response.return_price == Decimal("241.50")
        assert response.total_price_before_discount == Decimal("483.00")
        assert response.discount_amount == Decimal("24.15")
        assert response.total_savings == Decimal("24.15")
        assert response.total_price_after_discount == Decimal("458.85")
        assert response.is_good_deal
        assert response.recommendation == "Excellent deal! Save $24.15 with round-trip booking. Book now!"
        assert response.outbound_flight.route == "SVO → LED"

    def test_last_minute_pair_is_not_a_good_deal(self, services, make_flight):
        outbound = make_flight(departure_time=NOW + timedelta(days=1))
        back = make_flight(
            flight_number="SU1235", origin="LED", destination="SVO",
            departure_time=NOW + timedelta(days=2),
        )

        response = services.round_trips.calculate_discount(outbound.id, back.id)

        assert not response.is_good_deal
        assert response.recommendation.startswith("High demand detected.")

    def test_early_booking_is_a_good_deal(self, services, make_flight):
        outbound = make_flight(departure_time=NOW + timedelta(days=1))
        back = make_flight(
            flight_number="SU1235", origin="LED", destination="SVO",
            departure_time=NOW + timedelta(days=45),
        )

        assert services.round_trips.calculate_discount(outbound.id, back.id).is_good_deal

    def test_unknown_flight(self, services, route):
        outbound, _, _ = route
        with pytest.raises(FlightNotFound):
            services.round_trips.calculate_discount(outbound.id, 999)

from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

import pytest

from airline_booking.exceptions import NoSeatsAvailable, SeatTaken, ValidationError, WrongCabinClass
from airline_booking.flights.schemas import CabinClass, Flight, SeatPreference
from airline_booking.flights.seat_service import SeatAssignmentService, generate_seats

from conftest import NOW


@pytest.fixture
def occupied():
    return defaultdict(set)


@pytest.fixture
def seats(occupied):
    return SeatAssignmentService(lambda flight_id: occupied[flight_id])


@pytest.fixture
def flight():
    return Flight(
        id=7,
        flight_number="SU1234",
        origin="SVO",
        destination="LED",
        departure_time=NOW + timedelta(days=5),
        arrival_time=NOW + timedelta(days=5, hours=2),
        duration_minutes=120,
        base_price=Decimal("200.00"),
        total_seats=128,
        economy_seats=100,
        business_seats=20,
        first_class_seats=8,
        available_seats=128,
        available_economy=100,
        available_business=20,
        available_first_class=8,
    )


class TestCabinLayout:

    def test_first_class_rows(self):
        assert generate_seats(CabinClass.FIRST_CLASS) == ["1A", "1B", "1C", "1D", "2A", "2B", "2C", "2D"]

    def test_economy_starts_at_row_nine(self):
        economy = generate_seats(CabinClass.ECONOMY)
        assert economy[0] == "9A"
        assert economy[-1] == "35F"


class TestAutoAssign:

    def test_no_preference_takes_first_free_seat(self, seats, flight):
        assert seats.assign(flight, CabinClass.ECONOMY) == "9A"

    @pytest.mark.parametrize("preference, expected", [
        (SeatPreference.WINDOW, "9A"),
        (SeatPreference.AISLE, "9C"),
        (SeatPreference.MIDDLE, "9B"),
    ])
    def test_preference(self, seats, flight, preference, expected):
        assert seats.assign(flight, CabinClass.ECONOMY, preference=preference) == expected

    def test_window_skips_taken_seat(self, seats, flight, occupied):
        occupied[flight.id].add("9A")
        assert seats.assign(flight, CabinClass.ECONOMY, preference=SeatPreference.WINDOW) == "9F"

    def test_pending_seats_count_as_taken(self, seats, flight):
        seat = seats.assign(flight, CabinClass.ECONOMY, pending=["9A", "9B"])
        assert seat == "9C"

    def test_preference_falls_back_to_any_free_seat(self, seats, flight, occupied):
        occupied[flight.id].update({"1A", "2A"})
        seat = seats.assign(flight, CabinClass.FIRST_CLASS, preference=SeatPreference.WINDOW)
        assert seat == "1B"

    def test_full_cabin(self, seats, flight, occupied):
        occupied[flight.id].update(generate_seats(CabinClass.FIRST_CLASS))
        with pytest.raises(NoSeatsAvailable):
            seats.assign(flight, CabinClass.FIRST_CLASS)

    def test_other_flights_do_not_interfere(self, seats, flight, occupied):
        occupied[99].add("9A")
        assert seats.assign(flight, CabinClass.ECONOMY) == "9A"


class TestRequestedSeat:

    def test_requested_seat_is_normalized(self, seats, flight):
        assert seats.assign(flight, CabinClass.BUSINESS, requested_seat=" 4c ") == "4C"

    def test_taken_seat(self, seats, flight, occupied):
        occupied[flight.id].add("12C")
        with pytest.raises(SeatTaken):
            seats.assign(flight, CabinClass.ECONOMY, requested_seat="12C")

    def test_seat_in_another_cabin(self, seats, flight):
        with pytest.raises(WrongCabinClass):
            seats.assign(flight, CabinClass.ECONOMY, requested_seat="3A")

    @pytest.mark.parametrize("seat", ["ZZ", "A12", "0A", "123A"])
    def test_malformed_seat(self, seats, flight, seat):
        with pytest.raises(ValidationError):
            seats.assign(flight, CabinClass.ECONOMY, requested_seat=seat)

    def test_blank_request_is_auto_assigned(self, seats, flight):
        assert seats.assign(flight, CabinClass.ECONOMY, requested_seat="  ") == "9A"


class TestSeatMap:

    def test_lists_occupied_seats_of_one_cabin(self, seats, flight, occupied):
        occupied[flight.id].update({"10B", "9F", "3A", "1C"})

        seat_map = seats.seat_map(flight, CabinClass.ECONOMY)

        assert seat_map.occupied_seats == ["9F", "10B"]
        assert seat_map.total_seats == 100
        assert seat_map.available_seats == 98

    def test_is_seat_available(self, seats, flight, occupied):
        occupied[flight.id].add("9A")
        assert not seats.is_seat_available(flight.id, "9A")
        assert seats.is_seat_available(flight.id, "9B")
        assert seats.is_seat_available(flight.id, None)

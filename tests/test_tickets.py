import re
from datetime import timedelta

import pytest

from airline_booking.bookings.schemas import TicketStatus
from airline_booking.bookings.ticket_service import E_TICKET_ALPHABET, TicketNumberGenerator
from airline_booking.exceptions import (
    AccessDenied, BookingNotFound, InvalidTransition, SeatTaken, WrongCabinClass
)

from conftest import NOW, FakeClock, booking_request, passenger

USER = "user-1"


@pytest.fixture
def flight(make_flight):
    return make_flight()


@pytest.fixture
def confirmed(services, flight):
    booking = services.bookings.create_booking(booking_request(flight.id), USER)
    return services.bookings.confirm_booking(booking.booking_reference, USER)


@pytest.fixture
def ticket_id(confirmed):
    return confirmed.tickets[0].id


@pytest.fixture
def check_in_open(clock, flight):
    clock.now = flight.departure_time - timedelta(hours=3)
    return clock


class TestCheckIn:

    def test_check_in(self, services, ticket_id, check_in_open):
        ticket = services.tickets.check_in(ticket_id, USER)

        assert ticket.status == TicketStatus.CHECKED_IN
        assert ticket.checked_in_at == check_in_open.now
        assert ticket.seat_number == "9A"

    def test_unconfirmed_ticket(self, services, flight, clock):
        booking = services.bookings.create_booking(booking_request(flight.id), USER)
        clock.now = flight.departure_time - timedelta(hours=3)

        with pytest.raises(InvalidTransition, match="Cannot check in ticket in status: ISSUED"):
            services.tickets.check_in(booking.tickets[0].id, USER)

    def test_too_early(self, services, ticket_id):
        with pytest.raises(InvalidTransition, match="24 hours before departure"):
            services.tickets.check_in(ticket_id, USER)

    def test_window_opens_exactly_a_day_before(self, services, ticket_id, flight, clock):
        clock.now = flight.departure_time - timedelta(hours=24)
        assert services.tickets.check_in(ticket_id, USER).status == TicketStatus.CHECKED_IN

    def test_window_closes_at_departure(self, services, ticket_id, flight, clock):
        clock.now = flight.departure_time
        with pytest.raises(InvalidTransition):
            services.tickets.check_in(ticket_id, USER)

    def test_check_in_twice(self, services, ticket_id, check_in_open):
        services.tickets.check_in(ticket_id, USER)
        with pytest.raises(InvalidTransition):
            services.tickets.check_in(ticket_id, USER)

    def test_change_seat(self, services, ticket_id, flight, check_in_open):
        ticket = services.tickets.check_in(ticket_id, USER, seat_number="15d")

        assert ticket.seat_number == "15D"
        assert "9A" not in services.seats.occupied_seats(flight.id)
        assert "15D" in services.seats.occupied_seats(flight.id)

    def test_keep_own_seat(self, services, ticket_id, check_in_open):
        assert services.tickets.check_in(ticket_id, USER, seat_number="9A").seat_number == "9A"

    def test_change_to_taken_seat(self, services, ticket_id, flight, check_in_open):
        services.bookings.create_booking(booking_request(flight.id, [passenger(2)]), "user-2")

        with pytest.raises(SeatTaken):
            services.tickets.check_in(ticket_id, USER, seat_number="9B")

        _, ticket = services.tickets.get_ticket(ticket_id)
        assert ticket.status == TicketStatus.CONFIRMED
        assert ticket.seat_number == "9A"

    def test_change_to_other_cabin(self, services, ticket_id, check_in_open):
        with pytest.raises(WrongCabinClass):
            services.tickets.check_in(ticket_id, USER, seat_number="2A")

    def test_someone_elses_ticket(self, services, ticket_id, check_in_open):
        with pytest.raises(AccessDenied):
            services.tickets.check_in(ticket_id, "intruder")

    def test_unknown_ticket(self, services):
        with pytest.raises(BookingNotFound):
            services.tickets.check_in(12345, USER)


class TestBoarding:

    def test_board_after_check_in(self, services, ticket_id, check_in_open):
        services.tickets.check_in(ticket_id, USER)

        ticket = services.tickets.board(ticket_id)

        assert ticket.status == TicketStatus.BOARDED
        assert ticket.boarded_at == check_in_open.now

    def test_board_without_check_in(self, services, ticket_id):
        with pytest.raises(InvalidTransition, match="Cannot board ticket in status: CONFIRMED"):
            services.tickets.board(ticket_id)

    def test_boarded_booking_cannot_be_cancelled(self, services, confirmed, ticket_id, check_in_open):
        services.tickets.check_in(ticket_id, USER)
        services.tickets.board(ticket_id)

        with pytest.raises(InvalidTransition, match="Cannot cancel used ticket"):
            services.bookings.cancel_booking(confirmed.booking_reference, USER)

    def test_checked_in_booking_can_still_be_cancelled(self, services, confirmed, ticket_id, check_in_open):
        services.tickets.check_in(ticket_id, USER)

        cancelled = services.bookings.cancel_booking(confirmed.booking_reference, USER)

        assert cancelled.tickets[0].status == TicketStatus.CANCELLED


class TestTicketNumbers:

    def test_format(self):
        generator = TicketNumberGenerator(clock=FakeClock())

        first = generator.next_ticket_number()
        second = generator.next_ticket_number()

        assert re.fullmatch(r"555\d{10}", first)
        assert first[:8] == second[:8]
        assert first.endswith("00001")
        assert second.endswith("00002")

    def test_sequence_wraps_at_five_digits(self):
        generator = TicketNumberGenerator(prefix="777", clock=FakeClock(), start=99999)

        assert generator.next_ticket_number().endswith("99999")
        assert generator.next_ticket_number().endswith("00000")

    def test_millis_part_follows_the_clock(self):
        before = TicketNumberGenerator(clock=FakeClock(NOW)).next_ticket_number()
        after = TicketNumberGenerator(clock=FakeClock(NOW + timedelta(seconds=7))).next_ticket_number()

        assert (int(after[3:8]) - int(before[3:8])) % 100000 == 7000

    def test_e_ticket_number(self):
        e_ticket = TicketNumberGenerator.next_e_ticket_number()
        assert len(e_ticket) == 6
        assert set(e_ticket) <= set(E_TICKET_ALPHABET)

    def test_issued_tickets_carry_numbers(self, confirmed):
        ticket = confirmed.tickets[0]
        assert ticket.ticket_number.startswith("555")
        assert len(ticket.e_ticket_number) == 6

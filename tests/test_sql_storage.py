"""Services wired with STORAGE_BACKEND=sql, sharing one database between graphs"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from airline_booking.bookings.schemas import BookingStatus, PaymentStatus, TicketStatus
from airline_booking.database import build_engine, create_tables
from airline_booking.exceptions import ConcurrentModification
from airline_booking.flights.schemas import CabinClass, CreateFlightRequest
from airline_booking.pricing.schemas import CreateHolidayRequest
from airline_booking.services import build_services

from conftest import NOW, booking_request, passenger

USER = "user-1"


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    create_tables(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def start(test_settings, clock, notifications, session_factory):
    """Build a service graph on the shared database, as a fresh process would"""
    sql_settings = test_settings.model_copy(update={"STORAGE_BACKEND": "sql"})

    def _start():
        return build_services(
            sql_settings, clock=clock, session_factory=session_factory, notifications=notifications
        )
    return _start


@pytest.fixture
def worker(start):
    return start()


@pytest.fixture
def flight(worker):
    departure = NOW + timedelta(days=10)
    return worker.flights.register_flight(CreateFlightRequest(
        flight_number="SU1234",
        airline="Aeroflot",
        origin="SVO",
        destination="LED",
        departure_time=departure,
        arrival_time=departure + timedelta(hours=2),
        base_price=Decimal("200.00"),
        economy_seats=100,
        business_seats=20,
    ))


def economy_left(services, flight):
    return services.flight_repository.get(flight.id).available_for(CabinClass.ECONOMY)


class TestRestart:

    def test_bookings_outlive_the_process(self, start, worker, flight):
        booking = worker.bookings.create_booking(booking_request(flight.id), USER)
        worker.bookings.confirm_booking(booking.booking_reference, USER)

        restarted = start()
        stored = restarted.bookings.get_booking(booking.booking_reference, USER)

        assert stored.status == BookingStatus.CONFIRMED
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.total_amount == Decimal("241.50")
        assert stored.expires_at == NOW + timedelta(minutes=15)
        assert [t.seat_number for t in stored.tickets] == ["9A"]
        assert stored.tickets[0].status == TicketStatus.CONFIRMED
        assert stored.tickets[0].booking_reference == booking.booking_reference
        assert economy_left(restarted, flight) == 99

        restarted.bookings.cancel_booking(booking.booking_reference, USER)
        assert economy_left(restarted, flight) == 100

    def test_sweep_after_restart_releases_seats(self, start, worker, flight, clock):
        booking = worker.bookings.create_booking(booking_request(flight.id, [passenger(1), passenger(2)]), USER)
        clock.advance(minutes=16)

        restarted = start()
        result = restarted.expiration.run_once()

        assert (result.checked, result.expired, result.failed) == (1, 1, 0)
        stored = restarted.bookings.get_booking(booking.booking_reference)
        assert stored.status == BookingStatus.EXPIRED
        assert {t.status for t in stored.tickets} == {TicketStatus.VOIDED}
        assert economy_left(restarted, flight) == 100
        assert restarted.booking_repository.occupied_seats(flight.id) == set()


class TestTwoWorkers:

    def test_seat_codes_are_shared(self, start, worker, flight):
        other = start()

        first = worker.bookings.create_booking(booking_request(flight.id), USER)
        second = other.bookings.create_booking(booking_request(flight.id, [passenger(2)]), "user-2")

        assert first.tickets[0].seat_number == "9A"
        assert second.tickets[0].seat_number != "9A"
        assert economy_left(worker, flight) == 98

    def test_stale_copy_cannot_overwrite(self, worker, flight, clock):
        reference = worker.bookings.create_booking(booking_request(flight.id), USER).booking_reference
        repository = worker.booking_repository
        mine = repository.get_by_reference(reference)
        theirs = repository.get_by_reference(reference)

        mine.confirm(clock())
        repository.save(mine)
        theirs.mark_cancelled("too late", clock())

        with pytest.raises(ConcurrentModification):
            repository.save(theirs)
        assert repository.get_by_reference(reference).status == BookingStatus.CONFIRMED

    def test_one_live_ticket_per_seat(self, worker, flight):
        taken = worker.bookings.create_booking(booking_request(flight.id), USER)
        other = worker.bookings.create_booking(booking_request(flight.id, [passenger(2)]), "user-2")
        copy = worker.booking_repository.get_by_reference(other.booking_reference)
        copy.tickets[0].seat_number = "9A"

        with pytest.raises(ConcurrentModification):
            worker.booking_repository.save(copy)

        worker.bookings.cancel_booking(taken.booking_reference, USER)
        worker.booking_repository.save(copy)
        assert worker.booking_repository.occupied_seats(flight.id) == {"9A"}


class TestStoredDetails:

    def test_saved_passengers_are_reused(self, worker, flight):
        frequent = passenger(1, save_for_future=True)
        first = worker.bookings.create_booking(booking_request(flight.id, [frequent]), USER)
        second = worker.bookings.create_booking(booking_request(flight.id, [frequent]), USER)

        assert first.tickets[0].passenger_id == second.tickets[0].passenger_id
        assert [p.passport_number for p in worker.bookings.get_saved_passengers(USER)] == ["P0000001"]
        assert worker.bookings.get_saved_passengers("user-2") == []

    def test_newest_first(self, worker, flight, clock):
        older = worker.bookings.create_booking(booking_request(flight.id), USER)
        clock.advance(minutes=1)
        newer = worker.bookings.create_booking(booking_request(flight.id, [passenger(2)]), USER)

        listed = worker.bookings.get_user_bookings(USER)

        assert [b.booking_reference for b in listed] == [newer.booking_reference, older.booking_reference]
        assert len(worker.booking_repository) == 2

    def test_check_in_is_stored(self, start, worker, flight, clock):
        booking = worker.bookings.create_booking(booking_request(flight.id), USER)
        worker.bookings.confirm_booking(booking.booking_reference, USER)
        clock.advance(days=9, hours=22)

        worker.tickets.check_in(booking.tickets[0].id, USER, "14A")

        _, ticket = start().tickets.get_ticket(booking.tickets[0].id, USER)
        assert ticket.status == TicketStatus.CHECKED_IN
        assert ticket.seat_number == "14A"
        assert ticket.checked_in_at == clock()

    def test_holidays(self, start, worker):
        worker.pricing.add_holiday(CreateHolidayRequest(
            country="UZ", holiday_date=date(2026, 3, 21), name="Navruz",
        ))

        [holiday] = start().pricing.list_holidays("uz")
        assert holiday.name == "Navruz"
        assert holiday.holiday_date == date(2026, 3, 21)
        assert holiday.is_active

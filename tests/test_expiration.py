import threading
import time

import pytest

from airline_booking.bookings.expiration import BookingExpirationScheduler
from airline_booking.bookings.schemas import BookingStatus
from airline_booking.exceptions import BookingExpired
from airline_booking.flights.schemas import CabinClass

from conftest import booking_request, passenger

USER = "user-1"


@pytest.fixture
def flight(make_flight):
    return make_flight()


@pytest.fixture
def book(services, flight):
    def _book(n=1):
        return services.bookings.create_booking(booking_request(flight.id, [passenger(n)]), USER)
    return _book


def economy_left(services, flight):
    return services.flight_repository.get(flight.id).available_for(CabinClass.ECONOMY)


class TestSweep:

    def test_nothing_to_do(self, services, book):
        book()
        result = services.expiration.run_once()

        assert (result.checked, result.expired, result.failed) == (0, 0, 0)

    def test_expires_overdue_bookings_only(self, services, flight, book, clock):
        overdue = [book(1), book(2)]
        paid = book(3)
        services.bookings.confirm_booking(paid.booking_reference)
        clock.advance(minutes=16)

        result = services.expiration.run_once()

        assert (result.checked, result.expired, result.failed) == (2, 2, 0)
        for booking in overdue:
            assert services.bookings.get_booking(booking.booking_reference).status == BookingStatus.EXPIRED
        assert services.bookings.get_booking(paid.booking_reference).status == BookingStatus.CONFIRMED
        assert economy_left(services, flight) == 99

    def test_one_failure_does_not_stop_the_sweep(self, services, book, clock, monkeypatch):
        stale = book(1)
        paid = book(2)
        services.bookings.confirm_booking(paid.booking_reference)
        clock.advance(minutes=16)
        # paid slipped in between the scan and the lock
        monkeypatch.setattr(
            services.bookings, "find_overdue_references",
            lambda: [paid.booking_reference, stale.booking_reference],
        )

        result = services.expiration.run_once()

        assert (result.checked, result.expired, result.failed) == (2, 1, 1)
        assert services.bookings.get_booking(stale.booking_reference).status == BookingStatus.EXPIRED

    def test_second_sweep_finds_nothing(self, services, book, clock):
        book()
        clock.advance(minutes=16)
        services.expiration.run_once()

        assert services.expiration.run_once().checked == 0


class TestBackgroundThread:

    def test_start_and_stop(self, services, book, clock):
        booking = book()
        clock.advance(minutes=16)
        scheduler = BookingExpirationScheduler(services.bookings, interval_seconds=0.01)

        scheduler.start()
        try:
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                if services.bookings.get_booking(booking.booking_reference).status == BookingStatus.EXPIRED:
                    break
                time.sleep(0.01)
        finally:
            scheduler.stop()

        assert services.bookings.get_booking(booking.booking_reference).status == BookingStatus.EXPIRED
        assert not scheduler.running
        assert scheduler._thread is None

    def test_start_twice_keeps_one_thread(self, services):
        scheduler = BookingExpirationScheduler(services.bookings, interval_seconds=10)
        scheduler.start()
        thread = scheduler._thread
        scheduler.start()

        assert scheduler._thread is thread
        scheduler.stop()
        assert not thread.is_alive()

    def test_stop_without_start(self, services):
        BookingExpirationScheduler(services.bookings).stop()


class TestConfirmRacingExpiry:

    def test_exactly_one_outcome(self, services, flight, book, clock, notifications):
        booking = book()
        clock.advance(minutes=16)
        barrier = threading.Barrier(2)
        errors = []

        def confirm():
            barrier.wait()
            try:
                services.bookings.confirm_booking(booking.booking_reference)
            except BookingExpired as e:
                errors.append(e)

        def sweep():
            barrier.wait()
            services.expiration.run_once()

        threads = [threading.Thread(target=confirm), threading.Thread(target=sweep)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 1
        stored = services.bookings.get_booking(booking.booking_reference)
        assert stored.status == BookingStatus.EXPIRED
        assert notifications.events == [("expired", booking.booking_reference)]
        assert economy_left(services, flight) == 100

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from airline_booking.bookings.schemas import CreateBookingRequest, Gender, PassengerInfo
from airline_booking.config import Settings
from airline_booking.flights.schemas import CabinClass, CreateFlightRequest
from airline_booking.notifications import NotificationService
from airline_booking.services import build_services

# Monday
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock shared by every service in a test"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifications(NotificationService):

    def __init__(self):
        self.events = []

    def booking_confirmed(self, booking):
        self.events.append(("confirmed", booking.booking_reference))

    def booking_cancelled(self, booking):
        self.events.append(("cancelled", booking.booking_reference))

    def booking_expired(self, booking):
        self.events.append(("expired", booking.booking_reference))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def test_settings():
    return Settings(
        STORAGE_BACKEND="memory",
        EXPIRATION_SWEEP_ENABLED=False,
        LOCAL_TIMEZONE="UTC",
        BOOKING_EXPIRATION_MINUTES=15,
        MAX_PASSENGERS_PER_BOOKING=9,
        MIN_HOURS_BEFORE_DEPARTURE=2,
    )


@pytest.fixture
def services(test_settings, clock, notifications):
    return build_services(test_settings, clock=clock, notifications=notifications)


@pytest.fixture
def make_flight(services):
    """Register a flight; defaults depart 10 days after NOW on a Thursday"""

    def _make_flight(**overrides):
        departure = overrides.pop("departure_time", NOW + timedelta(days=10))
        duration = overrides.pop("duration", timedelta(hours=2))
        fields = dict(
            flight_number="SU1234",
            airline="Aeroflot",
            origin="SVO",
            destination="LED",
            departure_time=departure,
            arrival_time=departure + duration,
            base_price=Decimal("200.00"),
            business_price=Decimal("500.00"),
            first_class_price=Decimal("900.00"),
            economy_seats=100,
            business_seats=20,
            first_class_seats=8,
        )
        fields.update(overrides)
        return services.flights.register_flight(CreateFlightRequest(**fields))

    return _make_flight


def passenger(n: int = 1, **overrides) -> PassengerInfo:
    fields = dict(
        first_name=f"Ivan{n}",
        last_name="Petrov",
        passport_number=f"P{n:07d}",
        date_of_birth=date(1990, 1, 1),
        nationality="RU",
        gender=Gender.MALE,
        passport_country="RU",
        passport_expiry=date(2032, 1, 1),
    )
    fields.update(overrides)
    return PassengerInfo(**fields)


def booking_request(flight_id: int, passengers=None, **overrides) -> CreateBookingRequest:
    fields = dict(
        flight_id=flight_id,
        passengers=passengers if passengers is not None else [passenger()],
        contact_email="ivan@example.com",
        contact_phone="+79990000000",
        default_cabin_class=CabinClass.ECONOMY,
    )
    fields.update(overrides)
    return CreateBookingRequest(**fields)

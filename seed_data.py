#!/usr/bin/env python3

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from airline_booking.database import SessionLocal, create_tables
from airline_booking.flights.flight_service import FlightService
from airline_booking.flights.repository import SqlAlchemyFlightRepository
from airline_booking.flights.schemas import CreateFlightRequest
from airline_booking.models import BookingRecord, FlightRecord, HolidayRecord, PassengerRecord, TicketRecord
from airline_booking.pricing.holidays import SqlAlchemyHolidayRepository
from airline_booking.pricing.pricing_service import PricingService
from airline_booking.pricing.schemas import CreateHolidayRequest

# (flight number, airline, origin, destination, departure hour UTC, minutes, base, business, first)
ROUTES = [
    ("SU1234", "Aeroflot", "SVO", "LED", 7, 85, "89.00", "260.00", None),
    ("SU1235", "Aeroflot", "LED", "SVO", 18, 80, "92.00", "265.00", None),
    ("HY601", "Uzbekistan Airways", "TAS", "SVO", 9, 265, "210.00", "540.00", "880.00"),
    ("HY602", "Uzbekistan Airways", "SVO", "TAS", 21, 250, "205.00", "530.00", "870.00"),
    ("TK368", "Turkish Airlines", "IST", "TAS", 1, 285, "240.00", None, None),
    ("TK369", "Turkish Airlines", "TAS", "IST", 11, 330, "235.00", None, None),
]

DAYS_AHEAD = 45

# (country, month, day, name)
HOLIDAYS = [
    ("UZ", 1, 1, "New Year's Day"),
    ("UZ", 3, 8, "International Women's Day"),
    ("UZ", 3, 21, "Navruz"),
    ("UZ", 5, 9, "Day of Remembrance and Honour"),
    ("UZ", 9, 1, "Independence Day"),
    ("UZ", 10, 1, "Teachers' Day"),
    ("UZ", 12, 8, "Constitution Day"),
]

def create_seed_data():
    create_tables()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for Airline Booking Service...")

        print("Clearing existing data...")
        for model in (TicketRecord, BookingRecord, PassengerRecord, FlightRecord, HolidayRecord):
            db.query(model).delete()
        db.commit()

        flight_service = FlightService(SqlAlchemyFlightRepository(SessionLocal))
        today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        print(f"Registering flights for the next {DAYS_AHEAD} days...")
        created = 0
        for day in range(1, DAYS_AHEAD + 1):
            for number, airline, origin, destination, hour, minutes, base, business, first in ROUTES:
                departure = today + timedelta(days=day, hours=hour)
                flight_service.register_flight(CreateFlightRequest(
                    flight_number=number,
                    airline=airline,
                    origin=origin,
                    destination=destination,
                    departure_time=departure,
                    arrival_time=departure + timedelta(minutes=minutes),
                    aircraft_type="A320neo" if minutes < 200 else "B787-9",
                    base_price=Decimal(base),
                    business_price=Decimal(business) if business else None,
                    first_class_price=Decimal(first) if first else None,
                    economy_seats=150,
                    business_seats=24,
                    first_class_seats=8 if first else 0,
                ))
                created += 1

        print("Adding holidays...")
        pricing_service = PricingService(
            SqlAlchemyFlightRepository(SessionLocal), holiday_repository=SqlAlchemyHolidayRepository(SessionLocal)
        )
        for year in (today.year, today.year + 1):
            for country, month, day, name in HOLIDAYS:
                pricing_service.add_holiday(CreateHolidayRequest(
                    country=country, holiday_date=date(year, month, day), name=name
                ))

        print("✅ Successfully created seed data for Airline Booking Service!")
        print("Created:")
        print(f"  - {len(ROUTES)} routes")
        print(f"  - {created} flights")
        print(f"  - {2 * len(HOLIDAYS)} holidays")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()

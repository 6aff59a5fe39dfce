"""
Holiday stores for the price calendar.

Only active holidays are returned by range lookups; a country's full list
includes inactive ones so they can be reviewed.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from airline_booking.models import HolidayRecord
from airline_booking.pricing.schemas import Holiday


class HolidayRepository(ABC):

    @abstractmethod
    def add(self, holiday: Holiday) -> Holiday:
        ...

    @abstractmethod
    def find_in_range(self, start: date, end: date, country: str) -> List[Holiday]:
        """Active holidays of a country dated in [start, end], ordered by date"""

    @abstractmethod
    def list_by_country(self, country: str) -> List[Holiday]:
        ...


class InMemoryHolidayRepository(HolidayRepository):

    def __init__(self):
        self._holidays: Dict[int, Holiday] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, holiday: Holiday) -> Holiday:
        with self._lock:
            holiday.id = next(self._ids)
            self._holidays[holiday.id] = holiday
        return holiday

    def find_in_range(self, start, end, country):
        return [
            h for h in self.list_by_country(country)
            if h.is_active and start <= h.holiday_date <= end
        ]

    def list_by_country(self, country: str) -> List[Holiday]:
        matches = [h for h in list(self._holidays.values()) if h.country == country]
        return sorted(matches, key=lambda h: (h.holiday_date, h.id))


def record_to_holiday(record: HolidayRecord) -> Holiday:
    return Holiday(
        id=record.id,
        country=record.country,
        holiday_date=record.holiday_date,
        name=record.name,
        is_active=record.is_active,
        notes=record.notes,
    )


class SqlAlchemyHolidayRepository(HolidayRepository):
    """Holiday store backed by the ``holidays`` table"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def add(self, holiday: Holiday) -> Holiday:
        with self.session_factory() as db:
            record = HolidayRecord(
                country=holiday.country,
                holiday_date=holiday.holiday_date,
                name=holiday.name,
                is_active=holiday.is_active,
                notes=holiday.notes,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return record_to_holiday(record)

    def find_in_range(self, start, end, country):
        with self.session_factory() as db:
            rows = db.scalars(
                select(HolidayRecord)
                .where(
                    HolidayRecord.country == country,
                    HolidayRecord.is_active.is_(True),
                    HolidayRecord.holiday_date >= start,
                    HolidayRecord.holiday_date <= end,
                )
                .order_by(HolidayRecord.holiday_date, HolidayRecord.id)
            ).all()
            return [record_to_holiday(r) for r in rows]

    def list_by_country(self, country: str) -> List[Holiday]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(HolidayRecord)
                .where(HolidayRecord.country == country)
                .order_by(HolidayRecord.holiday_date, HolidayRecord.id)
            ).all()
            return [record_to_holiday(r) for r in rows]

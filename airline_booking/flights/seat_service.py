import logging
import re
from typing import Callable, Iterable, List, Optional, Set

from airline_booking.exceptions import NoSeatsAvailable, SeatTaken, ValidationError, WrongCabinClass
from airline_booking.flights.schemas import CabinClass, Flight, SeatMapResponse, SeatPreference

logger = logging.getLogger(__name__)

# cabin -> (first row, last row, seat letters)
CABIN_LAYOUT = {
    CabinClass.FIRST_CLASS: (1, 2, "ABCD"),
    CabinClass.BUSINESS: (3, 8, "ABCDEF"),
    CabinClass.PREMIUM_ECONOMY: (9, 35, "ABCDEF"),
    CabinClass.ECONOMY: (9, 35, "ABCDEF"),
}

PREFERENCE_LETTERS = {
    SeatPreference.WINDOW: ("A", "F"),
    SeatPreference.AISLE: ("C", "D"),
    SeatPreference.MIDDLE: ("B", "E"),
}

SEAT_PATTERN = re.compile(r"^([1-9][0-9]?)([A-K])$")


def generate_seats(cabin_class: CabinClass) -> List[str]:
    """All seat codes of a cabin, ordered by row then letter"""
    first_row, last_row, letters = CABIN_LAYOUT[CabinClass(cabin_class)]
    return [f"{row}{letter}" for row in range(first_row, last_row + 1) for letter in letters]


def seat_row(seat_number: str) -> int:
    match = SEAT_PATTERN.match(seat_number or "")
    if not match:
        raise ValidationError(f"Invalid seat number: {seat_number!r}")
    return int(match.group(1))


def seat_in_cabin(seat_number: str, cabin_class: CabinClass) -> bool:
    first_row, last_row, _ = CABIN_LAYOUT[CabinClass(cabin_class)]
    return first_row <= seat_row(seat_number) <= last_row


def matches_preference(seat_number: str, preference: SeatPreference) -> bool:
    return seat_number[-1] in PREFERENCE_LETTERS[SeatPreference(preference)]


class SeatAssignmentService:
    """Maps a cabin class and seat preference to a concrete seat code"""

    def __init__(self, occupied_seats: Callable[[int], Set[str]]):
        # flight id -> seat codes held by live tickets on that flight
        self._occupied_seats = occupied_seats

    def occupied_seats(self, flight_id: int, pending: Iterable[str] = ()) -> Set[str]:
        return set(self._occupied_seats(flight_id)) | set(pending)

    def is_seat_available(self, flight_id: int, seat_number: Optional[str]) -> bool:
        if not seat_number:
            return True
        return seat_number not in self.occupied_seats(flight_id)

    def assign(
        self,
        flight: Flight,
        cabin_class: CabinClass,
        requested_seat: Optional[str] = None,
        preference: Optional[SeatPreference] = None,
        pending: Iterable[str] = (),
    ) -> str:
        """
        Assign a seat on the flight.

        ``pending`` holds seats already handed out in the same request but not
        yet stored as tickets, so one booking never gets the same seat twice.
        """
        occupied = self.occupied_seats(flight.id, pending)

        if requested_seat and requested_seat.strip():
            seat = requested_seat.strip().upper()
            seat_row(seat)
            if seat in occupied:
                raise SeatTaken(seat)
            if not seat_in_cabin(seat, cabin_class):
                raise WrongCabinClass(seat, cabin_class)
            return seat

        return self._auto_assign(flight, cabin_class, preference, occupied)

    def _auto_assign(self, flight, cabin_class, preference, occupied) -> str:
        free = [seat for seat in generate_seats(cabin_class) if seat not in occupied]
        if not free:
            raise NoSeatsAvailable(cabin_class)

        if preference is not None:
            preferred = [seat for seat in free if matches_preference(seat, preference)]
            if preferred:
                return preferred[0]
            logger.debug(
                "No %s seat left in %s on flight %s, falling back to %s",
                SeatPreference(preference).value, CabinClass(cabin_class).value,
                flight.flight_number, free[0],
            )

        return free[0]

    def seat_map(self, flight: Flight, cabin_class: CabinClass) -> SeatMapResponse:
        occupied_in_cabin = sorted(
            (seat for seat in self.occupied_seats(flight.id)
             if SEAT_PATTERN.match(seat) and seat_in_cabin(seat, cabin_class)),
            key=lambda s: (seat_row(s), s[-1]),
        )
        total = flight.total_for(cabin_class)
        return SeatMapResponse(
            flight_id=flight.id,
            flight_number=flight.flight_number,
            cabin_class=cabin_class,
            occupied_seats=occupied_in_cabin,
            total_seats=total,
            available_seats=max(total - len(occupied_in_cabin), 0),
        )

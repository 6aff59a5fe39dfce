"""Error taxonomy for the inventory, pricing and booking services."""


class BookingSystemError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(BookingSystemError):
    """Malformed or incomplete request"""
    status_code = 400


class InsufficientSeats(BookingSystemError):
    status_code = 409

    def __init__(self, cabin_class, requested: int, available: int, flight_number: str = None):
        self.cabin_class = cabin_class
        self.requested = requested
        self.available = available
        self.flight_number = flight_number
        cabin = getattr(cabin_class, "value", cabin_class)
        message = f"Insufficient {cabin} seats. Requested: {requested}, Available: {available}"
        if flight_number:
            message = f"{message} on flight {flight_number}"
        super().__init__(message)


class BookingExpired(BookingSystemError):
    status_code = 410

    def __init__(self, booking_reference: str):
        self.booking_reference = booking_reference
        super().__init__(f"Booking {booking_reference} has expired")


class BookingNotFound(BookingSystemError):
    status_code = 404


class FlightNotFound(BookingSystemError):
    status_code = 404

    def __init__(self, flight_ref):
        self.flight_ref = flight_ref
        super().__init__(f"Flight not found: {flight_ref}")


class AccessDenied(BookingSystemError):
    status_code = 403


class InvalidTransition(BookingSystemError):
    """A state change that is not allowed from the current state"""
    status_code = 409


class FlightNotBookable(BookingSystemError):
    status_code = 409


class SeatTaken(BookingSystemError):
    status_code = 409

    def __init__(self, seat_number: str):
        self.seat_number = seat_number
        super().__init__(f"Seat {seat_number} is already taken")


class WrongCabinClass(BookingSystemError):
    status_code = 400

    def __init__(self, seat_number: str, cabin_class):
        self.seat_number = seat_number
        self.cabin_class = cabin_class
        cabin = getattr(cabin_class, "value", cabin_class)
        super().__init__(f"Seat {seat_number} is not in {cabin} class")


class NoSeatsAvailable(BookingSystemError):
    status_code = 409

    def __init__(self, cabin_class):
        self.cabin_class = cabin_class
        cabin = getattr(cabin_class, "value", cabin_class)
        super().__init__(f"No available seats in {cabin}")


class ConcurrentModification(BookingSystemError):
    """Another writer changed the record, or took the same seat, first"""
    status_code = 409

from fastapi import APIRouter, Depends, status
from typing import List, Optional

from airline_booking.dependencies import get_booking_service, get_current_user_id, get_ticket_service
from airline_booking.bookings.schemas import (
    Booking, CancelBookingRequest, CheckInRequest, CreateBookingRequest,
    Passenger, RefundPercentageResponse, Ticket
)
from airline_booking.bookings.booking_service import BookingService
from airline_booking.bookings.ticket_service import TicketService

router = APIRouter()

# Booking Lifecycle Endpoints
@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: CreateBookingRequest,
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Create a PENDING booking; it must be confirmed within the payment window"""
    return booking_service.create_booking(request, user_id)

@router.get("/my", response_model=List[Booking])
def get_my_bookings(
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Bookings of the caller, newest first"""
    return booking_service.get_user_bookings(user_id)

@router.get("/passengers/saved", response_model=List[Passenger])
def get_saved_passengers(
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.get_saved_passengers(user_id)

@router.get("/{booking_reference}", response_model=Booking)
def get_booking(
    booking_reference: str,
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.get_booking(booking_reference.upper(), user_id)

@router.post("/{booking_reference}/confirm", response_model=Booking)
def confirm_booking(
    booking_reference: str,
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Confirm payment (mocked) for a PENDING booking"""
    return booking_service.confirm_booking(booking_reference.upper(), user_id)

@router.post("/{booking_reference}/cancel", response_model=Booking)
def cancel_booking(
    booking_reference: str,
    request: Optional[CancelBookingRequest] = None,
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel a booking with tiered refunds"""
    reason = request.reason if request else None
    return booking_service.cancel_booking(booking_reference.upper(), user_id, reason)

@router.get("/{booking_reference}/refund-percentage", response_model=RefundPercentageResponse)
def get_refund_percentage(
    booking_reference: str,
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Refund tier the booking would get if cancelled now"""
    return booking_service.get_refund_percentage(booking_reference.upper(), user_id)

# Ticket Endpoints
@router.post("/tickets/{ticket_id}/check-in", response_model=Ticket)
def check_in(
    ticket_id: int,
    request: Optional[CheckInRequest] = None,
    user_id: str = Depends(get_current_user_id),
    ticket_service: TicketService = Depends(get_ticket_service)
):
    seat_number = request.seat_number if request else None
    return ticket_service.check_in(ticket_id, user_id, seat_number)

@router.post("/tickets/{ticket_id}/board", response_model=Ticket)
def board(
    ticket_id: int,
    ticket_service: TicketService = Depends(get_ticket_service)
):
    return ticket_service.board(ticket_id)

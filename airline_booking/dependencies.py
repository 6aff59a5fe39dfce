"""
FastAPI dependencies.

The service graph is built once per application (see ``services.build_services``)
and kept on ``app.state``; route handlers pull the pieces they need from here.
"""

from typing import TYPE_CHECKING

from fastapi import Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from airline_booking.services import Services


def get_services(request: Request) -> "Services":
    return request.app.state.services


def get_flight_service(services: "Services" = Depends(get_services)):
    return services.flights


def get_seat_service(services: "Services" = Depends(get_services)):
    return services.seats


def get_pricing_service(services: "Services" = Depends(get_services)):
    return services.pricing


def get_round_trip_service(services: "Services" = Depends(get_services)):
    return services.round_trips


def get_booking_service(services: "Services" = Depends(get_services)):
    return services.bookings


def get_ticket_service(services: "Services" = Depends(get_services)):
    return services.tickets


def get_current_user_id(x_user_id: str = Header(None)) -> str:
    """Caller identity; authentication happens upstream of this service"""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id

"""
Tiered refunds by hours until departure.

Each tier starts at its lower bound: exactly 24.0 hours is already the 70% tier.
Non-refundable tickets always get zero.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from airline_booking.bookings.schemas import Ticket

logger = logging.getLogger(__name__)

# (hours strictly below, percent)
REFUND_TIERS = (
    (24, 50),
    (48, 70),
    (168, 80),
)
FULL_REFUND = 100


class RefundCalculator:

    @staticmethod
    def tier_percentage(hours_until_departure: float) -> int:
        for limit, percent in REFUND_TIERS:
            if hours_until_departure < limit:
                return percent
        return FULL_REFUND

    def refund_percentage(self, ticket: Ticket, hours_until_departure: float) -> int:
        if not ticket.is_refundable:
            return 0
        return self.tier_percentage(hours_until_departure)

    def refund(self, ticket: Ticket, hours_until_departure: float) -> Decimal:
        """Amount returned for the ticket, never negative"""
        if not ticket.is_refundable:
            return Decimal("0.00")
        if ticket.price is None:
            logger.warning("Ticket %s has no price, refunding 0", ticket.ticket_number)
            return Decimal("0.00")

        amount = Decimal(ticket.price)
        if ticket.cancellation_fee is not None:
            amount -= Decimal(ticket.cancellation_fee)

        percent = self.tier_percentage(hours_until_departure)
        amount = (amount * Decimal(percent) / Decimal(100)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        return max(amount, Decimal("0.00"))

    def booking_refund_percentage(self, tickets: Iterable[Ticket], min_hours_until_departure: float) -> int:
        """
        Booking-wide tier: the earliest-departing leg governs the whole booking.
        Zero when no ticket is refundable.
        """
        if not any(t.is_refundable for t in tickets):
            return 0
        return self.tier_percentage(min_hours_until_departure)

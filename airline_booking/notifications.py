"""
Notification sink.

Bookings report confirm/cancel/expire events here once the transition has
been stored. Delivery (email, push) lives outside this service; the default
sink only writes a log line.
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class NotificationService(ABC):

    @abstractmethod
    def booking_confirmed(self, booking) -> None:
        ...

    @abstractmethod
    def booking_cancelled(self, booking) -> None:
        ...

    @abstractmethod
    def booking_expired(self, booking) -> None:
        ...


class LoggingNotificationService(NotificationService):
    """Writes one INFO line per event"""

    def booking_confirmed(self, booking) -> None:
        logger.info(
            "Notify %s: booking %s confirmed, %s paid",
            booking.contact_email, booking.booking_reference, booking.paid_amount,
        )

    def booking_cancelled(self, booking) -> None:
        logger.info(
            "Notify %s: booking %s cancelled, refund %s",
            booking.contact_email, booking.booking_reference, booking.refund_amount,
        )

    def booking_expired(self, booking) -> None:
        logger.info(
            "Notify %s: booking %s expired before payment",
            booking.contact_email, booking.booking_reference,
        )

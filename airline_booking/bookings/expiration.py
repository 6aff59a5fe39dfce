"""
Background sweep that expires unpaid bookings.

Runs on its own daemon thread, independent of request threads. Each overdue
booking is expired on its own; one failure is logged and counted but never
stops the rest of the sweep.
"""

import logging
import threading
from typing import Optional

from airline_booking.bookings.booking_service import BookingService
from airline_booking.bookings.schemas import ExpirationSweepResult
from airline_booking.config import settings
from airline_booking.exceptions import BookingSystemError

logger = logging.getLogger(__name__)


class BookingExpirationScheduler:

    def __init__(self, booking_service: BookingService, interval_seconds: Optional[float] = None):
        self.booking_service = booking_service
        self.interval_seconds = interval_seconds or settings.EXPIRATION_SWEEP_INTERVAL_SECONDS
        self.running = False
        self.stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> ExpirationSweepResult:
        """Expire every PENDING booking past its payment window"""
        result = ExpirationSweepResult()
        references = self.booking_service.find_overdue_references()
        if not references:
            return result

        logger.info("Found %d expired bookings to process", len(references))
        for reference in references:
            result.checked += 1
            try:
                self.booking_service.expire_booking(reference)
                result.expired += 1
            except BookingSystemError as e:
                # e.g. confirmed or cancelled between the scan and the lock
                result.failed += 1
                logger.error("Failed to expire booking %s: %s", reference, e.message)

        logger.info(
            "Expiration sweep finished: %d expired, %d failed",
            result.expired, result.failed,
        )
        return result

    def start(self) -> None:
        if self.running:
            return
        self.stop_event.clear()
        self.running = True
        self._thread = threading.Thread(target=self._run_loop, name="booking-expiration", daemon=True)
        self._thread.start()
        logger.info("Booking expiration sweep started, every %ss", self.interval_seconds)

    def _run_loop(self) -> None:
        while self.running and not self.stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Booking expiration sweep failed")

    def stop(self, timeout: float = 5.0) -> None:
        if not self.running:
            return
        self.running = False
        self.stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Booking expiration sweep stopped")

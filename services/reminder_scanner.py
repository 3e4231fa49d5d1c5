"""
Delivery-risk scanner.

Every tick, selects orders due within the lookahead window that are not
fully confirmed and hands one reminder per order to a dispatch pool.
Nothing is kept between ticks: each tick re-derives its candidates from
the store, so a failed or skipped tick loses nothing.
"""

import threading
from concurrent.futures import (
    CancelledError,
    Future,
    ThreadPoolExecutor,
    TimeoutError as FutureTimeoutError,
)
from datetime import date, timedelta
from functools import partial
from typing import Callable, Optional, Protocol
import structlog

from config import Settings, settings as default_settings
from models.order import Order, is_fully_confirmed, total_confirmed
from integrations.mailer import EmailReminderDispatcher
from integrations.telegram import TelegramReminderDispatcher

logger = structlog.get_logger(__name__)


class OrderWindowReader(Protocol):
    def find_by_delivery_window(self, start: date, end: date) -> list[Order]: ...


class ReminderDispatcher(Protocol):
    def send_reminder(self, order: Order) -> bool: ...


class DeliveryRiskScanner:
    """
    Periodic scan for under-confirmed orders close to delivery.

    tick() runs one sweep and is public for testing; start() / stop()
    run it on a background thread every interval_seconds.
    """

    def __init__(
        self,
        order_store: OrderWindowReader,
        dispatcher: ReminderDispatcher,
        lookahead_days: int = 3,
        interval_seconds: float = 60,
        dispatch_workers: int = 4,
        clock: Callable[[], date] = date.today,
    ):
        self._order_store = order_store
        self._dispatcher = dispatcher
        self.lookahead_days = lookahead_days
        self.interval_seconds = interval_seconds
        self._dispatch_workers = dispatch_workers
        self._clock = clock

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._pool: Optional[ThreadPoolExecutor] = None
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    # ===================
    # SELECTION
    # ===================

    def select_candidates(self, today: date) -> list[Order]:
        """
        Orders due in [today, today + lookahead_days] and not fully confirmed.

        Raises whatever the store raises.
        """
        horizon = today + timedelta(days=self.lookahead_days)
        orders = self._order_store.find_by_delivery_window(today, horizon)
        return [order for order in orders if not is_fully_confirmed(order)]

    def tick(self) -> int:
        """
        Run one sweep.

        Returns:
            Number of reminders submitted (0 if the store could not be read
            or the scanner was stopped)
        """
        today = self._clock()
        logger.info("reminder_scan_started", today=today.isoformat(), lookahead_days=self.lookahead_days)

        try:
            candidates = self.select_candidates(today)
        except Exception as e:
            logger.error("reminder_scan_failed", error=str(e), error_type=type(e).__name__)
            return 0

        submitted = sum(1 for order in candidates if self._submit(order))

        logger.info("reminder_scan_complete", candidates=len(candidates), submitted=submitted)
        return submitted

    # ===================
    # DISPATCH
    # ===================

    def _submit(self, order: Order) -> bool:
        with self._lock:
            # stop() has released the pool; never build a new one after it
            if self._stop_event.is_set():
                logger.warning("reminder_skipped_scanner_stopped", order_id=order.id)
                return False
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self._dispatch_workers,
                    thread_name_prefix="reminder-dispatch",
                )
            future = self._pool.submit(self._dispatcher.send_reminder, order)
            self._pending.add(future)

        logger.debug(
            "reminder_submitted",
            order_id=order.id,
            delivery_date=order.delivery_date.isoformat(),
            confirmed=str(total_confirmed(order)),
            ordered=str(order.ordered_quantity)
        )
        future.add_done_callback(partial(self._on_dispatch_done, order.id))
        return True

    def _on_dispatch_done(self, order_id: str, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

        if future.cancelled():
            logger.warning("reminder_cancelled", order_id=order_id)
            return

        error = future.exception()
        if error is not None:
            logger.error(
                "reminder_dispatch_failed",
                order_id=order_id,
                error=str(error),
                error_type=type(error).__name__
            )
        elif future.result() is False:
            logger.warning("reminder_not_sent", order_id=order_id)
        else:
            logger.info("reminder_dispatched", order_id=order_id)

    def wait_for_dispatches(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted reminder has finished.

        Returns:
            True if nothing is left pending
        """
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            try:
                future.result(timeout=timeout)
            except FutureTimeoutError:
                return False
            except (Exception, CancelledError):
                # Already logged by the done callback
                continue
        return True

    # ===================
    # LIFECYCLE
    # ===================

    def start(self) -> None:
        """Start ticking in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="delivery-risk-scanner",
            daemon=True,
        )
        self._thread.start()
        logger.info("reminder_scanner_started", interval_seconds=self.interval_seconds)

    def stop(self, timeout: float = 10.0) -> None:
        """Signal stop, wait for the current tick, release the dispatch pool."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=False, cancel_futures=True)

        logger.info("reminder_scanner_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error("reminder_tick_exception", error=str(e))
            self._stop_event.wait(timeout=self.interval_seconds)


# ===================
# FACTORY
# ===================

def build_dispatcher(config: Optional[Settings] = None) -> ReminderDispatcher:
    """Pick the reminder channel from settings."""
    config = config or default_settings
    if config.reminder_channel == "telegram":
        return TelegramReminderDispatcher(config)
    return EmailReminderDispatcher(config)


def create_reminder_scanner(
    order_store: OrderWindowReader,
    config: Optional[Settings] = None,
) -> DeliveryRiskScanner:
    """Build a scanner wired to the configured channel and intervals."""
    config = config or default_settings
    return DeliveryRiskScanner(
        order_store=order_store,
        dispatcher=build_dispatcher(config),
        lookahead_days=config.reminder_lookahead_days,
        interval_seconds=config.reminder_scan_interval_seconds,
        dispatch_workers=config.reminder_dispatch_workers,
    )

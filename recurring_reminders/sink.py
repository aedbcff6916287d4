"""Notification sinks: where scheduled occurrences are handed for delivery."""

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from croniter import croniter

from .resolver import daily_cron_expression

logger = logging.getLogger(__name__)


def _utc(moment: datetime) -> datetime:
    return moment.astimezone(timezone.utc)


class NotificationSink(Protocol):
    """
    Capability to schedule and cancel notifications by integer identifier.

    Both operations are idempotent: scheduling an identifier that is already
    scheduled replaces it, cancelling an absent identifier does nothing.

    ``repeat_at`` is the (hour, minute) a daily notification repeats at. It
    differs from first_fire's wall clock when the first occurrence was moved
    out of a DST gap.
    """

    def schedule(
        self,
        identifier: int,
        title: str,
        body: str,
        first_fire: datetime,
        repeat_daily: bool,
        repeat_at: Optional[Tuple[int, int]] = None,
    ) -> None:
        ...

    def cancel(self, identifier: int) -> None:
        ...


@dataclass
class PendingNotification:
    """A notification waiting to fire."""
    identifier: int
    title: str
    body: str
    next_fire: datetime
    repeat_daily: bool
    cron_expression: str

    def advance(self, now: datetime) -> datetime:
        """Move next_fire to the daily rule's next occurrence after both it and now."""
        local_fire = self.next_fire
        base = local_fire if _utc(local_fire) >= _utc(now) else now.astimezone(local_fire.tzinfo)
        self.next_fire = croniter(self.cron_expression, base).get_next(datetime)
        return self.next_fire


class InProcessNotificationSink:
    """
    Sink that fires notifications from a background thread of this process.

    Uses a background thread to check for due notifications and hands each
    one to the ``deliver`` callback.
    """

    CHECK_INTERVAL = 1.0  # Check every second

    def __init__(
        self,
        deliver: Callable[[int, str, str], None],
        check_interval: Optional[float] = None,
    ):
        self._deliver = deliver
        self.check_interval = check_interval if check_interval is not None else self.CHECK_INTERVAL
        self._pending: Dict[int, PendingNotification] = {}
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def schedule(
        self,
        identifier: int,
        title: str,
        body: str,
        first_fire: datetime,
        repeat_daily: bool,
        repeat_at: Optional[Tuple[int, int]] = None,
    ) -> None:
        if first_fire.tzinfo is None:
            raise ValueError("first_fire must be timezone-aware")
        hour, minute = repeat_at if repeat_at is not None else (first_fire.hour, first_fire.minute)

        with self._lock:
            self._pending[identifier] = PendingNotification(
                identifier=identifier,
                title=title,
                body=body,
                next_fire=first_fire,
                repeat_daily=repeat_daily,
                cron_expression=daily_cron_expression(hour, minute),
            )

    def cancel(self, identifier: int) -> None:
        with self._lock:
            self._pending.pop(identifier, None)

    def is_scheduled(self, identifier: int) -> bool:
        with self._lock:
            return identifier in self._pending

    def fire_due(self, now: Optional[datetime] = None) -> List[int]:
        """
        Deliver every notification due at ``now``.

        Daily notifications are re-armed for their next day, one-shot ones
        are dropped.

        Returns:
            Identifiers that were delivered
        """
        now = now or datetime.now(timezone.utc)
        due: List[PendingNotification] = []

        with self._lock:
            for identifier, pending in list(self._pending.items()):
                if _utc(now) < _utc(pending.next_fire):
                    continue
                due.append(replace(pending))
                if pending.repeat_daily:
                    pending.advance(now)
                else:
                    del self._pending[identifier]

        for pending in due:
            logger.info("Notification %d due: %s", pending.identifier, pending.title)
            try:
                self._deliver(pending.identifier, pending.title, pending.body)
            except Exception:
                logger.exception("Delivering notification %d failed", pending.identifier)

        return [pending.identifier for pending in due]

    def start(self) -> None:
        """Start the background delivery thread."""
        if self._running:
            return

        self._running = True
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
        logger.info("Notification sink started")

    def stop(self) -> None:
        """Stop the background delivery thread."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
        logger.info("Notification sink stopped")

    def _run_loop(self) -> None:
        while self._running:
            self.fire_due()
            time.sleep(self.check_interval)

    def get_status(self) -> Dict[int, dict]:
        """Get the status of all pending notifications."""
        with self._lock:
            return {
                identifier: {
                    "title": pending.title,
                    "next_fire": pending.next_fire.isoformat(),
                    "repeat_daily": pending.repeat_daily,
                    "rule": pending.cron_expression,
                }
                for identifier, pending in sorted(self._pending.items())
            }

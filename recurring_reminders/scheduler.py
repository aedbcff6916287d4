"""Recurrence scheduler: keeps a reminder's daily notifications in the sink."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from .errors import CapacityExceeded, MissingIdentity, SinkFailure
from .identifiers import SLOT_CAPACITY, identifier, identifier_range
from .models import Reminder
from .resolver import resolve_next_fire, validate_offset
from .sink import NotificationSink

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of one best-effort batch of sink calls."""
    scheduled: List[int] = field(default_factory=list)
    cancelled: List[int] = field(default_factory=list)
    failures: List[SinkFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def merge(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            scheduled=self.scheduled + other.scheduled,
            cancelled=self.cancelled + other.cancelled,
            failures=self.failures + other.failures,
        )


def validate_times(times: Sequence[float]) -> None:
    """Raise CapacityExceeded or InvalidOffset if ``times`` cannot be scheduled."""
    if len(times) > SLOT_CAPACITY:
        raise CapacityExceeded(len(times), SLOT_CAPACITY)
    for offset in times:
        validate_offset(offset)


class RecurrenceScheduler:
    """
    Projects reminders onto a notification sink.

    The scheduler holds no per-reminder state. Updates cancel every identifier
    the reminder could own and then schedule the current list again, so it
    never needs to know which slots were live before.
    """

    def __init__(
        self,
        sink: NotificationSink,
        timezone: Union[str, tzinfo],
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            sink: Where schedule/cancel requests are sent
            timezone: Timezone the times of day are interpreted in
            clock: Returns the current instant; defaults to the system clock
        """
        self.sink = sink
        self.timezone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self._clock = clock or (lambda: datetime.now(self.timezone))

    def _check(self, reminder: Reminder, check_times: bool = True) -> None:
        if reminder.id is None:
            raise MissingIdentity(reminder.title)
        if check_times:
            validate_times(reminder.times)

    def schedule_all(self, reminder: Reminder) -> BatchResult:
        """Schedule one daily notification per time of day of ``reminder``."""
        self._check(reminder)

        now = self._clock()
        resolved = [resolve_next_fire(offset, now, self.timezone) for offset in reminder.times]

        result = BatchResult()
        for slot_index, when in enumerate(resolved):
            notification_id = identifier(reminder.id, slot_index)
            try:
                self.sink.schedule(
                    notification_id,
                    reminder.title,
                    reminder.body,
                    when.instant,
                    repeat_daily=True,
                    repeat_at=(when.hour, when.minute),
                )
            except Exception as e:
                failure = SinkFailure("schedule", notification_id, e)
                logger.error("%s", failure, exc_info=e)
                result.failures.append(failure)
            else:
                result.scheduled.append(notification_id)
                logger.debug(
                    "Scheduled notification %d for '%s' at %s",
                    notification_id, reminder.title, when.instant.isoformat()
                )

        logger.info(
            "Scheduled %d of %d notifications for reminder %d",
            len(result.scheduled), len(resolved), reminder.id
        )
        return result

    def cancel_all(self, reminder: Reminder) -> BatchResult:
        """Cancel every identifier reserved for ``reminder``, live or not."""
        self._check(reminder, check_times=False)

        result = BatchResult()
        for notification_id in identifier_range(reminder.id):
            try:
                self.sink.cancel(notification_id)
            except Exception as e:
                failure = SinkFailure("cancel", notification_id, e)
                logger.error("%s", failure, exc_info=e)
                result.failures.append(failure)
            else:
                result.cancelled.append(notification_id)

        logger.debug("Cancelled notification range of reminder %d", reminder.id)
        return result

    def reschedule_all(self, reminder: Reminder) -> BatchResult:
        """Replace the scheduled notifications of ``reminder`` with its current times."""
        # Validate first so a rejected update leaves the old notifications in place
        self._check(reminder)
        return self.cancel_all(reminder).merge(self.schedule_all(reminder))

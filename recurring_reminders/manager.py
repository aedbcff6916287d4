"""Coordinates reminder storage with notification scheduling."""

import logging
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .errors import ReminderNotFound, ReminderSchedulingError
from .models import Reminder
from .scheduler import BatchResult, RecurrenceScheduler, validate_times
from .sink import NotificationSink
from .store import ReminderStore, validate_title

logger = logging.getLogger(__name__)


class ReminderManager:
    """
    Applies reminder mutations to the store and keeps the sink in step.

    The store is the source of truth; scheduled notifications are a
    projection of it and can be rebuilt at any time with restore(), or
    brought up to date with changes written by another process with
    refresh().
    """

    def __init__(
        self,
        store: ReminderStore,
        scheduler: RecurrenceScheduler,
        default_times: Optional[Sequence[float]] = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.default_times: List[float] = list(default_times or [])
        # Reminder state as last handed to the sink, by reminder id
        self._projected: Dict[int, Reminder] = {}

    def create(
        self,
        title: str,
        body: str,
        times: Optional[Sequence[float]] = None,
    ) -> Tuple[Reminder, BatchResult]:
        """
        Store a new reminder and schedule its notifications.

        Args:
            title: Notification title
            body: Notification text
            times: Times of day in fractional hours; defaults to default_times

        Returns:
            Tuple of (stored reminder with its id, result of the schedule batch)
        """
        times = list(self.default_times if times is None else times)
        validate_times(times)

        reminder_id = self.store.insert(title, body, times)
        reminder = Reminder(title=title, body=body, times=times, id=reminder_id)
        result = self.scheduler.schedule_all(reminder)
        self._projected[reminder_id] = reminder
        return reminder, result

    def update(
        self,
        reminder_id: int,
        title: str,
        body: str,
        times: Optional[Sequence[float]] = None,
    ) -> BatchResult:
        """
        Replace a reminder's fields and reschedule its notifications.

        Everything the store would reject is checked before the sink is
        touched, so a rejected update leaves both unchanged. When ``times``
        is None the stored times are kept.
        """
        current = self.store.get(reminder_id)
        if current is None:
            raise ReminderNotFound(reminder_id)

        times = list(current.times if times is None else times)
        validate_title(title)
        validate_times(times)

        reminder = Reminder(title=title, body=body, times=times, id=reminder_id)
        result = self.scheduler.reschedule_all(reminder)
        self.store.update(reminder_id, title, body, times)
        self._projected[reminder_id] = reminder
        return result

    def delete(self, reminder_id: int) -> BatchResult:
        """Cancel a reminder's notifications and remove it from the store."""
        reminder = self.store.get(reminder_id)
        if reminder is None:
            raise ReminderNotFound(reminder_id)

        result = self.scheduler.cancel_all(reminder)
        self.store.remove(reminder_id)
        self._projected.pop(reminder_id, None)
        return result

    def list_all(self) -> List[Reminder]:
        return self.store.list_all()

    def restore(self) -> Dict[int, BatchResult]:
        """
        Reschedule every stored reminder.

        A reminder that cannot be scheduled is logged and skipped so the
        others still get their notifications.
        """
        results = self._reconcile(force=True)
        logger.info("Restored %d reminders", len(results))
        return results

    def refresh(self) -> Dict[int, BatchResult]:
        """
        Apply store changes made since the last restore() or refresh().

        Only reminders that were added, edited or removed behind this
        manager's back are touched; notifications of unchanged reminders
        keep their pending occurrence.
        """
        results = self._reconcile(force=False)
        if results:
            logger.info("Refreshed %d changed reminders", len(results))
        return results

    def _reconcile(self, force: bool) -> Dict[int, BatchResult]:
        stored = {reminder.id: reminder for reminder in self.store.list_all()}
        results: Dict[int, BatchResult] = {}

        for reminder_id in sorted(set(self._projected) - set(stored)):
            results[reminder_id] = self.scheduler.cancel_all(self._projected.pop(reminder_id))

        for reminder_id, reminder in stored.items():
            if not force and self._projected.get(reminder_id) == reminder:
                continue
            # Recorded even when rejected, so a bad row is reported once per change
            self._projected[reminder_id] = reminder
            try:
                results[reminder_id] = self.scheduler.reschedule_all(reminder)
            except ReminderSchedulingError as e:
                logger.error("Skipping reminder %d: %s", reminder_id, e)

        return results


def build_manager(
    database: Union[str, Path],
    sink: NotificationSink,
    timezone: Union[str, tzinfo],
    default_times: Optional[Sequence[float]] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ReminderManager:
    """Construct a manager with its store and scheduler."""
    store = ReminderStore(database)
    scheduler = RecurrenceScheduler(sink, timezone, clock=clock)
    return ReminderManager(store, scheduler, default_times=default_times)

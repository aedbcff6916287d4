"""Exceptions raised by the scheduling engine and the reminder store."""

from typing import Optional


class ReminderSchedulingError(Exception):
    """Base class for every error raised by the scheduling engine."""


class CapacityExceeded(ReminderSchedulingError):
    """A reminder has more time-of-day offsets than there are identifier slots."""

    def __init__(self, count: int, capacity: int):
        self.count = count
        self.capacity = capacity
        super().__init__(
            f"Reminder has {count} times of day but only {capacity} slots are available"
        )


class InvalidOffset(ReminderSchedulingError, ValueError):
    """A time-of-day offset falls outside [0, 24)."""

    def __init__(self, offset):
        self.offset = offset
        super().__init__(f"Time of day must be in [0, 24) hours, got {offset!r}")


class MissingIdentity(ReminderSchedulingError):
    """The reminder has not been persisted yet, so it has no id."""

    def __init__(self, title: Optional[str] = None):
        self.title = title
        super().__init__(f"Reminder {title!r} has no id; persist it before scheduling")


class SinkFailure(ReminderSchedulingError):
    """A single schedule or cancel call was rejected by the notification sink."""

    def __init__(self, operation: str, identifier: int, cause: BaseException):
        self.operation = operation
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"Failed to {operation} notification {identifier}: {cause}")


class ReminderNotFound(LookupError):
    """No stored reminder has the requested id."""

    def __init__(self, reminder_id: int):
        self.reminder_id = reminder_id
        super().__init__(f"Unknown reminder id: {reminder_id}")

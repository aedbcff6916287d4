"""Occurrence identifiers.

Every reminder owns the integer range ``[id * SLOT_CAPACITY, id * SLOT_CAPACITY + SLOT_CAPACITY)``.
The slot index is the position of a time of day inside the reminder's list.

``SLOT_CAPACITY`` is part of the identifier protocol: changing it while
notifications are scheduled under the old value remaps every identifier,
so the old ones can no longer be cancelled.
"""

from typing import Tuple

from .errors import CapacityExceeded

SLOT_CAPACITY = 1000


def identifier(reminder_id: int, slot_index: int) -> int:
    """Return the notification identifier for one slot of a reminder."""
    if reminder_id < 0:
        raise ValueError(f"Reminder id must not be negative, got {reminder_id}")
    if not 0 <= slot_index < SLOT_CAPACITY:
        raise CapacityExceeded(slot_index + 1, SLOT_CAPACITY)
    return reminder_id * SLOT_CAPACITY + slot_index


def decompose(notification_id: int) -> Tuple[int, int]:
    """Split a notification identifier back into ``(reminder_id, slot_index)``."""
    return divmod(notification_id, SLOT_CAPACITY)


def identifier_range(reminder_id: int) -> range:
    """All identifiers reserved for ``reminder_id``, used or not."""
    base = identifier(reminder_id, 0)
    return range(base, base + SLOT_CAPACITY)

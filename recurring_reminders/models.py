"""Reminder data model and the serialized form of its times of day."""

import json
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Reminder:
    """A reminder that recurs every day at each of its times."""
    title: str
    body: str
    times: List[float] = field(default_factory=list)  # Fractional hours in [0, 24)
    id: Optional[int] = None  # Assigned by the store

    def __post_init__(self):
        self.times = list(self.times)

    def with_id(self, reminder_id: int) -> "Reminder":
        """Return a copy of this reminder carrying the store-assigned id."""
        return Reminder(title=self.title, body=self.body, times=self.times, id=reminder_id)


def serialize_times(times: List[float]) -> str:
    """Encode times of day for storage, preserving order and exact values."""
    return json.dumps({"times": [float(t) for t in times]})


def deserialize_times(serialized: str) -> List[float]:
    """Decode the output of serialize_times."""
    data = json.loads(serialized)
    if not isinstance(data, dict) or not isinstance(data.get("times"), list):
        raise ValueError(f"Malformed recurrence settings: {serialized!r}")
    return [float(t) for t in data["times"]]

"""Unit tests for the scheduler module."""

import pytest
from datetime import datetime
from unittest.mock import Mock
from zoneinfo import ZoneInfo

from recurring_reminders.errors import (
    CapacityExceeded,
    InvalidOffset,
    MissingIdentity,
    SinkFailure,
)
from recurring_reminders.identifiers import SLOT_CAPACITY, identifier, identifier_range
from recurring_reminders.models import Reminder
from recurring_reminders.scheduler import BatchResult, RecurrenceScheduler, validate_times

CHICAGO = ZoneInfo("America/Chicago")


def make_scheduler(sink, now):
    return RecurrenceScheduler(sink, CHICAGO, clock=lambda: now)


class TestScheduleAll:
    """Tests for RecurrenceScheduler.schedule_all."""

    def test_one_call_per_time(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        reminder = Reminder("Water", "Drink a glass", [8.0, 12.5, 22.5], id=4)

        result = scheduler.schedule_all(reminder)

        assert sink.calls == [
            ("schedule", 4000),
            ("schedule", 4001),
            ("schedule", 4002),
        ]
        assert result.scheduled == [4000, 4001, 4002]
        assert result.ok

    def test_instants_and_repeat_flag(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        reminder = Reminder("Water", "Drink a glass", [8.0, 22.5], id=4)

        scheduler.schedule_all(reminder)

        title, body, first_fire, repeat_daily, repeat_at = sink.live[4000]
        assert (title, body) == ("Water", "Drink a glass")
        assert repeat_daily is True
        assert repeat_at == (8, 0)
        # 08:00 already passed at 10:00
        assert first_fire == datetime(2024, 1, 2, 8, 0, tzinfo=CHICAGO)
        assert sink.live[4001][2] == datetime(2024, 1, 1, 22, 30, tzinfo=CHICAGO)

    def test_duplicate_and_unordered_times(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        reminder = Reminder("Pills", "", [22.5, 8.0, 22.5], id=2)

        scheduler.schedule_all(reminder)

        assert sorted(sink.live) == [2000, 2001, 2002]
        assert sink.live[2000][2] == sink.live[2002][2]

    def test_repeat_rule_survives_dst_gap(self, sink):
        """The daily rule stays at 02:30 even when the first fire moves to 03:30."""
        eve = datetime(2024, 3, 9, 23, 0, tzinfo=CHICAGO)
        scheduler = make_scheduler(sink, eve)

        scheduler.schedule_all(Reminder("Meds", "", [2.5], id=3))

        _, _, first_fire, _, repeat_at = sink.live[3000]
        assert first_fire == datetime(2024, 3, 10, 3, 30, tzinfo=CHICAGO)
        assert repeat_at == (2, 30)

    def test_empty_times(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        result = scheduler.schedule_all(Reminder("Nothing", "", [], id=1))

        assert sink.calls == []
        assert result.scheduled == []

    def test_missing_identity(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        with pytest.raises(MissingIdentity):
            scheduler.schedule_all(Reminder("Unsaved", "", [12.0]))

        assert sink.calls == []

    def test_full_capacity_succeeds(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        times = [(i % 24) + 0.5 for i in range(SLOT_CAPACITY)]

        result = scheduler.schedule_all(Reminder("Busy", "", times, id=1))

        assert len(result.scheduled) == SLOT_CAPACITY
        assert max(sink.live) == identifier(1, SLOT_CAPACITY - 1)

    def test_over_capacity_fails_before_any_call(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        times = [12.0] * (SLOT_CAPACITY + 1)

        with pytest.raises(CapacityExceeded):
            scheduler.schedule_all(Reminder("Too busy", "", times, id=1))

        assert sink.calls == []

    def test_invalid_offset_fails_before_any_call(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        with pytest.raises(InvalidOffset):
            scheduler.schedule_all(Reminder("Bad", "", [8.0, 24.0, 9.0], id=1))

        assert sink.calls == []

    def test_sink_failure_does_not_abort_batch(self, failing_sink, morning):
        sink = failing_sink(5001)
        scheduler = make_scheduler(sink, morning)

        result = scheduler.schedule_all(Reminder("Flaky", "", [8.0, 9.0, 10.5], id=5))

        assert sink.calls_of("schedule") == [5000, 5001, 5002]
        assert sorted(sink.live) == [5000, 5002]
        assert result.scheduled == [5000, 5002]
        assert not result.ok
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert isinstance(failure, SinkFailure)
        assert failure.identifier == 5001
        assert failure.operation == "schedule"
        assert isinstance(failure.cause, PermissionError)

    def test_default_clock_uses_timezone_name(self):
        sink = Mock()
        scheduler = RecurrenceScheduler(sink, "America/Chicago")

        scheduler.schedule_all(Reminder("Now", "", [12.0], id=1))

        first_fire = sink.schedule.call_args.args[3]
        assert first_fire.tzinfo == CHICAGO
        assert first_fire > datetime.now(CHICAGO)


class TestCancelAll:
    """Tests for RecurrenceScheduler.cancel_all."""

    def test_never_scheduled_reminder(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        result = scheduler.cancel_all(Reminder("Ghost", "", [12.0], id=9))

        assert sink.calls_of("cancel") == list(identifier_range(9))
        assert len(sink.calls) == SLOT_CAPACITY
        assert result.ok

    def test_cancels_live_notifications(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        reminder = Reminder("Water", "", [8.0, 9.0], id=3)
        scheduler.schedule_all(reminder)

        scheduler.cancel_all(reminder)

        assert sink.live == {}

    def test_leaves_other_reminders_alone(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        scheduler.schedule_all(Reminder("A", "", [8.0, 9.0], id=1))
        scheduler.schedule_all(Reminder("B", "", [8.0, 9.0], id=2))

        scheduler.cancel_all(Reminder("A", "", [], id=1))

        assert sorted(sink.live) == [2000, 2001]

    def test_ignores_invalid_times(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        scheduler.cancel_all(Reminder("Bad", "", [99.0], id=1))

        assert len(sink.calls_of("cancel")) == SLOT_CAPACITY

    def test_missing_identity(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        with pytest.raises(MissingIdentity):
            scheduler.cancel_all(Reminder("Unsaved", "", [12.0]))

        assert sink.calls == []

    def test_cancel_failure_continues(self, failing_sink, morning):
        sink = failing_sink(1000)
        scheduler = make_scheduler(sink, morning)

        result = scheduler.cancel_all(Reminder("A", "", [], id=1))

        assert len(sink.calls_of("cancel")) == SLOT_CAPACITY
        assert [f.identifier for f in result.failures] == [1000]
        assert len(result.cancelled) == SLOT_CAPACITY - 1


class TestRescheduleAll:
    """Tests for RecurrenceScheduler.reschedule_all."""

    def test_shrinking_times(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        scheduler.schedule_all(Reminder("Water", "", [8.0, 12.0, 16.0], id=7))
        sink.calls.clear()

        scheduler.reschedule_all(Reminder("Water", "", [9.0], id=7))

        assert set(sink.live) == {7000}
        assert sink.live[7000][2] == datetime(2024, 1, 2, 9, 0, tzinfo=CHICAGO)
        for slot in (1, 2):
            assert ("cancel", identifier(7, slot)) in sink.calls

    def test_cancels_before_scheduling(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        scheduler.reschedule_all(Reminder("Water", "", [9.0, 10.0], id=7))

        operations = [op for op, _ in sink.calls]
        assert operations == ["cancel"] * SLOT_CAPACITY + ["schedule"] * 2

    def test_updates_title_and_body(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        scheduler.schedule_all(Reminder("Old", "old body", [9.0], id=7))

        scheduler.reschedule_all(Reminder("New", "new body", [9.0], id=7))

        assert sink.live[7000][:2] == ("New", "new body")

    def test_invalid_update_keeps_previous_notifications(self, sink, morning):
        scheduler = make_scheduler(sink, morning)
        scheduler.schedule_all(Reminder("Water", "", [8.0, 9.0], id=7))
        sink.calls.clear()

        with pytest.raises(InvalidOffset):
            scheduler.reschedule_all(Reminder("Water", "", [8.0, -1.0], id=7))

        assert sink.calls == []
        assert sorted(sink.live) == [7000, 7001]

    def test_result_merges_both_phases(self, sink, morning):
        scheduler = make_scheduler(sink, morning)

        result = scheduler.reschedule_all(Reminder("Water", "", [9.0], id=7))

        assert len(result.cancelled) == SLOT_CAPACITY
        assert result.scheduled == [7000]


class TestValidateTimes:
    """Tests for validate_times and BatchResult."""

    def test_valid(self):
        validate_times([0.0, 12.25, 23.999])

    def test_capacity(self):
        with pytest.raises(CapacityExceeded):
            validate_times([1.0] * (SLOT_CAPACITY + 1))

    def test_offset(self):
        with pytest.raises(InvalidOffset):
            validate_times([1.0, 24.0])

    def test_batch_result_merge(self):
        merged = BatchResult(cancelled=[1]).merge(BatchResult(scheduled=[2]))
        assert merged.cancelled == [1]
        assert merged.scheduled == [2]
        assert merged.ok

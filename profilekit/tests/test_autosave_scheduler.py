import asyncio
import logging

import pytest

from profilekit.app.autosave import (
    AutoSaveScheduler,
    DirtyStateTracker,
    SaveFailure,
    SchedulerState,
    SnapshotError,
)

logging.getLogger("profilekit.autosave").setLevel(logging.CRITICAL)


def run(coro):
    return asyncio.run(coro)


class RecordingExecutor:
    """Save executor recording (start, end, snapshot) for every call."""

    def __init__(self, duration=0.0, fail_times=0):
        self.duration = duration
        self.fail_times = fail_times
        self.calls = []

    async def __call__(self, snapshot):
        loop = asyncio.get_running_loop()
        start = loop.time()
        if self.duration:
            await asyncio.sleep(self.duration)
        self.calls.append((start, loop.time(), snapshot))
        if self.fail_times:
            self.fail_times -= 1
            raise RuntimeError("server said no")

    @property
    def snapshots(self):
        return [call[2] for call in self.calls]


def test_first_notification_is_baseline_and_never_saves():
    async def scenario():
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=20)
        assert scheduler.notify_changed({"skills": ["a"]}) is False
        await asyncio.sleep(0.08)
        await scheduler.wait_idle()
        return save, scheduler

    save, scheduler = run(scenario())
    assert save.calls == []
    assert scheduler.is_dirty is False
    assert scheduler.state is SchedulerState.IDLE


def test_structurally_equal_snapshot_is_a_noop():
    async def scenario():
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=20)
        scheduler.notify_changed({"a": 1, "b": [1, {"c": "x"}]})
        accepted = scheduler.notify_changed({"b": [1, {"c": "x"}], "a": 1})
        state = scheduler.state
        await asyncio.sleep(0.08)
        return save, scheduler, accepted, state

    save, scheduler, accepted, state = run(scenario())
    assert accepted is False
    assert state is SchedulerState.IDLE
    assert save.calls == []
    assert scheduler.is_dirty is False


def test_rapid_changes_collapse_into_one_save_of_the_latest():
    async def scenario():
        loop = asyncio.get_running_loop()
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=200)
        t0 = loop.time()
        scheduler.notify_changed({"skills": ["a"]})

        await asyncio.sleep(0.02)
        scheduler.notify_changed({"skills": ["a", "b"]})
        dirty_after_first_change = scheduler.is_dirty

        await asyncio.sleep(0.08)
        scheduler.notify_changed({"skills": ["a", "b", "c"]})
        last_change_at = loop.time()
        state_while_waiting = scheduler.state

        await asyncio.sleep(0.1)
        calls_before_quiet_period = list(save.calls)

        await scheduler.wait_idle()
        return save, scheduler, t0, last_change_at, dirty_after_first_change, state_while_waiting, calls_before_quiet_period

    save, scheduler, t0, last_change_at, dirty_early, state_waiting, early_calls = run(scenario())
    assert dirty_early is True
    assert state_waiting is SchedulerState.PENDING_DEBOUNCE
    assert early_calls == []
    assert save.snapshots == [{"skills": ["a", "b", "c"]}]
    started_at = save.calls[0][0]
    # Measured from the last change, not the first one
    assert started_at - last_change_at >= 0.19
    assert scheduler.is_dirty is False
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.last_result.ok is True


def test_change_during_inflight_save_keeps_dirty_and_triggers_follow_up():
    async def scenario():
        save = RecordingExecutor(duration=0.1)
        scheduler = AutoSaveScheduler(save, delay_ms=20)
        scheduler.notify_changed({"summary": "v0"})
        scheduler.notify_changed({"summary": "v1"})

        await asyncio.sleep(0.05)  # v1 save is in flight
        in_flight = scheduler.pending_save
        scheduler.notify_changed({"summary": "v2"})

        await asyncio.sleep(0.1)  # v1 save done, v2 queued or running
        dirty_after_first_save = scheduler.is_dirty

        await scheduler.wait_idle()
        return save, scheduler, in_flight, dirty_after_first_save

    save, scheduler, in_flight, dirty_after_first_save = run(scenario())
    assert in_flight is not None
    assert in_flight.snapshot == {"summary": "v1"}
    assert dirty_after_first_save is True
    assert save.snapshots == [{"summary": "v1"}, {"summary": "v2"}]
    assert scheduler.is_dirty is False


def test_saves_never_overlap():
    async def scenario():
        save = RecordingExecutor(duration=0.06)
        scheduler = AutoSaveScheduler(save, delay_ms=10)
        scheduler.notify_changed([0])
        for i in range(1, 5):
            scheduler.notify_changed([i])
            await asyncio.sleep(0.03)
        await scheduler.wait_idle()
        return save

    save = run(scenario())
    assert len(save.calls) >= 2
    for (_, previous_end, _), (next_start, _, _) in zip(save.calls, save.calls[1:]):
        assert next_start >= previous_end
    assert save.snapshots[-1] == [4]


def test_failure_keeps_dirty_and_is_reported_without_retry():
    errors = []

    async def scenario():
        save = RecordingExecutor(fail_times=1)
        scheduler = AutoSaveScheduler(
            save, delay_ms=20, on_error=lambda error, snapshot: errors.append((error, snapshot))
        )
        scheduler.notify_changed({"skills": []})
        scheduler.notify_changed({"skills": ["x"]})
        await scheduler.wait_idle()
        await asyncio.sleep(0.08)
        calls_after_failure = len(save.calls)
        dirty_after_failure = scheduler.is_dirty
        result = scheduler.last_result

        scheduler.notify_changed({"skills": ["x", "y"]})
        await scheduler.wait_idle()
        return save, scheduler, calls_after_failure, dirty_after_failure, result

    save, scheduler, calls_after_failure, dirty_after_failure, result = run(scenario())
    assert calls_after_failure == 1
    assert dirty_after_failure is True
    assert result.ok is False
    assert isinstance(result.error, SaveFailure)
    assert isinstance(result.error.__cause__, RuntimeError)

    assert len(errors) == 1
    error, snapshot = errors[0]
    assert snapshot == {"skills": ["x"]}
    assert error.snapshot == {"skills": ["x"]}

    # The next edit saves again and clears the flag
    assert save.snapshots == [{"skills": ["x"]}, {"skills": ["x", "y"]}]
    assert scheduler.is_dirty is False


def test_flush_saves_immediately_and_cancels_timer():
    async def scenario():
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=50)
        scheduler.notify_changed("draft")
        scheduler.notify_changed("final")
        result = await scheduler.flush()
        await asyncio.sleep(0.1)
        return save, scheduler, result

    save, scheduler, result = run(scenario())
    assert result.ok is True
    assert result.skipped is False
    assert result.snapshot == "final"
    assert save.snapshots == ["final"]
    assert scheduler.is_dirty is False


def test_flush_when_clean_is_skipped():
    async def scenario():
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=50)
        scheduler.notify_changed("same")
        return save, await scheduler.flush()

    save, result = run(scenario())
    assert result.skipped is True
    assert save.calls == []


def test_flush_failure_is_raised_by_raise_for_error():
    async def scenario():
        scheduler = AutoSaveScheduler(RecordingExecutor(fail_times=1), delay_ms=50)
        scheduler.notify_changed(1)
        scheduler.notify_changed(2)
        return scheduler, await scheduler.flush()

    scheduler, result = run(scenario())
    assert result.ok is False
    assert scheduler.is_dirty is True
    with pytest.raises(SaveFailure, match="server said no"):
        result.raise_for_error()


def test_close_cancels_pending_timer():
    async def scenario():
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=20)
        scheduler.notify_changed({"v": 1})
        scheduler.notify_changed({"v": 2})
        scheduler.close()
        accepted_after_close = scheduler.notify_changed({"v": 3})
        await asyncio.sleep(0.08)
        await scheduler.wait_idle()
        return save, scheduler, accepted_after_close

    save, scheduler, accepted_after_close = run(scenario())
    assert save.calls == []
    assert accepted_after_close is False
    assert scheduler.closed is True
    assert scheduler.state is SchedulerState.IDLE


def test_close_lets_inflight_save_finish_without_reporting():
    errors = []

    async def scenario():
        save = RecordingExecutor(duration=0.05, fail_times=1)
        scheduler = AutoSaveScheduler(save, delay_ms=10, on_error=lambda e, s: errors.append(e))
        scheduler.notify_changed("a")
        scheduler.notify_changed("b")
        await asyncio.sleep(0.03)
        scheduler.close()
        await scheduler.wait_idle()
        return save

    save = run(scenario())
    assert save.snapshots == ["b"]
    assert errors == []


def test_snapshot_is_copied_on_notify():
    async def scenario():
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=20)
        skills = ["a"]
        scheduler.notify_changed({"skills": list(skills)})
        skills.append("b")
        buffer = {"skills": skills}
        scheduler.notify_changed(buffer)
        buffer["skills"].append("mutated in place")
        await scheduler.wait_idle()
        return save

    save = run(scenario())
    assert save.snapshots == [{"skills": ["a", "b"]}]


@pytest.mark.parametrize(
    "bad_value",
    [
        {"callback": lambda: None},
        {1: "non-string key"},
        [object()],
    ],
)
def test_non_comparable_snapshot_fails_fast(bad_value):
    scheduler = AutoSaveScheduler(RecordingExecutor(), delay_ms=20)
    with pytest.raises(SnapshotError):
        scheduler.notify_changed(bad_value)
    # Nothing was recorded, not even a baseline
    assert scheduler.latest_snapshot is None
    assert scheduler.notify_changed({"ok": True}) is False


def test_circular_snapshot_fails_fast():
    circular = {"items": []}
    circular["items"].append(circular)
    scheduler = AutoSaveScheduler(RecordingExecutor(), delay_ms=20)
    with pytest.raises(SnapshotError, match="Circular"):
        scheduler.notify_changed(circular)


def test_shared_tracker_is_used():
    tracker = DirtyStateTracker()

    async def scenario():
        scheduler = AutoSaveScheduler(RecordingExecutor(fail_times=1), delay_ms=10, tracker=tracker)
        scheduler.notify_changed("a")
        scheduler.notify_changed("b")
        await scheduler.wait_idle()

    run(scenario())
    assert tracker.is_dirty() is True


def test_negative_delay_is_rejected():
    with pytest.raises(ValueError):
        AutoSaveScheduler(RecordingExecutor(), delay_ms=-1)


def test_nan_values_do_not_count_as_changes():
    async def scenario():
        save = RecordingExecutor()
        scheduler = AutoSaveScheduler(save, delay_ms=20)
        scheduler.notify_changed({"score": float("nan")})
        accepted = [scheduler.notify_changed({"score": float("nan")}) for _ in range(3)]
        await asyncio.sleep(0.05)
        return save, scheduler, accepted

    save, scheduler, accepted = run(scenario())
    assert accepted == [False, False, False]
    assert save.calls == []
    assert scheduler.is_dirty is False


def test_raising_error_callback_is_contained():
    def broken_callback(error, snapshot):
        raise ValueError("toast failed")

    async def scenario():
        scheduler = AutoSaveScheduler(RecordingExecutor(fail_times=1), delay_ms=10, on_error=broken_callback)
        scheduler.notify_changed("a")
        scheduler.notify_changed("b")
        timer = scheduler._timer
        await asyncio.sleep(0.05)
        return scheduler, timer

    scheduler, timer = run(scenario())
    assert timer.done()
    assert timer.exception() is None
    assert scheduler.is_dirty is True
    assert scheduler.last_result.ok is False

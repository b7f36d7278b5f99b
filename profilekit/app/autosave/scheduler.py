"""Debounced, serialized auto-save for a single edit buffer.

A scheduler turns a stream of ``notify_changed`` calls into at most one save
per quiet period. It runs on the asyncio event loop of its owner: every public
method must be called from that loop's thread and ``notify_changed`` needs a
running loop.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .dirty import DirtyStateTracker
from .errors import SaveFailure
from .snapshot import capture_snapshot, snapshots_equal

logger = logging.getLogger("profilekit.autosave")

DEFAULT_DELAY_MS = 2000

SaveExecutor = Callable[[Any], Awaitable[None]]
ErrorCallback = Callable[[SaveFailure, Any], None]


class SchedulerState(enum.Enum):
    IDLE = "idle"
    PENDING_DEBOUNCE = "pending_debounce"
    SAVING = "saving"


@dataclass(frozen=True)
class PendingSave:
    snapshot: Any
    started_at: float


@dataclass(frozen=True)
class SaveResult:
    """Outcome of one save attempt.

    ``skipped`` is set when there was nothing to save and the executor was
    not called.
    """
    ok: bool
    snapshot: Any = None
    error: Optional[SaveFailure] = None
    skipped: bool = False

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class AutoSaveScheduler:
    """Debounce change notifications and persist the latest snapshot.

    Args:
        save: async callable persisting a snapshot. It must raise on failure.
        delay_ms: quiet period before a save is issued.
        tracker: dirty-state tracker, a fresh one when omitted.
        on_error: called with ``(SaveFailure, snapshot)`` when a save issued
            by the debounce timer fails. Manual saves report through their
            ``SaveResult`` as well.
        name: label used in log messages.
    """

    def __init__(
        self,
        save: SaveExecutor,
        delay_ms: int = DEFAULT_DELAY_MS,
        tracker: Optional[DirtyStateTracker] = None,
        on_error: Optional[ErrorCallback] = None,
        name: str = "autosave",
    ):
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._save = save
        self.delay_ms = delay_ms
        self.tracker = tracker if tracker is not None else DirtyStateTracker()
        self._on_error = on_error
        self.name = name

        self._has_baseline = False
        # Last snapshot scheduled for save or saved, whichever is newer.
        self._reference: Any = None
        self._latest: Any = None
        # Bumped on every accepted change; a save only clears the dirty
        # flag when the counter has not moved while it was in flight.
        self._change_seq = 0

        self._timer: Optional[asyncio.Task] = None
        self._tasks: set = set()
        self._lock: Optional[asyncio.Lock] = None
        self._pending: Optional[PendingSave] = None
        self._closed = False
        self.last_result: Optional[SaveResult] = None

    # -- introspection -------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        if self._pending is not None:
            return SchedulerState.SAVING
        if self._timer is not None:
            return SchedulerState.PENDING_DEBOUNCE
        return SchedulerState.IDLE

    @property
    def is_dirty(self) -> bool:
        return self.tracker.is_dirty()

    @property
    def pending_save(self) -> Optional[PendingSave]:
        return self._pending

    @property
    def latest_snapshot(self) -> Any:
        return self._latest

    @property
    def closed(self) -> bool:
        return self._closed

    # -- transitions ---------------------------------------------------

    def notify_changed(self, snapshot: Any) -> bool:
        """Record a new edit buffer value.

        Returns True when the value was accepted as a change and a save was
        (re)scheduled, False for the baseline, a no-op or a closed scheduler.
        Raises SnapshotError for values that cannot be compared.
        """
        frozen = capture_snapshot(snapshot)

        if self._closed:
            logger.debug(f"[{self.name}] change ignored, scheduler is closed")
            return False

        if not self._has_baseline:
            self._has_baseline = True
            self._reference = frozen
            self._latest = frozen
            logger.debug(f"[{self.name}] baseline recorded")
            return False

        if snapshots_equal(frozen, self._reference):
            return False

        loop = asyncio.get_running_loop()

        self._reference = frozen
        self._latest = frozen
        self._change_seq += 1
        self.tracker.mark_dirty()

        self._cancel_timer()
        self._timer = self._spawn(loop, self._debounce())
        logger.info(f"[{self.name}] auto-save scheduled in {self.delay_ms}ms")
        return True

    async def flush(self) -> SaveResult:
        """Save the latest snapshot now, skipping the debounce wait."""
        self._cancel_timer()
        if self._closed:
            return SaveResult(ok=True, snapshot=self._latest, skipped=True)
        return await self._run_save(manual=True)

    def close(self) -> None:
        """Stop scheduling. A save already issued runs to completion."""
        if self._closed:
            return
        self._closed = True
        self._cancel_timer()
        logger.debug(f"[{self.name}] scheduler closed")

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no save is queued or in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- internals -----------------------------------------------------

    def _spawn(self, loop, coro) -> asyncio.Task:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _debounce(self) -> None:
        await asyncio.sleep(self.delay_ms / 1000)
        # Past this point the attempt is no longer cancellable by new changes.
        if self._timer is asyncio.current_task():
            self._timer = None
        result = await self._run_save(manual=False)
        if result.error is not None and self._on_error is not None and not self._closed:
            try:
                self._on_error(result.error, result.snapshot)
            except Exception as e:
                logger.error(f"[{self.name}] on_error callback raised: {e}", exc_info=True)

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def _run_save(self, manual: bool) -> SaveResult:
        async with self._get_lock():
            if self._closed and not manual:
                return SaveResult(ok=True, snapshot=self._latest, skipped=True)
            if not self.tracker.is_dirty():
                logger.debug(f"[{self.name}] nothing to save")
                return SaveResult(ok=True, snapshot=self._latest, skipped=True)

            snapshot = self._latest
            seq = self._change_seq
            loop = asyncio.get_running_loop()
            self._pending = PendingSave(snapshot=snapshot, started_at=loop.time())
            logger.info(f"[{self.name}] auto-saving")
            try:
                await self._save(snapshot)
            except Exception as e:
                logger.error(f"[{self.name}] auto-save failed: {e}", exc_info=True)
                failure = SaveFailure(f"Saving {self.name} failed: {e}", snapshot=snapshot)
                failure.__cause__ = e
                result = SaveResult(ok=False, snapshot=snapshot, error=failure)
            else:
                if self._change_seq == seq:
                    self.tracker.mark_clean()
                    logger.info(f"[{self.name}] auto-save successful")
                else:
                    logger.info(
                        f"[{self.name}] auto-save successful, newer changes pending"
                    )
                result = SaveResult(ok=True, snapshot=snapshot)
            finally:
                self._pending = None

            self.last_result = result
            return result

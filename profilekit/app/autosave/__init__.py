from .dirty import DirtyStateTracker
from .errors import AutoSaveError, SaveFailure, SnapshotError
from .scheduler import (
    DEFAULT_DELAY_MS,
    AutoSaveScheduler,
    PendingSave,
    SaveResult,
    SchedulerState,
)
from .snapshot import capture_snapshot, snapshots_equal, validate_snapshot

__all__ = [
    "DEFAULT_DELAY_MS",
    "AutoSaveError",
    "AutoSaveScheduler",
    "DirtyStateTracker",
    "PendingSave",
    "SaveFailure",
    "SaveResult",
    "SchedulerState",
    "SnapshotError",
    "capture_snapshot",
    "snapshots_equal",
    "validate_snapshot",
]

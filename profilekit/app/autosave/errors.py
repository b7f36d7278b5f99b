"""Exceptions raised by the auto-save machinery."""


class AutoSaveError(Exception):
    """Base class for auto-save errors."""


class SnapshotError(AutoSaveError, TypeError):
    """A snapshot contains values that cannot be compared structurally.

    Raised for functions, arbitrary objects, non-string mapping keys and
    circular references. This is a programming error on the caller's side.
    """


class SaveFailure(AutoSaveError):
    """The save executor raised while persisting a snapshot.

    The executor's exception is chained as ``__cause__``.
    """

    def __init__(self, message, snapshot=None):
        super().__init__(message)
        self.snapshot = snapshot

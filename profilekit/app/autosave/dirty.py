class DirtyStateTracker:
    """Answers whether the edit buffer changed since the last confirmed save."""

    def __init__(self, dirty: bool = False):
        self._dirty = dirty

    def mark_dirty(self) -> None:
        self._dirty = True

    def mark_clean(self) -> None:
        self._dirty = False

    def is_dirty(self) -> bool:
        return self._dirty

    def __repr__(self):
        return f"DirtyStateTracker(dirty={self._dirty})"

from __future__ import annotations


class IdAllocator:
    """Hands out PDF object numbers, never the same one twice.

    The allocator is owned by whoever drives a merge and passed in explicitly,
    so several merges can share one numbering space or each start fresh.
    """

    def __init__(self, start: int = 1) -> None:
        if start < 1:
            raise ValueError(f"Object numbers start at 1, got {start}")
        self._next = start

    def allocate(self) -> int:
        object_id = self._next
        self._next += 1
        return object_id

    def seed_past(self, highest: int) -> None:
        """Make sure every future id is greater than ``highest``."""
        if highest >= self._next:
            self._next = highest + 1

    @property
    def highest(self) -> int:
        """Highest id that will never be handed out again."""
        return self._next - 1

    def __repr__(self) -> str:
        return f"IdAllocator(next={self._next})"


__all__ = ["IdAllocator"]

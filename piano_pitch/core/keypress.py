"""Key presses - per-key intervals with automatic coalescing.

A ``KeyPresses`` set never stores two intervals that touch or overlap.
Adding an interval merges it with its neighbours instead; intervals separated
by even a single millisecond stay distinct.
"""

from bisect import bisect_right, insort
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from .exceptions import KeyPressMismatchError


@dataclass(frozen=True, order=True)
class KeyPress:
    """A key held from ``start`` for ``duration`` (both in milliseconds)."""

    start: int  # ms since the analysis began
    duration: int  # ms
    intensity: float = 0.0

    def __post_init__(self):
        if self.start < 0:
            raise ValueError(f"Key press start must be >= 0, got {self.start}")
        if self.duration < 0:
            raise ValueError(f"Key press duration must be >= 0, got {self.duration}")

    @property
    def end(self) -> int:
        """End offset in milliseconds (exclusive)."""
        return self.start + self.duration

    @property
    def start_secs(self) -> float:
        return self.start / 1000.0

    @property
    def duration_secs(self) -> float:
        return self.duration / 1000.0


class KeyPresses:
    """Ordered, coalescing set of key presses for one piano key."""

    def __init__(self, presses: Optional[Iterable[KeyPress]] = None):
        self._starts: List[int] = []
        self._presses: Dict[int, KeyPress] = {}

        for press in presses or ():
            self.add(press)

    def add(self, press: KeyPress) -> KeyPress:
        """
        Insert a press, merging it with any interval it touches or overlaps.

        The merged interval keeps the highest intensity of its parts.

        Args:
            press: Key press to insert

        Returns:
            The interval now stored that covers ``press``
        """
        start, end, intensity = press.start, press.end, press.intensity

        # Preceding interval (the last one starting at or before this press)
        i = bisect_right(self._starts, start)
        if i > 0:
            previous = self._presses[self._starts[i - 1]]
            if previous.end >= start:
                start = previous.start
                end = max(end, previous.end)
                intensity = max(intensity, previous.intensity)
                i -= 1
                self._pop(i)

        # Following intervals swallowed by the (possibly extended) press
        while i < len(self._starts) and self._starts[i] <= end:
            following = self._pop(i)
            end = max(end, following.end)
            intensity = max(intensity, following.intensity)

        merged = KeyPress(start, end - start, intensity)
        insort(self._starts, start)
        self._presses[start] = merged
        return merged

    def remove(self, press: KeyPress) -> KeyPress:
        """
        Remove a stored press.

        Raises:
            KeyPressMismatchError: If no interval starts at ``press.start``
                or the stored one has a different duration
        """
        stored = self._presses.get(press.start)
        if stored is None:
            raise KeyPressMismatchError(f"No key press starts at {press.start}ms")
        if stored.duration != press.duration:
            raise KeyPressMismatchError(
                f"Key press at {press.start}ms lasts {stored.duration}ms, "
                f"not {press.duration}ms"
            )

        self._pop(bisect_right(self._starts, press.start) - 1)
        return stored

    def _pop(self, index: int) -> KeyPress:
        start = self._starts.pop(index)
        return self._presses.pop(start)

    def first(self) -> Optional[KeyPress]:
        if not self._starts:
            return None
        return self._presses[self._starts[0]]

    def last(self) -> Optional[KeyPress]:
        if not self._starts:
            return None
        return self._presses[self._starts[-1]]

    def copy(self) -> "KeyPresses":
        clone = KeyPresses()
        clone._starts = list(self._starts)
        clone._presses = dict(self._presses)
        return clone

    @property
    def total_duration(self) -> int:
        """Total held time in milliseconds."""
        return sum(p.duration for p in self._presses.values())

    def __iter__(self) -> Iterator[KeyPress]:
        for start in self._starts:
            yield self._presses[start]

    def __len__(self) -> int:
        return len(self._starts)

    def __bool__(self) -> bool:
        return bool(self._starts)

    def __contains__(self, press: object) -> bool:
        return isinstance(press, KeyPress) and self._presses.get(press.start) == press

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyPresses):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"KeyPresses({list(self)!r})"

"""Progress status shared between a worker and its observers."""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StatusKind(Enum):
    NONE = "none"
    DECODING = "decoding"
    ANALYZING = "analyzing"
    GENERATING_SPECTROGRAM = "generating_spectrogram"


@dataclass(frozen=True)
class Status:
    """What a worker is doing, with a progress fraction where one applies."""

    kind: StatusKind = StatusKind.NONE
    progress: Optional[float] = None

    @classmethod
    def none(cls) -> "Status":
        return cls(StatusKind.NONE)

    @classmethod
    def decoding(cls, progress: float) -> "Status":
        return cls(StatusKind.DECODING, progress)

    @classmethod
    def analyzing(cls, progress: float) -> "Status":
        return cls(StatusKind.ANALYZING, progress)

    @classmethod
    def generating_spectrogram(cls) -> "Status":
        return cls(StatusKind.GENERATING_SPECTROGRAM)

    def __str__(self) -> str:
        label = self.kind.value.replace("_", " ").capitalize()
        if self.progress is None:
            return label
        return f"{label} ({self.progress:.0%})"


class StatusCell:
    """Single-writer, multi-reader holder of the latest ``Status``.

    Readers always see a whole ``Status`` value. ``wait_for_change`` lets a
    reader block until the writer publishes something new.
    """

    def __init__(self, initial: Optional[Status] = None):
        self._status = initial or Status.none()
        self._version = 0
        self._changed = threading.Condition()

    def get(self) -> Status:
        with self._changed:
            return self._status

    def set(self, status: Status) -> None:
        with self._changed:
            self._status = status
            self._version += 1
            self._changed.notify_all()

    @property
    def version(self) -> int:
        with self._changed:
            return self._version

    def wait_for_change(self, since_version: int, timeout: Optional[float] = None) -> Status:
        """Block until the version moves past ``since_version`` or timeout."""
        with self._changed:
            self._changed.wait_for(lambda: self._version > since_version, timeout)
            return self._status

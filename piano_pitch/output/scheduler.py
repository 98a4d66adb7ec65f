"""Note scheduler - real-time replay of key presses to a MIDI sink.

One control thread owns all note state. It sleeps on a condition variable
until the earliest of: the next note-on deadline, the next note-off deadline,
or an inbound command (play, play-note, cancel, shutdown). Commands win ties,
so a cancel is acted on before any further note fires.

Overlapping presses of one note never cut each other short: a note's pending
note-off deadline only ever moves later.
"""

import heapq
import itertools
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..core import KeyPresses, PianoKey
from ..core.constants import DEFAULT_VELOCITY
from .commands import MidiCommand, MidiNote, NoteOff, NoteOn
from .sink import MidiSink

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class PlaybackState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    PLAYING = "playing"
    FINISHED = "finished"
    CANCELLED = "cancelled"


@dataclass(frozen=True, order=True)
class ScheduledEvent:
    """A note-on due at ``deadline`` (monotonic seconds) lasting ``duration``."""

    deadline: float
    seq: int
    key: PianoKey = field(compare=False)
    duration: float = field(compare=False)


class PlaybackSession:
    """Handle on one ``NoteScheduler.play`` request."""

    def __init__(
        self,
        scheduler: "NoteScheduler",
        events: List[ScheduledEvent],
        epoch: float,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self._scheduler = scheduler
        self.events = events
        self.epoch = epoch
        self._progress_callback = progress_callback
        self._lock = threading.Lock()
        self._state = PlaybackState.SCHEDULED
        self._played = 0
        self._done = threading.Event()

    @property
    def state(self) -> PlaybackState:
        with self._lock:
            return self._state

    @property
    def notes_played(self) -> int:
        with self._lock:
            return self._played

    @property
    def total(self) -> int:
        return len(self.events)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until finished or cancelled; False on timeout."""
        return self._done.wait(timeout)

    def cancel(self) -> None:
        """Stop playback; sounding notes still get their note-off."""
        self._scheduler._post(_Cancel(self))

    # Called from the scheduler thread only

    def _start(self) -> None:
        with self._lock:
            self._state = PlaybackState.PLAYING

    def _note_played(self) -> None:
        with self._lock:
            self._played += 1
            played = self._played
        if self._progress_callback is not None:
            try:
                self._progress_callback(played, self.total)
            except Exception:
                logger.exception("Progress callback failed")

    def _finish(self, state: PlaybackState) -> None:
        with self._lock:
            self._state = state
        self._done.set()

    def __repr__(self) -> str:
        return (
            f"PlaybackSession(state={self.state.value}, "
            f"played={self.notes_played}/{self.total})"
        )


@dataclass(frozen=True)
class _Play:
    session: PlaybackSession


@dataclass(frozen=True)
class _PlayNote:
    note: MidiNote
    duration: float


@dataclass(frozen=True)
class _Cancel:
    session: Optional[PlaybackSession] = None


_SHUTDOWN = object()


class NoteScheduler:
    """Replays key presses through a ``MidiSink`` on a dedicated thread."""

    def __init__(self, sink: MidiSink, velocity: int = DEFAULT_VELOCITY):
        """
        Initialize NoteScheduler.

        Args:
            sink: Destination for encoded commands
            velocity: Velocity for every note-on and note-off (0-127)
        """
        self.sink = sink
        self.velocity = velocity

        self._cond = threading.Condition()
        self._commands: deque = deque()
        self._closed = False

        # Owned by the scheduler thread
        self._session: Optional[PlaybackSession] = None
        self._play_queue: List[ScheduledEvent] = []
        self._note_off: Dict[MidiNote, float] = {}
        self._off_heap: List[Tuple[float, MidiNote]] = []

        self._thread = threading.Thread(
            target=self._run, name="note-scheduler", daemon=True
        )
        self._thread.start()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def play(
        self,
        key_presses: Mapping[PianoKey, KeyPresses],
        epoch: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> PlaybackSession:
        """
        Start replaying ``key_presses``; any current session is cancelled first.

        The presses are snapshotted here, so later edits do not affect playback.

        Args:
            key_presses: Presses per piano key, offsets relative to ``epoch``
            epoch: ``time.monotonic()`` instant of offset 0 (default: now)
            progress_callback: Called with (notes played, total) per note-on

        Returns:
            PlaybackSession for progress, waiting and cancellation
        """
        if epoch is None:
            epoch = time.monotonic()

        seq = itertools.count()
        events = sorted(
            ScheduledEvent(epoch + press.start_secs, next(seq), key, press.duration_secs)
            for key, presses in key_presses.items()
            for press in list(presses)
        )

        session = PlaybackSession(self, events, epoch, progress_callback)
        logger.debug("Scheduling %d notes", len(events))
        self._post(_Play(session))
        return session

    def play_note(self, key: PianoKey, duration: float) -> None:
        """Sound one key now for ``duration`` seconds."""
        self._post(_PlayNote(MidiNote.from_piano_key(key), duration))

    def cancel(self) -> None:
        """Cancel whatever session is playing."""
        self._post(_Cancel())

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self._session

    @property
    def state(self) -> PlaybackState:
        session = self._session
        return session.state if session is not None else PlaybackState.IDLE

    def close(self, timeout: Optional[float] = None) -> None:
        """Cancel playback, release every sounding note and stop the thread."""
        with self._cond:
            if self._closed:
                return
            self._commands.append(_SHUTDOWN)
            self._closed = True
            self._cond.notify()
        self._thread.join(timeout)

    def __enter__(self) -> "NoteScheduler":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Scheduler thread
    # ------------------------------------------------------------------

    def _post(self, command) -> None:
        with self._cond:
            if self._closed:
                raise RuntimeError("NoteScheduler is closed")
            self._commands.append(command)
            self._cond.notify()

    def _run(self) -> None:
        while True:
            with self._cond:
                command = None
                while not self._commands:
                    deadline = self._next_deadline()
                    now = time.monotonic()
                    if deadline is not None and deadline <= now:
                        break
                    self._cond.wait(None if deadline is None else deadline - now)
                else:
                    command = self._commands.popleft()

            if command is _SHUTDOWN:
                self._stop_session(PlaybackState.CANCELLED)
                self._flush_note_offs()
                return

            if command is None:
                self._fire_next()
            else:
                self._handle(command)

            self._check_finished()

    def _handle(self, command) -> None:
        if isinstance(command, _Play):
            session = command.session
            if session.state is not PlaybackState.SCHEDULED:
                return  # cancelled before it started
            self._stop_session(PlaybackState.CANCELLED)
            self._flush_note_offs()

            self._session = session
            self._play_queue = list(session.events)
            heapq.heapify(self._play_queue)
            session._start()
            logger.info("Playback started: %d notes", session.total)

        elif isinstance(command, _PlayNote):
            self._note_on(command.note, time.monotonic() + command.duration)

        elif isinstance(command, _Cancel):
            target = command.session
            if target is None or target is self._session:
                if self._session is not None and not self._session.done:
                    self._stop_session(PlaybackState.CANCELLED)
                    self._flush_note_offs()
            elif target.state is PlaybackState.SCHEDULED:
                target._finish(PlaybackState.CANCELLED)

    def _next_deadline(self) -> Optional[float]:
        # Drop note-offs superseded by a later deadline for the same note
        while self._off_heap and self._note_off.get(self._off_heap[0][1]) != self._off_heap[0][0]:
            heapq.heappop(self._off_heap)

        deadlines = []
        if self._play_queue:
            deadlines.append(self._play_queue[0].deadline)
        if self._off_heap:
            deadlines.append(self._off_heap[0][0])
        return min(deadlines) if deadlines else None

    def _fire_next(self) -> None:
        """Fire the single earliest deadline; note-offs win ties."""
        off = self._off_heap[0][0] if self._off_heap else None
        if off is not None and (not self._play_queue or off <= self._play_queue[0].deadline):
            _, note = heapq.heappop(self._off_heap)
            del self._note_off[note]
            self._send(NoteOff(note, self.velocity))
            return

        event = heapq.heappop(self._play_queue)
        self._note_on(MidiNote.from_piano_key(event.key), event.deadline + event.duration)
        if self._session is not None:
            self._session._note_played()

    def _note_on(self, note: MidiNote, off_deadline: float) -> None:
        self._send(NoteOn(note, self.velocity))

        pending = self._note_off.get(note)
        if pending is None or off_deadline > pending:
            self._note_off[note] = off_deadline
            heapq.heappush(self._off_heap, (off_deadline, note))

    def _flush_note_offs(self) -> None:
        """Release every sounding note immediately."""
        for note in sorted(self._note_off):
            self._send(NoteOff(note, self.velocity))
        self._note_off.clear()
        self._off_heap.clear()

    def _stop_session(self, state: PlaybackState) -> None:
        self._play_queue.clear()
        session = self._session
        if session is not None and not session.done:
            logger.info(
                "Playback %s after %d/%d notes",
                state.value,
                session.notes_played,
                session.total,
            )
            session._finish(state)

    def _check_finished(self) -> None:
        session = self._session
        if session is None or session.done:
            return
        if not self._play_queue and not self._note_off:
            self._stop_session(PlaybackState.FINISHED)

    def _send(self, command: MidiCommand) -> None:
        try:
            self.sink.send(command.to_bytes())
        except Exception:
            logger.exception("Failed to send %s", command)

"""Output sinks - where encoded MIDI commands go."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import mido

from .commands import AllSoundOff, MidiCommand, NoteOff, NoteOn, command_from_bytes

logger = logging.getLogger(__name__)


class MidiSink(ABC):
    """Abstract destination for raw MIDI command bytes."""

    @abstractmethod
    def send(self, data: bytes) -> None:
        """
        Deliver one encoded command.

        Args:
            data: Raw MIDI bytes
        """
        pass

    def close(self) -> None:
        pass


class NullSink(MidiSink):
    """Disconnected output; commands are logged and dropped."""

    def send(self, data: bytes) -> None:
        logger.info("MIDI disconnected, ignoring %s", command_from_bytes(data))


class RecordingSink(MidiSink):
    """Keeps every command with the monotonic time it arrived."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._events: List[Tuple[float, MidiCommand]] = []

    def send(self, data: bytes) -> None:
        command = command_from_bytes(data)
        with self._lock:
            self._events.append((self._clock(), command))

    @property
    def events(self) -> List[Tuple[float, MidiCommand]]:
        with self._lock:
            return list(self._events)

    @property
    def commands(self) -> List[MidiCommand]:
        return [command for _, command in self.events]

    def sounding_notes(self) -> set:
        """Notes with a NoteOn not yet matched by a NoteOff."""
        sounding = set()
        for command in self.commands:
            if isinstance(command, NoteOn):
                sounding.add(command.note)
            elif isinstance(command, NoteOff):
                sounding.discard(command.note)
        return sounding


class MidoSink(MidiSink):
    """Output port opened through mido."""

    def __init__(self, port_name: Optional[str] = None, port=None):
        """
        Initialize MidoSink.

        Args:
            port_name: Output port to open (None opens mido's default)
            port: Already opened mido output port
        """
        self.port = port if port is not None else mido.open_output(port_name)
        logger.info("MIDI output connected to: %s", self.port.name)
        # Silence anything left sounding on the device
        self.send(AllSoundOff().to_bytes())

    def send(self, data: bytes) -> None:
        self.port.send(mido.Message.from_bytes(data))

    def close(self) -> None:
        self.port.close()


def output_port_names() -> List[str]:
    return mido.get_output_names()


def open_default_sink(port_name: Optional[str] = None) -> MidiSink:
    """
    Connect to ``port_name``, or to the only available output port.

    Returns:
        MidoSink when a port could be opened, otherwise NullSink
    """
    if port_name is None:
        names = output_port_names()
        if len(names) != 1:
            logger.info("Found %d MIDI output ports; staying disconnected", len(names))
            return NullSink()
        port_name = names[0]
        logger.debug("Connecting to the only available output port %s", port_name)

    try:
        return MidoSink(port_name)
    except (OSError, IOError) as e:
        logger.warning("Could not open MIDI port '%s': %s", port_name, e)
        return NullSink()

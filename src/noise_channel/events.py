"""
Session lifecycle events.

The engine never calls back into user code. Instead it pushes events onto a
queue owned by the engine, and the caller polls:

::

    NoiseEngine (store mutation)
           |
    SessionEventQueue (put_nowait)
           |
    caller: poll() / drain()
           |
           +-- SessionEstablished  --> start sending application data
           +-- SessionClosed       --> forget the peer
           +-- SessionExpired      --> retry the handshake if still wanted

Publishing never blocks. On a bounded queue that is full the new event is
dropped and logged.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass

from .constants import PeerId

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionEstablished:
    """
    Handshake completed and the session entered transport phase.

    Fired by whichever call performed the transition: respond (two-message
    patterns, responder side) or continue_handshake.
    """

    peer_id: PeerId
    """Peer whose session is ready."""

    remote_static_key: bytes | None
    """Verified remote static key, None if the pattern leaves the peer anonymous."""


@dataclass(frozen=True, slots=True)
class SessionClosed:
    """Session removed by an explicit close."""

    peer_id: PeerId
    """Peer whose session was removed."""


@dataclass(frozen=True, slots=True)
class SessionExpired:
    """Stalled handshake removed by the expiry sweep."""

    peer_id: PeerId
    """Peer whose handshake timed out."""


type SessionEvent = SessionEstablished | SessionClosed | SessionExpired
"""Union of all session events."""


class SessionEventQueue:
    """Thread-safe, non-blocking-on-publish event queue."""

    __slots__ = ("_queue",)

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: queue.Queue[SessionEvent] = queue.Queue(maxsize=maxsize)

    def publish(self, event: SessionEvent) -> bool:
        """
        Enqueue an event without blocking.

        Returns:
            True if queued, False if dropped because the queue is full.
        """
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning("Session event queue full, dropping %s", type(event).__name__)
            return False
        return True

    def poll(self, timeout: float | None = None) -> SessionEvent | None:
        """
        Take the next event.

        Args:
            timeout: Seconds to wait. None returns immediately.

        Returns:
            The next event, or None if none arrived in time.
        """
        try:
            if timeout is None:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[SessionEvent]:
        """Take every event currently queued, oldest first."""
        events: list[SessionEvent] = []
        while (event := self.poll()) is not None:
            events.append(event)
        return events

    def __len__(self) -> int:
        return self._queue.qsize()

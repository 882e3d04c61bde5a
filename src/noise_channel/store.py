"""
Concurrent session table.

The store holds at most one session per peer id. Every mutation runs a
caller-supplied function while holding the write side of one table-wide
reader/writer lock, so operations on one peer are linearized.

Operations on different peers also serialize against each other. At tens of
peers this is not measurable; per-entry locks would be the next step if it
ever is.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TypeVar

from .constants import PeerId
from .errors import SessionExists, SessionNotFound
from .session import Session

R = TypeVar("R")


class ReadWriteLock:
    """
    Reader/writer lock built on a condition variable.

    Any number of readers, or exactly one writer. Waiting writers block new
    readers so a steady stream of queries cannot starve mutations.
    Not reentrant.
    """

    __slots__ = ("_cond", "_readers", "_writer", "_writers_waiting")

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock in shared mode."""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock in exclusive mode."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass
class SessionStore:
    """
    Table of live sessions keyed by peer id.

    Owned by one engine instance. Independent stores share nothing.
    """

    sessions: dict[PeerId, Session] = field(default_factory=dict)
    """peer_id -> Session mapping."""

    _lock: ReadWriteLock = field(default_factory=ReadWriteLock, repr=False)
    """Table-wide reader/writer lock."""

    def insert(self, peer_id: PeerId, session: Session) -> None:
        """
        Store a new session.

        Raises:
            SessionExists: If the peer already has a session. The existing
                session is left untouched.
        """
        with self._lock.write():
            if peer_id in self.sessions:
                raise SessionExists(peer_id)
            self.sessions[peer_id] = session

    def with_mut(self, peer_id: PeerId, fn: Callable[[Session], R]) -> R:
        """
        Run `fn` with exclusive access to one session.

        Raises:
            SessionNotFound: If the peer has no session.
        """
        with self._lock.write():
            session = self.sessions.get(peer_id)
            if session is None:
                raise SessionNotFound(peer_id)
            return fn(session)

    def with_ref(self, peer_id: PeerId, fn: Callable[[Session], R]) -> R:
        """
        Run `fn` with shared access to one session.

        `fn` must not mutate the session.

        Raises:
            SessionNotFound: If the peer has no session.
        """
        with self._lock.read():
            session = self.sessions.get(peer_id)
            if session is None:
                raise SessionNotFound(peer_id)
            return fn(session)

    def contains(self, peer_id: PeerId) -> bool:
        """Check if a session exists for the peer."""
        with self._lock.read():
            return peer_id in self.sessions

    def remove(self, peer_id: PeerId) -> bool:
        """
        Remove a session.

        Returns:
            True if a session was removed, False if none existed.
        """
        with self._lock.write():
            return self.sessions.pop(peer_id, None) is not None

    def remove_if(self, predicate: Callable[[Session], bool]) -> list[PeerId]:
        """
        Remove every session matching `predicate` in one atomic sweep.

        Returns:
            Peer ids of the removed sessions.
        """
        with self._lock.write():
            removed = [pid for pid, session in self.sessions.items() if predicate(session)]
            for pid in removed:
                del self.sessions[pid]
            return removed

    def list_peer_ids(self) -> list[PeerId]:
        """Snapshot of peers with a live session, in no particular order."""
        with self._lock.read():
            return list(self.sessions)

    def clear(self) -> list[PeerId]:
        """
        Drop every session.

        Returns:
            Peer ids of the dropped sessions.
        """
        with self._lock.write():
            peer_ids = list(self.sessions)
            self.sessions.clear()
            return peer_ids

"""
Noise channel engine.

Public entry point for establishing and using secure channels. One engine
owns one session store, one local identity and one configuration. Callers
move bytes between peers; the engine never touches the network.

Lifecycle for one peer:

    initiate() / respond()      -> session created, Handshaking
    continue_handshake() ...    -> Handshaking, until the engine finishes
                                -> Transport (one-way)
    encrypt() / decrypt() ...   -> Transport only
    close()                     -> session removed, peer id free again

Failed initiate/respond calls insert nothing, so a retry is always possible.
A failed continue_handshake leaves the broken session in place; the caller
must close it before retrying.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from .config import NoiseConfig
from .constants import MAX_MESSAGE_SIZE, PeerId
from .errors import (
    HandshakeAlreadyComplete,
    HandshakeNotComplete,
    MessageTooLarge,
    ProtocolError,
    SessionExists,
    SessionNotFound,
)
from .events import (
    SessionClosed,
    SessionEstablished,
    SessionEvent,
    SessionEventQueue,
    SessionExpired,
)
from .handshake import NoiseHandshake
from .identity import LocalIdentity, default_identity
from .patterns import HandshakePattern, parse_pattern
from .session import Handshaking, Session, Transport
from .store import SessionStore

logger = logging.getLogger(__name__)


def _short(peer_id: PeerId) -> str:
    return peer_id[:16]


@dataclass
class NoiseEngine:
    """
    Secure channel engine bound to one session store.

    Thread-safe. All operations on one peer are linearized by the store's
    lock; none of them block on anything else.
    """

    config: NoiseConfig = field(default_factory=NoiseConfig)
    """Size limits, expiry policy and event queue bound."""

    identity: LocalIdentity = field(default_factory=default_identity)
    """Local static identity used for every handshake."""

    store: SessionStore = field(default_factory=SessionStore)
    """Session table owned by this engine."""

    events: SessionEventQueue = field(init=False)
    """Lifecycle events for the caller to poll."""

    def __post_init__(self) -> None:
        self.events = SessionEventQueue(maxsize=self.config.event_queue_size)

    # =========================================================================
    # Identity
    # =========================================================================

    def get_local_public_key(self) -> bytes:
        """Return our raw 32-byte static public key."""
        return self.identity.public_key()

    # =========================================================================
    # Handshake
    # =========================================================================

    @staticmethod
    def _check_size(message: bytes, limit: int) -> None:
        if len(message) > limit:
            raise MessageTooLarge(len(message), limit)

    def initiate(
        self,
        peer_id: PeerId,
        pattern: str | HandshakePattern,
        remote_static: bytes | None = None,
    ) -> bytes:
        """
        Start a handshake as initiator.

        Args:
            peer_id: Identifier of the remote party.
            pattern: "XX", "IK" or "NK", case-insensitive.
            remote_static: Responder's static key; required for IK and NK.

        Returns:
            Handshake message 1.

        Raises:
            SessionExists: If the peer already has a session.
            InvalidPattern: If the pattern is not supported.
            ProtocolError: If the handshake cannot be constructed.
        """
        if self.store.contains(peer_id):
            raise SessionExists(peer_id)

        resolved = parse_pattern(pattern)
        handshake = NoiseHandshake.initiator(resolved, self.identity.private_key, remote_static)
        message = handshake.write_message()

        session = Session(
            peer_id=peer_id,
            pattern=resolved,
            is_initiator=True,
            phase=Handshaking(handshake=handshake),
        )
        self.store.insert(peer_id, session)

        logger.debug("Initiated %s handshake with %s", resolved.name, _short(peer_id))
        return message

    def respond(
        self,
        peer_id: PeerId,
        pattern: str | HandshakePattern,
        message: bytes,
    ) -> bytes:
        """
        Answer a peer's first handshake message.

        In two-message patterns the handshake finishes here and the session
        is stored directly in transport phase.

        Returns:
            Handshake message 2.

        Raises:
            SessionExists: If the peer already has a session.
            InvalidPattern: If the pattern is not supported.
            MessageTooLarge: If the inbound message exceeds the protocol limit.
            ProtocolError: If the inbound message is malformed.
        """
        if self.store.contains(peer_id):
            raise SessionExists(peer_id)

        resolved = parse_pattern(pattern)
        self._check_size(message, MAX_MESSAGE_SIZE)

        handshake = NoiseHandshake.responder(resolved, self.identity.private_key)
        try:
            handshake.read_message(message)
        except ProtocolError:
            logger.debug("Rejected %s handshake from %s", resolved.name, _short(peer_id))
            raise
        reply = handshake.write_message()

        session = Session(
            peer_id=peer_id,
            pattern=resolved,
            is_initiator=False,
            phase=Handshaking(handshake=handshake),
        )
        if handshake.is_finished():
            session.complete_handshake(self.config.max_message_size)

        self.store.insert(peer_id, session)

        logger.debug("Responded to %s handshake from %s", resolved.name, _short(peer_id))
        if session.is_transport_ready():
            self.events.publish(self._established(session))
        return reply

    def continue_handshake(self, peer_id: PeerId, message: bytes) -> bytes | None:
        """
        Feed the next inbound handshake message.

        Returns:
            The next outbound message, or None when there is nothing to send
            (either the handshake just finished or it is the peer's turn).

        Raises:
            SessionNotFound: If the peer has no session.
            HandshakeAlreadyComplete: If the session is in transport phase.
            MessageTooLarge: If the message exceeds the protocol limit.
            ProtocolError: If the message is malformed or fails
                authentication. The session must then be closed.
        """

        def advance(session: Session) -> tuple[bytes | None, SessionEstablished | None]:
            match session.phase:
                case Transport():
                    raise HandshakeAlreadyComplete(peer_id)
                case Handshaking(handshake=handshake):
                    handshake.read_message(message)

                    if handshake.is_finished():
                        session.complete_handshake(self.config.max_message_size)
                        return None, self._established(session)

                    # Not an error: the peer owes us another message. Unreachable
                    # for XX, IK and NK, whose turns strictly alternate.
                    if not handshake.is_my_turn():
                        return None, None

                    reply = handshake.write_message()
                    if handshake.is_finished():
                        session.complete_handshake(self.config.max_message_size)
                        return reply, self._established(session)
                    return reply, None

        self._check_size(message, MAX_MESSAGE_SIZE)
        try:
            reply, event = self.store.with_mut(peer_id, advance)
        except ProtocolError:
            logger.debug("Handshake with %s failed", _short(peer_id))
            raise

        if event is not None:
            self.events.publish(event)
        return reply

    def _established(self, session: Session) -> SessionEstablished:
        logger.debug(
            "Session with %s established (%s, %s)",
            _short(session.peer_id),
            session.pattern.name,
            "initiator" if session.is_initiator else "responder",
        )
        return SessionEstablished(
            peer_id=session.peer_id,
            remote_static_key=session.remote_static_key,
        )

    # =========================================================================
    # Transport
    # =========================================================================

    def encrypt(self, peer_id: PeerId, plaintext: bytes) -> bytes:
        """
        Encrypt one application message for a peer.

        Returns:
            Ciphertext, 16 bytes longer than the plaintext.

        Raises:
            MessageTooLarge: If plaintext exceeds max_message_size - 16.
            SessionNotFound: If the peer has no session.
            HandshakeNotComplete: If the session is still handshaking.
        """
        if len(plaintext) > self.config.max_plaintext_size:
            raise MessageTooLarge(len(plaintext), self.config.max_plaintext_size)

        def seal(session: Session) -> bytes:
            match session.phase:
                case Handshaking():
                    raise HandshakeNotComplete(peer_id)
                case Transport(codec=codec):
                    return codec.encrypt(plaintext)

        return self.store.with_mut(peer_id, seal)

    def decrypt(self, peer_id: PeerId, ciphertext: bytes) -> bytes:
        """
        Authenticate and decrypt one application message from a peer.

        Raises:
            MessageTooLarge: If ciphertext exceeds max_message_size.
            SessionNotFound: If the peer has no session.
            HandshakeNotComplete: If the session is still handshaking.
            DecryptionFailed: If authentication fails for any reason.
        """
        self._check_size(ciphertext, self.config.max_message_size)

        def open_(session: Session) -> bytes:
            match session.phase:
                case Handshaking():
                    raise HandshakeNotComplete(peer_id)
                case Transport(codec=codec):
                    return codec.decrypt(ciphertext)

        return self.store.with_mut(peer_id, open_)

    # =========================================================================
    # Queries and teardown
    # =========================================================================

    def has_transport_session(self, peer_id: PeerId) -> bool:
        """True if the peer has a session in transport phase."""
        try:
            return self.store.with_ref(peer_id, Session.is_transport_ready)
        except SessionNotFound:
            return False

    def remote_static_key(self, peer_id: PeerId) -> bytes | None:
        """Verified remote static key, or None if unknown or no session."""
        try:
            return self.store.with_ref(peer_id, lambda session: session.remote_static_key)
        except SessionNotFound:
            return None

    def list_sessions(self) -> list[PeerId]:
        """Peers with a live session, handshaking or established."""
        return self.store.list_peer_ids()

    def close(self, peer_id: PeerId) -> bool:
        """
        Remove a peer's session.

        Returns:
            True if a session existed.
        """
        removed = self.store.remove(peer_id)
        if removed:
            logger.debug("Closed session with %s", _short(peer_id))
            self.events.publish(SessionClosed(peer_id=peer_id))
        return removed

    def close_all(self) -> int:
        """
        Remove every session.

        Returns:
            Number of sessions removed.
        """
        peer_ids = self.store.clear()
        for peer_id in peer_ids:
            self.events.publish(SessionClosed(peer_id=peer_id))
        logger.debug("Closed %d sessions", len(peer_ids))
        return len(peer_ids)

    def expire_stalled_handshakes(self, now: float | None = None) -> list[PeerId]:
        """
        Remove sessions stuck in handshake longer than the configured timeout.

        Established sessions are never touched. With no timeout configured
        this does nothing.

        Args:
            now: Monotonic timestamp to compare against. Defaults to now.

        Returns:
            Peer ids of the removed sessions.
        """
        timeout = self.config.handshake_timeout_secs
        if timeout is None:
            return []

        now = time.monotonic() if now is None else now
        expired = self.store.remove_if(lambda session: session.is_stalled(timeout, now))
        for peer_id in expired:
            self.events.publish(SessionExpired(peer_id=peer_id))
        if expired:
            logger.debug("Expired %d stalled handshakes", len(expired))
        return expired

    def poll_event(self, timeout: float | None = None) -> SessionEvent | None:
        """Take the next lifecycle event, if any."""
        return self.events.poll(timeout)

    def drain_events(self) -> list[SessionEvent]:
        """Take every queued lifecycle event."""
        return self.events.drain()

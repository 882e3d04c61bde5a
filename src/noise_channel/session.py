"""
Per-peer session record.

A session is created when a handshake starts and lives in the store until
closed. Its phase is a tagged union:

    Handshaking(handshake)  ->  Transport(codec)

The transition happens once, in one direction. Operations match on the
phase and reject the wrong variant explicitly.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .constants import PeerId
from .errors import HandshakeAlreadyComplete
from .handshake import NoiseHandshake
from .patterns import HandshakePattern
from .transport import TransportCodec


@dataclass(slots=True)
class Handshaking:
    """Handshake in progress."""

    handshake: NoiseHandshake
    """Engine instance holding ephemeral keys and transcript."""


@dataclass(slots=True)
class Transport:
    """Handshake finished; ready for encrypted traffic."""

    codec: TransportCodec
    """Directional cipher states."""


type SessionPhase = Handshaking | Transport
"""Lifecycle phase of a session."""


@dataclass(slots=True)
class Session:
    """
    Session with one peer.

    The remote static key stays None until the handshake completes, and
    afterwards only if the pattern authenticates the peer (the NK responder
    never learns one).
    """

    peer_id: PeerId
    """Caller-chosen identifier of the remote party."""

    pattern: HandshakePattern
    """Pattern the handshake runs."""

    is_initiator: bool
    """True if we sent the first handshake message."""

    phase: SessionPhase
    """Current lifecycle phase."""

    remote_static_key: bytes | None = None
    """Peer's verified 32-byte static key, set at the transition."""

    created_at: float = field(default_factory=time.monotonic)
    """Monotonic timestamp of session creation."""

    def is_transport_ready(self) -> bool:
        """Check if the handshake has completed."""
        return isinstance(self.phase, Transport)

    def is_stalled(self, timeout_secs: float, now: float) -> bool:
        """True if still handshaking more than `timeout_secs` after creation."""
        return isinstance(self.phase, Handshaking) and now - self.created_at > timeout_secs

    def complete_handshake(self, max_message_size: int) -> None:
        """
        Move from Handshaking to Transport.

        Captures the remote static key and discards the handshake engine.
        Must only be called once the engine reports it is finished.
        """
        match self.phase:
            case Handshaking(handshake=handshake):
                send_cipher, recv_cipher = handshake.finalize()
                self.remote_static_key = handshake.remote_static_bytes
                self.phase = Transport(
                    codec=TransportCodec(
                        _send_cipher=send_cipher,
                        _recv_cipher=recv_cipher,
                        max_message_size=max_message_size,
                    )
                )
            case Transport():
                raise HandshakeAlreadyComplete(self.peer_id)

"""Exception hierarchy for the Noise channel engine."""

from __future__ import annotations

from .constants import PeerId


class NoiseError(Exception):
    """
    Base exception for all Noise channel errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class SessionNotFound(NoiseError):
    """
    Raised when an operation targets a peer with no session.

    Attributes:
        peer_id: The peer that was looked up.
    """

    def __init__(self, peer_id: PeerId) -> None:
        self.peer_id = peer_id
        super().__init__(f"Session not found for peer: {peer_id}")


class SessionExists(NoiseError):
    """
    Raised when creating a session for a peer that already has one.

    Attributes:
        peer_id: The peer whose slot is occupied.
    """

    def __init__(self, peer_id: PeerId) -> None:
        self.peer_id = peer_id
        super().__init__(f"Session already exists for peer: {peer_id}")


class HandshakeNotComplete(NoiseError):
    """Raised when transport operations are used while still handshaking."""

    def __init__(self, peer_id: PeerId) -> None:
        self.peer_id = peer_id
        super().__init__(f"Handshake not complete for peer: {peer_id}")


class HandshakeAlreadyComplete(NoiseError):
    """Raised when a handshake message arrives for a transport session."""

    def __init__(self, peer_id: PeerId) -> None:
        self.peer_id = peer_id
        super().__init__(f"Handshake already complete for peer: {peer_id}")


class InvalidPattern(NoiseError):
    """
    Raised for a pattern token outside {XX, IK, NK}.

    Attributes:
        pattern: The rejected token, as supplied.
    """

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid pattern: {pattern}")


class MessageTooLarge(NoiseError):
    """
    Raised when a message exceeds the configured size bound.

    Attributes:
        size: Length of the rejected message.
        limit: Largest length accepted at this point.
    """

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Message too large: {size} bytes (max {limit})")


class DecryptionFailed(NoiseError):
    """
    Raised when a transport ciphertext cannot be authenticated.

    Tag mismatch, replay, reordering, truncation and nonce exhaustion all
    surface as this one error with a constant message.
    """

    def __init__(self) -> None:
        super().__init__("Decryption failed")


class ProtocolError(NoiseError):
    """
    Raised when the handshake engine rejects a message or key material.

    The handshake that raised it cannot continue; close the session and
    start over.
    """

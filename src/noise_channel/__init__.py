"""
Noise secure-channel engine.

Runs Noise_{XX,IK,NK}_25519_ChaChaPoly_BLAKE2s handshakes between peers
named by opaque ids, then encrypts and decrypts over the resulting session:
    - X25519: Diffie-Hellman key exchange
    - ChaCha20-Poly1305: authenticated encryption
    - BLAKE2s: hashing and key derivation

Patterns:
    XX: mutual authentication, no prior knowledge, three messages
    IK: responder known in advance, initiator authenticated, two messages
    NK: responder known in advance, initiator anonymous, two messages

Typical use:
    alice, bob = NoiseEngine(), NoiseEngine(identity=LocalIdentity())
    msg1 = alice.initiate("bob", "XX")
    msg2 = bob.respond("alice", "XX", msg1)
    msg3 = alice.continue_handshake("bob", msg2)
    bob.continue_handshake("alice", msg3)
    bob.decrypt("alice", alice.encrypt("bob", b"hello"))

Moving the bytes between peers is the caller's job.

References:
    - https://noiseprotocol.org/noise.html
"""

from .config import NoiseConfig
from .constants import AUTH_TAG_SIZE, MAX_MESSAGE_SIZE, MAX_PLAINTEXT_SIZE
from .engine import NoiseEngine
from .errors import (
    DecryptionFailed,
    HandshakeAlreadyComplete,
    HandshakeNotComplete,
    InvalidPattern,
    MessageTooLarge,
    NoiseError,
    ProtocolError,
    SessionExists,
    SessionNotFound,
)
from .events import SessionClosed, SessionEstablished, SessionEvent, SessionExpired
from .handshake import HandshakeRole, NoiseHandshake
from .identity import LocalIdentity, get_local_public_key
from .patterns import IK, NK, XX, HandshakePattern, parse_pattern
from .session import Handshaking, Session, Transport
from .store import SessionStore
from .transport import TransportCodec

__all__ = [
    # Constants
    "AUTH_TAG_SIZE",
    "MAX_MESSAGE_SIZE",
    "MAX_PLAINTEXT_SIZE",
    # Patterns
    "HandshakePattern",
    "XX",
    "IK",
    "NK",
    "parse_pattern",
    # Errors
    "NoiseError",
    "SessionNotFound",
    "SessionExists",
    "HandshakeNotComplete",
    "HandshakeAlreadyComplete",
    "InvalidPattern",
    "MessageTooLarge",
    "DecryptionFailed",
    "ProtocolError",
    # Events
    "SessionEvent",
    "SessionEstablished",
    "SessionClosed",
    "SessionExpired",
    # Classes
    "LocalIdentity",
    "NoiseConfig",
    "NoiseEngine",
    "NoiseHandshake",
    "HandshakeRole",
    "Session",
    "Handshaking",
    "Transport",
    "SessionStore",
    "TransportCodec",
    # Functions
    "get_local_public_key",
]

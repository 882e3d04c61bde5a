"""
Constants and type aliases for the Noise channel.

This module contains:
    - Protocol name templates and primitive sizes
    - Message size limits shared by the handshake and transport codec
    - Domain-specific type aliases for cryptographic values

Separated to avoid circular imports between crypto.py and types.py.
"""

from __future__ import annotations

from typing import Final, TypeAlias

# =============================================================================
# Protocol Constants
# =============================================================================

PROTOCOL_NAME_TEMPLATE: Final[str] = "Noise_{pattern}_25519_ChaChaPoly_BLAKE2s"
"""Full Noise protocol name, parameterised by the handshake pattern token."""

HASH_LEN: Final[int] = 32
"""BLAKE2s digest size. Also the size of chaining keys and handshake hashes."""

DH_LEN: Final[int] = 32
"""X25519 public key and shared secret size."""

AUTH_TAG_SIZE: Final[int] = 16
"""ChaCha20-Poly1305 authentication tag overhead."""

# Nonce overflow protection (Noise section 5.1).
# 2^64 - 1 is reserved, so it is never used as a nonce.
MAX_NONCE: Final[int] = (1 << 64) - 1
"""Maximum nonce value before overflow (2^64 - 1)."""

# =============================================================================
# Size Limits
# =============================================================================

MAX_MESSAGE_SIZE: Final[int] = 65535
"""Maximum size of any Noise message, handshake or transport."""

MAX_PLAINTEXT_SIZE: Final[int] = MAX_MESSAGE_SIZE - AUTH_TAG_SIZE
"""Maximum plaintext per transport message (65535 - 16 = 65519 bytes)."""

# =============================================================================
# Domain-Specific Type Aliases
# =============================================================================
#
# All are 32 bytes, but each serves a distinct purpose in the protocol.
# X25519 keys use the cryptography library types directly.

SharedSecret: TypeAlias = bytes
"""32-byte X25519 Diffie-Hellman shared secret."""

CipherKey: TypeAlias = bytes
"""32-byte ChaCha20-Poly1305 encryption key."""

ChainingKey: TypeAlias = bytes
"""32-byte HKDF chaining key for forward secrecy."""

HandshakeHash: TypeAlias = bytes
"""32-byte BLAKE2s hash binding the handshake transcript."""

PeerId: TypeAlias = str
"""Opaque caller-chosen identifier for a remote party."""

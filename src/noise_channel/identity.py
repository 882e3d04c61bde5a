"""
Local static identity.

One X25519 keypair is the long-term identity for every pattern. It is
generated lazily on first use and never replaced. Only the public half
leaves this module through the public API; the private key is handed to
handshake engines and nowhere else.

Nothing is persisted. A new process gets a new identity.
"""

from __future__ import annotations

import threading

from cryptography.hazmat.primitives.asymmetric import x25519

from .crypto import generate_keypair


class LocalIdentity:
    """
    Lazily generated static keypair.

    Concurrent first access is safe: the keypair is created under a lock
    and checked again after acquiring it, so exactly one is ever produced.
    """

    __slots__ = ("_keypair", "_lock")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keypair: tuple[x25519.X25519PrivateKey, bytes] | None = None

    def _ensure(self) -> tuple[x25519.X25519PrivateKey, bytes]:
        keypair = self._keypair
        if keypair is not None:
            return keypair

        with self._lock:
            if self._keypair is None:
                private_key, public_key = generate_keypair()
                self._keypair = (private_key, public_key.public_bytes_raw())
            return self._keypair

    @property
    def private_key(self) -> x25519.X25519PrivateKey:
        """Static private key, generated on first access."""
        return self._ensure()[0]

    def public_key(self) -> bytes:
        """Raw 32-byte static public key, generated on first access."""
        return self._ensure()[1]

    def __repr__(self) -> str:
        if self._keypair is None:
            return "LocalIdentity(<not generated>)"
        return f"LocalIdentity(public={self._keypair[1].hex()[:16]}...)"


_PROCESS_IDENTITY = LocalIdentity()
"""Identity shared by every engine that is not given its own."""


def default_identity() -> LocalIdentity:
    """Return the process-lifetime identity."""
    return _PROCESS_IDENTITY


def get_local_public_key() -> bytes:
    """Return the process identity's raw 32-byte static public key."""
    return _PROCESS_IDENTITY.public_key()

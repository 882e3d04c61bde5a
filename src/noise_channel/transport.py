"""
Transport codec used after the handshake completes.

After the handshake both parties hold two cipher states, one per direction.
This module wraps those ciphers and enforces the message size bounds.

Framing is the caller's concern. A ciphertext is exactly:
    [encrypted payload][16-byte auth tag]

Maximum message size: 65535 bytes
Maximum plaintext per message: 65535 - 16 = 65519 bytes

Nonces are implicit counters. Messages must be decrypted in the order they
were encrypted; a replayed or reordered ciphertext fails authentication.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from cryptography.exceptions import InvalidTag

from .constants import AUTH_TAG_SIZE, MAX_MESSAGE_SIZE
from .errors import DecryptionFailed, MessageTooLarge, ProtocolError
from .types import CipherError, CipherState


@dataclass(slots=True)
class TransportCodec:
    """
    Bidirectional encrypt/decrypt state for one established session.

    Not thread-safe on its own. The session store serializes access.
    """

    _send_cipher: CipherState = field(repr=False)
    """Cipher for encrypting outbound messages."""

    _recv_cipher: CipherState = field(repr=False)
    """Cipher for decrypting inbound messages."""

    max_message_size: int = MAX_MESSAGE_SIZE
    """Largest ciphertext accepted or produced."""

    @property
    def max_plaintext_size(self) -> int:
        """Largest plaintext that fits in one message."""
        return self.max_message_size - AUTH_TAG_SIZE

    def encrypt(self, plaintext: bytes) -> bytes:
        """
        Encrypt one message.

        Returns:
            Ciphertext of exactly len(plaintext) + 16 bytes.

        Raises:
            MessageTooLarge: If plaintext exceeds max_plaintext_size.
            ProtocolError: If the send nonce space is exhausted.
        """
        if len(plaintext) > self.max_plaintext_size:
            raise MessageTooLarge(len(plaintext), self.max_plaintext_size)

        try:
            # Empty associated data in transport mode.
            return self._send_cipher.encrypt_with_ad(b"", plaintext)
        except CipherError as exc:
            raise ProtocolError(str(exc)) from exc

    def decrypt(self, ciphertext: bytes) -> bytes:
        """
        Authenticate and decrypt one message.

        Raises:
            MessageTooLarge: If ciphertext exceeds max_message_size.
            DecryptionFailed: For any authentication failure.
        """
        if len(ciphertext) > self.max_message_size:
            raise MessageTooLarge(len(ciphertext), self.max_message_size)

        try:
            return self._recv_cipher.decrypt_with_ad(b"", ciphertext)
        except (InvalidTag, CipherError):
            # Drop the cause so callers cannot tell which check failed.
            raise DecryptionFailed() from None

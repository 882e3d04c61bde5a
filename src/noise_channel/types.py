"""
Symmetric state objects for the Noise protocol.

The Noise protocol maintains several pieces of state during handshake:
    - CipherState: Encryption key + nonce counter for one direction
    - SymmetricState: Chaining key + hash + current cipher state

After the handshake completes, only two CipherStates remain (one per direction).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .constants import HASH_LEN, MAX_NONCE, ChainingKey, CipherKey, HandshakeHash, SharedSecret
from .crypto import blake2s, decrypt, encrypt, hkdf


class CipherError(Exception):
    """Raised when cipher operations fail."""


@dataclass(slots=True)
class CipherState:
    """
    Encryption state for one direction of communication.

    Each maintains:
        - A 32-byte symmetric key (k)
        - A 64-bit nonce counter (n)

    The nonce increments after each successful encrypt/decrypt operation.
    A failed decryption leaves the counter untouched, so the next genuine
    message still lines up.
    """

    key: CipherKey = field(repr=False)
    """32-byte ChaCha20-Poly1305 key."""

    nonce: int = 0
    """64-bit counter, increments after each operation."""

    def encrypt_with_ad(self, ad: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt plaintext with associated data.

        Raises:
            CipherError: If the nonce space is exhausted.
        """
        if self.nonce >= MAX_NONCE:
            raise CipherError("Nonce overflow - session must be closed")

        ciphertext = encrypt(self.key, self.nonce, ad, plaintext)
        self.nonce += 1
        return ciphertext

    def decrypt_with_ad(self, ad: bytes, ciphertext: bytes) -> bytes:
        """
        Decrypt ciphertext with associated data.

        Raises:
            cryptography.exceptions.InvalidTag: If authentication fails.
            CipherError: If the nonce space is exhausted.
        """
        if self.nonce >= MAX_NONCE:
            raise CipherError("Nonce overflow - session must be closed")

        plaintext = decrypt(self.key, self.nonce, ad, ciphertext)
        self.nonce += 1
        return plaintext


def _initial_hash(protocol_name: bytes) -> bytes:
    # Noise section 5.2: pad short names with zeros, hash long ones.
    if len(protocol_name) <= HASH_LEN:
        return protocol_name.ljust(HASH_LEN, b"\x00")
    return blake2s(protocol_name)


@dataclass(slots=True)
class SymmetricState:
    """
    Symmetric cryptographic state during handshake.

    Tracks:
        - Chaining key (ck): Evolves with each DH operation
        - Handshake hash (h): Accumulates transcript for binding
        - Current cipher state: For encrypting handshake payloads

    The chaining key provides forward secrecy by mixing in new DH
    outputs. The handshake hash binds all exchanged data together,
    preventing transcript manipulation.
    """

    chaining_key: ChainingKey = field(repr=False)
    """32-byte chaining key, initialized from the protocol name."""

    handshake_hash: HandshakeHash
    """32-byte hash accumulating the handshake transcript."""

    cipher_state: CipherState | None = None
    """Cipher for encrypted handshake payloads (None until first DH)."""

    @classmethod
    def initialize(cls, protocol_name: bytes) -> SymmetricState:
        """
        Start a fresh state bound to one protocol name.

        Different protocol names produce different keys, so an XX transcript
        can never be confused with an IK one.
        """
        h = _initial_hash(protocol_name)
        return cls(chaining_key=h, handshake_hash=h)

    def mix_key(self, input_key_material: SharedSecret) -> None:
        """
        Mix new key material into the chaining key.

        Called after each DH operation. Produces a fresh handshake cipher
        with nonce 0.
        """
        new_chaining_key, temp_key = hkdf(self.chaining_key, input_key_material)
        self.chaining_key = new_chaining_key
        self.cipher_state = CipherState(key=temp_key)

    def mix_hash(self, data: bytes) -> None:
        """Mix data into the handshake hash: h = HASH(h || data)."""
        self.handshake_hash = blake2s(self.handshake_hash + data)

    def encrypt_and_hash(self, plaintext: bytes) -> bytes:
        """
        Encrypt payload and mix ciphertext into hash.

        Before the first DH there is no key; the data travels in cleartext
        but is still bound to the transcript.
        """
        if self.cipher_state is None:
            self.mix_hash(plaintext)
            return plaintext

        # Mix CIPHERTEXT (not plaintext) so both sides hash the same bytes.
        ciphertext = self.cipher_state.encrypt_with_ad(self.handshake_hash, plaintext)
        self.mix_hash(ciphertext)
        return ciphertext

    def decrypt_and_hash(self, ciphertext: bytes) -> bytes:
        """
        Decrypt payload and mix ciphertext into hash.

        Raises:
            cryptography.exceptions.InvalidTag: If authentication fails.
        """
        if self.cipher_state is None:
            self.mix_hash(ciphertext)
            return ciphertext

        plaintext = self.cipher_state.decrypt_with_ad(self.handshake_hash, ciphertext)
        self.mix_hash(ciphertext)
        return plaintext

    def split(self) -> tuple[CipherState, CipherState]:
        """
        Derive final cipher states for transport.

        Returns:
            (cipher1, cipher2). cipher1 carries initiator -> responder
            traffic, cipher2 carries responder -> initiator traffic.
        """
        temp_key1, temp_key2 = hkdf(self.chaining_key, b"")
        return CipherState(key=temp_key1), CipherState(key=temp_key2)

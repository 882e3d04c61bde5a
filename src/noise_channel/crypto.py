"""
Cryptographic primitives for the Noise channel.

The channel runs Noise_*_25519_ChaChaPoly_BLAKE2s:
    - X25519 for Diffie-Hellman key agreement
    - ChaCha20-Poly1305 for authenticated encryption
    - BLAKE2s for hashing and key derivation

Wire format notes:
    - ChaCha20-Poly1305 nonce: 12 bytes, first 4 are zeros, last 8 are LE counter
    - Ciphertext includes 16-byte authentication tag appended
    - HKDF is the HMAC-based construction from Noise section 4.3

References:
    - https://noiseprotocol.org/noise.html#the-cipherstate-object
    - https://datatracker.ietf.org/doc/html/rfc7748 (X25519)
    - https://datatracker.ietf.org/doc/html/rfc8439 (ChaCha20-Poly1305)
    - https://datatracker.ietf.org/doc/html/rfc7693 (BLAKE2s)
"""

from __future__ import annotations

import hashlib
import hmac
import struct

from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from .constants import CipherKey, SharedSecret


def x25519_dh(
    private_key: x25519.X25519PrivateKey, public_key: x25519.X25519PublicKey
) -> SharedSecret:
    """
    Perform X25519 Diffie-Hellman key exchange.

    Args:
        private_key: Our X25519 private key
        public_key: Peer's X25519 public key

    Returns:
        32-byte shared secret

    Raises:
        ValueError: If the peer key is a low-order point (all-zero output).
    """
    return private_key.exchange(public_key)


def _nonce_bytes(nonce: int) -> bytes:
    # 4 zero bytes + 8-byte little-endian counter.
    return b"\x00\x00\x00\x00" + struct.pack("<Q", nonce)


def encrypt(key: CipherKey, nonce: int, ad: bytes, plaintext: bytes) -> bytes:
    """
    Encrypt with ChaCha20-Poly1305 AEAD.

    Args:
        key: 32-byte encryption key
        nonce: 64-bit counter value (converted to the 12-byte AEAD nonce)
        ad: Associated data (authenticated but not encrypted)
        plaintext: Data to encrypt

    Returns:
        Ciphertext with 16-byte authentication tag appended
    """
    return ChaCha20Poly1305(key).encrypt(_nonce_bytes(nonce), plaintext, ad)


def decrypt(key: CipherKey, nonce: int, ad: bytes, ciphertext: bytes) -> bytes:
    """
    Decrypt with ChaCha20-Poly1305 AEAD.

    Args:
        key: 32-byte encryption key
        nonce: 64-bit counter value (must match encryption nonce)
        ad: Associated data (must match encryption AD)
        ciphertext: Ciphertext with 16-byte auth tag

    Returns:
        Decrypted plaintext

    Raises:
        cryptography.exceptions.InvalidTag: If authentication fails.

    Tampering, a wrong key, a wrong nonce and wrong associated data are
    indistinguishable here. Callers must keep it that way.
    """
    return ChaCha20Poly1305(key).decrypt(_nonce_bytes(nonce), ciphertext, ad)


def blake2s(data: bytes) -> bytes:
    """Compute the 32-byte BLAKE2s digest of `data`."""
    return hashlib.blake2s(data).digest()


def hkdf(chaining_key: bytes, input_key_material: bytes) -> tuple[bytes, bytes]:
    """
    Derive two 32-byte keys using HKDF per the Noise protocol specification.

    Noise section 4.3, with HMAC-BLAKE2s:
        temp_key = HMAC-HASH(chaining_key, input_key_material)
        output1 = HMAC-HASH(temp_key, byte(0x01))
        output2 = HMAC-HASH(temp_key, output1 || byte(0x02))

    Args:
        chaining_key: 32-byte chaining key from previous operation.
        input_key_material: New key material (DH output, or empty for Split).

    Returns:
        Tuple of (output1, output2), each 32 bytes.
    """
    temp_key = hmac.new(chaining_key, input_key_material, hashlib.blake2s).digest()
    output1 = hmac.new(temp_key, b"\x01", hashlib.blake2s).digest()
    output2 = hmac.new(temp_key, output1 + b"\x02", hashlib.blake2s).digest()
    return output1, output2


def generate_keypair() -> tuple[x25519.X25519PrivateKey, x25519.X25519PublicKey]:
    """
    Generate a new X25519 keypair.

    Used for the local static identity and for fresh per-handshake ephemerals.
    """
    private_key = x25519.X25519PrivateKey.generate()
    return private_key, private_key.public_key()

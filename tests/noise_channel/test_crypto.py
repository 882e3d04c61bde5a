"""
Tests for Noise crypto primitives.

Uses official test vectors where applicable:
- RFC 7748: X25519 Diffie-Hellman
- RFC 7693: BLAKE2s
- Noise HKDF: HMAC-based formula from Noise section 4.3
"""

from __future__ import annotations

import hashlib
import hmac
import struct

import pytest
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from noise_channel.crypto import (
    blake2s,
    decrypt,
    encrypt,
    generate_keypair,
    hkdf,
    x25519_dh,
)


class TestX25519:
    """
    X25519 Diffie-Hellman tests.

    Test vectors from RFC 7748 Section 6.1.
    """

    def test_rfc7748_test_vector(self) -> None:
        """Alice's private key and Bob's public key produce the RFC shared secret."""
        alice_private = x25519.X25519PrivateKey.from_private_bytes(
            bytes.fromhex("77076d0a7318a57d3c16c17251b26645df4c2f87ebc0992ab177fba51db92c2a")
        )
        bob_public = x25519.X25519PublicKey.from_public_bytes(
            bytes.fromhex("de9edb7d7b7dc1b4d35b61c2ece435373f8343c85b78674dadfc7e146f882b4f")
        )

        shared = x25519_dh(alice_private, bob_public)

        assert shared == bytes.fromhex(
            "4a5d9d5ba4ce2de1728e3bf480350f25e07e21c947d19e3376f09b3c1e161742"
        )

    def test_dh_symmetry(self) -> None:
        """DH(a, B) == DH(b, A) for any keypairs."""
        alice_private, alice_public = generate_keypair()
        bob_private, bob_public = generate_keypair()

        assert x25519_dh(alice_private, bob_public) == x25519_dh(bob_private, alice_public)

    def test_low_order_point_rejected(self) -> None:
        """The all-zero public key yields an all-zero secret, which is refused."""
        private, _ = generate_keypair()
        zero_point = x25519.X25519PublicKey.from_public_bytes(bytes(32))

        with pytest.raises(ValueError):
            x25519_dh(private, zero_point)


class TestChaCha20Poly1305:
    """ChaCha20-Poly1305 AEAD with the Noise nonce layout."""

    def test_nonce_layout(self) -> None:
        """Nonce is 4 zero bytes followed by the little-endian counter."""
        key = bytes(range(32))
        nonce = 0x0102030405060708

        expected = ChaCha20Poly1305(key).encrypt(
            b"\x00\x00\x00\x00" + struct.pack("<Q", nonce), b"payload", b"ad"
        )

        assert encrypt(key, nonce, b"ad", b"payload") == expected

    def test_roundtrip(self) -> None:
        """Encrypt then decrypt returns original plaintext."""
        key = bytes(32)
        plaintext = b"Hello, Noise Protocol!"

        for nonce in [0, 1, 100, 2**32 - 1, 2**63 - 1]:
            ciphertext = encrypt(key, nonce, b"ad", plaintext)
            assert decrypt(key, nonce, b"ad", ciphertext) == plaintext

    def test_empty_plaintext(self) -> None:
        """Encrypting empty plaintext produces a bare 16-byte tag."""
        ciphertext = encrypt(bytes(32), 0, b"", b"")

        assert len(ciphertext) == 16
        assert decrypt(bytes(32), 0, b"", ciphertext) == b""

    def test_tampered_ciphertext_fails(self) -> None:
        """Tampered ciphertext fails authentication."""
        ciphertext = bytearray(encrypt(bytes(32), 0, b"", b"Secret message"))
        ciphertext[0] ^= 0xFF

        with pytest.raises(InvalidTag):
            decrypt(bytes(32), 0, b"", bytes(ciphertext))

    def test_wrong_nonce_fails(self) -> None:
        """Decryption with a different nonce fails."""
        ciphertext = encrypt(bytes(32), 0, b"", b"Secret message")

        with pytest.raises(InvalidTag):
            decrypt(bytes(32), 1, b"", ciphertext)

    def test_wrong_ad_fails(self) -> None:
        """Decryption with different associated data fails."""
        ciphertext = encrypt(bytes(32), 0, b"ad1", b"Secret message")

        with pytest.raises(InvalidTag):
            decrypt(bytes(32), 0, b"ad2", ciphertext)


class TestBlake2s:
    """BLAKE2s hashing, RFC 7693 Appendix B."""

    def test_rfc7693_abc(self) -> None:
        """BLAKE2s-256("abc") matches the RFC example."""
        assert blake2s(b"abc") == bytes.fromhex(
            "508c5e8c327c14e2e1a72ba34eeb452f37458b209ed63a294d999b4c86675982"
        )

    def test_digest_length(self) -> None:
        """Digest is always 32 bytes."""
        assert len(blake2s(b"")) == 32
        assert len(blake2s(bytes(1000))) == 32


class TestHkdf:
    """Noise HKDF with HMAC-BLAKE2s."""

    def test_matches_noise_formula(self) -> None:
        """Outputs follow temp_key / output1 / output2 from Noise section 4.3."""
        chaining_key = bytes(range(32))
        ikm = b"input key material"

        temp_key = hmac.new(chaining_key, ikm, hashlib.blake2s).digest()
        expected1 = hmac.new(temp_key, b"\x01", hashlib.blake2s).digest()
        expected2 = hmac.new(temp_key, expected1 + b"\x02", hashlib.blake2s).digest()

        assert hkdf(chaining_key, ikm) == (expected1, expected2)

    def test_outputs_differ(self) -> None:
        """The two outputs are independent keys."""
        output1, output2 = hkdf(bytes(32), bytes(32))

        assert len(output1) == 32
        assert len(output2) == 32
        assert output1 != output2

    def test_empty_input_for_split(self) -> None:
        """Empty input key material is valid (used by Split)."""
        output1, output2 = hkdf(bytes(32), b"")

        assert output1 != output2
        assert (output1, output2) != hkdf(bytes(32), bytes(32))


class TestGenerateKeypair:
    """Keypair generation."""

    def test_keys_are_unique(self) -> None:
        """Each call produces a fresh keypair."""
        _, pub1 = generate_keypair()
        _, pub2 = generate_keypair()

        assert pub1.public_bytes_raw() != pub2.public_bytes_raw()

    def test_public_matches_private(self) -> None:
        """Returned public key belongs to the returned private key."""
        private, public = generate_keypair()

        assert private.public_key().public_bytes_raw() == public.public_bytes_raw()

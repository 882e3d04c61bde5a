"""Tests for CipherState and SymmetricState."""

from __future__ import annotations

import pytest
from cryptography.exceptions import InvalidTag

from noise_channel.constants import MAX_NONCE
from noise_channel.crypto import blake2s
from noise_channel.types import CipherError, CipherState, SymmetricState


class TestCipherState:
    """Tests for one-direction cipher state."""

    def test_nonce_increments_on_encrypt(self) -> None:
        """Each encryption consumes one nonce."""
        cipher = CipherState(key=bytes(32))

        cipher.encrypt_with_ad(b"", b"one")
        cipher.encrypt_with_ad(b"", b"two")

        assert cipher.nonce == 2

    def test_paired_states_roundtrip(self) -> None:
        """Two states with the same key stay in lockstep."""
        sender = CipherState(key=bytes(32))
        receiver = CipherState(key=bytes(32))

        for message in [b"first", b"second", b"third"]:
            assert receiver.decrypt_with_ad(b"", sender.encrypt_with_ad(b"", message)) == message

    def test_failed_decrypt_keeps_nonce(self) -> None:
        """Authentication failure leaves the counter where it was."""
        sender = CipherState(key=bytes(32))
        receiver = CipherState(key=bytes(32))
        ciphertext = bytearray(sender.encrypt_with_ad(b"", b"hello"))
        ciphertext[-1] ^= 0x01

        with pytest.raises(InvalidTag):
            receiver.decrypt_with_ad(b"", bytes(ciphertext))

        assert receiver.nonce == 0

    def test_nonce_overflow_refused(self) -> None:
        """The reserved maximum nonce is never used."""
        cipher = CipherState(key=bytes(32), nonce=MAX_NONCE)

        with pytest.raises(CipherError, match="Nonce overflow"):
            cipher.encrypt_with_ad(b"", b"x")
        with pytest.raises(CipherError, match="Nonce overflow"):
            cipher.decrypt_with_ad(b"", bytes(16))

    def test_repr_hides_key(self) -> None:
        """Key material does not appear in repr."""
        cipher = CipherState(key=b"\xaa" * 32)

        assert "aa" not in repr(cipher)


class TestSymmetricState:
    """Tests for handshake symmetric state."""

    def test_long_protocol_name_is_hashed(self) -> None:
        """Names longer than 32 bytes are hashed into h and ck."""
        name = b"Noise_XX_25519_ChaChaPoly_BLAKE2s"
        assert len(name) > 32

        state = SymmetricState.initialize(name)

        assert state.handshake_hash == blake2s(name)
        assert state.chaining_key == state.handshake_hash
        assert state.cipher_state is None

    def test_short_protocol_name_is_padded(self) -> None:
        """Names of at most 32 bytes are zero padded."""
        state = SymmetricState.initialize(b"Noise_NN")

        assert state.handshake_hash == b"Noise_NN" + bytes(24)

    def test_cleartext_before_first_key(self) -> None:
        """Without a key, encrypt_and_hash passes data through."""
        state = SymmetricState.initialize(b"Noise_XX_25519_ChaChaPoly_BLAKE2s")
        before = state.handshake_hash

        assert state.encrypt_and_hash(b"data") == b"data"
        assert state.handshake_hash == blake2s(before + b"data")

    def test_mix_key_installs_cipher(self) -> None:
        """mix_key changes ck and provides a fresh cipher with nonce 0."""
        state = SymmetricState.initialize(b"Noise_XX_25519_ChaChaPoly_BLAKE2s")
        chaining_key = state.chaining_key

        state.mix_key(bytes(32))

        assert state.chaining_key != chaining_key
        assert state.cipher_state is not None
        assert state.cipher_state.nonce == 0

    def test_mirrored_states_agree(self) -> None:
        """Two parties applying the same operations derive the same transcript."""
        name = b"Noise_XX_25519_ChaChaPoly_BLAKE2s"
        sender = SymmetricState.initialize(name)
        receiver = SymmetricState.initialize(name)

        for state in (sender, receiver):
            state.mix_hash(b"ephemeral")
            state.mix_key(b"\x01" * 32)

        ciphertext = sender.encrypt_and_hash(b"static key")
        assert receiver.decrypt_and_hash(ciphertext) == b"static key"
        assert sender.handshake_hash == receiver.handshake_hash

    def test_transcript_mismatch_fails(self) -> None:
        """Diverging transcripts make handshake decryption fail."""
        name = b"Noise_XX_25519_ChaChaPoly_BLAKE2s"
        sender = SymmetricState.initialize(name)
        receiver = SymmetricState.initialize(name)
        sender.mix_hash(b"one thing")
        receiver.mix_hash(b"another thing")
        for state in (sender, receiver):
            state.mix_key(b"\x01" * 32)

        with pytest.raises(InvalidTag):
            receiver.decrypt_and_hash(sender.encrypt_and_hash(b"payload"))

    def test_split_gives_two_directions(self) -> None:
        """Split yields distinct keys; mirrored splits match."""
        a = SymmetricState.initialize(b"Noise_XX_25519_ChaChaPoly_BLAKE2s")
        b = SymmetricState.initialize(b"Noise_XX_25519_ChaChaPoly_BLAKE2s")

        a1, a2 = a.split()
        b1, b2 = b.split()

        assert a1.key != a2.key
        assert (a1.key, a2.key) == (b1.key, b2.key)
        assert a1.nonce == a2.nonce == 0

"""
Pattern-driven Noise handshake state machine.

One engine handles XX, IK and NK. Each message is a list of tokens taken
from the pattern descriptor; the engine walks them in order, so the message
schedule of a pattern lives only in patterns.py.

Message layout, per token, in order:
    e   -> 32-byte ephemeral public key (cleartext)
    s   -> 32-byte static public key, or 48 bytes once a key exists
    ee/es/se/ss -> no bytes, mixes a DH output into the chaining key
followed by the payload, passed through EncryptAndHash (a bare 16-byte tag
for an empty payload once a key exists).

Turn taking:
    Message i is written by the initiator when i is even, by the responder
    when i is odd. The handshake is finished once every message pattern has
    been processed by both sides.

References:
    - https://noiseprotocol.org/noise.html#the-handshakestate-object
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, auto

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric import x25519

from .constants import AUTH_TAG_SIZE, DH_LEN, MAX_MESSAGE_SIZE
from .crypto import generate_keypair, x25519_dh
from .errors import ProtocolError
from .patterns import HandshakePattern
from .types import CipherError, CipherState, SymmetricState


class HandshakeRole(IntEnum):
    """Role in the handshake - determines message order."""

    INITIATOR = auto()
    """Sends the first message."""

    RESPONDER = auto()
    """Responds to the first message."""


def _public_key_from_bytes(data: bytes, what: str) -> x25519.X25519PublicKey:
    if len(data) != DH_LEN:
        raise ProtocolError(f"{what} must be {DH_LEN} bytes, got {len(data)}")
    try:
        return x25519.X25519PublicKey.from_public_bytes(data)
    except ValueError as exc:
        raise ProtocolError(f"Invalid {what}") from exc


@dataclass(slots=True)
class NoiseHandshake:
    """
    Handshake state for one party of a Noise handshake.

    Usage:
        hs = NoiseHandshake.initiator(XX, static_key)
        msg1 = hs.write_message()
        # send msg1, receive msg2
        hs.read_message(msg2)
        if hs.is_my_turn():
            msg3 = hs.write_message()
        if hs.is_finished():
            send_cipher, recv_cipher = hs.finalize()
    """

    pattern: HandshakePattern
    """Pattern being executed."""

    role: HandshakeRole
    """Our role in the handshake."""

    local_static: x25519.X25519PrivateKey = field(repr=False)
    """Our long-term identity key."""

    local_static_public: x25519.X25519PublicKey = field(repr=False)
    """Our static public key."""

    local_ephemeral: x25519.X25519PrivateKey = field(repr=False)
    """Fresh ephemeral key for this handshake."""

    local_ephemeral_public: x25519.X25519PublicKey = field(repr=False)
    """Our ephemeral public key."""

    _symmetric_state: SymmetricState = field(repr=False)
    """Internal symmetric state for key derivation."""

    remote_static_public: x25519.X25519PublicKey | None = field(default=None, repr=False)
    """Peer's static public key, pre-known or learned during handshake."""

    remote_ephemeral_public: x25519.X25519PublicKey | None = field(default=None, repr=False)
    """Peer's ephemeral public key, learned during handshake."""

    _message_index: int = 0
    """Number of handshake messages processed so far."""

    @classmethod
    def initiator(
        cls,
        pattern: HandshakePattern,
        static_key: x25519.X25519PrivateKey,
        remote_static: bytes | None = None,
    ) -> NoiseHandshake:
        """
        Create handshake as initiator.

        Args:
            pattern: Handshake pattern to run.
            static_key: Our long-term X25519 identity key.
            remote_static: Responder's static public key. Required when the
                pattern has a responder pre-message (IK, NK), ignored otherwise.

        Raises:
            ProtocolError: If a required remote static key is missing or invalid.
        """
        remote_static_public = None
        if pattern.requires_remote_static:
            if remote_static is None:
                raise ProtocolError(f"Pattern {pattern.name} requires the responder's static key")
            remote_static_public = _public_key_from_bytes(remote_static, "remote static key")

        handshake = cls._create(pattern, HandshakeRole.INITIATOR, static_key)
        handshake.remote_static_public = remote_static_public
        handshake._mix_pre_messages()
        return handshake

    @classmethod
    def responder(
        cls,
        pattern: HandshakePattern,
        static_key: x25519.X25519PrivateKey,
    ) -> NoiseHandshake:
        """
        Create handshake as responder.

        The responder's own static key doubles as the pre-message key for
        IK and NK, so nothing else is needed up front.
        """
        handshake = cls._create(pattern, HandshakeRole.RESPONDER, static_key)
        handshake._mix_pre_messages()
        return handshake

    @classmethod
    def _create(
        cls,
        pattern: HandshakePattern,
        role: HandshakeRole,
        static_key: x25519.X25519PrivateKey,
    ) -> NoiseHandshake:
        ephemeral, ephemeral_public = generate_keypair()
        symmetric_state = SymmetricState.initialize(pattern.protocol_name)
        # Empty prologue. Noise mixes it even when empty.
        symmetric_state.mix_hash(b"")
        return cls(
            pattern=pattern,
            role=role,
            local_static=static_key,
            local_static_public=static_key.public_key(),
            local_ephemeral=ephemeral,
            local_ephemeral_public=ephemeral_public,
            _symmetric_state=symmetric_state,
        )

    def _mix_pre_messages(self) -> None:
        # Initiator pre-messages first, then responder, on both sides.
        for owner, tokens in (
            (HandshakeRole.INITIATOR, self.pattern.initiator_pre_messages),
            (HandshakeRole.RESPONDER, self.pattern.responder_pre_messages),
        ):
            for token in tokens:
                if token != "s":
                    raise ProtocolError(f"Unsupported pre-message token: {token}")
                if owner == self.role:
                    key = self.local_static_public
                else:
                    if self.remote_static_public is None:
                        raise ProtocolError("Missing pre-message static key")
                    key = self.remote_static_public
                self._symmetric_state.mix_hash(key.public_bytes_raw())

    def is_my_turn(self) -> bool:
        """True if the next handshake message is ours to write."""
        if self.is_finished():
            return False
        initiator_turn = self._message_index % 2 == 0
        return initiator_turn == (self.role == HandshakeRole.INITIATOR)

    def is_finished(self) -> bool:
        """True once every message in the pattern has been processed."""
        return self._message_index >= len(self.pattern.message_patterns)

    @property
    def remote_static_bytes(self) -> bytes | None:
        """Raw 32-byte remote static key, if known."""
        if self.remote_static_public is None:
            return None
        return self.remote_static_public.public_bytes_raw()

    def _dh(self, token: str) -> bytes:
        # First letter names the initiator's key, second the responder's.
        initiator_key, responder_key = token[0], token[1]
        if self.role == HandshakeRole.INITIATOR:
            local_kind, remote_kind = initiator_key, responder_key
        else:
            local_kind, remote_kind = responder_key, initiator_key

        local = self.local_ephemeral if local_kind == "e" else self.local_static
        remote = self.remote_ephemeral_public if remote_kind == "e" else self.remote_static_public
        if remote is None:
            raise ProtocolError(f"Token {token!r} needs a remote key that is not known yet")

        try:
            return x25519_dh(local, remote)
        except ValueError as exc:
            raise ProtocolError(f"Invalid DH result for token {token!r}") from exc

    def write_message(self, payload: bytes = b"") -> bytes:
        """
        Write the next handshake message.

        Args:
            payload: Optional payload. Encrypted once a key exists.

        Returns:
            Message bytes to deliver to the peer.

        Raises:
            ProtocolError: If it is not our turn or the handshake is finished.
        """
        if self.is_finished():
            raise ProtocolError("Handshake already finished")
        if not self.is_my_turn():
            raise ProtocolError(f"Not our turn to write message {self._message_index + 1}")

        parts: list[bytes] = []
        try:
            for token in self.pattern.message_patterns[self._message_index]:
                if token == "e":
                    ephemeral_bytes = self.local_ephemeral_public.public_bytes_raw()
                    self._symmetric_state.mix_hash(ephemeral_bytes)
                    parts.append(ephemeral_bytes)
                elif token == "s":
                    static_bytes = self.local_static_public.public_bytes_raw()
                    parts.append(self._symmetric_state.encrypt_and_hash(static_bytes))
                else:
                    self._symmetric_state.mix_key(self._dh(token))

            parts.append(self._symmetric_state.encrypt_and_hash(payload))
        except CipherError as exc:
            raise ProtocolError(str(exc)) from exc

        message = b"".join(parts)
        if len(message) > MAX_MESSAGE_SIZE:
            raise ProtocolError(f"Handshake message too large: {len(message)}")

        self._message_index += 1
        return message

    def read_message(self, message: bytes) -> bytes:
        """
        Read the peer's next handshake message.

        Returns:
            Decrypted payload.

        Raises:
            ProtocolError: If the message is out of turn, truncated, carries
                invalid keys or fails authentication. The handshake cannot
                be resumed afterwards.
        """
        if self.is_finished():
            raise ProtocolError("Handshake already finished")
        if self.is_my_turn():
            raise ProtocolError(f"Expected to write message {self._message_index + 1}, not read")

        offset = 0
        try:
            for token in self.pattern.message_patterns[self._message_index]:
                if token == "e":
                    ephemeral_bytes = message[offset : offset + DH_LEN]
                    if len(ephemeral_bytes) != DH_LEN:
                        raise ProtocolError("Handshake message truncated in ephemeral key")
                    self.remote_ephemeral_public = _public_key_from_bytes(
                        ephemeral_bytes, "remote ephemeral key"
                    )
                    self._symmetric_state.mix_hash(ephemeral_bytes)
                    offset += DH_LEN
                elif token == "s":
                    size = DH_LEN + (AUTH_TAG_SIZE if self._symmetric_state.cipher_state else 0)
                    encrypted_static = message[offset : offset + size]
                    if len(encrypted_static) != size:
                        raise ProtocolError("Handshake message truncated in static key")
                    static_bytes = self._symmetric_state.decrypt_and_hash(encrypted_static)
                    self.remote_static_public = _public_key_from_bytes(
                        static_bytes, "remote static key"
                    )
                    offset += size
                else:
                    self._symmetric_state.mix_key(self._dh(token))

            payload = self._symmetric_state.decrypt_and_hash(message[offset:])
        except InvalidTag as exc:
            raise ProtocolError("Handshake message failed authentication") from exc
        except CipherError as exc:
            raise ProtocolError(str(exc)) from exc

        self._message_index += 1
        return payload

    def finalize(self) -> tuple[CipherState, CipherState]:
        """
        Derive final transport cipher states.

        Returns:
            (send_cipher, recv_cipher) for this party.

        Raises:
            ProtocolError: If the handshake has not finished.
        """
        if not self.is_finished():
            raise ProtocolError(f"Handshake not complete after {self._message_index} messages")

        cipher1, cipher2 = self._symmetric_state.split()

        # cipher1: initiator -> responder, cipher2: responder -> initiator.
        if self.role == HandshakeRole.INITIATOR:
            return cipher1, cipher2
        return cipher2, cipher1

"""Tests for handshake pattern descriptors."""

from __future__ import annotations

import pytest

from noise_channel.errors import InvalidPattern
from noise_channel.patterns import IK, NK, SUPPORTED_PATTERNS, XX, parse_pattern


class TestDescriptors:
    """Token schedules of the supported patterns."""

    def test_xx_schedule(self) -> None:
        """XX: three messages, no pre-knowledge."""
        assert XX.message_patterns == (("e",), ("e", "ee", "s", "es"), ("s", "se"))
        assert XX.responder_pre_messages == ()
        assert not XX.requires_remote_static

    def test_ik_schedule(self) -> None:
        """IK: responder static pre-known, initiator static sent in message 1."""
        assert IK.message_patterns == (("e", "es", "s", "ss"), ("e", "ee", "se"))
        assert IK.requires_remote_static

    def test_nk_schedule(self) -> None:
        """NK: responder static pre-known, initiator never sends a static key."""
        assert NK.message_patterns == (("e", "es"), ("e", "ee"))
        assert NK.requires_remote_static
        assert all("s" not in tokens for tokens in NK.message_patterns)

    @pytest.mark.parametrize(
        ("pattern", "name"),
        [
            (XX, b"Noise_XX_25519_ChaChaPoly_BLAKE2s"),
            (IK, b"Noise_IK_25519_ChaChaPoly_BLAKE2s"),
            (NK, b"Noise_NK_25519_ChaChaPoly_BLAKE2s"),
        ],
    )
    def test_protocol_names(self, pattern, name) -> None:
        """Protocol names follow Noise_<P>_25519_ChaChaPoly_BLAKE2s."""
        assert pattern.protocol_name == name

    def test_registry(self) -> None:
        """Exactly three patterns are supported."""
        assert set(SUPPORTED_PATTERNS) == {"XX", "IK", "NK"}


class TestParsePattern:
    """Tests for parse_pattern."""

    @pytest.mark.parametrize("token", ["XX", "xx", "Xx", "ik", "IK", "nK"])
    def test_case_insensitive(self, token: str) -> None:
        """Tokens are matched regardless of case."""
        assert parse_pattern(token).name == token.upper()

    def test_descriptor_passthrough(self) -> None:
        """A supported descriptor resolves to itself."""
        assert parse_pattern(IK) is IK

    @pytest.mark.parametrize("token", ["", "NN", "KK", "INVALID", "X X", " XX"])
    def test_unknown_rejected(self, token: str) -> None:
        """Anything outside {XX, IK, NK} is rejected."""
        with pytest.raises(InvalidPattern) as exc_info:
            parse_pattern(token)

        assert exc_info.value.pattern == token

"""
Handshake pattern descriptors.

Noise patterns define the sequence of DH operations and key exchanges.
Three patterns are supported:

    XX:                     IK:                     NK:
      -> e                    <- s                    <- s
      <- e, ee, s, es         ...                     ...
      -> s, se                -> e, es, s, ss         -> e, es
                              <- e, ee, se            <- e, ee

Legend:
    e = ephemeral public key
    s = static public key
    ee, es, se, ss = DH between (initiator key, responder key)
    <- s before "..." = responder static key known to the initiator in advance

References:
    - https://noiseprotocol.org/noise.html#handshake-patterns
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .constants import PROTOCOL_NAME_TEMPLATE
from .errors import InvalidPattern


@dataclass(frozen=True, slots=True)
class HandshakePattern:
    """Descriptor for a Noise handshake pattern."""

    name: str
    """Pattern token (e.g., 'XX')."""

    initiator_pre_messages: tuple[str, ...] = ()
    """Initiator keys known to the responder before the handshake."""

    responder_pre_messages: tuple[str, ...] = ()
    """Responder keys known to the initiator before the handshake."""

    message_patterns: tuple[tuple[str, ...], ...] = ()
    """Token sequence for each message, alternating from the initiator."""

    @property
    def protocol_name(self) -> bytes:
        """Full Noise protocol name used to seed the symmetric state."""
        return PROTOCOL_NAME_TEMPLATE.format(pattern=self.name).encode("ascii")

    @property
    def requires_remote_static(self) -> bool:
        """True if the initiator must know the responder's static key up front."""
        return "s" in self.responder_pre_messages


XX: Final = HandshakePattern(
    name="XX",
    message_patterns=(
        ("e",),
        ("e", "ee", "s", "es"),
        ("s", "se"),
    ),
)
"""Mutual authentication, no prior knowledge. Three messages."""

IK: Final = HandshakePattern(
    name="IK",
    responder_pre_messages=("s",),
    message_patterns=(
        ("e", "es", "s", "ss"),
        ("e", "ee", "se"),
    ),
)
"""Responder known in advance; initiator identity sent in message 1."""

NK: Final = HandshakePattern(
    name="NK",
    responder_pre_messages=("s",),
    message_patterns=(
        ("e", "es"),
        ("e", "ee"),
    ),
)
"""Responder known in advance; initiator stays anonymous."""

SUPPORTED_PATTERNS: Final[dict[str, HandshakePattern]] = {p.name: p for p in (XX, IK, NK)}
"""Supported patterns keyed by upper-case token."""


def parse_pattern(token: str | HandshakePattern) -> HandshakePattern:
    """
    Resolve a pattern token, case-insensitively.

    Raises:
        InvalidPattern: If the token is not one of XX, IK, NK.
    """
    if isinstance(token, HandshakePattern):
        token = token.name
    pattern = SUPPORTED_PATTERNS.get(token.upper()) if isinstance(token, str) else None
    if pattern is None:
        raise InvalidPattern(str(token))
    return pattern

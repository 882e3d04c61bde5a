"""
Configuration for the Noise channel engine.

Protocol defaults live here as module constants; `NoiseConfig` lets a caller
override them per engine instance.
"""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from .constants import AUTH_TAG_SIZE, MAX_MESSAGE_SIZE

HANDSHAKE_TIMEOUT_SECS: Final[float | None] = None
"""Stalled handshake expiry. None keeps handshakes until explicitly closed."""

EVENT_QUEUE_SIZE: Final = 0
"""Session event queue bound. 0 means unbounded."""


class StrictBaseModel(BaseModel):
    """A strict, immutable pydantic base model."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        strict=True,
        validate_default=True,
    )


class NoiseConfig(StrictBaseModel):
    """Runtime configuration for one Noise engine."""

    max_message_size: int = Field(
        default=MAX_MESSAGE_SIZE, gt=AUTH_TAG_SIZE, le=MAX_MESSAGE_SIZE
    )
    """Largest transport ciphertext accepted or produced."""

    handshake_timeout_secs: float | None = Field(default=HANDSHAKE_TIMEOUT_SECS, gt=0)
    """Age after which a session still handshaking is swept by expiry."""

    event_queue_size: int = Field(default=EVENT_QUEUE_SIZE, ge=0)
    """Maximum buffered session events. 0 means unbounded."""

    @property
    def max_plaintext_size(self) -> int:
        """Largest plaintext accepted by encrypt."""
        return self.max_message_size - AUTH_TAG_SIZE

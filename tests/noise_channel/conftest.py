"""
Shared fixtures for noise_channel tests.

Every engine gets its own identity so two engines in one process behave
like two separate peers.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from noise_channel import LocalIdentity, NoiseEngine

Establish = Callable[[str], None]


@pytest.fixture
def alice() -> NoiseEngine:
    """Engine for the local party, named 'alice' by its peer."""
    return NoiseEngine(identity=LocalIdentity())


@pytest.fixture
def bob() -> NoiseEngine:
    """Engine for the remote party, named 'bob' by its peer."""
    return NoiseEngine(identity=LocalIdentity())


@pytest.fixture
def establish(alice: NoiseEngine, bob: NoiseEngine) -> Establish:
    """
    Return a function running a full handshake from alice to bob.

    Messages are shuttled until neither side has anything left to send,
    without the driver knowing the pattern's message count.
    """

    def run(pattern: str) -> None:
        remote_static = bob.get_local_public_key() if pattern.upper() != "XX" else None
        outbound = alice.initiate("bob", pattern, remote_static)
        outbound = bob.respond("alice", pattern, outbound)

        # (receiver, sender id as seen by the receiver)
        sides = [(alice, "bob"), (bob, "alice")]
        turn = 0
        while outbound is not None:
            engine, peer_id = sides[turn % 2]
            outbound = engine.continue_handshake(peer_id, outbound)
            turn += 1

    return run

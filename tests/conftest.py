import random

import pytest

from config import GameConfig
from poker_crypto.elgamal import ElGamalEngine
from poker_crypto.keys import derive_shared_key, generate_keypair, compute_aggregate_key
from poker_crypto.params import default_parameters


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def params():
    return default_parameters()


@pytest.fixture
def engine(params):
    return ElGamalEngine(params)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def small_config(params):
    return GameConfig(player_count=3, params=params)


@pytest.fixture
def three_party_keys(params):
    """Coordinator key pair, three participant shared keys and their aggregate key."""
    coordinator = generate_keypair(params)
    shared = [derive_shared_key(generate_keypair(params), coordinator.public_key) for _ in range(3)]
    aggregate = compute_aggregate_key(params, [s.shared_public_key for s in shared])
    return coordinator, shared, aggregate

"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from voter_credentials.credential_generator import CredentialGenerator
from voter_credentials.randomness import RandomSource, SeededRandomSource
from voter_credentials.verifier import CredentialVerifier

TEST_SEED = 20250619

# Templates come from a separate stream so they never equal the secret R
TEMPLATE_SEED = TEST_SEED + 1


class FailingRandomSource(RandomSource):
    """Random source whose provider fails after ``succeed_draws`` draws."""

    name = "failing"
    cryptographically_secure = True

    def __init__(self, succeed_draws: int = 0) -> None:
        self.succeed_draws = succeed_draws
        self.draws = 0

    def _draw(self, n_bytes: int) -> bytes:
        self.draws += 1
        if self.draws > self.succeed_draws:
            raise OSError("entropy source unavailable")
        return bytes(n_bytes)


class ShortReadRandomSource(RandomSource):
    """Random source that returns fewer bytes than requested."""

    name = "short"
    cryptographically_secure = True

    def _draw(self, n_bytes: int) -> bytes:
        return bytes(n_bytes - 1)


@pytest.fixture
def rng():
    return np.random.default_rng(TEMPLATE_SEED)


@pytest.fixture
def seeded_source():
    return SeededRandomSource(seed=TEST_SEED)


@pytest.fixture
def generator(seeded_source):
    return CredentialGenerator(random_source=seeded_source)


@pytest.fixture
def system_generator():
    return CredentialGenerator()


@pytest.fixture
def verifier():
    return CredentialVerifier()


@pytest.fixture
def template(rng):
    return rng.bytes(32)

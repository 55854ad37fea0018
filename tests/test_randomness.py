"""Tests for random byte providers."""

import threading

import pytest

from voter_credentials.exceptions import RandomnessUnavailable
from voter_credentials.randomness import (
    RandomSource,
    SeededRandomSource,
    SystemRandomSource,
    default_random_source,
)

from tests.conftest import FailingRandomSource, ShortReadRandomSource


class TestSystemRandomSource:
    def test_draws_requested_length(self):
        source = SystemRandomSource()

        assert len(source.token_bytes(32)) == 32
        assert source.cryptographically_secure

    def test_draws_differ(self):
        source = SystemRandomSource()

        assert len({source.token_bytes(32) for _ in range(50)}) == 50

    def test_default_source_is_system(self):
        assert isinstance(default_random_source(), SystemRandomSource)


class TestSeededRandomSource:
    def test_same_seed_same_stream(self):
        first = SeededRandomSource(seed=7)
        second = SeededRandomSource(seed=7)

        assert [first.token_bytes(32) for _ in range(3)] == [
            second.token_bytes(32) for _ in range(3)
        ]

    def test_not_production_grade(self):
        assert not SeededRandomSource(seed=1).cryptographically_secure

    def test_concurrent_draws_are_complete(self):
        source = SeededRandomSource(seed=3)
        results = []
        lock = threading.Lock()

        def draw():
            values = [source.token_bytes(32) for _ in range(100)]
            with lock:
                results.extend(values)

        threads = [threading.Thread(target=draw) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 400
        assert all(len(value) == 32 for value in results)
        assert len(set(results)) == 400


class TestRandomSourceFailures:
    def test_provider_error_wrapped(self):
        with pytest.raises(RandomnessUnavailable) as exc_info:
            FailingRandomSource().token_bytes(32)

        assert exc_info.value.error_code == "CRED_002"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_short_read_rejected(self):
        with pytest.raises(RandomnessUnavailable):
            ShortReadRandomSource().token_bytes(32)

    def test_non_bytes_rejected(self):
        class TextSource(RandomSource):
            name = "text"

            def _draw(self, n_bytes):
                return "0" * n_bytes

        with pytest.raises(RandomnessUnavailable):
            TextSource().token_bytes(32)

    def test_abstract_source_unavailable(self):
        with pytest.raises(RandomnessUnavailable):
            RandomSource().token_bytes(32)

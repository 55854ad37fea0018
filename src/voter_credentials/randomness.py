"""
Random byte providers for credential generation.

The generator and provisioner receive their randomness as an explicit
capability. Production runs use the operating system CSPRNG; tests and
development runs may substitute a seeded source for reproducible output.
"""

import secrets
import threading
from typing import Optional

import numpy as np
import structlog

from .exceptions import RandomnessUnavailable

logger = structlog.get_logger(__name__)


class RandomSource:
    """
    Base class for random byte providers.

    Subclasses implement ``_draw``; ``token_bytes`` checks that the provider
    returned exactly the requested number of bytes and converts provider
    failures into ``RandomnessUnavailable``.
    """

    name = "abstract"

    #: Whether the source is suitable for production credentials
    cryptographically_secure = False

    def _draw(self, n_bytes: int) -> bytes:
        raise NotImplementedError

    def token_bytes(self, n_bytes: int) -> bytes:
        """
        Draw ``n_bytes`` random bytes.

        Raises
        ------
        RandomnessUnavailable
            If the underlying provider fails or returns a short read.
        """
        try:
            data = self._draw(n_bytes)
        except RandomnessUnavailable:
            raise
        except Exception as e:
            raise RandomnessUnavailable(
                f"Random source failed: {type(e).__name__}: {e}", source=self.name
            ) from e

        if not isinstance(data, (bytes, bytearray)):
            raise RandomnessUnavailable(
                f"Random source returned {type(data).__name__}, expected bytes",
                source=self.name,
            )

        if len(data) != n_bytes:
            raise RandomnessUnavailable(
                f"Random source returned {len(data)} bytes, expected {n_bytes}",
                source=self.name,
            )

        return bytes(data)


class SystemRandomSource(RandomSource):
    """Operating system CSPRNG via :mod:`secrets`. Safe for concurrent use."""

    name = "system"
    cryptographically_secure = True

    def _draw(self, n_bytes: int) -> bytes:
        return secrets.token_bytes(n_bytes)


class SeededRandomSource(RandomSource):
    """
    Deterministic random source backed by a seeded numpy ``Generator``.

    Intended for tests and development fixtures only. Draws are serialized
    with a lock so that concurrent workers consume the stream one request at
    a time.

    Parameters
    ----------
    seed : Optional[int], default=None
        Seed for ``numpy.random.default_rng``.

    Examples
    --------
    >>> source = SeededRandomSource(seed=7)
    >>> len(source.token_bytes(32))
    32
    """

    name = "seeded"

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._lock = threading.Lock()

        logger.warning(
            "Deterministic random source in use, not suitable for production",
            seed=seed,
        )

    def _draw(self, n_bytes: int) -> bytes:
        with self._lock:
            return self._rng.bytes(n_bytes)


def default_random_source() -> RandomSource:
    """Return the production random source."""
    return SystemRandomSource()

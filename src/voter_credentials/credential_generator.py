"""
Voter credential generation for the voter registry.

This module derives the public record for one voter from a citizen
identifier and a biometric template:

    H      = keccak256(template)
    R      = random(32)
    helper = R XOR H
    tag    = keccak256(R)
    salt   = random(32)

Only ``identifier``, ``salt``, ``helper`` and ``tag`` leave the generator.
The template, ``H`` and ``R`` are never logged, stored or returned; a later
reading of the same template recovers ``R`` from ``helper`` and reproduces
``tag`` (see :mod:`voter_credentials.verifier`).
"""

from typing import Any, Dict, Optional

import structlog

from . import config
from .constants import ANY_TEMPLATE_LENGTH, HASH_LENGTH, SALT_LENGTH, SECRET_LENGTH
from .data_models import VoterRecord
from .encoding import keccak256, xor_bytes
from .exceptions import InvalidIdentifier, InvalidTemplateLength
from .randomness import RandomSource, default_random_source

# Initialize structured logger
logger = structlog.get_logger(__name__)


def validate_template(template: Any, template_length: int) -> bytes:
    """
    Check a biometric template and return it as ``bytes``.

    Parameters
    ----------
    template : Any
        Candidate template.
    template_length : int
        Required length in bytes. ``ANY_TEMPLATE_LENGTH`` (0) accepts any
        non-empty length.

    Raises
    ------
    InvalidTemplateLength
        If the template is not a byte string of the expected length.
    """
    if not isinstance(template, (bytes, bytearray, memoryview)):
        raise InvalidTemplateLength(
            None, template_length, actual_type=type(template).__name__
        )

    template = bytes(template)

    if template_length == ANY_TEMPLATE_LENGTH:
        if not template:
            raise InvalidTemplateLength(0, ANY_TEMPLATE_LENGTH)
    elif len(template) != template_length:
        raise InvalidTemplateLength(len(template), template_length)

    return template


def resolve_template_length(template_length: Optional[int]) -> int:
    """
    Return ``template_length``, or the configured ``TEMPLATE_LENGTH`` when None.

    Raises
    ------
    ValueError
        If the length is negative.
    """
    if template_length is None:
        template_length = config.TEMPLATE_LENGTH
    if template_length < 0:
        raise ValueError(f"template_length must not be negative, got {template_length}")
    return template_length


class CredentialGenerator:
    """
    Derives voter records from identifiers and biometric templates.

    Instances hold no per-record state, so one generator may be shared by
    many worker threads as long as its random source is thread-safe.

    Parameters
    ----------
    random_source : Optional[RandomSource], default=None
        Provider of random bytes. Defaults to the operating system CSPRNG.
    template_length : Optional[int], default=None
        Required template length in bytes. Defaults to
        ``config.TEMPLATE_LENGTH``. ``ANY_TEMPLATE_LENGTH`` (0) disables the
        fixed length check for legacy development fingerprints.

    Examples
    --------
    >>> generator = CredentialGenerator()
    >>> record = generator.generate("1", bytes(32))
    >>> len(record.tag)
    32
    """

    def __init__(
        self,
        random_source: Optional[RandomSource] = None,
        template_length: Optional[int] = None,
    ) -> None:
        self.random_source = random_source or default_random_source()
        self.template_length = resolve_template_length(template_length)

        logger.info(
            "CredentialGenerator initialized",
            random_source=self.random_source.name,
            template_length=self.template_length,
        )

    def generate(self, identifier: str, template: bytes) -> VoterRecord:
        """
        Generate the public voter record for one citizen.

        Parameters
        ----------
        identifier : str
            Citizen identifier.
        template : bytes
            Biometric template. Secret; discarded after use.

        Returns
        -------
        VoterRecord
            Record with fresh ``salt``, ``helper`` and ``tag``.

        Raises
        ------
        InvalidIdentifier
            If ``identifier`` is empty or not a string.
        InvalidTemplateLength
            If ``template`` does not have the expected length.
        RandomnessUnavailable
            If the random source cannot produce bytes.
        """
        if not isinstance(identifier, str) or not identifier:
            raise InvalidIdentifier(identifier)

        template = validate_template(template, self.template_length)

        template_digest = keccak256(template)
        secret = self.random_source.token_bytes(SECRET_LENGTH)
        helper = xor_bytes(secret, template_digest)
        tag = keccak256(secret)
        salt = self.random_source.token_bytes(SALT_LENGTH)

        record = VoterRecord(identifier=identifier, salt=salt, helper=helper, tag=tag)

        logger.debug("Voter record generated", identifier=identifier)

        return record

    def get_generator_metadata(self) -> Dict[str, Any]:
        """
        Describe the scheme parameters of this generator.

        Returns
        -------
        Dict[str, Any]
            Metadata dictionary suitable for run reports.
        """
        return {
            "hash_algorithm": "keccak256",
            "hash_length": HASH_LENGTH,
            "secret_length": SECRET_LENGTH,
            "salt_length": SALT_LENGTH,
            "template_length": self.template_length,
            "random_source": self.random_source.name,
            "cryptographically_secure": self.random_source.cryptographically_secure,
            "scheme": "xor-helper/keccak-tag",
            "record_version": "1.0",
        }


# Convenience functions for simple usage
def make_voter(identifier: str, template: bytes) -> VoterRecord:
    """
    Generate a voter record with the default generator settings.

    Examples
    --------
    >>> record = make_voter("42", bytes(32))
    >>> record.identifier
    '42'
    """
    generator = CredentialGenerator()
    return generator.generate(identifier, template)

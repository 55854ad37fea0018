"""
Verification of fresh biometric readings against stored voter records.

The verifier mirrors the generator: it hashes the candidate template,
unmasks the secret from the stored helper and checks that the secret hashes
to the stored tag. The match is exact. A single differing bit in the
template changes its keccak256 digest and the check fails; tolerance to
capture noise would require an error-correcting layer upstream.
"""

import hmac
from typing import Any, Optional

import structlog

from .constants import HASH_LENGTH
from .encoding import keccak256, xor_bytes
from .exceptions import InvalidTemplateLength, MalformedRecord
from .credential_generator import resolve_template_length, validate_template

logger = structlog.get_logger(__name__)


def _checked_field(record: Any, field_name: str) -> bytes:
    value = getattr(record, field_name, None)
    if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_LENGTH:
        raise MalformedRecord(
            f"{field_name} must be {HASH_LENGTH} bytes",
            identifier=getattr(record, "identifier", None),
            field_name=field_name,
        )
    return bytes(value)


class CredentialVerifier:
    """
    Checks candidate templates against voter records.

    Parameters
    ----------
    template_length : Optional[int], default=None
        Expected candidate length, defaulting to ``config.TEMPLATE_LENGTH``.
        Candidates of any other length cannot match and are rejected
        without hashing. ``ANY_TEMPLATE_LENGTH`` (0) accepts any non-empty
        length.

    Examples
    --------
    >>> from voter_credentials.credential_generator import make_voter
    >>> record = make_voter("1", bytes(range(32)))
    >>> verifier = CredentialVerifier()
    >>> verifier.verify(record, bytes(range(32)))
    True
    >>> verifier.verify(record, bytes(32))
    False
    """

    def __init__(self, template_length: Optional[int] = None) -> None:
        self.template_length = resolve_template_length(template_length)

    def recover_secret(self, record: Any, candidate_template: bytes) -> bytes:
        """
        Unmask the candidate secret ``helper XOR keccak256(candidate)``.

        Raises
        ------
        MalformedRecord
            If the record's helper is not 32 bytes.
        InvalidTemplateLength
            If the candidate does not have the expected length.
        """
        helper = _checked_field(record, "helper")
        candidate = validate_template(candidate_template, self.template_length)
        return xor_bytes(helper, keccak256(candidate))

    def verify(self, record: Any, candidate_template: bytes) -> bool:
        """
        Return True iff ``candidate_template`` matches the enrolled template.

        Parameters
        ----------
        record : VoterRecord
            Stored record; any object with ``helper`` and ``tag`` attributes.
        candidate_template : bytes
            Fresh biometric reading.

        Returns
        -------
        bool
            Whether ``keccak256(helper XOR keccak256(candidate)) == tag``.

        Raises
        ------
        MalformedRecord
            If ``helper`` or ``tag`` is not exactly 32 bytes.
        """
        helper = _checked_field(record, "helper")
        tag = _checked_field(record, "tag")

        try:
            candidate = validate_template(candidate_template, self.template_length)
        except InvalidTemplateLength as e:
            logger.debug(
                "Candidate template rejected",
                identifier=getattr(record, "identifier", None),
                reason=e.message,
            )
            return False

        candidate_secret = xor_bytes(helper, keccak256(candidate))
        is_match = hmac.compare_digest(keccak256(candidate_secret), tag)

        logger.debug(
            "Voter verification completed",
            identifier=getattr(record, "identifier", None),
            verification_result=is_match,
        )

        return is_match


def verify_voter(
    record: Any,
    candidate_template: bytes,
    template_length: Optional[int] = None,
) -> bool:
    """
    Convenience function to verify one template against one record.

    Examples
    --------
    >>> from voter_credentials.credential_generator import make_voter
    >>> record = make_voter("1", bytes(32))
    >>> verify_voter(record, bytes(32))
    True
    """
    return CredentialVerifier(template_length).verify(record, candidate_template)

"""
Template sources for batch provisioning.

A template source is any callable ``identifier -> bytes``. Production runs
pass a callable backed by the enrollment capture flow; development runs use
the synthetic or mapping sources below.
"""

from typing import Callable, Dict, Mapping, Optional

import structlog

from . import config
from .constants import ANY_TEMPLATE_LENGTH, DEV_FINGERPRINT_BASE, SYNTHETIC_PAD_BYTE
from .exceptions import TemplateSourceError

logger = structlog.get_logger(__name__)

TemplateSource = Callable[[str], bytes]


class SyntheticTemplateSource:
    """
    Deterministic fake fingerprints for development provisioning.

    The n-th identifier requested (in first-seen order) gets the ASCII digits
    of ``base + n``, left-padded with ``"0"`` to ``template_length`` (default
    ``config.TEMPLATE_LENGTH``). With ``ANY_TEMPLATE_LENGTH`` the digits are
    returned unpadded, so the first two identifiers get ``b"1111"`` and ``b"1112"``.

    Asking again for an identifier returns the same template.
    """

    def __init__(
        self,
        base: int = DEV_FINGERPRINT_BASE,
        template_length: Optional[int] = None,
    ) -> None:
        self.base = base
        self.template_length = (
            config.TEMPLATE_LENGTH if template_length is None else template_length
        )
        self._assigned: Dict[str, bytes] = {}

    def template_for_index(self, index: int) -> bytes:
        digits = str(self.base + index).encode("ascii")
        if self.template_length == ANY_TEMPLATE_LENGTH:
            return digits
        if len(digits) > self.template_length:
            raise TemplateSourceError(
                f"Synthetic fingerprint {self.base + index} does not fit in "
                f"{self.template_length} bytes"
            )
        return digits.rjust(self.template_length, SYNTHETIC_PAD_BYTE)

    def __call__(self, identifier: str) -> bytes:
        if identifier not in self._assigned:
            self._assigned[identifier] = self.template_for_index(len(self._assigned))
        return self._assigned[identifier]


class MappingTemplateSource:
    """Looks templates up in an identifier -> template mapping, such as a dev map."""

    def __init__(self, mapping: Mapping[str, bytes]) -> None:
        self.mapping = dict(mapping)
        logger.debug("MappingTemplateSource initialized", entries=len(self.mapping))

    def __call__(self, identifier: str) -> bytes:
        try:
            return self.mapping[identifier]
        except KeyError:
            raise TemplateSourceError(
                "No template available for identifier", identifier=identifier
            ) from None

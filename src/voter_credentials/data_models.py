"""
Data models for the voter credential system.

``VoterRecord`` is the only durable artifact produced by the credential
generator. It holds public values only: the citizen identifier, an auxiliary
salt, the helper data and the pseudonymous tag. Biometric templates never
appear in these models except in the development fingerprint map carried by
``ProvisioningResult``, which is kept out of every serialized snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .constants import HASH_LENGTH, LEGACY_IDENTIFIER_FIELD, SALT_LENGTH
from .encoding import from_hex32, to_hex32
from .exceptions import MalformedRecord


@dataclass(frozen=True)
class VoterRecord:
    """
    Public credential record for one registered voter.

    Parameters
    ----------
    identifier : str
        Citizen identifier, unique within a registry.
    salt : bytes
        32 bytes of auxiliary public randomness, not used by the derivation.
    helper : bytes
        32 bytes, ``R XOR keccak256(template)``.
    tag : bytes
        32 bytes, ``keccak256(R)``. Used as the voting credential.

    Raises
    ------
    MalformedRecord
        If the identifier is empty or any byte field has the wrong length.

    Examples
    --------
    >>> record = VoterRecord.from_dict({
    ...     "identifier": "1",
    ...     "salt": "0x" + "00" * 32,
    ...     "helper": "0x" + "11" * 32,
    ...     "tag": "0x" + "22" * 32,
    ... })
    >>> record.identifier
    '1'
    """

    identifier: str
    salt: bytes
    helper: bytes
    tag: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.identifier, str) or not self.identifier:
            raise MalformedRecord(
                "identifier must be a non-empty string", field_name="identifier"
            )

        expected = {"salt": SALT_LENGTH, "helper": HASH_LENGTH, "tag": HASH_LENGTH}
        for field_name, length in expected.items():
            value = getattr(self, field_name)
            if not isinstance(value, bytes) or len(value) != length:
                raise MalformedRecord(
                    f"{field_name} must be {length} bytes",
                    identifier=self.identifier,
                    field_name=field_name,
                )

    def to_dict(self) -> Dict[str, str]:
        """
        Convert the record to its registry snapshot representation.

        Returns
        -------
        Dict[str, str]
            ``identifier`` plus ``0x``-prefixed hex for every byte field.
        """
        return {
            "identifier": self.identifier,
            "salt": to_hex32(self.salt, "salt"),
            "helper": to_hex32(self.helper, "helper"),
            "tag": to_hex32(self.tag, "tag"),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VoterRecord":
        """
        Build a record from its snapshot representation.

        The legacy ``dni`` key is accepted in place of ``identifier``.

        Raises
        ------
        MalformedRecord
            If a field is missing or malformed.
        """
        if not isinstance(data, Mapping):
            raise MalformedRecord(
                f"record must be a JSON object, got {type(data).__name__}"
            )

        identifier = data.get("identifier", data.get(LEGACY_IDENTIFIER_FIELD))
        if identifier is None:
            raise MalformedRecord("record is missing identifier", field_name="identifier")
        if isinstance(identifier, int) and not isinstance(identifier, bool):
            identifier = str(identifier)

        values = {}
        for field_name in ("salt", "helper", "tag"):
            if field_name not in data:
                raise MalformedRecord(
                    f"record is missing {field_name}",
                    identifier=str(identifier),
                    field_name=field_name,
                )
            values[field_name] = from_hex32(
                data[field_name], field_name, identifier=str(identifier)
            )

        return cls(identifier=identifier, **values)


@dataclass
class ProvisioningResult:
    """
    Outcome of one successful batch provisioning run.

    Parameters
    ----------
    batch_id : str
        Unique identifier of the provisioning run.
    mode : str
        ``"production"`` or ``"development"``.
    records : List[VoterRecord]
        Registry snapshot in input identifier order.
    dev_map : Optional[Dict[str, bytes]], default=None
        Identifier to template map. Only set in development mode.
    elapsed_seconds : float, default=0.0
        Wall-clock duration of the run.
    created_at : datetime
        Completion timestamp (UTC).
    """

    batch_id: str
    mode: str
    records: List[VoterRecord]
    dev_map: Optional[Dict[str, bytes]] = None
    elapsed_seconds: float = 0.0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def identifiers(self) -> List[str]:
        return [record.identifier for record in self.records]

    @property
    def has_dev_map(self) -> bool:
        return self.dev_map is not None

    def __len__(self) -> int:
        return len(self.records)

    def to_snapshot(self) -> List[Dict[str, str]]:
        """Serialize the records in the exact registry hand-off shape."""
        return [record.to_dict() for record in self.records]

    def summary(self) -> Dict[str, Any]:
        """
        Summarize the run for logging and reports.

        The dev map contents are never included, only whether one exists.
        """
        return {
            "batch_id": self.batch_id,
            "mode": self.mode,
            "record_count": len(self.records),
            "has_dev_map": self.has_dev_map,
            "elapsed_seconds": self.elapsed_seconds,
            "created_at": self.created_at.isoformat(),
        }

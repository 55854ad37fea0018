"""
Registry snapshot and dev fingerprint map persistence.

The registry snapshot is a JSON array of voter records in the shape consumed
by the external registry service:

    [{"identifier": "1", "salt": "0x..", "helper": "0x..", "tag": "0x.."}, ...]

The development fingerprint map is a JSON object ``identifier -> 0x hex of
the template``. It is only written for development runs and never to the
snapshot path. Older maps that store each fingerprint as plain text, such
as ``{"1": "1111"}``, are read back as the UTF-8 bytes of that text.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog

from .data_models import ProvisioningResult, VoterRecord
from .encoding import decode_template, encode_template
from .exceptions import (
    ConfigurationError,
    DuplicateIdentifier,
    MalformedRecord,
    RegistryFileError,
)

# Initialize structured logger
logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]


class RegistryStore:
    """
    Reads and writes registry snapshots and dev fingerprint maps.

    Parameters
    ----------
    registry_path : Path
        Location of the registry snapshot file.
    dev_map_path : Optional[Path], default=None
        Location of the development fingerprint map file.
    auto_backup : bool, default=True
        Copy an existing file into ``backups/`` next to it before overwriting.

    Raises
    ------
    ConfigurationError
        If both paths point at the same file.

    Examples
    --------
    >>> import tempfile
    >>> from voter_credentials import generate_voters
    >>> root = Path(tempfile.mkdtemp())
    >>> store = RegistryStore(root / "db.json", root / "dev" / "dev_fingerprints.json")
    >>> written = store.export_result(generate_voters(count=2))
    >>> sorted(written)
    ['dev_map', 'registry']
    """

    def __init__(
        self,
        registry_path: PathLike,
        dev_map_path: Optional[PathLike] = None,
        auto_backup: bool = True,
    ) -> None:
        self.registry_path = Path(registry_path)
        self.dev_map_path = Path(dev_map_path) if dev_map_path else None
        self.auto_backup = auto_backup

        if (
            self.dev_map_path is not None
            and self.dev_map_path.resolve() == self.registry_path.resolve()
        ):
            raise ConfigurationError(
                "Dev fingerprint map must not share a file with the registry snapshot",
                config_key="dev_map_path",
                config_value=str(self.dev_map_path),
            )

        logger.info(
            "RegistryStore initialized",
            registry_path=str(self.registry_path),
            dev_map_path=str(self.dev_map_path) if self.dev_map_path else None,
            auto_backup=auto_backup,
        )

    def _backup_existing_file(self, file_path: Path) -> Optional[Path]:
        """
        Create backup of existing file.

        Returns
        -------
        Optional[Path]
            Path to backup file, or None if no backup created.
        """
        if not self.auto_backup or not file_path.exists():
            return None

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        backups_dir = file_path.parent / "backups"
        backup_path = backups_dir / f"{file_path.stem}_backup_{timestamp}{file_path.suffix}"

        try:
            backups_dir.mkdir(parents=True, exist_ok=True)
            backup_path.write_bytes(file_path.read_bytes())
        except OSError as e:
            raise RegistryFileError(
                f"Failed to back up existing file: {e}", file_path=str(file_path)
            ) from e

        logger.debug("Created backup", backup_path=str(backup_path))
        return backup_path

    def _save_json(self, data: Any, file_path: Path) -> Path:
        """
        Write ``data`` as JSON through a temporary sibling file.

        The target only ever holds a complete document: it is swapped in
        with ``Path.replace`` once the temporary file is fully written.
        """
        self._backup_existing_file(file_path)
        temp_path = file_path.with_name(f".{file_path.name}.tmp")

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            temp_path.replace(file_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise RegistryFileError(
                f"Failed to write file: {e}", file_path=str(file_path)
            ) from e

        return file_path

    def _load_json(self, file_path: Path) -> Any:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise RegistryFileError("File not found", file_path=str(file_path)) from e
        except json.JSONDecodeError as e:
            raise RegistryFileError(
                f"Invalid JSON: {e.msg} (line {e.lineno})", file_path=str(file_path)
            ) from e
        except OSError as e:
            raise RegistryFileError(
                f"Failed to read file: {e}", file_path=str(file_path)
            ) from e

    def write_snapshot(self, records: Iterable[VoterRecord]) -> Path:
        """
        Write the registry snapshot.

        Raises
        ------
        DuplicateIdentifier
            If two records share an identifier.
        """
        records = list(records)
        check_unique_identifiers(records)

        path = self._save_json([record.to_dict() for record in records], self.registry_path)

        logger.info("Registry snapshot written", path=str(path), record_count=len(records))
        return path

    def write_dev_map(self, dev_map: Mapping[str, bytes]) -> Path:
        """
        Write the development fingerprint map.

        Raises
        ------
        ConfigurationError
            If no dev map path was configured.
        """
        if self.dev_map_path is None:
            raise ConfigurationError(
                "No dev fingerprint map path configured", config_key="dev_map_path"
            )

        data = {identifier: encode_template(t) for identifier, t in dev_map.items()}
        path = self._save_json(data, self.dev_map_path)

        logger.warning(
            "Development fingerprint map written, do not ship with the registry",
            path=str(path),
            entries=len(data),
        )
        return path

    def export_result(self, result: ProvisioningResult) -> Dict[str, Optional[Path]]:
        """
        Write a provisioning result: the snapshot always, the dev map only
        when the result carries one and a dev map path is configured.

        Raises
        ------
        ConfigurationError
            If a production result carries a dev map.
        """
        if result.mode == "production" and result.has_dev_map:
            raise ConfigurationError(
                "Production results must not carry a dev fingerprint map",
                config_key="mode",
                config_value=result.mode,
            )

        written: Dict[str, Optional[Path]] = {
            "registry": self.write_snapshot(result.records),
            "dev_map": None,
        }

        if result.has_dev_map and self.dev_map_path is not None:
            written["dev_map"] = self.write_dev_map(result.dev_map)

        return written

    def load_snapshot(self) -> List[VoterRecord]:
        """
        Load and validate the registry snapshot.

        Raises
        ------
        RegistryFileError
            If the file is missing, not JSON or not a JSON array.
        MalformedRecord
            If any record is malformed.
        DuplicateIdentifier
            If two records share an identifier.
        """
        data = self._load_json(self.registry_path)
        if not isinstance(data, list):
            raise RegistryFileError(
                "Registry snapshot must be a JSON array",
                file_path=str(self.registry_path),
            )

        records = [VoterRecord.from_dict(item) for item in data]
        check_unique_identifiers(records)

        logger.info(
            "Registry snapshot loaded",
            path=str(self.registry_path),
            record_count=len(records),
        )
        return records

    def load_dev_map(self) -> Dict[str, bytes]:
        """
        Load the development fingerprint map.

        Values may be ``0x`` hex or legacy plain-text fingerprints.
        """
        if self.dev_map_path is None:
            raise ConfigurationError(
                "No dev fingerprint map path configured", config_key="dev_map_path"
            )

        data = self._load_json(self.dev_map_path)
        if not isinstance(data, dict):
            raise RegistryFileError(
                "Dev fingerprint map must be a JSON object",
                file_path=str(self.dev_map_path),
            )

        dev_map = {}
        for identifier, value in data.items():
            try:
                dev_map[identifier] = decode_template(value)
            except ValueError as e:
                raise RegistryFileError(
                    f"Invalid template entry: {e}",
                    file_path=str(self.dev_map_path),
                    context={"identifier": identifier},
                ) from e

        return dev_map


def check_unique_identifiers(records: Iterable[VoterRecord]) -> None:
    """Raise ``DuplicateIdentifier`` on the first repeated identifier."""
    seen = set()
    for record in records:
        if record.identifier in seen:
            raise DuplicateIdentifier(record.identifier)
        seen.add(record.identifier)


def index_by_identifier(records: Iterable[VoterRecord]) -> Dict[str, VoterRecord]:
    """
    Index records by identifier for lookup at verification time.

    Raises
    ------
    DuplicateIdentifier
        If two records share an identifier.
    """
    index: Dict[str, VoterRecord] = {}
    for record in records:
        if not isinstance(record, VoterRecord):
            raise MalformedRecord(f"expected VoterRecord, got {type(record).__name__}")
        if record.identifier in index:
            raise DuplicateIdentifier(record.identifier)
        index[record.identifier] = record
    return index

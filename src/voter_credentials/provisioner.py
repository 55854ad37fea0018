"""
Batch provisioning of voter records.

The provisioner drives the credential generator over an ordered collection
of citizen identifiers and assembles the registry snapshot handed to the
external registry service. In development mode it also assembles the
identifier -> template map used by local verification tests; production runs
never build that map.

Batches are atomic: if any identifier fails, outstanding work is cancelled
and no snapshot is returned, so the registry never receives a partial
anonymity set.
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Iterable, List, Optional, Tuple

import structlog

from . import config
from .credential_generator import CredentialGenerator
from .data_models import ProvisioningResult, VoterRecord
from .exceptions import (
    BatchProvisioningError,
    ConfigurationError,
    DuplicateIdentifier,
    InvalidIdentifier,
)
from .randomness import SeededRandomSource
from .template_sources import SyntheticTemplateSource, TemplateSource
from .utils import ProgressTracker, generate_batch_id, timer

# Initialize structured logger
logger = structlog.get_logger(__name__)


class ProvisioningMode(str, Enum):
    """Whether a run may emit development-only artifacts."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"


class BatchProvisioner:
    """
    Generates voter records for a batch of identifiers.

    Templates are drawn from the template source in input order on the
    calling thread; record generation fans out over a thread pool and the
    results are merged back by input position.

    Parameters
    ----------
    generator : Optional[CredentialGenerator], default=None
        Generator to use. Defaults to a generator over the system CSPRNG.
    mode : Optional[ProvisioningMode], default=None
        Run mode. Defaults to ``config.PROVISIONING_MODE``.
    max_workers : Optional[int], default=None
        Worker thread count. Defaults to ``config.MAX_WORKERS``.

    Raises
    ------
    ConfigurationError
        If a production provisioner is given a non-cryptographic random source.

    Examples
    --------
    >>> provisioner = BatchProvisioner(mode=ProvisioningMode.DEVELOPMENT)
    >>> result = provisioner.provision_batch(["1", "2"], SyntheticTemplateSource())
    >>> result.identifiers
    ['1', '2']
    """

    def __init__(
        self,
        generator: Optional[CredentialGenerator] = None,
        mode: Optional[ProvisioningMode] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.generator = generator or CredentialGenerator()
        self.mode = ProvisioningMode(mode or config.PROVISIONING_MODE)
        self.max_workers = config.MAX_WORKERS if max_workers is None else max_workers

        if self.max_workers < 1:
            raise ConfigurationError(
                "max_workers must be at least 1",
                config_key="MAX_WORKERS",
                config_value=str(self.max_workers),
            )

        if (
            self.mode is ProvisioningMode.PRODUCTION
            and not self.generator.random_source.cryptographically_secure
        ):
            raise ConfigurationError(
                "Production provisioning requires a cryptographically secure "
                "random source",
                config_key="random_source",
                config_value=self.generator.random_source.name,
            )

        logger.info(
            "BatchProvisioner initialized",
            mode=self.mode.value,
            max_workers=self.max_workers,
            template_length=self.generator.template_length,
        )

    @property
    def is_development(self) -> bool:
        return self.mode is ProvisioningMode.DEVELOPMENT

    def _check_identifiers(self, identifiers: List[str], batch_id: str) -> None:
        seen = set()
        for identifier in identifiers:
            if not isinstance(identifier, str) or not identifier:
                error = InvalidIdentifier(identifier)
                raise BatchProvisioningError(repr(identifier), error, batch_id) from error
            if identifier in seen:
                raise DuplicateIdentifier(identifier, batch_id=batch_id)
            seen.add(identifier)

    def _collect_templates(
        self, identifiers: List[str], template_source: TemplateSource, batch_id: str
    ) -> List[bytes]:
        templates = []
        for identifier in identifiers:
            try:
                templates.append(template_source(identifier))
            except Exception as e:
                raise BatchProvisioningError(identifier, e, batch_id) from e
        return templates

    def _generate_records(
        self, items: List[Tuple[str, bytes]], batch_id: str
    ) -> List[VoterRecord]:
        tracker = ProgressTracker(len(items), "Generating voter records")

        if self.max_workers == 1 or len(items) <= 1:
            records = []
            for identifier, template in items:
                try:
                    records.append(self.generator.generate(identifier, template))
                except Exception as e:
                    raise BatchProvisioningError(identifier, e, batch_id) from e
                tracker.update(len(records))
            tracker.complete()
            return records

        slots: List[Optional[VoterRecord]] = [None] * len(items)
        completed = 0

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(items)),
            thread_name_prefix="voter-provisioning",
        ) as executor:
            future_to_index = {
                executor.submit(self.generator.generate, identifier, template): index
                for index, (identifier, template) in enumerate(items)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    slots[index] = future.result()
                except Exception as e:
                    for pending in future_to_index:
                        pending.cancel()
                    raise BatchProvisioningError(items[index][0], e, batch_id) from e

                completed += 1
                tracker.update(completed)

        tracker.complete()
        return slots

    @timer
    def provision_batch(
        self, identifiers: Iterable[str], template_source: TemplateSource
    ) -> ProvisioningResult:
        """
        Provision voter records for an ordered batch of identifiers.

        Parameters
        ----------
        identifiers : Iterable[str]
            Citizen identifiers, unique within the batch.
        template_source : Callable[[str], bytes]
            Returns the biometric template for an identifier.

        Returns
        -------
        ProvisioningResult
            Records in input order; ``dev_map`` is set in development mode only.

        Raises
        ------
        DuplicateIdentifier
            If an identifier appears more than once.
        BatchProvisioningError
            If any identifier fails. The error names the identifier and keeps
            the original error as ``cause``.
        """
        batch_id = generate_batch_id()
        start_time = time.perf_counter()
        identifiers = list(identifiers)

        log = logger.bind(batch_id=batch_id, mode=self.mode.value)
        log.info("Starting batch provisioning", batch_size=len(identifiers))

        try:
            self._check_identifiers(identifiers, batch_id)
            templates = self._collect_templates(identifiers, template_source, batch_id)
            records = self._generate_records(list(zip(identifiers, templates)), batch_id)
        except (BatchProvisioningError, DuplicateIdentifier) as e:
            log.error("Batch provisioning aborted", **e.to_dict())
            raise

        dev_map = dict(zip(identifiers, templates)) if self.is_development else None

        result = ProvisioningResult(
            batch_id=batch_id,
            mode=self.mode.value,
            records=records,
            dev_map=dev_map,
            elapsed_seconds=time.perf_counter() - start_time,
        )
        log.info("Batch provisioning completed", **result.summary())

        return result


def generate_voters(
    count: Optional[int] = None,
    start: Optional[int] = None,
    template_length: Optional[int] = None,
    generator: Optional[CredentialGenerator] = None,
    max_workers: Optional[int] = None,
) -> ProvisioningResult:
    """
    Provision a development batch of synthetic voters.

    Identifiers are ``str(start)``, ``str(start + 1)``, ... and the fake
    fingerprints are ``1111``, ``1112``, ... (see ``SyntheticTemplateSource``).
    The result always carries a dev map.

    Parameters
    ----------
    count : Optional[int], default=None
        Number of voters. Defaults to ``config.NUM_VOTERS``.
    start : Optional[int], default=None
        First citizen ID. Defaults to ``config.DNI_START``.
    template_length : Optional[int], default=None
        Synthetic template length; defaults to the generator's length.
        ``ANY_TEMPLATE_LENGTH`` gives unpadded ``b"1111"``-style templates.
    generator : Optional[CredentialGenerator], default=None
        Generator to use. Defaults to one with ``config.TEMPLATE_LENGTH``,
        seeded from ``config.RANDOM_SEED`` when that is set.

    Examples
    --------
    >>> result = generate_voters(count=3)
    >>> result.identifiers
    ['1', '2', '3']
    """
    count = config.NUM_VOTERS if count is None else count
    start = config.DNI_START if start is None else start

    if generator is None:
        random_source = (
            SeededRandomSource(seed=config.RANDOM_SEED)
            if config.RANDOM_SEED is not None
            else None
        )
        generator = CredentialGenerator(
            random_source=random_source,
            template_length=template_length,
        )

    source = SyntheticTemplateSource(
        template_length=(
            generator.template_length if template_length is None else template_length
        )
    )
    identifiers = [str(start + i) for i in range(count)]

    provisioner = BatchProvisioner(
        generator=generator,
        mode=ProvisioningMode.DEVELOPMENT,
        max_workers=max_workers,
    )
    return provisioner.provision_batch(identifiers, source)

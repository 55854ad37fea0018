"""Tests for batch provisioning."""

import pytest
from structlog.testing import capture_logs

from voter_credentials import config
from voter_credentials.credential_generator import CredentialGenerator
from voter_credentials.exceptions import (
    BatchProvisioningError,
    ConfigurationError,
    DuplicateIdentifier,
    InvalidIdentifier,
    InvalidTemplateLength,
    RandomnessUnavailable,
    TemplateSourceError,
)
from voter_credentials.provisioner import (
    BatchProvisioner,
    ProvisioningMode,
    generate_voters,
)
from voter_credentials.template_sources import (
    MappingTemplateSource,
    SyntheticTemplateSource,
)
from voter_credentials.verifier import CredentialVerifier, verify_voter

from tests.conftest import FailingRandomSource


@pytest.fixture
def dev_provisioner(generator):
    return BatchProvisioner(
        generator=generator, mode=ProvisioningMode.DEVELOPMENT, max_workers=4
    )


@pytest.fixture
def prod_provisioner():
    return BatchProvisioner(mode=ProvisioningMode.PRODUCTION, max_workers=4)


@pytest.fixture
def identifiers():
    return [str(i) for i in range(1, 26)]


@pytest.fixture
def templates(rng, identifiers):
    return {identifier: rng.bytes(32) for identifier in identifiers}


class TestProvisionBatch:
    def test_records_follow_input_order(self, prod_provisioner, identifiers, templates):
        result = prod_provisioner.provision_batch(
            identifiers, MappingTemplateSource(templates)
        )

        assert len(result) == len(identifiers)
        assert result.identifiers == identifiers

    def test_every_record_verifies_against_its_template(
        self, prod_provisioner, verifier, identifiers, templates
    ):
        result = prod_provisioner.provision_batch(
            identifiers, MappingTemplateSource(templates)
        )

        for record in result.records:
            assert verifier.verify(record, templates[record.identifier])

    def test_tags_and_helpers_are_distinct(self, prod_provisioner, identifiers, templates):
        result = prod_provisioner.provision_batch(
            identifiers, MappingTemplateSource(templates)
        )

        assert len({r.tag for r in result.records}) == len(identifiers)
        assert len({r.helper for r in result.records}) == len(identifiers)

    def test_sequential_and_threaded_runs_agree_on_order(self, identifiers, templates):
        source = MappingTemplateSource(templates)
        sequential = BatchProvisioner(mode=ProvisioningMode.PRODUCTION, max_workers=1)
        threaded = BatchProvisioner(mode=ProvisioningMode.PRODUCTION, max_workers=8)

        assert (
            sequential.provision_batch(identifiers, source).identifiers
            == threaded.provision_batch(identifiers, source).identifiers
        )

    def test_accepts_any_iterable(self, prod_provisioner, templates):
        result = prod_provisioner.provision_batch(
            (identifier for identifier in ["3", "1", "2"]),
            MappingTemplateSource(templates),
        )

        assert result.identifiers == ["3", "1", "2"]

    def test_empty_batch(self, prod_provisioner):
        result = prod_provisioner.provision_batch([], MappingTemplateSource({}))

        assert len(result) == 0
        assert result.dev_map is None

    def test_templates_collected_in_input_order(self, prod_provisioner, templates):
        requested = []

        def source(identifier):
            requested.append(identifier)
            return templates[identifier]

        prod_provisioner.provision_batch(["5", "2", "9", "1"], source)

        assert requested == ["5", "2", "9", "1"]

    def test_result_metadata(self, prod_provisioner, identifiers, templates):
        result = prod_provisioner.provision_batch(
            identifiers, MappingTemplateSource(templates)
        )

        assert result.mode == "production"
        assert result.batch_id.startswith("batch_")
        assert result.elapsed_seconds >= 0


class TestDevelopmentMap:
    def test_dev_map_covers_batch(self, dev_provisioner, identifiers, templates):
        result = dev_provisioner.provision_batch(
            identifiers, MappingTemplateSource(templates)
        )

        assert result.has_dev_map
        assert set(result.dev_map) == set(result.identifiers)
        assert result.dev_map == templates

    def test_production_never_builds_dev_map(self, prod_provisioner, identifiers, templates):
        result = prod_provisioner.provision_batch(
            identifiers, MappingTemplateSource(templates)
        )

        assert result.dev_map is None
        assert not result.has_dev_map

    def test_dev_map_never_logged(self, dev_provisioner, templates):
        with capture_logs() as logs:
            dev_provisioner.provision_batch(["1", "2"], MappingTemplateSource(templates))

        rendered = repr(logs)
        for identifier in ("1", "2"):
            assert templates[identifier].hex() not in rendered
            assert repr(templates[identifier]) not in rendered


class TestBatchFailures:
    def test_duplicate_identifier_rejected_before_templates_drawn(self, prod_provisioner):
        requested = []

        def source(identifier):
            requested.append(identifier)
            return bytes(32)

        with pytest.raises(DuplicateIdentifier) as exc_info:
            prod_provisioner.provision_batch(["1", "2", "1"], source)

        assert exc_info.value.context["identifier"] == "1"
        assert exc_info.value.error_code == "BATCH_001"
        assert requested == []

    @pytest.mark.parametrize("max_workers", [1, 4])
    def test_wrong_length_template_aborts_batch(self, max_workers, templates):
        provisioner = BatchProvisioner(
            mode=ProvisioningMode.PRODUCTION, max_workers=max_workers
        )
        bad_templates = dict(templates)
        bad_templates["3"] = bytes(31)

        with pytest.raises(BatchProvisioningError) as exc_info:
            provisioner.provision_batch(
                ["1", "2", "3", "4", "5"], MappingTemplateSource(bad_templates)
            )

        error = exc_info.value
        assert error.identifier == "3"
        assert isinstance(error.cause, InvalidTemplateLength)
        assert error.__cause__ is error.cause
        assert error.context["cause_code"] == "CRED_001"
        assert error.error_code == "BATCH_002"

    @pytest.mark.parametrize("max_workers", [1, 4])
    def test_randomness_failure_aborts_batch(self, max_workers, identifiers, templates):
        generator = CredentialGenerator(random_source=FailingRandomSource())
        provisioner = BatchProvisioner(
            generator=generator, mode=ProvisioningMode.PRODUCTION, max_workers=max_workers
        )

        with pytest.raises(BatchProvisioningError) as exc_info:
            provisioner.provision_batch(identifiers, MappingTemplateSource(templates))

        assert isinstance(exc_info.value.cause, RandomnessUnavailable)
        assert exc_info.value.identifier in identifiers

    def test_missing_template_aborts_batch(self, prod_provisioner, templates):
        partial = {"1": templates["1"]}

        with pytest.raises(BatchProvisioningError) as exc_info:
            prod_provisioner.provision_batch(["1", "2"], MappingTemplateSource(partial))

        assert exc_info.value.identifier == "2"
        assert isinstance(exc_info.value.cause, TemplateSourceError)

    def test_template_source_exception_is_wrapped(self, prod_provisioner):
        def source(identifier):
            raise RuntimeError("scanner offline")

        with pytest.raises(BatchProvisioningError) as exc_info:
            prod_provisioner.provision_batch(["7"], source)

        assert exc_info.value.identifier == "7"
        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.parametrize("bad_identifier", ["", None, 12])
    def test_invalid_identifier_aborts_batch(self, prod_provisioner, bad_identifier):
        with pytest.raises(BatchProvisioningError) as exc_info:
            prod_provisioner.provision_batch(
                ["1", bad_identifier], SyntheticTemplateSource()
            )

        assert isinstance(exc_info.value.cause, InvalidIdentifier)


class TestProvisionerConfiguration:
    def test_production_rejects_seeded_source(self, generator):
        with pytest.raises(ConfigurationError) as exc_info:
            BatchProvisioner(generator=generator, mode=ProvisioningMode.PRODUCTION)

        assert exc_info.value.context["config_value"] == "seeded"

    def test_development_accepts_seeded_source(self, generator):
        provisioner = BatchProvisioner(generator=generator, mode="development")

        assert provisioner.is_development

    def test_defaults_from_config(self):
        provisioner = BatchProvisioner()

        assert provisioner.mode.value == config.PROVISIONING_MODE
        assert provisioner.max_workers == config.MAX_WORKERS

    def test_zero_workers_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BatchProvisioner(mode=ProvisioningMode.PRODUCTION, max_workers=0)

        assert exc_info.value.context["config_value"] == "0"

    def test_template_length_from_config(self, monkeypatch):
        monkeypatch.setattr(config, "TEMPLATE_LENGTH", 4)

        provisioner = BatchProvisioner(mode=ProvisioningMode.PRODUCTION)

        assert provisioner.generator.template_length == 4

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValueError):
            BatchProvisioner(mode="staging")


class TestGenerateVoters:
    def test_identifiers_start_at_one(self):
        result = generate_voters(count=3)

        assert result.identifiers == ["1", "2", "3"]
        assert result.mode == "development"

    def test_custom_start(self):
        result = generate_voters(count=2, start=100)

        assert result.identifiers == ["100", "101"]

    def test_synthetic_fingerprints_are_padded(self):
        result = generate_voters(count=2)

        assert result.dev_map["1"] == b"1111".rjust(32, b"0")
        assert result.dev_map["2"] == b"1112".rjust(32, b"0")

    def test_default_count_from_config(self):
        result = generate_voters()

        assert len(result) == config.NUM_VOTERS

    def test_dev_map_templates_verify(self):
        result = generate_voters(count=5)
        verifier = CredentialVerifier()

        for record in result.records:
            assert verifier.verify(record, result.dev_map[record.identifier])

    def test_two_voter_scenario(self):
        result = generate_voters(count=2, template_length=4)
        verifier = CredentialVerifier(template_length=4)
        first, second = result.records

        assert result.dev_map == {"1": b"1111", "2": b"1112"}
        assert first.tag != second.tag
        assert first.helper != second.helper
        assert verifier.verify(first, b"1111")
        assert not verifier.verify(first, b"1112")
        assert verifier.verify(second, b"1112")

    def test_configured_template_length_end_to_end(self, monkeypatch):
        monkeypatch.setattr(config, "TEMPLATE_LENGTH", 4)

        result = generate_voters(count=2)
        verifier = CredentialVerifier()
        first, second = result.records

        assert result.dev_map == {"1": b"1111", "2": b"1112"}
        assert verifier.template_length == 4
        assert verifier.verify(first, b"1111")
        assert verify_voter(second, b"1112")
        assert not verify_voter(second, b"1111")

    def test_zero_voters(self):
        result = generate_voters(count=0)

        assert len(result) == 0
        assert result.dev_map == {}

    def test_random_seed_makes_runs_reproducible(self, monkeypatch):
        monkeypatch.setattr(config, "RANDOM_SEED", 99)

        first = generate_voters(count=3, max_workers=1)
        second = generate_voters(count=3, max_workers=1)

        assert first.to_snapshot() == second.to_snapshot()

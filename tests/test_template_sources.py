"""Tests for development template sources."""

import pytest

from voter_credentials import config
from voter_credentials.constants import ANY_TEMPLATE_LENGTH
from voter_credentials.exceptions import TemplateSourceError
from voter_credentials.template_sources import (
    MappingTemplateSource,
    SyntheticTemplateSource,
)


class TestSyntheticTemplateSource:
    def test_first_seen_order(self):
        source = SyntheticTemplateSource(template_length=ANY_TEMPLATE_LENGTH)

        assert source("7") == b"1111"
        assert source("3") == b"1112"
        assert source("7") == b"1111"

    def test_padded_to_template_length(self):
        source = SyntheticTemplateSource()

        template = source("1")

        assert len(template) == 32
        assert template == b"0" * 28 + b"1111"

    def test_default_length_follows_config(self, monkeypatch):
        monkeypatch.setattr(config, "TEMPLATE_LENGTH", 6)

        assert SyntheticTemplateSource()("1") == b"001111"

    def test_custom_base(self):
        assert SyntheticTemplateSource(base=5, template_length=4)("1") == b"0005"

    def test_digits_must_fit(self):
        source = SyntheticTemplateSource(template_length=3)

        with pytest.raises(TemplateSourceError):
            source("1")

    def test_distinct_templates_per_identifier(self):
        source = SyntheticTemplateSource()

        templates = {source(str(i)) for i in range(100)}

        assert len(templates) == 100


class TestMappingTemplateSource:
    def test_lookup(self):
        source = MappingTemplateSource({"1": b"abc"})

        assert source("1") == b"abc"

    def test_missing_identifier(self):
        source = MappingTemplateSource({"1": b"abc"})

        with pytest.raises(TemplateSourceError) as exc_info:
            source("2")

        assert exc_info.value.context["identifier"] == "2"
        assert exc_info.value.error_code == "BATCH_003"

    def test_mapping_is_copied(self):
        mapping = {"1": b"abc"}
        source = MappingTemplateSource(mapping)
        mapping["1"] = b"xyz"

        assert source("1") == b"abc"

"""
Voter Credentials - privacy-preserving voter credential derivation

Derives public voter records ``{identifier, salt, helper, tag}`` from a
citizen identifier and a biometric template, verifies fresh readings against
those records and provisions whole registries in atomic batches. The
biometric template is never stored in a record.
"""

__version__ = "1.0.0"

from .credential_generator import CredentialGenerator, make_voter
from .data_models import ProvisioningResult, VoterRecord
from .exceptions import (
    BatchProvisioningError,
    DuplicateIdentifier,
    InvalidTemplateLength,
    MalformedRecord,
    RandomnessUnavailable,
    VoterCredentialError,
)
from .provisioner import BatchProvisioner, ProvisioningMode, generate_voters
from .randomness import SeededRandomSource, SystemRandomSource
from .registry_io import RegistryStore
from .template_sources import MappingTemplateSource, SyntheticTemplateSource
from .verifier import CredentialVerifier, verify_voter

__all__ = [
    "BatchProvisioner",
    "BatchProvisioningError",
    "CredentialGenerator",
    "CredentialVerifier",
    "DuplicateIdentifier",
    "InvalidTemplateLength",
    "MalformedRecord",
    "MappingTemplateSource",
    "ProvisioningMode",
    "ProvisioningResult",
    "RandomnessUnavailable",
    "RegistryStore",
    "SeededRandomSource",
    "SyntheticTemplateSource",
    "SystemRandomSource",
    "VoterCredentialError",
    "VoterRecord",
    "generate_voters",
    "make_voter",
    "verify_voter",
]

"""
Constants and scheme parameters for the voter credential system.

This module centralizes the fixed sizes of the credential construction and
the defaults used when provisioning voter batches, so that the generator,
verifier and registry codec all agree on the same byte lengths.
"""

from typing import Final

# =============================================================================
# Credential Scheme Parameters
# =============================================================================

# Output length of keccak256 in bytes
HASH_LENGTH: Final[int] = 32

# Length of the per-record secret R in bytes (must equal HASH_LENGTH for XOR)
SECRET_LENGTH: Final[int] = HASH_LENGTH

# Length of the public auxiliary salt in bytes
SALT_LENGTH: Final[int] = 32

# Expected biometric template length in bytes
TEMPLATE_LENGTH: Final[int] = 32

# Template length setting that accepts any non-empty template (legacy dev fingerprints)
ANY_TEMPLATE_LENGTH: Final[int] = 0

# Number of hex characters in an encoded 32-byte field (without 0x prefix)
HEX_FIELD_LENGTH: Final[int] = HASH_LENGTH * 2

# Prefix used for every hex-encoded byte field in registry files
HEX_PREFIX: Final[str] = "0x"

# =============================================================================
# Record Field Names
# =============================================================================

# Legacy registry files keyed the citizen ID as "dni"
LEGACY_IDENTIFIER_FIELD: Final[str] = "dni"

# =============================================================================
# Provisioning Defaults
# =============================================================================

# Number of voters generated by the development seeding helper
DEFAULT_NUM_VOTERS: Final[int] = 50

# First citizen ID used by the development seeding helper
DEFAULT_DNI_START: Final[int] = 1

# Synthetic development fingerprints are DEV_FINGERPRINT_BASE + index
DEV_FINGERPRINT_BASE: Final[int] = 1111

# Padding byte for synthetic templates shorter than the template length
SYNTHETIC_PAD_BYTE: Final[bytes] = b"0"

# =============================================================================
# Benchmarking
# =============================================================================

# Number of iterations for performance benchmarking
BENCHMARK_ITERATIONS: Final[int] = 100

# Warmup iterations discarded before measurement
BENCHMARK_WARMUP_ITERATIONS: Final[int] = 5

# =============================================================================
# File and Directory Constants
# =============================================================================

DEFAULT_REGISTRY_FILE: Final[str] = "db.json"
DEFAULT_DEV_FINGERPRINTS_FILE: Final[str] = "dev_fingerprints.json"

"""
Configuration management for the voter credential system.

This module loads settings from environment variables and .env files so that
provisioning runs behave the same across local development and the
production registry hand-off. Production is the default mode; the
development fingerprint map is only produced when it is explicitly enabled.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import structlog
from dotenv import load_dotenv

from .constants import (
    DEFAULT_DEV_FINGERPRINTS_FILE,
    DEFAULT_DNI_START,
    DEFAULT_NUM_VOTERS,
    DEFAULT_REGISTRY_FILE,
    TEMPLATE_LENGTH as DEFAULT_TEMPLATE_LENGTH,
)

# Load environment variables from .env file if it exists
load_dotenv()

# =============================================================================
# Base Paths
# =============================================================================
BASE_DIR: Path = Path(__file__).resolve().parent.parent

# Project root directory (parent of src/)
PROJECT_ROOT: Path = BASE_DIR.parent

# =============================================================================
# Output Configuration
# =============================================================================
# Registry snapshot handed to the external registry service
REGISTRY_DB_PATH: Path = Path(
    os.getenv("REGISTRY_DB_PATH", str(PROJECT_ROOT / "output" / DEFAULT_REGISTRY_FILE))
)

# Development-only identifier -> template map, kept apart from the registry
DEV_FINGERPRINTS_PATH: Path = Path(
    os.getenv(
        "DEV_FINGERPRINTS_PATH",
        str(PROJECT_ROOT / "output" / "dev" / DEFAULT_DEV_FINGERPRINTS_FILE),
    )
)

# =============================================================================
# Logging Configuration
# =============================================================================
# Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Render log events as JSON instead of console key=value output
STRUCTURED_LOGGING: bool = os.getenv("STRUCTURED_LOGGING", "true").lower() == "true"

# =============================================================================
# Provisioning Configuration
# =============================================================================
# "production" or "development"; only development emits the fingerprint map
PROVISIONING_MODE: str = os.getenv("PROVISIONING_MODE", "production").lower()

# Maximum number of worker threads used to generate records
MAX_WORKERS: int = int(os.getenv("MAX_WORKERS", str(min(32, os.cpu_count() or 4))))

# Number of voters produced by the development seeding helper
NUM_VOTERS: int = int(os.getenv("NUM_VOTERS", str(DEFAULT_NUM_VOTERS)))

# First citizen ID produced by the development seeding helper
DNI_START: int = int(os.getenv("DNI_START", str(DEFAULT_DNI_START)))

# Expected biometric template length in bytes (0 accepts any non-empty template)
TEMPLATE_LENGTH: int = int(os.getenv("TEMPLATE_LENGTH", str(DEFAULT_TEMPLATE_LENGTH)))

# =============================================================================
# Testing Configuration
# =============================================================================
# Seed for the deterministic random source (development mode only)
RANDOM_SEED: Optional[int] = None
if seed_str := os.getenv("RANDOM_SEED"):
    RANDOM_SEED = int(seed_str)

# Enable debug mode (skips validation on import)
DEBUG_MODE: bool = os.getenv("DEBUG_MODE", "false").lower() == "true"

VALID_PROVISIONING_MODES = ("production", "development")
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Configuration Validation
# =============================================================================
def validate_configuration() -> bool:
    """
    Validate the current configuration settings.

    Returns
    -------
    bool
        True if configuration is valid.

    Raises
    ------
    ValueError
        If critical configuration parameters are invalid.
    """
    errors = []

    if PROVISIONING_MODE not in VALID_PROVISIONING_MODES:
        errors.append(f"PROVISIONING_MODE must be one of {VALID_PROVISIONING_MODES}")

    if MAX_WORKERS < 1:
        errors.append("MAX_WORKERS must be at least 1")

    if NUM_VOTERS < 0:
        errors.append("NUM_VOTERS cannot be negative")

    if TEMPLATE_LENGTH < 0:
        errors.append("TEMPLATE_LENGTH cannot be negative")

    if RANDOM_SEED is not None and PROVISIONING_MODE == "production":
        errors.append("RANDOM_SEED is only allowed in development mode")

    if REGISTRY_DB_PATH.resolve() == DEV_FINGERPRINTS_PATH.resolve():
        errors.append("DEV_FINGERPRINTS_PATH must differ from REGISTRY_DB_PATH")

    if LOG_LEVEL not in VALID_LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {VALID_LOG_LEVELS}")

    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"- {error}" for error in errors)
        )

    return True


def get_config_summary() -> dict:
    """
    Get a summary of the current configuration.

    Returns
    -------
    dict
        Dictionary containing key configuration parameters.
    """
    return {
        "output_paths": {
            "registry_db": str(REGISTRY_DB_PATH),
            "dev_fingerprints": str(DEV_FINGERPRINTS_PATH),
        },
        "provisioning": {
            "mode": PROVISIONING_MODE,
            "max_workers": MAX_WORKERS,
            "num_voters": NUM_VOTERS,
            "dni_start": DNI_START,
            "template_length": TEMPLATE_LENGTH,
            "seeded": RANDOM_SEED is not None,
        },
        "logging": {
            "level": LOG_LEVEL,
            "structured": STRUCTURED_LOGGING,
        },
    }


def configure_logging(
    level: Optional[str] = None, structured: Optional[bool] = None
) -> None:
    """
    Configure structlog for the process.

    Parameters
    ----------
    level : Optional[str], default=None
        Minimum level name; defaults to LOG_LEVEL.
    structured : Optional[bool], default=None
        Emit JSON lines; defaults to STRUCTURED_LOGGING.
    """
    level_name = (level or LOG_LEVEL).upper()
    if structured is None:
        structured = STRUCTURED_LOGGING

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if structured:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level_name)
        ),
        cache_logger_on_first_use=False,
    )


# Validate configuration on import
if not DEBUG_MODE:
    validate_configuration()

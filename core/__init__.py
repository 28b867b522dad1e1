"""
core - Core utilities and models for CHAINZ.

This package contains:
- models.py: Data models (ChainRecord, ProbeResult)
- constants.py: Enums and constants
- exceptions.py: Typed exceptions with error codes
- variables.py: ${VAR} placeholder resolution
- logging.py: Structured logging
"""

from core.constants import KeyType, ProbeFailure
from core.exceptions import (
    BackendUnavailable,
    ChainNotFound,
    ChainzError,
    DuplicateEntry,
    ErrorCode,
    FormatError,
    KeyBackendError,
    KeyDecryptionError,
    KeyNotFound,
    NoHealthyEndpoint,
    UnresolvedVariable,
)
from core.logging import get_logger, setup_logging
from core.models import ChainRecord, ProbeResult
from core.variables import VariableResolver, placeholders

__all__ = [
    # Constants
    "KeyType",
    "ProbeFailure",
    # Exceptions
    "BackendUnavailable",
    "ChainNotFound",
    "ChainzError",
    "DuplicateEntry",
    "ErrorCode",
    "FormatError",
    "KeyBackendError",
    "KeyDecryptionError",
    "KeyNotFound",
    "NoHealthyEndpoint",
    "UnresolvedVariable",
    # Models
    "ChainRecord",
    "ProbeResult",
    # Variables
    "VariableResolver",
    "placeholders",
    # Logging
    "get_logger",
    "setup_logging",
]

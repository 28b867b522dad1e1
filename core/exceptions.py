# PATH: core/exceptions.py
"""
Typed exceptions for CHAINZ.

Every error carries a machine-readable ErrorCode plus a details dict,
so the CLI can render why an operation failed without parsing messages.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Error codes for CHAINZ."""
    FORMAT_ERROR = "FORMAT_ERROR"
    UNRESOLVED_VARIABLE = "UNRESOLVED_VARIABLE"
    KEY_BACKEND_UNAVAILABLE = "KEY_BACKEND_UNAVAILABLE"
    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    KEY_DECRYPT_FAILED = "KEY_DECRYPT_FAILED"
    NO_HEALTHY_ENDPOINT = "NO_HEALTHY_ENDPOINT"
    CHAIN_NOT_FOUND = "CHAIN_NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    UNKNOWN = "UNKNOWN"


class ChainzError(Exception):
    """Base exception for CHAINZ."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.UNKNOWN,
        message: str = "",
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class FormatError(ChainzError):
    """Malformed placeholder, URL, key material or config document."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(ErrorCode.FORMAT_ERROR, message, details)


class UnresolvedVariable(ChainzError):
    """A placeholder has no value in the variable store or environment."""

    def __init__(self, name: str):
        super().__init__(
            ErrorCode.UNRESOLVED_VARIABLE,
            f"Unresolved variable: {name}",
            {"name": name},
        )
        self.name = name


# =============================================================================
# KEY BACKENDS
# =============================================================================

class KeyBackendError(ChainzError):
    """Key backend failure. Always names the backend kind."""

    def __init__(
        self,
        code: ErrorCode,
        backend: str,
        message: str,
        details: Optional[dict] = None,
    ):
        super().__init__(code, f"{backend}: {message}", {"backend": backend, **(details or {})})
        self.backend = backend


class BackendUnavailable(KeyBackendError):
    """The secret store could not be reached or answered ambiguously."""

    def __init__(self, backend: str, message: str, details: Optional[dict] = None):
        super().__init__(ErrorCode.KEY_BACKEND_UNAVAILABLE, backend, message, details)


class KeyNotFound(KeyBackendError):
    """The referenced secret (or key spec) does not exist."""

    def __init__(self, backend: str, message: str, details: Optional[dict] = None):
        super().__init__(ErrorCode.KEY_NOT_FOUND, backend, message, details)


class KeyDecryptionError(KeyBackendError):
    """Encrypted key could not be decrypted (wrong password or corrupt blob)."""

    def __init__(self, backend: str, message: str, details: Optional[dict] = None):
        super().__init__(ErrorCode.KEY_DECRYPT_FAILED, backend, message, details)


# =============================================================================
# FAILOVER / REGISTRY
# =============================================================================

class NoHealthyEndpoint(ChainzError):
    """No candidate RPC answered successfully. Carries the full report."""

    def __init__(self, report: list, details: Optional[dict] = None):
        super().__init__(
            ErrorCode.NO_HEALTHY_ENDPOINT,
            f"No healthy RPC endpoint among {len(report)} candidate(s)",
            details,
        )
        self.report = report


class ChainNotFound(ChainzError):
    """No chain matches the given name or chain id."""

    def __init__(self, name_or_id: str | int):
        super().__init__(
            ErrorCode.CHAIN_NOT_FOUND,
            f"Chain not found: {name_or_id}",
            {"chain": name_or_id},
        )


class DuplicateEntry(ChainzError):
    """A chain name, chain id or key name is already registered."""

    def __init__(self, kind: str, value: str | int):
        super().__init__(
            ErrorCode.DUPLICATE_ENTRY,
            f"Duplicate {kind}: {value}",
            {"kind": kind, "value": value},
        )

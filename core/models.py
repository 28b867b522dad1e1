# PATH: core/models.py
"""
Core data models for CHAINZ.

ChainRecord is the persisted chain definition. RPC URLs and the
verification key are stored as templates and may contain ${VAR}
placeholders; they are only resolved right before use.

ProbeResult is the ephemeral outcome of probing one candidate URL:
either a latency (success) or a failure reason, never both.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.constants import ProbeFailure
from core.exceptions import FormatError


@dataclass
class ChainRecord:
    """Chain configuration (from the config document)."""
    name: str
    chain_id: int
    rpc_urls: List[str] = field(default_factory=list)
    selected_rpc: Optional[str] = None
    verification_api_key: Optional[str] = None
    verification_url: Optional[str] = None
    key_name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise FormatError("Chain name must be a non-empty string")
        if isinstance(self.chain_id, bool) or not isinstance(self.chain_id, int) or self.chain_id <= 0:
            raise FormatError(
                f"Chain id must be a positive integer: {self.chain_id!r}",
                {"chain": self.name},
            )
        if not isinstance(self.rpc_urls, (list, tuple)) or not all(
            isinstance(url, str) for url in self.rpc_urls
        ):
            raise FormatError(
                "RPC candidates must be a list of URL strings",
                {"chain": self.name, "rpc_urls": self.rpc_urls},
            )
        self.rpc_urls = list(self.rpc_urls)
        if self.selected_rpc is not None and self.selected_rpc not in self.rpc_urls:
            raise FormatError(
                "Selected RPC is not one of the chain's candidates",
                {"chain": self.name, "selected_rpc": self.selected_rpc},
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "chain_id": self.chain_id,
            "rpc_urls": list(self.rpc_urls),
            "selected_rpc": self.selected_rpc,
            "verification_api_key": self.verification_api_key,
            "verification_url": self.verification_url,
            "key_name": self.key_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainRecord":
        try:
            return cls(
                name=data["name"],
                chain_id=data["chain_id"],
                rpc_urls=data.get("rpc_urls", []),
                selected_rpc=data.get("selected_rpc"),
                verification_api_key=data.get("verification_api_key"),
                verification_url=data.get("verification_url"),
                key_name=data.get("key_name"),
            )
        except (KeyError, TypeError) as e:
            raise FormatError(f"Invalid chain entry: {e}") from e


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one candidate URL."""
    url: str
    resolved_url: Optional[str] = None
    latency_ms: Optional[int] = None
    reason: Optional[ProbeFailure] = None
    detail: Optional[str] = None

    def __post_init__(self):
        if (self.latency_ms is None) == (self.reason is None):
            raise ValueError("ProbeResult must be either a success or a failure")

    @classmethod
    def success(cls, url: str, resolved_url: str, latency_ms: int) -> "ProbeResult":
        return cls(url=url, resolved_url=resolved_url, latency_ms=latency_ms)

    @classmethod
    def failure(
        cls,
        url: str,
        reason: ProbeFailure,
        detail: str | None = None,
        resolved_url: str | None = None,
    ) -> "ProbeResult":
        return cls(url=url, resolved_url=resolved_url, reason=reason, detail=detail)

    @property
    def ok(self) -> bool:
        return self.reason is None

    def describe(self) -> str:
        """Short human-readable status, e.g. 'ok (50ms)' or 'TIMEOUT: ...'."""
        if self.ok:
            return f"ok ({self.latency_ms}ms)"
        if self.detail:
            return f"{self.reason.value}: {self.detail}"
        return self.reason.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "ok": self.ok,
            "latency_ms": self.latency_ms,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
        }

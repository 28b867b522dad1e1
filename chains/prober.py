"""
chains/prober.py - Single-endpoint RPC health probe.

One probe is one JSON-RPC `eth_chainId` request:
- No retries; retry policy belongs to the caller
- Hard deadline via asyncio.wait_for; a late response is discarded
- Every failure is classified (connection, TLS, HTTP status, malformed
  body, JSON-RPC error, timeout, wrong chain)
"""

import asyncio
import ssl
import time

import httpx

from core.constants import DEFAULT_PROBE_TIMEOUT_SECONDS, PROBE_METHOD, ProbeFailure
from core.logging import get_logger, log_probe
from core.models import ProbeResult

logger = get_logger("chainz.prober")

_TLS_MARKERS = ("SSL", "TLS", "CERTIFICATE")


def _is_tls_error(exc: BaseException) -> bool:
    """True if exc (or anything in its cause chain) is a TLS failure."""
    current: BaseException | None = exc
    for _ in range(8):
        if current is None:
            break
        if isinstance(current, ssl.SSLError):
            return True
        current = current.__cause__ or current.__context__
    text = str(exc).upper()
    return any(marker in text for marker in _TLS_MARKERS)


class RPCProber:
    """
    Liveness/latency probe for RPC endpoints.

    Shares one httpx.AsyncClient across probes. Pass a client to
    control transport (tests use httpx.MockTransport).
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client
        self._owns_client = client is None
        self._request_id = 0

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            # No connection cap: a probe queued on the pool would spend its
            # deadline (and latency) waiting for another candidate
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=None, max_keepalive_connections=20),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RPCProber":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def probe(
        self,
        url: str,
        timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        expected_chain_id: int | None = None,
        template: str | None = None,
    ) -> ProbeResult:
        """
        Probe one resolved URL.

        Args:
            url: Resolved endpoint URL (placeholders already expanded)
            timeout: Hard per-probe deadline in seconds
            expected_chain_id: If set, a different reported chain id fails
            template: Unresolved form of url, recorded in the result

        Returns:
            ProbeResult (never raises for network-level failures)
        """
        label = template or url
        payload = {
            "jsonrpc": "2.0",
            "method": PROBE_METHOD,
            "params": [],
            "id": self._next_request_id(),
        }
        client = await self._get_client()

        start = time.perf_counter()
        try:
            resp = await asyncio.wait_for(
                client.post(url, json=payload, timeout=timeout),
                timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            result = ProbeResult.failure(
                label, ProbeFailure.TIMEOUT, f"no response within {timeout}s", url,
            )
            log_probe(logger, result)
            return result
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            result = ProbeResult.failure(label, ProbeFailure.INVALID_URL, str(e), url)
            log_probe(logger, result)
            return result
        except httpx.HTTPError as e:
            reason = ProbeFailure.TLS if _is_tls_error(e) else ProbeFailure.CONNECTION
            result = ProbeResult.failure(label, reason, str(e) or type(e).__name__, url)
            log_probe(logger, result)
            return result
        latency_ms = int((time.perf_counter() - start) * 1000)

        result = self._classify(label, url, resp, latency_ms, expected_chain_id)
        log_probe(logger, result)
        return result

    @staticmethod
    def _classify(
        label: str,
        url: str,
        resp: httpx.Response,
        latency_ms: int,
        expected_chain_id: int | None,
    ) -> ProbeResult:
        if not resp.is_success:
            return ProbeResult.failure(
                label, ProbeFailure.HTTP_STATUS, f"HTTP {resp.status_code}", url,
            )

        try:
            body = resp.json()
        except ValueError:
            return ProbeResult.failure(
                label, ProbeFailure.MALFORMED_RESPONSE, "response is not JSON", url,
            )
        if not isinstance(body, dict):
            return ProbeResult.failure(
                label, ProbeFailure.MALFORMED_RESPONSE, "response is not a JSON-RPC object", url,
            )

        if body.get("error") is not None:
            error = body["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            return ProbeResult.failure(label, ProbeFailure.RPC_ERROR, message, url)

        try:
            chain_id = int(body.get("result"), 16)
        except (TypeError, ValueError):
            return ProbeResult.failure(
                label, ProbeFailure.MALFORMED_RESPONSE, "missing or invalid result", url,
            )

        if expected_chain_id is not None and chain_id != expected_chain_id:
            return ProbeResult.failure(
                label,
                ProbeFailure.CHAIN_ID_MISMATCH,
                f"expected chain {expected_chain_id}, got {chain_id}",
                url,
            )

        return ProbeResult.success(label, url, latency_ms)

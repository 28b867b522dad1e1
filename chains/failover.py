"""
chains/failover.py - Concurrent RPC failover selection.

Given a chain's candidate URL templates:
1. Resolve every template; unresolvable ones are reported, not probed
2. Probe all resolvable candidates concurrently, each with its own deadline
3. Pick the fastest success; latencies within tie_tolerance_ms of the
   fastest count as equal and the earliest listed candidate wins

The full per-candidate report is produced whatever the outcome.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from core.constants import DEFAULT_PROBE_TIMEOUT_SECONDS, ProbeFailure
from core.exceptions import FormatError, NoHealthyEndpoint, UnresolvedVariable
from core.logging import get_logger
from core.models import ProbeResult
from core.variables import VariableResolver
from chains.prober import RPCProber

logger = get_logger("chainz.failover")


@dataclass
class FailoverResult:
    """Winner of a failover run plus the report for every candidate."""
    selected: str
    selected_url: str
    report: list[ProbeResult] = field(default_factory=list)

    @property
    def latency_ms(self) -> int | None:
        for result in self.report:
            if result.url == self.selected and result.ok:
                return result.latency_ms
        return None


def pick_winner(report: Sequence[ProbeResult], tie_tolerance_ms: int = 0) -> ProbeResult | None:
    """
    Fastest successful result; ties (within tolerance) go to list order.

    Latencies are whole milliseconds, so a tolerance of 0 means
    equality to the millisecond.
    """
    successes = [r for r in report if r.ok]
    if not successes:
        return None
    best = min(r.latency_ms for r in successes)
    for result in report:
        if result.ok and result.latency_ms <= best + tie_tolerance_ms:
            return result
    return None


class FailoverSelector:
    """
    Runs one failover pass over a chain's candidates.

    Args:
        prober: Anything with RPCProber.probe's signature
        tie_tolerance_ms: Latency window treated as a tie
    """

    def __init__(self, prober: RPCProber | None = None, tie_tolerance_ms: int = 0):
        if tie_tolerance_ms < 0:
            raise ValueError("tie_tolerance_ms must be >= 0")
        self.prober = prober
        self.tie_tolerance_ms = tie_tolerance_ms

    async def select(
        self,
        candidates: Sequence[str],
        variables: Optional[Mapping[str, str]] = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        expected_chain_id: int | None = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> FailoverResult:
        """
        Select the healthiest candidate.

        Raises:
            NoHealthyEndpoint: no candidate succeeded (report attached)
        """
        # One environment snapshot for the whole run
        resolver = VariableResolver(
            variables,
            dict(os.environ) if environ is None else environ,
        )

        report: list[ProbeResult | None] = [None] * len(candidates)
        pending: list[tuple[int, str, str]] = []

        for idx, template in enumerate(candidates):
            try:
                url = resolver.resolve(template)
            except UnresolvedVariable as e:
                report[idx] = ProbeResult.failure(
                    template, ProbeFailure.UNRESOLVED_VARIABLE, e.name,
                )
            except FormatError as e:
                report[idx] = ProbeResult.failure(
                    template, ProbeFailure.INVALID_URL, e.message,
                )
            else:
                pending.append((idx, template, url))

        if pending:
            if self.prober is None:
                async with RPCProber() as prober:
                    results = await self._probe_all(prober, pending, timeout, expected_chain_id)
            else:
                results = await self._probe_all(self.prober, pending, timeout, expected_chain_id)
            for idx, result in results:
                report[idx] = result

        final_report: list[ProbeResult] = list(report)
        winner = pick_winner(final_report, self.tie_tolerance_ms)

        if winner is None:
            logger.warning(
                "No healthy RPC endpoint",
                extra={
                    "context": {
                        "candidates": len(final_report),
                        "probed": len(pending),
                        "expected_chain_id": expected_chain_id,
                    }
                },
            )
            raise NoHealthyEndpoint(
                final_report,
                details={"report": [r.to_dict() for r in final_report]},
            )

        logger.info(
            f"RPC selected: {winner.url}",
            extra={
                "context": {
                    "url": winner.url,
                    "latency_ms": winner.latency_ms,
                    "candidates": len(final_report),
                    "healthy": sum(1 for r in final_report if r.ok),
                }
            },
        )
        return FailoverResult(
            selected=winner.url,
            selected_url=winner.resolved_url,
            report=final_report,
        )

    @staticmethod
    async def _probe_all(
        prober: RPCProber,
        pending: list[tuple[int, str, str]],
        timeout: float,
        expected_chain_id: int | None,
    ) -> list[tuple[int, ProbeResult]]:
        """Probe concurrently; each task hands back its own result."""

        async def probe_one(idx: int, template: str, url: str) -> tuple[int, ProbeResult]:
            result = await prober.probe(
                url,
                timeout,
                expected_chain_id=expected_chain_id,
                template=template,
            )
            return idx, result

        return await asyncio.gather(
            *(probe_one(idx, template, url) for idx, template, url in pending)
        )

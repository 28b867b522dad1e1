# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for CHAINZ tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.constants import ProbeFailure  # noqa: E402
from core.models import ProbeResult  # noqa: E402

# Private key 1 and its well-known address
TEST_PRIVATE_KEY = "0000000000000000000000000000000000000000000000000000000000000001"
TEST_ADDRESS = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


class FakeProber:
    """
    Stand-in for RPCProber keyed by resolved URL.

    outcomes maps url -> latency in ms (success) or ProbeFailure.
    Unknown URLs fail with CONNECTION.
    """

    def __init__(self, outcomes: dict, delay: float = 0.0):
        self.outcomes = outcomes
        self.delay = delay
        self.calls: list[str] = []

    async def probe(self, url, timeout, expected_chain_id=None, template=None):
        import asyncio

        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.get(url, ProbeFailure.CONNECTION)
        if isinstance(outcome, ProbeFailure):
            return ProbeResult.failure(template or url, outcome, None, url)
        return ProbeResult.success(template or url, url, outcome)


@pytest.fixture
def fake_prober():
    """Factory: fake_prober({url: latency_or_failure})."""
    return FakeProber


@pytest.fixture
def private_key():
    return TEST_PRIVATE_KEY


@pytest.fixture
def address():
    return TEST_ADDRESS

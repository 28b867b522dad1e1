# PATH: tests/unit/test_core_models.py
"""
Unit tests for core data models.

Includes:
- ChainRecord validation and document round trip
- ProbeResult success/failure exclusivity
"""

import unittest

from core.constants import ProbeFailure
from core.exceptions import FormatError
from core.models import ChainRecord, ProbeResult


class TestChainRecord(unittest.TestCase):
    def test_defaults(self):
        chain = ChainRecord(name="base", chain_id=8453)
        self.assertEqual(chain.rpc_urls, [])
        self.assertIsNone(chain.selected_rpc)
        self.assertIsNone(chain.key_name)

    def test_rejects_bad_chain_id(self):
        for bad in (0, -1, True, "8453"):
            with self.subTest(chain_id=bad):
                with self.assertRaises(FormatError):
                    ChainRecord(name="base", chain_id=bad)

    def test_rejects_empty_name(self):
        with self.assertRaises(FormatError):
            ChainRecord(name=" ", chain_id=1)

    def test_selected_must_be_candidate(self):
        with self.assertRaises(FormatError):
            ChainRecord(name="base", chain_id=1, rpc_urls=["https://a"], selected_rpc="https://b")

    def test_round_trip(self):
        chain = ChainRecord(
            name="base",
            chain_id=8453,
            rpc_urls=["https://a/${KEY}", "https://b"],
            selected_rpc="https://a/${KEY}",
            verification_api_key="${SCAN}",
            verification_url="https://api.basescan.org/api",
            key_name="deployer",
        )
        self.assertEqual(ChainRecord.from_dict(chain.to_dict()), chain)

    def test_templates_stored_unresolved(self):
        chain = ChainRecord(name="base", chain_id=1, rpc_urls=["https://a/${KEY}"])
        self.assertEqual(chain.to_dict()["rpc_urls"], ["https://a/${KEY}"])

    def test_from_dict_missing_field(self):
        with self.assertRaises(FormatError):
            ChainRecord.from_dict({"name": "base"})

    def test_rpc_urls_must_be_a_list(self):
        with self.assertRaises(FormatError):
            ChainRecord.from_dict({"name": "base", "chain_id": 1, "rpc_urls": "https://a"})
        with self.assertRaises(FormatError):
            ChainRecord(name="base", chain_id=1, rpc_urls=["https://a", 7])
        chain = ChainRecord(name="base", chain_id=1, rpc_urls=("https://a",))
        self.assertEqual(chain.rpc_urls, ["https://a"])


class TestProbeResult(unittest.TestCase):
    def test_success(self):
        result = ProbeResult.success("https://a", "https://a", 50)
        self.assertTrue(result.ok)
        self.assertIsNone(result.reason)
        self.assertEqual(result.describe(), "ok (50ms)")

    def test_failure(self):
        result = ProbeResult.failure("https://a", ProbeFailure.HTTP_STATUS, "HTTP 503")
        self.assertFalse(result.ok)
        self.assertIsNone(result.latency_ms)
        self.assertEqual(result.describe(), "HTTP_STATUS: HTTP 503")

    def test_failure_without_detail(self):
        result = ProbeResult.failure("https://a", ProbeFailure.TIMEOUT)
        self.assertEqual(result.describe(), "TIMEOUT")

    def test_exactly_one_of_latency_and_reason(self):
        with self.assertRaises(ValueError):
            ProbeResult(url="https://a")
        with self.assertRaises(ValueError):
            ProbeResult(url="https://a", latency_ms=1, reason=ProbeFailure.TLS)

    def test_to_dict_hides_resolved_url(self):
        result = ProbeResult.success("https://a/${KEY}", "https://a/secret", 5)
        data = result.to_dict()
        self.assertNotIn("resolved_url", data)
        self.assertNotIn("secret", str(data))
        self.assertEqual(data["latency_ms"], 5)


if __name__ == "__main__":
    unittest.main()

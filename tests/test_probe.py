"""Tests for the availability probe's fallback and retry policy."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from domain_snipe.errors import ProtocolError, RateLimitedByRegistry, TransportError
from domain_snipe.probe import AvailabilityProbe, ProbePolicy
from domain_snipe.rdap import RdapClient
from domain_snipe.registry import RegistryDirectory, RegistryEndpoint
from domain_snipe.verdict import Verdict, VerdictKind
from domain_snipe.whois import WhoisClient


@pytest.fixture
def directory():
    return RegistryDirectory({
        "com": RegistryEndpoint("com", rdap_base_url="https://rdap.example/", whois_host="whois.example"),
        "de": RegistryEndpoint("de", whois_host="whois.denic.example"),
    })


@pytest.fixture
def rdap():
    client = MagicMock(spec=RdapClient)
    client.query = AsyncMock(return_value=Verdict.available())
    return client


@pytest.fixture
def whois():
    client = MagicMock(spec=WhoisClient)
    client.query = AsyncMock(return_value=Verdict.registered())
    return client


def _probe(directory, rdap, whois, **policy) -> AvailabilityProbe:
    return AvailabilityProbe(directory, rdap, whois, ProbePolicy(retry_delay=0, **policy))


@pytest.mark.asyncio
async def test_rdap_is_primary_when_available(directory, rdap, whois):
    result = await _probe(directory, rdap, whois).check("abcd.com")
    assert result.verdict.kind == VerdictKind.AVAILABLE
    assert result.protocol_used == "RDAP"
    rdap.query.assert_awaited_once_with("abcd.com", "https://rdap.example/")
    whois.query.assert_not_awaited()


@pytest.mark.asyncio
async def test_whois_only_tld_uses_whois(directory, rdap, whois):
    result = await _probe(directory, rdap, whois).check("abcd.de")
    assert result.protocol_used == "WHOIS"
    assert result.verdict.is_registered
    whois.query.assert_awaited_once_with("abcd.de", "whois.denic.example", 43)
    rdap.query.assert_not_awaited()


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_fall_back(directory, rdap, whois):
    rdap.query.side_effect = TransportError("timeout")
    result = await _probe(directory, rdap, whois, attempts=3).check("abcd.com")
    assert rdap.query.await_count == 3
    assert result.protocol_used == "WHOIS"
    assert result.verdict.is_registered


@pytest.mark.asyncio
async def test_transient_failure_recovers_on_retry(directory, rdap, whois):
    rdap.query.side_effect = [TransportError("reset"), Verdict.available()]
    result = await _probe(directory, rdap, whois).check("abcd.com")
    assert rdap.query.await_count == 2
    assert result.verdict.is_available
    assert result.protocol_used == "RDAP"


@pytest.mark.asyncio
async def test_protocol_errors_are_not_retried(directory, rdap, whois):
    rdap.query.side_effect = ProtocolError("HTTP 500")
    result = await _probe(directory, rdap, whois).check("abcd.com")
    assert rdap.query.await_count == 1
    assert result.protocol_used == "WHOIS"


@pytest.mark.asyncio
async def test_all_protocols_throttled_is_unknown_rate_limited(directory, rdap, whois):
    rdap.query.side_effect = RateLimitedByRegistry("429")
    whois.query.side_effect = RateLimitedByRegistry("quota")
    result = await _probe(directory, rdap, whois).check("abcd.com")
    assert result.verdict.is_unknown
    assert result.verdict.rate_limited
    assert "RDAP" in result.verdict.reason and "WHOIS" in result.verdict.reason
    assert result.protocol_used == "WHOIS"


@pytest.mark.asyncio
async def test_all_protocols_failing_is_unknown_not_rate_limited(directory, rdap, whois):
    rdap.query.side_effect = ProtocolError("bad json")
    whois.query.side_effect = TransportError("refused")
    result = await _probe(directory, rdap, whois, attempts=2).check("abcd.com")
    assert result.verdict.is_unknown
    assert not result.verdict.rate_limited
    assert whois.query.await_count == 2


@pytest.mark.asyncio
async def test_prefer_whois_reverses_order(directory, rdap, whois):
    result = await _probe(directory, rdap, whois, prefer="whois").check("abcd.com")
    assert result.protocol_used == "WHOIS"
    rdap.query.assert_not_awaited()


@pytest.mark.asyncio
async def test_disabled_protocol_is_skipped(directory, rdap, whois):
    rdap.query.side_effect = TransportError("down")
    result = await _probe(directory, rdap, whois, use_whois=False, attempts=1).check("abcd.com")
    assert result.verdict.is_unknown
    whois.query.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_tld_is_unknown_without_protocol(directory, rdap, whois):
    result = await _probe(directory, rdap, whois).check("abcd.zz")
    assert result.verdict.is_unknown
    assert result.protocol_used is None
    assert ".zz" in result.verdict.reason


def test_plan_order(directory, rdap, whois):
    probe = _probe(directory, rdap, whois)
    assert probe.plan(directory.lookup("com")) == ["RDAP", "WHOIS"]
    assert probe.plan(directory.lookup("de")) == ["WHOIS"]


@pytest.mark.asyncio
async def test_redirect_loop_falls_back_to_whois(directory, whois):
    def handler(request):
        return httpx.Response(302, headers={"Location": str(request.url)})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        result = await _probe(directory, RdapClient(client), whois).check("loop.com")

    assert result.protocol_used == "WHOIS"
    assert result.verdict.is_registered


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_unknown(directory, rdap, whois):
    rdap.query.side_effect = RuntimeError("boom")
    whois.query.side_effect = RuntimeError("boom again")

    result = await _probe(directory, rdap, whois).check("abcd.com")

    assert result.verdict.is_unknown
    assert "RuntimeError" in result.verdict.reason
    assert not result.verdict.rate_limited
    rdap.query.assert_awaited_once()

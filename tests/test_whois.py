"""Tests for WHOIS queries against a local port-43 stand-in and response parsing."""

import asyncio
import contextlib
from datetime import date

import pytest

from domain_snipe.errors import ProtocolError, RateLimitedByRegistry, TransportError
from domain_snipe.verdict import VerdictKind
from domain_snipe.whois import (
    WhoisClient,
    classify_whois_response,
    parse_referral,
    parse_whois_date,
)

VERISIGN_NO_MATCH = """No match for "FREE.COM".
>>> Last update of whois database: 2025-06-01T12:00:00Z <<<

NOTICE: The expiration date displayed in this record is the date the
registrar's sponsorship of the domain name registration in the registry is
currently set to expire.
"""

VERISIGN_REGISTERED = """   Domain Name: EXAMPLE.COM
   Registry Domain ID: 2336799_DOMAIN_COM-VRSN
   Registrar: RESERVED-Internet Assigned Numbers Authority
   Creation Date: 1995-08-14T04:00:00Z
   Registry Expiry Date: 2026-01-01T00:00:00Z
   Domain Status: clientDeleteProhibited
"""


@contextlib.asynccontextmanager
async def whois_server(responses: dict[str, str]):
    """Serve canned answers keyed by the query line; yields (port, received queries)."""
    received: list[str] = []

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        line = (await reader.readline()).decode().strip()
        received.append(line)
        writer.write(responses.get(line, "").encode())
        await writer.drain()
        writer.close()
        await writer.wait_closed()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    async with server:
        yield port, received


# --- Network round trips ---

@pytest.mark.asyncio
async def test_no_match_response_is_available():
    async with whois_server({"free.com": VERISIGN_NO_MATCH}) as (port, received):
        verdict = await WhoisClient(timeout=2).query("free.com", "127.0.0.1", port)
    assert received == ["free.com"]
    assert verdict.kind == VerdictKind.AVAILABLE


@pytest.mark.asyncio
async def test_expiry_response_is_registered_with_date():
    async with whois_server({"example.com": "Registry Expiry Date: 2026-01-01\n"}) as (port, _):
        verdict = await WhoisClient(timeout=2).query("example.com", "127.0.0.1", port)
    assert verdict.kind == VerdictKind.REGISTERED
    assert verdict.expiry == date(2026, 1, 1)


@pytest.mark.asyncio
async def test_large_response_read_until_close():
    body = VERISIGN_REGISTERED + ("% filler line\n" * 2000)
    async with whois_server({"example.com": body}) as (port, _):
        text = await WhoisClient(timeout=2).query_raw("127.0.0.1", "example.com", port)
    assert text == body


@pytest.mark.asyncio
async def test_connection_refused_is_transport_error():
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    with pytest.raises(TransportError):
        await WhoisClient(timeout=2).query("x.com", "127.0.0.1", port)


@pytest.mark.asyncio
async def test_discover_server_follows_iana_referral():
    async with whois_server({"io": "domain: IO\nrefer: whois.nic.io\n"}) as (port, received):
        client = WhoisClient(timeout=2, iana_host="127.0.0.1", port=port)
        assert await client.discover_server("io") == "whois.nic.io"
        # Cached on the client
        assert await client.discover_server("io") == "whois.nic.io"
    assert received == ["io"]


@pytest.mark.asyncio
async def test_discover_server_returns_none_when_iana_unreachable():
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    client = WhoisClient(timeout=2, iana_host="127.0.0.1", port=port)
    assert await client.discover_server("zz") is None


# --- Classification ---

def test_registered_response_has_expiry_and_registrar():
    verdict = classify_whois_response(VERISIGN_REGISTERED)
    assert verdict.is_registered
    assert verdict.expiry == date(2026, 1, 1)
    assert verdict.registrar == "RESERVED-Internet Assigned Numbers Authority"


def test_registration_markers_without_expiry():
    verdict = classify_whois_response("Domain Status: ok\nName Server: ns1.example.net\n")
    assert verdict.is_registered
    assert verdict.expiry is None


def test_status_free_is_available():
    assert classify_whois_response("Domain: frei.de\nStatus: free\n").is_available


@pytest.mark.parametrize(
    "host, text",
    [
        ("whois.nic.uk", "\n    This domain name has not been registered.\n\n    WHOIS lookup made at 10:00:00 01-Jun-2025\n"),
        ("whois.domain-registry.nl", "abcqz.nl is free\n"),
        ("WHOIS.DOMAIN-REGISTRY.NL", "abcqz.nl is free\n"),
        ("whois.nic.io", "Domain abcqz.io is available for purchase\n"),
    ],
)
def test_registry_specific_not_found_is_available(host, text):
    assert classify_whois_response(text, host).is_available


def test_registry_specific_phrase_needs_its_host():
    with pytest.raises(ProtocolError):
        classify_whois_response("abcqz.nl is free\n", "whois.example")


def test_registered_nl_response_is_not_mistaken_for_free():
    text = "Domain name: example.nl\nStatus: active\nRegistrar:\n   Example B.V.\n"
    assert classify_whois_response(text, "whois.domain-registry.nl").is_registered


@pytest.mark.parametrize(
    "text",
    [
        "Your query rate limit has been exceeded",
        "WHOIS LIMIT EXCEEDED - quota exceeded, try again later",
    ],
)
def test_throttle_message_raises_rate_limited(text):
    with pytest.raises(RateLimitedByRegistry):
        classify_whois_response(text)


def test_unrecognized_response_is_protocol_error():
    with pytest.raises(ProtocolError, match="unrecognized"):
        classify_whois_response("hello there\n")


def test_paid_till_is_parsed():
    verdict = classify_whois_response("domain: EXAMPLE.RU\nstate: REGISTERED\npaid-till: 2027-03-04T21:00:00Z\n")
    assert verdict.expiry == date(2027, 3, 4)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2026-01-01", date(2026, 1, 1)),
        ("2026-01-01T00:00:00Z", date(2026, 1, 1)),
        ("2026-01-01 10:11:12 UTC", date(2026, 1, 1)),
        ("15-Jan-2027", date(2027, 1, 15)),
        ("01.02.2027", date(2027, 2, 1)),
        ("2027-03-04T05:06:07.0Z", date(2027, 3, 4)),
        ("2027-03-04T05:06:07+02:00", date(2027, 3, 4)),
        ("not a date", None),
    ],
)
def test_parse_whois_date(value, expected):
    assert parse_whois_date(value) == expected


def test_parse_referral_prefers_whois_line():
    text = "refer: whois.example\nwhois:        whois.verisign-grs.com\n"
    assert parse_referral(text) == "whois.verisign-grs.com"


def test_parse_referral_missing():
    assert parse_referral("domain: ZZ\nstatus: ACTIVE\n") is None

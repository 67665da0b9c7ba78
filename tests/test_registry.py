"""Tests for registry endpoint lookup and IANA discovery."""

import json

import httpx
import pytest

from domain_snipe.registry import (
    RDAP_BOOTSTRAP_URL,
    RegistryDirectory,
    RegistryEndpoint,
    fetch_rdap_bootstrap,
    parse_bootstrap,
)

BOOTSTRAP = {
    "services": [
        [["fun", "SPACE"], ["http://rdap.centralnic.com/fun", "https://rdap.centralnic.com/fun"]],
        [["com"], ["https://rdap.verisign.com/com/v1/"]],
    ]
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# --- Bootstrap parsing ---

def test_parse_bootstrap_prefers_https_and_adds_slash():
    result = parse_bootstrap(BOOTSTRAP)
    assert result["fun"] == "https://rdap.centralnic.com/fun/"
    assert result["com"] == "https://rdap.verisign.com/com/v1/"


def test_parse_bootstrap_lowercases_tlds():
    assert "space" in parse_bootstrap(BOOTSTRAP)


def test_parse_bootstrap_empty_services():
    assert parse_bootstrap({"services": []}) == {}
    assert parse_bootstrap({}) == {}


# --- Static table ---

def test_static_table_knows_popular_tlds():
    directory = RegistryDirectory()
    com = directory.lookup("com")
    assert com.rdap_base_url == "https://rdap.verisign.com/com/v1/"
    assert com.whois_host == "whois.verisign-grs.com"
    assert com.whois_port == 43
    assert directory.lookup("IO").whois_host == "whois.nic.io"


def test_unknown_tld_lookup_is_none():
    assert RegistryDirectory().lookup("zz") is None


# --- Discovery ---

@pytest.mark.asyncio
async def test_fetch_bootstrap_caches_response(tmp_path):
    cache = tmp_path / "cache" / "bootstrap.json"
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(str(request.url))
        return httpx.Response(200, json=BOOTSTRAP)

    async with _client(handler) as client:
        first = await fetch_rdap_bootstrap(client, cache)
        second = await fetch_rdap_bootstrap(client, cache)

    assert requests == [RDAP_BOOTSTRAP_URL]
    assert first == second
    assert json.loads(cache.read_text()) == BOOTSTRAP


@pytest.mark.asyncio
async def test_resolve_fills_missing_rdap_url(tmp_path):
    directory = RegistryDirectory({})

    async with _client(lambda request: httpx.Response(200, json=BOOTSTRAP)) as client:
        await directory.resolve(["fun"], client, cache_file=tmp_path / "b.json")

    endpoint = directory.lookup("fun")
    assert endpoint.rdap_base_url == "https://rdap.centralnic.com/fun/"
    assert endpoint.whois_host is None


@pytest.mark.asyncio
async def test_resolve_keeps_existing_whois_host(tmp_path):
    directory = RegistryDirectory({"fun": RegistryEndpoint("fun", whois_host="whois.nic.fun")})

    async with _client(lambda request: httpx.Response(200, json=BOOTSTRAP)) as client:
        await directory.resolve(["fun"], client, cache_file=tmp_path / "b.json")

    endpoint = directory.lookup("fun")
    assert endpoint.whois_host == "whois.nic.fun"
    assert endpoint.rdap_base_url is not None


@pytest.mark.asyncio
async def test_resolve_survives_bootstrap_failure(tmp_path):
    directory = RegistryDirectory({})

    async with _client(lambda request: httpx.Response(503)) as client:
        await directory.resolve(["fun"], client, cache_file=tmp_path / "b.json")

    assert directory.lookup("fun") is None


@pytest.mark.asyncio
async def test_resolve_survives_unwritable_cache(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    directory = RegistryDirectory({})

    async with _client(lambda request: httpx.Response(200, json=BOOTSTRAP)) as client:
        await directory.resolve(["fun"], client, cache_file=blocker / "b.json")

    assert directory.lookup("fun") is None


@pytest.mark.asyncio
async def test_resolve_skips_network_when_table_is_complete(tmp_path):
    def handler(request):
        raise AssertionError("no request expected")

    directory = RegistryDirectory()
    async with _client(handler) as client:
        await directory.resolve(["com", "net"], client, cache_file=tmp_path / "b.json")
    assert not (tmp_path / "b.json").exists()

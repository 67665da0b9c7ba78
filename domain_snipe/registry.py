"""Where to ask about a TLD: RDAP base URLs and WHOIS hosts."""

import json
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, replace
from pathlib import Path

import httpx

from domain_snipe.whois import WhoisClient

logger = logging.getLogger(__name__)

RDAP_BOOTSTRAP_URL = "https://data.iana.org/rdap/dns.json"
RDAP_CACHE_DIR = Path.home() / ".cache" / "domain-snipe"
RDAP_CACHE_FILE = RDAP_CACHE_DIR / "rdap_bootstrap.json"
RDAP_CACHE_MAX_AGE = 86400  # 1 day in seconds
IANA_WHOIS_HOST = "whois.iana.org"
WHOIS_PORT = 43


@dataclass(frozen=True)
class RegistryEndpoint:
    tld: str
    rdap_base_url: str | None = None
    whois_host: str | None = None
    whois_port: int = WHOIS_PORT


def _endpoint(tld: str, rdap: str | None, whois: str | None) -> RegistryEndpoint:
    return RegistryEndpoint(tld=tld, rdap_base_url=rdap, whois_host=whois)


STATIC_ENDPOINTS: dict[str, RegistryEndpoint] = {
    e.tld: e
    for e in [
        _endpoint("com", "https://rdap.verisign.com/com/v1/", "whois.verisign-grs.com"),
        _endpoint("net", "https://rdap.verisign.com/net/v1/", "whois.verisign-grs.com"),
        _endpoint("org", "https://rdap.org.org/", "whois.pir.org"),
        _endpoint("io", "https://rdap.nic.io/", "whois.nic.io"),
        _endpoint("ai", "https://rdap.nic.ai/", "whois.nic.ai"),
        _endpoint("co", "https://rdap.nic.co/", "whois.nic.co"),
        _endpoint("me", "https://rdap.nic.me/", "whois.nic.me"),
        _endpoint("xyz", "https://rdap.nic.xyz/", "whois.nic.xyz"),
        _endpoint("tech", "https://rdap.nic.tech/", "whois.nic.tech"),
        _endpoint("app", "https://rdap.nic.google/", "whois.nic.google"),
        _endpoint("dev", "https://rdap.nic.google/", "whois.nic.google"),
        _endpoint("info", None, "whois.nic.info"),
        _endpoint("biz", None, "whois.nic.biz"),
        _endpoint("us", None, "whois.nic.us"),
        _endpoint("de", None, "whois.denic.de"),
        _endpoint("uk", None, "whois.nic.uk"),
        _endpoint("nl", None, "whois.domain-registry.nl"),
        _endpoint("ru", None, "whois.tcinet.ru"),
    ]
}


# --- RDAP bootstrap (IANA) ---


def _cache_is_valid(cache_file: Path) -> bool:
    """Check if the cached RDAP bootstrap file exists and is fresh."""
    if not cache_file.exists():
        return False
    age = time.time() - cache_file.stat().st_mtime
    return age < RDAP_CACHE_MAX_AGE


def parse_bootstrap(data: dict) -> dict[str, str]:
    """Parse IANA RDAP bootstrap JSON into a TLD → RDAP base URL mapping.

    Each service entry is [tld_list, url_list]. We pick the first HTTPS URL
    if available, otherwise the first URL.
    """
    tld_map: dict[str, str] = {}
    for tld_list, url_list in data.get("services", []):
        if not url_list:
            continue
        url = next((u for u in url_list if u.startswith("https://")), url_list[0])
        if not url.endswith("/"):
            url += "/"
        for tld in tld_list:
            tld_map[tld.lower()] = url
    return tld_map


async def fetch_rdap_bootstrap(
    client: httpx.AsyncClient, cache_file: Path = RDAP_CACHE_FILE
) -> dict[str, str]:
    """Fetch the IANA RDAP bootstrap file and return a TLD → RDAP URL mapping.

    Uses a local cache with 1-day expiry.
    """
    if _cache_is_valid(cache_file):
        return parse_bootstrap(json.loads(cache_file.read_text()))

    response = await client.get(RDAP_BOOTSTRAP_URL, timeout=30.0)
    response.raise_for_status()
    data = response.json()

    cache_file.parent.mkdir(parents=True, exist_ok=True)
    cache_file.write_text(json.dumps(data))
    return parse_bootstrap(data)


class RegistryDirectory:
    """TLD → RegistryEndpoint lookups, seeded from the static table.

    `resolve` fills in TLDs the table does not know (or knows only partly)
    from the IANA RDAP bootstrap and WHOIS referrals.
    """

    def __init__(self, endpoints: dict[str, RegistryEndpoint] | None = None):
        self._endpoints = dict(STATIC_ENDPOINTS if endpoints is None else endpoints)

    def lookup(self, tld: str) -> RegistryEndpoint | None:
        return self._endpoints.get(tld.lower())

    def register(self, endpoint: RegistryEndpoint) -> None:
        self._endpoints[endpoint.tld] = endpoint

    async def resolve(
        self,
        tlds: Iterable[str],
        client: httpx.AsyncClient,
        whois: WhoisClient | None = None,
        cache_file: Path = RDAP_CACHE_FILE,
    ) -> None:
        """Discover missing RDAP URLs and WHOIS hosts for `tlds`.

        Discovery failures are logged; the TLD is then probed with whatever
        is known, and ends up `Unknown` if nothing is.
        """
        tlds = list(tlds)
        missing_rdap = [t for t in tlds if not (self.lookup(t) and self.lookup(t).rdap_base_url)]
        missing_whois = [t for t in tlds if not (self.lookup(t) and self.lookup(t).whois_host)]

        if missing_rdap:
            try:
                bootstrap = await fetch_rdap_bootstrap(client, cache_file)
            except (httpx.HTTPError, ValueError, OSError) as exc:
                logger.warning("RDAP bootstrap unavailable: %s", exc)
                bootstrap = {}
            for tld in missing_rdap:
                if tld in bootstrap:
                    self._merge(tld, rdap_base_url=bootstrap[tld])

        if missing_whois and whois is not None:
            for tld in missing_whois:
                host = await whois.discover_server(tld)
                if host:
                    self._merge(tld, whois_host=host)
                else:
                    logger.warning("No WHOIS server found for .%s", tld)

    def _merge(self, tld: str, **changes) -> None:
        current = self.lookup(tld) or RegistryEndpoint(tld=tld)
        self._endpoints[tld] = replace(current, **changes)
        logger.debug("Resolved .%s → %s", tld, self._endpoints[tld])

"""WHOIS (port 43) availability checks and response classification."""

import asyncio
import logging
import re
from datetime import date, datetime

from domain_snipe.errors import ProtocolError, RateLimitedByRegistry, TransportError
from domain_snipe.verdict import Verdict

logger = logging.getLogger(__name__)

IANA_WHOIS_HOST = "whois.iana.org"
WHOIS_PORT = 43
WHOIS_TIMEOUT = 10.0
MAX_RESPONSE_BYTES = 1 << 20

RATE_LIMIT_PHRASES = (
    "rate limit",
    "too many requests",
    "quota exceeded",
    "try again later",
    "exceeded the maximum",
    "query limit",
)

AVAILABLE_PHRASES = (
    "no match",
    "not found",
    "no entries found",
    "domain not found",
    "domain available",
    "not registered",
    "available for registration",
    "no data found",
)

# Registry-specific "not found" answers too loose to match on every server.
NOT_FOUND_BY_HOST = {
    "whois.nic.uk": ("this domain name has not been registered",),
    "whois.domain-registry.nl": (" is free",),
    "whois.nic.io": ("is available for purchase",),
    "whois.nic.ai": ("is available for purchase",),
}

FREE_STATUS_LINES = ("status: free", "status: available", "status: not registered")

# Registration markers only count at the start of a line, so legal
# boilerplate in "no match" responses cannot trip them.
TAKEN_MARKERS = (
    "registrar:",
    "creation date:",
    "created:",
    "registered:",
    "name server:",
    "nameserver:",
    "nserver:",
    "domain status:",
    "status:",
)

_EXPIRY_RE = re.compile(
    r"^\s*(?:Registry Expiry Date|Registrar Registration Expiration Date|Expiration Date"
    r"|Expiry Date|Expires On|Expires|paid-till)\s*:\s*(?P<value>.+?)\s*$",
    re.IGNORECASE | re.MULTILINE,
)
_REGISTRAR_RE = re.compile(r"^\s*Registrar(?: Name)?\s*:\s*(?P<value>.+?)\s*$", re.IGNORECASE | re.MULTILINE)

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S UTC",
    "%Y-%m-%d %H:%M:%S",
    "%d-%b-%Y",
    "%d.%m.%Y",
    "%Y.%m.%d",
    "%Y/%m/%d",
)


def parse_whois_date(value: str) -> date | None:
    """Parse the date formats registries commonly use; None if none match."""
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    # ISO timestamps with offsets or fractions we don't list explicitly
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_referral(iana_response: str) -> str | None:
    """Extract the authoritative WHOIS host from an IANA answer.

    Prefers a `whois:` line, then a `refer:` line.
    """
    for key in ("whois:", "refer:"):
        for line in iana_response.splitlines():
            line = line.strip()
            if line.lower().startswith(key):
                host = line.split(":", 1)[1].strip()
                if host:
                    return host
    return None


def classify_whois_response(text: str, host: str | None = None) -> Verdict:
    """Classify a raw WHOIS response from `host`.

    `host` selects extra registry-specific "not found" phrases.

    Raises:
        RateLimitedByRegistry: The server refused because of throttling.
        ProtocolError: Nothing in the response is recognizable.
    """
    lower = text.lower()

    if any(phrase in lower for phrase in RATE_LIMIT_PHRASES):
        raise RateLimitedByRegistry("WHOIS server is throttling queries")

    lines = [line.strip().lower() for line in lower.splitlines()]
    if any(line in FREE_STATUS_LINES for line in lines):
        return Verdict.available()

    is_taken = any(line.startswith(TAKEN_MARKERS) for line in lines)
    phrases = AVAILABLE_PHRASES + NOT_FOUND_BY_HOST.get((host or "").lower(), ())
    is_available = any(phrase in lower for phrase in phrases)

    registrar_match = _REGISTRAR_RE.search(text)
    registrar = registrar_match.group("value") if registrar_match else None

    expiry_match = _EXPIRY_RE.search(text)
    if expiry_match:
        return Verdict.registered(parse_whois_date(expiry_match.group("value")), registrar)

    if is_available and not is_taken:
        return Verdict.available()
    if is_taken:
        return Verdict.registered(None, registrar)

    raise ProtocolError("unrecognized WHOIS response format")


class WhoisClient:
    """Raw WHOIS over TCP/43 via asyncio streams."""

    def __init__(self, timeout: float = WHOIS_TIMEOUT, iana_host: str = IANA_WHOIS_HOST, port: int = WHOIS_PORT):
        self.timeout = timeout
        self.iana_host = iana_host
        self.port = port
        self._referrals: dict[str, str | None] = {}

    async def query_raw(self, host: str, query: str, port: int | None = None) -> str:
        """Send `query` to `host` and read the answer until the server closes.

        Raises:
            TransportError: Connect, write or read failed or timed out.
        """
        port = port or self.port
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=self.timeout
            )
        except (OSError, TimeoutError) as exc:
            raise TransportError(f"WHOIS connect to {host}:{port} failed: {exc!r}") from exc

        try:
            writer.write(f"{query}\r\n".encode())
            await asyncio.wait_for(writer.drain(), timeout=self.timeout)
            data = await asyncio.wait_for(self._read_all(reader), timeout=self.timeout)
        except (OSError, TimeoutError) as exc:
            raise TransportError(f"WHOIS exchange with {host} failed: {exc!r}") from exc
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

        return data.decode("utf-8", errors="replace")

    @staticmethod
    async def _read_all(reader: asyncio.StreamReader) -> bytes:
        chunks = []
        size = 0
        while size < MAX_RESPONSE_BYTES:
            chunk = await reader.read(4096)
            if not chunk:
                break
            chunks.append(chunk)
            size += len(chunk)
        return b"".join(chunks)

    async def query(self, domain: str, host: str, port: int | None = None) -> Verdict:
        text = await self.query_raw(host, domain, port)
        return classify_whois_response(text, host)

    async def discover_server(self, tld: str) -> str | None:
        """Ask IANA which WHOIS server is authoritative for `tld`. Cached per client."""
        if tld in self._referrals:
            return self._referrals[tld]
        try:
            answer = await self.query_raw(self.iana_host, tld)
        except TransportError as exc:
            logger.warning("IANA WHOIS referral for .%s failed: %s", tld, exc)
            return None
        host = parse_referral(answer)
        self._referrals[tld] = host
        return host

"""RDAP availability checks against a registry's RDAP service."""

import logging
from datetime import date

import httpx

from domain_snipe.errors import ProtocolError, RateLimitedByRegistry, TransportError
from domain_snipe.verdict import Verdict
from domain_snipe.whois import parse_whois_date

logger = logging.getLogger(__name__)

RDAP_QUERY_TIMEOUT = 10.0
RDAP_ACCEPT = "application/rdap+json, application/json"


def _event_date(data: dict, action: str) -> date | None:
    for event in data.get("events") or []:
        if isinstance(event, dict) and event.get("eventAction") == action:
            return parse_whois_date(str(event.get("eventDate", "")))
    return None


def _registrar_name(data: dict) -> str | None:
    """Registrar's vCard `fn` from the entity with the registrar role."""
    for entity in data.get("entities") or []:
        if not isinstance(entity, dict) or "registrar" not in (entity.get("roles") or []):
            continue
        vcard = entity.get("vcardArray")
        if not isinstance(vcard, list) or len(vcard) < 2 or not isinstance(vcard[1], list):
            continue
        properties = [p for p in vcard[1] if isinstance(p, list) and len(p) >= 4]
        for prop in properties:
            if prop[0] == "fn" and isinstance(prop[3], str):
                return prop[3]
    return None


def classify_rdap_response(data: dict) -> Verdict:
    """Any RDAP domain object means the name is registered."""
    return Verdict.registered(_event_date(data, "expiration"), _registrar_name(data))


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


class RdapClient:
    """Queries `{base_url}domain/{domain}` on a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = RDAP_QUERY_TIMEOUT):
        self._client = client
        self.timeout = timeout

    async def query(self, domain: str, base_url: str) -> Verdict:
        """Return the verdict for `domain`.

        Raises:
            TransportError: The request never got an HTTP answer.
            ProtocolError: Redirect loops, undecodable bodies and other broken exchanges.
            RateLimitedByRegistry: HTTP 429.
            ProtocolError: Any unexpected status, or a body that is not a JSON object.
        """
        if not base_url.endswith("/"):
            base_url += "/"
        url = f"{base_url}domain/{domain}"
        try:
            response = await self._client.get(
                url,
                timeout=self.timeout,
                follow_redirects=True,
                headers={"Accept": RDAP_ACCEPT},
            )
        except httpx.TransportError as exc:
            raise TransportError(f"RDAP request to {url} failed: {exc!r}") from exc
        except httpx.HTTPError as exc:
            raise ProtocolError(f"RDAP request to {url} could not be completed: {exc!r}") from exc

        if response.status_code == 404:
            return Verdict.available()
        if response.status_code == 429:
            raise RateLimitedByRegistry(f"RDAP rate limit for {domain}", _retry_after(response))
        if response.status_code != 200:
            raise ProtocolError(f"RDAP returned HTTP {response.status_code} for {domain}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError(f"RDAP returned malformed JSON for {domain}") from exc
        if not isinstance(data, dict):
            raise ProtocolError(f"RDAP returned a non-object body for {domain}")

        return classify_rdap_response(data)

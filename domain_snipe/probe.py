"""Availability probing with protocol fallback and bounded retries."""

import logging
from dataclasses import dataclass

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from domain_snipe.errors import ProbeError, RateLimitedByRegistry, TransportError, ValidationError
from domain_snipe.rdap import RdapClient
from domain_snipe.registry import RegistryDirectory, RegistryEndpoint
from domain_snipe.types import CheckMethod, ProtocolPreference
from domain_snipe.validator import split_domain
from domain_snipe.verdict import ScanResult, Verdict
from domain_snipe.whois import WhoisClient

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0


@dataclass
class ProbePolicy:
    prefer: ProtocolPreference = "rdap"
    use_rdap: bool = True
    use_whois: bool = True
    attempts: int = DEFAULT_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY


class AvailabilityProbe:
    """Decides a verdict for one domain.

    The preferred protocol runs first when the registry supports it; the
    other one is tried when the first fails, is throttled or can't classify
    the answer. Only transport failures are retried.
    Per-candidate errors never escape `check`: they become `Unknown`.
    """

    def __init__(
        self,
        directory: RegistryDirectory,
        rdap: RdapClient | None,
        whois: WhoisClient | None,
        policy: ProbePolicy | None = None,
    ):
        self.directory = directory
        self.rdap = rdap
        self.whois = whois
        self.policy = policy or ProbePolicy()

    def plan(self, endpoint: RegistryEndpoint) -> list[CheckMethod]:
        """Protocols to attempt for `endpoint`, in order."""
        methods: list[CheckMethod] = []
        if self.policy.use_rdap and self.rdap is not None and endpoint.rdap_base_url:
            methods.append("RDAP")
        if self.policy.use_whois and self.whois is not None and endpoint.whois_host:
            methods.append("WHOIS")
        if self.policy.prefer == "whois":
            methods.reverse()
        return methods

    async def _attempt(self, method: CheckMethod, domain: str, endpoint: RegistryEndpoint) -> Verdict:
        match method:
            case "RDAP":
                return await self.rdap.query(domain, endpoint.rdap_base_url)
            case "WHOIS":
                return await self.whois.query(domain, endpoint.whois_host, endpoint.whois_port)
        raise ValueError(f"unknown protocol {method!r}")

    async def _attempt_with_retries(
        self, method: CheckMethod, domain: str, endpoint: RegistryEndpoint
    ) -> Verdict:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(self.policy.attempts, 1)),
            wait=wait_fixed(self.policy.retry_delay),
            retry=retry_if_exception_type(TransportError),
            reraise=True,
        )
        return await retrying(self._attempt, method, domain, endpoint)

    async def check(self, domain: str) -> ScanResult:
        try:
            _, tld = split_domain(domain)
        except ValidationError as exc:
            return ScanResult(domain, Verdict.unknown(exc.message), None)

        endpoint = self.directory.lookup(tld)
        methods = self.plan(endpoint) if endpoint else []
        if not methods:
            return ScanResult(domain, Verdict.unknown(f"no RDAP or WHOIS server for .{tld}"), None)

        reasons: list[str] = []
        rate_limited = False
        for method in methods:
            try:
                verdict = await self._attempt_with_retries(method, domain, endpoint)
            except RateLimitedByRegistry as exc:
                rate_limited = True
                reasons.append(f"{method}: {exc}")
                logger.warning("%s throttled on %s", method, domain)
            except ProbeError as exc:
                reasons.append(f"{method}: {exc}")
                logger.debug("%s failed for %s: %s", method, domain, exc)
            except Exception as exc:
                reasons.append(f"{method}: unexpected error {exc!r}")
                logger.warning("%s crashed on %s: %r", method, domain, exc, exc_info=True)
            else:
                logger.debug("%s → %s via %s", domain, verdict.kind.value, method)
                return ScanResult(domain, verdict, method)

        return ScanResult(domain, Verdict.unknown("; ".join(reasons), rate_limited=rate_limited), methods[-1])

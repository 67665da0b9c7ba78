"""Error taxonomy for scanning, probing and checkpoint persistence."""


class SnipeError(Exception):
    """Base class for every error raised by domain_snipe."""


class ConfigError(SnipeError):
    """Invalid scan parameters, CLI flags or configuration file."""


class ValidationError(SnipeError):
    """A label/TLD pair that can never be a valid domain name."""

    def __init__(self, domain: str, message: str):
        super().__init__(f"{domain}: {message}")
        self.domain = domain
        self.message = message


class ProbeError(SnipeError):
    """A single protocol attempt failed. Never escapes the probe layer."""


class TransportError(ProbeError):
    """Connect, DNS or timeout failure. Retried up to a bounded attempt count."""


class ProtocolError(ProbeError):
    """The registry answered, but the answer could not be classified."""


class RateLimitedByRegistry(ProbeError):
    """HTTP 429 or a WHOIS throttle message."""

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class PersistenceError(SnipeError):
    """Checkpoint read/write failure. Fatal to the run."""


class CheckpointSchemaError(PersistenceError):
    """Checkpoint file is corrupt or was written with another schema version."""


class CheckpointMismatchError(PersistenceError):
    """Checkpoint exists but was created for different scan parameters."""


class ScanLockedError(PersistenceError):
    """Another live process holds the checkpoint lock."""

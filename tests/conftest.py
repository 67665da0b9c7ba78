import io

import pytest
from rich.console import Console

from domain_snipe.verdict import ScanResult, Verdict


def _capture_console() -> tuple[Console, io.StringIO]:
    """Create a Console that writes to a StringIO for test capturing."""
    buf = io.StringIO()
    return Console(file=buf, force_terminal=True, width=120), buf


class FakeProbe:
    """Answers from a domain → Verdict map (default: available) and records every call."""

    def __init__(self, verdicts: dict | None = None, default: Verdict | None = None):
        self.verdicts = verdicts or {}
        self.default = default or Verdict.available()
        self.calls: list[str] = []

    async def __call__(self, domain: str) -> ScanResult:
        self.calls.append(domain)
        verdict = self.verdicts.get(domain, self.default)
        if callable(verdict):
            verdict = verdict()
        return ScanResult(domain, verdict, None if verdict.is_unknown else "RDAP")


@pytest.fixture
def fake_probe() -> FakeProbe:
    return FakeProbe()

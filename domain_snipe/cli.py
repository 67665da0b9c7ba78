"""Domain Snipe CLI - scan label spaces for unregistered or expiring domains."""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

import httpx
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeRemainingColumn
from rich.table import Table
from rich.text import Text

from domain_snipe.candidates import IMPLIED_LENGTHS, ScanMode
from domain_snipe.config import SnipeSettings, load_settings
from domain_snipe.errors import ConfigError, SnipeError, ValidationError
from domain_snipe.log import configure_logging
from domain_snipe.orchestrator import ScanOrchestrator, ScanParams, ScanProgress
from domain_snipe.probe import AvailabilityProbe, ProbePolicy
from domain_snipe.rdap import RdapClient
from domain_snipe.registry import RegistryDirectory
from domain_snipe.scheduler import RateLimitConfig
from domain_snipe.state import RecheckReport, ScanCheckpoint, ScanStateStore
from domain_snipe.suggestions import (
    SuggestionResult,
    check_suggestions,
    load_suggestions,
    suggestions_checkpoint,
)
from domain_snipe.validator import split_domain, validate
from domain_snipe.verdict import ScanResult, VerdictKind
from domain_snipe.whois import WhoisClient

logger = logging.getLogger(__name__)

console = Console()

USER_AGENT = "domain-snipe/0.1"
SIX_LETTER_LENGTH = 6
MAX_ROWS = 50

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FORCED = 130

STATUS_STYLES = {
    VerdictKind.AVAILABLE: "bold green",
    VerdictKind.UNKNOWN: "yellow",
    VerdictKind.REGISTERED: "red",
}


def _create_progress(label: str, *, output_console: Console) -> Progress:
    """Create a standardized progress bar for long-running checks."""
    return Progress(
        TextColumn(f"[bold blue]{label}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=output_console,
    )


# --- Argument parsing ---


def _add_rate_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--concurrency", type=int, metavar="N", help="Probes in flight per batch (default: 20)")
    parser.add_argument("--rate", type=int, metavar="MS", help="Delay between batches in ms (default: 500)")
    parser.add_argument("--expiring", type=int, metavar="DAYS", help="Expiring-soon threshold in days (default: 7)")
    parser.add_argument("--prefer", choices=("rdap", "whois"), help="Protocol to try first (default: rdap)")
    parser.add_argument("--config", type=Path, metavar="FILE", help="TOML settings file (default: ./snipe.toml)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")


def build_scan_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snipe",
        description="Scan generated domain names for availability and upcoming expiry.",
        epilog="Subcommands: 'snipe recheck FILE...' and 'snipe check SUGGESTIONS.json'.",
    )
    parser.add_argument("--length", type=int, metavar="N", help="Label length (overrides the mode's default)")

    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("-w", "--words", action="store_true", help="Curated dictionary words (default length 5)")
    modes.add_argument("-R", "--readable", action="store_true", help="Readable brandable names (default length 5)")
    modes.add_argument("-p", "--pronounceable", action="store_true", help="Pronounceable patterns (default length 4)")
    modes.add_argument("--six", action="store_true", help="Six-letter pronounceable patterns")

    parser.add_argument("--tld", metavar="CSV", help="Comma-separated TLDs (default: com)")
    parser.add_argument("--alphanumeric", action="store_true", help="Allow digits in generated labels")

    resume = parser.add_mutually_exclusive_group()
    resume.add_argument("--resume", action="store_true", help="Continue the matching checkpoint")
    resume.add_argument("--fresh", action="store_true", help="Discard an existing checkpoint and start over")

    parser.add_argument("--state", type=Path, metavar="FILE", help="Checkpoint file (default: output/snipe_<mode>.json)")
    parser.add_argument("--wordlist", type=Path, metavar="FILE", help="Word file replacing the built-in dictionary")
    parser.add_argument("--keep-registered", action="store_true", help="Record every registered domain too")
    _add_rate_flags(parser)
    return parser


def build_recheck_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snipe recheck",
        description="Re-probe available and expiring results of existing result files.",
    )
    parser.add_argument("files", nargs="+", type=Path, metavar="FILE", help="Result/checkpoint files")
    _add_rate_flags(parser)
    return parser


def build_check_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snipe check",
        description="Check availability of a JSON list of suggested domains.",
    )
    parser.add_argument("file", type=Path, metavar="SUGGESTIONS", help="JSON file of suggestions")
    parser.add_argument("--output", type=Path, metavar="FILE", help="Write results to a JSON file that recheck accepts")
    _add_rate_flags(parser)
    return parser


def resolve_mode(args: argparse.Namespace) -> ScanMode:
    """Pick the scan mode; an explicit --length always wins over the implied one."""
    if args.six:
        kind, implied = "pronounceable", SIX_LETTER_LENGTH
    elif args.words or (args.wordlist and not (args.readable or args.pronounceable)):
        kind, implied = "words", IMPLIED_LENGTHS["words"]
    elif args.readable:
        kind, implied = "readable", IMPLIED_LENGTHS["readable"]
    elif args.pronounceable:
        kind, implied = "pronounceable", IMPLIED_LENGTHS["pronounceable"]
    else:
        kind, implied = "full", IMPLIED_LENGTHS["full"]

    if args.wordlist and kind != "words":
        raise ConfigError("--wordlist only applies to the word-list mode (-w)")
    length = args.length if args.length is not None else implied
    return ScanMode(kind, length, args.alphanumeric)


def parse_tlds(value: str | Sequence[str]) -> list[str]:
    items = value.split(",") if isinstance(value, str) else list(value)
    tlds: list[str] = []
    for item in items:
        tld = item.strip().lower().lstrip(".")
        if not tld or tld in tlds:
            continue
        try:
            validate("a", tld)
        except ValidationError as exc:
            raise ConfigError(f"Invalid TLD '{tld}'") from exc
        tlds.append(tld)
    if not tlds:
        raise ConfigError("No TLDs given")
    return tlds


def _settings_for(args: argparse.Namespace) -> SnipeSettings:
    settings = load_settings(args.config)
    return settings.merged(
        concurrency=args.concurrency,
        batch_delay_ms=args.rate,
        expiring_days=args.expiring,
        prefer=args.prefer,
        keep_registered=getattr(args, "keep_registered", None) or None,
    )


def _rate_config(settings: SnipeSettings) -> RateLimitConfig:
    return RateLimitConfig(
        concurrency=settings.concurrency,
        batch_delay_ms=settings.batch_delay_ms,
        requeue_limit=settings.requeue_limit,
        max_backoff_ms=settings.max_backoff_ms,
    )


def _read_wordlist(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise ConfigError(f"Could not read word list {path}: {exc}") from exc


# --- Runtime wiring ---


@contextlib.asynccontextmanager
async def _probe_session(settings: SnipeSettings, tlds: Sequence[str]) -> AsyncIterator[AvailabilityProbe]:
    """One shared HTTP client and registry directory for the whole run."""
    async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
        whois = WhoisClient(timeout=settings.timeout)
        directory = RegistryDirectory()
        await directory.resolve(tlds, client, whois if settings.enable_whois else None)
        policy = ProbePolicy(
            prefer=settings.prefer,
            use_rdap=settings.enable_rdap,
            use_whois=settings.enable_whois,
            attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay,
        )
        yield AvailabilityProbe(directory, RdapClient(client, settings.timeout), whois, policy)


def _install_interrupt(cancel: asyncio.Event) -> None:
    """First Ctrl-C finishes the current batch and saves; a second one aborts."""
    loop = asyncio.get_running_loop()

    def _on_sigint() -> None:
        console.print("[yellow]Interrupted: finishing current batch and saving...[/yellow]")
        cancel.set()
        loop.remove_signal_handler(signal.SIGINT)

    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, _on_sigint)


async def _run_scan(args: argparse.Namespace, settings: SnipeSettings) -> ScanCheckpoint:
    mode = resolve_mode(args)
    tlds = parse_tlds(args.tld) if args.tld else parse_tlds(settings.tlds)
    params = ScanParams(
        mode=mode,
        tlds=tlds,
        rate_config=_rate_config(settings),
        expiring_days=settings.expiring_days,
        keep_registered=settings.keep_registered,
        state_path=args.state,
        words=_read_wordlist(args.wordlist) if args.wordlist else None,
    )
    store = ScanStateStore(settings.output_dir)
    cancel = asyncio.Event()
    _install_interrupt(cancel)

    console.print(f"Scanning [bold]{mode.describe()}[/bold] across {', '.join('.' + t for t in tlds)}")
    async with _probe_session(settings, tlds) as probe:
        with _create_progress("Scanning", output_console=console) as progress:
            task = progress.add_task("scan", total=None)

            def on_progress(p: ScanProgress) -> None:
                progress.update(task, completed=p.cursor, total=p.total)

            orchestrator = ScanOrchestrator(store, probe.check, on_progress=on_progress)
            checkpoint = await orchestrator.scan(params, resume=args.resume, fresh=args.fresh, cancel=cancel)

    display_checkpoint(checkpoint, settings.expiring_days)
    if not checkpoint.completed:
        console.print("[yellow]Scan paused.[/yellow] Run again with --resume to continue.")
    return checkpoint


async def _run_recheck(args: argparse.Namespace, settings: SnipeSettings) -> list[RecheckReport]:
    store = ScanStateStore(settings.output_dir)
    tlds: list[str] = []
    for path in args.files:
        for tld in store.load(path).tlds:
            if tld not in tlds:
                tlds.append(tld)

    cancel = asyncio.Event()
    _install_interrupt(cancel)
    reports = []
    async with _probe_session(settings, tlds) as probe:
        orchestrator = ScanOrchestrator(store, probe.check)
        for path in args.files:
            if cancel.is_set():
                break
            report = await orchestrator.recheck(path, settings.expiring_days, _rate_config(settings), cancel=cancel)
            display_recheck(report)
            reports.append(report)
    return reports


async def _run_check(args: argparse.Namespace, settings: SnipeSettings) -> list[SuggestionResult]:
    records = load_suggestions(args.file)
    tlds: list[str] = []
    for record in records:
        with contextlib.suppress(ValidationError):
            tld = split_domain(record["domain"])[1]
            if tld not in tlds:
                tlds.append(tld)

    rate_config = _rate_config(settings)
    cancel = asyncio.Event()
    _install_interrupt(cancel)
    async with _probe_session(settings, tlds) as probe:
        results = await check_suggestions(records, probe.check, rate_config, cancel=cancel)

    display_suggestions(results)
    if args.output:
        ScanStateStore(args.output.parent).save(suggestions_checkpoint(results, rate_config), args.output)
        console.print(f"Results written to {args.output}")
    return results


# --- Output ---


def _status_text(result: ScanResult) -> Text:
    return Text(result.verdict.kind.value, style=STATUS_STYLES.get(result.verdict.kind, ""))


def display_checkpoint(
    checkpoint: ScanCheckpoint, expiring_days: int, output_console: Console | None = None
) -> None:
    """Show available and expiring domains plus a one-line summary."""
    out = output_console or console
    available = checkpoint.available
    expiring = checkpoint.expiring(expiring_days)
    unknown = checkpoint.unknown

    rows = available + sorted(expiring, key=lambda r: r.verdict.expiry)
    if rows:
        table = Table(title="Snipe Results", show_lines=False)
        table.add_column("Domain", style="bold")
        table.add_column("Status")
        table.add_column("Expiry")
        table.add_column("Via")
        for r in rows[:MAX_ROWS]:
            domain_style = "bold green" if r.verdict.is_available else ""
            expiry = r.verdict.expiry.isoformat() if r.verdict.expiry else ""
            table.add_row(Text(r.domain, style=domain_style), _status_text(r), expiry, r.protocol_used or "")
        out.print(table)
        if len(rows) > MAX_ROWS:
            out.print(f"... and {len(rows) - MAX_ROWS} more in the results file")

    summary = Text()
    summary.append(f"Checked: {checkpoint.checked_count}/{checkpoint.total}", style="bold")
    summary.append(" | ")
    summary.append(f"Available: {len(available)}", style="bold green")
    summary.append(" | ")
    summary.append(f"Expiring ≤{expiring_days}d: {len(expiring)}", style="magenta")
    summary.append(" | ")
    summary.append(f"Registered: {checkpoint.registered_count}", style="red")
    summary.append(" | ")
    summary.append(f"Unknown: {len(unknown)}", style="yellow")
    out.print(summary)


def display_recheck(report: RecheckReport, output_console: Console | None = None) -> None:
    out = output_console or console
    summary = Text()
    summary.append(f"{report.path}: ", style="bold")
    summary.append(f"rechecked {report.rechecked}, changed {report.changed}")
    summary.append(f", now available {report.now_available}", style="bold green")
    summary.append(f", now registered {report.now_registered}", style="red")
    summary.append(f", kept on error {report.kept_on_error}", style="yellow")
    out.print(summary)


def display_suggestions(results: list[SuggestionResult], output_console: Console | None = None) -> None:
    out = output_console or console
    table = Table(title="Suggestion Check", show_lines=False)
    table.add_column("Domain", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    table.add_column("Rationale")
    for s in results:
        score = f"{s.score:g}" if s.score is not None else "-"
        table.add_row(s.domain, score, _status_text(s.result), s.rationale or "")
    out.print(table)
    available = sum(1 for s in results if s.result.verdict.is_available)
    out.print(Text(f"Available: {available}/{len(results)}", style="bold green"))


# --- Entry point ---

COMMANDS = {
    "recheck": (build_recheck_parser, _run_recheck),
    "check": (build_check_parser, _run_check),
}


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] in COMMANDS:
        build_parser, run = COMMANDS[argv[0]]
        argv = argv[1:]
    else:
        build_parser, run = build_scan_parser, _run_scan
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = _settings_for(args)
        asyncio.run(run(args, settings))
    except SnipeError as exc:
        logger.debug("Fatal error", exc_info=True)
        console.print(f"[red]Error: {exc}[/red]")
        return EXIT_FATAL
    except KeyboardInterrupt:
        console.print("[red]Aborted.[/red]")
        return EXIT_FORCED
    return EXIT_OK

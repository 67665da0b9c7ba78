"""Tests for checking externally supplied domain suggestions."""

import json

import pytest

from domain_snipe.errors import ConfigError
from domain_snipe.scheduler import RateLimitConfig
from domain_snipe.state import ScanStateStore
from domain_snipe.suggestions import (
    check_suggestions,
    load_suggestions,
    parse_suggestions,
    suggestions_checkpoint,
)
from domain_snipe.verdict import Verdict

from .conftest import FakeProbe

RATE = RateLimitConfig(concurrency=5, batch_delay_ms=0)


def test_parse_accepts_strings_and_objects():
    records = parse_suggestions([
        "plain.com",
        {"domain": "scored.io", "score": 8, "rationale": "short"},
        {"score": 3},
        42,
    ])
    assert records == [
        {"domain": "plain.com"},
        {"domain": "scored.io", "score": 8.0, "rationale": "short"},
    ]


def test_parse_accepts_wrapped_list():
    assert parse_suggestions({"suggestions": ["a.com"]}) == [{"domain": "a.com"}]


def test_parse_rejects_other_shapes():
    with pytest.raises(ConfigError):
        parse_suggestions({"domains": []})


def test_load_suggestions_bad_json(tmp_path):
    path = tmp_path / "s.json"
    path.write_text("[oops")
    with pytest.raises(ConfigError):
        load_suggestions(path)


@pytest.mark.asyncio
async def test_results_sorted_by_score_with_missing_last():
    records = [
        {"domain": "low.com", "score": 2.0},
        {"domain": "none.com"},
        {"domain": "high.com", "score": 9.5},
        {"domain": "mid.io", "score": 5.0},
    ]
    results = await check_suggestions(records, FakeProbe(), RATE)
    assert [r.domain for r in results] == ["high.com", "mid.io", "low.com", "none.com"]


@pytest.mark.asyncio
async def test_invalid_and_duplicate_suggestions_dropped():
    probe = FakeProbe()
    records = [
        {"domain": "-bad.com"},
        {"domain": "nodot"},
        {"domain": "Good4U.com"},
        {"domain": "good4u.com."},
    ]
    results = await check_suggestions(records, probe, RATE)
    assert [r.domain for r in results] == ["good4u.com"]
    assert probe.calls == ["good4u.com"]


@pytest.mark.asyncio
async def test_rationale_and_verdict_carried_through():
    probe = FakeProbe({"taken.com": Verdict.registered()})
    results = await check_suggestions([{"domain": "taken.com", "score": 1, "rationale": "why"}], probe, RATE)
    assert results[0].rationale == "why"
    assert results[0].result.verdict.is_registered


@pytest.mark.asyncio
async def test_checkpoint_output_can_be_reloaded(tmp_path):
    probe = FakeProbe({"taken.com": Verdict.registered()})
    records = parse_suggestions(["free.com", "taken.com", "other.io"])
    results = await check_suggestions(records, probe, RATE)
    checkpoint = suggestions_checkpoint(results, RATE)

    store = ScanStateStore(tmp_path)
    path = tmp_path / "results.json"
    store.save(checkpoint, path)

    data = json.loads(path.read_text())
    assert data["mode"] is None
    assert data["tlds"] == ["com", "io"]
    loaded = store.load(path)
    assert loaded.completed
    assert len(loaded.results) == 3
    assert loaded.registered_count == 1

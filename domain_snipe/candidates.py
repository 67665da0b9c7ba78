"""Deterministic candidate-label generation for every scan mode.

Each mode is a *label space*: a finite sequence addressed by index, so that a
single integer cursor fully determines where a scan resumes. The cross product
with the TLD list is candidate-major (the inner loop runs over TLDs):

    position = label_index * len(tlds) + tld_index
"""

import itertools
import string
from bisect import bisect_right
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import TypeAlias

from domain_snipe.errors import ConfigError
from domain_snipe.types import ModeKind, ModeRecord
from domain_snipe.wordlist import build_dictionary, normalize_words, wordlist_digest

LETTERS = string.ascii_lowercase
DIGITS = string.digits

# Pronounceable templates
CONSONANTS = "bcdfghjklmnprstvwxyz"
VOWELS = "aeiou"
VALUABLE_PREFIXES = (
    "go", "my", "ai", "be", "we", "up", "on", "in", "to", "do",
    "no", "so", "hi", "ok", "io", "ex", "re", "co", "un", "de",
)
VALUABLE_SUFFIXES = (
    "ly", "io", "ai", "go", "up", "it", "me", "us", "fy", "oo",
    "er", "ed", "en", "ey", "ie", "ty", "by", "ry", "ny", "xy",
)
SIX_CONSONANTS = "bcdfghlmnprstw"
SIX_VOWELS = "aeio"

# Readable (brandable) names
READABLE_CONSONANTS = "bcdfghklmnprstvz"
READABLE_CLUSTERS = ("br", "bl", "cr", "cl", "dr", "fr", "gr", "pr", "pl", "tr", "st", "sl")
WEAK_VOWELS = "y"
DESIGN_CHARS = "xz"
BANNED_SEQUENCES = ("vv", "rr", "xx", "qq", "yy", "vx", "xv", "xr", "rx", "rq", "qr")
GOOD_ENDINGS = "nrsl"
READABLE_LENGTHS = range(4, 7)

IMPLIED_LENGTHS: dict[ModeKind, int] = {
    "full": 4,
    "pronounceable": 4,
    "words": 5,
    "readable": 5,
}

Slot: TypeAlias = tuple[str, ...]
Template: TypeAlias = tuple[Slot, ...]


@dataclass(frozen=True)
class DomainCandidate:
    label: str
    tld: str

    @property
    def domain(self) -> str:
        return f"{self.label}.{self.tld}"


@dataclass(frozen=True)
class ScanMode:
    """A scan mode: which label space to enumerate, at which length."""

    kind: ModeKind
    length: int
    alphanumeric: bool = False

    def __post_init__(self) -> None:
        if self.kind not in IMPLIED_LENGTHS:
            raise ConfigError(f"Unknown scan mode '{self.kind}'")
        if not 1 <= self.length <= 63:
            raise ConfigError(f"Label length must be between 1 and 63, got {self.length}")
        if self.kind == "pronounceable" and self.length < 2:
            raise ConfigError("Pronounceable mode needs a length of at least 2")
        if self.kind == "readable" and self.length not in READABLE_LENGTHS:
            raise ConfigError("Readable mode supports lengths 4 to 6")
        if self.kind == "words" and self.alphanumeric:
            raise ConfigError("--alphanumeric only applies to generative modes, not the word list")

    @classmethod
    def for_kind(cls, kind: ModeKind, length: int | None = None, alphanumeric: bool = False) -> "ScanMode":
        """Build a mode; an explicit `length` always wins over the mode's implied length."""
        return cls(kind, length if length is not None else IMPLIED_LENGTHS[kind], alphanumeric)

    @property
    def slug(self) -> str:
        suffix = "_alnum" if self.alphanumeric else ""
        return f"{self.kind}_{self.length}{suffix}"

    def describe(self) -> str:
        charset = " (a-z0-9)" if self.alphanumeric else ""
        return f"{self.kind}, {self.length} characters{charset}"

    def to_record(self) -> ModeRecord:
        return {"kind": self.kind, "length": self.length, "alphanumeric": self.alphanumeric}

    @classmethod
    def from_record(cls, record: ModeRecord) -> "ScanMode":
        return cls(record["kind"], int(record["length"]), bool(record.get("alphanumeric", False)))


# --- Label spaces ---


class _FullSpace:
    """Every string of `length` over `alphabet`, in lexicographic order."""

    def __init__(self, length: int, alphabet: str):
        self.length = length
        self.alphabet = alphabet
        self.size = len(alphabet) ** length

    def label_at(self, index: int) -> str | None:
        if not 0 <= index < self.size:
            raise IndexError(index)
        base = len(self.alphabet)
        chars = []
        for _ in range(self.length):
            index, digit = divmod(index, base)
            chars.append(self.alphabet[digit])
        return "".join(reversed(chars))


def _matches(label: str, slots: Sequence[Slot]) -> bool:
    if not slots:
        return not label
    return any(
        label.startswith(choice) and _matches(label[len(choice):], slots[1:])
        for choice in slots[0]
    )


class _TemplateSpace:
    """Concatenated slot templates, each decoded slot-major (last slot varies fastest).

    An index whose label an earlier template already produced decodes to None,
    so every label is yielded once while indices stay stable.
    """

    def __init__(self, templates: Sequence[Template]):
        self.templates = list(templates)
        self._sizes = [_template_size(t) for t in self.templates]
        self._starts = list(itertools.accumulate(self._sizes, initial=0))[:-1]
        self.size = sum(self._sizes)

    def label_at(self, index: int) -> str | None:
        if not 0 <= index < self.size:
            raise IndexError(index)
        block = bisect_right(self._starts, index) - 1
        template = self.templates[block]
        label = _decode(template, index - self._starts[block])
        if any(_matches(label, earlier) for earlier in self.templates[:block]):
            return None
        return label


def _template_size(template: Template) -> int:
    size = 1
    for slot in template:
        size *= len(slot)
    return size


def _decode(template: Template, index: int) -> str:
    parts = []
    for slot in reversed(template):
        index, choice = divmod(index, len(slot))
        parts.append(slot[choice])
    return "".join(reversed(parts))


class _ListSpace:
    def __init__(self, labels: Sequence[str]):
        self.labels = labels
        self.size = len(labels)

    def label_at(self, index: int) -> str | None:
        return self.labels[index]


def _alternating(length: int, first: str, second: str) -> Template:
    return tuple(tuple(first if i % 2 == 0 else second) for i in range(length))


def pronounceable_templates(length: int) -> list[Template]:
    """Consonant/vowel templates for the pronounceable mode, in enumeration order."""
    c, v = tuple(CONSONANTS), tuple(VOWELS)
    letters = tuple(LETTERS)
    if length == 4:
        return [
            (c, v, c, v),
            (c, v, c, c),
            (c, c, v, c),
            (c, v, v, c),
            (v, c, v, c),
            (VALUABLE_PREFIXES, letters, letters),
            (letters, letters, VALUABLE_SUFFIXES),
        ]
    if length == 6:
        return [
            _alternating(6, SIX_CONSONANTS, SIX_VOWELS),
            _alternating(6, SIX_VOWELS, SIX_CONSONANTS),
        ]
    return [_alternating(length, CONSONANTS, VOWELS), _alternating(length, VOWELS, CONSONANTS)]


def _with_digit_tail(templates: Sequence[Template]) -> list[Template]:
    """Append a copy of each template whose last (single-character) slot is a digit."""
    digit_slot = tuple(DIGITS)
    tails = [t[:-1] + (digit_slot,) for t in templates if all(len(ch) == 1 for ch in t[-1])]
    return [*templates, *tails]


def is_readable(name: str, length: int = 5) -> bool:
    """Readability rules for brandable names."""
    if len(name) != length:
        return False

    vowel_score = sum(1.0 if ch in VOWELS else 0.5 if ch in WEAK_VOWELS else 0.0 for ch in name)
    if vowel_score < 2.0:
        return False
    if any(seq in name for seq in BANNED_SEQUENCES):
        return False
    if name[-1] not in GOOD_ENDINGS:
        return False

    for a, b in itertools.pairwise(name):
        if a == b:
            return False
        if a in DESIGN_CHARS and b in READABLE_CONSONANTS:
            return False
    return True


@lru_cache(maxsize=8)
def readable_names(length: int = 5) -> tuple[str, ...]:
    """All readable names of `length`, sorted."""
    c, v = READABLE_CONSONANTS, VOWELS
    templates: list[Sequence[Sequence[str]]] = [
        _alternating(length, c, v),
        (READABLE_CLUSTERS, *_alternating(length - 2, v, c)),
    ]
    if length >= 5:
        weak = list(_alternating(length, c, v))
        weak[3] = tuple(WEAK_VOWELS)
        templates.append(weak)
    design = list(_alternating(length, c, v))
    design[2] = tuple(DESIGN_CHARS)
    templates.append(design)

    names = set()
    for template in templates:
        for parts in itertools.product(*template):
            name = "".join(parts)
            if is_readable(name, length):
                names.add(name)
    return tuple(sorted(names))


@lru_cache(maxsize=8)
def _dictionary(length: int) -> tuple[str, ...]:
    return tuple(build_dictionary(length))


def _build_space(mode: ScanMode, words: tuple[str, ...] | None):
    if mode.kind == "full":
        alphabet = LETTERS + DIGITS if mode.alphanumeric else LETTERS
        return _FullSpace(mode.length, alphabet)

    if mode.kind == "pronounceable":
        templates = pronounceable_templates(mode.length)
        if mode.alphanumeric:
            templates = _with_digit_tail(templates)
        return _TemplateSpace(templates)

    if mode.kind == "readable":
        names = readable_names(mode.length)
        if mode.alphanumeric:
            tails = sorted({name[:-1] + d for name in names for d in DIGITS})
            names = names + tuple(tails)
        return _ListSpace(names)

    if words is not None:
        return _ListSpace(words)
    return _ListSpace(_dictionary(mode.length))


class CandidateSource:
    """Lazy, restartable sequence of DomainCandidates for a mode and TLD list.

    Args:
        mode: The scan mode.
        tlds: TLDs to combine with every label, in order.
        words: Optional custom word list replacing the embedded dictionary
            (words mode only).

    Attributes:
        wordlist_digest: Fingerprint of the custom word list, or None when
            the embedded dictionary (or a generative mode) is used.
    """

    def __init__(self, mode: ScanMode, tlds: Sequence[str], words: Iterable[str] | None = None):
        if not tlds:
            raise ConfigError("At least one TLD is required")
        self.mode = mode
        self.tlds = list(tlds)
        self.wordlist_digest: str | None = None
        custom = None
        if words is not None and mode.kind == "words":
            custom = tuple(normalize_words(words, mode.length))
            self.wordlist_digest = wordlist_digest(list(custom))
        self._space = _build_space(mode, custom)

    @property
    def label_space_size(self) -> int:
        return self._space.size

    @property
    def total(self) -> int:
        """Number of positions (label index x TLD pairs), including skipped duplicates."""
        return self._space.size * len(self.tlds)

    def labels(self) -> Iterator[str]:
        for index in range(self._space.size):
            label = self._space.label_at(index)
            if label is not None:
                yield label

    def iter_from(self, cursor: int = 0) -> Iterator[tuple[int, DomainCandidate]]:
        """Yield (position, candidate) pairs starting at `cursor`."""
        width = len(self.tlds)
        first_label, tld_offset = divmod(max(cursor, 0), width)
        for index in range(first_label, self._space.size):
            label = self._space.label_at(index)
            start = tld_offset if index == first_label else 0
            if label is None:
                continue
            for j in range(start, width):
                yield index * width + j, DomainCandidate(label, self.tlds[j])

    def __iter__(self) -> Iterator[DomainCandidate]:
        return (candidate for _, candidate in self.iter_from(0))

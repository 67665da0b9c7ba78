"""Syntax checks applied to every label/TLD pair before it reaches the network."""

import re

from domain_snipe.errors import ValidationError

MAX_LABEL_LENGTH = 63
MAX_DOMAIN_LENGTH = 253

_LETTERS_LABEL = re.compile(r"[a-z-]+")
_ALNUM_LABEL = re.compile(r"[a-z0-9-]+")
_TLD = re.compile(r"[a-z]{2,63}|xn--[a-z0-9-]{1,59}")


def validate(label: str, tld: str, *, alphanumeric: bool = False) -> None:
    """Raise ValidationError if `label.tld` is not a syntactically valid domain.

    Rules:
    - label is 1-63 characters
    - label uses lowercase letters and hyphens, plus digits when `alphanumeric`
    - label does not start or end with a hyphen
    - TLD is 2-63 lowercase letters (or an xn-- IDN label)
    - the full domain is at most 253 characters
    """
    domain = f"{label}.{tld}"

    if not label:
        raise ValidationError(domain, "label is empty")
    if len(label) > MAX_LABEL_LENGTH:
        raise ValidationError(domain, f"label longer than {MAX_LABEL_LENGTH} characters")

    pattern = _ALNUM_LABEL if alphanumeric else _LETTERS_LABEL
    if not pattern.fullmatch(label):
        allowed = "a-z, 0-9 and '-'" if alphanumeric else "a-z and '-'"
        raise ValidationError(domain, f"label may only contain {allowed}")

    if label.startswith("-") or label.endswith("-"):
        raise ValidationError(domain, "label cannot start or end with a hyphen")

    if not _TLD.fullmatch(tld):
        raise ValidationError(domain, f"invalid TLD '{tld}'")

    if len(domain) > MAX_DOMAIN_LENGTH:
        raise ValidationError(domain, f"domain longer than {MAX_DOMAIN_LENGTH} characters")


def is_valid(label: str, tld: str, *, alphanumeric: bool = False) -> bool:
    try:
        validate(label, tld, alphanumeric=alphanumeric)
    except ValidationError:
        return False
    return True


def split_domain(domain: str) -> tuple[str, str]:
    """Split 'name.tld' into (name, tld), lowercased and stripped of a trailing dot."""
    domain = domain.strip().lower().rstrip(".")
    if "." not in domain:
        raise ValidationError(domain, "domain has no TLD")
    label, tld = domain.rsplit(".", 1)
    return label, tld

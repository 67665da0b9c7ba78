"""Tests for label/TLD syntax validation."""

import pytest

from domain_snipe.errors import ValidationError
from domain_snipe.validator import is_valid, split_domain, validate


def test_plain_label_is_valid():
    validate("abcd", "com")


def test_hyphen_inside_label_is_valid():
    assert is_valid("ab-cd", "io")


@pytest.mark.parametrize("label", ["-abc", "abc-", "-"])
def test_leading_or_trailing_hyphen_rejected(label):
    with pytest.raises(ValidationError, match="hyphen"):
        validate(label, "com")


def test_empty_label_rejected():
    assert not is_valid("", "com")


def test_label_over_63_chars_rejected():
    assert is_valid("a" * 63, "com")
    assert not is_valid("a" * 64, "com")


def test_digits_need_alphanumeric():
    assert not is_valid("ab12", "com")
    assert is_valid("ab12", "com", alphanumeric=True)


def test_uppercase_and_symbols_rejected():
    assert not is_valid("ABCD", "com")
    assert not is_valid("ab_c", "com", alphanumeric=True)


@pytest.mark.parametrize("label, tld", [("abc\n", "com"), ("abc", "com\n"), ("abc", "xn--p1ai\n")])
def test_trailing_newline_rejected(label, tld):
    assert not is_valid(label, tld)
    assert not is_valid(label, tld, alphanumeric=True)


@pytest.mark.parametrize("tld", ["c", "c0m", "", "co.uk"])
def test_invalid_tld_rejected(tld):
    assert not is_valid("abcd", tld)


def test_idn_tld_accepted():
    assert is_valid("abcd", "xn--p1ai")


def test_longest_label_and_tld_accepted():
    assert is_valid("b" * 63, "a" * 63)


def test_validation_error_carries_domain():
    with pytest.raises(ValidationError) as exc_info:
        validate("ab-", "com")
    assert exc_info.value.domain == "ab-.com"


def test_split_domain_normalizes():
    assert split_domain(" Example.COM. ") == ("example", "com")


def test_split_domain_keeps_subdomain_in_label():
    assert split_domain("a.b.io") == ("a.b", "io")


def test_split_domain_without_dot_rejected():
    with pytest.raises(ValidationError):
        split_domain("localhost")

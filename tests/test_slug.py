import pytest

from portfolio.core.errors import ValidationError
from portfolio.utils.slug import normalize_slug, numbered_slug, require_slug


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Stocks", "stocks"),
        ("  Mutual Funds (India) ", "mutual-funds-india"),
        ("Gold & Silver!!", "gold-silver"),
        ("--already-a-slug--", "already-a-slug"),
        ("FD_2024", "fd-2024"),
        ("Crypto   ", "crypto"),
    ],
)
def test_normalize_slug(raw, expected):
    assert normalize_slug(raw) == expected


def test_normalize_slug_is_idempotent():
    for raw in ["Mutual Funds (India)", "a--b", "  x y z  ", "Real Estate / REITs"]:
        once = normalize_slug(raw)
        assert normalize_slug(once) == once


@pytest.mark.parametrize("raw", ["", "   ", "!!!", "---", None])
def test_require_slug_rejects_empty_results(raw):
    with pytest.raises(ValidationError) as exc_info:
        require_slug(raw)
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Invalid slug. Please provide a valid category name or slug."


def test_numbered_slug():
    assert numbered_slug("stocks", 2) == "stocks-2"

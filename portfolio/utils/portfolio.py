# portfolio/utils/portfolio.py
"""
Category / entry arithmetic.

Entries are plain dicts stored in the category's JSON column:

    {"id": "9f1c...", "name": "TCS", "quantity": 10, "invested": 1000,
     "current_value": 1200, "expected_percent": 12}

``current_value`` and ``expected_percent`` are optional. A *missing* key means
"not set" and is different from an explicit ``0``; nothing here ever tests
those values for truthiness.
"""
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional

DEFAULT_ENTRY_EXPECTED_PERCENT = 10.0
DEFAULT_CATEGORY_EXPECTED_PERCENT = 15.0

ENTRY_FIELDS = ("name", "quantity", "invested", "current_value", "expected_percent")
CLEARABLE_FIELDS = ("current_value", "expected_percent")


# ────────────────────────────────────────────────────────────────────────────────
# ENTRY CONSTRUCTION / MUTATION
# ────────────────────────────────────────────────────────────────────────────────
def new_entry_id() -> str:
    return uuid.uuid4().hex


def build_entry(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """New entry from the fields the caller actually sent."""
    entry: Dict[str, Any] = {
        "id":       new_entry_id(),
        "name":     fields["name"],
        "quantity": float(fields["quantity"]),
        "invested": float(fields["invested"]),
    }
    if fields.get("current_value") is not None:
        entry["current_value"] = float(fields["current_value"])

    expected = fields.get("expected_percent")
    entry["expected_percent"] = float(expected) if expected is not None else DEFAULT_ENTRY_EXPECTED_PERCENT
    return entry


def apply_entry_changes(entry: Mapping[str, Any], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Copy of ``entry`` with ``changes`` applied. Only keys present in
    ``changes`` are touched; ``None`` on a clearable field removes it.
    """
    updated = dict(entry)
    for field in ENTRY_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if value is None and field in CLEARABLE_FIELDS:
            updated.pop(field, None)
        elif field == "name":
            updated[field] = value
        else:
            updated[field] = float(value)
    return updated


def ensure_entry_ids(entries: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Copy of the entry list where every entry has a stable id."""
    result = []
    for entry in entries:
        entry = dict(entry)
        if not entry.get("id"):
            entry["id"] = new_entry_id()
        result.append(entry)
    return result


# ────────────────────────────────────────────────────────────────────────────────
# AGGREGATES
# ────────────────────────────────────────────────────────────────────────────────
def explicit_current_value(entry: Mapping[str, Any]) -> Optional[float]:
    value = entry.get("current_value")
    return float(value) if value is not None else None


def recompute_current_value(entries: Iterable[Mapping[str, Any]]) -> float:
    """Sum of the explicitly set entry current values; unset entries add nothing."""
    total = 0.0
    for entry in entries:
        value = explicit_current_value(entry)
        if value is not None:
            total += value
    return total


def total_invested(entries: Iterable[Mapping[str, Any]]) -> float:
    return sum(float(entry.get("invested") or 0) for entry in entries)


def entry_expected_percent(entry: Mapping[str, Any]) -> float:
    value = entry.get("expected_percent")
    return float(value) if value is not None else DEFAULT_ENTRY_EXPECTED_PERCENT


def entry_expected_value(entry: Mapping[str, Any]) -> float:
    invested = float(entry.get("invested") or 0)
    return invested * (1 + entry_expected_percent(entry) / 100)


def entry_display_value(entry: Mapping[str, Any], category_invested: float, category_current_value: float) -> float:
    """
    Explicit current value if set, otherwise the entry's invested share of the
    category's current value (legacy entries predate per-entry tracking).
    """
    value = explicit_current_value(entry)
    if value is not None:
        return value
    if not category_invested:
        return 0.0
    return float(entry.get("invested") or 0) / category_invested * category_current_value


def weighted_expected_percent(entries: List[Mapping[str, Any]]) -> float:
    invested = total_invested(entries)
    if not invested:
        return DEFAULT_ENTRY_EXPECTED_PERCENT
    weighted = sum(float(e.get("invested") or 0) * entry_expected_percent(e) for e in entries)
    return weighted / invested


def profit_loss_percent(profit_loss: float, invested: float) -> float:
    return (profit_loss / invested * 100) if invested else 0.0


# ────────────────────────────────────────────────────────────────────────────────
# SUMMARIES (derived, never persisted)
# ────────────────────────────────────────────────────────────────────────────────
def summarize_entry(entry: Mapping[str, Any], category_invested: float, category_current_value: float) -> Dict[str, Any]:
    invested      = float(entry.get("invested") or 0)
    display_value = entry_display_value(entry, category_invested, category_current_value)
    profit_loss   = display_value - invested

    return {
        "id":                    entry.get("id"),
        "name":                  entry.get("name"),
        "quantity":              float(entry.get("quantity") or 0),
        "invested":              invested,
        "current_value":         explicit_current_value(entry),
        "expected_percent":      entry.get("expected_percent"),
        "display_current_value": display_value,
        "expected_value":        entry_expected_value(entry),
        "profit_loss":           profit_loss,
        "profit_loss_percent":   profit_loss_percent(profit_loss, invested),
    }


def summarize_category(category: Any) -> Dict[str, Any]:
    """Derived numbers for one category (an ORM row or anything shaped like one)."""
    entries       = list(category.entries or [])
    invested      = total_invested(entries)
    current_value = float(category.current_value or 0)
    expected_pct  = float(category.expected_percent) if category.expected_percent is not None \
        else DEFAULT_CATEGORY_EXPECTED_PERCENT
    profit_loss   = current_value - invested

    return {
        "total_invested":            invested,
        "current_value":             current_value,
        "expected_percent":          expected_pct,
        "weighted_expected_percent": weighted_expected_percent(entries),
        "expected_amount":           sum(entry_expected_value(e) for e in entries),
        "target_amount":             invested * (1 + expected_pct / 100),
        "profit_loss":               profit_loss,
        "profit_loss_percent":       profit_loss_percent(profit_loss, invested),
        "entries": [summarize_entry(e, invested, current_value) for e in entries],
    }


def summarize_portfolio(categories: Iterable[Any]) -> Dict[str, Any]:
    summaries = [summarize_category(c) for c in categories]
    invested  = sum(s["total_invested"] for s in summaries)
    current   = sum(s["current_value"] for s in summaries)
    expected  = sum(s["expected_amount"] for s in summaries)

    return {
        "total_invested":      invested,
        "current_value":       current,
        "expected_amount":     expected,
        "profit_loss":         current - invested,
        "profit_loss_percent": profit_loss_percent(current - invested, invested),
        "category_count":      len(summaries),
        "entry_count":         sum(len(s["entries"]) for s in summaries),
    }

# portfolio/utils/export.py
import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List

from portfolio.utils.portfolio import summarize_category

CSV_BOM = "\ufeff"

CSV_HEADERS = [
    "Category Name",
    "Display Name",
    "Slug",
    "Expected %",
    "Total Invested (INR)",
    "Expected Amount (INR)",
    "Current Value (INR)",
    "Profit/Loss (INR)",
    "Profit/Loss %",
    "Entry Name",
    "Entry Quantity",
    "Entry Invested (INR)",
]


def format_inr(value: float) -> str:
    """
    Whole rupees with Indian digit grouping, e.g. 1234567 -> "12,34,567".
    Halves round away from zero (1000.5 -> "1,001").
    """
    amount = int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if amount < 0 else ""
    digits = str(abs(amount))
    if len(digits) <= 3:
        return sign + digits

    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return sign + ",".join(groups + [tail])


def format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def category_rows(category: Any) -> List[List[str]]:
    summary = summarize_category(category)
    expected_pct = summary["expected_percent"]
    # Category-level target: invested grown by the category's own expected %
    category_cells = [
        category.name,
        category.display_name or "",
        category.slug,
        format_number(expected_pct),
        format_inr(summary["total_invested"]),
        format_inr(summary["target_amount"]),
        format_inr(summary["current_value"]),
        format_inr(summary["profit_loss"]),
        f"{summary['profit_loss_percent']:.2f}%",
    ]
    blank_cells = [""] * len(category_cells)

    entries = summary["entries"]
    if not entries:
        return [category_cells + ["", "", ""]]

    rows = []
    for index, entry in enumerate(entries):
        rows.append(
            (category_cells if index == 0 else blank_cells)
            + [entry["name"], format_number(entry["quantity"]), format_inr(entry["invested"])]
        )
    return rows


def export_categories_csv(categories: Iterable[Any]) -> str:
    """Portfolio as CSV text (UTF-8 BOM first so spreadsheet apps pick the encoding)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for category in categories:
        writer.writerows(category_rows(category))
    return CSV_BOM + buffer.getvalue()

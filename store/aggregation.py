"""
In-process rollups for analytics.

The vector store has no native aggregation, so summaries are folded from
the full record set on every request and never persisted.
"""
from __future__ import annotations
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from models.schema import StoredReceipt, StoredTransaction

# Transaction categories that are money movements, not spending
NON_SPEND_CATEGORIES = frozenset({"income", "transfer"})
TRAILING_WINDOW_DAYS = 30


class CategorySummary(BaseModel):
    category: str
    totalSpent: float
    count: int


class DailySpend(BaseModel):
    date: str
    total: float


def summarize_by_category(entries: Iterable[Tuple[str, float]]) -> List[CategorySummary]:
    """
    Fold (category, amount) pairs into per-category totals and counts.

    Sorted by totalSpent descending; ties keep first-seen order. Categories
    that never appear are omitted.
    """
    totals: Dict[str, Dict[str, float]] = {}
    for category, amount in entries:
        bucket = totals.setdefault(category, {"totalSpent": 0.0, "count": 0})
        bucket["totalSpent"] += amount
        bucket["count"] += 1

    summaries = [
        CategorySummary(category=category, totalSpent=data["totalSpent"], count=int(data["count"]))
        for category, data in totals.items()
    ]
    return sorted(summaries, key=lambda s: s.totalSpent, reverse=True)


def total_by_date(entries: Iterable[Tuple[str, float]]) -> List[DailySpend]:
    """Sum (date, amount) pairs per date string, ascending by date string."""
    totals: Dict[str, float] = {}
    for day, amount in entries:
        totals[day] = totals.get(day, 0.0) + amount
    return [DailySpend(date=day, total=total) for day, total in sorted(totals.items())]


def receipt_item_entries(receipts: Iterable[StoredReceipt]) -> Iterable[Tuple[str, float]]:
    for receipt in receipts:
        for item in receipt.items:
            yield item.category, item.totalPrice


def transaction_spend_entries(transactions: Iterable[StoredTransaction]) -> Iterable[Tuple[str, float]]:
    for txn in transactions:
        if txn.amount > 0 and txn.category not in NON_SPEND_CATEGORIES:
            yield txn.category, txn.amount


def _parse_day(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def recent_receipt_entries(
    receipts: Iterable[StoredReceipt],
    *,
    today: date,
    days: int = TRAILING_WINDOW_DAYS,
) -> Iterable[Tuple[str, float]]:
    """(date, total) for receipts dated on or after `today - days`; unreadable dates are skipped."""
    cutoff = today - timedelta(days=days)
    for receipt in receipts:
        day = _parse_day(receipt.date)
        if day is not None and day >= cutoff:
            yield receipt.date, receipt.total

"""
Summary text and flat metadata for stored records.

Collection metadata only holds flat string values, so every field is
written as a string and line items travel as a single JSON string
(``itemsJson``). The read side is tolerant: each field falls back to its
documented default on its own, and one corrupt row never stops a listing.
"""
from __future__ import annotations
import json
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from core.logger import get_logger
from core.utils import format_amount
from models.es_docs import CollectionRow
from models.schema import (
    DEFAULT_RECEIPT_CURRENCY,
    DEFAULT_TRANSACTION_CURRENCY,
    FALLBACK_CATEGORY,
    PAYMENT_METHODS,
    RECEIPT_CATEGORIES,
    TRANSACTION_CATEGORIES,
    BankTransaction,
    LineItem,
    Receipt,
    StoredReceipt,
    StoredTransaction,
)

log = get_logger("store/documents")

# Sorts after every real record when createdAt cannot be read back
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# --- summary text (embedded and stored as the row document) ---

def receipt_summary(receipt: Receipt) -> str:
    items_text = ", ".join(
        f"{item.name} ({item.category}): ${format_amount(item.totalPrice)}"
        for item in receipt.items
    )
    return (
        f"Receipt from {receipt.merchantName} on {receipt.date}. "
        f"Items: {items_text}. Total: ${format_amount(receipt.total)}"
    )


def transaction_summary(transaction: BankTransaction) -> str:
    return (
        f"{transaction.description} on {transaction.date}. "
        f"Category: {transaction.category}. "
        f"Amount: {format_amount(transaction.amount)} {transaction.currency}"
    )


# --- write side ---

def receipt_metadata(
    receipt: Receipt,
    *,
    created_at: datetime,
    image_url: Optional[str] = None,
    image_hash: Optional[str] = None,
) -> Dict[str, str]:
    items = [
        {
            "name": item.name,
            "quantity": item.quantity,
            "unitPrice": item.unitPrice,
            "totalPrice": item.totalPrice,
            "category": item.category,
        }
        for item in receipt.items
    ]
    return {
        "merchantName": receipt.merchantName,
        "merchantAddress": receipt.merchantAddress,
        "date": receipt.date,
        "time": receipt.time,
        "subtotal": format_amount(receipt.subtotal),
        "tax": format_amount(receipt.tax),
        "total": format_amount(receipt.total),
        "paymentMethod": receipt.paymentMethod,
        "currency": receipt.currency,
        "imageUrl": image_url or "",
        "imageHash": image_hash or "",
        "createdAt": created_at.isoformat(),
        "itemsJson": json.dumps(items),
    }


def transaction_metadata(
    transaction: BankTransaction,
    *,
    created_at: datetime,
    statement_id: Optional[str] = None,
) -> Dict[str, str]:
    return {
        "date": transaction.date,
        "description": transaction.description,
        "amount": format_amount(transaction.amount),
        "category": transaction.category,
        "currency": transaction.currency,
        "statementId": statement_id or "",
        "createdAt": created_at.isoformat(),
    }


# --- read side ---

def _text(meta: Mapping[str, Any], key: str, default: str = "") -> str:
    value = meta.get(key)
    if value is None:
        return default
    return str(value)


def _optional_text(meta: Mapping[str, Any], key: str) -> Optional[str]:
    value = _text(meta, key)
    return value or None


def _number(value: Any, default: float = 0.0, *, signed: bool = False) -> float:
    if value is None or isinstance(value, bool) or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    if not signed and number < 0:
        return default
    return number


def _choice(value: Any, allowed: tuple[str, ...], default: str = FALLBACK_CATEGORY) -> str:
    text = str(value).strip().lower() if value is not None else ""
    return text if text in allowed else default


def _currency(meta: Mapping[str, Any], default: str) -> str:
    code = _text(meta, "currency").strip().upper()
    return code or default


def parse_created_at(value: Any) -> datetime:
    """Parse a stored ISO-8601 timestamp; unreadable values map to the Unix epoch."""
    if not value:
        return EPOCH
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _line_item(raw: Mapping[str, Any]) -> LineItem:
    quantity = raw.get("quantity")
    return LineItem(
        name=str(raw.get("name") or ""),
        quantity=1.0 if quantity is None else _number(quantity, 1.0),
        unitPrice=_number(raw.get("unitPrice")),
        totalPrice=_number(raw.get("totalPrice")),
        category=_choice(raw.get("category"), RECEIPT_CATEGORIES),
    )


def parse_items(items_json: Any, *, record_id: str = "") -> List[LineItem]:
    """Decode itemsJson; unreadable JSON yields [] and non-object entries are dropped."""
    if not items_json:
        return []
    try:
        decoded = json.loads(items_json)
    except (TypeError, ValueError):
        log.warning(f"Unreadable itemsJson, using no items: id={record_id}")
        return []
    if not isinstance(decoded, list):
        log.warning(f"itemsJson is not a list, using no items: id={record_id}")
        return []

    items = [_line_item(entry) for entry in decoded if isinstance(entry, Mapping)]
    if len(items) < len(decoded):
        log.warning(f"Dropped {len(decoded) - len(items)} malformed line item(s): id={record_id}")
    return items


def receipt_from_row(row: CollectionRow) -> StoredReceipt:
    meta = row.metadata
    return StoredReceipt(
        id=row.id,
        merchantName=_text(meta, "merchantName"),
        merchantAddress=_text(meta, "merchantAddress"),
        date=_text(meta, "date"),
        time=_text(meta, "time"),
        items=parse_items(meta.get("itemsJson"), record_id=row.id),
        subtotal=_number(meta.get("subtotal")),
        tax=_number(meta.get("tax")),
        total=_number(meta.get("total")),
        paymentMethod=_choice(meta.get("paymentMethod"), PAYMENT_METHODS),
        currency=_currency(meta, DEFAULT_RECEIPT_CURRENCY),
        imageUrl=_optional_text(meta, "imageUrl"),
        imageHash=_optional_text(meta, "imageHash"),
        createdAt=parse_created_at(meta.get("createdAt")),
    )


def transaction_from_row(row: CollectionRow) -> StoredTransaction:
    meta = row.metadata
    return StoredTransaction(
        id=row.id,
        date=_text(meta, "date"),
        description=_text(meta, "description"),
        amount=_number(meta.get("amount"), signed=True),
        category=_choice(meta.get("category"), TRANSACTION_CATEGORIES),
        currency=_currency(meta, DEFAULT_TRANSACTION_CURRENCY),
        statementId=_optional_text(meta, "statementId"),
        createdAt=parse_created_at(meta.get("createdAt")),
    )

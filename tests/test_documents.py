from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable

from models.es_docs import CollectionRow
from models.normalizer import normalize_receipt, normalize_transaction
from store.documents import (
    EPOCH,
    parse_created_at,
    receipt_from_row,
    receipt_metadata,
    receipt_summary,
    transaction_from_row,
    transaction_metadata,
    transaction_summary,
)

CREATED = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def test_receipt_summary_text(receipt_record: Callable[..., dict[str, Any]]) -> None:
    receipt = normalize_receipt(receipt_record())

    assert receipt_summary(receipt) == (
        "Receipt from Corner Cafe on 2026-10-10. "
        "Items: Coffee (dining): $6, Croissant (dining): $2.5. Total: $9"
    )


def test_receipt_summary_without_items(receipt_record: Callable[..., dict[str, Any]]) -> None:
    receipt = normalize_receipt(receipt_record(items=[], total=0))

    assert receipt_summary(receipt) == "Receipt from Corner Cafe on 2026-10-10. Items: . Total: $0"


def test_transaction_summary_text() -> None:
    txn = normalize_transaction(
        {"date": "2026-09-14", "description": "AMAZON MARKETPLACE", "amount": -12.99, "category": "shopping"}
    )

    assert transaction_summary(txn) == (
        "AMAZON MARKETPLACE on 2026-09-14. Category: shopping. Amount: -12.99 GBP"
    )


def test_receipt_metadata_is_flat_strings(receipt_record: Callable[..., dict[str, Any]]) -> None:
    receipt = normalize_receipt(receipt_record())
    meta = receipt_metadata(receipt, created_at=CREATED, image_hash="abc")

    assert all(isinstance(value, str) for value in meta.values())
    assert meta["subtotal"] == "8.5"
    assert meta["total"] == "9"
    assert meta["imageUrl"] == ""
    assert meta["imageHash"] == "abc"
    assert meta["createdAt"] == "2026-10-18T09:30:00+00:00"
    assert [item["name"] for item in json.loads(meta["itemsJson"])] == ["Coffee", "Croissant"]


def test_receipt_round_trip(receipt_record: Callable[..., dict[str, Any]]) -> None:
    receipt = normalize_receipt(receipt_record())
    row = CollectionRow(
        id="receipt_1",
        metadata=receipt_metadata(receipt, created_at=CREATED, image_url="data:image/png;base64,AA", image_hash="abc"),
    )

    stored = receipt_from_row(row)

    assert stored.id == "receipt_1"
    assert stored.createdAt == CREATED
    assert stored.imageUrl == "data:image/png;base64,AA"
    assert stored.imageHash == "abc"
    stored_fields = stored.model_dump(exclude={"id", "createdAt", "imageUrl", "imageHash"})
    assert stored_fields == receipt.model_dump()


def test_corrupt_receipt_row_degrades_field_by_field() -> None:
    row = CollectionRow(
        id="receipt_bad",
        metadata={
            "merchantName": "Kiosk",
            "total": "not-a-number",
            "tax": "-3",
            "paymentMethod": "cheque",
            "itemsJson": "{broken",
            "createdAt": "yesterday",
        },
    )

    stored = receipt_from_row(row)

    assert stored.merchantName == "Kiosk"
    assert stored.merchantAddress == ""
    assert stored.date == ""
    assert stored.total == 0
    assert stored.tax == 0
    assert stored.paymentMethod == "other"
    assert stored.currency == "USD"
    assert stored.items == []
    assert stored.imageUrl is None
    assert stored.createdAt == EPOCH


def test_items_json_keeps_good_entries_and_unknown_categories_fall_back() -> None:
    items_json = json.dumps(
        [
            {"name": "Tea", "totalPrice": "2.2", "category": "beverages"},
            "garbage",
            {"name": "Cake", "quantity": 2, "totalPrice": 5, "category": "dining"},
        ]
    )
    stored = receipt_from_row(CollectionRow(id="r", metadata={"itemsJson": items_json, "total": "7.2"}))

    assert [item.name for item in stored.items] == ["Tea", "Cake"]
    assert stored.items[0].category == "other"
    assert stored.items[0].quantity == 1
    assert stored.items[1].quantity == 2
    assert stored.items[0].totalPrice == 2.2


def test_transaction_round_trip_and_defaults() -> None:
    txn = normalize_transaction({"date": "2026-09-14", "description": "Refund", "amount": -20, "category": "shopping"})
    stored = transaction_from_row(
        CollectionRow(id="txn_1", metadata=transaction_metadata(txn, created_at=CREATED, statement_id="stmt_1"))
    )

    assert stored.amount == -20
    assert stored.category == "shopping"
    assert stored.statementId == "stmt_1"
    assert stored.createdAt == CREATED

    bare = transaction_from_row(CollectionRow(id="txn_2", metadata={"category": "lottery"}))
    assert bare.amount == 0
    assert bare.category == "other"
    assert bare.currency == "GBP"
    assert bare.statementId is None


def test_parse_created_at_accepts_zulu_and_naive() -> None:
    assert parse_created_at("2026-10-18T09:30:00.000Z") == CREATED
    assert parse_created_at("2026-10-18T09:30:00") == CREATED
    assert parse_created_at(None) == EPOCH


def test_row_from_hit_tolerates_malformed_source() -> None:
    row = CollectionRow.from_hit(
        {
            "_id": "receipt_x",
            "_score": "high",
            "_source": {"document": 12345, "metadata": ["not", "a", "dict"], "embedding": "0.1,0.2"},
        }
    )

    assert row.document == "12345"
    assert row.metadata == {}
    assert row.embedding is None
    assert row.score is None

    assert CollectionRow.from_hit({"_id": "r", "_source": None}).document == ""
    assert CollectionRow.from_hit({"_id": "r", "_source": {"embedding": [1, "x"]}}).embedding is None
    assert CollectionRow.from_hit({"_id": "r", "_score": 0.5, "_source": {"embedding": [1, 0.5]}}).embedding == [1.0, 0.5]

from __future__ import annotations

import copy
import math
import os
from typing import Any, Callable

import pytest

# Before any project import: keep test runs off the JSON file sink
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import ApiError, BadRequestError, NotFoundError

from elastic.embedding import EmbeddingRequestFailed
from store import ReceiptStore, TransactionStore


def api_error(cls: type[ApiError], status: int, error_type: str) -> ApiError:
    meta = ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )
    return cls(message=error_type, meta=meta, body={"error": {"type": error_type}, "status": status})


class _FakeIndices:
    def __init__(self, es: "FakeElasticsearch") -> None:
        self._es = es

    def get(self, *, index: str, **kwargs: Any) -> dict[str, Any]:
        self._es.calls.append(("indices.get", index))
        if index not in self._es.docs:
            raise api_error(NotFoundError, 404, "index_not_found_exception")
        return {index: {"mappings": self._es.mappings[index]}}

    def create(self, *, index: str, mappings: dict[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
        self._es.calls.append(("indices.create", index))
        if self._es.fail_create:
            raise api_error(ApiError, 500, "internal_server_error")
        if index in self._es.docs:
            raise api_error(BadRequestError, 400, "resource_already_exists_exception")
        self._es.docs[index] = {}
        self._es.mappings[index] = mappings or {}
        return {"acknowledged": True, "index": index}

    def delete(self, *, index: str, **kwargs: Any) -> dict[str, Any]:
        self._es.calls.append(("indices.delete", index))
        if index not in self._es.docs:
            raise api_error(NotFoundError, 404, "index_not_found_exception")
        del self._es.docs[index]
        del self._es.mappings[index]
        return {"acknowledged": True}


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeElasticsearch:
    """In-memory stand-in for the Elasticsearch calls the collection layer makes."""

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, dict[str, Any]]] = {}
        self.mappings: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.search_sizes: list[int] = []
        self.indices = _FakeIndices(self)
        self.fail_create = False
        self.fail_index_after: int | None = None
        self._index_calls = 0

    def _require(self, index: str) -> dict[str, dict[str, Any]]:
        if index not in self.docs:
            raise api_error(NotFoundError, 404, "index_not_found_exception")
        return self.docs[index]

    def index(self, *, index: str, id: str, document: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("index", index))
        if self.fail_index_after is not None and self._index_calls >= self.fail_index_after:
            raise api_error(ApiError, 503, "unavailable_shards_exception")
        self._index_calls += 1
        self._require(index)[id] = copy.deepcopy(document)
        return {"_id": id, "result": "created"}

    def search(
        self,
        *,
        index: str,
        query: dict[str, Any] | None = None,
        knn: dict[str, Any] | None = None,
        size: int = 10,
        source_excludes: list[str] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        self.calls.append(("search", index))
        self.search_sizes.append(size)
        rows = self._require(index)
        if knn is not None:
            scored = [
                (_cosine(knn["query_vector"], source["embedding"]), row_id, source)
                for row_id, source in rows.items()
            ]
            scored.sort(key=lambda entry: entry[0], reverse=True)
            selected = scored[: min(knn["k"], size)]
        else:
            selected = [(1.0, row_id, source) for row_id, source in rows.items()][:size]

        hits = []
        for score, row_id, source in selected:
            body = {k: copy.deepcopy(v) for k, v in source.items() if k not in (source_excludes or [])}
            hits.append({"_id": row_id, "_score": score, "_source": body})
        return {"hits": {"total": {"value": len(rows)}, "hits": hits}}

    def delete(self, *, index: str, id: str, **kwargs: Any) -> dict[str, Any]:
        if not id:
            # Same guard the real client applies before sending anything
            raise ValueError("Empty value passed for parameter 'id'")
        self.calls.append(("delete", index))
        rows = self._require(index)
        if id not in rows:
            raise api_error(NotFoundError, 404, "not_found")
        del rows[id]
        return {"_id": id, "result": "deleted"}

    def count(self, *, index: str, **kwargs: Any) -> dict[str, Any]:
        return {"count": len(self._require(index))}


VOCABULARY = (
    "coffee",
    "croissant",
    "fuel",
    "groceries",
    "dining",
    "transportation",
    "tesco",
    "shell",
)


class FakeEmbedder:
    """Keyword-presence vectors over a fixed vocabulary plus a constant bias dimension."""

    def __init__(self, fail_on_call: int | None = None) -> None:
        self.calls: list[str] = []
        self._fail_on_call = fail_on_call

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self._fail_on_call is not None and len(self.calls) >= self._fail_on_call:
            raise EmbeddingRequestFailed("embedding backend down", status=503)
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in VOCABULARY] + [1.0]


class CountingFactory:
    def __init__(self, es: FakeElasticsearch) -> None:
        self.es = es
        self.calls = 0

    def __call__(self) -> FakeElasticsearch:
        self.calls += 1
        return self.es


@pytest.fixture
def fake_es() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def client_factory(fake_es: FakeElasticsearch) -> CountingFactory:
    return CountingFactory(fake_es)


@pytest.fixture
def receipt_store(client_factory: CountingFactory, embedder: FakeEmbedder) -> ReceiptStore:
    return ReceiptStore(client_factory=client_factory, embedder=embedder, collection_name="receipts")


@pytest.fixture
def transaction_store(client_factory: CountingFactory, embedder: FakeEmbedder) -> TransactionStore:
    return TransactionStore(
        client_factory=client_factory, embedder=embedder, collection_name="bank_transactions"
    )


@pytest.fixture
def receipt_record() -> Callable[..., dict[str, Any]]:
    def _make(**overrides: Any) -> dict[str, Any]:
        record: dict[str, Any] = {
            "merchantName": "Corner Cafe",
            "merchantAddress": "1 High Street",
            "date": "2026-10-10",
            "time": "08:15",
            "items": [
                {"name": "Coffee", "quantity": 2, "unitPrice": 3.0, "totalPrice": 6.0, "category": "dining"},
                {"name": "Croissant", "quantity": 1, "unitPrice": 2.5, "totalPrice": 2.5, "category": "dining"},
            ],
            "subtotal": 8.5,
            "tax": 0.5,
            "total": 9.0,
            "paymentMethod": "credit",
            "currency": "GBP",
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def make_api_error() -> Callable[[type[ApiError], int, str], ApiError]:
    return api_error


@pytest.fixture
def make_embedder() -> Callable[..., FakeEmbedder]:
    return FakeEmbedder


@pytest.fixture
def transaction_records() -> Callable[[], list[dict[str, Any]]]:
    def _make() -> list[dict[str, Any]]:
        return [
            {"date": "2026-09-02", "description": "TESCO STORES", "amount": 50, "category": "groceries"},
            {"date": "2026-09-05", "description": "SHELL FUEL", "amount": 45.5, "category": "transportation"},
            {"date": "2026-09-28", "description": "SALARY", "amount": 2000, "category": "income"},
            {"date": "2026-09-10", "description": "TRANSFER TO SAVINGS", "amount": 100, "category": "transfer"},
            {"date": "2026-09-20", "description": "AMAZON REFUND", "amount": -20, "category": "shopping"},
        ]

    return _make

"""
Receipt persistence: save, duplicate lookup, listing, semantic search,
deletion and spend rollups over the receipts collection.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional

from pydantic import BaseModel

from core.config import config
from core.logger import get_logger
from core.utils import new_record_id, sha256_bytes
from elastic.client import ClientFactory, es_client
from elastic.embedding import Embedder, VertexEmbedder
from elastic.indexer import Collection, ensure_collection
from models.normalizer import normalize_receipt
from models.schema import Receipt, StoredReceipt
from .aggregation import (
    CategorySummary,
    DailySpend,
    receipt_item_entries,
    recent_receipt_entries,
    summarize_by_category,
    total_by_date,
)
from .documents import receipt_from_row, receipt_metadata, receipt_summary

log = get_logger("store/receipts")

Extractor = Callable[[bytes], Mapping[str, Any]]


class IngestResult(BaseModel):
    duplicate: bool
    receipt: StoredReceipt


class ReceiptStore:
    """
    Receipts collection access.

    Holds no state between calls: each operation builds a fresh client and
    collection handle.

    Args:
        client_factory: Builds an Elasticsearch client (default: es_client)
        embedder: Embedding client (default: VertexEmbedder)
        collection_name: Index name (default: ELASTIC_INDEX_RECEIPTS)
    """

    def __init__(
        self,
        *,
        client_factory: ClientFactory = es_client,
        embedder: Optional[Embedder] = None,
        collection_name: Optional[str] = None,
    ) -> None:
        self._client_factory = client_factory
        self._embedder = embedder if embedder is not None else VertexEmbedder()
        self._collection_name = collection_name or config.elastic_index_receipts

    def _collection(self) -> Collection:
        return ensure_collection(self._collection_name, client=self._client_factory())

    def _read_all(self) -> List[StoredReceipt]:
        rows = self._collection().get()
        return [receipt_from_row(row) for row in rows]

    def save(
        self,
        record: Mapping[str, Any] | Receipt,
        image_url: Optional[str] = None,
        image_hash: Optional[str] = None,
    ) -> StoredReceipt:
        """
        Normalize, embed and write one receipt under a new id.

        Raises:
            MalformedRecordError: If a required field is missing
            ConfigurationError / UpstreamFailure: From the embedder or Elasticsearch
        """
        receipt = normalize_receipt(record)
        collection = self._collection()

        record_id = new_record_id("receipt")
        created_at = datetime.now(timezone.utc)
        summary = receipt_summary(receipt)
        embedding = self._embedder.embed(summary)

        collection.add(
            ids=[record_id],
            embeddings=[embedding],
            metadatas=[
                receipt_metadata(
                    receipt,
                    created_at=created_at,
                    image_url=image_url,
                    image_hash=image_hash,
                )
            ],
            documents=[summary],
        )
        log.info(
            f"Saved receipt: id={record_id} merchant='{receipt.merchantName}' "
            f"items={len(receipt.items)} total={receipt.total} {receipt.currency}"
        )

        return StoredReceipt(
            id=record_id,
            createdAt=created_at,
            imageUrl=image_url,
            imageHash=image_hash,
            **receipt.model_dump(),
        )

    def find_by_image_hash(self, image_hash: str) -> Optional[StoredReceipt]:
        """
        Return the first stored receipt with this image hash, or None.

        Scans the whole (bounded) collection rather than using an index.
        """
        if not image_hash:
            return None

        for row in self._collection().get():
            if row.metadata.get("imageHash") == image_hash:
                log.info(f"Found receipt by image hash: id={row.id} hash={image_hash[:16]}...")
                return receipt_from_row(row)

        log.debug(f"No receipt with image hash {image_hash[:16]}...")
        return None

    def list(self, limit: int = 50) -> List[StoredReceipt]:
        """Newest first by createdAt, at most `limit` receipts."""
        if limit <= 0:
            return []
        receipts = self._read_all()
        receipts.sort(key=lambda r: r.createdAt, reverse=True)
        return receipts[:limit]

    def search(self, query: str, limit: int = 10) -> List[StoredReceipt]:
        """Receipts ranked by embedding similarity to `query`, best first."""
        if limit <= 0:
            return []
        collection = self._collection()
        query_embedding = self._embedder.embed(query)
        rows = collection.query(query_embedding=query_embedding, n_results=limit)
        log.info(f"Receipt search: query='{query[:50]}' results={len(rows)}")
        return [receipt_from_row(row) for row in rows]

    def delete(self, record_id: str) -> bool:
        """True if the receipt was removed, False if it did not exist."""
        return self._collection().delete(ids=[record_id])

    def summary_by_category(self) -> List[CategorySummary]:
        """Line-item totals and counts per category, largest spend first."""
        return summarize_by_category(receipt_item_entries(self._read_all()))

    def spending_over_time(self, now: Optional[datetime] = None) -> List[DailySpend]:
        """Receipt totals per date over the trailing 30 days, oldest date first."""
        today = (now or datetime.now()).date()
        return total_by_date(recent_receipt_entries(self._read_all(), today=today))

    def ingest(
        self,
        image_bytes: bytes,
        extract: Extractor,
        *,
        image_url: Optional[str] = None,
        force_reprocess: bool = False,
    ) -> IngestResult:
        """
        Store a receipt image's extracted record unless the same image is already stored.

        The duplicate check and the save are separate calls; two concurrent
        uploads of one image can both be stored.

        Args:
            image_bytes: Raw uploaded bytes, hashed for duplicate detection
            extract: Extraction callable returning the receipt record
            image_url: Optional reference to the stored image
            force_reprocess: Skip the duplicate check and extract again
        """
        image_hash = sha256_bytes(image_bytes)

        if not force_reprocess:
            existing = self.find_by_image_hash(image_hash)
            if existing is not None:
                log.warning(f"Duplicate receipt upload: existing id={existing.id}")
                return IngestResult(duplicate=True, receipt=existing)

        record = extract(image_bytes)
        saved = self.save(record, image_url=image_url, image_hash=image_hash)
        return IngestResult(duplicate=False, receipt=saved)

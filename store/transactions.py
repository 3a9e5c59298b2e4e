"""
Bank transaction persistence: batch save, statement ingestion, listing,
deletion and spend-by-category over the transactions collection.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from core.config import config
from core.errors import MalformedRecordError
from core.logger import get_logger
from core.utils import new_record_id
from elastic.client import ClientFactory, es_client
from elastic.embedding import Embedder, VertexEmbedder
from elastic.indexer import Collection, ensure_collection
from models.normalizer import normalize_statement, normalize_transaction
from models.schema import BankStatement, BankTransaction, StatementPeriod, StoredTransaction
from .aggregation import CategorySummary, summarize_by_category, transaction_spend_entries
from .documents import transaction_from_row, transaction_metadata, transaction_summary

log = get_logger("store/transactions")


class StatementIngestResult(BaseModel):
    statementId: str
    ids: List[str]
    statementPeriod: Optional[StatementPeriod] = None


class TransactionStore:
    """
    Bank transactions collection access.

    Args:
        client_factory: Builds an Elasticsearch client (default: es_client)
        embedder: Embedding client (default: VertexEmbedder)
        collection_name: Index name (default: ELASTIC_INDEX_TRANSACTIONS)
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
        self._collection_name = collection_name or config.elastic_index_transactions

    def _collection(self) -> Collection:
        return ensure_collection(self._collection_name, client=self._client_factory())

    def _read_all(self) -> List[StoredTransaction]:
        rows = self._collection().get()
        return [transaction_from_row(row) for row in rows]

    def save_batch(
        self,
        records: Sequence[Mapping[str, Any] | BankTransaction],
        statement_id: Optional[str] = None,
    ) -> List[str]:
        """
        Embed and write each transaction in order, one id per record.

        Not atomic: the first failing embed or write aborts the batch and
        the transactions written before it stay stored. An empty batch
        makes no external calls.
        """
        if not records:
            return []

        # Validate everything up front so a malformed record cannot leave half a batch
        transactions = [normalize_transaction(r) for r in records]
        collection = self._collection()

        ids: List[str] = []
        for txn in transactions:
            record_id = new_record_id("txn")
            summary = transaction_summary(txn)
            embedding = self._embedder.embed(summary)
            collection.add(
                ids=[record_id],
                embeddings=[embedding],
                metadatas=[
                    transaction_metadata(
                        txn,
                        created_at=datetime.now(timezone.utc),
                        statement_id=statement_id,
                    )
                ],
                documents=[summary],
            )
            ids.append(record_id)

        log.info(f"Saved {len(ids)} transaction(s): statement={statement_id or '-'}")
        return ids

    def save_statement(
        self,
        statement: Mapping[str, Any] | BankStatement,
        statement_id: Optional[str] = None,
    ) -> StatementIngestResult:
        """
        Save every transaction of an extracted statement under one statement id.

        Raises:
            MalformedRecordError: If the statement is malformed or has no transactions
        """
        parsed = normalize_statement(statement)
        if not parsed.transactions:
            raise MalformedRecordError("Statement contains no transactions")

        statement_id = statement_id or new_record_id("stmt")
        ids = self.save_batch(parsed.transactions, statement_id=statement_id)
        return StatementIngestResult(
            statementId=statement_id,
            ids=ids,
            statementPeriod=parsed.statementPeriod,
        )

    def list(self, limit: int = 500) -> List[StoredTransaction]:
        """Newest first by transaction date (then createdAt), at most `limit`."""
        if limit <= 0:
            return []
        transactions = self._read_all()
        transactions.sort(key=lambda t: (t.date, t.createdAt), reverse=True)
        return transactions[:limit]

    def summary_by_category(self) -> List[CategorySummary]:
        """Spend per category; refunds, income and transfers are excluded."""
        return summarize_by_category(transaction_spend_entries(self._read_all()))

    def delete(self, record_id: str) -> bool:
        """True if the transaction was removed, False if it did not exist."""
        return self._collection().delete(ids=[record_id])

"""
Collection management on top of Elasticsearch.

Provides:
- ensure_collection(): idempotent get-or-create of a named collection
- reset_collection(): destructive delete-then-create for initialization tooling
- Collection: a handle offering add/get/query/delete/count over
  (id, embedding, metadata, document) rows

A collection is one Elasticsearch index. Embeddings are always supplied by
the caller; the index never computes them.
"""
from __future__ import annotations
import time
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from elasticsearch import (
    ApiError,
    BadRequestError,
    ConnectionError as ESConnectionError,
    Elasticsearch,
    NotFoundError,
    TransportError,
)

from core.config import config
from core.errors import ConfigurationError, UpstreamFailure
from core.logger import get_logger
from models.es_docs import CollectionRow
from .client import es_client
from .mappings import mapping_collection

log = get_logger("elastic/indexer")

# Elasticsearch's default index.max_result_window; also the kNN candidate ceiling
MAX_RESULT_WINDOW = 10_000
VECTOR_FIELD = "embedding"


def _raise_upstream(action: str, name: str, exc: Exception) -> NoReturn:
    if isinstance(exc, ESConnectionError):
        error_msg = f"Elasticsearch unreachable during {action} on '{name}': {exc}"
        log.error(error_msg)
        raise ConfigurationError(error_msg) from exc
    status = getattr(getattr(exc, "meta", None), "status", None)
    error_msg = f"Elasticsearch {action} failed on '{name}': {exc}"
    log.error(error_msg)
    raise UpstreamFailure(error_msg, status=status) from exc


class Collection:
    """Live handle to one collection; cheap to build, not meant to be cached."""

    def __init__(self, client: Elasticsearch, name: str) -> None:
        self._client = client
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def add(
        self,
        *,
        ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        metadatas: Sequence[Dict[str, str]],
        documents: Sequence[str],
    ) -> None:
        """
        Write rows, one index request per row.

        Rows are visible to the next read when this returns. A failure
        aborts the remaining rows; rows already written stay written.

        Raises:
            ValueError: If the parallel sequences differ in length
            UpstreamFailure: If Elasticsearch rejects a write
        """
        if not (len(ids) == len(embeddings) == len(metadatas) == len(documents)):
            raise ValueError("ids, embeddings, metadatas and documents must have the same length")

        start_time = time.time()
        for row_id, embedding, metadata, document in zip(ids, embeddings, metadatas, documents):
            try:
                self._client.index(
                    index=self._name,
                    id=row_id,
                    document={
                        VECTOR_FIELD: list(embedding),
                        "metadata": dict(metadata),
                        "document": document,
                    },
                    refresh="wait_for",
                )
            except (ApiError, TransportError) as e:
                _raise_upstream("add", self._name, e)
            log.debug(f"Wrote row: collection={self._name} id={row_id}")

        elapsed = time.time() - start_time
        log.info(f"Added {len(ids)} row(s) to {self._name} elapsed={elapsed:.2f}s")

    def get(self, *, limit: Optional[int] = None, include_embeddings: bool = False) -> List[CollectionRow]:
        """
        Fetch rows in storage order, bounded by MAX_RESULT_WINDOW.

        Args:
            limit: Maximum rows to return (None means the full bounded scan)
            include_embeddings: Also return the stored vectors
        """
        size = MAX_RESULT_WINDOW if limit is None else min(limit, MAX_RESULT_WINDOW)
        if size <= 0:
            return []

        try:
            response = self._client.search(
                index=self._name,
                query={"match_all": {}},
                size=size,
                source_excludes=None if include_embeddings else [VECTOR_FIELD],
            )
        except (ApiError, TransportError) as e:
            _raise_upstream("get", self._name, e)

        rows = [CollectionRow.from_hit(hit) for hit in response["hits"]["hits"]]
        log.debug(f"Fetched {len(rows)} row(s) from {self._name} (size={size})")
        return rows

    def query(self, *, query_embedding: Sequence[float], n_results: int) -> List[CollectionRow]:
        """
        Nearest-neighbour search, best match first.

        There is no similarity floor: up to n_results rows come back
        whenever the collection is not empty.
        """
        k = min(n_results, MAX_RESULT_WINDOW)
        if k <= 0:
            return []

        knn = {
            "field": VECTOR_FIELD,
            "query_vector": list(query_embedding),
            "k": k,
            "num_candidates": min(k * 4, MAX_RESULT_WINDOW),
        }
        try:
            response = self._client.search(
                index=self._name,
                knn=knn,
                size=k,
                source_excludes=[VECTOR_FIELD],
            )
        except (ApiError, TransportError) as e:
            _raise_upstream("query", self._name, e)

        rows = [CollectionRow.from_hit(hit) for hit in response["hits"]["hits"]]
        log.debug(f"kNN query on {self._name}: k={k} hits={len(rows)}")
        return rows

    def delete(self, *, ids: Sequence[str]) -> bool:
        """
        Delete rows by id.

        Returns:
            bool: True if every id existed and was removed, False if any was
            missing or blank

        Raises:
            UpstreamFailure: On any failure other than "not found"
        """
        all_found = True
        for row_id in ids:
            if not row_id or not row_id.strip():
                # The client rejects blank ids before sending a request
                all_found = False
                log.info(f"Delete skipped, blank id: collection={self._name}")
                continue
            try:
                self._client.delete(index=self._name, id=row_id, refresh="wait_for")
                log.info(f"Deleted row: collection={self._name} id={row_id}")
            except NotFoundError:
                all_found = False
                log.info(f"Delete skipped, row not found: collection={self._name} id={row_id}")
            except (ApiError, TransportError) as e:
                _raise_upstream("delete", self._name, e)
        return all_found

    def count(self) -> int:
        try:
            response = self._client.count(index=self._name)
        except (ApiError, TransportError) as e:
            _raise_upstream("count", self._name, e)
        return int(response.get("count", 0))


def _create_collection(
    client: Elasticsearch,
    name: str,
    vector_dim: int,
    *,
    tolerate_existing: bool,
) -> Collection:
    log.info(f"Creating collection: {name} (dim={vector_dim})")
    body = mapping_collection(vector_dim)
    try:
        client.indices.create(index=name, mappings=body["mappings"])
    except BadRequestError as e:
        if tolerate_existing and e.error == "resource_already_exists_exception":
            # Another caller created it between our lookup and create
            log.info(f"Collection created concurrently, reusing: {name}")
            return Collection(client, name)
        _raise_upstream("create", name, e)
    except (ApiError, TransportError) as e:
        _raise_upstream("create", name, e)

    log.info(f"Successfully created collection: {name}")
    return Collection(client, name)


def ensure_collection(
    name: str,
    *,
    client: Optional[Elasticsearch] = None,
    vector_dim: Optional[int] = None,
) -> Collection:
    """
    Return a handle to collection `name`, creating it if it does not exist.

    The backing store's "not found" answer is the creation trigger, not an
    error.

    Args:
        name: Collection (index) name
        client: Client to use; a fresh one is built when omitted
        vector_dim: Embedding dimension (defaults to ELASTIC_VECTOR_DIM)

    Raises:
        ConfigurationError: If Elasticsearch is not configured or unreachable
        UpstreamFailure: If the lookup or creation is rejected
    """
    es = client if client is not None else es_client()
    dim = vector_dim or config.elastic_vector_dim

    try:
        es.indices.get(index=name)
        log.debug(f"Collection exists: {name}")
        return Collection(es, name)
    except NotFoundError:
        log.info(f"Collection not found: {name}")
    except (ApiError, TransportError) as e:
        _raise_upstream("lookup", name, e)

    return _create_collection(es, name, dim, tolerate_existing=True)


def reset_collection(
    name: str,
    *,
    client: Optional[Elasticsearch] = None,
    vector_dim: Optional[int] = None,
) -> Collection:
    """
    Drop and recreate collection `name`. Initialization tooling only.

    Any deletion failure (including "did not exist") is logged and ignored;
    a creation failure is raised.
    """
    es = client if client is not None else es_client()
    dim = vector_dim or config.elastic_vector_dim

    log.warning(f"Resetting collection: {name}")
    try:
        es.indices.delete(index=name)
        log.info(f"Deleted existing collection: {name}")
    except (ApiError, TransportError) as e:
        log.info(f"Collection delete ignored for {name}: {e}")

    return _create_collection(es, name, dim, tolerate_existing=False)


def collection_info(collection: Collection) -> Dict[str, Any]:
    """Small status dict for tooling output."""
    return {"name": collection.name, "count": collection.count()}

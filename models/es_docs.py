from __future__ import annotations
import math
from numbers import Real
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

class CollectionRow(BaseModel):
    id: str                                   # record id, also the ES _id
    document: str = ""                        # summary text that was embedded
    metadata: Dict[str, Any] = Field(default_factory=dict)  # flat string values
    embedding: Optional[List[float]] = None   # only populated when requested
    score: Optional[float] = None             # similarity, query results only

    @classmethod
    def from_hit(cls, hit: Dict[str, Any]) -> "CollectionRow":
        """Build a row from a search hit; malformed source fields fall back to their defaults."""
        source = hit.get("_source")
        if not isinstance(source, dict):
            source = {}
        document = source.get("document")
        metadata = source.get("metadata")
        return cls(
            id=str(hit.get("_id", "")),
            document=document if isinstance(document, str) else ("" if document is None else str(document)),
            metadata=metadata if isinstance(metadata, dict) else {},
            embedding=_vector(source.get("embedding")),
            score=_finite(hit.get("_score")),
        )


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _vector(value: Any) -> Optional[List[float]]:
    if not isinstance(value, list):
        return None
    vector = [_finite(x) for x in value]
    if any(x is None for x in vector):
        return None
    return vector

"""
Error taxonomy shared by the vector store, embedding client and record stores.

- ConfigurationError: missing credentials or an unreachable endpoint
- UpstreamFailure: a backing service answered with a non-success status
- MalformedRecordError: an extracted record is missing a required field
"""
from __future__ import annotations
from typing import Optional


class ConfigurationError(RuntimeError):
    """Fatal to the triggering operation; never retried automatically."""


class UpstreamFailure(RuntimeError):
    """Non-success response from the vector database or the embedding model."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (status={self.status})"


class MalformedRecordError(ValueError):
    """A record lacks a required field or has the wrong shape entirely."""

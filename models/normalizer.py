"""
Shape normalization of extracted records.

Extraction output may omit optional fields or send them as null; these
helpers return fully populated records with the documented defaults and
only reject records whose required fields are absent or of the wrong shape.
"""
from __future__ import annotations
from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.errors import MalformedRecordError
from core.logger import get_logger
from models.schema import BankStatement, BankTransaction, Receipt

log = get_logger("models/normalizer")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def _normalize(model: Type[ModelT], raw: Any) -> ModelT:
    if isinstance(raw, model):
        # Re-validate so defaults and currency rules apply to hand-built models too
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        raise MalformedRecordError(
            f"{model.__name__} must be an object, got {type(raw).__name__}"
        )
    try:
        return model.model_validate(dict(raw))
    except ValidationError as exc:
        detail = _describe(exc)
        log.warning(f"Rejected malformed {model.__name__}: {detail}")
        raise MalformedRecordError(f"Malformed {model.__name__}: {detail}") from exc


def normalize_receipt(raw: Mapping[str, Any] | Receipt) -> Receipt:
    """Fill receipt defaults; raise MalformedRecordError on missing required fields."""
    return _normalize(Receipt, raw)


def normalize_transaction(raw: Mapping[str, Any] | BankTransaction) -> BankTransaction:
    return _normalize(BankTransaction, raw)


def normalize_statement(raw: Mapping[str, Any] | BankStatement) -> BankStatement:
    return _normalize(BankStatement, raw)

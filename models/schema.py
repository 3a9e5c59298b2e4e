from __future__ import annotations
from datetime import datetime
from typing import Literal, Optional, get_args

from pydantic import BaseModel, Field, field_validator

PaymentMethod = Literal["cash", "credit", "debit", "mobile", "other"]

ReceiptCategory = Literal[
    "groceries",
    "dining",
    "transportation",
    "entertainment",
    "utilities",
    "healthcare",
    "shopping",
    "other",
]

TransactionCategory = Literal[
    "groceries",
    "dining",
    "transportation",
    "entertainment",
    "utilities",
    "healthcare",
    "shopping",
    "travel",
    "bills",
    "transfer",
    "income",
    "other",
]

PAYMENT_METHODS: tuple[str, ...] = get_args(PaymentMethod)
RECEIPT_CATEGORIES: tuple[str, ...] = get_args(ReceiptCategory)
TRANSACTION_CATEGORIES: tuple[str, ...] = get_args(TransactionCategory)

FALLBACK_CATEGORY = "other"
DEFAULT_RECEIPT_CURRENCY = "USD"
DEFAULT_TRANSACTION_CURRENCY = "GBP"


def _field_default(model: type[BaseModel], field_name: str):
    return model.model_fields[field_name].get_default(call_default_factory=True)


def _currency_code(value, default: str) -> str:
    if value is None:
        return default
    code = str(value).strip().upper()
    return code or default


class LineItem(BaseModel):
    name: str = Field(default="")
    quantity: float = Field(default=1, ge=0)
    unitPrice: float = Field(default=0, ge=0)
    totalPrice: float = Field(ge=0, description="Line total; not necessarily quantity * unitPrice")
    category: ReceiptCategory = FALLBACK_CATEGORY

    model_config = {
        "extra": "ignore",
    }

    @field_validator("name", "quantity", "unitPrice", "category", mode="before")
    @classmethod
    def _default_when_missing(cls, value, info):
        if value is None:
            return _field_default(cls, info.field_name)
        return value


class Receipt(BaseModel):
    merchantName: str
    merchantAddress: str = Field(default="")
    date: str = Field(description="Date of purchase, YYYY-MM-DD")
    time: str = Field(default="", description="HH:MM or empty")
    items: list[LineItem]
    subtotal: float = Field(default=0, ge=0)
    tax: float = Field(default=0, ge=0)
    total: float = Field(ge=0)
    paymentMethod: PaymentMethod = "other"
    currency: str = Field(default=DEFAULT_RECEIPT_CURRENCY)

    model_config = {
        "extra": "ignore",
    }

    @field_validator("merchantAddress", "time", "subtotal", "tax", "paymentMethod", mode="before")
    @classmethod
    def _default_when_missing(cls, value, info):
        if value is None:
            return _field_default(cls, info.field_name)
        return value

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value) -> str:
        return _currency_code(value, DEFAULT_RECEIPT_CURRENCY)


class StoredReceipt(Receipt):
    id: str
    createdAt: datetime
    imageUrl: Optional[str] = None
    imageHash: Optional[str] = None


class BankTransaction(BaseModel):
    date: str = Field(description="Transaction date, YYYY-MM-DD")
    description: str = Field(default="")
    amount: float = Field(description="Positive for spending, negative for refunds/credits")
    category: TransactionCategory = FALLBACK_CATEGORY
    currency: str = Field(default=DEFAULT_TRANSACTION_CURRENCY)

    model_config = {
        "extra": "ignore",
    }

    @field_validator("description", "category", mode="before")
    @classmethod
    def _default_when_missing(cls, value, info):
        if value is None:
            return _field_default(cls, info.field_name)
        return value

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value) -> str:
        return _currency_code(value, DEFAULT_TRANSACTION_CURRENCY)


class StoredTransaction(BankTransaction):
    id: str
    createdAt: datetime
    statementId: Optional[str] = None


class StatementPeriod(BaseModel):
    startDate: str
    endDate: str


class BankStatement(BaseModel):
    transactions: list[BankTransaction]
    statementPeriod: Optional[StatementPeriod] = None
    accountNumber: Optional[str] = None

    model_config = {
        "extra": "ignore",
    }

    @field_validator("accountNumber", mode="before")
    @classmethod
    def _strip_account_number(cls, value):
        if value is None:
            return None
        s = str(value).strip()
        return s or None

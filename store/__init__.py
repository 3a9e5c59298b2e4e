from .receipts import IngestResult, ReceiptStore
from .transactions import StatementIngestResult, TransactionStore
from .aggregation import CategorySummary, DailySpend

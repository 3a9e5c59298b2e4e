from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

# --- Ensure project root is in path ---
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

# --- Import core setup ---
from core.config import config
from core.errors import ConfigurationError, MalformedRecordError, UpstreamFailure
from core.logger import get_logger
from core.secrets import load_secrets_into_env

log = get_logger("main")


def verify_environment() -> bool:
    """Check environment prerequisites; returns False when something required is missing."""
    log.info(f"Starting Receipt Vault in '{config.environment}' mode")
    ok = True

    if config.log_to_file and not config.logs_dir.exists():
        log.warning(f"Creating missing directory: {config.logs_dir}")
        config.logs_dir.mkdir(parents=True, exist_ok=True)

    if not config.elastic_cloud_endpoint:
        log.error("ELASTIC_CLOUD_ENDPOINT not set, the record store cannot run")
        ok = False
    if not config.gcp_project_id:
        log.warning("⚠️  GCP_PROJECT_ID not set, saving and searching will fail")
        ok = False
    return ok


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _dump(models: List[Any]) -> List[dict]:
    return [m.model_dump(mode="json") for m in models]


def _read_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="receipt-vault", description="Receipt and bank transaction store")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", help="verify configuration and Elasticsearch health")
    sub.add_parser("init", help="drop and recreate both collections")

    p = sub.add_parser("ingest-receipt", help="store an extracted receipt JSON")
    p.add_argument("record", help="extracted receipt JSON file")
    p.add_argument("--image", help="original image, hashed for duplicate detection")
    p.add_argument("--image-url", help="reference stored alongside the receipt")
    p.add_argument("--force", action="store_true", help="store even if the image was seen before")

    p = sub.add_parser("ingest-statement", help="store an extracted bank statement JSON")
    p.add_argument("statement", help="extracted statement JSON file")

    p = sub.add_parser("search", help="semantic receipt search")
    p.add_argument("query")
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("receipts", help="list receipts, newest first")
    p.add_argument("--limit", type=int, default=50)

    p = sub.add_parser("transactions", help="list transactions, newest first")
    p.add_argument("--limit", type=int, default=500)

    sub.add_parser("summary", help="spend by category and over the last 30 days")

    p = sub.add_parser("delete-receipt")
    p.add_argument("id")
    p = sub.add_parser("delete-transaction")
    p.add_argument("id")
    return parser


def run(args: argparse.Namespace) -> int:
    # Imported here so `check` works without the embedding stack configured
    from elastic.client import health_check
    from elastic.indexer import collection_info, reset_collection
    from store import ReceiptStore, TransactionStore

    if args.command == "check":
        healthy = verify_environment() and health_check()
        log.info(f"Environment check: {'ok' if healthy else 'failed'}")
        return 0 if healthy else 1

    if args.command == "init":
        for name in (config.elastic_index_receipts, config.elastic_index_transactions):
            _print_json(collection_info(reset_collection(name)))
        return 0

    receipts = ReceiptStore()
    transactions = TransactionStore()

    if args.command == "ingest-receipt":
        record = _read_json(args.record)
        if args.image:
            result = receipts.ingest(
                Path(args.image).read_bytes(),
                lambda _image: record,
                image_url=args.image_url,
                force_reprocess=args.force,
            )
            _print_json(result.model_dump(mode="json"))
        else:
            _print_json(receipts.save(record, image_url=args.image_url).model_dump(mode="json"))
    elif args.command == "ingest-statement":
        _print_json(transactions.save_statement(_read_json(args.statement)).model_dump(mode="json"))
    elif args.command == "search":
        _print_json(_dump(receipts.search(args.query, limit=args.limit)))
    elif args.command == "receipts":
        _print_json(_dump(receipts.list(limit=args.limit)))
    elif args.command == "transactions":
        _print_json(_dump(transactions.list(limit=args.limit)))
    elif args.command == "summary":
        _print_json({
            "receipts": _dump(receipts.summary_by_category()),
            "spendingOverTime": _dump(receipts.spending_over_time()),
            "transactions": _dump(transactions.summary_by_category()),
        })
    elif args.command == "delete-receipt":
        _print_json({"success": receipts.delete(args.id)})
    elif args.command == "delete-transaction":
        _print_json({"success": transactions.delete(args.id)})
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    load_secrets_into_env()
    try:
        return run(args)
    except MalformedRecordError as e:
        log.error(f"Rejected record: {e}")
        return 2
    except (ConfigurationError, UpstreamFailure) as e:
        log.error(f"{type(e).__name__}: {e}")
        return 1

if __name__ == "__main__":
    sys.exit(main())

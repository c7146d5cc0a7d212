import argparse
import csv
from pathlib import Path
from typing import Iterator, Tuple

from . import __version__
from .config import (
    ConfigRecordApiKeyProvider,
    Settings,
    StaticApiKeyProvider,
    api_key_provider,
    load_env,
)
from .database import get_engine, init_database
from .errors import SelectionFailure, TransportFailure
from .interpret import interpret
from .logger import get_logger
from .normalize import normalize_identifier
from .pipeline import EnrichmentPipeline
from .ratelimit import SlidingWindowRateLimiter
from .registry import RegistryClient
from .selector import select_candidates
from .storage import CustomerStore, SicCodeStore
from .summary import log_run_summary

logger = get_logger()


def _settings(args: argparse.Namespace) -> Settings:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise SystemExit(str(e))
    if getattr(args, "db", None):
        settings.db_path = Path(args.db)
    if getattr(args, "api_key", None):
        settings.api_key = args.api_key
    if getattr(args, "limit", None) is not None:
        if args.limit < 1:
            raise SystemExit("--limit must be at least 1")
        settings.batch_limit = args.limit
    if getattr(args, "workers", None) is not None:
        settings.max_workers = max(1, args.workers)
    return settings


def _require_db(settings: Settings) -> None:
    if not settings.db_path.exists():
        raise SystemExit(f"Database not found: {settings.db_path}. Run 'sicsync init-db' first.")


def build_pipeline(settings: Settings) -> EnrichmentPipeline:
    engine = get_engine(settings.db_path)
    client = RegistryClient(
        api_key_provider(settings, engine),
        base_url=settings.base_url,
        timeout=settings.request_timeout,
        rate_limiter=SlidingWindowRateLimiter(),
    )
    return EnrichmentPipeline(
        store=CustomerStore(engine=engine),
        client=client,
        description_store=SicCodeStore(engine=engine),
        batch_limit=settings.batch_limit,
        max_workers=settings.max_workers,
    )


def cmd_run(args: argparse.Namespace) -> None:
    settings = _settings(args)
    _require_db(settings)
    logger.set_level(settings.log_level)

    pipeline = build_pipeline(settings)
    result = pipeline.run()
    log_run_summary(result)

    if result.report.input_error:
        print(f"Input error: {result.report.input_error}")
        raise SystemExit(1)

    c = result.counts()
    print(
        f"Done. processed={c['processed']} updated={c['updated']} untouched={c['untouched']} "
        f"rejected={c['rejected']} deactivated={c['deactivated']} errors={c['errors']}"
    )


def cmd_lookup(args: argparse.Namespace) -> None:
    settings = _settings(args)
    if settings.api_key:
        provider = StaticApiKeyProvider(settings.api_key)
    else:
        _require_db(settings)
        provider = ConfigRecordApiKeyProvider(get_engine(settings.db_path))
    client = RegistryClient(provider, base_url=settings.base_url, timeout=settings.request_timeout)

    company_no = normalize_identifier(args.company_no)
    try:
        result = client.lookup(company_no)
    except TransportFailure as e:
        raise SystemExit(f"Lookup failed: {e}")

    data = interpret(result)
    print(f"Company: {company_no}")
    print(f"HTTP status: {result.status_code}")
    print(f"SIC codes: {', '.join(data.codes) if data.codes else '-'}")
    print(f"Status: {data.status or '-'}")


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.db_path)
    print(f"Database ready: {settings.db_path}")


def _read_csv(path: Path) -> Iterator[dict]:
    with path.open("r", encoding="utf-8", newline="") as f:
        yield from csv.DictReader(f)


def _code_rows(path: Path) -> Iterator[Tuple[str, str]]:
    for row in _read_csv(path):
        code = (row.get("code") or "").strip()
        description = (row.get("description") or "").strip()
        if code and description:
            yield code, description


def cmd_seed_codes(args: argparse.Namespace) -> None:
    settings = _settings(args)
    _require_db(settings)
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")

    store = SicCodeStore(settings.db_path)
    count = store.load_codes(_code_rows(input_path))
    print(f"Loaded {count} SIC codes")


def cmd_import_customers(args: argparse.Namespace) -> None:
    settings = _settings(args)
    _require_db(settings)
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")

    store = CustomerStore(settings.db_path)
    imported = skipped = 0
    for row in _read_csv(input_path):
        entity_id = (row.get("entity_id") or "").strip()
        if not entity_id:
            skipped += 1
            continue
        try:
            store.add(
                entity_id=entity_id,
                company_no=row.get("company_no") or None,
                balance=float(row.get("balance") or 0),
                overdue_balance=float(row.get("overdue_balance") or 0),
                unbilled_orders=float(row.get("unbilled_orders") or 0),
            )
        except ValueError as e:
            print(f"[skip] {entity_id}: {e}")
            skipped += 1
            continue
        imported += 1
    print(f"Done. imported={imported} skipped={skipped}")


def cmd_set_api_key(args: argparse.Namespace) -> None:
    settings = _settings(args)
    _require_db(settings)
    ConfigRecordApiKeyProvider(get_engine(settings.db_path)).set_api_key(args.key)
    print("API key stored in configuration record")


def cmd_list(args: argparse.Namespace) -> None:
    settings = _settings(args)
    _require_db(settings)
    try:
        candidates = select_candidates(CustomerStore(settings.db_path), settings.batch_limit)
    except SelectionFailure as e:
        raise SystemExit(str(e))
    if not candidates:
        print("No candidates.")
        return
    print(f"Found {len(candidates)} candidates:\n")
    for c in candidates:
        print(f"#{c.record_id} {c.entity_id}")
        print(f"  Company No: {c.registry_id}")
        print(f"  SIC codes: {', '.join(c.current_codes) or '-'}")
        print(f"  Last modified: {c.last_modified}")
        print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sicsync", description="Enrich customers with SIC codes and company status from Companies House")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")

    run = subparsers.add_parser("run", help="Select candidates, enrich them and print a summary")
    run.add_argument("--db", help="Path to SQLite database (default: $SICSYNC_DB or data/sicsync.db)")
    run.add_argument("--api-key", help="Companies House API key (or set COMPANIES_HOUSE_API_KEY)")
    run.add_argument("--limit", type=int, help="Maximum candidates to process (capped at 600)")
    run.add_argument("--workers", type=int, help="Worker threads (default 1)")
    run.set_defaults(func=cmd_run)

    lkp = subparsers.add_parser("lookup", help="Look up one company number without writing anything")
    lkp.add_argument("--company-no", required=True, help="Company number as stored on the customer")
    lkp.add_argument("--db", help="Path to SQLite database (for the stored API key)")
    lkp.add_argument("--api-key", help="Companies House API key (or set COMPANIES_HOUSE_API_KEY)")
    lkp.set_defaults(func=cmd_lookup)

    ini = subparsers.add_parser("init-db", help="Create database tables")
    ini.add_argument("--db", help="Path to SQLite database")
    ini.set_defaults(func=cmd_init_db)

    sed = subparsers.add_parser("seed-codes", help="Load SIC codes from a CSV with code,description columns")
    sed.add_argument("--input", required=True, help="CSV file")
    sed.add_argument("--db", help="Path to SQLite database")
    sed.set_defaults(func=cmd_seed_codes)

    imp = subparsers.add_parser("import-customers", help="Import customers from a CSV (entity_id,company_no,balance,overdue_balance,unbilled_orders)")
    imp.add_argument("--input", required=True, help="CSV file")
    imp.add_argument("--db", help="Path to SQLite database")
    imp.set_defaults(func=cmd_import_customers)

    key = subparsers.add_parser("set-api-key", help="Store the Companies House API key in the configuration record")
    key.add_argument("--key", required=True, help="API key")
    key.add_argument("--db", help="Path to SQLite database")
    key.set_defaults(func=cmd_set_api_key)

    lst = subparsers.add_parser("list", help="List the candidates the next run would process")
    lst.add_argument("--db", help="Path to SQLite database")
    lst.add_argument("--limit", type=int, help="Maximum candidates to list (capped at 600)")
    lst.set_defaults(func=cmd_list)

    return parser


def main(argv=None):
    # Load .env if present (COMPANIES_HOUSE_API_KEY, SICSYNC_DB, etc.)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()

"""CLI entry point for the document matching engine."""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from src.core.config import Settings
from src.core.errors import SearchError
from src.core.schemas import DateWindow, LocalItem, PartnerProfile, TransactionQuery
from src.pipeline.fanout import default_window
from src.pipeline.orchestrator import MatchingEngine, export_results_json
from src.sources.http import HttpSourceClient


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find receipts and invoices matching a bank transaction",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- search subcommand (default) ---
    search_parser = subparsers.add_parser("search", help="Search and rank candidate documents")
    search_parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    search_parser.add_argument(
        "--transaction",
        required=True,
        help="Path to a JSON file describing the transaction",
    )
    search_parser.add_argument(
        "--local",
        help="Path to a JSON array of local store items",
    )
    search_parser.add_argument(
        "--partner",
        help="Path to a JSON partner profile",
    )
    search_parser.add_argument("--query", default="", help="Free-text search")
    search_parser.add_argument(
        "--local-only",
        action="store_true",
        help="Skip remote mailbox accounts",
    )
    search_parser.add_argument("--date-from", type=date.fromisoformat, help="YYYY-MM-DD")
    search_parser.add_argument("--date-to", type=date.fromisoformat, help="YYYY-MM-DD")
    search_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be queried without contacting any source",
    )
    search_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )
    search_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- serve-scoring subcommand ---
    serve_parser = subparsers.add_parser(
        "serve-scoring",
        help="Run the scoring service (POST /score)",
    )
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8080)
    serve_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(2)
    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_inputs(
    args: argparse.Namespace,
) -> tuple[TransactionQuery, list[LocalItem], PartnerProfile | None]:
    """Load transaction, local items and partner from their JSON files."""
    query = TransactionQuery.model_validate(_read_json(args.transaction))
    items: list[LocalItem] = []
    if args.local:
        items = TypeAdapter(list[LocalItem]).validate_python(_read_json(args.local))
    partner = None
    if args.partner:
        partner = PartnerProfile.model_validate(_read_json(args.partner))
    return query, items, partner


def _read_json(path: str) -> object:
    file = Path(path)
    if not file.exists():
        msg = f"File not found: {path}"
        raise FileNotFoundError(msg)
    return json.loads(file.read_text())


def _explicit_window(args: argparse.Namespace) -> DateWindow | None:
    if args.date_from is None and args.date_to is None:
        return None
    return DateWindow(date_from=args.date_from, date_to=args.date_to)


def dry_run(settings: Settings, query: TransactionQuery, args: argparse.Namespace) -> None:
    """Print what would happen without actually searching."""
    window = _explicit_window(args)
    accounts = settings.connected_accounts

    print(f"[DRY RUN] Transaction '{query.id}': amount={query.amount} date={query.date}")
    if args.local_only:
        print("[DRY RUN] Local only — no accounts would be queried")
        return

    remote_window = window or default_window(query, settings.search)
    print(f"[DRY RUN] {len(accounts)} connected accounts")
    for account in accounts:
        print(f"  {account.id} ({account.provider}, {account.email or 'no email'})")
    if remote_window is not None:
        print(f"  Window: {remote_window.date_from} .. {remote_window.date_to}")
    print(f"  Limit per account: {settings.search.remote_limit}")
    print(f"  Scoring backend: {settings.scoring.backend}")


async def run(settings: Settings, args: argparse.Namespace) -> None:
    """Run one search against the local file and the connected accounts."""
    query, items, partner = load_inputs(args)
    window = _explicit_window(args)

    async def _search(engine: MatchingEngine) -> None:
        outcome = await engine.search(
            query,
            items,
            free_text=args.query,
            partner=partner,
            date_window=window,
            local_only=args.local_only,
        )
        if outcome is None:
            return

        print(f"\nSearch complete: {outcome.local_count} local, {outcome.remote_count} remote "
              f"candidates, {len(outcome.results)} ranked.")
        for account in outcome.partial_failures:
            print(f"  WARNING: account '{account.id}' could not be searched")
        for r in outcome.results:
            label = f" [{r.label}]" if r.label else ""
            print(f"  {r.score:5.1f}{label} {r.candidate.filename} "
                  f"({r.candidate.source}) — {', '.join(r.reasons) or 'no signals'}")

        if args.export == "json":
            print(f"\n{export_results_json(outcome)}")

    if args.local_only or not settings.connected_accounts:
        await _search(MatchingEngine(settings))
        return

    async with HttpSourceClient(settings.sources) as client:
        await _search(MatchingEngine(settings, source_client=client))


def cmd_serve_scoring(args: argparse.Namespace) -> None:
    """Handle serve-scoring subcommand."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=args.host,
        port=args.port,
        log_level="debug" if args.verbose else "info",
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "serve-scoring":
        cmd_serve_scoring(args)
        return

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.dry_run:
            query, _, _ = load_inputs(args)
            dry_run(settings, query, args)
        else:
            asyncio.run(run(settings, args))
    except (FileNotFoundError, ValidationError, json.JSONDecodeError) as e:
        print(f"Error loading input: {e}", file=sys.stderr)
        sys.exit(1)
    except SearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

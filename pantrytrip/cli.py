"""CLI entry point for pantrytrip."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sqlite3
import sys
from dataclasses import asdict
from pathlib import Path

from .budget import BudgetReconciler
from .config import PantryTripConfig, load_config
from .errors import NotFoundError, PantryTripError
from .matching import MatchClassifier
from .models import Receipt, ShoppingList
from .orchestrator import DecisionEntry, TripCompletionOrchestrator
from .restock import RestockEngine
from .store import create_store
from .store.sqlite import SQLiteStore


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="pantrytrip",
        description="Reconcile shopping receipts against your pantry and budget",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="path to the configuration file (TOML)",
    )
    parser.add_argument("--db", type=str, default=None, help="database file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command")

    # import-receipt
    imp_r = sub.add_parser("import-receipt", help="import a parsed receipt (JSON)")
    imp_r.add_argument("file", type=str)

    # import-list
    imp_l = sub.add_parser("import-list", help="import a shopping list (JSON)")
    imp_l.add_argument("file", type=str)

    # pantry
    pantry_parser = sub.add_parser("pantry", help="show pantry items")
    pantry_parser.add_argument("--json", action="store_true", help="output JSON")

    # reconcile
    rec_parser = sub.add_parser("reconcile", help="preview how a receipt matches the pantry")
    rec_parser.add_argument("receipt_id")
    rec_parser.add_argument("--json", action="store_true", help="output JSON")

    # summary
    sum_parser = sub.add_parser("summary", help="compare a receipt with a list budget")
    sum_parser.add_argument("receipt_id")
    sum_parser.add_argument("list_id")
    sum_parser.add_argument("--json", action="store_true", help="output JSON")
    sum_parser.add_argument("--pdf", type=str, default=None, metavar="FILE", help="write a PDF report")

    # complete
    done_parser = sub.add_parser("complete", help="complete a trip and update the pantry")
    done_parser.add_argument("receipt_id")
    done_parser.add_argument("list_id")
    answer = done_parser.add_mutually_exclusive_group()
    answer.add_argument("--yes", action="store_true", help="accept every suggestion")
    answer.add_argument("--no", action="store_true", help="decline every suggestion")
    done_parser.add_argument("--pdf", type=str, default=None, metavar="FILE", help="write a PDF report")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        if args.db:
            config.database.path = args.db
        store = create_store(config)
        try:
            match args.command:
                case "import-receipt":
                    _cmd_import_receipt(store, args)
                case "import-list":
                    _cmd_import_list(store, args)
                case "pantry":
                    asyncio.run(_cmd_pantry(store, args))
                case "reconcile":
                    asyncio.run(_cmd_reconcile(config, store, args))
                case "summary":
                    asyncio.run(_cmd_summary(config, store, args))
                case "complete":
                    asyncio.run(_cmd_complete(config, store, args))
        finally:
            store.close()
    except (PantryTripError, OSError, json.JSONDecodeError, sqlite3.Error) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


def _read_json(path: str) -> dict:
    with open(Path(path), encoding="utf-8") as f:
        return json.load(f)


def _cmd_import_receipt(store: SQLiteStore, args) -> None:
    receipt = Receipt.from_dict(_read_json(args.file))
    receipt.validate()
    print(store.save_receipt(receipt))


def _cmd_import_list(store: SQLiteStore, args) -> None:
    shopping_list = ShoppingList.from_dict(_read_json(args.file))
    shopping_list.validate()
    print(store.save_list(shopping_list))


async def _cmd_pantry(store: SQLiteStore, args) -> None:
    items = await store.get_pantry_items()
    if args.json:
        print(json.dumps([asdict(i) for i in items], ensure_ascii=False, indent=2))
        return
    if not items:
        print("The pantry is empty.")
        return
    print(f"Pantry ({len(items)} items):")
    for i in items:
        print(f"  {i.name:<24} {i.stock_level.value:<8} [{i.category}]")


async def _cmd_reconcile(config: PantryTripConfig, store: SQLiteStore, args) -> None:
    receipt = await _load_receipt(store, args.receipt_id)
    pantry = await store.get_pantry_items()
    engine = RestockEngine(classifier=MatchClassifier(config.matching))
    result = engine.partition(receipt.items, pantry)

    if args.json:
        print(json.dumps(asdict(result), ensure_ascii=False, indent=2))
        return

    _print_receipt(config, receipt)
    print(f"\nWould restock ({len(result.restocked_items)}):")
    for r in result.restocked_items:
        print(f"  {r.receipt_item_name}")
    print(f"Possible matches ({len(result.fuzzy_matches)}):")
    for f in result.fuzzy_matches:
        print(f"  {f.receipt_item_name} -> {f.pantry_item_name} ({f.similarity}%)")
    print(f"New items ({len(result.items_to_add)}):")
    for n in result.items_to_add:
        print(f"  {n.name}")


async def _cmd_summary(config: PantryTripConfig, store: SQLiteStore, args) -> None:
    receipt = await _load_receipt(store, args.receipt_id)
    shopping_list = await store.get_list(args.list_id)
    if shopping_list is None:
        raise NotFoundError(f"shopping list {args.list_id!r} not found")

    summary = BudgetReconciler().reconcile(shopping_list, receipt)
    if args.json:
        data = asdict(summary)
        data["overspend"] = summary.overspend
        print(json.dumps(data, ensure_ascii=False, indent=2))
    else:
        _print_summary(summary)

    if args.pdf:
        _write_pdf(config, summary, None, args.pdf)


async def _cmd_complete(config: PantryTripConfig, store: SQLiteStore, args) -> None:
    receipt = await _load_receipt(store, args.receipt_id)
    _print_receipt(config, receipt)

    orchestrator = TripCompletionOrchestrator(store, config=config)
    outcome = await orchestrator.start(args.receipt_id, args.list_id)

    result = outcome.restock_result
    print(f"\nRestocked {len(result.restocked_items)} pantry items.")
    for entry in orchestrator:
        await entry.resolve(_ask(entry, args))

    for failure in outcome.failures:
        print(f"  skipped {failure.operation} for {failure.subject}: {failure.error}")

    print()
    _print_summary(outcome.summary)

    if args.pdf:
        _write_pdf(config, outcome.summary, result, args.pdf)


def _ask(entry: DecisionEntry, args) -> bool:
    if args.yes:
        return True
    if args.no:
        return False
    while True:
        try:
            reply = input(f"{entry.prompt} [y/n] ").strip().lower()
        except EOFError:
            return False
        if reply in ("y", "yes"):
            return True
        if reply in ("n", "no"):
            return False


async def _load_receipt(store: SQLiteStore, receipt_id: str) -> Receipt:
    receipt = await store.get_receipt(receipt_id)
    if receipt is None:
        raise NotFoundError(f"receipt {receipt_id!r} not found")
    return receipt


def _print_receipt(config: PantryTripConfig, receipt: Receipt) -> None:
    store_name = f" from {receipt.store_name}" if receipt.store_name else ""
    print(f"Receipt {receipt.id}{store_name}: {len(receipt.items)} items, ${receipt.total:.2f}")
    for item in receipt.items:
        flag = "?" if item.needs_review(config.receipt.review_confidence) else " "
        print(f" {flag} {item.name:<24} x{item.quantity:g}  ${item.total_price:.2f}")


def _print_summary(summary) -> None:
    print(f"Budget ${summary.budget:.2f}, spent ${summary.actual_total:.2f}")
    if summary.saved_money:
        print(f"  Saved ${summary.difference:.2f} ({summary.percent_saved:.1f}%)")
    elif summary.overspend > 0:
        print(f"  Over budget by ${summary.overspend:.2f}")
    if summary.unplanned_items:
        print(f"  Unplanned ({len(summary.unplanned_items)}, ${summary.unplanned_total:.2f}):")
        for item in summary.unplanned_items:
            print(f"    {item.name}")
    if summary.missed_items:
        print(f"  Not bought ({len(summary.missed_items)}):")
        for item in summary.missed_items:
            print(f"    {item.name}")


def _write_pdf(config: PantryTripConfig, summary, result, path: str) -> None:
    from .report import generate_trip_pdf

    try:
        out = generate_trip_pdf(summary, result, path, font_path=config.report.font_path or None)
        print(f"PDF saved: {out}")
    except (ImportError, FileNotFoundError) as e:
        print(f"PDF error: {e}", file=sys.stderr)

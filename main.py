# main.py
"""
Entry Point: bukken tracker

Purpose
-------
Track Japanese real-estate listings from the command line:
  - add a listing URL (fetch → extract → store)
  - rate, set status, edit fields by hand, refresh from the source page
  - inspect and change the shared settings (users, loan assumptions)

Configuration comes from ./bukken.json (optional) and BUKKEN_* environment
variables; see src/inputs/config.py.

Usage
-----
    python main.py add https://suumo.jp/ms/chuko/tokyo/sc_shinjuku/nc_12345678/
    python main.py list
    python main.py rate <id> u1 good --comment "日当たり良好"
    python main.py status <id> viewing_scheduled
    python main.py edit <id> '{"price": "3,480万円", "fees": {"management": 12000}}'
    python main.py refresh <id>
    python main.py --render extract https://www.homes.co.jp/mansion/b-12345/
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from src.core.logging_setup import configure_logging
from src.core.normalize import parse_any_to_fields
from src.core.storage import JsonCollectionStore
from src.inputs.config import AppConfig, ConfigLoader
from src.schemas.models import StoredProperty
from src.tools.listing_extract import extract_listing
from src.tools.property_service import PropertyService


def _dump(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def _dump_property(prop: StoredProperty) -> None:
    _dump(prop.model_dump(mode="json", by_alias=True))


def _json_arg(text: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"not valid JSON: {e}") from e
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    p = argparse.ArgumentParser(description="Japanese real-estate listing tracker")
    p.add_argument("--config", type=str, default=None, help="Path to JSON config (default: ./bukken.json if present).")
    p.add_argument("--db", type=str, default=None, help="Collection file (overrides config).")
    p.add_argument("--render", action="store_true", help="Render pages with Playwright (overrides config).")
    sub = p.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Track a listing URL.")
    add.add_argument("url")

    sub.add_parser("list", help="List tracked properties.")

    show = sub.add_parser("show", help="Print one property as JSON.")
    show.add_argument("id")

    refresh = sub.add_parser("refresh", help="Re-extract a property, keeping hand-edited fields.")
    refresh.add_argument("id")

    rate = sub.add_parser("rate", help="Set a user's rating.")
    rate.add_argument("id")
    rate.add_argument("user_id")
    rate.add_argument("score", choices=["good", "bad", "none"])
    rate.add_argument("--comment", default=None, help="Comment (omit to keep the current one).")

    status = sub.add_parser("status", help="Set the workflow status.")
    status.add_argument("id")
    status.add_argument("status")

    edit = sub.add_parser("edit", help="Edit fields by hand (JSON object).")
    edit.add_argument("id")
    edit.add_argument("updates", type=_json_arg)

    unmark = sub.add_parser("unmark", help="Let refresh overwrite hand-edited fields again.")
    unmark.add_argument("id")
    unmark.add_argument("fields", nargs="+")

    delete = sub.add_parser("delete", help="Stop tracking a property.")
    delete.add_argument("id")

    settings = sub.add_parser("settings", help="Show settings, or merge a JSON object into them.")
    settings.add_argument("updates", nargs="?", type=_json_arg, default=None)

    extract = sub.add_parser("extract", help="Extract a URL or saved page without storing it.")
    extract.add_argument("source", help="URL, or path to a saved .html/.txt page.")

    return p.parse_args(argv)


def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = ConfigLoader()
    cfg = loader.load(args.config)
    return loader.with_overrides(cfg, db_path=args.db, render_js=True if args.render else None)


def _print_summary(props: list[StoredProperty]) -> None:
    if not props:
        print("(no properties)")
        return
    for prop in props:
        edited = " ✏️" if prop.manually_edited_fields else ""
        print(f"{prop.id}  [{prop.status}]  {prop.summary()}{edited}")


def run(args: argparse.Namespace) -> int:
    cfg = _load_config(args)
    configure_logging(cfg.log_dir)

    if args.command == "extract":
        if args.source.startswith(("http://", "https://")):
            fields = extract_listing(args.source, policy=cfg.fetch)
        else:
            fields = parse_any_to_fields(args.source)
        _dump(fields.model_dump(mode="json", by_alias=True))
        return 0

    service = PropertyService(JsonCollectionStore(cfg.db_path), policy=cfg.fetch)
    result: Any

    if args.command == "add":
        _dump_property(service.add_by_url(args.url))
        return 0
    if args.command == "list":
        _print_summary(service.list_properties())
        return 0
    if args.command == "settings":
        settings = service.update_settings(args.updates) if args.updates else service.get_settings()
        _dump(settings.model_dump(mode="json", by_alias=True))
        return 0
    if args.command == "delete":
        ok = service.delete(args.id)
        print("deleted" if ok else f"no such property: {args.id}")
        return 0 if ok else 1

    if args.command == "show":
        result = service.get_property(args.id)
    elif args.command == "refresh":
        result = service.refresh(args.id)
    elif args.command == "rate":
        score = None if args.score == "none" else args.score
        result = service.update_rating(args.id, args.user_id, score=score, comment=args.comment)
    elif args.command == "status":
        result = service.update_status(args.id, args.status)
    elif args.command == "edit":
        result = service.manual_update(args.id, args.updates)
    elif args.command == "unmark":
        result = service.unmark_fields(args.id, args.fields)
    else:  # pragma: no cover - argparse restricts the choices
        raise SystemExit(f"unknown command: {args.command}")

    if result is None:
        print(f"no such property: {args.id}", file=sys.stderr)
        return 1
    _dump_property(result)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        return run(args)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())

"""Main CLI entry point."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional


def main(argv: Optional[list[str]] = None) -> None:
    """Parse args and dispatch to subcommands."""
    parser = argparse.ArgumentParser(prog="crm-records", description="CRM record reconciliation helpers")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings YAML (environment variables override it)",
    )
    parser.add_argument(
        "--store",
        type=str,
        default=None,
        help="Store backend to use (memory, salesforce)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # reconcile-account
    reconcile_parser = subparsers.add_parser("reconcile-account", help="Find-or-create an account by name")
    reconcile_parser.add_argument("name", help="Account name")

    # link-contacts
    link_parser = subparsers.add_parser(
        "link-contacts", help="Link contacts to accounts by account_name, then upsert them"
    )
    link_parser.add_argument("input", type=Path, help="JSON list of contacts, each with account_name")
    link_parser.add_argument(
        "--no-dedupe",
        action="store_true",
        help="Reconcile the account once per contact instead of once per name",
    )

    # default-opportunities
    defaults_parser = subparsers.add_parser(
        "default-opportunities", help="Apply stage/close date/amount defaults and upsert"
    )
    defaults_parser.add_argument("input", type=Path, help="JSON list of opportunities")

    # upsert-opportunities
    upsert_parser = subparsers.add_parser(
        "upsert-opportunities", help="Ensure one opportunity per name under an account"
    )
    upsert_parser.add_argument("account", help="Account name")
    upsert_parser.add_argument("names", nargs="+", help="Opportunity names")
    upsert_parser.add_argument(
        "--no-dedupe",
        action="store_true",
        help="Queue repeated names separately",
    )

    # transient
    transient_parser = subparsers.add_parser(
        "transient", help="Create records and delete them again in two batch calls"
    )
    transient_parser.add_argument("entity_type", help="Account, Contact, Opportunity, Lead or Case")
    group = transient_parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--count", type=int, help="Number of records to create")
    group.add_argument("--label", action="append", help="Record key (repeatable)")
    transient_parser.add_argument("--parent-id", default=None, help="Parent record id to link to")

    # stores
    subparsers.add_parser("stores", help="List available store backends")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "stores":
        _run_stores(args)
        return

    from crm_records.store import StoreOperationError

    try:
        if args.command == "reconcile-account":
            _run_reconcile_account(args)
        elif args.command == "link-contacts":
            _run_link_contacts(args)
        elif args.command == "default-opportunities":
            _run_default_opportunities(args)
        elif args.command == "upsert-opportunities":
            _run_upsert_opportunities(args)
        elif args.command == "transient":
            _run_transient(args)
        else:
            parser.print_help()
    except StoreOperationError as e:
        print(f"Store operation failed: {e}", file=sys.stderr)
        if e.payload is not None:
            print(json.dumps(e.payload, indent=2, default=str), file=sys.stderr)
        raise SystemExit(1)
    except ValueError as e:
        raise SystemExit(str(e))


def _build_store(args: argparse.Namespace):
    from crm_records.config import load_settings
    from crm_records.store import StoreRegistry

    settings = load_settings(args.config)
    if args.store:
        settings = settings.model_copy(update={"store": args.store})
    return StoreRegistry.from_settings(settings)


def _print_records(records: list) -> None:
    print(json.dumps([r.model_dump(mode="json", by_alias=True) for r in records], indent=2, default=str))


def _load_json_list(path: Path) -> list[dict]:
    data = json.loads(path.read_text())
    if not isinstance(data, list):
        raise SystemExit(f"{path}: expected a JSON list of records")
    return data


def _run_stores(args: argparse.Namespace) -> None:
    """Run stores command."""
    from crm_records.store import StoreRegistry

    for name in StoreRegistry.available_stores():
        print(name)


def _run_reconcile_account(args: argparse.Namespace) -> None:
    """Run reconcile-account command."""
    from crm_records.reconcile import reconcile_account

    account = reconcile_account(_build_store(args), args.name)
    _print_records([account])


def _run_link_contacts(args: argparse.Namespace) -> None:
    """Run link-contacts command."""
    from crm_records.models import Contact
    from crm_records.reconcile import link_contacts

    contacts = [Contact.model_validate(c) for c in _load_json_list(args.input)]
    linked = link_contacts(_build_store(args), contacts, dedupe=not args.no_dedupe)
    _print_records(linked)


def _run_default_opportunities(args: argparse.Namespace) -> None:
    """Run default-opportunities command."""
    from crm_records.models import Opportunity
    from crm_records.reconcile import apply_opportunity_defaults

    opportunities = [Opportunity.model_validate(o) for o in _load_json_list(args.input)]
    _print_records(apply_opportunity_defaults(_build_store(args), opportunities))


def _run_upsert_opportunities(args: argparse.Namespace) -> None:
    """Run upsert-opportunities command."""
    from crm_records.reconcile import upsert_opportunities_by_name

    queued = upsert_opportunities_by_name(
        _build_store(args), args.account, args.names, dedupe=not args.no_dedupe
    )
    _print_records(queued)


def _run_transient(args: argparse.Namespace) -> None:
    """Run transient command."""
    from crm_records.reconcile import create_then_delete

    labels = args.count if args.count is not None else args.label
    create_then_delete(_build_store(args), args.entity_type, labels, parent_id=args.parent_id)
    print(f"Created and deleted {args.count if args.count is not None else len(args.label)} record(s)")


if __name__ == "__main__":
    main()

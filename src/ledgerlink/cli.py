#!/usr/bin/env python3
"""Command-line interface for ledgerlink."""

import argparse
import getpass
import json
import sys
import webbrowser
from datetime import date
from pathlib import Path
from typing import Any

from ledgerlink.auth import hash_password, login, logout
from ledgerlink.client import LedgerClient, write_export
from ledgerlink.config import (
    create_default_config,
    get_auth_config,
    get_autocomplete_min_chars,
    get_config_path,
    get_endpoints,
    get_page_size,
    get_session_path,
    load_config,
    save_json_config,
)
from ledgerlink.errors import ConfigError, NetworkError, ValidationError
from ledgerlink.listing import ListingController, ListingStatus, build_filters
from ledgerlink.logging_setup import configure_logging
from ledgerlink.models import Entry, EntrySubmission, Side
from ledgerlink.session import FileSessionStore
from ledgerlink.signing import RequestSigner


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ledgerlink",
        description="Browse, export and submit entries on a transaction-ledger API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ledgerlink init-config --username alice
  ledgerlink login
  ledgerlink list --query rent --start 2024-01-01 --all
  ledgerlink export --start 2024-01-01 -o ~/Downloads
  ledgerlink submit --date 2024-01-05 --amount 1200 --side DR \\
      --category Rent --description "January rent" invoice.pdf
  ledgerlink suggest category gro
  ledgerlink open https://files.example.com/docs/invoice.pdf
        """,
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.json file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-config", help="Write a starter config.json")
    init.add_argument("--username", help="Login username (prompts for the password)")
    init.add_argument("--path", type=Path, help="Where to write the config")

    login_cmd = sub.add_parser("login", help="Log in and start a session")
    login_cmd.add_argument("--username", help="Username (prompted if omitted)")

    sub.add_parser("logout", help="End the session")
    sub.add_parser("status", help="Show whether a session is active")

    list_cmd = sub.add_parser("list", help="List entries")
    _add_filter_arguments(list_cmd)
    list_cmd.add_argument(
        "--pages",
        type=int,
        default=1,
        help="Number of pages to load (default: 1)",
    )
    list_cmd.add_argument(
        "--all",
        action="store_true",
        help="Keep loading pages until the listing is exhausted",
    )
    list_cmd.add_argument(
        "--json",
        action="store_true",
        help="Print entries as JSON",
    )

    export = sub.add_parser("export", help="Export entries as CSV")
    _add_filter_arguments(export)
    export.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for the export file (default: current directory)",
    )

    submit = sub.add_parser("submit", help="Submit a new entry")
    submit.add_argument("--date", default=date.today().isoformat(), help="Entry date")
    submit.add_argument("--amount", required=True, help="Amount (non-negative)")
    submit.add_argument(
        "--side",
        choices=["CR", "DR"],
        type=str.upper,
        default="CR",
        help="Credit or debit (default: CR)",
    )
    submit.add_argument("--category", required=True, help="Category")
    submit.add_argument("--description", required=True, help="Description")
    submit.add_argument("files", nargs="*", type=Path, help="Documents to attach")

    suggest = sub.add_parser("suggest", help="Autocomplete suggestions")
    suggest.add_argument("field", choices=["category", "description"])
    suggest.add_argument("text", help="Text to complete")

    open_cmd = sub.add_parser("open", help="Open a document with a signed link")
    open_cmd.add_argument("url", help="Document URL")
    open_cmd.add_argument(
        "--print-only",
        action="store_true",
        help="Print the signed link instead of opening a browser",
    )

    return parser


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-q", "--query", help="Search text")
    parser.add_argument("--start", help="Start date (e.g. 2024-01-31 or 31-jan-2024)")
    parser.add_argument("--end", help="End date")


def _require_config(config_path: Path | None) -> dict[str, Any]:
    config = load_config(config_path)
    if config is None:
        raise ConfigError("No configuration found. Run 'ledgerlink init-config' to create one.")
    return config


def _build_client(config: dict[str, Any], store: FileSessionStore) -> LedgerClient:
    return LedgerClient(
        get_endpoints(config),
        RequestSigner(store),
        autocomplete_min_chars=get_autocomplete_min_chars(config),
    )


def format_entry(entry: Entry) -> str:
    """One-line summary of an entry."""
    code = f"[{entry.human_code}] " if entry.human_code else ""
    return (
        f"{entry.date}  {entry.signed_amount:>12.2f}  {entry.category[:20]:<20}  "
        f"{code}{entry.description[:50]}"
    )


def run_init_config(args: argparse.Namespace) -> int:
    config = create_default_config()
    if args.username:
        password = getpass.getpass("Password: ")
        if not password:
            print("Error: password cannot be empty", file=sys.stderr)
            return 1
        config["auth"]["username"] = args.username
        config["auth"]["password_hash"] = hash_password(password)

    path = save_json_config(config, args.path or get_config_path())
    print(f"Configuration saved to {path}", file=sys.stderr)
    print("Fill in the API endpoints under \"api\" before using the client.", file=sys.stderr)
    return 0


def run_login(args: argparse.Namespace, config: dict[str, Any], store: FileSessionStore) -> int:
    username = args.username or input("Username: ")
    password = getpass.getpass("Password: ")

    if not login(store, username, password, get_auth_config(config)):
        print("Invalid username or password.", file=sys.stderr)
        return 1

    print("Logged in.", file=sys.stderr)
    return 0


def run_list(args: argparse.Namespace, config: dict[str, Any], client: LedgerClient) -> int:
    listing = ListingController(client.load_entries, page_size=get_page_size(config))

    if args.query or args.start or args.end:
        listing.apply_filters(args.query, args.start, args.end)
    else:
        listing.reset_and_load()

    pages = 1
    while listing.status is ListingStatus.READY and (args.all or pages < args.pages):
        if listing.load_more() is None:
            break
        pages += 1

    if listing.status is ListingStatus.ERROR:
        print(listing.message, file=sys.stderr)
        if not listing.entries:
            return 1

    if args.json:
        print(json.dumps([e.to_dict() for e in listing.entries], indent=2))
    elif listing.status is ListingStatus.EMPTY:
        print(listing.message)
    else:
        for entry in listing.entries:
            print(format_entry(entry))
            for doc in entry.documents:
                print(f"    - {doc.name}: {doc.url}")

    print(f"\nLoaded {len(listing.entries)} entries", file=sys.stderr)
    if listing.has_more:
        print("More entries available (use --pages or --all)", file=sys.stderr)
    return 0 if listing.status is not ListingStatus.ERROR else 1


def run_export(args: argparse.Namespace, client: LedgerClient) -> int:
    filters = build_filters(args.query, args.start, args.end)
    try:
        csv_text = client.export_entries(filters)
    except NetworkError as e:
        print(f"Failed to export entries. Please try again. ({e})", file=sys.stderr)
        return 1

    output_path = write_export(csv_text, args.output_dir)
    print(f"Exported entries to {output_path}", file=sys.stderr)
    return 0


def run_submit(args: argparse.Namespace, client: LedgerClient) -> int:
    submission = EntrySubmission(
        date=args.date,
        amount=args.amount,
        side=Side(args.side),
        category=args.category,
        description=args.description,
        files=list(args.files),
    )

    def show_progress(fraction: float) -> None:
        print(f"\rUploading: {fraction:.0%}", end="", file=sys.stderr, flush=True)

    try:
        result = client.submit_entry(submission, on_progress=show_progress)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except NetworkError as e:
        print(f"\nFailed to submit transaction: {e}", file=sys.stderr)
        return 1

    print("\nTransaction submitted successfully!", file=sys.stderr)
    for name in result.file_names:
        print(f"  Attached: {name}", file=sys.stderr)
    return 0


def run_suggest(args: argparse.Namespace, client: LedgerClient) -> int:
    if args.field == "category":
        suggestions = client.suggest_categories(args.text)
    else:
        suggestions = client.suggest_descriptions(args.text)

    for suggestion in suggestions:
        print(suggestion)
    return 0


def run_open(args: argparse.Namespace, client: LedgerClient) -> int:
    signed_url = client.sign_for_link(args.url)
    if args.print_only:
        print(signed_url)
        return 0

    if not webbrowser.open(signed_url, new=2):
        print("Could not open a browser window. Open this link manually:", file=sys.stderr)
        print(signed_url)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)

    if args.command == "init-config":
        return run_init_config(args)

    store = FileSessionStore(get_session_path())

    if args.command == "logout":
        logout(store)
        print("Logged out.", file=sys.stderr)
        return 0

    if args.command == "status":
        print("Logged in" if store.is_logged_in() else "Not logged in")
        return 0

    try:
        config = _require_config(args.config)

        if args.command == "login":
            return run_login(args, config, store)

        if not store.is_logged_in():
            print("Warning: not logged in; requests will be sent unsigned.", file=sys.stderr)

        client = _build_client(config, store)

        if args.command == "list":
            return run_list(args, config, client)
        if args.command == "export":
            return run_export(args, client)
        if args.command == "submit":
            return run_submit(args, client)
        if args.command == "suggest":
            return run_suggest(args, client)
        if args.command == "open":
            return run_open(args, client)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())

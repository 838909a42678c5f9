# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import date
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from userbridge.app import (
    create_account,
    delete_account,
    find_local_accounts,
    get_account,
    migrate_database,
    patch_account,
    reset_account_credential,
    search_accounts,
    set_account_enabled,
    sync_account,
    update_account,
)
from userbridge.config import configure_logging
from userbridge.domain.errors import describe_error
from userbridge.domain.model import AccountInput, AccountPage

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_account_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--username", type=str, help="Login name")
    parser.add_argument("--first-name", type=str, help="Given name")
    parser.add_argument("--last-name", type=str, help="Family name")
    parser.add_argument("--email", type=str, help="Email address")
    parser.add_argument("--password", type=str, help="Password stored in the identity store")
    parser.add_argument("--date-of-birth", type=str, help="ISO-8601 date (YYYY-MM-DD)")


def _add_local_id(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("local_id", type=str, help="Local account id (UUID)")


def _add_filters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Filter entry such as dateOfBirth_gte=1990-01-01 (repeatable)",
    )
    parser.add_argument("--page", type=int, default=0, help="Zero-based page index")
    parser.add_argument("--size", type=int, default=None, help="Page size (capped by config)")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage directory accounts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search accounts in the identity store")
    _add_filters(search)
    search.add_argument("--search", type=str, help="Free-text search term")
    search.add_argument("--sort", type=str, help="username, email, firstName, lastName, ...")
    search.add_argument("--direction", type=str, help="asc or desc")

    local = subparsers.add_parser("local", help="Query the local account store")
    _add_filters(local)

    get = subparsers.add_parser("get", help="Show one account")
    _add_local_id(get)

    create = subparsers.add_parser("create", help="Create an account in both stores")
    _add_account_fields(create)

    update = subparsers.add_parser("update", help="Replace an account's fields")
    _add_local_id(update)
    _add_account_fields(update)

    patch = subparsers.add_parser("patch", help="Change only the given fields")
    _add_local_id(patch)
    _add_account_fields(patch)

    for name, help_text in (
        ("delete", "Delete an account from both stores"),
        ("sync", "Re-pull identity fields into the local store"),
        ("enable", "Enable an account"),
        ("disable", "Disable an account"),
    ):
        _add_local_id(subparsers.add_parser(name, help=help_text))

    reset = subparsers.add_parser("reset-password", help="Set a new password")
    _add_local_id(reset)
    reset.add_argument("--password", type=str, required=True, help="New password")

    subparsers.add_parser("migrate", help="Upgrade the local database schema")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _parse_date(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid ISO date: {value}") from exc


def _parse_filters(entries: Sequence[str]) -> dict[str, str]:
    filters: dict[str, str] = {}
    for entry in entries:
        key, separator, value = entry.partition("=")
        if not separator or not key.strip():
            raise ValueError(f"Invalid filter {entry!r}, expected KEY=VALUE")
        filters[key.strip()] = value
    return filters


def _account_input(args: argparse.Namespace) -> AccountInput:
    return AccountInput(
        username=args.username,
        first_name=args.first_name,
        last_name=args.last_name,
        email=args.email,
        password=args.password,
        date_of_birth=_parse_date(args.date_of_birth),
    )


def _validate(args: argparse.Namespace) -> None:
    if hasattr(args, "local_id"):
        _parse_uuid(args.local_id)
    if hasattr(args, "filters"):
        _parse_filters(args.filters)
    if hasattr(args, "date_of_birth"):
        _parse_date(args.date_of_birth)
    if getattr(args, "page", 0) < 0:
        raise ValueError("Page must be non-negative")


def _render(result: object) -> str:
    if isinstance(result, AccountPage):
        payload: object = {
            "items": [asdict(item) for item in result.items],
            "page": result.page,
            "page_size": result.page_size,
            "total": result.total,
            "total_pages": result.total_pages,
        }
    elif result is None:
        payload = {"status": "ok"}
    else:
        payload = asdict(result)  # type: ignore[call-overload]
    return json.dumps(payload, default=str, indent=2)


def _search(args: argparse.Namespace) -> object:
    filters = _parse_filters(args.filters)
    if args.search:
        filters["search"] = args.search
    return search_accounts(
        filters=filters,
        page=args.page,
        page_size=args.size,
        sort_field=args.sort,
        sort_direction=args.direction,
    )


def _local(args: argparse.Namespace) -> object:
    return find_local_accounts(
        filters=_parse_filters(args.filters), page=args.page, page_size=args.size
    )


def _migrate(_args: argparse.Namespace) -> object:
    migrate_database()
    return None


_COMMANDS: dict[str, Callable[[argparse.Namespace], object]] = {
    "search": _search,
    "local": _local,
    "get": lambda args: get_account(_parse_uuid(args.local_id)),
    "create": lambda args: create_account(_account_input(args)),
    "update": lambda args: update_account(_parse_uuid(args.local_id), _account_input(args)),
    "patch": lambda args: patch_account(_parse_uuid(args.local_id), _account_input(args)),
    "delete": lambda args: delete_account(_parse_uuid(args.local_id)),
    "sync": lambda args: sync_account(_parse_uuid(args.local_id)),
    "enable": lambda args: set_account_enabled(_parse_uuid(args.local_id), True),  # noqa: FBT003
    "disable": lambda args: set_account_enabled(_parse_uuid(args.local_id), False),  # noqa: FBT003
    "reset-password": lambda args: reset_account_credential(
        _parse_uuid(args.local_id), args.password
    ),
    "migrate": _migrate,
}


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        result = _COMMANDS[parsed_args.command](parsed_args)
    except Exception as exc:
        description = describe_error(exc)
        if description.status >= 500:  # noqa: PLR2004
            log.exception("Command %s failed", parsed_args.command)
        else:
            log.error(  # noqa: TRY400
                "Command %s failed: %s (%s)",
                parsed_args.command,
                description.message,
                description.code,
            )
        sys.exit(1)

    print(_render(result))


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

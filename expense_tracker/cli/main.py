"""Command-line interface for serving the API and managing expenses from a terminal."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from datetime import datetime
from typing import NoReturn

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.client import ExpenseAdapter, ExpenseClient, ExpenseForm
from expense_tracker.client.formatting import format_currency, format_date
from expense_tracker.client.view import ALL_CATEGORIES, DEFAULT_SORT, SORT_KEYS
from expense_tracker.config import Settings, load_settings
from expense_tracker.errors import ExpenseError
from expense_tracker.logging import configure_cli_logging
from expense_tracker.schemas import Category, ExpenseRead, ExpenseUpdate, describe_errors

DESCRIPTION = "Personal expense tracker"
PREFIX = "[expenses]"
CATEGORY_CHOICES = [member.value for member in Category]


def _parse_date(value: str) -> str:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:  # pragma: no cover - argparse validation
        raise argparse.ArgumentTypeError("Expected YYYY-MM-DD date format") from exc
    return value


def _add_serve_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    serve = subparsers.add_parser("serve", help="Run the REST API with uvicorn")
    serve.add_argument("--host", help="Interface to bind (default from configuration)")
    serve.add_argument("--port", type=int, help="Port to listen on (default from configuration)")


def _add_list_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    listing = subparsers.add_parser("list", help="Show stored expenses with their total")
    listing.add_argument(
        "--category",
        default=ALL_CATEGORIES,
        choices=[ALL_CATEGORIES, *CATEGORY_CHOICES],
        help="Only show one category",
    )
    listing.add_argument("--sort", default=DEFAULT_SORT, choices=list(SORT_KEYS), help="Ordering of the rows")


def _add_show_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    show = subparsers.add_parser("show", help="Show a single expense")
    show.add_argument("expense_id")


def _add_field_arguments(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--title", required=required, help="Short description (max 100 characters)")
    parser.add_argument("--amount", required=required, help="Positive amount, e.g. 12.50")
    parser.add_argument("--category", required=required, choices=CATEGORY_CHOICES)
    parser.add_argument("--date", type=_parse_date, help="Expense date (YYYY-MM-DD, default today)")
    parser.add_argument("--notes", help="Optional free text")


def _add_add_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    add = subparsers.add_parser("add", help="Record a new expense")
    _add_field_arguments(add, required=True)


def _add_update_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    update = subparsers.add_parser("update", help="Change fields of an existing expense")
    update.add_argument("expense_id")
    _add_field_arguments(update, required=False)


def _add_delete_subparser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    delete = subparsers.add_parser("delete", help="Delete an expense permanently")
    delete.add_argument("expense_id")
    delete.add_argument("--yes", action="store_true", help="Do not ask for confirmation")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expense-tracker", description=DESCRIPTION)
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Mirror logs to artifacts/logs/expense_tracker.log in JSON format",
    )
    parser.add_argument("--log-level", default=None, help="Log level name (default INFO)")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--api-url", help="Base URL of the expense API")
    sub = parser.add_subparsers(dest="cmd", required=True)
    _add_serve_subparser(sub)
    _add_list_subparser(sub)
    _add_show_subparser(sub)
    _add_add_subparser(sub)
    _add_update_subparser(sub)
    _add_delete_subparser(sub)
    sub.add_parser("summary", help="Show totals per category")
    return parser


def _settings(args: argparse.Namespace) -> Settings:
    return load_settings(args.config)


def _build_client(args: argparse.Namespace) -> ExpenseClient:
    return ExpenseClient(args.api_url, settings=_settings(args))


def _notify(title: str, description: str, variant: str = "default") -> None:
    stream = sys.stderr if variant == "destructive" else sys.stdout
    print(f"{PREFIX} {title}: {description}", file=stream)


def _confirm_delete(expense_id: str) -> bool:
    answer = input(f"Delete expense {expense_id}? [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def _render_row(expense: ExpenseRead) -> str:
    return " | ".join(
        [
            expense.id,
            format_date(expense.date),
            expense.category.label,
            format_currency(expense.amount),
            expense.title,
        ]
    )


def _apply_overrides(form: ExpenseForm, args: argparse.Namespace) -> None:
    for field in ("title", "amount", "category", "date", "notes"):
        value = getattr(args, field, None)
        if value is not None:
            setattr(form, field, value)


def _fail(message: str) -> NoReturn:
    print(f"{PREFIX} error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _handle_serve(args: argparse.Namespace) -> None:
    from expense_tracker.api.server import main as serve

    settings = _settings(args)
    overrides = {key: value for key, value in (("host", args.host), ("port", args.port)) if value is not None}
    serve(replace(settings, **overrides))


def _handle_list(args: argparse.Namespace) -> None:
    adapter = ExpenseAdapter(_build_client(args), notify=_notify)
    state = adapter.mount()
    if state.error:
        _fail(state.error)
    view = adapter.view(args.category, args.sort)
    for expense in view.records:
        print(_render_row(expense))
    print(f"{PREFIX} list count={view.count} total={format_currency(view.total)}")


def _handle_show(args: argparse.Namespace) -> None:
    try:
        expense = _build_client(args).get_expense(args.expense_id)
    except ExpenseError as exc:
        _fail(exc.message)
    print(_render_row(expense))
    if expense.notes:
        print(f"  notes: {expense.notes}")


def _handle_add(args: argparse.Namespace) -> None:
    adapter = ExpenseAdapter(_build_client(args), notify=_notify)
    form = ExpenseForm()
    _apply_overrides(form, args)
    errors = adapter.submit(form)
    if errors:
        _fail("; ".join(errors.values()))
    created = adapter.state.expenses[0]
    print(f"{PREFIX} add id={created.id}")


def _handle_update(args: argparse.Namespace) -> None:
    supplied = {
        field: getattr(args, field)
        for field in ("title", "amount", "category", "date", "notes")
        if getattr(args, field) is not None
    }
    if not supplied:
        _fail("nothing to update; pass at least one of --title, --amount, --category, --date, --notes")
    if "date" in supplied:
        supplied["date"] = datetime.fromisoformat(supplied["date"])
    try:
        changes = ExpenseUpdate.model_validate(supplied)
    except PydanticValidationError as exc:
        _fail(describe_errors(exc.errors()))

    client = _build_client(args)
    adapter = ExpenseAdapter(client, notify=_notify)
    try:
        current = client.get_expense(args.expense_id)
    except ExpenseError as exc:
        _fail(exc.message)
    adapter.start_editing(current)
    if not adapter.save(changes):
        raise SystemExit(1)
    print(f"{PREFIX} update id={current.id}")


def _handle_delete(args: argparse.Namespace) -> None:
    confirm = (lambda _expense_id: True) if args.yes else _confirm_delete
    adapter = ExpenseAdapter(_build_client(args), notify=_notify, confirm=confirm)
    if not adapter.delete(args.expense_id):
        raise SystemExit(1)


def _handle_summary(args: argparse.Namespace) -> None:
    try:
        summary = _build_client(args).summary()
    except ExpenseError as exc:
        _fail(exc.message)
    for item in summary.by_category:
        print(f"{item.category.label}: {format_currency(item.total)}")
    print(f"{PREFIX} summary total={format_currency(summary.total)}")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_cli_logging(json_logs=bool(args.json_logs), level=args.log_level)
    if args.cmd == "serve":
        _handle_serve(args)
    elif args.cmd == "list":
        _handle_list(args)
    elif args.cmd == "show":
        _handle_show(args)
    elif args.cmd == "add":
        _handle_add(args)
    elif args.cmd == "update":
        _handle_update(args)
    elif args.cmd == "delete":
        _handle_delete(args)
    elif args.cmd == "summary":
        _handle_summary(args)
    else:  # pragma: no cover - argparse enforces the choices
        print(f"{PREFIX} command = {args.cmd}")


if __name__ == "__main__":
    main()

"""Console interface for the personal finance manager."""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from finance_core.auth import AuthService
from finance_core.codec import export_csv, export_json
from finance_core.config import Settings
from finance_core.exceptions import (
    AuthenticationError,
    InsufficientFundsError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from finance_core.logging_utils import configure_logging
from finance_core.models import Transaction
from finance_core.notifications import NotificationService
from finance_core.repositories import JSONUserRepository, JSONWalletRepository
from finance_core.services import BudgetService, LedgerService
from finance_core.storage import JSONStorage
from finance_core.validators import parse_category_list

PASSWORD_ENV = "FINANCE_MANAGER_PASSWORD"


@dataclass
class Services:
    auth: AuthService
    ledger: LedgerService
    budgets: BudgetService
    notifications: NotificationService


def _parse_amount(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Amount must be a numeric value") from exc
    if not amount.is_finite():
        raise argparse.ArgumentTypeError("Amount must be a finite number")
    if amount <= 0:
        raise argparse.ArgumentTypeError("Amount must be greater than zero")
    return value


def _parse_limit(value: str) -> str:
    try:
        limit = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Limit must be a numeric value") from exc
    if not limit.is_finite():
        raise argparse.ArgumentTypeError("Limit must be a finite number")
    if limit < 0:
        raise argparse.ArgumentTypeError("Limit cannot be negative")
    return value


def _load_services(data_dir: Path) -> Services:
    storage = JSONStorage(data_dir)
    wallets = JSONWalletRepository(storage)
    ledger = LedgerService(wallets)
    budgets = BudgetService(wallets)
    return Services(
        auth=AuthService(JSONUserRepository(storage), ledger),
        ledger=ledger,
        budgets=budgets,
        notifications=NotificationService(budgets, ledger),
    )


def _format_transaction(transaction: Transaction) -> str:
    return (
        f"[{transaction.id}] {transaction.timestamp.isoformat(timespec='seconds')} "
        f"{transaction.type.value} {transaction.amount:.2f}\n"
        f"  Category: {transaction.category}\n"
        f"  Description: {transaction.description or '-'}\n"
    )


def _print_totals(title: str, totals: Dict[str, Decimal]) -> None:
    print(f"\n--- {title} ---")
    if not totals:
        print("  (no data)")
        return
    for category, amount in totals.items():
        print(f"  {category}: {amount:.2f}")


def _password(args: argparse.Namespace) -> str:
    if args.password is not None:
        return args.password
    from_env = os.getenv(PASSWORD_ENV)
    if from_env:
        return from_env
    return getpass.getpass("Password: ")


def _login(args: argparse.Namespace, services: Services) -> str:
    if not args.user:
        raise AuthenticationError("--user is required for this command")
    return services.auth.authenticate(args.user, _password(args)).username


def handle_register(args: argparse.Namespace, services: Services) -> None:
    user = services.auth.register(args.username, _password(args))
    print(f"User {user.username} registered.")


def handle_record(args: argparse.Namespace, services: Services, user_id: str) -> None:
    if args.entity == "income":
        transaction = services.ledger.add_income(
            user_id, args.category, args.amount, args.description
        )
        print("Income added:\n" + _format_transaction(transaction))
        return

    transaction = services.ledger.add_expense(user_id, args.category, args.amount, args.description)
    print("Expense added:\n" + _format_transaction(transaction))
    alert = services.notifications.check_after_transaction(user_id, transaction.category)
    if alert is not None:
        print(alert.message)


def handle_budget(args: argparse.Namespace, services: Services, user_id: str) -> None:
    if args.command == "set":
        budget = services.budgets.set_budget(user_id, args.category, args.limit)
        print(f"Budget set: {budget.category} - {budget.limit:.2f}")
    elif args.command == "remove":
        services.budgets.remove_budget(user_id, args.category)
        print(f"Budget for {args.category} removed.")
    elif args.command == "list":
        statuses = services.budgets.budget_status(user_id)
        if not statuses:
            print("No budgets set.")
            return
        for status in statuses:
            marker = "x" if status.exceeded else "ok"
            print(
                f"[{marker}] {status.category}: limit={status.limit:.2f}, "
                f"spent={status.spent:.2f}, remaining={status.remaining:.2f} "
                f"({status.percentage:.0f}%)"
            )


def handle_stats(args: argparse.Namespace, services: Services, user_id: str) -> None:
    ledger = services.ledger
    print(f"Total income: {ledger.total_income(user_id):.2f}")
    print(f"Total expense: {ledger.total_expense(user_id):.2f}")
    print(f"Balance: {ledger.balance(user_id):.2f}")
    _print_totals("Income by category", ledger.income_by_category(user_id))
    _print_totals("Expense by category", ledger.expense_by_category(user_id))

    categories = parse_category_list(args.categories)
    if not categories:
        return
    print("\n--- Filtered ---")
    print(f"Income: {ledger.income_for_categories(user_id, categories):.2f}")
    print(f"Expense: {ledger.expense_for_categories(user_id, categories):.2f}")
    unknown = ledger.unknown_categories(user_id, categories)
    if unknown:
        print("Categories not found: " + ", ".join(unknown))


def handle_transactions(args: argparse.Namespace, services: Services, user_id: str) -> None:
    categories = parse_category_list(args.categories)
    transactions: Iterable[Transaction]
    if categories:
        transactions = services.ledger.transactions_for_categories(user_id, categories)
    else:
        transactions = services.ledger.transactions(user_id)
    transactions = list(transactions)
    if not transactions:
        print("No transactions found.")
        return
    print(f"Found {len(transactions)} transactions:")
    for transaction in transactions:
        print(_format_transaction(transaction))


def handle_transfer(args: argparse.Namespace, services: Services, user_id: str) -> None:
    debit, _ = services.ledger.transfer(user_id, args.recipient, args.amount, args.description)
    print(f"Transferred {debit.amount:.2f} to {args.recipient}.")
    print(f"Balance: {services.ledger.balance(user_id):.2f}")


def handle_notifications(args: argparse.Namespace, services: Services, user_id: str) -> None:
    notifications = services.notifications.notifications(user_id)
    if not notifications:
        print("No notifications.")
        return
    for notification in notifications:
        print(notification.message)


def handle_export(args: argparse.Namespace, services: Services, user_id: str) -> None:
    wallet = services.ledger.get_wallet(user_id)
    exporter = export_csv if args.format == "csv" else export_json
    path = exporter(wallet, args.path)
    print(f"Exported {len(wallet.transactions)} transactions to {path}")


def handle_reset(args: argparse.Namespace, services: Services, user_id: str) -> None:
    if not args.yes:
        raise ValidationError("Refusing to reset without --yes")
    services.ledger.reset_wallet(user_id)
    print("Wallet cleared.")


def handle_unregister(args: argparse.Namespace, services: Services, user_id: str) -> None:
    if not args.yes:
        raise ValidationError("Refusing to delete the account without --yes")
    services.auth.delete_user(user_id)
    print(f"User {user_id} and their wallet were deleted.")


HANDLERS = {
    "income": handle_record,
    "expense": handle_record,
    "budget": handle_budget,
    "stats": handle_stats,
    "transactions": handle_transactions,
    "transfer": handle_transfer,
    "notifications": handle_notifications,
    "export": handle_export,
    "reset": handle_reset,
    "unregister": handle_unregister,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Personal Finance Manager CLI")
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory to store JSON data (default: $FINANCE_MANAGER_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--log-level", help="Logging level (default: $FINANCE_MANAGER_LOG_LEVEL or INFO)"
    )
    parser.add_argument("--user", help="Username for commands that act on a wallet")
    parser.add_argument(
        "--password",
        help=f"Password (default: ${PASSWORD_ENV} or an interactive prompt)",
    )

    subparsers = parser.add_subparsers(dest="entity", required=True)

    register = subparsers.add_parser("register", help="Register a new user")
    register.add_argument("username")

    for entity in ("income", "expense"):
        entity_parser = subparsers.add_parser(entity, help=f"Record {entity}")
        entity_sub = entity_parser.add_subparsers(dest="command", required=True)
        add = entity_sub.add_parser("add", help=f"Add a new {entity}")
        add.add_argument("category")
        add.add_argument("amount", type=_parse_amount)
        add.add_argument("--description")

    budget_parser = subparsers.add_parser("budget", help="Manage budgets")
    budget_sub = budget_parser.add_subparsers(dest="command", required=True)
    budget_set = budget_sub.add_parser("set", help="Set the budget for a category")
    budget_set.add_argument("category")
    budget_set.add_argument("limit", type=_parse_limit)
    budget_remove = budget_sub.add_parser("remove", help="Remove the budget for a category")
    budget_remove.add_argument("category")
    budget_sub.add_parser("list", help="Show budgets and their usage")

    stats = subparsers.add_parser("stats", help="Show totals and per-category sums")
    stats.add_argument("--categories", help="Comma-separated categories to filter on")

    transactions = subparsers.add_parser("transactions", help="List transactions")
    transactions.add_argument("--categories", help="Comma-separated categories to filter on")

    transfer = subparsers.add_parser("transfer", help="Transfer money to another user")
    transfer.add_argument("recipient")
    transfer.add_argument("amount", type=_parse_amount)
    transfer.add_argument("--description")

    subparsers.add_parser("notifications", help="Show budget and balance warnings")

    export = subparsers.add_parser("export", help="Export the wallet")
    export.add_argument("format", choices=("csv", "json"))
    export.add_argument("path", type=Path)

    reset = subparsers.add_parser("reset", help="Delete all transactions and budgets")
    reset.add_argument("--yes", action="store_true", help="Confirm the reset")

    unregister = subparsers.add_parser("unregister", help="Delete the user and their wallet")
    unregister.add_argument("--yes", action="store_true", help="Confirm the deletion")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    try:
        configure_logging(args.log_level or settings.log_level)
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    try:
        services = _load_services(args.data_dir or settings.data_dir)
        if args.entity == "register":
            handle_register(args, services)
        else:
            user_id = _login(args, services)
            HANDLERS[args.entity](args, services, user_id)
    except ValidationError as exc:
        print(f"Validation error: {exc}", file=sys.stderr)
        return 1
    except AuthenticationError as exc:
        print(f"Authentication failed: {exc}", file=sys.stderr)
        return 1
    except InsufficientFundsError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except PersistenceError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

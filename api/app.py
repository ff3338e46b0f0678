"""Flask REST API exposing the personal finance services."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from finance_core.auth import AuthService
from finance_core.codec import encode_wallet, wallet_to_csv
from finance_core.config import Settings
from finance_core.exceptions import (
    AuthenticationError,
    InsufficientFundsError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from finance_core.notifications import NotificationService
from finance_core.repositories import JSONUserRepository, JSONWalletRepository
from finance_core.services import BudgetService, LedgerService
from finance_core.storage import JSONStorage
from finance_core.validators import parse_category_list


def _money(value: Any) -> str:
    return f"{value:.2f}"


def create_app(data_dir: Optional[Path] = None, settings: Optional[Settings] = None) -> Flask:
    app = Flask(__name__)
    settings = settings or Settings.from_env()

    if settings.is_development:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    elif settings.allowed_origins:
        CORS(app, resources={r"/*": {"origins": list(settings.allowed_origins)}}, supports_credentials=True)
    else:
        CORS(app)

    storage = JSONStorage(Path(data_dir or settings.data_dir))
    wallets = JSONWalletRepository(storage)
    ledger = LedgerService(wallets)
    budgets = BudgetService(wallets)
    auth = AuthService(JSONUserRepository(storage), ledger)
    notifications = NotificationService(budgets, ledger)

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str):
        app.logger.error("%s: %s", message, exc)
        return jsonify({"error": message, "details": str(exc)}), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(AuthenticationError)
    def handle_authentication_error(exc: AuthenticationError):
        response, status = _handle_error(exc, 401, "Authentication failed")
        response.headers["WWW-Authenticate"] = 'Basic realm="finance-manager"'
        return response, status

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found")

    @app.errorhandler(InsufficientFundsError)
    def handle_insufficient_funds(exc: InsufficientFundsError):
        return _handle_error(exc, 409, "Insufficient funds")

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        return _handle_error(exc, 500, "Persistence error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    def _current_user() -> str:
        credentials = request.authorization
        if credentials is None or not credentials.username:
            raise AuthenticationError("Missing HTTP Basic credentials")
        return auth.authenticate(credentials.username, credentials.password or "").username

    @app.post("/users")
    def register_user():
        payload = _json_body()
        user = auth.register(payload.get("username"), payload.get("password"))
        return _success({"username": user.username}, 201)

    @app.delete("/users/me")
    def delete_user():
        user_id = _current_user()
        auth.delete_user(user_id)
        return _success({}, 204)

    @app.get("/wallet")
    def get_wallet():
        wallet = ledger.get_wallet(_current_user())
        return _success(wallet.to_dict())

    @app.delete("/wallet")
    def reset_wallet():
        ledger.reset_wallet(_current_user())
        return _success({}, 204)

    @app.get("/wallet/transactions")
    def list_transactions():
        user_id = _current_user()
        categories = parse_category_list(request.args.get("categories"))
        if categories:
            transactions = ledger.transactions_for_categories(user_id, categories)
        else:
            transactions = list(ledger.transactions(user_id))
        return _success({"items": [t.to_dict() for t in transactions]})

    @app.post("/wallet/incomes")
    def create_income():
        user_id = _current_user()
        payload = _json_body()
        transaction = ledger.add_income(
            user_id, payload.get("category"), payload.get("amount"), payload.get("description")
        )
        return _success(transaction.to_dict(), 201)

    @app.post("/wallet/expenses")
    def create_expense():
        user_id = _current_user()
        payload = _json_body()
        transaction = ledger.add_expense(
            user_id, payload.get("category"), payload.get("amount"), payload.get("description")
        )
        body = transaction.to_dict()
        alert = notifications.check_after_transaction(user_id, transaction.category)
        body["notification"] = alert.to_dict() if alert else None
        return _success(body, 201)

    @app.get("/wallet/summary")
    def summary():
        user_id = _current_user()
        wallet = ledger.get_wallet(user_id)
        body: Dict[str, Any] = {
            "total_income": _money(wallet.total_income()),
            "total_expense": _money(wallet.total_expense()),
            "balance": _money(wallet.balance()),
            "income_by_category": {
                category: _money(amount) for category, amount in wallet.income_by_category().items()
            },
            "expense_by_category": {
                category: _money(amount) for category, amount in wallet.expense_by_category().items()
            },
        }
        categories = parse_category_list(request.args.get("categories"))
        if categories:
            body["filtered"] = {
                "categories": categories,
                "income": _money(ledger.income_for_categories(user_id, categories)),
                "expense": _money(ledger.expense_for_categories(user_id, categories)),
                "unknown_categories": ledger.unknown_categories(user_id, categories),
            }
        return _success(body)

    @app.get("/wallet/budgets")
    def list_budgets():
        statuses = budgets.budget_status(_current_user())
        return _success({"items": [status.to_dict() for status in statuses]})

    @app.put("/wallet/budgets/<category>")
    def set_budget(category: str):
        user_id = _current_user()
        payload = _json_body()
        budget = budgets.set_budget(user_id, category, payload.get("limit"))
        return _success({"category": budget.category, "limit": _money(budget.limit)})

    @app.delete("/wallet/budgets/<category>")
    def remove_budget(category: str):
        user_id = _current_user()
        if budgets.get_budget(user_id, category) is None:
            raise RecordNotFoundError(f"No budget set for category {category}")
        budgets.remove_budget(user_id, category)
        return _success({}, 204)

    @app.post("/wallet/transfers")
    def create_transfer():
        user_id = _current_user()
        payload = _json_body()
        recipient = payload.get("to")
        if not isinstance(recipient, str) or not recipient.strip():
            raise ValidationError("to is required")
        debit, credit = ledger.transfer(
            user_id, recipient.strip(), payload.get("amount"), payload.get("description")
        )
        return _success(
            {
                "debit": debit.to_dict(),
                "credit": credit.to_dict(),
                "balance": _money(ledger.balance(user_id)),
            },
            201,
        )

    @app.get("/wallet/notifications")
    def list_notifications():
        items = notifications.notifications(_current_user())
        return _success({"items": [notification.to_dict() for notification in items]})

    @app.get("/wallet/export")
    def export_wallet():
        wallet = ledger.get_wallet(_current_user())
        export_format = (request.args.get("format") or "json").lower()
        if export_format == "csv":
            return Response(
                wallet_to_csv(wallet),
                mimetype="text/csv",
                headers={"Content-Disposition": f"attachment; filename={wallet.user_id}.csv"},
            )
        if export_format == "json":
            return Response(encode_wallet(wallet), mimetype="application/json")
        raise ValidationError("format must be one of: csv, json")

    return app

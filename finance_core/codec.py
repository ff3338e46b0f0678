"""Byte-level wallet encoding plus CSV and JSON exports."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Union

from .exceptions import PersistenceError
from .models import Wallet

CSV_HEADER = ("Type", "Category", "Amount", "Date", "Description")

PathLike = Union[str, Path]


def encode_wallet(wallet: Wallet) -> bytes:
    """Encode a wallet as UTF-8 JSON."""
    return json.dumps(wallet.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")


def decode_wallet(data: bytes) -> Wallet:
    """Inverse of :func:`encode_wallet`; any unreadable input raises PersistenceError."""
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PersistenceError("Wallet data is not valid UTF-8 JSON") from exc
    if not isinstance(payload, dict):
        raise PersistenceError("Wallet data must be a JSON object")
    try:
        return Wallet.from_dict(payload)
    except (ValueError, TypeError, AttributeError) as exc:
        raise PersistenceError(f"Wallet data is invalid: {exc}") from exc


def wallet_to_csv(wallet: Wallet) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for transaction in wallet.transactions:
        writer.writerow(
            (
                transaction.type.name,
                transaction.category,
                f"{transaction.amount:.2f}",
                transaction.timestamp.date().isoformat(),
                transaction.description,
            )
        )
    return buffer.getvalue()


def export_csv(wallet: Wallet, output_path: PathLike) -> Path:
    return _write(Path(output_path), wallet_to_csv(wallet).encode("utf-8"))


def export_json(wallet: Wallet, output_path: PathLike) -> Path:
    return _write(Path(output_path), encode_wallet(wallet))


def _write(path: Path, data: bytes) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        raise PersistenceError(f"Unable to write export to {path}") from exc
    return path

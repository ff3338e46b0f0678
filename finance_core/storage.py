"""File persistence for the finance core: one JSON document per resource."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class JSONStorage:
    """Simple file-based JSON storage with crash-safe writes."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Unable to create storage directory {self._base_path}") from exc

    def load(self, resource: str) -> Optional[Dict[str, Any]]:
        """Return the stored document, or ``None`` when the resource does not exist."""
        path = self._base_path / resource
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupted JSON data in {path}") from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read from {path}") from exc

        if not isinstance(payload, dict):
            raise PersistenceError(f"Expected object payload in {path}")
        return payload

    def save(self, resource: str, document: Dict[str, Any]) -> None:
        path = self._base_path / resource
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, ensure_ascii=False)
                handle.flush()
            # Use replace for atomic move on POSIX; ensures crash-safe persistence.
            temp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write to {path}") from exc
        logger.debug("Saved %s", path)

    def delete(self, resource: str) -> bool:
        path = self._base_path / resource
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise PersistenceError(f"Unable to delete {path}") from exc
        return True

    def exists(self, resource: str) -> bool:
        return (self._base_path / resource).exists()

    @property
    def base_path(self) -> Path:
        return self._base_path

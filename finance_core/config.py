"""Runtime settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

ENV_PREFIX = "FINANCE_MANAGER_"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path("data")
    env: str = "prod"
    allowed_origins: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.env in {"dev", "development"}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return environ.get(ENV_PREFIX + name, default).strip() or default

        origins = environ.get(ENV_PREFIX + "ALLOWED_ORIGINS", "")
        return cls(
            data_dir=Path(get("DATA_DIR", "data")),
            env=get("ENV", "prod").lower(),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=get("LOG_LEVEL", "INFO").upper(),
        )

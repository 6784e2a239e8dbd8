from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_PACKAGE_DIR = Path(__file__).resolve().parent

# Load .env from project root
load_dotenv(_PROJECT_ROOT / ".env")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else None


@dataclass(frozen=True)
class AppConfig:
    orders_dir: Path = Path(os.getenv("ORDERS_DIR", str(_PROJECT_ROOT / "orders")))
    static_dir: Path = Path(os.getenv("STATIC_DIR", str(_PACKAGE_DIR / "static")))
    roster_path: Path | None = _env_path("ROSTER_PATH")
    skip_corrupt_records: bool = _env_flag("SKIP_CORRUPT_RECORDS")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    event_log_size: int = int(os.getenv("EVENT_LOG_SIZE", "1000"))
    cors_allow_origins: tuple[str, ...] = tuple(
        o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
    )
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))


DEFAULT_APP_CONFIG = AppConfig()

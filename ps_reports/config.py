"""Application configuration helpers."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .dates import DISPLAY_STYLES

DATE_POLICIES = ("reject", "today")

DEFAULT_ALLOWED_MIME_TYPES = (
    "application/pdf",
    "image/png",
    "image/jpeg",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)


@dataclass(frozen=True)
class AppConfig:
    """Hold runtime configuration options for the reporting core."""

    data_dir: Path
    api_base_url: str
    db_url: str
    http_timeout: float
    allowed_mime_types: tuple[str, ...]
    virus_scan_command: Optional[str]
    upload_retention: Optional[timedelta]
    date_policy: str = "reject"
    display_date_style: str = "MM/DD/YYYY"
    currency_symbol: str = ""
    log_level: str = "INFO"

    @property
    def db_is_sqlite(self) -> bool:
        return self.db_url.startswith("sqlite:")

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"


def load_config() -> AppConfig:
    """Load settings from environment variables with sane defaults."""

    load_dotenv()

    data_dir = Path(
        os.environ.get("PS_REPORTS_DATA_DIR", _default_data_dir())
    ).expanduser()
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "uploads").mkdir(parents=True, exist_ok=True)

    db_url = os.environ.get("PS_REPORTS_DB_URL")
    if not db_url:
        db_path = data_dir / "ps_reports.db"
        db_url = f"sqlite:///{db_path}" if os.name != "nt" else f"sqlite:///{db_path.as_posix()}"

    api_base_url = os.environ.get("PS_REPORTS_API_URL", "http://localhost:8080").rstrip("/")

    retention_days = _int_env("PS_REPORTS_UPLOAD_RETENTION_DAYS", 0)
    upload_retention = timedelta(days=retention_days) if retention_days > 0 else None

    mime_types = os.environ.get("PS_REPORTS_ALLOWED_MIME_TYPES")
    if mime_types:
        allowed_mime_types = tuple(mt.strip() for mt in mime_types.split(",") if mt.strip())
    else:
        allowed_mime_types = DEFAULT_ALLOWED_MIME_TYPES

    date_policy = os.environ.get("PS_REPORTS_DATE_POLICY", "reject").strip().lower()
    if date_policy not in DATE_POLICIES:
        date_policy = "reject"

    display_date_style = os.environ.get("PS_REPORTS_DISPLAY_DATE", "MM/DD/YYYY").strip()
    if display_date_style not in DISPLAY_STYLES:
        display_date_style = "MM/DD/YYYY"

    return AppConfig(
        data_dir=data_dir,
        api_base_url=api_base_url,
        db_url=db_url,
        http_timeout=float(_int_env("PS_REPORTS_HTTP_TIMEOUT", 15)),
        allowed_mime_types=allowed_mime_types or DEFAULT_ALLOWED_MIME_TYPES,
        virus_scan_command=os.environ.get("PS_REPORTS_VIRUS_SCAN_CMD") or None,
        upload_retention=upload_retention,
        date_policy=date_policy,
        display_date_style=display_date_style,
        currency_symbol=os.environ.get("PS_REPORTS_CURRENCY", ""),
        log_level=os.environ.get("PS_REPORTS_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a basic stderr handler once; later calls only adjust the level."""

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    logging.getLogger("ps_reports").setLevel(level)


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, ""))
    except ValueError:
        return default


def _default_data_dir() -> Path:
    if os.name == "nt":
        root = Path(os.environ.get("APPDATA", Path.home()))
    else:
        root = Path.home()
    return root / ".ps_reports"

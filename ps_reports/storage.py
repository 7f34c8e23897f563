"""Attachment storage for report uploads."""
from __future__ import annotations

import logging
import mimetypes
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .config import AppConfig
from .errors import UploadRejectedError

logger = logging.getLogger(__name__)


def _safe_part(value: str, fallback: str) -> str:
    cleaned = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in str(value)).strip("._")
    return cleaned or fallback


def _read_bytes(uploaded_file: Any) -> bytes:
    if isinstance(uploaded_file, (bytes, bytearray)):
        return bytes(uploaded_file)
    if hasattr(uploaded_file, "getbuffer"):
        return bytes(uploaded_file.getbuffer())
    if hasattr(uploaded_file, "getvalue"):
        return uploaded_file.getvalue()
    if hasattr(uploaded_file, "read"):
        return uploaded_file.read()
    raise TypeError(f"Cannot read upload of type {type(uploaded_file).__name__}")


@dataclass
class UploadManager:
    """Store uploads under ``<data_dir>/uploads/<employee>/<report type>``.

    ``save`` returns the path relative to the data directory; that string is
    what records keep in ``attachments``.
    """

    config: AppConfig

    def sanitize_filename(self, filename: str) -> str:
        name, ext = os.path.splitext(os.path.basename(filename))
        safe_name = "".join(ch if ch.isalnum() else "_" for ch in name).strip("._")
        safe_name = safe_name or "document"
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
        return f"{safe_name}_{timestamp}{ext.lower()}"

    def target_dir(self, employee_id: Optional[str], report_type: Optional[str]) -> Path:
        return (
            self.config.uploads_dir
            / _safe_part(employee_id or "", "unassigned")
            / _safe_part(report_type or "", "general")
        )

    def save(
        self,
        uploaded_file: Any,
        *,
        employee_id: Optional[str] = None,
        report_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> Optional[str]:
        if not uploaded_file:
            return None
        name = filename or getattr(uploaded_file, "name", None)
        if not name:
            raise UploadRejectedError("Uploaded file has no name.")
        if not self._is_allowed(uploaded_file, name):
            raise UploadRejectedError(f"Unsupported file type uploaded: {name}")
        target_dir = self.target_dir(employee_id, report_type)
        target_dir.mkdir(parents=True, exist_ok=True)
        destination = target_dir / self.sanitize_filename(name)
        with open(destination, "wb") as f:
            f.write(_read_bytes(uploaded_file))
        self._scan_file(destination)
        relative = destination.relative_to(self.config.data_dir).as_posix()
        logger.info("Stored upload %s as %s", name, relative)
        return relative

    def save_many(self, uploaded_files, **key: Optional[str]) -> list[str]:
        stored = []
        for uploaded_file in uploaded_files or ():
            path = self.save(uploaded_file, **key)
            if path:
                stored.append(path)
        return stored

    def enforce_retention(self) -> int:
        if not self.config.upload_retention:
            return 0
        cutoff = datetime.now() - self.config.upload_retention
        removed = 0
        for path in self.config.uploads_dir.rglob("*"):
            if path.is_file() and datetime.fromtimestamp(path.stat().st_mtime) < cutoff:
                path.unlink(missing_ok=True)
                removed += 1
        if removed:
            logger.info("Removed %d uploads older than %s", removed, cutoff.date())
        return removed

    def discard(self, relative_path: str) -> bool:
        file_path = self.resolve(relative_path)
        if file_path is None:
            return False
        file_path.unlink(missing_ok=True)
        logger.info("Discarded upload %s", relative_path)
        return True

    def resolve(self, relative_path: str) -> Optional[Path]:
        if not relative_path:
            return None
        root = self.config.data_dir.resolve()
        file_path = (root / relative_path).resolve()
        if root not in file_path.parents:
            return None
        return file_path if file_path.exists() else None

    def metadata(self, relative_path: str) -> Optional[dict]:
        file_path = self.resolve(relative_path)
        if file_path is None:
            return None
        stat = file_path.stat()
        return {
            "name": file_path.name,
            "size": stat.st_size,
            "uploaded": datetime.fromtimestamp(stat.st_mtime),
            "path": file_path,
        }

    def _is_allowed(self, uploaded_file: Any, name: str) -> bool:
        mimetype = getattr(uploaded_file, "type", None)
        if mimetype and mimetype in self.config.allowed_mime_types:
            return True
        guessed, _ = mimetypes.guess_type(name)
        return guessed in self.config.allowed_mime_types

    def _scan_file(self, path: Path) -> None:
        if not self.config.virus_scan_command:
            return
        command = [self.config.virus_scan_command, str(path)]
        try:
            result = subprocess.run(command, capture_output=True, check=False, text=True)
        except OSError as exc:
            logger.warning("Virus scan failed to start: %s", exc)
            return
        if result.returncode != 0:
            path.unlink(missing_ok=True)
            raise UploadRejectedError(
                f"Uploaded file rejected by virus scanner: {result.stdout or result.stderr}"
            )

"""Exception taxonomy for the reporting core."""
from __future__ import annotations

from typing import Iterable, Optional


class ReportError(Exception):
    """Base class for every error raised by ``ps_reports``."""


class SchemaGapError(ReportError, LookupError):
    def __init__(self, report_type: Optional[str], subtype: Optional[str]):
        self.report_type = report_type
        self.subtype = subtype
        super().__init__(f"No schema registered for {report_type!r}/{subtype!r}")


class DateNormalizationError(ReportError, ValueError):
    def __init__(self, value: object, reason: str = "unrecognised date"):
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot normalize date {value!r}: {reason}")


class _FieldListError(ReportError, ValueError):
    message = "Field error"

    def __init__(self, fields: Iterable[str]):
        self.fields = tuple(fields)
        super().__init__(f"{self.message}: {', '.join(self.fields)}")


class MissingRequiredFieldError(_FieldListError):
    message = "Missing required fields"


class UnknownFieldError(_FieldListError):
    message = "Fields not allowed for this report type"


class InvalidStatusError(ReportError, ValueError):
    def __init__(self, status: object):
        self.status = status
        super().__init__(f"Unsupported report status {status!r}")


class SyncError(ReportError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class UploadRejectedError(ReportError):
    """Raised when the document store refuses an uploaded file."""

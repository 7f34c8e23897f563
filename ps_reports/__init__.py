"""Core utilities for the PS Reports module."""

from .config import AppConfig, configure_logging, load_config
from .dates import DateResult, coerce_date, normalize, to_display, to_iso
from .errors import (
    DateNormalizationError,
    InvalidStatusError,
    MissingRequiredFieldError,
    ReportError,
    SchemaGapError,
    SyncError,
    UnknownFieldError,
    UploadRejectedError,
)
from .export import Table, csv_bytes, pdf_grid, project, write_csv, write_pdf, write_xlsx
from .filters import FilterCriteria, facet_values, filter_records
from .records import Record, ReportDraft, build_record, load_records, record_from_payload, record_to_payload
from .repositories import Database, LocalReportStore
from .schema import GENERIC_SCHEMA, ReportSchema, lookup_schema
from .service import ReportCollection, ReportService
from .storage import UploadManager
from .sync import RestSyncClient, SyncClient

__all__ = [
    "AppConfig",
    "configure_logging",
    "load_config",
    "DateResult",
    "coerce_date",
    "normalize",
    "to_display",
    "to_iso",
    "DateNormalizationError",
    "InvalidStatusError",
    "MissingRequiredFieldError",
    "ReportError",
    "SchemaGapError",
    "SyncError",
    "UnknownFieldError",
    "UploadRejectedError",
    "Table",
    "csv_bytes",
    "pdf_grid",
    "project",
    "write_csv",
    "write_pdf",
    "write_xlsx",
    "FilterCriteria",
    "facet_values",
    "filter_records",
    "Record",
    "ReportDraft",
    "build_record",
    "load_records",
    "record_from_payload",
    "record_to_payload",
    "Database",
    "LocalReportStore",
    "GENERIC_SCHEMA",
    "ReportSchema",
    "lookup_schema",
    "ReportCollection",
    "ReportService",
    "UploadManager",
    "RestSyncClient",
    "SyncClient",
]

"""Orchestration of the report flow: store → records → filters → exports."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional

from .config import AppConfig
from .export import Table, export_filename, project, render_table
from .filters import FilterCriteria, filter_records
from .records import (
    Record,
    RejectedPayload,
    ReportDraft,
    build_record,
    load_records,
    record_from_payload,
    record_to_payload,
)
from .schema import FormatOptions, is_blank, schema
from .storage import UploadManager
from .sync import SyncClient

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    records: list[Record]
    rejected: list[RejectedPayload]


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content: bytes
    table: Table

    @property
    def mime_type(self) -> str:
        return {
            "csv": "text/csv;charset=utf-8",
            "pdf": "application/pdf",
            "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        }[self.filename.rsplit(".", 1)[-1]]


class ReportCollection:
    """In-memory report list owned by the caller.

    Every fetch takes a token from :meth:`begin_refresh`; a response is only
    applied if no newer fetch was started since, so rapid refetches resolve
    last-write-wins.
    """

    def __init__(self, records: Iterable[Record] = ()):
        self._records: list[Record] = list(records)
        self._latest_token = 0
        self.lock = threading.Lock()

    @property
    def records(self) -> list[Record]:
        with self.lock:
            return list(self._records)

    def begin_refresh(self) -> int:
        with self.lock:
            self._latest_token += 1
            return self._latest_token

    def apply_refresh(self, token: int, records: Iterable[Record]) -> bool:
        with self.lock:
            if token != self._latest_token:
                logger.debug("Discarding stale refresh %s (latest %s)", token, self._latest_token)
                return False
            self._records = list(records)
            return True

    def upsert(self, record: Record) -> None:
        with self.lock:
            for index, existing in enumerate(self._records):
                if existing.id == record.id:
                    self._records[index] = record
                    return
            self._records.insert(0, record)

    def remove(self, record_id: Any) -> None:
        with self.lock:
            self._records = [record for record in self._records if record.id != record_id]


class ReportService:
    def __init__(
        self,
        client: SyncClient,
        config: AppConfig,
        uploads: Optional[UploadManager] = None,
    ):
        self.client = client
        self.config = config
        self.uploads = uploads or UploadManager(config)

    @property
    def format_options(self) -> FormatOptions:
        return FormatOptions(
            date_style=self.config.display_date_style,
            currency_symbol=self.config.currency_symbol,
        )

    def load(self, employee_id: Optional[str] = None) -> LoadResult:
        payloads = self.client.list(employee_id)
        records, rejected = load_records(payloads, policy=self.config.date_policy)
        if rejected:
            logger.warning("%d of %d reports could not be loaded", len(rejected), len(payloads))
        return LoadResult(records=records, rejected=rejected)

    def refresh(self, collection: ReportCollection, employee_id: Optional[str] = None) -> LoadResult:
        token = collection.begin_refresh()
        result = self.load(employee_id)
        collection.apply_refresh(token, result.records)
        return result

    def submit(
        self,
        draft: ReportDraft,
        *,
        employee_id: Optional[str] = None,
        files: Iterable[Any] = (),
    ) -> Record:
        """Validate ``draft``, store its attachments and create it remotely.

        The caller's draft is left untouched. Stored attachments are removed
        again if the create fails.
        """

        if employee_id and draft.schema.allows("submittedBy") and is_blank(draft.get("submittedBy")):
            draft = replace(draft, fields={**draft.fields, "submittedBy": employee_id})
        record = build_record(draft, policy=self.config.date_policy)
        stored: list[str] = []
        try:
            for uploaded_file in files or ():
                path = self.uploads.save(
                    uploaded_file, employee_id=employee_id, report_type=draft.report_type
                )
                if path:
                    stored.append(path)
            if stored:
                record = replace(record, attachments=record.attachments + tuple(stored))
            created = self.client.create(record_to_payload(record, include_id=False))
        except Exception:
            for path in stored:
                self.uploads.discard(path)
            raise
        logger.info("Created %s/%s report %s", record.report_type, record.subtype, created.get("id"))
        return record_from_payload(created, policy=self.config.date_policy)

    def update(self, record_id: Any, draft: ReportDraft) -> Record:
        """Replace the whole field bag of ``record_id`` with the draft's values."""

        record = build_record(draft, record_id, policy=self.config.date_policy)
        updated = self.client.update(record_id, record_to_payload(record, include_id=False))
        return record_from_payload(updated, policy=self.config.date_policy)

    def delete(self, record_id: Any) -> None:
        self.client.delete(record_id)
        logger.info("Deleted report %s", record_id)

    def export(
        self,
        records: Iterable[Record],
        report_type: Optional[str],
        subtype: Optional[str] = None,
        *,
        fmt: str = "csv",
        criteria: Optional[FilterCriteria] = None,
    ) -> ExportResult:
        """Filter ``records`` down to one shape and render them as ``fmt``.

        Shapes without a registry entry export every record with the generic
        columns.
        """

        criteria = criteria or FilterCriteria()
        if not schema(report_type, subtype).is_generic:
            criteria = replace(criteria, report_type=report_type, subtype=subtype)
        selected = filter_records(records, criteria)
        table = project(selected, report_type, subtype, options=self.format_options)
        content = render_table(table, fmt)
        return ExportResult(
            filename=export_filename(report_type, subtype, fmt.lower()),
            content=content,
            table=table,
        )

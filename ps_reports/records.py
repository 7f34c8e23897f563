"""Report records, drafts and conversion from/to the store's JSON shape."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from .dates import coerce_date, normalize, to_iso
from .errors import (
    DateNormalizationError,
    InvalidStatusError,
    MissingRequiredFieldError,
    ReportError,
    UnknownFieldError,
)
from .schema import (
    CORE_FIELDS,
    NO_SUBTYPE,
    REPORT_STATUSES,
    ReportSchema,
    is_blank,
    normalize_subtype,
    schema,
)

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = ("id", "type", "subtype", "attachments") + CORE_FIELDS


@dataclass(frozen=True)
class Record:
    """One stored report. Immutable; an update produces a new instance."""

    id: Any
    report_type: str
    subtype: str
    title: str
    content: str
    date: date
    status: Optional[str] = None
    attachments: tuple[str, ...] = ()
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "attachments", tuple(self.attachments))

    @property
    def kind(self) -> tuple[str, str]:
        return (self.report_type, self.subtype)

    @property
    def schema(self) -> ReportSchema:
        return schema(self.report_type, self.subtype)

    def get(self, name: str, default: Any = None) -> Any:
        if name in CORE_FIELDS:
            value = getattr(self, name)
            return default if value is None else value
        return self.fields.get(name, default)

    def populated_fields(self) -> set[str]:
        populated = {name for name in CORE_FIELDS if not is_blank(getattr(self, name))}
        populated.update(name for name, value in self.fields.items() if not is_blank(value))
        return populated

    def to_draft(self) -> "ReportDraft":
        return ReportDraft(
            report_type=self.report_type,
            subtype=self.subtype,
            title=self.title,
            content=self.content,
            date=self.date,
            status=self.status,
            attachments=list(self.attachments),
            fields=dict(self.fields),
        )


@dataclass
class ReportDraft:
    """Client-side report being filled in by a form.

    Values stay as entered until :func:`build_record` validates them, so a
    draft may be incomplete at any point before submission.
    """

    report_type: str
    subtype: Optional[str] = None
    title: str = ""
    content: str = ""
    date: Any = None
    status: Optional[str] = "draft"
    attachments: list[str] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def schema(self) -> ReportSchema:
        return schema(self.report_type, self.subtype)

    def get(self, name: str, default: Any = None) -> Any:
        if name in CORE_FIELDS:
            value = getattr(self, name)
            return default if value is None else value
        return self.fields.get(name, default)

    def set(self, name: str, value: Any) -> "ReportDraft":
        if name in CORE_FIELDS:
            setattr(self, name, value)
        elif self.schema.allows(name):
            self.fields[name] = value
        else:
            raise UnknownFieldError([name])
        return self

    def update(self, values: Mapping[str, Any]) -> "ReportDraft":
        unknown = [
            name for name in values if name not in CORE_FIELDS and not self.schema.allows(name)
        ]
        if unknown:
            raise UnknownFieldError(unknown)
        for name, value in values.items():
            self.set(name, value)
        return self

    def add_attachments(self, references: Iterable[str]) -> None:
        self.attachments.extend(ref for ref in references if ref)

    def missing_fields(self) -> list[str]:
        report_schema = self.schema
        return [
            name
            for name in report_schema.field_names
            if name in report_schema.required and is_blank(self.get(name))
        ]


def build_record(draft: ReportDraft, record_id: Any = None, *, policy: str = "reject") -> Record:
    """Validate ``draft`` for submission and return the resulting :class:`Record`."""

    report_schema = draft.schema
    unknown = [name for name in draft.fields if not report_schema.allows(name)]
    if unknown:
        raise UnknownFieldError(unknown)

    missing = draft.missing_fields()
    if missing:
        raise MissingRequiredFieldError(missing)

    status: Optional[str] = None
    if report_schema.uses_status:
        status = draft.status or "draft"
        if status not in REPORT_STATUSES:
            raise InvalidStatusError(status)
    elif draft.status not in (None, "draft"):
        logger.debug("Dropping status %r for %s", draft.status, report_schema.key)

    values: dict[str, Any] = {}
    for name in report_schema.bag_fields:
        value = draft.fields.get(name)
        if is_blank(value):
            continue
        if name in report_schema.date_fields:
            value = coerce_date(value, policy)
        values[name] = value

    return Record(
        id=record_id,
        report_type=draft.report_type,
        subtype=normalize_subtype(draft.subtype),
        title=str(draft.title or "").strip(),
        content=str(draft.content or "").strip(),
        date=coerce_date(draft.date, policy),
        status=status,
        attachments=tuple(draft.attachments),
        fields=values,
    )


# ---------------------------------------------------------------------------
# Store payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RejectedPayload:
    payload: Mapping[str, Any]
    error: ReportError


def _attachments_from(value: Any) -> tuple[str, ...]:
    if is_blank(value):
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value if not is_blank(item))


def record_from_payload(payload: Mapping[str, Any], *, policy: str = "reject") -> Record:
    """Build a :class:`Record` from a raw store payload.

    Keys outside the shape's schema are dropped. A missing or unparseable
    ``date`` raises :class:`DateNormalizationError` under the ``reject`` policy.
    """

    if not isinstance(payload, Mapping):
        raise TypeError(f"Report payload must be a mapping, got {type(payload).__name__}")

    report_type = str(payload.get("type") or "").strip()
    subtype = normalize_subtype(payload.get("subtype"))
    report_schema = schema(report_type, subtype)

    status = payload.get("status")
    if not report_schema.uses_status:
        status = None
    elif status is not None and status not in REPORT_STATUSES:
        logger.warning("Report %s has unsupported status %r", payload.get("id"), status)
        status = None

    values: dict[str, Any] = {}
    dropped: list[str] = []
    for name, value in payload.items():
        if name in ENVELOPE_KEYS or is_blank(value):
            continue
        if not report_schema.allows(name):
            dropped.append(name)
            continue
        if name in report_schema.date_fields:
            result = normalize(value)
            if result.ok:
                value = result.unwrap()
            else:
                logger.warning(
                    "Report %s field %s keeps raw value %r: %s",
                    payload.get("id"),
                    name,
                    value,
                    result.error,
                )
        values[name] = value
    if dropped:
        logger.debug("Report %s: dropped fields outside %s: %s", payload.get("id"), report_schema.key, dropped)

    return Record(
        id=payload.get("id"),
        report_type=report_type,
        subtype=subtype,
        title=str(payload.get("title") or ""),
        content=str(payload.get("content") or ""),
        date=coerce_date(payload.get("date"), policy),
        status=status,
        attachments=_attachments_from(payload.get("attachments")),
        fields=values,
    )


def load_records(
    payloads: Iterable[Mapping[str, Any]], *, policy: str = "reject"
) -> tuple[list[Record], list[RejectedPayload]]:
    """Convert a batch of payloads, setting aside the ones that fail."""

    records: list[Record] = []
    rejected: list[RejectedPayload] = []
    for payload in payloads:
        try:
            records.append(record_from_payload(payload, policy=policy))
        except DateNormalizationError as exc:
            logger.warning("Rejected report %s: %s", payload.get("id"), exc)
            rejected.append(RejectedPayload(payload=payload, error=exc))
    return records, rejected


def _wire_value(value: Any) -> Any:
    if isinstance(value, date):
        return to_iso(value)
    return value


def record_to_payload(record: Record, *, include_id: bool = True) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if include_id and record.id is not None:
        payload["id"] = record.id
    payload.update(
        {
            "type": record.report_type,
            "subtype": None if record.subtype == NO_SUBTYPE else record.subtype,
            "title": record.title,
            "content": record.content,
            "date": to_iso(record.date),
            "status": record.status,
            "attachments": list(record.attachments),
        }
    )
    for name, value in record.fields.items():
        payload[name] = _wire_value(value)
    return payload

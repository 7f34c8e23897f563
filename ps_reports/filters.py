"""Filtering over report collections."""
from __future__ import annotations

from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from .dates import coerce_date
from .records import Record
from .schema import normalize_subtype

ALL = "all"
DEPARTMENT_FIELDS = ("department", "division", "company")


def _selection(value: Any) -> Optional[str]:
    """Map UI selections to a criterion; ``None``, ``""`` and ``"all"`` mean no filter."""

    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == ALL:
        return None
    return text


def _bound(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return coerce_date(value)
    text = _selection(value)
    return coerce_date(text) if text is not None else None


def _fold(value: Any) -> str:
    return str(value).strip().casefold()


@dataclass(frozen=True)
class FilterCriteria:
    report_type: Optional[str] = None
    subtype: Optional[str] = None
    department: Optional[str] = None
    status: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    free_text: Optional[str] = None
    employee_id: Optional[str] = None

    @classmethod
    def from_form(cls, values: Mapping[str, Any]) -> "FilterCriteria":
        """Build criteria from form values.

        Accepts both the store's camelCase keys and snake_case ones. Date
        bounds go through the normalizer and raise on unparseable input.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in values:
                    return values[key]
            return None

        return cls(
            report_type=_selection(pick("report_type", "type")),
            subtype=_selection(pick("subtype")),
            department=_selection(pick("department")),
            status=_selection(pick("status")),
            date_from=_bound(pick("date_from", "dateFrom", "start")),
            date_to=_bound(pick("date_to", "dateTo", "end")),
            free_text=_selection(pick("free_text", "freeText", "search")),
            employee_id=_selection(pick("employee_id", "employeeId")),
        )

    @property
    def is_empty(self) -> bool:
        if self.date_from is not None or self.date_to is not None:
            return False
        return all(
            _selection(value) is None
            for value in (
                self.report_type,
                self.subtype,
                self.department,
                self.status,
                self.free_text,
                self.employee_id,
            )
        )

    def matches(self, record: Record) -> bool:
        report_type = _selection(self.report_type)
        if report_type is not None and record.report_type != report_type:
            return False

        subtype = _selection(self.subtype)
        if subtype is not None and record.subtype != normalize_subtype(subtype):
            return False

        status = _selection(self.status)
        if status is not None and record.status != status:
            return False

        department = _selection(self.department)
        if department is not None:
            wanted = _fold(department)
            if not any(
                _fold(record.fields[name]) == wanted
                for name in DEPARTMENT_FIELDS
                if record.fields.get(name) is not None
            ):
                return False

        employee_id = _selection(self.employee_id)
        if employee_id is not None:
            owners = (record.fields.get("employeeId"), record.fields.get("submittedBy"))
            if not any(owner is not None and str(owner).strip() == employee_id for owner in owners):
                return False

        if self.date_from is not None and record.date < self.date_from:
            return False
        if self.date_to is not None and record.date > self.date_to:
            return False

        free_text = _selection(self.free_text)
        if free_text is not None and not matches_text(record, free_text):
            return False
        return True


def matches_text(record: Record, query: str) -> bool:
    needle = query.strip().casefold()
    if not needle:
        return True
    names = ["title", "content"]
    names.extend(name for name in record.schema.searchable_fields if name not in names)
    for name in names:
        value = record.get(name)
        if value is not None and needle in str(value).casefold():
            return True
    return False


def filter_records(records: Iterable[Record], criteria: Optional[FilterCriteria] = None) -> list[Record]:
    """Return the records matching every present criterion, in input order."""

    if criteria is None:
        return list(records)
    return [record for record in records if criteria.matches(record)]


def facet_values(records: Iterable[Record], field_name: str) -> list[str]:
    """Distinct non-empty values of ``field_name``, sorted case-insensitively."""

    seen: dict[str, str] = {}
    for record in records:
        value = record.get(field_name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            seen.setdefault(text.casefold(), text)
    return [seen[key] for key in sorted(seen)]


def count_by_kind(records: Iterable[Record]) -> "OrderedDict[tuple[str, str], int]":
    counts = Counter(record.kind for record in records)
    return OrderedDict(sorted(counts.items()))

"""Static registry of report shapes.

Every ``(type, subtype)`` pair maps to a :class:`ReportSchema` describing the
fields a record of that shape may carry, the ones required before it can be
submitted, and the ordered column projection used for CSV/PDF export.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

from .dates import normalize, to_display
from .errors import SchemaGapError

logger = logging.getLogger(__name__)

NO_SUBTYPE = "none"
EMPTY_CELL = "-"

REPORT_STATUSES = ("draft", "submitted", "approved")
CORE_FIELDS = ("title", "content", "date", "status")
FIELD_KINDS = ("text", "number", "date", "enum", "currency")

REPORT_TYPE_LABELS = OrderedDict(
    [
        ("employee", "Employee Report"),
        ("visit", "Visit Report"),
        ("oem", "OEM Report"),
        ("customer", "Customer Report"),
        ("blueprint", "Blueprint Report"),
        ("projection", "Projection Report"),
        ("achievement", "Achievement Report"),
    ]
)

REPORT_SUBTYPE_LABELS = OrderedDict(
    [
        (
            "employee",
            OrderedDict(
                [
                    ("daily", "Daily Report"),
                    ("weekly", "Weekly Report"),
                    ("monthly", "Monthly Report"),
                    ("yearly", "Yearly Report"),
                ]
            ),
        ),
        (
            "oem",
            OrderedDict(
                [
                    ("orders", "Orders"),
                    ("competitor_analysis", "Competitor Analysis"),
                    ("open_tenders", "Open Tenders"),
                    ("bugetary_submits", "Bugetary Submits"),
                    ("lost_tenders", "Lost Tenders"),
                    ("holding_projects", "Holding Projects"),
                ]
            ),
        ),
    ]
)

DEPARTMENTS = ("IT", "Sales", "Marketing", "HR", "Finance", "Operations")


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormatOptions:
    date_style: str = "MM/DD/YYYY"
    locale: str = "en-US"
    currency_symbol: str = ""


Formatter = Callable[[object, FormatOptions], str]


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return not value
    return False


def format_text(value: object, options: FormatOptions) -> str:
    return str(value).strip()


def format_number(value: object, options: FormatOptions) -> str:
    amount = coerce_number(value)
    if amount is None:
        return format_text(value, options)
    if amount.is_integer():
        return str(int(amount))
    text = repr(amount)
    if "e" in text:
        text = format(Decimal(text), "f")
    return text


def format_date(value: object, options: FormatOptions) -> str:
    if isinstance(value, date):
        return to_display(value, options.date_style, options.locale)
    result = normalize(value)
    if result.ok:
        return to_display(result.unwrap(), options.date_style, options.locale)
    return format_text(value, options)


def format_currency(value: object, options: FormatOptions) -> str:
    amount = coerce_number(value)
    if amount is None:
        return format_text(value, options)
    symbol = options.currency_symbol.strip()
    if symbol:
        return f"{symbol} {amount:,.2f}"
    return f"{amount:,.2f}"


FORMATTERS: Mapping[str, Formatter] = MappingProxyType(
    {
        "text": format_text,
        "enum": format_text,
        "number": format_number,
        "date": format_date,
        "currency": format_currency,
    }
)


def coerce_number(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    label: str
    kind: str = "text"
    searchable: bool = False
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class ColumnDescriptor:
    field: str
    header: str
    formatter: Formatter = format_text

    def render(self, value: object, options: FormatOptions = FormatOptions()) -> str:
        if is_blank(value):
            return EMPTY_CELL
        rendered = self.formatter(value, options)
        return rendered if rendered else EMPTY_CELL


@dataclass(frozen=True)
class ReportSchema:
    report_type: str
    subtype: str
    label: str
    fields: tuple[FieldDescriptor, ...]
    required: frozenset[str]
    export_columns: tuple[ColumnDescriptor, ...]
    uses_status: bool = True
    is_generic: bool = False
    _index: Mapping[str, FieldDescriptor] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_index", MappingProxyType({f.name: f for f in self.fields})
        )

    @property
    def key(self) -> tuple[str, str]:
        return (self.report_type, self.subtype)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def bag_fields(self) -> tuple[str, ...]:
        """Names of the sparse fields, i.e. everything except the core ones."""
        return tuple(f.name for f in self.fields if f.name not in CORE_FIELDS)

    @property
    def searchable_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.searchable)

    @property
    def date_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.kind == "date" and f.name != "date")

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.export_columns]

    def allows(self, name: str) -> bool:
        return name in self._index


# ---------------------------------------------------------------------------
# Field tables
# ---------------------------------------------------------------------------

# name -> {"label", "type", "searchable", "options"}
CORE_FIELD_TABLE = OrderedDict(
    [
        ("title", {"label": "Title", "type": "text", "searchable": True}),
        ("content", {"label": "Content", "type": "text", "searchable": True}),
        ("date", {"label": "Date", "type": "date"}),
        ("status", {"label": "Status", "type": "enum", "options": REPORT_STATUSES}),
    ]
)

SHARED_FIELDS = OrderedDict(
    [
        ("submittedBy", {"label": "Submitted By", "type": "text"}),
        ("employeeId", {"label": "Employee ID", "type": "text", "searchable": True}),
        ("employeeName", {"label": "Employee Name", "type": "text", "searchable": True}),
        ("department", {"label": "Department", "type": "enum", "options": DEPARTMENTS}),
        ("approvedBy", {"label": "Approved By", "type": "text"}),
        ("approvedDate", {"label": "Approved Date", "type": "date"}),
    ]
)

CONTACT_FIELDS = OrderedDict(
    [
        ("customerName", {"label": "Customer Name", "type": "text", "searchable": True}),
        ("designation", {"label": "Designation", "type": "text"}),
        ("landlineOrMobile", {"label": "Landline / Mobile", "type": "text"}),
        ("emailId", {"label": "Email ID", "type": "text"}),
        ("remarks", {"label": "Remarks", "type": "text"}),
        ("productOrRequirements", {"label": "Product or Requirements", "type": "text"}),
        ("division", {"label": "Division", "type": "text", "searchable": True}),
        ("company", {"label": "Company", "type": "text", "searchable": True}),
    ]
)

ORDER_FIELDS = OrderedDict(
    [
        ("poNumber", {"label": "PO Number", "type": "text", "searchable": True}),
        ("orderDate", {"label": "Order Date", "type": "date"}),
        ("item", {"label": "Item", "type": "text", "searchable": True}),
        ("quantity", {"label": "Quantity", "type": "number"}),
        ("partNumber", {"label": "Part Number", "type": "text", "searchable": True}),
        ("xmwPrice", {"label": "XMW Price", "type": "currency"}),
        ("unitTotalOrderValue", {"label": "Unit Total Order Value", "type": "currency"}),
        ("totalPoValue", {"label": "Total PO Value", "type": "currency"}),
        ("customerName", {"label": "Customer Name", "type": "text", "searchable": True}),
        ("xmwInvoiceRef", {"label": "XMW Invoice Ref", "type": "text"}),
        ("xmwInvoiceDate", {"label": "XMW Invoice Date", "type": "date"}),
    ]
)

COMPETITOR_FIELDS = OrderedDict(
    [
        ("slNo", {"label": "Sl. No.", "type": "number"}),
        ("customerName", {"label": "Customer Name", "type": "text", "searchable": True}),
        ("itemDescription", {"label": "Item Description", "type": "text", "searchable": True}),
        ("competitor", {"label": "Competitor", "type": "text", "searchable": True}),
        ("modelNumber", {"label": "Model Number", "type": "text", "searchable": True}),
        ("unitPrice", {"label": "Unit Price", "type": "currency"}),
    ]
)

TENDER_FIELDS = OrderedDict(
    [
        ("customerName", {"label": "Customer Name", "type": "text", "searchable": True}),
        ("quotationNumber", {"label": "Quotation Number", "type": "text", "searchable": True}),
        ("productDescription", {"label": "Product Description", "type": "text", "searchable": True}),
        ("quantity", {"label": "Quantity", "type": "number"}),
        ("xmwValue", {"label": "XMW Value", "type": "currency"}),
        ("remarks", {"label": "Remarks", "type": "text"}),
    ]
)

# Export projections: (field, header). The formatter follows the field kind.
CONTACT_COLUMNS = [
    ("employeeName", "Visited Engineer"),
    ("date", "DATE"),
    ("customerName", "CUSTOMER NAME"),
    ("designation", "DESIGNATION"),
    ("landlineOrMobile", "LANDLINE / MOBILE"),
    ("emailId", "EMAIL ID"),
    ("remarks", "REMARKS"),
    ("productOrRequirements", "Product or Requirements"),
    ("division", "Division"),
    ("company", "Company"),
]

ORDER_COLUMNS = [
    ("poNumber", "PO Number"),
    ("orderDate", "Order Date"),
    ("item", "Item"),
    ("quantity", "Quantity"),
    ("partNumber", "Part Number"),
    ("xmwPrice", "XMW Price"),
    ("unitTotalOrderValue", "Unit Total Order Value"),
    ("totalPoValue", "Total PO Value"),
    ("customerName", "Customer Name"),
    ("xmwInvoiceRef", "XMW Invoice Ref"),
    ("xmwInvoiceDate", "XMW Invoice Date"),
    ("submittedBy", "Submitted By"),
    ("employeeName", "Employee Name"),
]

COMPETITOR_COLUMNS = [
    ("slNo", "Sl. No."),
    ("customerName", "Customer Name"),
    ("itemDescription", "Item Description"),
    ("competitor", "Competitor"),
    ("modelNumber", "Model Number"),
    ("unitPrice", "Unit Price"),
    ("date", "Date"),
    ("submittedBy", "Submitted By"),
    ("employeeName", "Employee Name"),
]

TENDER_COLUMNS = [
    ("customerName", "Customer Name"),
    ("quotationNumber", "Quotation Number"),
    ("productDescription", "Product Description"),
    ("quantity", "Quantity"),
    ("xmwValue", "XMW Value"),
    ("remarks", "Remarks"),
    ("date", "Date"),
    ("submittedBy", "Submitted By"),
    ("employeeName", "Employee Name"),
]

EMPLOYEE_COLUMNS = [
    ("employeeId", "Employee ID"),
    ("employeeName", "Employee Name"),
    ("department", "Department"),
    ("title", "Title"),
    ("date", "Date"),
    ("status", "Status"),
    ("content", "Content"),
    ("approvedBy", "Approved By"),
    ("approvedDate", "Approved Date"),
]

PLAN_COLUMNS = [
    ("title", "Title"),
    ("date", "Date"),
    ("employeeName", "Employee Name"),
    ("department", "Department"),
    ("status", "Status"),
    ("content", "Content"),
]

GENERIC_COLUMNS = [
    ("title", "Title"),
    ("content", "Content"),
    ("date", "Date"),
    ("status", "Status"),
]


# ---------------------------------------------------------------------------
# Registry construction
# ---------------------------------------------------------------------------


def _descriptors(*tables: Mapping[str, dict]) -> tuple[FieldDescriptor, ...]:
    merged: OrderedDict[str, dict] = OrderedDict()
    for table in tables:
        for name, config in table.items():
            if config["type"] not in FIELD_KINDS:
                raise ValueError(f"Field {name!r} has unknown kind {config['type']!r}")
            merged.setdefault(name, config)
    return tuple(
        FieldDescriptor(
            name=name,
            label=config["label"],
            kind=config["type"],
            searchable=bool(config.get("searchable", False)),
            options=tuple(config.get("options", ())),
        )
        for name, config in merged.items()
    )


def _build_schema(
    report_type: str,
    subtype: str,
    label: str,
    fields: Iterable[Mapping[str, dict]],
    required: Iterable[str],
    columns: Iterable[tuple[str, str]],
    *,
    uses_status: bool = True,
    is_generic: bool = False,
) -> ReportSchema:
    core = OrderedDict(
        (name, config)
        for name, config in CORE_FIELD_TABLE.items()
        if uses_status or name != "status"
    )
    descriptors = _descriptors(core, *fields)
    kinds = {d.name: d.kind for d in descriptors}
    export_columns = tuple(
        ColumnDescriptor(name, header, FORMATTERS[kinds.get(name, "text")])
        for name, header in columns
    )
    missing = [name for name, _ in columns if name not in kinds]
    if missing:
        raise ValueError(f"Export columns reference unknown fields for {report_type}/{subtype}: {missing}")
    return ReportSchema(
        report_type=report_type,
        subtype=subtype,
        label=label,
        fields=descriptors,
        required=frozenset(required),
        export_columns=export_columns,
        uses_status=uses_status,
        is_generic=is_generic,
    )


GENERIC_SCHEMA = _build_schema(
    "generic",
    NO_SUBTYPE,
    "Report",
    (),
    ("title", "content", "date"),
    GENERIC_COLUMNS,
    is_generic=True,
)


def _registry() -> Mapping[tuple[str, str], ReportSchema]:
    schemas: dict[tuple[str, str], ReportSchema] = {}

    for subtype, label in REPORT_SUBTYPE_LABELS["employee"].items():
        schemas[("employee", subtype)] = _build_schema(
            "employee",
            subtype,
            label,
            (SHARED_FIELDS,),
            ("title", "content", "date"),
            EMPLOYEE_COLUMNS,
        )

    schemas[("customer", NO_SUBTYPE)] = _build_schema(
        "customer",
        NO_SUBTYPE,
        REPORT_TYPE_LABELS["customer"],
        (SHARED_FIELDS, CONTACT_FIELDS),
        (
            "title",
            "date",
            "customerName",
            "designation",
            "landlineOrMobile",
            "emailId",
            "productOrRequirements",
            "division",
            "company",
        ),
        CONTACT_COLUMNS,
    )
    schemas[("visit", NO_SUBTYPE)] = _build_schema(
        "visit",
        NO_SUBTYPE,
        REPORT_TYPE_LABELS["visit"],
        (SHARED_FIELDS, CONTACT_FIELDS),
        ("title", "date", "customerName"),
        CONTACT_COLUMNS,
    )

    oem_labels = REPORT_SUBTYPE_LABELS["oem"]
    schemas[("oem", "orders")] = _build_schema(
        "oem",
        "orders",
        oem_labels["orders"],
        (SHARED_FIELDS, ORDER_FIELDS),
        ("date", "poNumber", "orderDate", "item", "quantity", "customerName"),
        ORDER_COLUMNS,
        uses_status=False,
    )
    schemas[("oem", "competitor_analysis")] = _build_schema(
        "oem",
        "competitor_analysis",
        oem_labels["competitor_analysis"],
        (SHARED_FIELDS, COMPETITOR_FIELDS),
        ("date", "customerName", "itemDescription", "competitor"),
        COMPETITOR_COLUMNS,
        uses_status=False,
    )
    for subtype in ("open_tenders", "bugetary_submits", "lost_tenders", "holding_projects"):
        schemas[("oem", subtype)] = _build_schema(
            "oem",
            subtype,
            oem_labels[subtype],
            (SHARED_FIELDS, TENDER_FIELDS),
            ("date", "customerName", "quotationNumber", "productDescription"),
            TENDER_COLUMNS,
            uses_status=False,
        )

    for report_type in ("blueprint", "projection", "achievement"):
        schemas[(report_type, NO_SUBTYPE)] = _build_schema(
            report_type,
            NO_SUBTYPE,
            REPORT_TYPE_LABELS[report_type],
            (SHARED_FIELDS,),
            ("title", "content", "date"),
            PLAN_COLUMNS,
        )
    return MappingProxyType(schemas)


SCHEMAS = _registry()


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def normalize_subtype(subtype: Optional[str]) -> str:
    text = (subtype or "").strip()
    return text or NO_SUBTYPE


def lookup_schema(report_type: Optional[str], subtype: Optional[str] = None) -> ReportSchema:
    """Strict lookup; raises :class:`SchemaGapError` for unregistered shapes."""

    key = ((report_type or "").strip(), normalize_subtype(subtype))
    try:
        return SCHEMAS[key]
    except KeyError:
        raise SchemaGapError(report_type, subtype) from None


def schema(report_type: Optional[str], subtype: Optional[str] = None) -> ReportSchema:
    """Return the schema for a shape, or :data:`GENERIC_SCHEMA` for a gap.

    The fallback is flagged through ``ReportSchema.is_generic``.
    """

    try:
        return lookup_schema(report_type, subtype)
    except SchemaGapError as exc:
        logger.debug("%s; using generic schema", exc)
        return GENERIC_SCHEMA


def report_types() -> list[str]:
    return list(REPORT_TYPE_LABELS)


def subtypes_for(report_type: str) -> list[str]:
    subtypes = REPORT_SUBTYPE_LABELS.get(report_type)
    if subtypes is None:
        return [NO_SUBTYPE] if report_type in REPORT_TYPE_LABELS else []
    return list(subtypes)


def type_label(report_type: str) -> str:
    return REPORT_TYPE_LABELS.get(report_type, report_type)


def subtype_label(report_type: str, subtype: Optional[str]) -> str:
    key = normalize_subtype(subtype)
    return REPORT_SUBTYPE_LABELS.get(report_type, {}).get(key, type_label(report_type))

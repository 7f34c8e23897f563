from datetime import date

import pytest

from ps_reports.errors import SchemaGapError
from ps_reports.schema import (
    GENERIC_SCHEMA,
    SCHEMAS,
    FormatOptions,
    lookup_schema,
    report_types,
    schema,
    subtype_label,
    subtypes_for,
)


def test_unknown_shape_falls_back_to_generic_schema():
    fallback = schema("unknown_type", None)

    assert fallback is GENERIC_SCHEMA
    assert fallback.is_generic
    assert fallback.field_names == ("title", "content", "date", "status")
    assert fallback.headers == ["Title", "Content", "Date", "Status"]


def test_strict_lookup_raises_schema_gap():
    with pytest.raises(SchemaGapError) as excinfo:
        lookup_schema("employee", "quarterly")

    assert excinfo.value.report_type == "employee"
    assert schema("employee", "quarterly").is_generic


def test_every_type_and_subtype_is_registered():
    for report_type in report_types():
        for subtype in subtypes_for(report_type):
            assert not schema(report_type, subtype).is_generic, (report_type, subtype)


def test_missing_subtype_reads_as_none():
    assert schema("customer", None).key == ("customer", "none")
    assert schema("customer", "").key == ("customer", "none")


def test_orders_schema_shape():
    orders = schema("oem", "orders")

    assert "poNumber" in orders.required
    assert not orders.uses_status
    assert not orders.allows("status")
    assert not orders.allows("competitor")
    assert set(orders.date_fields) == {"orderDate", "xmwInvoiceDate", "approvedDate"}
    assert orders.headers[:3] == ["PO Number", "Order Date", "Item"]


def test_competitor_analysis_export_columns():
    competitor = schema("oem", "competitor_analysis")

    assert competitor.headers == [
        "Sl. No.",
        "Customer Name",
        "Item Description",
        "Competitor",
        "Model Number",
        "Unit Price",
        "Date",
        "Submitted By",
        "Employee Name",
    ]


def test_searchable_fields_follow_shape():
    assert {"employeeName", "employeeId"} <= set(schema("employee", "daily").searchable_fields)
    assert {"customerName", "division", "company"} <= set(schema("customer").searchable_fields)


def test_column_formatters():
    orders = {column.field: column for column in schema("oem", "orders").export_columns}
    options = FormatOptions(currency_symbol="Tk")

    assert orders["orderDate"].render(date(2024, 4, 1), options) == "04/01/2024"
    assert orders["orderDate"].render("2024-04-01", options) == "04/01/2024"
    assert orders["xmwPrice"].render("12500", options) == "Tk 12,500.00"
    assert orders["xmwPrice"].render("call us", options) == "call us"
    assert orders["quantity"].render("2", options) == "2"
    assert orders["poNumber"].render(None, options) == "-"
    assert orders["poNumber"].render("  ", options) == "-"


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        SCHEMAS[("visit", "none")] = GENERIC_SCHEMA


def test_subtype_labels():
    assert subtype_label("oem", "competitor_analysis") == "Competitor Analysis"
    assert subtype_label("customer", None) == "Customer Report"


def test_number_columns_keep_full_precision():
    orders = {column.field: column for column in schema("oem", "orders").export_columns}

    assert orders["quantity"].render("1234567.5") == "1234567.5"
    assert orders["quantity"].render(0.0000125) == "0.0000125"


def test_field_tables_reject_unknown_kinds():
    from ps_reports.schema import _descriptors

    with pytest.raises(ValueError):
        _descriptors({"budget": {"label": "Budget", "type": "money"}})

from datetime import date

import pytest

from ps_reports.errors import DateNormalizationError
from ps_reports.filters import FilterCriteria, count_by_kind, facet_values, filter_records


def _ids(records):
    return [record.id for record in records]


def test_department_filter_keeps_input_order(customer_records):
    result = filter_records(customer_records, FilterCriteria(department="Sales"))

    assert _ids(result) == [1, 3]


def test_no_criteria_returns_everything(mixed_records):
    assert filter_records(mixed_records) == mixed_records
    assert filter_records(mixed_records, FilterCriteria()) == mixed_records
    assert FilterCriteria().is_empty


def test_filtering_is_idempotent(mixed_records):
    criteria = FilterCriteria(report_type="customer", status="approved")

    once = filter_records(mixed_records, criteria)

    assert filter_records(once, criteria) == once
    assert _ids(once) == [3]


def test_adding_a_criterion_narrows_the_result(mixed_records):
    broad = filter_records(mixed_records, FilterCriteria(department="sales"))
    narrow = filter_records(mixed_records, FilterCriteria(department="sales", report_type="employee"))

    assert _ids(broad) == [1, 3, 12]
    assert _ids(narrow) == [12]
    assert set(_ids(narrow)) <= set(_ids(broad))

    all_oem = filter_records(mixed_records, FilterCriteria(report_type="oem"))
    orders = filter_records(mixed_records, FilterCriteria(report_type="oem", subtype="orders"))
    assert _ids(all_oem) == [10, 11]
    assert set(_ids(orders)) <= set(_ids(all_oem))


def test_date_bounds_are_inclusive(mixed_records):
    criteria = FilterCriteria(date_from=date(2024, 3, 12), date_to=date(2024, 4, 2))

    assert _ids(filter_records(mixed_records, criteria)) == [2, 3, 10]


def test_subtype_and_status(mixed_records):
    orders = filter_records(mixed_records, FilterCriteria(report_type="oem", subtype="orders"))
    drafts = filter_records(mixed_records, FilterCriteria(status="draft"))

    assert _ids(orders) == [10]
    assert _ids(drafts) == [2]


def test_free_text_searches_shape_fields(mixed_records):
    assert _ids(filter_records(mixed_records, FilterCriteria(free_text="volt"))) == [11]
    assert _ids(filter_records(mixed_records, FilterCriteria(free_text="PO-1001"))) == [10]
    assert _ids(filter_records(mixed_records, FilterCriteria(free_text="chiller"))) == [1]
    assert _ids(filter_records(mixed_records, FilterCriteria(free_text="nadia"))) == [13]


def test_employee_filter_checks_owner_fields(mixed_records):
    result = filter_records(mixed_records, FilterCriteria(employee_id="E-7"))

    assert _ids(result) == [10, 12]


def test_from_form_treats_all_as_unset(mixed_records):
    criteria = FilterCriteria.from_form(
        {
            "type": "all",
            "department": "All",
            "status": "",
            "dateFrom": "2024-04-01",
            "dateTo": None,
            "search": "  ",
        }
    )

    assert criteria.report_type is None
    assert criteria.department is None
    assert criteria.date_from == date(2024, 4, 1)
    assert not criteria.is_empty
    assert _ids(filter_records(mixed_records, criteria)) == [10, 11, 12, 13]


def test_from_form_rejects_unparseable_bounds():
    with pytest.raises(DateNormalizationError):
        FilterCriteria.from_form({"date_from": "sometime"})


def test_facets_and_counts(mixed_records):
    assert facet_values(mixed_records, "division") == ["IT", "Sales"]
    assert facet_values(mixed_records, "employeeName") == ["Karim", "Nadia", "Rahim"]

    counts = count_by_kind(mixed_records)
    assert counts[("customer", "none")] == 3
    assert counts[("oem", "orders")] == 1
    assert list(counts)[0] == ("customer", "none")

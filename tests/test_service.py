import io
from dataclasses import replace
from datetime import date

import pytest

from ps_reports.errors import MissingRequiredFieldError, SyncError, UploadRejectedError
from ps_reports.filters import FilterCriteria
from ps_reports.records import ReportDraft
from ps_reports.repositories import LocalReportStore
from ps_reports.service import ReportCollection, ReportService


class DummyUpload(io.BytesIO):
    def __init__(self, data: bytes, name: str, mimetype: str):
        super().__init__(data)
        self.name = name
        self.type = mimetype


@pytest.fixture()
def store(config):
    return LocalReportStore.from_config(config)


@pytest.fixture()
def service(store, config):
    return ReportService(store, config)


def _orders_draft():
    draft = ReportDraft(report_type="oem", subtype="orders", title="Orders Report", date="2024-04-02")
    draft.update(
        {
            "poNumber": "PO-1",
            "orderDate": [2024, 4, 1],
            "item": "Compressor",
            "quantity": "2",
            "customerName": "Acme Foods",
        }
    )
    return draft


def test_submit_creates_record_with_owner_and_attachments(service, store):
    record = service.submit(
        _orders_draft(),
        employee_id="E-7",
        files=[DummyUpload(b"%PDF-1.4", "po.pdf", "application/pdf")],
    )

    assert record.id == 1
    assert record.fields["submittedBy"] == "E-7"
    assert record.fields["orderDate"] == date(2024, 4, 1)
    assert record.attachments[0].startswith("uploads/E-7/oem/po_")
    assert store.list("E-7")[0]["orderDate"] == "2024-04-01"


def test_submit_refuses_incomplete_draft(service, store):
    draft = _orders_draft()
    draft.fields.pop("poNumber")

    with pytest.raises(MissingRequiredFieldError):
        service.submit(draft, employee_id="E-7")

    assert store.list() == []


def test_load_sets_aside_bad_rows(service, store, customer_payloads):
    for payload in customer_payloads:
        store.create(payload)
    store.create({"type": "visit", "title": "No date"})

    result = service.load()

    assert [record.id for record in result.records] == [1, 2, 3]
    assert [item.payload["id"] for item in result.rejected] == [4]


def test_today_policy_keeps_bad_rows(store, config, customer_payloads):
    store.create({"type": "visit", "title": "No date"})
    service = ReportService(store, replace(config, date_policy="today"))

    result = service.load()

    assert result.rejected == []
    assert result.records[0].date == date.today()


def test_update_and_delete(service, store, customer_payloads):
    store.create(customer_payloads[0])
    original = service.load().records[0]

    draft = original.to_draft()
    draft.set("company", "Acme Holdings")
    updated = service.update(original.id, draft)

    assert updated.id == original.id
    assert updated.fields["company"] == "Acme Holdings"

    service.delete(original.id)
    assert service.load().records == []


def test_refresh_fills_collection(service, store, customer_payloads):
    for payload in customer_payloads:
        store.create(payload)
    collection = ReportCollection()

    service.refresh(collection)

    assert [record.id for record in collection.records] == [1, 2, 3]


def test_collection_applies_only_latest_refresh(customer_records):
    collection = ReportCollection()
    first = collection.begin_refresh()
    second = collection.begin_refresh()

    assert collection.apply_refresh(second, customer_records[:1])
    assert not collection.apply_refresh(first, customer_records)
    assert [record.id for record in collection.records] == [1]


def test_collection_upsert_and_remove(customer_records):
    collection = ReportCollection(customer_records[:2])
    changed = replace(customer_records[1], title="Changed")

    collection.upsert(changed)
    collection.upsert(customer_records[2])
    collection.remove(1)

    assert [record.id for record in collection.records] == [3, 2]
    assert collection.records[1].title == "Changed"


def test_export_narrows_to_requested_shape(service, mixed_records):
    result = service.export(mixed_records, "oem", "orders")

    assert result.filename == "oem_orders_reports.csv"
    assert result.mime_type.startswith("text/csv")
    assert result.table.row_count == 1
    assert result.content.decode("utf-8").splitlines()[1].startswith('"PO-1001","04/01/2024"')


def test_export_applies_criteria(service, mixed_records):
    result = service.export(
        mixed_records,
        "customer",
        fmt="pdf",
        criteria=FilterCriteria(department="Sales"),
    )

    assert result.filename == "customer_reports.pdf"
    assert result.mime_type == "application/pdf"
    assert result.content.startswith(b"%PDF")
    assert [row[2] for row in result.table.rows] == ["Acme Foods", "Gamma Mills"]


def test_export_of_unregistered_shape_uses_generic_columns(service, mixed_records):
    result = service.export(mixed_records, "survey", fmt="xlsx")

    assert result.table.headers == ("Title", "Content", "Date", "Status")
    assert result.table.row_count == len(mixed_records)
    assert result.filename == "survey_reports.xlsx"


class FailingStore:
    def create(self, payload):
        raise SyncError("Service unavailable", status_code=503)


def test_failed_create_removes_stored_attachments(config):
    service = ReportService(FailingStore(), config)

    with pytest.raises(SyncError):
        service.submit(
            _orders_draft(),
            employee_id="E-7",
            files=[DummyUpload(b"%PDF-1.4", "po.pdf", "application/pdf")],
        )

    assert not any(config.uploads_dir.rglob("*.pdf"))


def test_rejected_upload_removes_earlier_files(service, store, config):
    with pytest.raises(UploadRejectedError):
        service.submit(
            _orders_draft(),
            employee_id="E-7",
            files=[
                DummyUpload(b"%PDF-1.4", "po.pdf", "application/pdf"),
                DummyUpload(b"MZ", "tool.exe", "application/x-msdownload"),
            ],
        )

    assert not any(config.uploads_dir.rglob("*.pdf"))
    assert store.list() == []


def test_submit_leaves_caller_draft_unchanged(service):
    draft = _orders_draft()

    service.submit(draft, employee_id="E-7")

    assert "submittedBy" not in draft.fields

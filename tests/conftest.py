from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ps_reports import AppConfig, record_from_payload


def build_config(tmp_path: Path, **overrides) -> AppConfig:
    values = dict(
        data_dir=tmp_path,
        api_base_url="http://reports.test",
        db_url=f"sqlite:///{tmp_path / 'test.db'}",
        http_timeout=5.0,
        allowed_mime_types=("application/pdf", "image/png"),
        virus_scan_command=None,
        upload_retention=None,
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture()
def config(tmp_path):
    return build_config(tmp_path)


@pytest.fixture()
def customer_payloads():
    return [
        {
            "id": 1,
            "type": "customer",
            "subtype": None,
            "title": "Plant visit",
            "content": "Discussed chiller upgrade",
            "date": [2024, 3, 9],
            "status": "submitted",
            "employeeName": "Rahim",
            "customerName": "Acme Foods",
            "designation": "Plant Manager",
            "landlineOrMobile": "01700000000",
            "emailId": "pm@acme.test",
            "productOrRequirements": "Chiller",
            "division": "Sales",
            "company": "Acme",
            "poNumber": None,
        },
        {
            "id": 2,
            "type": "customer",
            "title": "Server room audit",
            "content": "UPS sizing",
            "date": "2024-03-12",
            "status": "draft",
            "employeeName": "Karim",
            "customerName": "Beta Bank",
            "division": "IT",
            "company": "Beta",
        },
        {
            "id": 3,
            "type": "customer",
            "title": "Follow-up",
            "content": "Quotation requested",
            "date": "20240320",
            "status": "approved",
            "employeeName": "Rahim",
            "customerName": "Gamma Mills",
            "division": "Sales",
            "company": "Gamma",
        },
    ]


@pytest.fixture()
def customer_records(customer_payloads):
    return [record_from_payload(payload) for payload in customer_payloads]


@pytest.fixture()
def mixed_records(customer_records):
    extra = [
        {
            "id": 10,
            "type": "oem",
            "subtype": "orders",
            "title": "Orders Report",
            "content": "Order details and information",
            "date": [2024, 4, 2],
            "status": "submitted",
            "poNumber": "PO-1001",
            "orderDate": [2024, 4, 1],
            "item": "Compressor",
            "quantity": "2",
            "xmwPrice": "12500",
            "totalPoValue": "25000",
            "customerName": "Acme Foods",
            "submittedBy": "E-7",
            "employeeName": "Rahim",
        },
        {
            "id": 11,
            "type": "oem",
            "subtype": "competitor_analysis",
            "title": "Competitor Analysis Report",
            "content": "Competitor analysis data",
            "date": "2024-04-05",
            "slNo": 1,
            "customerName": "Beta Bank",
            "itemDescription": "20 kVA UPS",
            "competitor": "Volt Co",
            "modelNumber": "V-20",
            "unitPrice": "1999.5",
        },
        {
            "id": 12,
            "type": "employee",
            "subtype": "daily",
            "title": "Daily summary",
            "content": "Visited two sites",
            "date": "2024-04-06",
            "status": "submitted",
            "employeeId": "E-7",
            "employeeName": "Rahim",
            "department": "Sales",
        },
        {
            "id": 13,
            "type": "employee",
            "subtype": "weekly",
            "title": "Week 14",
            "content": "Pipeline review",
            "date": "2024-04-07",
            "status": "approved",
            "employeeId": "E-9",
            "employeeName": "Nadia",
            "department": "Finance",
        },
    ]
    return customer_records + [record_from_payload(payload) for payload in extra]

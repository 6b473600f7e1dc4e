"""End-to-end invoice generation against in-memory sheets and mocked HTTP."""

from unittest.mock import Mock

import pytest
import requests

from domain.errors import ExternalServiceError
from domain.models import ExportedDocument, Invoice, LineItem
from services.invoice_id_service import InvoiceIdIssuer
from services.invoice_service import InvoiceRequest, InvoiceService, order_rows
from services.notification_service import NotificationDispatcher
from services.order_ledger import OrderLedger
from services.payment_service import PaymentClient
from services.payment_signer import PaymentSigner
from services.table_store import InMemoryTableStore

from conftest import LEDGER_HEADER, make_response
from test_payment_service import SUCCESS_BODY


class FakeExporter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.exported = []

    def export(self, invoice):
        if self.fail:
            raise ExternalServiceError("Failed to export invoice document")
        self.exported.append(invoice)
        return ExportedDocument(
            file_id="file-1",
            file_url="https://drive.google.com/uc?id=file-1&export=download",
            mime_type="image/png",
            file_name=f"{invoice.id}_{invoice.customer_name}.png",
        )


@pytest.fixture
def gateway() -> Mock:
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(200, SUCCESS_BODY)
    return session


@pytest.fixture
def webhook() -> Mock:
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(200)
    return session


@pytest.fixture
def exporter() -> FakeExporter:
    return FakeExporter()


@pytest.fixture
def service(workbook, kv_store, fixed_now, gateway, webhook, exporter) -> InvoiceService:
    return InvoiceService(
        workbook=workbook,
        order_sheet="ORDER",
        issuer=InvoiceIdIssuer(kv_store, clock=lambda: fixed_now),
        payment_client=PaymentClient(PaymentSigner("client-1", "secret-1"), session=gateway),
        exporter=exporter,
        dispatcher=NotificationDispatcher("https://hooks.example.test/invoice", session=webhook),
    )


@pytest.fixture
def alice_request(pen_and_book) -> InvoiceRequest:
    return InvoiceRequest(
        customer_name="Alice",
        phone_number="08112411915",
        items=pen_and_book,
        discount=1000,
        shipping=2000,
    )


def test_submit_then_invoice_new_customer(workbook, service, pen_and_book):
    sheet = InMemoryTableStore(header=LEDGER_HEADER)
    workbook.sheets["EVENT_B"] = sheet
    ledger = OrderLedger()

    ok, _ = ledger.submit_order(workbook, "EVENT_B", "Alice", pen_and_book)

    assert ok
    assert sheet.rows[1:] == [["Alice", "pen", 2, 1000], ["", "book", 1, 5000]]

    items = ledger.customer_items(sheet, "Alice")
    ok, msg, outcome = service.generate_invoice(
        InvoiceRequest("Alice", "08112411915", items, discount=1000, shipping=2000)
    )

    assert ok, msg
    assert outcome.invoice.subtotal == 7000
    assert outcome.invoice.total == 8000


def test_success(service, workbook, alice_request, gateway, webhook):
    ok, msg, outcome = service.generate_invoice(alice_request)

    assert ok
    assert msg == "Invoice INV-20251122-0001 berhasil dibuat"
    assert outcome.file_url == "https://drive.google.com/uc?id=file-1&export=download"
    assert outcome.payment_url == "https://sandbox.doku.com/checkout/link/abc"
    assert outcome.notified

    payload = webhook.post.call_args.kwargs["json"]
    assert payload["payment_url"] == "https://sandbox.doku.com/checkout/link/abc"
    assert payload["total_amount"] == "Rp 8.000"
    assert payload["phone_number"] == "628112411915"

    sent = gateway.post.call_args.kwargs["data"].decode("utf-8")
    assert '"amount":8000' in sent
    assert '"phone":"628112411915"' in sent


def test_order_sheet_rows(service, workbook, alice_request, fixed_now):
    service.generate_invoice(alice_request)

    rows = workbook.sheets["ORDER"].rows[1:]
    assert rows == [
        [fixed_now, "INV-20251122-0001", "Alice", "08112411915", "pen", 2, 1000, 2000],
        [fixed_now, "INV-20251122-0001", "Alice", "08112411915", "book", 1, 5000, 5000],
    ]


def test_ids_increase_per_invoice(service, alice_request):
    first = service.generate_invoice(alice_request)[2]
    second = service.generate_invoice(alice_request)[2]
    assert (first.invoice.id, second.invoice.id) == ("INV-20251122-0001", "INV-20251122-0002")


def test_gateway_500_still_produces_invoice(service, gateway, webhook, alice_request):
    gateway.post.return_value = make_response(500, {"message": "Internal Server Error"})

    ok, _, outcome = service.generate_invoice(alice_request)

    assert ok
    assert outcome.file_url
    assert outcome.payment_url == ""
    assert outcome.payment.http_status == 500
    assert webhook.post.call_args.kwargs["json"]["payment_url"] == ""


def test_gateway_unreachable_still_produces_invoice(service, gateway, alice_request):
    gateway.post.side_effect = requests.ConnectionError("no route to host")

    ok, _, outcome = service.generate_invoice(alice_request)

    assert ok
    assert outcome.payment_url == ""


def test_webhook_failure_does_not_fail_invoice(service, webhook, workbook, alice_request):
    webhook.post.return_value = make_response(502)

    ok, _, outcome = service.generate_invoice(alice_request)

    assert ok
    assert not outcome.notified
    assert outcome.notification_message == "Webhook failed with status 502"
    assert len(workbook.sheets["ORDER"].rows) == 3


def test_no_items(service, workbook, gateway):
    ok, msg, outcome = service.generate_invoice(InvoiceRequest("Alice", "0811", []))

    assert not ok
    assert msg == "Gagal membuat invoice: No items selected for invoice"
    assert outcome is None
    assert len(workbook.sheets["ORDER"].rows) == 1
    gateway.post.assert_not_called()


def test_missing_customer(service, pen_and_book):
    ok, msg, _ = service.generate_invoice(InvoiceRequest(" ", "0811", pen_and_book))
    assert not ok
    assert msg == "Gagal membuat invoice: Customer name is required"


def test_missing_order_sheet(service, workbook, alice_request, kv_store):
    del workbook.sheets["ORDER"]

    ok, msg, _ = service.generate_invoice(alice_request)

    assert not ok
    assert msg == "Gagal membuat invoice: Sheet not found: ORDER"
    assert kv_store.get("counter_20251122") is None


def test_export_failure_keeps_order_rows(service, workbook, alice_request, webhook):
    service.exporter = FakeExporter(fail=True)

    ok, msg, outcome = service.generate_invoice(alice_request)

    assert not ok
    assert msg == "Gagal membuat invoice: Failed to export invoice document"
    assert len(workbook.sheets["ORDER"].rows) == 3
    webhook.post.assert_not_called()


def test_order_rows_zero_discount_invoice(fixed_now):
    invoice = Invoice("INV-1", fixed_now, "Bob", "", (LineItem("ink", 3, 200),))
    assert invoice.total == 600
    assert order_rows(invoice) == [[fixed_now, "INV-1", "Bob", "", "ink", 3, 200, 600]]


class BrokenCounterStore:
    def get(self, key):
        raise ConnectionError("[Errno 111] Connection refused")

    def set(self, key, value):
        raise ConnectionError("[Errno 111] Connection refused")

    def increment(self, key):
        raise ConnectionError("[Errno 111] Connection refused")


def test_counter_store_outage_returns_failure(service, workbook, alice_request, fixed_now, gateway):
    service.issuer = InvoiceIdIssuer(BrokenCounterStore(), clock=lambda: fixed_now)

    ok, msg, outcome = service.generate_invoice(alice_request)

    assert not ok
    assert msg == "Gagal membuat invoice: [Errno 111] Connection refused"
    assert outcome is None
    assert len(workbook.sheets["ORDER"].rows) == 1
    gateway.post.assert_not_called()


def test_unexpected_exporter_error_returns_failure(service, workbook, alice_request):
    service.exporter = Mock()
    service.exporter.export.side_effect = RuntimeError("disk full")

    ok, msg, outcome = service.generate_invoice(alice_request)

    assert not ok
    assert msg == "Gagal membuat invoice: disk full"
    assert outcome is None
    assert len(workbook.sheets["ORDER"].rows) == 3

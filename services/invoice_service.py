# services/invoice_service.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from domain.errors import ExternalServiceError, InvoicingError, ValidationError
from domain.models import (
    Invoice,
    InvoiceOutcome,
    InvoiceSummary,
    LineItem,
    PaymentRequest,
    PaymentResult,
)
from services.export_service import InvoiceExporter
from services.invoice_id_service import InvoiceIdIssuer
from services.notification_service import NotificationDispatcher
from services.payment_service import PaymentClient
from services.table_store import Workbook
from utils.formatting import normalize_phone_number

logger = logging.getLogger(__name__)

PAYMENT_DUE_MINUTES = 60


@dataclass
class InvoiceRequest:
    customer_name: str
    phone_number: str
    items: List[LineItem] = field(default_factory=list)
    discount: float = 0
    shipping: float = 0


def order_rows(invoice: Invoice) -> List[list]:
    """
    ORDER sheet rows, one per item:
      Date | Invoice ID | Name | Phone | Item | Qty | Unit Price | SubTotal
    """
    return [
        [invoice.date, invoice.id, invoice.customer_name, invoice.phone,
         item.name, item.quantity, item.unit_price, item.line_total]
        for item in invoice.items
    ]


class InvoiceService:
    def __init__(
            self,
            workbook: Workbook,
            order_sheet: str,
            issuer: InvoiceIdIssuer,
            payment_client: PaymentClient,
            exporter: InvoiceExporter,
            dispatcher: NotificationDispatcher,
            clock: Optional[Callable[[], datetime]] = None,
    ):
        self.workbook = workbook
        self.order_sheet = order_sheet
        self.issuer = issuer
        self.payment_client = payment_client
        self.exporter = exporter
        self.dispatcher = dispatcher
        self.clock = clock or issuer.clock

    def _build_invoice(self, request: InvoiceRequest) -> Invoice:
        if not request.items:
            raise ValidationError("No items selected for invoice")

        customer = (request.customer_name or "").strip()
        if not customer:
            raise ValidationError("Customer name is required")

        discount = float(request.discount or 0)
        shipping = float(request.shipping or 0)
        if discount < 0 or shipping < 0:
            raise ValidationError("Discount and shipping cannot be negative")

        return Invoice(
            id=self.issuer.next(),
            date=self.clock(),
            customer_name=customer,
            phone=(request.phone_number or "").strip(),
            items=tuple(request.items),
            discount=discount,
            shipping=shipping,
        )

    def _request_payment(self, invoice: Invoice) -> PaymentResult:
        result = self.payment_client.request_payment_url(
            PaymentRequest(
                invoice_number=invoice.id,
                amount=invoice.total,
                customer_name=invoice.customer_name,
                customer_phone=normalize_phone_number(invoice.phone),
                items=list(invoice.items),
                payment_due_date_minutes=PAYMENT_DUE_MINUTES,
            )
        )
        if result.success:
            logger.info("Payment URL generated for %s: %s", invoice.id, result.payment_url)
        else:
            logger.warning("No payment URL for %s: %s", invoice.id, result.error_message)
        return result

    def generate_invoice(self, request: InvoiceRequest) -> Tuple[bool, str, Optional[InvoiceOutcome]]:
        """
        Record the invoice in the ORDER sheet, get a payment link, export the
        document and announce it on the webhook.

        Returns (ok, message, outcome). A missing payment link or a failed
        webhook still counts as success; ORDER rows already written are kept
        even if a later step fails.
        """
        try:
            order_table = self.workbook.sheet(self.order_sheet)
            invoice = self._build_invoice(request)

            for row in order_rows(invoice):
                order_table.append_row(row)

            payment = self._request_payment(invoice)
            document = self.exporter.export(invoice)

            notified, notification_message = self.dispatcher.notify(
                InvoiceSummary(
                    file_url=document.file_url,
                    customer_name=invoice.customer_name,
                    phone_number=invoice.phone,
                    total_amount=invoice.total,
                    invoice_id=invoice.id,
                    mime_type=document.mime_type,
                    file_name=document.file_name,
                    items=list(invoice.items),
                    payment_url=payment.payment_url if payment.success else "",
                )
            )

        except ExternalServiceError as e:
            logger.error("External service failed while generating invoice: %s", e)
            return False, f"Gagal membuat invoice: {e}", None
        except InvoicingError as e:
            return False, f"Gagal membuat invoice: {e}", None
        except Exception as e:
            logger.exception("Invoice generation failed for %r", request.customer_name)
            return False, f"Gagal membuat invoice: {e}", None

        outcome = InvoiceOutcome(
            invoice=invoice,
            document=document,
            payment=payment,
            notified=notified,
            notification_message=notification_message,
        )
        return True, f"Invoice {invoice.id} berhasil dibuat", outcome

# domain/models.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Tuple

from domain.errors import ValidationError


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: float
    unit_price: float

    def __post_init__(self):
        if self.quantity < 0:
            raise ValidationError(f"Quantity for '{self.name}' cannot be negative")
        if self.unit_price < 0:
            raise ValidationError(f"Price for '{self.name}' cannot be negative")

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class LedgerBlock:
    """
    A contiguous run of sheet rows owned by one customer.
    Row numbers are 1-based sheet rows; row 1 is always the header.
    """
    customer_name: str
    start_row: int
    end_row: int

    @property
    def row_count(self) -> int:
        return self.end_row - self.start_row + 1


@dataclass(frozen=True)
class Invoice:
    """
    One generated invoice. Never mutated after creation.
    """
    id: str
    date: datetime
    customer_name: str
    phone: str
    items: Tuple[LineItem, ...]
    discount: float = 0
    shipping: float = 0

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def total(self) -> float:
        return self.subtotal - self.discount + self.shipping


@dataclass
class PaymentRequest:
    invoice_number: str
    amount: float
    customer_name: str
    customer_phone: str  # digits only, e.g. 628112411915
    items: List[LineItem] = field(default_factory=list)
    payment_due_date_minutes: int = 60
    currency: str = "IDR"
    payment_method_types: Optional[List[str]] = None


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment_url: str = ""
    token_id: str = ""
    session_id: str = ""
    expired_date: str = ""
    error_message: str = ""
    http_status: Optional[int] = None
    raw_body: Any = None

    @classmethod
    def failed(cls, message: str, http_status: Optional[int] = None, raw_body: Any = None) -> "PaymentResult":
        return cls(success=False, error_message=message, http_status=http_status, raw_body=raw_body)


@dataclass(frozen=True)
class DailyCounter:
    date_key: str  # yyyyMMdd
    value: int


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    mime_type: str
    extension: str  # "png" | "pdf"


@dataclass(frozen=True)
class ExportedDocument:
    file_id: str
    file_url: str
    mime_type: str
    file_name: str


@dataclass
class InvoiceSummary:
    """
    Everything the webhook needs to announce a finished invoice.
    """
    file_url: str
    customer_name: str
    phone_number: str
    total_amount: float
    invoice_id: str
    mime_type: str
    file_name: str
    items: List[LineItem]
    payment_url: str = ""


@dataclass
class InvoiceOutcome:
    invoice: Invoice
    document: ExportedDocument
    payment: PaymentResult
    notified: bool
    notification_message: str = ""

    @property
    def file_url(self) -> str:
        return self.document.file_url

    @property
    def payment_url(self) -> str:
        return self.payment.payment_url if self.payment.success else ""

# services/payment_service.py
import logging
from typing import Any, Dict, Optional

import requests

from domain.models import PaymentRequest, PaymentResult
from services.payment_signer import CHECKOUT_ENDPOINT, PaymentSigner

logger = logging.getLogger(__name__)

PRODUCTION_BASE_URL = "https://api.doku.com"
SANDBOX_BASE_URL = "https://api-sandbox.doku.com"


def base_url_for(environment: Optional[str]) -> str:
    return PRODUCTION_BASE_URL if (environment or "").lower() == "production" else SANDBOX_BASE_URL


def _json_number(value: Any) -> Any:
    # 7000.0 must go out as 7000, the gateway compares amounts as sent
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def build_request_body(payment_request: PaymentRequest) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "order": {
            "amount": _json_number(payment_request.amount),
            "invoice_number": payment_request.invoice_number,
            "currency": payment_request.currency,
        },
        "payment": {
            "payment_due_date": payment_request.payment_due_date_minutes or 60,
        },
        "customer": {
            "name": payment_request.customer_name,
            "phone": payment_request.customer_phone,
        },
    }

    if payment_request.items:
        body["order"]["line_items"] = [
            {
                "name": item.name,
                "quantity": _json_number(item.quantity),
                "price": _json_number(item.unit_price),
            }
            for item in payment_request.items
        ]

    if payment_request.payment_method_types:
        body["payment"]["payment_method_types"] = list(payment_request.payment_method_types)

    return body


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        messages = body.get("error_messages") or body.get("message")
        if isinstance(messages, list) and messages:
            return ", ".join(str(m) for m in messages)
        if isinstance(messages, str) and messages:
            return messages
    return "Unknown error"


class PaymentClient:
    """
    Requests a hosted checkout page from DOKU.

    `request_payment_url` never raises: every problem comes back as a failed
    PaymentResult, and the invoice is still produced without a payment link.
    """

    def __init__(
            self,
            signer: PaymentSigner,
            environment: str = "",
            session: Optional[requests.Session] = None,
            timeout_seconds: int = 30,
    ):
        self.signer = signer
        self.base_url = base_url_for(environment)
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    @property
    def url(self) -> str:
        return self.base_url + CHECKOUT_ENDPOINT

    def request_payment_url(self, payment_request: PaymentRequest) -> PaymentResult:
        if not payment_request.invoice_number or not payment_request.amount:
            return PaymentResult.failed("Invoice number and amount are required")
        if not payment_request.customer_name or not payment_request.customer_phone:
            return PaymentResult.failed("Customer name and phone are required")

        try:
            body = build_request_body(payment_request)
            signed = self.signer.sign(body)

            logger.debug("DOKU request %s body=%s", self.url, signed.body)

            resp = self.session.post(
                self.url,
                data=signed.body.encode("utf-8"),
                headers=signed.headers(self.signer.client_id),
                timeout=self.timeout_seconds,
            )

            try:
                payload = resp.json()
            except ValueError:
                payload = None

            logger.info("DOKU response %s for %s", resp.status_code, payment_request.invoice_number)

            if resp.status_code == 200 and isinstance(payload, dict) and payload.get("response"):
                return self._parse_success(payload, resp.status_code)

            message = _error_message(payload)
            logger.warning(
                "DOKU rejected %s (%s): %s",
                payment_request.invoice_number,
                resp.status_code,
                message,
            )
            return PaymentResult.failed(
                message,
                http_status=resp.status_code,
                raw_body=payload if payload is not None else resp.text,
            )

        except Exception as e:
            logger.error("DOKU request for %s failed: %s", payment_request.invoice_number, e)
            return PaymentResult.failed(str(e))

    @staticmethod
    def _parse_success(payload: Dict[str, Any], status_code: int) -> PaymentResult:
        response = payload["response"]
        payment = response.get("payment") or {}
        order = response.get("order") or {}

        url = payment.get("url")
        if not url:
            return PaymentResult.failed(
                "Payment URL missing from gateway response",
                http_status=status_code,
                raw_body=payload,
            )

        return PaymentResult(
            success=True,
            payment_url=url,
            token_id=payment.get("token_id", ""),
            session_id=order.get("session_id", ""),
            expired_date=payment.get("expired_date", ""),
            http_status=status_code,
            raw_body=response,
        )

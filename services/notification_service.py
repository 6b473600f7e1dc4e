# services/notification_service.py
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from domain.errors import NotificationError
from domain.models import InvoiceSummary
from utils.formatting import format_currency, format_item_lines, normalize_phone_number

logger = logging.getLogger(__name__)


def build_payload(summary: InvoiceSummary) -> Dict[str, Any]:
    return {
        "file_url": summary.file_url,
        "customer_name": summary.customer_name,
        "phone_number": normalize_phone_number(summary.phone_number),
        "total_amount": format_currency(summary.total_amount),
        "invoice_id": summary.invoice_id,
        "mime_type": summary.mime_type,
        "file_name": summary.file_name,
        "items": format_item_lines(summary.items or []),
        "payment_url": summary.payment_url or "",
    }


class NotificationDispatcher:
    """
    Posts one webhook call per finished invoice. Best-effort: a failure is
    reported back to the caller and logged, never retried.
    """

    def __init__(
            self,
            webhook_url: str,
            session: Optional[requests.Session] = None,
            timeout_seconds: int = 30,
    ):
        self.webhook_url = webhook_url
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    def _post(self, payload: Dict[str, Any]) -> int:
        if not self.webhook_url:
            raise NotificationError("Webhook URL is not configured")

        try:
            resp = self.session.post(self.webhook_url, json=payload, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise NotificationError(f"Webhook request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise NotificationError(f"Webhook failed with status {resp.status_code}", resp.status_code)
        return resp.status_code

    def notify(self, summary: InvoiceSummary) -> Tuple[bool, str]:
        """
        Returns (ok, message)
        """
        try:
            status = self._post(build_payload(summary))
        except NotificationError as e:
            logger.warning("Webhook failed but invoice %s was created: %s", summary.invoice_id, e)
            return False, str(e)

        logger.info("Webhook sent for %s (%s)", summary.invoice_id, status)
        return True, "Notification sent"

# services/invoice_id_service.py
import logging
from datetime import datetime, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from domain.models import DailyCounter
from services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def counter_key(date_key: str) -> str:
    return f"counter_{date_key}"


class InvoiceIdIssuer:
    """
    Issues ids like INV-20250116-0001, counting per calendar day.

    With `atomic=False` the counter is read, incremented and written back in
    three steps; two callers on the same day can then get the same number.
    """

    def __init__(
            self,
            store: KeyValueStore,
            timezone: str | tzinfo = "Asia/Jakarta",
            clock: Optional[Callable[[], datetime]] = None,
            atomic: bool = True,
    ):
        self.store = store
        self.tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.atomic = atomic

    def date_key(self, now: Optional[datetime] = None) -> str:
        now = now or self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return now.strftime("%Y%m%d")

    def peek(self, now: Optional[datetime] = None) -> DailyCounter:
        date_key = self.date_key(now)
        return DailyCounter(date_key, int(self.store.get(counter_key(date_key)) or "0"))

    def next(self) -> str:
        today = self.date_key()
        key = counter_key(today)

        if self.atomic:
            value = self.store.increment(key)
        else:
            value = int(self.store.get(key) or "0") + 1
            self.store.set(key, str(value))

        invoice_id = f"INV-{today}-{value:04d}"
        logger.info("Issued invoice id %s", invoice_id)
        return invoice_id

# app_context.py
"""
Wires the services together for the Streamlit pages.
"""
import logging
import os

from supabase import create_client

from config import AppConfig, load_config, read_payment_settings
from domain.errors import NotFoundError
from google_client import get_authorized_session, get_drive_service, get_sheets_service
from services.export_service import DriveInvoiceExporter, SheetsInvoiceRenderer
from services.invoice_id_service import InvoiceIdIssuer
from services.invoice_service import InvoiceService
from services.kv_store import SupabaseKeyValueStore
from services.notification_service import NotificationDispatcher
from services.order_ledger import OrderLedger
from services.payment_service import PaymentClient
from services.payment_signer import PaymentSigner
from services.table_store import SheetsWorkbook

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def get_config() -> AppConfig:
    config = load_config()
    if not config.spreadsheet_id:
        raise RuntimeError("SPREADSHEET_ID is not set in the environment")
    return config


def get_workbook(config: AppConfig) -> SheetsWorkbook:
    return SheetsWorkbook(get_sheets_service(), config.spreadsheet_id)


def get_order_ledger() -> OrderLedger:
    return OrderLedger()


def get_invoice_service(config: AppConfig) -> InvoiceService:
    sheets = get_sheets_service()
    workbook = SheetsWorkbook(sheets, config.spreadsheet_id)

    if not config.has_payment_credentials:
        try:
            config = read_payment_settings(config, workbook.sheet(config.config_sheet))
        except NotFoundError:
            logger.warning("No DOKU credentials in environment and no %s sheet", config.config_sheet)

    supabase = create_client(config.supabase_url, config.supabase_key)
    issuer = InvoiceIdIssuer(
        SupabaseKeyValueStore(supabase, config.schema, config.counter_table),
        timezone=config.timezone,
    )

    payment_client = PaymentClient(
        PaymentSigner(config.doku_client_id, config.doku_secret_key),
        environment=config.doku_environment,
    )

    renderer = SheetsInvoiceRenderer(
        sheets,
        get_authorized_session(),
        config.spreadsheet_id,
        template_sheet=config.invoice_template_sheet,
        temp_prefix=config.temp_invoice_prefix,
    )
    exporter = DriveInvoiceExporter(get_drive_service(), config.output_folder_id, renderer)

    return InvoiceService(
        workbook=workbook,
        order_sheet=config.order_sheet,
        issuer=issuer,
        payment_client=payment_client,
        exporter=exporter,
        dispatcher=NotificationDispatcher(config.webhook_url),
    )

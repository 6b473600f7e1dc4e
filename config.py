# config.py
import os
from dataclasses import dataclass, replace
from typing import Tuple

from dotenv import load_dotenv

from services.table_store import OrderedTableStore


@dataclass(frozen=True)
class AppConfig:
    spreadsheet_id: str = ""
    webhook_url: str = ""
    order_sheet: str = "ORDER"
    invoice_template_sheet: str = "INVOICE"
    temp_invoice_prefix: str = "TEMP_INVOICE"
    config_sheet: str = "CONFIG"
    output_folder_id: str = ""

    doku_client_id: str = ""
    doku_secret_key: str = ""
    doku_environment: str = "sandbox"

    timezone: str = "Asia/Jakarta"

    supabase_url: str = ""
    supabase_key: str = ""
    schema: str = "public"
    counter_table: str = "app_properties"

    order_input_excluded_sheets: Tuple[str, ...] = ("TEMPLATE", "CONFIG")
    invoice_excluded_sheets: Tuple[str, ...] = ("TEMPLATE", "CONFIG", "ORDER", "LOG", "INVOICE")

    @property
    def has_payment_credentials(self) -> bool:
        return bool(self.doku_client_id and self.doku_secret_key)


def _csv(value: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if not value:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


def load_config() -> AppConfig:
    load_dotenv()
    defaults = AppConfig()

    return AppConfig(
        spreadsheet_id=os.getenv("SPREADSHEET_ID", ""),
        webhook_url=os.getenv("WEBHOOK_URL", ""),
        order_sheet=os.getenv("SHEET_ORDER", defaults.order_sheet),
        invoice_template_sheet=os.getenv("SHEET_INVOICE", defaults.invoice_template_sheet),
        temp_invoice_prefix=os.getenv("SHEET_TEMP_INVOICE", defaults.temp_invoice_prefix),
        config_sheet=os.getenv("SHEET_CONFIG", defaults.config_sheet),
        output_folder_id=os.getenv("OUTPUT_FOLDER_ID", ""),
        doku_client_id=os.getenv("DOKU_CLIENT_ID", ""),
        doku_secret_key=os.getenv("DOKU_SECRET_KEY", ""),
        doku_environment=os.getenv("DOKU_ENVIRONMENT", defaults.doku_environment),
        timezone=os.getenv("APP_TIMEZONE", defaults.timezone),
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_key=os.getenv("SUPABASE_KEY", ""),
        schema=os.getenv("SCHEMA", defaults.schema),
        counter_table=os.getenv("COUNTER_TABLE", defaults.counter_table),
        order_input_excluded_sheets=_csv(
            os.getenv("ORDER_INPUT_EXCLUDED_SHEETS", ""), defaults.order_input_excluded_sheets
        ),
        invoice_excluded_sheets=_csv(
            os.getenv("INVOICE_EXCLUDED_SHEETS", ""), defaults.invoice_excluded_sheets
        ),
    )


def read_payment_settings(config: AppConfig, config_table: OrderedTableStore) -> AppConfig:
    """
    Fill DOKU credentials from the CONFIG sheet (B2 client id, B3 secret key,
    B4 environment) when the environment does not provide them.
    """
    if config.has_payment_credentials:
        return config

    rows = config_table.read_rows(2, 3, 2)
    client_id, secret_key, environment = (str(row[1] or "").strip() for row in rows)

    return replace(
        config,
        doku_client_id=client_id,
        doku_secret_key=secret_key,
        doku_environment=environment or config.doku_environment,
    )

"""
Copy positional order blocks out of a sheet into keyed rows in Supabase,
one row per item with the customer name on every row.

Target table (unique on source_sheet, source_row):
    customer_name | item | quantity | price | source_sheet | source_row
"""
import logging
from typing import Dict, Iterable, List

from supabase import Client

from services.order_ledger import LEDGER_COLUMNS, OrderLedger
from services.table_store import OrderedTableStore

logger = logging.getLogger(__name__)

BATCH_SIZE = 500
CONFLICT_COLS = ["source_sheet", "source_row"]


def chunked(items: List[Dict], size: int) -> Iterable[List[Dict]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def blocks_to_keyed_rows(table: OrderedTableStore, sheet_name: str,
                         ledger: OrderLedger | None = None) -> List[Dict]:
    """
    Rows that belong to no block (above the first name) are skipped,
    as are rows with an empty item cell.
    """
    ledger = ledger or OrderLedger()
    rows: List[Dict] = []

    for block in ledger.reconstruct(table):
        cells = table.read_rows(block.start_row, block.row_count, LEDGER_COLUMNS)
        for offset, (_, item, quantity, price) in enumerate(cells):
            item_name = "" if item is None else str(item).strip()
            if not item_name:
                continue
            rows.append(
                {
                    "customer_name": block.customer_name,
                    "item": item_name,
                    "quantity": quantity if quantity != "" else None,
                    "price": price if price != "" else None,
                    "source_sheet": sheet_name,
                    "source_row": block.start_row + offset,
                }
            )

    return rows


def load_to_supabase(
    supabase: Client,
    schema_name: str,
    table_name: str,
    rows: List[Dict],
    batch_size: int = BATCH_SIZE,
) -> int:
    if not rows:
        logger.info("No rows to migrate")
        return 0

    total = 0
    for batch in chunked(rows, batch_size):
        supabase.schema(schema_name).table(table_name).upsert(
            batch,
            on_conflict=",".join(CONFLICT_COLS)
        ).execute()
        total += len(batch)
        logger.info("Upserted %d rows (running total: %d)", len(batch), total)

    logger.info("Done: %s.%s <- %d rows", schema_name, table_name, total)
    return total


if __name__ == "__main__":
    import sys

    from supabase import create_client

    from app_context import configure_logging, get_config, get_workbook

    configure_logging()
    config = get_config()
    if not config.supabase_url or not config.supabase_key:
        raise RuntimeError("Set SUPABASE_URL and SUPABASE_KEY in .env or environment variables")

    # ======= VARIABLES YOU CHANGE =======
    target_table = "order_item"
    sheet_names = sys.argv[1:]
    # ====================================

    workbook = get_workbook(config)
    client = create_client(config.supabase_url, config.supabase_key)

    for sheet in sheet_names:
        load_to_supabase(
            supabase=client,
            schema_name=config.schema,
            table_name=target_table,
            rows=blocks_to_keyed_rows(workbook.sheet(sheet), sheet),
        )

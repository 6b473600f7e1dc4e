# services/order_ledger.py
"""
Customer order blocks stored positionally in a sheet.

Layout (columns A..D): Name | Item | Quantity | Price. Row 1 is the header.
A customer's block starts at the row holding their name and runs until the
row before the next non-empty name cell:

    Alice | pen  | 2 | 1000
          | book | 1 | 5000
    Bob   | ink  | 3 |  200
"""
import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from domain.errors import ConcurrencyConflict, InvoicingError, ValidationError
from domain.models import LedgerBlock, LineItem
from services.table_store import OrderedTableStore, Workbook

logger = logging.getLogger(__name__)

NAME_COLUMN = 1
LEDGER_COLUMNS = 4  # Name, Item, Quantity, Price
FIRST_DATA_ROW = 2

ORDER_INPUT_EXCLUDED_SHEETS = ("TEMPLATE", "CONFIG")
INVOICE_EXCLUDED_SHEETS = ("TEMPLATE", "CONFIG", "ORDER", "LOG", "INVOICE")


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _to_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number or number < 0:  # NaN or negative
        return 0
    return int(number) if number.is_integer() else number


def list_sheets(workbook: Workbook, excluded: Sequence[str] = ORDER_INPUT_EXCLUDED_SHEETS,
                sort: bool = False) -> List[str]:
    names = [name for name in workbook.sheet_names() if name not in excluded]
    return sorted(names) if sort else names


class OrderLedger:
    def __init__(self, max_attempts: int = 3):
        self.max_attempts = max_attempts

    # ---------- reading ----------

    def reconstruct(self, table: OrderedTableStore) -> List[LedgerBlock]:
        """
        Scan rows 2..last and cut them into blocks at every non-empty name cell.
        Rows above the first name belong to no block.
        """
        last_row = table.last_row_index()
        if last_row < FIRST_DATA_ROW:
            return []

        names = table.read_column(FIRST_DATA_ROW, last_row - 1, NAME_COLUMN)
        blocks: List[LedgerBlock] = []
        current_name: Optional[str] = None
        start_row = 0

        for offset, cell in enumerate(names):
            row_num = FIRST_DATA_ROW + offset
            text = _cell_text(cell)
            if not text:
                continue

            if current_name is not None:
                blocks.append(LedgerBlock(current_name, start_row, row_num - 1))

            current_name = text
            start_row = row_num

        if current_name is not None:
            blocks.append(LedgerBlock(current_name, start_row, last_row))

        return blocks

    def find_by_name(self, table: OrderedTableStore, name: str) -> Optional[LedgerBlock]:
        """
        First block whose name equals `name`. A later block with the same name
        is never returned.
        """
        return next((b for b in self.reconstruct(table) if b.customer_name == name), None)

    def customer_names(self, table: OrderedTableStore) -> List[str]:
        return sorted({block.customer_name for block in self.reconstruct(table)})

    def customer_items(self, table: OrderedTableStore, name: str) -> List[LineItem]:
        """
        All item rows governed by `name`, across every block carrying it.
        Rows with an empty item cell are skipped.
        """
        items: List[LineItem] = []
        for block in self.reconstruct(table):
            if block.customer_name != name:
                continue
            for _, item, quantity, price in table.read_rows(block.start_row, block.row_count, LEDGER_COLUMNS):
                item_name = _cell_text(item)
                if not item_name:
                    continue
                items.append(LineItem(item_name, _to_number(quantity), _to_number(price)))
        return items

    # ---------- writing ----------

    def append_items(
            self,
            table: OrderedTableStore,
            block: Optional[LedgerBlock],
            items: Sequence[LineItem],
            customer_name: Optional[str] = None,
            expected_last_row: Optional[int] = None,
    ) -> LedgerBlock:
        """
        Write `items` for one customer and return the resulting block.

        With a block: insert each item right below the block's current last
        row, name cell left blank. Without one: append a new block at the end
        of the sheet, name only on its first row.

        `expected_last_row` is the sheet height observed when `block` was
        looked up; if the sheet moved since, ConcurrencyConflict is raised
        before anything is written.
        """
        if not items:
            raise ValidationError("No items to submit")

        if expected_last_row is not None:
            current = table.last_row_index()
            if current != expected_last_row:
                raise ConcurrencyConflict(
                    f"Sheet changed while submitting (expected {expected_last_row} rows, found {current})"
                )

        if block is not None:
            self._verify_block(table, block)
            for i, item in enumerate(items):
                # block grows by one row per insert
                table.insert_row_after(block.end_row + i, ["", item.name, item.quantity, item.unit_price])
            return LedgerBlock(block.customer_name, block.start_row, block.end_row + len(items))

        name = _cell_text(customer_name)
        if not name:
            raise ValidationError("Customer name is required")

        start_row = table.last_row_index() + 1
        for i, item in enumerate(items):
            table.append_row([name if i == 0 else "", item.name, item.quantity, item.unit_price])
        return LedgerBlock(name, start_row, start_row + len(items) - 1)

    def _verify_block(self, table: OrderedTableStore, block: LedgerBlock) -> None:
        last_row = table.last_row_index()
        if block.end_row > last_row:
            raise ConcurrencyConflict(f"Block for {block.customer_name!r} extends past the sheet end")

        count = block.row_count + (1 if block.end_row < last_row else 0)
        names = [_cell_text(v) for v in table.read_column(block.start_row, count, NAME_COLUMN)]

        intact = (
                names[0] == block.customer_name
                and not any(names[1:block.row_count])
                and (len(names) == block.row_count or names[-1] != "")
        )
        if not intact:
            raise ConcurrencyConflict(
                f"Block for {block.customer_name!r} moved (rows {block.start_row}-{block.end_row})"
            )

    def submit_order(
            self,
            workbook: Workbook,
            sheet_name: str,
            name: str,
            items: Iterable[LineItem],
    ) -> Tuple[bool, str]:
        """
        Add items for a customer to a sheet.
        Returns (ok, message)
        """
        items = list(items)
        try:
            table = workbook.sheet(sheet_name)

            if not items:
                raise ValidationError("No items to submit")

            customer = _cell_text(name)
            if not customer:
                raise ValidationError("Customer name is required")

            for attempt in range(1, self.max_attempts + 1):
                snapshot = table.last_row_index()
                block = self.find_by_name(table, customer)
                try:
                    self.append_items(table, block, items, customer_name=customer, expected_last_row=snapshot)
                    break
                except ConcurrencyConflict as e:
                    logger.warning("Submit for %r conflicted (%d/%d): %s", customer, attempt, self.max_attempts, e)
                    if attempt == self.max_attempts:
                        raise

            logger.info(
                "Added %d item(s) for %r on sheet %r (%s)",
                len(items), customer, sheet_name, "existing block" if block else "new block",
            )

        except InvoicingError as e:
            return False, f"Error: {e}"
        except Exception as e:
            logger.exception("Submit for %r on sheet %r failed", name, sheet_name)
            return False, f"Error: {e}"

        item_text = "item" if len(items) == 1 else "items"
        return True, f"{len(items)} {item_text} berhasil ditambahkan!"

# services/table_store.py
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from googleapiclient.discovery import Resource

from domain.errors import NotFoundError

logger = logging.getLogger(__name__)


class OrderedTableStore(Protocol):
    """
    A sheet-like table addressed by 1-based row numbers. Row 1 is the header.
    """

    def read_column(self, start_row: int, count: int, column: int = 1) -> List[Any]:
        ...

    def read_rows(self, start_row: int, count: int, column_count: int) -> List[List[Any]]:
        ...

    def append_row(self, values: Sequence[Any]) -> None:
        ...

    def insert_row_after(self, row_index: int, values: Sequence[Any]) -> None:
        ...

    def last_row_index(self) -> int:
        ...


class Workbook(Protocol):
    def sheet_names(self) -> List[str]:
        ...

    def sheet(self, name: str) -> OrderedTableStore:
        ...


def _pad(values: Sequence[Any], width: int) -> List[Any]:
    row = list(values)[:width]
    return row + [""] * (width - len(row))


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class InMemoryTableStore:
    def __init__(self, header: Optional[Sequence[Any]] = None, rows: Optional[List[Sequence[Any]]] = None):
        self.rows: List[List[Any]] = []
        if header is not None:
            self.rows.append(list(header))
        for row in rows or []:
            self.rows.append(list(row))

    def read_column(self, start_row: int, count: int, column: int = 1) -> List[Any]:
        return [row[column - 1] for row in self.read_rows(start_row, count, column)]

    def read_rows(self, start_row: int, count: int, column_count: int) -> List[List[Any]]:
        result = []
        for row_num in range(start_row, start_row + count):
            source = self.rows[row_num - 1] if 0 < row_num <= len(self.rows) else []
            result.append(_pad(source, column_count))
        return result

    def append_row(self, values: Sequence[Any]) -> None:
        self.rows.append(list(values))

    def insert_row_after(self, row_index: int, values: Sequence[Any]) -> None:
        if row_index < 1 or row_index > len(self.rows):
            raise IndexError(f"Row {row_index} is outside the table (1..{len(self.rows)})")
        self.rows.insert(row_index, list(values))

    def last_row_index(self) -> int:
        return len(self.rows)


class InMemoryWorkbook:
    def __init__(self, sheets: Optional[Dict[str, InMemoryTableStore]] = None):
        self.sheets: Dict[str, InMemoryTableStore] = dict(sheets or {})

    def sheet_names(self) -> List[str]:
        return list(self.sheets.keys())

    def sheet(self, name: str) -> InMemoryTableStore:
        if name not in self.sheets:
            raise NotFoundError(f"Sheet not found: {name}")
        return self.sheets[name]


# ---------------------------------------------------------------------------
# Google Sheets
# ---------------------------------------------------------------------------

def user_entered(value: Any) -> Any:
    """
    Cell value for valueInputOption=USER_ENTERED. Dates and datetimes become
    text Sheets parses into a real date; other text gets a leading apostrophe
    so it is stored as typed and never evaluated as a formula.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, str) and value:
        return "'" + value
    return value


def column_letter(n: int) -> str:
    # 1 -> A, 27 -> AA
    letters = ""
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def a1(sheet_title: str, rng: str) -> str:
    escaped = sheet_title.replace("'", "''")
    return f"'{escaped}'!{rng}"


class SheetsTableStore:
    """
    OrderedTableStore over one tab of a Google Spreadsheet.
    """

    def __init__(
            self,
            sheets: Resource,
            spreadsheet_id: str,
            title: str,
            sheet_id: int,
            max_columns: int = 26,
    ):
        self.sheets = sheets
        self.spreadsheet_id = spreadsheet_id
        self.title = title
        self.sheet_id = sheet_id
        self.max_columns = max_columns

    def _get_values(self, rng: str) -> List[List[Any]]:
        resp = self.sheets.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=a1(self.title, rng),
            valueRenderOption="UNFORMATTED_VALUE",
        ).execute()
        return resp.get("values", [])

    def _write_row(self, row_num: int, values: Sequence[Any]) -> None:
        end_col = column_letter(max(len(values), 1))
        self.sheets.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=a1(self.title, f"A{row_num}:{end_col}{row_num}"),
            valueInputOption="USER_ENTERED",
            body={"values": [[user_entered(v) for v in values]]},
        ).execute()

    def read_column(self, start_row: int, count: int, column: int = 1) -> List[Any]:
        if count <= 0:
            return []
        col = column_letter(column)
        values = self._get_values(f"{col}{start_row}:{col}{start_row + count - 1}")
        result = [row[0] if row else "" for row in values]
        return result + [""] * (count - len(result))

    def read_rows(self, start_row: int, count: int, column_count: int) -> List[List[Any]]:
        if count <= 0:
            return []
        end_col = column_letter(column_count)
        values = self._get_values(f"A{start_row}:{end_col}{start_row + count - 1}")
        rows = [_pad(row, column_count) for row in values]
        return rows + [[""] * column_count for _ in range(count - len(rows))]

    def append_row(self, values: Sequence[Any]) -> None:
        self._write_row(self.last_row_index() + 1, values)

    def insert_row_after(self, row_index: int, values: Sequence[Any]) -> None:
        self.sheets.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={
                "requests": [
                    {
                        "insertDimension": {
                            "range": {
                                "sheetId": self.sheet_id,
                                "dimension": "ROWS",
                                "startIndex": row_index,  # 0-based: the row after `row_index`
                                "endIndex": row_index + 1,
                            },
                            "inheritFromBefore": True,
                        }
                    }
                ]
            },
        ).execute()
        self._write_row(row_index + 1, values)

    def last_row_index(self) -> int:
        # values.get trims trailing empty rows, same as getLastRow()
        values = self._get_values(f"A:{column_letter(self.max_columns)}")
        return len(values)


class SheetsWorkbook:
    def __init__(self, sheets: Resource, spreadsheet_id: str):
        self.sheets = sheets
        self.spreadsheet_id = spreadsheet_id

    def _properties(self) -> List[Dict[str, Any]]:
        resp = self.sheets.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields="sheets.properties(sheetId,title)",
        ).execute()
        return [s["properties"] for s in resp.get("sheets", [])]

    def sheet_names(self) -> List[str]:
        return [p["title"] for p in self._properties()]

    def sheet(self, name: str) -> SheetsTableStore:
        for props in self._properties():
            if props["title"] == name:
                return SheetsTableStore(self.sheets, self.spreadsheet_id, name, props["sheetId"])
        logger.warning("Sheet %r not found in spreadsheet %s", name, self.spreadsheet_id)
        raise NotFoundError(f"Sheet not found: {name}")

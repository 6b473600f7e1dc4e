# services/export_service.py
import io
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol

import requests
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from domain.errors import ExternalServiceError, NotFoundError
from domain.models import ExportedDocument, Invoice, RenderedDocument
from services.drive_service import (
    ensure_file_public_and_get_url,
    upload_file_to_folder,
    wait_for_file,
)
from services.table_store import user_entered
from utils.formatting import safe_file_stem

logger = logging.getLogger(__name__)

EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export"
PNG_EXPORT_PARAMS = "format=png&gid={gid}&scale=2&fzr=false&fzc=false"
PDF_EXPORT_PARAMS = (
    "format=pdf&gid={gid}&portrait=true&fitw=true&sheetnames=false"
    "&printtitle=false&pagenumbers=false&gridlines=false&fzr=false"
)

# Template cells
DATE_CELL = "G7"
INVOICE_ID_CELL = "G9"
CUSTOMER_CELL = "B14"
ITEMS_RANGE = "B18:G28"
FIRST_ITEM_ROW = 18


class InvoiceRenderer(Protocol):
    def render(self, invoice: Invoice) -> RenderedDocument:
        ...


class InvoiceExporter(Protocol):
    def export(self, invoice: Invoice) -> ExportedDocument:
        ...


def invoice_file_name(invoice: Invoice, extension: str) -> str:
    return f"{invoice.id}_{safe_file_stem(invoice.customer_name)}.{extension}"


def _cell(sheet_title: str, ref: str) -> str:
    return f"'{sheet_title}'!{ref}"


def template_cell_values(invoice: Invoice, sheet_title: str) -> List[Dict[str, Any]]:
    """
    Cell writes that fill the invoice template for `invoice`.
    """
    data = [
        {"range": _cell(sheet_title, DATE_CELL), "values": [[invoice.date.date()]]},
        {"range": _cell(sheet_title, INVOICE_ID_CELL), "values": [[invoice.id]]},
        {"range": _cell(sheet_title, CUSTOMER_CELL), "values": [[invoice.customer_name]]},
    ]

    for i, item in enumerate(invoice.items):
        row = FIRST_ITEM_ROW + i
        data.append({"range": _cell(sheet_title, f"B{row}"), "values": [[item.name]]})
        data.append(
            {
                "range": _cell(sheet_title, f"E{row}:G{row}"),
                "values": [[item.quantity, item.unit_price, item.line_total]],
            }
        )

    summary = [("Subtotal:", invoice.subtotal)]
    if invoice.discount > 0:
        summary.append(("Diskon:", -invoice.discount))
    if invoice.shipping > 0:
        summary.append(("Ongkir:", invoice.shipping))
    summary.append(("TOTAL:", invoice.total))

    row = FIRST_ITEM_ROW + len(invoice.items) + 1
    for label, value in summary:
        data.append({"range": _cell(sheet_title, f"F{row}:G{row}"), "values": [[label, value]]})
        row += 1

    return data


class SheetsInvoiceRenderer:
    """
    Fills a copy of the INVOICE template tab and downloads it as PNG,
    falling back to PDF. The copy is always deleted afterwards.
    """

    def __init__(
            self,
            sheets: Resource,
            session: requests.Session,
            spreadsheet_id: str,
            template_sheet: str = "INVOICE",
            temp_prefix: str = "TEMP_INVOICE",
            timeout_seconds: int = 60,
    ):
        self.sheets = sheets
        self.session = session
        self.spreadsheet_id = spreadsheet_id
        self.template_sheet = template_sheet
        self.temp_prefix = temp_prefix
        self.timeout_seconds = timeout_seconds

    def _template_sheet_id(self) -> int:
        resp = self.sheets.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields="sheets.properties(sheetId,title)",
        ).execute()
        for sheet in resp.get("sheets", []):
            props = sheet["properties"]
            if props["title"] == self.template_sheet:
                return props["sheetId"]
        raise NotFoundError(f"Sheet not found: {self.template_sheet}")

    def _batch_update(self, batch: List[Dict]) -> Dict:
        return self.sheets.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={"requests": batch},
        ).execute()

    def _duplicate_template(self) -> Dict[str, Any]:
        title = f"{self.temp_prefix}_{int(time.time() * 1000)}"
        reply = self._batch_update(
            [{"duplicateSheet": {"sourceSheetId": self._template_sheet_id(), "newSheetName": title}}]
        )
        return reply["replies"][0]["duplicateSheet"]["properties"]

    def _fill(self, title: str, invoice: Invoice) -> None:
        values = self.sheets.spreadsheets().values()
        values.clear(spreadsheetId=self.spreadsheet_id, range=_cell(title, ITEMS_RANGE)).execute()
        values.batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={
                "valueInputOption": "USER_ENTERED",
                "data": [
                    {"range": d["range"], "values": [[user_entered(v) for v in row] for row in d["values"]]}
                    for d in template_cell_values(invoice, title)
                ],
            },
        ).execute()

    def _download(self, gid: int, params: str) -> Optional[requests.Response]:
        url = EXPORT_URL.format(spreadsheet_id=self.spreadsheet_id) + "?" + params.format(gid=gid)
        resp = self.session.get(url, timeout=self.timeout_seconds)
        if resp.status_code == 200:
            return resp
        logger.warning("Export %s returned %s", params.split("&")[0], resp.status_code)
        return None

    def render(self, invoice: Invoice) -> RenderedDocument:
        temp = self._duplicate_template()
        try:
            self._fill(temp["title"], invoice)

            png = self._download(temp["sheetId"], PNG_EXPORT_PARAMS)
            if png is not None:
                return RenderedDocument(png.content, png.headers.get("Content-Type", "image/png"), "png")

            pdf = self._download(temp["sheetId"], PDF_EXPORT_PARAMS)
            if pdf is None:
                raise ExternalServiceError("Failed to export invoice document")
            return RenderedDocument(pdf.content, pdf.headers.get("Content-Type", "application/pdf"), "pdf")
        finally:
            self._batch_update([{"deleteSheet": {"sheetId": temp["sheetId"]}}])


class DriveInvoiceExporter:
    """
    Renders an invoice, stores it in the output Drive folder and returns a
    link anyone can open. Waits (bounded) until Drive lists the new file.
    """

    def __init__(
            self,
            drive: Resource,
            folder_id: str,
            renderer: InvoiceRenderer,
            poll_attempts: int = 5,
            poll_delay: float = 0.5,
            sleep: Callable[[float], None] = time.sleep,
    ):
        self.drive = drive
        self.folder_id = folder_id
        self.renderer = renderer
        self.poll_attempts = poll_attempts
        self.poll_delay = poll_delay
        self.sleep = sleep

    def export(self, invoice: Invoice) -> ExportedDocument:
        try:
            document = self.renderer.render(invoice)
            file_name = invoice_file_name(invoice, document.extension)

            file_id = upload_file_to_folder(
                drive=self.drive,
                folder_id=self.folder_id,
                filename=file_name,
                mimetype=document.mime_type,
                media_stream=io.BytesIO(document.content),
            )
            file_url = ensure_file_public_and_get_url(self.drive, file_id)

            listed = wait_for_file(
                self.drive,
                self.folder_id,
                file_name,
                attempts=self.poll_attempts,
                initial_delay=self.poll_delay,
                sleep=self.sleep,
            )
        except HttpError as e:
            raise ExternalServiceError(f"Google API error: {e}", getattr(e.resp, "status", None)) from e
        except requests.RequestException as e:
            raise ExternalServiceError(f"Invoice download failed: {e}") from e

        if listed is None:
            logger.warning('Uploaded "%s" (fileId=%s) but Drive has not listed it yet', file_name, file_id)

        logger.info('Exported invoice %s as "%s" (fileId=%s)', invoice.id, file_name, file_id)
        return ExportedDocument(
            file_id=file_id,
            file_url=file_url,
            mime_type=document.mime_type,
            file_name=file_name,
        )

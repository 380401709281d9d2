import math
from io import BytesIO
from pathlib import Path
from datetime import date
from typing import List, Optional
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, Alignment, Border, Side
from openpyxl.worksheet.worksheet import Worksheet
from ris_app.core.config import settings
from ris_app.schemas.requisition.ris import RisDocumentView, TemplateCell, TemplatePreview
import logging

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Row numbers of the top form; the second form of a set sits RIS_SET_ROW_OFFSET rows lower
FIRST_ITEM_ROW = 11
PURPOSE_ROW = 23
SIGNATURE_ROWS = (26, 27, 28)  # printed name, designation, date
FORMS_PER_SHEET = 2

COLUMN_WIDTHS = {"A": 12, "B": 9, "C": 38, "D": 22, "E": 7, "F": 7, "G": 16, "H": 24}

thin = Side(style="thin")
thin_border = Border(left=thin, right=thin, top=thin, bottom=thin)
bold_font = Font(bold=True)
title_font = Font(bold=True, size=14)
center = Alignment(horizontal="center", vertical="center", wrap_text=True)


def format_form_date(value: Optional[date]) -> str:
    return value.strftime("%m/%d/%Y") if value else ""


class RisWorkbookRenderer:
    """Fills Requisition and Issue Slip forms into openpyxl workbooks.

    The blank form is loaded from ``RIS_TEMPLATE_PATH`` / ``RIS_SET_TEMPLATE_PATH``
    when configured, otherwise it is drawn here with the same cell layout.
    """

    def __init__(
        self,
        template_path: Optional[str] = None,
        set_template_path: Optional[str] = None,
        item_rows: Optional[int] = None,
        set_row_offset: Optional[int] = None,
    ):
        self.template_path = template_path or settings.RIS_TEMPLATE_PATH
        self.set_template_path = set_template_path or settings.RIS_SET_TEMPLATE_PATH
        self.item_rows = item_rows or settings.RIS_ITEM_ROWS
        self.set_row_offset = set_row_offset or settings.RIS_SET_ROW_OFFSET

    def render_single(self, document: RisDocumentView) -> bytes:
        workbook = self._load_form(self.template_path, forms=1)
        self.fill_form(workbook.worksheets[0], document, row_offset=0)
        return self.to_bytes(workbook)

    def render_batch(self, documents: List[RisDocumentView]) -> bytes:
        """Two forms per sheet; extra sheets are clones of the first blank sheet"""
        workbook = self._load_form(self.set_template_path, forms=FORMS_PER_SHEET)
        base_sheet = workbook.worksheets[0]
        base_sheet.title = "RIS Set 1"

        sheets = [base_sheet]
        for sheet_index in range(1, math.ceil(len(documents) / FORMS_PER_SHEET)):
            # Clone before filling so every copy starts blank
            sheet = workbook.copy_worksheet(base_sheet)
            sheet.title = f"RIS Set {sheet_index + 1}"
            sheets.append(sheet)

        for index, document in enumerate(documents):
            sheet = sheets[index // FORMS_PER_SHEET]
            self.fill_form(sheet, document, row_offset=(index % FORMS_PER_SHEET) * self.set_row_offset)

        logger.info(f"Rendered {len(documents)} RIS forms on {len(sheets)} sheet(s)")
        return self.to_bytes(workbook)

    def preview_template(self) -> TemplatePreview:
        workbook = self._load_form(self.template_path, forms=1)
        worksheet = workbook.worksheets[0]

        cells = []
        for row in worksheet.iter_rows():
            for cell in row:
                if cell.value is None:
                    continue
                cells.append(TemplateCell(address=cell.coordinate, value=str(cell.value), type=cell.data_type))

        return TemplatePreview(sheet_name=worksheet.title, cells=cells)

    def fill_form(self, worksheet: Worksheet, document: RisDocumentView, row_offset: int = 0):
        def cell(address: str, row: int, value):
            worksheet[f"{address}{row + row_offset}"] = value

        # Header overrides, only when supplied (the blank form carries the defaults)
        if document.entity_name is not None:
            cell("B", 3, document.entity_name)
        if document.fund_cluster is not None:
            cell("G", 3, document.fund_cluster)
        if document.division is not None:
            cell("B", 5, document.division)
        if document.responsibility_center is not None:
            cell("G", 5, document.responsibility_center)

        cell("H", 7, document.budget_source or settings.RIS_DEFAULT_BUDGET_SOURCE)
        cell("G", 8, document.ris_number)

        for index, line in enumerate(document.lines[:self.item_rows]):
            row = FIRST_ITEM_ROW + index
            cell("A", row, line.stock_no or "N/A")
            cell("B", row, line.unit or settings.DEFAULT_UNIT)
            cell("C", row, line.description)
            cell("D", row, line.quantity)
            if line.status is not None:
                # Stock available? Yes (E) / No (F)
                cell("E" if line.is_issued else "F", row, "X")
            if line.balance_after_issue is not None:
                cell("G", row, line.balance_after_issue)
            if line.remarks:
                cell("H", row, line.remarks)

        cell("B", PURPOSE_ROW, document.purpose)

        name_row, designation_row, date_row = SIGNATURE_ROWS
        cell("C", name_row, document.requested_by_name)
        cell("C", designation_row, document.requested_by_designation)
        cell("C", date_row, format_form_date(document.request_date))

        if document.approved_by_name:
            cell("D", name_row, document.approved_by_name)
        if document.approved_by_designation:
            cell("D", designation_row, document.approved_by_designation)
        cell("D", date_row, format_form_date(document.issue_date))

        cell("H", name_row, document.received_by_name)
        cell("H", designation_row, document.received_by_designation)
        cell("H", date_row, format_form_date(document.request_date))

    def to_bytes(self, workbook: Workbook) -> bytes:
        output = BytesIO()
        workbook.save(output)
        return output.getvalue()

    def _load_form(self, path: Optional[str], forms: int) -> Workbook:
        if path and Path(path).exists():
            logger.debug(f"Loading RIS template {path}")
            return load_workbook(path)

        if path:
            logger.warning(f"RIS template {path} not found, drawing the default form")

        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = "RIS"
        for letter, width in COLUMN_WIDTHS.items():
            worksheet.column_dimensions[letter].width = width
        for form_index in range(forms):
            self._draw_form(worksheet, form_index * self.set_row_offset)
        return workbook

    def _draw_form(self, worksheet: Worksheet, row_offset: int):
        """Draw the blank form; every cell filled later is the top-left of its merge"""
        def r(row: int) -> int:
            return row + row_offset

        def label(address: str, row: int, value, font=bold_font):
            target = worksheet[f"{address}{r(row)}"]
            target.value = value
            target.font = font

        worksheet.merge_cells(f"A{r(1)}:H{r(1)}")
        label("A", 1, "REQUISITION AND ISSUE SLIP", title_font)
        worksheet[f"A{r(1)}"].alignment = center

        label("A", 3, "Entity Name:")
        worksheet.merge_cells(f"B{r(3)}:E{r(3)}")
        worksheet[f"B{r(3)}"] = settings.RIS_ENTITY_NAME
        label("F", 3, "Fund Cluster:")
        worksheet[f"G{r(3)}"] = settings.RIS_FUND_CLUSTER or None

        label("A", 5, "Division:")
        worksheet.merge_cells(f"B{r(5)}:D{r(5)}")
        worksheet[f"B{r(5)}"] = settings.RIS_DIVISION
        label("E", 5, "Responsibility Center Code:")
        label("A", 6, "Office:")
        worksheet.merge_cells(f"B{r(6)}:D{r(6)}")
        worksheet[f"B{r(6)}"] = settings.RIS_OFFICE
        label("G", 7, "Budget:")
        label("F", 8, "RIS No.:")

        worksheet.merge_cells(f"A{r(9)}:D{r(9)}")
        label("A", 9, "Requisition")
        worksheet.merge_cells(f"E{r(9)}:F{r(9)}")
        label("E", 9, "Stock Available?")
        worksheet.merge_cells(f"G{r(9)}:H{r(9)}")
        label("G", 9, "Issue")

        headers = ["Stock No.", "Unit", "Description", "Quantity", "Yes", "No", "Balance After Issue", "Remarks"]
        for column, header in enumerate(headers, 1):
            target = worksheet.cell(row=r(10), column=column, value=header)
            target.font = bold_font
            target.alignment = center

        for row in range(9, FIRST_ITEM_ROW + self.item_rows):
            for column in range(1, len(headers) + 1):
                worksheet.cell(row=r(row), column=column).border = thin_border

        label("A", PURPOSE_ROW, "Purpose:")
        worksheet.merge_cells(f"B{r(PURPOSE_ROW)}:H{r(PURPOSE_ROW)}")

        label("C", 25, "Requested by:")
        label("D", 25, "Approved and Issued by:")
        label("H", 25, "Received by:")

        name_row, designation_row, date_row = SIGNATURE_ROWS
        label("A", name_row, "Printed Name:")
        label("A", designation_row, "Designation:")
        label("A", date_row, "Date:")
        for row in SIGNATURE_ROWS:
            worksheet.merge_cells(f"D{r(row)}:F{r(row)}")
        worksheet[f"D{r(name_row)}"] = settings.RIS_APPROVING_OFFICER
        worksheet[f"D{r(designation_row)}"] = settings.RIS_APPROVING_DESIGNATION

        for column in range(1, len(headers) + 1):
            worksheet.cell(row=r(SIGNATURE_ROWS[-1]), column=column).border = Border(bottom=thin)


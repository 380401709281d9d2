import re
import pandas as pd
from io import BytesIO
from typing import List, Dict, Any, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from fastapi import HTTPException, status
from fastapi.responses import StreamingResponse
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
import logging

logger = logging.getLogger(__name__)

# Header keywords of columns that get a TOTAL
SUM_KEYWORDS = ['quantity', 'shortfall']


class DataExportService:
    def clean_numeric_value(self, value: Any) -> float:
        """Clean and convert value to numeric, handling various data types"""
        if value is None or value == "" or value == "N/A":
            return 0.0

        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return float(value)

        if isinstance(value, str):
            cleaned = re.sub(r'[^\d.-]', '', value.replace(',', ''))
            if cleaned in ('', '-', '.'):
                return 0.0
            try:
                return float(cleaned)
            except ValueError:
                return 0.0

        return 0.0

    def is_numeric_column(self, data: List[Dict[str, Any]], column_name: str) -> bool:
        """Check if at least 70% of the non-empty values in a column are numbers"""
        numeric_count = 0
        total_count = 0

        for row in data:
            value = row.get(column_name)
            if value is None or value == "":
                continue
            total_count += 1
            if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
                numeric_count += 1
            elif isinstance(value, str) and value.replace('.', '').replace('-', '').replace(',', '').isdigit():
                numeric_count += 1

        return total_count > 0 and (numeric_count / total_count) >= 0.7

    def prepare_data_for_export(self, data: List[Any], fields_mapping: Dict[str, str]) -> List[Dict[str, Any]]:
        """Prepare data for export by mapping fields and formatting"""
        exported_data = []

        for item in data:
            row = {}
            for field_key, display_name in fields_mapping.items():
                if isinstance(item, dict):
                    value = item.get(field_key, None)
                else:
                    # Nested attributes (e.g. 'category.name')
                    value = item
                    for attr in field_key.split('.'):
                        value = getattr(value, attr, None) if value is not None else None

                if value is None:
                    value = ""
                elif isinstance(value, datetime):
                    value = value.strftime("%Y-%m-%d %H:%M:%S")
                elif isinstance(value, date):
                    value = value.strftime("%Y-%m-%d")
                elif isinstance(value, bool):
                    value = "Yes" if value else "No"
                elif isinstance(value, Enum):
                    value = value.value
                elif not isinstance(value, (str, int, float, Decimal)):
                    value = str(value)

                row[display_name] = value

            exported_data.append(row)

        return exported_data

    def export_to_excel(
        self,
        data: List[Dict[str, Any]],
        filename: str,
        sheet_name: str = "Data",
        columns: Optional[List[str]] = None
    ) -> StreamingResponse:
        """Export data to Excel format with table formatting, borders, and summation"""
        try:
            output = BytesIO()

            df = pd.DataFrame(data, columns=columns)

            # Numeric quantity columns get a TOTAL row
            sum_columns = {}
            for col_idx, column_name in enumerate(df.columns, 1):
                if any(keyword in column_name.lower() for keyword in SUM_KEYWORDS):
                    if self.is_numeric_column(data, column_name):
                        sum_columns[col_idx] = column_name
                        df[column_name] = df[column_name].apply(self.clean_numeric_value)

            logger.info(f"Detected columns for summation: {list(sum_columns.values())}")

            with pd.ExcelWriter(output, engine='openpyxl') as writer:
                df.to_excel(writer, sheet_name=sheet_name, index=False)
                worksheet = writer.sheets[sheet_name]

                header_font = Font(bold=True, color="FFFFFF")
                header_fill = PatternFill("solid", fgColor="366092")
                thin_border = Border(
                    left=Side(style='thin'),
                    right=Side(style='thin'),
                    top=Side(style='thin'),
                    bottom=Side(style='thin')
                )
                sum_font = Font(bold=True, size=12)
                sum_fill = PatternFill("solid", fgColor="D9D9D9")

                max_row = len(df) + 1  # +1 for header
                max_col = max(len(df.columns), 1)

                for col in range(1, max_col + 1):
                    header_cell = worksheet.cell(row=1, column=col)
                    header_cell.font = header_font
                    header_cell.fill = header_fill
                    header_cell.border = thin_border

                for row in range(1, max_row + 1):
                    for col in range(1, max_col + 1):
                        cell = worksheet.cell(row=row, column=col)
                        cell.border = thin_border
                        if row > 1 and col in sum_columns:
                            cell.number_format = '#,##0'

                if sum_columns and len(df) > 0:
                    sum_row_number = max_row + 2  # Leave one empty row

                    total_label_cell = worksheet.cell(row=sum_row_number, column=1, value="TOTAL")
                    total_label_cell.font = sum_font
                    total_label_cell.fill = sum_fill
                    total_label_cell.border = thin_border

                    for col_idx, col_name in sum_columns.items():
                        column_sum = sum(self.clean_numeric_value(row_data.get(col_name, 0)) for row_data in data)
                        sum_cell = worksheet.cell(row=sum_row_number, column=col_idx, value=column_sum)
                        sum_cell.font = sum_font
                        sum_cell.fill = sum_fill
                        sum_cell.number_format = '#,##0'
                        sum_cell.border = thin_border

                    for col in range(2, max_col + 1):
                        if col not in sum_columns:
                            empty_cell = worksheet.cell(row=sum_row_number, column=col, value="")
                            empty_cell.fill = sum_fill
                            empty_cell.border = thin_border

                # Auto-adjust column widths
                for col_idx, column in enumerate(worksheet.columns, 1):
                    max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
                    worksheet.column_dimensions[get_column_letter(col_idx)].width = min(max(max_length + 2, 10), 50)

            logger.info(f"Excel export {filename} completed with {len(df)} rows")
            output.seek(0)

            return StreamingResponse(
                BytesIO(output.read()),
                media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"}
            )

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to export data to Excel"
            )


# Export field mappings for report entities
EXPORT_FIELD_MAPPINGS = {
    "items": {
        "id": "ID",
        "sku": "Stock No.",
        "name": "Item Name",
        "description": "Description",
        "category.name": "Category",
        "quantity": "Quantity",
        "unit": "Unit",
        "min_stock_level": "Min Stock Level",
        "is_low_stock": "Low Stock",
        "updated_at": "Last Updated"
    },
    "low_stock": {
        "sku": "Stock No.",
        "name": "Item Name",
        "category.name": "Category",
        "quantity": "Quantity",
        "min_stock_level": "Min Stock Level",
        "shortfall": "Shortfall",
        "unit": "Unit"
    },
    "transactions": {
        "id": "ID",
        "created_at": "Date",
        "item.sku": "Stock No.",
        "item.name": "Item Name",
        "type": "Type",
        "quantity": "Quantity Moved",
        "balance_after": "Balance After",
        "request_id": "Request ID",
        "notes": "Notes",
        "performed_by": "Performed By"
    }
}

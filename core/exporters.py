"""
Excel report rendering for an analysis result.
Produces the "Movimientos" and "Resumen" sheets in memory.
"""
import io
from typing import Any, Dict

import pandas as pd

from core.exceptions import RenderError
from core.logger import setup_logger
from core.schema import AnalisisResultado, category_label

logger = setup_logger(__name__)

REPORT_FILENAME = "GastosUY_Resumen.xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MOVEMENTS_SHEET = "Movimientos"
SUMMARY_SHEET = "Resumen"
REPORT_TITLE = "Resumen de Gastos - GastosUY"

# (header, width) in column order
MOVEMENT_COLUMNS = (
    ("Fecha", 14),
    ("Descripción", 40),
    ("Categoría", 22),
    ("Monto", 16),
    ("Tipo", 12),
)
AMOUNT_COL = 3
TYPE_COL = 4

SUMMARY_WIDTHS = {1: 28, 2: 18, 3: 14}

AMOUNT_FORMAT = "#,##0.00;[Red]-#,##0.00"
PERCENT_FORMAT = "0.0%"

# Statement text is written as plain strings, never as formulas or links
WORKBOOK_OPTIONS = {"strings_to_formulas": False, "strings_to_urls": False}

HEADER_BG = "#0F172A"
HEADER_BORDER = "#334155"
SUBTITLE_COLOR = "#64748B"
INCOME_COLOR = "#10B981"
EXPENSE_COLOR = "#EF4444"


def _build_formats(workbook) -> Dict[str, Any]:
    """Create the shared cell formats for one workbook."""
    header = {
        "bold": True,
        "font_color": "#FFFFFF",
        "font_size": 11,
        "bg_color": HEADER_BG,
        "pattern": 1,
        "align": "center",
        "valign": "vcenter",
    }
    return {
        "header": workbook.add_format({**header, "bottom": 1, "bottom_color": HEADER_BORDER}),
        "summary_header": workbook.add_format(header),
        "amount": workbook.add_format({"num_format": AMOUNT_FORMAT}),
        "percent": workbook.add_format({"num_format": PERCENT_FORMAT}),
        "title": workbook.add_format({
            "bold": True, "font_size": 16, "font_color": HEADER_BG, "align": "center"
        }),
        "subtitle": workbook.add_format({
            "font_size": 11, "font_color": SUBTITLE_COLOR, "align": "center"
        }),
        "total_label": workbook.add_format({"bold": True, "font_size": 12}),
        "total_income": workbook.add_format({
            "bold": True, "font_size": 12, "font_color": INCOME_COLOR, "num_format": AMOUNT_FORMAT
        }),
        "total_expense": workbook.add_format({
            "bold": True, "font_size": 12, "font_color": EXPENSE_COLOR, "num_format": AMOUNT_FORMAT
        }),
        # Conditional formats only carry font changes
        "income_font": workbook.add_format({"font_color": INCOME_COLOR}),
        "expense_font": workbook.add_format({"font_color": EXPENSE_COLOR}),
        "income_label": workbook.add_format({"bold": True, "font_color": INCOME_COLOR}),
        "expense_label": workbook.add_format({"bold": True, "font_color": EXPENSE_COLOR}),
    }


def build_movements_frame(result: AnalisisResultado) -> pd.DataFrame:
    """
    Tabulate transactions in input order with the report's column layout.

    Args:
        result: Canonical analysis result

    Returns:
        DataFrame with Fecha, Descripción, Categoría, Monto and Tipo columns
    """
    columns = [name for name, _ in MOVEMENT_COLUMNS]
    rows = [
        [mov.fecha, mov.descripcion, category_label(mov.categoria), mov.monto, mov.tipo]
        for mov in result.movimientos
    ]
    return pd.DataFrame(rows, columns=columns)


def _write_movements(writer: pd.ExcelWriter, result: AnalisisResultado, formats: Dict[str, Any]) -> None:
    df = build_movements_frame(result)
    df.to_excel(writer, sheet_name=MOVEMENTS_SHEET, index=False)
    worksheet = writer.sheets[MOVEMENTS_SHEET]

    for idx, (name, width) in enumerate(MOVEMENT_COLUMNS):
        worksheet.write(0, idx, name, formats["header"])
        worksheet.set_column(idx, idx, width, formats["amount"] if idx == AMOUNT_COL else None)
    worksheet.set_row(0, 28)

    # pandas gives every cell its own format, so the column format alone is not applied
    for row_idx, amount in enumerate(df["Monto"], start=1):
        worksheet.write_number(row_idx, AMOUNT_COL, float(amount), formats["amount"])

    last_row = len(df)
    worksheet.autofilter(0, 0, last_row, len(MOVEMENT_COLUMNS) - 1)

    if last_row == 0:
        return

    worksheet.conditional_format(1, AMOUNT_COL, last_row, AMOUNT_COL, {
        "type": "cell", "criteria": ">=", "value": 0, "format": formats["income_font"]
    })
    worksheet.conditional_format(1, AMOUNT_COL, last_row, AMOUNT_COL, {
        "type": "cell", "criteria": "<", "value": 0, "format": formats["expense_font"]
    })
    worksheet.conditional_format(1, TYPE_COL, last_row, TYPE_COL, {
        "type": "cell", "criteria": "==", "value": '"Ingreso"', "format": formats["income_label"]
    })
    worksheet.conditional_format(1, TYPE_COL, last_row, TYPE_COL, {
        "type": "cell", "criteria": "==", "value": '"Gasto"', "format": formats["expense_label"]
    })


def _write_summary(writer: pd.ExcelWriter, result: AnalisisResultado, formats: Dict[str, Any]) -> None:
    worksheet = writer.book.add_worksheet(SUMMARY_SHEET)
    resumen = result.resumen

    worksheet.merge_range(0, 0, 0, 3, REPORT_TITLE, formats["title"])
    worksheet.merge_range(1, 0, 1, 3, f"Moneda: {result.moneda}", formats["subtitle"])

    # Row 3 (1-based 4) holds the category table header; column A stays empty
    row = 3
    for col, header in enumerate(("Categoría", "Total", "Porcentaje"), start=1):
        worksheet.write(row, col, header, formats["summary_header"])

    for cat in resumen.por_categoria:
        row += 1
        worksheet.write_string(row, 1, category_label(cat.categoria))
        worksheet.write_number(row, 2, cat.total, formats["amount"])
        worksheet.write_number(row, 3, cat.porcentaje / 100, formats["percent"])

    row += 1
    for label, value in (
        ("Total Ingresos", resumen.total_ingresos),
        ("Total Gastos", resumen.total_gastos),
        ("Balance", resumen.balance),
    ):
        row += 1
        worksheet.write_string(row, 1, label, formats["total_label"])
        value_format = formats["total_income"] if value >= 0 else formats["total_expense"]
        worksheet.write_number(row, 2, value, value_format)

    for col, width in SUMMARY_WIDTHS.items():
        worksheet.set_column(col, col, width)


def render_report(result: AnalisisResultado) -> bytes:
    """
    Render the analysis result as an .xlsx document.

    A fresh workbook is built on every call; the same result always yields
    the same cell values, formats, sheet names and column widths.

    Args:
        result: Canonical analysis result

    Returns:
        Spreadsheet bytes

    Raises:
        RenderError: If the spreadsheet library fails
    """
    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(buffer, engine="xlsxwriter", engine_kwargs={"options": WORKBOOK_OPTIONS}) as writer:
            writer.book.set_properties({
                "title": REPORT_TITLE,
                "author": "GastosUY",
            })
            formats = _build_formats(writer.book)
            _write_movements(writer, result, formats)
            _write_summary(writer, result, formats)
    except Exception as e:
        logger.error(f"Failed to render report: {e}", exc_info=True)
        raise RenderError(
            "Failed to render spreadsheet",
            details={"error": str(e), "transactions": len(result.movimientos)}
        )

    data = buffer.getvalue()
    logger.info(f"Rendered report: {len(result.movimientos)} transactions, {len(data)} bytes")
    return data

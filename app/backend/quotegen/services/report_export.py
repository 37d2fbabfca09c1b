"""Report table exporters: CSV, styled XLSX workbook and paginated PDF."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from io import BytesIO, StringIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from quotegen.core.security import utcnow
from quotegen.services.report_service import CellValue, ReportTable

BRAND_COLOR = "BC4749"
ALT_ROW_COLOR = "F5F5F5"

XLSX_HEADER_ROW = 4
XLSX_MIN_COLUMN_WIDTH = 15
XLSX_CURRENCY_FORMAT = "$#,##0.00"

PDF_MARGIN = 20.0
PDF_TITLE_FONT = ("Helvetica-Bold", 16)
PDF_HEADER_FONT = ("Helvetica-Bold", 10)
PDF_DATA_FONT = ("Helvetica", 9)
PDF_CELL_PADDING = 8.0
PDF_MIN_COLUMN_WIDTH = 40.0
PDF_MAX_COLUMN_SHARE = 0.6
PDF_LINE_SPACING = 1.2


class ExportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"
    PDF = "pdf"


EXPORT_MEDIA_TYPES: dict[ExportFormat, str] = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.PDF: "application/pdf",
}


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def resolve_export_format(token: str | None) -> ExportFormat:
    """Map a requested format token to an exporter; anything unrecognized is CSV."""

    normalized = (token or "CSV").strip().upper()
    if normalized in {"EXCEL", "XLSX"}:
        return ExportFormat.XLSX
    if normalized == "PDF":
        return ExportFormat.PDF
    return ExportFormat.CSV


def build_export_filename(report_type: str, export_format: ExportFormat, now: datetime | None = None) -> str:
    stamp = (now or utcnow()).strftime("%Y%m%d%H%M%S")
    return f"report_{report_type}_{stamp}.{export_format.value}"


def _cell_text(value: CellValue) -> str:
    if value is None:
        return ""
    return str(value)


# ---------- CSV ----------
def export_csv(table: ReportTable) -> bytes:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(table.column_names)
    for row in table.rows:
        writer.writerow([_cell_text(value) for value in row])
    return buffer.getvalue().encode("utf-8")


# ---------- XLSX ----------
def export_excel(table: ReportTable, *, generated_at: datetime | None = None) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Report"

    column_count = max(len(table.columns), 1)
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_fill = PatternFill(fill_type="solid", start_color=BRAND_COLOR, end_color=BRAND_COLOR)
    alt_fill = PatternFill(fill_type="solid", start_color=ALT_ROW_COLOR, end_color=ALT_ROW_COLOR)

    def merge_row(row_index: int) -> None:
        if column_count > 1:
            sheet.merge_cells(
                start_row=row_index,
                start_column=1,
                end_row=row_index,
                end_column=column_count,
            )

    title_cell = sheet.cell(row=1, column=1, value=f"{table.title} Report")
    title_cell.font = Font(size=14, bold=True, color=BRAND_COLOR)
    merge_row(1)

    stamp = (generated_at or utcnow()).strftime("%Y-%m-%d %H:%M:%S")
    caption_cell = sheet.cell(row=2, column=1, value=f"Generated: {stamp}")
    caption_cell.font = Font(size=10, italic=True)
    merge_row(2)

    widths = [len(name) for name in table.column_names]
    for column_index, name in enumerate(table.column_names, start=1):
        cell = sheet.cell(row=XLSX_HEADER_ROW, column=column_index, value=name)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = border

    for row_offset, row in enumerate(table.rows):
        excel_row = XLSX_HEADER_ROW + row_offset + 1
        shaded = row_offset % 2 == 0
        for column_index, value in enumerate(row, start=1):
            cell = sheet.cell(row=excel_row, column=column_index)
            if isinstance(value, bool):
                cell.value = "Yes" if value else "No"
            elif isinstance(value, Decimal):
                cell.value = value
                cell.number_format = XLSX_CURRENCY_FORMAT
            elif value is None:
                cell.value = ""
            else:
                cell.value = value
            if shaded:
                cell.fill = alt_fill
            cell.alignment = Alignment(horizontal="left", vertical="center")
            cell.border = border
            widths[column_index - 1] = max(widths[column_index - 1], len(_cell_text(cell.value)))

    for column_index, width in enumerate(widths, start=1):
        letter = get_column_letter(column_index)
        sheet.column_dimensions[letter].width = max(XLSX_MIN_COLUMN_WIDTH, width + 2)

    footer_row = XLSX_HEADER_ROW + len(table.rows) + 2
    footer_cell = sheet.cell(row=footer_row, column=1, value=f"Total Records: {len(table.rows)}")
    footer_cell.font = Font(size=11, bold=True)
    merge_row(footer_row)

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


# ---------- PDF ----------
def _break_word(word: str, font_name: str, font_size: float, max_width: float) -> list[str]:
    chunks: list[str] = []
    current = ""
    for char in word:
        if current and stringWidth(current + char, font_name, font_size) > max_width:
            chunks.append(current)
            current = char
        else:
            current += char
    if current:
        chunks.append(current)
    return chunks


def wrap_text(text: str, font_name: str, font_size: float, max_width: float) -> list[str]:
    """Greedy word wrap; a word is split mid-word only when it alone exceeds ``max_width``."""

    if not text:
        return [""]

    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split(" "):
            trial = word if not current else f"{current} {word}"
            if stringWidth(trial, font_name, font_size) <= max_width:
                current = trial
                continue
            if current:
                lines.append(current)
                current = ""
            if stringWidth(word, font_name, font_size) > max_width:
                chunks = _break_word(word, font_name, font_size, max_width)
                lines.extend(chunks[:-1])
                current = chunks[-1] if chunks else ""
            else:
                current = word
        lines.append(current)
    return lines


def layout_column_widths(
    headers: list[str],
    rows: list[list[str]],
    available_width: float,
    *,
    header_font: tuple[str, float] = PDF_HEADER_FONT,
    data_font: tuple[str, float] = PDF_DATA_FONT,
) -> list[float]:
    """Measure columns against their text, then fit them to ``available_width``.

    Measured widths carry cell padding and are clamped to a floor and to a share
    of the page. Narrow tables are expanded evenly; wide tables are scaled down
    proportionally with the floor kept and the last column absorbing rounding.
    """

    column_count = len(headers)
    if column_count == 0:
        return []

    max_column = available_width * PDF_MAX_COLUMN_SHARE
    measured: list[float] = []
    for index, header in enumerate(headers):
        widest = stringWidth(header, *header_font) + PDF_CELL_PADDING
        for row in rows:
            widest = max(widest, stringWidth(row[index], *data_font) + PDF_CELL_PADDING)
        measured.append(max(PDF_MIN_COLUMN_WIDTH, min(widest, max_column)))

    total = sum(measured)
    if total <= available_width:
        extra = (available_width - total) / column_count
        return [width + extra for width in measured]

    scale = available_width / total
    widths = [max(PDF_MIN_COLUMN_WIDTH, width * scale) for width in measured]
    difference = available_width - sum(widths)
    widths[-1] = max(PDF_MIN_COLUMN_WIDTH, widths[-1] + difference)
    return widths


class PdfTableRenderer:
    """Draws a report table onto as many A4 pages as it needs."""

    def __init__(
        self,
        table: ReportTable,
        title: str,
        *,
        generated_at: datetime | None = None,
        pagesize: tuple[float, float] = A4,
    ) -> None:
        self.table = table
        self.title = title
        self.generated_at = generated_at or utcnow()
        self.page_width, self.page_height = pagesize
        self.pagesize = pagesize
        self.available_width = self.page_width - 2 * PDF_MARGIN
        self.page_count = 0
        self.column_widths: list[float] = []
        self._canvas: canvas.Canvas | None = None

    # ---------- Primitives ----------
    def _text(self, text: str, x: float, top: float, font: tuple[str, float], color) -> None:
        font_name, font_size = font
        self._canvas.setFillColor(color)
        self._canvas.setFont(font_name, font_size)
        self._canvas.drawString(x, self.page_height - top - font_size, text)

    def _fill_rect(self, x: float, top: float, width: float, height: float, color) -> None:
        self._canvas.setFillColor(color)
        self._canvas.rect(x, self.page_height - top - height, width, height, stroke=0, fill=1)

    def _stroke_rect(self, x: float, top: float, width: float, height: float) -> None:
        self._canvas.setStrokeColor(colors.lightgrey)
        self._canvas.rect(x, self.page_height - top - height, width, height, stroke=1, fill=0)

    @staticmethod
    def _line_height(font: tuple[str, float]) -> float:
        return font[1] * PDF_LINE_SPACING

    def _new_page(self) -> None:
        self._canvas.showPage()
        self.page_count += 1

    # ---------- Layout ----------
    def _draw_header_height(self) -> float:
        return self._line_height(PDF_HEADER_FONT) + 6

    def _draw_header(self, top: float) -> float:
        header_height = self._draw_header_height()
        x = PDF_MARGIN
        brand = colors.HexColor(f"#{BRAND_COLOR}")
        for name, width in zip(self.table.column_names, self.column_widths):
            self._fill_rect(x, top, width, header_height, brand)
            self._text(name, x + PDF_CELL_PADDING / 2, top + 3, PDF_HEADER_FONT, colors.white)
            x += width
        return top + header_height

    def _draw_row(self, top: float, wrapped: list[list[str]], shaded: bool) -> float:
        line_height = self._line_height(PDF_DATA_FONT)
        row_height = max(len(lines) for lines in wrapped) * line_height + 6
        if shaded:
            self._fill_rect(PDF_MARGIN, top, sum(self.column_widths), row_height, colors.HexColor(f"#{ALT_ROW_COLOR}"))

        x = PDF_MARGIN
        for lines, width in zip(wrapped, self.column_widths):
            text_top = top + 3
            for line in lines:
                self._text(line, x + PDF_CELL_PADDING / 2, text_top, PDF_DATA_FONT, colors.black)
                text_top += line_height
            self._stroke_rect(x, top, width, row_height)
            x += width
        return top + row_height

    def _lines_that_fit(self, top: float) -> int:
        bottom_limit = self.page_height - PDF_MARGIN
        return max(int((bottom_limit - top - 6) // self._line_height(PDF_DATA_FONT)), 0)

    def render(self) -> bytes:
        buffer = BytesIO()
        self._canvas = canvas.Canvas(buffer, pagesize=self.pagesize)
        self._canvas.setTitle(self.title)
        self.page_count = 1

        top = PDF_MARGIN
        self._text(self.title, PDF_MARGIN, top, PDF_TITLE_FONT, colors.black)
        top += 28
        stamp = self.generated_at.strftime("%Y-%m-%d %H:%M:%S")
        self._text(f"Generated: {stamp}", PDF_MARGIN, top, PDF_DATA_FONT, colors.grey)
        top += 20

        text_rows = [[_cell_text(value) for value in row] for row in self.table.rows]
        self.column_widths = layout_column_widths(self.table.column_names, text_rows, self.available_width)
        bottom_limit = self.page_height - PDF_MARGIN

        if self.column_widths:
            top = self._draw_header(top)
            page_capacity = self._lines_that_fit(self._draw_header_height() + PDF_MARGIN)
            for row_index, row in enumerate(text_rows):
                wrapped = [
                    wrap_text(text, *PDF_DATA_FONT, max_width=width - PDF_CELL_PADDING)
                    for text, width in zip(row, self.column_widths)
                ]
                needed = max(len(lines) for lines in wrapped)
                room = self._lines_that_fit(top)

                # A row taller than a whole page is split, starting on the current page.
                if needed > room and (needed <= page_capacity or room == 0):
                    self._new_page()
                    top = self._draw_header(PDF_MARGIN)
                while needed > self._lines_that_fit(top):
                    fit = self._lines_that_fit(top)
                    top = self._draw_row(top, [lines[:fit] for lines in wrapped], row_index % 2 == 1)
                    wrapped = [lines[fit:] for lines in wrapped]
                    needed -= fit
                    self._new_page()
                    top = self._draw_header(PDF_MARGIN)
                top = self._draw_row(top, wrapped, row_index % 2 == 1)

        top += 8
        if top + 15 > bottom_limit:
            self._new_page()
            top = PDF_MARGIN
        self._text(f"Total Records: {len(self.table.rows)}", PDF_MARGIN, top, PDF_DATA_FONT, colors.grey)

        self._canvas.save()
        return buffer.getvalue()


def export_pdf(table: ReportTable, title: str, *, generated_at: datetime | None = None) -> bytes:
    return PdfTableRenderer(table, title, generated_at=generated_at).render()


# ---------- Dispatch ----------
def export_table(table: ReportTable, format_name: str | None, *, now: datetime | None = None) -> ExportFilePayload:
    """Render ``table`` in the requested format with a timestamped attachment name."""

    export_format = resolve_export_format(format_name)
    now = now or utcnow()
    if export_format == ExportFormat.XLSX:
        content = export_excel(table, generated_at=now)
    elif export_format == ExportFormat.PDF:
        content = export_pdf(table, f"{table.title} Report", generated_at=now)
    else:
        content = export_csv(table)
    return ExportFilePayload(
        media_type=EXPORT_MEDIA_TYPES[export_format],
        filename=build_export_filename(table.title, export_format, now),
        content=content,
    )

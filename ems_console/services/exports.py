from __future__ import annotations

import logging
from io import BytesIO
from urllib.parse import quote
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ems_console.models import EMPLOYEE_SCOPED_REPORTS, ExportFormat, ReportKind
from ems_console.schemas import ReportTable, ReportView

logger = logging.getLogger("ems_console.exports")

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_COLOR = colors.HexColor("#2563EB")
GRID_COLOR = colors.HexColor("#CBD5E1")

HEADER_FILL = PatternFill(fill_type="solid", fgColor="2563EB")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF1FD")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FAFE")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="1E3A8A", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="CBD5E1")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def content_disposition(filename: str) -> str:
    # Header values go out as latin-1; non-ASCII names ride in filename*.
    fallback = "".join(char if 32 <= ord(char) < 127 and char not in '"\\' else "_" for char in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def media_type_for(export_format: ExportFormat) -> str:
    if export_format == ExportFormat.PDF:
        return PDF_MEDIA_TYPE
    return XLSX_MEDIA_TYPE


def _meta_lines(report: ReportView) -> list[str]:
    lines: list[str] = []
    if report.kind in EMPLOYEE_SCOPED_REPORTS:
        lines.append(f"Employee: {report.employee_name or 'Unknown'}")
    lines.append(f"Period: {report.period_label}")
    return lines


# --- PDF ---


def _pdf_table(
    table: ReportTable,
    cell_style: ParagraphStyle,
    header_style: ParagraphStyle,
    available_width: float,
) -> Table:
    data = [[Paragraph(escape(header), header_style) for header in table.headers]]
    for row in table.rows:
        data.append([Paragraph(escape(value), cell_style) for value in row])

    col_width = available_width / max(1, len(table.headers))
    pdf_table = Table(data, colWidths=[col_width] * len(table.headers), repeatRows=1, hAlign="LEFT")
    pdf_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
                ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("TOPPADDING", (0, 0), (-1, -1), 3),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ]
        )
    )
    return pdf_table


def build_report_pdf(report: ReportView) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=16 * mm,
        bottomMargin=16 * mm,
        title=report.title,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("ReportTitle", parent=styles["Heading1"], fontName="Helvetica-Bold", fontSize=18)
    normal = ParagraphStyle("ReportNormal", parent=styles["Normal"], fontName="Helvetica", fontSize=10)
    section = ParagraphStyle("ReportSection", parent=styles["Heading3"], fontName="Helvetica-Bold", fontSize=12)
    # Achievement tables are denser, like the per-day breakdown they mirror.
    font_size = 7 if report.kind == ReportKind.EMPLOYEE_ACHIEVEMENT else 8
    cell_style = ParagraphStyle("ReportCell", parent=styles["Normal"], fontName="Helvetica", fontSize=font_size)
    header_style = ParagraphStyle(
        "ReportHeader",
        parent=cell_style,
        fontName="Helvetica-Bold",
        textColor=colors.white,
    )

    elements: list = [Paragraph(escape(report.title), title_style)]
    for line in _meta_lines(report):
        elements.append(Paragraph(escape(line), normal))
    if report.summary_lines:
        elements.append(Spacer(1, 6))
        elements.append(Paragraph("<b>Summary:</b>", normal))
        for line in report.summary_lines:
            elements.append(Paragraph(escape(line), normal))
    elements.append(Spacer(1, 8))

    if not any(table.rows for table in report.tables):
        elements.append(Paragraph("No records found for the selected period.", normal))

    for table in report.tables:
        if table.title:
            elements.append(Paragraph(escape(table.title), section))
        if table.subtitle:
            elements.append(Paragraph(escape(table.subtitle), cell_style))
            elements.append(Spacer(1, 4))
        if table.rows:
            elements.append(_pdf_table(table, cell_style, header_style, doc.width))
        elements.append(Spacer(1, 10))

    doc.build(elements)
    return buffer.getvalue()


# --- XLSX ---


def _style_header(ws: Worksheet, row: int, width: int) -> None:
    for col in range(1, width + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws: Worksheet) -> None:
    widths: dict[int, int] = {}
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            widths[cell.column] = max(widths.get(cell.column, 0), len(str(cell.value)))
    for column, width in widths.items():
        ws.column_dimensions[get_column_letter(column)].width = min(max(10, width + 2), 48)


def _append_table(ws: Worksheet, table: ReportTable, row: int) -> int:
    if table.title:
        ws.cell(row=row, column=1, value=table.title).font = BOLD_FONT
        row += 1
    if table.subtitle:
        ws.cell(row=row, column=1, value=table.subtitle).font = MUTED_FONT
        row += 1

    with_links = any(table.links)
    headers = [*table.headers, "Location Map"] if with_links else list(table.headers)
    for col, header in enumerate(headers, start=1):
        ws.cell(row=row, column=col, value=header)
    _style_header(ws, row, len(headers))
    row += 1

    for index, values in enumerate(table.rows):
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            if index % 2 == 1:
                cell.fill = ZEBRA_FILL
        if with_links:
            link = table.links[index] if index < len(table.links) else None
            cell = ws.cell(row=row, column=len(headers), value="View Path" if link else "-")
            cell.border = THIN_BORDER
            if link:
                cell.hyperlink = link
                cell.font = Font(color="2563EB", underline="single")
        row += 1
    return row + 1


def build_report_xlsx(report: ReportView) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Report"

    ws.cell(row=1, column=1, value=report.title).font = TITLE_FONT
    row = 2
    meta = [line.partition(": ")[::2] for line in _meta_lines(report)]
    meta.extend(("Summary", line) for line in report.summary_lines)
    for label, value in meta:
        label_cell = ws.cell(row=row, column=1, value=label)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        ws.cell(row=row, column=2, value=value).font = MUTED_FONT
        row += 1
    row += 1

    for table in report.tables:
        row = _append_table(ws, table, row)

    _auto_width(ws)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def render_report(report: ReportView, export_format: ExportFormat) -> bytes:
    if export_format == ExportFormat.PDF:
        content = build_report_pdf(report)
    else:
        content = build_report_xlsx(report)
    logger.info(
        "report_exported",
        extra={"kind": report.kind.value, "format": export_format.value, "size_bytes": len(content)},
    )
    return content

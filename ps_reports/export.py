"""Schema-driven projection of records into tables, and the table writers.

Writers only ever see a :class:`Table`; adding a report shape means adding a
registry entry in :mod:`ps_reports.schema`, never touching this module.
"""
from __future__ import annotations

import csv
import html
import io
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table as PdfTable, TableStyle

from .records import Record
from .schema import NO_SUBTYPE, FormatOptions, normalize_subtype, schema

logger = logging.getLogger(__name__)

HEADER_FILL = colors.HexColor("#2980b9")


@dataclass(frozen=True)
class Table:
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...] = ()
    title: str = ""

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows


def project(
    records: Iterable[Record],
    report_type: Optional[str],
    subtype: Optional[str] = None,
    *,
    options: FormatOptions = FormatOptions(),
) -> Table:
    """Project ``records`` onto the export columns of ``(report_type, subtype)``.

    Absent or empty values become ``'-'``; an empty input yields a header-only
    table.
    """

    report_schema = schema(report_type, subtype)
    columns = report_schema.export_columns
    rows = tuple(
        tuple(column.render(record.get(column.field), options) for column in columns)
        for record in records
    )
    if not rows:
        logger.debug("Projected no rows for %s/%s", report_type, subtype)
    return Table(
        headers=tuple(column.header for column in columns),
        rows=rows,
        title=report_schema.label,
    )


def to_dataframe(table: Table) -> pd.DataFrame:
    return pd.DataFrame([list(row) for row in table.rows], columns=list(table.headers))


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def write_csv(table: Table) -> str:
    """Every cell quoted, quotes doubled, rows joined with ``\\n``."""

    text = to_dataframe(table).to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    return text[:-1] if text.endswith("\n") else text


def csv_bytes(table: Table, encoding: str = "utf-8") -> bytes:
    return write_csv(table).encode(encoding)


def pdf_grid(table: Table) -> list[list[str]]:
    """Cell grid handed to the PDF layout: header row first, then the body."""

    return [list(table.headers)] + [list(row) for row in table.rows]


def write_pdf(table: Table, title: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=10 * mm,
        rightMargin=10 * mm,
        topMargin=14 * mm,
        bottomMargin=14 * mm,
        title=title or table.title or "Reports",
    )
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle(name="Cell", parent=styles["Normal"], fontSize=7, leading=9)
    head_style = ParagraphStyle(
        name="HeadCell",
        parent=cell_style,
        fontName="Helvetica-Bold",
        textColor=colors.white,
    )

    grid = pdf_grid(table)
    data = [
        [Paragraph(html.escape(cell), head_style if index == 0 else cell_style) for cell in row]
        for index, row in enumerate(grid)
    ]
    column_count = max(table.column_count, 1)
    col_widths = [doc.width / column_count] * table.column_count

    pdf_table = PdfTable(data, colWidths=col_widths or None, repeatRows=1)
    pdf_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("BOX", (0, 0), (-1, -1), 0.5, colors.grey),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
                ("LEFTPADDING", (0, 0), (-1, -1), 4),
                ("RIGHTPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )

    story: list[object] = [
        Paragraph(html.escape(title or table.title or "Reports"), styles["Heading2"]),
        Spacer(1, 6),
        pdf_table,
    ]
    doc.build(story)
    return buffer.getvalue()


def write_xlsx(table: Table, sheet_name: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    name = (sheet_name or table.title or "Reports")[:31]
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        to_dataframe(table).to_excel(writer, index=False, sheet_name=name)
    return buffer.getvalue()


EXPORT_WRITERS: Mapping[str, Callable[[Table], bytes]] = {
    "csv": csv_bytes,
    "pdf": write_pdf,
    "xlsx": write_xlsx,
}


def render_table(table: Table, fmt: str) -> bytes:
    try:
        writer = EXPORT_WRITERS[fmt.lower()]
    except KeyError:
        raise ValueError(f"Unsupported export format {fmt!r}; choose one of {sorted(EXPORT_WRITERS)}") from None
    return writer(table)


def export_filename(report_type: Optional[str], subtype: Optional[str], ext: str) -> str:
    parts = [(report_type or "reports").strip() or "reports"]
    normalized = normalize_subtype(subtype)
    if normalized != NO_SUBTYPE:
        parts.append(normalized)
    stem = "_".join(part.replace(" ", "_").lower() for part in parts)
    return f"{stem}_reports.{ext.lstrip('.')}"

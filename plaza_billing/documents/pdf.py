"""Render InvoiceDocuments to PDF with ReportLab."""

import logging
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from plaza_billing.exceptions import SinkError
from plaza_billing.models.document import Align, CellKind, GridSection, InvoiceDocument

logger = logging.getLogger(__name__)

MARGIN = 15 * mm
CONTENT_WIDTH = A4[0] - 2 * MARGIN
HEADER_FILL = colors.HexColor("#E8E4DF")
LINE_COLOR = colors.HexColor("#2D3748")

_ALIGNMENT = {Align.LEFT: "LEFT", Align.CENTER: "CENTER", Align.RIGHT: "RIGHT"}


def section_table(section: GridSection, width: float = CONTENT_WIDTH) -> Table:
    """Translate a grid section into a platypus Table.

    Spanning cells become ``SPAN`` commands; every non-placeholder cell gets
    its own box, so merged placeholders are drawn without inner gridlines.
    """
    data: list[list[str]] = []
    commands: list[tuple] = [
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]

    for r, row in enumerate((*section.header_rows, *section.rows)):
        values: list[str] = []
        c = 0
        for cell in row:
            start, end = (c, r), (c + cell.col_span - 1, r)
            values.append(cell.content)
            values.extend([""] * (cell.col_span - 1))
            if cell.col_span > 1:
                commands.append(("SPAN", start, end))
            if not cell.is_placeholder:
                commands.append(("BOX", start, end, 0.5, LINE_COLOR))
            commands.append(("ALIGN", start, end, _ALIGNMENT[cell.align]))
            if cell.kind in (CellKind.LABEL, CellKind.HEADER):
                commands.append(("FONTNAME", start, end, "Helvetica-Bold"))
            if cell.kind == CellKind.HEADER:
                commands.append(("BACKGROUND", start, end, HEADER_FILL))
            c += cell.col_span
        data.append(values)

    table = Table(data, colWidths=[width / section.column_count] * section.column_count)
    table.setStyle(TableStyle(commands))
    return table


class PdfInvoiceRenderer:
    """Lay out an already-composed invoice on A4 pages."""

    def __init__(self) -> None:
        styles = getSampleStyleSheet()
        self.title_style = styles["Title"]
        self.body_style = styles["BodyText"]

    def build_story(self, document: InvoiceDocument) -> list:
        story: list = [Paragraph(escape(document.title), self.title_style), Spacer(1, 4 * mm)]
        for section in document.sections:
            if section.name == "footer":
                story.extend(
                    Paragraph(escape(cell.content), self.body_style)
                    for row in section.rows
                    for cell in row
                )
            else:
                story.append(section_table(section))
            story.append(Spacer(1, 4 * mm))
        return story

    def render(self, document: InvoiceDocument, path: str | Path) -> Path:
        """Write ``document`` as a PDF.

        Parameters
        ----------
        document : InvoiceDocument
            Composed invoice.
        path : str | Path
            Target file, or a directory in which ``<document_id>.pdf`` is
            created.

        Returns
        -------
        Path
            The written file.
        """
        path = Path(path)
        if path.is_dir():
            path = path / f"{document.document_id}.pdf"

        doc = SimpleDocTemplate(
            str(path),
            pagesize=A4,
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=MARGIN,
            title=document.title,
        )
        try:
            doc.build(self.build_story(document))
        except OSError as exc:
            raise SinkError(f"Failed to write {path}: {exc}") from exc

        logger.info("Rendered %s to %s", document.document_id, path)
        return path

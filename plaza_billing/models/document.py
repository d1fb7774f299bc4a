"""Structured invoice document: named grid sections ready for rendering."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CellKind(str, Enum):
    TEXT = "text"
    LABEL = "label"  # bold caption
    HEADER = "header"  # section/column header
    PLACEHOLDER = "placeholder"  # merged blank area, drawn without inner gridlines


class Align(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class Cell:
    """One grid cell, possibly spanning several columns."""

    content: str = ""
    kind: CellKind = CellKind.TEXT
    col_span: int = 1
    align: Align = Align.LEFT

    def __post_init__(self) -> None:
        if self.col_span < 1:
            raise ValueError(f"col_span must be >= 1, got {self.col_span}")

    @classmethod
    def label(cls, content: str, col_span: int = 1, align: Align = Align.LEFT) -> "Cell":
        return cls(content, CellKind.LABEL, col_span, align)

    @classmethod
    def header(cls, content: str, col_span: int = 1) -> "Cell":
        return cls(content, CellKind.HEADER, col_span, Align.CENTER)

    @classmethod
    def placeholder(cls, col_span: int) -> "Cell":
        """Merged empty cell covering ``col_span`` columns."""
        return cls("", CellKind.PLACEHOLDER, col_span)

    @property
    def is_placeholder(self) -> bool:
        return self.kind == CellKind.PLACEHOLDER

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "kind": self.kind.value,
            "col_span": self.col_span,
            "align": self.align.value,
        }


Row = tuple[Cell, ...]


@dataclass(frozen=True)
class GridSection:
    """A named block of rows that all cover exactly ``column_count`` columns."""

    name: str
    column_count: int
    header_rows: tuple[Row, ...] = ()
    rows: tuple[Row, ...] = ()

    def __post_init__(self) -> None:
        for row in (*self.header_rows, *self.rows):
            width = sum(cell.col_span for cell in row)
            if width != self.column_count:
                raise ValueError(
                    f"Row in section {self.name!r} spans {width} columns, "
                    f"expected {self.column_count}"
                )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "column_count": self.column_count,
            "header_rows": [[cell.to_dict() for cell in row] for row in self.header_rows],
            "rows": [[cell.to_dict() for cell in row] for row in self.rows],
        }


@dataclass(frozen=True)
class InvoiceDocument:
    """A composed invoice: title plus ordered grid sections.

    ``document_id`` is derived from the sanitized bill number and doubles as
    the file name stem when the document is rendered or exported.
    """

    document_id: str
    bill_number: str
    title: str
    sections: tuple[GridSection, ...] = field(default_factory=tuple)

    def section(self, name: str) -> GridSection:
        """Return the section with the given name."""
        for section in self.sections:
            if section.name == name:
                return section
        raise KeyError(name)

    @property
    def section_names(self) -> list[str]:
        return [section.name for section in self.sections]

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "bill_number": self.bill_number,
            "title": self.title,
            "sections": [section.to_dict() for section in self.sections],
        }

"""
Layout loader - reads config/layouts.yaml (the coordinate map)

Responsibilities:
- Parse the YAML and expose typed access to anchors, tables and cell bindings
- Keep every coordinate as data: renderers look geometry up, never inline it
- Cache parsed files (avoid re-parsing on every render)

Usage:
    layouts = LayoutLoader.load()
    doc = layouts.get_document_layout("tagesbericht")
    anchor = doc.anchor("date")
    sheet = layouts.get_sheet_binding("pumpversuch")
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..interfaces import LayoutError
from .runtime_config import DEFAULT_LAYOUT_PATH

Origin = Literal["top", "bottom"]


def resolve_y(y: float, origin: Origin, page_height: float) -> float:
    """Convert a layout y into page space (bottom-left origin)"""
    if origin == "top":
        return page_height - y
    return y


class Anchor(BaseModel):
    """Single placement point"""
    x: float
    y: float
    size: float | None = None
    max_chars: int | None = None
    origin: Origin | None = None


class Column(BaseModel):
    """Column of a repeating table"""
    x: float
    max_chars: int | None = None
    size: float | None = None
    dy: float = 0.0


class TableLayout(BaseModel):
    """Repeating row section"""
    start_y: float
    row_height: float
    max_rows: int | None = None
    bottom_y: float | None = None
    size: float = 8.0
    max_chars: int | None = None
    origin: Origin | None = None
    columns: dict[str, Column] = Field(default_factory=dict)

    @field_validator("columns", mode="before")
    @classmethod
    def _coerce_columns(cls, value: Any) -> Any:
        # bare numbers are shorthand for {x: number}
        if isinstance(value, dict):
            return {k: {"x": v} if isinstance(v, (int, float)) else v for k, v in value.items()}
        return value

    def column(self, name: str) -> Column | None:
        return self.columns.get(name)


class MarkBox(BaseModel):
    """Rectangle used for translucent highlights"""
    x: float
    y: float
    width: float
    height: float
    origin: Origin | None = None


class MultilineField(BaseModel):
    """Free text block drawn line by line"""
    x: float
    y: float
    size: float = 9.0
    line_height: float = 12.0
    max_lines: int = 6
    max_chars: int | None = 60
    max_width: float | None = None
    bottom_y: float | None = None
    origin: Origin | None = None


class ImageBox(BaseModel):
    """Box an image is fitted into"""
    x: float
    y: float
    width: float
    height: float
    fit: bool = False
    origin: Origin | None = None


class Label(BaseModel):
    """Static caption of a generated (template-less) page"""
    text: str
    x: float
    y: float
    size: float = 10.0
    bold: bool = False


class DocumentLayout(BaseModel):
    """Coordinate map of one PDF document type"""
    templates: list[str] = Field(default_factory=list)
    rotate: int = 0
    origin: Origin = "bottom"
    page_size: tuple[float, float] | None = None
    fields: dict[str, Anchor] = Field(default_factory=dict)
    weekday_marks: dict[str, Anchor] = Field(default_factory=dict)
    highlights: dict[str, MarkBox] = Field(default_factory=dict)
    marks: dict[str, dict[str, Anchor]] = Field(default_factory=dict)
    tables: dict[str, TableLayout] = Field(default_factory=dict)
    multiline: dict[str, MultilineField] = Field(default_factory=dict)
    images: dict[str, ImageBox] = Field(default_factory=dict)
    labels: list[Label] = Field(default_factory=list)
    rules: list[tuple[float, float, float, float]] = Field(default_factory=list)
    frames: list[MarkBox] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)

    def anchor(self, name: str) -> Anchor | None:
        """Anchor of a scalar field (None = not mapped)"""
        return self.fields.get(name)

    def table(self, name: str) -> TableLayout | None:
        return self.tables.get(name)

    def mark_group(self, name: str) -> dict[str, Anchor]:
        return self.marks.get(name, {})

    def option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)


class RemarksLayout(BaseModel):
    """Row growth rule for the free-text remarks column"""
    chars_per_line: int = 20
    max_lines: int = 8
    base_height: float = 18.0
    extra_line_height: float = 15.0


class SheetTable(BaseModel):
    """Shared measurement table region of the protocol workbook"""
    start_row: int = 16
    clear_rows: int | None = None
    columns: dict[str, str] = Field(default_factory=dict)
    marker_label: str = "Wiederanstieg ab GOK"
    marker_column: str = "B"
    marker_gap: int = 2
    marker_clear: list[str] = Field(default_factory=list)
    once_column: str = "flow"
    remarks: RemarksLayout = Field(default_factory=RemarksLayout)


class SheetBinding(BaseModel):
    """Cell bindings of one spreadsheet document type"""
    template: str
    sheet: str = "Tabelle1"
    fixed_cells: dict[str, str] = Field(default_factory=dict)
    header: dict[str, str] = Field(default_factory=dict)
    unit_label_cell: str | None = None
    unit_labels: dict[str, str] = Field(default_factory=dict)
    default_unit_label: str = "l/s"
    table: SheetTable = Field(default_factory=SheetTable)


class LayoutSpec(BaseModel):
    """Structured form of layouts.yaml"""
    schema_version: str
    documents: dict[str, DocumentLayout] = Field(default_factory=dict)
    sheets: dict[str, SheetBinding] = Field(default_factory=dict)

    def get_document_layout(self, doc_type: str) -> DocumentLayout:
        """Coordinate map of a PDF document type"""
        if doc_type not in self.documents:
            raise LayoutError(f"No layout for document type: {doc_type}")
        return self.documents[doc_type]

    def get_sheet_binding(self, sheet_type: str) -> SheetBinding:
        """Cell bindings of a spreadsheet document type"""
        if sheet_type not in self.sheets:
            raise LayoutError(f"No sheet binding for: {sheet_type}")
        return self.sheets[sheet_type]

    def get_template_names(self, doc_type: str) -> list[str]:
        """Template file names of any document type"""
        if doc_type in self.documents:
            return list(self.documents[doc_type].templates)
        if doc_type in self.sheets:
            return [self.sheets[doc_type].template]
        raise LayoutError(f"Unknown document type: {doc_type}")


class LayoutLoader:
    """Layout loader (cached)"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, layout_path: str | Path = DEFAULT_LAYOUT_PATH) -> LayoutSpec:
        """Load and cache a layout file"""
        path = Path(layout_path)
        if not path.exists():
            raise LayoutError(f"Layout file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        try:
            return LayoutSpec(**(data or {}))
        except ValidationError as e:
            raise LayoutError(f"Invalid layout file {path}: {e}") from e

    @classmethod
    def reload(cls, layout_path: str | Path = DEFAULT_LAYOUT_PATH) -> LayoutSpec:
        """Force a reload (clears the cache)"""
        cls.load.cache_clear()
        return cls.load(layout_path)


def load_layouts(layout_path: str | Path | None = None) -> LayoutSpec:
    """Load the coordinate map"""
    return LayoutLoader.load(layout_path or DEFAULT_LAYOUT_PATH)

"""
Protocol PDF renderer - generated (template-less) measurement protocol

Responsibilities:
1. One A4 landscape page per measurement campaign
2. Title, header frame and labels, table grid with the flow caption by unit
3. Rows through a RowCursor: primary block, blank slot, marker, secondary block

Dependencies:
- doc_gen.pdf_engine (reportlab canvas, pypdf writer)
- doc_gen.pagination: RowCursor
- config/layouts.yaml: documents.protocol

Test points:
- test_one_page_per_messung: page count follows `messungen`
- test_blatt_default: "i/n" when no sheet number is given
- test_marker_dropped_below_bound: no marker once the table is full
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..config import DocumentLayout, RuntimeConfig, TableLayout, get_config, load_layouts
from ..interfaces import IProtocolPdfRenderer, LayoutError
from ..models import Measurement, MeasurementProtocol, MeasurementRow
from .pagination import RowCursor
from .pdf_engine import BLACK, LayoutPainter, PagePlan, PdfOverlayEngine, as_color
from .text_wrap import wrap_by_chars

logger = logging.getLogger(__name__)

DOC_TYPE = "protocol"

# header fields drawn from the campaign (title, blatt and flow label are computed)
HEADER_FIELDS = (
    "bv", "bohrungNr", "pumpeneinlaufBeiM", "ablaufleitungM",
    "auftragsNr", "datum", "ausgefuehrtVon", "messstelle", "hoeheGok",
)


class ProtocolPdfRenderer(IProtocolPdfRenderer):
    """Measurement protocol PDF (Klarspül- / Pumpversuch-Protokoll)"""

    def __init__(
        self,
        protocol_type: str,
        config: RuntimeConfig | None = None,
        layout_path: str | Path | None = None,
        engine: PdfOverlayEngine | None = None,
    ):
        self.protocol_type = protocol_type
        self.config = config or get_config()
        self.layouts = load_layouts(layout_path or self.config.layout_path)
        self.layout: DocumentLayout = self.layouts.get_document_layout(DOC_TYPE)
        self.engine = engine or PdfOverlayEngine(self.config)

        titles = self.layout.option("titles", {})
        if protocol_type not in titles:
            raise LayoutError(f"No protocol title for: {protocol_type}")
        self.title = titles[protocol_type]

    def render(self, payload: MeasurementProtocol | Mapping[str, Any]) -> bytes:
        plans = self.plan(payload)
        data = self.engine.compose(None, plans)
        logger.info(f"{self.title} rendered: {len(plans)} page(s)")
        return data

    def plan(self, payload: MeasurementProtocol | Mapping[str, Any]) -> list[PagePlan]:
        """One page plan per campaign"""
        protocol = MeasurementProtocol.coerce(payload)
        messungen = protocol.resolve_messungen()
        if self.layout.page_size is None:
            raise LayoutError("Protocol layout has no page_size")
        width, height = self.layout.page_size

        plans = []
        for i, measurement in enumerate(messungen):
            plan = PagePlan(width=width, height=height)
            painter = LayoutPainter(plan, self.layout, self.config)
            self._draw_frame(painter, measurement)
            self._draw_header(painter, measurement, f"{i + 1}/{len(messungen)}")
            self._draw_rows(painter, measurement)
            plans.append(plan)
        return plans

    # --- static parts ---

    def _draw_frame(self, painter: LayoutPainter, measurement: Measurement) -> None:
        font = self.config.render.font_name
        bold = self.config.render.bold_font_name
        plan = painter.plan

        title = self.layout.anchor("title")
        if title is not None:
            plan.add_text(self.title, title.x, title.y, title.size or 34, bold, BLACK)

        for label in self.layout.labels:
            plan.add_text(label.text, label.x, label.y, label.size, bold if label.bold else font, BLACK)

        flow = self.layout.anchor("flowLabel")
        if flow is not None:
            plan.add_text(self.flow_label(measurement.flow_rate_unit), flow.x, flow.y, flow.size or 10, font, BLACK)

        for frame in self.layout.frames:
            plan.add_frame(frame.x, frame.y, frame.width, frame.height)
        for x1, y1, x2, y2 in self.layout.rules:
            plan.add_line(x1, y1, x2, y2)

        self._draw_grid(plan)

    def _draw_grid(self, plan: PagePlan) -> None:
        """Table outline, column separators and one rule per row"""
        columns: list[float] = self.layout.option("grid_columns", [])
        if len(columns) < 2:
            return
        top = float(self.layout.option("grid_top", 404))
        bottom = float(self.layout.option("grid_bottom", 42))
        table = self.layout.table("measurements")
        row_height = table.row_height if table is not None else 20.0

        left, right = columns[0], columns[-1]
        plan.add_frame(left, bottom, right - left, top - bottom)
        for x in columns[1:-1]:
            plan.add_line(x, bottom, x, top)
        y = top - row_height
        while y >= bottom:
            plan.add_line(left, y, right, y)
            y -= row_height

    def flow_label(self, unit: str) -> str:
        labels = self.layout.option("flow_labels", {})
        return labels.get(unit.strip().lower(), self.layout.option("default_flow_label", "l/s"))

    # --- values ---

    def _value(self, painter: LayoutPainter, name: str, value: str) -> None:
        anchor = self.layout.anchor(name)
        if anchor is None:
            return
        painter.plan.add_text(value.strip(), anchor.x, anchor.y, anchor.size or 11,
                              self.config.render.font_name, self.value_color)

    @property
    def value_color(self) -> tuple[float, float, float]:
        return as_color(self.layout.option("value_color"), tuple(self.config.render.text_color))

    def _draw_header(self, painter: LayoutPainter, measurement: Measurement, sheet_default: str) -> None:
        values = measurement.header_values()
        for name in HEADER_FIELDS:
            self._value(painter, name, values.get(name, ""))
        self._value(painter, "blatt", measurement.blatt.strip() or sheet_default)

    def _draw_rows(self, painter: LayoutPainter, measurement: Measurement) -> None:
        table = self.layout.table("measurements")
        if table is None:
            raise LayoutError("Protocol layout has no measurements table")
        cursor = RowCursor.for_table(table, painter.plan.height, self.layout.origin)

        self._draw_block(painter, table, cursor, measurement.primary_rows)

        # one blank slot, then the marker (dropped once out of bounds)
        cursor.skip()
        marker_y = cursor.marker()
        marker = table.column("marker")
        if marker_y is not None and marker is not None:
            painter.plan.add_text(
                self.layout.option("marker_label", "Wiederanstieg ab GOK"),
                marker.x, marker_y, marker.size or table.size,
                self.config.render.bold_font_name, BLACK,
            )

        self._draw_block(painter, table, cursor, measurement.secondary_rows)

    def _draw_block(
        self,
        painter: LayoutPainter,
        table: TableLayout,
        cursor: RowCursor,
        rows: Sequence[MeasurementRow],
    ) -> None:
        """Rows of one block; the flow value is drawn for the first row that has one"""
        flow_written = False
        for row in rows:
            y = cursor.next_row()
            if y is None:
                break
            self._cell(painter, table, "uhrzeit", y, row.uhrzeit)
            self._cell(painter, table, "abstichmassAbGok", y, row.abstichmass_ab_gok)
            if not flow_written and row.i_per_sec.strip():
                self._cell(painter, table, "iPerSec", y, row.i_per_sec)
                flow_written = True
            self._draw_remarks(painter, table, y, row.bemerkungen)

    def _cell(self, painter: LayoutPainter, table: TableLayout, column: str, y: float, value: str) -> None:
        col = table.column(column)
        if col is None:
            return
        painter.plan.add_text(value.strip(), col.x, y + col.dy, col.size or table.size,
                              self.config.render.font_name, self.value_color)

    def _draw_remarks(self, painter: LayoutPainter, table: TableLayout, y: float, text: str) -> None:
        col = table.column("bemerkungen")
        if col is None:
            return
        lines = wrap_by_chars(text.strip(), col.max_chars or 34, int(self.layout.option("remarks_lines", 2)))
        step = float(self.layout.option("remarks_line_height", 9))
        for i, line in enumerate(lines):
            painter.plan.add_text(line, col.x, y - i * step, col.size or table.size,
                                  self.config.render.font_name, self.value_color)

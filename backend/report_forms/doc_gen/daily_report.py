"""
Tagesbericht renderer - daily drilling report drawn onto the landscape template

Responsibilities:
1. Load the portrait template and present it rotated as a landscape page
2. Draw header fields, weekday mark, weather highlights and free-text blocks
3. Draw the repeating tables within their row caps (overflow is dropped)
4. Allocate a continuation page for weekend duty rows

Dependencies:
- doc_gen.pdf_engine: page plans, template composition
- doc_gen.derivation: weekday, flag cells, weekend entries
- config/layouts.yaml: documents.tagesbericht

Test points:
- test_drilling_rows_capped: 7 rows in, 5 rows drawn
- test_weekday_mark: one mark per valid date, none for a bad date
- test_weather_highlights: conditions are boxes, never glyphs
- test_continuation_page: second page only when a weekend row qualifies
- test_render_twice_identical: byte-identical output
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

from ..config import DocumentLayout, RuntimeConfig, TableLayout, get_config, load_layouts
from ..interfaces import IPdfOverlayRenderer
from ..models import DailyReport, DerivedFields, HeaderField
from .derivation import DerivationEngine
from .pagination import RowCursor, visible_rows
from .pdf_engine import LayoutPainter, PagePlan, PdfOverlayEngine

logger = logging.getLogger(__name__)

DOC_TYPE = "tagesbericht"

# header repeated on the continuation page
CONTINUATION_HEADER = (HeaderField.DATE, HeaderField.PROJECT, HeaderField.CLIENT)

WORKER_FLAGS = ("ausloeseT", "ausloeseN")
PEGEL_CLOSURES = (
    "sebaKap", "boKap", "hydrKap", "fernGask",
    "passavant", "betonSockel", "abstHalter", "klarpump",
)

_BACKFILL_FIELDS = {
    "ton_von", "ton_bis", "bohrgut_von", "bohrgut_bis",
    "zement_bent_von", "zement_bent_bis", "beton_von", "beton_bis",
}


def table_rows(
    painter: LayoutPainter,
    name: str,
    rows: Sequence[Any],
    cap: int | None = None,
) -> Iterator[tuple[TableLayout, int, Any, float]]:
    """
    Visible rows of a table with their y on the page

    The effective cap is the table's max_rows, lowered by *cap* when given.
    Unmapped tables yield nothing.
    """
    table = painter.layout.table(name)
    if table is None:
        return
    limit = table.max_rows
    if cap is not None:
        limit = cap if limit is None else min(limit, cap)

    cursor = RowCursor.for_table(table, painter.plan.height, painter.layout.origin)
    for index, row in enumerate(visible_rows(rows, limit)):
        y = cursor.next_row()
        if y is None:
            continue
        yield table, index, row, y


def draw_row_values(painter: LayoutPainter, table: TableLayout, y: float, values: Mapping[str, Any]) -> None:
    """Draw every text value whose key is a column of *table*"""
    for column in table.columns:
        value = values.get(column)
        if isinstance(value, str):
            painter.cell(table, column, y, value)


class DailyReportRenderer(IPdfOverlayRenderer):
    """Tagesbericht renderer"""

    doc_type = DOC_TYPE

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        layout_path: str | Path | None = None,
        engine: PdfOverlayEngine | None = None,
    ):
        self.config = config or get_config()
        self.layouts = load_layouts(layout_path or self.config.layout_path)
        self.layout: DocumentLayout = self.layouts.get_document_layout(self.doc_type)
        self.engine = engine or PdfOverlayEngine(self.config)
        self.derivation = DerivationEngine()

    def render(self, report: DailyReport | Mapping[str, Any]) -> bytes:
        """Render the report onto the template (1 or 2 pages)"""
        report = DailyReport.coerce(report)

        # 1. template
        template, path = self.engine.load_template(self.layout.templates)
        width, height = self.engine.presented_size(template, self.layout.rotate)

        # 2. page plans
        plans = self.plan(report, width, height)

        # 3. compose
        data = self.engine.compose(template, plans, self.layout.rotate)
        logger.info(f"Tagesbericht rendered: {len(plans)} page(s), template {path.name}")
        return data

    def plan(self, report: DailyReport | Mapping[str, Any], width: float, height: float) -> list[PagePlan]:
        """Draw operations of every output page"""
        report = DailyReport.coerce(report)
        derived = self.derivation.compute(report)

        primary = PagePlan(width=width, height=height)
        self.draw_page(LayoutPainter(primary, self.layout, self.config), report, derived)
        plans = [primary]

        if derived.needs_continuation_page:
            continuation = PagePlan(width=width, height=height)
            self._draw_continuation(LayoutPainter(continuation, self.layout, self.config), report, derived)
            plans.append(continuation)
        return plans

    def draw_page(self, painter: LayoutPainter, report: DailyReport, derived: DerivedFields) -> None:
        """Primary page (also used by the calibration render)"""
        self._draw_header(painter, report, derived)
        self._draw_times(painter, report)
        self._draw_workers(painter, report)
        self._draw_drilling(painter, report, derived)
        self._draw_umsetzen(painter, report)
        self._draw_pegel(painter, report)
        self._draw_signatures(painter, report)

    # --- sections ---

    def _draw_header(self, painter: LayoutPainter, report: DailyReport, derived: DerivedFields) -> None:
        for name, value in report.header_values().items():
            painter.field(name, value)
        for name, value in report.multiline_values().items():
            painter.multiline(name, value)

        painter.weekday(derived.weekday_key)
        for condition in report.weather.conditions:
            painter.highlight(condition.strip().lower())

    def _draw_times(self, painter: LayoutPainter, report: DailyReport) -> None:
        for name, rows in (("work_times", report.work_time_rows), ("breaks", report.break_rows)):
            for table, _, row, y in table_rows(painter, name, rows):
                painter.cell(table, "from", y, row.from_)
                painter.cell(table, "to", y, row.to)

        for table, _, row, y in table_rows(painter, "transport", report.transport_rows):
            draw_row_values(painter, table, y, row.model_dump(by_alias=True))

    def _draw_workers(self, painter: LayoutPainter, report: DailyReport) -> None:
        hour_cells = int(self.layout.option("hour_cells", 16))
        hour_step = float(self.layout.option("hour_step", 18))

        for table, _, worker, y in table_rows(painter, "workers", report.workers):
            values = worker.model_dump(by_alias=True)
            draw_row_values(painter, table, y, values)
            for flag in WORKER_FLAGS:
                painter.cell_mark(table, flag, y, bool(values.get(flag)))
            for j, hours in enumerate(worker.stunden[:hour_cells]):
                painter.cell(table, "stunden", y, hours, dx=j * hour_step)

    def _draw_drilling(self, painter: LayoutPainter, report: DailyReport, derived: DerivedFields) -> None:
        for table, i, row, y in table_rows(painter, "drilling", report.table_rows):
            values = row.model_dump(by_alias=True)
            # a verfuellung sub-object overrides the row's own backfill fields
            values.update(row.backfill().model_dump(by_alias=True, include=_BACKFILL_FIELDS))
            values["spt"] = row.spt_text()
            values.update(derived.casing_cells[i])
            values.update(derived.sample_cells[i])
            draw_row_values(painter, table, y, values)

    def _draw_umsetzen(self, painter: LayoutPainter, report: DailyReport) -> None:
        reason_rows = int(self.layout.option("umsetzen_reason_rows", 4))
        for table, i, row, y in table_rows(painter, "umsetzen", report.umsetzen_rows):
            values = row.model_dump(by_alias=True)
            if i >= reason_rows:
                # the last slot has no reason/wait line
                values.pop("begruendung", None)
                values.pop("wartezeit", None)
            draw_row_values(painter, table, y, values)

    def _draw_pegel(self, painter: LayoutPainter, report: DailyReport) -> None:
        for table, _, row, y in table_rows(painter, "pegel", report.pegel_ausbau_rows):
            draw_row_values(painter, table, y, row.model_dump(by_alias=True))

        for table, _, row, y in table_rows(painter, "pegel_closures", report.pegel_ausbau_rows):
            values = row.model_dump(by_alias=True)
            for closure in PEGEL_CLOSURES:
                painter.cell_mark(table, closure, y, bool(values.get(closure)))

    def _draw_signatures(self, painter: LayoutPainter, report: DailyReport) -> None:
        values = report.signatures.model_dump(by_alias=True)
        for name in self.layout.images:
            painter.image(name, values.get(name, ""))

    # --- continuation page ---

    def _draw_continuation(self, painter: LayoutPainter, report: DailyReport, derived: DerivedFields) -> None:
        header = report.header_values()
        for field in CONTINUATION_HEADER:
            painter.field(field.value, header[field.value])
        painter.weekday(derived.weekday_key)

        entries = derived.weekend_entries
        time_rows = int(self.layout.option("weekend_time_rows", 2))
        for table, _, entry, y in table_rows(painter, "work_times", entries, cap=time_rows):
            painter.cell(table, "from", y, entry.from_)
            painter.cell(table, "to", y, entry.to)

        worker_rows = int(self.layout.option("weekend_worker_rows", 3))
        for table, _, entry, y in table_rows(painter, "workers", entries, cap=worker_rows):
            painter.cell(table, "name", y, entry.name)
            painter.cell(table, "wochenendfahrt", y, entry.duration)

        logger.debug(f"Continuation page: {len(entries)} weekend row(s)")


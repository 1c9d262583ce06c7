"""
Rhein-Main-Link renderer - daily report variant on an un-rotated portrait template

Responsibilities:
1. Pick the first parseable template among the candidate file names
2. Header: fitted device text, first work/break time, weekday cross,
   drilling direction highlight, temperature and weather labels, crew
3. Casing and water level blocks with their fallbacks
4. Main drilling table, activity text, lower construction/backfill/SPT table
5. Footer lines, daily check crosses, signatures scaled into their boxes

Dependencies:
- doc_gen.pdf_engine / doc_gen.text_wrap (reportlab font metrics)
- config/layouts.yaml: documents.tagesbericht_rml

Test points:
- test_device_text_fitted: long device names shrink, never below the minimum
- test_casing_fallback: derived from drilling rows when no casing rows exist
- test_blank_main_rows_skipped: empty rows keep their slot but draw nothing
- test_daily_checks_merge: "Bolzen" + "Lager" mark the combined box
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from reportlab.pdfbase.pdfmetrics import stringWidth

from ..config import DocumentLayout, RuntimeConfig, get_config, load_layouts
from ..interfaces import IPdfOverlayRenderer
from ..models import CasingRow, DailyReport, DrillingRow, PegelRow
from .daily_report import draw_row_values, table_rows
from .derivation import WEEKDAY_KEYS, weekday_index
from .pdf_engine import BLACK, LayoutPainter, PagePlan, PdfOverlayEngine
from .text_wrap import fit_font_size

logger = logging.getLogger(__name__)

DOC_TYPE = "tagesbericht_rml"

RAMMKERN = "Rammkernbohrung"
MERGED_CHECK = "Bolzen, Lager"


def casing_rows(report: DailyReport) -> list[CasingRow]:
    """Explicit casing rows, else derived from the drilling rows"""
    if report.verrohrung_rows:
        return list(report.verrohrung_rows)
    return [CasingRow(diameter=row.verrohrt_bis, meters=row.verrohrt_von) for row in report.table_rows]


def split_items(raw: str, separator: str = ",") -> list[str]:
    return [item.strip() for item in raw.split(separator) if item.strip()]


def daily_checks(raw: str) -> set[str]:
    """Checked items of the daily inspection (pipe list, else comma list)"""
    text = raw.strip()
    items = set(split_items(text, "|" if "|" in text else ","))
    if "Bolzen" in items and "Lager" in items:
        items -= {"Bolzen", "Lager"}
        items.add(MERGED_CHECK)
    return items


def ausbau_label(row: PegelRow) -> str:
    """Construction type text of a lower-table row"""
    explicit = row.ausbau_art_type.strip()
    custom = row.ausbau_art_custom.strip()
    if explicit == "stahlaufsatz":
        label = "Stahlaufsatz"
    elif explicit == "vollrohr":
        label = "Vollrohr"
    elif explicit == "individuell":
        label = custom or "Individuell"
    elif row.aufsatz_stahl_von or row.aufsatz_stahl_bis:
        label = "Stahlaufsatz"
    elif row.rohre_pvc_von or row.rohre_pvc_bis:
        label = "Vollrohr"
    else:
        label = custom or "Filter"

    slot_width = row.schlitzweite_sw_mm.strip()
    is_filter = explicit == "filter" or (not explicit and label == "Filter")
    if is_filter and slot_width:
        return f"{label}, SW: {slot_width} mm"
    return label


def spt_blows(row: DrillingRow | None) -> list[str]:
    """The three SPT blow counts of "a/b/c" (missing parts empty)"""
    parts = row.spt.split("/") if row is not None and row.spt else []
    return (parts + ["", "", ""])[:3]


class RhineMainLinkRenderer(IPdfOverlayRenderer):
    """Rhein-Main-Link Tagesbericht renderer"""

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

    def render(self, report: DailyReport | Mapping[str, Any]) -> bytes:
        report = DailyReport.coerce(report)
        template, path = self.engine.load_template(self.layout.templates)
        width, height = self.engine.presented_size(template, self.layout.rotate)

        plans = self.plan(report, width, height)
        data = self.engine.compose(template, plans, self.layout.rotate)
        logger.info(f"Rhein-Main-Link report rendered from {path.name}")
        return data

    def plan(self, report: DailyReport | Mapping[str, Any], width: float, height: float) -> list[PagePlan]:
        report = DailyReport.coerce(report)
        plan = PagePlan(width=width, height=height)
        self.draw_page(LayoutPainter(plan, self.layout, self.config), report)
        return [plan]

    def draw_page(self, painter: LayoutPainter, report: DailyReport) -> None:
        self._draw_header(painter, report)
        self._draw_levels(painter, report)
        self._draw_weather(painter, report)
        self._draw_crew(painter, report)
        self._draw_main_table(painter, report)
        self._draw_lower_table(painter, report)
        self._draw_footer(painter, report)

    # --- header ---

    def _draw_header(self, painter: LayoutPainter, report: DailyReport) -> None:
        painter.field("date", report.date)
        self._draw_device(painter, report.device)
        painter.field("plz", report.plz)
        painter.field("ort", report.ort)

        first_bore = report.bohrung_nr
        if not first_bore and report.table_rows:
            first_bore = report.table_rows[0].bo_nr
        painter.field("bohrungNr", first_bore)
        painter.field("berichtNr", report.bericht_nr)

        if report.work_time_rows:
            painter.field("zeitVon", report.work_time_rows[0].from_)
            painter.field("zeitBis", report.work_time_rows[0].to)
        if report.break_rows:
            painter.field("pauseVon", report.break_rows[0].from_)
            painter.field("pauseBis", report.break_rows[0].to)

        painter.highlight(report.bohrrichtung.strip().lower())

        index = weekday_index(report.date)
        if index is not None:
            painter.weekday(WEEKDAY_KEYS[index])

    def _draw_device(self, painter: LayoutPainter, device: str) -> None:
        """Device name shrunk until it fits the header cell"""
        anchor = self.layout.anchor("device")
        if anchor is None:
            return
        text = painter.clip(device, anchor.max_chars)
        if not text:
            return
        size = fit_font_size(
            text,
            float(self.layout.option("device_max_width", 250)),
            self.config.render.font_name,
            start_size=anchor.size or 11,
            min_size=float(self.layout.option("device_min_size", 7)),
            step=float(self.layout.option("device_size_step", 0.5)),
        )
        painter.text_at(anchor, text, size=size)

    # --- casing / water level ---

    def _draw_levels(self, painter: LayoutPainter, report: DailyReport) -> None:
        casings = casing_rows(report)
        for table, _, row, y in table_rows(painter, "casing", casings):
            draw_row_values(painter, table, y, row.model_dump(by_alias=True))
        if not casings:
            painter.field("verrohrungAbGok", report.verrohrung_ab_gok)

        levels = report.water_level_rows
        for table, _, row, y in table_rows(painter, "water_levels", levels):
            draw_row_values(painter, table, y, row.model_dump(by_alias=True))

        if not levels and report.ruhewasser_vor_arbeitsbeginn_m:
            # rest water level takes the first meter slot
            table = self.layout.table("water_levels")
            column = table.column("meters") if table is not None else None
            if column is not None:
                painter.plan.add_text(
                    painter.clip(report.ruhewasser_vor_arbeitsbeginn_m, 10),
                    column.x,
                    painter.page_y(table.start_y, table.origin),
                    column.size or table.size,
                    self.config.render.font_name,
                    painter.color,
                )

    # --- weather ---

    def _draw_weather(self, painter: LayoutPainter, report: DailyReport) -> None:
        self._draw_temperature(painter, report.weather.temp_min_c, report.weather.temp_max_c)
        painter.field("weather", report.weather.display_label())

    def _draw_temperature(self, painter: LayoutPainter, min_value: str, max_value: str) -> None:
        """ "<min> °C min / <max> °C max", values in the overlay color, units in black"""
        anchor = self.layout.anchor("temperature")
        if anchor is None:
            return
        min_text = painter.clip(min_value, anchor.max_chars)
        max_text = painter.clip(max_value, anchor.max_chars)
        if not min_text and not max_text:
            return

        parts: list[tuple[str, tuple[float, float, float]]] = []
        if min_text:
            parts += [(min_text, painter.color), (" °C min", BLACK)]
        if min_text and max_text:
            parts.append((" / ", BLACK))
        if max_text:
            parts += [(max_text, painter.color), (" °C max", BLACK)]

        font = self.config.render.font_name
        size = anchor.size or 7
        tracking = float(self.layout.option("temperature_tracking", -0.7))
        x = anchor.x
        y = painter.page_y(anchor.y, anchor.origin)
        for text, color in parts:
            painter.plan.add_text(text, x, y, size, font, color)
            x += stringWidth(text, font, size) + tracking

    # --- crew and devices ---

    def _draw_crew(self, painter: LayoutPainter, report: DailyReport) -> None:
        if report.workers:
            painter.field("bohrmeister", report.workers[0].name)

        helpers = [w.name.strip() for w in report.workers[1:] if w.name.strip()]
        for table, _, name, y in table_rows(painter, "helpers", helpers):
            painter.cell(table, "name", y, name)

        devices = set(split_items(report.vehicles or report.geraete))
        for label, anchor in self.layout.mark_group("devices").items():
            if label in devices:
                painter.mark(anchor)

    # --- tables ---

    def _draw_main_table(self, painter: LayoutPainter, report: DailyReport) -> None:
        labels: dict[str, str] = self.layout.option("aufschluss_labels", {})
        default_label = self.layout.option("aufschluss_default", "Spülung")
        two_line_size = float(self.layout.option("two_line_size", 6.5))
        dy_top, dy_bottom = self.layout.option("two_line_dy", [6, -2])

        for table, _, row, y in table_rows(painter, "main", report.table_rows):
            # blank rows keep their slot
            if row.is_blank():
                continue
            method = row.verrohrt_flags[0].strip() if row.verrohrt_flags else ""
            schappe = row.schappe_durchmesser.strip()

            if method == RAMMKERN and schappe:
                painter.cell(table, "aufschluss", y + dy_top, labels.get(RAMMKERN, "Rammkern."), size=two_line_size)
                painter.cell(table, "aufschluss", y + dy_bottom, "Schappe", size=two_line_size)
                painter.cell(table, "krone", y + dy_top, row.bo_nr, size=two_line_size)
                painter.cell(table, "krone", y + dy_bottom, schappe, size=two_line_size)
            else:
                label = labels.get(method) or "/".join(row.verrohrt_flags) or default_label
                painter.cell(table, "aufschluss", y, label)
                painter.cell(table, "krone", y, row.bo_nr)

            painter.cell(table, "tiefeVon", y, row.gebohrt_von)
            painter.cell(table, "tiefeBis", y, row.gebohrt_bis)
            painter.cell(table, "besonderheiten", y, row.hindernis_zeit)

        painter.multiline("otherWork", report.other_work)

    def _draw_lower_table(self, painter: LayoutPainter, report: DailyReport) -> None:
        pegel_dm = next((p.pegel_dm for p in report.pegel_ausbau_rows if p.pegel_dm.strip()), "")
        painter.field("pegelDm", pegel_dm)

        drilling = report.table_rows
        for table, i, row, y in table_rows(painter, "lower", report.pegel_ausbau_rows):
            if row.is_blank():
                continue
            drill = drilling[i] if i < len(drilling) else None
            blows = spt_blows(drill)
            values = {
                "ausbauVon": row.filter_von,
                "ausbauBis": row.filter_bis,
                "ausbauRohr": ausbau_label(row),
                "verfVon": row.ton_von,
                "verfBis": row.ton_bis,
                "verfMaterial": row.filterkies_koernung,
                "sptVon": drill.gebohrt_von if drill else "",
                "sptBis": drill.gebohrt_bis if drill else "",
                "sptA": blows[0],
                "sptB": blows[1],
                "sptC": blows[2],
            }
            draw_row_values(painter, table, y, values)

    # --- footer ---

    def _draw_footer(self, painter: LayoutPainter, report: DailyReport) -> None:
        painter.field("besucher", report.besucher)
        painter.field("sheVorfaelle", report.she_vorfaelle)
        painter.multiline("toolBoxTalks", report.tool_box_talks)

        checks = daily_checks(report.taegliche_ueberpruefung_bg)
        for label, anchor in self.layout.mark_group("daily_checks").items():
            if label in checks:
                painter.mark(anchor)

        values = report.signatures.model_dump(by_alias=True)
        for name in self.layout.images:
            painter.image(name, values.get(name, ""))

"""
Template probe - page metadata and calibration renders

Responsibilities:
1. Report size and rotation of template pages (per document type or file)
2. Calibration render: the presented page (rotated like production), an
   optional record, a coordinate grid and labelled point markers

Dependencies:
- pypdf: page boxes and /Rotate
- doc_gen renderers: the optional record is planned by the production code

Test points:
- test_describe_template: size of the generated fixture template
- test_calibrate_grid: grid lines and labels on the presented page
- test_calibrate_markers: red markers with their labels

Production renderers never draw grid or markers; only this module does.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..config import RuntimeConfig, get_config, load_layouts, resolve_y
from ..interfaces import ITemplateProbe, LayoutError, TemplateNotFoundError, TemplateReadError
from ..models import CalibrationMarker, DailyReport, DocumentType, PageInfo
from .daily_report import DailyReportRenderer
from .pdf_engine import PagePlan, PdfOverlayEngine
from .protocol_pdf import ProtocolPdfRenderer
from .rml_report import RhineMainLinkRenderer

logger = logging.getLogger(__name__)

GRID_COLOR = (0.75, 0.78, 0.82)
GRID_LABEL_COLOR = (0.42, 0.45, 0.5)
MARKER_COLOR = (0.85, 0.0, 0.0)


def layout_key(doc_type: DocumentType | str) -> str:
    """Key of the PDF layout behind a document type"""
    doc_type = DocumentType(doc_type)
    if doc_type.is_sheet:
        raise LayoutError(f"{doc_type.value} is a workbook, it has no PDF page to probe")
    if doc_type.is_protocol_pdf:
        return "protocol"
    return doc_type.value


class TemplateProbe(ITemplateProbe):
    """Read-only template introspection"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        layout_path: str | Path | None = None,
        engine: PdfOverlayEngine | None = None,
    ):
        self.config = config or get_config()
        self.layout_path = layout_path
        self.layouts = load_layouts(layout_path or self.config.layout_path)
        self.engine = engine or PdfOverlayEngine(self.config)

    # --- metadata ---

    def describe(self, doc_type: DocumentType | str) -> list[PageInfo]:
        """Page info of every existing template file of a document type"""
        layout = self.layouts.get_document_layout(layout_key(doc_type))
        if not layout.templates:
            # generated document: the page size comes from the layout
            width, height = layout.page_size or (0.0, 0.0)
            return [PageInfo(file="(generated)", width=width, height=height)]

        infos: list[PageInfo] = []
        for name in layout.templates:
            path = self.config.template_path(name)
            if path.exists():
                infos.extend(self.describe_file(path))
        if not infos:
            raise TemplateNotFoundError(f"No template file found for {DocumentType(doc_type).value}")
        return infos

    def describe_file(self, path: Path) -> list[PageInfo]:
        """Page info of every page of a PDF file"""
        path = Path(path)
        if not path.exists():
            raise TemplateNotFoundError(f"File not found: {path}")
        try:
            reader = PdfReader(str(path))
            pages = list(reader.pages)
        except (PdfReadError, ValueError, KeyError, OSError) as e:
            raise TemplateReadError(f"Cannot read PDF {path}: {e}") from e

        infos = []
        for index, page in enumerate(pages):
            box = page.mediabox
            infos.append(
                PageInfo(
                    file=path.name,
                    page_index=index,
                    width=float(box.width),
                    height=float(box.height),
                    rotation=int(page.rotation or 0),
                )
            )
        return infos

    # --- calibration ---

    def calibrate(
        self,
        doc_type: DocumentType | str,
        grid_step: float | None = None,
        markers: list[CalibrationMarker] | None = None,
        report: DailyReport | Mapping[str, Any] | None = None,
    ) -> bytes:
        """Presented page with optional record, grid and markers"""
        doc_type = DocumentType(doc_type)
        layout = self.layouts.get_document_layout(layout_key(doc_type))

        if layout.templates:
            template, path = self.engine.load_template(layout.templates)
            width, height = self.engine.presented_size(template, layout.rotate)
            source = path.name
        elif layout.page_size is not None:
            template = None
            width, height = layout.page_size
            source = "(generated)"
        else:
            raise LayoutError(f"Layout of {doc_type.value} has neither template nor page_size")

        plan = PagePlan(width=width, height=height)
        if report is not None:
            plan = self._record_plan(doc_type, report, width, height)
        if grid_step and grid_step > 0:
            self.draw_grid(plan, grid_step, layout.origin)
        for marker in markers or []:
            self.draw_marker(plan, marker, origin=layout.origin)

        logger.info(
            f"Calibration page for {doc_type.value} ({source}): grid={grid_step or 'off'}, "
            f"markers={len(markers or [])}"
        )
        return self.engine.compose(template, [plan], layout.rotate)

    def _record_plan(
        self,
        doc_type: DocumentType,
        record: DailyReport | Mapping[str, Any],
        width: float,
        height: float,
    ) -> PagePlan:
        """First page of the production plan for *record*"""
        layout_path = self.layout_path
        if doc_type == DocumentType.TAGESBERICHT:
            renderer = DailyReportRenderer(self.config, layout_path, self.engine)
            return renderer.plan(record, width, height)[0]
        if doc_type == DocumentType.TAGESBERICHT_RML:
            renderer = RhineMainLinkRenderer(self.config, layout_path, self.engine)
            return renderer.plan(record, width, height)[0]
        renderer = ProtocolPdfRenderer(doc_type.value, self.config, layout_path, self.engine)
        return renderer.plan(record)[0]

    @staticmethod
    def draw_grid(plan: PagePlan, step: float, origin: str = "bottom") -> None:
        """Coordinate grid, x labels along the top edge, y labels on the left

        y labels read in the layout origin, so a reading goes into layouts.yaml as is.
        """
        x = 0.0
        while x <= plan.width:
            plan.add_line(x, 0, x, plan.height, width=0.35, color=GRID_COLOR)
            plan.add_text(f"{x:g}", x + 2, plan.height - 12, 8, color=GRID_LABEL_COLOR)
            x += step
        y = 0.0
        while y <= plan.height:
            page_y = resolve_y(y, origin, plan.height)
            label_y = page_y - 9 if origin == "top" else page_y + 2
            plan.add_line(0, page_y, plan.width, page_y, width=0.35, color=GRID_COLOR)
            plan.add_text(f"{y:g}", 4, label_y, 8, color=GRID_LABEL_COLOR)
            y += step

    @staticmethod
    def draw_marker(plan: PagePlan, marker: CalibrationMarker, arm: float = 4.0, origin: str = "bottom") -> None:
        """Red cross at the point (given in the layout origin) and its label"""
        x = marker.x
        y = resolve_y(marker.y, origin, plan.height)
        plan.add_line(x - arm, y, x + arm, y, width=0.8, color=MARKER_COLOR)
        plan.add_line(x, y - arm, x, y + arm, width=0.8, color=MARKER_COLOR)
        plan.add_text(marker.text(), x + arm + 2, y + 2, 7, color=MARKER_COLOR)

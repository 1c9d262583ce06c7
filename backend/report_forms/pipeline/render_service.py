"""
Render service - single entry point for all document types

Responsibilities:
1. Dispatch a record to the renderer of its DocumentType
2. Wrap the result in a RenderOutcome (bytes, content type, file name)
3. Turn structural failures into a failed outcome with an HTTP-like status
4. Log every call

Test points:
- test_render_tagesbericht_outcome: content type, page count, file name
- test_missing_worksheet_404: WorksheetNotFoundError -> status 404
- test_missing_template_500: TemplateNotFoundError -> status 500
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Mapping

from ..config import RuntimeConfig, get_config
from ..doc_gen import (
    DailyReportRenderer,
    PdfOverlayEngine,
    ProtocolPdfRenderer,
    RhineMainLinkRenderer,
    SheetOverlayRenderer,
)
from ..doc_gen.pdf_engine import page_count
from ..interfaces import (
    LayoutError,
    RenderError,
    ReportFormsError,
    TemplateNotFoundError,
    TemplateReadError,
    WorksheetNotFoundError,
)
from ..models import DocumentType, RenderOutcome

logger = logging.getLogger(__name__)

# error class -> (error_code, status); first match wins
ERROR_CODES: list[tuple[type[ReportFormsError], str, int]] = [
    (WorksheetNotFoundError, "worksheet_not_found", 404),
    (TemplateNotFoundError, "template_not_found", 500),
    (TemplateReadError, "template_invalid", 500),
    (LayoutError, "layout_invalid", 500),
    (RenderError, "render_failed", 500),
    (ReportFormsError, "render_failed", 500),
]


def build_file_name(doc_type: DocumentType, stamp: date, record_id: str | None = None) -> str:
    """Download name: <stem>-<YYYY-MM-DD>[-<id>].<ext>"""
    name = f"{doc_type.file_stem}-{stamp.isoformat()}"
    if record_id:
        name = f"{name}-{record_id}"
    return f"{name}.{doc_type.extension}"


def classify_error(error: ReportFormsError) -> tuple[str, int]:
    for cls, code, status in ERROR_CODES:
        if isinstance(error, cls):
            return code, status
    return "render_failed", 500


class RenderService:
    """Renders records of any DocumentType"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        layout_path: str | Path | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.config = config or get_config()
        self.layout_path = layout_path
        self.today = today or date.today
        self.engine = PdfOverlayEngine(self.config)
        self._renderers: dict[DocumentType, Any] = {}

    def renderer_for(self, doc_type: DocumentType):
        """Renderer instance of a document type (created once per service)"""
        if doc_type not in self._renderers:
            self._renderers[doc_type] = self._create_renderer(doc_type)
        return self._renderers[doc_type]

    def _create_renderer(self, doc_type: DocumentType):
        if doc_type == DocumentType.TAGESBERICHT:
            return DailyReportRenderer(self.config, self.layout_path, self.engine)
        if doc_type == DocumentType.TAGESBERICHT_RML:
            return RhineMainLinkRenderer(self.config, self.layout_path, self.engine)
        if doc_type.is_sheet:
            return SheetOverlayRenderer(doc_type.value, self.config, self.layout_path)
        return ProtocolPdfRenderer(doc_type.value, self.config, self.layout_path, self.engine)

    def render(
        self,
        doc_type: DocumentType | str,
        payload: Mapping[str, Any] | None,
        record_id: str | None = None,
    ) -> RenderOutcome:
        """
        Render one document

        Structural failures (template, worksheet, layout) become a failed
        outcome; any other exception propagates.
        """
        doc_type = DocumentType(doc_type)
        logger.info(f"Render {doc_type.value} requested" + (f" (record {record_id})" if record_id else ""))

        try:
            renderer = self.renderer_for(doc_type)
            content = renderer.render(payload or {})
        except ReportFormsError as e:
            code, status = classify_error(e)
            logger.error(f"Render {doc_type.value} failed [{code}]: {e}")
            return RenderOutcome.failure(doc_type, code, str(e), status)

        pages = None if doc_type.is_sheet else page_count(content)
        outcome = RenderOutcome(
            ok=True,
            doc_type=doc_type,
            content=content,
            content_type=doc_type.content_type,
            file_name=build_file_name(doc_type, self.today(), record_id),
            page_count=pages,
        )
        logger.info(
            f"Render {doc_type.value} done: {outcome.file_name}, {len(content)} bytes"
            + (f", {pages} page(s)" if pages is not None else "")
        )
        return outcome

"""
PDF overlay engine - template loading, page composition, overlay painting

Responsibilities:
1. Load the template PDF (first parseable of the candidate names)
2. Build output pages: template embedded as-is or rotated by 90 degrees
3. Paint the planned draw operations of each page (text, marks, translucent
   highlights, images, rules) and serialize the document

Dependencies:
- pypdf: template reading, page merging/rotation, output writing
- reportlab: overlay drawing (canvas created with invariant=1)

Test points:
- test_presented_size_rotated: width/height swapped for rotate=90
- test_compose_page_count: one output page per plan
- test_missing_template: TemplateNotFoundError
- test_unreadable_template: TemplateReadError
- test_render_twice_identical: byte-identical output
- test_compose_without_plans: RenderError

Renderers never draw directly: they fill a PagePlan (plain data, easy to
inspect in tests), the engine turns plans into PDF bytes.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from io import BytesIO
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel, Field
from pypdf import PageObject, PdfReader, PdfWriter, Transformation
from pypdf.errors import PdfReadError, PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..config import Anchor, DocumentLayout, MarkBox, RuntimeConfig, TableLayout, get_config, resolve_y
from ..interfaces import LayoutError, RenderError, TemplateNotFoundError, TemplateReadError
from .text_wrap import wrap_by_chars, wrap_by_width

logger = logging.getLogger(__name__)

Color = tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)

_DATA_URL_RE = re.compile(r"^data:image/(png|jpe?g);base64,(.+)$", re.IGNORECASE | re.DOTALL)


# ============================================================================
# Draw operations
# ============================================================================

class TextOp(BaseModel):
    kind: Literal["text"] = "text"
    text: str
    x: float
    y: float
    size: float
    font: str | None = None
    color: Color | None = None
    char_space: float = 0.0


class HighlightOp(BaseModel):
    """Translucent filled rectangle"""
    kind: Literal["highlight"] = "highlight"
    x: float
    y: float
    width: float
    height: float
    color: Color | None = None
    opacity: float = 0.3


class ImageOp(BaseModel):
    kind: Literal["image"] = "image"
    name: str
    data: bytes
    x: float
    y: float
    width: float
    height: float
    fit: bool = False


class LineOp(BaseModel):
    kind: Literal["line"] = "line"
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 1.0
    color: Color = BLACK


class FrameOp(BaseModel):
    """Outlined rectangle"""
    kind: Literal["frame"] = "frame"
    x: float
    y: float
    width: float
    height: float
    line_width: float = 1.0
    color: Color = BLACK


DrawOp = Union[TextOp, HighlightOp, ImageOp, LineOp, FrameOp]


class PagePlan(BaseModel):
    """Draw operations of one output page (page space, bottom-left origin)"""
    width: float
    height: float
    ops: list[DrawOp] = Field(default_factory=list)

    def add_text(
        self,
        text: str,
        x: float,
        y: float,
        size: float,
        font: str | None = None,
        color: Color | None = None,
        char_space: float = 0.0,
    ) -> None:
        """Queue a text run (empty text draws nothing)"""
        if not text:
            return
        self.ops.append(TextOp(text=text, x=x, y=y, size=size, font=font, color=color, char_space=char_space))

    def add_highlight(self, x: float, y: float, width: float, height: float, opacity: float,
                      color: Color | None = None) -> None:
        self.ops.append(HighlightOp(x=x, y=y, width=width, height=height, opacity=opacity, color=color))

    def add_image(self, name: str, data: bytes, x: float, y: float, width: float, height: float,
                  fit: bool = False) -> None:
        self.ops.append(ImageOp(name=name, data=data, x=x, y=y, width=width, height=height, fit=fit))

    def add_line(self, x1: float, y1: float, x2: float, y2: float, width: float = 1.0,
                 color: Color = BLACK) -> None:
        self.ops.append(LineOp(x1=x1, y1=y1, x2=x2, y2=y2, width=width, color=color))

    def add_frame(self, x: float, y: float, width: float, height: float, line_width: float = 1.0,
                  color: Color = BLACK) -> None:
        self.ops.append(FrameOp(x=x, y=y, width=width, height=height, line_width=line_width, color=color))

    # --- inspection helpers ---

    def texts(self) -> list[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]

    def text_ops(self) -> list[TextOp]:
        return [op for op in self.ops if isinstance(op, TextOp)]

    def highlights(self) -> list[HighlightOp]:
        return [op for op in self.ops if isinstance(op, HighlightOp)]

    def images(self) -> list[ImageOp]:
        return [op for op in self.ops if isinstance(op, ImageOp)]

    def find_text(self, text: str) -> list[TextOp]:
        return [op for op in self.text_ops() if op.text == text]


def decode_data_url(value: str) -> bytes | None:
    """Bytes of a PNG/JPEG data URL, None when the value is not one"""
    m = _DATA_URL_RE.match((value or "").strip())
    if not m:
        return None
    try:
        return base64.b64decode(m.group(2), validate=False)
    except (binascii.Error, ValueError):
        return None


# ============================================================================
# Layout painter
# ============================================================================

class LayoutPainter:
    """Resolves layout entries against one page plan"""

    def __init__(self, plan: PagePlan, layout: DocumentLayout, config: RuntimeConfig):
        self.plan = plan
        self.layout = layout
        self.render = config.render

    @property
    def color(self) -> Color:
        return tuple(self.render.text_color)

    def page_y(self, y: float, origin: str | None = None) -> float:
        return resolve_y(y, origin or self.layout.origin, self.plan.height)

    def clip(self, value: str, max_chars: int | None) -> str:
        return value[:max_chars] if max_chars else value

    def text_at(self, anchor: Anchor, value: str, size: float | None = None, dy: float = 0.0) -> None:
        text = self.clip(value, anchor.max_chars)
        y = self.page_y(anchor.y, anchor.origin) + dy
        self.plan.add_text(text, anchor.x, y, size or anchor.size or 10, self.render.font_name, self.color)

    def field(self, name: str, value: str) -> bool:
        """Draw a scalar field; unmapped fields are skipped"""
        anchor = self.layout.anchor(name)
        if anchor is None:
            return False
        self.text_at(anchor, value)
        return True

    def mark(self, anchor: Anchor) -> None:
        size = anchor.size or self.layout.option("mark_size", 12)
        self.text_at(anchor, self.render.mark_text, size=size)

    def weekday(self, key: str | None) -> None:
        if key is None:
            return
        anchor = self.layout.weekday_marks.get(key)
        if anchor is not None:
            self.mark(anchor)

    def highlight(self, name: str) -> bool:
        box = self.layout.highlights.get(name)
        if box is None:
            return False
        self.highlight_box(box)
        return True

    def highlight_box(self, box: MarkBox) -> None:
        y = self.page_y(box.y, box.origin)
        self.plan.add_highlight(box.x, y, box.width, box.height, self.render.highlight_opacity, self.color)

    def cell(self, table: TableLayout, column: str, y: float, value: str, size: float | None = None,
             dx: float = 0.0) -> None:
        """Draw *value* in a table column at row y (page space)"""
        col = table.column(column)
        if col is None:
            return
        max_chars = col.max_chars if col.max_chars is not None else table.max_chars
        text = self.clip(value, max_chars)
        self.plan.add_text(text, col.x + dx, y + col.dy, size or col.size or table.size,
                           self.render.font_name, self.color)

    def cell_mark(self, table: TableLayout, column: str, y: float, on: bool) -> None:
        if on:
            self.cell(table, column, y, self.render.mark_text)

    def multiline(self, name: str, value: str) -> None:
        """Free text block: wrapped by width when the field has one, else by characters"""
        field = self.layout.multiline.get(name)
        if field is None:
            return
        if field.max_width is not None:
            lines = wrap_by_width(value, field.max_width, self.render.font_name, field.size)
        else:
            lines = wrap_by_chars(value, field.max_chars, field.max_lines)
        top = self.page_y(field.y, field.origin)
        bottom = None if field.bottom_y is None else self.page_y(field.bottom_y, field.origin)
        for i, line in enumerate(lines[: field.max_lines]):
            y = top - i * field.line_height
            if bottom is not None and y < bottom:
                break
            self.plan.add_text(self.clip(line, field.max_chars), field.x, y, field.size,
                               self.render.font_name, self.color)

    def image(self, name: str, data_url: str) -> None:
        """Signature image from a data URL (skipped when absent or not decodable)"""
        box = self.layout.images.get(name)
        if box is None or not data_url.strip():
            return
        data = decode_data_url(data_url)
        if data is None:
            logger.warning(f"Skipping image {name}: not a PNG/JPEG data URL")
            return
        y = self.page_y(box.y, box.origin)
        self.plan.add_image(name, data, box.x, y, box.width, box.height, fit=box.fit)


# ============================================================================
# Engine
# ============================================================================

class PdfOverlayEngine:
    """Composes template pages and overlays into a PDF document"""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or get_config()

    # --- templates ---

    def load_template(self, candidates: list[str]) -> tuple[PageObject, Path]:
        """
        First page of the first parseable template among *candidates*

        Raises:
            TemplateNotFoundError: none of the files exists
            TemplateReadError: files exist but none can be parsed
        """
        if not candidates:
            raise LayoutError("Document layout lists no template file")

        existing: list[Path] = []
        last_error: Exception | None = None
        for name in candidates:
            path = self.config.template_path(name)
            if not path.exists():
                continue
            existing.append(path)
            try:
                reader = PdfReader(str(path))
                if len(reader.pages) == 0:
                    raise PdfReadError("document has no pages")
                return reader.pages[0], path
            except (PdfReadError, ValueError, KeyError, OSError) as e:
                logger.warning(f"Template unreadable, trying next candidate: {path} ({e})")
                last_error = e

        if not existing:
            tried = ", ".join(str(self.config.template_path(n)) for n in candidates)
            raise TemplateNotFoundError(f"Template PDF not found. Tried: {tried}")
        raise TemplateReadError(f"Template PDF invalid: {existing[0]} ({last_error})")

    @staticmethod
    def source_size(page: PageObject) -> tuple[float, float]:
        box = page.mediabox
        return float(box.width), float(box.height)

    @classmethod
    def presented_size(cls, page: PageObject, rotate: int) -> tuple[float, float]:
        """Output page size: template size, swapped for a quarter turn"""
        width, height = cls.source_size(page)
        if rotate % 180 == 90:
            return height, width
        return width, height

    def new_plan(self, page: PageObject, rotate: int) -> PagePlan:
        width, height = self.presented_size(page, rotate)
        return PagePlan(width=width, height=height)

    # --- composition ---

    def compose(self, template: PageObject | None, plans: list[PagePlan], rotate: int = 0) -> bytes:
        """Build one output page per plan and serialize the document

        Raises:
            RenderError: no plans, or the template page cannot be merged
        """
        if not plans:
            raise RenderError("Nothing to compose: no page plans")

        writer = PdfWriter()
        try:
            for plan in plans:
                if template is None:
                    page = writer.add_blank_page(width=plan.width, height=plan.height)
                else:
                    page = self._add_template_page(writer, template, rotate)
                overlay = self._paint(plan)
                if overlay is not None:
                    page.merge_page(overlay)

            buf = BytesIO()
            writer.write(buf)
        except PyPdfError as e:
            raise RenderError(f"PDF composition failed: {e}") from e
        return buf.getvalue()

    def _add_template_page(self, writer: PdfWriter, template: PageObject, rotate: int) -> PageObject:
        src_w, src_h = self.source_size(template)
        box = template.mediabox
        to_origin = Transformation().translate(tx=-float(box.left), ty=-float(box.bottom))

        if rotate % 360 == 90:
            page = writer.add_blank_page(width=src_h, height=src_w)
            # quarter turn counter-clockwise, shifted back into the page by its new width
            ctm = to_origin.rotate(90).translate(tx=src_h, ty=0)
        elif rotate % 360 == 0:
            page = writer.add_blank_page(width=src_w, height=src_h)
            ctm = to_origin
        else:
            raise LayoutError(f"Unsupported template rotation: {rotate}")

        page.merge_transformed_page(template, ctm)
        return page

    def _paint(self, plan: PagePlan) -> PageObject | None:
        if not plan.ops:
            return None

        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(plan.width, plan.height), invariant=1)
        for op in plan.ops:
            if isinstance(op, TextOp):
                self._paint_text(c, op)
            elif isinstance(op, HighlightOp):
                self._paint_highlight(c, op)
            elif isinstance(op, ImageOp):
                self._paint_image(c, op)
            elif isinstance(op, LineOp):
                c.setStrokeColorRGB(*op.color)
                c.setLineWidth(op.width)
                c.line(op.x1, op.y1, op.x2, op.y2)
            elif isinstance(op, FrameOp):
                c.setStrokeColorRGB(*op.color)
                c.setLineWidth(op.line_width)
                c.rect(op.x, op.y, op.width, op.height, stroke=1, fill=0)
        c.showPage()
        c.save()

        buf.seek(0)
        return PdfReader(buf).pages[0]

    def _paint_text(self, c: canvas.Canvas, op: TextOp) -> None:
        c.setFont(op.font or self.config.render.font_name, op.size)
        c.setFillColorRGB(*(op.color or self.config.render.text_color))
        if op.char_space:
            text = c.beginText(op.x, op.y)
            text.setCharSpace(op.char_space)
            text.textOut(op.text)
            c.drawText(text)
        else:
            c.drawString(op.x, op.y, op.text)

    def _paint_highlight(self, c: canvas.Canvas, op: HighlightOp) -> None:
        c.saveState()
        c.setFillColorRGB(*(op.color or self.config.render.text_color))
        c.setFillAlpha(op.opacity)
        c.rect(op.x, op.y, op.width, op.height, stroke=0, fill=1)
        c.restoreState()

    def _paint_image(self, c: canvas.Canvas, op: ImageOp) -> None:
        try:
            image = ImageReader(BytesIO(op.data))
            img_w, img_h = image.getSize()
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping image {op.name}: cannot decode ({e})")
            return

        x, y, width, height = op.x, op.y, op.width, op.height
        if op.fit and img_w and img_h:
            scale = min(op.width / img_w, op.height / img_h)
            width, height = img_w * scale, img_h * scale
            x = op.x + (op.width - width) / 2
            y = op.y + (op.height - height) / 2
        c.drawImage(image, x, y, width=width, height=height, mask="auto")


def page_count(data: bytes) -> int:
    """Number of pages of a PDF given as bytes"""
    return len(PdfReader(BytesIO(data)).pages)


def extract_page_texts(data: bytes) -> list[str]:
    """Text of every page (used by the CLI summary and tests)"""
    return [page.extract_text() or "" for page in PdfReader(BytesIO(data)).pages]


def as_color(value: Any, default: Color) -> Color:
    """Color tuple from a layout option"""
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return (float(value[0]), float(value[1]), float(value[2]))
    return default

"""
Document generation - overlay renderers for the fixed templates

Submodules:
- derivation: derived fields (weekday, flag cells, weekend duty rows)
- text_wrap: line estimates and wrapping
- pagination: row caps and the row cursor
- pdf_engine: page plans, template composition, overlay painting
- daily_report: Tagesbericht (rotated landscape template)
- rml_report: Tagesbericht Rhein-Main-Link
- protocol_pdf: generated measurement protocol PDF
- sheet_overlay: measurement protocol workbook
- probe: template metadata and calibration renders
"""

from .daily_report import DailyReportRenderer
from .derivation import DerivationEngine
from .pdf_engine import LayoutPainter, PagePlan, PdfOverlayEngine
from .probe import TemplateProbe
from .protocol_pdf import ProtocolPdfRenderer
from .rml_report import RhineMainLinkRenderer
from .sheet_overlay import SheetOverlayRenderer

__all__ = [
    "DerivationEngine",
    "PagePlan",
    "LayoutPainter",
    "PdfOverlayEngine",
    "DailyReportRenderer",
    "RhineMainLinkRenderer",
    "ProtocolPdfRenderer",
    "SheetOverlayRenderer",
    "TemplateProbe",
]

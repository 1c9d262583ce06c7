"""
Module contracts - abstract interfaces of the rendering components

Design rules:
1. Renderers talk to each other through these interfaces, not concrete classes
2. Every interface states its inputs and outputs explicitly
3. Easy to replace with fakes in unit tests

Usage:
    from report_forms.interfaces import IPdfOverlayRenderer

    class MyRenderer(IPdfOverlayRenderer):
        def render(self, report) -> bytes:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from .models import CalibrationMarker, DailyReport, MeasurementProtocol, PageInfo


# ============================================================================
# PDF renderers
# ============================================================================

class IPdfOverlayRenderer(ABC):
    """Renderer that draws a daily report onto a fixed PDF template"""

    @abstractmethod
    def render(self, report: DailyReport | Mapping[str, Any]) -> bytes:
        """
        Render a report record

        Args:
            report: report record (model or raw JSON mapping)

        Returns:
            bytes of the finished PDF document

        Raises:
            TemplateNotFoundError: template asset missing
            TemplateReadError: template asset unreadable
        """
        ...


class IProtocolPdfRenderer(ABC):
    """Renderer for the generated measurement protocol PDF"""

    @abstractmethod
    def render(self, payload: MeasurementProtocol | Mapping[str, Any]) -> bytes:
        """Render one page per measurement campaign"""
        ...


# ============================================================================
# Spreadsheet renderer
# ============================================================================

class ISheetOverlayRenderer(ABC):
    """Renderer that fills a spreadsheet template"""

    @abstractmethod
    def render(self, payload: MeasurementProtocol | Mapping[str, Any]) -> bytes:
        """
        Fill the template workbook

        Args:
            payload: header values plus the two measurement row blocks

        Returns:
            bytes of the finished XLSX workbook

        Raises:
            TemplateNotFoundError: template workbook missing
            WorksheetNotFoundError: target worksheet absent
        """
        ...


# ============================================================================
# Template probe
# ============================================================================

class ITemplateProbe(ABC):
    """Read-only template introspection and calibration output"""

    @abstractmethod
    def describe_file(self, path: Path) -> list[PageInfo]:
        """Page size and rotation of every page in a template file"""
        ...

    @abstractmethod
    def calibrate(
        self,
        doc_type: str,
        grid_step: float | None = None,
        markers: list[CalibrationMarker] | None = None,
        report: DailyReport | Mapping[str, Any] | None = None,
    ) -> bytes:
        """Render the presented template page with grid and/or point markers"""
        ...


# ============================================================================
# Exceptions
# ============================================================================

class ReportFormsError(Exception):
    """Base error"""
    pass


class TemplateNotFoundError(ReportFormsError, FileNotFoundError):
    """Template asset does not exist"""
    pass


class TemplateReadError(ReportFormsError):
    """Template asset exists but cannot be parsed"""
    pass


class WorksheetNotFoundError(ReportFormsError):
    """Required worksheet missing from the template workbook"""

    def __init__(self, sheet_name: str, available: list[str] | None = None):
        self.sheet_name = sheet_name
        self.available = available or []
        super().__init__(f"Worksheet '{sheet_name}' not found in template")


class LayoutError(ReportFormsError):
    """Coordinate map missing or invalid"""
    pass


class RenderError(ReportFormsError):
    """Rendering failed for a structural reason"""
    pass

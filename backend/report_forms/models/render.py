"""
Render models - document types, render outcome, probe results
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

PDF_CONTENT_TYPE = "application/pdf"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class DocumentType(str, Enum):
    """Document types the service can render"""
    TAGESBERICHT = "tagesbericht"
    TAGESBERICHT_RML = "tagesbericht_rml"
    KLARSPUEL = "klarspuel"
    PUMPVERSUCH = "pumpversuch"
    KLARSPUEL_PDF = "klarspuel_pdf"
    PUMPVERSUCH_PDF = "pumpversuch_pdf"

    @property
    def is_sheet(self) -> bool:
        return self in (DocumentType.KLARSPUEL, DocumentType.PUMPVERSUCH)

    @property
    def is_protocol_pdf(self) -> bool:
        return self in (DocumentType.KLARSPUEL_PDF, DocumentType.PUMPVERSUCH_PDF)

    @property
    def content_type(self) -> str:
        return XLSX_CONTENT_TYPE if self.is_sheet else PDF_CONTENT_TYPE

    @property
    def extension(self) -> str:
        return "xlsx" if self.is_sheet else "pdf"

    @property
    def file_stem(self) -> str:
        """Download file name prefix"""
        return {
            DocumentType.TAGESBERICHT: "Tagesbericht",
            DocumentType.TAGESBERICHT_RML: "Tagesbericht-RML",
            DocumentType.KLARSPUEL: "KlarSpuel",
            DocumentType.PUMPVERSUCH: "Pumpversuch",
            DocumentType.KLARSPUEL_PDF: "KlarSpuel",
            DocumentType.PUMPVERSUCH_PDF: "Pumpversuch",
        }[self]


class RenderOutcome(BaseModel):
    """Result of one render call (document bytes or a structured error)"""
    ok: bool
    doc_type: DocumentType
    content: bytes | None = None
    content_type: str | None = None
    file_name: str | None = None
    page_count: int | None = None

    # failure
    error_code: str | None = None
    message: str | None = None
    status: int = 200

    @classmethod
    def failure(cls, doc_type: DocumentType, error_code: str, message: str, status: int) -> RenderOutcome:
        return cls(ok=False, doc_type=doc_type, error_code=error_code, message=message, status=status)


class PageInfo(BaseModel):
    """Dimensions of one template page"""
    file: str
    page_index: int = 0
    width: float
    height: float
    rotation: int = 0


class CalibrationMarker(BaseModel):
    """Labelled point drawn by the calibration render"""
    x: float
    y: float
    label: str = Field("", description="defaults to the coordinates")

    def text(self) -> str:
        return self.label or f"({self.x:g}, {self.y:g})"

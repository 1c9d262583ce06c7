"""
Data model layer - structures shared by all renderers

- DailyReport: record of the Tagesbericht forms
- MeasurementProtocol: pumping / clear-flush protocol payload
- DocumentType / RenderOutcome: service input selector and result
- PageInfo / CalibrationMarker: template probe
"""

from .derived import DerivedFields, WeekendEntry
from .measurement import Measurement, MeasurementProtocol, MeasurementRow
from .render import (
    PDF_CONTENT_TYPE,
    XLSX_CONTENT_TYPE,
    CalibrationMarker,
    DocumentType,
    PageInfo,
    RenderOutcome,
)
from .report import (
    Backfill,
    CasingRow,
    DailyReport,
    DrillingRow,
    HeaderField,
    PegelRow,
    Signatures,
    TextBlockField,
    TimeRange,
    TransportRow,
    UmsetzenRow,
    WaterLevelRow,
    Weather,
    WeekendRow,
    Worker,
    as_flag,
    as_text,
)

__all__ = [
    "DailyReport",
    "HeaderField",
    "TextBlockField",
    "TimeRange",
    "TransportRow",
    "Worker",
    "Backfill",
    "DrillingRow",
    "UmsetzenRow",
    "PegelRow",
    "WeekendRow",
    "WaterLevelRow",
    "CasingRow",
    "Weather",
    "Signatures",
    "as_text",
    "as_flag",
    "Measurement",
    "MeasurementProtocol",
    "MeasurementRow",
    "DerivedFields",
    "WeekendEntry",
    "DocumentType",
    "RenderOutcome",
    "PageInfo",
    "CalibrationMarker",
    "PDF_CONTENT_TYPE",
    "XLSX_CONTENT_TYPE",
]

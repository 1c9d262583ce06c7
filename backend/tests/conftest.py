"""
pytest configuration and shared fixtures

Templates are generated per test (reportlab / openpyxl), so the suite runs
without the real template assets.

Usage:
    def test_something(runtime_config, sample_report):
        data = DailyReportRenderer(runtime_config).render(sample_report)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook
from openpyxl.styles import Alignment
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from report_forms.config import RuntimeConfig

# 1x1 PNG
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def write_template_pdf(path: Path, text: str, pagesize: tuple[float, float] = A4) -> Path:
    """Single-page PDF with a caption, standing in for a template asset"""
    c = canvas.Canvas(str(path), pagesize=pagesize, invariant=1)
    c.setFont("Helvetica", 12)
    c.drawString(40, pagesize[1] - 40, text)
    c.showPage()
    c.save()
    return path


def write_protocol_workbook(path: Path, sheet_name: str = "Tabelle1") -> Path:
    """Protocol workbook with stale values in the table region"""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws["A3"] = "KlarSpül"
    ws["B5"] = "template-bv"
    for row in range(16, 61):
        ws[f"A{row}"] = f"old-{row}"
        ws[f"B{row}"] = "old"
        ws[f"C{row}"] = "stale-c"
        ws[f"E{row}"] = "old-flow"
        ws[f"I{row}"] = "old remark"
    ws["I16"].alignment = Alignment(horizontal="center")
    ws.merge_cells("B40:D40")
    wb.save(path)
    return path


# ============================================================================
# Template fixtures
# ============================================================================

@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Directory with generated Tagesbericht, RML and workbook templates"""
    root = tmp_path / "templates"
    root.mkdir()
    write_template_pdf(root / "tagesbericht_template.pdf", "TEMPLATE TAGESBERICHT")
    write_template_pdf(root / "RML_TB.pdf", "TEMPLATE RML")
    write_protocol_workbook(root / "KlarSpuel.xlsx")
    return root


@pytest.fixture
def empty_templates_dir(tmp_path: Path) -> Path:
    root = tmp_path / "no_templates"
    root.mkdir()
    return root


@pytest.fixture
def template_pdf_factory():
    """write_template_pdf for tests that need extra or replaced PDFs"""
    return write_template_pdf


@pytest.fixture
def workbook_factory():
    """write_protocol_workbook for tests that need another worksheet name"""
    return write_protocol_workbook


@pytest.fixture
def png_data_url() -> str:
    return PNG_DATA_URL


@pytest.fixture
def runtime_config(templates_dir: Path) -> RuntimeConfig:
    """Runtime configuration pointing at the generated templates"""
    return RuntimeConfig(templates_dir=templates_dir)


@pytest.fixture
def empty_config(empty_templates_dir: Path) -> RuntimeConfig:
    return RuntimeConfig(templates_dir=empty_templates_dir)


# ============================================================================
# Payload fixtures
# ============================================================================

@pytest.fixture
def sample_report() -> dict[str, Any]:
    """Daily report record as posted by the form"""
    return {
        "id": "r-1",
        "date": "2024-01-08",
        "project": "Neubau Nordring",
        "client": "Stadtwerke",
        "aNr": "A-77",
        "device": "RB 40",
        "vehicles": "LKW, Kompressor",
        "weather": {"conditions": ["trocken"], "tempMaxC": 12, "tempMinC": 3},
        "workTimeRows": [{"from": "07:00", "to": "16:30"}],
        "breakRows": [{"from": "12:00", "to": "12:30"}],
        "transportRows": [{"from": "Lager", "to": "Baustelle", "km": 35, "time": "0:40"}],
        "workers": [
            {"name": "Max Bohr", "reineArbeitsStd": 8.5, "ausloeseT": True, "stunden": ["1", "1", "1"]},
            {"name": "Eva Helfer", "reineArbeitsStd": 8},
        ],
        "tableRows": [
            {
                "boNr": "B1",
                "gebohrtVon": 0,
                "gebohrtBis": 12.5,
                "verrohrtFlags": ["RB"],
                "probenFlags": ["GP"],
                "spt": "10/12/15",
            },
        ],
        "otherWork": "Baustelle eingerichtet",
        "remarks": "keine",
        "signatures": {"drillerSigPng": PNG_DATA_URL},
    }


@pytest.fixture
def sample_protocol() -> dict[str, Any]:
    """Measurement protocol payload (single campaign)"""
    return {
        "bv": "BV Musterprojekt",
        "bohrungNr": "B-12",
        "blatt": "1",
        "auftragsNr": "DEMO-2026-001",
        "datum": "23.02.2026",
        "ausgefuehrtVon": "Max Mustermann",
        "pumpeneinlaufBeiM": 12.5,
        "ablaufleitungM": "8,20",
        "messstelle": "GWMS-1",
        "hoeheGok": "123,45",
        "flowRateUnit": "lps",
        "grundwasserRows": [
            {"uhrzeit": "0:01", "abstichmassAbGok": "5,20", "iPerSec": "", "bemerkungen": "eins zwei drei vier fünf sechs sieben acht"},
            {"uhrzeit": "0:02", "abstichmassAbGok": "5,25", "iPerSec": "1,2"},
            {"uhrzeit": "0:03", "abstichmassAbGok": "5,30", "iPerSec": "1,5"},
        ],
        "wiederanstiegRows": [
            {"uhrzeit": "0:01", "abstichmassAbGok": "5,10", "iPerSec": "0,8"},
            {"uhrzeit": "0:02", "abstichmassAbGok": "5,00", "iPerSec": "0,9"},
        ],
    }

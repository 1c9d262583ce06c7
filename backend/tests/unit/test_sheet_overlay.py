"""
Measurement protocol workbook renderer unit tests

Run after every change: pytest backend/tests/unit/test_sheet_overlay.py -v
"""

import copy
import time
import warnings
import zipfile
from io import BytesIO

import pytest
from openpyxl import Workbook, load_workbook

from report_forms.doc_gen import SheetOverlayRenderer
from report_forms.doc_gen.sheet_overlay import FIXED_TIMESTAMP, FIXED_ZIP_TIME, clear_cell, set_if_present
from report_forms.interfaces import LayoutError, TemplateNotFoundError, TemplateReadError, WorksheetNotFoundError


def render_sheet(renderer: SheetOverlayRenderer, payload: dict):
    wb = load_workbook(BytesIO(renderer.render(payload)))
    return wb["Tabelle1"]


@pytest.fixture
def klarspuel(runtime_config) -> SheetOverlayRenderer:
    return SheetOverlayRenderer("klarspuel", runtime_config)


@pytest.fixture
def pumpversuch(runtime_config) -> SheetOverlayRenderer:
    return SheetOverlayRenderer("pumpversuch", runtime_config)


class TestCellHelpers:
    def test_set_if_present(self):
        ws = Workbook().active
        ws["A1"] = "template"
        assert not set_if_present(ws, "A1", "   ")
        assert ws["A1"].value == "template"
        assert set_if_present(ws, "A1", " neu ")
        assert ws["A1"].value == "neu"
        assert set_if_present(ws, "A2", 12.5)
        assert ws["A2"].value == "12.5"

    def test_clear_cell_skips_merged(self):
        ws = Workbook().active
        ws["B1"] = "kept"
        ws.merge_cells("B1:D1")
        clear_cell(ws, "C1")
        assert ws["B1"].value == "kept"
        clear_cell(ws, "B1")
        assert ws["B1"].value is None


class TestHeader:
    """Header cells"""

    def test_header_values(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(klarspuel, sample_protocol)
        assert ws["B5"].value == "BV Musterprojekt"
        assert ws["I6"].value == "B-12"
        assert ws["C9"].value == "12.5"
        assert ws["C11"].value == "8,20"
        assert ws["I10"].value == "23.02.2026"

    def test_empty_value_keeps_template_text(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        sample_protocol["bv"] = "  "
        ws = render_sheet(klarspuel, sample_protocol)
        assert ws["B5"].value == "template-bv"

    def test_klarspuel_caption_untouched(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(klarspuel, sample_protocol)
        assert ws["A3"].value == "KlarSpül"
        assert ws["C13"].value is None

    def test_pumpversuch_header(self, pumpversuch: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(pumpversuch, sample_protocol)
        assert ws["A3"].value == "Pumpversuch"
        assert ws["C13"].value == "GWMS-1"
        assert ws["C14"].value == "123,45"
        assert ws["E15"].value == "l/s"

    def test_pumpversuch_unit_label(self, pumpversuch: SheetOverlayRenderer, sample_protocol):
        sample_protocol["flowRateUnit"] = "M3H"
        ws = render_sheet(pumpversuch, sample_protocol)
        assert ws["E15"].value == "m³/h"


class TestTable:
    """Table region: blocks, marker row, once-column, row heights"""

    def test_primary_block(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(klarspuel, sample_protocol)
        assert [ws[f"A{r}"].value for r in (16, 17, 18)] == ["0:01", "0:02", "0:03"]
        assert ws["B18"].value == "5,30"
        assert ws["I16"].value == "eins zwei drei vier fünf sechs sieben acht"

    def test_flow_written_once(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        """The first non-empty flow value of each block only"""
        ws = render_sheet(klarspuel, sample_protocol)
        assert [ws[f"E{r}"].value for r in (16, 17, 18)] == [None, "1,2", None]
        assert [ws[f"E{r}"].value for r in (22, 23)] == ["0,8", None]

    def test_marker_row(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(klarspuel, sample_protocol)
        assert ws["B21"].value == "Wiederanstieg ab GEOK"
        assert ws["C21"].value is None
        assert ws["D21"].value is None
        assert ws["A19"].value is None
        assert ws["A20"].value is None

    def test_pumpversuch_marker_label(self, pumpversuch: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(pumpversuch, sample_protocol)
        assert ws["B21"].value == "Wiederanstieg ab GOK"

    def test_marker_follows_primary_length(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        sample_protocol["grundwasserRows"] = []
        ws = render_sheet(klarspuel, sample_protocol)
        assert ws["B18"].value == "Wiederanstieg ab GEOK"
        assert ws["A19"].value == "0:01"

    def test_secondary_block(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(klarspuel, sample_protocol)
        assert [ws[f"A{r}"].value for r in (22, 23)] == ["0:01", "0:02"]
        assert ws["B23"].value == "5,00"

    def test_no_stale_rows(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        """A shorter payload leaves nothing of the template's old rows"""
        ws = render_sheet(klarspuel, sample_protocol)
        for row in (24, 30, 40, 60):
            assert ws[f"A{row}"].value is None
            assert ws[f"E{row}"].value is None
            assert ws[f"I{row}"].value is None
        assert ws["B40"].value is None

    def test_remarks_row_height(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(klarspuel, sample_protocol)
        assert ws.row_dimensions[16].height == 48
        assert ws.row_dimensions[17].height == 18
        assert ws.row_dimensions[50].height == 18
        assert ws["I16"].alignment.wrap_text
        assert ws["I16"].alignment.vertical == "top"

    def test_remarks_alignment_keeps_horizontal(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        ws = render_sheet(klarspuel, sample_protocol)
        assert ws["I16"].alignment.horizontal == "center"
        assert ws["I17"].alignment.horizontal is None

    def test_no_deprecated_style_calls(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        with warnings.catch_warnings():
            warnings.filterwarnings("error", category=DeprecationWarning, module="report_forms")
            klarspuel.render(sample_protocol)

    def test_first_campaign_only(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        payload = {**sample_protocol, "messungen": [{"bohrungNr": "B-1"}, {"bohrungNr": "B-2"}]}
        ws = render_sheet(klarspuel, payload)
        assert ws["I6"].value == "B-1"

    def test_payload_not_mutated(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        before = copy.deepcopy(sample_protocol)
        klarspuel.render(sample_protocol)
        assert sample_protocol == before

    def test_template_file_untouched(self, klarspuel: SheetOverlayRenderer, sample_protocol, templates_dir):
        klarspuel.render(sample_protocol)
        ws = load_workbook(templates_dir / "KlarSpuel.xlsx")["Tabelle1"]
        assert ws["A16"].value == "old-16"


class TestReproducible:
    """Same payload, same bytes"""

    def test_render_twice_identical(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        first = klarspuel.render(sample_protocol)
        time.sleep(1.1)
        assert klarspuel.render(sample_protocol) == first

    def test_pinned_timestamps(self, klarspuel: SheetOverlayRenderer, sample_protocol):
        data = klarspuel.render(sample_protocol)
        with zipfile.ZipFile(BytesIO(data)) as archive:
            assert {info.date_time for info in archive.infolist()} == {FIXED_ZIP_TIME}
        props = load_workbook(BytesIO(data)).properties
        assert props.modified == FIXED_TIMESTAMP
        assert props.created == FIXED_TIMESTAMP


class TestErrors:
    """Template and worksheet failures"""

    def test_missing_sheet(self, runtime_config, templates_dir, workbook_factory, sample_protocol):
        workbook_factory(templates_dir / "KlarSpuel.xlsx", sheet_name="Daten")
        with pytest.raises(WorksheetNotFoundError) as exc_info:
            SheetOverlayRenderer("klarspuel", runtime_config).render(sample_protocol)
        assert exc_info.value.sheet_name == "Tabelle1"
        assert exc_info.value.available == ["Daten"]

    def test_missing_template(self, empty_config, sample_protocol):
        with pytest.raises(TemplateNotFoundError):
            SheetOverlayRenderer("klarspuel", empty_config).render(sample_protocol)

    def test_invalid_template(self, runtime_config, templates_dir, sample_protocol):
        (templates_dir / "KlarSpuel.xlsx").write_bytes(b"not a workbook")
        with pytest.raises(TemplateReadError):
            SheetOverlayRenderer("klarspuel", runtime_config).render(sample_protocol)

    def test_unknown_sheet_type(self, runtime_config):
        with pytest.raises(LayoutError):
            SheetOverlayRenderer("tagesbericht", runtime_config)

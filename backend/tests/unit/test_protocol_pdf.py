"""
Protocol PDF renderer unit tests
"""

import pytest

from report_forms.doc_gen import ProtocolPdfRenderer
from report_forms.doc_gen.pdf_engine import BLACK, extract_page_texts, page_count
from report_forms.interfaces import LayoutError

VALUE_COLOR = (0.0, 0.35, 0.9)


def rows(count: int, prefix: str = "") -> list[dict]:
    return [{"uhrzeit": f"{prefix}{i}", "abstichmassAbGok": "5,0"} for i in range(count)]


@pytest.fixture
def renderer(runtime_config) -> ProtocolPdfRenderer:
    return ProtocolPdfRenderer("klarspuel_pdf", runtime_config)


class TestFrame:
    """Static page parts"""

    def test_page_and_title(self, renderer: ProtocolPdfRenderer, sample_protocol):
        (plan,) = renderer.plan(sample_protocol)
        assert (plan.width, plan.height) == (842, 595)

        (title,) = plan.find_text("Klarspül-Protokoll")
        assert (title.x, title.y, title.size) == (24, 560, 34)
        assert title.font == "Helvetica-Bold"
        assert title.color == BLACK

    def test_pumpversuch_title(self, runtime_config, sample_protocol):
        (plan,) = ProtocolPdfRenderer("pumpversuch_pdf", runtime_config).plan(sample_protocol)
        assert plan.find_text("Pumpversuch-Protokoll")

    def test_unknown_protocol_type(self, runtime_config):
        with pytest.raises(LayoutError):
            ProtocolPdfRenderer("klarspuel", runtime_config)

    @pytest.mark.parametrize("unit, label", [("lps", "l/s"), ("", "l/s"), ("m3h", "m³/h")])
    def test_flow_label(self, renderer: ProtocolPdfRenderer, sample_protocol, unit, label):
        sample_protocol["flowRateUnit"] = unit
        (plan,) = renderer.plan(sample_protocol)
        (op,) = plan.find_text(label)
        assert (op.x, op.y) == (312, 350)

    def test_labels_and_grid(self, renderer: ProtocolPdfRenderer, sample_protocol):
        (plan,) = renderer.plan(sample_protocol)
        assert plan.find_text("Bemerkungen")
        assert plan.find_text("Höhe GOK")
        assert any(op.kind == "frame" for op in plan.ops)
        assert sum(1 for op in plan.ops if op.kind == "line") > 10


class TestHeader:
    def test_header_values(self, renderer: ProtocolPdfRenderer, sample_protocol):
        (plan,) = renderer.plan(sample_protocol)

        (bv,) = plan.find_text("BV Musterprojekt")
        assert (bv.x, bv.y) == (70, 487)
        assert bv.color == VALUE_COLOR
        assert plan.find_text("GWMS-1")[0].y == 390
        assert plan.find_text("12.5")[0].x == 190

    def test_blatt_from_payload(self, renderer: ProtocolPdfRenderer, sample_protocol):
        (plan,) = renderer.plan(sample_protocol)
        assert [op.text for op in plan.text_ops() if (op.x, op.y) == (472, 468)] == ["1"]

    def test_blatt_default(self, renderer: ProtocolPdfRenderer, sample_protocol):
        """"i/n" when no sheet number is given"""
        del sample_protocol["blatt"]
        sample_protocol["messungen"] = [{"bohrungNr": "B-1"}, {"bohrungNr": "B-2"}, {"bohrungNr": "B-3"}]
        plans = renderer.plan(sample_protocol)

        sheets = [[op.text for op in p.text_ops() if (op.x, op.y) == (472, 468)] for p in plans]
        assert sheets == [["1/3"], ["2/3"], ["3/3"]]
        assert plans[2].find_text("B-3")


class TestRows:
    """Row blocks, marker and flow value"""

    def test_rows_and_marker(self, renderer: ProtocolPdfRenderer, sample_protocol):
        (plan,) = renderer.plan(sample_protocol)

        assert [op.y for op in plan.find_text("0:01")] == [330, 230]
        (marker,) = plan.find_text("Wiederanstieg ab GOK")
        assert (marker.x, marker.y) == (94, 250)
        assert marker.font == "Helvetica-Bold"
        assert marker.color == BLACK

    def test_marker_after_two_rows(self, renderer: ProtocolPdfRenderer, sample_protocol):
        sample_protocol["grundwasserRows"] = rows(2)
        (plan,) = renderer.plan(sample_protocol)
        assert plan.find_text("Wiederanstieg ab GOK")[0].y == 270

    def test_flow_value_once_per_block(self, renderer: ProtocolPdfRenderer, sample_protocol):
        (plan,) = renderer.plan(sample_protocol)
        flows = [(op.text, op.y) for op in plan.text_ops() if op.x == 304]
        assert flows == [("1,2", 310), ("0,8", 230)]

    def test_remarks_wrapped(self, renderer: ProtocolPdfRenderer, sample_protocol):
        (plan,) = renderer.plan(sample_protocol)
        remarks = [(op.text, op.y) for op in plan.text_ops() if op.x == 544]
        assert remarks == [("eins zwei drei vier fünf sechs", 330), ("sieben acht", 321)]

    def test_marker_dropped_below_bound(self, renderer: ProtocolPdfRenderer, sample_protocol):
        sample_protocol["grundwasserRows"] = rows(14)
        (plan,) = renderer.plan(sample_protocol)

        assert plan.find_text("Wiederanstieg ab GOK") == []
        assert [op.y for op in plan.find_text("13")] == [70]
        # secondary rows have no slot left
        assert plan.find_text("0:02") == []

    def test_rows_below_bound_dropped(self, renderer: ProtocolPdfRenderer, sample_protocol):
        sample_protocol["grundwasserRows"] = rows(20, "t")
        (plan,) = renderer.plan(sample_protocol)
        drawn = [op.text for op in plan.text_ops() if op.x == 28 and op.text.startswith("t")]
        assert len(drawn) == 15


class TestRender:
    def test_one_page_per_messung(self, renderer: ProtocolPdfRenderer, sample_protocol):
        sample_protocol["messungen"] = [{"blatt": "1"}, {"blatt": "2"}]
        data = renderer.render(sample_protocol)
        assert page_count(data) == 2
        assert "Protokoll" in extract_page_texts(data)[1]

    def test_empty_payload(self, renderer: ProtocolPdfRenderer):
        assert page_count(renderer.render({})) == 1

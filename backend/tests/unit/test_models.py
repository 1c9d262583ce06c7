"""
Data model unit tests
"""

import pytest
from pydantic import ValidationError

from report_forms.models import (
    CalibrationMarker,
    DailyReport,
    DocumentType,
    DrillingRow,
    HeaderField,
    MeasurementProtocol,
    RenderOutcome,
    Weather,
    as_flag,
    as_text,
)


class TestValueCoercion:
    """JSON scalar normalization"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, ""),
            (True, ""),
            (12, "12"),
            (12.0, "12"),
            (1.5, "1.5"),
            (float("nan"), ""),
            ("5,20", "5,20"),
            ([1], ""),
        ],
    )
    def test_as_text(self, value, expected):
        assert as_text(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(True, True), (0, False), (2, True), ("x", True), ("false", False), (" ", False), (None, False)],
    )
    def test_as_flag(self, value, expected):
        assert as_flag(value) is expected


class TestDailyReport:
    """Tolerant record parsing"""

    def test_parse(self, sample_report):
        report = DailyReport.coerce(sample_report)

        assert report.project == "Neubau Nordring"
        assert report.a_nr == "A-77"
        assert report.weather.temp_max_c == "12"
        assert report.workers[0].ausloese_t is True
        assert report.workers[0].reine_arbeits_std == "8.5"
        assert report.table_rows[0].gebohrt_bis == "12.5"
        assert report.work_time_rows[0].from_ == "07:00"

    def test_coerce_passthrough(self, sample_report):
        report = DailyReport.coerce(sample_report)
        assert DailyReport.coerce(report) is report

    @pytest.mark.parametrize("data", [None, [], "text"])
    def test_coerce_non_mapping(self, data):
        assert DailyReport.coerce(data).table_rows == []

    def test_malformed_lists(self):
        report = DailyReport.coerce(
            {"tableRows": {"boNr": "B1"}, "workers": ["Max", None, {"name": "Eva"}], "signatures": "none"}
        )
        assert report.table_rows == []
        assert [w.name for w in report.workers] == ["", "", "Eva"]
        assert report.signatures.driller_sig_png == ""

    def test_weather_string(self):
        report = DailyReport.coerce({"weather": "sonnig"})
        assert report.weather.display_label() == "sonnig"
        assert Weather(conditions=["trocken", "frost"]).display_label() == "trocken/frost"

    def test_header_values(self, sample_report):
        values = DailyReport.coerce(sample_report).header_values()
        assert set(values) == {field.value for field in HeaderField}
        assert values["aNr"] == "A-77"
        assert values["tempMinC"] == "3"
        assert values["ruhewasserVorArbeitsbeginnM"] == ""

    def test_multiline_values(self, sample_report):
        values = DailyReport.coerce(sample_report).multiline_values()
        assert values == {"vehicles": "LKW, Kompressor", "otherWork": "Baustelle eingerichtet", "remarks": "keine"}

    def test_record_is_read_only(self, sample_report):
        report = DailyReport.coerce(sample_report)
        with pytest.raises(ValidationError):
            report.project = "other"


class TestDrillingRow:
    """Drilling table row helpers"""

    def test_blank(self):
        assert DrillingRow().is_blank()
        assert not DrillingRow.model_validate({"boNr": "B1"}).is_blank()
        assert not DrillingRow.model_validate({"probenFlags": ["GP"]}).is_blank()

    def test_backfill_subobject_wins(self):
        row = DrillingRow.model_validate({"tonVon": "1", "verfuellung": {"tonVon": "2"}})
        assert row.backfill().ton_von == "2"
        assert DrillingRow.model_validate({"tonVon": "1"}).backfill().ton_von == "1"

    def test_spt_text(self):
        assert DrillingRow.model_validate({"spt": "1/2/3", "versucheSpt": "4/5/6"}).spt_text() == "4/5/6"
        assert DrillingRow.model_validate({"spt": "1/2/3"}).spt_text() == "1/2/3"


class TestMeasurementProtocol:
    """Campaign resolution"""

    def test_single_campaign(self, sample_protocol):
        campaigns = MeasurementProtocol.coerce(sample_protocol).resolve_messungen()
        assert len(campaigns) == 1
        assert campaigns[0].bv == "BV Musterprojekt"
        assert campaigns[0].pumpeneinlauf_bei_m == "12.5"
        assert len(campaigns[0].primary_rows) == 3
        assert campaigns[0].secondary_rows[1].i_per_sec == "0,9"

    def test_campaigns_inherit(self, sample_protocol):
        payload = {
            **sample_protocol,
            "messungen": [
                {"blatt": "2"},
                {"bv": "Anderes BV", "grundwasserRows": [], "wiederanstiegRows": None},
            ],
        }
        first, second = MeasurementProtocol.coerce(payload).resolve_messungen()

        assert first.blatt == "2"
        assert first.bv == "BV Musterprojekt"
        assert len(first.primary_rows) == 3
        assert second.bv == "Anderes BV"
        assert second.primary_rows == []
        assert len(second.secondary_rows) == 2

    def test_missing_rows(self):
        (campaign,) = MeasurementProtocol.coerce({"bv": "x", "grundwasserRows": "nope"}).resolve_messungen()
        assert campaign.primary_rows == []
        assert campaign.secondary_rows == []

    def test_header_values(self, sample_protocol):
        values = MeasurementProtocol.coerce(sample_protocol).resolve_messungen()[0].header_values()
        assert values["bohrungNr"] == "B-12"
        assert values["flowRateUnit"] == "lps"
        assert "grundwasserRows" not in values


class TestRenderModels:
    """Document types and outcomes"""

    def test_document_types(self):
        assert DocumentType("klarspuel").is_sheet
        assert DocumentType.KLARSPUEL.extension == "xlsx"
        assert DocumentType.PUMPVERSUCH_PDF.is_protocol_pdf
        assert DocumentType.PUMPVERSUCH_PDF.content_type == "application/pdf"
        assert DocumentType.TAGESBERICHT_RML.file_stem == "Tagesbericht-RML"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            DocumentType("invoice")

    def test_failure(self):
        outcome = RenderOutcome.failure(DocumentType.KLARSPUEL, "worksheet_not_found", "missing", 404)
        assert not outcome.ok
        assert outcome.content is None
        assert outcome.status == 404

    def test_marker_text(self):
        assert CalibrationMarker(x=100, y=200.5).text() == "(100, 200.5)"
        assert CalibrationMarker(x=1, y=2, label="date").text() == "date"

"""
Measurement protocol model - pumping test / clear-flush protocol

One payload carries the header values, the primary block (grundwasserRows)
and the secondary block (wiederanstiegRows). `messungen` optionally holds
several campaigns that inherit everything they do not set themselves.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from .report import RecordModel, RowList, Text, _as_optional_rows


class MeasurementRow(RecordModel):
    """One timestamped reading"""
    uhrzeit: Text = ""
    abstichmass_ab_gok: Text = Field("", description="water level below ground")
    i_per_sec: Text = Field("", description="flow rate reading")
    bemerkungen: Text = ""


OptionalRows = Annotated[list[MeasurementRow] | None, BeforeValidator(_as_optional_rows)]


class Measurement(RecordModel):
    """Header values and row blocks of one campaign"""
    sheet_name: Text = ""
    bv: Text = ""
    bohrung_nr: Text = ""
    blatt: Text = ""
    auftrags_nr: Text = ""
    datum: Text = ""
    ausgefuehrt_von: Text = ""
    pumpeneinlauf_bei_m: Text = ""
    ablaufleitung_m: Text = ""
    messstelle: Text = ""
    hoehe_gok: Text = ""
    flow_rate_unit: Text = Field("", description="lps or m3h")
    grundwasser_rows: OptionalRows = None
    wiederanstieg_rows: OptionalRows = None

    @property
    def primary_rows(self) -> list[MeasurementRow]:
        return self.grundwasser_rows or []

    @property
    def secondary_rows(self) -> list[MeasurementRow]:
        return self.wiederanstieg_rows or []

    def header_values(self) -> dict[str, str]:
        """Header text keyed by JSON name"""
        return {
            k: v for k, v in self.model_dump(by_alias=True).items() if isinstance(v, str)
        }


class MeasurementProtocol(Measurement):
    """Full payload (single campaign or a `messungen` list)"""
    messungen: RowList[Measurement] = Field(default_factory=list)

    @classmethod
    def coerce(cls, data: MeasurementProtocol | dict[str, Any] | None) -> MeasurementProtocol:
        if isinstance(data, cls):
            return data
        return cls.model_validate(data if isinstance(data, dict) else {})

    def resolve_messungen(self) -> list[Measurement]:
        """Campaigns with inherited header values and rows"""
        base = self.model_dump(exclude={"messungen"})
        base["grundwasser_rows"] = base["grundwasser_rows"] or []
        base["wiederanstieg_rows"] = base["wiederanstieg_rows"] or []

        if not self.messungen:
            return [Measurement.model_validate(base)]

        resolved = []
        for m in self.messungen:
            merged = {**base, **m.model_dump(exclude_unset=True)}
            for key in ("grundwasser_rows", "wiederanstieg_rows"):
                if merged.get(key) is None:
                    merged[key] = base[key]
            resolved.append(Measurement.model_validate(merged))
        return resolved



"""
Daily report model - the record drawn onto the Tagesbericht templates

JSON keys are camelCase (German field names), attributes are snake_case.
Every field is tolerant: scalars are coerced with as_text, lists accept
anything and degrade to empty rows. The renderer never mutates a record.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def as_text(value: Any) -> str:
    """Normalize any JSON value to display text (never raises)"""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return ""
        # integral floats print without ".0"
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, str):
        return value
    return ""


def as_flag(value: Any) -> bool:
    """Loose checkbox reading of a JSON value"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0")
    return False


def _as_rows(value: Any) -> list[Any]:
    if not isinstance(value, list):
        return []
    return [item if isinstance(item, dict) or isinstance(item, BaseModel) else {} for item in value]


def _as_optional_rows(value: Any) -> list[Any] | None:
    if value is None:
        return None
    return _as_rows(value)


def _as_text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [as_text(item) for item in value]


def _as_optional_text_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return _as_text_list(value)


def _as_mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text_mapping(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): as_text(v) for k, v in value.items()}


def _as_optional_object(value: Any) -> Any:
    return value if isinstance(value, (dict, BaseModel)) else None


def _as_explicit_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


Text = Annotated[str, BeforeValidator(as_text)]
Flag = Annotated[bool, BeforeValidator(as_flag)]
TextList = Annotated[list[str], BeforeValidator(_as_text_list)]

RowT = TypeVar("RowT")


class RecordModel(BaseModel):
    """Base of all record models (camelCase JSON, read-only)"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def is_blank(self) -> bool:
        """True when no field carries a value"""
        return not any(_has_value(v) for v in self.model_dump().values())


def _has_value(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, dict):
        return any(_has_value(v) for v in value.values())
    if isinstance(value, list):
        return len(value) > 0
    return value is not None


# list of rows: non-lists become [], non-object items empty rows
RowList = Annotated[list[RowT], BeforeValidator(_as_rows)]


# ============================================================================
# Field names
# ============================================================================

class HeaderField(str, Enum):
    """Scalar fields of the Tagesbericht with a fixed anchor"""
    DATE = "date"
    PROJECT = "project"
    CLIENT = "client"
    ORDER_NUMBER = "aNr"
    DEVICE = "device"
    TEMP_MAX = "tempMaxC"
    TEMP_MIN = "tempMinC"
    REST_WATER_LEVEL = "ruhewasserVorArbeitsbeginnM"
    CARAVAN_DISTANCE_KM = "entfernungWohnwagenBaustelleKm"
    CARAVAN_DISTANCE_TIME = "entfernungWohnwagenBaustelleZeit"


class TextBlockField(str, Enum):
    """Free-text fields drawn over several lines"""
    VEHICLES = "vehicles"
    OTHER_WORK = "otherWork"
    REMARKS = "remarks"


# ============================================================================
# Rows
# ============================================================================

class TimeRange(RecordModel):
    """Work time or break (from/to clock text)"""
    from_: Text = Field("", alias="from")
    to: Text = ""


class TransportRow(RecordModel):
    from_: Text = Field("", alias="from")
    to: Text = ""
    km: Text = ""
    time: Text = ""


class Worker(RecordModel):
    name: Text = ""
    reine_arbeits_std: Text = ""
    wochenendfahrt: Text = ""
    ausfall_std: Text = ""
    ausloese_t: Flag = False
    ausloese_n: Flag = False
    stunden: TextList = Field(default_factory=list, description="hour cells of the day")


class Backfill(RecordModel):
    """Backfill depths of a borehole"""
    ton_von: Text = ""
    ton_bis: Text = ""
    bohrgut_von: Text = ""
    bohrgut_bis: Text = ""
    zement_bent_von: Text = ""
    zement_bent_bis: Text = ""
    beton_von: Text = ""
    beton_bis: Text = ""


class DrillingRow(Backfill):
    """One row of the drilling table"""
    bo_nr: Text = ""
    gebohrt_von: Text = ""
    gebohrt_bis: Text = ""
    verrohrt_von: Text = ""
    verrohrt_bis: Text = ""
    verrohrt_flags: TextList = Field(default_factory=list, description="RB/EK/DK/S or drilling method")
    vollbohr_von: Text = ""
    vollbohr_bis: Text = ""
    hindernis_von: Text = ""
    hindernis_bis: Text = ""
    hindernis_zeit: Text = ""
    schachten_von: Text = ""
    schachten_bis: Text = ""
    schachten_zeit: Text = ""
    proben_flags: Annotated[list[str] | None, BeforeValidator(_as_optional_text_list)] = None
    proben: Annotated[dict[str, Any], BeforeValidator(_as_mapping)] = Field(default_factory=dict)
    proben_values: Annotated[dict[str, str], BeforeValidator(_as_text_mapping)] = Field(
        default_factory=dict, description="explicit sample cell values keyed by flag"
    )
    spt: Text = ""
    versuche_spt: Text = ""
    schappe_durchmesser: Text = ""
    verfuellung: Annotated[Backfill | None, BeforeValidator(_as_optional_object)] = None

    def backfill(self) -> Backfill:
        """Backfill sub-object, or the row's own backfill fields"""
        return self.verfuellung if self.verfuellung is not None else self

    def spt_text(self) -> str:
        return self.versuche_spt or self.spt


class UmsetzenRow(RecordModel):
    """Rig relocation"""
    von: Text = ""
    auf: Text = ""
    entfernung_m: Text = ""
    zeit: Text = ""
    begruendung: Text = ""
    wartezeit: Text = ""


class PegelRow(RecordModel):
    """Well construction (Pegelausbau)"""
    bohr_nr: Text = ""
    pegel_dm: Text = ""
    sumpf_von: Text = ""
    sumpf_bis: Text = ""
    filter_von: Text = ""
    filter_bis: Text = ""
    rohre_pvc_von: Text = ""
    rohre_pvc_bis: Text = ""
    aufsatz_pvc_von: Text = ""
    aufsatz_pvc_bis: Text = ""
    aufsatz_stahl_von: Text = ""
    aufsatz_stahl_bis: Text = ""
    filterkies_von: Text = ""
    filterkies_bis: Text = ""
    ton_von: Text = ""
    ton_bis: Text = ""
    sand_von: Text = ""
    sand_bis: Text = ""
    zement_bent_von: Text = ""
    zement_bent_bis: Text = ""
    bohrgut_von: Text = ""
    bohrgut_bis: Text = ""

    # closures
    seba_kap: Flag = False
    bo_kap: Flag = False
    hydr_kap: Flag = False
    fern_gask: Flag = False
    passavant: Flag = False
    beton_sockel: Flag = False
    abst_halter: Flag = False
    klarpump: Flag = False

    ausbau_art_type: Text = ""
    ausbau_art_custom: Text = ""
    schlitzweite_sw_mm: Text = ""
    filterkies_koernung: Text = ""


class WeekendRow(RecordModel):
    """Weekend duty entry (continuation page)"""
    name: Text = ""
    from_: Text = Field("", alias="from")
    to: Text = ""
    duration: Text = ""
    active: Annotated[bool | None, BeforeValidator(_as_explicit_bool)] = None
    wochenendfahrt: Text = Field("", description="legacy duration text, also marks the row active")


class WaterLevelRow(RecordModel):
    time: Text = ""
    meters: Text = ""


class CasingRow(RecordModel):
    diameter: Text = ""
    meters: Text = ""


# ============================================================================
# Sub-objects
# ============================================================================

def _as_weather(value: Any) -> Any:
    if isinstance(value, str):
        return {"label": value}
    if isinstance(value, (dict, BaseModel)):
        return value
    return {}


class Weather(RecordModel):
    conditions: TextList = Field(default_factory=list, description="trocken/regen/frost")
    temp_max_c: Text = ""
    temp_min_c: Text = ""
    label: Text = Field("", description="free weather text when no condition list is given")

    def display_label(self) -> str:
        if self.conditions:
            return "/".join(self.conditions)
        return self.label


class Signatures(RecordModel):
    driller_name: Text = ""
    client_or_manager_name: Text = ""
    driller_sig_png: Text = Field("", description="image data URL")
    client_or_manager_sig_png: Text = Field("", description="image data URL")


# ============================================================================
# Record
# ============================================================================

class DailyReport(RecordModel):
    """Daily report (Tagesbericht and Rhein-Main-Link variant)"""

    id: Text = ""
    date: Text = Field("", description="YYYY-MM-DD")
    project: Text = ""
    client: Text = ""
    vehicles: Text = ""
    geraete: Text = ""
    a_nr: Text = ""
    device: Text = ""
    ruhewasser_vor_arbeitsbeginn_m: Text = ""
    entfernung_wohnwagen_baustelle_km: Text = ""
    entfernung_wohnwagen_baustelle_zeit: Text = ""
    other_work: Text = ""
    remarks: Text = ""

    weather: Annotated[Weather, BeforeValidator(_as_weather)] = Field(default_factory=Weather)
    signatures: Annotated[Signatures, BeforeValidator(lambda v: v if isinstance(v, (dict, BaseModel)) else {})] = Field(
        default_factory=Signatures
    )

    work_time_rows: RowList[TimeRange] = Field(default_factory=list)
    break_rows: RowList[TimeRange] = Field(default_factory=list)
    transport_rows: RowList[TransportRow] = Field(default_factory=list)
    table_rows: RowList[DrillingRow] = Field(default_factory=list)
    workers: RowList[Worker] = Field(default_factory=list)
    umsetzen_rows: RowList[UmsetzenRow] = Field(default_factory=list)
    pegel_ausbau_rows: RowList[PegelRow] = Field(default_factory=list)
    weekend_rows: RowList[WeekendRow] = Field(default_factory=list)

    # Rhein-Main-Link
    plz: Text = ""
    ort: Text = ""
    bohrung_nr: Text = ""
    bericht_nr: Text = ""
    bohrrichtung: Text = ""
    verrohrung_ab_gok: Text = ""
    besucher: Text = ""
    she_vorfaelle: Text = ""
    tool_box_talks: Text = ""
    taegliche_ueberpruefung_bg: Text = ""
    water_level_rows: RowList[WaterLevelRow] = Field(default_factory=list)
    verrohrung_rows: RowList[CasingRow] = Field(default_factory=list)

    @classmethod
    def coerce(cls, data: DailyReport | dict[str, Any] | None) -> DailyReport:
        """Accept a model or a raw JSON mapping"""
        if isinstance(data, cls):
            return data
        return cls.model_validate(data if isinstance(data, dict) else {})

    def header_values(self) -> dict[str, str]:
        """Text of every HeaderField"""
        values = {k: v for k, v in self.model_dump(by_alias=True).items() if isinstance(v, str)}
        values[HeaderField.TEMP_MAX.value] = self.weather.temp_max_c
        values[HeaderField.TEMP_MIN.value] = self.weather.temp_min_c
        return {field.value: values.get(field.value, "") for field in HeaderField}

    def multiline_values(self) -> dict[str, str]:
        return {
            TextBlockField.VEHICLES.value: self.vehicles,
            TextBlockField.OTHER_WORK.value: self.other_work,
            TextBlockField.REMARKS.value: self.remarks,
        }

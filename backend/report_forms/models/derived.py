"""
Derived fields - values recomputed from a report at render time

Never stored in the record, never raising: anything malformed leaves the
corresponding field empty.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class WeekendEntry(BaseModel):
    """Weekend duty row that goes to the continuation page"""
    source_index: int = Field(description="position in weekendRows")
    name: str = ""
    from_: str = ""
    to: str = ""
    duration: str = Field("", description="explicit duration, else computed from from/to")


class DerivedFields(BaseModel):
    """Render-ready values derived from a DailyReport"""

    # weekday
    weekday_index: int | None = None   # 0 = Sunday .. 6 = Saturday
    weekday_key: str | None = None     # so/mo/di/mi/do/fr/sa

    # drilling table, one dict per row: flag key -> cell text
    sample_cells: list[dict[str, str]] = Field(default_factory=list)
    casing_cells: list[dict[str, str]] = Field(default_factory=list)

    # continuation page
    weekend_entries: list[WeekendEntry] = Field(default_factory=list)

    @property
    def needs_continuation_page(self) -> bool:
        return len(self.weekend_entries) > 0

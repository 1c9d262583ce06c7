"""
Derivation engine - render-ready values computed from raw record fields

Responsibilities:
1. Weekday index from the report date, durations from clock time pairs
2. Checkbox/flag resolution for the drilling table
3. Selection of weekend duty rows for the continuation page

Dependencies:
- models.report (as_text, row models)

Test points:
- test_weekday_index: strict YYYY-MM-DD, 0 = Sunday
- test_duration_hours: midnight wrap, comma decimal separator
- test_resolve_flag_value: explicit value beats flag presence
- test_weekend_entries: both predicates must hold

All functions are total: malformed input yields None or "".
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Iterable, Mapping

from ..models import DailyReport, DerivedFields, DrillingRow, WeekendEntry, WeekendRow
from ..models.report import as_text

logger = logging.getLogger(__name__)

MARK = "X"

WEEKDAY_KEYS = ("so", "mo", "di", "mi", "do", "fr", "sa")

SAMPLE_FLAG_KEYS = ("GP", "KP", "SP", "WP", "BKB", "KK-LV")
CASING_FLAG_KEYS = ("RB", "EK", "DK", "S")

# legacy `proben` object keys
LEGACY_SAMPLE_KEYS = {
    "gp": "GP",
    "kp": "KP",
    "sp": "SP",
    "wp": "WP",
    "bkb": "BKB",
    "kkLv": "KK-LV",
}

_DATE_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
_NON_DIGITS = re.compile(r"[^0-9]")


def weekday_index(date_text: Any) -> int | None:
    """0 = Sunday .. 6 = Saturday, None for anything but a valid YYYY-MM-DD"""
    if not isinstance(date_text, str):
        return None
    m = _DATE_RE.fullmatch(date_text)
    if not m:
        return None
    try:
        d = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None
    return d.isoweekday() % 7


def parse_clock_minutes(text: Any) -> int | None:
    """Minutes since midnight of a loose clock string ("7:30", "0730", "07.30 Uhr")"""
    digits = _NON_DIGITS.sub("", as_text(text))
    if len(digits) < 3:
        return None
    hours = int(digits[:-2])
    minutes = int(digits[-2:])
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def duration_hours(from_text: Any, to_text: Any) -> str:
    """Elapsed hours as "H,MM" (wraps past midnight), "" if an end is unparseable"""
    start = parse_clock_minutes(from_text)
    end = parse_clock_minutes(to_text)
    if start is None or end is None:
        return ""
    diff = end - start
    if diff < 0:
        diff += 24 * 60
    return f"{diff / 60:.2f}".replace(".", ",")


def resolve_flag_value(flag_key: str, explicit_values: Any, flags: Any) -> str:
    """
    Value of a flag-bearing cell

    A non-empty explicit value wins, then a mark when the flag is set,
    otherwise the cell stays empty. An empty explicit value counts as absent.
    """
    if isinstance(explicit_values, Mapping):
        explicit = as_text(explicit_values.get(flag_key))
        if explicit.strip():
            return explicit
    if isinstance(flags, (list, tuple, set, frozenset)) and flag_key in flags:
        return MARK
    return ""


def _is_on(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, int) and not isinstance(value, bool):
        return value == 1
    return isinstance(value, str) and value in ("x", "X", "1", "true")


def sample_flags(row: DrillingRow | Mapping[str, Any]) -> list[str]:
    """Sample flags of a drilling row (probenFlags list, else legacy proben object)"""
    if not isinstance(row, DrillingRow):
        row = DrillingRow.model_validate(row if isinstance(row, Mapping) else {})
    if row.proben_flags is not None:
        return list(row.proben_flags)
    return [flag for key, flag in LEGACY_SAMPLE_KEYS.items() if _is_on(row.proben.get(key))]


def is_weekend_active(row: WeekendRow) -> bool:
    """Explicit `active: true`, or a non-empty legacy duration text"""
    return row.active is True or row.wochenendfahrt.strip() != ""


def has_weekend_data(row: WeekendRow) -> bool:
    """Row carries from/to or a duration"""
    return any(v.strip() for v in (row.from_, row.to, row.duration, row.wochenendfahrt))


def weekend_duration(row: WeekendRow) -> str:
    """Explicit duration, legacy duration text, else computed from from/to"""
    for value in (row.duration, row.wochenendfahrt):
        if value.strip():
            return value.strip()
    return duration_hours(row.from_, row.to)


def select_weekend_entries(rows: Iterable[WeekendRow]) -> list[WeekendEntry]:
    """Rows for the continuation page, in record order"""
    entries = []
    for index, row in enumerate(rows):
        if not (is_weekend_active(row) and has_weekend_data(row)):
            continue
        entries.append(
            WeekendEntry(
                source_index=index,
                name=row.name,
                from_=row.from_,
                to=row.to,
                duration=weekend_duration(row),
            )
        )
    return entries


class DerivationEngine:
    """Computes DerivedFields for a report"""

    def compute(self, report: DailyReport) -> DerivedFields:
        """Compute all derived fields"""
        derived = DerivedFields()

        # === weekday ===
        derived.weekday_index = weekday_index(report.date)
        if derived.weekday_index is not None:
            derived.weekday_key = WEEKDAY_KEYS[derived.weekday_index]
        elif report.date:
            logger.debug(f"Unparseable report date: {report.date!r}")

        # === drilling table ===
        for row in report.table_rows:
            flags = sample_flags(row)
            derived.sample_cells.append(
                {key: resolve_flag_value(key, row.proben_values, flags) for key in SAMPLE_FLAG_KEYS}
            )
            derived.casing_cells.append(
                {key: resolve_flag_value(key, None, row.verrohrt_flags) for key in CASING_FLAG_KEYS}
            )

        # === continuation page ===
        derived.weekend_entries = select_weekend_entries(report.weekend_rows)

        return derived

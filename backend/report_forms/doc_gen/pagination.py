"""
Row pagination - how repeating rows map onto a bounded page region

Responsibilities:
1. Cap a row list to the visible rows of a table (remainder dropped silently)
2. Track the running row slot and its y while rows are emitted
3. Place marker rows (section dividers) between two row blocks

Policy: best effort, never reflow. A slot whose y falls below the bottom
bound is consumed but not drawn. A marker is dropped unless it sits strictly
above the bound; a row may sit on it.
"""

from __future__ import annotations

from typing import Sequence, TypeVar

from ..config.layout_loader import TableLayout, resolve_y

T = TypeVar("T")


def visible_rows(rows: Sequence[T], max_rows: int | None) -> list[T]:
    """First *max_rows* rows (all rows when the table has no cap)"""
    if max_rows is None:
        return list(rows)
    return list(rows[: max(0, max_rows)])


class RowCursor:
    """Running row slot of one table region (page space, y grows upwards)"""

    def __init__(self, start_y: float, row_height: float, bottom_y: float | None = None):
        self.start_y = start_y
        self.row_height = row_height
        self.bottom_y = bottom_y
        self.index = 0

    @classmethod
    def for_table(cls, table: TableLayout, page_height: float, default_origin: str = "bottom") -> RowCursor:
        """Cursor over a table layout, resolved against the presented page"""
        origin = table.origin or default_origin
        start = resolve_y(table.start_y, origin, page_height)
        bottom = None
        if table.bottom_y is not None:
            bottom = resolve_y(table.bottom_y, origin, page_height)
        return cls(start, table.row_height, bottom)

    def y_at(self, index: int) -> float:
        return self.start_y - index * self.row_height

    def in_bounds(self, y: float) -> bool:
        return self.bottom_y is None or y >= self.bottom_y

    def next_row(self) -> float | None:
        """y of the next slot, None once it is below the bottom bound"""
        y = self.y_at(self.index)
        self.index += 1
        return y if self.in_bounds(y) else None

    def skip(self, count: int = 1) -> None:
        """Leave *count* slots blank"""
        self.index += max(0, count)

    def marker(self) -> float | None:
        """Consume exactly one slot for a divider; its y only when strictly above the bottom bound"""
        y = self.y_at(self.index)
        self.index += 1
        if self.bottom_y is not None and y <= self.bottom_y:
            return None
        return y

    @property
    def exhausted(self) -> bool:
        return not self.in_bounds(self.y_at(self.index))

"""
Spreadsheet overlay renderer - fills the measurement protocol workbook

Responsibilities:
1. Open the template workbook and its target worksheet
2. Write header cells (only non-empty values) and fixed captions
3. Clear the table region, write the primary block, the marker row and
   the secondary block; the flow column is written once per block
4. Grow the remarks rows to their estimated line count

Dependencies:
- openpyxl: workbook read/write
- config/layouts.yaml: sheets.klarspuel / sheets.pumpversuch

Test points:
- test_missing_sheet: WorksheetNotFoundError
- test_rewrite_shorter_payload: no stale rows from the template
- test_flow_written_once: one flow value per block
- test_marker_row: start + len(primary) + gap
- test_remarks_row_height: 18 + (lines - 1) * 15
- test_render_twice_identical: byte-identical workbook
"""

from __future__ import annotations

import logging
import zipfile
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Mapping, Sequence

from openpyxl import load_workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Alignment
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet
from openpyxl.writer.excel import ExcelWriter

from ..config import RuntimeConfig, SheetBinding, get_config, load_layouts
from ..interfaces import ISheetOverlayRenderer, TemplateNotFoundError, TemplateReadError, WorksheetNotFoundError
from ..models import Measurement, MeasurementProtocol, MeasurementRow
from ..models.report import as_text
from .text_wrap import estimate_wrapped_line_count, row_height_for

logger = logging.getLogger(__name__)

# document properties and zip member times of every written workbook
FIXED_TIMESTAMP = datetime(2000, 1, 1)
FIXED_ZIP_TIME = (1980, 1, 1, 0, 0, 0)


def set_if_present(ws: Worksheet, cell: str, value: Any) -> bool:
    """Write the trimmed text of *value*, leave the cell alone when empty"""
    text = as_text(value).strip()
    if not text:
        return False
    ws[cell] = text
    return True


def clear_cell(ws: Worksheet, cell: str) -> None:
    """Empty a cell (covered cells of a merge range are left alone)"""
    target = ws[cell]
    if isinstance(target, MergedCell):
        return
    target.value = None


def workbook_bytes(wb) -> bytes:
    """Serialize *wb* reproducibly: pinned core properties and member times"""
    wb.properties.created = FIXED_TIMESTAMP
    wb.properties.modified = FIXED_TIMESTAMP

    raw = BytesIO()
    with zipfile.ZipFile(raw, "w", zipfile.ZIP_DEFLATED, allowZip64=True) as archive:
        ExcelWriter(wb, archive).write_data()

    out = BytesIO()
    with zipfile.ZipFile(raw) as src, zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst:
        for item in src.infolist():
            info = zipfile.ZipInfo(item.filename, date_time=FIXED_ZIP_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = item.external_attr
            dst.writestr(info, src.read(item.filename))
    return out.getvalue()


class SheetOverlayRenderer(ISheetOverlayRenderer):
    """Measurement protocol workbook renderer (klarspuel / pumpversuch)"""

    def __init__(
        self,
        sheet_type: str,
        config: RuntimeConfig | None = None,
        layout_path: str | Path | None = None,
    ):
        self.sheet_type = sheet_type
        self.config = config or get_config()
        self.layouts = load_layouts(layout_path or self.config.layout_path)
        self.binding: SheetBinding = self.layouts.get_sheet_binding(sheet_type)

    def render(self, payload: MeasurementProtocol | Mapping[str, Any]) -> bytes:
        """Fill the template with the payload's first campaign"""
        protocol = MeasurementProtocol.coerce(payload)
        measurement = protocol.resolve_messungen()[0]

        # 1. template
        wb = self._load_workbook()
        ws = self._get_sheet(wb)

        # 2. header
        self._write_header(ws, measurement)

        # 3. table
        table = self.binding.table
        clear_rows = table.clear_rows or self.config.render.sheet_clear_rows
        self._clear_table(ws, table.start_row, clear_rows)

        primary = measurement.primary_rows
        self._write_block(ws, primary, table.start_row)

        marker_row = table.start_row + len(primary) + table.marker_gap
        ws[f"{table.marker_column}{marker_row}"] = table.marker_label
        for column in table.marker_clear:
            clear_cell(ws, f"{column}{marker_row}")

        secondary = measurement.secondary_rows
        self._write_block(ws, secondary, marker_row + 1)

        # 4. save
        data = workbook_bytes(wb)
        logger.info(
            f"Workbook {self.sheet_type} filled: {len(primary)} + {len(secondary)} row(s), marker at row {marker_row}"
        )
        return data

    # --- template ---

    def _load_workbook(self):
        path = self.config.template_path(self.binding.template)
        if not path.exists():
            raise TemplateNotFoundError(f"Template workbook not found: {path}")
        try:
            return load_workbook(path)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise TemplateReadError(f"Template workbook invalid: {path} ({e})") from e

    def _get_sheet(self, wb) -> Worksheet:
        name = self.binding.sheet
        if name not in wb.sheetnames:
            raise WorksheetNotFoundError(name, list(wb.sheetnames))
        return wb[name]

    # --- header ---

    def _write_header(self, ws: Worksheet, measurement: Measurement) -> None:
        for cell, text in self.binding.fixed_cells.items():
            ws[cell] = text

        values = measurement.header_values()
        for key, cell in self.binding.header.items():
            set_if_present(ws, cell, values.get(key))

        if self.binding.unit_label_cell:
            ws[self.binding.unit_label_cell] = self.unit_label(measurement.flow_rate_unit)

    def unit_label(self, unit: str) -> str:
        """Flow rate column caption of a unit key ("m3h" -> "m³/h", else l/s)"""
        key = unit.strip().lower()
        return self.binding.unit_labels.get(key, self.binding.default_unit_label)

    # --- table ---

    def _clear_table(self, ws: Worksheet, start_row: int, count: int) -> None:
        columns = list(self.binding.table.columns.values())
        for row in range(start_row, start_row + count):
            for column in columns:
                clear_cell(ws, f"{column}{row}")
            self._apply_remarks_layout(ws, row, "")

    def _write_block(self, ws: Worksheet, rows: Sequence[MeasurementRow], start_row: int) -> None:
        """Write one row block; the once-column takes the block's first value only"""
        table = self.binding.table
        once_written = False

        for index, row in enumerate(rows):
            row_no = start_row + index
            values = row.model_dump(by_alias=True)
            for key, column in table.columns.items():
                cell = f"{column}{row_no}"
                if key != table.once_column:
                    set_if_present(ws, cell, values.get(key))
                elif not once_written:
                    once_written = set_if_present(ws, cell, values.get(key))
            self._apply_remarks_layout(ws, row_no, row.bemerkungen)

    def _apply_remarks_layout(self, ws: Worksheet, row_no: int, text: str) -> None:
        """Wrap the remarks cell and size the row to its text"""
        remarks = self.binding.table.remarks
        column = self.binding.table.columns.get("bemerkungen")
        if column is None:
            return

        cell = ws[f"{column}{row_no}"]
        if not isinstance(cell, MergedCell):
            current = cell.alignment
            cell.alignment = Alignment(
                horizontal=current.horizontal,
                vertical="top",
                wrap_text=True,
                shrink_to_fit=current.shrink_to_fit,
                indent=current.indent,
                text_rotation=current.text_rotation,
            )

        lines = estimate_wrapped_line_count(as_text(text).strip(), remarks.chars_per_line, remarks.max_lines)
        ws.row_dimensions[row_no].height = row_height_for(lines, remarks.base_height, remarks.extra_line_height)

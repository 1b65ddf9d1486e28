"""
Excel export using openpyxl.

Writes command output records to a single-sheet workbook plus a small
metadata sheet.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from sqladminops.domain.models import record_columns

logger = logging.getLogger(__name__)

# Styling constants
HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin")
)


def _cell_value(value: Any) -> Any:
    # openpyxl rejects tz-aware datetimes
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, timedelta):
        return str(value)
    return value


def write_records(
    records: Iterable[dict[str, Any]],
    output_path: Path,
    sheet_name: str,
    command: str,
) -> Path:
    """
    Write records to an Excel file.

    Args:
        records: Flat output records
        output_path: Path to write the workbook to
        sheet_name: Title of the data sheet
        command: Command name recorded on the metadata sheet

    Returns:
        Path to the created Excel file
    """
    records = list(records)
    logger.info("Writing %d records to %s", len(records), output_path)

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    columns = record_columns(records)
    for col_idx, name in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=name)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = THIN_BORDER
        ws.column_dimensions[get_column_letter(col_idx)].width = max(len(name) + 4, 18)

    ws.freeze_panes = "A2"

    for row_idx, record in enumerate(records, start=2):
        for col_idx, name in enumerate(columns, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(record.get(name)))
            cell.border = THIN_BORDER
            cell.alignment = Alignment(vertical="center")

    meta = wb.create_sheet("Info")
    for row_idx, (label, value) in enumerate([
        ("Command", command),
        ("Records", len(records)),
        ("Generated (UTC)", datetime.now(timezone.utc).replace(tzinfo=None)),
    ], start=1):
        meta.cell(row=row_idx, column=1, value=label).font = Font(bold=True)
        meta.cell(row=row_idx, column=2, value=value)
    meta.column_dimensions["A"].width = 20
    meta.column_dimensions["B"].width = 40

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path

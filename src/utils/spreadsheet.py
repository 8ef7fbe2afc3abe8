"""
Spreadsheet Reader/Writer for Catalog Reconciliation

Boundary between uploaded files and the reconciliation engine:
- read_records() turns an .xlsx/.xls/.csv file into an ordered list of
  flat records keyed by header name
- write_workbook() / write_csv() serialize named export sheets

Header cells are trimmed, blank headers get a positional UNKNOWN_<col>
name, and empty cells become "" rather than being omitted.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from src.reconciliation.partitioner import ExportSheet, ResultPartitioner

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xls")
CSV_SUFFIXES = (".csv", ".txt")


class SpreadsheetError(Exception):
    """Raised when a spreadsheet cannot be read or written."""
    pass


def read_records(
    path: Union[str, Path],
    sheet_name: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Read the first sheet (or a named sheet) of a spreadsheet as records.

    Args:
        path: Spreadsheet file
        sheet_name: Sheet to read (Excel only; first sheet if None)

    Returns:
        List of records in row order; an empty file or sheet gives []

    Raises:
        SpreadsheetError: If the file is missing, unsupported or unreadable
    """
    path = Path(path).expanduser()

    if not path.exists():
        raise SpreadsheetError(f"Spreadsheet not found: {path}")

    suffix = path.suffix.lower()

    try:
        if suffix in EXCEL_SUFFIXES:
            frame = pd.read_excel(
                path,
                sheet_name=sheet_name if sheet_name is not None else 0,
                header=None,
                dtype=object
            )
        elif suffix in CSV_SUFFIXES:
            frame = pd.read_csv(
                path,
                header=None,
                dtype=str,
                keep_default_na=False
            )
        else:
            raise SpreadsheetError(f"Unsupported spreadsheet type '{suffix}': {path}")
    except pd.errors.EmptyDataError:
        logger.info(f"{path.name} is empty, no rows read", extra={"path": str(path)})
        return []
    except SpreadsheetError:
        raise
    except Exception as e:
        raise SpreadsheetError(f"Cannot read spreadsheet {path}: {e}") from e

    records = frame_to_records(frame)
    logger.info(f"Read {len(records)} rows from {path.name}", extra={"path": str(path)})
    return records


def frame_to_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Convert a header-less DataFrame (row 0 = headers) into records.

    Args:
        frame: DataFrame read with header=None

    Returns:
        List of records; fully empty rows are dropped
    """
    if frame.empty:
        return []

    headers = [
        _header_name(value, position)
        for position, value in enumerate(frame.iloc[0].tolist())
    ]

    body = frame.iloc[1:]
    body = body.astype(object).where(pd.notna(body), "")

    records = []
    for row in body.itertuples(index=False, name=None):
        if all(value == "" for value in row):
            continue
        records.append({header: _cell_value(value) for header, value in zip(headers, row)})

    return records


def write_workbook(sheets: Sequence[ExportSheet], path: Union[str, Path]) -> Path:
    """
    Write every sheet into one Excel workbook.

    Args:
        sheets: Named sheets, written in order
        path: Output .xlsx file

    Returns:
        Path written

    Raises:
        SpreadsheetError: If the workbook cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet in sheets:
                pd.DataFrame.from_records(sheet.records).to_excel(
                    writer,
                    sheet_name=sheet.name[:31],
                    index=False
                )
    except (OSError, ValueError) as e:
        raise SpreadsheetError(f"Cannot write workbook {path}: {e}") from e

    logger.info(f"Wrote {len(sheets)} sheet(s) to {path}", extra={"path": str(path)})
    return path


def write_csv(sheets: Sequence[ExportSheet], path: Union[str, Path]) -> Path:
    """
    Write the first sheet as delimited text.

    Args:
        sheets: Named sheets; only the first is written
        path: Output .csv file

    Returns:
        Path written

    Raises:
        SpreadsheetError: If there is no sheet or the file cannot be written
    """
    if not sheets:
        raise SpreadsheetError("No sheets to write")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        pd.DataFrame.from_records(sheets[0].records).to_csv(path, index=False)
    except OSError as e:
        raise SpreadsheetError(f"Cannot write CSV {path}: {e}") from e

    logger.info(f"Wrote sheet '{sheets[0].name}' to {path}", extra={"path": str(path)})
    return path


def export_all(
    partitioner: ResultPartitioner,
    output_dir: Union[str, Path],
    fmt: str = "xlsx"
) -> List[Path]:
    """
    Write the promotional and non-promotional exports.

    Args:
        partitioner: Result views of a reconciliation run
        output_dir: Directory for the export files
        fmt: "xlsx" or "csv"

    Returns:
        Paths written

    Raises:
        SpreadsheetError: If the format is unknown or a file cannot be written
    """
    if fmt not in ("xlsx", "csv"):
        raise SpreadsheetError(f"Unknown export format '{fmt}'")

    writer = write_workbook if fmt == "xlsx" else write_csv
    output_dir = Path(output_dir)

    return [
        writer(sheets, output_dir / f"{base_name}.{fmt}")
        for base_name, sheets in partitioner.export_sets().items()
    ]


def _header_name(value: Any, position: int) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return f"UNKNOWN_{position}"
    text = str(value).strip()
    return text if text else f"UNKNOWN_{position}"


def _cell_value(value: Any) -> Any:
    # object columns can still hold numpy scalars
    if isinstance(value, np.generic):
        return value.item()
    return value

"""Excel statement parser."""

import logging
from pathlib import Path
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..exceptions import FileParseError
from .tabular import ParseResult, rows_to_transactions

logger = logging.getLogger(__name__)


def parse_excel(path: Path) -> ParseResult:
    """
    Parse the first sheet of an Excel statement export.

    Raises:
        FileParseError: If the workbook can't be opened or the sheet is empty
    """
    logger.info(f"Parsing Excel file: {path.name}")
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (OSError, BadZipFile, InvalidFileException, KeyError, ValueError) as e:
        raise FileParseError(f"Failed to read Excel file {path.name}: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        rows = [
            list(row)
            for row in sheet.iter_rows(values_only=True)
            if any(cell is not None and str(cell).strip() for cell in row)
        ]
    finally:
        workbook.close()

    if not rows:
        raise FileParseError("Excel file is empty")

    result = rows_to_transactions(rows, source="Excel file")
    logger.info(f"Parsed {len(result.transactions)} transactions from {path.name}")
    return result

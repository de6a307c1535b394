"""CSV statement parser."""

import csv
import logging
from pathlib import Path

from ..exceptions import FileParseError
from .tabular import ParseResult, rows_to_transactions

logger = logging.getLogger(__name__)


def parse_csv(path: Path) -> ParseResult:
    """
    Parse a CSV statement export.

    The header row is detected rather than assumed to be the first line.

    Raises:
        FileParseError: If the file can't be read or holds no rows
    """
    logger.info(f"Parsing CSV file: {path.name}")
    try:
        # utf-8-sig drops the BOM some banks prepend
        with open(path, newline="", encoding="utf-8-sig") as f:
            rows = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise FileParseError(f"Failed to read CSV file {path.name}: {e}") from e

    if not rows:
        raise FileParseError("CSV file is empty")

    result = rows_to_transactions(rows, source="CSV")
    logger.info(f"Parsed {len(result.transactions)} transactions from {path.name}")
    return result

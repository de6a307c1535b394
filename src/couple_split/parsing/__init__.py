"""Statement file parsers (CSV, Excel, PDF)."""

import logging
from pathlib import Path

from ..exceptions import UnsupportedFileError
from .csv_parser import parse_csv
from .excel_parser import parse_excel
from .pdf_parser import parse_pdf
from .tabular import ParseResult

logger = logging.getLogger(__name__)

_PARSERS = {
    ".csv": parse_csv,
    ".xlsx": parse_excel,
    ".xlsm": parse_excel,
    ".pdf": parse_pdf,
}

SUPPORTED_EXTENSIONS = tuple(_PARSERS)


def parse_file(path: Path) -> ParseResult:
    """
    Parse a statement file, choosing the parser by extension.

    Raises:
        UnsupportedFileError: For extensions without a parser
        FileParseError: If the chosen parser fails
    """
    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise UnsupportedFileError(path.name)
    return parser(path)


__all__ = ["ParseResult", "SUPPORTED_EXTENSIONS", "parse_file"]

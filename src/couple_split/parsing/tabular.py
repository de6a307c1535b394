"""Row mapping shared by the CSV and Excel parsers."""

import logging
from collections.abc import Sequence
from typing import Any, NamedTuple

from ..exceptions import FileParseError, MissingColumnsError
from ..models import ParsedTransaction
from .columns import COLUMN_MAPPINGS, detect_extra_fields, find_column_index, find_data_start_row
from .values import parse_date, parse_optional_field, parse_signed_amount

logger = logging.getLogger(__name__)


class ParseResult(NamedTuple):
    """Transactions parsed from one file plus the optional fields it carried."""

    transactions: list[ParsedTransaction]
    detected_fields: list[str]


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if 0 <= index < len(row) else None


def rows_to_transactions(rows: Sequence[Sequence[Any]], source: str = "file") -> ParseResult:
    """
    Map raw spreadsheet rows to parsed transactions.

    Args:
        rows: All rows of the sheet, header and preamble included
        source: Human name of the file type, used in error messages

    Returns:
        Parsed transactions (rows with a zero amount are dropped)

    Raises:
        FileParseError: If there are no rows
        MissingColumnsError: If date, amount or description cannot be located
    """
    if not rows:
        raise FileParseError(f"{source} is empty")

    start_row, headers = find_data_start_row(rows)
    date_index = find_column_index(headers, COLUMN_MAPPINGS["date"])
    amount_index = find_column_index(headers, COLUMN_MAPPINGS["amount"])
    description_index = find_column_index(headers, COLUMN_MAPPINGS["description"])

    logger.debug(
        f"Column indices: date={date_index}, amount={amount_index}, "
        f"description={description_index}"
    )

    if -1 in (date_index, amount_index, description_index):
        raise MissingColumnsError([h for h in headers if h], source)

    extra_fields = detect_extra_fields(headers)
    # Don't report a required column again as an optional one
    extra_fields = {
        name: index
        for name, index in extra_fields.items()
        if index not in (date_index, amount_index, description_index)
    }

    transactions = []
    dropped = 0
    for row in rows[start_row + 1 :]:
        if not row or all(parse_optional_field(v) is None for v in row):
            continue

        signed_amount = parse_signed_amount(_cell(row, amount_index))
        if abs(signed_amount) <= 0:
            dropped += 1
            continue

        optional = {name: parse_optional_field(_cell(row, index)) for name, index in extra_fields.items()}
        transactions.append(
            ParsedTransaction(
                date=parse_date(_cell(row, date_index)),
                amount=abs(signed_amount),
                signed_amount=signed_amount,
                description=parse_optional_field(_cell(row, description_index)) or "Unknown",
                **optional,
            )
        )

    if dropped:
        logger.info(f"Dropped {dropped} row(s) without a usable amount")

    return ParseResult(transactions, list(extra_fields))

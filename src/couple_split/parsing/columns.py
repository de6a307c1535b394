"""Heuristic column detection for bank statement exports."""

import logging
import re
from collections.abc import Sequence
from typing import Any

logger = logging.getLogger(__name__)

# Header synonyms, in priority order
COLUMN_MAPPINGS: dict[str, list[str]] = {
    "date": [
        "date", "data", "fecha", "datum", "transaction date", "trans date",
        "transactiondate", "posting date", "settlement date",
    ],
    "amount": [
        "amount", "valor", "value", "price", "precio", "montant", "betrag",
        "debit", "debito", "credit", "credito", "cost", "costo", "total", "sum",
        "balance",
    ],
    "description": [
        "description", "descricao", "descripcion", "merchant", "vendor", "payee",
        "memo", "details", "detalles", "reference", "transaction details",
        "narrative",
    ],
    "mcc_code": [
        "mcc", "mcc code", "merchant category", "category code",
        "merchant category code", "mcc_code", "merchantcategory",
        "merchant_category_code", "sic", "sic code",
    ],
    "transaction_type": [
        "type", "transaction type", "trans type", "tipo", "transaction_type",
        "transactiontype", "trans_type", "payment type", "entry type",
        "debit credit",
    ],
    "location": [
        "location", "city", "cidade", "local", "place", "merchant city",
        "city/state", "merchant location", "city state", "merchant_city", "state",
        "address",
    ],
    "reference_number": [
        "reference", "ref", "referencia", "transaction id", "id",
        "reference number", "ref number", "transaction_id", "trans_id",
        "check number", "confirmation",
    ],
}

REQUIRED_COLUMNS = ("date", "amount", "description")
EXTRA_COLUMNS = ("mcc_code", "transaction_type", "location", "reference_number")

# Only the top of a sheet is scanned for a header row
HEADER_SCAN_ROWS = 20

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_column_name(name: Any) -> str:
    """Lowercase and strip everything but letters and digits."""
    if not isinstance(name, str) or not name:
        return ""
    return _NON_ALNUM.sub("", name.lower().strip())


def find_column_index(headers: Sequence[str], column_types: Sequence[str]) -> int:
    """
    Find the first header matching any synonym.

    Synonyms are tried in order; a header matches when either normalized
    string contains the other. Empty headers never match.

    Returns:
        Column index, or -1 if nothing matches
    """
    normalized_headers = [normalize_column_name(h) for h in headers]
    for column_type in column_types:
        wanted = normalize_column_name(column_type)
        for index, header in enumerate(normalized_headers):
            if header and (wanted in header or header in wanted):
                return index
    return -1


def _row_values(row: Sequence[Any]) -> list[str]:
    return [str(value).strip() for value in row if value is not None and str(value).strip()]


def find_data_start_row(rows: Sequence[Sequence[Any]]) -> tuple[int, list[str]]:
    """
    Locate the header row of a statement export.

    Many banks put account summaries above the transaction table, so the
    first HEADER_SCAN_ROWS rows are scanned for one that names at least two
    of the three required columns.

    Returns:
        Tuple of (header row index, header names). Falls back to row 0.
    """
    for index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        if not row:
            continue

        candidates = _row_values(row)
        if len(candidates) < 2:
            continue

        found = sum(
            1
            for column in REQUIRED_COLUMNS
            if find_column_index(candidates, COLUMN_MAPPINGS[column]) != -1
        )
        if found >= 2:
            logger.debug(f"Header row found at {index}: {candidates}")
            # Keep positions aligned with the data rows
            return index, ["" if v is None else str(v).strip() for v in row]

    logger.debug("No clear header row found, using first row")
    first_row = rows[0] if rows else []
    return 0, ["" if v is None else str(v).strip() for v in first_row]


def detect_extra_fields(headers: Sequence[str]) -> dict[str, int]:
    """Map optional field names to their column index, for those present."""
    extra_fields = {}
    for field in EXTRA_COLUMNS:
        index = find_column_index(headers, COLUMN_MAPPINGS[field])
        if index != -1:
            extra_fields[field] = index
    return extra_fields

"""PDF statement parser.

Statements have no column headers once flattened to text, so each line is
matched against a few common layouts instead.
"""

import logging
import re
from pathlib import Path

import pdfplumber

from ..exceptions import FileParseError
from ..models import ParsedTransaction
from .tabular import ParseResult
from .values import parse_date, parse_optional_field, parse_signed_amount

logger = logging.getLogger(__name__)

_AMOUNT = r"[+-]?\$?[\d,]+(?:\.\d+)?"
_US_DATE = r"\d{1,2}[/-]\d{1,2}[/-]\d{4}"
_ISO_DATE = r"\d{4}[/-]\d{1,2}[/-]\d{1,2}"

# (pattern, group order) tried in turn against each line. Amount-last must
# precede amount-first; an optional posting date after the date is skipped.
_LINE_PATTERNS = (
    (re.compile(rf"({_US_DATE})\s+({_AMOUNT})\s+(.+)"), ("date", "amount", "description")),
    (re.compile(rf"({_ISO_DATE})\s+({_AMOUNT})\s+(.+)"), ("date", "amount", "description")),
    (
        re.compile(
            rf"({_US_DATE}|{_ISO_DATE})\s+(?:(?:{_US_DATE}|{_ISO_DATE})\s+)?(.+?)\s+({_AMOUNT})$"
        ),
        ("date", "description", "amount"),
    ),
    (re.compile(rf"({_AMOUNT})\s+({_US_DATE})\s+(.+)"), ("amount", "date", "description")),
)

# Trailing "CITY NAME ST"
_LOCATION = re.compile(r"\b([A-Z]{2,}(?:\s+[A-Z]{2,})*)\s+([A-Z]{2})\s*$")


def extract_location(description: str) -> str | None:
    """Pull a trailing city/state pair out of a description."""
    match = _LOCATION.search(description)
    if not match:
        return None
    return f"{match.group(1).strip()}, {match.group(2)}"


def parse_transaction_line(line: str) -> ParsedTransaction | None:
    """Parse one line of statement text, or None if it isn't a transaction."""
    for pattern, order in _LINE_PATTERNS:
        match = pattern.search(line)
        if not match:
            continue

        parts = dict(zip(order, match.groups(), strict=True))
        signed_amount = parse_signed_amount(parts["amount"])
        if abs(signed_amount) <= 0:
            continue

        description = parts["description"].strip()
        return ParsedTransaction(
            date=parse_date(parts["date"]),
            amount=abs(signed_amount),
            signed_amount=signed_amount,
            description=description,
            location=parse_optional_field(extract_location(description)),
        )
    return None


def parse_statement_text(text: str) -> list[ParsedTransaction]:
    """Parse every transaction-looking line of extracted statement text."""
    transactions = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        transaction = parse_transaction_line(line)
        if transaction:
            transactions.append(transaction)
    return transactions


def parse_pdf(path: Path) -> ParseResult:
    """
    Parse a PDF bank statement.

    Raises:
        FileParseError: If no text can be extracted or no transactions found
    """
    logger.info(f"Parsing PDF file: {path.name}")
    pages_text = []
    try:
        with pdfplumber.open(path) as pdf:
            for i, page in enumerate(pdf.pages):
                text = page.extract_text()
                if text and text.strip():
                    pages_text.append(text)
                    logger.debug(f"Extracted text from page {i + 1}")
    except Exception as e:
        raise FileParseError(f"Failed to parse PDF file {path.name}: {e}") from e

    if not pages_text:
        raise FileParseError(
            "PDF file appears to be empty or contains no readable text"
        )

    transactions = parse_statement_text("\n".join(pages_text))
    if not transactions:
        raise FileParseError(
            "No transactions found in PDF. Please ensure it contains "
            "transaction data in a supported format."
        )

    logger.info(f"Parsed {len(transactions)} transactions from {path.name}")
    # Statements usually carry a merchant city
    return ParseResult(transactions, ["location"])

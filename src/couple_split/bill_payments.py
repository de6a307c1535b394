"""Detection of card bill payments that should not be split."""

import logging

from .models import ParsedTransaction

logger = logging.getLogger(__name__)

BILL_PAYMENT_INDICATORS = (
    "mobile payment",
    "thank you",
    "bill pay payment",
    "payment received",
    "autopay",
    "online payment",
    "electronic payment",
    "payment to",
    "transfer to",
    "payment thank you",
)


def is_bill_payment(description: str, signed_amount: float) -> bool:
    """A negative amount whose description mentions a payment."""
    lowered = description.lower()
    return signed_amount < 0 and any(
        indicator in lowered for indicator in BILL_PAYMENT_INDICATORS
    )


def filter_bill_payments(
    transactions: list[ParsedTransaction],
) -> tuple[list[ParsedTransaction], list[ParsedTransaction]]:
    """
    Split a parsed batch into expenses and bill payments.

    Rows without a signed amount are always kept.

    Returns:
        Tuple of (kept, excluded bill payments)
    """
    kept = []
    excluded = []
    for transaction in transactions:
        if transaction.signed_amount is not None and is_bill_payment(
            transaction.description, transaction.signed_amount
        ):
            logger.info(
                f"Excluded bill payment: {transaction.description} "
                f"({transaction.signed_amount})"
            )
            excluded.append(transaction)
        else:
            kept.append(transaction)
    return kept, excluded

"""Duplicate detection for imported transaction batches."""

import logging

from .models import (
    DuplicateDetectionResult,
    DuplicateMatch,
    DuplicateReviewDecision,
    Transaction,
)

logger = logging.getLogger(__name__)


def _normalize_description(description: str) -> str:
    return description.strip().lower()


def is_duplicate_of(new: Transaction, existing: Transaction) -> bool:
    """Same date, same amount, and same description ignoring case and padding."""
    return (
        new.date == existing.date
        and new.amount == existing.amount
        and _normalize_description(new.description)
        == _normalize_description(existing.description)
    )


def find_duplicates(
    new_transactions: list[Transaction], existing_transactions: list[Transaction]
) -> DuplicateDetectionResult:
    """
    Partition a new batch into duplicates of stored transactions and uniques.

    Plain O(n*m) scan; volumes are in the hundreds.

    Args:
        new_transactions: Freshly parsed transactions
        existing_transactions: Transactions already in the store

    Returns:
        Duplicates (with their batch index and first stored match) and uniques
    """
    result = DuplicateDetectionResult()

    for index, new in enumerate(new_transactions):
        match = next(
            (existing for existing in existing_transactions if is_duplicate_of(new, existing)),
            None,
        )
        if match is None:
            result.unique_transactions.append(new)
        else:
            result.duplicates.append(
                DuplicateMatch(index=index, new_transaction=new, existing_transaction=match)
            )

    if result.duplicates:
        logger.info(
            f"Found {len(result.duplicates)} duplicate(s) in batch of "
            f"{len(new_transactions)}"
        )
    return result


def process_duplicate_decisions(
    decisions: list[DuplicateReviewDecision],
    pending_transactions: list[Transaction],
    detection: DuplicateDetectionResult,
) -> tuple[list[Transaction], int]:
    """
    Resolve the user's duplicate review.

    Args:
        decisions: One decision per reviewed duplicate
        pending_transactions: The full batch that was checked
        detection: Result of `find_duplicates` for that batch

    Returns:
        Tuple of (transactions to store, number of duplicates skipped).
        Uniques come first, then the duplicates the user chose to keep.
    """
    duplicate_indexes = {dup.index for dup in detection.duplicates}
    uniques = [
        t for index, t in enumerate(pending_transactions) if index not in duplicate_indexes
    ]

    included = []
    accepted = set()
    for decision in decisions:
        if not decision.should_include or decision.duplicate_index in accepted:
            continue
        if not 0 <= decision.duplicate_index < len(detection.duplicates):
            logger.warning(f"Ignoring decision for unknown duplicate {decision.duplicate_index}")
            continue
        accepted.add(decision.duplicate_index)
        match = detection.duplicates[decision.duplicate_index]
        included.append(pending_transactions[match.index])

    skipped = len(detection.duplicates) - len(included)
    return uniques + included, skipped

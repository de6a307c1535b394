"""Tests for duplicate detection and bill payment filtering."""

from couple_split.bill_payments import filter_bill_payments, is_bill_payment
from couple_split.duplicates import (
    find_duplicates,
    is_duplicate_of,
    process_duplicate_decisions,
)
from couple_split.models import (
    DuplicateReviewDecision,
    ParsedTransaction,
    Payer,
    Transaction,
)


def make_transaction(date: str, amount: float, description: str) -> Transaction:
    return Transaction(date=date, amount=amount, description=description, paid_by=Payer.PERSON1)


class TestIsDuplicateOf:
    def test_case_only_difference(self):
        assert is_duplicate_of(
            make_transaction("2024-01-01", 10, "coffee"),
            make_transaction("2024-01-01", 10, "Coffee"),
        )

    def test_description_ignores_case_and_padding(self):
        assert is_duplicate_of(
            make_transaction("2024-01-15", 4.5, "  Coffee "),
            make_transaction("2024-01-15", 4.5, "coffee"),
        )

    def test_different_amount(self):
        assert not is_duplicate_of(
            make_transaction("2024-01-15", 4.5, "Coffee"),
            make_transaction("2024-01-15", 4.51, "Coffee"),
        )

    def test_different_date(self):
        assert not is_duplicate_of(
            make_transaction("2024-01-15", 4.5, "Coffee"),
            make_transaction("2024-01-16", 4.5, "Coffee"),
        )

    def test_inner_whitespace_matters(self):
        assert not is_duplicate_of(
            make_transaction("2024-01-15", 4.5, "Coffee Shop"),
            make_transaction("2024-01-15", 4.5, "Coffee  Shop"),
        )


class TestFindDuplicates:
    def test_partitions_batch(self):
        existing = [make_transaction("2024-01-15", 4.5, "coffee")]
        batch = [
            make_transaction("2024-01-14", 20, "Lunch"),
            make_transaction("2024-01-15", 4.5, "Coffee"),
            make_transaction("2024-01-16", 8, "Bagel"),
        ]

        result = find_duplicates(batch, existing)

        assert len(result.duplicates) == 1
        assert result.duplicates[0].index == 1
        assert result.duplicates[0].new_transaction is batch[1]
        assert result.duplicates[0].existing_transaction.id == existing[0].id
        assert [t.description for t in result.unique_transactions] == ["Lunch", "Bagel"]

    def test_first_stored_match_wins(self):
        first = make_transaction("2024-01-15", 4.5, "Coffee")
        second = make_transaction("2024-01-15", 4.5, "COFFEE")

        result = find_duplicates([make_transaction("2024-01-15", 4.5, "coffee")], [first, second])

        assert result.duplicates[0].existing_transaction.id == first.id

    def test_matches_within_batch_are_not_duplicates(self):
        batch = [
            make_transaction("2024-01-15", 4.5, "Coffee"),
            make_transaction("2024-01-15", 4.5, "Coffee"),
        ]

        result = find_duplicates(batch, [])

        assert result.duplicates == []
        assert len(result.unique_transactions) == 2

    def test_empty_store(self):
        result = find_duplicates([], [])

        assert result.duplicates == []
        assert result.unique_transactions == []


class TestProcessDuplicateDecisions:
    def test_includes_only_accepted_duplicates(self):
        existing = [
            make_transaction("2024-01-15", 4.5, "Coffee"),
            make_transaction("2024-01-16", 9.0, "Sandwich"),
        ]
        batch = [
            make_transaction("2024-01-15", 4.5, "Coffee"),
            make_transaction("2024-01-17", 30, "Gas"),
            make_transaction("2024-01-16", 9.0, "Sandwich"),
        ]
        detection = find_duplicates(batch, existing)

        to_store, skipped = process_duplicate_decisions(
            [
                DuplicateReviewDecision(duplicate_index=0, should_include=False),
                DuplicateReviewDecision(duplicate_index=1, should_include=True),
            ],
            batch,
            detection,
        )

        assert [t.description for t in to_store] == ["Gas", "Sandwich"]
        assert skipped == 1

    def test_no_decisions_skips_all_duplicates(self):
        existing = [make_transaction("2024-01-15", 4.5, "Coffee")]
        batch = [make_transaction("2024-01-15", 4.5, "Coffee")]
        detection = find_duplicates(batch, existing)

        to_store, skipped = process_duplicate_decisions([], batch, detection)

        assert to_store == []
        assert skipped == 1

    def test_unknown_duplicate_index_is_ignored(self):
        existing = [make_transaction("2024-01-15", 4.5, "Coffee")]
        batch = [
            make_transaction("2024-01-15", 4.5, "Coffee"),
            make_transaction("2024-01-17", 30, "Gas"),
        ]
        detection = find_duplicates(batch, existing)

        to_store, skipped = process_duplicate_decisions(
            [
                DuplicateReviewDecision(duplicate_index=5, should_include=True),
                DuplicateReviewDecision(duplicate_index=-1, should_include=True),
            ],
            batch,
            detection,
        )

        assert [t.description for t in to_store] == ["Gas"]
        assert skipped == 1

    def test_repeated_decision_counts_once(self):
        existing = [make_transaction("2024-01-15", 4.5, "Coffee")]
        batch = [make_transaction("2024-01-15", 4.5, "Coffee")]
        detection = find_duplicates(batch, existing)

        to_store, skipped = process_duplicate_decisions(
            [DuplicateReviewDecision(duplicate_index=0, should_include=True)] * 2,
            batch,
            detection,
        )

        assert len(to_store) == 1
        assert skipped == 0


class TestBillPayments:
    def test_negative_payment_is_excluded(self):
        assert is_bill_payment("MOBILE PAYMENT - THANK YOU", -500.0)
        assert is_bill_payment("AutoPay Payment Received", -120.0)

    def test_positive_amount_is_kept(self):
        assert not is_bill_payment("PAYMENT TO LANDLORD", 1500.0)

    def test_refund_without_indicator_is_kept(self):
        assert not is_bill_payment("AMAZON REFUND", -25.0)

    def test_filter_bill_payments(self):
        parsed = [
            ParsedTransaction(date="2024-02-01", amount=500, description="Online Payment", signed_amount=-500),
            ParsedTransaction(date="2024-02-02", amount=42, description="Groceries", signed_amount=42),
            ParsedTransaction(date="2024-02-03", amount=80, description="Autopay"),
        ]

        kept, excluded = filter_bill_payments(parsed)

        assert [t.description for t in kept] == ["Groceries", "Autopay"]
        assert [t.description for t in excluded] == ["Online Payment"]

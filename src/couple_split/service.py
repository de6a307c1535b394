"""Service layer that composes parsing, rules, storage and calculation.

The CLI talks only to `ExpenseService`; everything it needs is passed in, so
tests can build one around a temporary database.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .bill_payments import filter_bill_payments
from .calculator import calculate
from .config import Settings
from .db import Database
from .duplicates import process_duplicate_decisions
from .models import (
    CalculationResult,
    Category,
    CategoryNames,
    DuplicateDetectionResult,
    DuplicateReviewDecision,
    ParsedTransaction,
    Payer,
    ProportionSettings,
    Transaction,
)
from .parsing import parse_file
from .rules import CardClassificationEngine, CategorizationRulesEngine
from .store import TransactionStore

logger = logging.getLogger(__name__)

PROPORTIONS_KEY = "proportions"
CATEGORY_NAMES_KEY = "category_names"


@dataclass
class ImportPreview:
    """Result of parsing a set of files, before anything is stored."""

    transactions: list[Transaction] = field(default_factory=list)
    detection: DuplicateDetectionResult = field(default_factory=DuplicateDetectionResult)
    bill_payments: list[ParsedTransaction] = field(default_factory=list)
    auto_applied: int = 0
    detected_fields: set[str] = field(default_factory=set)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.detection.duplicates)


@dataclass
class ImportSummary:
    """What `commit_import` stored."""

    added: int
    skipped_duplicates: int
    total_duplicates: int


class ExpenseService:
    """Application operations over the transaction store and rule engines."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        store: TransactionStore,
        rules: CategorizationRulesEngine | None = None,
        card_rules: CardClassificationEngine | None = None,
    ):
        """Initialize the expense service."""
        self.settings = settings
        self.db = database
        self.store = store
        self.rules = rules or CategorizationRulesEngine(database)
        self.card_rules = card_rules or CardClassificationEngine(database)

    # ========================================================================
    # Importing
    # ========================================================================

    def import_files(
        self, paths: list[Path], card_name: str, paid_by: Payer
    ) -> ImportPreview:
        """
        Parse statement files into transactions ready for review.

        Files are parsed one after another; a failure aborts the batch.
        Bill payments are dropped, the card rule (if any) supplies a default
        category, then merchant rules fill in what is still unclassified.
        Nothing is stored until `commit_import`.

        Args:
            paths: Statement files
            card_name: Card the statements belong to
            paid_by: Whose card it is

        Returns:
            Import preview with duplicate detection already run
        """
        preview = ImportPreview()
        parsed: list[ParsedTransaction] = []
        for path in paths:
            result = parse_file(path)
            parsed.extend(result.transactions)
            preview.detected_fields.update(result.detected_fields)

        kept, preview.bill_payments = filter_bill_payments(parsed)

        default_category = self.card_rules.get_card_classification(card_name)
        if default_category:
            logger.info(f"Card '{card_name}' defaults to {default_category.value}")

        transactions = [
            self._to_transaction(p, card_name, paid_by, default_category) for p in kept
        ]
        applied = self.rules.apply_rules_to_transactions(transactions)
        preview.transactions = [t for t, _ in applied]
        preview.auto_applied = sum(1 for t in preview.transactions if t.auto_applied_rule)
        preview.detection = self.store.check_for_duplicates(preview.transactions)

        logger.info(
            f"Prepared {len(preview.transactions)} transactions from {len(paths)} file(s) "
            f"({len(preview.detection.duplicates)} duplicates, "
            f"{len(preview.bill_payments)} bill payments excluded)"
        )
        return preview

    @staticmethod
    def _to_transaction(
        parsed: ParsedTransaction,
        card_name: str,
        paid_by: Payer,
        default_category: Category | None,
    ) -> Transaction:
        category = parsed.category
        from_card_rule = category is Category.UNCLASSIFIED and default_category is not None
        if from_card_rule:
            category = default_category
        return Transaction(
            date=parsed.date,
            amount=parsed.amount,
            description=parsed.description,
            category=category,
            card_name=card_name,
            paid_by=paid_by,
            auto_applied_rule=from_card_rule,
            mcc_code=parsed.mcc_code,
            transaction_type=parsed.transaction_type,
            location=parsed.location,
            reference_number=parsed.reference_number,
        )

    def commit_import(
        self,
        preview: ImportPreview,
        decisions: list[DuplicateReviewDecision] | None = None,
    ) -> ImportSummary:
        """
        Store an import preview.

        Duplicates are skipped unless a decision includes them.
        """
        to_store, skipped = process_duplicate_decisions(
            decisions or [], preview.transactions, preview.detection
        )
        self.store.add_transactions(to_store)
        return ImportSummary(
            added=len(to_store),
            skipped_duplicates=skipped,
            total_duplicates=len(preview.detection.duplicates),
        )

    def add_manual_expense(
        self,
        date: str,
        amount: float,
        description: str,
        category: Category,
        paid_by: Payer,
        payment_method: str | None = None,
    ) -> Transaction:
        """Store a single manually entered expense."""
        transaction = Transaction(
            date=date,
            amount=abs(amount),
            description=description.strip(),
            category=category,
            card_name=payment_method or "Manual Entry",
            paid_by=paid_by,
            is_manual_entry=True,
            payment_method=payment_method,
        )
        self.store.add_transactions([transaction])
        return transaction

    # ========================================================================
    # Categorizing
    # ========================================================================

    def categorize(self, transaction_id: str, category: Category) -> bool:
        """
        Reassign a transaction's category by user action.

        Returns:
            True when a merchant rule should now be suggested
        """
        transaction = self.store.update_category(transaction_id, category)
        if category is Category.UNCLASSIFIED:
            return False

        self.rules.track_categorization(transaction.description, category)
        return self.rules.should_suggest_rule(transaction.description, category)

    def create_rule_and_apply(self, merchant_name: str, category: Category) -> int:
        """
        Create a merchant rule and apply it to stored unclassified transactions.

        Returns:
            Number of transactions the new rule classified
        """
        self.rules.create_rule(merchant_name, category)
        applied = self.rules.apply_rules_to_transactions(self.store.unclassified())
        updated = [t for t, was_applied in applied if was_applied]
        self.store.add_transactions(updated)
        return len(updated)

    # ========================================================================
    # Settings
    # ========================================================================

    def get_proportions(self) -> ProportionSettings:
        """
        Load the saved split, repairing pairs that don't sum to 100.

        Falls back to the configured default when nothing usable is saved.
        """
        default = ProportionSettings(
            person1_percentage=self.settings.default_person1_percentage,
            person2_percentage=self.settings.default_person2_percentage,
        )
        saved = self.db.get_json_config(PROPORTIONS_KEY)
        if saved is None:
            proportions = default
        else:
            try:
                proportions = ProportionSettings.model_validate(saved)
            except ValueError:
                logger.warning(f"Ignoring unreadable saved proportions: {saved}")
                proportions = default

        if not proportions.is_consistent():
            repaired = proportions.normalized()
            logger.warning(
                f"Proportions {proportions.person1_percentage}/"
                f"{proportions.person2_percentage} repaired to "
                f"{repaired.person1_percentage}/{repaired.person2_percentage}"
            )
            proportions = repaired
        return proportions

    def save_proportions(self, person1_percentage: float) -> ProportionSettings:
        """Save a split given person 1's share; person 2 gets the rest."""
        if not 0 <= person1_percentage <= 100:
            raise ValueError("Percentage must be between 0 and 100")
        proportions = ProportionSettings(
            person1_percentage=person1_percentage,
            person2_percentage=100 - person1_percentage,
        )
        self.db.set_json_config(PROPORTIONS_KEY, proportions.model_dump())
        return proportions

    def get_category_names(self) -> CategoryNames:
        saved = self.db.get_json_config(CATEGORY_NAMES_KEY)
        if saved is None:
            return CategoryNames()
        # Blank names fall back to the defaults
        return CategoryNames(**{k: v for k, v in saved.items() if isinstance(v, str) and v.strip()})

    def save_category_names(self, names: CategoryNames) -> None:
        self.db.set_json_config(CATEGORY_NAMES_KEY, names.model_dump())

    # ========================================================================
    # Settlement
    # ========================================================================

    def calculate_settlement(self) -> CalculationResult:
        """Settlement for the current transactions and saved proportions."""
        return calculate(self.store.snapshot(), self.get_proportions())

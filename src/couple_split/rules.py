"""Merchant and card rules for auto-classifying repeat transactions."""

import logging
from datetime import datetime

from .db import Database
from .models import (
    CardClassification,
    CardClassificationRule,
    CategorizationRule,
    Category,
    Transaction,
)

logger = logging.getLogger(__name__)

# Manual categorizations of one merchant before a rule is offered
RULE_SUGGESTION_THRESHOLD = 3

COMMON_CARD_TEMPLATES = [
    "Chase Sapphire Preferred",
    "Chase Sapphire Reserve",
    "Chase Freedom",
    "Chase Freedom Unlimited",
    "AMEX Gold",
    "AMEX Platinum",
    "AMEX Blue Cash",
    "Capital One Venture",
    "Capital One Quicksilver",
    "Citi Double Cash",
    "Discover It",
    "Apple Card",
    "Bank of America Cash Rewards",
    "Wells Fargo Active Cash",
    "PayPal Credit",
    "Venmo Credit Card",
    "Target RedCard",
    "Amazon Prime Card",
]


def suggest_card_names(query: str) -> list[str]:
    """Common card names containing `query` (case-insensitive)."""
    lowered = query.lower()
    return [name for name in COMMON_CARD_TEMPLATES if lowered in name.lower()]


def normalize_key(name: str) -> str:
    """
    Normalize a merchant description or card name for rule lookups.

    Args:
        name: The raw merchant description or card name

    Returns:
        Normalized key (uppercase, stripped)
    """
    return name.upper().strip()


class CategorizationRulesEngine:
    """Manages merchant -> category rules and manual usage counters."""

    def __init__(self, database: Database):
        """Initialize the engine."""
        self.db = database

    def track_categorization(self, merchant_name: str, category: Category) -> int:
        """
        Record a manual categorization of a merchant.

        Args:
            merchant_name: Transaction description
            category: Category the user picked

        Returns:
            Updated counter for this merchant/category pair
        """
        count = self.db.increment_rule_usage(normalize_key(merchant_name), category)
        logger.debug(f"'{merchant_name}' categorized as {category.value} {count} time(s)")
        return count

    def should_suggest_rule(self, merchant_name: str, category: Category) -> bool:
        """
        Check whether a rule should be offered for this merchant.

        True when no rule exists yet and the merchant has been manually
        categorized as `category` at least RULE_SUGGESTION_THRESHOLD times.
        """
        merchant = normalize_key(merchant_name)
        if self.db.get_categorization_rule(merchant):
            return False
        return self.db.get_rule_usage(merchant, category) >= RULE_SUGGESTION_THRESHOLD

    def create_rule(self, merchant_name: str, category: Category) -> CategorizationRule:
        """Store a merchant rule, replacing any existing one."""
        rule = CategorizationRule(
            merchant_name=normalize_key(merchant_name), category=category
        )
        self.db.save_categorization_rule(rule)
        logger.info(f"Rule created: {rule.merchant_name} -> {category.value}")
        return rule

    def get_rule_for_merchant(self, merchant_name: str) -> Category | None:
        """Look up the category for a merchant, if a rule exists."""
        rule = self.db.get_categorization_rule(normalize_key(merchant_name))
        return rule.category if rule else None

    def get_all_rules(self) -> list[CategorizationRule]:
        return self.db.get_all_categorization_rules()

    def delete_rule(self, merchant_name: str) -> bool:
        deleted = self.db.delete_categorization_rule(normalize_key(merchant_name))
        if deleted:
            logger.info(f"Rule deleted: {normalize_key(merchant_name)}")
        return deleted

    def apply_rules_to_transactions(
        self, transactions: list[Transaction]
    ) -> list[tuple[Transaction, bool]]:
        """
        Apply merchant rules to unclassified transactions.

        Already-classified transactions pass through untouched.

        Args:
            transactions: Transactions to check

        Returns:
            List of (transaction, was_auto_applied) in input order
        """
        results = []
        for transaction in transactions:
            if transaction.category is not Category.UNCLASSIFIED:
                results.append((transaction, False))
                continue

            category = self.get_rule_for_merchant(transaction.description)
            if category is None:
                results.append((transaction, False))
                continue

            results.append(
                (transaction.with_category(category, auto_applied_rule=True), True)
            )

        applied = sum(1 for _, was_applied in results if was_applied)
        if applied:
            logger.info(f"Auto-applied merchant rules to {applied} transaction(s)")
        return results


class CardClassificationEngine:
    """Manages card name -> default category rules."""

    def __init__(self, database: Database):
        """Initialize the engine."""
        self.db = database

    def save_card_classification(
        self, card_name: str, classification: CardClassification
    ) -> CardClassificationRule | None:
        """
        Save a card rule. `skip` is never stored.

        Re-saving keeps the original creation time.
        """
        if classification is CardClassification.SKIP:
            return None

        key = normalize_key(card_name)
        now = datetime.now()
        existing = self.db.get_card_rule(key)
        rule = CardClassificationRule(
            card_name=card_name,
            classification=classification,
            created_at=existing.created_at if existing else now,
            last_used=now,
        )
        self.db.save_card_rule(key, rule)
        logger.info(f"Card classification rule saved: {card_name} -> {classification.value}")
        return rule

    def get_card_classification(self, card_name: str) -> Category | None:
        """Default category for a card, bumping the rule's last_used time."""
        key = normalize_key(card_name)
        rule = self.db.get_card_rule(key)
        if rule is None or rule.classification is CardClassification.SKIP:
            return None

        self.db.touch_card_rule(key, datetime.now())
        return Category(rule.classification.value)

    def get_all_rules(self) -> list[CardClassificationRule]:
        return self.db.get_all_card_rules()

    def get_exact_match(self, card_name: str) -> CardClassificationRule | None:
        return self.db.get_card_rule(normalize_key(card_name))

    def delete_rule(self, card_name: str) -> bool:
        return self.db.delete_card_rule(normalize_key(card_name))

    def search_cards(self, query: str) -> list[CardClassificationRule]:
        """Stored rules whose card name contains `query` (case-insensitive)."""
        lowered = query.lower()
        return [rule for rule in self.get_all_rules() if lowered in rule.card_name.lower()]

    def get_suggestions(self, query: str) -> list[str]:
        return suggest_card_names(query)

    def update_card_name(self, old_name: str, new_name: str) -> bool:
        """Rename a card rule. Returns False when no rule exists for `old_name`."""
        rule = self.get_exact_match(old_name)
        if rule is None:
            return False

        self.db.delete_card_rule(normalize_key(old_name))
        self.save_card_classification(new_name, rule.classification)
        return True

    def merge_cards(self, source_name: str, target_name: str) -> bool:
        """
        Merge `source_name` into `target_name`.

        The target takes the source's classification and the source rule is
        removed. Returns False when the source has no rule.
        """
        rule = self.get_exact_match(source_name)
        if rule is None:
            return False

        self.save_card_classification(target_name, rule.classification)
        if normalize_key(source_name) != normalize_key(target_name):
            self.db.delete_card_rule(normalize_key(source_name))
        logger.info(f"Merged card '{source_name}' into '{target_name}'")
        return True

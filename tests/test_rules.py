"""Tests for merchant and card rules."""

import pytest

from couple_split.db import Database
from couple_split.models import CardClassification, Category, Payer, Transaction
from couple_split.rules import (
    RULE_SUGGESTION_THRESHOLD,
    CardClassificationEngine,
    CategorizationRulesEngine,
    normalize_key,
    suggest_card_names,
)


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def rules(db):
    return CategorizationRulesEngine(db)


@pytest.fixture
def cards(db):
    return CardClassificationEngine(db)


def make_transaction(description: str, category: Category = Category.UNCLASSIFIED) -> Transaction:
    return Transaction(
        date="2024-03-01",
        amount=12.5,
        description=description,
        category=category,
        paid_by=Payer.PERSON1,
    )


class TestNormalizeKey:
    def test_uppercases_and_strips(self):
        assert normalize_key("  Starbucks #123 ") == "STARBUCKS #123"


class TestRuleSuggestion:
    """A rule is offered after enough manual categorizations."""

    def test_not_suggested_below_threshold(self, rules):
        for _ in range(RULE_SUGGESTION_THRESHOLD - 1):
            rules.track_categorization("STARBUCKS", Category.SHARED)

        assert not rules.should_suggest_rule("STARBUCKS", Category.SHARED)

    def test_suggested_at_threshold(self, rules):
        for _ in range(RULE_SUGGESTION_THRESHOLD):
            rules.track_categorization("STARBUCKS", Category.SHARED)

        assert rules.should_suggest_rule("STARBUCKS", Category.SHARED)

    def test_track_returns_running_count(self, rules):
        assert rules.track_categorization("Netflix", Category.PERSON2) == 1
        assert rules.track_categorization("NETFLIX ", Category.PERSON2) == 2
        assert rules.track_categorization("netflix", Category.SHARED) == 1

    def test_counts_are_per_category(self, rules):
        rules.track_categorization("TARGET", Category.SHARED)
        rules.track_categorization("TARGET", Category.SHARED)
        rules.track_categorization("TARGET", Category.PERSON1)

        assert not rules.should_suggest_rule("TARGET", Category.SHARED)
        assert not rules.should_suggest_rule("TARGET", Category.PERSON1)

    def test_not_suggested_when_rule_exists(self, rules):
        rules.create_rule("STARBUCKS", Category.PERSON1)
        for _ in range(RULE_SUGGESTION_THRESHOLD + 2):
            rules.track_categorization("STARBUCKS", Category.SHARED)

        assert not rules.should_suggest_rule("STARBUCKS", Category.SHARED)


class TestMerchantRules:
    def test_create_and_lookup_is_case_insensitive(self, rules):
        rule = rules.create_rule("Whole Foods", Category.SHARED)

        assert rule.merchant_name == "WHOLE FOODS"
        assert rules.get_rule_for_merchant("whole foods ") is Category.SHARED
        assert rules.get_rule_for_merchant("Trader Joes") is None

    def test_create_replaces_existing(self, rules):
        rules.create_rule("UBER", Category.PERSON1)
        rules.create_rule("uber", Category.SHARED)

        assert rules.get_rule_for_merchant("UBER") is Category.SHARED
        assert len(rules.get_all_rules()) == 1

    def test_delete_rule(self, rules):
        rules.create_rule("UBER", Category.PERSON1)

        assert rules.delete_rule("Uber")
        assert not rules.delete_rule("Uber")
        assert rules.get_rule_for_merchant("UBER") is None

    def test_apply_rules_only_touches_unclassified(self, rules):
        rules.create_rule("SPOTIFY", Category.PERSON2)
        transactions = [
            make_transaction("Spotify"),
            make_transaction("SPOTIFY", Category.SHARED),
            make_transaction("Unknown Shop"),
        ]

        results = rules.apply_rules_to_transactions(transactions)

        assert [applied for _, applied in results] == [True, False, False]
        first, second, third = (t for t, _ in results)
        assert first.category is Category.PERSON2
        assert first.is_classified
        assert first.auto_applied_rule
        assert first.id == transactions[0].id
        assert second.category is Category.SHARED
        assert not second.auto_applied_rule
        assert third.category is Category.UNCLASSIFIED

    def test_apply_rules_does_not_mutate_input(self, rules):
        rules.create_rule("SPOTIFY", Category.PERSON2)
        transaction = make_transaction("SPOTIFY")

        rules.apply_rules_to_transactions([transaction])

        assert transaction.category is Category.UNCLASSIFIED


class TestCardRules:
    def test_save_and_lookup(self, cards):
        cards.save_card_classification("AMEX Gold", CardClassification.SHARED)

        assert cards.get_card_classification("amex gold") is Category.SHARED
        assert cards.get_card_classification("Chase Freedom") is None

    def test_skip_is_not_stored(self, cards):
        assert cards.save_card_classification("Debit", CardClassification.SKIP) is None
        assert cards.get_all_rules() == []

    def test_resave_keeps_created_at(self, cards):
        first = cards.save_card_classification("Apple Card", CardClassification.PERSON1)
        second = cards.save_card_classification("APPLE CARD", CardClassification.PERSON2)

        assert second.created_at == first.created_at
        assert cards.get_card_classification("Apple Card") is Category.PERSON2
        assert len(cards.get_all_rules()) == 1

    def test_lookup_updates_last_used(self, cards):
        saved = cards.save_card_classification("Apple Card", CardClassification.PERSON1)

        cards.get_card_classification("Apple Card")

        assert cards.get_exact_match("apple card").last_used >= saved.last_used

    def test_search_cards(self, cards):
        cards.save_card_classification("Chase Freedom", CardClassification.PERSON1)
        cards.save_card_classification("Chase Sapphire", CardClassification.SHARED)
        cards.save_card_classification("AMEX Gold", CardClassification.PERSON2)

        names = [rule.card_name for rule in cards.search_cards("chase")]

        assert names == ["Chase Freedom", "Chase Sapphire"]

    def test_update_card_name(self, cards):
        cards.save_card_classification("Old Card", CardClassification.SHARED)

        assert cards.update_card_name("old card", "New Card")
        assert cards.get_exact_match("Old Card") is None
        assert cards.get_card_classification("New Card") is Category.SHARED
        assert not cards.update_card_name("Missing", "Other")

    def test_merge_cards(self, cards):
        cards.save_card_classification("Visa 1234", CardClassification.PERSON2)
        cards.save_card_classification("Visa", CardClassification.PERSON1)

        assert cards.merge_cards("Visa 1234", "Visa")
        assert cards.get_exact_match("Visa 1234") is None
        assert cards.get_card_classification("Visa") is Category.PERSON2

    def test_merge_missing_source(self, cards):
        assert not cards.merge_cards("Nope", "Visa")

    def test_delete_rule(self, cards):
        cards.save_card_classification("Visa", CardClassification.PERSON1)

        assert cards.delete_rule("VISA")
        assert cards.get_exact_match("Visa") is None


class TestCardSuggestions:
    def test_suggest_card_names(self):
        assert suggest_card_names("amex") == ["AMEX Gold", "AMEX Platinum", "AMEX Blue Cash"]

    def test_engine_suggestions(self, cards):
        assert "Apple Card" in cards.get_suggestions("apple")

"""Interactive UI components for categorization and duplicate review."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .calculator import format_currency
from .models import (
    Category,
    CategoryNames,
    DuplicateDetectionResult,
    DuplicateReviewDecision,
    Transaction,
)

logger = logging.getLogger(__name__)

# Sentinel returned when the user wants to stop the whole session
QUIT = "quit"


class CategoryCompleter(Completer):
    """Fuzzy search completer over the user's category names."""

    def __init__(self, names: CategoryNames):
        """Initialize the completer with the display name of each category."""
        self.name_to_category: dict[str, Category] = {
            names.display_name(category): category
            for category in (Category.PERSON1, Category.PERSON2, Category.SHARED)
        }

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()
        for name in self.name_to_category:
            if not query or fuzzy_match(query, name.lower()):
                yield Completion(
                    text=name,
                    start_position=-len(document.text),
                    display=name,
                )

    def resolve(self, text: str) -> Category | None:
        """Map typed text to a category by exact name, shortcut key or unique prefix."""
        text = text.strip()
        shortcuts = {"1": Category.PERSON1, "2": Category.PERSON2, "s": Category.SHARED}
        if text.lower() in shortcuts:
            return shortcuts[text.lower()]
        if text in self.name_to_category:
            return self.name_to_category[text]

        matches = [
            category
            for name, category in self.name_to_category.items()
            if name.lower().startswith(text.lower())
        ]
        return matches[0] if text and len(matches) == 1 else None


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="shd" matches "shared"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


def select_category_interactive(
    transaction: Transaction,
    names: CategoryNames,
    session: PromptSession | None = None,
) -> Category | str | None:
    """
    Ask the user to categorize one transaction.

    Returns:
        The chosen category, None to skip, or QUIT to stop
    """
    completer = CategoryCompleter(names)
    session = session or PromptSession(completer=completer)

    print(
        f"\n📝 {transaction.date}  {transaction.description}  "
        f"{format_currency(transaction.amount)}  (card: {transaction.card_name or '-'})"
    )
    print(
        f"   [1] {names.person1}  [2] {names.person2}  [s] {names.shared}  "
        "Enter to skip, q to quit"
    )

    try:
        while True:
            result = session.prompt("Category: ", completer=completer, complete_while_typing=True)
            if not result.strip():
                return None
            if result.strip().lower() in ("q", "quit"):
                return QUIT

            category = completer.resolve(result)
            if category:
                logger.info(f"User selected {category.value} for '{transaction.description}'")
                return category

            print("❌ Invalid category. Use 1, 2, s or press Tab to complete.")

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return QUIT


def confirm(message: str, default: bool = False) -> bool:
    """Simple yes/no prompt."""
    suffix = "[Y/n]" if default else "[y/N]"
    response = input(f"{message} {suffix} ").strip().lower()
    if not response:
        return default
    return response in ("y", "yes")


def review_duplicates(detection: DuplicateDetectionResult) -> list[DuplicateReviewDecision]:
    """Ask, one by one, whether each detected duplicate should be imported anyway."""
    decisions = []
    for index, match in enumerate(detection.duplicates):
        new = match.new_transaction
        existing = match.existing_transaction
        print(
            f"\n⚠️  Possible duplicate: {new.date}  {new.description}  "
            f"{format_currency(new.amount)}"
        )
        print(f"   Already stored from card: {existing.card_name or '-'}")
        decisions.append(
            DuplicateReviewDecision(
                duplicate_index=index, should_include=confirm("   Import anyway?")
            )
        )
    return decisions

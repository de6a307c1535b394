"""Pydantic domain models for CoupleSplit."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ============================================================================
# Enumerations
# ============================================================================


class Category(str, Enum):
    """Whose expense a transaction conceptually is."""

    PERSON1 = "person1"
    PERSON2 = "person2"
    SHARED = "shared"
    UNCLASSIFIED = "UNCLASSIFIED"


class Payer(str, Enum):
    """Whose payment instrument was charged."""

    PERSON1 = "person1"
    PERSON2 = "person2"


class CardClassification(str, Enum):
    """Default category attached to a card name."""

    PERSON1 = "person1"
    PERSON2 = "person2"
    SHARED = "shared"
    SKIP = "skip"


class SettlementDirection(str, Enum):
    """Which way the settlement transfer goes."""

    PERSON1_TO_PERSON2 = "person1ToPerson2"
    PERSON2_TO_PERSON1 = "person2ToPerson1"


# ============================================================================
# Transactions
# ============================================================================


class ParsedTransaction(BaseModel):
    """A row extracted from a statement file, before it is stored."""

    date: str  # ISO YYYY-MM-DD
    amount: float = Field(ge=0)
    description: str
    category: Category = Category.UNCLASSIFIED
    signed_amount: float | None = None  # amount as it appeared in the file
    mcc_code: str | None = None
    transaction_type: str | None = None
    location: str | None = None
    reference_number: str | None = None


class Transaction(BaseModel):
    """A single stored expense record.

    `category` and `paid_by` are independent: category says whose expense it
    is, paid_by says whose account was debited.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    date: str
    amount: float = Field(ge=0)
    description: str
    category: Category = Category.UNCLASSIFIED
    card_name: str = ""
    paid_by: Payer
    is_classified: bool = False
    mcc_code: str | None = None
    transaction_type: str | None = None
    location: str | None = None
    reference_number: str | None = None
    auto_applied_rule: bool = False
    is_manual_entry: bool = False
    payment_method: str | None = None

    @model_validator(mode="after")
    def _sync_classified_flag(self) -> "Transaction":
        self.is_classified = self.category is not Category.UNCLASSIFIED
        return self

    def with_category(
        self, category: Category, auto_applied_rule: bool = False
    ) -> "Transaction":
        """Return a copy reassigned to `category`."""
        return self.model_copy(
            update={
                "category": category,
                "is_classified": category is not Category.UNCLASSIFIED,
                "auto_applied_rule": auto_applied_rule,
            }
        )


# ============================================================================
# Settings
# ============================================================================


class ProportionSettings(BaseModel):
    """How shared expenses are apportioned between the two people.

    Not validated on construction; the calculator uses whatever it is given.
    """

    person1_percentage: float = 45.0
    person2_percentage: float = 55.0

    def is_consistent(self, tolerance: float = 1e-9) -> bool:
        """True when the two percentages sum to 100."""
        return abs(self.person1_percentage + self.person2_percentage - 100) <= tolerance

    def normalized(self) -> "ProportionSettings":
        """Rescale the pair so it sums to 100.

        Negative values are clamped to zero; a pair with no weight falls back
        to the 45/55 default.
        """
        p1 = max(0.0, self.person1_percentage)
        p2 = max(0.0, self.person2_percentage)
        total = p1 + p2
        if total <= 0:
            return ProportionSettings()
        person1 = p1 * 100 / total
        return ProportionSettings(
            person1_percentage=person1, person2_percentage=100 - person1
        )


class CategoryNames(BaseModel):
    """Display names for the three user-facing categories."""

    person1: str = "Person 1"
    person2: str = "Person 2"
    shared: str = "Shared"

    def display_name(self, category: Category) -> str:
        """Human label for a category."""
        match category:
            case Category.PERSON1:
                return self.person1
            case Category.PERSON2:
                return self.person2
            case Category.SHARED:
                return self.shared
            case Category.UNCLASSIFIED:
                return "Unclassified"

    def payer_name(self, payer: Payer) -> str:
        """Human label for a payer."""
        return self.person1 if payer is Payer.PERSON1 else self.person2


# ============================================================================
# Calculation
# ============================================================================


class CategoryBreakdown(BaseModel):
    """Transactions partitioned by category."""

    model_config = ConfigDict(frozen=True)

    person1: list[Transaction] = Field(default_factory=list)
    person2: list[Transaction] = Field(default_factory=list)
    shared: list[Transaction] = Field(default_factory=list)
    unclassified: list[Transaction] = Field(default_factory=list)


class CalculationResult(BaseModel):
    """Settlement report recomputed from transactions and proportions."""

    model_config = ConfigDict(frozen=True)

    person1_individual: float = 0.0
    person2_individual: float = 0.0
    shared_total: float = 0.0
    person1_share_of_shared: float = 0.0
    person2_share_of_shared: float = 0.0
    person1_should_pay: float = 0.0
    person2_should_pay: float = 0.0
    person1_actually_paid: float = 0.0
    person2_actually_paid: float = 0.0
    person1_net_position: float = 0.0
    person2_net_position: float = 0.0
    final_settlement_amount: float = 0.0
    settlement_direction: SettlementDirection = SettlementDirection.PERSON2_TO_PERSON1
    total_spending: float = 0.0
    category_breakdown: CategoryBreakdown = Field(default_factory=CategoryBreakdown)

    @property
    def balance_residual(self) -> float:
        """Classified spending not matched by exactly one payer's outlay."""
        return self.total_spending - (
            self.person1_actually_paid + self.person2_actually_paid
        )

    @property
    def unclassified_count(self) -> int:
        """Number of transactions still waiting for a category."""
        return len(self.category_breakdown.unclassified)


# ============================================================================
# Rules
# ============================================================================


class CategorizationRule(BaseModel):
    """A merchant description -> category rule."""

    merchant_name: str  # normalized
    category: Category
    created_at: datetime = Field(default_factory=datetime.now)


class CardClassificationRule(BaseModel):
    """A card name -> default category rule."""

    card_name: str  # as entered by the user
    classification: CardClassification
    created_at: datetime = Field(default_factory=datetime.now)
    last_used: datetime = Field(default_factory=datetime.now)


# ============================================================================
# Duplicate detection
# ============================================================================


class DuplicateMatch(BaseModel):
    """A new transaction that matches one already stored."""

    index: int  # position in the new batch
    new_transaction: Transaction
    existing_transaction: Transaction


class DuplicateDetectionResult(BaseModel):
    """Partition of an incoming batch into duplicates and uniques."""

    duplicates: list[DuplicateMatch] = Field(default_factory=list)
    unique_transactions: list[Transaction] = Field(default_factory=list)


class DuplicateReviewDecision(BaseModel):
    """User decision for one entry of `DuplicateDetectionResult.duplicates`."""

    duplicate_index: int
    should_include: bool

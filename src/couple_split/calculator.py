"""Core settlement logic for computing who owes whom between two people."""

import logging
from collections.abc import Iterable

from .models import (
    CalculationResult,
    Category,
    CategoryBreakdown,
    Payer,
    ProportionSettings,
    SettlementDirection,
    Transaction,
)

logger = logging.getLogger(__name__)

# Anything under a cent counts as settled
SETTLED_EPSILON = 0.01


def calculate(
    transactions: Iterable[Transaction], proportions: ProportionSettings
) -> CalculationResult:
    """
    Compute the settlement report for a set of transactions.

    Steps:
    1. Partition transactions by category
    2. Sum each person's individual expenses and the shared total
    3. Apportion the shared total using the two percentages independently
    4. should_pay = individual + share of shared
    5. actually_paid = classified expenses charged to that person's cards
    6. net = should_pay - actually_paid; positive means that person owes

    Unclassified transactions are only reported in the breakdown; they never
    contribute to any total.

    Args:
        transactions: Transactions in any order
        proportions: Percentage split for shared expenses (not validated)

    Returns:
        Calculation result; all zeros for an empty input
    """
    buckets: dict[Category, list[Transaction]] = {category: [] for category in Category}
    for transaction in transactions:
        buckets[transaction.category].append(transaction)

    person1_individual = _sum_amounts(buckets[Category.PERSON1])
    person2_individual = _sum_amounts(buckets[Category.PERSON2])
    shared_total = _sum_amounts(buckets[Category.SHARED])

    person1_share_of_shared = shared_total * proportions.person1_percentage / 100
    person2_share_of_shared = shared_total * proportions.person2_percentage / 100

    person1_should_pay = person1_individual + person1_share_of_shared
    person2_should_pay = person2_individual + person2_share_of_shared

    classified = [
        t
        for category in (Category.PERSON1, Category.PERSON2, Category.SHARED)
        for t in buckets[category]
    ]
    person1_actually_paid = _sum_amounts(t for t in classified if t.paid_by is Payer.PERSON1)
    person2_actually_paid = _sum_amounts(t for t in classified if t.paid_by is Payer.PERSON2)

    person1_net_position = person1_should_pay - person1_actually_paid
    person2_net_position = person2_should_pay - person2_actually_paid

    direction = (
        SettlementDirection.PERSON1_TO_PERSON2
        if person1_net_position > 0
        else SettlementDirection.PERSON2_TO_PERSON1
    )

    result = CalculationResult(
        person1_individual=person1_individual,
        person2_individual=person2_individual,
        shared_total=shared_total,
        person1_share_of_shared=person1_share_of_shared,
        person2_share_of_shared=person2_share_of_shared,
        person1_should_pay=person1_should_pay,
        person2_should_pay=person2_should_pay,
        person1_actually_paid=person1_actually_paid,
        person2_actually_paid=person2_actually_paid,
        person1_net_position=person1_net_position,
        person2_net_position=person2_net_position,
        final_settlement_amount=abs(person1_net_position),
        settlement_direction=direction,
        total_spending=person1_individual + person2_individual + shared_total,
        category_breakdown=CategoryBreakdown(
            person1=buckets[Category.PERSON1],
            person2=buckets[Category.PERSON2],
            shared=buckets[Category.SHARED],
            unclassified=buckets[Category.UNCLASSIFIED],
        ),
    )

    if not proportions.is_consistent():
        logger.warning(
            f"Proportions {proportions.person1_percentage}/"
            f"{proportions.person2_percentage} do not sum to 100; "
            f"shared shares will not add up to the shared total"
        )
    if abs(result.balance_residual) >= SETTLED_EPSILON:
        logger.warning(
            f"Spending and payments differ by {result.balance_residual:.2f}; "
            f"net positions are not mirror images"
        )

    return result


def _sum_amounts(transactions: Iterable[Transaction]) -> float:
    """Sum amounts in input order."""
    total = 0.0
    for transaction in transactions:
        total += transaction.amount
    return total


def is_settled(result: CalculationResult) -> bool:
    """True when the settlement amount rounds to nothing."""
    return result.final_settlement_amount < SETTLED_EPSILON


def format_currency(amount: float) -> str:
    """Format an amount as dollars with two decimal places."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"

"""CoupleSplit - Split shared expenses between two people from bank statements."""

__version__ = "0.1.0"

from .calculator import calculate, format_currency
from .config import Settings, load_settings
from .db import Database
from .duplicates import find_duplicates
from .models import (
    CalculationResult,
    Category,
    Payer,
    ProportionSettings,
    SettlementDirection,
    Transaction,
)
from .rules import CardClassificationEngine, CategorizationRulesEngine
from .service import ExpenseService
from .store import TransactionStore

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "CalculationResult",
    "Category",
    "Payer",
    "ProportionSettings",
    "SettlementDirection",
    "Transaction",
    "calculate",
    "format_currency",
    "find_duplicates",
    "CardClassificationEngine",
    "CategorizationRulesEngine",
    "ExpenseService",
    "TransactionStore",
]

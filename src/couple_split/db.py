"""SQLite database operations for CoupleSplit."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from .models import (
    CardClassification,
    CardClassificationRule,
    CategorizationRule,
    Category,
    Payer,
    Transaction,
)

_TRANSACTION_COLUMNS = (
    "id, date, amount, description, category, card_name, paid_by, "
    "is_classified, mcc_code, transaction_type, location, reference_number, "
    "auto_applied_rule, is_manual_entry, payment_method"
)


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Transactions table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                amount REAL NOT NULL,
                description TEXT NOT NULL,
                category TEXT NOT NULL,
                card_name TEXT NOT NULL DEFAULT '',
                paid_by TEXT NOT NULL,
                is_classified INTEGER NOT NULL DEFAULT 0,
                mcc_code TEXT,
                transaction_type TEXT,
                location TEXT,
                reference_number TEXT,
                auto_applied_rule INTEGER NOT NULL DEFAULT 0,
                is_manual_entry INTEGER NOT NULL DEFAULT 0,
                payment_method TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Merchant categorization rules
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS categorization_rules (
                merchant_name TEXT PRIMARY KEY,
                category TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Manual categorization counters
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS rule_usage (
                merchant_name TEXT NOT NULL,
                category TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (merchant_name, category)
            )
        """
        )

        # Card classification rules, keyed by normalized card name
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS card_rules (
                normalized_name TEXT PRIMARY KEY,
                card_name TEXT NOT NULL,
                classification TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                last_used TIMESTAMP NOT NULL
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def get_json_config(self, key: str) -> dict | None:
        """Get a JSON-encoded config value; unreadable values count as missing."""
        value = self.get_config(key)
        if value is None:
            return None
        try:
            data = json.loads(value)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    def set_json_config(self, key: str, value: dict):
        """Store a dict as a JSON-encoded config value."""
        self.set_config(key, json.dumps(value))

    # ========================================================================
    # Transaction operations
    # ========================================================================

    def get_all_transactions(self) -> list[Transaction]:
        """Get all transactions, newest date first."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT {_TRANSACTION_COLUMNS} FROM transactions "
            f"ORDER BY date DESC, created_at DESC"
        )
        return [_row_to_transaction(row) for row in cursor.fetchall()]

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Get a transaction by ID."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT {_TRANSACTION_COLUMNS} FROM transactions WHERE id = ?",
            (transaction_id,),
        )
        row = cursor.fetchone()
        return _row_to_transaction(row) if row else None

    def save_transactions(self, transactions: list[Transaction]):
        """Insert or replace transactions."""
        cursor = self.conn.cursor()
        cursor.executemany(
            """
            INSERT INTO transactions (
                id, date, amount, description, category, card_name, paid_by,
                is_classified, mcc_code, transaction_type, location,
                reference_number, auto_applied_rule, is_manual_entry,
                payment_method
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                date = excluded.date,
                amount = excluded.amount,
                description = excluded.description,
                category = excluded.category,
                card_name = excluded.card_name,
                paid_by = excluded.paid_by,
                is_classified = excluded.is_classified,
                mcc_code = excluded.mcc_code,
                transaction_type = excluded.transaction_type,
                location = excluded.location,
                reference_number = excluded.reference_number,
                auto_applied_rule = excluded.auto_applied_rule,
                is_manual_entry = excluded.is_manual_entry,
                payment_method = excluded.payment_method
            """,
            [
                (
                    t.id,
                    t.date,
                    t.amount,
                    t.description,
                    t.category.value,
                    t.card_name,
                    t.paid_by.value,
                    int(t.is_classified),
                    t.mcc_code,
                    t.transaction_type,
                    t.location,
                    t.reference_number,
                    int(t.auto_applied_rule),
                    int(t.is_manual_entry),
                    t.payment_method,
                )
                for t in transactions
            ],
        )
        self.conn.commit()

    def replace_all_transactions(self, transactions: list[Transaction]):
        """Replace the local copy with `transactions`."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM transactions")
        self.conn.commit()
        self.save_transactions(transactions)

    def delete_transaction(self, transaction_id: str) -> bool:
        """Delete a transaction. Returns True if a row was removed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    def delete_all_transactions(self) -> int:
        """Delete every transaction. Returns the number removed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM transactions")
        self.conn.commit()
        return cursor.rowcount

    # ========================================================================
    # Categorization rule operations
    # ========================================================================

    def get_categorization_rule(self, merchant_name: str) -> CategorizationRule | None:
        """Get a merchant rule by normalized merchant name."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT merchant_name, category, created_at
            FROM categorization_rules
            WHERE merchant_name = ?
            """,
            (merchant_name,),
        )
        row = cursor.fetchone()
        if not row:
            return None

        return CategorizationRule(
            merchant_name=row["merchant_name"],
            category=Category(row["category"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def save_categorization_rule(self, rule: CategorizationRule):
        """Save a merchant rule, replacing any existing one."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO categorization_rules (merchant_name, category, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT(merchant_name) DO UPDATE SET
                category = excluded.category,
                created_at = excluded.created_at
            """,
            (rule.merchant_name, rule.category.value, rule.created_at.isoformat()),
        )
        self.conn.commit()

    def get_all_categorization_rules(self) -> list[CategorizationRule]:
        """Get all merchant rules."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT merchant_name, category, created_at
            FROM categorization_rules
            ORDER BY merchant_name
            """
        )
        return [
            CategorizationRule(
                merchant_name=row["merchant_name"],
                category=Category(row["category"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in cursor.fetchall()
        ]

    def delete_categorization_rule(self, merchant_name: str) -> bool:
        """Delete a merchant rule."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM categorization_rules WHERE merchant_name = ?",
            (merchant_name,),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def increment_rule_usage(self, merchant_name: str, category: Category) -> int:
        """Bump the manual categorization counter and return its new value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO rule_usage (merchant_name, category, count)
            VALUES (?, ?, 1)
            ON CONFLICT(merchant_name, category) DO UPDATE SET
                count = count + 1
            """,
            (merchant_name, category.value),
        )
        self.conn.commit()
        return self.get_rule_usage(merchant_name, category)

    def get_rule_usage(self, merchant_name: str, category: Category) -> int:
        """Get the manual categorization counter for a merchant/category pair."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT count FROM rule_usage WHERE merchant_name = ? AND category = ?",
            (merchant_name, category.value),
        )
        row = cursor.fetchone()
        return int(row["count"]) if row else 0

    # ========================================================================
    # Card rule operations
    # ========================================================================

    def get_card_rule(self, normalized_name: str) -> CardClassificationRule | None:
        """Get a card rule by normalized card name."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT card_name, classification, created_at, last_used
            FROM card_rules
            WHERE normalized_name = ?
            """,
            (normalized_name,),
        )
        row = cursor.fetchone()
        return _row_to_card_rule(row) if row else None

    def save_card_rule(self, normalized_name: str, rule: CardClassificationRule):
        """Save a card rule under its normalized name."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO card_rules (
                normalized_name, card_name, classification, created_at, last_used
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(normalized_name) DO UPDATE SET
                card_name = excluded.card_name,
                classification = excluded.classification,
                created_at = excluded.created_at,
                last_used = excluded.last_used
            """,
            (
                normalized_name,
                rule.card_name,
                rule.classification.value,
                rule.created_at.isoformat(),
                rule.last_used.isoformat(),
            ),
        )
        self.conn.commit()

    def touch_card_rule(self, normalized_name: str, last_used: datetime):
        """Update the last_used timestamp of a card rule."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE card_rules SET last_used = ? WHERE normalized_name = ?",
            (last_used.isoformat(), normalized_name),
        )
        self.conn.commit()

    def get_all_card_rules(self) -> list[CardClassificationRule]:
        """Get all card rules."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT card_name, classification, created_at, last_used
            FROM card_rules
            ORDER BY card_name
            """
        )
        return [_row_to_card_rule(row) for row in cursor.fetchall()]

    def delete_card_rule(self, normalized_name: str) -> bool:
        """Delete a card rule."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM card_rules WHERE normalized_name = ?", (normalized_name,)
        )
        self.conn.commit()
        return cursor.rowcount > 0


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        date=row["date"],
        amount=row["amount"],
        description=row["description"],
        category=Category(row["category"]),
        card_name=row["card_name"],
        paid_by=Payer(row["paid_by"]),
        is_classified=bool(row["is_classified"]),
        mcc_code=row["mcc_code"],
        transaction_type=row["transaction_type"],
        location=row["location"],
        reference_number=row["reference_number"],
        auto_applied_rule=bool(row["auto_applied_rule"]),
        is_manual_entry=bool(row["is_manual_entry"]),
        payment_method=row["payment_method"],
    )


def _row_to_card_rule(row: sqlite3.Row) -> CardClassificationRule:
    return CardClassificationRule(
        card_name=row["card_name"],
        classification=CardClassification(row["classification"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        last_used=datetime.fromisoformat(row["last_used"]),
    )

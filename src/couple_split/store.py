"""Transaction store: local SQLite copy plus best-effort sync to the row store."""

import logging
from collections.abc import Callable

from .clients.rowstore import RowStoreClient
from .db import Database
from .duplicates import find_duplicates
from .exceptions import APIError, TransactionNotFoundError
from .models import Category, DuplicateDetectionResult, Transaction

logger = logging.getLogger(__name__)

Listener = Callable[[], None]

# Config key holding remote writes that failed and still need pushing
PENDING_SYNC_KEY = "pending_sync"


class TransactionStore:
    """
    Holds the current transaction list and notifies subscribers on change.

    The local database is always written first. When a remote row store is
    configured each mutation is also sent there once. A failed write is
    logged, kept in `last_sync_error` and queued in the database; `load()`
    pushes the queue before it pulls the remote copy, so local changes are
    never overwritten by a stale remote. Concurrent edits are last-write-wins.
    """

    def __init__(self, database: Database, remote: RowStoreClient | None = None):
        """Initialize the store."""
        self.db = database
        self.remote = remote
        self.last_sync_error: str | None = None
        self._transactions: list[Transaction] = []
        self._listeners: list[Listener] = []

    # ========================================================================
    # Reading
    # ========================================================================

    def load(self) -> None:
        """Load transactions from the row store if configured, else locally."""
        if self.remote is not None:
            try:
                self._push_pending(self.remote)
                transactions = self.remote.list_transactions()
            except APIError as e:
                self._record_sync_error("load", e)
                logger.warning("Falling back to local transactions")
            else:
                self.db.replace_all_transactions(transactions)

        self._transactions = self.db.get_all_transactions()
        logger.info(f"Store loaded with {len(self._transactions)} transactions")
        self._notify()

    def snapshot(self) -> tuple[Transaction, ...]:
        """Current transactions, newest date first."""
        return tuple(self._transactions)

    def get(self, transaction_id: str) -> Transaction:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        raise TransactionNotFoundError(transaction_id)

    def unclassified(self) -> list[Transaction]:
        return [t for t in self._transactions if t.category is Category.UNCLASSIFIED]

    def check_for_duplicates(self, batch: list[Transaction]) -> DuplicateDetectionResult:
        """Compare an incoming batch against the stored transactions."""
        return find_duplicates(batch, list(self._transactions))

    def has_pending_sync(self) -> bool:
        """True when some local changes have not reached the row store yet."""
        pending = self._pending()
        return bool(pending["clear"] or pending["upsert"] or pending["delete"])

    # ========================================================================
    # Subscriptions
    # ========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ========================================================================
    # Writing
    # ========================================================================

    def add_transactions(self, transactions: list[Transaction]) -> None:
        if not transactions:
            return
        self.db.save_transactions(transactions)
        self._sync(
            "upsert",
            lambda remote: remote.upsert_transactions(transactions),
            upsert=[t.id for t in transactions],
        )
        self._reload_local()
        logger.info(f"Added {len(transactions)} transactions")

    def update_transaction(self, transaction_id: str, **changes) -> Transaction:
        """
        Apply field changes to a stored transaction.

        Raises:
            TransactionNotFoundError: If the ID is unknown
        """
        current = self.get(transaction_id)
        updated = Transaction.model_validate({**current.model_dump(), **changes})
        self.db.save_transactions([updated])
        self._sync(
            "update",
            lambda remote: remote.update_transaction(updated),
            upsert=[updated.id],
        )
        self._reload_local()
        return updated

    def update_category(self, transaction_id: str, category: Category) -> Transaction:
        """Reassign a transaction's category by user action."""
        return self.update_transaction(
            transaction_id, category=category, auto_applied_rule=False
        )

    def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete a transaction.

        Raises:
            TransactionNotFoundError: If the ID is unknown
        """
        self.get(transaction_id)
        self.db.delete_transaction(transaction_id)
        self._sync(
            "delete",
            lambda remote: remote.delete_transaction(transaction_id),
            delete=[transaction_id],
        )
        self._reload_local()

    def clear(self) -> int:
        """Delete every transaction. Returns the number removed."""
        removed = self.db.delete_all_transactions()
        self._sync("clear", lambda remote: remote.delete_all(), clear=True)
        self._reload_local()
        return removed

    def _reload_local(self) -> None:
        self._transactions = self.db.get_all_transactions()
        self._notify()

    # ========================================================================
    # Remote sync
    # ========================================================================

    def _sync(
        self,
        operation: str,
        action: Callable[[RowStoreClient], None],
        upsert: list[str] | None = None,
        delete: list[str] | None = None,
        clear: bool = False,
    ) -> None:
        if self.remote is None:
            return
        try:
            action(self.remote)
        except APIError as e:
            self._record_sync_error(operation, e)
            self._queue_pending(upsert or [], delete or [], clear)
        else:
            self.last_sync_error = None

    def _pending(self) -> dict:
        saved = self.db.get_json_config(PENDING_SYNC_KEY) or {}
        return {
            "clear": bool(saved.get("clear")),
            "upsert": list(saved.get("upsert") or []),
            "delete": list(saved.get("delete") or []),
        }

    def _queue_pending(self, upsert: list[str], delete: list[str], clear: bool) -> None:
        pending = self._pending()
        if clear:
            # Everything queued before a clear is moot
            pending = {"clear": True, "upsert": [], "delete": []}
        for transaction_id in delete:
            if transaction_id in pending["upsert"]:
                pending["upsert"].remove(transaction_id)
            if transaction_id not in pending["delete"]:
                pending["delete"].append(transaction_id)
        for transaction_id in upsert:
            if transaction_id not in pending["upsert"]:
                pending["upsert"].append(transaction_id)
        self.db.set_json_config(PENDING_SYNC_KEY, pending)
        logger.info(
            f"Queued for sync: {len(pending['upsert'])} upsert(s), "
            f"{len(pending['delete'])} delete(s)"
        )

    def _push_pending(self, remote: RowStoreClient) -> None:
        """Replay queued writes; the queue is only dropped once all succeed."""
        pending = self._pending()
        if not (pending["clear"] or pending["upsert"] or pending["delete"]):
            return

        if pending["clear"]:
            remote.delete_all()
        for transaction_id in pending["delete"]:
            remote.delete_transaction(transaction_id)
        transactions = [
            t for t in map(self.db.get_transaction, pending["upsert"]) if t is not None
        ]
        remote.upsert_transactions(transactions)

        self.db.set_json_config(PENDING_SYNC_KEY, {"clear": False, "upsert": [], "delete": []})
        logger.info(
            f"Pushed {len(transactions)} queued transaction(s) and "
            f"{len(pending['delete'])} deletion(s) to row store"
        )

    def _record_sync_error(self, operation: str, error: Exception) -> None:
        self.last_sync_error = f"{operation}: {error}"
        logger.error(f"Row store {operation} failed: {error}")

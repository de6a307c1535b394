"""Client for the hosted transaction row store (PostgREST-style REST API)."""

import logging
from typing import Any

import httpx

from ..exceptions import RowStoreAPIError
from ..models import Category, Payer, Transaction

logger = logging.getLogger(__name__)

TABLE = "transactions"


def transaction_to_row(transaction: Transaction, user_id: str) -> dict[str, Any]:
    """Map a transaction to a row of the remote table."""
    return {
        "id": transaction.id,
        "user_id": user_id,
        "date": transaction.date,
        "amount": transaction.amount,
        "description": transaction.description,
        "category": transaction.category.value,
        "card_name": transaction.card_name,
        "paid_by": transaction.paid_by.value,
        "is_classified": transaction.is_classified,
        "mcc_code": transaction.mcc_code,
        "transaction_type": transaction.transaction_type,
        "location": transaction.location,
        "reference_number": transaction.reference_number,
        "auto_applied_rule": transaction.auto_applied_rule,
        "is_manual_entry": transaction.is_manual_entry,
        "payment_method": transaction.payment_method,
    }


def row_to_transaction(row: dict[str, Any]) -> Transaction:
    """Map a remote row to a transaction."""
    return Transaction(
        id=row["id"],
        date=row["date"],
        amount=float(row["amount"]),
        description=row["description"],
        category=Category(row.get("category") or Category.UNCLASSIFIED.value),
        card_name=row.get("card_name") or "",
        paid_by=Payer(row.get("paid_by") or Payer.PERSON1.value),
        is_classified=bool(row.get("is_classified")),
        mcc_code=row.get("mcc_code"),
        transaction_type=row.get("transaction_type"),
        location=row.get("location"),
        reference_number=row.get("reference_number"),
        auto_applied_rule=bool(row.get("auto_applied_rule")),
        is_manual_entry=bool(row.get("is_manual_entry")),
        payment_method=row.get("payment_method"),
    )


class RowStoreClient:
    """Client for the row store's REST interface."""

    def __init__(self, base_url: str, api_key: str, user_id: str):
        """Initialize the row store client."""
        self.user_id = user_id
        self.client = httpx.Client(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=30.0,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def _request(self, method: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, f"/{TABLE}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RowStoreAPIError(
                f"Row store {method} failed ({e.response.status_code}): "
                f"{e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise RowStoreAPIError(f"Row store {method} failed: {e}") from e
        return response

    def list_transactions(self) -> list[Transaction]:
        """Fetch all of the user's transactions, newest date first."""
        response = self._request(
            "GET",
            params={
                "select": "*",
                "user_id": f"eq.{self.user_id}",
                "order": "date.desc",
            },
        )
        transactions = [row_to_transaction(row) for row in response.json()]
        logger.info(f"Loaded {len(transactions)} transactions from row store")
        return transactions

    def upsert_transactions(self, transactions: list[Transaction]) -> None:
        """Insert or update transactions by ID."""
        if not transactions:
            return
        self._request(
            "POST",
            json=[transaction_to_row(t, self.user_id) for t in transactions],
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        logger.debug(f"Upserted {len(transactions)} transactions to row store")

    def update_transaction(self, transaction: Transaction) -> None:
        """Overwrite a single transaction row."""
        self._request(
            "PATCH",
            params={"id": f"eq.{transaction.id}", "user_id": f"eq.{self.user_id}"},
            json=transaction_to_row(transaction, self.user_id),
            headers={"Prefer": "return=minimal"},
        )

    def delete_transaction(self, transaction_id: str) -> None:
        """Delete a single transaction row."""
        self._request(
            "DELETE",
            params={"id": f"eq.{transaction_id}", "user_id": f"eq.{self.user_id}"},
        )

    def delete_all(self) -> None:
        """Delete all of the user's transactions."""
        self._request("DELETE", params={"user_id": f"eq.{self.user_id}"})

"""Database operations for subscribers and confirmation tokens.

Write paths take a Transaction so that a subscriber and its token are
committed together or not at all.
"""

from contextlib import AbstractContextManager
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from newsletter.domain import NewSubscriber, Subscriber, SubscriberStatus
from utils.timezone import now_utc


def _as_uuid(value) -> UUID:
    return UUID(value) if isinstance(value, str) else value


class SubscriptionDatabase:
    """SQL for the subscriptions and subscription_tokens tables."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def transaction(self) -> AbstractContextManager[Transaction]:
        """Open a transaction on the underlying client."""
        return self._db.transaction()

    def insert_subscriber(self, tx: Transaction, new_subscriber: NewSubscriber) -> Subscriber:
        """Insert a pending subscriber and return the stored row."""
        row = tx.execute_single(
            """INSERT INTO subscriptions (id, email, name, subscribed_at, status)
               VALUES (%s, %s, %s, %s, %s)
               RETURNING id, email, name, subscribed_at, status""",
            (
                uuid4(),
                new_subscriber.email,
                new_subscriber.name,
                now_utc(),
                SubscriberStatus.PENDING_CONFIRMATION.value,
            ),
        )
        return Subscriber(
            id=_as_uuid(row["id"]),
            email=row["email"],
            name=row["name"],
            subscribed_at=row["subscribed_at"],
            status=SubscriberStatus(row["status"]),
        )

    def store_token(self, tx: Transaction, subscriber_id: UUID, token: str) -> None:
        """Link a confirmation token to a subscriber."""
        tx.execute(
            """INSERT INTO subscription_tokens (subscription_token, subscriber_id)
               VALUES (%s, %s)""",
            (token, subscriber_id),
        )

    def get_subscriber_id_from_token(self, tx: Transaction, token: str) -> UUID | None:
        row = tx.execute_single(
            """SELECT subscriber_id FROM subscription_tokens
               WHERE subscription_token = %s""",
            (token,),
        )
        return _as_uuid(row["subscriber_id"]) if row else None

    def confirm_subscriber(self, tx: Transaction, subscriber_id: UUID) -> None:
        """Mark confirmed. Confirming twice is a no-op."""
        tx.execute(
            "UPDATE subscriptions SET status = %s WHERE id = %s",
            (SubscriberStatus.CONFIRMED.value, subscriber_id),
        )

    def get_confirmed_subscriber_emails(self) -> list[str]:
        """Raw stored emails of every confirmed subscriber."""
        rows = self._db.execute(
            "SELECT email FROM subscriptions WHERE status = %s",
            (SubscriberStatus.CONFIRMED.value,),
        )
        return [row["email"] for row in rows]

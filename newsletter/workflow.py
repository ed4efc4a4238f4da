"""Double opt-in subscription workflow.

subscribe(): validate, then in one transaction insert the subscriber and
its confirmation token, commit, and only then send the confirmation email.
confirm(): resolve a token and flip the subscriber to confirmed.

The email goes out strictly after commit. If it fails, the committed rows
stay and the caller gets UnexpectedError; there is no outbox or retry.
"""

import logging
import secrets
import string
from urllib.parse import urlencode
from uuid import UUID

import psycopg2

from clients.email_client import EmailClient, EmailClientError
from newsletter.config import NewsletterConfig
from newsletter.database import SubscriptionDatabase
from newsletter.domain import NewSubscriber, Subscriber
from newsletter.exceptions import InvalidTokenError
from utils.errors import UnexpectedError

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_subscription_token(length: int = 25) -> str:
    """Random alphanumeric token from the OS CSPRNG (~5.95 bits per char)."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def build_confirmation_link(app_base_url: str, token: str) -> str:
    query = urlencode({"subscription_token": token})
    return f"{app_base_url.rstrip('/')}/subscription/confirm?{query}"


class SubscriptionWorkflow:
    """Transactional core of the subscription flow."""

    def __init__(
        self,
        config: NewsletterConfig,
        subscriptions: SubscriptionDatabase,
        email_client: EmailClient,
    ):
        self._config = config
        self._subscriptions = subscriptions
        self._email_client = email_client

    def subscribe(self, name: str, email: str) -> Subscriber:
        """Register a pending subscriber and send the confirmation link.

        Raises:
            InvalidSubscriberError: Bad name or email; nothing was written.
            UnexpectedError: Storage failure (nothing committed) or email
                failure (subscriber and token already committed).
        """
        new_subscriber = NewSubscriber.parse(name=name, email=email)

        try:
            with self._subscriptions.transaction() as tx:
                subscriber = self._subscriptions.insert_subscriber(tx, new_subscriber)
                token = generate_subscription_token(self._config.subscription_token_length)
                self._subscriptions.store_token(tx, subscriber.id, token)
                tx.commit()
        except psycopg2.Error as e:
            logger.error(f"Failed to store new subscriber: {e}")
            raise UnexpectedError("Failed to store a new subscriber") from e

        logger.info(f"Stored pending subscriber {subscriber.id}")

        try:
            self._send_confirmation_email(new_subscriber.email, token)
        except EmailClientError as e:
            logger.error(f"Subscriber {subscriber.id} stored but not notified: {e}")
            raise UnexpectedError("Failed to send a confirmation email") from e

        return subscriber

    def confirm(self, token: str) -> UUID:
        """Confirm the subscriber owning token. Idempotent.

        Raises:
            InvalidTokenError: No subscriber has this token.
            UnexpectedError: Storage failure.
        """
        try:
            with self._subscriptions.transaction() as tx:
                subscriber_id = self._subscriptions.get_subscriber_id_from_token(tx, token)
                if subscriber_id is None:
                    raise InvalidTokenError("Unknown subscription token")
                self._subscriptions.confirm_subscriber(tx, subscriber_id)
                tx.commit()
        except psycopg2.Error as e:
            logger.error(f"Failed to confirm subscriber: {e}")
            raise UnexpectedError("Failed to confirm a subscriber") from e

        logger.info(f"Confirmed subscriber {subscriber_id}")
        return subscriber_id

    def _send_confirmation_email(self, recipient: str, token: str) -> None:
        link = build_confirmation_link(self._config.app_base_url, token)
        self._email_client.send_email(
            recipient=recipient,
            subject=self._config.confirmation_subject,
            html_body=(
                "Welcome to our newsletter!<br />"
                f'Click <a href="{link}">here</a> to confirm your subscription.'
            ),
            text_body=(
                "Welcome to our newsletter!\n"
                f"Visit {link} to confirm your subscription."
            ),
        )

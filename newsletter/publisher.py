"""Send a newsletter issue to every confirmed subscriber.

Runs synchronously inside the publishing request. Delivery is best effort:
a stored address that no longer validates is skipped, a failed send is
logged and counted, and the loop carries on.
"""

import logging
from dataclasses import dataclass

import psycopg2

from clients.email_client import EmailClient, EmailClientError
from newsletter.database import SubscriptionDatabase
from newsletter.domain import NewsletterIssue, parse_subscriber_email
from newsletter.exceptions import InvalidSubscriberError
from utils.errors import UnexpectedError

logger = logging.getLogger(__name__)


@dataclass
class PublishReport:
    """Outcome of one publish call."""

    sent: int = 0
    skipped: int = 0
    failed: int = 0


class NewsletterPublisher:
    """Fan-out of an issue to confirmed subscribers."""

    def __init__(self, subscriptions: SubscriptionDatabase, email_client: EmailClient):
        self._subscriptions = subscriptions
        self._email_client = email_client

    def publish(self, issue: NewsletterIssue) -> PublishReport:
        """
        Raises:
            UnexpectedError: If the subscriber list can't be read.
        """
        try:
            stored_emails = self._subscriptions.get_confirmed_subscriber_emails()
        except psycopg2.Error as e:
            logger.error(f"Failed to load confirmed subscribers: {e}")
            raise UnexpectedError("Failed to load confirmed subscribers") from e

        report = PublishReport()
        for stored_email in stored_emails:
            try:
                recipient = parse_subscriber_email(stored_email)
            except InvalidSubscriberError:
                logger.warning(
                    "Skipping a confirmed subscriber. Their stored contact details are invalid"
                )
                report.skipped += 1
                continue

            try:
                self._email_client.send_email(
                    recipient=recipient,
                    subject=issue.title,
                    html_body=issue.content.html,
                    text_body=issue.content.text,
                )
            except EmailClientError as e:
                logger.error(f"Failed to deliver newsletter issue: {e}")
                report.failed += 1
                continue
            report.sent += 1

        logger.info(
            f"Newsletter '{issue.title}' published: "
            f"{report.sent} sent, {report.skipped} skipped, {report.failed} failed"
        )
        return report

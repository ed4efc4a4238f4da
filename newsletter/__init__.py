"""Newsletter subscriptions: double opt-in workflow and publishing."""

from newsletter.exceptions import (
    SubscriptionError,
    InvalidSubscriberError,
    InvalidTokenError,
)
from newsletter.domain import (
    NewSubscriber,
    NewsletterContent,
    NewsletterIssue,
    Subscriber,
    SubscriberStatus,
)
from newsletter.config import NewsletterConfig
from newsletter.database import SubscriptionDatabase
from newsletter.workflow import SubscriptionWorkflow, generate_subscription_token
from newsletter.publisher import NewsletterPublisher, PublishReport
from newsletter.api import create_subscription_router, create_publishing_router

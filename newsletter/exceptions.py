"""Typed exceptions for the subscription workflow."""


class SubscriptionError(Exception):
    """Base class for subscription workflow errors."""


class InvalidSubscriberError(SubscriptionError):
    """
    Name or email failed validation.

    Raised before any write happens, so nothing needs undoing.
    """


class InvalidTokenError(SubscriptionError):
    """
    Subscription token unknown.

    Deliberately says nothing about why (never issued, mistyped, ...).
    """

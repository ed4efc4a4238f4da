"""Subscriber domain types and input validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

import regex
from pydantic import BaseModel, EmailStr, Field, TypeAdapter, ValidationError, field_validator

from newsletter.exceptions import InvalidSubscriberError

MAX_NAME_GRAPHEMES = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/(){}%\\"[]<>')

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


class SubscriberStatus(str, Enum):
    """Lifecycle of a subscriber. CONFIRMED is terminal."""

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


def validate_subscriber_name(value: str) -> str:
    """
    Return value if it is a usable display name.

    Rejects blank names, names longer than 256 user-perceived characters
    (grapheme clusters, not code points), and names containing any of
    / ( ) { } % \\ " [ ] < >.

    Raises:
        ValueError: With the reason.
    """
    if not value.strip():
        raise ValueError("name must not be blank")
    if len(regex.findall(r"\X", value)) > MAX_NAME_GRAPHEMES:
        raise ValueError(f"name must be at most {MAX_NAME_GRAPHEMES} characters")
    if any(c in FORBIDDEN_NAME_CHARACTERS for c in value):
        raise ValueError("name contains a forbidden character")
    return value


def parse_subscriber_email(value: str) -> str:
    """
    Validate an email address read back from storage.

    Raises:
        InvalidSubscriberError: If it is not a valid address.
    """
    try:
        return _EMAIL_ADAPTER.validate_python(value)
    except ValidationError as e:
        raise InvalidSubscriberError(f"{value!r} is not a valid subscriber email") from e


class NewSubscriber(BaseModel):
    """A validated subscription request, not yet persisted."""

    model_config = {"frozen": True}

    name: str
    email: EmailStr

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_subscriber_name(value)

    @classmethod
    def parse(cls, name: str, email: str) -> "NewSubscriber":
        """
        Build from raw form input.

        Raises:
            InvalidSubscriberError: If name or email is invalid.
        """
        try:
            return cls(name=name, email=email)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise InvalidSubscriberError(f"Invalid subscriber input: {fields}") from e


class Subscriber(BaseModel):
    """A persisted subscriber."""

    id: UUID
    email: str
    name: str
    subscribed_at: datetime
    status: SubscriberStatus

    model_config = {"from_attributes": True}


class NewsletterContent(BaseModel):
    html: str
    text: str


class NewsletterIssue(BaseModel):
    """Body of POST /newsletter."""

    title: str = Field(..., description="Email subject")
    content: NewsletterContent

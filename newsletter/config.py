"""Newsletter configuration."""

from pydantic import BaseModel, Field


class NewsletterConfig(BaseModel):
    """Settings for subscription confirmation and publishing."""

    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL for confirmation links",
    )
    subscription_token_length: int = Field(
        default=25,
        description="Length of alphanumeric confirmation tokens",
        ge=20,
        le=64,
    )
    confirmation_subject: str = Field(
        default="Welcome!",
        description="Subject line of the confirmation email",
    )
    email_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for each call to the email API",
        gt=0,
        le=60,
    )

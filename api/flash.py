"""One-shot flash messages carried in a signed cookie across a redirect.

The cookie value is an itsdangerous URLSafeTimedSerializer token, so a
client can neither forge a message nor replay an old one past MAX_AGE.
"""

import html
import logging

from itsdangerous import BadSignature, URLSafeTimedSerializer
from starlette.requests import Request
from starlette.responses import HTMLResponse, RedirectResponse, Response

logger = logging.getLogger(__name__)


class FlashMessages:
    """
    Usage:
        flash = FlashMessages(secret_key)
        return flash.redirect("/login", "Authentication failed")
        ...
        return flash.render(request, LOGIN_PAGE)  # page contains {flash}
    """

    COOKIE_NAME = "_flash"
    SALT = "newsletter.flash"
    MAX_AGE_SECONDS = 300

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("secret_key is required")
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=self.SALT)

    def set(self, response: Response, message: str) -> None:
        """Attach a message to be shown on the next rendered page."""
        response.set_cookie(
            key=self.COOKIE_NAME,
            value=self._serializer.dumps(message),
            httponly=True,
            samesite="lax",
        )

    def redirect(self, location: str, message: str) -> RedirectResponse:
        response = RedirectResponse(location, status_code=303)
        self.set(response, message)
        return response

    def get(self, request: Request) -> str | None:
        """The pending message, or None if absent, tampered with, or stale."""
        token = request.cookies.get(self.COOKIE_NAME)
        if not token:
            return None
        try:
            message = self._serializer.loads(token, max_age=self.MAX_AGE_SECONDS)
        except BadSignature:
            logger.warning("Discarded flash cookie with a bad or expired signature")
            return None
        return message if isinstance(message, str) else None

    def render(self, request: Request, page: str) -> HTMLResponse:
        """
        Render an HTML page, substituting {flash} with the pending message.

        The cookie is cleared so the message shows exactly once.
        """
        message = self.get(request)
        flash_html = f"<p><i>{html.escape(message)}</i></p>" if message else ""
        response = HTMLResponse(page.replace("{flash}", flash_html))
        if self.COOKIE_NAME in request.cookies:
            response.delete_cookie(self.COOKIE_NAME)
        return response

"""Security middleware for FastAPI - admin session enforcement."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from auth.session import SessionManager, TypedSession

logger = logging.getLogger(__name__)


class AdminSessionMiddleware(BaseHTTPMiddleware):
    """Requires a live session for everything under /admin/.

    For protected paths:
    1. Extracts the session token from the session cookie
    2. Resolves it through TypedSession.current() (which slides expiry)
    3. Sets request.state.user_id

    Missing or dead sessions are redirected to the login page. All other
    paths pass through untouched.
    """

    PROTECTED_PREFIX = "/admin/"
    LOGIN_PATH = "/login"

    def __init__(self, app, session_manager: SessionManager, cookie_name: str = "session_token"):
        super().__init__(app)
        self._session_manager = session_manager
        self._cookie_name = cookie_name

    def _is_protected_path(self, path: str) -> bool:
        return path.startswith(self.PROTECTED_PREFIX)

    async def dispatch(self, request: Request, call_next):
        if not self._is_protected_path(request.url.path):
            return await call_next(request)

        session_token = request.cookies.get(self._cookie_name)
        if not session_token:
            return RedirectResponse(self.LOGIN_PATH, status_code=303)

        user_id = TypedSession(self._session_manager, session_token).current()
        if user_id is None:
            logger.info("Rejected admin request with a dead session")
            response = RedirectResponse(self.LOGIN_PATH, status_code=303)
            response.delete_cookie(self._cookie_name)
            return response

        request.state.user_id = user_id
        return await call_next(request)

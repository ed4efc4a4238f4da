"""HTTP routes for admin login, logout, dashboard and password change."""

import html
import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import RedirectResponse
from pydantic import SecretStr
from starlette.concurrency import run_in_threadpool

from api.flash import FlashMessages
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import InvalidCredentialsError
from auth.passwords import HashingPool, PasswordHasher
from auth.security_logger import SecurityEvent, SecurityLogger, client_ip
from auth.session import SessionManager, TypedSession
from auth.types import Credential, Session
from auth.validator import CredentialValidator
from utils.errors import UnexpectedError

logger = logging.getLogger(__name__)

AUTHENTICATION_FAILED = "Authentication failed"
SOMETHING_WENT_WRONG = "Something went wrong. Please try again."
PASSWORDS_DO_NOT_MATCH = (
    "You entered two different new passwords - the field values must match."
)
EMPTY_PASSWORD = "The new password must not be empty."
PASSWORD_CHANGED = "Your password has been changed."
LOGGED_OUT = "You have successfully logged out."

LOGIN_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta http-equiv="content-type" content="text/html; charset=utf-8">
<title>Login</title>
</head>
<body>
{flash}
<form action="/login" method="post">
<label>Username
<input type="text" placeholder="Enter Username" name="username">
</label>
<label>Password
<input type="password" placeholder="Enter Password" name="password">
</label>
<button type="submit">Login</button>
</form>
</body>
</html>"""

DASHBOARD_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta http-equiv="content-type" content="text/html; charset=utf-8">
<title>Admin dashboard</title>
</head>
<body>
{flash}
<p>Welcome {username}!</p>
<p>Available actions:</p>
<ol>
<li><a href="/admin/change/password">Change password</a></li>
<li>
<form name="logoutForm" action="/admin/logout" method="post">
<input type="submit" value="Logout">
</form>
</li>
</ol>
</body>
</html>"""

CHANGE_PASSWORD_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta http-equiv="content-type" content="text/html; charset=utf-8">
<title>Change Password</title>
</head>
<body>
{flash}
<form action="/admin/change/password" method="post">
<label for="newpassword">New Password</label>
<input type="password" name="password" placeholder="Type your new password" id="newpassword">
<label for="newpasswordconfirm">Confirm New Password</label>
<input type="password" name="confirmpassword" placeholder="Confirm new password" id="newpasswordconfirm">
<button type="submit">Change password</button>
</form>
<p><a href="/admin/dashboard">&lt;- Back</a></p>
</body>
</html>"""


def create_auth_router(
    config: AuthConfig,
    validator: CredentialValidator,
    session_manager: SessionManager,
    auth_db: AuthDatabase,
    hasher: PasswordHasher,
    hashing_pool: HashingPool,
    security_logger: SecurityLogger,
    flash: FlashMessages,
) -> APIRouter:
    """Create auth router with injected services."""
    router = APIRouter(tags=["auth"])

    def typed_session(request: Request) -> TypedSession:
        return TypedSession(session_manager, request.cookies.get(config.session_cookie_name))

    def set_session_cookie(response: RedirectResponse, session: Session) -> None:
        response.set_cookie(
            key=config.session_cookie_name,
            value=session.token,
            httponly=True,
            secure=config.session_cookie_secure,
            samesite="lax",
            max_age=int((session.expires_at - session.created_at).total_seconds()),
        )

    @router.get("/login")
    async def login_form(request: Request):
        return flash.render(request, LOGIN_PAGE)

    @router.post("/login")
    async def login(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
    ):
        """Validate credentials and start a fresh session.

        Every rejection looks the same to the client: a redirect back to
        the login form with a generic message and no session cookie.
        """
        credential = Credential(username=username, password=SecretStr(password))
        ip_address = client_ip(request)
        user_agent = request.headers.get("User-Agent")

        try:
            user_id = await validator.validate(credential)
        except InvalidCredentialsError:
            await run_in_threadpool(
                security_logger.log,
                SecurityEvent.LOGIN_FAILED,
                username=username,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return flash.redirect("/login", AUTHENTICATION_FAILED)
        except UnexpectedError:
            logger.exception("Login aborted by an infrastructure failure")
            return flash.redirect("/login", SOMETHING_WENT_WRONG)

        session = await run_in_threadpool(typed_session(request).establish, user_id)
        await run_in_threadpool(
            security_logger.log,
            SecurityEvent.LOGIN_SUCCEEDED,
            username=username,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        response = RedirectResponse("/admin/dashboard", status_code=303)
        set_session_cookie(response, session)
        return response

    @router.get("/admin/dashboard")
    async def admin_dashboard(request: Request):
        user_id = request.state.user_id
        username = await run_in_threadpool(auth_db.get_username, user_id)
        if username is None:
            # Session outlived its user row
            await run_in_threadpool(typed_session(request).destroy)
            response = RedirectResponse("/login", status_code=303)
            response.delete_cookie(config.session_cookie_name)
            return response
        page = DASHBOARD_PAGE.replace("{username}", html.escape(username))
        return flash.render(request, page)

    @router.get("/admin/change/password")
    async def change_password_form(request: Request):
        return flash.render(request, CHANGE_PASSWORD_PAGE)

    @router.post("/admin/change/password")
    async def change_password(
        request: Request,
        password: str = Form(""),
        confirmpassword: str = Form(""),
    ):
        user_id = request.state.user_id

        if password != confirmpassword:
            return flash.redirect("/admin/change/password", PASSWORDS_DO_NOT_MATCH)
        if not password:
            return flash.redirect("/admin/change/password", EMPTY_PASSWORD)

        password_hash = await hashing_pool.run(hasher.hash, password)
        updated = await run_in_threadpool(auth_db.update_password_hash, user_id, password_hash)
        if not updated:
            raise UnexpectedError(f"No user row for session user {user_id}")

        await run_in_threadpool(
            security_logger.log,
            SecurityEvent.PASSWORD_CHANGED,
            user_id=user_id,
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return flash.redirect("/admin/dashboard", PASSWORD_CHANGED)

    @router.post("/admin/logout")
    async def logout(request: Request):
        """Destroy the session and clear the cookie."""
        user_id = request.state.user_id
        await run_in_threadpool(typed_session(request).destroy)
        await run_in_threadpool(
            security_logger.log,
            SecurityEvent.LOGOUT,
            user_id=user_id,
            ip_address=client_ip(request),
        )

        response = flash.redirect("/login", LOGGED_OUT)
        response.delete_cookie(config.session_cookie_name)
        return response

    return router

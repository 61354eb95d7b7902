"""Session-cookie login against the outlet's ``/login.cgi`` endpoint.

The device authenticates the session id the client *presents* in its
``AIROS_SESSIONID`` cookie, so logging in means posting credentials together
with a session id of our choosing::

    import asyncio
    from mfiplug import DeviceConfig
    from mfiplug.session import login, validate

    config = DeviceConfig("10.0.0.20", "admin", "secret")
    result = await login(config, "0123456789abcdef0123456789abcdef")
    check = await validate(config)
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie

import aiohttp

from mfiplug._constants import (
    FORM_HEADERS,
    INVALID_CREDENTIALS,
    LOGIN_PATH,
    SESSION_COOKIE,
    UNREACHABLE_MESSAGE,
)
from mfiplug.config import DeviceConfig

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Raised when a login attempt does not produce a usable session."""


class InvalidCredentialsError(AuthError):
    """The device rejected the username/password."""


class UnreachableError(AuthError, ConnectionError):
    """The device could not be contacted or answered with an unexpected status."""


@dataclass(frozen=True)
class LoginResult:
    """An authenticated session.

    ``session_id`` is what to present as ``AIROS_SESSIONID`` on the request
    that follows; ``cookies`` are the raw ``Set-Cookie`` values from the
    login response.
    """

    session_id: str
    cookies: tuple[str, ...] = ()

    @property
    def cookie_jar(self) -> dict[str, str]:
        """Request ``cookies=`` mapping for the follow-up request."""
        return {SESSION_COOKIE: self.session_id}


@dataclass
class ValidationResult:
    """Outcome of a credential check, for a setup form to display."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def new_session_id() -> str:
    """Random 32-character session id in the form the device issues."""
    return uuid.uuid4().hex


async def login(
    config: DeviceConfig,
    session_id: str,
    http: aiohttp.ClientSession | None = None,
) -> LoginResult:
    """Log in, activating *session_id* on the device.

    The device signals success with a 302 redirect, which aiohttp may
    surface either as a response or as a :class:`aiohttp.ClientResponseError`;
    both count as success.  A 200 is also a success unless the body carries
    the device's ``Invalid credentials.`` page.

    When *http* is omitted a short-lived client session is opened.

    Raises:
        InvalidCredentialsError: The device rejected the credentials.
        UnreachableError: Any other status, or a transport failure.
    """
    if http is None:
        async with aiohttp.ClientSession() as http:
            return await login(config, session_id, http)

    url = f"{config.base_url}{LOGIN_PATH}"
    logger.debug("POST %s (session %s)", url, session_id)
    try:
        async with http.post(
            url,
            data={"username": config.username, "password": config.password},
            headers=FORM_HEADERS,
            cookies={SESSION_COOKIE: session_id},
            allow_redirects=False,
        ) as resp:
            status = resp.status
            headers = resp.headers
            body = await resp.read() if status == 200 else b""
    except aiohttp.ClientResponseError as e:
        if e.status == 302:
            return _session_from(session_id, e.headers)
        raise UnreachableError(_error_text(e)) from e
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        raise UnreachableError(_error_text(e)) from e

    logger.debug("Login to %s answered %s", config.ip_address, status)
    if status == 302:
        return _session_from(session_id, headers)
    if status == 200:
        if INVALID_CREDENTIALS.encode() in body:
            raise InvalidCredentialsError(INVALID_CREDENTIALS)
        return _session_from(session_id, headers)
    raise UnreachableError(UNREACHABLE_MESSAGE)


async def validate(config: DeviceConfig) -> ValidationResult:
    """Check that *config* can log in, using a throwaway session id.

    Never raises for device failures; they are reported in
    :attr:`ValidationResult.errors`.
    """
    try:
        await login(config, new_session_id())
    except AuthError as e:
        return ValidationResult(valid=False, errors=[str(e)])
    return ValidationResult(valid=True)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _session_from(presented: str, headers: object) -> LoginResult:
    """Build the result, preferring a session id the device handed back."""
    cookies = _set_cookie_values(headers)
    session_id = presented
    for raw in cookies:
        parsed = SimpleCookie()
        try:
            parsed.load(raw)
        except CookieError:
            continue
        morsel = parsed.get(SESSION_COOKIE)
        if morsel is not None and morsel.value:
            session_id = morsel.value
    return LoginResult(session_id=session_id, cookies=cookies)


def _set_cookie_values(headers: object) -> tuple[str, ...]:
    """Extract ``Set-Cookie`` values from a multidict, plain dict or ``None``."""
    if headers is None:
        return ()
    getall = getattr(headers, "getall", None)
    if getall is not None:
        return tuple(getall("Set-Cookie", ()))
    if isinstance(headers, dict):
        value = headers.get("Set-Cookie") or headers.get("set-cookie")
        if isinstance(value, str):
            return (value,)
        if isinstance(value, Iterable):
            return tuple(str(v) for v in value)
    return ()


def _error_text(err: BaseException) -> str:
    if isinstance(err, aiohttp.ClientResponseError) and err.message:
        return err.message
    return str(err) or UNREACHABLE_MESSAGE

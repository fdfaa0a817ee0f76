"""Connection authentication for the Socket.IO server.

Every connection must present a JWT access token before any event handler
runs. The token may come from:

- ``auth.token`` (``io(url, { auth: { token } })``)
- ``query.token`` (``io(url, { query: { token } })``)
- the HttpOnly access cookie set at login, sent with the handshake

The resolved user is attached to the connection as a ``ConnectionIdentity``;
handlers trust it over any id a client puts in an event payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from django.conf import settings
from django.http.cookie import parse_cookie
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"


@dataclass(frozen=True)
class ConnectionIdentity:
    user_id: int
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class AuthenticationError(Exception):
    """Connection attempt rejected. ``reason`` is sent to the client."""

    def __init__(self, reason: str = "unauthorized"):
        self.reason = reason
        super().__init__(reason)


def _scope(environ: dict[str, Any]) -> dict[str, Any]:
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            return inner
    return environ if isinstance(environ, dict) else {}


def _query_token(environ: dict[str, Any]) -> str | None:
    scope = _scope(environ)
    query_string: str | bytes = ""
    if "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(environ, dict) and "QUERY_STRING" in environ:
        query_string = environ.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    return token if isinstance(token, str) and token else None


def _cookie_header(environ: dict[str, Any]) -> str:
    if isinstance(environ, dict) and environ.get("HTTP_COOKIE"):
        return str(environ["HTTP_COOKIE"])
    for name, value in _scope(environ).get("headers", []) or []:
        if name.lower() == b"cookie":
            return value.decode(errors="ignore")
    return ""


def _cookie_token(environ: dict[str, Any]) -> str | None:
    cookies = parse_cookie(_cookie_header(environ))
    access_cookie = getattr(settings, "JWT_AUTH_COOKIE", "access_token")
    for name in (access_cookie, "token"):
        token = cookies.get(name)
        if token:
            return token
    return None


def extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Pull the bearer token out of the handshake, explicit fields first."""

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return _query_token(environ) or _cookie_token(environ)


def _is_expired(token: str) -> bool:
    try:
        untrusted = AccessToken(token, verify=False)
    except TokenError:
        return False
    try:
        untrusted.check_exp()
    except TokenError:
        return True
    return False


@database_sync_to_async
def _resolve_identity(token: str) -> ConnectionIdentity:
    jwt_auth = JWTAuthentication()
    validated = jwt_auth.get_validated_token(token)
    user = jwt_auth.get_user(validated)
    return ConnectionIdentity(
        user_id=int(user.pk),
        name=user.display_name,
        role=ROLE_ADMIN if user.is_admin else ROLE_MEMBER,
    )


async def authenticate(environ: dict[str, Any], auth: Any | None) -> ConnectionIdentity:
    """Resolve the handshake credential to an identity or raise ``AuthenticationError``."""

    token = extract_token(environ, auth)
    if not token:
        msg = "unauthorized"
        raise AuthenticationError(msg)

    try:
        return await _resolve_identity(token)
    except (TokenError, AuthenticationFailed) as exc:
        # InvalidToken / user not found / inactive user
        reason = "jwt_expired" if _is_expired(token) else "unauthorized"
        raise AuthenticationError(reason) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error")
        msg = "server_error"
        raise AuthenticationError(msg) from exc

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from datetime import timedelta

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.views import TokenRefreshView


def _set_cookie(
    response: Response,
    name: str,
    value: str,
    max_age: int | None,
) -> None:
    if not value:
        return
    cookie_kwargs = {
        "httponly": True,
        "secure": getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
        "samesite": getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
        "path": "/",
    }
    if max_age is not None:
        cookie_kwargs["max_age"] = max_age
    response.set_cookie(name, value, **cookie_kwargs)


def _set_jwt_cookies(
    response: Response, access: str | None, refresh: str | None
) -> None:
    access_lifetime: timedelta = settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"]
    refresh_lifetime: timedelta = settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"]

    access_cookie = getattr(settings, "JWT_AUTH_COOKIE", "access_token")
    refresh_cookie = getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token")

    if access:
        _set_cookie(
            response, access_cookie, access, int(access_lifetime.total_seconds())
        )
    if refresh:
        _set_cookie(
            response, refresh_cookie, refresh, int(refresh_lifetime.total_seconds())
        )


class CookieJWTLoginView(TokenObtainPairView):
    """Login that sets HttpOnly JWT cookies and scrubs tokens from JSON body.

    The access cookie is what the browser's Socket.IO handshake carries, so
    logging in through this view is enough to open an authenticated socket.
    """

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        response: Response = super().post(request, *args, **kwargs)
        if isinstance(response.data, dict):
            access = response.data.get("access")
            refresh = response.data.get("refresh")
            if access or refresh:
                _set_jwt_cookies(response, access, refresh)
                response.data = {"detail": "login successful"}
        return response


class CookieJWTRefreshView(TokenRefreshView):
    """Refresh accepting the refresh token from the body or the cookie."""

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        refresh_cookie = getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token")
        data = {
            "refresh": request.data.get("refresh")
            or request.COOKIES.get(refresh_cookie),
        }
        serializer = self.get_serializer(data=data)
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as exc:
            raise InvalidToken(exc.args[0]) from exc

        response = Response({"detail": "refresh successful"}, status=status.HTTP_200_OK)
        _set_jwt_cookies(
            response,
            serializer.validated_data.get("access"),
            serializer.validated_data.get("refresh"),
        )
        return response

import pytest
from django.conf import settings
from rest_framework import status
from rest_framework.test import APIClient

from mission_control.conftest import TEST_PASSWORD

pytestmark = pytest.mark.django_db


def obtain_tokens(client, username: str, password: str) -> tuple[str, str]:
    r = client.post(
        "/api/v1/auth/jwt/create/",
        {"username": username, "password": password},
        format="json",
    )
    assert r.status_code == status.HTTP_200_OK, r.content
    return r.data["access"], r.data["refresh"]


def test_jwt_verify_endpoint(user):
    client = APIClient()
    access, _ = obtain_tokens(client, user.username, TEST_PASSWORD)

    r = client.post("/api/v1/auth/jwt/verify/", {"token": access}, format="json")
    assert r.status_code == status.HTTP_200_OK

    # Corrupt token should fail
    bad = access[:-2] + "ab"
    r = client.post("/api/v1/auth/jwt/verify/", {"token": bad}, format="json")
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_sets_cookies_and_scrubs_body(user):
    client = APIClient()
    r = client.post(
        "/api/v1/auth/login/",
        {"username": user.username, "password": TEST_PASSWORD},
        format="json",
    )
    assert r.status_code == status.HTTP_200_OK
    assert r.data == {"detail": "login successful"}
    assert r.cookies[settings.JWT_AUTH_COOKIE]["httponly"]
    assert r.cookies["refresh_token"].value


def test_refresh_from_cookie(user):
    client = APIClient()
    client.post(
        "/api/v1/auth/login/",
        {"username": user.username, "password": TEST_PASSWORD},
        format="json",
    )
    r = client.post("/api/v1/auth/jwt/refresh/", {}, format="json")
    assert r.status_code == status.HTTP_200_OK
    assert r.data == {"detail": "refresh successful"}
    assert r.cookies[settings.JWT_AUTH_COOKIE].value


def test_refresh_with_garbage_is_rejected():
    client = APIClient()
    r = client.post("/api/v1/auth/jwt/refresh/", {"refresh": "junk"}, format="json")
    assert r.status_code == status.HTTP_401_UNAUTHORIZED

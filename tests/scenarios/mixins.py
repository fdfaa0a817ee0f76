from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from mission_control.realtime.socketio import attendance_manager
from tests.scenarios.factories import MemberContext
from tests.scenarios.factories import create_member
from tests.scenarios.factories import create_mission

ROLE_ADMIN = "admin"
ROLE_ALICE = "alice"
ROLE_BOB = "bob"
ROLE_CAROL = "carol"


class MissionAPITestCase(APITestCase):
    """One admin, three members, one mission staffed by alice and bob."""

    def setUp(self):
        super().setUp()
        attendance_manager.registry.clear()
        self.addCleanup(attendance_manager.registry.clear)
        self.members: dict[str, MemberContext] = {
            ROLE_ADMIN: create_member("admin", admin=True),
            ROLE_ALICE: create_member("alice"),
            ROLE_BOB: create_member("bob"),
            ROLE_CAROL: create_member("carol"),
        }
        self.mission = create_mission(
            "Harbor patrol",
            assigned=[self.members[ROLE_ALICE].user, self.members[ROLE_BOB].user],
        )

    # Utilities -------------------------------------------------------------
    def authenticate(self, role: str):
        self.client.force_authenticate(user=self.members[role].user)

    def assert_http_status(self, response, expected_status: int):
        msg = getattr(response, "data", response)
        assert response.status_code == expected_status, msg

    def get(self, url_name: str, *, role: str, reverse_kwargs=None, **kwargs):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.get(url, **kwargs)

    def post(
        self, url_name: str, *, role: str, payload=None, reverse_kwargs=None, **kwargs
    ):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.post(url, data=payload or {}, format="json", **kwargs)

    def assert_denied(self, response, code=status.HTTP_403_FORBIDDEN):
        assert response.status_code == code, response.data

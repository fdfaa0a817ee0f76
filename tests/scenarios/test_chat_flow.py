from __future__ import annotations

from rest_framework import status

from mission_control.chat import services
from tests.scenarios.mixins import ROLE_ADMIN
from tests.scenarios.mixins import ROLE_ALICE
from tests.scenarios.mixins import ROLE_BOB
from tests.scenarios.mixins import ROLE_CAROL
from tests.scenarios.mixins import MissionAPITestCase


class TestMissionChat(MissionAPITestCase):
    def test_room_listing_follows_assignment(self):
        for role in (ROLE_ALICE, ROLE_BOB):
            res = self.get("api_v1:chat-room-list", role=role)
            self.assert_http_status(res, status.HTTP_200_OK)
            assert [r["room_id"] for r in res.data] == [self.mission.pk]

        res = self.get("api_v1:chat-room-list", role=ROLE_CAROL)
        assert res.data == []

        self.mission.assigned.add(self.members[ROLE_CAROL].user)
        res = self.get("api_v1:chat-room-list", role=ROLE_CAROL)
        assert [r["room_id"] for r in res.data] == [self.mission.pk]

    def test_history_visible_to_members_and_admin(self):
        alice = self.members[ROLE_ALICE].user
        services.create_message(self.mission.pk, alice.pk, "on my way")
        kwargs = {"mission_id": self.mission.pk}

        for role in (ROLE_BOB, ROLE_ADMIN):
            res = self.get("api_v1:chat-room-messages", role=role, reverse_kwargs=kwargs)
            self.assert_http_status(res, status.HTTP_200_OK)
            assert [m["body"] for m in res.data] == ["on my way"]

        denied = self.get(
            "api_v1:chat-room-messages", role=ROLE_CAROL, reverse_kwargs=kwargs
        )
        self.assert_denied(denied)

        rooms = self.get("api_v1:chat-room-list", role=ROLE_BOB)
        assert rooms.data[0]["last_message"] == "on my way"

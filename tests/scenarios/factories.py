from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model

from mission_control.missions.models import Mission
from mission_control.realtime.auth import ConnectionIdentity

if TYPE_CHECKING:
    from collections.abc import Iterable

User = get_user_model()


@dataclass
class MemberContext:
    user: User
    identity: ConnectionIdentity


def create_member(username: str, *, admin: bool = False) -> MemberContext:
    role = User.Role.ADMIN if admin else User.Role.MEMBER
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="TestPass123!",  # noqa: S106
        role=role,
    )
    identity = ConnectionIdentity(user_id=user.pk, name=user.display_name, role=role)
    return MemberContext(user=user, identity=identity)


def create_mission(title: str, *, assigned: Iterable[User] = ()) -> Mission:
    mission = Mission.objects.create(
        title=title,
        description=f"{title} briefing",
        location="HQ",
        difficulty=Mission.Difficulty.MEDIUM,
    )
    mission.assigned.add(*assigned)
    return mission

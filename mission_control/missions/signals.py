from __future__ import annotations

from django.db.models.signals import m2m_changed
from django.db.models.signals import post_save
from django.dispatch import receiver

from mission_control.chat.models import ChatRoom

from .models import Mission


def _sync_members(mission: Mission) -> None:
    room, _ = ChatRoom.objects.get_or_create(
        mission=mission, defaults={"name": mission.title}
    )
    room.members.set(mission.assigned.all())


@receiver(post_save, sender=Mission)
def create_mission_room(sender, instance, created, **kwargs):
    """Give every new mission its chat room; the relay looks rooms up by mission id."""

    if not created:
        return
    ChatRoom.objects.get_or_create(mission=instance, defaults={"name": instance.title})


@receiver(m2m_changed, sender=Mission.assigned.through)
def sync_room_members(sender, instance, action, reverse, pk_set, **kwargs):
    """Mirror the mission roster onto the room's persisted member list."""

    if action not in {"post_add", "post_remove", "post_clear"}:
        return
    if not reverse:
        _sync_members(instance)
        return
    # user.missions.add(...): instance is the user, pk_set holds mission ids
    if action == "post_clear":
        for room in ChatRoom.objects.filter(members=instance):
            room.members.remove(instance)
        return
    missions = (
        Mission.objects.filter(pk__in=pk_set) if pk_set else Mission.objects.none()
    )
    for mission in missions:
        _sync_members(mission)

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Default custom user model for mission_control.

    ``role`` decides who may start attendance sessions; everyone else is a
    member who submits codes and chats in mission rooms.
    """

    class Role(models.TextChoices):
        ADMIN = "admin", _("Admin")
        MEMBER = "member", _("Member")

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Full Name"), blank=True, max_length=255)
    email = EmailField(_("email address"), unique=True)
    first_name = CharField(_("First Name"), max_length=150, blank=True)
    last_name = CharField(_("Last Name"), max_length=150, blank=True)
    role = CharField(
        _("Role"), max_length=16, choices=Role.choices, default=Role.MEMBER
    )
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        # Keep the display name in sync, falling back to the username
        full_name = f"{self.first_name} {self.last_name}".strip()
        self.name = full_name or self.username
        super().save(*args, **kwargs)

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN or bool(self.is_staff)

    @property
    def display_name(self) -> str:
        return self.name or self.username

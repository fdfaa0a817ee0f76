from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Mission(models.Model):
    """A unit of team work. Every mission owns exactly one chat room."""

    class Difficulty(models.TextChoices):
        EASY = "easy", _("Easy")
        MEDIUM = "medium", _("Medium")
        HARD = "hard", _("Hard")

    title = models.CharField(max_length=255)
    description = models.CharField(max_length=100)
    location = models.CharField(max_length=15)
    difficulty = models.CharField(max_length=8, choices=Difficulty.choices)
    assigned = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="missions", blank=True
    )
    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return self.title

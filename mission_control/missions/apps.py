from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class MissionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "mission_control.missions"
    verbose_name = _("Missions")

    def ready(self):
        import mission_control.missions.signals  # noqa: F401, PLC0415

from django.apps import AppConfig


class QwikkerLoyaltyConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "qwikker_loyalty"
    verbose_name = "Qwikker Loyalty"

    def ready(self):
        from qwikker_loyalty import receivers  # noqa: F401

"""App user model - a consumer identified by their wallet pass."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AppUser(models.Model):
    """
    Consumer profile keyed by wallet pass id.

    Memberships reference ``wallet_pass_id`` by value, so a membership can
    exist before (or without) an AppUser row.
    """

    wallet_pass_id = models.CharField(_("wallet pass id"), max_length=100, unique=True)
    first_name = models.CharField(_("first name"), max_length=100, blank=True)
    last_name = models.CharField(_("last name"), max_length=100, blank=True)
    email = models.EmailField(_("email"), blank=True)
    date_of_birth = models.DateField(_("date of birth"), null=True, blank=True)
    city = models.CharField(_("city"), max_length=50, blank=True, db_index=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("app user")
        verbose_name_plural = _("app users")

    def __str__(self):
        return self.display_name

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or "Anonymous"

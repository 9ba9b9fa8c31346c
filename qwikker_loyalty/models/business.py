"""Business model (tenant-scoped)."""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class BusinessTier(models.TextChoices):
    FREE = "free", _("Free")
    FEATURED = "featured", _("Featured")
    SPOTLIGHT = "spotlight", _("Spotlight")


class Business(models.Model):
    """
    A business listed in one city.

    Owned by a single platform user. Only the loyalty-relevant slice of the
    business profile lives here; listings, menus and offers belong to other apps.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="loyalty_business",
        verbose_name=_("owner"),
    )
    business_name = models.CharField(_("business name"), max_length=200)
    slug = models.SlugField(_("slug"), max_length=200)
    city = models.CharField(_("city"), max_length=50, db_index=True)
    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=BusinessTier.choices,
        default=BusinessTier.FREE,
    )
    logo = models.URLField(_("logo"), max_length=500, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("business")
        verbose_name_plural = _("businesses")
        ordering = ["business_name"]
        constraints = [
            models.UniqueConstraint(fields=["city", "slug"], name="uniq_business_city_slug"),
        ]

    def __str__(self):
        return f"{self.business_name} ({self.city})"

"""Pass request model - admin provisioning queue."""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class RequestStatus(models.TextChoices):
    SUBMITTED = "submitted", _("Submitted")
    ISSUED = "issued", _("Issued")
    REJECTED = "rejected", _("Rejected")


class RequestType(models.TextChoices):
    NEW = "new", _("New card")
    EDIT = "edit", _("Edit")


class PassRequest(models.Model):
    """
    A business's request to provision (or change) its wallet card.

    ``design_spec`` is a frozen snapshot of the card design at submission time.
    Edit requests add ``_change_description`` and ``_changed_fields`` so the
    admin can diff against the live program.
    """

    business = models.ForeignKey(
        "qwikker_loyalty.Business",
        on_delete=models.CASCADE,
        related_name="pass_requests",
    )
    program = models.ForeignKey(
        "qwikker_loyalty.LoyaltyProgram",
        on_delete=models.CASCADE,
        related_name="pass_requests",
    )
    design_spec = models.JSONField(_("design spec"), default=dict)
    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.SUBMITTED,
        db_index=True,
    )
    request_type = models.CharField(
        max_length=10,
        choices=RequestType.choices,
        default=RequestType.NEW,
    )
    rejection_reason = models.TextField(blank=True)

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("pass request")
        verbose_name_plural = _("pass requests")
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.business.business_name}: {self.request_type} [{self.status}]"

    @property
    def changed_fields(self) -> list[str]:
        return list(self.design_spec.get("_changed_fields", []))

"""Earn event model - audit trail of every earn attempt."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class EarnMethod(models.TextChoices):
    COUNTER_QR = "counter_qr", _("Counter QR")


class EarnEvent(models.Model):
    """
    One earn attempt, valid or not.

    Rejected attempts are stored with ``valid=False`` and a reason; they count
    toward the hourly rate limits and the IP velocity check.
    """

    membership = models.ForeignKey(
        "qwikker_loyalty.LoyaltyMembership",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="earn_events",
    )
    business = models.ForeignKey(
        "qwikker_loyalty.Business",
        on_delete=models.CASCADE,
        related_name="earn_events",
    )
    user_wallet_pass_id = models.CharField(max_length=100, db_index=True)
    earned_at = models.DateTimeField(default=timezone.now, db_index=True)
    method = models.CharField(max_length=20, choices=EarnMethod.choices, default=EarnMethod.COUNTER_QR)
    ip_hash = models.CharField(max_length=64, blank=True, db_index=True)
    valid = models.BooleanField(default=True)
    reason_if_invalid = models.CharField(max_length=200, blank=True)

    class Meta:
        verbose_name = _("earn event")
        verbose_name_plural = _("earn events")
        ordering = ["-earned_at"]
        indexes = [
            models.Index(fields=["business", "ip_hash", "earned_at"], name="earn_event_business_ip_idx"),
        ]

    def __str__(self):
        state = "ok" if self.valid else f"rejected: {self.reason_if_invalid}"
        return f"{self.user_wallet_pass_id} @ {self.earned_at:%Y-%m-%d %H:%M} ({state})"

"""Redemption model - a consumed reward and its live display window."""

import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class RedemptionStatus(models.TextChoices):
    CONSUMED = "consumed", _("Consumed")
    EXPIRED_DISPLAY = "expired_display", _("Display expired")


class Redemption(models.Model):
    """
    A reward handed over at the counter.

    Created together with the redeem LedgerEntry. The member shows the live
    redemption screen to staff until ``display_expires_at``.
    Businesses may flag a redemption as suspicious; nothing else changes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    membership = models.ForeignKey(
        "qwikker_loyalty.LoyaltyMembership",
        on_delete=models.PROTECT,
        related_name="redemptions",
    )
    business = models.ForeignKey(
        "qwikker_loyalty.Business",
        on_delete=models.CASCADE,
        related_name="loyalty_redemptions",
    )
    user_wallet_pass_id = models.CharField(max_length=100, db_index=True)
    reward_description = models.CharField(max_length=200)
    status = models.CharField(
        max_length=20,
        choices=RedemptionStatus.choices,
        default=RedemptionStatus.CONSUMED,
    )
    consumed_at = models.DateTimeField(default=timezone.now, db_index=True)
    display_expires_at = models.DateTimeField()
    stamps_deducted = models.PositiveIntegerField()

    flagged_at = models.DateTimeField(null=True, blank=True)
    flagged_reason = models.CharField(max_length=300, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("redemption")
        verbose_name_plural = _("redemptions")
        ordering = ["-consumed_at"]

    def __str__(self):
        return f"{self.reward_description} ({self.consumed_at:%Y-%m-%d %H:%M})"

    def time_remaining_ms(self, now=None) -> int:
        now = now or timezone.now()
        return max(0, int((self.display_expires_at - now).total_seconds() * 1000))

    def is_display_active(self, now=None) -> bool:
        return self.display_expires_at > (now or timezone.now())

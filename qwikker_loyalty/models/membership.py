"""Loyalty membership model - a user's participation in a program."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class MembershipStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    INACTIVE = "inactive", _("Inactive")


class LoyaltyMembership(models.Model):
    """
    A wallet pass holder's enrollment in one program.

    Holds the running balances and the counters the earn rules read.
    Mutated only by services.ledger under a row lock; every change to a
    balance has a matching LedgerEntry.
    """

    program = models.ForeignKey(
        "qwikker_loyalty.LoyaltyProgram",
        on_delete=models.CASCADE,
        related_name="memberships",
        verbose_name=_("program"),
    )
    user_wallet_pass_id = models.CharField(_("wallet pass id"), max_length=100, db_index=True)

    # Balances
    stamps_balance = models.IntegerField(_("stamps balance"), default=0)
    points_balance = models.IntegerField(_("points balance"), default=0)
    total_earned = models.IntegerField(
        _("total earned"),
        default=0,
        help_text=_("Lifetime stamps/points earned (never decreases)"),
    )
    total_redeemed = models.IntegerField(
        _("total redeemed"),
        default=0,
        help_text=_("Rewards redeemed"),
    )

    # Earn counters
    last_earned_at = models.DateTimeField(_("last earned at"), null=True, blank=True)
    earned_today_count = models.PositiveIntegerField(_("earned today"), default=0)
    earned_today_date = models.DateField(
        _("earned today date"),
        null=True,
        blank=True,
        help_text=_("Local date (program timezone) that earned_today_count refers to"),
    )

    walletpush_serial = models.CharField(_("wallet pass serial"), max_length=100, blank=True)
    status = models.CharField(
        _("status"),
        max_length=10,
        choices=MembershipStatus.choices,
        default=MembershipStatus.ACTIVE,
    )

    joined_at = models.DateTimeField(_("joined at"), auto_now_add=True, db_index=True)
    last_active_at = models.DateTimeField(_("last active at"), auto_now_add=True)

    class Meta:
        verbose_name = _("loyalty membership")
        verbose_name_plural = _("loyalty memberships")
        ordering = ["-joined_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["program", "user_wallet_pass_id"],
                name="uniq_membership_program_pass",
            ),
            models.CheckConstraint(
                condition=Q(stamps_balance__gte=0) & Q(points_balance__gte=0),
                name="membership_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.masked_pass_id} @ {self.program_id}: {self.balance}"

    @property
    def balance(self) -> int:
        """Balance for the program's type (stamps or points)."""
        return getattr(self, self.program.balance_field)

    @property
    def masked_pass_id(self) -> str:
        return f"...{self.user_wallet_pass_id[-4:]}" if self.user_wallet_pass_id else ""

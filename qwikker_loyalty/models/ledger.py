"""Ledger model - append-only record of every balance change."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from qwikker_loyalty.exceptions import LoyaltyError


class EntryType(models.TextChoices):
    EARN = "earn", _("Earn")
    REDEEM = "redeem", _("Redeem")


class LedgerQuerySet(models.QuerySet):
    """Bulk writes would bypass the per-row guards, so they are refused too."""

    def update(self, **kwargs):
        raise LoyaltyError("LEDGER_IMMUTABLE")

    def delete(self):
        raise LoyaltyError("LEDGER_IMMUTABLE")


class LedgerEntry(models.Model):
    """
    Immutable record of one earn or redeem.

    ``amount`` is positive for earns and negative for redeems;
    ``balance_after`` is the membership balance once the entry applied.
    Rows are never modified or deleted after creation.
    """

    membership = models.ForeignKey(
        "qwikker_loyalty.LoyaltyMembership",
        on_delete=models.PROTECT,
        related_name="ledger",
        verbose_name=_("membership"),
    )
    entry_type = models.CharField(_("type"), max_length=10, choices=EntryType.choices)
    amount = models.IntegerField(
        _("amount"),
        help_text=_("Positive for earn, negative for redeem"),
    )
    balance_after = models.IntegerField(_("balance after"))
    description = models.CharField(_("description"), max_length=200, blank=True)

    idempotency_key = models.CharField(
        _("idempotency key"),
        max_length=100,
        blank=True,
        help_text=_("Client-supplied key; a repeated key replays the original result"),
    )
    redemption = models.OneToOneField(
        "qwikker_loyalty.Redemption",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entry",
    )

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    objects = LedgerQuerySet.as_manager()

    class Meta:
        verbose_name = _("ledger entry")
        verbose_name_plural = _("ledger entries")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["membership", "-created_at"], name="ledger_membership_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["membership", "idempotency_key"],
                condition=~Q(idempotency_key=""),
                name="uniq_ledger_idempotency_key",
            ),
        ]

    def __str__(self):
        sign = "+" if self.amount > 0 else ""
        return f"{sign}{self.amount} -> {self.balance_after} ({self.entry_type})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LoyaltyError("LEDGER_IMMUTABLE", entry_id=self.pk)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LoyaltyError("LEDGER_IMMUTABLE", entry_id=self.pk)

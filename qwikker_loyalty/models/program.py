"""Loyalty program model - a business's configured loyalty scheme."""

from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from qwikker_loyalty.utils import STAMP_ICONS, validate_timezone

hex_color = RegexValidator(r"^#[0-9a-fA-F]{6}$", _("Enter a colour like #00d083."))


class ProgramType(models.TextChoices):
    STAMPS = "stamps", _("Stamps")
    POINTS = "points", _("Points")


class EarnMode(models.TextChoices):
    PER_VISIT = "per_visit", _("Per visit")
    PER_TRANSACTION = "per_transaction", _("Per transaction")


class ProgramStatus(models.TextChoices):
    DRAFT = "draft", _("Draft")
    SUBMITTED = "submitted", _("Submitted")
    ACTIVE = "active", _("Active")
    PAUSED = "paused", _("Paused")
    ENDED = "ended", _("Ended")


# Fields a business may change on its own once the program has left draft.
# Anything else goes through an edit request and admin review.
LIVE_EDITABLE_FIELDS = (
    "earn_instructions",
    "redeem_instructions",
    "terms_and_conditions",
    "logo_url",
    "logo_description",
    "strip_image_url",
    "strip_image_description",
    "primary_color",
    "background_color",
)

# Frozen into PassRequest.design_spec for the admin provisioning queue.
DESIGN_SPEC_FIELDS = (
    "program_name",
    "type",
    "reward_threshold",
    "reward_description",
    "stamp_label",
    "earn_mode",
    "stamp_icon",
    "earn_instructions",
    "redeem_instructions",
    "primary_color",
    "background_color",
    "logo_url",
    "logo_description",
    "strip_image_url",
    "strip_image_description",
    "terms_and_conditions",
    "timezone",
    "max_earns_per_day",
    "min_gap_minutes",
)


class LoyaltyProgram(models.Model):
    """
    A business's loyalty scheme.

    One program per business. Stamp programs count visits toward a reward;
    points programs accumulate points. Either way, ``reward_threshold`` units
    unlock one reward.

    Lifecycle: draft -> submitted -> active <-> paused -> ended.
    ``ended`` is terminal (see Gates.program_transition).
    """

    business = models.OneToOneField(
        "qwikker_loyalty.Business",
        on_delete=models.CASCADE,
        related_name="loyalty_program",
        verbose_name=_("business"),
    )
    public_id = models.CharField(
        _("public id"),
        max_length=20,
        unique=True,
        help_text=_("Short code used in join and earn URLs"),
    )
    city = models.CharField(_("city"), max_length=50, db_index=True)

    # Reward rules
    program_name = models.CharField(_("program name"), max_length=120, blank=True)
    type = models.CharField(
        _("type"),
        max_length=10,
        choices=ProgramType.choices,
        default=ProgramType.STAMPS,
    )
    reward_threshold = models.PositiveIntegerField(
        _("reward threshold"),
        default=10,
        validators=[MinValueValidator(1)],
        help_text=_("Stamps or points needed for one reward"),
    )
    reward_description = models.CharField(_("reward description"), max_length=200, blank=True)
    stamp_label = models.CharField(_("stamp label"), max_length=30, default="Stamps")
    earn_mode = models.CharField(
        _("earn mode"),
        max_length=20,
        choices=EarnMode.choices,
        default=EarnMode.PER_VISIT,
    )
    stamp_icon = models.CharField(
        _("stamp icon"),
        max_length=20,
        choices=[(key, value["label"]) for key, value in STAMP_ICONS.items()],
        default="stamp",
    )
    earn_instructions = models.TextField(_("earn instructions"), blank=True)
    redeem_instructions = models.TextField(_("redeem instructions"), blank=True)
    terms_and_conditions = models.TextField(_("terms and conditions"), blank=True)

    # Limits
    timezone = models.CharField(
        _("timezone"),
        max_length=64,
        default="Europe/London",
        validators=[validate_timezone],
        help_text=_("IANA timezone; daily earn limits reset at local midnight"),
    )
    max_earns_per_day = models.PositiveIntegerField(
        _("max earns per day"),
        default=1,
        validators=[MinValueValidator(1)],
    )
    min_gap_minutes = models.PositiveIntegerField(_("min gap (minutes)"), default=30)

    # Card design
    primary_color = models.CharField(
        _("primary colour"), max_length=7, default="#00d083", validators=[hex_color]
    )
    background_color = models.CharField(
        _("background colour"), max_length=7, default="#0b0f14", validators=[hex_color]
    )
    logo_url = models.URLField(_("logo url"), max_length=500, blank=True)
    logo_description = models.CharField(_("logo description"), max_length=200, blank=True)
    strip_image_url = models.URLField(_("strip image url"), max_length=500, blank=True)
    strip_image_description = models.CharField(
        _("strip image description"), max_length=200, blank=True
    )

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=ProgramStatus.choices,
        default=ProgramStatus.DRAFT,
        db_index=True,
    )

    # Wallet pass vendor credentials (set by admin on activation)
    walletpush_template_id = models.CharField(max_length=100, blank=True)
    walletpush_api_key = models.CharField(max_length=200, blank=True)
    walletpush_pass_type_id = models.CharField(max_length=200, blank=True)

    # Till QR token; the previous token stays valid for a grace window after rotation
    counter_qr_token = models.CharField(_("counter QR token"), max_length=64)
    previous_counter_qr_token = models.CharField(max_length=64, blank=True)
    counter_qr_token_rotated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("loyalty program")
        verbose_name_plural = _("loyalty programs")
        indexes = [
            models.Index(fields=["city", "status"], name="program_city_status_idx"),
        ]

    def __str__(self):
        return f"{self.display_name} [{self.status}]"

    @property
    def display_name(self) -> str:
        return self.program_name or f"{self.business.business_name} Rewards"

    @property
    def balance_field(self) -> str:
        """Membership field holding the balance for this program type."""
        if self.type == ProgramType.POINTS:
            return "points_balance"
        return "stamps_balance"

    @property
    def has_wallet_credentials(self) -> bool:
        """All three WalletPush credentials must be present to issue passes."""
        return bool(
            self.walletpush_template_id
            and self.walletpush_api_key
            and self.walletpush_pass_type_id
        )

    @property
    def is_live(self) -> bool:
        return self.status in (ProgramStatus.ACTIVE, ProgramStatus.PAUSED)

    def design_spec(self) -> dict:
        """Snapshot of the card design for the admin provisioning queue."""
        snapshot = {name: getattr(self, name) for name in DESIGN_SPEC_FIELDS}
        snapshot["program_name"] = self.display_name
        snapshot["business_name"] = self.business.business_name
        snapshot["business_city"] = self.city
        return snapshot

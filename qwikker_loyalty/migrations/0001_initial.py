# Generated migration for the loyalty ledger schema

import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import qwikker_loyalty.utils


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AppUser",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("wallet_pass_id", models.CharField(max_length=100, unique=True, verbose_name="wallet pass id")),
                ("first_name", models.CharField(blank=True, max_length=100, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=100, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email")),
                ("date_of_birth", models.DateField(blank=True, null=True, verbose_name="date of birth")),
                ("city", models.CharField(blank=True, db_index=True, max_length=50, verbose_name="city")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
            ],
            options={
                "verbose_name": "app user",
                "verbose_name_plural": "app users",
            },
        ),
        migrations.CreateModel(
            name="Business",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_name", models.CharField(max_length=200, verbose_name="business name")),
                ("slug", models.SlugField(max_length=200, verbose_name="slug")),
                ("city", models.CharField(db_index=True, max_length=50, verbose_name="city")),
                (
                    "tier",
                    models.CharField(
                        choices=[("free", "Free"), ("featured", "Featured"), ("spotlight", "Spotlight")],
                        default="free",
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                ("logo", models.URLField(blank=True, max_length=500, verbose_name="logo")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="loyalty_business",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="owner",
                    ),
                ),
            ],
            options={
                "verbose_name": "business",
                "verbose_name_plural": "businesses",
                "ordering": ["business_name"],
                "constraints": [
                    models.UniqueConstraint(fields=("city", "slug"), name="uniq_business_city_slug"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyProgram",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "public_id",
                    models.CharField(
                        help_text="Short code used in join and earn URLs",
                        max_length=20,
                        unique=True,
                        verbose_name="public id",
                    ),
                ),
                ("city", models.CharField(db_index=True, max_length=50, verbose_name="city")),
                ("program_name", models.CharField(blank=True, max_length=120, verbose_name="program name")),
                (
                    "type",
                    models.CharField(
                        choices=[("stamps", "Stamps"), ("points", "Points")],
                        default="stamps",
                        max_length=10,
                        verbose_name="type",
                    ),
                ),
                (
                    "reward_threshold",
                    models.PositiveIntegerField(
                        default=10,
                        help_text="Stamps or points needed for one reward",
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="reward threshold",
                    ),
                ),
                ("reward_description", models.CharField(blank=True, max_length=200, verbose_name="reward description")),
                ("stamp_label", models.CharField(default="Stamps", max_length=30, verbose_name="stamp label")),
                (
                    "earn_mode",
                    models.CharField(
                        choices=[("per_visit", "Per visit"), ("per_transaction", "Per transaction")],
                        default="per_visit",
                        max_length=20,
                        verbose_name="earn mode",
                    ),
                ),
                (
                    "stamp_icon",
                    models.CharField(
                        choices=[
                            ("stamp", "Stamp"),
                            ("bean", "Coffee Bean"),
                            ("scissors", "Scissors"),
                            ("flame", "Flame"),
                            ("burger", "Burger"),
                            ("cocktail", "Cocktail"),
                            ("pizza", "Pizza"),
                            ("star", "Star"),
                            ("heart", "Heart"),
                            ("cake", "Cake"),
                            ("dumbbell", "Dumbbell"),
                            ("paw", "Paw"),
                        ],
                        default="stamp",
                        max_length=20,
                        verbose_name="stamp icon",
                    ),
                ),
                ("earn_instructions", models.TextField(blank=True, verbose_name="earn instructions")),
                ("redeem_instructions", models.TextField(blank=True, verbose_name="redeem instructions")),
                ("terms_and_conditions", models.TextField(blank=True, verbose_name="terms and conditions")),
                (
                    "timezone",
                    models.CharField(
                        default="Europe/London",
                        help_text="IANA timezone; daily earn limits reset at local midnight",
                        max_length=64,
                        validators=[qwikker_loyalty.utils.validate_timezone],
                        verbose_name="timezone",
                    ),
                ),
                (
                    "max_earns_per_day",
                    models.PositiveIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="max earns per day",
                    ),
                ),
                ("min_gap_minutes", models.PositiveIntegerField(default=30, verbose_name="min gap (minutes)")),
                (
                    "primary_color",
                    models.CharField(
                        default="#00d083",
                        max_length=7,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^#[0-9a-fA-F]{6}$", "Enter a colour like #00d083."
                            )
                        ],
                        verbose_name="primary colour",
                    ),
                ),
                (
                    "background_color",
                    models.CharField(
                        default="#0b0f14",
                        max_length=7,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^#[0-9a-fA-F]{6}$", "Enter a colour like #00d083."
                            )
                        ],
                        verbose_name="background colour",
                    ),
                ),
                ("logo_url", models.URLField(blank=True, max_length=500, verbose_name="logo url")),
                ("logo_description", models.CharField(blank=True, max_length=200, verbose_name="logo description")),
                ("strip_image_url", models.URLField(blank=True, max_length=500, verbose_name="strip image url")),
                (
                    "strip_image_description",
                    models.CharField(blank=True, max_length=200, verbose_name="strip image description"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("submitted", "Submitted"),
                            ("active", "Active"),
                            ("paused", "Paused"),
                            ("ended", "Ended"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("walletpush_template_id", models.CharField(blank=True, max_length=100)),
                ("walletpush_api_key", models.CharField(blank=True, max_length=200)),
                ("walletpush_pass_type_id", models.CharField(blank=True, max_length=200)),
                ("counter_qr_token", models.CharField(max_length=64, verbose_name="counter QR token")),
                ("previous_counter_qr_token", models.CharField(blank=True, max_length=64)),
                ("counter_qr_token_rotated_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "business",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="loyalty_program",
                        to="qwikker_loyalty.business",
                        verbose_name="business",
                    ),
                ),
            ],
            options={
                "verbose_name": "loyalty program",
                "verbose_name_plural": "loyalty programs",
                "indexes": [models.Index(fields=["city", "status"], name="program_city_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_wallet_pass_id", models.CharField(db_index=True, max_length=100, verbose_name="wallet pass id")),
                ("stamps_balance", models.IntegerField(default=0, verbose_name="stamps balance")),
                ("points_balance", models.IntegerField(default=0, verbose_name="points balance")),
                (
                    "total_earned",
                    models.IntegerField(
                        default=0,
                        help_text="Lifetime stamps/points earned (never decreases)",
                        verbose_name="total earned",
                    ),
                ),
                (
                    "total_redeemed",
                    models.IntegerField(default=0, help_text="Rewards redeemed", verbose_name="total redeemed"),
                ),
                ("last_earned_at", models.DateTimeField(blank=True, null=True, verbose_name="last earned at")),
                ("earned_today_count", models.PositiveIntegerField(default=0, verbose_name="earned today")),
                (
                    "earned_today_date",
                    models.DateField(
                        blank=True,
                        help_text="Local date (program timezone) that earned_today_count refers to",
                        null=True,
                        verbose_name="earned today date",
                    ),
                ),
                ("walletpush_serial", models.CharField(blank=True, max_length=100, verbose_name="wallet pass serial")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        default="active",
                        max_length=10,
                        verbose_name="status",
                    ),
                ),
                ("joined_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="joined at")),
                ("last_active_at", models.DateTimeField(auto_now_add=True, verbose_name="last active at")),
                (
                    "program",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="qwikker_loyalty.loyaltyprogram",
                        verbose_name="program",
                    ),
                ),
            ],
            options={
                "verbose_name": "loyalty membership",
                "verbose_name_plural": "loyalty memberships",
                "ordering": ["-joined_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("program", "user_wallet_pass_id"), name="uniq_membership_program_pass"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("stamps_balance__gte", 0), ("points_balance__gte", 0)),
                        name="membership_balance_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_wallet_pass_id", models.CharField(db_index=True, max_length=100)),
                ("reward_description", models.CharField(max_length=200)),
                (
                    "status",
                    models.CharField(
                        choices=[("consumed", "Consumed"), ("expired_display", "Display expired")],
                        default="consumed",
                        max_length=20,
                    ),
                ),
                ("consumed_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("display_expires_at", models.DateTimeField()),
                ("stamps_deducted", models.PositiveIntegerField()),
                ("flagged_at", models.DateTimeField(blank=True, null=True)),
                ("flagged_reason", models.CharField(blank=True, max_length=300)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="loyalty_redemptions",
                        to="qwikker_loyalty.business",
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="qwikker_loyalty.loyaltymembership",
                    ),
                ),
            ],
            options={
                "verbose_name": "redemption",
                "verbose_name_plural": "redemptions",
                "ordering": ["-consumed_at"],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[("earn", "Earn"), ("redeem", "Redeem")], max_length=10, verbose_name="type"
                    ),
                ),
                (
                    "amount",
                    models.IntegerField(help_text="Positive for earn, negative for redeem", verbose_name="amount"),
                ),
                ("balance_after", models.IntegerField(verbose_name="balance after")),
                ("description", models.CharField(blank=True, max_length=200, verbose_name="description")),
                (
                    "idempotency_key",
                    models.CharField(
                        blank=True,
                        help_text="Client-supplied key; a repeated key replays the original result",
                        max_length=100,
                        verbose_name="idempotency key",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger",
                        to="qwikker_loyalty.loyaltymembership",
                        verbose_name="membership",
                    ),
                ),
                (
                    "redemption",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entry",
                        to="qwikker_loyalty.redemption",
                    ),
                ),
            ],
            options={
                "verbose_name": "ledger entry",
                "verbose_name_plural": "ledger entries",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["membership", "-created_at"], name="ledger_membership_created_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("idempotency_key", ""), _negated=True),
                        fields=("membership", "idempotency_key"),
                        name="uniq_ledger_idempotency_key",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="EarnEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_wallet_pass_id", models.CharField(db_index=True, max_length=100)),
                ("earned_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "method",
                    models.CharField(choices=[("counter_qr", "Counter QR")], default="counter_qr", max_length=20),
                ),
                ("ip_hash", models.CharField(blank=True, db_index=True, max_length=64)),
                ("valid", models.BooleanField(default=True)),
                ("reason_if_invalid", models.CharField(blank=True, max_length=200)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="earn_events",
                        to="qwikker_loyalty.business",
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="earn_events",
                        to="qwikker_loyalty.loyaltymembership",
                    ),
                ),
            ],
            options={
                "verbose_name": "earn event",
                "verbose_name_plural": "earn events",
                "ordering": ["-earned_at"],
                "indexes": [
                    models.Index(fields=["business", "ip_hash", "earned_at"], name="earn_event_business_ip_idx")
                ],
            },
        ),
        migrations.CreateModel(
            name="PassRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("design_spec", models.JSONField(default=dict, verbose_name="design spec")),
                (
                    "status",
                    models.CharField(
                        choices=[("submitted", "Submitted"), ("issued", "Issued"), ("rejected", "Rejected")],
                        db_index=True,
                        default="submitted",
                        max_length=20,
                    ),
                ),
                (
                    "request_type",
                    models.CharField(choices=[("new", "New card"), ("edit", "Edit")], default="new", max_length=10),
                ),
                ("rejection_reason", models.TextField(blank=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pass_requests",
                        to="qwikker_loyalty.business",
                    ),
                ),
                (
                    "program",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pass_requests",
                        to="qwikker_loyalty.loyaltyprogram",
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "pass request",
                "verbose_name_plural": "pass requests",
                "ordering": ["created_at"],
            },
        ),
    ]

"""Qwikker Loyalty admin.

Balances and ledger rows are read-only here; they change only through
services.ledger so every change keeps its LedgerEntry.
"""

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from qwikker_loyalty.models import (
    AppUser,
    Business,
    EarnEvent,
    LedgerEntry,
    LoyaltyMembership,
    LoyaltyProgram,
    PassRequest,
    ProgramStatus,
    Redemption,
)
from qwikker_loyalty.utils import generate_counter_qr_token, generate_public_id

STATUS_COLORS = {
    "draft": "#6c757d",
    "submitted": "#0d6efd",
    "active": "#00d083",
    "paused": "#fd7e14",
    "ended": "#343a40",
    "issued": "#00d083",
    "rejected": "#dc3545",
}


def status_badge(value: str, label: str):
    return format_html(
        '<span style="background:{}; color:#fff; padding:2px 8px; '
        'border-radius:3px; font-size:11px;">{}</span>',
        STATUS_COLORS.get(value, "#6c757d"),
        label,
    )


# ===========================================
# Business / AppUser
# ===========================================


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ["business_name", "city", "tier", "user", "created_at"]
    list_filter = ["city", "tier"]
    search_fields = ["business_name", "slug"]
    prepopulated_fields = {"slug": ["business_name"]}
    raw_id_fields = ["user"]


@admin.register(AppUser)
class AppUserAdmin(admin.ModelAdmin):
    list_display = ["wallet_pass_id", "display_name", "email", "city", "created_at"]
    list_filter = ["city"]
    search_fields = ["wallet_pass_id", "first_name", "last_name", "email"]


# ===========================================
# Program
# ===========================================


@admin.register(LoyaltyProgram)
class LoyaltyProgramAdmin(admin.ModelAdmin):
    list_display = [
        "display_name",
        "business",
        "city",
        "type",
        "reward_threshold",
        "status_display",
        "member_count",
        "updated_at",
    ]
    list_filter = ["city", "status", "type"]
    search_fields = ["program_name", "public_id", "business__business_name"]
    raw_id_fields = ["business"]
    readonly_fields = [
        "public_id",
        "status",
        "counter_qr_token",
        "previous_counter_qr_token",
        "counter_qr_token_rotated_at",
        "created_at",
        "updated_at",
    ]
    fieldsets = [
        (None, {"fields": ["business", "public_id", "city", "status"]}),
        (
            "Reward",
            {
                "fields": [
                    "program_name",
                    "type",
                    "reward_threshold",
                    "reward_description",
                    "stamp_label",
                    "stamp_icon",
                    "earn_mode",
                ]
            },
        ),
        ("Limits", {"fields": ["timezone", "max_earns_per_day", "min_gap_minutes"]}),
        (
            "Card design",
            {
                "fields": [
                    "primary_color",
                    "background_color",
                    "logo_url",
                    "logo_description",
                    "strip_image_url",
                    "strip_image_description",
                    "earn_instructions",
                    "redeem_instructions",
                    "terms_and_conditions",
                ]
            },
        ),
        (
            "WalletPush",
            {
                "classes": ["collapse"],
                "fields": [
                    "walletpush_template_id",
                    "walletpush_api_key",
                    "walletpush_pass_type_id",
                ],
            },
        ),
        (
            "Counter QR",
            {
                "classes": ["collapse"],
                "fields": [
                    "counter_qr_token",
                    "previous_counter_qr_token",
                    "counter_qr_token_rotated_at",
                ],
            },
        ),
        (None, {"fields": ["created_at", "updated_at"]}),
    ]

    def get_readonly_fields(self, request, obj=None):
        fields = list(super().get_readonly_fields(request, obj))
        # Member balances are stored per type; switching goes through an edit request.
        if obj is not None and obj.status not in (ProgramStatus.DRAFT, ProgramStatus.SUBMITTED):
            fields.append("type")
        return fields

    def save_model(self, request, obj, form, change):
        if not obj.public_id:
            obj.public_id = generate_public_id()
        if not obj.counter_qr_token:
            obj.counter_qr_token = generate_counter_qr_token()
        super().save_model(request, obj, form, change)

    def status_display(self, obj):
        return status_badge(obj.status, obj.get_status_display())

    status_display.short_description = "Status"

    def member_count(self, obj):
        return obj.memberships.count()

    member_count.short_description = "Members"


# ===========================================
# Membership + ledger
# ===========================================


class LedgerEntryInline(admin.TabularInline):
    model = LedgerEntry
    extra = 0
    fields = ["entry_type", "amount", "balance_after", "description", "created_at"]
    readonly_fields = ["entry_type", "amount", "balance_after", "description", "created_at"]
    ordering = ["-created_at"]
    max_num = 20

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LoyaltyMembership)
class LoyaltyMembershipAdmin(admin.ModelAdmin):
    list_display = [
        "masked_pass_id",
        "program_link",
        "stamps_balance",
        "points_balance",
        "total_earned",
        "total_redeemed",
        "status",
        "joined_at",
    ]
    list_filter = ["status", "program__city"]
    search_fields = ["user_wallet_pass_id", "program__public_id", "program__business__business_name"]
    readonly_fields = [
        "program",
        "user_wallet_pass_id",
        "stamps_balance",
        "points_balance",
        "total_earned",
        "total_redeemed",
        "last_earned_at",
        "earned_today_count",
        "earned_today_date",
        "joined_at",
        "last_active_at",
    ]
    inlines = [LedgerEntryInline]

    def program_link(self, obj):
        url = reverse("admin:qwikker_loyalty_loyaltyprogram_change", args=[obj.program_id])
        return format_html('<a href="{}">{}</a>', url, obj.program.display_name)

    program_link.short_description = "Program"


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = [
        "created_at",
        "membership",
        "entry_type",
        "amount_display",
        "balance_after",
        "description",
    ]
    list_filter = ["entry_type"]
    search_fields = ["membership__user_wallet_pass_id", "description", "idempotency_key"]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def amount_display(self, obj):
        if obj.amount > 0:
            return format_html('<span style="color:green">+{}</span>', obj.amount)
        return format_html('<span style="color:red">{}</span>', obj.amount)

    amount_display.short_description = "Amount"


# ===========================================
# Earn events / redemptions
# ===========================================


@admin.register(EarnEvent)
class EarnEventAdmin(admin.ModelAdmin):
    list_display = ["earned_at", "business", "user_wallet_pass_id", "valid", "reason_if_invalid"]
    list_filter = ["valid", "reason_if_invalid", "business__city"]
    search_fields = ["user_wallet_pass_id", "ip_hash"]
    date_hierarchy = "earned_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Redemption)
class RedemptionAdmin(admin.ModelAdmin):
    list_display = [
        "consumed_at",
        "business",
        "reward_description",
        "stamps_deducted",
        "status",
        "flagged",
    ]
    list_filter = ["status", "business__city"]
    search_fields = ["user_wallet_pass_id", "reward_description"]
    readonly_fields = [
        "membership",
        "business",
        "user_wallet_pass_id",
        "reward_description",
        "status",
        "consumed_at",
        "display_expires_at",
        "stamps_deducted",
        "created_at",
    ]
    date_hierarchy = "consumed_at"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(boolean=True, description="Flagged")
    def flagged(self, obj):
        return obj.flagged_at is not None


# ===========================================
# Pass requests
# ===========================================


@admin.register(PassRequest)
class PassRequestAdmin(admin.ModelAdmin):
    list_display = ["created_at", "business", "request_type", "status_display", "reviewed_by"]
    list_filter = ["status", "request_type", "business__city"]
    search_fields = ["business__business_name"]
    readonly_fields = ["business", "program", "design_spec", "request_type", "created_at"]

    def status_display(self, obj):
        return status_badge(obj.status, obj.get_status_display())

    status_display.short_description = "Status"

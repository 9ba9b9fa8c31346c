"""JSON shapes for the loyalty endpoints."""

from django.utils import timezone

from qwikker_loyalty.models import ProgramStatus
from qwikker_loyalty.utils import STAMP_ICONS, calculate_progress, proximity_message


def program_public(program) -> dict:
    """What members see: no tokens, no vendor credentials."""
    return {
        "id": program.pk,
        "public_id": program.public_id,
        "business_id": program.business_id,
        "business_name": program.business.business_name,
        "program_name": program.display_name,
        "type": program.type,
        "reward_threshold": program.reward_threshold,
        "reward_description": program.reward_description,
        "stamp_label": program.stamp_label,
        "stamp_icon": program.stamp_icon,
        "stamp_icon_name": STAMP_ICONS.get(program.stamp_icon, STAMP_ICONS["stamp"])["icon"],
        "earn_mode": program.earn_mode,
        "earn_instructions": program.earn_instructions,
        "redeem_instructions": program.redeem_instructions,
        "terms_and_conditions": program.terms_and_conditions,
        "primary_color": program.primary_color,
        "background_color": program.background_color,
        "logo_url": program.logo_url or program.business.logo,
        "strip_image_url": program.strip_image_url,
        "status": program.status,
    }


def program_owner(program) -> dict:
    """Dashboard view for the owning business (includes the till token)."""
    data = program_public(program)
    data.update(
        {
            "logo_description": program.logo_description,
            "strip_image_description": program.strip_image_description,
            "timezone": program.timezone,
            "max_earns_per_day": program.max_earns_per_day,
            "min_gap_minutes": program.min_gap_minutes,
            "counter_qr_token": program.counter_qr_token,
            "counter_qr_token_rotated_at": program.counter_qr_token_rotated_at,
            "has_wallet_credentials": program.has_wallet_credentials,
            "created_at": program.created_at,
            "updated_at": program.updated_at,
        }
    )
    return data


def program_admin(program) -> dict:
    data = program_owner(program)
    data["city"] = program.city
    data["member_count"] = getattr(program, "member_count", None)
    data["walletpush_template_id"] = program.walletpush_template_id
    data["walletpush_pass_type_id"] = program.walletpush_pass_type_id
    return data


def membership_card(membership) -> dict:
    program = membership.program
    balance = membership.balance
    return {
        "membership_id": membership.pk,
        "balance": balance,
        "total_earned": membership.total_earned,
        "total_redeemed": membership.total_redeemed,
        "progress": calculate_progress(balance, program.reward_threshold),
        "proximity_message": proximity_message(balance, program.reward_threshold),
        "reward_available": (
            balance >= program.reward_threshold and program.status == ProgramStatus.ACTIVE
        ),
        "has_wallet_pass": bool(membership.walletpush_serial),
        "last_earned_at": membership.last_earned_at,
        "joined_at": membership.joined_at,
        "program": program_public(program),
    }


def member_row(row) -> dict:
    return {
        "membership_id": row.membership_id,
        "name": row.name,
        "masked_pass_id": row.masked_pass_id,
        "email": row.email,
        "joined_at": row.joined_at,
        "last_active_at": row.last_active_at,
        "total_earned": row.total_earned,
        "balance": row.balance,
        "total_redeemed": row.total_redeemed,
        "status": row.status,
    }


def redemption(item, now=None) -> dict:
    now = now or timezone.now()
    return {
        "id": str(item.pk),
        "reward_description": item.reward_description,
        "status": item.status,
        "masked_pass_id": f"...{item.user_wallet_pass_id[-4:]}",
        "consumed_at": item.consumed_at,
        "display_expires_at": item.display_expires_at,
        "display_active": item.is_display_active(now),
        "stamps_deducted": item.stamps_deducted,
        "flagged_at": item.flagged_at,
        "flagged_reason": item.flagged_reason,
    }


def pass_request(item) -> dict:
    return {
        "id": item.pk,
        "business_id": item.business_id,
        "business_name": item.business.business_name,
        "program_id": item.program_id,
        "public_id": item.program.public_id,
        "request_type": item.request_type,
        "status": item.status,
        "design_spec": item.design_spec,
        "changed_fields": item.changed_fields,
        "rejection_reason": item.rejection_reason,
        "created_at": item.created_at,
        "reviewed_at": item.reviewed_at,
    }

"""Reporting service - member lists, redemptions and the business summary."""

import csv
import io
from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from django.utils import timezone

from qwikker_loyalty.conf import loyalty_settings
from qwikker_loyalty.models import (
    AppUser,
    EarnEvent,
    LoyaltyMembership,
    LoyaltyProgram,
    MembershipStatus,
    ProgramStatus,
    Redemption,
)

CSV_HEADER = [
    "Name",
    "Email",
    "Joined",
    "Last Active",
    "Total Earned",
    "Balance",
    "Redemptions",
    "Status",
]


@dataclass
class MemberRow:
    membership_id: int
    name: str
    masked_pass_id: str
    email: str
    joined_at: datetime
    last_active_at: datetime
    total_earned: int
    balance: int
    total_redeemed: int
    status: str


@dataclass
class BusinessSummary:
    active_members: int
    visits_this_month: int
    redemptions_this_month: int
    estimated_value: float
    avg_visits_per_member: float
    members_near_reward: int
    flagged_redemptions: int


def memberships_for_wallet(wallet_pass_id: str, city: str) -> list[LoyaltyMembership]:
    """A member's cards in the city (draft programs are never shown)."""
    return list(
        LoyaltyMembership.objects.select_related("program__business")
        .filter(user_wallet_pass_id=wallet_pass_id, program__city=city)
        .exclude(program__status=ProgramStatus.DRAFT)
        .order_by("-last_active_at")
    )


def member_rows(
    program: LoyaltyProgram,
    status: str | None = None,
    since_days: int | None = None,
) -> list[MemberRow]:
    """
    Members of a program for the business dashboard.

    Names and emails come from the AppUser profile when one exists; wallet
    pass ids are masked.
    """
    memberships = program.memberships.all().order_by("-joined_at")
    if status:
        memberships = memberships.filter(status=status)
    if since_days:
        memberships = memberships.filter(joined_at__gte=timezone.now() - timedelta(days=since_days))
    memberships = list(memberships)

    users = AppUser.objects.in_bulk(
        [m.user_wallet_pass_id for m in memberships], field_name="wallet_pass_id"
    )
    rows = []
    for membership in memberships:
        membership.program = program
        user = users.get(membership.user_wallet_pass_id)
        rows.append(
            MemberRow(
                membership_id=membership.pk,
                name=user.display_name if user else "Anonymous",
                masked_pass_id=membership.masked_pass_id,
                email=user.email if user else "",
                joined_at=membership.joined_at,
                last_active_at=membership.last_active_at,
                total_earned=membership.total_earned,
                balance=membership.balance,
                total_redeemed=membership.total_redeemed,
                status=membership.status,
            )
        )
    return rows


def members_csv(rows: list[MemberRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow(
            [
                row.name,
                row.email,
                row.joined_at.date().isoformat(),
                row.last_active_at.date().isoformat(),
                row.total_earned,
                row.balance,
                row.total_redeemed,
                row.status,
            ]
        )
    return buffer.getvalue()


def recent_redemptions(business, since_days: int | None = None, limit: int = 200) -> list[Redemption]:
    redemptions = Redemption.objects.filter(business=business)
    if since_days:
        redemptions = redemptions.filter(consumed_at__gte=timezone.now() - timedelta(days=since_days))
    return list(redemptions.order_by("-consumed_at")[:limit])


def _month_start(now: datetime, tz: str) -> datetime:
    local = now.astimezone(ZoneInfo(tz))
    return local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def business_summary(program: LoyaltyProgram, now: datetime | None = None) -> BusinessSummary:
    """
    Headline numbers for the business dashboard.

    "This month" is the calendar month in the program's timezone. Members
    near reward are one or two stamps (points) short of the threshold.
    """
    now = now or timezone.now()
    month_start = _month_start(now, program.timezone)

    members = program.memberships.filter(status=MembershipStatus.ACTIVE)
    active_members = members.count()

    valid_events = EarnEvent.objects.filter(business_id=program.business_id, valid=True)
    visits_this_month = valid_events.filter(earned_at__gte=month_start).count()
    total_visits = valid_events.count()

    redemptions = Redemption.objects.filter(business_id=program.business_id)
    redemptions_this_month = redemptions.filter(consumed_at__gte=month_start).count()

    balance = program.balance_field
    near_reward = members.filter(
        **{
            f"{balance}__gte": max(program.reward_threshold - 2, 0),
            f"{balance}__lt": program.reward_threshold,
        }
    ).count()

    return BusinessSummary(
        active_members=active_members,
        visits_this_month=visits_this_month,
        redemptions_this_month=redemptions_this_month,
        estimated_value=round(redemptions_this_month * loyalty_settings.DEFAULT_AVG_REWARD_VALUE, 2),
        avg_visits_per_member=round(total_visits / active_members, 1) if active_members else 0.0,
        members_near_reward=near_reward,
        flagged_redemptions=redemptions.filter(flagged_at__isnull=False).count(),
    )

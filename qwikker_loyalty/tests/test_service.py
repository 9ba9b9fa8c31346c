"""
LoyaltyService facade, reporting and management command tests.
"""

from datetime import datetime, timedelta
from io import StringIO
from zoneinfo import ZoneInfo

import pytest
from django.core.management import call_command
from django.utils import timezone

from qwikker_loyalty.exceptions import LoyaltyError
from qwikker_loyalty.models import (
    EarnEvent,
    LoyaltyMembership,
    MembershipStatus,
    ProgramStatus,
    Redemption,
    RedemptionStatus,
)
from qwikker_loyalty.service import LoyaltyService
from qwikker_loyalty.services import reporting
from qwikker_loyalty.tests.conftest import CITY, WALLET_PASS

pytestmark = pytest.mark.django_db


def visit(program, times=1, wallet_pass=WALLET_PASS):
    for _ in range(times):
        LoyaltyService.earn(program.public_id, program.counter_qr_token, wallet_pass, CITY)


class TestLoyaltyService:
    def test_full_cycle(self, program):
        joined = LoyaltyService.join(program.public_id, WALLET_PASS, CITY, first_name="Sam")
        visit(program, 3)
        assert LoyaltyService.get_balance(program.public_id, WALLET_PASS, CITY) == 3

        consumed = LoyaltyService.redeem(joined.membership.pk, WALLET_PASS, CITY)
        assert consumed.new_balance == 0

        history = LoyaltyService.history(joined.membership.pk, WALLET_PASS)
        assert [entry.entry_type for entry in history] == ["redeem", "earn", "earn", "earn"]
        assert history[0].balance_after == 0

    def test_balance_when_not_member(self, program):
        assert LoyaltyService.get_balance(program.public_id, "wp_stranger", CITY) == 0
        assert LoyaltyService.get_membership(program.public_id, "wp_stranger", CITY) is None

    def test_history_requires_owner(self, membership):
        with pytest.raises(LoyaltyError, match="MEMBERSHIP_NOT_FOUND"):
            LoyaltyService.history(membership.pk, "wp_other")

    def test_history_limit(self, program, membership):
        visit(program, 5)
        assert len(LoyaltyService.history(membership.pk, WALLET_PASS, limit=2)) == 2

    def test_memberships_hide_drafts(self, program, points_program):
        LoyaltyMembership.objects.create(program=program, user_wallet_pass_id=WALLET_PASS)
        LoyaltyMembership.objects.create(program=points_program, user_wallet_pass_id=WALLET_PASS)
        points_program.status = ProgramStatus.DRAFT
        points_program.save()

        cards = LoyaltyService.memberships(WALLET_PASS, CITY)
        assert [card.program.public_id for card in cards] == [program.public_id]
        assert LoyaltyService.memberships(WALLET_PASS, "calgary") == []


# ═══════════════════════════════════════════════════════════════════
# Reporting
# ═══════════════════════════════════════════════════════════════════


class TestMemberRows:
    def test_profile_and_anonymous(self, program, app_user):
        LoyaltyMembership.objects.create(program=program, user_wallet_pass_id=WALLET_PASS)
        LoyaltyMembership.objects.create(program=program, user_wallet_pass_id="wp_nobody_9999")

        rows = {row.masked_pass_id: row for row in reporting.member_rows(program)}
        assert rows["...0001"].name == "Sam Taylor"
        assert rows["...0001"].email == "sam@example.com"
        assert rows["...9999"].name == "Anonymous"

    def test_status_filter(self, program):
        LoyaltyMembership.objects.create(program=program, user_wallet_pass_id="wp_a")
        LoyaltyMembership.objects.create(
            program=program, user_wallet_pass_id="wp_b", status=MembershipStatus.INACTIVE
        )
        rows = reporting.member_rows(program, status=MembershipStatus.INACTIVE)
        assert [row.masked_pass_id for row in rows] == ["...wp_b"]

    def test_csv(self, program, app_user):
        LoyaltyMembership.objects.create(program=program, user_wallet_pass_id=WALLET_PASS)
        output = reporting.members_csv(reporting.member_rows(program)).splitlines()
        assert output[0].split(",") == reporting.CSV_HEADER
        assert output[1].split(",")[4:] == ["0", "0", "0", "active"]


class TestBusinessSummary:
    def test_summary(self, program, loyalty_config):
        loyalty_config(DEFAULT_AVG_REWARD_VALUE=4.5)
        visit(program, 3, "wp_a")
        visit(program, 2, "wp_b")
        visit(program, 1, "wp_c")
        member = LoyaltyMembership.objects.get(user_wallet_pass_id="wp_a")
        LoyaltyService.redeem(member.pk, "wp_a", CITY)

        summary = reporting.business_summary(program)

        assert summary.active_members == 3
        assert summary.visits_this_month == 6
        assert summary.redemptions_this_month == 1
        assert summary.estimated_value == 4.5
        assert summary.avg_visits_per_member == 2.0
        # wp_b is 1 short, wp_c is 2 short, wp_a is back at 0
        assert summary.members_near_reward == 2
        assert summary.flagged_redemptions == 0

    def test_month_boundary_uses_program_timezone(self, program, business):
        program.timezone = "America/Edmonton"
        program.save()
        # 03:00 UTC on 1 April is still 31 March in Edmonton
        EarnEvent.objects.create(
            business=business,
            user_wallet_pass_id="wp_a",
            earned_at=datetime(2026, 4, 1, 3, 0, tzinfo=ZoneInfo("UTC")),
        )
        now = datetime(2026, 4, 10, 12, 0, tzinfo=ZoneInfo("UTC"))
        assert reporting.business_summary(program, now).visits_this_month == 0

    def test_empty(self, program):
        summary = reporting.business_summary(program)
        assert summary.active_members == 0
        assert summary.avg_visits_per_member == 0.0


# ═══════════════════════════════════════════════════════════════════
# Management command
# ═══════════════════════════════════════════════════════════════════


class TestExpireCommand:
    def test_expires_finished_windows(self, membership):
        now = timezone.now()
        common = {
            "membership": membership,
            "business": membership.program.business,
            "user_wallet_pass_id": membership.user_wallet_pass_id,
            "reward_description": "Free coffee",
            "stamps_deducted": 3,
        }
        old = Redemption.objects.create(
            consumed_at=now - timedelta(minutes=30),
            display_expires_at=now - timedelta(minutes=20),
            **common,
        )
        fresh = Redemption.objects.create(
            consumed_at=now, display_expires_at=now + timedelta(minutes=10), **common
        )

        out = StringIO()
        call_command("loyalty_expire_redemptions", stdout=out)

        assert "Expired 1 redemption display windows." in out.getvalue()
        old.refresh_from_db()
        fresh.refresh_from_db()
        assert old.status == RedemptionStatus.EXPIRED_DISPLAY
        assert fresh.status == RedemptionStatus.CONSUMED

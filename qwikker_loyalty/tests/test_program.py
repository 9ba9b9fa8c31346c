"""
Program service tests: setup, lifecycle and the pass request queue.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from qwikker_loyalty.exceptions import LoyaltyError
from qwikker_loyalty.gates import GateError
from qwikker_loyalty.models import (
    BusinessTier,
    LoyaltyMembership,
    LoyaltyProgram,
    PassRequest,
    ProgramStatus,
    ProgramType,
    RequestStatus,
    RequestType,
)
from qwikker_loyalty.services import ledger
from qwikker_loyalty.services import program as programs
from qwikker_loyalty.signals import program_status_changed
from qwikker_loyalty.tests.conftest import CITY, WALLET_PASS
from qwikker_loyalty.tests.fakes import FakeNotifier

pytestmark = pytest.mark.django_db

CREDENTIALS = {
    "walletpush_template_id": "tpl_new",
    "walletpush_api_key": "key_new",
    "walletpush_pass_type_id": "pass.com.qwikker.new",
}


@pytest.fixture
def draft(business):
    program, _ = programs.upsert_program(
        business,
        {
            "program_name": "Bean Club",
            "reward_threshold": 8,
            "reward_description": "Free flat white",
            "min_gap_minutes": 60,
        },
    )
    return program


# ═══════════════════════════════════════════════════════════════════
# Setup
# ═══════════════════════════════════════════════════════════════════


class TestUpsert:
    def test_create(self, business):
        business.logo = "https://cdn.example/bean.png"
        business.save()

        program, created = programs.upsert_program(
            business, {"reward_threshold": 6, "reward_description": "Free muffin"}
        )

        assert created
        assert program.status == ProgramStatus.DRAFT
        assert program.city == CITY
        assert len(program.public_id) == 10
        assert len(program.counter_qr_token) == 32
        assert program.timezone == "Europe/London"
        assert program.logo_url == "https://cdn.example/bean.png"

    def test_second_call_updates(self, draft, business):
        program, created = programs.upsert_program(business, {"reward_threshold": 12})
        assert not created
        assert program.pk == draft.pk
        assert program.reward_threshold == 12

    def test_unknown_keys_ignored(self, business):
        program, _ = programs.upsert_program(business, {"status": "active", "reward_threshold": 5})
        assert program.status == ProgramStatus.DRAFT

    def test_none_clears_text(self, draft, business):
        program, _ = programs.upsert_program(business, {"earn_instructions": None})
        assert program.earn_instructions == ""

    def test_requires_spotlight(self, business):
        business.tier = BusinessTier.FEATURED
        business.save()
        with pytest.raises(LoyaltyError, match="TIER_REQUIRED"):
            programs.upsert_program(business, {})

    @pytest.mark.parametrize(
        "data,field",
        [
            ({"reward_threshold": 0}, "reward_threshold"),
            ({"primary_color": "green"}, "primary_color"),
            ({"timezone": "Mars/Olympus"}, "timezone"),
            ({"max_earns_per_day": 0}, "max_earns_per_day"),
        ],
    )
    def test_invalid_values(self, business, data, field):
        with pytest.raises(LoyaltyError) as exc_info:
            programs.upsert_program(business, data)
        assert exc_info.value.code == "INVALID_PROGRAM"
        assert field in exc_info.value.data["errors"]

    def test_live_program_only_takes_safe_fields(self, program, business):
        updated, _ = programs.upsert_program(
            business,
            {"reward_threshold": 99, "earn_instructions": "Scan the QR at the till"},
        )
        assert updated.reward_threshold == 3
        assert updated.earn_instructions == "Scan the QR at the till"

    def test_ended_program_rejected(self, program, business):
        program.status = ProgramStatus.ENDED
        program.save()
        with pytest.raises(LoyaltyError, match="PROGRAM_ENDED"):
            programs.upsert_program(business, {"earn_instructions": "x"})

    def test_update_program(self, program, business):
        updated = programs.update_program(business, {"background_color": "#112233", "type": "points"})
        assert updated.background_color == "#112233"
        assert updated.type == "stamps"


# ═══════════════════════════════════════════════════════════════════
# Lifecycle
# ═══════════════════════════════════════════════════════════════════


class TestLifecycle:
    def test_pause_and_resume(self, program, business):
        assert programs.pause_program(business).status == ProgramStatus.PAUSED
        assert programs.resume_program(business).status == ProgramStatus.ACTIVE

    def test_cannot_pause_draft(self, draft, business):
        with pytest.raises(GateError, match="L1_ProgramTransition"):
            programs.pause_program(business)

    def test_ended_is_terminal(self, program, business):
        """Nothing can move a program out of ended."""
        programs.end_program(business)

        for move in (programs.resume_program, programs.pause_program, programs.end_program):
            with pytest.raises(GateError):
                move(business)
        program.refresh_from_db()
        assert program.status == ProgramStatus.ENDED

    def test_ended_blocks_admin_toggle(self, program, business):
        programs.end_program(business)
        with pytest.raises(GateError):
            programs.admin_set_status(program.pk, "active", CITY)

    def test_end_rejects_pending_edit(self, program, business, staff_user):
        pass_request = programs.request_edit(business, {"reward_description": "Free cake"})
        programs.end_program(business)

        pass_request.refresh_from_db()
        assert pass_request.status == RequestStatus.REJECTED
        assert pass_request.rejection_reason == "Program ended"
        with pytest.raises(LoyaltyError, match="REQUEST_NOT_FOUND"):
            programs.activate_request(pass_request.pk, CREDENTIALS, staff_user, CITY)
        program.refresh_from_db()
        assert program.reward_description == "Free coffee"

    def test_ended_keeps_memberships(self, program, membership, business):
        programs.end_program(business)
        assert LoyaltyMembership.objects.filter(pk=membership.pk).exists()

    def test_status_signal(self, program, business):
        received = []

        def handler(sender, program, previous, current, **kwargs):
            received.append((previous, current))

        program_status_changed.connect(handler)
        try:
            programs.pause_program(business)
        finally:
            program_status_changed.disconnect(handler)
        assert received == [("active", "paused")]


class TestRotateToken:
    def test_rotate_keeps_previous(self, program, business):
        rotated = programs.rotate_counter_token(business)

        assert rotated.counter_qr_token != "TOKEN-CURRENT"
        assert rotated.previous_counter_qr_token == "TOKEN-CURRENT"
        assert timezone.now() - rotated.counter_qr_token_rotated_at < timedelta(seconds=5)

    def test_no_program(self, business):
        with pytest.raises(LoyaltyError, match="PROGRAM_NOT_FOUND"):
            programs.rotate_counter_token(business)


# ═══════════════════════════════════════════════════════════════════
# Pass requests
# ═══════════════════════════════════════════════════════════════════


class TestSubmitRequest:
    def test_submit_snapshots_design(self, draft, business):
        pass_request = programs.submit_request(business)

        draft.refresh_from_db()
        assert draft.status == ProgramStatus.SUBMITTED
        assert pass_request.request_type == RequestType.NEW
        assert pass_request.design_spec["reward_threshold"] == 8
        assert pass_request.design_spec["business_name"] == "Bean There"

    def test_submit_notifies_admins(self, draft, business):
        programs.submit_request(business)
        notification = FakeNotifier.sent[0]
        assert notification.city == CITY
        assert notification.event_type == "new_request"
        assert notification.program_id == draft.public_id
        assert "Free flat white" in notification.message

    def test_submit_twice(self, draft, business):
        programs.submit_request(business)
        with pytest.raises(LoyaltyError) as exc_info:
            programs.submit_request(business)
        assert exc_info.value.code == "PROGRAM_NOT_DRAFT"
        assert exc_info.value.message == "Program is already submitted"

    def test_incomplete(self, business):
        programs.upsert_program(business, {"reward_threshold": 5})
        with pytest.raises(LoyaltyError, match="INCOMPLETE_PROGRAM"):
            programs.submit_request(business)


class TestRequestEdit:
    def test_edit_request(self, program, business):
        pass_request = programs.request_edit(
            business,
            {"reward_description": "Free cortado", "unknown": "x", "stamp_label": None},
            "New menu",
        )

        assert pass_request.request_type == RequestType.EDIT
        assert pass_request.changed_fields == ["reward_description"]
        assert pass_request.design_spec["reward_description"] == "Free cortado"
        assert pass_request.design_spec["_change_description"] == "New menu"

        program.refresh_from_db()
        assert program.reward_description == "Free coffee"

        notification = FakeNotifier.sent[-1]
        assert notification.event_type == "edit_request"
        assert "reward_description" in notification.message

    def test_one_pending_at_a_time(self, program, business):
        programs.request_edit(business, {"reward_threshold": 5})
        with pytest.raises(LoyaltyError, match="REQUEST_PENDING"):
            programs.request_edit(business, {"reward_threshold": 6})

    def test_no_changes(self, program, business):
        with pytest.raises(LoyaltyError, match="NO_CHANGES"):
            programs.request_edit(business, {"nope": 1})

    def test_invalid_change(self, program, business):
        with pytest.raises(LoyaltyError, match="INVALID_PROGRAM"):
            programs.request_edit(business, {"primary_color": "teal"})

    def test_draft_has_no_live_program(self, draft, business):
        with pytest.raises(LoyaltyError, match="NO_LIVE_PROGRAM"):
            programs.request_edit(business, {"reward_threshold": 5})


class TestReview:
    def test_activate_new(self, draft, business, staff_user):
        pass_request = programs.submit_request(business)

        issued = programs.activate_request(pass_request.pk, CREDENTIALS, staff_user, CITY)

        draft.refresh_from_db()
        assert issued.status == RequestStatus.ISSUED
        assert issued.reviewed_by == staff_user
        assert draft.status == ProgramStatus.ACTIVE
        assert draft.walletpush_api_key == "key_new"
        assert draft.has_wallet_credentials

    def test_activate_edit_applies_changes(self, program, business, staff_user):
        pass_request = programs.request_edit(business, {"reward_description": "Free cortado"})
        programs.activate_request(pass_request.pk, CREDENTIALS, staff_user, CITY)

        program.refresh_from_db()
        assert program.reward_description == "Free cortado"
        assert program.status == ProgramStatus.ACTIVE

    def test_type_switch_carries_balances(self, program, membership, business, staff_user):
        for _ in range(2):
            ledger.earn(program.public_id, "TOKEN-CURRENT", WALLET_PASS, CITY)

        pass_request = programs.request_edit(business, {"type": "points"})
        programs.activate_request(pass_request.pk, CREDENTIALS, staff_user, CITY)

        program.refresh_from_db()
        membership.refresh_from_db()
        assert program.type == ProgramType.POINTS
        assert membership.points_balance == 2
        assert membership.stamps_balance == 0
        assert membership.balance == max(membership.ledger.values_list("balance_after", flat=True))

    def test_edit_refused_once_program_ended(self, program, business, staff_user):
        pass_request = programs.request_edit(business, {"reward_description": "Free cake"})
        LoyaltyProgram.objects.filter(pk=program.pk).update(status=ProgramStatus.ENDED)

        with pytest.raises(LoyaltyError, match="PROGRAM_ENDED"):
            programs.activate_request(pass_request.pk, CREDENTIALS, staff_user, CITY)

        program.refresh_from_db()
        pass_request.refresh_from_db()
        assert program.reward_description == "Free coffee"
        assert pass_request.status == RequestStatus.SUBMITTED

    def test_missing_credentials(self, draft, business, staff_user):
        pass_request = programs.submit_request(business)
        with pytest.raises(LoyaltyError, match="MISSING_CREDENTIALS"):
            programs.activate_request(
                pass_request.pk, {**CREDENTIALS, "walletpush_api_key": "  "}, staff_user, CITY
            )

    def test_other_city_not_found(self, draft, business, staff_user):
        pass_request = programs.submit_request(business)
        with pytest.raises(LoyaltyError, match="REQUEST_NOT_FOUND"):
            programs.activate_request(pass_request.pk, CREDENTIALS, staff_user, "calgary")

    def test_reject_returns_to_draft(self, draft, business, staff_user):
        pass_request = programs.submit_request(business)

        rejected = programs.reject_request(pass_request.pk, "Logo too small", staff_user, CITY)

        draft.refresh_from_db()
        assert rejected.status == RequestStatus.REJECTED
        assert rejected.rejection_reason == "Logo too small"
        assert draft.status == ProgramStatus.DRAFT

    def test_reject_edit_leaves_program(self, program, business, staff_user):
        pass_request = programs.request_edit(business, {"reward_threshold": 5})
        programs.reject_request(pass_request.pk, "", staff_user, CITY)
        program.refresh_from_db()
        assert program.status == ProgramStatus.ACTIVE
        assert program.reward_threshold == 3

    def test_reviewed_request_cannot_be_reviewed_again(self, draft, business, staff_user):
        pass_request = programs.submit_request(business)
        programs.reject_request(pass_request.pk, "", staff_user, CITY)
        with pytest.raises(LoyaltyError, match="REQUEST_NOT_FOUND"):
            programs.activate_request(pass_request.pk, CREDENTIALS, staff_user, CITY)

    def test_queue_and_live_lists(self, draft, business, program_with_member):
        programs.submit_request(business)

        queue = programs.pending_requests(CITY)
        assert [r.business_id for r in queue] == [business.pk]
        assert PassRequest.objects.count() == 1

        live = programs.live_programs(CITY)
        assert [p.public_id for p in live] == [program_with_member.public_id]
        assert live[0].member_count == 1


class TestAdminSetStatus:
    def test_toggle(self, program):
        assert programs.admin_set_status(program.pk, "paused", CITY).status == ProgramStatus.PAUSED
        assert programs.admin_set_status(program.pk, "active", CITY).status == ProgramStatus.ACTIVE

    @pytest.mark.parametrize("status", ["ended", "draft", "bogus"])
    def test_only_active_or_paused(self, program, status):
        with pytest.raises(LoyaltyError, match="INVALID_STATUS"):
            programs.admin_set_status(program.pk, status, CITY)

    def test_other_city(self, program):
        with pytest.raises(LoyaltyError, match="PROGRAM_NOT_FOUND"):
            programs.admin_set_status(program.pk, "paused", "calgary")


@pytest.fixture
def program_with_member(points_program):
    LoyaltyMembership.objects.create(program=points_program, user_wallet_pass_id="wp_grill")
    return points_program

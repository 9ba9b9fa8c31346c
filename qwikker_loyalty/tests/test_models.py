"""
Model tests: ledger immutability, balance constraints and helpers.
"""

from datetime import timedelta

import pytest
from django.contrib import admin
from django.db import IntegrityError, transaction
from django.utils import timezone

from qwikker_loyalty.exceptions import LoyaltyError
from qwikker_loyalty.models import (
    EntryType,
    LedgerEntry,
    LoyaltyMembership,
    LoyaltyProgram,
    ProgramStatus,
    ProgramType,
    Redemption,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def entry(membership):
    return LedgerEntry.objects.create(
        membership=membership,
        entry_type=EntryType.EARN,
        amount=1,
        balance_after=1,
        description="+1 Stamps",
    )


class TestLedgerImmutability:
    """Ledger rows are append-only."""

    def test_save_existing_refused(self, entry):
        entry.amount = 50
        with pytest.raises(LoyaltyError, match="LEDGER_IMMUTABLE"):
            entry.save()

    def test_delete_refused(self, entry):
        with pytest.raises(LoyaltyError, match="LEDGER_IMMUTABLE"):
            entry.delete()
        assert LedgerEntry.objects.filter(pk=entry.pk).exists()

    def test_bulk_update_refused(self, entry):
        with pytest.raises(LoyaltyError):
            LedgerEntry.objects.filter(pk=entry.pk).update(amount=50)

    def test_bulk_delete_refused(self, entry):
        with pytest.raises(LoyaltyError):
            LedgerEntry.objects.all().delete()

    def test_idempotency_key_unique_per_membership(self, membership):
        LedgerEntry.objects.create(
            membership=membership, entry_type=EntryType.EARN, amount=1, balance_after=1, idempotency_key="k"
        )
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntry.objects.create(
                membership=membership, entry_type=EntryType.EARN, amount=1, balance_after=2, idempotency_key="k"
            )

    def test_blank_keys_not_unique(self, membership):
        for balance in (1, 2):
            LedgerEntry.objects.create(
                membership=membership, entry_type=EntryType.EARN, amount=1, balance_after=balance
            )
        assert membership.ledger.count() == 2

    def test_str(self, entry):
        assert str(entry) == "+1 -> 1 (earn)"


class TestMembership:
    def test_balance_cannot_go_negative(self, membership):
        with pytest.raises(IntegrityError), transaction.atomic():
            LoyaltyMembership.objects.filter(pk=membership.pk).update(stamps_balance=-1)

    def test_one_membership_per_program_and_pass(self, membership, program):
        with pytest.raises(IntegrityError), transaction.atomic():
            LoyaltyMembership.objects.create(program=program, user_wallet_pass_id=membership.user_wallet_pass_id)

    def test_balance_follows_program_type(self, membership, program):
        membership.stamps_balance = 4
        membership.points_balance = 90
        assert membership.balance == 4

        program.type = ProgramType.POINTS
        assert membership.balance == 90

    def test_masked_pass_id(self, membership):
        assert membership.masked_pass_id == "...0001"


class TestProgram:
    def test_design_spec(self, program):
        snapshot = program.design_spec()
        assert snapshot["reward_threshold"] == 3
        assert snapshot["business_name"] == "Bean There"
        assert snapshot["business_city"] == "bournemouth"
        assert "walletpush_api_key" not in snapshot
        assert "counter_qr_token" not in snapshot

    def test_display_name_falls_back_to_business(self, program):
        assert program.display_name == "Bean Club"
        program.program_name = ""
        assert "Bean There" in program.display_name

    def test_credentials(self, program, points_program):
        assert program.has_wallet_credentials
        assert not points_program.has_wallet_credentials

    def test_balance_field(self, program, points_program):
        assert program.balance_field == "stamps_balance"
        assert points_program.balance_field == "points_balance"

    def test_type_locked_in_admin_once_live(self, program):
        model_admin = admin.site.get_model_admin(LoyaltyProgram)
        assert "type" in model_admin.get_readonly_fields(None, program)

        program.status = ProgramStatus.DRAFT
        assert "type" not in model_admin.get_readonly_fields(None, program)
        assert "type" not in model_admin.get_readonly_fields(None)


class TestRedemption:
    def test_display_window(self, membership):
        now = timezone.now()
        redemption = Redemption.objects.create(
            membership=membership,
            business=membership.program.business,
            user_wallet_pass_id=membership.user_wallet_pass_id,
            reward_description="Free coffee",
            consumed_at=now,
            display_expires_at=now + timedelta(minutes=10),
            stamps_deducted=3,
        )
        assert redemption.is_display_active(now)
        assert redemption.time_remaining_ms(now) == 600_000
        assert redemption.time_remaining_ms(now + timedelta(minutes=11)) == 0
        assert not redemption.is_display_active(now + timedelta(minutes=10))

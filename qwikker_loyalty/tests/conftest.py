"""Pytest fixtures for Qwikker Loyalty tests."""

import pytest
from django.contrib.auth import get_user_model

from qwikker_loyalty.models import (
    AppUser,
    Business,
    BusinessTier,
    LoyaltyMembership,
    LoyaltyProgram,
    ProgramStatus,
    ProgramType,
)
from qwikker_loyalty.tests.fakes import FakeNotifier, FakeWalletBackend

CITY = "bournemouth"
WALLET_PASS = "wp_member_0001"


@pytest.fixture(autouse=True)
def reset_fakes():
    FakeWalletBackend.reset()
    FakeNotifier.reset()
    yield


@pytest.fixture
def loyalty_config(settings):
    """Override QWIKKER_LOYALTY keys for one test."""

    def apply(**overrides):
        settings.QWIKKER_LOYALTY = {**settings.QWIKKER_LOYALTY, **overrides}

    return apply


@pytest.fixture
def owner(db):
    """Business owner login."""
    return get_user_model().objects.create_user(username="owner", password="pw")


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(username="admin", password="pw", is_staff=True)


@pytest.fixture
def business(owner):
    """Spotlight business in Bournemouth."""
    return Business.objects.create(
        user=owner,
        business_name="Bean There",
        slug="bean-there",
        city=CITY,
        tier=BusinessTier.SPOTLIGHT,
    )


@pytest.fixture
def program(business):
    """Active stamp card: 3 stamps for a free coffee, no gap, 10 earns per day."""
    return LoyaltyProgram.objects.create(
        business=business,
        city=CITY,
        public_id="BEAN000001",
        program_name="Bean Club",
        type=ProgramType.STAMPS,
        reward_threshold=3,
        reward_description="Free coffee",
        max_earns_per_day=10,
        min_gap_minutes=0,
        status=ProgramStatus.ACTIVE,
        counter_qr_token="TOKEN-CURRENT",
        walletpush_template_id="tpl_1",
        walletpush_api_key="key_1",
        walletpush_pass_type_id="pass.com.qwikker",
    )


@pytest.fixture
def points_program(db):
    other_owner = get_user_model().objects.create_user(username="grill", password="pw")
    grill = Business.objects.create(
        user=other_owner,
        business_name="Grill House",
        slug="grill-house",
        city=CITY,
        tier=BusinessTier.SPOTLIGHT,
    )
    return LoyaltyProgram.objects.create(
        business=grill,
        city=CITY,
        public_id="GRILL00001",
        type=ProgramType.POINTS,
        reward_threshold=100,
        reward_description="Free burger",
        stamp_label="Points",
        max_earns_per_day=10,
        min_gap_minutes=0,
        status=ProgramStatus.ACTIVE,
        counter_qr_token="GRILL-TOKEN",
    )


@pytest.fixture
def app_user(db):
    return AppUser.objects.create(
        wallet_pass_id=WALLET_PASS,
        first_name="Sam",
        last_name="Taylor",
        email="sam@example.com",
        city=CITY,
    )


@pytest.fixture
def membership(program):
    return LoyaltyMembership.objects.create(
        program=program,
        user_wallet_pass_id=WALLET_PASS,
        walletpush_serial="SER-EXISTING",
    )

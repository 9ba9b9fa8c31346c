"""Qwikker Loyalty models."""

from qwikker_loyalty.models.business import Business, BusinessTier
from qwikker_loyalty.models.app_user import AppUser
from qwikker_loyalty.models.program import (
    DESIGN_SPEC_FIELDS,
    LIVE_EDITABLE_FIELDS,
    LoyaltyProgram,
    ProgramType,
    ProgramStatus,
    EarnMode,
)
from qwikker_loyalty.models.membership import LoyaltyMembership, MembershipStatus
from qwikker_loyalty.models.redemption import Redemption, RedemptionStatus
from qwikker_loyalty.models.ledger import LedgerEntry, EntryType
from qwikker_loyalty.models.earn_event import EarnEvent, EarnMethod
from qwikker_loyalty.models.pass_request import PassRequest, RequestStatus, RequestType

__all__ = [
    # Tenancy and identities
    "Business",
    "BusinessTier",
    "AppUser",
    # Program
    "LoyaltyProgram",
    "ProgramType",
    "ProgramStatus",
    "EarnMode",
    "DESIGN_SPEC_FIELDS",
    "LIVE_EDITABLE_FIELDS",
    # Ledger
    "LoyaltyMembership",
    "MembershipStatus",
    "LedgerEntry",
    "EntryType",
    "EarnEvent",
    "EarnMethod",
    "Redemption",
    "RedemptionStatus",
    # Provisioning
    "PassRequest",
    "RequestStatus",
    "RequestType",
]

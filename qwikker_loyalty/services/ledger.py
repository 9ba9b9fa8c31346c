"""Ledger service - join, earn and redeem.

Every balance change happens inside transaction.atomic() with the membership
row locked (select_for_update), and appends exactly one LedgerEntry.
Signals are sent once the transaction has committed.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from qwikker_loyalty.conf import loyalty_settings
from qwikker_loyalty.exceptions import LoyaltyError
from qwikker_loyalty.gates import GateError, Gates
from qwikker_loyalty.models import (
    AppUser,
    EarnEvent,
    EntryType,
    LedgerEntry,
    LoyaltyMembership,
    LoyaltyProgram,
    ProgramStatus,
    ProgramType,
    Redemption,
    RedemptionStatus,
)
from qwikker_loyalty.protocols import IssuedPass, PassHolder
from qwikker_loyalty.services.integrations import get_wallet_backend
from qwikker_loyalty.signals import membership_joined, reward_redeemed, stamp_earned
from qwikker_loyalty.utils import hash_ip, local_date, pass_field_values, proximity_message

logger = logging.getLogger(__name__)


@dataclass
class EarnResult:
    """Outcome of an earn attempt that passed the token and abuse checks."""

    success: bool
    new_balance: int
    threshold: int
    reward_unlocked: bool = False
    proximity_message: str | None = None
    next_eligible_at: datetime | None = None
    reason: str | None = None
    error: str | None = None
    replayed: bool = False


@dataclass
class ConsumeResult:
    """Outcome of a successful redemption."""

    redemption_id: str
    reward_description: str
    consumed_at: datetime
    display_expires_at: datetime
    new_balance: int
    threshold: int
    replayed: bool = False


@dataclass
class JoinResult:
    membership: LoyaltyMembership
    issued_pass: IssuedPass | None = None
    already_member: bool = False


# =============================================================================
# Lookups
# =============================================================================


def get_program(public_id: str, city: str) -> LoyaltyProgram:
    """
    Get a program by its public id within a city.

    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND
    """
    try:
        return LoyaltyProgram.objects.select_related("business").get(
            public_id=public_id, city=city
        )
    except LoyaltyProgram.DoesNotExist:
        raise LoyaltyError("PROGRAM_NOT_FOUND", public_id=public_id)


def get_membership(membership_id, wallet_pass_id: str) -> LoyaltyMembership:
    """
    Get a membership owned by a wallet pass.

    Raises:
        LoyaltyError: MEMBERSHIP_NOT_FOUND
    """
    try:
        return LoyaltyMembership.objects.select_related("program__business").get(
            pk=membership_id, user_wallet_pass_id=wallet_pass_id
        )
    except (LoyaltyMembership.DoesNotExist, ValueError, TypeError):
        raise LoyaltyError("MEMBERSHIP_NOT_FOUND")


def _lock_membership(program: LoyaltyProgram, wallet_pass_id: str) -> LoyaltyMembership:
    """Get or create the membership, then lock its row. Call inside atomic()."""
    # get_or_create re-fetches when a concurrent insert wins the unique constraint
    LoyaltyMembership.objects.get_or_create(program=program, user_wallet_pass_id=wallet_pass_id)
    membership = LoyaltyMembership.objects.select_for_update().get(
        program=program, user_wallet_pass_id=wallet_pass_id
    )
    membership.program = program
    return membership


def _replayed_entry(membership: LoyaltyMembership, key: str, entry_type: str) -> LedgerEntry | None:
    if not key:
        return None
    entry = membership.ledger.select_related("redemption").filter(idempotency_key=key).first()
    if entry is not None and entry.entry_type != entry_type:
        raise LoyaltyError("IDEMPOTENCY_KEY_REUSED", idempotency_key=key)
    return entry


def _recorded_entry(program, wallet_pass_id: str, key: str, entry_type: str) -> LedgerEntry | None:
    """Unlocked replay lookup; the locked re-check still guards concurrent retries."""
    if not key:
        return None
    membership = LoyaltyMembership.objects.filter(
        program=program, user_wallet_pass_id=wallet_pass_id
    ).first()
    if membership is None:
        return None
    return _replayed_entry(membership, key, entry_type)


# =============================================================================
# Join
# =============================================================================


def join(
    public_id: str,
    wallet_pass_id: str,
    city: str,
    first_name: str = "",
    last_name: str = "",
    email: str = "",
    date_of_birth: date | None = None,
) -> JoinResult:
    """
    Enroll a wallet pass holder in a program.

    Open for active programs and for submitted ones (so the business can
    test its own card before it goes live).

    Args:
        public_id: Program public id (from the join link)
        wallet_pass_id: The member's Qwikker wallet pass id
        city: Tenant city
        first_name, last_name, email: Printed on the wallet pass
        date_of_birth: Stored on the AppUser only if it has none yet

    Returns:
        JoinResult with the membership and the issued pass (if any)

    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND, ALREADY_MEMBER
    """
    program = (
        LoyaltyProgram.objects.select_related("business")
        .filter(
            public_id=public_id,
            city=city,
            status__in=[ProgramStatus.ACTIVE, ProgramStatus.SUBMITTED],
        )
        .first()
    )
    if program is None:
        raise LoyaltyError("PROGRAM_NOT_FOUND", public_id=public_id)

    existing = LoyaltyMembership.objects.filter(
        program=program, user_wallet_pass_id=wallet_pass_id
    ).first()
    if existing is not None:
        raise LoyaltyError("ALREADY_MEMBER", membership_id=existing.pk)

    try:
        with transaction.atomic():
            membership = LoyaltyMembership.objects.create(
                program=program, user_wallet_pass_id=wallet_pass_id
            )
    except IntegrityError:
        membership = LoyaltyMembership.objects.get(
            program=program, user_wallet_pass_id=wallet_pass_id
        )
        return JoinResult(membership=membership, already_member=True)

    if date_of_birth:
        AppUser.objects.filter(
            wallet_pass_id=wallet_pass_id, date_of_birth__isnull=True
        ).update(date_of_birth=date_of_birth)

    issued = _issue_pass(program, membership, first_name, last_name, email)

    logger.info("Wallet pass %s joined program %s", membership.masked_pass_id, program.public_id)
    membership_joined.send(sender=LoyaltyMembership, membership=membership)
    return JoinResult(membership=membership, issued_pass=issued)


def _issue_pass(program, membership, first_name, last_name, email) -> IssuedPass | None:
    backend = get_wallet_backend()
    if backend is None or not program.has_wallet_credentials:
        return None

    holder = PassHolder(
        first_name=first_name or "Qwikker",
        last_name=last_name or "Member",
        email=email or f"{membership.user_wallet_pass_id}@pass.{loyalty_settings.BASE_DOMAIN}",
    )
    issued = backend.issue_pass(program, holder, pass_field_values(program, 0))
    if issued is None:
        logger.warning("Pass issue failed for membership %s", membership.pk)
        return None

    membership.walletpush_serial = issued.serial
    membership.save(update_fields=["walletpush_serial"])
    return issued


# =============================================================================
# Earn
# =============================================================================


def earn(
    public_id: str,
    token: str,
    wallet_pass_id: str,
    city: str,
    ip: str = "",
    amount: int = 1,
    idempotency_key: str = "",
) -> EarnResult:
    """
    Record a visit (stamp) or points from the till QR.

    Token, rate limit and IP velocity failures raise GateError. A member on
    cooldown (daily cap or minimum gap) gets EarnResult(success=False,
    reason="cooldown") instead, with the time they may earn again.

    Args:
        public_id: Program public id
        token: Counter QR token scanned at the till
        wallet_pass_id: The member's wallet pass id
        city: Tenant city
        ip: Client IP (hashed before storage)
        amount: Points to add (points programs only; stamps always add 1)
        idempotency_key: Repeated keys replay the first result

    Returns:
        EarnResult

    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND, PROGRAM_NOT_ACTIVE, INVALID_AMOUNT
        GateError: L2_CounterToken, L5_EarnRateLimit, L6_IpVelocity
    """
    now = timezone.now()
    program = get_program(public_id, city)
    if program.status != ProgramStatus.ACTIVE:
        raise LoyaltyError("PROGRAM_NOT_ACTIVE", status=program.status)

    # Retries of a recorded earn skip the token and abuse gates.
    entry = _recorded_entry(program, wallet_pass_id, idempotency_key, EntryType.EARN)
    if entry is not None:
        return _earn_result(program, entry.balance_after, replayed=True)

    delta = _earn_delta(program, amount)

    Gates.counter_token(program, token, now)

    ip_hash = hash_ip(ip or "unknown")
    Gates.earn_rate_limit(wallet_pass_id, ip_hash, now)
    try:
        Gates.ip_velocity(program.business_id, ip_hash, wallet_pass_id, now)
    except GateError as e:
        EarnEvent.objects.create(
            business_id=program.business_id,
            user_wallet_pass_id=wallet_pass_id,
            earned_at=now,
            ip_hash=ip_hash,
            valid=False,
            reason_if_invalid="ip_velocity",
        )
        logger.warning(
            "IP velocity exceeded at business %s (%s passes)",
            program.business_id,
            e.details.get("distinct_passes"),
        )
        raise

    with transaction.atomic():
        membership = _lock_membership(program, wallet_pass_id)

        entry = _replayed_entry(membership, idempotency_key, EntryType.EARN)
        if entry is not None:
            return _earn_result(program, entry.balance_after, replayed=True)

        try:
            Gates.earn_eligibility(membership, program, now)
        except GateError as e:
            EarnEvent.objects.create(
                membership=membership,
                business_id=program.business_id,
                user_wallet_pass_id=wallet_pass_id,
                earned_at=now,
                ip_hash=ip_hash,
                valid=False,
                reason_if_invalid=e.details["reason"],
            )
            rejected = EarnResult(
                success=False,
                new_balance=membership.balance,
                threshold=program.reward_threshold,
                next_eligible_at=e.details["next_eligible_at"],
                reason="cooldown",
                error=e.message,
            )
        else:
            rejected = None
            _apply_earn(membership, program, delta, now, ip_hash, idempotency_key)

    if rejected is not None:
        logger.info("Earn on cooldown for %s: %s", membership.masked_pass_id, rejected.error)
        return rejected

    result = _earn_result(program, membership.balance, now=now)
    stamp_earned.send(
        sender=LoyaltyMembership,
        membership=membership,
        program=program,
        reward_unlocked=result.reward_unlocked,
    )
    return result


def _earn_delta(program: LoyaltyProgram, amount) -> int:
    if program.type != ProgramType.POINTS:
        return 1
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise LoyaltyError("INVALID_AMOUNT", amount=amount)
    return amount


def _apply_earn(membership, program, delta, now, ip_hash, idempotency_key) -> None:
    today = local_date(now, program.timezone)
    if membership.earned_today_date == today:
        membership.earned_today_count += 1
    else:
        membership.earned_today_count = 1
        membership.earned_today_date = today

    field = program.balance_field
    setattr(membership, field, getattr(membership, field) + delta)
    membership.total_earned += delta
    membership.last_earned_at = now
    membership.last_active_at = now
    membership.save(
        update_fields=[
            field,
            "total_earned",
            "last_earned_at",
            "last_active_at",
            "earned_today_count",
            "earned_today_date",
        ]
    )

    EarnEvent.objects.create(
        membership=membership,
        business_id=program.business_id,
        user_wallet_pass_id=membership.user_wallet_pass_id,
        earned_at=now,
        ip_hash=ip_hash,
    )
    LedgerEntry.objects.create(
        membership=membership,
        entry_type=EntryType.EARN,
        amount=delta,
        balance_after=getattr(membership, field),
        description=f"+{delta} {program.stamp_label}",
        idempotency_key=idempotency_key,
    )


def _earn_result(program, balance: int, now: datetime | None = None, replayed: bool = False):
    unlocked = balance >= program.reward_threshold
    next_eligible_at = None
    if now is not None and program.min_gap_minutes > 0:
        next_eligible_at = now + timedelta(minutes=program.min_gap_minutes)
    return EarnResult(
        success=True,
        new_balance=balance,
        threshold=program.reward_threshold,
        reward_unlocked=unlocked,
        proximity_message=None if unlocked else proximity_message(balance, program.reward_threshold),
        next_eligible_at=next_eligible_at,
        replayed=replayed,
    )


# =============================================================================
# Redeem
# =============================================================================


def redeem(
    membership_id,
    wallet_pass_id: str,
    city: str,
    idempotency_key: str = "",
) -> ConsumeResult:
    """
    Consume one reward: deduct the threshold and open the display window.

    Args:
        membership_id: Membership to redeem from
        wallet_pass_id: Must own the membership
        city: Tenant city (must match the program's)
        idempotency_key: Repeated keys replay the first redemption

    Returns:
        ConsumeResult

    Raises:
        LoyaltyError: MEMBERSHIP_NOT_FOUND, CITY_MISMATCH, PROGRAM_NOT_ACTIVE
        GateError: L4_RewardThreshold, L7_ConsumeRateLimit
    """
    now = timezone.now()

    with transaction.atomic():
        try:
            membership = LoyaltyMembership.objects.select_for_update().get(
                pk=membership_id, user_wallet_pass_id=wallet_pass_id
            )
        except (LoyaltyMembership.DoesNotExist, ValueError, TypeError):
            raise LoyaltyError("MEMBERSHIP_NOT_FOUND")

        program = LoyaltyProgram.objects.select_related("business").get(pk=membership.program_id)
        membership.program = program
        if program.city != city:
            raise LoyaltyError("CITY_MISMATCH")
        if program.status != ProgramStatus.ACTIVE:
            raise LoyaltyError("PROGRAM_NOT_ACTIVE", status=program.status)

        entry = _replayed_entry(membership, idempotency_key, EntryType.REDEEM)
        if entry is not None:
            return _consume_result(entry.redemption, entry.balance_after, program, replayed=True)

        balance = membership.balance
        Gates.reward_threshold(balance, program.reward_threshold, unit=program.get_type_display().lower())
        Gates.consume_rate_limit(wallet_pass_id, now)

        field = program.balance_field
        setattr(membership, field, balance - program.reward_threshold)
        membership.total_redeemed += 1
        membership.last_active_at = now
        membership.save(update_fields=[field, "total_redeemed", "last_active_at"])

        window = timedelta(minutes=loyalty_settings.REDEMPTION_DISPLAY_WINDOW_MINUTES)
        redemption = Redemption.objects.create(
            membership=membership,
            business=program.business,
            user_wallet_pass_id=wallet_pass_id,
            reward_description=program.reward_description,
            consumed_at=now,
            display_expires_at=now + window,
            stamps_deducted=program.reward_threshold,
        )
        LedgerEntry.objects.create(
            membership=membership,
            entry_type=EntryType.REDEEM,
            amount=-program.reward_threshold,
            balance_after=membership.balance,
            description=f"Redeemed: {program.reward_description}",
            idempotency_key=idempotency_key,
            redemption=redemption,
        )

    logger.info(
        "Redemption %s at business %s (%s)",
        redemption.pk,
        program.business_id,
        membership.masked_pass_id,
    )
    reward_redeemed.send(
        sender=Redemption, redemption=redemption, membership=membership, program=program
    )
    return _consume_result(redemption, membership.balance, program)


def _consume_result(redemption, balance, program, replayed=False) -> ConsumeResult:
    return ConsumeResult(
        redemption_id=str(redemption.pk),
        reward_description=redemption.reward_description,
        consumed_at=redemption.consumed_at,
        display_expires_at=redemption.display_expires_at,
        new_balance=balance,
        threshold=program.reward_threshold,
        replayed=replayed,
    )


# =============================================================================
# Redemptions
# =============================================================================


def redemption_status(redemption_id, wallet_pass_id: str) -> Redemption:
    """
    Get a redemption owned by a wallet pass (for the live display countdown).

    Raises:
        LoyaltyError: REDEMPTION_NOT_FOUND
    """
    try:
        return Redemption.objects.get(pk=redemption_id, user_wallet_pass_id=wallet_pass_id)
    except (Redemption.DoesNotExist, ValidationError, ValueError):
        raise LoyaltyError("REDEMPTION_NOT_FOUND")


def flag_redemption(business, redemption_id, reason: str = "") -> Redemption:
    """
    Flag a redemption at this business as suspicious.

    Raises:
        LoyaltyError: REDEMPTION_NOT_FOUND
    """
    try:
        redemption = Redemption.objects.get(pk=redemption_id, business=business)
    except (Redemption.DoesNotExist, ValidationError, ValueError):
        raise LoyaltyError("REDEMPTION_NOT_FOUND")

    redemption.flagged_at = timezone.now()
    redemption.flagged_reason = (reason or "Flagged by business")[:300]
    redemption.save(update_fields=["flagged_at", "flagged_reason"])
    logger.warning("Redemption %s flagged by business %s", redemption.pk, business.pk)
    return redemption


def expire_redemptions(now: datetime | None = None) -> int:
    """Mark redemptions whose display window has passed. Returns count."""
    now = now or timezone.now()
    return Redemption.objects.filter(
        status=RedemptionStatus.CONSUMED,
        display_expires_at__lte=now,
    ).update(status=RedemptionStatus.EXPIRED_DISPLAY)

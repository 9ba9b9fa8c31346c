"""
Qwikker Loyalty Gates - Validation rules.

L1: ProgramTransition - Status moves follow the lifecycle; ended is terminal
L2: CounterToken - Earn QR token is current (or previous within grace window)
L3: EarnEligibility - Daily cap and minimum gap between earns
L4: RewardThreshold - Redeem requires balance >= threshold
L5: EarnRateLimit - Hourly earn attempts per wallet pass and per IP
L6: IpVelocity - One IP cannot stamp many different passes at a business
L7: ConsumeRateLimit - One redemption per wallet pass per N minutes
"""

import hmac
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from qwikker_loyalty.conf import loyalty_settings
from qwikker_loyalty.utils import local_date, next_local_midnight


class GateError(Exception):
    """Gate validation error."""

    def __init__(self, gate_name: str, message: str, details: dict | None = None):
        self.gate_name = gate_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{gate_name}] {message}")


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""
    details: dict = field(default_factory=dict)


def _same_token(expected: str, provided: str) -> bool:
    return hmac.compare_digest(expected.encode(), provided.encode())


# draft -> submitted -> active <-> paused -> ended
ALLOWED_TRANSITIONS = {
    "draft": {"submitted"},
    "submitted": {"active", "draft"},
    "active": {"paused", "ended"},
    "paused": {"active", "ended"},
    "ended": set(),
}


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Loyalty validation gates."""

    # =========================================================================
    # L1: Program Transition
    # =========================================================================

    @classmethod
    def program_transition(cls, current: str, target: str) -> GateResult:
        """
        L1: Status transitions are one-directional.

        Raises:
            GateError: If the move is not in ALLOWED_TRANSITIONS
        """
        if current == "ended":
            raise GateError(
                "L1_ProgramTransition",
                "This loyalty program has ended and cannot be changed.",
                {"current": current, "target": target},
            )
        if target not in ALLOWED_TRANSITIONS.get(current, set()):
            raise GateError(
                "L1_ProgramTransition",
                f"Cannot move program from {current} to {target}.",
                {
                    "current": current,
                    "target": target,
                    "allowed": sorted(ALLOWED_TRANSITIONS.get(current, set())),
                },
            )
        return GateResult(True, "L1_ProgramTransition")

    @classmethod
    def check_program_transition(cls, current: str, target: str) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.program_transition(current, target)
            return True
        except GateError:
            return False

    # =========================================================================
    # L2: Counter Token
    # =========================================================================

    @classmethod
    def counter_token(cls, program, token: str, now: datetime) -> GateResult:
        """
        L2: The scanned till QR token is valid.

        The previous token keeps working for TOKEN_GRACE_WINDOW_MINUTES after
        a rotation, so printed QR codes can be swapped without a gap.

        Raises:
            GateError: If the token matches neither
        """
        if token and _same_token(program.counter_qr_token, token):
            return GateResult(True, "L2_CounterToken")

        previous = program.previous_counter_qr_token
        rotated_at = program.counter_qr_token_rotated_at
        if token and previous and rotated_at and _same_token(previous, token):
            grace = timedelta(minutes=loyalty_settings.TOKEN_GRACE_WINDOW_MINUTES)
            if now <= rotated_at + grace:
                return GateResult(True, "L2_CounterToken", "Previous token (grace window)")

        raise GateError(
            "L2_CounterToken",
            "Invalid QR code. Please scan the QR at the till.",
        )

    @classmethod
    def check_counter_token(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.counter_token(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # L3: Earn Eligibility
    # =========================================================================

    @classmethod
    def earn_eligibility(cls, membership, program, now: datetime) -> GateResult:
        """
        L3: Member may earn right now.

        The daily counter resets when ``earned_today_date`` is not today in
        the program's timezone.

        Raises:
            GateError: With details["reason"] of "daily_limit" or "min_gap"
                and details["next_eligible_at"]
        """
        today = local_date(now, program.timezone)
        today_count = (
            membership.earned_today_count if membership.earned_today_date == today else 0
        )

        if today_count >= program.max_earns_per_day:
            limit = program.max_earns_per_day
            unit = "stamp" if limit == 1 else "stamps"
            raise GateError(
                "L3_EarnEligibility",
                f"You've reached your daily limit of {limit} {unit} for today.",
                {
                    "reason": "daily_limit",
                    "next_eligible_at": next_local_midnight(now, program.timezone),
                },
            )

        if membership.last_earned_at and program.min_gap_minutes > 0:
            next_eligible = membership.last_earned_at + timedelta(minutes=program.min_gap_minutes)
            if now < next_eligible:
                raise GateError(
                    "L3_EarnEligibility",
                    "Too soon since your last stamp. Try again in a few minutes.",
                    {"reason": "min_gap", "next_eligible_at": next_eligible},
                )

        return GateResult(True, "L3_EarnEligibility")

    @classmethod
    def check_earn_eligibility(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.earn_eligibility(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # L4: Reward Threshold
    # =========================================================================

    @classmethod
    def reward_threshold(cls, balance: int, threshold: int, unit: str = "stamps") -> GateResult:
        """
        L4: Redeem requires balance >= threshold.

        Raises:
            GateError: If the balance is short
        """
        if balance < threshold:
            raise GateError(
                "L4_RewardThreshold",
                f"Not enough {unit} to redeem",
                {"balance": balance, "threshold": threshold},
            )
        return GateResult(True, "L4_RewardThreshold")

    @classmethod
    def check_reward_threshold(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.reward_threshold(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # L5: Earn Rate Limit
    # =========================================================================

    @classmethod
    def earn_rate_limit(cls, wallet_pass_id: str, ip_hash: str, now: datetime) -> GateResult:
        """
        L5: Hourly earn attempts (valid or not) per wallet pass and per IP.

        Raises:
            GateError: details["reason"] is "rate_limit_user" or "rate_limit_ip"
        """
        from qwikker_loyalty.models import EarnEvent

        since = now - timedelta(hours=1)
        recent = EarnEvent.objects.filter(earned_at__gte=since)

        user_attempts = recent.filter(user_wallet_pass_id=wallet_pass_id).count()
        if user_attempts >= loyalty_settings.EARN_RATE_LIMIT_PER_USER_PER_HOUR:
            raise GateError(
                "L5_EarnRateLimit",
                "Too many attempts. Please try again later.",
                {"reason": "rate_limit_user"},
            )

        ip_attempts = recent.filter(ip_hash=ip_hash).count()
        if ip_attempts >= loyalty_settings.EARN_RATE_LIMIT_PER_IP_PER_HOUR:
            raise GateError(
                "L5_EarnRateLimit",
                "Too many attempts from this location.",
                {"reason": "rate_limit_ip"},
            )

        return GateResult(True, "L5_EarnRateLimit")

    # =========================================================================
    # L6: IP Velocity
    # =========================================================================

    @classmethod
    def ip_velocity(
        cls,
        business_id: int,
        ip_hash: str,
        wallet_pass_id: str,
        now: datetime,
    ) -> GateResult:
        """
        L6: Distinct passes stamped from one IP at one business in the
        velocity window (counting this one) stay within the threshold.

        Raises:
            GateError: details["reason"] is "ip_velocity"
        """
        from qwikker_loyalty.models import EarnEvent

        since = now - timedelta(minutes=loyalty_settings.IP_VELOCITY_WINDOW_MINUTES)
        passes = set(
            EarnEvent.objects.filter(
                business_id=business_id,
                ip_hash=ip_hash,
                earned_at__gte=since,
            ).values_list("user_wallet_pass_id", flat=True)
        )
        passes.add(wallet_pass_id)

        if len(passes) > loyalty_settings.IP_VELOCITY_THRESHOLD:
            raise GateError(
                "L6_IpVelocity",
                "Suspicious activity detected. Please try again later.",
                {"reason": "ip_velocity", "distinct_passes": len(passes)},
            )
        return GateResult(True, "L6_IpVelocity")

    # =========================================================================
    # L7: Consume Rate Limit
    # =========================================================================

    @classmethod
    def consume_rate_limit(cls, wallet_pass_id: str, now: datetime) -> GateResult:
        """
        L7: One redemption per wallet pass per CONSUME_RATE_LIMIT_MINUTES.

        Raises:
            GateError: If a redemption happened inside the window
        """
        from qwikker_loyalty.models import Redemption

        minutes = loyalty_settings.CONSUME_RATE_LIMIT_MINUTES
        if minutes <= 0:
            return GateResult(True, "L7_ConsumeRateLimit", "Disabled")

        since = now - timedelta(minutes=minutes)
        if Redemption.objects.filter(
            user_wallet_pass_id=wallet_pass_id,
            consumed_at__gte=since,
        ).exists():
            raise GateError(
                "L7_ConsumeRateLimit",
                "Please wait before redeeming again",
                {"window_minutes": minutes},
            )
        return GateResult(True, "L7_ConsumeRateLimit")

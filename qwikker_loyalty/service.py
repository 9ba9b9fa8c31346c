"""
Qwikker Loyalty public API.

CORE (ledger):
    LoyaltyService.join(...)     - Enroll a wallet pass in a program
    LoyaltyService.earn(...)     - Record a visit/points from the till QR
    LoyaltyService.redeem(...)   - Consume one reward

CONVENIENCE (read helpers):
    LoyaltyService.get_balance(...)  - Balance for a wallet pass in a program
    LoyaltyService.memberships(...)  - A wallet pass's cards in a city
    LoyaltyService.history(...)      - Ledger history for a membership
"""

from qwikker_loyalty.models import LedgerEntry, LoyaltyMembership
from qwikker_loyalty.services import ledger, reporting
from qwikker_loyalty.services.ledger import ConsumeResult, EarnResult, JoinResult


class LoyaltyService:
    """
    Qwikker Loyalty public API.

    Uses @classmethod for extensibility. Thin facade over services.ledger and
    services.reporting; the function modules hold the logic.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def join(
        cls,
        public_id: str,
        wallet_pass_id: str,
        city: str,
        **profile,
    ) -> JoinResult:
        """
        Enroll a wallet pass holder.

        Args:
            public_id: Program public id
            wallet_pass_id: Member's wallet pass id
            city: Tenant city
            **profile: first_name, last_name, email, date_of_birth

        Returns:
            JoinResult

        Raises:
            LoyaltyError: PROGRAM_NOT_FOUND, ALREADY_MEMBER
        """
        return ledger.join(public_id, wallet_pass_id, city, **profile)

    @classmethod
    def earn(
        cls,
        public_id: str,
        token: str,
        wallet_pass_id: str,
        city: str,
        ip: str = "",
        amount: int = 1,
        idempotency_key: str = "",
    ) -> EarnResult:
        """
        Record an earn. See services.ledger.earn.

        Raises:
            LoyaltyError: PROGRAM_NOT_FOUND, PROGRAM_NOT_ACTIVE, INVALID_AMOUNT
            GateError: L2_CounterToken, L5_EarnRateLimit, L6_IpVelocity
        """
        return ledger.earn(
            public_id,
            token,
            wallet_pass_id,
            city,
            ip=ip,
            amount=amount,
            idempotency_key=idempotency_key,
        )

    @classmethod
    def redeem(
        cls,
        membership_id,
        wallet_pass_id: str,
        city: str,
        idempotency_key: str = "",
    ) -> ConsumeResult:
        """
        Consume one reward. See services.ledger.redeem.

        Raises:
            LoyaltyError: MEMBERSHIP_NOT_FOUND, CITY_MISMATCH, PROGRAM_NOT_ACTIVE
            GateError: L4_RewardThreshold, L7_ConsumeRateLimit
        """
        return ledger.redeem(membership_id, wallet_pass_id, city, idempotency_key=idempotency_key)

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def get_membership(cls, public_id: str, wallet_pass_id: str, city: str) -> LoyaltyMembership | None:
        """Get a wallet pass's membership in a program, or None."""
        return (
            LoyaltyMembership.objects.select_related("program__business")
            .filter(
                program__public_id=public_id,
                program__city=city,
                user_wallet_pass_id=wallet_pass_id,
            )
            .first()
        )

    @classmethod
    def get_balance(cls, public_id: str, wallet_pass_id: str, city: str) -> int:
        """Current balance. Returns 0 if not a member."""
        membership = cls.get_membership(public_id, wallet_pass_id, city)
        return membership.balance if membership else 0

    @classmethod
    def memberships(cls, wallet_pass_id: str, city: str) -> list[LoyaltyMembership]:
        """A wallet pass's cards in the city."""
        return reporting.memberships_for_wallet(wallet_pass_id, city)

    @classmethod
    def history(cls, membership_id, wallet_pass_id: str, limit: int = 50) -> list[LedgerEntry]:
        """
        Ledger history, newest first.

        Raises:
            LoyaltyError: MEMBERSHIP_NOT_FOUND
        """
        membership = ledger.get_membership(membership_id, wallet_pass_id)
        return list(membership.ledger.all()[:limit])

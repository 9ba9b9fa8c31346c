"""
Qwikker Loyalty - stamp and points loyalty ledger.

Usage:
    from qwikker_loyalty import LoyaltyService
    from qwikker_loyalty.gates import Gates, GateError, GateResult

    result = LoyaltyService.earn("AB12CD34EF", token, "wp_123", city="bournemouth")
    consumed = LoyaltyService.redeem(membership_id, "wp_123", city="bournemouth")

    # Gates validation
    Gates.program_transition("active", "ended")
    Gates.reward_threshold(balance=7, threshold=10)
"""


def __getattr__(name):
    if name == "LoyaltyService":
        from qwikker_loyalty.service import LoyaltyService

        return LoyaltyService
    if name == "Gates":
        from qwikker_loyalty.gates import Gates

        return Gates
    if name == "GateError":
        from qwikker_loyalty.gates import GateError

        return GateError
    if name == "GateResult":
        from qwikker_loyalty.gates import GateResult

        return GateResult
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LoyaltyService", "Gates", "GateError", "GateResult"]
__version__ = "0.3.0"

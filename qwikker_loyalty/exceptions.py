"""Qwikker Loyalty exceptions."""


class LoyaltyError(Exception):
    """
    Structured exception for loyalty operations.

    Carries a stable ``code``, a user-facing ``message`` and extra ``data``
    that API views copy into the JSON error body.

    Usage:
        try:
            LoyaltyService.join(public_id, wallet_pass_id, city)
        except LoyaltyError as e:
            if e.code == "ALREADY_MEMBER":
                membership_id = e.data["membership_id"]
    """

    _default_messages = {
        "BUSINESS_NOT_FOUND": "Business not found",
        "TIER_REQUIRED": "Loyalty programs require Spotlight tier",
        "PROGRAM_NOT_FOUND": "Program not found",
        "PROGRAM_NOT_ACTIVE": "This loyalty program is not currently active",
        "PROGRAM_ENDED": "This loyalty program has ended",
        "INVALID_PROGRAM": "Invalid loyalty program settings",
        "INCOMPLETE_PROGRAM": "Reward threshold and description are required",
        "NO_LIVE_PROGRAM": "No active/paused program found",
        "MEMBERSHIP_NOT_FOUND": "Membership not found",
        "ALREADY_MEMBER": "Already a member",
        "CITY_MISMATCH": "City mismatch",
        "INVALID_AMOUNT": "Points must be a positive whole number",
        "REQUEST_NOT_FOUND": "Request not found",
        "REQUEST_PENDING": "You already have a pending edit request. Please wait for it to be reviewed.",
        "NO_CHANGES": "No changes specified",
        "MISSING_CREDENTIALS": "All three WalletPush credential fields are required.",
        "REDEMPTION_NOT_FOUND": "Redemption not found",
        "LEDGER_IMMUTABLE": "Ledger entries cannot be changed",
        "IDEMPOTENCY_KEY_REUSED": "Idempotency key was already used for a different operation",
        "PROGRAM_NOT_DRAFT": "Only draft programs can be submitted",
        "INVALID_STATUS": "Invalid status",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}

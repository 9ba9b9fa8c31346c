"""Wallet pass protocol for the pass vendor integration."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PassHolder:
    """Name and email printed on a new pass."""

    first_name: str
    last_name: str
    email: str


@dataclass(frozen=True)
class IssuedPass:
    """A pass created by the vendor."""

    serial: str
    apple_url: str | None = None
    google_url: str | None = None


@runtime_checkable
class WalletPassBackend(Protocol):
    """
    Protocol for issuing and updating loyalty wallet passes.

    Implemented by adapters/walletpush.py.

    Configuration in settings.py:
        QWIKKER_LOYALTY = {
            "WALLET_PASS_BACKEND": "qwikker_loyalty.adapters.walletpush.WalletPushBackend",
        }

    Implementations must not raise on vendor failures: log and return
    None / False so the loyalty transaction is never blocked by the vendor.
    """

    def issue_pass(
        self,
        program,
        holder: PassHolder,
        fields: dict[str, str],
    ) -> IssuedPass | None:
        """Create a pass from the program's template with initial field values."""
        ...

    def update_fields(
        self,
        program,
        serial: str,
        fields: dict[str, str],
    ) -> bool:
        """
        Update field values on an existing pass.

        Sends one device push for the whole batch. Returns True if every
        field was accepted.
        """
        ...

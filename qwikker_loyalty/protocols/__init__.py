"""Qwikker Loyalty protocols."""

from qwikker_loyalty.protocols.wallet import (
    WalletPassBackend,
    PassHolder,
    IssuedPass,
)
from qwikker_loyalty.protocols.notifications import (
    NotificationBackend,
    Notification,
)

__all__ = [
    # Wallet passes
    "WalletPassBackend",
    "PassHolder",
    "IssuedPass",
    # Staff notifications
    "NotificationBackend",
    "Notification",
]

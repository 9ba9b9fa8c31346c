"""Loads the configured vendor backends."""

from django.utils.module_loading import import_string

from qwikker_loyalty.conf import loyalty_settings
from qwikker_loyalty.protocols import NotificationBackend, WalletPassBackend


def get_wallet_backend() -> WalletPassBackend | None:
    """Get configured WalletPassBackend (None disables pass issuing/updates)."""
    backend_path = loyalty_settings.WALLET_PASS_BACKEND
    if backend_path:
        backend_class = import_string(backend_path)
        return backend_class()
    return None


def get_notifier() -> NotificationBackend | None:
    """Get configured NotificationBackend (None disables admin notices)."""
    backend_path = loyalty_settings.NOTIFICATION_BACKEND
    if backend_path:
        backend_class = import_string(backend_path)
        return backend_class()
    return None

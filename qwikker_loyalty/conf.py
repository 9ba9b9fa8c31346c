"""
Qwikker Loyalty configuration.

Usage in settings.py:
    QWIKKER_LOYALTY = {
        "BASE_DOMAIN": "qwikker.com",
        "ALLOWED_CITIES": ["bournemouth", "calgary"],
        "WALLET_PASS_BACKEND": "qwikker_loyalty.adapters.walletpush.WalletPushBackend",
        "SLACK_WEBHOOK_URLS": {"bournemouth": "https://hooks.slack.com/services/..."},
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class LoyaltySettings:
    """Qwikker Loyalty configuration settings."""

    # Program defaults
    DEFAULT_TIMEZONE: str = "Europe/London"
    REQUIRED_TIER: str = "spotlight"

    # Redemption screen and counter QR rotation
    REDEMPTION_DISPLAY_WINDOW_MINUTES: int = 10
    TOKEN_GRACE_WINDOW_MINUTES: int = 30

    # Earn fraud controls
    EARN_RATE_LIMIT_PER_USER_PER_HOUR: int = 10
    EARN_RATE_LIMIT_PER_IP_PER_HOUR: int = 20
    IP_VELOCITY_THRESHOLD: int = 3
    IP_VELOCITY_WINDOW_MINUTES: int = 10

    # One consume per wallet pass per N minutes (0 disables)
    CONSUME_RATE_LIMIT_MINUTES: int = 5

    # Business summary: estimated cost of one reward
    DEFAULT_AVG_REWARD_VALUE: float = 3.0

    # Integrations (dotted paths, loaded with import_string)
    WALLET_PASS_BACKEND: str = ""
    NOTIFICATION_BACKEND: str = ""
    WALLETPUSH_BASE_URL: str = "https://app.walletpush.io/api/v1"
    HTTP_TIMEOUT: float = 10.0
    SLACK_WEBHOOK_URLS: dict[str, str] = field(default_factory=dict)
    HQ_SLACK_WEBHOOK_URL: str = ""

    # Tenancy
    BASE_DOMAIN: str = "qwikker.com"
    DEFAULT_CITY: str = ""
    ALLOWED_CITIES: list[str] = field(default_factory=list)


def get_loyalty_settings() -> LoyaltySettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "QWIKKER_LOYALTY", {})
    return LoyaltySettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_loyalty_settings(), name)


loyalty_settings = _LazySettings()

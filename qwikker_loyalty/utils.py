"""Loyalty helpers: codes, hashing, program-local time and display copy.

Pure functions only; nothing here touches the database.
"""

import hashlib
import math
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.core.exceptions import ValidationError
from django.utils.crypto import get_random_string

SHORT_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

STAMP_ICONS = {
    "stamp": {"icon": "Stamp", "label": "Stamp"},
    "bean": {"icon": "Bean", "label": "Coffee Bean"},
    "scissors": {"icon": "Scissors", "label": "Scissors"},
    "flame": {"icon": "Flame", "label": "Flame"},
    "burger": {"icon": "Hamburger", "label": "Burger"},
    "cocktail": {"icon": "Wine", "label": "Cocktail"},
    "pizza": {"icon": "Pizza", "label": "Pizza"},
    "star": {"icon": "Star", "label": "Star"},
    "heart": {"icon": "Heart", "label": "Heart"},
    "cake": {"icon": "CakeSlice", "label": "Cake"},
    "dumbbell": {"icon": "Dumbbell", "label": "Dumbbell"},
    "paw": {"icon": "PawPrint", "label": "Paw"},
}


# =============================================================================
# Codes and hashing
# =============================================================================


def generate_public_id() -> str:
    return get_random_string(10, SHORT_CODE_ALPHABET)


def generate_counter_qr_token() -> str:
    return get_random_string(32, SHORT_CODE_ALPHABET)


def hash_ip(ip: str) -> str:
    """SHA-256 of the client IP. Raw IPs are never stored."""
    return hashlib.sha256(ip.encode()).hexdigest()


def client_ip(request) -> str:
    """First hop of X-Forwarded-For, falling back to REMOTE_ADDR."""
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    ip = forwarded_for.split(",")[0].strip() if forwarded_for else ""
    return ip or request.META.get("REMOTE_ADDR", "") or "unknown"


# =============================================================================
# Program-local time
# =============================================================================


def validate_timezone(value: str) -> None:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {value}")


def local_date(now: datetime, tz: str) -> date:
    """Calendar date of ``now`` in the given IANA timezone."""
    return now.astimezone(ZoneInfo(tz)).date()


def next_local_midnight(now: datetime, tz: str) -> datetime:
    """The next 00:00 in ``tz``, as an aware datetime in that zone."""
    zone = ZoneInfo(tz)
    tomorrow = now.astimezone(zone).date() + timedelta(days=1)
    return datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=zone)


# =============================================================================
# Display
# =============================================================================


def calculate_progress(balance: int, threshold: int) -> int:
    """Percentage toward the reward, capped at 100."""
    if threshold <= 0:
        return 0
    # round half up, not banker's rounding
    return min(math.floor(balance / threshold * 100 + 0.5), 100)


def proximity_message(balance: int, threshold: int) -> str | None:
    """
    Motivational copy based on how close a member is to their reward.

    Returns None when the member is not close enough to warrant a message.
    """
    remaining = threshold - balance
    if remaining <= 0:
        return "Reward available!"
    if remaining == 1:
        return "Just 1 more visit!"
    if remaining == 2:
        return "Only 2 more to go!"
    if remaining == 3:
        return "Almost there — 3 more!"
    if balance >= threshold / 2:
        return "You're over halfway!"
    return None


def pass_field_values(program, balance: int) -> dict[str, str]:
    """
    Wallet pass field values for a balance.

    The vendor template always calls the counter field "Points"; the
    Status line uses the program's own label ("7/10 Stamps").
    """
    return {
        "Points": str(balance),
        "Threshold": str(program.reward_threshold),
        "Status": f"{balance}/{program.reward_threshold} {program.stamp_label}",
        "Reward": program.reward_description,
    }


def parse_since_days(value: str | None) -> int | None:
    """Parse a ``?since=30d`` query value into a number of days."""
    if not value:
        return None
    try:
        days = int(value.strip().rstrip("d"))
    except ValueError:
        return None
    return days if days > 0 else None

"""Staff notification protocol (city admin channels)."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class Notification:
    """A message for a city's admin channel."""

    city: str
    business_name: str
    subject: str
    message: str
    program_id: str
    category: str = "loyalty"
    event_type: str = "new_request"  # "new_request" | "edit_request"


@runtime_checkable
class NotificationBackend(Protocol):
    """Protocol for notifying city admins. Implemented by adapters/slack.py."""

    def notify(self, notification: Notification) -> bool:
        """Deliver the notification. Returns False on failure, never raises."""
        ...

"""Actions describing state transitions."""

from dataclasses import dataclass
from typing import Tuple, Union

from .models import NotificationRecord


@dataclass(frozen=True)
class NotificationsAdded:
    """A fetch cycle that started at ``check_time`` completed with ``notifications``."""
    notifications: Tuple[NotificationRecord, ...]
    check_time: int


@dataclass(frozen=True)
class NotificationsDisplayed:
    """The notifications with these ids were handed to the display surface."""
    ids: Tuple[str, ...]


@dataclass(frozen=True)
class ResetState:
    pass


@dataclass(frozen=True)
class TokenNotificationShown:
    pass


Action = Union[NotificationsAdded, NotificationsDisplayed, ResetState, TokenNotificationShown]

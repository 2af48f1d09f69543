"""Pure state transitions for the notification store."""

import logging
from dataclasses import replace
from typing import Any, Iterable, Mapping, Optional, Tuple

from .messages import (
    NotificationsAdded,
    NotificationsDisplayed,
    ResetState,
    TokenNotificationShown,
)
from .models import ApplicationState, NotificationRecord

logger = logging.getLogger(__name__)

# Largest epoch millis a datetime can represent (9999-12-31T23:59:59Z)
MAX_CHECK_TIME = 253_402_300_799_000


def initial_state() -> ApplicationState:
    """Return the pristine state used on first start and after a reset."""
    return ApplicationState()


def dedupe_by_id(records: Iterable[NotificationRecord]) -> Tuple[NotificationRecord, ...]:
    """Keep the first record seen for each id, preserving order."""
    seen = set()
    unique = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return tuple(unique)


def reduce(state: ApplicationState, action: Any) -> ApplicationState:
    """
    Compute the next state for an action.

    Unknown actions leave the state untouched.

    Args:
        state: Current state.
        action: One of the actions from ``messages``.

    Returns:
        The next state.
    """
    if isinstance(action, NotificationsAdded):
        return replace(
            state,
            last_check_time=action.check_time,
            notifications=dedupe_by_id(
                tuple(state.notifications) + tuple(action.notifications)
            ),
        )

    if isinstance(action, NotificationsDisplayed):
        displayed = set(action.ids)
        return replace(
            state,
            notifications=tuple(n for n in state.notifications if n.id not in displayed),
        )

    if isinstance(action, ResetState):
        return initial_state()

    if isinstance(action, TokenNotificationShown):
        return replace(state, has_prompted_for_token=True)

    return state


def _restore_notifications(raw: Iterable[Any]) -> Tuple[NotificationRecord, ...]:
    records = []
    for entry in raw:
        if isinstance(entry, NotificationRecord):
            records.append(entry)
            continue
        try:
            records.append(NotificationRecord.from_dict(entry))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Dropping malformed persisted notification {entry!r}: {e}")
    return dedupe_by_id(records)


def restore_state(snapshot: Optional[Mapping[str, Any]]) -> ApplicationState:
    """
    Build the startup state from a persisted snapshot.

    The snapshot is shallow-merged over the initial state. A missing or falsy
    ``last_check_time`` becomes 0, as does one that is negative or past what
    a datetime can hold. Malformed notifications are dropped.

    Args:
        snapshot: Previously serialized state, or None.

    Returns:
        The restored state.
    """
    state = initial_state()
    if not snapshot:
        return state

    try:
        last_check_time = int(snapshot.get("last_check_time") or 0)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Ignoring malformed last_check_time {snapshot.get('last_check_time')!r}")
        last_check_time = 0
    if not 0 <= last_check_time <= MAX_CHECK_TIME:
        logger.warning(f"Ignoring out-of-range last_check_time {last_check_time}")
        last_check_time = 0

    notifications = snapshot.get("notifications") or ()
    if not isinstance(notifications, (list, tuple)):
        logger.warning(f"Ignoring malformed persisted notifications {notifications!r}")
        notifications = ()

    return replace(
        state,
        has_prompted_for_token=bool(
            snapshot.get("has_prompted_for_token", state.has_prompted_for_token)
        ),
        last_check_time=last_check_time,
        notifications=_restore_notifications(notifications),
    )

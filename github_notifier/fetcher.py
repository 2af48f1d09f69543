"""Fetch cycle: GitHub notification threads in, one NotificationsAdded out."""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import AppConfig, PollingConfig, resolve_token
from .constants import GITHUB_WEB_URL, MAX_MESSAGE_LENGTH, SUBJECT_TYPE_URL_STRING
from .display import DisplaySurface
from .formatting import truncate_if_too_long
from .github_client import GitHubClient
from .messages import NotificationsAdded, TokenNotificationShown
from .models import NotificationRecord
from .scheduler import now_ms
from .store import NotificationStore

logger = logging.getLogger(__name__)

COMMENT_URL_PATTERN = re.compile(r".+/(pulls|issues|commits)/comments/(.+)")

TOKEN_PROMPT_TITLE = "GitHub Notifications"
TOKEN_PROMPT_DESCRIPTION = (
    "You need to add a `Personal Access Token` to get notifications from GitHub. "
    "Set GITHUB_NOTIFIER_TOKEN (or GITHUB_TOKEN) and check again."
)
API_ERROR_TITLE = "Error communicating with GitHub"


@dataclass
class SubjectData:
    """What a raw notification thread says about its subject."""
    type: str
    owner: str
    repo_name: str
    repo_full_name: str
    repo_owner_avatar_url: str
    subject_id: str
    subject_url: str
    comment_type: Optional[str] = None
    comment_id: Optional[str] = None


def iso_timestamp(epoch_ms: int) -> str:
    """Format epoch millis as an ISO-8601 UTC timestamp, e.g. 2024-05-01T10:00:00.000Z."""
    dt = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_subject_url(repo_full_name: str, subject_type: str, subject_id: str) -> str:
    """Canonical github.com URL of a subject; unknown types link to the repository."""
    segment = SUBJECT_TYPE_URL_STRING.get(subject_type)
    if segment is None:
        return f"{GITHUB_WEB_URL}/{repo_full_name}"
    return f"{GITHUB_WEB_URL}/{repo_full_name}/{segment}/{subject_id}"


def extract_subject_data(thread: Dict[str, Any]) -> SubjectData:
    """
    Pull the subject and latest-comment references out of a notification thread.

    Raises:
        KeyError, TypeError: If the thread is missing required fields.
    """
    subject = thread["subject"]
    repository = thread["repository"]

    comment_type = None
    comment_id = None
    latest_comment_url = subject.get("latest_comment_url")
    if latest_comment_url:
        match = COMMENT_URL_PATTERN.match(latest_comment_url)
        if match:
            comment_type, comment_id = match.group(1), match.group(2)

    subject_url = subject.get("url")
    subject_id = subject_url.rstrip("/").rsplit("/", 1)[-1] if subject_url else "0"

    return SubjectData(
        type=subject["type"],
        owner=repository["owner"]["login"],
        repo_name=repository["name"],
        repo_full_name=repository["full_name"],
        repo_owner_avatar_url=repository["owner"].get("avatar_url", ""),
        subject_id=subject_id,
        subject_url=build_subject_url(repository["full_name"], subject["type"], subject_id),
        comment_type=comment_type,
        comment_id=comment_id,
    )


def extract_error_message(err: Exception) -> str:
    """Best-effort human readable message from a GitHub error payload."""
    raw = getattr(err, "message", None) or str(err)
    try:
        message = json.loads(raw)["message"]
    except (ValueError, TypeError, KeyError):
        return f"Failed to get error message from response:\n{err}"
    return str(message)


def make_on_dismiss(client: GitHubClient, polling: PollingConfig, thread_id: str) -> Callable[[], None]:
    """Dismiss callback that marks the thread read when configured to at dismiss time."""
    def on_dismiss() -> None:
        if not polling.mark_read_on_dismiss:
            return
        try:
            client.mark_thread_read(thread_id)
        except Exception as e:
            logger.error(f"Could not mark notification {thread_id} as read: {e}")

    return on_dismiss


class NotificationFetcher:
    """
    Runs fetch cycles against GitHub and reports them to the store.

    Every cycle that has a token ends in exactly one NotificationsAdded
    dispatch: the fetched records on success, an empty batch on failure.
    Without a token no fetch happens and the setup prompt is shown once.
    """

    def __init__(
        self,
        store: NotificationStore,
        client: GitHubClient,
        display: DisplaySurface,
        config: AppConfig,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.client = client
        self.display = display
        self.config = config
        self.clock = clock

    async def fetch(self) -> None:
        """Run one fetch cycle."""
        token = resolve_token(self.config.github)
        if not token:
            self._prompt_for_token()
            return

        self.client.authenticate(token)
        participating = self.config.polling.show_only_direct_participation

        # Captured before the remote call so events arriving meanwhile are
        # picked up by the next cycle
        cycle_start = self.clock()

        try:
            since = iso_timestamp(self.store.get_state().last_check_time)
            logger.info(f"Checking GitHub notifications since {since} (participating only: {participating})")
            threads = await asyncio.to_thread(self.client.list_notifications, since, participating)
            records = await self._build_records(threads)
        except Exception as e:
            logger.error(f"Fetch cycle failed: {e}", exc_info=True)
            self.store.dispatch(NotificationsAdded((), cycle_start))
            self._show_api_error(e)
            return

        logger.info(f"Fetched {len(records)} notification(s)")
        self.store.dispatch(NotificationsAdded(tuple(records), cycle_start))

    async def _build_records(self, threads: Iterable[Dict[str, Any]]) -> List[NotificationRecord]:
        results = await asyncio.gather(*(self._build_record(thread) for thread in threads))
        return [record for record in results if record is not None]

    async def _build_record(self, thread: Dict[str, Any]) -> Optional[NotificationRecord]:
        try:
            data = extract_subject_data(thread)
            thread_id = str(thread["id"])
            title = thread["subject"]["title"]
        except (KeyError, TypeError, AttributeError) as e:
            thread_ref = thread.get("id") if isinstance(thread, dict) else thread
            logger.warning(f"Dropping malformed notification thread {thread_ref!r}: {e}")
            return None

        body = None
        user_login = None
        if data.comment_type and data.comment_id:
            comment = await asyncio.to_thread(
                self.client.get_comment,
                data.comment_type,
                data.owner,
                data.repo_name,
                data.comment_id,
            )
            body = truncate_if_too_long(comment["body"], MAX_MESSAGE_LENGTH)
            user_login = comment["user_login"]

        return NotificationRecord(
            id=thread_id,
            subject_type=data.type,
            title=title,
            reason=thread.get("reason", ""),
            repo_full_name=data.repo_full_name,
            repo_owner_avatar_url=data.repo_owner_avatar_url,
            subject_id=data.subject_id,
            subject_url=data.subject_url,
            body=body,
            user_login=user_login,
            comment_id=data.comment_id,
            on_dismiss=make_on_dismiss(self.client, self.config.polling, thread_id),
        )

    def _prompt_for_token(self) -> None:
        if self.store.get_state().has_prompted_for_token:
            logger.debug("No GitHub token configured; prompt already shown")
            return

        logger.warning("No GitHub token configured; showing setup prompt")
        try:
            self.display.show_alert(
                TOKEN_PROMPT_TITLE,
                description=TOKEN_PROMPT_DESCRIPTION,
                dismissable=True,
                level="warning",
            )
        except Exception as e:
            logger.error(f"Could not show token prompt: {e}")
        self.store.dispatch(TokenNotificationShown())

    def _show_api_error(self, err: Exception) -> None:
        try:
            self.display.show_alert(
                API_ERROR_TITLE,
                description=extract_error_message(err),
                dismissable=True,
                level="error",
            )
        except Exception as e:
            logger.error(f"Could not show error alert: {e}")

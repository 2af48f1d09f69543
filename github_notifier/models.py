"""Data models for notifications and application state."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple


@dataclass(frozen=True)
class NotificationRecord:
    """Represents one pending GitHub notification alert."""
    id: str                         # notification thread id, the dedup key
    subject_type: str               # "PullRequest", "Issue", "Commit", ...
    title: str
    reason: str                     # "mention", "review_requested", ...
    repo_full_name: str             # "owner/repo"
    repo_owner_avatar_url: str
    subject_id: str
    subject_url: str                # https://github.com/owner/repo/pull/12
    body: Optional[str] = None      # latest comment body, already truncated
    user_login: Optional[str] = None  # author of the latest comment
    comment_id: Optional[str] = None
    on_dismiss: Optional[Callable[[], None]] = field(
        default=None, compare=False, repr=False
    )

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form; the dismiss callback is never persisted."""
        return {
            "id": self.id,
            "subject_type": self.subject_type,
            "title": self.title,
            "reason": self.reason,
            "repo_full_name": self.repo_full_name,
            "repo_owner_avatar_url": self.repo_owner_avatar_url,
            "subject_id": self.subject_id,
            "subject_url": self.subject_url,
            "body": self.body,
            "user_login": self.user_login,
            "comment_id": self.comment_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationRecord":
        """
        Rebuild a record from its serialized form.

        Raises:
            KeyError: If a required field is missing.
        """
        return cls(
            id=str(data["id"]),
            subject_type=data["subject_type"],
            title=data["title"],
            reason=data.get("reason", ""),
            repo_full_name=data["repo_full_name"],
            repo_owner_avatar_url=data.get("repo_owner_avatar_url", ""),
            subject_id=str(data["subject_id"]),
            subject_url=data["subject_url"],
            body=data.get("body"),
            user_login=data.get("user_login"),
            comment_id=data.get("comment_id"),
        )


@dataclass(frozen=True)
class ApplicationState:
    """Complete notifier state, owned by the store."""
    has_prompted_for_token: bool = False
    last_check_time: int = 0  # epoch millis of the last completed fetch cycle start
    notifications: Tuple[NotificationRecord, ...] = ()

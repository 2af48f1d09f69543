"""Markdown rendering of notification alerts."""

from typing import Optional

from .constants import (
    NotificationSubjectTypes,
    SUBJECT_TYPE_DISPLAY_NAMES,
    SUBJECT_TYPE_ICONS,
)
from .models import NotificationRecord


def truncate_if_too_long(text: Optional[str], length: int) -> Optional[str]:
    """Cut ``text`` to at most ``length`` characters."""
    if text is None:
        return None
    return text[:length] if len(text) > length else text


def normalize_newlines(body: str) -> str:
    """
    Turn a GitHub comment body into markdown with hard line breaks.

    GitHub sends ``\\r\\n`` line endings, and a bare newline is swallowed by
    markdown renderers. Every line that does not already end in two spaces
    gets two appended so each line renders on its own.

    EX:
        "foo\\r\\nbar\\r\\nmore lines"  ->  "foo  \\nbar  \\nmore lines"
    """
    lines = body.replace("\r\n", "\n").split("\n")
    for i, line in enumerate(lines[:-1]):
        if not line.endswith("  "):
            lines[i] = line + "  "
    return "\n".join(lines)


def get_notification_message(record: NotificationRecord) -> str:
    """Headline of an alert: repository, avatar, and a link to the subject."""
    display_name = SUBJECT_TYPE_DISPLAY_NAMES.get(record.subject_type, record.subject_type)
    if record.subject_type == NotificationSubjectTypes.COMMIT:
        subject = f"[{display_name} {record.subject_id[:6]}]({record.subject_url})"
    else:
        subject = f"[{display_name} #{record.subject_id}]({record.subject_url})"

    if record.user_login:
        message = f"Activity by @{record.user_login} on {subject}"
    else:
        message = f"Activity on {subject}"
    avatar_part = f"![]({record.repo_owner_avatar_url}&size=17)"
    return f"{avatar_part} **[{record.repo_full_name}]**  \n{message}"


def get_notification_description(title: str, body: Optional[str]) -> str:
    corrected_body = f"  \n{normalize_newlines(body)}" if body else ""
    return f"**{title}**{corrected_body}"


def get_notification_icon(subject_type: str) -> Optional[str]:
    return SUBJECT_TYPE_ICONS.get(subject_type)

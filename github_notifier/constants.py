"""Constants shared across the notifier."""

from typing import Dict, Optional


class NotificationSubjectTypes:
    """Subject types reported by the GitHub notifications API."""
    PULL_REQUEST = "PullRequest"
    ISSUE = "Issue"
    COMMIT = "Commit"
    RELEASE = "Release"


class CommentType:
    """Comment kinds as they appear in a ``latest_comment_url``."""
    COMMIT = "commits"
    PULL_REQUEST = "pulls"
    ISSUES = "issues"


SUBJECT_TYPE_DISPLAY_NAMES: Dict[str, str] = {
    NotificationSubjectTypes.PULL_REQUEST: "Pull Request",
    NotificationSubjectTypes.ISSUE: "Issue",
    NotificationSubjectTypes.COMMIT: "Commit",
    NotificationSubjectTypes.RELEASE: "Release",
}

# Path segment used on github.com for each subject type
SUBJECT_TYPE_URL_STRING: Dict[str, str] = {
    NotificationSubjectTypes.PULL_REQUEST: "pull",
    NotificationSubjectTypes.ISSUE: "issues",
    NotificationSubjectTypes.COMMIT: "commit",
    NotificationSubjectTypes.RELEASE: "releases",
}

SUBJECT_TYPE_ICONS: Dict[str, Optional[str]] = {
    NotificationSubjectTypes.PULL_REQUEST: "git-pull-request",
    NotificationSubjectTypes.COMMIT: "git-commit",
    NotificationSubjectTypes.ISSUE: "issue-opened",
}

GITHUB_WEB_URL = "https://github.com"

# All durations are in milliseconds
STORE_TIME_INTERVAL = 10_000  # how often the poll timer re-checks last_check_time
DISPLAY_INTERVAL = 750        # spacing between two displayed alerts

MAX_MESSAGE_LENGTH = 500      # hard cap on comment bodies, in characters

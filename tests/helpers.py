"""Builders and fakes shared by the test modules."""

from typing import Any, Dict, List, Optional

from github_notifier.config import AppConfig, DisplayConfig, GitHubConfig, PollingConfig
from github_notifier.display import AlertHandle, DisplaySurface
from github_notifier.github_client import GitHubAPIError
from github_notifier.models import NotificationRecord


def make_record(id: str, **overrides) -> NotificationRecord:
    fields = dict(
        id=id,
        subject_type="PullRequest",
        title=f"Title {id}",
        reason="mention",
        repo_full_name="octo/hello",
        repo_owner_avatar_url="https://avatars.githubusercontent.com/u/1?v=4",
        subject_id="12",
        subject_url="https://github.com/octo/hello/pull/12",
    )
    fields.update(overrides)
    return NotificationRecord(**fields)


def make_thread(
    id: str,
    subject_type: str = "PullRequest",
    subject_url: Optional[str] = "https://api.github.com/repos/octo/hello/pulls/12",
    comment_url: Optional[str] = None,
    title: str = "Fix the thing",
) -> Dict[str, Any]:
    return {
        "id": id,
        "reason": "mention",
        "subject": {
            "title": title,
            "type": subject_type,
            "url": subject_url,
            "latest_comment_url": comment_url,
        },
        "repository": {
            "name": "hello",
            "full_name": "octo/hello",
            "owner": {
                "login": "octo",
                "avatar_url": "https://avatars.githubusercontent.com/u/1?v=4",
            },
        },
    }


def make_config(
    token: Optional[str] = "secret-token",
    participating: bool = False,
    mark_read_on_dismiss: bool = True,
    poll_interval_minutes: int = 1,
) -> AppConfig:
    return AppConfig(
        db_path=":memory:",
        github=GitHubConfig(token=token, api_url="https://api.github.com"),
        polling=PollingConfig(
            poll_interval_minutes=poll_interval_minutes,
            show_only_direct_participation=participating,
            mark_read_on_dismiss=mark_read_on_dismiss,
        ),
        display=DisplayConfig(method="console"),
    )


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient."""

    def __init__(
        self,
        threads: Optional[List[Dict[str, Any]]] = None,
        comments: Optional[Dict[str, Dict[str, Any]]] = None,
        error: Optional[Exception] = None,
        comment_error: Optional[Exception] = None,
    ):
        self.threads = threads or []
        self.comments = comments or {}
        self.error = error
        self.comment_error = comment_error
        self.token = None
        self.list_calls = []
        self.comment_calls = []
        self.marked_read = []

    def authenticate(self, token):
        self.token = token

    def list_notifications(self, since, participating=False):
        self.list_calls.append({"since": since, "participating": participating})
        if self.error is not None:
            raise self.error
        return list(self.threads)

    def get_comment(self, kind, owner, repo, comment_id):
        self.comment_calls.append((kind, owner, repo, comment_id))
        if self.comment_error is not None:
            raise self.comment_error
        return self.comments[comment_id]

    def mark_thread_read(self, thread_id):
        self.marked_read.append(thread_id)


class FakeDisplay(DisplaySurface):
    """Records alerts instead of showing them."""

    def __init__(self):
        self.alerts = []
        self.handles = []

    def show_alert(self, message, description=None, icon=None, dismissable=True, level="info"):
        self.alerts.append({
            "message": message,
            "description": description,
            "icon": icon,
            "dismissable": dismissable,
            "level": level,
        })
        handle = AlertHandle(dismissable=dismissable)
        self.handles.append(handle)
        return handle


def api_error(body: str, status_code: int = 401) -> GitHubAPIError:
    return GitHubAPIError(body, status_code=status_code)

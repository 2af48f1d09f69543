import asyncio

import pytest

from github_notifier.constants import MAX_MESSAGE_LENGTH
from github_notifier.fetcher import (
    API_ERROR_TITLE,
    TOKEN_PROMPT_TITLE,
    NotificationFetcher,
    build_subject_url,
    extract_error_message,
    extract_subject_data,
    iso_timestamp,
)
from github_notifier.messages import NotificationsAdded
from github_notifier.models import ApplicationState
from github_notifier.store import NotificationStore

from helpers import FakeDisplay, FakeGitHubClient, api_error, make_config, make_thread


class RecordingStore(NotificationStore):
    def __init__(self, state=None):
        super().__init__(state)
        self.actions = []

    def dispatch(self, action):
        self.actions.append(action)
        super().dispatch(action)


def make_fetcher(client, config=None, state=None, clock=lambda: 5000):
    store = RecordingStore(state)
    display = FakeDisplay()
    fetcher = NotificationFetcher(store, client, display, config or make_config(), clock=clock)
    return fetcher, store, display


def test_iso_timestamp():
    assert iso_timestamp(0) == "1970-01-01T00:00:00.000Z"
    assert iso_timestamp(1_700_000_000_123) == "2023-11-14T22:13:20.123Z"


def test_extract_subject_data_for_pull_request_comment():
    thread = make_thread(
        "1",
        comment_url="https://api.github.com/repos/octo/hello/pulls/comments/987",
    )
    data = extract_subject_data(thread)
    assert data.type == "PullRequest"
    assert data.owner == "octo"
    assert data.repo_name == "hello"
    assert data.subject_id == "12"
    assert data.subject_url == "https://github.com/octo/hello/pull/12"
    assert data.comment_type == "pulls"
    assert data.comment_id == "987"


def test_extract_subject_data_for_commit_keeps_full_sha():
    sha = "6dcb09b5b57875f334f61aebed695e2e4193db5e"
    thread = make_thread(
        "2",
        subject_type="Commit",
        subject_url=f"https://api.github.com/repos/octo/hello/commits/{sha}",
    )
    data = extract_subject_data(thread)
    assert data.subject_id == sha
    assert data.subject_url == f"https://github.com/octo/hello/commit/{sha}"
    assert data.comment_type is None


def test_extract_subject_data_without_url_or_matching_comment():
    thread = make_thread(
        "3",
        subject_type="Issue",
        subject_url=None,
        comment_url="https://api.github.com/repos/octo/hello/issues/5",
    )
    data = extract_subject_data(thread)
    assert data.subject_id == "0"
    assert data.subject_url == "https://github.com/octo/hello/issues/0"
    assert data.comment_id is None


def test_build_subject_url_for_unknown_type_links_repository():
    assert build_subject_url("octo/hello", "Discussion", "4") == "https://github.com/octo/hello"


def test_extract_subject_data_raises_on_missing_repository():
    thread = make_thread("4")
    del thread["repository"]
    with pytest.raises(KeyError):
        extract_subject_data(thread)


def test_extract_error_message_parses_json_message():
    err = api_error('{"message": "Bad credentials", "documentation_url": "https://docs"}')
    assert extract_error_message(err) == "Bad credentials"


@pytest.mark.parametrize("body", ["<html>502</html>", "[1, 2]", '{"error": "x"}'])
def test_extract_error_message_falls_back(body):
    err = api_error(body)
    message = extract_error_message(err)
    assert message.startswith("Failed to get error message from response:\n")
    assert body in message


@pytest.mark.asyncio
async def test_fetch_dispatches_records_once():
    threads = [
        make_thread("1"),
        make_thread(
            "2",
            subject_type="Issue",
            subject_url="https://api.github.com/repos/octo/hello/issues/7",
            comment_url="https://api.github.com/repos/octo/hello/issues/comments/55",
        ),
    ]
    client = FakeGitHubClient(
        threads=threads,
        comments={"55": {"body": "Looks good\r\nShip it", "user_login": "mona"}},
    )
    fetcher, store, display = make_fetcher(client)

    await fetcher.fetch()

    assert len(store.actions) == 1
    action = store.actions[0]
    assert isinstance(action, NotificationsAdded)
    assert action.check_time == 5000
    assert client.token == "secret-token"
    assert client.list_calls == [{"since": "1970-01-01T00:00:00.000Z", "participating": False}]
    assert client.comment_calls == [("issues", "octo", "hello", "55")]

    first, second = store.get_state().notifications
    assert first.id == "1"
    assert first.body is None and first.user_login is None
    assert second.id == "2"
    assert second.subject_url == "https://github.com/octo/hello/issues/7"
    assert second.body == "Looks good\r\nShip it"
    assert second.user_login == "mona"
    assert second.comment_id == "55"
    assert store.get_state().last_check_time == 5000
    assert display.alerts == []


@pytest.mark.asyncio
async def test_fetch_uses_last_check_time_and_participation_flag():
    client = FakeGitHubClient()
    fetcher, store, _ = make_fetcher(
        client,
        config=make_config(participating=True),
        state=ApplicationState(last_check_time=1_700_000_000_000),
    )

    await fetcher.fetch()

    assert client.list_calls == [{"since": "2023-11-14T22:13:20.000Z", "participating": True}]
    assert store.actions == [NotificationsAdded((), 5000)]


@pytest.mark.asyncio
async def test_check_time_captured_before_remote_call():
    ticks = iter([1000, 9999])
    client = FakeGitHubClient(threads=[make_thread("1")])
    fetcher, store, _ = make_fetcher(client, clock=lambda: next(ticks))

    await fetcher.fetch()

    assert store.get_state().last_check_time == 1000


@pytest.mark.asyncio
async def test_long_comment_body_is_truncated():
    thread = make_thread(
        "1", comment_url="https://api.github.com/repos/octo/hello/pulls/comments/1"
    )
    client = FakeGitHubClient(
        threads=[thread], comments={"1": {"body": "x" * 10_000, "user_login": "mona"}}
    )
    fetcher, store, _ = make_fetcher(client)

    await fetcher.fetch()

    (record,) = store.get_state().notifications
    assert MAX_MESSAGE_LENGTH == 500
    assert len(record.body) == 500


@pytest.mark.asyncio
async def test_malformed_thread_is_dropped_not_the_batch():
    broken = make_thread("bad")
    del broken["subject"]["type"]
    client = FakeGitHubClient(threads=[make_thread("1"), broken, "garbage", make_thread("2")])
    fetcher, store, _ = make_fetcher(client)

    await fetcher.fetch()

    assert [n.id for n in store.get_state().notifications] == ["1", "2"]
    assert len(store.actions) == 1


@pytest.mark.asyncio
async def test_api_error_dispatches_empty_batch_and_shows_error():
    client = FakeGitHubClient(error=api_error('{"message": "Bad credentials"}'))
    fetcher, store, display = make_fetcher(client, state=ApplicationState(last_check_time=10))

    await fetcher.fetch()

    assert store.actions == [NotificationsAdded((), 5000)]
    assert store.get_state().last_check_time == 5000
    assert display.alerts == [{
        "message": API_ERROR_TITLE,
        "description": "Bad credentials",
        "icon": None,
        "dismissable": True,
        "level": "error",
    }]


@pytest.mark.asyncio
async def test_comment_fetch_error_fails_whole_cycle():
    thread = make_thread(
        "1", comment_url="https://api.github.com/repos/octo/hello/pulls/comments/1"
    )
    client = FakeGitHubClient(
        threads=[make_thread("0"), thread], comment_error=api_error("not json", 500)
    )
    fetcher, store, display = make_fetcher(client)

    await fetcher.fetch()

    assert store.actions == [NotificationsAdded((), 5000)]
    assert store.get_state().notifications == ()
    assert display.alerts[0]["description"].startswith("Failed to get error message")


@pytest.mark.asyncio
async def test_missing_token_prompts_once(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    client = FakeGitHubClient(threads=[make_thread("1")])
    fetcher, store, display = make_fetcher(client, config=make_config(token=None))

    await fetcher.fetch()
    await fetcher.fetch()

    assert client.list_calls == []
    assert not any(isinstance(a, NotificationsAdded) for a in store.actions)
    assert len(store.actions) == 1
    assert store.get_state().has_prompted_for_token is True
    assert len(display.alerts) == 1
    assert display.alerts[0]["message"] == TOKEN_PROMPT_TITLE
    assert display.alerts[0]["level"] == "warning"


@pytest.mark.asyncio
async def test_environment_token_is_used_as_fallback(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "env-token")
    client = FakeGitHubClient()
    fetcher, store, display = make_fetcher(client, config=make_config(token=None))

    await fetcher.fetch()

    assert client.token == "env-token"
    assert store.actions == [NotificationsAdded((), 5000)]
    assert display.alerts == []


@pytest.mark.asyncio
async def test_on_dismiss_marks_thread_read_when_enabled():
    config = make_config(mark_read_on_dismiss=True)
    client = FakeGitHubClient(threads=[make_thread("42")])
    fetcher, store, _ = make_fetcher(client, config=config)

    await fetcher.fetch()
    (record,) = store.get_state().notifications
    record.on_dismiss()
    assert client.marked_read == ["42"]

    # The flag is read when the alert is dismissed, not when it was fetched
    config.polling.mark_read_on_dismiss = False
    record.on_dismiss()
    assert client.marked_read == ["42"]


@pytest.mark.asyncio
async def test_overlapping_fetches_dedupe_by_first_occurrence():
    client = FakeGitHubClient(threads=[make_thread("1"), make_thread("2")])
    fetcher, store, _ = make_fetcher(client)

    await asyncio.gather(fetcher.fetch(), fetcher.fetch())

    assert len(store.actions) == 2
    assert [n.id for n in store.get_state().notifications] == ["1", "2"]


@pytest.mark.asyncio
async def test_unrepresentable_check_time_still_dispatches_empty_batch():
    client = FakeGitHubClient(threads=[make_thread("1")])
    fetcher, store, display = make_fetcher(client, state=ApplicationState(last_check_time=10**17))

    await fetcher.fetch()

    assert store.actions == [NotificationsAdded((), 5000)]
    assert store.get_state().last_check_time == 5000
    assert client.list_calls == []
    assert display.alerts[0]["level"] == "error"

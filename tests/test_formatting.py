from github_notifier.formatting import (
    get_notification_description,
    get_notification_icon,
    get_notification_message,
    normalize_newlines,
    truncate_if_too_long,
)

from helpers import make_record


def test_truncate_caps_length():
    assert len(truncate_if_too_long("a" * 10_000, 500)) == 500
    assert truncate_if_too_long("short", 500) == "short"
    assert truncate_if_too_long(None, 500) is None


def test_normalize_newlines_adds_hard_breaks():
    assert normalize_newlines("foo\r\nbar\r\nmore lines") == "foo  \nbar  \nmore lines"


def test_normalize_newlines_keeps_existing_hard_breaks():
    assert normalize_newlines("foo  \nbar") == "foo  \nbar"


def test_normalize_newlines_single_line_untouched():
    assert normalize_newlines("just one line") == "just one line"


def test_description_with_and_without_body():
    assert get_notification_description("Title", None) == "**Title**"
    assert get_notification_description("Title", "") == "**Title**"
    assert get_notification_description("Title", "a\r\nb") == "**Title**  \na  \nb"


def test_message_for_pull_request_with_comment_author():
    record = make_record("1", user_login="mona")
    assert get_notification_message(record) == (
        "![](https://avatars.githubusercontent.com/u/1?v=4&size=17) **[octo/hello]**  \n"
        "Activity by @mona on [Pull Request #12](https://github.com/octo/hello/pull/12)"
    )


def test_message_for_commit_uses_short_sha():
    record = make_record(
        "2",
        subject_type="Commit",
        subject_id="6dcb09b5b57875f334f61aebed695e2e4193db5e",
        subject_url="https://github.com/octo/hello/commit/6dcb09b5b57875f334f61aebed695e2e4193db5e",
    )
    message = get_notification_message(record)
    assert message.endswith(
        "Activity on [Commit 6dcb09](https://github.com/octo/hello/commit/"
        "6dcb09b5b57875f334f61aebed695e2e4193db5e)"
    )


def test_icons():
    assert get_notification_icon("PullRequest") == "git-pull-request"
    assert get_notification_icon("Commit") == "git-commit"
    assert get_notification_icon("Issue") == "issue-opened"
    assert get_notification_icon("Release") is None


def test_normalize_newlines_pads_blank_lines():
    assert normalize_newlines("first\r\n\r\nsecond") == "first  \n  \nsecond"

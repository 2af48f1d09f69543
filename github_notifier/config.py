"""Configuration management."""

import os
from dataclasses import dataclass
from typing import Optional

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv is optional


@dataclass
class GitHubConfig:
    """GitHub API configuration."""
    token: Optional[str]     # personal access token; GITHUB_TOKEN is the fallback
    api_url: str             # e.g. "https://api.github.com"
    timeout_seconds: int = 30


@dataclass
class PollingConfig:
    """Polling and notification behaviour."""
    poll_interval_minutes: int
    show_only_direct_participation: bool
    mark_read_on_dismiss: bool


@dataclass
class TwilioConfig:
    """Twilio SMS configuration."""
    account_sid: str
    auth_token: str
    from_number: str
    to_number: str


@dataclass
class DisplayConfig:
    """Where alerts are delivered."""
    method: str  # "console" or "sms"
    twilio: Optional[TwilioConfig] = None


@dataclass
class AppConfig:
    """Complete application configuration."""
    db_path: str
    github: GitHubConfig
    polling: PollingConfig
    display: DisplayConfig


def _parse_bool_env(key: str, default: bool) -> bool:
    """Parse a true/false environment variable."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}")


def resolve_token(config: GitHubConfig) -> Optional[str]:
    """
    Resolve the GitHub token.

    The configured token wins; otherwise the GITHUB_TOKEN environment variable
    is used. Evaluated at fetch time so a token added later is picked up.
    """
    return config.token or os.getenv("GITHUB_TOKEN") or None


def load_config() -> AppConfig:
    """
    Load configuration from environment variables.

    Raises:
        ValueError: If configuration values are malformed or SMS delivery is
            selected without the Twilio settings.
    """
    # Database
    db_path = os.getenv("DB_PATH", "notifier_state.db")

    # GitHub
    token = os.getenv("GITHUB_NOTIFIER_TOKEN") or None
    api_url = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/")
    timeout_seconds = _parse_int_env("GITHUB_TIMEOUT_SECONDS", 30)

    # Polling
    poll_interval_minutes = _parse_int_env("POLL_INTERVAL_MINUTES", 1)
    if poll_interval_minutes < 1:
        raise ValueError("POLL_INTERVAL_MINUTES must be at least 1")
    show_only_direct_participation = _parse_bool_env("SHOW_ONLY_DIRECT_PARTICIPATION", False)
    mark_read_on_dismiss = _parse_bool_env("MARK_READ_ON_DISMISS", True)

    # Display
    display_method = os.getenv("DISPLAY_METHOD", "console").lower()
    if display_method not in ("console", "sms"):
        raise ValueError(f"DISPLAY_METHOD must be 'console' or 'sms', got {display_method!r}")

    twilio = None
    if display_method == "sms":
        twilio_account_sid = os.getenv("TWILIO_ACCOUNT_SID")
        twilio_auth_token = os.getenv("TWILIO_AUTH_TOKEN")
        twilio_from_number = os.getenv("TWILIO_FROM_NUMBER")
        twilio_to_number = os.getenv("TWILIO_TO_NUMBER")

        missing = []
        if not twilio_account_sid:
            missing.append("TWILIO_ACCOUNT_SID")
        if not twilio_auth_token:
            missing.append("TWILIO_AUTH_TOKEN")
        if not twilio_from_number:
            missing.append("TWILIO_FROM_NUMBER")
        if not twilio_to_number:
            missing.append("TWILIO_TO_NUMBER")

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        twilio = TwilioConfig(
            account_sid=twilio_account_sid,
            auth_token=twilio_auth_token,
            from_number=twilio_from_number,
            to_number=twilio_to_number,
        )

    return AppConfig(
        db_path=db_path,
        github=GitHubConfig(
            token=token,
            api_url=api_url,
            timeout_seconds=timeout_seconds,
        ),
        polling=PollingConfig(
            poll_interval_minutes=poll_interval_minutes,
            show_only_direct_participation=show_only_direct_participation,
            mark_read_on_dismiss=mark_read_on_dismiss,
        ),
        display=DisplayConfig(
            method=display_method,
            twilio=twilio,
        ),
    )

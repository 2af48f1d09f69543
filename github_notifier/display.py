"""Display surfaces that present alerts to the user."""

import logging
import re
import sys
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, TextIO

from .config import TwilioConfig
from .formatting import (
    get_notification_description,
    get_notification_icon,
    get_notification_message,
)
from .models import NotificationRecord

logger = logging.getLogger(__name__)

try:
    from twilio.rest import Client
    TWILIO_AVAILABLE = True
except ImportError:
    TWILIO_AVAILABLE = False
    logger.warning("Twilio library not installed. Install with: pip install twilio")


class AlertHandle:
    """A displayed alert that the user may dismiss."""

    def __init__(self, dismissable: bool = True):
        self.dismissable = dismissable
        self.dismissed = False
        self._callbacks: List[Callable[[], None]] = []

    def on_dismiss(self, callback: Optional[Callable[[], None]]) -> None:
        if callback is not None:
            self._callbacks.append(callback)

    def dismiss(self) -> None:
        """Dismiss the alert; callbacks run once even if called again."""
        if self.dismissed or not self.dismissable:
            return
        self.dismissed = True
        for callback in self._callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Dismiss callback failed: {e}", exc_info=True)


class DisplaySurface(ABC):
    """Abstract base class for alert surfaces."""

    @abstractmethod
    def show_alert(
        self,
        message: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        dismissable: bool = True,
        level: str = "info",
    ) -> AlertHandle:
        """
        Present one alert.

        Args:
            message: Markdown headline.
            description: Optional markdown body.
            icon: Optional icon name.
            dismissable: Whether the user can dismiss it.
            level: "info", "warning" or "error".

        Returns:
            A handle for dismiss callbacks.
        """
        pass


class ConsoleDisplaySurface(DisplaySurface):
    """Writes alerts to a text stream, stdout by default."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def show_alert(self, message, description=None, icon=None, dismissable=True, level="info"):
        prefix = f"[{level.upper()}]"
        if icon:
            prefix += f" ({icon})"
        lines = [f"{prefix} {message}"]
        if description:
            lines.append(description)
        self.stream.write("\n".join(lines) + "\n\n")
        self.stream.flush()
        return AlertHandle(dismissable=dismissable)


def markdown_to_plain_text(text: str) -> str:
    """Reduce the alert markdown to something readable in an SMS."""
    text = re.sub(r"!\[[^\]]*\]\([^)]*\)\s*", "", text)         # images
    text = re.sub(r"\[([^\]]+)\]\(([^)]+)\)", r"\1 (\2)", text)  # links
    text = text.replace("**", "")
    text = re.sub(r" +\n", "\n", text)
    return text.strip()


class SMSDisplaySurface(DisplaySurface):
    """Sends each alert as an SMS through Twilio."""

    def __init__(self, config: TwilioConfig):
        if not TWILIO_AVAILABLE:
            raise ImportError(
                "Twilio library not installed. Install with: pip install twilio"
            )
        self.config = config
        self.client = Client(config.account_sid, config.auth_token)

    def show_alert(self, message, description=None, icon=None, dismissable=True, level="info"):
        body = markdown_to_plain_text(message)
        if description:
            body += "\n\n" + markdown_to_plain_text(description)

        try:
            message_obj = self.client.messages.create(
                body=body,
                from_=self.config.from_number,
                to=self.config.to_number,
            )
            logger.info(f"SMS sent successfully. SID: {message_obj.sid}")
            logger.debug(f"Message preview: {body[:50]}...")
        except Exception as e:
            error_str = str(e)
            if "20003" in error_str or "Authenticate" in error_str or "401" in error_str:
                logger.error(
                    "Twilio authentication failed (Error 20003). "
                    "Check TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN."
                )
            else:
                logger.error(f"Failed to send SMS: {e}")
            raise

        # An SMS cannot be dismissed from here
        return AlertHandle(dismissable=False)


def create_display_surface(method: str, twilio: Optional[TwilioConfig] = None) -> DisplaySurface:
    """Create a display surface based on configuration."""
    if method == "sms":
        if twilio is None:
            raise ValueError("SMS display requires Twilio configuration")
        return SMSDisplaySurface(twilio)
    return ConsoleDisplaySurface()


def show_notification(display: DisplaySurface, record: NotificationRecord) -> AlertHandle:
    """Render one notification record and wire its dismiss callback."""
    handle = display.show_alert(
        get_notification_message(record),
        description=get_notification_description(record.title, record.body),
        icon=get_notification_icon(record.subject_type),
        dismissable=True,
    )
    handle.on_dismiss(record.on_dismiss)
    return handle

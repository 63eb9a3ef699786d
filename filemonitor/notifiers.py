"""
Notification channels for FileMonitor.

Exactly one channel is active per process, picked once by build_notifier():
  - WebhookNotifier: form POST to a push provider (ServerChan)
  - EmailNotifier: a single SMTP send to all recipients
Neither channel retries; a failure raises NotificationError.
"""

import logging
import smtplib
import time
from email.mime.text import MIMEText
from typing import Optional

import requests

from filemonitor.config import PROVIDERS, Config, EmailConfig, WebhookConfig
from filemonitor.events import NormalizedEvent

TITLE = "文件变动通知"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_BODY = "文件路径: {path}\n操作类型: {operation}\n时间: {time}"

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a notification could not be delivered."""

    pass


def format_body(event: NormalizedEvent, template: str = "", timestamp: Optional[str] = None) -> str:
    """
    Render the notification body for an event.

    Args:
        event: The event being announced.
        template: Optional str.format template using {path}, {operation}, {time}.
        timestamp: Override for the local time; defaults to now.
    """
    fields = {
        "path": event.path,
        "operation": str(event.operation),
        "time": timestamp or time.strftime(TIMESTAMP_FORMAT),
    }
    if template:
        try:
            return template.format(**fields)
        except Exception as e:
            logger.warning(f"Invalid notification template, using default body: {e}")
    return DEFAULT_BODY.format(**fields)


class Notifier:
    """Base class for notification channels."""

    name = "none"

    def send(self, event: NormalizedEvent) -> None:
        raise NotImplementedError


class WebhookNotifier(Notifier):
    name = "webhook"

    def __init__(self, config: WebhookConfig, session=None):
        self.config = config
        self.host = PROVIDERS[config.provider]
        self.http = session or requests

    @property
    def url(self) -> str:
        return f"https://{self.host}/{self.config.sendkey}.send"

    def send(self, event: NormalizedEvent) -> None:
        form = {
            "title": TITLE,
            "desp": format_body(event, self.config.template),
        }
        try:
            response = self.http.post(self.url, data=form, timeout=self.config.timeout)
        except requests.exceptions.RequestException as e:
            # The sendkey is part of the URL; keep it out of the message.
            raise NotificationError(
                f"failed to send request to {self.host}: {type(e).__name__}"
            ) from e
        if response.status_code != 200:
            raise NotificationError(f"unexpected status code: {response.status_code}")


class EmailNotifier(Notifier):
    name = "email"

    def __init__(self, config: EmailConfig, smtp_class=None):
        self.config = config
        self.smtp_class = smtp_class or smtplib.SMTP

    def build_message(self, event: NormalizedEvent) -> MIMEText:
        msg = MIMEText(format_body(event), "plain", "utf-8")
        msg["Subject"] = TITLE
        msg["From"] = self.config.sender or self.config.username
        msg["To"] = ",".join(self.config.to)
        return msg

    def send(self, event: NormalizedEvent) -> None:
        cfg = self.config
        msg = self.build_message(event)
        try:
            with self.smtp_class(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout) as server:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
                if cfg.username:
                    server.login(cfg.username, cfg.password)
                server.sendmail(msg["From"], list(cfg.to), msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                f"failed to send email via {cfg.smtp_host}:{cfg.smtp_port}: {e}"
            ) from e


def build_notifier(config: Config) -> Optional[Notifier]:
    """
    Resolve the configured channel into a notifier.

    Returns:
        Notifier or None when no channel is enabled.
    """
    if config.webhook.enabled:
        return WebhookNotifier(config.webhook)
    if config.email.enabled:
        return EmailNotifier(config.email)
    return None

# src/dev_task_scheduler/notify/email_notifier.py

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
import time
from email.message import EmailMessage

from ..core.errors import DeliveryError
from ..tasks.task_models import NotifierConfig, ReminderMessage

logger = logging.getLogger(__name__)


class EmailNotifier:
    """
    Notifier that sends reminders by SMTP over implicit TLS.

    Sender and default recipient are the configured address (reminders go to
    yourself). smtplib is blocking, so each call runs in a worker thread.

    A worker thread cannot be cancelled, so send carries its own deadline of
    timeout_seconds: when connect and login already used it up, the message is
    not handed to the server and DeliveryError is raised instead.
    """

    def __init__(self, config: NotifierConfig, *, timeout_seconds: float = 30.0) -> None:
        if not config.email or "@" not in config.email:
            raise ValueError("NotifierConfig.email must be an email address")
        self.config = config
        self.timeout_seconds = float(timeout_seconds)

    def _connect(self) -> smtplib.SMTP_SSL:
        ctx = ssl.create_default_context()
        client = smtplib.SMTP_SSL(
            self.config.smtp_host,
            int(self.config.smtp_port),
            timeout=self.timeout_seconds,
            context=ctx,
        )
        try:
            client.login(self.config.email, self.config.password)
        except BaseException:
            client.close()
            raise
        return client

    def _build(self, message: ReminderMessage) -> EmailMessage:
        mail = EmailMessage()
        mail["From"] = self.config.email
        mail["To"] = message.recipient or self.config.email
        mail["Subject"] = message.subject
        mail.set_content(message.body)
        return mail

    def _send_sync(self, message: ReminderMessage, deadline: float) -> None:
        mail = self._build(message)
        with self._connect() as client:
            if time.monotonic() >= deadline:
                raise DeliveryError(
                    f"Send deadline of {self.timeout_seconds:.1f}s passed before task {message.task_id} was sent"
                )
            client.send_message(mail)

    def _verify_sync(self) -> None:
        with self._connect() as client:
            client.noop()

    async def send(self, message: ReminderMessage) -> None:
        try:
            deadline = time.monotonic() + self.timeout_seconds
            await asyncio.to_thread(self._send_sync, message, deadline)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"Error sending email for task {message.task_id}: {exc}") from exc
        logger.debug("SMTP accepted reminder task_id=%s", message.task_id)

    async def verify(self) -> None:
        try:
            await asyncio.to_thread(self._verify_sync)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"Email verification failed for {self.config.email}: {exc}") from exc
        logger.info("SMTP credentials verified for %s", self.config.email)

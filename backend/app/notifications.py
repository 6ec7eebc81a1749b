"""
app/notifications.py
--------------------
Notification dispatchers: the sink for events raised by the assessment
pipeline.

A dispatcher decides how an event is persisted or delivered. The pipeline
only decides *which* events to raise, and treats every dispatch failure
(False return or exception) as non-fatal.

Dispatchers:
    LoggingNotificationDispatcher    → renders the template to the log
    WebhookNotificationDispatcher    → POSTs the event as JSON (httpx)
    CompositeNotificationDispatcher  → fans out, isolating each child
    db.supabase_client.SupabaseNotificationDispatcher → `notifications` table

All of them are safe to call from several worker threads at once.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

import httpx

from app.models import NotificationEvent, NotificationKind
from app.templates import template_for


class NotificationDispatcher(Protocol):
    def dispatch(self, event: NotificationEvent) -> bool: ...


class LoggingNotificationDispatcher:
    """Writes each notification to the log. Always succeeds."""

    _ALERT_KINDS = (NotificationKind.SEVERE_BP, NotificationKind.DANGEROUS_SYMPTOMS)

    def __init__(self, logger: logging.Logger | None = None):
        self._log = logger or logging.getLogger(__name__)

    def dispatch(self, event: NotificationEvent) -> bool:
        template = template_for(event)
        level = logging.WARNING if event.kind in self._ALERT_KINDS else logging.INFO

        self._log.log(
            level,
            "[NOTIFICATION] user=%s  kind=%s  payload=%s",
            event.user_id, event.kind.value, event.payload,
        )
        self._log.info("Subject: %s", template.subject)
        self._log.debug("Body: %s", template.body)
        self._log.debug("CTA: %s", template.call_to_action)
        return True


class WebhookNotificationDispatcher:
    """
    POST each event, with its rendered template, to a webhook URL.

    Timeouts and HTTP errors are logged and reported as False; the
    receiving service owns any retry policy.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        logger: logging.Logger | None = None,
    ):
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)
        self._log = logger or logging.getLogger(__name__)

    def dispatch(self, event: NotificationEvent) -> bool:
        template = template_for(event)
        payload = {
            **event.to_dict(),
            "subject": template.subject,
            "body": template.body,
            "call_to_action": template.call_to_action,
        }

        try:
            resp = self._client.post(self._url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._log.error(
                "Notification webhook rejected %s for user %s: HTTP %s - %s",
                event.kind.value, event.user_id,
                exc.response.status_code, exc.response.text,
            )
            return False
        except httpx.HTTPError as exc:
            self._log.error(
                "Notification webhook error for %s / user %s: %s",
                event.kind.value, event.user_id, exc,
            )
            return False

        self._log.info(
            "Notification %s delivered to webhook for user %s: HTTP %s",
            event.kind.value, event.user_id, resp.status_code,
        )
        return True

    def close(self) -> None:
        self._client.close()


class CompositeNotificationDispatcher:
    """
    Send every event to each child dispatcher.

    A child that fails or raises does not stop the others. Returns True
    only if every child succeeded.
    """

    def __init__(
        self,
        dispatchers: Sequence[NotificationDispatcher],
        logger: logging.Logger | None = None,
    ):
        self._dispatchers = tuple(dispatchers)
        self._log = logger or logging.getLogger(__name__)

    def dispatch(self, event: NotificationEvent) -> bool:
        ok = True
        for dispatcher in self._dispatchers:
            try:
                ok = bool(dispatcher.dispatch(event)) and ok
            except Exception as exc:
                self._log.error(
                    "%s failed for %s / user %s: %s",
                    type(dispatcher).__name__, event.kind.value, event.user_id, exc,
                    exc_info=True,
                )
                ok = False
        return ok

    def close(self) -> None:
        """Release every child that holds a resource (e.g. an HTTP client)."""
        for dispatcher in self._dispatchers:
            close = getattr(dispatcher, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as exc:
                self._log.warning(
                    "Closing %s failed: %s", type(dispatcher).__name__, exc
                )

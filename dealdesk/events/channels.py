"""Event channel implementations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx
from rich.console import Console

from dealdesk.config import WebhookConfig
from dealdesk.models import DomainEvent, EventName

logger = logging.getLogger(__name__)


class BaseChannel(ABC):
    @abstractmethod
    def send(self, event: DomainEvent) -> None: ...


class ConsoleChannel(BaseChannel):
    """Prints one line per event to the terminal with rich formatting."""

    EVENT_COLORS = {
        EventName.ANALYSIS_COMPLETED: "cyan",
        EventName.DEAL_STATUS_CHANGED: "green",
        EventName.OFFER_SUBMITTED: "yellow",
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def send(self, event: DomainEvent) -> None:
        color = self.EVENT_COLORS.get(event.name, "white")
        parts = [f"[bold {color}]{event.name.value.upper().replace('_', ' ')}[/bold {color}]"]
        if event.deal_id:
            parts.append(f"deal={event.deal_id}")
        if event.snapshot_id:
            parts.append(f"snapshot={event.snapshot_id}")
        parts.extend(f"{k}={v}" for k, v in event.data.items())
        self.console.print(" ".join(parts))


class WebhookChannel(BaseChannel):
    """Posts events as JSON to webhook URLs (Slack, Discord bots, etc.)."""

    def __init__(self, config: WebhookConfig, client: httpx.Client | None = None):
        self.config = config
        self._client = client

    def send(self, event: DomainEvent) -> None:
        payload = {
            "text": f"DealDesk: {event.name.value} {event.deal_id or ''}".strip(),
            "event": event.model_dump(mode="json"),
        }

        client = self._client or httpx.Client(timeout=self.config.timeout_seconds)
        try:
            for url in self.config.urls:
                try:
                    resp = client.post(url, json=payload)
                    resp.raise_for_status()
                except httpx.HTTPError as e:
                    logger.error("Webhook failed for %s: %s", url, e)
        finally:
            if self._client is None:
                client.close()

        logger.debug("Webhook event %s sent", event.name.value)

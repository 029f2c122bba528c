"""Event dispatcher that fans domain events out to subscribers and channels."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from dealdesk.config import EventsConfig
from dealdesk.models import DomainEvent, EventName
from dealdesk.events.channels import BaseChannel, ConsoleChannel, WebhookChannel

logger = logging.getLogger(__name__)

Subscriber = Callable[[DomainEvent], None]


class EventDispatcher:
    """Delivers each event to in-process subscribers and configured channels.

    Delivery failures are logged and swallowed: a broken collaborator must
    never undo or block a deal mutation that already happened.
    """

    def __init__(self, config: EventsConfig | None = None):
        self.config = config or EventsConfig()
        self._subscribers: dict[EventName | None, list[Subscriber]] = defaultdict(list)
        self._channels: dict[str, BaseChannel] = {}

        if "console" in self.config.channels:
            self._channels["console"] = ConsoleChannel()
        if "webhook" in self.config.channels and self.config.webhook.urls:
            self._channels["webhook"] = WebhookChannel(self.config.webhook)

    def subscribe(self, handler: Subscriber, event: EventName | None = None) -> None:
        """Register ``handler`` for one event name, or for every event."""
        self._subscribers[event].append(handler)

    def add_channel(self, name: str, channel: BaseChannel) -> None:
        self._channels[name] = channel

    def publish(self, event: DomainEvent) -> list[str]:
        """Deliver an event. Returns the names of channels that accepted it."""
        handlers = [*self._subscribers[event.name], *self._subscribers[None]]
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error("Subscriber %r failed on %s: %s", handler, event.name.value, e)

        sent: list[str] = []
        for name, channel in self._channels.items():
            try:
                channel.send(event)
                sent.append(name)
            except Exception as e:
                logger.error("Failed to send %s via %s: %s", event.name.value, name, e)
        return sent

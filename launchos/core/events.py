"""Event system for deployment status updates (Server-Sent Events)."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any
from uuid import UUID

from launchos.models.deployment import Deployment
from launchos.utils.clock import utc_now

TERMINAL_EVENTS = ("deployment_success", "deployment_failed")


@dataclass
class Event:
    """An SSE event."""

    event_type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=utc_now)

    def to_json(self) -> str:
        """Event payload as sent in the SSE ``data`` field."""
        return json.dumps({**self.data, "timestamp": self.timestamp.isoformat()})


class EventBus:
    """Fan-out of deployment events to the subscribers of a project."""

    def __init__(self):
        self._subscribers: dict[UUID, list[asyncio.Queue[Event]]] = {}

    def subscribe(self, project_id: UUID) -> asyncio.Queue[Event]:
        """Subscribe to events for a project."""
        queue: asyncio.Queue[Event] = asyncio.Queue()
        self._subscribers.setdefault(project_id, []).append(queue)
        return queue

    def unsubscribe(self, project_id: UUID, queue: asyncio.Queue[Event]) -> None:
        """Drop one subscription."""
        queues = self._subscribers.get(project_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(project_id, None)

    def subscriber_count(self, project_id: UUID) -> int:
        return len(self._subscribers.get(project_id, []))

    async def publish(self, project_id: UUID, event: Event) -> None:
        """Publish an event for a project."""
        for queue in list(self._subscribers.get(project_id, [])):
            await queue.put(event)

    async def publish_deployment(self, deployment: Deployment) -> None:
        """Publish a deployment's current status."""
        await self.publish(
            deployment.project_id,
            Event(
                event_type=f"deployment_{deployment.status.value}",
                data={
                    "deployment_id": str(deployment.id),
                    "build_id": deployment.build_id,
                    "branch": deployment.branch,
                    "status": deployment.status.value,
                },
            ),
        )


@lru_cache
def get_event_bus() -> EventBus:
    """Get the event bus singleton."""
    return EventBus()

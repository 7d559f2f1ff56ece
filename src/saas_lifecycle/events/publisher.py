"""Publishers that hand subscription events to a downstream event bus."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections import deque
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from saas_lifecycle.config import get_settings
from saas_lifecycle.events.models import EventEnvelope, SubscriptionEvent
from saas_lifecycle.exceptions import EventPublishError

if TYPE_CHECKING:
    from google.cloud import pubsub_v1

logger = logging.getLogger(__name__)

EVENT_GRID_API_VERSION = "2018-01-01"


class SubscriptionEventPublisher(ABC):
    """Base class for subscription event publishers.

    Publishing stamps the event time, wraps the event in an EventEnvelope
    and hands it to the transport. The call returns once the transport has
    accepted the event; delivery retries are the transport's concern.
    """

    def __init__(self, subject_prefix: str | None = None) -> None:
        """Initialize the publisher.

        Args:
            subject_prefix: Prefix for event subjects (uses settings if not provided).
        """
        prefix = subject_prefix if subject_prefix is not None else get_settings().event_subject_prefix
        self._subject_prefix = prefix.strip("/")

    def subject_for(self, subscription_id: str) -> str:
        """Build the subject path for a subscription."""
        if not self._subject_prefix:
            return subscription_id
        return f"{self._subject_prefix}/{subscription_id}"

    def _build_envelope(self, event: SubscriptionEvent) -> EventEnvelope:
        """Wrap a time-stamped event in its transport envelope."""
        return EventEnvelope(
            id=event.event_id,
            subject=self.subject_for(event.subscription_id),
            event_type=event.event_type.value,
            event_time=event.event_time,
            data_version=event.event_version,
            data=event.model_dump(mode="json"),
        )

    async def publish(self, event: SubscriptionEvent) -> EventEnvelope:
        """Publish a subscription event.

        Args:
            event: The event to publish.

        Returns:
            The envelope that was handed to the transport.

        Raises:
            EventPublishError: If the transport did not accept the event.
        """
        event.event_time = datetime.now(UTC)
        envelope = self._build_envelope(event)

        try:
            await self._send(envelope)
        except EventPublishError:
            logger.exception("Failed to publish event [%s]", event.event_id)
            raise
        except Exception as e:
            logger.exception(
                "An error occurred while attempting to publish event [%s] to %s",
                event.event_id,
                self.destination,
            )
            raise EventPublishError(
                f"Unable to publish event [{event.event_id}]: {e}",
                event_id=event.event_id,
            ) from e

        logger.info(
            "Published event [%s] (type=%s, subject=%s)",
            envelope.id,
            envelope.event_type,
            envelope.subject,
        )
        return envelope

    @property
    @abstractmethod
    def destination(self) -> str:
        """Human-readable description of where events go."""

    @abstractmethod
    async def _send(self, envelope: EventEnvelope) -> None:
        """Hand an envelope to the transport."""


class EventGridSubscriptionEventPublisher(SubscriptionEventPublisher):
    """Publishes events to an Azure Event Grid custom topic."""

    def __init__(
        self,
        topic_endpoint: str | None = None,
        topic_key: str | None = None,
        subject_prefix: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Event Grid publisher.

        Args:
            topic_endpoint: Custom topic endpoint URL. Defaults to settings.
            topic_key: Custom topic access key. Defaults to settings.
            subject_prefix: Prefix for event subjects. Defaults to settings.
            http_client: Optional HTTP client for testing.
        """
        super().__init__(subject_prefix)
        settings = get_settings()
        self._topic_endpoint = topic_endpoint or settings.event_grid_topic_endpoint
        self._topic_key = topic_key or settings.event_grid_topic_key
        self._http_client = http_client

        if not self._topic_endpoint or not self._topic_key:
            raise ValueError("Event Grid topic endpoint and key must be configured")

    @property
    def destination(self) -> str:
        return f"Event Grid topic [{httpx.URL(self._topic_endpoint).host}]"

    async def _send(self, envelope: EventEnvelope) -> None:
        payload = [envelope.model_dump(mode="json", by_alias=True)]
        headers = {"aeg-sas-key": self._topic_key}
        params = {"api-version": EVENT_GRID_API_VERSION}

        if self._http_client:
            response = await self._http_client.post(
                self._topic_endpoint,
                json=payload,
                headers=headers,
                params=params,
            )
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self._topic_endpoint,
                    json=payload,
                    headers=headers,
                    params=params,
                    timeout=30.0,
                )

        if not response.is_success:
            raise EventPublishError(
                f"Event Grid rejected event [{envelope.id}] "
                f"(status={response.status_code}): {response.text}",
                event_id=envelope.id,
            )


class PubSubSubscriptionEventPublisher(SubscriptionEventPublisher):
    """Publishes events to a Google Cloud Pub/Sub topic.

    The message body is the JSON envelope; event ID, type and subject are
    also set as message attributes for subscription filtering.
    """

    def __init__(
        self,
        project_id: str | None = None,
        topic_id: str | None = None,
        subject_prefix: str | None = None,
        publisher_client: pubsub_v1.PublisherClient | Any | None = None,
    ) -> None:
        """Initialize the Pub/Sub publisher.

        Args:
            project_id: GCP project ID (uses settings if not provided).
            topic_id: Pub/Sub topic ID (uses settings if not provided).
            subject_prefix: Prefix for event subjects. Defaults to settings.
            publisher_client: Optional publisher client for testing.
        """
        super().__init__(subject_prefix)
        settings = get_settings()
        self._project_id = project_id or settings.pubsub_project_id
        self._topic_id = topic_id or settings.pubsub_topic_id
        self._publisher = publisher_client

    @property
    def topic_path(self) -> str:
        """Get the full topic path."""
        if not self._project_id:
            raise ValueError("Project ID not configured")
        return f"projects/{self._project_id}/topics/{self._topic_id}"

    @property
    def destination(self) -> str:
        return f"Pub/Sub topic [{self._topic_id}]"

    def _get_publisher(self) -> Any:
        if self._publisher is None:
            from google.cloud import pubsub_v1

            self._publisher = pubsub_v1.PublisherClient()
        return self._publisher

    async def _send(self, envelope: EventEnvelope) -> None:
        data = json.dumps(envelope.model_dump(mode="json", by_alias=True)).encode("utf-8")
        future = self._get_publisher().publish(
            self.topic_path,
            data,
            event_id=envelope.id,
            event_type=envelope.event_type,
            subject=envelope.subject,
        )
        message_id = await asyncio.to_thread(future.result)
        logger.debug("Pub/Sub accepted event [%s] as message %s", envelope.id, message_id)


class InMemorySubscriptionEventPublisher(SubscriptionEventPublisher):
    """Keeps the most recently published envelopes in memory.

    Intended for development deployments without an event bus. Only the
    last ``max_events`` envelopes are kept.
    """

    def __init__(
        self,
        subject_prefix: str | None = None,
        max_events: int | None = None,
    ) -> None:
        super().__init__(subject_prefix)
        maxlen = max_events if max_events is not None else get_settings().event_memory_max_events
        self.published: deque[EventEnvelope] = deque(maxlen=maxlen)

    @property
    def destination(self) -> str:
        return "in-memory event log"

    async def _send(self, envelope: EventEnvelope) -> None:
        self.published.append(envelope)


# Global publisher instance
_event_publisher: SubscriptionEventPublisher | None = None


def get_event_publisher() -> SubscriptionEventPublisher:
    """Get the global subscription event publisher.

    Returns:
        The publisher selected by the EVENT_PUBLISHER setting.
    """
    global _event_publisher
    if _event_publisher is None:
        kind = get_settings().event_publisher
        if kind == "event_grid":
            _event_publisher = EventGridSubscriptionEventPublisher()
        elif kind == "pubsub":
            _event_publisher = PubSubSubscriptionEventPublisher()
        else:
            _event_publisher = InMemorySubscriptionEventPublisher()
        logger.info("Publishing subscription events to %s", _event_publisher.destination)
    return _event_publisher

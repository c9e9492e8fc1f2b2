from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

import orjson

from .datastructures.notification import Notification, ServiceEndpoint
from .datastructures.type_aliases import NamespaceName, NotificationId
from .exceptions import MalformedResponseError


class Serializer(ABC):
    """Abstract base class for data serialization."""

    @abstractmethod
    def serialize(self, data: Any) -> bytes:
        """Serializes data into bytes."""
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserializes bytes into data."""
        pass


class JsonSerializer(Serializer):
    """Serializer implementation using orjson for JSON serialization."""

    def serialize(self, data: Any) -> bytes:
        """Serializes data to JSON bytes using orjson."""
        return orjson.dumps(data)

    def deserialize(self, data: bytes) -> Any:
        """Deserializes JSON bytes to data using orjson."""
        try:
            return orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise MalformedResponseError(f"Invalid JSON body: {e}") from e


class NotificationCodec:
    """Wire codec for the notifications/v2 long-poll contract."""

    def __init__(self, serializer: Serializer | None = None) -> None:
        self.serializer = serializer or JsonSerializer()

    def encode_table(self, table: Mapping[NamespaceName, NotificationId]) -> str:
        """Encode a notifications table snapshot as a compact JSON array."""
        return self.encode(
            Notification(namespace_name=name, notification_id=notification_id)
            for name, notification_id in table.items()
        )

    def encode(self, notifications: Iterable[Notification]) -> str:
        payload = [notification.to_wire() for notification in notifications]
        return self.serializer.serialize(payload).decode("utf-8")

    def decode(self, body: bytes | str | None) -> list[Notification]:
        """Decode a 200 response body. Empty bodies decode to no notifications."""
        if body is None:
            return []
        if isinstance(body, str):
            body = body.encode("utf-8")
        if not body.strip():
            return []
        data = self.serializer.deserialize(body)
        if data is None:
            return []
        if not isinstance(data, list):
            raise MalformedResponseError(
                f"Expected a JSON array of notifications, got {type(data).__name__}"
            )
        return [Notification.from_wire(entry) for entry in data]

    def decode_services(self, body: bytes | str | None) -> list[ServiceEndpoint]:
        """Decode a meta server services/config response."""
        if not body:
            return []
        if isinstance(body, str):
            body = body.encode("utf-8")
        data = self.serializer.deserialize(body)
        if not isinstance(data, list):
            raise MalformedResponseError(
                f"Expected a JSON array of services, got {type(data).__name__}"
            )
        return [ServiceEndpoint.from_wire(entry) for entry in data]

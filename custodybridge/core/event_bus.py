"""Event bus — routes transfer and invalidation records to handlers.

Events are validated Pydantic models. The bus keeps nothing once they
have been dispatched.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from custodybridge.models.events import EVENT_TYPE_MAP, BridgeEvent, EventKind

EventHandler = Callable[[BridgeEvent], None]


class EventValidationError(ValueError):
    """Raised when a serialized event cannot be decoded."""


def canonical_json_bytes(obj: Any) -> bytes:
    """Deterministic JSON: sorted keys, compact separators, ASCII, UTF-8."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


class EventBus:
    """Dispatches events to handlers registered per ``EventKind``."""

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[EventHandler]] = {
            kind: [] for kind in EventKind
        }

    def register_handler(self, kind: EventKind, handler: EventHandler) -> None:
        """Register a handler for a specific event kind."""
        self._handlers[kind].append(handler)

    def emit(self, event: BridgeEvent) -> str:
        """Dispatch *event* to its handlers and return its event_id."""
        for handler in self._handlers.get(event.event_kind, []):
            handler(event)
        return event.event_id

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @staticmethod
    def serialize(event: BridgeEvent) -> bytes:
        """Serialize an event to canonical JSON bytes."""
        return canonical_json_bytes(event.model_dump(mode="json"))

    @staticmethod
    def deserialize(raw_json: bytes | str) -> BridgeEvent:
        """Decode canonical JSON back into the matching event model."""
        if isinstance(raw_json, bytes):
            raw_json = raw_json.decode("utf-8")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as exc:
            raise EventValidationError(f"Invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise EventValidationError(
                f"Event must be a JSON object, got {type(data).__name__}"
            )

        try:
            kind = EventKind(data.get("event_kind"))
        except ValueError as exc:
            raise EventValidationError(
                f"Unknown event_kind: {data.get('event_kind')!r}"
            ) from exc

        try:
            return EVENT_TYPE_MAP[kind].model_validate(data)
        except Exception as exc:
            raise EventValidationError(f"Event validation failed: {exc}") from exc

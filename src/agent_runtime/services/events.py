"""Best-effort event emission."""

import logging
from typing import Any, Dict, List, Optional

from agent_runtime.models.event import RuntimeEvent
from agent_runtime.services.interfaces import EventSink


logger = logging.getLogger(__name__)


def emit_event(sink: Optional[EventSink], event_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
    """Emit an event if a sink is configured.

    Sink failures are logged and never reach the caller.
    """
    if sink is None:
        return

    try:
        sink.emit(RuntimeEvent(type=event_type, payload=payload or {}))
    except Exception as e:
        logger.warning(f"Event sink failed for {event_type}: {e}")


class RecordingEventSink:
    """In-memory sink that keeps every emitted event."""

    def __init__(self):
        self.events: List[RuntimeEvent] = []

    def emit(self, event: RuntimeEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[RuntimeEvent]:
        return [event for event in self.events if event.type == event_type]

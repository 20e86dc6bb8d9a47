"""Runtime event model for best-effort event emission."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field


class RuntimeEvent(BaseModel):
    """A typed notification emitted to an event sink."""

    type: str = Field(..., min_length=1, description="Event type")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Event payload")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

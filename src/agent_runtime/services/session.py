"""Session aggregate with crash-recoverable persistence.

Operations that matter for recovery (recording a tool call, changing
status, failing, advancing the turn counter, linking a child, ending)
persist the full record before returning, so a reload after a crash
resumes from ``last_turn_index``.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from agent_runtime.lib.errors import NestingDepthError
from agent_runtime.lib.logging_config import SecurityEventLogger
from agent_runtime.models.cost import LimitCheckResult
from agent_runtime.models.governance import ValidationResult
from agent_runtime.models.message import Message, MessageRole, ToolCall
from agent_runtime.models.session_data import (
    TERMINAL_STATUSES,
    SessionData,
    SessionError,
    SessionOutcome,
    SessionStatus,
    SessionSummary,
    SessionTokenUsage,
    SessionToolCall,
)
from agent_runtime.models.tool import ToolResult
from agent_runtime.services.cost_tracker import CostTracker
from agent_runtime.services.session_store import SessionStore


logger = logging.getLogger(__name__)


class Session:
    """One bounded, persisted run of an agent."""

    def __init__(self, data: SessionData, store: SessionStore, cost_tracker: Optional[CostTracker] = None):
        self._data = data
        self.store = store
        self.cost_tracker = cost_tracker
        self.security_log = SecurityEventLogger()

    @classmethod
    def create(
        cls,
        store: SessionStore,
        role: str,
        model: str,
        chain_id: Optional[str] = None,
        task_id: Optional[str] = None,
        parent_session_id: Optional[str] = None,
        nesting_depth: int = 0,
        cost_tracker: Optional[CostTracker] = None
    ) -> "Session":
        """Create a fresh session with a new id. Nothing is written yet."""
        data = SessionData(
            role=role,
            model=model,
            chain_id=chain_id,
            task_id=task_id,
            parent_session_id=parent_session_id,
            nesting_depth=nesting_depth,
        )
        logger.info(f"Created session {data.id} (role={role}, depth={nesting_depth})")
        return cls(data, store, cost_tracker)

    @classmethod
    async def restore(
        cls,
        store: SessionStore,
        session_id: str,
        cost_tracker: Optional[CostTracker] = None
    ) -> Optional["Session"]:
        """Reload a persisted session by id, or None if it does not exist.

        A cost tracker passed in is seeded with the persisted token usage.
        """
        data = await store.load(session_id)
        if data is None:
            return None
        if cost_tracker is not None:
            cost_tracker.add_usage(data.token_usage.input, data.token_usage.output)
        logger.info(f"Restored session {session_id} at turn {data.last_turn_index}")
        return cls(data, store, cost_tracker)

    def create_child(
        self,
        role: str,
        max_nesting_depth: int,
        model: Optional[str] = None,
        chain_id: Optional[str] = None,
        task_id: Optional[str] = None
    ) -> "Session":
        """Create a child one level deeper, inheriting chain and task.

        Raises:
            NestingDepthError: If the child would exceed max_nesting_depth
        """
        depth = self.nesting_depth + 1
        if depth > max_nesting_depth:
            raise NestingDepthError(
                f"Maximum nesting depth ({max_nesting_depth}) would be exceeded. "
                f"Current depth: {self.nesting_depth}"
            )
        return Session.create(
            self.store,
            role=role,
            model=model or self.model,
            chain_id=chain_id or self.chain_id,
            task_id=task_id or self.task_id,
            parent_session_id=self.id,
            nesting_depth=depth,
        )

    @property
    def id(self) -> str:
        return self._data.id

    @property
    def role(self) -> str:
        return self._data.role

    @property
    def model(self) -> str:
        return self._data.model

    @property
    def chain_id(self) -> Optional[str]:
        return self._data.chain_id

    @property
    def task_id(self) -> Optional[str]:
        return self._data.task_id

    @property
    def status(self) -> str:
        return self._data.status

    @property
    def outcome(self) -> Optional[str]:
        return self._data.outcome

    @property
    def error(self) -> Optional[SessionError]:
        return self._data.error

    @property
    def nesting_depth(self) -> int:
        return self._data.nesting_depth

    @property
    def parent_session_id(self) -> Optional[str]:
        return self._data.parent_session_id

    @property
    def child_session_ids(self) -> List[str]:
        return list(self._data.child_session_ids)

    @property
    def token_usage(self) -> SessionTokenUsage:
        return self._data.token_usage.model_copy()

    @property
    def last_turn_index(self) -> int:
        return self._data.last_turn_index

    @property
    def start_time(self) -> datetime:
        return self._data.start_time

    @property
    def end_time(self) -> Optional[datetime]:
        return self._data.end_time

    @property
    def messages(self) -> List[Message]:
        return [message.model_copy(deep=True) for message in self._data.messages]

    @property
    def tool_calls(self) -> List[SessionToolCall]:
        return [call.model_copy(deep=True) for call in self._data.tool_calls]

    def is_root(self) -> bool:
        return self._data.parent_session_id is None

    def is_terminal(self) -> bool:
        return self._data.status in TERMINAL_STATUSES

    def add_message(self, message: Message) -> None:
        """Append a message. Persisted with the next recovery checkpoint.

        Raises:
            ValueError: If a tool message answers a call no earlier assistant
                message issued
        """
        if message.role == MessageRole.TOOL and message.tool_call_id not in self._issued_call_ids():
            raise ValueError(
                f"Tool message references unknown tool call {message.tool_call_id} in session {self.id}"
            )
        self._data.messages.append(message)

    def _issued_call_ids(self) -> List[str]:
        return [
            call.id
            for message in self._data.messages
            if message.role == MessageRole.ASSISTANT
            for call in message.tool_calls
        ]

    def update_token_usage(self, input_tokens: int, output_tokens: int) -> SessionTokenUsage:
        """Add to the cumulative token counts; the total is recomputed."""
        current = self._data.token_usage
        self._data.token_usage = SessionTokenUsage(
            input=current.input + input_tokens,
            output=current.output + output_tokens,
        )
        if self.cost_tracker is not None:
            self.cost_tracker.add_usage(input_tokens, output_tokens)
            limits = self.cost_tracker.check_limits()
            if limits.warning:
                logger.warning(f"Session {self.id}: {limits.message}")
        return self.token_usage

    def check_cost_limits(self) -> LimitCheckResult:
        """Limit status from the cost tracker; no limits without one."""
        if self.cost_tracker is None:
            return LimitCheckResult()
        return self.cost_tracker.check_limits()

    async def record_tool_call(
        self,
        tool_call: ToolCall,
        result: ToolResult,
        validation: ValidationResult
    ) -> SessionToolCall:
        """Log a tool call with its result and governance verdict, then persist."""
        record = SessionToolCall(
            id=tool_call.id,
            name=tool_call.name,
            params=dict(tool_call.arguments),
            result=result.model_dump(mode="json"),
            governance_result=validation.model_dump(mode="json", exclude_none=True),
        )
        self._data.tool_calls.append(record)
        await self.save()
        return record.model_copy(deep=True)

    async def set_status(self, status: SessionStatus) -> None:
        """Move between running and paused. Terminal states go through end()."""
        value = SessionStatus(status).value
        if value in TERMINAL_STATUSES:
            raise ValueError(f"Use end() to move session {self.id} to {value}")
        self._ensure_not_ended()
        self._data.status = value
        await self.save()
        self.security_log.log_session_event("status_changed", self.id, role=self.role, status=value)

    async def increment_turn_index(self) -> int:
        """Advance the recovery checkpoint and persist."""
        self._data.last_turn_index += 1
        await self.save()
        return self._data.last_turn_index

    async def add_child_session(self, child_session_id: str) -> None:
        if child_session_id not in self._data.child_session_ids:
            self._data.child_session_ids.append(child_session_id)
        await self.save()

    async def set_failed(self, error: BaseException, recoverable: bool = False) -> None:
        """Record the failure details and end the session as failed."""
        self._ensure_not_ended()
        self._data.error = SessionError(
            message=str(error) or type(error).__name__,
            stack="".join(traceback.format_exception(type(error), error, error.__traceback__)) or None,
            recoverable=recoverable,
        )
        await self.end(SessionOutcome.FAILURE)

    async def end(self, outcome: SessionOutcome) -> None:
        """Finish the session; success completes it, anything else fails it."""
        self._ensure_not_ended()
        outcome_value = SessionOutcome(outcome).value
        self._data.outcome = outcome_value
        self._data.status = (
            SessionStatus.COMPLETED.value
            if outcome_value == SessionOutcome.SUCCESS.value
            else SessionStatus.FAILED.value
        )
        self._data.end_time = datetime.now(timezone.utc)
        await self.save()
        self.security_log.log_session_event(
            "session_ended",
            self.id,
            role=self.role,
            status=self._data.status,
            metadata={"outcome": outcome_value, "total_tokens": self._data.token_usage.total}
        )

    def _ensure_not_ended(self) -> None:
        if self.is_terminal():
            raise ValueError(f"Session {self.id} has already ended with status {self.status}")

    async def save(self) -> None:
        await self.store.save(self._data)

    def to_dict(self) -> Dict[str, Any]:
        """Detached JSON-compatible copy of the full record."""
        return self._data.model_dump(mode="json")

    def summary(self) -> SessionSummary:
        return SessionSummary(
            id=self.id,
            role=self.role,
            status=self.status,
            start_time=self.start_time,
            end_time=self.end_time,
            total_tokens=self._data.token_usage.total,
            chain_id=self.chain_id,
            task_id=self.task_id,
            nesting_depth=self.nesting_depth,
            parent_session_id=self.parent_session_id,
        )

"""
Unit tests for runtime data models.

Covers the invariants the models enforce on their own: validation
result reasons, derived token totals, tool message references and
session nesting.
"""

import pytest
from pydantic import ValidationError

from agent_runtime.models.governance import FileRule, GovernanceSchema, ValidationResult
from agent_runtime.models.message import ChatResponse, Message, MessageRole, StopReason, ToolCall
from agent_runtime.models.session_data import SessionData, SessionTokenUsage, generate_session_id
from agent_runtime.models.spawn import SpawnPolicy, can_spawn_role
from agent_runtime.models.tool import ToolParameterProperty, ToolParameterSchema, ToolResult
from agent_runtime.tools.definitions import BUILTIN_TOOLS_BY_NAME


class TestValidationResult:
    """Reason present iff the call is denied."""

    def test_allow_has_no_reason(self):
        result = ValidationResult.allow()
        assert result.allowed is True
        assert result.reason is None

    def test_deny_requires_reason(self):
        with pytest.raises(ValidationError):
            ValidationResult(allowed=False)

    def test_allow_rejects_reason(self):
        with pytest.raises(ValidationError):
            ValidationResult(allowed=True, reason="not needed")


class TestMessages:
    """Message and chat response shapes."""

    def test_tool_message_requires_call_reference(self):
        with pytest.raises(ValidationError):
            Message(role=MessageRole.TOOL, content="result")

    def test_tool_message_factory(self):
        message = Message.tool("ok", tool_call_id="call-1", tool_name="read_file")
        assert message.role == "tool"
        assert message.tool_call_id == "call-1"

    def test_tool_calls_force_tool_use(self):
        response = ChatResponse(
            content="",
            tool_calls=[ToolCall(id="1", name="read_file", arguments={"path": "a"})],
            stop_reason=StopReason.END_TURN,
        )
        assert response.stop_reason == StopReason.TOOL_USE

    def test_defaults_to_end_turn(self):
        assert ChatResponse(content="done").stop_reason == StopReason.END_TURN


class TestSessionData:
    """Session record invariants."""

    def test_generated_id_format(self):
        session_id = generate_session_id()
        prefix, date, time, suffix = session_id.split("-")
        assert prefix == "session"
        assert len(date) == 8 and date.isdigit()
        assert len(time) == 6 and time.isdigit()
        assert len(suffix) == 6
        int(suffix, 16)

    def test_ids_are_unique(self):
        assert len({generate_session_id() for _ in range(50)}) == 50

    def test_total_is_derived(self):
        usage = SessionTokenUsage(input=10, output=5, total=999)
        assert usage.total == 15

    def test_root_session_depth_zero(self):
        with pytest.raises(ValidationError):
            SessionData(role="impl", model="m", nesting_depth=1)

    def test_child_session_needs_depth(self):
        with pytest.raises(ValidationError):
            SessionData(role="impl", model="m", parent_session_id="session-x", nesting_depth=0)

    def test_defaults(self):
        data = SessionData(role="impl", model="m")
        assert data.status == "running"
        assert data.last_turn_index == 0
        assert data.token_usage.total == 0


class TestToolModels:
    """Tool definitions and results."""

    def test_required_parameters_must_be_declared(self):
        with pytest.raises(ValidationError):
            ToolParameterSchema(
                properties={"path": ToolParameterProperty(type="string")},
                required=["path", "content"],
            )

    def test_json_schema_omits_unset_fields(self):
        schema = BUILTIN_TOOLS_BY_NAME["read_file"].parameters.to_json_schema()
        assert schema["type"] == "object"
        assert schema["required"] == ["path"]
        assert "enum" not in schema["properties"]["path"]

    def test_write_file_is_path_governed(self):
        assert BUILTIN_TOOLS_BY_NAME["write_file"].is_file_write
        assert not BUILTIN_TOOLS_BY_NAME["read_file"].is_file_write
        assert not BUILTIN_TOOLS_BY_NAME["spawn_agent"].is_file_write

    def test_audited_categories(self):
        assert BUILTIN_TOOLS_BY_NAME["search_files"].is_audited
        assert BUILTIN_TOOLS_BY_NAME["list_files"].is_audited
        assert not BUILTIN_TOOLS_BY_NAME["spawn_agent"].is_audited

    def test_result_constructors(self):
        assert ToolResult.ok({"a": 1}).success is True
        failed = ToolResult.fail("boom")
        assert failed.success is False
        assert failed.error == "boom"


class TestGovernanceAndSpawnModels:
    """Governance schema and spawn policy models."""

    def test_rule_defaults_to_all_actions(self):
        rule = FileRule(pattern="/docs/**")
        assert rule.pattern == "docs/**"
        assert rule.applies_to("create")
        assert rule.applies_to("delete")

    def test_schema_rules_for_unknown_role(self):
        assert GovernanceSchema().rules_for("impl") is None

    def test_privileged_roles_must_be_recognized(self):
        with pytest.raises(ValidationError):
            SpawnPolicy(recognized_roles=["impl"], privileged_roles=["control"])

    @pytest.mark.parametrize("current,target,expected", [
        ("impl", "impl", True),
        ("impl", "control", False),
        ("review", "impl", False),
        ("control", "impl", True),
        ("orchestration", "review", True),
    ])
    def test_can_spawn_role(self, current, target, expected):
        assert can_spawn_role(current, target, ["control", "orchestration"]) is expected

"""Unit tests for cost tracking and limit checks."""

import pytest
from pydantic import ValidationError

from agent_runtime.models.cost import DEFAULT_PRICING, CostLimits, ModelPricing
from agent_runtime.services.cost_tracker import CostTracker
from agent_runtime.services.session import Session


class TestPricing:
    """Model pricing lookup and cost estimates."""

    def test_known_model_pricing(self):
        tracker = CostTracker("gpt-4o")
        assert tracker.pricing == ModelPricing(input=2.5, output=10.0)

    def test_unknown_model_uses_default(self):
        assert CostTracker("some-local-model").pricing == DEFAULT_PRICING

    def test_estimated_cost(self):
        tracker = CostTracker("claude-sonnet-4-20250514")
        tracker.add_usage(1_000_000, 100_000)

        # 1M input at $3 plus 100k output at $15
        assert tracker.estimated_cost() == pytest.approx(4.5)

    def test_usage_accumulates(self):
        tracker = CostTracker("gpt-4o-mini")
        tracker.add_usage(100, 20)
        tracker.add_usage(50, 30)

        assert tracker.input_tokens == 150
        assert tracker.output_tokens == 50
        assert tracker.total_tokens == 200


class TestLimits:
    """Warning threshold and hard limits."""

    def test_no_limits(self):
        tracker = CostTracker("gpt-4o")
        tracker.add_usage(10_000_000, 10_000_000)

        result = tracker.check_limits()

        assert not tracker.has_limits()
        assert not result.warning
        assert not result.exceeded
        assert result.limit_type is None

    def test_below_warning_threshold(self):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=1000))
        tracker.add_usage(500, 200)

        result = tracker.check_limits()
        assert not result.warning
        assert result.percentage is None

    def test_token_warning(self):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=1000))
        tracker.add_usage(700, 100)

        result = tracker.check_limits()

        assert result.warning
        assert not result.exceeded
        assert result.limit_type == "tokens"
        assert result.percentage == pytest.approx(0.8)
        assert result.message == "Token limit warning: 800 / 1,000 tokens (80%)"

    def test_token_limit_exceeded(self):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=1000))
        tracker.add_usage(900, 200)

        result = tracker.check_limits()

        assert result.exceeded
        assert result.message == "Token limit exceeded: 1,100 / 1,000 tokens (110%)"

    def test_cost_limit_exceeded(self):
        tracker = CostTracker("gpt-4", CostLimits(max_cost=1.0))
        tracker.add_usage(20_000, 10_000)

        result = tracker.check_limits()

        # 20k input at $30/M plus 10k output at $60/M is $1.20
        assert result.exceeded
        assert result.limit_type == "cost"
        assert result.message == "Cost limit exceeded: $1.20 / $1.00 (120%)"

    def test_token_limit_checked_first(self):
        tracker = CostTracker("gpt-4", CostLimits(max_tokens=10_000, max_cost=0.01))
        tracker.add_usage(20_000, 10_000)
        assert tracker.check_limits().limit_type == "tokens"

    def test_custom_warning_threshold(self):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=100, warning_threshold=0.5))
        tracker.add_usage(60, 0)
        assert tracker.check_limits().warning

    def test_limits_must_be_positive(self):
        with pytest.raises(ValidationError):
            CostLimits(max_tokens=0)
        with pytest.raises(ValidationError):
            CostLimits(max_cost=-1.0)


class TestSummaries:
    """Snapshots and display lines."""

    def test_snapshot(self):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=100))
        tracker.add_usage(90, 20)

        snapshot = tracker.snapshot()

        assert snapshot.total_tokens == 110
        assert snapshot.model == "gpt-4o"
        assert snapshot.limits.exceeded

    def test_turn_summary(self):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=1000))
        tracker.add_usage(1500, 0)

        line = tracker.format_turn_summary(3)

        assert line.startswith("Turn 3 | Tokens: 1,500 (in: 1,500, out: 0) | Cost: $0.00")
        assert line.endswith("| Limit: 150% (exceeded)")

    def test_session_summary(self):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=2000, max_cost=1.0))
        tracker.add_usage(1000, 0)

        lines = tracker.format_session_summary().splitlines()

        assert lines[0] == "Total tokens: 1,000 (input: 1,000, output: 0)"
        assert lines[1] == "Estimated cost: $0.0025 (model: gpt-4o)"
        assert lines[2] == "Token limit: 1,000 / 2,000 (50.0%)"
        assert lines[3].startswith("Cost limit: $0.00 / $1.00")


class TestSessionIntegration:
    """Session token updates feed the tracker."""

    def test_update_token_usage_feeds_tracker(self, session_store):
        tracker = CostTracker("gpt-4o", CostLimits(max_tokens=100))
        session = Session.create(session_store, role="impl", model="gpt-4o", cost_tracker=tracker)

        session.update_token_usage(60, 50)

        assert tracker.total_tokens == 110
        assert session.check_cost_limits().exceeded

    def test_session_without_tracker_has_no_limits(self, session_store):
        session = Session.create(session_store, role="impl", model="gpt-4o")
        session.update_token_usage(10**9, 10**9)
        assert not session.check_cost_limits().exceeded

    @pytest.mark.asyncio
    async def test_restore_seeds_tracker(self, session_store):
        session = Session.create(session_store, role="impl", model="gpt-4o")
        session.update_token_usage(40, 2)
        await session.save()

        tracker = CostTracker("gpt-4o")
        restored = await Session.restore(session_store, session.id, cost_tracker=tracker)

        assert restored.cost_tracker is tracker
        assert tracker.input_tokens == 40
        assert tracker.output_tokens == 2

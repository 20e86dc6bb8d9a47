"""Token usage and estimated cost tracking with limit checks."""

from typing import Optional

from agent_runtime.models.cost import (
    DEFAULT_PRICING,
    MODEL_PRICING,
    CostLimits,
    CostSnapshot,
    LimitCheckResult,
    ModelPricing,
)


class CostTracker:
    """Accumulates usage for one session and checks it against limits.

    The token limit is checked before the cost limit, so a session over
    both reports the token limit.
    """

    def __init__(self, model: str, limits: Optional[CostLimits] = None, pricing: Optional[ModelPricing] = None):
        self.model = model
        self.limits = limits or CostLimits()
        self.pricing = pricing or MODEL_PRICING.get(model, DEFAULT_PRICING)
        self.input_tokens = 0
        self.output_tokens = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add_usage(self, input_tokens: int, output_tokens: int) -> None:
        """Add one turn's usage."""
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens

    def has_limits(self) -> bool:
        return self.limits.max_tokens is not None or self.limits.max_cost is not None

    def estimated_cost(self) -> float:
        """Estimated USD cost of the usage so far."""
        return (
            self.input_tokens / 1_000_000 * self.pricing.input
            + self.output_tokens / 1_000_000 * self.pricing.output
        )

    def check_limits(self) -> LimitCheckResult:
        """Compare usage with the token limit, then the cost limit."""
        threshold = self.limits.warning_threshold

        if self.limits.max_tokens is not None:
            fraction = self.total_tokens / self.limits.max_tokens
            usage = f"{self.total_tokens:,} / {self.limits.max_tokens:,} tokens ({fraction * 100:.0f}%)"
            if fraction >= 1.0:
                return LimitCheckResult(
                    warning=True, exceeded=True, percentage=fraction, limit_type="tokens",
                    message=f"Token limit exceeded: {usage}"
                )
            if fraction >= threshold:
                return LimitCheckResult(
                    warning=True, percentage=fraction, limit_type="tokens",
                    message=f"Token limit warning: {usage}"
                )

        if self.limits.max_cost is not None:
            cost = self.estimated_cost()
            fraction = cost / self.limits.max_cost
            usage = f"${cost:.2f} / ${self.limits.max_cost:.2f} ({fraction * 100:.0f}%)"
            if fraction >= 1.0:
                return LimitCheckResult(
                    warning=True, exceeded=True, percentage=fraction, limit_type="cost",
                    message=f"Cost limit exceeded: {usage}"
                )
            if fraction >= threshold:
                return LimitCheckResult(
                    warning=True, percentage=fraction, limit_type="cost",
                    message=f"Cost limit warning: {usage}"
                )

        return LimitCheckResult()

    def snapshot(self) -> CostSnapshot:
        return CostSnapshot(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.total_tokens,
            estimated_cost=self.estimated_cost(),
            model=self.model,
            limits=self.check_limits(),
        )

    def format_turn_summary(self, turn: int) -> str:
        """One-line usage summary for a turn."""
        line = (
            f"Turn {turn} | Tokens: {self.total_tokens:,} "
            f"(in: {self.input_tokens:,}, out: {self.output_tokens:,}) | Cost: ${self.estimated_cost():.2f}"
        )
        limits = self.check_limits()
        if limits.percentage is not None:
            line += f" | Limit: {limits.percentage * 100:.0f}%"
            if limits.exceeded:
                line += " (exceeded)"
            elif limits.warning:
                line += " (warning)"
        return line

    def format_session_summary(self) -> str:
        cost = self.estimated_cost()
        lines = [
            f"Total tokens: {self.total_tokens:,} (input: {self.input_tokens:,}, output: {self.output_tokens:,})",
            f"Estimated cost: ${cost:.4f} (model: {self.model})",
        ]
        if self.limits.max_tokens is not None:
            fraction = self.total_tokens / self.limits.max_tokens
            lines.append(f"Token limit: {self.total_tokens:,} / {self.limits.max_tokens:,} ({fraction * 100:.1f}%)")
        if self.limits.max_cost is not None:
            fraction = cost / self.limits.max_cost
            lines.append(f"Cost limit: ${cost:.2f} / ${self.limits.max_cost:.2f} ({fraction * 100:.1f}%)")
        return "\n".join(lines)

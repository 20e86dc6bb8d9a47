"""Model pricing and cost limit models."""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class ModelPricing(BaseModel):
    """USD cost per million tokens."""

    input: float = Field(..., ge=0)
    output: float = Field(..., ge=0)


MODEL_PRICING: Dict[str, ModelPricing] = {
    # Anthropic
    "claude-sonnet-4-20250514": ModelPricing(input=3.0, output=15.0),
    "claude-3-5-sonnet-20241022": ModelPricing(input=3.0, output=15.0),
    "claude-3-5-haiku-20241022": ModelPricing(input=1.0, output=5.0),
    "claude-3-opus-20240229": ModelPricing(input=15.0, output=75.0),
    # OpenAI
    "gpt-4o": ModelPricing(input=2.5, output=10.0),
    "gpt-4o-mini": ModelPricing(input=0.15, output=0.6),
    "gpt-4-turbo": ModelPricing(input=10.0, output=30.0),
    "gpt-4": ModelPricing(input=30.0, output=60.0),
    # Gemini
    "gemini-2.0-flash": ModelPricing(input=0.1, output=0.4),
    "gemini-1.5-pro": ModelPricing(input=1.25, output=5.0),
    "gemini-1.5-flash": ModelPricing(input=0.075, output=0.3),
}

# Unknown models are priced conservatively
DEFAULT_PRICING = ModelPricing(input=3.0, output=15.0)


class CostLimits(BaseModel):
    """Optional token and USD ceilings for one session."""

    max_tokens: Optional[int] = Field(None, gt=0, description="Maximum input + output tokens")
    max_cost: Optional[float] = Field(None, gt=0, description="Maximum estimated cost in USD")
    warning_threshold: float = Field(default=0.8, gt=0.0, le=1.0, description="Fraction of a limit that warns")


class LimitCheckResult(BaseModel):
    """Outcome of checking usage against the configured limits."""

    warning: bool = False
    exceeded: bool = False
    percentage: Optional[float] = Field(None, description="Usage as a fraction of the triggering limit")
    limit_type: Optional[str] = Field(None, pattern="^(tokens|cost)$")
    message: Optional[str] = None


class CostSnapshot(BaseModel):
    """Point-in-time usage, cost and limit state."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0
    model: str
    limits: LimitCheckResult = Field(default_factory=LimitCheckResult)

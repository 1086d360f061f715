"""Token pricing used for session cost estimation."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_COST_PER_MILLION_INPUT_TOKENS = 3.0
DEFAULT_COST_PER_MILLION_OUTPUT_TOKENS = 15.0


class ModelPricing(BaseModel):
    """USD per million tokens for one model."""

    model_config = ConfigDict(frozen=True)

    cost_per_million_input_tokens: float = Field(DEFAULT_COST_PER_MILLION_INPUT_TOKENS, ge=0)
    cost_per_million_output_tokens: float = Field(DEFAULT_COST_PER_MILLION_OUTPUT_TOKENS, ge=0)

    def cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        """Cost in USD of the given token counts."""
        return (
            prompt_tokens / 1_000_000 * self.cost_per_million_input_tokens
            + completion_tokens / 1_000_000 * self.cost_per_million_output_tokens
        )


DEFAULT_PRICING = ModelPricing()


def resolve_pricing(*candidates: ModelPricing | None) -> ModelPricing:
    """Return the first configured pricing, falling back to conservative defaults.

    Callers pass sources in priority order, e.g. live provider pricing, then
    per-model configuration, then settings.
    """
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return DEFAULT_PRICING

"""Token and cost accounting."""

from decimal import Decimal

from provider.base import ModelInfo, Usage

from .models import TokenInfo

PER_MILLION = Decimal(1_000_000)


def compute_usage(model: ModelInfo, usage: Usage) -> tuple[float, TokenInfo]:
    """
    Price a usage report against a model's per-million-token rates.

    Returns:
        ``(cost in USD, token counts)``
    """
    cost = (
        Decimal(usage.input_tokens) * Decimal(str(model.cost.input)) / PER_MILLION
        + Decimal(usage.output_tokens) * Decimal(str(model.cost.output)) / PER_MILLION
    )
    tokens = TokenInfo(
        input=usage.input_tokens,
        output=usage.output_tokens,
        reasoning=usage.reasoning_tokens,
    )
    return float(cost), tokens

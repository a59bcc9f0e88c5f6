from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# USD per 1M tokens: (input, output)
PRICING_PER_MILLION: dict[str, tuple[float, float]] = {
    "gemini-2.5-pro": (1.25, 10.00),
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-flash-lite": (0.10, 0.40),
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-2.0-flash-lite": (0.075, 0.30),
}
DEFAULT_PRICING_MODEL = "gemini-2.5-flash"
TOKENS_PER_PRICING_UNIT = 1_000_000


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_metadata(cls, metadata: Any) -> "TokenUsage":
        if metadata is None:
            return cls()
        prompt = getattr(metadata, "prompt_token_count", None) or 0
        completion = getattr(metadata, "candidates_token_count", None) or 0
        total = getattr(metadata, "total_token_count", None) or prompt + completion
        return cls(prompt_tokens=int(prompt), completion_tokens=int(completion), total_tokens=int(total))


def pricing_for(model_name: str | None) -> tuple[float, float]:
    name = (model_name or "").removeprefix("models/")
    if name in PRICING_PER_MILLION:
        return PRICING_PER_MILLION[name]
    # versioned names such as gemini-2.5-flash-001 price like their family
    for known in sorted(PRICING_PER_MILLION, key=len, reverse=True):
        if name.startswith(known):
            return PRICING_PER_MILLION[known]
    return PRICING_PER_MILLION[DEFAULT_PRICING_MODEL]


def compute_cost(usage: TokenUsage, model_name: str | None) -> float:
    input_price, output_price = pricing_for(model_name)
    return (
        usage.prompt_tokens * input_price + usage.completion_tokens * output_price
    ) / TOKENS_PER_PRICING_UNIT


def log_completion_usage(operation: str, model_name: str | None, metadata: Any, **context: Any) -> TokenUsage:
    usage = TokenUsage.from_metadata(metadata)
    cost = compute_cost(usage, model_name)
    extra = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
    logger.info(
        "llm.usage operation=%s model=%s prompt=%d completion=%d total=%d cost_usd=%.6f %s",
        operation,
        model_name or DEFAULT_PRICING_MODEL,
        usage.prompt_tokens,
        usage.completion_tokens,
        usage.total_tokens,
        cost,
        extra,
    )
    return usage

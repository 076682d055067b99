"""Centralized LLM usage logger for token/cost tracking."""

import asyncio

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Pricing per 1M tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    # Anthropic
    "claude-opus-4-5-20251101": (15.0, 75.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-sonnet-4-20250514": (3.0, 15.0),
    "claude-haiku-4-5-20251001": (0.80, 4.0),
    # OpenAI
    "gpt-4o": (2.50, 10.0),
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4o-mini": (0.15, 0.60),
}


def estimate_cost(model: str, tokens_input: int, tokens_output: int) -> float:
    """Estimate cost in USD based on model pricing."""
    pricing = MODEL_PRICING.get(model)
    if not pricing:
        # Try prefix match for model variants
        for key, val in MODEL_PRICING.items():
            if model.startswith(key.rsplit("-", 1)[0]):
                pricing = val
                break
    if not pricing:
        logger.warning(f"No pricing found for model '{model}', using $0")
        return 0.0

    input_rate, output_rate = pricing
    cost = (tokens_input * input_rate / 1_000_000) + (tokens_output * output_rate / 1_000_000)
    return round(cost, 6)


async def log_llm_usage(
    workflow: str,
    model: str,
    provider: str,
    tokens_input: int,
    tokens_output: int,
    duration_ms: int = 0,
    chain: str | None = None,
    document_id: str | None = None,
) -> None:
    """Log an LLM call; also persist it to llm_usage_log when enabled. Never raises.

    The Supabase client is synchronous, so the insert runs in a worker thread.
    """
    try:
        estimated_cost = estimate_cost(model, tokens_input, tokens_output)
        logger.debug(
            f"LLM usage: {workflow}/{chain or '-'} "
            f"model={model} tokens={tokens_input}+{tokens_output} "
            f"cost=${estimated_cost:.4f} duration_ms={duration_ms}"
        )

        if not get_settings().LLM_USAGE_LOGGING:
            return

        row = {
            "workflow": workflow,
            "model": model,
            "provider": provider,
            "tokens_input": tokens_input,
            "tokens_output": tokens_output,
            "estimated_cost_usd": estimated_cost,
            "duration_ms": duration_ms,
        }
        if chain:
            row["chain"] = chain
        if document_id:
            row["document_id"] = document_id

        from app.db.supabase_client import get_supabase

        await asyncio.to_thread(get_supabase().table("llm_usage_log").insert(row).execute)
    except Exception as e:
        # Never fail the main operation due to logging
        logger.error(f"Failed to log LLM usage: {e}")

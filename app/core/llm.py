"""Completion service adapter and best-effort JSON decoding.

The rest of the engine talks to a ``CompletionClient``: role-tagged messages
plus a temperature in, generated text out. Two SDK-backed implementations
are provided; tests use an in-repo fake.
"""

import asyncio
import json
import re
import time
from collections.abc import Callable
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel

from app.core.config import get_settings
from app.core.errors import CompletionServiceError, CompletionTimeoutError
from app.core.llm_usage import log_llm_usage
from app.core.logging import get_logger

logger = get_logger(__name__)

ChunkCallback = Callable[[str], None]


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class CompletionRequest(BaseModel):
    messages: list[ChatMessage]
    temperature: float = 0.3
    max_tokens: int | None = None
    # Label used for usage logging only
    chain: str | None = None


class CompletionResult(BaseModel):
    content: str
    finish_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0


@runtime_checkable
class CompletionClient(Protocol):
    """The external text-completion service, as seen by the engine."""

    async def complete(self, request: CompletionRequest) -> CompletionResult: ...

    async def stream_complete(
        self, request: CompletionRequest, on_chunk: ChunkCallback
    ) -> CompletionResult: ...


def system_and_conversation(messages: list[ChatMessage]) -> tuple[str, list[dict[str, str]]]:
    """Split system messages out of a message list (Anthropic wants them separately)."""
    system_parts = [m.content for m in messages if m.role == "system"]
    conversation = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]
    return "\n\n".join(system_parts), conversation


async def _bounded(coro: Any, timeout: float, label: str) -> Any:
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Completion call timed out after {timeout}s ({label})")
        raise CompletionTimeoutError(f"{label} timed out after {timeout}s") from e


class AnthropicCompletionClient:
    """``CompletionClient`` backed by ``anthropic.AsyncAnthropic``."""

    provider = "anthropic"

    def __init__(self, api_key: str, model: str, timeout: float, default_max_tokens: int):
        from anthropic import AsyncAnthropic

        self.model = model
        self.timeout = timeout
        self.default_max_tokens = default_max_tokens
        self._client = AsyncAnthropic(api_key=api_key)

    def _params(self, request: CompletionRequest) -> dict[str, Any]:
        system, conversation = system_and_conversation(request.messages)
        params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens or self.default_max_tokens,
            "temperature": request.temperature,
            "messages": conversation,
        }
        if system:
            params["system"] = system
        return params

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        import anthropic

        start = time.time()
        try:
            response = await _bounded(
                self._client.messages.create(**self._params(request)),
                self.timeout,
                request.chain or "completion",
            )
        except anthropic.APIError as e:
            logger.error(f"Anthropic completion failed: {e}")
            raise CompletionServiceError(str(e)) from e

        text = "".join(block.text for block in response.content if hasattr(block, "text"))
        result = CompletionResult(
            content=text,
            finish_reason=response.stop_reason,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        await self._log_usage(request, result, start)
        return result

    async def stream_complete(
        self, request: CompletionRequest, on_chunk: ChunkCallback
    ) -> CompletionResult:
        import anthropic

        start = time.time()

        async def _run() -> Any:
            async with self._client.messages.stream(**self._params(request)) as stream:
                async for text in stream.text_stream:
                    on_chunk(text)
                return await stream.get_final_message()

        try:
            final_message = await _bounded(_run(), self.timeout, request.chain or "stream")
        except anthropic.APIError as e:
            logger.error(f"Anthropic streaming completion failed: {e}")
            raise CompletionServiceError(str(e)) from e

        text = "".join(b.text for b in final_message.content if hasattr(b, "text"))
        result = CompletionResult(
            content=text,
            finish_reason=final_message.stop_reason,
            input_tokens=final_message.usage.input_tokens,
            output_tokens=final_message.usage.output_tokens,
        )
        await self._log_usage(request, result, start)
        return result

    async def _log_usage(self, request: CompletionRequest, result: CompletionResult, start: float) -> None:
        await log_llm_usage(
            workflow="style_engine",
            model=self.model,
            provider=self.provider,
            tokens_input=result.input_tokens,
            tokens_output=result.output_tokens,
            duration_ms=int((time.time() - start) * 1000),
            chain=request.chain,
        )


class OpenAICompletionClient:
    """``CompletionClient`` backed by ``openai.AsyncOpenAI`` chat completions."""

    provider = "openai"

    def __init__(self, api_key: str, model: str, timeout: float, default_max_tokens: int):
        from openai import AsyncOpenAI

        self.model = model
        self.timeout = timeout
        self.default_max_tokens = default_max_tokens
        self._client = AsyncOpenAI(api_key=api_key)

    def _params(self, request: CompletionRequest) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens or self.default_max_tokens,
        }

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        import openai

        start = time.time()
        try:
            response = await _bounded(
                self._client.chat.completions.create(**self._params(request)),
                self.timeout,
                request.chain or "completion",
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI completion failed: {e}")
            raise CompletionServiceError(str(e)) from e

        choice = response.choices[0]
        usage = response.usage
        result = CompletionResult(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )
        await self._log_usage(request, result, start)
        return result

    async def stream_complete(
        self, request: CompletionRequest, on_chunk: ChunkCallback
    ) -> CompletionResult:
        import openai

        start = time.time()

        async def _run() -> tuple[str, str | None]:
            parts: list[str] = []
            finish_reason = None
            stream = await self._client.chat.completions.create(**self._params(request), stream=True)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    parts.append(delta)
                    on_chunk(delta)
                finish_reason = chunk.choices[0].finish_reason or finish_reason
            return "".join(parts), finish_reason

        try:
            content, finish_reason = await _bounded(_run(), self.timeout, request.chain or "stream")
        except openai.OpenAIError as e:
            logger.error(f"OpenAI streaming completion failed: {e}")
            raise CompletionServiceError(str(e)) from e

        # Streamed chat completions carry no usage unless explicitly requested
        result = CompletionResult(content=content, finish_reason=finish_reason)
        await self._log_usage(request, result, start)
        return result

    async def _log_usage(self, request: CompletionRequest, result: CompletionResult, start: float) -> None:
        await log_llm_usage(
            workflow="style_engine",
            model=self.model,
            provider=self.provider,
            tokens_input=result.input_tokens,
            tokens_output=result.output_tokens,
            duration_ms=int((time.time() - start) * 1000),
            chain=request.chain,
        )


def get_completion_client(model: str | None = None) -> CompletionClient:
    """
    Build the configured completion client.

    Args:
        model: Model name override (defaults to the provider's config setting)

    Returns:
        A CompletionClient for COMPLETION_PROVIDER

    Raises:
        CompletionServiceError: Unknown provider or missing API key
    """
    settings = get_settings()
    provider = settings.COMPLETION_PROVIDER.lower()

    if provider == "anthropic":
        if not settings.ANTHROPIC_API_KEY:
            raise CompletionServiceError("ANTHROPIC_API_KEY is not configured")
        return AnthropicCompletionClient(
            api_key=settings.ANTHROPIC_API_KEY,
            model=model or settings.ANTHROPIC_MODEL,
            timeout=settings.COMPLETION_TIMEOUT_SECONDS,
            default_max_tokens=settings.COMPLETION_MAX_TOKENS,
        )
    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            raise CompletionServiceError("OPENAI_API_KEY is not configured")
        return OpenAICompletionClient(
            api_key=settings.OPENAI_API_KEY,
            model=model or settings.OPENAI_MODEL,
            timeout=settings.COMPLETION_TIMEOUT_SECONDS,
            default_max_tokens=settings.COMPLETION_MAX_TOKENS,
        )
    raise CompletionServiceError(f"Unknown COMPLETION_PROVIDER '{settings.COMPLETION_PROVIDER}'")


# =============================================================================
# Best-effort structured decode
# =============================================================================


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _extract_span(raw_output: str, opener: str, closer: str) -> Any:
    if not raw_output:
        return None
    cleaned = _strip_llm_fences(raw_output)
    start = cleaned.find(opener)
    end = cleaned.rfind(closer)
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError:
        return None


def extract_json_object(raw_output: str) -> dict | None:
    """
    Decode the leftmost ``{`` to rightmost ``}`` span of a model response.

    Leading/trailing prose and markdown fences are tolerated.

    Returns:
        Parsed dict, or None when there is no span or it does not parse
    """
    parsed = _extract_span(raw_output, "{", "}")
    return parsed if isinstance(parsed, dict) else None


def extract_json_array(raw_output: str) -> list | None:
    """Like ``extract_json_object`` for the leftmost ``[`` to rightmost ``]`` span."""
    parsed = _extract_span(raw_output, "[", "]")
    return parsed if isinstance(parsed, list) else None


def user_message(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


def system_message(content: str) -> ChatMessage:
    return ChatMessage(role="system", content=content)


def completion_request(
    system: str,
    user: str,
    temperature: float,
    max_tokens: int | None = None,
    chain: str | None = None,
) -> CompletionRequest:
    """Single-turn request: one system message and one user message."""
    return CompletionRequest(
        messages=[system_message(system), user_message(user)],
        temperature=temperature,
        max_tokens=max_tokens,
        chain=chain,
    )



"""Scripted in-memory completion client for tests."""

from collections import defaultdict
from typing import Any

from app.core.llm import ChunkCallback, CompletionRequest, CompletionResult


class FakeCompletionClient:
    """Replays scripted responses per chain label and records every request.

    A scripted item that is an exception instance is raised instead of
    returned. Chains with nothing left scripted get ``default``.
    """

    def __init__(self, default: str = "") -> None:
        self.default = default
        self.scripts: dict[str, list[Any]] = defaultdict(list)
        self.requests: list[CompletionRequest] = []
        self.streamed: list[str] = []

    def script(self, chain: str, *responses: Any) -> "FakeCompletionClient":
        self.scripts[chain].extend(responses)
        return self

    def requests_for(self, chain: str) -> list[CompletionRequest]:
        return [r for r in self.requests if r.chain == chain]

    def _next(self, request: CompletionRequest) -> CompletionResult:
        self.requests.append(request)
        queue = self.scripts.get(request.chain or "")
        item = queue.pop(0) if queue else self.default
        if isinstance(item, BaseException):
            raise item
        return CompletionResult(content=item, finish_reason="stop", input_tokens=10, output_tokens=5)

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        return self._next(request)

    async def stream_complete(self, request: CompletionRequest, on_chunk: ChunkCallback) -> CompletionResult:
        result = self._next(request)
        for word in result.content.split(" "):
            chunk = f"{word} "
            self.streamed.append(chunk)
            on_chunk(chunk)
        return result

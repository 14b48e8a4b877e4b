import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from anthropic import AsyncAnthropic

from wikitabs.errors import GenerationError

logger = logging.getLogger(__name__)

_DOCUMENT_CITATION_TYPES = {"char_location", "page_location", "content_block_location"}


@dataclass
class ClaudeCallResult:
    text: str
    model: str
    input_tokens: int | None
    output_tokens: int | None
    request_id: str | None
    sources: list[dict[str, Any]] = field(default_factory=list)
    content_blocks: list[Any] = field(default_factory=list)


def citation_to_source(citation: Any) -> dict[str, Any] | None:
    ctype = getattr(citation, "type", "")
    if ctype == "web_search_result_location":
        return {"kind": "web", "uri": getattr(citation, "url", ""), "title": getattr(citation, "title", "") or ""}
    if ctype in _DOCUMENT_CITATION_TYPES:
        return {
            "kind": "document",
            "title": getattr(citation, "document_title", "") or "",
            "cited_text": getattr(citation, "cited_text", "") or "",
        }
    return None


def block_sources(block: Any) -> list[dict[str, Any]]:
    """Grounding sources carried by one response content block."""
    btype = getattr(block, "type", "")
    out: list[dict[str, Any]] = []
    if btype == "web_search_tool_result":
        results = getattr(block, "content", None)
        # On a failed search ``content`` is an error object, not a list.
        if isinstance(results, list):
            for r in results:
                if getattr(r, "type", "") == "web_search_result" and getattr(r, "url", None):
                    out.append({"kind": "web", "uri": r.url, "title": getattr(r, "title", "") or ""})
    elif btype == "text":
        for c in getattr(block, "citations", None) or []:
            source = citation_to_source(c)
            if source:
                out.append(source)
    return out


class ClaudeClient:
    def __init__(
        self,
        api_key: str,
        primary_model: str,
        fallback_model: str,
        extra_models: list[str] | None = None,
        temperature: float = 0.3,
        max_output_tokens: int = 4096,
        timeout_ms: int = 60000,
        client: AsyncAnthropic | None = None,
    ) -> None:
        self._async = client or AsyncAnthropic(api_key=api_key)
        self._configured = [primary_model, fallback_model] + (extra_models or [])
        self._configured = [m.strip() for m in self._configured if m and m.strip()]
        self._models = list(dict.fromkeys(self._configured))
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._timeout_s = max(1.0, timeout_ms / 1000.0)

    @property
    def selected_models(self) -> list[str]:
        return self._models

    @staticmethod
    def _is_retryable(exc: Exception) -> bool:
        msg = str(exc).lower()
        return any(token in msg for token in ["429", "500", "502", "503", "529", "rate limit", "overloaded"])

    @staticmethod
    def _request_id(exc: Exception) -> str | None:
        rid = getattr(exc, "request_id", None)
        if rid:
            return str(rid)
        body = getattr(exc, "body", None)
        if isinstance(body, dict):
            return body.get("request_id")
        return None

    async def _call_with_retries(self, call_coro_factory, attempts: int = 4):
        backoff = 0.6
        last_error = None
        for attempt in range(attempts):
            try:
                async with asyncio.timeout(self._timeout_s):
                    return await call_coro_factory()
            except Exception as exc:
                last_error = exc
                if not self._is_retryable(exc) or attempt == attempts - 1:
                    raise
                logger.warning("Retrying Claude call attempt=%s error=%s", attempt + 1, exc)
                await asyncio.sleep(backoff + random.uniform(0, 0.35))
                backoff *= 2
        raise GenerationError(f"Failed after retries: {last_error}")

    def _request(self, model: str, system: str, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None):
        request: dict[str, Any] = {
            "model": model,
            "system": system,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": self._max_output_tokens,
        }
        if tools:
            request["tools"] = tools
        return request

    async def create(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ClaudeCallResult:
        """One-shot call with retries on each configured model in turn."""
        last_error: Exception | None = None
        for model in self._models:
            try:
                response = await self._call_with_retries(
                    lambda: self._async.messages.create(**self._request(model, system, messages, tools))
                )
                text = "".join(b.text for b in response.content if getattr(b, "type", "") == "text").strip()
                sources: list[dict[str, Any]] = []
                for b in response.content:
                    sources.extend(block_sources(b))
                usage = getattr(response, "usage", None)
                return ClaudeCallResult(
                    text=text,
                    model=model,
                    input_tokens=getattr(usage, "input_tokens", None),
                    output_tokens=getattr(usage, "output_tokens", None),
                    request_id=getattr(response, "id", None),
                    sources=sources,
                    content_blocks=list(response.content),
                )
            except Exception as exc:
                logger.warning("Claude call failed model=%s request_id=%s error=%s", model, self._request_id(exc), exc)
                last_error = exc
                continue
        raise GenerationError(f"All Claude models failed: {last_error}")

    async def stream(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield ``{"type": "text"}`` and ``{"type": "sources"}`` events.

        A later model is only tried if the previous one failed before emitting anything.
        """
        last_error = None
        for model in self._models:
            emitted = False
            try:
                async with self._async.messages.stream(**self._request(model, system, messages, tools)) as stream:
                    async for event in stream:
                        etype = getattr(event, "type", "")
                        if etype == "text":
                            delta = getattr(event, "text", "") or ""
                            if delta:
                                emitted = True
                                yield {"type": "text", "text": delta, "model": model}
                        elif etype == "citation":
                            source = citation_to_source(getattr(event, "citation", None))
                            if source:
                                emitted = True
                                yield {"type": "sources", "sources": [source]}
                        elif etype == "content_block_start":
                            sources = block_sources(getattr(event, "content_block", None))
                            if sources:
                                emitted = True
                                yield {"type": "sources", "sources": sources}
                    return
            except Exception as exc:
                logger.warning("Claude stream failed model=%s request_id=%s error=%s", model, self._request_id(exc), exc)
                if emitted:
                    raise GenerationError(str(exc)) from exc
                last_error = exc
                continue
        raise GenerationError(f"All Claude streaming models failed: {last_error}")

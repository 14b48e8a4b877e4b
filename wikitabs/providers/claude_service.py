"""Content Generation Service backed by the Anthropic Messages API."""

from __future__ import annotations

import base64
import re
from typing import Any, AsyncIterator

from wikitabs.config import Settings
from wikitabs.errors import GenerationError, UnsupportedAttachmentError
from wikitabs.logging import get_logger
from wikitabs.providers import prompts
from wikitabs.providers.base import ContentService
from wikitabs.providers.claude_client import ClaudeClient
from wikitabs.types import (
    Attachment,
    DiagramImage,
    SearchAnswer,
    SourcesDelta,
    StreamEvent,
    StreamFailure,
    TextDelta,
    merge_sources,
    parse_sources,
)

logger = get_logger(__name__)

_SVG_RE = re.compile(r"<svg\b[\s\S]*?</svg>", re.IGNORECASE)
_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def attachment_block(attachment: Attachment) -> dict[str, Any]:
    mime = attachment.mime_type.lower()
    if mime in _IMAGE_TYPES:
        return {"type": "image", "source": {"type": "base64", "media_type": mime, "data": attachment.base64}}
    if mime == "application/pdf":
        return {
            "type": "document",
            "source": {"type": "base64", "media_type": "application/pdf", "data": attachment.base64},
            "title": attachment.name,
            "citations": {"enabled": True},
        }
    raise UnsupportedAttachmentError(attachment.mime_type)


def text_document_block(text: str, title: str | None) -> dict[str, Any]:
    return {
        "type": "document",
        "source": {"type": "text", "media_type": "text/plain", "data": text},
        "title": title or "Document",
        "citations": {"enabled": True},
    }


class ClaudeContentService(ContentService):
    name = "claude"

    def __init__(self, client: ClaudeClient, *, web_search_max_uses: int = 5) -> None:
        self._client = client
        self._web_search_max_uses = max(1, web_search_max_uses)

    @classmethod
    def from_settings(cls, cfg: Settings) -> "ClaudeContentService":
        client = ClaudeClient(
            api_key=cfg.anthropic_api_key,
            primary_model=cfg.primary_model,
            fallback_model=cfg.fallback_model,
            extra_models=cfg.extra_models,
            temperature=cfg.temperature,
            max_output_tokens=cfg.max_output_tokens,
            timeout_ms=cfg.request_timeout_ms,
        )
        return cls(client, web_search_max_uses=cfg.web_search_max_uses)

    def _web_search_tool(self) -> dict[str, Any]:
        return {"type": "web_search_20250305", "name": "web_search", "max_uses": self._web_search_max_uses}

    async def _stream(
        self,
        content: str | list[dict[str, Any]],
        *,
        grounded: bool,
        failure: str,
    ) -> AsyncIterator[StreamEvent]:
        tools = [self._web_search_tool()] if grounded else None
        messages = [{"role": "user", "content": content}]
        try:
            async for event in self._client.stream(system=prompts.SYSTEM_PROMPT, messages=messages, tools=tools):
                if event["type"] == "text":
                    yield TextDelta(text=event["text"])
                elif event["type"] == "sources":
                    sources = parse_sources(event["sources"])
                    if sources:
                        yield SourcesDelta(sources=sources)
        except Exception as exc:
            logger.warning("%s: %s", failure, exc)
            yield StreamFailure(message=f"{failure} {exc}".strip())

    def generate_definition(self, topic: str, language: str) -> AsyncIterator[StreamEvent]:
        return self._stream(
            prompts.definition_prompt(topic, language),
            grounded=True,
            failure=f'Could not generate content for "{topic}".',
        )

    async def generate_search_answer(self, topic: str, language: str) -> SearchAnswer:
        result = await self._client.create(
            system=prompts.SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompts.search_prompt(topic, language)}],
            tools=[self._web_search_tool()],
        )
        return SearchAnswer(text=result.text, sources=merge_sources([], parse_sources(result.sources)))

    def generate_video_summary(self, url: str, language: str) -> AsyncIterator[StreamEvent]:
        return self._stream(
            prompts.video_summary_prompt(url, language),
            grounded=True,
            failure="Could not generate a summary for the video.",
        )

    def generate_web_resource(self, url: str, section_index: int, language: str) -> AsyncIterator[StreamEvent]:
        return self._stream(
            prompts.web_resource_prompt(url, section_index, language),
            grounded=True,
            failure="Could not retrieve content from the URL.",
        )

    async def generate_document_answer(
        self,
        query: str,
        *,
        language: str,
        document_text: str | None = None,
        attachment: Attachment | None = None,
        document_name: str | None = None,
        use_search: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        failure = f'Could not answer question "{query}".'
        try:
            if document_text:
                block = text_document_block(document_text, document_name)
            elif attachment is not None:
                block = attachment_block(attachment)
            else:
                raise GenerationError("No document text or attachment provided for the query.")
        except GenerationError as exc:
            yield StreamFailure(message=f"{failure} {exc}")
            return
        content = [block, {"type": "text", "text": prompts.document_prompt(query, language, has_text=bool(document_text))}]
        async for event in self._stream(content, grounded=use_search, failure=failure):
            yield event

    async def generate_image_analysis(self, query: str, image: Attachment, language: str) -> AsyncIterator[StreamEvent]:
        try:
            block = attachment_block(image)
        except GenerationError as exc:
            yield StreamFailure(message=f"Could not analyze image. {exc}")
            return
        content = [block, {"type": "text", "text": prompts.image_prompt(query, language)}]
        async for event in self._stream(content, grounded=False, failure="Could not analyze image."):
            yield event

    def generate_translation(self, text: str, language: str) -> AsyncIterator[StreamEvent]:
        return self._stream(
            prompts.translation_prompt(text, language),
            grounded=False,
            failure="Translation failed.",
        )

    async def generate_diagram_image(self, prompt: str) -> DiagramImage:
        result = await self._client.create(
            system=prompts.SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompts.diagram_prompt(prompt)}],
        )
        match = _SVG_RE.search(result.text)
        if not match:
            raise GenerationError("No image data returned.")
        data = base64.b64encode(match.group(0).encode("utf-8")).decode("ascii")
        return DiagramImage(mime_type="image/svg+xml", data=data)

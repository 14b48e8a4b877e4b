"""Stub service with no network access. Returns placeholder content; use for local runs without an API key."""

from __future__ import annotations

import base64
from typing import AsyncIterator

from wikitabs.providers.base import ContentService
from wikitabs.types import Attachment, DiagramImage, SearchAnswer, StreamEvent, TextDelta

_PLACEHOLDER_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 200 40">'
    '<text x="10" y="25">offline diagram</text></svg>'
)


async def _chunks(text: str) -> AsyncIterator[StreamEvent]:
    for word in text.split(" "):
        yield TextDelta(text=word + " ")


class OfflineContentService(ContentService):
    name = "offline"

    def generate_definition(self, topic: str, language: str) -> AsyncIterator[StreamEvent]:
        return _chunks(f"[offline] {topic} ({language}): no model output.")

    async def generate_search_answer(self, topic: str, language: str) -> SearchAnswer:
        return SearchAnswer(text=f"[offline] search for {topic} ({language}): no model output.")

    def generate_video_summary(self, url: str, language: str) -> AsyncIterator[StreamEvent]:
        return _chunks(f"[offline] summary of {url} ({language}): no model output.")

    def generate_web_resource(self, url: str, section_index: int, language: str) -> AsyncIterator[StreamEvent]:
        return _chunks(f"[offline] {url} section {section_index + 1} ({language}): no model output.")

    def generate_document_answer(
        self,
        query: str,
        *,
        language: str,
        document_text: str | None = None,
        attachment: Attachment | None = None,
        document_name: str | None = None,
        use_search: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        source = document_name or (attachment.name if attachment else "document")
        return _chunks(f"[offline] {query} in {source} ({language}): no model output.")

    def generate_image_analysis(self, query: str, image: Attachment, language: str) -> AsyncIterator[StreamEvent]:
        return _chunks(f"[offline] {query} for {image.name} ({language}): no model output.")

    def generate_translation(self, text: str, language: str) -> AsyncIterator[StreamEvent]:
        return _chunks(f"[offline {language}] {text}")

    async def generate_diagram_image(self, prompt: str) -> DiagramImage:
        return DiagramImage(mime_type="image/svg+xml", data=base64.b64encode(_PLACEHOLDER_SVG.encode()).decode("ascii"))

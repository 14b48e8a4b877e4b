"""Interfaces for the external collaborators: content generation and document extraction."""

from __future__ import annotations

import abc
from typing import AsyncIterator

from wikitabs.types import (
    Attachment,
    DiagramImage,
    ExtractedDocument,
    SearchAnswer,
    StreamEvent,
)


class ContentService(abc.ABC):
    """Content Generation Service.

    Streaming operations yield events in delivery order and may end early with
    a ``StreamFailure``; callers treat that as terminal for the generation.
    """

    name: str = "base"

    @abc.abstractmethod
    def generate_definition(self, topic: str, language: str) -> AsyncIterator[StreamEvent]:
        ...

    @abc.abstractmethod
    async def generate_search_answer(self, topic: str, language: str) -> SearchAnswer:
        ...

    @abc.abstractmethod
    def generate_video_summary(self, url: str, language: str) -> AsyncIterator[StreamEvent]:
        ...

    @abc.abstractmethod
    def generate_web_resource(self, url: str, section_index: int, language: str) -> AsyncIterator[StreamEvent]:
        ...

    @abc.abstractmethod
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
        ...

    @abc.abstractmethod
    def generate_image_analysis(self, query: str, image: Attachment, language: str) -> AsyncIterator[StreamEvent]:
        ...

    @abc.abstractmethod
    def generate_translation(self, text: str, language: str) -> AsyncIterator[StreamEvent]:
        ...

    @abc.abstractmethod
    async def generate_diagram_image(self, prompt: str) -> DiagramImage:
        ...


class DocumentExtractor(abc.ABC):
    @abc.abstractmethod
    def extract(self, name: str, data: bytes, mime_type: str) -> ExtractedDocument | None:
        """Return extracted text and pages, or None when extraction does not apply to this file."""
        ...

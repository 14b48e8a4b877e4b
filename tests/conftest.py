import asyncio
import base64
from typing import AsyncIterator

import pytest

from wikitabs.browser import Browser
from wikitabs.config import Settings
from wikitabs.errors import GenerationError
from wikitabs.metrics import metrics
from wikitabs.providers.base import ContentService
from wikitabs.types import Attachment, DiagramImage, SearchAnswer, StreamEvent, TextDelta


class ScriptedContentService(ContentService):
    """Records every call. ``scripts`` maps a request key to a list of events;
    an ``asyncio.Event`` in the list pauses the stream until it is set."""

    name = "scripted"

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.scripts: dict[str, list] = {}
        self.search_answers: dict[str, SearchAnswer] = {}
        self.closed: list[str] = []
        self.diagram_calls: list[str] = []
        self.failing_diagrams: set[str] = set()
        self.diagram_gate: asyncio.Event | None = None
        self.diagram_active = 0
        self.diagram_peak = 0

    def calls_for(self, op: str) -> list[tuple[str, str, str]]:
        return [c for c in self.calls if c[0] == op]

    async def _play(self, op: str, key: str, language: str) -> AsyncIterator[StreamEvent]:
        script = self.scripts.get(key)
        if script is None:
            script = [TextDelta(text=f"{op} {key} in {language}")]
        try:
            for item in script:
                if isinstance(item, asyncio.Event):
                    await item.wait()
                elif isinstance(item, Exception):
                    raise item
                else:
                    yield item
        finally:
            self.closed.append(key)

    def _record(self, op: str, key: str, language: str) -> AsyncIterator[StreamEvent]:
        self.calls.append((op, key, language))
        return self._play(op, key, language)

    def generate_definition(self, topic, language):
        return self._record("definition", topic, language)

    async def generate_search_answer(self, topic, language):
        self.calls.append(("search", topic, language))
        return self.search_answers.get(topic) or SearchAnswer(text=f"search {topic} in {language}")

    def generate_video_summary(self, url, language):
        return self._record("video", url, language)

    def generate_web_resource(self, url, section_index, language):
        return self._record("web", f"{url}#{section_index}", language)

    def generate_document_answer(
        self,
        query,
        *,
        language,
        document_text=None,
        attachment=None,
        document_name=None,
        use_search=False,
    ):
        return self._record("document_search" if use_search else "document", query, language)

    def generate_image_analysis(self, query, image: Attachment, language):
        return self._record("image", query, language)

    def generate_translation(self, text, language):
        return self._record("translate", text, language)

    async def generate_diagram_image(self, prompt):
        self.diagram_calls.append(prompt)
        self.diagram_active += 1
        self.diagram_peak = max(self.diagram_peak, self.diagram_active)
        try:
            if self.diagram_gate is not None:
                await self.diagram_gate.wait()
            if prompt in self.failing_diagrams:
                raise GenerationError("No image data returned.")
            return DiagramImage(mime_type="image/svg+xml", data=base64.b64encode(prompt.encode()).decode("ascii"))
        finally:
            self.diagram_active -= 1


def make_settings(**overrides) -> Settings:
    base = dict(
        anthropic_api_key="",
        service_mode="offline",
        base_language="English",
        default_topic="Hypertext",
        search_history_size=5,
        page_chars=3000,
        result_cache_max_size=64,
        result_cache_ttl_seconds=0,
        diagram_max_concurrency=2,
        generation_timeout_s=5.0,
    )
    base.update(overrides)
    return Settings(_env_file=None, **base)


def make_browser(service: ContentService | None = None, **overrides) -> Browser:
    return Browser(service=service or ScriptedContentService(), cfg=make_settings(**overrides))


async def until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()

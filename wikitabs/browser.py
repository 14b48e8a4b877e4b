"""User intents over the session store.

Each intent resolves its target session (the active one by default), applies
one pure transformation to it, then asks the orchestrator to dispatch exactly
once. Nothing here recomputes on arbitrary state changes.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Callable

from wikitabs.config import Settings, settings as default_settings
from wikitabs.diagrams import DiagramResolver
from wikitabs.errors import ExtractionError
from wikitabs.logging import get_logger, setup_logging
from wikitabs.orchestrator import FetchOrchestrator, GenerationPlan
from wikitabs.providers import build_content_service
from wikitabs.providers.base import ContentService, DocumentExtractor
from wikitabs.providers.extractor import TextDocumentExtractor
from wikitabs.providers.prompts import DEFAULT_DOCUMENT_QUERY, DEFAULT_IMAGE_QUERY
from wikitabs.result_cache import ResultCache
from wikitabs.session import history, pagination
from wikitabs.session.models import Session
from wikitabs.session.store import SessionStore
from wikitabs.topics import clean_clicked_word, pick_random_topic
from wikitabs.types import Attachment, ExtractedDocument, content_digest

logger = get_logger(__name__)

_DOCUMENT_RESET = dict(
    document_mode=False,
    document_name=None,
    document_text=None,
    document_digest=None,
    attachment=None,
    pages=(),
    page_index=0,
)


class Browser:
    def __init__(
        self,
        *,
        service: ContentService | None = None,
        extractor: DocumentExtractor | None = None,
        cache: ResultCache | None = None,
        cfg: Settings | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.settings = cfg if cfg is not None else default_settings
        self.store = SessionStore(
            language=self.settings.base_language,
            search_history_size=self.settings.search_history_size,
        )
        self.service = service if service is not None else build_content_service(self.settings)
        self.extractor = extractor if extractor is not None else TextDocumentExtractor(self.settings.page_chars)
        self.cache = cache if cache is not None else ResultCache.from_settings(self.settings)
        self.diagrams = DiagramResolver(
            self.store,
            self.service,
            max_concurrency=self.settings.diagram_max_concurrency,
        )
        self.orchestrator = FetchOrchestrator(
            self.store,
            self.service,
            self.cache,
            base_language=self.settings.base_language,
            timeout_s=self.settings.generation_timeout_s,
            clock=clock,
        )
        self._rng = rng if rng is not None else random.Random()

    @classmethod
    def from_settings(cls, cfg: Settings | None = None, **kwargs) -> "Browser":
        """Configure logging and build a browser wired to the configured services."""
        cfg = cfg if cfg is not None else default_settings
        setup_logging(cfg.log_level)
        browser = cls(cfg=cfg, **kwargs)
        logger.info("Browser ready service=%s language=%s", browser.service.name, cfg.base_language)
        return browser

    @property
    def active(self) -> Session:
        return self.store.active

    @property
    def recent_searches(self) -> list[str]:
        return list(self.store.recent_searches)

    def session(self, session_id: str | None = None) -> Session:
        return self.store.get(self.store.resolve(session_id))

    def _apply(
        self,
        session_id: str | None,
        transform: Callable[[Session], Session],
        *,
        force: bool = False,
    ) -> GenerationPlan | None:
        sid = self.store.resolve(session_id)
        self.store.update(sid, transform)
        return self.orchestrator.dispatch(sid, force=force)

    async def wait_idle(self) -> None:
        """Wait for every outstanding generation and diagram request to finish."""
        while self.orchestrator.is_busy() or self.diagrams.is_busy():
            await self.orchestrator.wait()
            await self.diagrams.wait()

    # ------------------------------------------------------------------
    # Topic selection
    # ------------------------------------------------------------------

    async def bootstrap(self, session_id: str | None = None) -> GenerationPlan | None:
        """Open the default topic in a blank session."""
        sid = self.store.resolve(session_id)
        if self.store.get(sid).current_topic:
            return self.orchestrator.dispatch(sid)
        return self._apply(sid, lambda s: history.select_topic(s, self.settings.default_topic))

    async def search(self, query: str, session_id: str | None = None) -> GenerationPlan | None:
        return self._select(query.strip(), session_id)

    async def click_word(self, word: str, session_id: str | None = None) -> GenerationPlan | None:
        return self._select(clean_clicked_word(word), session_id)

    async def random_topic(self, session_id: str | None = None) -> GenerationPlan | None:
        current = self.session(session_id).current_topic
        return self._select(pick_random_topic(current, self._rng), session_id)

    def _select(self, topic: str, session_id: str | None) -> GenerationPlan | None:
        if not topic:
            return None
        self.store.remember_search(topic)
        return self._apply(session_id, lambda s: history.select_topic(s, topic))

    async def back(self, session_id: str | None = None) -> GenerationPlan | None:
        return self._apply(session_id, history.back)

    async def forward(self, session_id: str | None = None) -> GenerationPlan | None:
        return self._apply(session_id, history.forward)

    def can_go_back(self, session_id: str | None = None) -> bool:
        return history.can_go_back(self.session(session_id))

    def can_go_forward(self, session_id: str | None = None) -> bool:
        return history.can_go_forward(self.session(session_id))

    async def reload(self, session_id: str | None = None) -> GenerationPlan | None:
        return self._apply(
            session_id,
            lambda s: s.evolve(content="", is_loading=True, error=None, sources=()),
            force=True,
        )

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    async def set_web_search(self, enabled: bool, session_id: str | None = None) -> GenerationPlan | None:
        def transform(s: Session) -> Session:
            if s.web_search == enabled:
                return s
            return s.evolve(
                web_search=enabled,
                content="",
                is_loading=bool(s.current_topic),
                error=None,
                sources=(),
                diagrams={},
                failed_diagrams=frozenset(),
            )

        return self._apply(session_id, transform)

    async def set_language(self, language: str, session_id: str | None = None) -> GenerationPlan | None:
        language = language.strip()

        def transform(s: Session) -> Session:
            if not language or s.language == language:
                return s
            return s.evolve(
                language=language,
                content="",
                is_loading=bool(s.current_topic),
                error=None,
                sources=(),
                diagrams={},
                failed_diagrams=frozenset(),
            )

        return self._apply(session_id, transform)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def attach_file(
        self,
        name: str,
        data: bytes,
        mime_type: str,
        session_id: str | None = None,
    ) -> GenerationPlan | None:
        """Load an uploaded file into a session.

        Raises ``ExtractionError`` for unreadable files; the session is left as it was.
        """
        sid = self.store.resolve(session_id)
        mime_type = mime_type or "application/octet-stream"
        try:
            extracted = await asyncio.to_thread(self.extractor.extract, name, data, mime_type)
        except ExtractionError:
            logger.warning("Rejected upload %s (%s)", name, mime_type)
            raise
        except Exception as exc:
            logger.warning("Rejected upload %s (%s): %s", name, mime_type, exc)
            raise ExtractionError(f"Could not process '{name}'.") from exc

        digest = content_digest(data)
        if extracted is None:
            attachment = Attachment(name=name, mime_type=mime_type, data=data)
            topic = DEFAULT_IMAGE_QUERY if attachment.is_image else DEFAULT_DOCUMENT_QUERY
            logger.info("Attached %s as binary %s", name, mime_type)
            return self._apply(sid, lambda s: _load_attachment(s, attachment, topic, digest))
        logger.info("Attached %s as text, %s pages", name, len(extracted.pages))
        return self._apply(sid, lambda s: _load_text(s, name, extracted, digest))

    async def clear_document(self, session_id: str | None = None) -> GenerationPlan | None:
        base, topic = self.settings.base_language, self.settings.default_topic
        return self._apply(
            session_id,
            lambda s: history.start_over(s.evolve(language=base, web_search=False, **_DOCUMENT_RESET), topic),
        )

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def next_page(self, session_id: str | None = None) -> GenerationPlan | None:
        return self._apply(session_id, pagination.next_page)

    async def previous_page(self, session_id: str | None = None) -> GenerationPlan | None:
        return self._apply(session_id, pagination.previous_page)

    async def next_section(self, session_id: str | None = None) -> GenerationPlan | None:
        return self._apply(session_id, pagination.next_section)

    async def previous_section(self, session_id: str | None = None) -> GenerationPlan | None:
        return self._apply(session_id, pagination.previous_section)

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    async def new_tab(self) -> Session:
        return self.store.create()

    async def switch_tab(self, session_id: str) -> Session:
        return self.store.activate(session_id)

    async def close_tab(self, session_id: str) -> Session:
        """Close a session and return the one that is active afterwards."""
        self.orchestrator.abandon(session_id)
        self.store.close(session_id)
        return self.store.active


def _load_attachment(s: Session, attachment: Attachment, topic: str, digest: str) -> Session:
    s = s.evolve(
        **_DOCUMENT_RESET,
    ).evolve(
        document_mode=True,
        web_search=False,
        document_name=attachment.name,
        document_digest=digest,
        attachment=attachment,
    )
    return history.start_over(s, topic).evolve(title=attachment.name)


def _load_text(s: Session, name: str, extracted: ExtractedDocument, digest: str) -> Session:
    s = s.evolve(
        **_DOCUMENT_RESET,
    ).evolve(
        document_mode=True,
        web_search=False,
        document_name=name,
        document_digest=digest,
        document_text=extracted.text,
        pages=extracted.pages,
    )
    return history.start_over(s, name)

"""Fetch orchestrator: owns the single active generation of every session.

Per session the lifecycle is ``IDLE -> FETCHING(seq) -> READY | ERROR``. A
generation is identified by the session's ``generation_seq`` at the moment it
started; every write it makes is applied through ``SessionStore.update`` and
re-checks that number inside the transformation, so events from a superseded
generation are dropped without touching the session.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from wikitabs.logging import get_logger
from wikitabs.metrics import metrics
from wikitabs.providers.base import ContentService
from wikitabs.result_cache import ResultCache
from wikitabs.router.fingerprint import document_tag, fingerprint, mode_tag
from wikitabs.router.router import route_topic
from wikitabs.router.strategies import Strategy
from wikitabs.session.models import GenerationPhase, Session
from wikitabs.session.store import SessionStore
from wikitabs.types import (
    CachedResult,
    SourcesDelta,
    StreamEvent,
    StreamFailure,
    TextDelta,
    merge_sources,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationPlan:
    strategy: Strategy
    fingerprint: str
    reason: str


@dataclass
class _ActiveGeneration:
    seq: int
    plan: GenerationPlan
    task: asyncio.Task


def plan_generation(session: Session) -> GenerationPlan:
    """Strategy and cache fingerprint for what the session currently asks to display."""
    if session.is_reading_view:
        strategy, reason, section = Strategy.PAGE_TRANSLATION, "local page translation", session.page_index
    else:
        decision = route_topic(
            session.current_topic,
            attachment_mime=session.attachment.mime_type if session.attachment else None,
            web_search=session.web_search,
            has_document=session.has_document,
        )
        strategy, reason, section = decision.strategy, decision.reason, session.section_index
    key = fingerprint(
        mode=mode_tag(strategy, session.web_search),
        document=document_tag(session.document_name, session.document_digest),
        topic=session.current_topic,
        section_index=section,
        language=session.language,
    )
    return GenerationPlan(strategy=strategy, fingerprint=key, reason=reason)


def _display_title(session: Session) -> str:
    return session.document_name or session.current_topic


class FetchOrchestrator:
    def __init__(
        self,
        store: SessionStore,
        service: ContentService,
        cache: ResultCache,
        *,
        base_language: str = "English",
        timeout_s: float = 180.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._store = store
        self._service = service
        self._cache = cache
        self._base_language = base_language
        self._timeout_s = max(0.1, timeout_s)
        self._clock = clock
        self._active: dict[str, _ActiveGeneration] = {}

    def is_fetching(self, session_id: str) -> bool:
        active = self._active.get(session_id)
        return active is not None and not active.task.done()

    def is_busy(self) -> bool:
        return any(self.is_fetching(sid) for sid in list(self._active))

    def active_plan(self, session_id: str) -> GenerationPlan | None:
        active = self._active.get(session_id)
        return active.plan if active is not None and not active.task.done() else None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, session_id: str, *, force: bool = False) -> GenerationPlan | None:
        """Bring one session in line with its current request.

        Returns the plan of a newly started generation, or None when the request
        was served locally, from the cache, or needed no work.
        """
        session = self._store.find(session_id)
        if session is None or not session.current_topic:
            return None

        if session.is_reading_view and session.language == self._base_language:
            self._settle(session_id, _show_current_page)
            return None

        plan = plan_generation(session)

        if not force and session.content == "":
            entry = self._cache.lookup(plan.fingerprint)
            if entry is not None:
                logger.debug("Serving session=%s from cache fingerprint=%s", session_id, plan.fingerprint)
                self._settle(session_id, lambda s: _hydrate(s, entry))
                return None

        if not session.is_loading:
            return None

        in_flight = self.active_plan(session_id)
        if not force and in_flight is not None and in_flight.fingerprint == plan.fingerprint:
            return None

        self._start(session_id, plan)
        return plan

    def abandon(self, session_id: str) -> None:
        """Stop consuming the session's generation; used when the session is closed."""
        active = self._active.pop(session_id, None)
        if active is not None and not active.task.done():
            active.task.cancel()

    async def wait(self) -> None:
        while True:
            tasks = [a.task for a in self._active.values() if not a.task.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def _supersede(self, session_id: str) -> bool:
        """Cancel the session's in-flight generation, if any. Call after its seq was bumped."""
        active = self._active.pop(session_id, None)
        if active is None:
            return False
        if not active.task.done():
            active.task.cancel()
            metrics.superseded_events += 1
            logger.debug("Cancelled superseded generation session=%s seq=%s", session_id, active.seq)
        return True

    def _settle(self, session_id: str, transform: Callable[[Session], Session]) -> None:
        """Finish a request without a generation, superseding any one still in flight."""
        if session_id in self._active:
            self._store.update(session_id, lambda s: transform(s.evolve(generation_seq=s.generation_seq + 1)))
            self._supersede(session_id)
        else:
            self._store.update(session_id, transform)

    def _start(self, session_id: str, plan: GenerationPlan) -> None:
        started = self._store.update(
            session_id,
            lambda s: s.evolve(
                generation_seq=s.generation_seq + 1,
                phase=GenerationPhase.FETCHING,
                is_loading=True,
                error=None,
                content="",
                sources=(),
                elapsed_ms=None,
            ),
        )
        if started is None:
            return
        self._supersede(session_id)
        seq = started.generation_seq
        logger.debug(
            "Generation start session=%s seq=%s strategy=%s reason=%s fingerprint=%s",
            session_id,
            seq,
            plan.strategy.value,
            plan.reason,
            plan.fingerprint,
        )
        metrics.generations_started += 1
        task = asyncio.get_running_loop().create_task(self._run(session_id, seq, plan, started))
        self._active[session_id] = _ActiveGeneration(seq=seq, plan=plan, task=task)
        task.add_done_callback(lambda t: self._forget(session_id, seq))

    def _forget(self, session_id: str, seq: int) -> None:
        active = self._active.get(session_id)
        if active is not None and active.seq == seq:
            del self._active[session_id]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _is_current(self, session_id: str, seq: int) -> bool:
        session = self._store.find(session_id)
        return session is not None and session.generation_seq == seq

    def _open_stream(self, strategy: Strategy, s: Session) -> AsyncIterator[StreamEvent]:
        topic = s.current_topic
        if strategy is Strategy.DEFINITION:
            return self._service.generate_definition(topic, s.language)
        if strategy is Strategy.VIDEO_SUMMARY:
            return self._service.generate_video_summary(topic.strip(), s.language)
        if strategy is Strategy.WEB_RESOURCE:
            return self._service.generate_web_resource(s.web_url or topic.strip(), s.section_index, s.language)
        if strategy in (Strategy.DOCUMENT_QUERY, Strategy.DOCUMENT_SEARCH):
            return self._service.generate_document_answer(
                topic,
                language=s.language,
                document_text=s.document_text,
                attachment=s.attachment,
                document_name=s.document_name,
                use_search=strategy is Strategy.DOCUMENT_SEARCH,
            )
        if strategy is Strategy.IMAGE_ANALYSIS:
            return self._service.generate_image_analysis(topic, s.attachment, s.language)
        if strategy is Strategy.PAGE_TRANSLATION:
            return self._service.generate_translation(s.current_page_text, s.language)
        raise ValueError(f"No streaming operation for strategy {strategy.value}")

    async def _events(self, plan: GenerationPlan, snapshot: Session) -> AsyncIterator[StreamEvent]:
        if not plan.strategy.streams:
            answer = await self._service.generate_search_answer(snapshot.current_topic, snapshot.language)
            yield TextDelta(text=answer.text)
            if answer.sources:
                yield SourcesDelta(sources=answer.sources)
            return
        stream = self._open_stream(plan.strategy, snapshot)
        try:
            async for event in stream:
                yield event
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _run(self, session_id: str, seq: int, plan: GenerationPlan, snapshot: Session) -> None:
        started = self._clock()
        parts: list[str] = []
        sources: list = []
        failure: str | None = None
        events = self._events(plan, snapshot)
        try:
            async with asyncio.timeout(self._timeout_s):
                async for event in events:
                    if not self._is_current(session_id, seq):
                        metrics.superseded_events += 1
                        logger.debug("Discarding superseded event session=%s seq=%s", session_id, seq)
                        return
                    if isinstance(event, StreamFailure):
                        failure = event.message
                        break
                    if isinstance(event, TextDelta):
                        if not event.text:
                            continue
                        parts.append(event.text)
                    elif isinstance(event, SourcesDelta):
                        sources = merge_sources(sources, event.sources)
                    self._apply(session_id, seq, "".join(parts), sources)
        except TimeoutError:
            failure = f"Generation timed out after {self._timeout_s:g}s."
        except Exception as exc:
            failure = str(exc) or exc.__class__.__name__
        finally:
            await events.aclose()

        elapsed_ms = (self._clock() - started) * 1000.0
        if not self._is_current(session_id, seq):
            metrics.superseded_events += 1
            return
        metrics.record_generation(strategy=plan.strategy.value, elapsed_ms=elapsed_ms, error=failure is not None)
        if failure is not None:
            logger.warning("Generation failed session=%s strategy=%s error=%s", session_id, plan.strategy.value, failure)
            self._store.update(session_id, lambda s: _fail(s, seq, failure, elapsed_ms))
            return

        content = "".join(parts)
        if content:
            self._cache.store(
                plan.fingerprint,
                CachedResult(content=content, elapsed_ms=elapsed_ms, sources=sources, language=snapshot.language),
            )
        self._store.update(session_id, lambda s: _complete(s, seq, content, sources, elapsed_ms))

    def _apply(self, session_id: str, seq: int, content: str, sources: list) -> None:
        def transform(s: Session) -> Session:
            if s.generation_seq != seq:
                return s
            return s.evolve(content=content, sources=tuple(sources))

        self._store.update(session_id, transform)


def _show_current_page(s: Session) -> Session:
    return s.evolve(
        content=s.current_page_text,
        is_loading=False,
        error=None,
        sources=(),
        elapsed_ms=None,
        phase=GenerationPhase.READY,
        title=_display_title(s),
    )


def _hydrate(s: Session, entry: CachedResult) -> Session:
    return s.evolve(
        content=entry.content,
        elapsed_ms=entry.elapsed_ms,
        sources=tuple(entry.sources),
        error=None,
        is_loading=False,
        phase=GenerationPhase.READY,
        title=_display_title(s),
    )


def _complete(s: Session, seq: int, content: str, sources: list, elapsed_ms: float) -> Session:
    if s.generation_seq != seq:
        return s
    return s.evolve(
        content=content,
        sources=tuple(sources),
        elapsed_ms=elapsed_ms,
        is_loading=False,
        error=None,
        phase=GenerationPhase.READY,
        title=_display_title(s),
    )


def _fail(s: Session, seq: int, message: str, elapsed_ms: float) -> Session:
    # Partial content streamed before the failure stays on screen.
    if s.generation_seq != seq:
        return s
    return s.evolve(error=message, is_loading=False, elapsed_ms=elapsed_ms, phase=GenerationPhase.ERROR)

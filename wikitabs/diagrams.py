"""Resolves inline ``[DIAGRAM: prompt]`` markers into images, in the background.

Pending prompts are tracked per session: the same prompt showing up in two
tabs yields one request per tab. Each session has its own bound on
outstanding requests. A failed prompt is recorded on the session and not
retried until the session moves to a new topic.
"""

from __future__ import annotations

import asyncio
import re

from wikitabs.logging import get_logger
from wikitabs.metrics import metrics
from wikitabs.providers.base import ContentService
from wikitabs.session.models import Session
from wikitabs.session.store import SessionStore

logger = get_logger(__name__)

DIAGRAM_RE = re.compile(r"\[DIAGRAM:\s*(.*?)\]")


def find_diagram_prompts(content: str) -> list[str]:
    """Distinct marker prompts in order of first appearance. Unterminated markers are ignored."""
    return list(dict.fromkeys(m.group(1) for m in DIAGRAM_RE.finditer(content or "")))


class DiagramResolver:
    def __init__(self, store: SessionStore, service: ContentService, *, max_concurrency: int = 2) -> None:
        self._store = store
        self._service = service
        self._max_concurrency = max(1, max_concurrency)
        self._pending: dict[str, set[str]] = {}
        self._limits: dict[str, asyncio.Semaphore] = {}
        self._tasks: dict[str, set[asyncio.Task]] = {}
        store.subscribe(self._on_change)

    def pending(self, session_id: str) -> frozenset[str]:
        return frozenset(self._pending.get(session_id, ()))

    def is_busy(self) -> bool:
        return any(not t.done() for group in self._tasks.values() for t in group)

    def _on_change(self, previous: Session, current: Session | None) -> None:
        if current is None:
            self.forget(previous.id)
            return
        if current.content and current.content != previous.content:
            self.scan(current.id)

    def scan(self, session_id: str) -> list[str]:
        """Start one request per new prompt in the session's content. Returns the prompts started."""
        session = self._store.find(session_id)
        if session is None or not session.content:
            return []
        pending = self._pending.setdefault(session_id, set())
        started: list[str] = []
        for prompt in find_diagram_prompts(session.content):
            if prompt in session.diagrams or prompt in session.failed_diagrams or prompt in pending:
                continue
            pending.add(prompt)
            task = asyncio.get_running_loop().create_task(self._resolve(session_id, prompt))
            tasks = self._tasks.setdefault(session_id, set())
            tasks.add(task)
            task.add_done_callback(tasks.discard)
            started.append(prompt)
        return started

    async def _resolve(self, session_id: str, prompt: str) -> None:
        limit = self._limits.setdefault(session_id, asyncio.Semaphore(self._max_concurrency))
        metrics.diagram_requests += 1
        try:
            async with limit:
                image = await self._service.generate_diagram_image(prompt)
        except Exception as exc:
            metrics.diagram_failures += 1
            logger.warning("Diagram failed session=%s prompt=%r error=%s", session_id, prompt, exc)
            self._store.update(session_id, lambda s: _mark_failed(s, prompt))
        else:
            self._store.update(session_id, lambda s: _attach_image(s, prompt, image))
        finally:
            pending = self._pending.get(session_id)
            if pending is not None:
                pending.discard(prompt)

    def forget(self, session_id: str) -> None:
        for task in self._tasks.pop(session_id, set()):
            task.cancel()
        self._pending.pop(session_id, None)
        self._limits.pop(session_id, None)

    async def wait(self) -> None:
        while True:
            tasks = [t for group in self._tasks.values() for t in group if not t.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)


def _attach_image(session: Session, prompt: str, image) -> Session:
    if prompt not in find_diagram_prompts(session.content):
        logger.debug("Dropping diagram for prompt no longer shown session=%s", session.id)
        return session
    return session.evolve(diagrams={**session.diagrams, prompt: image})


def _mark_failed(session: Session, prompt: str) -> Session:
    if prompt not in find_diagram_prompts(session.content):
        return session
    return session.evolve(failed_diagrams=session.failed_diagrams | {prompt})

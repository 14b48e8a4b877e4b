"""Per-tab session record.

A ``Session`` is immutable: every change produces a new record through
``dataclasses.replace`` and is written back through ``SessionStore.update``
under the session's own id, so an update built for one tab can never land on
another.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from wikitabs.types import Attachment, DiagramImage, DocumentCitation, WebCitation


class GenerationPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"


def new_session_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass(frozen=True)
class Session:
    id: str
    title: str = "New Tab"

    # History
    current_topic: str = ""
    history: tuple[str, ...] = ()
    future: tuple[str, ...] = ()

    # Content
    content: str = ""
    is_loading: bool = False
    error: str | None = None
    phase: GenerationPhase = GenerationPhase.IDLE
    generation_seq: int = 0
    elapsed_ms: float | None = None
    sources: tuple[WebCitation | DocumentCitation, ...] = ()

    # Mode and document
    web_search: bool = False
    document_mode: bool = False
    document_name: str | None = None
    document_text: str | None = field(default=None, repr=False)
    document_digest: str | None = None
    attachment: Attachment | None = None
    pages: tuple[str, ...] = field(default=(), repr=False)
    page_index: int = 0

    # Remote reading
    web_url: str | None = None
    section_index: int = 0
    diagrams: dict[str, DiagramImage] = field(default_factory=dict, repr=False)
    failed_diagrams: frozenset[str] = frozenset()

    language: str = "English"

    @property
    def has_document(self) -> bool:
        return bool(self.document_text) or self.attachment is not None

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def current_page_text(self) -> str:
        if not self.pages:
            return ""
        return self.pages[min(self.page_index, len(self.pages) - 1)]

    @property
    def is_reading_view(self) -> bool:
        """True while a locally paginated text document is displayed page by page."""
        return (
            self.document_mode
            and not self.web_search
            and self.attachment is None
            and bool(self.document_text)
            and self.current_topic == self.document_name
        )

    def evolve(self, **changes: Any) -> "Session":
        return replace(self, **changes)


def new_session(session_id: str | None = None, *, language: str = "English") -> Session:
    return Session(id=session_id or new_session_id(), language=language)

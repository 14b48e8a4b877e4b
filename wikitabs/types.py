"""Data models shared across the service boundary: sources, stream events, attachments, cache entries."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass, field
from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from wikitabs.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Grounding sources
# ---------------------------------------------------------------------------

class WebCitation(BaseModel):
    kind: Literal["web"] = "web"
    uri: str
    title: str = ""


class DocumentCitation(BaseModel):
    kind: Literal["document"] = "document"
    title: str = ""
    cited_text: str = ""


GroundingSource = Annotated[Union[WebCitation, DocumentCitation], Field(discriminator="kind")]

_SOURCE_ADAPTER: TypeAdapter[WebCitation | DocumentCitation] = TypeAdapter(GroundingSource)


def parse_sources(raw: Iterable[Any] | None) -> list[WebCitation | DocumentCitation]:
    """Validate untyped source payloads, dropping entries that do not match a known kind."""
    out: list[WebCitation | DocumentCitation] = []
    for item in raw or []:
        if isinstance(item, (WebCitation, DocumentCitation)):
            out.append(item)
            continue
        try:
            out.append(_SOURCE_ADAPTER.validate_python(item))
        except ValidationError as exc:
            logger.warning("Dropping malformed grounding source %r: %s", item, exc.errors()[:1])
    return out


def source_key(source: WebCitation | DocumentCitation) -> tuple[str, ...]:
    if isinstance(source, WebCitation):
        return ("web", source.uri)
    return ("document", source.title, source.cited_text)


def merge_sources(
    existing: Iterable[WebCitation | DocumentCitation],
    incoming: Iterable[WebCitation | DocumentCitation],
) -> list[WebCitation | DocumentCitation]:
    merged: list[WebCitation | DocumentCitation] = []
    seen: set[tuple[str, ...]] = set()
    for source in list(existing) + list(incoming):
        key = source_key(source)
        if key in seen:
            continue
        seen.add(key)
        merged.append(source)
    return merged


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------

class TextDelta(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class SourcesDelta(BaseModel):
    kind: Literal["sources"] = "sources"
    sources: list[GroundingSource] = Field(default_factory=list)


class StreamFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    message: str


StreamEvent = Annotated[Union[TextDelta, SourcesDelta, StreamFailure], Field(discriminator="kind")]


class SearchAnswer(BaseModel):
    text: str = ""
    sources: list[GroundingSource] = Field(default_factory=list)


class DiagramImage(BaseModel):
    mime_type: str = "image/png"
    data: str  # base64


class CachedResult(BaseModel):
    content: str
    elapsed_ms: float | None = None
    sources: list[GroundingSource] = Field(default_factory=list)
    language: str


# ---------------------------------------------------------------------------
# Uploaded files
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Attachment:
    """Raw file handed directly to the generation service."""

    name: str
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class ExtractedDocument:
    text: str
    pages: tuple[str, ...]


def content_digest(data: bytes | str) -> str:
    raw = data.encode("utf-8") if isinstance(data, str) else data
    return hashlib.sha256(raw).hexdigest()[:8]

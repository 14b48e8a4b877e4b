import re
from pathlib import PurePath

from wikitabs.errors import ExtractionError
from wikitabs.providers.base import DocumentExtractor
from wikitabs.types import ExtractedDocument

_TEXT_MIME_TYPES = {
    "application/json",
    "application/xml",
    "application/x-yaml",
    "application/yaml",
    "application/x-sh",
}
_TEXT_SUFFIXES = {".txt", ".md", ".markdown", ".csv", ".json", ".xml", ".yaml", ".yml", ".rst", ".log"}
_PARAGRAPH_RE = re.compile(r"\n\s*\n")


def is_text_payload(name: str, mime_type: str) -> bool:
    mime = (mime_type or "").lower().split(";")[0].strip()
    if mime.startswith("text/") or mime in _TEXT_MIME_TYPES:
        return True
    if mime in {"", "application/octet-stream"}:
        return PurePath(name).suffix.lower() in _TEXT_SUFFIXES
    return False


def paginate(text: str, page_chars: int) -> list[str]:
    """Split on form feeds when present, otherwise pack paragraphs into pages of about ``page_chars``."""
    if "\f" in text:
        return [p.strip() for p in text.split("\f") if p.strip()]

    page_chars = max(1, page_chars)
    pages: list[str] = []
    current = ""
    for para in (p.strip() for p in _PARAGRAPH_RE.split(text)):
        if not para:
            continue
        while len(para) > page_chars:
            if current:
                pages.append(current)
                current = ""
            pages.append(para[:page_chars])
            para = para[page_chars:].lstrip()
        if not para:
            continue
        candidate = f"{current}\n\n{para}" if current else para
        if len(candidate) > page_chars and current:
            pages.append(current)
            current = para
        else:
            current = candidate
    if current:
        pages.append(current)
    return pages


class TextDocumentExtractor(DocumentExtractor):
    """Reads plain-text style uploads. Everything else is passed to the service as a raw attachment."""

    def __init__(self, page_chars: int = 3000) -> None:
        self.page_chars = page_chars

    def extract(self, name: str, data: bytes, mime_type: str) -> ExtractedDocument | None:
        if not is_text_payload(name, mime_type):
            return None
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Could not read '{name}' as UTF-8 text.") from exc
        text = text.replace("\r\n", "\n").strip()
        if not text:
            return None
        return ExtractedDocument(text=text, pages=tuple(paginate(text, self.page_chars)))

from dataclasses import dataclass
import re

from wikitabs.router.strategies import Strategy

YOUTUBE_URL_RE = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+$", re.IGNORECASE)
WEB_URL_RE = re.compile(r"^(https?://[^\s]+\.[^\s]+)", re.IGNORECASE)


@dataclass(frozen=True)
class RouteDecision:
    strategy: Strategy
    reason: str


def is_youtube_url(text: str) -> bool:
    return bool(YOUTUBE_URL_RE.match((text or "").strip()))


def is_web_url(text: str) -> bool:
    return bool(WEB_URL_RE.match((text or "").strip()))


def route_topic(
    topic: str,
    *,
    attachment_mime: str | None = None,
    web_search: bool = False,
    has_document: bool = False,
) -> RouteDecision:
    """Classify a request into exactly one strategy. First matching rule wins.

    ``has_document`` covers both extracted document text and a raw attachment.
    """
    if attachment_mime and attachment_mime.lower().startswith("image/"):
        return RouteDecision(Strategy.IMAGE_ANALYSIS, "image attachment")
    if is_youtube_url(topic):
        return RouteDecision(Strategy.VIDEO_SUMMARY, "youtube url")
    # A loaded document outranks URL detection so in-document questions stay in the document.
    if is_web_url(topic) and not has_document:
        return RouteDecision(Strategy.WEB_RESOURCE, "web url")
    if web_search:
        if has_document:
            return RouteDecision(Strategy.DOCUMENT_SEARCH, "web search with document loaded")
        return RouteDecision(Strategy.WEB_SEARCH, "web search mode")
    if has_document:
        return RouteDecision(Strategy.DOCUMENT_QUERY, "document loaded")
    return RouteDecision(Strategy.DEFINITION, "default")

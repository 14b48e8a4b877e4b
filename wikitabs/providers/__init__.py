"""External collaborators: content generation service and document extraction."""

from wikitabs.config import Settings
from wikitabs.logging import get_logger
from wikitabs.providers.base import ContentService, DocumentExtractor
from wikitabs.providers.extractor import TextDocumentExtractor
from wikitabs.providers.offline import OfflineContentService

logger = get_logger(__name__)

__all__ = [
    "ContentService",
    "DocumentExtractor",
    "OfflineContentService",
    "TextDocumentExtractor",
    "build_content_service",
]


def build_content_service(cfg: Settings) -> ContentService:
    """Online mode needs an API key; without one the offline stub is used."""
    mode = cfg.service_mode.lower()
    if mode == "online" and not cfg.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is not set; falling back to the offline content service")
        mode = "offline"
    if mode == "online":
        from wikitabs.providers.claude_service import ClaudeContentService

        return ClaudeContentService.from_settings(cfg)
    if mode != "offline":
        logger.warning(f"Unknown service mode '{cfg.service_mode}', using offline")
    return OfflineContentService()

from enum import Enum


class Strategy(str, Enum):
    """Generation paths. The topic router only ever selects the first seven."""

    IMAGE_ANALYSIS = "image_analysis"
    VIDEO_SUMMARY = "video_summary"
    WEB_RESOURCE = "web_resource"
    DOCUMENT_SEARCH = "document_search"
    WEB_SEARCH = "web_search"
    DOCUMENT_QUERY = "document_query"
    DEFINITION = "definition"
    # Chosen by the orchestrator for the local reading view, never by the router.
    PAGE_TRANSLATION = "page_translation"

    @property
    def streams(self) -> bool:
        return self is not Strategy.WEB_SEARCH

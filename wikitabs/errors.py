class WikiTabsError(Exception):
    """Base class for all errors raised by this package."""


class GenerationError(WikiTabsError):
    """A generation failed or timed out before completing."""


class UnsupportedAttachmentError(GenerationError):
    """The provider cannot accept an attachment of this mime type."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Attachments of type '{mime_type}' are not supported.")
        self.mime_type = mime_type


class ExtractionError(WikiTabsError):
    """An uploaded file could not be read."""


class UnknownSessionError(WikiTabsError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Unknown session: {session_id}")
        self.session_id = session_id

"""Local page and remote section navigation.

Local pages are bounded to ``[0, page_count - 1]``; moving past either end is
a no-op. Remote sections only move forward without bound; the service decides
what an out-of-range section means. The section index never goes below zero.
"""

from wikitabs.session.models import Session


def _goto_page(session: Session, index: int) -> Session:
    if not session.pages or index == session.page_index:
        return session
    if not session.is_reading_view:
        return session.evolve(page_index=index)
    return session.evolve(page_index=index, content="", is_loading=True, error=None, sources=())


def next_page(session: Session) -> Session:
    return _goto_page(session, min(session.page_index + 1, max(session.page_count - 1, 0)))


def previous_page(session: Session) -> Session:
    return _goto_page(session, max(session.page_index - 1, 0))


def _goto_section(session: Session, index: int) -> Session:
    if session.web_url is None or index == session.section_index:
        return session
    return session.evolve(
        section_index=index,
        content="",
        is_loading=True,
        error=None,
        sources=(),
        diagrams={},
        failed_diagrams=frozenset(),
    )


def next_section(session: Session) -> Session:
    return _goto_section(session, session.section_index + 1)


def previous_section(session: Session) -> Session:
    return _goto_section(session, max(session.section_index - 1, 0))

"""Back/forward navigation over per-session topic stacks.

``history`` and ``future`` are stacks whose top is the last element. Back pops
``history`` and pushes the departed topic on ``future``; forward mirrors it;
any fresh topic selection clears ``future``.
"""

from wikitabs.router.router import is_web_url
from wikitabs.session.models import Session


def _show_topic(session: Session, topic: str, **changes) -> Session:
    return session.evolve(
        current_topic=topic,
        title=topic,
        content="",
        is_loading=True,
        error=None,
        sources=(),
        elapsed_ms=None,
        web_url=topic.strip() if is_web_url(topic) else None,
        section_index=0,
        diagrams={},
        failed_diagrams=frozenset(),
        **changes,
    )


def select_topic(session: Session, topic: str) -> Session:
    history = session.history + (session.current_topic,) if session.current_topic else session.history
    return _show_topic(session, topic, history=history, future=())


def start_over(session: Session, topic: str) -> Session:
    """Show ``topic`` with both stacks emptied."""
    return _show_topic(session, topic, history=(), future=())


def back(session: Session) -> Session:
    if not session.history:
        return session
    previous = session.history[-1]
    return _show_topic(
        session,
        previous,
        history=session.history[:-1],
        future=session.future + (session.current_topic,),
    )


def forward(session: Session) -> Session:
    if not session.future:
        return session
    following = session.future[-1]
    return _show_topic(
        session,
        following,
        history=session.history + (session.current_topic,),
        future=session.future[:-1],
    )


def can_go_back(session: Session) -> bool:
    return bool(session.history)


def can_go_forward(session: Session) -> bool:
    return bool(session.future)

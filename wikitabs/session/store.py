from collections import OrderedDict
from typing import Callable, Iterator

from wikitabs.errors import UnknownSessionError
from wikitabs.logging import get_logger
from wikitabs.session.models import Session, new_session

logger = get_logger(__name__)

SessionListener = Callable[[Session, Session | None], None]


class SessionStore:
    """All open sessions plus the active-session selector. Never empty.

    Every mutation goes through ``update``, which applies a pure
    ``Session -> Session`` transformation to exactly one session id.
    """

    def __init__(self, *, language: str = "English", search_history_size: int = 5) -> None:
        self._language = language
        self._search_history_size = max(1, search_history_size)
        self._sessions: OrderedDict[str, Session] = OrderedDict()
        self._listeners: list[SessionListener] = []
        self.recent_searches: list[str] = []
        seed = new_session(language=language)
        self._sessions[seed.id] = seed
        self._active_id = seed.id

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @property
    def active_id(self) -> str:
        return self._active_id

    @property
    def active(self) -> Session:
        return self._sessions[self._active_id]

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def find(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    def resolve(self, session_id: str | None) -> str:
        if session_id is None:
            return self._active_id
        if session_id not in self._sessions:
            raise UnknownSessionError(session_id)
        return session_id

    def update(self, session_id: str, transform: Callable[[Session], Session]) -> Session | None:
        """Apply ``transform`` to one session. Returns None if the session no longer exists."""
        previous = self._sessions.get(session_id)
        if previous is None:
            return None
        current = transform(previous)
        if current.id != session_id:
            raise ValueError(f"Update for session {session_id} produced session {current.id}")
        if current is previous:
            return current
        self._sessions[session_id] = current
        self._notify(previous, current)
        return current

    def create(self, *, activate: bool = True) -> Session:
        session = new_session(language=self._language)
        self._sessions[session.id] = session
        if activate:
            self._active_id = session.id
        return session

    def activate(self, session_id: str) -> Session:
        session = self.get(session_id)
        self._active_id = session_id
        return session

    def close(self, session_id: str) -> Session:
        closed = self._sessions.pop(session_id, None)
        if closed is None:
            raise UnknownSessionError(session_id)
        if not self._sessions:
            fresh = new_session(language=self._language)
            self._sessions[fresh.id] = fresh
            self._active_id = fresh.id
            logger.debug("Closed last session %s; created %s", session_id, fresh.id)
        elif session_id == self._active_id:
            self._active_id = next(reversed(self._sessions))
        self._notify(closed, None)
        return closed

    def remember_search(self, topic: str) -> None:
        if not topic:
            return
        rest = [t for t in self.recent_searches if t.lower() != topic.lower()]
        self.recent_searches = [topic, *rest][: self._search_history_size]

    def _notify(self, previous: Session, current: Session | None) -> None:
        for listener in list(self._listeners):
            listener(previous, current)

"""In-process session storage, for development and tests."""

from ..services.session_cache import Session


class InMemorySessionStorage:
    def __init__(self, sessions: dict[str, Session] | None = None) -> None:
        self.sessions: dict[str, Session] = dict(sessions or {})
        self.load_count = 0
        self.update_count = 0

    async def load_session(self, phone: str) -> Session | None:
        self.load_count += 1
        return self.sessions.get(phone)

    async def update_session(self, phone: str, session: Session | None) -> None:
        self.update_count += 1
        if session is None:
            self.sessions.pop(phone, None)
        else:
            self.sessions[phone] = session

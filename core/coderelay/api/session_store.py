"""Shared chat session instance for API routes."""

from typing import Optional

from coderelay.engine.notifications import QueueNotificationSink
from coderelay.engine.session import ChatSession

session: Optional[ChatSession] = None
sink = QueueNotificationSink()


def get_session() -> ChatSession:
    """Get or create the session instance."""
    global session
    if session is None:
        session = ChatSession(sink=sink)
    return session

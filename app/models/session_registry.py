"""
Registry of live call relay sessions.

The registry only tracks which sessions exist so the process can report on
them; sessions never look each other up through it.
"""

from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from app.bot.call_relay import CallRelaySession


class SessionRegistry:
    """
    Tracks the call relay sessions currently running in this process.

    Only touched from the event loop, so no locking is needed.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self.active_sessions: Dict[str, "CallRelaySession"] = {}

    def add(self, session: "CallRelaySession") -> None:
        """
        Register a session under its id.

        Args:
            session: The session to register

        Raises:
            ValueError: If a session with the same id is already registered
        """
        if session.session_id in self.active_sessions:
            raise ValueError(f"Session already registered: {session.session_id}")
        self.active_sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional["CallRelaySession"]:
        return self.active_sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        """Remove a session; unknown ids are ignored."""
        self.active_sessions.pop(session_id, None)

    @property
    def active_count(self) -> int:
        return len(self.active_sessions)

    def __len__(self) -> int:
        return len(self.active_sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.active_sessions

"""In-memory registry of pipeline sessions.

Sessions live only in process memory and are lost on restart.
"""
from typing import Any, Dict, List, Optional

import structlog

from rag_studio import config
from rag_studio.errors import SessionNotFoundError
from rag_studio.session.pipeline import PipelineSession

logger = structlog.get_logger()


class SessionManager:
    """Creates, looks up and deletes pipeline sessions."""

    def __init__(self, max_sessions: Optional[int] = None):
        """Initialize the registry.

        Args:
            max_sessions: Cap on live sessions (default from config); creating
                one more evicts the oldest
        """
        self.max_sessions = max(1, max_sessions or config.MAX_SESSIONS)
        # Insertion order is creation order
        self._sessions: Dict[str, PipelineSession] = {}

    def create_session(self) -> PipelineSession:
        """Create a new pipeline session, evicting the oldest at the cap.

        Returns:
            The created session
        """
        while len(self._sessions) >= self.max_sessions:
            oldest_id = next(iter(self._sessions))
            del self._sessions[oldest_id]
            logger.info("session_evicted", session_id=oldest_id, max_sessions=self.max_sessions)

        session = PipelineSession()
        self._sessions[session.id] = session
        logger.info("session_created", session_id=session.id)
        return session

    def get_session(self, session_id: str) -> PipelineSession:
        """Get a session by id.

        Raises:
            SessionNotFoundError: If no such session exists
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(self, limit: int = 50) -> List[Dict[str, Any]]:
        """List sessions, most recent first.

        Args:
            limit: Maximum number of sessions to return

        Returns:
            List of session snapshots
        """
        sessions = list(reversed(self._sessions.values()))
        return [session.snapshot() for session in sessions[:limit]]

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and all its state.

        Returns:
            True if deleted, False if not found
        """
        deleted = self._sessions.pop(session_id, None) is not None
        if deleted:
            logger.info("session_deleted", session_id=session_id)
        return deleted

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

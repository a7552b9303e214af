"""
In-memory registry of auto-apply sessions.

Holds the latest snapshot of each run so a request handler can poll
status while the run progresses. Nothing outlives the process.
"""

import logging
from datetime import datetime, timedelta, timezone

from autoapply.models import AutoApplySession

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=24)


class SessionStore:
    """
    Per-process session store keyed by session id.

    ``set_snapshot`` has the status-callback signature, so it can be
    passed directly as ``on_status_update``.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, AutoApplySession] = {}

    def get(self, session_id: str) -> AutoApplySession | None:
        return self._sessions.get(session_id)

    def set(self, session_id: str, session: AutoApplySession) -> None:
        self._sessions[session_id] = session

    def set_snapshot(self, session: AutoApplySession) -> None:
        """Store a snapshot under its own id."""
        self.set(session.id, session)

    def delete(self, session_id: str) -> bool:
        """Delete a session. Returns False if it was not stored."""
        return self._sessions.pop(session_id, None) is not None

    def all(self) -> list[AutoApplySession]:
        return list(self._sessions.values())

    def cleanup_old_sessions(self, max_age: timedelta = DEFAULT_MAX_AGE) -> int:
        """
        Drop sessions started more than ``max_age`` ago.

        Sessions that never started count as expired.

        Returns:
            Number of sessions removed
        """
        cutoff = datetime.now(timezone.utc) - max_age
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.started_at is None or session.started_at < cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired auto-apply sessions")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

"""
Session Store
Ingestion boundary for NAC sessions reported by the access layer
"""

import logging
from datetime import timedelta
from typing import Dict, Any, List

from nac_policy.core.config import settings
from nac_policy.core.exceptions import NotFoundError
from nac_policy.models.session import Session, SessionState
from nac_policy.utils.helpers import utc_now

logger = logging.getLogger(__name__)

class SessionStore:
    def __init__(self, coordinator=None):
        self.coordinator = coordinator
        self.sessions: Dict[str, Session] = {}
        self.received_count = 0

    def receive(self, session: Session) -> Session:
        """Store the session and hand it to the analysis pipeline"""
        now = utc_now()
        if session.start_time is None:
            session.start_time = now
        if session.last_update_time is None:
            session.last_update_time = now

        self.sessions[session.session_id] = session
        self.received_count += 1
        logger.debug(f"Received session {session.session_id} for user {session.user_name}")

        if self.coordinator is not None:
            self.coordinator.submit(session)

        return session

    def get(self, session_id: str) -> Session:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    def get_all_active(self) -> List[Session]:
        return [s for s in self.sessions.values() if s.session_state == SessionState.ACTIVE]

    def get_by_user(self, user_name: str) -> List[Session]:
        return [s for s in self.sessions.values() if s.user_name == user_name]

    def get_by_mac(self, mac_address: str) -> List[Session]:
        mac = mac_address.lower()
        return [s for s in self.sessions.values() if s.mac_address.lower() == mac]

    def cleanup_old_sessions(self, max_age_hours: int = 24) -> int:
        cutoff = utc_now() - timedelta(hours=max_age_hours)
        expired = [
            session_id for session_id, s in self.sessions.items()
            if s.last_update_time is not None and s.last_update_time < cutoff
        ]
        for session_id in expired:
            del self.sessions[session_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} sessions older than {max_age_hours}h")
        return len(expired)

    def clear(self):
        self.sessions.clear()

    def health(self) -> Dict[str, Any]:
        return {
            "status": "UP",
            "active_sessions": len(self.get_all_active()),
            "total_sessions": len(self.sessions),
            "received_sessions": self.received_count,
            "timestamp": utc_now().isoformat(),
            "version": settings.version
        }

"""
Conversation session registry.

Holds one ConversationEngine per reporter session in process memory. A
session is dropped once its report has been submitted or when the caller
abandons it. There is no timeout: once MAX_CONVERSATION_SESSIONS are open,
starting a new one evicts the oldest.
"""

from typing import Dict, Optional
import logging
import uuid

from app.core.settings import settings
from app.services.conversation_engine import ConversationEngine, SubmissionSink
from app.services import report_service

logger = logging.getLogger(__name__)


class ConversationSessionRegistry:

    def __init__(self, submit: Optional[SubmissionSink] = None, max_sessions: Optional[int] = None):
        self._submit = submit or report_service.submit_report
        self.max_sessions = max_sessions or settings.MAX_CONVERSATION_SESSIONS
        self._sessions: Dict[str, ConversationEngine] = {}

    def start(self, user_id: Optional[str] = None) -> tuple:
        while len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            self._sessions.pop(oldest)
            logger.warning(f"Conversation {oldest} evicted, session limit {self.max_sessions} reached")
        session_id = uuid.uuid4().hex
        engine = ConversationEngine(self._submit, user_id=user_id)
        self._sessions[session_id] = engine
        logger.info(f"Conversation {session_id} started")
        return session_id, engine

    def get(self, session_id: str) -> Optional[ConversationEngine]:
        return self._sessions.get(session_id)

    def finish(self, session_id: str) -> bool:
        """Drop a session. Returns False if it did not exist."""
        engine = self._sessions.pop(session_id, None)
        if engine is None:
            return False
        state = "completed" if engine.submitted else "abandoned"
        logger.info(f"Conversation {session_id} {state}")
        return True

    def __len__(self) -> int:
        return len(self._sessions)


# Global registry instance (singleton pattern)
_registry: Optional[ConversationSessionRegistry] = None


def get_session_registry() -> ConversationSessionRegistry:
    global _registry
    if _registry is None:
        _registry = ConversationSessionRegistry()
    return _registry

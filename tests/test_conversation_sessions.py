"""
test_conversation_sessions.py — in-process session registry.
"""

from unittest.mock import AsyncMock

from app.services.conversation_sessions import ConversationSessionRegistry


class TestSessionRegistry:

    def test_start_get_finish(self):
        registry = ConversationSessionRegistry(submit=AsyncMock())
        session_id, engine = registry.start(user_id="u1")

        assert registry.get(session_id) is engine
        assert registry.finish(session_id)
        assert registry.get(session_id) is None
        assert not registry.finish(session_id)

    def test_oldest_session_is_evicted_at_the_limit(self):
        registry = ConversationSessionRegistry(submit=AsyncMock(), max_sessions=2)
        first, _ = registry.start()
        second, _ = registry.start()
        third, _ = registry.start()

        assert len(registry) == 2
        assert registry.get(first) is None
        assert registry.get(second) is not None
        assert registry.get(third) is not None

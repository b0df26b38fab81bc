"""
Session Module - hosting games and multiplayer voting.

- manager: in-memory sessions, one GameState each, one turn at a time
- orchestration: players queue votes that resolve into one choice per turn
"""

from .manager import GameSession, SessionManager, SessionStatus
from .orchestration import (
    SessionConfig,
    SessionResolution,
    apply_session_choice,
    init_session,
    queue_session_action,
    register_session_player,
    resolve_session_actions,
)

__all__ = [
    "GameSession",
    "SessionManager",
    "SessionStatus",
    "SessionConfig",
    "SessionResolution",
    "apply_session_choice",
    "init_session",
    "queue_session_action",
    "register_session_player",
    "resolve_session_actions",
]

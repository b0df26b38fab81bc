"""
Session Manager - hosts many games on shared runtimes.

LIFECYCLE:
1. Host builds a RuntimeContext once per story (read-only, shared)
2. Player starts a session -> new GameState, start scene entered
3. During play every transition runs under the session's lock, so at most
   one turn is in flight per GameState
4. Session ends -> removed from memory; callers persist via save()

No database: sessions are in-memory only. save() / load are the only
persistence and go through engine_core.persistence.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping
import logging
import threading
import time
import uuid

from ..engine_core.persistence import create_new_game, load_game, save_game
from ..engine_core.render import EngineResult, RenderModel
from ..engine_core.runtime import RuntimeContext
from ..engine_core.state import Character, GameState
from ..engine_core.transitions import SceneMachine
from ..errors import SessionError

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass
class GameSession:
    """
    One play-through: a GameState on a shared runtime.

    All transitions take the session lock.
    """
    session_id: str
    runtime: RuntimeContext
    game_state: GameState
    created_at: float
    last_active: float = 0.0
    status: SessionStatus = SessionStatus.ACTIVE
    last_render: RenderModel | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self):
        self._machine = SceneMachine(self.runtime)
        self.last_active = self.last_active or self.created_at

    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def start(self) -> RenderModel:
        """Enter the current scene, running its entry rules."""
        return self._run(lambda: self._machine.enter_scene(self.game_state, self.game_state.current_scene_id))

    def select_exit(self, exit_ref) -> RenderModel:
        return self._run(lambda: self._machine.select_exit(self.game_state, exit_ref))

    def select_action(self, action_id: str) -> RenderModel:
        return self._run(lambda: self._machine.select_action(self.game_state, action_id))

    def render(self) -> RenderModel:
        with self._lock:
            return self._machine.get_render_model(self.game_state)

    def save(self) -> str:
        with self._lock:
            return save_game(self.game_state)

    def _run(self, transition) -> RenderModel:
        with self._lock:
            if not self.is_active():
                raise SessionError(f"Session {self.session_id} is {self.status.value}")
            result: EngineResult = transition()
            self.last_active = time.time()
            self.last_render = result.render_model
            return result.render_model


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions from a runtime (new game or a save)
    - Track active sessions
    - Clean up finished or idle sessions
    """

    def __init__(self):
        self._sessions: dict[str, GameSession] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        runtime: RuntimeContext,
        character_seed: Character | Mapping[str, Any] | None = None,
        save: str | Mapping[str, Any] | None = None,
        enter: bool = True,
    ) -> GameSession:
        """
        Create a new game session.

        Args:
            runtime: Shared runtime for the story
            character_seed: Starting character for a new game
            save: A save to resume instead of starting a new game
            enter: Enter the current scene immediately (runs entry rules)

        Returns:
            New GameSession
        """
        if save is not None:
            loaded = load_game(runtime, save)
            if not loaded.ok:
                details = "; ".join(f"{i.path}: {i.message}" for i in loaded.errors)
                raise SessionError(f"Cannot resume save: {details}")
            state = loaded.state
        else:
            state = create_new_game(runtime, character_seed)

        session = GameSession(
            session_id=str(uuid.uuid4()),
            runtime=runtime,
            game_state=state,
            created_at=time.time(),
        )
        if enter:
            session.start()

        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("Created session %s for story %s", session.session_id, runtime.story.id)
        return session

    def get_session(self, session_id: str) -> GameSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def end_session(self, session_id: str, reason: str = "completed") -> GameSession | None:
        """Remove a session from memory and mark it finished."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session:
            with session._lock:
                if reason == "completed":
                    session.status = SessionStatus.COMPLETED
                else:
                    session.status = SessionStatus.ABANDONED
            logger.info("Ended session %s (%s)", session_id, reason)
        return session

    def list_active_sessions(self) -> list[str]:
        with self._lock:
            return [sid for sid, session in self._sessions.items() if session.is_active()]

    def cleanup_stale_sessions(self, max_idle_seconds: float = 3600) -> list[str]:
        """End sessions idle for longer than max_idle_seconds."""
        now = time.time()
        with self._lock:
            stale = [
                sid for sid, session in self._sessions.items()
                if now - session.last_active > max_idle_seconds
            ]
        for session_id in stale:
            self.end_session(session_id, reason="stale")
        return stale

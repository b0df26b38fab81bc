"""
Session Orchestration - several players voting on one shared game.

Players register on the game's session, queue one vote each (an action id
or an exit label), and the votes are resolved into a single choice:
- first: the earliest vote
- majority: a choice backed by more than half of the votes
- consensus: every vote is the same choice

Only available when the runtime enables the sessions feature.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Literal, Mapping, Any
import logging

from ..engine_core.render import EngineResult
from ..engine_core.runtime import DEFAULT_SESSION_ID, RuntimeContext
from ..engine_core.state import GameState, SessionAction, SessionPlayer, SessionState
from ..engine_core.transitions import SceneMachine
from ..errors import FeatureDisabledError, SessionError

logger = logging.getLogger(__name__)

ResolutionMode = Literal["first", "majority", "consensus"]


@dataclass
class SessionConfig:
    mode: ResolutionMode = "first"
    required_players: int | None = None


@dataclass
class SessionResolution:
    """
    Outcome of resolving the pending votes.

    chosen is None while votes are missing or when the mode found no
    winner; pending votes are kept in that case.
    """
    chosen: SessionAction | None = None
    votes: list[SessionAction] = field(default_factory=list)
    reason: str | None = None

    @property
    def resolved(self) -> bool:
        return self.chosen is not None


def _require_session(runtime: RuntimeContext, state: GameState) -> SessionState:
    if not runtime.optional_features.sessions:
        raise FeatureDisabledError("Sessions are not enabled on this runtime")
    if state.session is None:
        state.session = SessionState(id=DEFAULT_SESSION_ID)
    return state.session


def _choice_key(vote: SessionAction) -> tuple[str, str]:
    if vote.action_id is not None:
        return ("action", vote.action_id)
    return ("exit", vote.exit_label or "")


def init_session(runtime: RuntimeContext, state: GameState, session_id: str = DEFAULT_SESSION_ID) -> SessionState:
    """Start a fresh session: no players, no votes, turn 0."""
    if not runtime.optional_features.sessions:
        raise FeatureDisabledError("Sessions are not enabled on this runtime")
    state.session = SessionState(id=session_id, players=[], current_turn=0, pending_actions=[])
    return state.session


def register_session_player(
    runtime: RuntimeContext,
    state: GameState,
    player: SessionPlayer | Mapping[str, Any],
) -> SessionPlayer:
    """Add a player. Registering an id twice returns the existing player."""
    session = _require_session(runtime, state)
    if not isinstance(player, SessionPlayer):
        player = SessionPlayer.model_validate(dict(player))
    existing = session.get_player(player.id)
    if existing:
        return existing
    session.players.append(player)
    logger.debug("Session %s: registered %s", session.id, player.id)
    return player


def queue_session_action(
    runtime: RuntimeContext,
    state: GameState,
    vote: SessionAction | Mapping[str, Any],
) -> SessionAction:
    """Queue a player's vote, replacing any earlier vote from the same player."""
    session = _require_session(runtime, state)
    if not isinstance(vote, SessionAction):
        vote = SessionAction.model_validate(dict(vote))

    if session.get_player(vote.player_id) is None:
        raise SessionError(f"Player {vote.player_id} is not registered in session {session.id}")
    if (vote.action_id is None) == (vote.exit_label is None):
        raise SessionError("A session vote needs exactly one of actionId or exitLabel")

    pending = [v for v in session.pending_actions or [] if v.player_id != vote.player_id]
    next_seq = max((v.seq for v in session.pending_actions or []), default=-1) + 1
    vote = vote.model_copy(update={"seq": next_seq})
    pending.append(vote)
    session.pending_actions = pending
    return vote


def resolve_session_actions(
    runtime: RuntimeContext,
    state: GameState,
    config: SessionConfig | None = None,
) -> SessionResolution:
    """
    Resolve pending votes into one choice.

    A successful resolution clears the pending votes and advances the turn.
    """
    config = config or SessionConfig()
    session = _require_session(runtime, state)
    votes = sorted(session.pending_actions or [], key=lambda v: v.seq)

    if config.required_players and len(votes) < config.required_players:
        return SessionResolution(
            votes=votes, reason=f"Waiting for votes ({len(votes)}/{config.required_players})"
        )
    if not votes:
        return SessionResolution(votes=votes, reason="No votes queued")

    chosen = None
    if config.mode == "first":
        chosen = votes[0]
    elif config.mode == "majority":
        key, count = Counter(_choice_key(v) for v in votes).most_common(1)[0]
        if count * 2 > len(votes):
            chosen = next(v for v in votes if _choice_key(v) == key)
    elif config.mode == "consensus":
        if len({_choice_key(v) for v in votes}) == 1:
            chosen = votes[0]
    else:
        raise SessionError(f"Unknown session resolution mode: {config.mode}")

    if chosen is None:
        return SessionResolution(votes=votes, reason=f"No {config.mode} among {len(votes)} votes")

    session.pending_actions = []
    session.current_turn = (session.current_turn or 0) + 1
    logger.debug("Session %s turn %d resolved to %s", session.id, session.current_turn, _choice_key(chosen))
    return SessionResolution(chosen=chosen, votes=votes)


def apply_session_choice(runtime: RuntimeContext, state: GameState, choice: SessionAction) -> EngineResult:
    """Carry out a resolved vote as an action or exit."""
    machine = SceneMachine(runtime)
    if choice.action_id is not None:
        return machine.select_action(state, choice.action_id)
    if choice.exit_label is not None:
        return machine.select_exit(state, choice.exit_label)
    raise SessionError("Session choice has neither actionId nor exitLabel")

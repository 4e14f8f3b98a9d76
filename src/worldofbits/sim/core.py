from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from worldofbits.content.config import GameConfig
from worldofbits.sim.grid import GridCell, to_cell
from worldofbits.sim.movement import BUTTONS_MODE, MOVEMENT_MODES, can_interact
from worldofbits.sim.world import OverrideStore, effective_value

OUTCOME_TOO_FAR = "too_far"
OUTCOME_NOTHING_TO_PICK_UP = "nothing_to_pick_up"
OUTCOME_VALUES_DO_NOT_MATCH = "values_do_not_match"
OUTCOME_PICKED_UP = "picked_up"
OUTCOME_PLACED = "placed"
OUTCOME_CRAFTED = "crafted"
OUTCOME_GAME_OVER = "game_over"
MUTATING_OUTCOMES = {OUTCOME_PICKED_UP, OUTCOME_PLACED, OUTCOME_CRAFTED}


@dataclass
class GameState:
    player_cell: GridCell
    held_token: int | None = None
    has_won: bool = False
    overrides: OverrideStore = field(default_factory=OverrideStore)
    movement_mode: str = BUTTONS_MODE

    def __post_init__(self) -> None:
        if not isinstance(self.player_cell, GridCell):
            raise ValueError("player_cell must be a GridCell")
        if self.held_token is not None:
            if isinstance(self.held_token, bool) or not isinstance(self.held_token, int) or self.held_token <= 0:
                raise ValueError("held_token must be a positive integer or None")
        if not isinstance(self.has_won, bool):
            raise ValueError("has_won must be a boolean")
        if self.movement_mode not in MOVEMENT_MODES:
            raise ValueError(f"unsupported movement_mode: {self.movement_mode}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "held_token": self.held_token,
            "has_won": self.has_won,
            "player_cell": self.player_cell.to_dict(),
            "overrides": self.overrides.to_list(),
            "movement_mode": self.movement_mode,
        }


@dataclass(frozen=True)
class ClickOutcome:
    kind: str
    cell: GridCell
    held_token: int | None
    cell_value: int | None = None
    message: str = ""

    @property
    def changed(self) -> bool:
        return self.kind in MUTATING_OUTCOMES


def default_game_state(config: GameConfig) -> GameState:
    return GameState(player_cell=to_cell(config.start_position, config))


def check_win(state: GameState, config: GameConfig) -> bool:
    """Latch ``has_won`` once the held token reaches the target."""
    if state.held_token is not None and state.held_token >= config.target:
        state.has_won = True
    return state.has_won


def on_cell_click(state: GameState, cell: GridCell, config: GameConfig) -> ClickOutcome:
    held = state.held_token
    if state.has_won:
        return ClickOutcome(
            kind=OUTCOME_GAME_OVER,
            cell=cell,
            held_token=held,
            message="You already won. Start a new game to keep playing.",
        )
    if not can_interact(cell, state.player_cell, config.interaction_radius):
        return ClickOutcome(kind=OUTCOME_TOO_FAR, cell=cell, held_token=held, message="That cell is too far away.")

    value = effective_value(cell, state.overrides, config)
    if held is None:
        if value is None:
            return ClickOutcome(
                kind=OUTCOME_NOTHING_TO_PICK_UP,
                cell=cell,
                held_token=held,
                message="There is nothing to pick up here.",
            )
        state.held_token = value
        state.overrides.set(cell, None)
        outcome = ClickOutcome(
            kind=OUTCOME_PICKED_UP,
            cell=cell,
            held_token=value,
            cell_value=None,
            message=f"Picked up a {value}.",
        )
    elif value is None:
        state.held_token = None
        state.overrides.set(cell, held)
        outcome = ClickOutcome(
            kind=OUTCOME_PLACED,
            cell=cell,
            held_token=None,
            cell_value=held,
            message=f"Placed a {held}.",
        )
    elif value != held:
        return ClickOutcome(
            kind=OUTCOME_VALUES_DO_NOT_MATCH,
            cell=cell,
            held_token=held,
            cell_value=value,
            message=f"Values do not match: holding {held}, cell has {value}.",
        )
    else:
        crafted = held * 2
        state.held_token = crafted
        state.overrides.set(cell, None)
        outcome = ClickOutcome(
            kind=OUTCOME_CRAFTED,
            cell=cell,
            held_token=crafted,
            cell_value=None,
            message=f"Crafted a {crafted}.",
        )

    check_win(state, config)
    return outcome


def move_to(state: GameState, cell: GridCell) -> bool:
    if state.has_won:
        return False
    state.player_cell = cell
    return True


def move_by(state: GameState, di: int, dj: int) -> bool:
    return move_to(state, state.player_cell.offset(di, dj))


def status_text(state: GameState, config: GameConfig) -> str:
    if state.has_won:
        return f"You crafted a token worth {state.held_token} and won! Start a new game to play again."
    if state.held_token is None:
        return "Holding: nothing"
    return f"Holding: {state.held_token} (target {config.target})"

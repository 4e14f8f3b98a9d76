from __future__ import annotations

from worldofbits.content.config import GameConfig
from worldofbits.content.io import DurableStore, clear_game, load_game, save_game
from worldofbits.logger import get_logger
from worldofbits.sim.core import (
    ClickOutcome,
    GameState,
    check_win,
    default_game_state,
    move_by,
    move_to,
    on_cell_click,
    status_text,
)
from worldofbits.sim.grid import GeoPosition, GridCell, to_cell, to_center
from worldofbits.sim.movement import (
    BUTTONS_MODE,
    GEOLOCATION_MODE,
    ButtonMovementSource,
    LivePositionSource,
    LocationUnavailableError,
    MovementSource,
    PositionFeed,
)
from worldofbits.sim.viewport import Handle, RenderSurface, ViewportManager
from worldofbits.sim.world import effective_value

PLAYER_MARKER_LABEL = "You are here"
WON_MOVE_MESSAGE = "You already won. Start a new game to keep playing."

log = get_logger(__name__)


class GameSession:
    """Owns the game state and applies every side effect of a player action.

    Each public method handles one discrete stimulus to completion: state
    transition, visual refresh, status line, then persistence.
    """

    def __init__(
        self,
        surface: RenderSurface,
        store: DurableStore,
        config: GameConfig,
        *,
        feed: PositionFeed | None = None,
    ) -> None:
        self.surface = surface
        self.store = store
        self.config = config
        self.state: GameState = default_game_state(config)
        self.viewport = ViewportManager(
            surface,
            resolve_value=self.effective_value,
            on_cell_activated=self.click_cell,
            config=config,
        )
        self.viewport.attach()
        self.movement_source: MovementSource | None = None
        self.player_marker: Handle | None = None
        self.status_message = ""
        self.last_outcome: ClickOutcome | None = None
        self._feed = feed

    def start(self) -> None:
        loaded = self._load_persisted_state()
        if loaded is not None:
            self.state = loaded
            check_win(self.state, self.config)
            log.info(
                "restored game state player=%s held=%s overrides=%d",
                self.state.player_cell.key(),
                self.state.held_token,
                len(self.state.overrides),
            )
        if self.player_marker is None:
            self.player_marker = self.surface.place_marker(
                to_center(self.state.player_cell, self.config),
                PLAYER_MARKER_LABEL,
            )
        self._set_status(status_text(self.state, self.config))
        self._recenter()
        self._activate_movement_source(self.state.movement_mode)

    def effective_value(self, cell: GridCell) -> int | None:
        return effective_value(cell, self.state.overrides, self.config)

    def status_text(self) -> str:
        return status_text(self.state, self.config)

    def click_cell(self, cell: GridCell) -> ClickOutcome:
        outcome = on_cell_click(self.state, cell, self.config)
        self.last_outcome = outcome
        if not outcome.changed:
            self._set_status(outcome.message)
            return outcome
        self.viewport.refresh_cell(cell)
        self._set_status(self.status_text())
        self.persist()
        return outcome

    def move(self, direction: str) -> bool:
        source = self.movement_source
        if not isinstance(source, ButtonMovementSource):
            self._set_status("Switch to button movement to move manually.")
            return False
        return source.press(direction) and not self.state.has_won

    def move_by(self, di: int, dj: int) -> bool:
        if not move_by(self.state, di, dj):
            self._set_status(WON_MOVE_MESSAGE)
            return False
        self._player_moved()
        return True

    def move_to(self, cell: GridCell) -> bool:
        if not move_to(self.state, cell):
            self._set_status(WON_MOVE_MESSAGE)
            return False
        self._player_moved()
        return True

    def move_to_position(self, position: GeoPosition) -> bool:
        return self.move_to(to_cell(position, self.config))

    def poll_movement(self) -> GeoPosition | None:
        source = self.movement_source
        if isinstance(source, LivePositionSource):
            return source.poll()
        return None

    def set_movement_mode(self, mode: str) -> str:
        active_mode = self._activate_movement_source(mode)
        self.persist()
        return active_mode

    def toggle_movement_mode(self) -> str:
        next_mode = GEOLOCATION_MODE if self.state.movement_mode == BUTTONS_MODE else BUTTONS_MODE
        return self.set_movement_mode(next_mode)

    def reset(self) -> None:
        try:
            clear_game(self.store, self.config.storage_key)
        except Exception as exc:
            log.warning("failed to clear persisted game state: %s", exc)
        self.state = default_game_state(self.config)
        self.last_outcome = None
        self._activate_movement_source(BUTTONS_MODE)
        self._set_status(self.status_text())
        self._recenter()

    def persist(self) -> bool:
        try:
            save_game(self.store, self.state, self.config.storage_key)
        except Exception as exc:
            log.warning("failed to persist game state: %s", exc)
            return False
        return True

    def stop(self) -> None:
        if self.movement_source is not None:
            self.movement_source.stop()

    def _load_persisted_state(self) -> GameState | None:
        try:
            return load_game(self.store, self.config.storage_key)
        except Exception as exc:
            log.warning("failed to read persisted game state: %s", exc)
            return None

    def _build_movement_source(self, mode: str) -> MovementSource:
        if mode == BUTTONS_MODE:
            return ButtonMovementSource(self.move_by)
        if mode == GEOLOCATION_MODE:
            return LivePositionSource(self._feed, self.move_to_position)
        raise ValueError(f"unsupported movement mode: {mode}")

    def _activate_movement_source(self, mode: str) -> str:
        source = self._build_movement_source(mode)
        if self.movement_source is not None:
            self.movement_source.stop()
        try:
            source.start()
        except LocationUnavailableError as exc:
            log.info("movement mode %s unavailable: %s", mode, exc)
            source = ButtonMovementSource(self.move_by)
            source.start()
            self._set_status(f"Location is unavailable ({exc}); using button movement.")
        self.movement_source = source
        self.state.movement_mode = source.name()
        return source.name()

    def _player_moved(self) -> None:
        self._set_status(self.status_text())
        self._recenter()
        self.persist()

    def _recenter(self) -> None:
        center = to_center(self.state.player_cell, self.config)
        if self.player_marker is not None:
            self.surface.move_marker(self.player_marker, center)
        self.surface.pan_to(center)

    def _set_status(self, text: str) -> None:
        self.status_message = text
        self.surface.set_status(text)

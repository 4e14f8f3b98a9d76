from __future__ import annotations

from pathlib import Path

import pytest

from worldofbits.cli.viewer import TextSurface
from worldofbits.content.config import GameConfig
from worldofbits.content.io import MemoryStore
from worldofbits.sim.grid import GeoPosition, GridCell, to_center
from worldofbits.sim.movement import (
    BUTTONS_MODE,
    GEOLOCATION_MODE,
    ButtonMovementSource,
    FilePositionFeed,
    LivePositionSource,
    LocationUnavailableError,
    direction_delta,
)
from worldofbits.sim.session import GameSession

CONFIG = GameConfig(start_position=GeoPosition(lat=0.00005, lng=0.00005), spawn_probability=0.0)


def _session(feed=None, config: GameConfig = CONFIG) -> tuple[GameSession, TextSurface]:
    surface = TextSurface(config, half_rows=2, half_columns=2)
    session = GameSession(surface, MemoryStore(), config, feed=feed)
    session.start()
    return session, surface


def test_direction_deltas_follow_latitude_and_longitude_axes() -> None:
    assert direction_delta("north") == (1, 0)
    assert direction_delta("south") == (-1, 0)
    assert direction_delta("east") == (0, 1)
    assert direction_delta("west") == (0, -1)
    with pytest.raises(ValueError):
        direction_delta("up")


def test_button_source_only_steps_while_active() -> None:
    steps: list[tuple[int, int]] = []
    source = ButtonMovementSource(lambda di, dj: steps.append((di, dj)))

    assert source.press("north") is False
    source.start()
    assert source.press("east") is True
    source.stop()
    assert source.press("south") is False

    assert steps == [(0, 1)]
    assert source.name() == BUTTONS_MODE


def test_live_source_without_feed_is_unavailable() -> None:
    source = LivePositionSource(None, lambda position: None)

    with pytest.raises(LocationUnavailableError):
        source.start()
    assert source.active is False
    assert source.poll() is None


def test_live_source_delivers_one_update_per_poll_and_none_after_stop() -> None:
    positions = iter([GeoPosition(1.0, 1.0), GeoPosition(2.0, 2.0), GeoPosition(3.0, 3.0)])
    received: list[GeoPosition] = []
    source = LivePositionSource(lambda: next(positions, None), received.append)

    source.start()
    source.poll()
    source.poll()
    source.stop()
    assert source.poll() is None

    assert received == [GeoPosition(1.0, 1.0), GeoPosition(2.0, 2.0)]
    assert source.name() == GEOLOCATION_MODE


def test_file_position_feed_replays_lines(tmp_path: Path) -> None:
    path = tmp_path / "walk.txt"
    path.write_text("# morning walk\n0.00015,0.00005\n\n0.00025,0.00005\n", encoding="utf-8")

    feed = FilePositionFeed(path)

    assert len(feed) == 2
    assert feed() == GeoPosition(0.00015, 0.00005)
    assert feed() == GeoPosition(0.00025, 0.00005)
    assert feed() is None


def test_file_position_feed_rejects_malformed_lines(tmp_path: Path) -> None:
    path = tmp_path / "bad.txt"
    path.write_text("1.0;2.0\n", encoding="utf-8")

    with pytest.raises(ValueError, match="lat,lng"):
        FilePositionFeed(path)


def test_buttons_move_player_and_recenter_view() -> None:
    session, surface = _session()
    marker = session.player_marker

    assert session.move("north") is True
    assert session.move("east") is True

    assert session.state.player_cell == GridCell(1, 1)
    assert surface.center == to_center(GridCell(1, 1), CONFIG)
    assert surface.markers[marker][0] == to_center(GridCell(1, 1), CONFIG)
    assert GridCell(3, 3) in session.viewport.materialized_cells()


def test_switching_to_live_mode_stops_buttons() -> None:
    positions = iter([to_center(GridCell(5, -2), CONFIG)])
    session, _ = _session(feed=lambda: next(positions, None))
    button_source = session.movement_source

    assert session.set_movement_mode(GEOLOCATION_MODE) == GEOLOCATION_MODE
    assert button_source is not None and button_source.active is False
    assert session.move("north") is False
    assert session.state.player_cell == GridCell(0, 0)

    session.poll_movement()
    assert session.state.player_cell == GridCell(5, -2)
    assert session.poll_movement() is None


def test_switching_back_to_buttons_stops_live_updates() -> None:
    calls: list[int] = []

    def feed() -> GeoPosition:
        calls.append(1)
        return to_center(GridCell(len(calls), 0), CONFIG)

    session, _ = _session(feed=feed)
    session.set_movement_mode(GEOLOCATION_MODE)
    live_source = session.movement_source
    session.poll_movement()

    session.set_movement_mode(BUTTONS_MODE)

    assert isinstance(live_source, LivePositionSource)
    assert live_source.poll() is None
    assert session.poll_movement() is None
    assert calls == [1]


def test_missing_location_capability_falls_back_to_buttons() -> None:
    session, surface = _session(feed=None)

    mode = session.toggle_movement_mode()

    assert mode == BUTTONS_MODE
    assert session.state.movement_mode == BUTTONS_MODE
    assert "unavailable" in surface.status
    assert session.move("south") is True


def test_persisted_live_mode_is_resumed_on_start() -> None:
    store = MemoryStore()
    feed = lambda: None  # noqa: E731
    first = GameSession(TextSurface(CONFIG), store, CONFIG, feed=feed)
    first.start()
    first.set_movement_mode(GEOLOCATION_MODE)

    second = GameSession(TextSurface(CONFIG), store, CONFIG, feed=feed)
    second.start()

    assert isinstance(second.movement_source, LivePositionSource)
    assert second.movement_source.active


def test_movement_is_frozen_after_win() -> None:
    config = GameConfig(start_position=GeoPosition(lat=0.00005, lng=0.00005), spawn_probability=1.0, target=2)
    session, surface = _session(config=config)
    session.click_cell(GridCell(0, 1))
    session.click_cell(GridCell(0, 2))
    assert session.state.has_won

    assert session.move("north") is False
    assert session.move_to(GridCell(9, 9)) is False
    assert session.state.player_cell == GridCell(0, 0)
    assert "won" in surface.status

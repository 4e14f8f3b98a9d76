from pathlib import Path

import pytest

from worldofbits.cli.pygame_viewer import (
    STATUS_BAR_HEIGHT,
    PygameSurface,
    _build_parser,
    _env_flag_enabled,
    build_viewer_session,
)
from worldofbits.content.config import GameConfig
from worldofbits.sim.grid import GeoPosition, GridCell, to_cell, to_center

CONFIG = GameConfig(start_position=GeoPosition(lat=0.00005, lng=0.00005), spawn_probability=1.0)


def test_viewer_parser_defaults() -> None:
    args = _build_parser().parse_args([])

    assert args.config is None
    assert args.save_dir == "saves"
    assert args.position_file is None
    assert args.headless is False


def test_viewer_parser_accepts_overrides() -> None:
    args = _build_parser().parse_args(["--headless", "--save-dir", "saves/dev", "--position-file", "walk.txt"])

    assert args.headless is True
    assert args.save_dir == "saves/dev"
    assert args.position_file == "walk.txt"


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("yes", True), (" On ", True), ("0", False), ("", False)])
def test_env_flag_parsing(monkeypatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("WORLDOFBITS_HEADLESS", raw)

    assert _env_flag_enabled("WORLDOFBITS_HEADLESS") is expected


def test_window_center_maps_to_view_center() -> None:
    surface = PygameSurface(config=CONFIG, size=(400, 300), cell_pixels=20)

    assert surface.world_to_pixel(CONFIG.start_position) == (200.0, 150.0)
    position = surface.pixel_to_world(200 + 20, 150 - 20)
    assert position.lat == pytest.approx(CONFIG.start_position.lat + CONFIG.cell_degrees)
    assert position.lng == pytest.approx(CONFIG.start_position.lng + CONFIG.cell_degrees)


def test_viewport_bounds_exclude_status_bar() -> None:
    surface = PygameSurface(config=CONFIG, size=(400, 300), cell_pixels=20)

    bounds = surface.get_viewport_bounds()

    assert surface.world_to_pixel(bounds.north_east)[1] == pytest.approx(STATUS_BAR_HEIGHT)
    assert surface.world_to_pixel(bounds.south_west) == (pytest.approx(0.0), pytest.approx(300.0))


def test_drag_pans_opposite_to_pointer_motion() -> None:
    surface = PygameSurface(config=CONFIG, size=(400, 300), cell_pixels=20)
    settled = []
    surface.on_viewport_settled(lambda: settled.append(surface.center))

    surface.pan_by_pixels(-20, 0)

    assert settled
    assert surface.center.lng == pytest.approx(CONFIG.start_position.lng + CONFIG.cell_degrees)
    assert surface.center.lat == pytest.approx(CONFIG.start_position.lat)


def test_viewer_session_clicks_cells_by_pixel(tmp_path: Path) -> None:
    session, surface = build_viewer_session(CONFIG, save_dir=str(tmp_path), size=(400, 300))
    x, y = surface.world_to_pixel(to_center(GridCell(1, 1), CONFIG))

    assert surface.click_pixel(int(x), int(y)) is True
    assert session.state.held_token == 1
    assert surface.click_pixel(int(x), STATUS_BAR_HEIGHT - 1) is False
    assert (tmp_path / f"{CONFIG.storage_key}.json").exists()


def test_viewer_session_materializes_visible_cells(tmp_path: Path) -> None:
    session, surface = build_viewer_session(CONFIG, save_dir=str(tmp_path), size=(400, 300))

    cells = session.viewport.materialized_cells()

    assert len(surface.rectangles) == len(cells)
    assert to_cell(surface.center, CONFIG) in cells
    assert all(surface.labels[session.viewport.handle_for(cell)] == "1" for cell in cells)

from __future__ import annotations

from worldofbits.cli.viewer import AsciiViewer, TextSurface, execute_command, run_demo
from worldofbits.content.config import GameConfig
from worldofbits.content.io import MemoryStore
from worldofbits.sim.grid import GeoPosition, GridCell, to_center
from worldofbits.sim.session import GameSession

CONFIG = GameConfig(start_position=GeoPosition(lat=0.00005, lng=0.00005), spawn_probability=1.0)


def _session(feed=None) -> GameSession:
    session = GameSession(TextSurface(CONFIG, half_rows=1, half_columns=1), MemoryStore(), CONFIG, feed=feed)
    session.start()
    return session


def test_render_marks_player_and_values() -> None:
    session = _session()

    lines = AsciiViewer().render(session).splitlines()

    assert lines[0] == "player=0:0 mode=buttons"
    assert len(lines) == 1 + 3 + 1
    assert "@1" in lines[2]
    assert lines[-1] == "Holding: nothing"


def test_commands_move_and_click() -> None:
    session = _session()

    execute_command(session, "n")
    execute_command(session, "east")
    message = execute_command(session, "near 0 1")

    assert session.state.player_cell == GridCell(1, 1)
    assert session.state.held_token == 1
    assert message == "Holding: 1 (target 32)"
    assert execute_command(session, "click 40 40") == session.last_outcome.message


def test_mode_without_feed_reports_fallback() -> None:
    session = _session()

    message = execute_command(session, "mode")

    assert message.startswith("movement mode: buttons.")
    assert "unavailable" in message


def test_poll_applies_live_position() -> None:
    positions = iter([to_center(GridCell(-3, 2), CONFIG)])
    session = _session(feed=lambda: next(positions, None))

    execute_command(session, "mode")
    execute_command(session, "poll")

    assert session.state.player_cell == GridCell(-3, 2)
    assert execute_command(session, "poll") == "no position update"


def test_reset_quit_and_unknown_commands() -> None:
    session = _session()
    execute_command(session, "near 1 0")

    execute_command(session, "reset")

    assert session.state.held_token is None
    assert execute_command(session, "") == ""
    assert execute_command(session, "dance") == "unknown command"
    assert execute_command(session, "quit") is None


def test_run_demo_applies_logging_flags(tmp_path, monkeypatch) -> None:
    logging_calls = []

    def no_input(prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr(
        "worldofbits.cli.viewer.configure_logging",
        lambda level, **kwargs: logging_calls.append((level, kwargs)),
    )
    monkeypatch.setattr("builtins.input", no_input)

    result = run_demo(["--save-dir", str(tmp_path), "--log-level", "DEBUG", "--log-file", str(tmp_path / "demo.log")])

    assert result == 0
    assert logging_calls == [("DEBUG", {"logfile": str(tmp_path / "demo.log")})]

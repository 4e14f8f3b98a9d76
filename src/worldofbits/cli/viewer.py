from __future__ import annotations

import argparse
from typing import Callable, Sequence

from worldofbits.content.config import GameConfig, load_config_or_default
from worldofbits.content.io import JsonFileStore
from worldofbits.logger import configure_logging
from worldofbits.sim.grid import GeoBounds, GeoPosition, GridCell, to_cell
from worldofbits.sim.movement import DIRECTIONS, FilePositionFeed
from worldofbits.sim.session import GameSession
from worldofbits.sim.viewport import Handle, RenderSurface

DEFAULT_HALF_ROWS = 4
DEFAULT_HALF_COLUMNS = 6
DEFAULT_SAVE_DIR = "saves"
DIRECTION_ALIASES = {"n": "north", "s": "south", "e": "east", "w": "west"}


class TextSurface(RenderSurface):
    """In-memory map surface; the visible window is a fixed number of cells around the center."""

    def __init__(
        self,
        config: GameConfig,
        *,
        half_rows: int = DEFAULT_HALF_ROWS,
        half_columns: int = DEFAULT_HALF_COLUMNS,
    ) -> None:
        self.config = config
        self.half_rows = half_rows
        self.half_columns = half_columns
        self.center = config.start_position
        self.rectangles: dict[Handle, GeoBounds] = {}
        self.labels: dict[Handle, str | None] = {}
        self.click_callbacks: dict[Handle, Callable[[Handle], None]] = {}
        self.markers: dict[Handle, tuple[GeoPosition, str | None]] = {}
        self.settled_callbacks: list[Callable[[], None]] = []
        self.status = ""
        self._next_handle = 1

    def _allocate_handle(self) -> Handle:
        handle = self._next_handle
        self._next_handle += 1
        return handle

    def render_rectangle(self, bounds: GeoBounds) -> Handle:
        handle = self._allocate_handle()
        self.rectangles[handle] = bounds
        self.labels[handle] = None
        return handle

    def remove_rectangle(self, handle: Handle) -> None:
        self.rectangles.pop(handle, None)
        self.labels.pop(handle, None)
        self.click_callbacks.pop(handle, None)

    def bind_label(self, handle: Handle, text: str | None) -> None:
        if handle in self.rectangles:
            self.labels[handle] = text

    def on_click(self, handle: Handle, callback: Callable[[Handle], None]) -> None:
        self.click_callbacks[handle] = callback

    def get_viewport_bounds(self) -> GeoBounds:
        lat_span = self.half_rows * self.config.cell_degrees
        lng_span = self.half_columns * self.config.cell_degrees
        return GeoBounds(
            south_west=GeoPosition(lat=self.center.lat - lat_span, lng=self.center.lng - lng_span),
            north_east=GeoPosition(lat=self.center.lat + lat_span, lng=self.center.lng + lng_span),
        )

    def on_viewport_settled(self, callback: Callable[[], None]) -> None:
        self.settled_callbacks.append(callback)

    def pan_to(self, position: GeoPosition) -> None:
        self.center = position
        for callback in list(self.settled_callbacks):
            callback()

    def scroll(self, rows: int, columns: int) -> None:
        """Move the view without moving the player, as a map drag would."""
        self.pan_to(
            GeoPosition(
                lat=self.center.lat + rows * self.config.cell_degrees,
                lng=self.center.lng + columns * self.config.cell_degrees,
            )
        )

    def place_marker(self, position: GeoPosition, label: str | None = None) -> Handle:
        handle = self._allocate_handle()
        self.markers[handle] = (position, label)
        return handle

    def move_marker(self, handle: Handle, position: GeoPosition) -> None:
        _, label = self.markers[handle]
        self.markers[handle] = (position, label)

    def set_status(self, text: str) -> None:
        self.status = text

    def handle_at(self, position: GeoPosition) -> Handle | None:
        for handle, bounds in self.rectangles.items():
            if bounds.contains(position):
                return handle
        return None

    def click(self, position: GeoPosition) -> bool:
        handle = self.handle_at(position)
        if handle is None or handle not in self.click_callbacks:
            return False
        self.click_callbacks[handle](handle)
        return True

    def label_at(self, cell: GridCell) -> str | None:
        for handle, bounds in self.rectangles.items():
            if to_cell(bounds.center(), self.config) == cell:
                return self.labels.get(handle)
        return None


class AsciiViewer:
    """Read-only projection of the visible cells for terminal display."""

    def render(self, session: GameSession) -> str:
        lines = [f"player={session.state.player_cell.key()} mode={session.state.movement_mode}"]
        cells = session.viewport.materialized_cells()
        if not cells:
            return "\n".join(lines + ["<nothing visible>"])

        rows = sorted({cell.i for cell in cells}, reverse=True)
        columns = sorted({cell.j for cell in cells})
        for i in rows:
            glyphs: list[str] = []
            for j in columns:
                cell = GridCell(i, j)
                value = session.effective_value(cell)
                glyph = "." if value is None else str(value)
                if cell == session.state.player_cell:
                    glyph = f"@{'' if value is None else value}"
                glyphs.append(f"{glyph:>3}")
            lines.append(f"i={i:>8}: " + " ".join(glyphs))
        lines.append(session.status_message)
        return "\n".join(lines)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="worldofbits-text", description="Play World of Bits in the terminal.")
    parser.add_argument("--config", default=None, help="Optional game config JSON path.")
    parser.add_argument("--save-dir", default=DEFAULT_SAVE_DIR, help="Directory holding the persisted game state.")
    parser.add_argument("--position-file", default=None, help="Text file of 'lat,lng' lines for geolocation mode.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level name.")
    parser.add_argument("--log-file", default=None, help="Also append log records to this file.")
    return parser


def execute_command(session: GameSession, raw: str) -> str | None:
    """Apply one REPL command; returns the text to print, or None to quit."""
    view = AsciiViewer()
    parts = raw.strip().split()
    if not parts:
        return ""
    command = parts[0].lower()
    if command in {"quit", "exit"}:
        return None
    if command == "show":
        return view.render(session)
    if command in DIRECTION_ALIASES or command in DIRECTIONS:
        session.move(DIRECTION_ALIASES.get(command, command))
        return view.render(session)
    if command == "click" and len(parts) == 3:
        session.click_cell(GridCell(int(parts[1]), int(parts[2])))
        return session.status_message
    if command == "near" and len(parts) == 3:
        session.click_cell(session.state.player_cell.offset(int(parts[1]), int(parts[2])))
        return session.status_message
    if command == "mode":
        return f"movement mode: {session.toggle_movement_mode()}. {session.status_message}"
    if command == "poll":
        position = session.poll_movement()
        if position is None:
            return "no position update"
        return view.render(session)
    if command == "reset":
        session.reset()
        return view.render(session)
    return "unknown command"


def run_demo(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level, logfile=args.log_file)
    config = load_config_or_default(args.config)
    feed = FilePositionFeed(args.position_file) if args.position_file else None
    surface = TextSurface(config)
    session = GameSession(surface, JsonFileStore(args.save_dir), config, feed=feed)
    session.start()

    print("World of Bits. Commands: show | n/s/e/w | near <di> <dj> | click <i> <j> | mode | poll | reset | quit")
    print(AsciiViewer().render(session))

    while True:
        try:
            raw = input("> ")
        except EOFError:
            break
        try:
            output = execute_command(session, raw)
        except ValueError as exc:
            output = f"invalid command: {exc}"
        if output is None:
            break
        print(output)

    session.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(run_demo())

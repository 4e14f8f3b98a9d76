from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from worldofbits.cli.pygame_viewer import run_pygame_viewer
from worldofbits.cli.viewer import run_demo
from worldofbits.logger import configure_logging

DEFAULT_SAVE_DIR = "saves"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="worldofbits", description="Canonical World of Bits launcher.")
    parser.add_argument("--config", default=None, help="Optional game config JSON path.")
    parser.add_argument("--save-dir", default=DEFAULT_SAVE_DIR, help="Directory holding the persisted game state.")
    parser.add_argument("--position-file", default=None, help="Text file of 'lat,lng' lines for geolocation mode.")
    parser.add_argument("--text", action="store_true", help="Play in the terminal instead of the pygame window.")
    parser.add_argument("--headless", action="store_true", help="Run startup path in headless mode.")
    parser.add_argument("--log-level", default=None, help="Logging level name (INFO for the window, WARNING for --text).")
    parser.add_argument("--log-file", default=None, help="Also append log records to this file.")
    return parser


def _ensure_save_dir(save_dir: str) -> None:
    Path(save_dir).mkdir(parents=True, exist_ok=True)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _ensure_save_dir(args.save_dir)
    if args.text:
        forwarded = ["--save-dir", args.save_dir]
        if args.config:
            forwarded += ["--config", args.config]
        if args.position_file:
            forwarded += ["--position-file", args.position_file]
        if args.log_level:
            forwarded += ["--log-level", args.log_level]
        if args.log_file:
            forwarded += ["--log-file", args.log_file]
        return run_demo(forwarded)
    configure_logging(args.log_level or "INFO", logfile=args.log_file)
    return run_pygame_viewer(
        config_path=args.config,
        save_dir=args.save_dir,
        position_file=args.position_file,
        headless=args.headless,
    )


if __name__ == "__main__":
    raise SystemExit(main())

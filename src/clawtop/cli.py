"""
clawtop command line.

Two modes:
- one-shot (--once / --json): collect one snapshot, print it, exit
- refresh loop (default): redraw the board every --refresh seconds until
  SIGINT/SIGTERM, using the alternate screen when stdout is a terminal
"""

import argparse
import asyncio
import json
import logging
import os
import shutil
import signal
import sys
from typing import Mapping, Optional, Sequence, Set, TextIO

from pydantic import ValidationError

from . import __version__
from .config import BoardConfig, load_config
from .render import RenderOptions, render_board, render_error_state, render_loading_state
from .status import SnapshotCollector
from .utils import setup_logging

logger = logging.getLogger(__name__)

COLOR_MODES = ("auto", "always", "never")

ENTER_ALTERNATE_SCREEN = "\x1b[?1049h\x1b[?25l"
LEAVE_ALTERNATE_SCREEN = "\x1b[?25h\x1b[?1049l"
CURSOR_HOME = "\x1b[H"
CLEAR_TO_END = "\x1b[J"

EXAMPLES = """\
examples:
  clawtop
  clawtop --once
  clawtop --refresh 5
  clawtop --active-window 120
  clawtop --color never
  clawtop --json
"""


def positive_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive number, got '{raw}'")
    if not value > 0 or value == float("inf"):
        raise argparse.ArgumentTypeError(f"expected a positive number, got '{raw}'")
    return value


def positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive whole number, got '{raw}'")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive whole number, got '{raw}'")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clawtop",
        description="One-screen OpenClaw health board (non-interactive).",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Render once and exit"
    )
    parser.add_argument(
        "--refresh",
        type=positive_float,
        metavar="SECONDS",
        help="Auto-refresh interval in seconds (default: 10)"
    )
    parser.add_argument(
        "--active-window",
        type=positive_int,
        metavar="MINUTES",
        help="Session active window in minutes (default: 60)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print one machine-readable snapshot and exit"
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Force compact single-column layout"
    )
    parser.add_argument(
        "--color",
        choices=COLOR_MODES,
        default="auto",
        help="Color mode (default: auto)"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to a YAML settings file (uses CLAWTOP_* env vars if not specified)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def resolve_color_enabled(
    color_mode: str,
    stdout_is_tty: bool,
    environ: Optional[Mapping[str, str]] = None
) -> bool:
    """'auto' disables colour when NO_COLOR is set or stdout is not a terminal."""
    if color_mode == "always":
        return True
    if color_mode == "never":
        return False
    environ = os.environ if environ is None else environ
    if environ.get("NO_COLOR", ""):
        return False
    return stdout_is_tty


def apply_overrides(config: BoardConfig, args: argparse.Namespace) -> BoardConfig:
    """Command-line values win over the settings file and environment."""
    if args.refresh is not None:
        config.refresh_seconds = args.refresh
    if args.active_window is not None:
        config.active_window_minutes = args.active_window
    if args.log_level is not None:
        config.log_level = args.log_level
    return config


class BoardRunner:
    """
    Drives collection and drawing for both CLI modes.

    Usage:
        runner = BoardRunner(config, args)
        await runner.run_once()
    """

    def __init__(
        self,
        config: BoardConfig,
        args: argparse.Namespace,
        collector: Optional[SnapshotCollector] = None,
        stream: Optional[TextIO] = None
    ):
        self.config = config
        self.args = args
        self.collector = collector or SnapshotCollector(config)
        self.stream = stream if stream is not None else sys.stdout
        self.terminal_controls = self.stream.isatty()
        self._render_in_flight = False
        self._stop = asyncio.Event()
        self._resize_tasks: Set[asyncio.Task] = set()

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            color_enabled=resolve_color_enabled(self.args.color, self.stream.isatty()),
            columns=shutil.get_terminal_size((80, 24)).columns,
            compact=self.args.compact
        )

    def write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    async def run_once(self) -> None:
        snapshot = await self.collector.collect(self.config.active_window_minutes)
        if self.args.json:
            self.write(json.dumps(snapshot.to_dict(), indent=2) + "\n")
            return
        self.write(render_board(snapshot, self.render_options()) + "\n")

    # =========================================================================
    # Refresh loop
    # =========================================================================

    def draw_frame(self, frame: str) -> None:
        if self.terminal_controls:
            self.write(f"{CURSOR_HOME}{frame}{CLEAR_TO_END}")
        else:
            self.write(f"{frame}\n\n")

    async def render_frame(self) -> None:
        """Collect and draw one frame; skipped while another is in flight."""
        if self._render_in_flight:
            logger.debug("Frame already in flight, skipping")
            return

        self._render_in_flight = True
        try:
            options = self.render_options()
            try:
                snapshot = await self.collector.collect(self.config.active_window_minutes)
                frame = render_board(snapshot, options)
            except Exception as e:
                logger.error(f"Snapshot refresh failed: {e}", exc_info=True)
                frame = render_error_state(str(e) or type(e).__name__, options)
            self.draw_frame(frame)
        finally:
            self._render_in_flight = False

    def stop(self) -> None:
        logger.info("Stop requested, leaving refresh loop")
        self._stop.set()

    def _on_resize(self) -> None:
        # The loop only holds weak references to tasks
        task = asyncio.get_running_loop().create_task(self.render_frame())
        self._resize_tasks.add(task)
        task.add_done_callback(self._resize_tasks.discard)

    async def run_refresh_loop(self) -> None:
        loop = asyncio.get_running_loop()
        handled = [signal.SIGINT, signal.SIGTERM]

        if self.terminal_controls:
            self.write(ENTER_ALTERNATE_SCREEN)
            self.draw_frame(render_loading_state(self.render_options()))

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.stop)
        if self.terminal_controls and hasattr(signal, "SIGWINCH"):
            loop.add_signal_handler(signal.SIGWINCH, self._on_resize)
            handled.append(signal.SIGWINCH)

        try:
            while not self._stop.is_set():
                await self.render_frame()
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.config.refresh_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            for sig in handled:
                loop.remove_signal_handler(sig)
            if self.terminal_controls:
                self.write(LEAVE_ALTERNATE_SCREEN)


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = apply_overrides(load_config(args.config), args)
    except (OSError, ValueError, ValidationError) as e:
        print(f"clawtop failed: {e}", file=sys.stderr)
        print("", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    setup_logging(config.log_level)
    runner = BoardRunner(config, args)

    try:
        if args.once or args.json:
            await runner.run_once()
        else:
            await runner.run_refresh_loop()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"clawtop failed: {e}", file=sys.stderr)
        print("", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    return 0


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()

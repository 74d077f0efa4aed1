"""Keyboard-driven pause/resume control for a running crawl.

The state machine in ``CrawlControls`` only consumes key names, so it can be
driven by a real terminal (``KeyboardListener``) or by a test feeding keys.
"""

import asyncio
import os
import select
import sys
import threading
from enum import Enum

from rich.console import Console

console = Console()

PAUSE_KEYS = {" ", "space", "p"}
INTERRUPT_KEYS = {"\x03", "ctrl-c"}


class CrawlState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    CONFIRM_EXIT = "confirm_exit"
    SAVING_AND_EXITING = "saving_and_exiting"
    DELETING_AND_EXITING = "deleting_and_exiting"
    RESUMING = "resuming"
    EXITING = "exiting"


PAUSE_MENU = {
    "c": CrawlState.RUNNING,
    "s": CrawlState.SAVING_AND_EXITING,
    "d": CrawlState.DELETING_AND_EXITING,
    "r": CrawlState.RESUMING,
}

TERMINAL_STATES = {
    CrawlState.SAVING_AND_EXITING,
    CrawlState.DELETING_AND_EXITING,
    CrawlState.EXITING,
}


class CrawlControls:
    """Pause menu state machine."""

    def __init__(self, poll_interval: float = 0.1, quiet: bool = False):
        self.state = CrawlState.RUNNING
        self.poll_interval = poll_interval
        self.quiet = quiet

    @property
    def paused(self) -> bool:
        return self.state in (CrawlState.PAUSED, CrawlState.CONFIRM_EXIT)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def _say(self, message: str) -> None:
        if not self.quiet:
            console.print(message)

    def feed(self, key: str) -> CrawlState:
        """Apply one key press and return the new state."""
        key = key.lower() if len(key) == 1 and key.isalpha() else key
        state = self.state

        if state in TERMINAL_STATES:
            return state

        if key in INTERRUPT_KEYS:
            self.state = CrawlState.CONFIRM_EXIT
            self._say("\n[bold red]Stopping scraper...[/bold red] Save progress? [y/n]")

        elif state is CrawlState.CONFIRM_EXIT:
            self.state = CrawlState.SAVING_AND_EXITING if key == "y" else CrawlState.EXITING

        elif state is CrawlState.PAUSED:
            self.state = PAUSE_MENU.get(key, CrawlState.RUNNING)
            if key not in PAUSE_MENU:
                self._say("[yellow]Invalid option. Resuming...[/yellow]")
            elif self.state is CrawlState.RUNNING:
                self._say("[green]Continuing...[/green]")

        elif key in PAUSE_KEYS:
            # RUNNING or RESUMING
            self.state = CrawlState.PAUSED
            self._say(
                "\n[bold yellow]PAUSED[/bold yellow] - choose an option:\n"
                "  [bold]\\[C][/bold] Continue scraping\n"
                "  [bold]\\[S][/bold] Save progress and exit\n"
                "  [bold]\\[D][/bold] Delete all scraped data and exit\n"
                "  [bold]\\[R][/bold] Resume from saved progress"
            )

        return self.state

    def resumed(self) -> None:
        """Called once a RESUMING request has been carried out."""
        if self.state is CrawlState.RESUMING:
            self.state = CrawlState.RUNNING

    async def wait_while_paused(self) -> CrawlState:
        """Block the crawl loop until the user picks something other than waiting."""
        while self.paused:
            await asyncio.sleep(self.poll_interval)
        return self.state


class KeyboardListener:
    """Feeds single key presses from a POSIX terminal into ``CrawlControls``."""

    def __init__(self, controls: CrawlControls, stream=None):
        self.controls = controls
        self.stream = stream if stream is not None else sys.stdin
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._saved_attrs = None

    @staticmethod
    def available(stream=None) -> bool:
        stream = stream if stream is not None else sys.stdin
        return os.name == "posix" and hasattr(stream, "isatty") and stream.isatty()

    def start(self) -> bool:
        """Switch the terminal to unbuffered input and start reading keys."""
        if not self.available(self.stream):
            return False

        import termios

        fd = self.stream.fileno()
        self._saved_attrs = termios.tcgetattr(fd)
        attrs = termios.tcgetattr(fd)
        # No line buffering, no echo, and Ctrl+C arrives as a key
        attrs[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG)
        termios.tcsetattr(fd, termios.TCSADRAIN, attrs)

        self._thread = threading.Thread(target=self._read_keys, args=(fd,), daemon=True)
        self._thread.start()
        console.print("[dim]Controls: press [SPACE] or [P] to pause, [Ctrl+C] to exit[/dim]\n")
        return True

    def _read_keys(self, fd: int) -> None:
        while not self._stop.is_set():
            ready, _, _ = select.select([fd], [], [], 0.1)
            if not ready:
                continue
            data = os.read(fd, 1)
            if not data:
                break
            self.controls.feed(data.decode(errors="ignore"))

    def stop(self) -> None:
        """Stop reading and restore the terminal."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._saved_attrs is not None:
            import termios

            termios.tcsetattr(self.stream.fileno(), termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None

    def __enter__(self) -> "KeyboardListener":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO


class RunLog:
    """Transcript of one invocation, mirrored line by line to the terminal."""

    def __init__(self, path: str | Path, terminal: TextIO | None = None) -> None:
        self.path = Path(path)
        self.terminal = terminal if terminal is not None else sys.stdout
        self._handle: TextIO | None = None

    def open(self) -> "RunLog":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("x", encoding="utf-8")
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "RunLog":
        return self.open() if self._handle is None else self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def write(self, text: str) -> None:
        if self._handle is None:
            raise RuntimeError(f"Run log is not open: {self.path}")
        self._handle.write(text)
        self._handle.flush()
        self.terminal.write(text)
        self.terminal.flush()

    def message(self, text: str) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        self.write(f"[{stamp}] {text}\n")


def log_filename(timestamp: str, attempt: int = 0) -> str:
    if attempt:
        return f"run_{timestamp}_{attempt}.log"
    return f"run_{timestamp}.log"


def new_log_path(directory: str | Path, timestamp: str) -> Path:
    """First unused log name for this timestamp; each invocation gets its own file."""
    directory = Path(directory)
    attempt = 0
    while (directory / log_filename(timestamp, attempt)).exists():
        attempt += 1
    return directory / log_filename(timestamp, attempt)

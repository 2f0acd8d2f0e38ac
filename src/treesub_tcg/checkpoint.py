from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import CheckpointError


@dataclass(frozen=True)
class CheckpointRecord:
    index: int
    name: str

    def to_line(self) -> str:
        return f"{self.index} {self.name}\n"

    @classmethod
    def from_line(cls, line: str) -> "CheckpointRecord":
        parts = line.split()
        if len(parts) != 2:
            raise ValueError(f"expected '<index> <name>', got '{line.strip()}'")
        index = int(parts[0])
        if index < 1:
            raise ValueError(f"stage index must be positive, got {index}")
        return cls(index=index, name=parts[1])


START = CheckpointRecord(index=0, name="start")


class CheckpointStore:
    """Append-only record of completed stages for one output directory.

    Only the last line is authoritative for resuming, even if an earlier line
    carries a higher index. The engine never rewrites or truncates the file;
    deleting it is how an operator restarts from scratch.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _lines(self) -> list[str]:
        if not self.path.exists():
            return []
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CheckpointError(f"Cannot read checkpoint file {self.path}: {exc}") from exc
        return [line for line in text.splitlines() if line.strip()]

    def records(self) -> list[CheckpointRecord]:
        out: list[CheckpointRecord] = []
        for line_no, line in enumerate(self._lines(), start=1):
            try:
                out.append(CheckpointRecord.from_line(line))
            except ValueError as exc:
                raise CheckpointError(
                    f"Malformed checkpoint line {line_no} in {self.path}: {exc}"
                ) from exc
        return out

    def resume_point(self) -> CheckpointRecord:
        lines = self._lines()
        if not lines:
            return START
        try:
            return CheckpointRecord.from_line(lines[-1])
        except ValueError as exc:
            raise CheckpointError(f"Malformed last checkpoint line in {self.path}: {exc}") from exc

    def append(self, index: int, name: str) -> CheckpointRecord:
        record = CheckpointRecord(index=int(index), name=str(name))
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(record.to_line())
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as exc:
            raise CheckpointError(
                f"Cannot record completion of stage {index} ({name}) in {self.path}: {exc}"
            ) from exc
        _fsync_dir(self.path.parent)
        return record


def _fsync_dir(path: Path) -> None:
    try:
        dfd = os.open(str(path), os.O_RDONLY)
    except OSError:
        # Directory fsync is not available on every platform/filesystem.
        return
    try:
        os.fsync(dfd)
    except OSError:
        pass
    finally:
        os.close(dfd)

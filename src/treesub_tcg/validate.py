from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    failed_path: Path | None = None
    reason: str = ""

    def describe(self) -> str:
        if self.ok:
            return "all required outputs present"
        return f"required output is {self.reason}: {self.failed_path}"


def validate_outputs(paths: Iterable[str | Path]) -> ValidationResult:
    """Check, in order, that every path exists and is non-empty.

    Size is the only signal; file contents are not inspected. Symlinks are
    followed.
    """
    for raw in paths:
        path = Path(raw)
        if not path.is_file():
            return ValidationResult(ok=False, failed_path=path, reason="missing")
        if path.stat().st_size == 0:
            return ValidationResult(ok=False, failed_path=path, reason="empty")
    return ValidationResult(ok=True)

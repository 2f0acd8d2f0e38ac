from __future__ import annotations

import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from .commands import Invocation
from .context import RunContext
from .runlog import RunLog
from .stages import Stage


@dataclass(frozen=True)
class StepResult:
    ok: bool
    returncode: int | None
    runtime_sec: float
    command: str
    reason: str = ""


def _reset_dir(path: Path) -> None:
    # A re-attempted stage starts clean; RAxML refuses to overwrite its own run files.
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


class StepExecutor:
    def __init__(self, context: RunContext, log: RunLog) -> None:
        self.context = context
        self.log = log

    def _run(self, invocation: Invocation, cwd: Path) -> tuple[int | None, str]:
        self.log.message(f"$ {invocation.render()}")
        try:
            proc = subprocess.Popen(
                list(invocation.argv),
                cwd=str(cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
                errors="replace",
            )
        except OSError as exc:
            return None, f"could not launch {invocation.argv[0]}: {exc}"
        assert proc.stdout is not None
        with proc.stdout:
            for line in iter(proc.stdout.readline, ""):
                self.log.write(line)
        returncode = proc.wait()
        return returncode, ""

    def execute(self, stage: Stage) -> StepResult:
        ctx = self.context
        workdir = stage.directory(ctx)
        _reset_dir(workdir)
        ctx.final_dir.mkdir(parents=True, exist_ok=True)
        for path in stage.published(ctx):
            # A retried stage must not validate against an earlier attempt.
            path.unlink(missing_ok=True)

        started = time.perf_counter()
        rendered: list[str] = []
        returncode: int | None = 0
        for invocation in stage.commands(ctx):
            rendered.append(invocation.render())
            returncode, launch_error = self._run(invocation, workdir)
            elapsed = time.perf_counter() - started
            if launch_error:
                return StepResult(False, None, elapsed, " && ".join(rendered), launch_error)
            if returncode != 0:
                if invocation.check:
                    return StepResult(
                        False,
                        returncode,
                        elapsed,
                        " && ".join(rendered),
                        f"{invocation.argv[0]} exited with status {returncode}",
                    )
                self.log.message(f"{invocation.argv[0]} exited with status {returncode} (not checked)")

        if stage.post is not None:
            try:
                stage.post(ctx, self.log)
            except (OSError, ValueError) as exc:
                return StepResult(
                    False,
                    returncode,
                    time.perf_counter() - started,
                    " && ".join(rendered),
                    f"post-processing failed: {exc}",
                )
        return StepResult(True, returncode, time.perf_counter() - started, " && ".join(rendered))

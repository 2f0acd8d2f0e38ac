from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .commands import (
    ASR_RESERVED_FLAGS,
    DEFAULT_ASR_OPTIONS,
    DEFAULT_TREE_OPTIONS,
    TREE_RESERVED_FLAGS,
    parse_tool_options,
)
from .errors import OptionValidationError


FINAL_DIRNAME = "final"
LOGS_DIRNAME = "logs"
CHECKPOINT_FILENAME = "checkpoint.txt"


@dataclass(frozen=True)
class Toolchain:
    java: str = "java"
    treesub_jar: str = "treesub.jar"
    raxml: str = "raxmlHPC"
    raxml_pthreads: str = "raxmlHPC-PTHREADS"
    recurrence: str = "treesub-recurrence"

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "Toolchain":
        defaults = cls()
        return cls(
            java=environ.get("TREESUB_JAVA_BIN", defaults.java),
            treesub_jar=environ.get("TREESUB_JAR", defaults.treesub_jar),
            raxml=environ.get("TREESUB_RAXML_BIN", defaults.raxml),
            raxml_pthreads=environ.get("TREESUB_RAXML_PTHREADS_BIN", defaults.raxml_pthreads),
            recurrence=environ.get("TREESUB_RECURRENCE_BIN", defaults.recurrence),
        )

    def raxml_for(self, cpus: int) -> str:
        return self.raxml if cpus == 1 else self.raxml_pthreads

    def resolved(self) -> "Toolchain":
        """Make every path with a directory part absolute.

        Tools run with their stage directory as working directory, so a
        relative path would be looked up from there. Bare command names are
        left for the PATH search.
        """
        return Toolchain(
            java=_absolute_command(self.java),
            treesub_jar=os.path.abspath(self.treesub_jar),
            raxml=_absolute_command(self.raxml),
            raxml_pthreads=_absolute_command(self.raxml_pthreads),
            recurrence=_absolute_command(self.recurrence),
        )


def _absolute_command(command: str) -> str:
    separators = [os.sep] + ([os.altsep] if os.altsep else [])
    if any(sep in command for sep in separators):
        return os.path.abspath(command)
    return command


@dataclass(frozen=True)
class RunContext:
    """Configuration of one pipeline invocation. Built once, never mutated."""

    input_path: Path
    output_dir: Path
    gene_table: Path | None = None
    cpus: int = 1
    tree_options: tuple[str, ...] = DEFAULT_TREE_OPTIONS
    asr_options: tuple[str, ...] = DEFAULT_ASR_OPTIONS
    abbreviated: bool = False
    toolchain: Toolchain = Toolchain()

    def __post_init__(self) -> None:
        if int(self.cpus) < 1:
            raise OptionValidationError(f"CPU count must be a positive integer, got {self.cpus}.")
        if self.gene_table is None and not self.abbreviated:
            raise OptionValidationError("A gene table (-g) is required unless running with -f.")

    @property
    def final_dir(self) -> Path:
        return self.output_dir / FINAL_DIRNAME

    @property
    def logs_dir(self) -> Path:
        return self.output_dir / LOGS_DIRNAME

    @property
    def checkpoint_path(self) -> Path:
        return self.logs_dir / CHECKPOINT_FILENAME

    def stage_dir(self, index: int, name: str) -> Path:
        return self.output_dir / f"{index}_{name}"

    def raxml_binary(self) -> str:
        return self.toolchain.raxml_for(self.cpus)

    def thread_args(self) -> list[str]:
        # The single-threaded build does not accept -T.
        if self.cpus == 1:
            return []
        return ["-T", str(self.cpus)]


def parse_cpu_count(raw: str | int) -> int:
    text = str(raw).strip()
    try:
        value = int(text)
    except ValueError as exc:
        raise OptionValidationError(f"CPU count must be a positive integer, got '{raw}'.") from exc
    if value < 1:
        raise OptionValidationError(f"CPU count must be a positive integer, got '{raw}'.")
    return value


def build_context(
    *,
    input_path: str | Path,
    output_dir: str | Path,
    gene_table: str | Path | None = None,
    cpus: str | int = 1,
    tree_options: str | None = None,
    asr_options: str | None = None,
    abbreviated: bool = False,
    toolchain: Toolchain | None = None,
) -> RunContext:
    tree_tokens = (
        DEFAULT_TREE_OPTIONS
        if tree_options is None
        else parse_tool_options(tree_options, TREE_RESERVED_FLAGS, label="tree inference (-r)")
    )
    asr_tokens = (
        DEFAULT_ASR_OPTIONS
        if asr_options is None
        else parse_tool_options(asr_options, ASR_RESERVED_FLAGS, label="ancestral reconstruction (-a)")
    )
    return RunContext(
        input_path=Path(input_path).resolve(),
        output_dir=Path(output_dir).resolve(),
        gene_table=None if gene_table is None else Path(gene_table).resolve(),
        cpus=parse_cpu_count(cpus),
        tree_options=tree_tokens,
        asr_options=asr_tokens,
        abbreviated=bool(abbreviated),
        toolchain=(toolchain if toolchain is not None else Toolchain()).resolved(),
    )

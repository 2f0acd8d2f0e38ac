from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from . import commands as cmd
from .commands import Invocation, stage_path
from .io import read_alignment_names
from .phylo import relabel_leaves

if TYPE_CHECKING:
    from .context import RunContext
    from .runlog import RunLog


ABBREVIATED_STAGE_COUNT = 3


@dataclass(frozen=True)
class Stage:
    """One checkpointed unit of work: external invocations plus required outputs."""

    index: int
    name: str
    commands: Callable[["RunContext"], list[Invocation]]
    outputs: Callable[["RunContext"], list[Path]]
    post: Callable[["RunContext", "RunLog"], None] | None = None
    # Files this stage writes into the shared final directory.
    final_files: tuple[str, ...] = ()

    def directory(self, ctx: "RunContext") -> Path:
        return ctx.stage_dir(self.index, self.name)

    def published(self, ctx: "RunContext") -> list[Path]:
        return [ctx.final_dir / name for name in self.final_files]

    @property
    def label(self) -> str:
        return f"stage {self.index} ({self.name})"


def alias_reduced_alignment(ctx: "RunContext", log: "RunLog") -> None:
    """Point the reduced alignment at the original when the reducer wrote none."""
    reduced = stage_path(ctx, 1, cmd.REDUCED_ALIGNMENT)
    if reduced.exists():
        return
    if reduced.is_symlink():
        reduced.unlink()
    # Relative target keeps the link valid if the output root is moved.
    os.symlink(cmd.RAXML_ALIGNMENT, reduced)
    log.message(f"No columns removed by reduction; {reduced.name} aliases {cmd.RAXML_ALIGNMENT}")


def publish_bootstrap_tree(ctx: "RunContext", log: "RunLog") -> None:
    """Copy the support tree to the final directory with original sample names."""
    source = stage_path(ctx, 2, cmd.BOOTSTRAP_TREE)
    if not source.exists():
        return
    names = read_alignment_names(stage_path(ctx, 1, cmd.ALIGNMENT_NAMES))
    text = source.read_text(encoding="utf-8")
    target = ctx.final_dir / cmd.BOOTSTRAP_TREE
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(relabel_leaves(text, names), encoding="utf-8")
    log.message(f"Bootstrap support tree written to {target}")


STAGES: tuple[Stage, ...] = (
    Stage(
        index=1,
        name="alignment",
        commands=lambda ctx: [cmd.converter_command(ctx), cmd.reduction_command(ctx)],
        outputs=lambda ctx: [
            stage_path(ctx, 1, name)
            for name in (
                cmd.SITE_MAP,
                cmd.ALIGNMENT_NAMES,
                cmd.RAXML_ALIGNMENT,
                cmd.CODON_ALIGNMENT,
                cmd.REDUCED_ALIGNMENT,
            )
        ],
        post=alias_reduced_alignment,
    ),
    Stage(
        index=2,
        name="tree",
        commands=lambda ctx: [cmd.tree_command(ctx)],
        outputs=lambda ctx: [stage_path(ctx, 2, cmd.BEST_TREE)],
        post=publish_bootstrap_tree,
        final_files=(cmd.BOOTSTRAP_TREE,),
    ),
    Stage(
        index=3,
        name="root",
        commands=lambda ctx: [cmd.reroot_command(ctx)],
        outputs=lambda ctx: [stage_path(ctx, 3, cmd.ROOTED_TREE)],
    ),
    Stage(
        index=4,
        name="ancestral",
        commands=lambda ctx: [cmd.ancestral_command(ctx)],
        outputs=lambda ctx: [
            stage_path(ctx, 4, cmd.ASR_STATES),
            stage_path(ctx, 4, cmd.ASR_TREE),
        ],
    ),
    Stage(
        index=5,
        name="annotate",
        commands=lambda ctx: [cmd.annotator_command(ctx)],
        outputs=lambda ctx: [
            ctx.final_dir / cmd.SUBSTITUTIONS_TABLE,
            ctx.final_dir / cmd.SUBSTITUTIONS_TREE,
        ],
        final_files=(cmd.SUBSTITUTIONS_TABLE, cmd.SUBSTITUTIONS_TREE),
    ),
    Stage(
        index=6,
        name="recurrence",
        commands=lambda ctx: [cmd.recurrence_command(ctx)],
        outputs=lambda ctx: [
            ctx.final_dir / cmd.RECURRENCE_ALL_TREE,
            ctx.final_dir / cmd.RECURRENCE_TREE,
        ],
        final_files=(cmd.RECURRENCE_ALL_TREE, cmd.RECURRENCE_TREE),
    ),
)


def build_stages(ctx: "RunContext") -> list[Stage]:
    if ctx.abbreviated:
        return list(STAGES[:ABBREVIATED_STAGE_COUNT])
    return list(STAGES)

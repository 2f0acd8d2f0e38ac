from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from .errors import OptionValidationError

if TYPE_CHECKING:
    from .context import RunContext


CONVERTER_CLASS = "treesub.alignment.FastaToPhylip"
REROOT_CLASS = "treesub.tree.Reroot"
ANNOTATOR_CLASS = "treesub.annotator.Main"

SITE_MAP = "alignment"
ALIGNMENT_NAMES = "alignment_names"
RAXML_ALIGNMENT = "alignment.raxml.phylip"
REDUCED_ALIGNMENT = RAXML_ALIGNMENT + ".reduced"
CODON_ALIGNMENT = "alignment_codons.phylip"
BEST_TREE = "RAxML_bestTree.RECON"
BOOTSTRAP_TREE = "RAxML_bipartitions.RECON"
ROOTED_TREE = BEST_TREE + ".rooted"
ASR_STATES = "RAxML_marginalAncestralStates.ASR"
ASR_TREE = "RAxML_nodeLabelledRootedTree.ASR"
SUBSTITUTIONS_TABLE = "substitutions.tsv"
SUBSTITUTIONS_TREE = "substitutions.tree"
RECURRENCE_ALL_TREE = "all.tree"
RECURRENCE_TREE = "recurrent.tree"

STAGE_NAMES = ("alignment", "tree", "root", "ancestral", "annotate", "recurrence")

# -T 2 is dropped from treesub's RAXML_DEFAULT_OPTIONS; threads come from -t.
DEFAULT_TREE_OPTIONS: tuple[str, ...] = ("-m", "GTRGAMMA", "-#", "10", "-p", "12345")
DEFAULT_ASR_OPTIONS: tuple[str, ...] = ("-m", "GTRGAMMA")

TREE_RESERVED_FLAGS = frozenset({"-s", "-n", "-w", "-T"})
ASR_RESERVED_FLAGS = TREE_RESERVED_FLAGS | {"-f"}


@dataclass(frozen=True)
class Invocation:
    argv: tuple[str, ...]
    check: bool = True

    def render(self) -> str:
        return shlex.join(self.argv)


def parse_tool_options(raw: str, reserved: Iterable[str], *, label: str) -> tuple[str, ...]:
    """Tokenise a custom RAxML option string, rejecting flags the pipeline controls.

    A token is rejected when it is a reserved flag or a reserved flag with its
    value attached (``-T4``). Option values are not distinguished from flags, so
    a value spelled exactly like a reserved flag is rejected too.
    """
    try:
        tokens = shlex.split(raw)
    except ValueError as exc:
        raise OptionValidationError(f"Cannot parse {label} options '{raw}': {exc}") from exc
    reserved_set = set(reserved)
    for token in tokens:
        if token in reserved_set or token[:2] in reserved_set:
            raise OptionValidationError(
                f"Custom {label} options must not contain {token[:2]} "
                f"(reserved: {' '.join(sorted(reserved_set))}); got '{raw}'."
            )
    return tuple(tokens)


def stage_path(ctx: "RunContext", index: int, filename: str = "") -> Path:
    base = ctx.stage_dir(index, STAGE_NAMES[index - 1])
    return base / filename if filename else base


def _raxml(ctx: "RunContext", args: list[str]) -> Invocation:
    return Invocation(tuple([ctx.raxml_binary(), *args, *ctx.thread_args()]))


def _java(ctx: "RunContext", main_class: str, args: list[str]) -> Invocation:
    tools = ctx.toolchain
    return Invocation(tuple([tools.java, "-cp", tools.treesub_jar, main_class, *args]))


def converter_command(ctx: "RunContext") -> Invocation:
    return _java(ctx, CONVERTER_CLASS, [str(ctx.input_path), str(stage_path(ctx, 1))])


def reduction_command(ctx: "RunContext") -> Invocation:
    # The reducer's verdict is the presence of the .reduced file, not its exit status.
    args = [
        "-f", "c",
        "-m", "GTRGAMMA",
        "-s", str(stage_path(ctx, 1, RAXML_ALIGNMENT)),
        "-n", "CHECK",
        "-w", str(stage_path(ctx, 1)),
    ]
    inv = _raxml(ctx, args)
    return Invocation(inv.argv, check=False)


def tree_command(ctx: "RunContext") -> Invocation:
    args = [
        *ctx.tree_options,
        "-s", str(stage_path(ctx, 1, REDUCED_ALIGNMENT)),
        "-n", "RECON",
        "-w", str(stage_path(ctx, 2)),
    ]
    return _raxml(ctx, args)


def reroot_command(ctx: "RunContext") -> Invocation:
    return _java(
        ctx,
        REROOT_CLASS,
        [str(stage_path(ctx, 2, BEST_TREE)), str(stage_path(ctx, 3, ROOTED_TREE))],
    )


def ancestral_command(ctx: "RunContext") -> Invocation:
    args = [
        "-f", "A",
        *ctx.asr_options,
        "-t", str(stage_path(ctx, 3, ROOTED_TREE)),
        "-s", str(stage_path(ctx, 1, CODON_ALIGNMENT)),
        "-n", "ASR",
        "-w", str(stage_path(ctx, 4)),
    ]
    return _raxml(ctx, args)


def annotator_command(ctx: "RunContext") -> Invocation:
    return _java(
        ctx,
        ANNOTATOR_CLASS,
        [
            "--tree", str(stage_path(ctx, 3, ROOTED_TREE)),
            "--ancestral-tree", str(stage_path(ctx, 4, ASR_TREE)),
            "--sequences", str(stage_path(ctx, 1, CODON_ALIGNMENT)),
            "--ancestral-states", str(stage_path(ctx, 4, ASR_STATES)),
            "--names", str(stage_path(ctx, 1, ALIGNMENT_NAMES)),
            "--out", str(ctx.final_dir),
        ],
    )


def recurrence_command(ctx: "RunContext") -> Invocation:
    if ctx.gene_table is None:
        raise OptionValidationError("Recurrence detection requires a gene table (-g).")
    return Invocation(
        (
            ctx.toolchain.recurrence,
            "--genes", str(ctx.gene_table),
            "--substitutions", str(ctx.final_dir / SUBSTITUTIONS_TABLE),
            "--sites", str(stage_path(ctx, 1, SITE_MAP)),
            "--out", str(ctx.final_dir),
        )
    )

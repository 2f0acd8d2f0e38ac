from __future__ import annotations

import argparse
import os
import sys
from typing import Mapping, NoReturn

from . import __version__
from .checkpoint import CheckpointStore
from .context import RunContext, Toolchain, build_context
from .doctor import run_doctor
from .driver import PipelineDriver
from .errors import PipelineError, PrerequisiteError, StageExecutionError
from .executor import StepExecutor
from .runlog import RunLog, new_log_path
from .stages import build_stages
from .system_info import get_system_metadata, run_timestamp


class _Parser(argparse.ArgumentParser):
    # Usage errors share exit status 1 with every other validation failure.
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="treesub-tcg",
        description=(
            "Resumable treesub pipeline: alignment conversion, RAxML tree inference, "
            "rooting, ancestral reconstruction, mutation annotation and recurrence detection."
        ),
        epilog=(
            "Tool locations: TREESUB_JAVA_BIN, TREESUB_JAR, TREESUB_RAXML_BIN, "
            "TREESUB_RAXML_PTHREADS_BIN, TREESUB_RECURRENCE_BIN. "
            "Delete <output>/logs/checkpoint.txt to start over."
        ),
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-i", dest="input", required=True, metavar="FASTA", help="input sequence file")
    parser.add_argument("-o", dest="outdir", required=True, metavar="DIR", help="output directory root")
    parser.add_argument(
        "-g", dest="gene_table", default=None, metavar="TSV", help="gene table (required unless -f)"
    )
    parser.add_argument("-t", dest="cpus", default="1", metavar="N", help="CPU/thread count (default 1)")
    parser.add_argument(
        "-r",
        dest="tree_options",
        default=None,
        metavar="OPTS",
        help="custom RAxML tree inference options (no -s, -n, -w, -T)",
    )
    parser.add_argument(
        "-a",
        dest="asr_options",
        default=None,
        metavar="OPTS",
        help="custom RAxML ancestral reconstruction options (no -s, -n, -w, -T, -f)",
    )
    parser.add_argument(
        "-f",
        dest="abbreviated",
        action="store_true",
        help="abbreviated mode: stop after tree rooting (stages 1-3)",
    )
    return parser


def _context_from_args(args: argparse.Namespace, environ: Mapping[str, str]) -> RunContext:
    return build_context(
        input_path=args.input,
        output_dir=args.outdir,
        gene_table=args.gene_table,
        cpus=args.cpus,
        tree_options=args.tree_options,
        asr_options=args.asr_options,
        abbreviated=bool(args.abbreviated),
        toolchain=Toolchain.from_environ(environ),
    )


def _write_header(log: RunLog, context: RunContext, argv: list[str]) -> None:
    log.message("treesub-tcg " + __version__ + " " + " ".join(argv))
    for key, value in get_system_metadata().items():
        log.message(f"{key}: {value}")
    log.message(f"input: {context.input_path}")
    log.message(f"output: {context.output_dir}")
    log.message(f"cpus: {context.cpus} ({context.raxml_binary()})")
    log.message("mode: " + ("abbreviated (stages 1-3)" if context.abbreviated else "full (stages 1-6)"))


def _run(args: argparse.Namespace, argv: list[str]) -> int:
    context = _context_from_args(args, os.environ)

    report = run_doctor(context)
    if report.has_failures:
        print(report.render(), file=sys.stderr)
        first = report.failures()[0]
        raise PrerequisiteError(f"{first.name}: {first.message}")

    context.output_dir.mkdir(parents=True, exist_ok=True)
    log_path = new_log_path(context.logs_dir, run_timestamp())
    with RunLog(log_path) as log:
        try:
            _write_header(log, context, argv)
            for check in report.checks:
                if check.status == "WARN":
                    log.message(f"warning: {check.name}: {check.message}")
            driver = PipelineDriver(
                context=context,
                stages=build_stages(context),
                executor=StepExecutor(context, log),
                store=CheckpointStore(context.checkpoint_path),
                log=log,
            )
            outcome = driver.run()
            if not outcome.ok:
                assert outcome.failed_stage is not None
                raise StageExecutionError(
                    f"{outcome.failed_stage.label} failed: {outcome.reason}. "
                    f"See run log {log.path}"
                )
        except PipelineError as exc:
            log.message(f"error: {exc}")
            raise

    completed = CheckpointStore(context.checkpoint_path).records()
    print("Completed stages: " + ", ".join(f"{r.index} {r.name}" for r in completed))
    print(f"Final outputs: {context.final_dir}")
    print(f"Checkpoint: {context.checkpoint_path}")
    print(f"Run log: {log_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    argv_list = list(argv if argv is not None else sys.argv[1:])
    args = parser.parse_args(argv_list)
    try:
        return _run(args, argv_list)
    except PipelineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

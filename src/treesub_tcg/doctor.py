from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from .context import RunContext
from .io import read_fasta, read_gene_table


MIN_SEQUENCES = 4
NEWICK_RESERVED = set("(),:;[]'\"")


@dataclass
class DoctorCheck:
    name: str
    status: str  # PASS | WARN | FAIL
    message: str
    fix: str | None = None


@dataclass
class DoctorReport:
    checks: list[DoctorCheck]

    @property
    def has_failures(self) -> bool:
        return any(check.status == "FAIL" for check in self.checks)

    def failures(self) -> list[DoctorCheck]:
        return [check for check in self.checks if check.status == "FAIL"]

    def render(self) -> str:
        lines = []
        for check in self.checks:
            lines.append(f"[{check.status}] {check.name}: {check.message}")
            if check.fix:
                lines.append(f"  fix: {check.fix}")
        summary = "FAIL" if self.has_failures else "PASS"
        lines.append(f"\nPrerequisite summary: {summary}")
        return "\n".join(lines)


def _check_input(path: Path) -> list[DoctorCheck]:
    if not path.is_file() or path.stat().st_size == 0:
        return [
            DoctorCheck(
                "Input sequences",
                "FAIL",
                f"missing or empty: {path}",
                "Pass an existing, non-empty FASTA file with -i.",
            )
        ]
    try:
        aln = read_fasta(path)
    except ValueError as exc:
        return [DoctorCheck("Input sequences", "FAIL", str(exc), "Provide an aligned FASTA file.")]

    checks: list[DoctorCheck] = []
    if aln.n_sequences < MIN_SEQUENCES:
        checks.append(
            DoctorCheck(
                "Input sequences",
                "FAIL",
                f"{aln.n_sequences} sequences found; tree inference needs at least {MIN_SEQUENCES}.",
            )
        )
    else:
        checks.append(
            DoctorCheck(
                "Input sequences",
                "PASS",
                f"{aln.n_sequences} sequences, alignment length {aln.length}.",
            )
        )

    bad_names = [n for n in aln.names if any(c.isspace() or c in NEWICK_RESERVED for c in n)]
    if bad_names:
        checks.append(
            DoctorCheck(
                "Sample names",
                "FAIL",
                "names cannot be written into Newick trees: " + ", ".join(bad_names[:8]),
                "Remove whitespace and any of ( ) , : ; [ ] ' \" from FASTA headers.",
            )
        )
    else:
        checks.append(DoctorCheck("Sample names", "PASS", "All names are Newick-safe."))

    remainder = aln.length % 3
    if remainder:
        checks.append(
            DoctorCheck(
                "Codon frame",
                "WARN",
                f"alignment length {aln.length} is not divisible by 3 (remainder {remainder}).",
                "Trailing bases outside a complete codon are dropped from the codon alignment.",
            )
        )
    return checks


def _check_gene_table(path: Path) -> DoctorCheck:
    try:
        genes = read_gene_table(path)
    except (FileNotFoundError, ValueError) as exc:
        return DoctorCheck(
            "Gene table",
            "FAIL",
            str(exc),
            "Use a tab-separated file with columns gene, start, end.",
        )
    return DoctorCheck("Gene table", "PASS", f"{len(genes)} genes.")


def _check_executable(label: str, command: str) -> DoctorCheck:
    found = shutil.which(command)
    if found is None:
        return DoctorCheck(
            label,
            "FAIL",
            f"'{command}' is not on PATH or not executable.",
            "Install it or point the matching TREESUB_*_BIN variable at it.",
        )
    return DoctorCheck(label, "PASS", found)


def run_doctor(context: RunContext) -> DoctorReport:
    """Check every input and external program the configured run could need."""
    checks: list[DoctorCheck] = []
    checks.extend(_check_input(context.input_path))
    if not context.abbreviated and context.gene_table is not None:
        checks.append(_check_gene_table(context.gene_table))

    tools = context.toolchain
    checks.append(_check_executable("Java runtime", tools.java))
    jar = Path(tools.treesub_jar)
    if jar.is_file() and jar.stat().st_size > 0:
        checks.append(DoctorCheck("treesub jar", "PASS", str(jar.resolve())))
    else:
        checks.append(
            DoctorCheck(
                "treesub jar",
                "FAIL",
                f"missing or empty: {jar}",
                "Set TREESUB_JAR to the treesub.jar path.",
            )
        )
    variant = "RAxML (multi-threaded)" if context.cpus > 1 else "RAxML"
    checks.append(_check_executable(variant, context.raxml_binary()))
    if not context.abbreviated:
        checks.append(_check_executable("Recurrence helper", tools.recurrence))
    return DoctorReport(checks=checks)

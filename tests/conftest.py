from __future__ import annotations

import os
import stat
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest


FAKE_JAVA = r'''
import os
import sys
from pathlib import Path

args = sys.argv[1:]
with open(os.environ["FAKE_CALL_LOG"], "a", encoding="utf-8") as log:
    log.write("java " + " ".join(args) + "\n")
main_class, rest = args[2], args[3:]
empty = set(filter(None, os.environ.get("FAKE_EMPTY_OUTPUTS", "").split(",")))
skipped = set(filter(None, os.environ.get("FAKE_SKIP_OUTPUTS", "").split(",")))
if not Path(args[1]).is_file():
    print(f"Error: Could not find or load main class {main_class}", file=sys.stderr)
    sys.exit(1)


def out(path, text):
    path = Path(path)
    if path.name in skipped:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("" if path.name in empty else text, encoding="utf-8")


def option(flag):
    return rest[rest.index(flag) + 1]


if main_class.endswith("FastaToPhylip"):
    fasta, outdir = Path(rest[0]), Path(rest[1])
    names, seqs = [], []
    for line in fasta.read_text(encoding="utf-8").splitlines():
        if line.startswith(">"):
            names.append(line[1:].strip())
            seqs.append("")
        elif line.strip():
            seqs[-1] += line.strip()
    width = len(seqs[0])
    phylip = f"{len(seqs)} {width}\n" + "".join(
        f"seq_{i} {s}\n" for i, s in enumerate(seqs, start=1)
    )
    out(outdir / "alignment_names", "\n".join(names) + "\n")
    out(outdir / "alignment.raxml.phylip", phylip)
    out(outdir / "alignment_codons.phylip", phylip)
    out(outdir / "alignment", "".join(f"{i}\t{(i - 1) // 3 + 1}\n" for i in range(1, width + 1)))
    print(f"converted {len(names)} sequences")
elif main_class.endswith("Reroot"):
    out(rest[1], Path(rest[0]).read_text(encoding="utf-8"))
    print("rooted on seq_1")
elif main_class.endswith("Main"):
    outdir = Path(option("--out"))
    out(outdir / "substitutions.tsv", "branch\tsite\tfrom\tto\nseq_2\t4\tA\tG\n")
    out(outdir / "substitutions.tree", Path(option("--tree")).read_text(encoding="utf-8"))
    print("annotated 1 substitution")
else:
    print(f"unknown class {main_class}", file=sys.stderr)
    sys.exit(2)
'''

FAKE_RAXML = r'''
import os
import sys
from pathlib import Path

args = sys.argv[1:]
with open(os.environ["FAKE_CALL_LOG"], "a", encoding="utf-8") as log:
    log.write(Path(sys.argv[0]).name + " " + " ".join(args) + "\n")
opts = dict(zip(args[::2], args[1::2]))
empty = set(filter(None, os.environ.get("FAKE_EMPTY_OUTPUTS", "").split(",")))


def out(path, text):
    path = Path(path)
    path.write_text("" if path.name in empty else text, encoding="utf-8")


name = opts["-n"]
workdir = Path(opts["-w"])
print(f"RAxML run {name}")
if os.environ.get("FAKE_RAXML_FAIL") == name:
    print("simulated RAxML failure", file=sys.stderr)
    sys.exit(5)
mode = opts.get("-f")
if mode == "c":
    if os.environ.get("FAKE_RAXML_REDUCE"):
        src = Path(opts["-s"])
        out(src.with_name(src.name + ".reduced"), "4 3\nseq_1 ATG\nseq_2 ATG\nseq_3 ATA\nseq_4 ATC\n")
    sys.exit(0)
if mode == "A":
    out(workdir / f"RAxML_marginalAncestralStates.{name}", "ROOT ATGAAA\n")
    out(workdir / f"RAxML_nodeLabelledRootedTree.{name}", Path(opts["-t"]).read_text(encoding="utf-8"))
    sys.exit(0)
n_taxa = int(Path(opts["-s"]).read_text(encoding="utf-8").split()[0])
tree = "seq_1:0.1"
for i in range(2, n_taxa + 1):
    tree = f"({tree},seq_{i}:0.{i})"
out(workdir / f"RAxML_bestTree.{name}", tree + ";\n")
if "-x" in opts:
    support = "(seq_1:0.1,seq_2:0.2,(seq_3:0.3,seq_4:0.4)87:0.05);\n"
    out(workdir / f"RAxML_bipartitions.{name}", support)
'''

FAKE_RECURRENCE = r'''
import os
import sys
from pathlib import Path

args = sys.argv[1:]
with open(os.environ["FAKE_CALL_LOG"], "a", encoding="utf-8") as log:
    log.write("recurrence " + " ".join(args) + "\n")
opts = dict(zip(args[::2], args[1::2]))
empty = set(filter(None, os.environ.get("FAKE_EMPTY_OUTPUTS", "").split(",")))
outdir = Path(opts["--out"])
tree = Path(outdir / "substitutions.tree").read_text(encoding="utf-8")
for filename in ("all.tree", "recurrent.tree"):
    path = outdir / filename
    path.write_text("" if filename in empty else tree, encoding="utf-8")
print("recurrence analysis complete")
'''


@dataclass
class FakeTools:
    java: Path
    jar: Path
    raxml: Path
    raxml_pthreads: Path
    recurrence: Path
    call_log: Path

    def calls(self) -> list[str]:
        if not self.call_log.exists():
            return []
        return self.call_log.read_text(encoding="utf-8").splitlines()


def _write_script(path: Path, body: str) -> Path:
    path.write_text(f"#!{sys.executable}\n" + body.lstrip("\n"), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch) -> FakeTools:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    jar = bin_dir / "treesub.jar"
    jar.write_bytes(b"PK\x03\x04fake")
    tools = FakeTools(
        java=_write_script(bin_dir / "java", FAKE_JAVA),
        jar=jar,
        raxml=_write_script(bin_dir / "raxmlHPC", FAKE_RAXML),
        raxml_pthreads=_write_script(bin_dir / "raxmlHPC-PTHREADS", FAKE_RAXML),
        recurrence=_write_script(bin_dir / "treesub-recurrence", FAKE_RECURRENCE),
        call_log=tmp_path / "calls.txt",
    )
    monkeypatch.setenv("FAKE_CALL_LOG", str(tools.call_log))
    monkeypatch.setenv("TREESUB_JAVA_BIN", str(tools.java))
    monkeypatch.setenv("TREESUB_JAR", str(tools.jar))
    monkeypatch.setenv("TREESUB_RAXML_BIN", str(tools.raxml))
    monkeypatch.setenv("TREESUB_RAXML_PTHREADS_BIN", str(tools.raxml_pthreads))
    monkeypatch.setenv("TREESUB_RECURRENCE_BIN", str(tools.recurrence))
    monkeypatch.delenv("FAKE_EMPTY_OUTPUTS", raising=False)
    monkeypatch.delenv("FAKE_SKIP_OUTPUTS", raising=False)
    monkeypatch.delenv("FAKE_RAXML_FAIL", raising=False)
    monkeypatch.delenv("FAKE_RAXML_REDUCE", raising=False)
    return tools


def write_fasta(path: Path, records: dict[str, str]) -> Path:
    lines: list[str] = []
    for name, seq in records.items():
        lines.append(f">{name}")
        lines.append(seq)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_gene_table(path: Path) -> Path:
    path.write_text("gene\tstart\tend\nORF1\t1\t6\nORF2\t7\t12\n", encoding="utf-8")
    return path


FOUR_SAMPLES = {
    "human": "ATGAAACCCGGG",
    "chimp": "ATGAAACCCGGA",
    "gorilla": "ATGAAGCCCGGA",
    "orangutan": "ATGAGGCCTGGA",
}


@pytest.fixture
def fasta(tmp_path: Path) -> Path:
    return write_fasta(tmp_path / "input.fasta", FOUR_SAMPLES)


@pytest.fixture
def gene_table(tmp_path: Path) -> Path:
    return write_gene_table(tmp_path / "genes.tsv")

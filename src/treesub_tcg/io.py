from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd


GENE_TABLE_COLUMNS = ("gene", "start", "end")


@dataclass(frozen=True)
class Alignment:
    names: tuple[str, ...]
    sequences: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.names:
            raise ValueError("Alignment has no sequences.")
        if len(self.names) != len(self.sequences):
            raise ValueError("Alignment names and sequences are misaligned.")
        if len(set(self.names)) != len(self.names):
            raise ValueError("Sequence names must be unique.")
        lengths = {len(seq) for seq in self.sequences}
        if len(lengths) != 1:
            raise ValueError("All sequences in an alignment must have equal length.")

    @property
    def length(self) -> int:
        return len(self.sequences[0])

    @property
    def n_sequences(self) -> int:
        return len(self.sequences)


def read_fasta(path: str | Path) -> Alignment:
    """Read a FASTA file as a strict rectangular alignment."""
    path = Path(path)
    names: list[str] = []
    sequences: list[str] = []
    chunks: list[str] = []

    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        for line_no, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line:
                continue
            if line.startswith(">"):
                if names:
                    sequences.append("".join(chunks).upper())
                    chunks = []
                header = line[1:].strip()
                if not header:
                    raise ValueError(f"Missing FASTA header name at line {line_no} in {path}")
                names.append(header)
                continue
            if not names:
                raise ValueError(f"FASTA sequence without header at line {line_no} in {path}")
            chunks.append("".join(line.split()))

    if names:
        sequences.append("".join(chunks).upper())
    if not names:
        raise ValueError(f"No FASTA records found in {path}")
    if any(not seq for seq in sequences):
        raise ValueError(f"Malformed FASTA in {path}: a record has no sequence.")

    return Alignment(names=tuple(names), sequences=tuple(sequences))


def read_alignment_names(path: str | Path) -> list[str]:
    """Original sample names in converter order; line N names placeholder ``seq_N``."""
    path = Path(path)
    names = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    names = [name for name in names if name]
    if not names:
        raise ValueError(f"No sample names recorded in {path}")
    return names


def read_gene_table(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Gene table not found: {path}")
    try:
        df = pd.read_csv(path, sep="\t")
    except pd.errors.EmptyDataError as exc:
        raise ValueError(f"Gene table is empty: {path}") from exc
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in GENE_TABLE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Gene table {path} missing required columns: {', '.join(missing)}")
    if df.empty:
        raise ValueError(f"Gene table has no rows: {path}")

    coords = df[["start", "end"]].apply(pd.to_numeric, errors="coerce")
    bad = coords.isna().any(axis=1) | (coords["start"] < 1) | (coords["end"] < coords["start"])
    if bool(bad.any()):
        first = df.loc[bad].iloc[0]
        raise ValueError(
            f"Gene table {path} has invalid coordinates for gene '{first['gene']}': "
            f"start={first['start']} end={first['end']}"
        )
    out = df.loc[:, list(GENE_TABLE_COLUMNS)].copy()
    out["gene"] = out["gene"].astype(str)
    out["start"] = coords["start"].astype(int)
    out["end"] = coords["end"].astype(int)
    return out

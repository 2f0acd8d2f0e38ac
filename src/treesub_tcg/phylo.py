from __future__ import annotations

import re
from typing import Sequence


PLACEHOLDER_PREFIX = "seq_"

# A leaf label follows "(" or "," and ends at ":", ",", ")", ";" or a comment.
_LEAF_TOKEN = re.compile(r"(?<=[(,])(\s*)([^\s(),:;\[\]]+)(?=\s*[:,);\[])")
_PLACEHOLDER = re.compile(rf"^{re.escape(PLACEHOLDER_PREFIX)}(\d+)$")


def _strip_comments(newick: str) -> str:
    return re.sub(r"\[[^\]]*\]", "", newick)


def leaf_labels(newick: str) -> list[str]:
    """Return leaf labels in the order they appear in the Newick text."""
    text = _strip_comments(newick.strip())
    if not text:
        raise ValueError("Newick string is empty.")
    if text.count("(") != text.count(")"):
        raise ValueError("Unbalanced parentheses in Newick string.")
    return [m.group(2) for m in _LEAF_TOKEN.finditer(text)]


def relabel_leaves(newick: str, names: Sequence[str]) -> str:
    """Replace ``seq_N`` leaf placeholders by ``names[N - 1]``.

    Only leaf tokens are rewritten; branch lengths, support values and
    internal labels are left untouched, so the topology text is preserved.
    """

    def _substitute(match: re.Match[str]) -> str:
        lead, label = match.group(1), match.group(2)
        placeholder = _PLACEHOLDER.match(label)
        if placeholder is None:
            return match.group(0)
        position = int(placeholder.group(1))
        if position < 1 or position > len(names):
            raise ValueError(
                f"Leaf '{label}' has no recorded sample name ({len(names)} names available)."
            )
        return lead + names[position - 1]

    out = _LEAF_TOKEN.sub(_substitute, newick)
    labels = leaf_labels(out)
    if len(set(labels)) != len(labels):
        raise ValueError("Leaf labels must be unique after relabelling.")
    return out

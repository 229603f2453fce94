# src/clusterops/cli/render.py
from __future__ import annotations

from typing import List, Sequence

import typer


def format_status(status: str) -> str:
    s = status.lower()
    if s in ("up", "healthy"):
        return typer.style(status, fg=typer.colors.GREEN)
    if s == "healthy|l":  # PD leader
        return typer.style(status, fg=typer.colors.BRIGHT_GREEN)
    if s in ("offline", "tombstone", "disconnected"):
        return typer.style(status, fg=typer.colors.YELLOW)
    if s in ("down", "unhealthy", "err"):
        return typer.style(status, fg=typer.colors.RED)
    return status


def render_table(header: Sequence[str], rows: List[Sequence[str]], *, status_col: int = 4) -> str:
    """Plain column-aligned table; the status column is coloured after padding."""
    widths = [len(h) for h in header]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str], colour: bool) -> str:
        out = []
        for i, cell in enumerate(cells):
            padded = cell.ljust(widths[i])
            if colour and i == status_col:
                padded = format_status(cell) + " " * (widths[i] - len(cell))
            out.append(padded)
        return "  ".join(out).rstrip()

    lines = [line(header, False), "  ".join("-" * w for w in widths)]
    lines.extend(line(r, True) for r in rows)
    return "\n".join(lines)

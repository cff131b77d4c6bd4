"""
Mermaid flowchart rendering.

Pure function of the graph tables, independent of validation. Output is
deterministic: nodes in registration order, edges in table order, then one
dashed transition per branch target.
"""
from __future__ import annotations

from typing import List, Sequence

from .constants import END, START
from .models import Branches, Edge, Nodes

FENCE_OPEN = "```mermaid"
FENCE_CLOSE = "```"
HEADER = "flowchart TD"


def _label(condition: str) -> str:
    if condition == "true":
        return "True"
    if condition == "false":
        return "False"
    return condition


def render_mermaid(nodes: Nodes, edges: Sequence[Edge], branches: Branches) -> str:
    """
    Render the graph as a fenced Mermaid flowchart.

    Grammar:
        node declaration       id["label"]
        unconditional edge     src --> dst
        ``then`` transition    src -.-> dst
        ``ends`` transition    src -.|Label|.-> dst
    """
    lines: List[str] = [FENCE_OPEN, HEADER]

    lines.append(f'    {START}["START"]')
    lines.append(f'    {END}["END"]')

    for name in nodes:
        lines.append(f'    {name}["{name}"]')

    for source, target in edges:
        lines.append(f"    {source} --> {target}")

    for source, branch_map in branches.items():
        for branch in branch_map.values():
            if branch.then is not None:
                lines.append(f"    {source} -.-> {branch.then}")
            if branch.ends:
                for condition, target in branch.ends.items():
                    lines.append(f"    {source} -.|{_label(condition)}|.-> {target}")

    lines.append(FENCE_CLOSE)
    return "\n".join(lines)

"""
Workflow Graph validator - structural checks run once at compile time.

Three checks:
- every edge and branch endpoint names a registered node
- type compatibility across unconditional edges (tag equality)
- reachability of every registered node from START
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List, Sequence

from .constants import END, SENTINELS, START
from .errors import WorkflowGraphError
from .models import Branches, Edge, Nodes

logger = logging.getLogger(__name__)


def check_types(nodes: Nodes, edges: Sequence[Edge]) -> None:
    """
    Check declared type tags on every unconditional edge.

    Only edges between two registered nodes where the source declares an
    output tag and the target an input tag are checked. Branch transitions
    are not checked.

    Raises:
        WorkflowGraphError: TYPE_MISMATCH on the first incompatible edge
    """
    for source, target in edges:
        if source in SENTINELS or target in SENTINELS:
            continue
        source_spec = nodes[source]
        target_spec = nodes[target]
        if source_spec.output_type is None or target_spec.input_type is None:
            continue
        if source_spec.output_type != target_spec.input_type:
            raise WorkflowGraphError.type_mismatch(
                source, target, source_spec.output_type, target_spec.input_type
            )


def check_endpoints(nodes: Nodes, edges: Sequence[Edge], branches: Branches) -> None:
    """
    Check that every edge and branch endpoint is a sentinel or a registered node.

    Raises:
        WorkflowGraphError: INVALID_EDGE naming the first unknown endpoint
    """
    endpoints = [name for edge in edges for name in edge]
    for source, branch_map in branches.items():
        endpoints.append(source)
        for branch in branch_map.values():
            endpoints.extend(branch.targets())

    for name in endpoints:
        if name not in SENTINELS and name not in nodes:
            raise WorkflowGraphError.invalid_edge(name)


def _adjacency(edges: Sequence[Edge]) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {}
    for source, target in edges:
        adjacency.setdefault(source, []).append(target)
    return adjacency


def find_unreachable(nodes: Nodes, edges: Sequence[Edge], branches: Branches) -> List[str]:
    """
    Breadth-first walk from START over edges and every branch target.

    Returns:
        Registered node names never visited, in registration order
    """
    adjacency = _adjacency(edges)
    visited = set()
    queue = deque([START])

    while queue:
        node = queue.popleft()
        if node in visited:
            continue
        visited.add(node)

        for target in adjacency.get(node, []):
            if target != END:
                queue.append(target)

        for branch in branches.get(node, {}).values():
            for target in branch.targets():
                if target != END:
                    queue.append(target)

    return [name for name in nodes if name not in visited]


def validate_graph(nodes: Nodes, edges: Sequence[Edge], branches: Branches) -> None:
    """
    Validate the graph tables.

    Raises:
        WorkflowGraphError: INVALID_EDGE, TYPE_MISMATCH or UNREACHABLE_NODE
    """
    check_endpoints(nodes, edges, branches)
    check_types(nodes, edges)

    unreachable = find_unreachable(nodes, edges, branches)
    if unreachable:
        logger.debug(f"Unreachable nodes: {unreachable}")
        raise WorkflowGraphError.unreachable(unreachable)

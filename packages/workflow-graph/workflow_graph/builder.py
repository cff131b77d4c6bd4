"""
Workflow Graph builder.

WorkflowGraph accumulates nodes, edges and branches, rejecting bad names and
dangling endpoints as they are added. compile() validates the whole graph
and returns a runnable CompiledGraph.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Set

from .config import get_node_defaults
from .constants import END, SENTINELS, START
from .errors import WorkflowGraphError
from .executor import CompiledGraph
from .mermaid import render_mermaid
from .models import (
    Branch,
    Branches,
    Edge,
    ErrorHandler,
    NodeAction,
    NodeSpec,
    Nodes,
    PathFunction,
    ProgressCallback,
)
from .trace import RunTrace
from .validator import check_types

logger = logging.getLogger(__name__)


class WorkflowGraph:
    """
    Mutable graph definition.

    Example:
        graph = WorkflowGraph()
        graph.add_node("add", lambda x: x + 1)
        graph.add_node("double", lambda x: x * 2)
        graph.add_edge("add", "double")
        graph.set_entry_point("add")
        graph.set_finish_point("double")
        compiled = graph.compile()
        compiled.execute(1)  # 4
    """

    def __init__(self):
        self.nodes: Nodes = {}
        self.edges: List[Edge] = []
        self.branches: Branches = {}
        self.entry_points: Set[str] = set()
        self.finish_points: Set[str] = set()

    def _require_endpoint(self, name: str) -> None:
        if name not in SENTINELS and name not in self.nodes:
            raise WorkflowGraphError.invalid_edge(name)

    def add_node(
        self,
        name: str,
        action: NodeAction,
        *,
        retry_count: Optional[int] = None,
        retry_delay: Optional[float] = None,
        error_handler: Optional[ErrorHandler] = None,
        on_success: Optional[ProgressCallback] = None,
        input_type: Any = None,
        output_type: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
        retries: Optional[int] = None,
        backoff_factor: Optional[float] = None,
        on_error: Optional[ErrorHandler] = None,
        callback: Optional[ProgressCallback] = None,
    ) -> "WorkflowGraph":
        """
        Register a node.

        ``retries``, ``backoff_factor``, ``on_error`` and ``callback`` are
        aliases for ``retry_count``, ``retry_delay``, ``error_handler`` and
        ``on_success``. ``backoff_factor`` is a flat delay like
        ``retry_delay``, not an exponential factor.

        Raises:
            WorkflowGraphError: INVALID_NODE_NAME for START/END,
                DUPLICATE_NODE when the name is taken
        """
        if name in SENTINELS:
            raise WorkflowGraphError.invalid_node_name(name)
        if name in self.nodes:
            raise WorkflowGraphError.duplicate_node(name)

        defaults = get_node_defaults()
        count = _first_set(retries, retry_count, defaults["retry_count"])
        delay = _first_set(backoff_factor, retry_delay, defaults["retry_delay"])

        self.nodes[name] = NodeSpec(
            action=action,
            retry_count=count,
            retry_delay=delay,
            error_handler=on_error or error_handler,
            on_success=callback or on_success,
            input_type=input_type,
            output_type=output_type,
            metadata=dict(metadata or {}),
        )
        logger.debug(f"Added node '{name}' (retry_count={count}, retry_delay={delay})")
        return self

    def add_edge(self, source: str, target: str) -> "WorkflowGraph":
        """
        Add an unconditional edge. Duplicates are kept.

        Raises:
            WorkflowGraphError: INVALID_EDGE for an unregistered endpoint
        """
        self._require_endpoint(source)
        self._require_endpoint(target)
        self.edges.append((source, target))
        return self

    def add_conditional_edges(
        self,
        source: str,
        path: PathFunction,
        ends: Optional[Mapping[Any, str]] = None,
        branch_key: Optional[str] = None,
        then: Optional[str] = None,
    ) -> "WorkflowGraph":
        """
        Attach a branch to *source*.

        Args:
            source: Node the branch leaves from
            path: Discriminator called with the node's original input
            ends: Discriminator value => target node (bool, str or Enum keys)
            branch_key: Name of the branch; defaults to the path function's
                name, or "branch" for lambdas
            then: Target followed unconditionally whenever *source* runs

        Raises:
            WorkflowGraphError: INVALID_EDGE for an unregistered endpoint,
                INVALID_BRANCH_VALUE for an unsupported ``ends`` key
        """
        self._require_endpoint(source)
        for target in list((ends or {}).values()) + ([then] if then is not None else []):
            self._require_endpoint(target)

        key = branch_key or _path_name(path)
        self.branches.setdefault(source, {})[key] = Branch(
            path=path,
            ends=dict(ends) if ends is not None else None,
            then=then,
        )
        return self

    def set_entry_point(self, name: str) -> "WorkflowGraph":
        """Mark *name* as an entry point (adds START -> name)."""
        if name not in self.nodes:
            raise WorkflowGraphError.invalid_node_name(name, "does not exist")
        self.entry_points.add(name)
        self.edges.append((START, name))
        return self

    def set_finish_point(self, name: str) -> "WorkflowGraph":
        """Mark *name* as a finish point (adds name -> END)."""
        if name not in self.nodes:
            raise WorkflowGraphError.invalid_node_name(name, "does not exist")
        self.finish_points.add(name)
        self.edges.append((name, END))
        return self

    def validate(self) -> "WorkflowGraph":
        """Check declared type tags on unconditional edges."""
        check_types(self.nodes, self.edges)
        return self

    def compile(self) -> CompiledGraph:
        """
        Validate and freeze the graph.

        Returns:
            CompiledGraph over a snapshot of the current tables
        """
        self.validate()
        compiled = CompiledGraph(self.nodes, self.edges, self.branches)
        return compiled.validate()

    async def execute_async(
        self,
        input_data: Any,
        callback: Optional[ProgressCallback] = None,
        tracer: Optional[RunTrace] = None,
    ) -> Any:
        """Compile and run once."""
        return await self.compile().execute_async(input_data, callback, tracer)

    def execute(
        self,
        input_data: Any,
        callback: Optional[ProgressCallback] = None,
        tracer: Optional[RunTrace] = None,
    ) -> Any:
        """Compile and run once, blocking."""
        return self.compile().execute(input_data, callback, tracer)

    def to_mermaid(self) -> str:
        """Render the current tables; no validation is performed."""
        return render_mermaid(self.nodes, self.edges, self.branches)


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _path_name(path: PathFunction) -> str:
    name = getattr(path, "__name__", "")
    if not name or name == "<lambda>":
        return "branch"
    return name

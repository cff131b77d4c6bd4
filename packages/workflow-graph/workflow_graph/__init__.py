"""
Workflow Graph.

Describe a computation as a graph of named nodes joined by edges and
conditional branches, then run it once per call from START to END:
- WorkflowGraph builder with entry/finish points
- Compile-time validation (type tags, reachability)
- Per-node retries with a flat delay and error handlers
- Mermaid diagram rendering
- Optional run tracing
"""

__version__ = "0.1.0"

from .builder import WorkflowGraph
from .constants import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_DELAY, END, START
from .errors import ErrorKind, WorkflowGraphError
from .executor import CompiledGraph
from .loader import load_graph, load_graph_from_yaml
from .mermaid import render_mermaid
from .models import Branch, NodeSpec
from .trace import EventName, RunStatus, RunTrace, TraceEvent
from .validator import validate_graph

__all__ = [
    "__version__",
    # Core
    "WorkflowGraph",
    "CompiledGraph",
    "NodeSpec",
    "Branch",
    "START",
    "END",
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_RETRY_DELAY",
    # Errors
    "ErrorKind",
    "WorkflowGraphError",
    # Validation & rendering
    "validate_graph",
    "render_mermaid",
    # Loading
    "load_graph",
    "load_graph_from_yaml",
    # Tracing
    "RunTrace",
    "TraceEvent",
    "EventName",
    "RunStatus",
]

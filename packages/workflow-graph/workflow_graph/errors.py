"""
Workflow Graph errors.

A single exception type tagged with an ErrorKind. Structural kinds are raised
while the graph is assembled or validated; EXECUTION_FAILURE and
INVALID_BRANCH_VALUE are raised from a run.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional


class ErrorKind(str, Enum):
    """Kind of workflow graph error."""
    INVALID_NODE_NAME = "invalid_node_name"
    DUPLICATE_NODE = "duplicate_node"
    INVALID_EDGE = "invalid_edge"
    TYPE_MISMATCH = "type_mismatch"
    UNREACHABLE_NODE = "unreachable_node"
    EXECUTION_FAILURE = "execution_failure"
    INVALID_BRANCH_VALUE = "invalid_branch_value"


class WorkflowGraphError(Exception):
    """
    Error raised by graph assembly, validation or execution.

    Attributes:
        kind: ErrorKind tag
        message: Human readable description
        node: Node the error is about, if any
        nodes: All nodes involved (e.g. every unreachable node)
        attempts: Total attempts made, for execution failures
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        node: Optional[str] = None,
        nodes: Optional[Iterable[str]] = None,
        attempts: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.node = node
        self.nodes: List[str] = list(nodes) if nodes is not None else ([node] if node else [])
        self.attempts = attempts

    def __repr__(self) -> str:
        return f"WorkflowGraphError(kind={self.kind.value!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "node": self.node,
            "nodes": self.nodes,
            "attempts": self.attempts,
        }

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def invalid_node_name(cls, name: str, reason: str = "is reserved") -> "WorkflowGraphError":
        return cls(ErrorKind.INVALID_NODE_NAME, f'"{name}" {reason}.', node=name)

    @classmethod
    def duplicate_node(cls, name: str) -> "WorkflowGraphError":
        return cls(ErrorKind.DUPLICATE_NODE, f'Node "{name}" already exists.', node=name)

    @classmethod
    def invalid_edge(cls, name: str) -> "WorkflowGraphError":
        return cls(ErrorKind.INVALID_EDGE, f'Node "{name}" does not exist.', node=name)

    @classmethod
    def type_mismatch(
        cls, source: str, target: str, output_type: object, input_type: object
    ) -> "WorkflowGraphError":
        return cls(
            ErrorKind.TYPE_MISMATCH,
            f"Type mismatch: {source} outputs {_tag_name(output_type)}, "
            f"but {target} expects {_tag_name(input_type)}",
            node=source,
            nodes=[source, target],
        )

    @classmethod
    def unreachable(cls, names: List[str]) -> "WorkflowGraphError":
        return cls(
            ErrorKind.UNREACHABLE_NODE,
            f"Unreachable nodes detected: {', '.join(names)}",
            nodes=names,
        )

    @classmethod
    def execution_failure(
        cls, name: str, attempts: int, error: BaseException
    ) -> "WorkflowGraphError":
        return cls(
            ErrorKind.EXECUTION_FAILURE,
            f'Node "{name}" failed after {attempts} attempts: {error}',
            node=name,
            attempts=attempts,
        )

    @classmethod
    def invalid_branch_value(cls, value: object, node: Optional[str] = None) -> "WorkflowGraphError":
        where = f' from node "{node}"' if node else ""
        return cls(
            ErrorKind.INVALID_BRANCH_VALUE,
            f"Unsupported branch value {value!r}{where}: expected bool, str or Enum",
            node=node,
        )


def _tag_name(tag: object) -> str:
    if isinstance(tag, Enum):
        return tag.name
    return getattr(tag, "__name__", str(tag))


__all__ = ["ErrorKind", "WorkflowGraphError"]

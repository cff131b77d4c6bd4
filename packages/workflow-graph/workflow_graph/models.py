"""
Workflow Graph models.

NodeSpec: a node's action, retry policy, handlers and type tags.
Branch: a discriminator function plus the nodes it can route to.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Mapping, Optional, Tuple

from .constants import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_DELAY
from .errors import WorkflowGraphError

# action(data) or action(data, callback)
NodeAction = Callable[..., Any]
PathFunction = Callable[[Any], Any]
ErrorHandler = Callable[[Exception, Any], Any]
ProgressCallback = Callable[[str], None]
TypeTag = Hashable


@dataclass(frozen=True)
class NodeSpec:
    """Configuration bound to a node name."""
    action: NodeAction
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    error_handler: Optional[ErrorHandler] = None
    on_success: Optional[Callable[..., Any]] = None
    input_type: Optional[TypeTag] = None
    output_type: Optional[TypeTag] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not callable(self.action):
            raise TypeError(f"Node action must be callable, got {type(self.action).__name__}")
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.retry_delay <= 0:
            raise ValueError(f"retry_delay must be > 0, got {self.retry_delay}")

    @property
    def takes_callback(self) -> bool:
        """Whether the action accepts the progress callback as second argument."""
        return accepts_positional(self.action, 2)


@dataclass(frozen=True)
class Branch:
    """
    Conditional transitions out of a node.

    ``path`` is called with the node's original input. ``ends`` maps the
    normalized discriminator value to a target node; ``then`` is followed
    whenever the node runs, independently of ``ends``.
    """
    path: PathFunction
    ends: Optional[Dict[str, str]] = None
    then: Optional[str] = None

    def __post_init__(self):
        if self.ends is not None:
            object.__setattr__(self, "ends", normalize_ends(self.ends))

    def resolve(self, data: Any, node: Optional[str] = None) -> Optional[str]:
        """Return the ``ends`` target selected for *data*, or None."""
        value = self.path(data)
        if not self.ends or value is None:
            return None
        return self.ends.get(branch_key(value, node=node))

    def targets(self) -> list:
        """Every node this branch can route to, ``then`` first."""
        found = []
        if self.then is not None:
            found.append(self.then)
        if self.ends:
            found.extend(self.ends.values())
        return found


def branch_key(value: Any, node: Optional[str] = None) -> str:
    """
    Normalize a discriminator value or ``ends`` key.

    bool -> "true"/"false"; Enum -> its string value, else its name;
    str -> unchanged. Anything else is rejected.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.value if isinstance(value.value, str) else value.name
    if isinstance(value, str):
        return value
    raise WorkflowGraphError.invalid_branch_value(value, node=node)


def normalize_ends(ends: Mapping[Any, str]) -> Dict[str, str]:
    return {branch_key(key): target for key, target in ends.items()}


def accepts_positional(func: Callable[..., Any], count: int) -> bool:
    """Check whether *func* can be called with *count* positional arguments."""
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # builtins without signature metadata: assume a single argument
        return count <= 1
    positional = 0
    for param in sig.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= count


# Graph tables produced by the builder and consumed by the executor
Nodes = Dict[str, NodeSpec]
Edge = Tuple[str, str]
Branches = Dict[str, Dict[str, Branch]]

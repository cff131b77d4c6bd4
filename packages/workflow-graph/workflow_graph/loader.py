"""
Load a WorkflowGraph from a YAML definition.

Expected format:
```yaml
nodes:
  - name: add
    run: mypkg.nodes.add
    retries: 2
  - name: even
    run: mypkg.nodes.even
  - name: odd
    run: mypkg.nodes.odd
branches:
  - from: add
    path: mypkg.nodes.is_even
    ends: {true: even, false: odd}
entry: add
finish: [even, odd]
```
"""
from __future__ import annotations

import logging
import os
import sys
from importlib import import_module
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .builder import WorkflowGraph

logger = logging.getLogger(__name__)


class NodeDefinition(BaseModel):
    """One entry under ``nodes``."""
    name: str
    run: str
    description: str = ""
    retry_count: Optional[int] = Field(default=None, ge=0, alias="retries")
    retry_delay: Optional[float] = Field(default=None, gt=0, alias="backoff_factor")
    error_handler: Optional[str] = None
    on_success: Optional[str] = None
    input_type: Optional[str] = None
    output_type: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class EdgeDefinition(BaseModel):
    """One entry under ``edges``."""
    source: str = Field(alias="from")
    target: str = Field(alias="to")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class BranchDefinition(BaseModel):
    """One entry under ``branches``."""
    source: str = Field(alias="from")
    path: str
    ends: Optional[Dict[Any, str]] = None
    then: Optional[str] = None
    key: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class GraphDefinition(BaseModel):
    """Top-level YAML graph document."""
    nodes: List[NodeDefinition] = Field(default_factory=list)
    edges: List[EdgeDefinition] = Field(default_factory=list)
    branches: List[BranchDefinition] = Field(default_factory=list)
    entry: List[str] = Field(default_factory=list)
    finish: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("entry", "finish", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


def load_graph_from_yaml(yaml_data: Dict[str, Any]) -> WorkflowGraph:
    """
    Build a WorkflowGraph from parsed YAML.

    Raises:
        pydantic.ValidationError: malformed document
        ValueError: a dotted path cannot be imported
        WorkflowGraphError: structural errors (names, endpoints)
    """
    definition = GraphDefinition.model_validate(yaml_data or {})
    graph = WorkflowGraph()

    for node_def in definition.nodes:
        graph.add_node(
            node_def.name,
            _import_function(node_def.run),
            retry_count=node_def.retry_count,
            retry_delay=node_def.retry_delay,
            error_handler=_import_optional(node_def.error_handler),
            on_success=_import_optional(node_def.on_success),
            input_type=node_def.input_type,
            output_type=node_def.output_type,
            metadata={"description": node_def.description} if node_def.description else None,
        )

    for name in definition.entry:
        graph.set_entry_point(name)

    for edge_def in definition.edges:
        graph.add_edge(edge_def.source, edge_def.target)

    for branch_def in definition.branches:
        graph.add_conditional_edges(
            branch_def.source,
            _import_function(branch_def.path),
            ends=branch_def.ends,
            branch_key=branch_def.key,
            then=branch_def.then,
        )

    for name in definition.finish:
        graph.set_finish_point(name)

    logger.debug(
        f"Loaded graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges, "
        f"{sum(len(b) for b in graph.branches.values())} branches"
    )
    return graph


def load_graph(graph_path: Union[str, Path]) -> WorkflowGraph:
    """Load a WorkflowGraph from a YAML file."""
    path = Path(graph_path)
    if not path.exists():
        raise FileNotFoundError(f"Graph file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        yaml_data = yaml.safe_load(f)

    return load_graph_from_yaml(yaml_data)


def _import_optional(path: Optional[str]) -> Optional[Callable]:
    return _import_function(path) if path else None


def _import_function(path: str) -> Callable:
    """Import a function from a dotted path."""
    parts = path.rsplit(".", 1)
    if len(parts) != 2:
        raise ValueError(f"Invalid function path: {path}")

    # Ensure the working directory is importable so local node modules resolve
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    module_path, func_name = parts
    try:
        module = import_module(module_path)
        func = getattr(module, func_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Could not import '{path}': {e}") from e

    if not callable(func):
        raise ValueError(f"'{path}' is not callable")
    return func

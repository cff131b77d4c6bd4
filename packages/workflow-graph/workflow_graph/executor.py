"""
Workflow Graph executor - CompiledGraph.

Runs one FIFO traversal per call over read-only tables. All run state
(queue, visited set, last value, attempt counters) lives in the call.
"""
from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

from .constants import END, SENTINELS, START
from .errors import WorkflowGraphError
from .mermaid import render_mermaid
from .models import Branches, Edge, NodeSpec, Nodes, ProgressCallback, accepts_positional
from .trace import RunStatus, RunTrace
from .validator import validate_graph

logger = logging.getLogger(__name__)


def _tagged(value: Any) -> Any:
    """Pair every value with its type name so that, e.g., lists and tuples differ."""
    if isinstance(value, (list, tuple)):
        return [type(value).__name__, [_tagged(v) for v in value]]
    if isinstance(value, dict):
        return [type(value).__name__, [[_tagged(k), _tagged(v)] for k, v in value.items()]]
    if value is None or isinstance(value, (bool, int, float, str)):
        return [type(value).__name__, value]
    return [type(value).__qualname__, repr(value)]


def visit_key(node: str, data: Any) -> Tuple[str, str]:
    """Key used to skip re-running a node with the same input."""
    try:
        serialized = json.dumps(_tagged(data))
    except (TypeError, ValueError, RecursionError):
        serialized = repr(data)
    return node, serialized


async def _settle(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class CompiledGraph:
    """
    A validated, runnable workflow graph.

    Args:
        nodes: node name => NodeSpec
        edges: ordered (source, target) pairs
        branches: node name => {branch key: Branch}
    """

    def __init__(self, nodes: Nodes, edges: Sequence[Edge], branches: Branches):
        self.nodes: Nodes = dict(nodes)
        self.edges: Tuple[Edge, ...] = tuple(edges)
        self.branches: Branches = {
            source: dict(branch_map) for source, branch_map in branches.items()
        }
        self.compiled = False

        self._adjacency: Dict[str, List[str]] = {}
        for source, target in self.edges:
            self._adjacency.setdefault(source, []).append(target)

    def __repr__(self) -> str:
        return (
            f"CompiledGraph(nodes={len(self.nodes)}, edges={len(self.edges)}, "
            f"branches={sum(len(b) for b in self.branches.values())})"
        )

    def validate(self) -> "CompiledGraph":
        """
        Check type compatibility and reachability.

        Raises:
            WorkflowGraphError: INVALID_EDGE, TYPE_MISMATCH or UNREACHABLE_NODE
        """
        validate_graph(self.nodes, self.edges, self.branches)
        self.compiled = True
        return self

    def to_mermaid(self) -> str:
        """Return a Mermaid diagram of the graph."""
        return render_mermaid(self.nodes, self.edges, self.branches)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def execute_async(
        self,
        input_data: Any,
        callback: Optional[ProgressCallback] = None,
        tracer: Optional[RunTrace] = None,
    ) -> Any:
        """
        Run the graph once.

        Args:
            input_data: Value handed to START
            callback: Optional progress sink passed to node actions
            tracer: Optional RunTrace receiving run and node events

        Returns:
            The last value computed when END is first dequeued, or when the
            queue empties without reaching END

        Raises:
            WorkflowGraphError: EXECUTION_FAILURE when a node exhausts its
                retries without an error handler
        """
        start_time = time.perf_counter()
        if tracer:
            tracer.run_start(input_data)

        try:
            state, reached_end = await self._traverse(input_data, callback, tracer)
        except Exception as e:
            if tracer:
                tracer.run_end(
                    status=RunStatus.ERROR,
                    duration_ms=(time.perf_counter() - start_time) * 1000,
                    error=str(e),
                )
            raise

        if not reached_end:
            logger.debug("Queue emptied before reaching END; returning last value")
        if tracer:
            tracer.run_end(
                status=RunStatus.COMPLETED if reached_end else RunStatus.FALLTHROUGH,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                output=state,
            )
        return state

    def execute(
        self,
        input_data: Any,
        callback: Optional[ProgressCallback] = None,
        tracer: Optional[RunTrace] = None,
    ) -> Any:
        """
        Blocking form of execute_async.

        Drives the same coroutine with asyncio.run, so it cannot be called
        from inside a running event loop; await execute_async there instead.
        """
        return asyncio.run(self.execute_async(input_data, callback, tracer))

    async def _traverse(
        self,
        input_data: Any,
        callback: Optional[ProgressCallback],
        tracer: Optional[RunTrace],
    ) -> Tuple[Any, bool]:
        queue: Deque[Tuple[str, Any]] = deque([(START, input_data)])
        visited = set()
        state = input_data

        while queue:
            node_name, node_input = queue.popleft()

            if node_name == END:
                return state, True

            key = visit_key(node_name, node_input)
            if key in visited:
                logger.debug(f"Node '{node_name}' already ran with this input, skipping")
                continue
            visited.add(key)

            result = await self._execute_node(node_name, node_input, callback, tracer)
            if node_name not in SENTINELS:
                state = result

            branch_map = self.branches.get(node_name)
            if branch_map:
                for branch in branch_map.values():
                    target = branch.resolve(node_input, node=node_name)
                    if branch.then is not None:
                        queue.append((branch.then, node_input))
                    if target is not None:
                        queue.append((target, node_input))
            else:
                for target in self._adjacency.get(node_name, []):
                    queue.append((target, result))

        return state, False

    async def _execute_node(
        self,
        node_name: str,
        node_input: Any,
        callback: Optional[ProgressCallback],
        tracer: Optional[RunTrace],
    ) -> Any:
        """Run one node with its retry policy and error handler."""
        if node_name in SENTINELS:
            return node_input

        spec: NodeSpec = self.nodes[node_name]
        attempts = 0

        while True:
            logger.debug(f"Executing node '{node_name}'")
            if tracer:
                tracer.node_enter(node_name)
            node_start = time.perf_counter()
            try:
                if spec.takes_callback:
                    result = await _settle(spec.action(node_input, callback))
                else:
                    result = await _settle(spec.action(node_input))
                if spec.on_success is not None:
                    message = f"Node {node_name} executed successfully"
                    if accepts_positional(spec.on_success, 1):
                        spec.on_success(message)
                    else:
                        spec.on_success()
            except Exception as e:
                attempts += 1
                if attempts > spec.retry_count:
                    return await self._handle_failure(node_name, spec, node_input, attempts, e, tracer)

                logger.warning(
                    f"Node '{node_name}' failed (attempt {attempts}/{spec.retry_count + 1}): {e}; "
                    f"retrying in {spec.retry_delay}s"
                )
                if tracer:
                    tracer.node_retry(node_name, attempts, spec.retry_delay, e)
                await asyncio.sleep(spec.retry_delay)
                continue

            if tracer:
                tracer.node_exit(node_name, (time.perf_counter() - node_start) * 1000)
            return result

    async def _handle_failure(
        self,
        node_name: str,
        spec: NodeSpec,
        node_input: Any,
        attempts: int,
        error: Exception,
        tracer: Optional[RunTrace],
    ) -> Any:
        if spec.error_handler is not None:
            logger.info(
                f"Node '{node_name}' failed after {attempts} attempts; using error handler"
            )
            if tracer:
                tracer.node_recovered(node_name, attempts, error)
            if accepts_positional(spec.error_handler, 2):
                return await _settle(spec.error_handler(error, node_input))
            return await _settle(spec.error_handler(error))

        logger.error(f"Node '{node_name}' failed after {attempts} attempts: {error}")
        if tracer:
            tracer.node_error(node_name, attempts, error)
        raise WorkflowGraphError.execution_failure(node_name, attempts, error) from error

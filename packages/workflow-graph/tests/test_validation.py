"""Tests for compile-time validation: type tags and reachability."""
from enum import Enum

import pytest

from workflow_graph import END, START, CompiledGraph, ErrorKind, WorkflowGraph, WorkflowGraphError
from workflow_graph.validator import check_types, find_unreachable, validate_graph


class Tag(Enum):
    TEXT = "text"
    NUMBER = "number"


def _identity(x):
    return x


class TestTypeChecking:
    def test_matching_tags(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity, output_type=Tag.NUMBER)
        graph.add_node("b", _identity, input_type=Tag.NUMBER)
        graph.add_edge("a", "b")
        assert graph.validate() is graph

    def test_mismatched_tags(self):
        graph = WorkflowGraph()
        graph.add_node("str_node", str.upper, output_type=str)
        graph.add_node("int_node", _identity, input_type=int)
        graph.add_edge("str_node", "int_node")

        with pytest.raises(WorkflowGraphError) as exc_info:
            graph.validate()
        err = exc_info.value
        assert err.kind is ErrorKind.TYPE_MISMATCH
        assert err.nodes == ["str_node", "int_node"]
        assert "str_node outputs str" in err.message
        assert "int_node expects int" in err.message

    def test_one_side_untagged(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity, output_type=Tag.TEXT)
        graph.add_node("b", _identity)
        graph.add_edge("a", "b")
        graph.validate()

    def test_sentinel_edges_skipped(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity, input_type=Tag.TEXT, output_type=Tag.NUMBER)
        graph.set_entry_point("a")
        graph.set_finish_point("a")
        graph.validate()

    def test_branches_not_type_checked(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity, output_type=Tag.TEXT)
        graph.add_node("b", _identity, input_type=Tag.NUMBER)
        graph.set_entry_point("a")
        graph.add_conditional_edges("a", lambda x: True, {True: "b"})
        graph.compile()

    def test_compile_raises_type_mismatch(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity, output_type=Tag.TEXT)
        graph.add_node("b", _identity, input_type=Tag.NUMBER)
        graph.set_entry_point("a")
        graph.add_edge("a", "b")
        with pytest.raises(WorkflowGraphError) as exc_info:
            graph.compile()
        assert exc_info.value.kind is ErrorKind.TYPE_MISMATCH

    def test_check_types_on_raw_tables(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity, output_type="csv")
        graph.add_node("b", _identity, input_type="csv")
        graph.add_edge("a", "b")
        check_types(graph.nodes, graph.edges)


class TestReachability:
    def test_unreachable_node(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("orphan", _identity)
        graph.set_entry_point("a")

        with pytest.raises(WorkflowGraphError) as exc_info:
            graph.compile()
        err = exc_info.value
        assert err.kind is ErrorKind.UNREACHABLE_NODE
        assert err.nodes == ["orphan"]
        assert "orphan" in str(err)

    def test_all_unreachable_named_at_once(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("x", _identity)
        graph.add_node("y", _identity)
        graph.set_entry_point("a")
        with pytest.raises(WorkflowGraphError) as exc_info:
            graph.compile()
        assert exc_info.value.nodes == ["x", "y"]

    def test_edge_fixes_reachability(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("orphan", _identity)
        graph.set_entry_point("a")
        with pytest.raises(WorkflowGraphError):
            graph.compile()

        graph.add_edge("a", "orphan")
        assert isinstance(graph.compile(), CompiledGraph)

    def test_branch_end_fixes_reachability(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("b", _identity)
        graph.set_entry_point("a")
        graph.add_conditional_edges("a", lambda x: "go", {"go": "b"})
        graph.compile()

    def test_branch_then_fixes_reachability(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("b", _identity)
        graph.set_entry_point("a")
        graph.add_conditional_edges("a", lambda x: x, then="b")
        graph.compile()

    def test_edges_followed_even_when_node_has_branches(self):
        # the executor ignores edges of branch-bearing nodes, reachability does not
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("b", _identity)
        graph.add_node("c", _identity)
        graph.set_entry_point("a")
        graph.add_edge("a", "c")
        graph.add_conditional_edges("a", lambda x: True, {True: "b"})
        graph.compile()

    def test_no_entry_point(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        with pytest.raises(WorkflowGraphError) as exc_info:
            graph.compile()
        assert exc_info.value.nodes == ["a"]

    def test_empty_graph_is_valid(self):
        compiled = WorkflowGraph().compile()
        assert compiled.compiled is True

    def test_cycle_terminates(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("b", _identity)
        graph.set_entry_point("a")
        graph.add_edge("a", "b")
        graph.add_edge("b", "a")
        assert find_unreachable(graph.nodes, graph.edges, graph.branches) == []

    def test_validate_graph_on_raw_tables(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_edge(START, "a")
        graph.add_edge("a", END)
        validate_graph(graph.nodes, graph.edges, graph.branches)

    def test_raw_tables_with_unknown_edge_target(self):
        nodes = {"a": WorkflowGraph().add_node("a", _identity).nodes["a"]}
        edges = [(START, "a"), ("a", "ghost")]

        with pytest.raises(WorkflowGraphError) as exc_info:
            validate_graph(nodes, edges, {})
        assert exc_info.value.kind == ErrorKind.INVALID_EDGE
        assert exc_info.value.node == "ghost"

    def test_raw_tables_with_unknown_branch_target(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.add_node("b", _identity)
        graph.set_entry_point("a")
        graph.add_conditional_edges("a", lambda x: True, {True: "b"})
        branches = {"a": {"branch": graph.branches["a"]["branch"]}}
        nodes = {"a": graph.nodes["a"]}

        with pytest.raises(WorkflowGraphError) as exc_info:
            CompiledGraph(nodes, graph.edges, branches).validate()
        assert exc_info.value.kind == ErrorKind.INVALID_EDGE
        assert exc_info.value.node == "b"

    def test_compiled_validate_is_chainable(self):
        graph = WorkflowGraph()
        graph.add_node("a", _identity)
        graph.set_entry_point("a")
        compiled = CompiledGraph(graph.nodes, graph.edges, graph.branches)
        assert compiled.compiled is False
        assert compiled.validate() is compiled
        assert compiled.compiled is True

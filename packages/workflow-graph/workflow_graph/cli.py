"""
Workflow Graph CLI

Usage:
    workflow-graph validate graph.yaml
    workflow-graph mermaid graph.yaml [--out diagram.md]
    workflow-graph run graph.yaml --input '3' [--trace run.jsonl] [--verbose]
    workflow-graph version
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from . import __version__
from .config import configure_logging
from .errors import WorkflowGraphError
from .executor import CompiledGraph
from .loader import load_graph
from .trace import RunTrace


def _compile(graph_path: str) -> CompiledGraph:
    """Load and compile, turning failures into a clean CLI error."""
    try:
        return load_graph(graph_path).compile()
    except WorkflowGraphError as e:
        raise click.ClickException(f"{e.kind.value}: {e.message}")
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid graph definition: {e}")


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: from config or WARNING)")
def cli(log_level: Optional[str]):
    """Define, validate and run workflow graphs from YAML."""
    configure_logging(log_level)


@cli.command()
def version():
    """Show version."""
    click.echo(f"workflow-graph {__version__}")


@cli.command()
@click.argument("graph", type=click.Path(exists=True, dir_okay=False))
def validate(graph: str):
    """
    Validate a graph definition.

    GRAPH: Path to YAML graph definition
    """
    compiled = _compile(graph)
    click.echo(f"OK: {len(compiled.nodes)} nodes, {len(compiled.edges)} edges")


@cli.command()
@click.argument("graph", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "-o", default=None, help="Write the diagram to this file")
def mermaid(graph: str, out: Optional[str]):
    """
    Render a graph definition as a Mermaid flowchart.

    The diagram is rendered without validating the graph.
    """
    try:
        diagram = load_graph(graph).to_mermaid()
    except WorkflowGraphError as e:
        raise click.ClickException(f"{e.kind.value}: {e.message}")
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid graph definition: {e}")

    if out:
        Path(out).write_text(diagram + "\n", encoding="utf-8")
        click.echo(f"Diagram written to {out}")
    else:
        click.echo(diagram)


@cli.command()
@click.argument("graph", type=click.Path(exists=True, dir_okay=False))
@click.option("--input", "-i", "input_json", default="null", help="Input value as JSON")
@click.option("--trace", "-t", "trace_path", default=None, help="Write run trace as JSONL")
@click.option("--verbose", "-v", is_flag=True, help="Print node progress messages")
def run(graph: str, input_json: str, trace_path: Optional[str], verbose: bool):
    """
    Run a graph once and print the final value as JSON.

    Examples:
        workflow-graph run examples/graphs/parity.yaml --input 3
        workflow-graph run graph.yaml -i '{"x": 1}' --trace traces/run.jsonl
    """
    try:
        input_data = json.loads(input_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--input")

    compiled = _compile(graph)
    tracer = RunTrace() if trace_path else None

    def progress(message: str) -> None:
        click.echo(f"[node] {message}", err=True)

    try:
        result = compiled.execute(input_data, progress if verbose else None, tracer)
    except WorkflowGraphError as e:
        click.echo(f"Run failed: {e.message}", err=True)
        sys.exit(1)
    finally:
        if tracer:
            tracer.write_jsonl(trace_path)
            click.echo(f"Trace written to {trace_path}", err=True)

    click.echo(json.dumps(result, default=repr))


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()

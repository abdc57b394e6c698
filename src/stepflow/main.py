"""
stepflow - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--visible, --model, etc.)
    2. Environment variables (STEPFLOW__BACKEND__MODE, etc.)
    3. Config file (config.yaml)

Usage:
    stepflow run flow.json
    stepflow run flow.json --visible --var user=ada --var retries=3
    stepflow agent "open example.com and read the heading" --provider anthropic
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from stepflow import __version__
from stepflow.agent import AgentConfig, ToolCallingAgent, get_catalog
from stepflow.config import Settings, load_config
from stepflow.engine import GraphEngine, GraphSnapshot, RunOutcome, StepExecutor, auto_type, load_snapshot
from stepflow.engine.variables import stringify
from stepflow.exceptions import StepflowError
from stepflow.interfaces.backend import IBackend
from stepflow.registry import ComponentRegistry
from stepflow.utils.logging import setup_logging

app = typer.Typer(
    name="stepflow",
    help="Run automation step graphs and tool-calling agents",
    add_completion=False,
)

console = Console()

_STATUS_STYLE = {"completed": "green", "failed": "red", "stopped": "yellow"}


def _configure(config: Optional[Path], verbose: bool, **overrides: Any) -> Settings:
    try:
        settings = load_config(config_path=config, **overrides)
    except StepflowError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(1)
    level = "DEBUG" if verbose else settings.logging.level
    setup_logging(level, settings.logging.file, settings.logging.json_format)
    return settings


def _parse_vars(pairs: List[str]) -> Dict[str, Any]:
    variables: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            console.print(f"[red]✗ Invalid --var {pair!r}, expected key=value[/red]")
            raise typer.Exit(1)
        variables[key.strip()] = auto_type(value)
    return variables


def _create_backend(settings: Settings, cdp_url: Optional[str] = None) -> IBackend:
    import stepflow.backends  # noqa: F401  registers the backends

    backend_class = ComponentRegistry.get_backend(settings.backend.mode)
    if settings.backend.mode == "interactive":
        return backend_class.from_settings(settings.backend, cdp_url=cdp_url)
    return backend_class.from_settings(settings.backend)


def _load(graph_file: Path) -> GraphSnapshot:
    try:
        snapshot = load_snapshot(graph_file)
    except StepflowError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(1)
    for rejected in snapshot.rejected:
        console.print(f"[yellow]⚠ Skipped edge {rejected['edge'].get('id')}: {rejected['reason']}[/yellow]")
    return snapshot


def _print_node_status(node_id: str, status: str, error: Optional[str]) -> None:
    if status == "success":
        console.print(f"  [green]✓[/green] {node_id}")
    elif status == "error":
        console.print(f"  [red]✗[/red] {node_id}: {escape(error or '')}")
    elif status == "skipped":
        console.print(f"  [dim]- {node_id} (skipped)[/dim]")


@app.command()
def run(
    graph_file: Path = typer.Argument(..., help="Graph snapshot (JSON)"),
    root: Optional[str] = typer.Option(None, "--root", help="Start at this node instead of the graph roots"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Use the interactive (visible) backend"),
    cdp_url: Optional[str] = typer.Option(None, "--cdp-url", help="Attach to a running browser (implies --visible)"),
    var: List[str] = typer.Option([], "--var", help="Initial variable as key=value (repeatable)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Execute a step graph.

    Examples:
        stepflow run flow.json
        stepflow run flow.json --root start --var query=cats
    """
    overrides: Dict[str, Any] = {}
    if visible or cdp_url:
        overrides["backend"] = {"mode": "interactive"}
    settings = _configure(config, verbose, **overrides)
    variables = _parse_vars(var)
    snapshot = _load(graph_file)

    console.print(Panel.fit(
        f"[bold blue]stepflow[/bold blue]\n"
        f"[dim]Graph:[/dim] {graph_file} ({len(snapshot.nodes)} nodes)\n"
        f"[dim]Backend:[/dim] {settings.backend.mode}",
        border_style="blue",
    ))

    try:
        outcome = asyncio.run(_run_graph(snapshot, settings, root, variables, cdp_url))
    except StepflowError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[dim]Interrupted[/dim]")
        raise typer.Exit(130)

    _print_outcome(outcome)
    if not outcome.success:
        raise typer.Exit(1)


async def _run_graph(
    snapshot: GraphSnapshot,
    settings: Settings,
    root: Optional[str],
    variables: Dict[str, Any],
    cdp_url: Optional[str],
) -> RunOutcome:
    backend = _create_backend(settings, cdp_url)
    executor = StepExecutor(backend=backend, settings=settings)
    engine = GraphEngine(executor, on_node_status=_print_node_status)
    try:
        return await engine.run(snapshot, root_id=root, variables=variables)
    finally:
        await executor.close()
        if backend.is_ready:
            await backend.close()


def _print_outcome(outcome: RunOutcome) -> None:
    style = _STATUS_STYLE.get(outcome.status.value, "white")
    lines = [
        f"[bold {style}]{outcome.status.value.upper()}[/bold {style}]",
        f"[dim]Run:[/dim] {outcome.run_id}",
        f"[dim]Nodes visited:[/dim] {len(outcome.visited)}",
        f"[dim]Duration:[/dim] {outcome.duration_ms / 1000:.1f}s",
    ]
    if outcome.error:
        lines.append(f"[dim]Failed node:[/dim] {outcome.failed_node_id}")
        lines.append(f"[dim]Error:[/dim] {escape(outcome.error)}")
    console.print()
    console.print(Panel.fit("\n".join(lines), border_style=style))

    if outcome.variables:
        table = Table(title="Variables", show_header=True)
        table.add_column("Name", style="cyan")
        table.add_column("Value")
        for name, value in outcome.variables.items():
            text = stringify(value)
            table.add_row(name, escape(text if len(text) <= 80 else text[:77] + "..."))
        console.print(table)


@app.command()
def validate(
    graph_file: Path = typer.Argument(..., help="Graph snapshot (JSON)"),
):
    """Check that a graph loads and has a root node."""
    snapshot = _load(graph_file)
    roots = snapshot.root_ids()
    if not roots:
        console.print("[red]✗ Graph has no root node[/red]")
        raise typer.Exit(1)

    conditionals = sum(1 for n in snapshot.nodes.values() if n.is_conditional)
    console.print(
        f"[green]✓ {graph_file}[/green]: {len(snapshot.nodes)} nodes "
        f"({conditionals} conditional), {len(snapshot.edges)} edges, roots: {', '.join(roots)}"
    )
    if snapshot.rejected:
        raise typer.Exit(1)


@app.command()
def agent(
    goal: str = typer.Argument(..., help="What the agent should achieve"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="openai, anthropic or ollama"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="LLM model (default: from config)"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="LLM API base URL"),
    max_iterations: Optional[int] = typer.Option(None, "--max-iterations", help="Provider calls allowed"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Use the interactive (visible) backend"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Let an LLM reach a goal by calling steps as tools.

    Examples:
        stepflow agent "go to example.com and store the heading in title"
        stepflow agent "search recent tweets about python" -p anthropic
    """
    overrides: Dict[str, Any] = {}
    if visible:
        overrides["backend"] = {"mode": "interactive"}
    settings = _configure(config, verbose, **overrides)

    agent_config = AgentConfig(
        provider=provider or settings.llm.provider,
        model=model or settings.llm.model,
        system_prompt=settings.agent.system_prompt,
        temperature=settings.llm.temperature,
        max_tokens=settings.llm.max_tokens,
        allowed_tools=settings.agent.allowed_tools,
        max_iterations=max_iterations or settings.agent.max_iterations,
    )

    console.print(Panel.fit(
        f"[bold blue]stepflow agent[/bold blue]\n"
        f"[dim]Provider:[/dim] {agent_config.provider}\n"
        f"[dim]Model:[/dim] {agent_config.model}\n"
        f"[dim]Goal:[/dim] {goal}",
        border_style="blue",
    ))

    try:
        result = asyncio.run(_run_agent(goal, agent_config, settings, api_url))
    except StepflowError as e:
        console.print(f"\n[red]✗ {e.message}[/red]")
        raise typer.Exit(1)

    for record in result.tool_calls:
        mark = "[green]✓[/green]" if record.success else "[red]✗[/red]"
        console.print(f"  {mark} [{record.iteration}] {record.name} {escape(record.arguments)}")
    console.print(f"\n[green]✓ Done[/green] in {result.iterations} iteration(s)")
    console.print(result.final_text)


async def _run_agent(goal: str, config: AgentConfig, settings: Settings, api_url: Optional[str]):
    backend = _create_backend(settings)
    executor = StepExecutor(backend=backend, settings=settings)
    api_key = settings.llm.api_key.get_secret_value() if settings.llm.api_key else None
    llm = executor.create_provider(
        config.provider,
        api_key=api_key,
        base_url=api_url or settings.llm.base_url,
        timeout=settings.llm.timeout,
    )
    try:
        return await ToolCallingAgent(executor, llm).run(goal, config)
    finally:
        await llm.close()
        await executor.close()
        if backend.is_ready:
            await backend.close()


@app.command()
def tools():
    """List the tools available to the agent."""
    table = Table(title="Agent tools", show_header=True)
    table.add_column("Tool", style="cyan")
    table.add_column("Category")
    table.add_column("Parameters")
    table.add_column("Description", style="dim")
    for spec in get_catalog().values():
        params = ", ".join(p.name if p.required else f"{p.name}?" for p in spec.parameters)
        table.add_row(spec.name, spec.category, params, spec.description)
    console.print(table)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]stepflow[/bold] v{__version__}")


if __name__ == "__main__":
    app()

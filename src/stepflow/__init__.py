"""
stepflow - Execute automation step graphs and LLM tool-calling agents.

Graphs of browser actions, variable operations, API calls and LLM calls
are walked depth-first with if/else branching, loops and cooperative
pause/stop. The same steps are exposed to an LLM as tools so it can
reach a goal on its own.

Example:
    >>> from stepflow import GraphEngine, StepExecutor, load_snapshot
    >>> from stepflow.backends import HeadlessBackend
    >>> async with HeadlessBackend() as backend:
    ...     engine = GraphEngine(StepExecutor(backend=backend))
    ...     outcome = await engine.run(load_snapshot("flow.json"))
"""

__version__ = "0.1.0"

# Public API exports
from stepflow.config.settings import Settings
from stepflow.registry.registry import ComponentRegistry
from stepflow.engine import (
    GraphEngine,
    GraphSnapshot,
    RunOutcome,
    StepExecutor,
    VariableStore,
    load_snapshot,
    parse_step,
)
from stepflow.agent import AgentConfig, ToolCallingAgent

__all__ = [
    "Settings",
    "ComponentRegistry",
    "GraphEngine",
    "GraphSnapshot",
    "RunOutcome",
    "StepExecutor",
    "VariableStore",
    "load_snapshot",
    "parse_step",
    "AgentConfig",
    "ToolCallingAgent",
    "__version__",
]

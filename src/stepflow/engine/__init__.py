"""
Engine module - variables, steps, graphs and their execution.

Components:
- VariableStore: per-run variables with path access and templates
- Step models: the tagged union of step kinds
- GraphSnapshot: nodes and labelled edges
- StepExecutor: runs one step through its handler
- GraphEngine: walks a graph with branching, loops, pause and stop
"""

from stepflow.engine.variables import VariableStore, auto_type, parse_path
from stepflow.engine.steps import Condition, LoopConfig, Step, STEP_TYPES, parse_step
from stepflow.engine.graph import Edge, GraphNode, GraphSnapshot, NodeKind, load_snapshot
from stepflow.engine.conditions import ConditionResult, evaluate_condition
from stepflow.engine.context import ExecutionContext, StepResult
from stepflow.engine.executor import StepExecutor
from stepflow.engine.engine import CancellationToken, GraphEngine, RunOutcome, RunStatus

__all__ = [
    # Variables
    "VariableStore",
    "auto_type",
    "parse_path",
    # Steps
    "Step",
    "STEP_TYPES",
    "parse_step",
    "Condition",
    "LoopConfig",
    # Graph
    "GraphSnapshot",
    "GraphNode",
    "Edge",
    "NodeKind",
    "load_snapshot",
    # Execution
    "ConditionResult",
    "evaluate_condition",
    "ExecutionContext",
    "StepResult",
    "StepExecutor",
    "GraphEngine",
    "CancellationToken",
    "RunOutcome",
    "RunStatus",
]

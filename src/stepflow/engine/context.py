"""
Execution context and step results shared by the executor and its handlers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import time

from stepflow.engine.variables import VariableStore
from stepflow.interfaces.backend import IBackend


@dataclass
class ExecutionContext:
    """
    Per-run state a step executes against.

    Attributes:
        store: Variables for the run
        backend: Browser backend (None when the run has no browser)
        run_id: Identifier used in log lines
        node_id: Graph node currently executing, if any
    """
    store: VariableStore = field(default_factory=VariableStore)
    backend: Optional[IBackend] = None
    run_id: str = ""
    node_id: Optional[str] = None


@dataclass
class StepResult:
    """
    Record of one step execution.

    Attributes:
        step_id: Id of the executed step
        step_type: Type tag of the executed step
        success: Whether the step completed
        data: Value the step produced (also what ``store_key`` persists)
        error: Error message for failed steps
        started_at: Wall clock start time (epoch seconds)
        duration_ms: Time spent in the step
    """
    step_id: str
    step_type: str
    success: bool = True
    data: Any = None
    error: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    duration_ms: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "step_type": self.step_type,
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "started_at": self.started_at,
            "duration_ms": self.duration_ms,
        }

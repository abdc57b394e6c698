"""
Graph Engine - walk a step graph one node at a time.

The walk is depth-first from the root node(s). Step nodes run through the
StepExecutor and follow their default edge; conditional nodes evaluate
their condition and follow only the "if" or the "else" edges. Cycles are
allowed: a conditional with a ``loop`` block gets an engine-maintained
counter, and a hard cap on node visits stops runaway graphs.

Pause and stop are cooperative. They are checked before each node visit,
so a step that is already running always finishes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import asyncio
import logging
import time
import uuid

from stepflow.config import Settings
from stepflow.engine.conditions import ConditionResult, evaluate_condition
from stepflow.engine.context import ExecutionContext
from stepflow.engine.executor import StepExecutor, _as_step_error
from stepflow.engine.graph import GraphNode, GraphSnapshot
from stepflow.engine.variables import VariableStore
from stepflow.exceptions import GraphValidationError, IterationLimitError, StepError, StepflowError
from stepflow.interfaces.backend import IBackend

logger = logging.getLogger(__name__)


NodeStatusCallback = Callable[[str, str, Optional[str]], None]


class RunStatus(Enum):
    """Final status of a run."""
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class RunOutcome:
    """
    Result of one graph run.

    Attributes:
        run_id: Unique run identifier
        status: How the run ended
        success: True only for COMPLETED
        failed_node_id: Node that failed (FAILED runs)
        failed_step_id: Step id of the failed node, when it is a step node
        error: Error message (FAILED runs)
        exception: The exception that aborted the run
        duration_ms: Wall time of the run
        visited: Node ids in visit order (repeats for loops)
        variables: Copy of the variable store at the end of the run
    """
    run_id: str
    status: RunStatus
    success: bool
    failed_node_id: Optional[str] = None
    failed_step_id: Optional[str] = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None
    duration_ms: float = 0
    visited: List[str] = field(default_factory=list)
    variables: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "success": self.success,
            "failed_node_id": self.failed_node_id,
            "failed_step_id": self.failed_step_id,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "visited": self.visited,
            "variables": self.variables,
        }


class CancellationToken:
    """
    Cooperative stop/pause flag for a run.

    ``checkpoint()`` blocks while paused and returns False once stopped.
    """

    def __init__(self):
        self._stopped = False
        self._running = asyncio.Event()
        self._running.set()

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    def stop(self) -> None:
        self._stopped = True
        # Wake a paused walk so it can unwind
        self._running.set()

    def pause(self) -> None:
        if not self._stopped:
            self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def reset(self) -> None:
        self._stopped = False
        self._running.set()

    async def checkpoint(self) -> bool:
        await self._running.wait()
        return not self._stopped


class GraphEngine:
    """
    Executes graph snapshots.

    Example:
        >>> engine = GraphEngine(StepExecutor(backend=HeadlessBackend()))
        >>> outcome = await engine.run(load_snapshot("flow.json"))
        >>> outcome.status
        <RunStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        executor: StepExecutor,
        settings: Optional[Settings] = None,
        on_node_status: Optional[NodeStatusCallback] = None,
    ):
        """
        Initialize the engine.

        Args:
            executor: Runs the step nodes
            settings: Configuration (defaults to the executor's)
            on_node_status: Called with (node_id, status, error) as nodes
                become running, success, error or skipped
        """
        self._executor = executor
        self._settings = settings or executor.settings
        self._on_node_status = on_node_status
        self._token = CancellationToken()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def token(self) -> CancellationToken:
        return self._token

    def pause(self) -> None:
        """Hold the walk before the next node visit."""
        logger.info("Pause requested")
        self._token.pause()

    def resume(self) -> None:
        logger.info("Resume requested")
        self._token.resume()

    def stop(self) -> None:
        """Stop the walk before the next node visit."""
        logger.info("Stop requested")
        self._token.stop()

    def _notify(self, node_id: str, status: str, error: Optional[str] = None) -> None:
        if self._on_node_status:
            self._on_node_status(node_id, status, error)

    async def run(
        self,
        snapshot: GraphSnapshot,
        root_id: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
        backend: Optional[IBackend] = None,
    ) -> RunOutcome:
        """
        Run a graph to completion, failure or stop.

        Args:
            snapshot: Graph to walk (not modified)
            root_id: Start here instead of at every in-degree-zero node
            variables: Initial variable values
            backend: Backend for browser steps (defaults to the executor's)

        Returns:
            RunOutcome describing how the run ended

        Raises:
            GraphValidationError: If there is no node to start from
        """
        if root_id is not None:
            snapshot.node(root_id)
            roots = [root_id]
        else:
            roots = snapshot.root_ids()
        if not roots:
            raise GraphValidationError("Graph has no root node (every node has an incoming edge)")

        run_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        ctx = ExecutionContext(
            store=VariableStore(variables),
            backend=backend or self._executor.context.backend,
            run_id=run_id,
        )
        outcome = RunOutcome(run_id=run_id, status=RunStatus.COMPLETED, success=True)

        logger.info(f"[{run_id}] Starting run: {len(snapshot.nodes)} nodes, roots={roots}")
        self._token.reset()
        self._running = True
        try:
            await self._walk(snapshot, roots, ctx, outcome)
        finally:
            self._running = False
            self._token.reset()
            outcome.duration_ms = (time.time() - start_time) * 1000
            outcome.variables = ctx.store.snapshot()

        logger.info(
            f"[{run_id}] Run {outcome.status.value} after {len(outcome.visited)} visits "
            f"in {outcome.duration_ms:.0f}ms"
        )
        return outcome

    async def _walk(
        self,
        snapshot: GraphSnapshot,
        roots: List[str],
        ctx: ExecutionContext,
        outcome: RunOutcome,
    ) -> None:
        # Targets are pushed in reverse so they pop in edge order
        stack: List[str] = list(reversed(roots))
        loop_passes: Dict[str, int] = {}
        max_visits = self._settings.engine.max_node_visits
        delay = self._settings.engine.step_delay_ms / 1000

        while stack:
            if not await self._token.checkpoint():
                logger.info(f"[{ctx.run_id}] Stopped, {len(stack)} pending node(s) skipped")
                for node_id in reversed(stack):
                    self._notify(node_id, "skipped")
                outcome.status = RunStatus.STOPPED
                outcome.success = False
                return

            node_id = stack.pop()
            node = snapshot.node(node_id)
            ctx.node_id = node_id

            if len(outcome.visited) >= max_visits:
                error = IterationLimitError("Maximum iteration limit reached", limit=max_visits)
                self._fail(outcome, node, error, ctx)
                return

            outcome.visited.append(node_id)
            self._notify(node_id, "running")
            started = time.time()
            try:
                if node.is_conditional:
                    result = await self._evaluate(node, ctx, loop_passes)
                    next_ids = snapshot.next_nodes(node_id, result.branch)
                    logger.debug(f"[{ctx.run_id}] {node.label} -> {result.branch} ({len(next_ids)} edge(s))")
                else:
                    await self._executor.execute_step(node.step, ctx)
                    next_ids = snapshot.next_nodes(node_id)
            except Exception as e:
                error = e if isinstance(e, StepflowError) else _as_step_error(e)
                if isinstance(error, StepError):
                    error.tag(node.step.id if node.step else node_id, node.label, (time.time() - started) * 1000)
                self._fail(outcome, node, error, ctx)
                return

            self._notify(node_id, "success")
            stack.extend(reversed(next_ids))

            if delay and stack:
                await asyncio.sleep(delay)

    async def _evaluate(
        self,
        node: GraphNode,
        ctx: ExecutionContext,
        loop_passes: Dict[str, int],
    ) -> ConditionResult:
        condition = node.condition
        backend = ctx.backend
        if condition.is_dom and condition.selector:
            backend = await self._executor.browser(ctx)

        loop = condition.loop
        if loop is None:
            return await evaluate_condition(condition, ctx.store, backend)

        passes = loop_passes.get(node.id, 0) + 1
        loop_passes[node.id] = passes
        if passes > loop.max_iterations:
            logger.info(f"[{ctx.run_id}] Loop {node.id} reached {loop.max_iterations} iterations, exiting")
            return ConditionResult(False)

        index = loop.start_index + (passes - 1) * loop.increment
        ctx.store.set_raw(loop.index_variable, index)
        logger.debug(f"[{ctx.run_id}] Loop {node.id} pass {passes}: {loop.index_variable}={index}")
        return await evaluate_condition(condition, ctx.store, backend)

    def _fail(self, outcome: RunOutcome, node: GraphNode, error: StepflowError, ctx: ExecutionContext) -> None:
        outcome.status = RunStatus.FAILED
        outcome.success = False
        outcome.failed_node_id = node.id
        outcome.failed_step_id = node.step.id if node.step else None
        outcome.error = error.message
        outcome.exception = error
        self._notify(node.id, "error", error.message)
        logger.error(f"[{ctx.run_id}] Run failed at node {node.id}: {error.message}")

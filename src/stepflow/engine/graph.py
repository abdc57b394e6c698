"""
Step Graph - the node/edge snapshot a run walks.

Handles:
- GraphNode definition (step nodes and conditional nodes)
- Edge labelling rules (one default edge, or one "if" plus one "else")
- Root detection
- Loading both the engine format and the editor's export format
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import uuid

from stepflow.engine.steps import Condition, LoopConfig, Step, parse_step
from stepflow.exceptions import EdgeRejectedError, GraphValidationError, StepError

logger = logging.getLogger(__name__)


IF_BRANCH = "if"
ELSE_BRANCH = "else"

# Older editor builds labelled the true branch "then"
_BRANCH_ALIASES = {"if": IF_BRANCH, "then": IF_BRANCH, "true": IF_BRANCH, "else": ELSE_BRANCH, "false": ELSE_BRANCH}

_CONDITIONAL_STEP_TYPES = ("browserConditional", "variableConditional")


class NodeKind(Enum):
    """Kind of graph node."""
    STEP = "step"
    CONDITIONAL = "conditional"


def normalize_branch(label: Optional[str]) -> Optional[str]:
    """Map a wire label to "if", "else" or None (default edge)."""
    if not label:
        return None
    return _BRANCH_ALIASES.get(str(label).strip().lower())


@dataclass
class GraphNode:
    """
    A node in the step graph.

    Attributes:
        id: Unique node identifier
        kind: Step or conditional
        step: Step payload (step nodes)
        condition: Condition payload (conditional nodes)
    """
    id: str
    kind: NodeKind = NodeKind.STEP
    step: Optional[Step] = None
    condition: Optional[Condition] = None

    @property
    def is_conditional(self) -> bool:
        return self.kind == NodeKind.CONDITIONAL

    @property
    def label(self) -> str:
        if self.is_conditional:
            return f"conditional:{self.condition.condition_type}"
        return f"{self.step.type}:{self.step.id}"

    def to_dict(self) -> Dict[str, Any]:
        payload = self.condition if self.is_conditional else self.step
        return {
            "id": self.id,
            "kind": self.kind.value,
            "payload": payload.model_dump(by_alias=True, exclude_none=True),
        }


@dataclass(frozen=True)
class Edge:
    """A directed edge; ``branch_label`` is None for default edges."""
    source: str
    target: str
    branch_label: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "branchLabel": self.branch_label,
        }


@dataclass
class GraphSnapshot:
    """
    Immutable-per-run set of nodes and edges.

    Edges are validated as they are added, so a snapshot always satisfies
    the branching rules. Edges dropped while loading are kept in
    ``rejected`` for reporting.

    Example:
        >>> graph = GraphSnapshot()
        >>> graph.add_node(GraphNode("a", step=parse_step({"type": "click", "selector": "#a"})))
        >>> graph.add_node(GraphNode("b", step=parse_step({"type": "click", "selector": "#b"})))
        >>> graph.add_edge("a", "b")
        >>> graph.root_ids()
        ['a']
    """
    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)

    def add_node(self, node: GraphNode) -> GraphNode:
        if node.id in self.nodes:
            raise GraphValidationError(f"Duplicate node id: {node.id}", {"node_id": node.id})
        if node.is_conditional and node.condition is None:
            raise GraphValidationError(f"Conditional node {node.id} has no condition", {"node_id": node.id})
        if not node.is_conditional and node.step is None:
            raise GraphValidationError(f"Step node {node.id} has no step", {"node_id": node.id})
        self.nodes[node.id] = node
        return node

    def add_edge(
        self,
        source: str,
        target: str,
        branch_label: Optional[str] = None,
        edge_id: Optional[str] = None,
    ) -> Edge:
        """
        Add an edge, enforcing the branching rules.

        An unlabelled edge out of a conditional takes the free branch,
        "if" first. Labels on edges out of step nodes are ignored.

        Raises:
            GraphValidationError: If either endpoint does not exist
            EdgeRejectedError: If the edge would break a branching rule
        """
        for node_id in (source, target):
            if node_id not in self.nodes:
                raise GraphValidationError(
                    f"Edge references unknown node: {node_id}",
                    {"source": source, "target": target},
                )

        label = normalize_branch(branch_label)
        existing = {e.branch_label for e in self.out_edges(source)}

        if self.nodes[source].is_conditional:
            if label is None:
                if IF_BRANCH not in existing:
                    label = IF_BRANCH
                elif ELSE_BRANCH not in existing:
                    label = ELSE_BRANCH
                else:
                    raise EdgeRejectedError(
                        f"Conditional node {source} already has both branches", source, None
                    )
            elif label in existing:
                raise EdgeRejectedError(
                    f"Conditional node {source} already has an '{label}' edge", source, label
                )
        else:
            label = None
            if existing:
                raise EdgeRejectedError(f"Node {source} already has a default edge", source, None)

        edge = Edge(source=source, target=target, branch_label=label, id=edge_id or str(uuid.uuid4())[:8])
        self.edges.append(edge)
        return edge

    def node(self, node_id: str) -> GraphNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise GraphValidationError(f"Unknown node: {node_id}", {"node_id": node_id})

    def out_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def next_nodes(self, node_id: str, branch: Optional[str] = None) -> List[str]:
        """
        Targets to visit after ``node_id``.

        For a conditional node only edges labelled ``branch`` are followed;
        for a step node the default edge is.
        """
        node = self.node(node_id)
        if node.is_conditional:
            return [e.target for e in self.out_edges(node_id) if e.branch_label == branch]
        return [e.target for e in self.out_edges(node_id) if e.branch_label is None]

    def root_ids(self) -> List[str]:
        """Nodes with no incoming edges, in insertion order."""
        targets = {e.target for e in self.edges}
        return [node_id for node_id in self.nodes if node_id not in targets]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes.values()],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphSnapshot":
        """
        Build a snapshot from engine-format or editor-format JSON.

        Edges that break a branching rule are logged and skipped, the way
        the editor refuses to draw them; everything else that is malformed
        raises.

        Raises:
            GraphValidationError: For malformed nodes or dangling edges
        """
        if not isinstance(data, dict):
            raise GraphValidationError("Graph must be a JSON object")

        graph = cls()
        for raw in data.get("nodes") or []:
            graph.add_node(_parse_node(raw))

        for raw in data.get("edges") or []:
            label = raw.get("branchLabel", raw.get("branch_label", raw.get("sourceHandle")))
            try:
                graph.add_edge(raw.get("source"), raw.get("target"), label, edge_id=raw.get("id"))
            except EdgeRejectedError as e:
                logger.warning(f"Skipping edge {raw.get('id')}: {e.message}")
                graph.rejected.append({"edge": raw, "reason": e.message})

        return graph


def _condition_from_editor(data: Dict[str, Any]) -> Condition:
    fields = dict(data)
    if fields.get("conditionType") == "loopUntilFalse":
        # Legacy loop node: run the if branch while the element exists
        fields["conditionType"] = "elementExists"
        fields.setdefault(
            "loop",
            {
                "startIndex": fields.get("startIndex", 1),
                "increment": fields.get("increment", 1),
                "maxIterations": fields.get("maxIterations", 100),
            },
        )
    return Condition.model_validate(fields)


def _parse_node(raw: Dict[str, Any]) -> GraphNode:
    if not isinstance(raw, dict) or not raw.get("id"):
        raise GraphValidationError("Every node needs an id", {"node": raw})

    node_id = str(raw["id"])
    try:
        if "kind" in raw:
            kind = NodeKind(raw["kind"])
            payload = raw.get("payload") or {}
            if kind == NodeKind.CONDITIONAL:
                return GraphNode(node_id, kind, condition=_condition_from_editor(payload))
            return GraphNode(node_id, kind, step=parse_step(payload))

        data = raw.get("data") or {}
        if raw.get("type") == "conditional":
            return GraphNode(node_id, NodeKind.CONDITIONAL, condition=_condition_from_editor(data))

        step = data.get("step") or data
        if step.get("type") in _CONDITIONAL_STEP_TYPES:
            return GraphNode(node_id, NodeKind.CONDITIONAL, condition=_condition_from_editor(step))
        return GraphNode(node_id, NodeKind.STEP, step=parse_step(step))
    except StepError as e:
        raise GraphValidationError(f"Node {node_id}: {e.message}", {"node_id": node_id})
    except ValueError as e:
        # pydantic ValidationError and bad enum values
        raise GraphValidationError(f"Node {node_id}: {e}", {"node_id": node_id})


def load_snapshot(path: Union[str, Path]) -> GraphSnapshot:
    """
    Load a graph snapshot from a JSON file.

    Raises:
        GraphValidationError: If the file is missing or not valid JSON
    """
    path = Path(path)
    if not path.exists():
        raise GraphValidationError(f"Graph file not found: {path}", {"path": str(path)})
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise GraphValidationError(f"Invalid JSON in {path}: {e}", {"path": str(path)})

    graph = GraphSnapshot.from_dict(data)
    logger.debug(f"Loaded graph from {path}: {len(graph.nodes)} nodes, {len(graph.edges)} edges")
    return graph

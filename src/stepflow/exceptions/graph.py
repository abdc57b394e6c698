"""
Graph-related exceptions.
"""

from typing import Optional

from stepflow.exceptions.base import StepflowError


class GraphError(StepflowError):
    """Base exception for graph structure and traversal errors."""
    pass


class GraphValidationError(GraphError):
    """
    The snapshot cannot be executed.

    Raised when there is no root node, the requested root does not exist,
    or a node payload cannot be parsed.
    """
    pass


class EdgeRejectedError(GraphError):
    """
    An edge violates the branching rules.

    A step node may have a single default edge; a conditional node may
    have one "if" and one "else" edge.

    Attributes:
        source: Source node id of the rejected edge
        branch_label: Label of the rejected edge (None for default edges)
    """

    def __init__(self, message: str, source: str, branch_label: Optional[str] = None):
        super().__init__(message, {"source": source, "branch_label": branch_label})
        self.source = source
        self.branch_label = branch_label


class IterationLimitError(GraphError):
    """
    The run visited more nodes than the engine allows.

    Attributes:
        limit: Configured maximum number of node visits
    """

    def __init__(self, message: str, limit: int):
        super().__init__(message, {"limit": limit})
        self.limit = limit

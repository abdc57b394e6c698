"""
Agent module - LLM-driven step execution.
"""

from stepflow.agent.catalog import TOOLS, ToolParameter, ToolSpec, get_catalog, tool_definitions
from stepflow.agent.agent import (
    DEFAULT_SYSTEM_PROMPT,
    AgentConfig,
    AgentResult,
    ToolCallingAgent,
    ToolCallRecord,
)

__all__ = [
    "TOOLS",
    "ToolParameter",
    "ToolSpec",
    "get_catalog",
    "tool_definitions",
    "DEFAULT_SYSTEM_PROMPT",
    "AgentConfig",
    "AgentResult",
    "ToolCallingAgent",
    "ToolCallRecord",
]

"""
Tool-Calling Agent - let an LLM drive the Step Executor toward a goal.

Each iteration sends the conversation and the tool catalog to the
provider. A response without tool calls ends the session with its text;
otherwise every call is executed as a step and its outcome is appended as
a tool result. Step failures are reported back to the model as error
results instead of ending the session, so it can try something else.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import json
import logging

from stepflow.agent.catalog import ToolSpec, get_catalog, tool_definitions
from stepflow.engine.context import ExecutionContext
from stepflow.engine.executor import StepExecutor, describe_error
from stepflow.engine.steps import parse_step
from stepflow.engine.variables import stringify
from stepflow.exceptions import BoundedIterationFailure, StepError
from stepflow.interfaces.llm import ILLMProvider, Message, ToolCall

logger = logging.getLogger(__name__)


DEFAULT_SYSTEM_PROMPT = """You are an automation agent. You reach the user's goal by calling the \
tools you are given: browser actions, HTTP requests, variables and social integrations.

Rules:
- Call one or more tools per turn and read their results before deciding the next step.
- A result starting with "Error:" means the tool failed; adjust and try another approach.
- Use {{variableName}} in arguments to insert stored variables.
- When the goal is reached, reply with a short summary and no tool calls."""


@dataclass
class AgentConfig:
    """
    Settings for one agent session.

    Attributes:
        provider: LLM provider name
        model: Model to use (None for the provider's default)
        system_prompt: Replaces the default system prompt
        temperature: Sampling temperature
        max_tokens: Response token limit per call
        allowed_tools: Restrict the catalog to these tool names
        max_iterations: Provider calls allowed before the session fails
        store_key: Variable to save the final answer under
    """
    provider: str = "openai"
    model: Optional[str] = None
    system_prompt: Optional[str] = None
    temperature: float = 0.0
    max_tokens: int = 2048
    allowed_tools: Optional[List[str]] = None
    max_iterations: int = 10
    store_key: Optional[str] = None


@dataclass
class ToolCallRecord:
    """One executed tool call."""
    iteration: int
    name: str
    arguments: str
    success: bool
    output: str


@dataclass
class AgentResult:
    """
    Result of a finished agent session.

    Attributes:
        final_text: The model's closing answer
        transcript: Full conversation, system prompt included
        iterations: Provider calls made
        tool_calls: Every tool call executed, in order
    """
    final_text: str
    transcript: List[Message] = field(default_factory=list)
    iterations: int = 0
    tool_calls: List[ToolCallRecord] = field(default_factory=list)


def format_tool_output(data: Any) -> str:
    """Render a step result for the model."""
    if data is None:
        return "OK"
    if isinstance(data, (dict, list)):
        return json.dumps(data, default=str)[:4000]
    return stringify(data)[:4000]


class ToolCallingAgent:
    """
    Runs agent sessions against a provider.

    Example:
        >>> agent = ToolCallingAgent(executor, OpenAIProvider())
        >>> result = await agent.run("Open example.com and read the heading")
        >>> print(result.final_text)
    """

    def __init__(self, executor: StepExecutor, provider: ILLMProvider):
        self._executor = executor
        self._provider = provider

    async def run(
        self,
        goal: str,
        config: Optional[AgentConfig] = None,
        ctx: Optional[ExecutionContext] = None,
    ) -> AgentResult:
        """
        Pursue a goal until the model stops calling tools.

        Args:
            goal: What the user wants done
            config: Session settings
            ctx: Execution context for the steps (defaults to the executor's)

        Returns:
            AgentResult with the final answer

        Raises:
            BoundedIterationFailure: If ``max_iterations`` provider calls
                pass without a final answer
            LLMError: If the provider call itself fails
        """
        config = config or AgentConfig()
        ctx = ctx or self._executor.context
        catalog = get_catalog(config.allowed_tools)
        definitions = tool_definitions(catalog)
        cap = max(1, config.max_iterations)

        messages: List[Message] = [
            Message.system(config.system_prompt or DEFAULT_SYSTEM_PROMPT),
            Message.user(goal),
        ]
        records: List[ToolCallRecord] = []

        logger.info(f"Agent started: {goal[:80]} ({len(catalog)} tools, cap {cap})")

        for iteration in range(1, cap + 1):
            response = await self._provider.complete(
                messages,
                model=config.model,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                tools=definitions,
            )

            if not response.has_tool_calls:
                final_text = (response.content or "").strip()
                messages.append(Message.assistant(response.content or ""))
                if config.store_key:
                    ctx.store.set_raw(config.store_key, final_text)
                logger.info(f"Agent finished after {iteration} iteration(s), {len(records)} tool call(s)")
                return AgentResult(
                    final_text=final_text,
                    transcript=messages,
                    iterations=iteration,
                    tool_calls=records,
                )

            messages.append(Message.assistant(response.content or "", response.tool_calls))
            for call in response.tool_calls:
                output, ok = await self._invoke(call, catalog, ctx)
                records.append(ToolCallRecord(iteration, call.name, call.arguments, ok, output))
                messages.append(Message.tool(call, output, is_error=not ok))

        raise BoundedIterationFailure(
            f"Agent did not reach the goal within {cap} iterations",
            iterations=cap,
            transcript=messages,
        )

    async def _invoke(
        self,
        call: ToolCall,
        catalog: Dict[str, ToolSpec],
        ctx: ExecutionContext,
    ) -> Tuple[str, bool]:
        spec = catalog.get(call.name)
        if spec is None:
            logger.warning(f"Model called unknown tool: {call.name}")
            return f"Error: unknown tool '{call.name}'. Available tools: {', '.join(catalog)}", False

        try:
            arguments = call.parsed_arguments()
            step = parse_step(spec.to_step(arguments))
        except StepError as e:
            return f"Error: {describe_error(e)}", False
        except (TypeError, ValueError) as e:
            return f"Error: invalid arguments for {call.name}: {e}", False

        logger.debug(f"Agent calling {call.name}({call.arguments})")
        try:
            result = await self._executor.execute_step(step, ctx)
        except StepError as e:
            return f"Error: {describe_error(e)}", False
        return format_tool_output(result.data), True

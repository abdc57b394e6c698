"""
AI step handlers: single completions and the tool-calling agent.
"""

from typing import Any, Optional
import logging

from stepflow.engine.handlers import handles
from stepflow.exceptions import InvalidResponseError, ValidationFailure
from stepflow.interfaces.llm import Message

logger = logging.getLogger(__name__)


_PROVIDER_FOR_STEP = {
    "aiOpenAI": "openai",
    "aiAnthropic": "anthropic",
    "aiOllama": "ollama",
}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _api_key(executor, step, provider: str) -> Optional[str]:
    if step.api_key:
        return step.api_key
    if step.credential_id:
        return executor.vault.resolve(step.credential_id, provider, "api_key", "token")
    return None


@handles("aiOpenAI", "aiAnthropic", "aiOllama")
async def complete(executor, step, ctx) -> str:
    """
    Send one prompt and return the trimmed reply.

    Temperature is clamped to [0, 1], max tokens to [1, 4096] and the
    timeout to [1s, 120s].
    """
    provider_name = _PROVIDER_FOR_STEP[step.type]
    if not step.prompt.strip():
        raise ValidationFailure("Prompt is required")
    if not step.model.strip():
        raise ValidationFailure("Model is required")

    temperature = clamp(step.temperature, 0.0, 1.0)
    max_tokens = int(clamp(step.max_tokens, 1, 4096))
    timeout_ms = clamp(step.timeout_ms, 1000, 120000)

    messages = []
    if step.system_prompt.strip():
        messages.append(Message.system(step.system_prompt))
    messages.append(Message.user(step.prompt))

    extra = {}
    if step.top_p is not None and provider_name != "ollama":
        extra["top_p"] = clamp(step.top_p, 0.0, 1.0)

    provider = executor.create_provider(
        provider_name,
        api_key=_api_key(executor, step, provider_name),
        base_url=step.base_url or None,
        timeout=timeout_ms / 1000,
    )
    try:
        response = await provider.complete(
            messages,
            model=step.model,
            temperature=temperature,
            max_tokens=max_tokens,
            **extra,
        )
    finally:
        await provider.close()

    content = (response.content or "").strip()
    if not content:
        raise InvalidResponseError(f"No response content from {provider_name}")
    logger.debug(f"{provider_name} returned {len(content)} chars")
    return content


@handles("aiAgent")
async def agent(executor, step, ctx) -> Any:
    """
    Hand the step's goal to the tool-calling agent.

    Returns the agent's final text; a session that hits its iteration cap
    raises BoundedIterationFailure.
    """
    from stepflow.agent import AgentConfig, ToolCallingAgent

    if not step.goal.strip():
        raise ValidationFailure("Goal is required")

    config = AgentConfig(
        provider=step.provider,
        model=step.model or None,
        system_prompt=step.system_prompt or executor.settings.agent.system_prompt,
        temperature=clamp(step.temperature, 0.0, 1.0),
        max_tokens=step.max_tokens,
        max_iterations=step.max_iterations or executor.settings.agent.max_iterations,
        allowed_tools=step.allowed_tools or executor.settings.agent.allowed_tools,
    )
    provider = executor.create_provider(
        step.provider,
        api_key=_api_key(executor, step, step.provider),
        base_url=step.base_url or None,
        timeout=clamp(step.timeout_ms, 1000, 120000) / 1000,
    )
    try:
        result = await ToolCallingAgent(executor, provider).run(step.goal, config, ctx)
    finally:
        await provider.close()
    return result.final_text

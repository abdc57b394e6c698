"""
Example: Tool-Calling Agent

Lets an LLM drive the browser until it can answer. Needs the API key of
the configured provider, e.g. OPENAI_API_KEY.
"""

import asyncio

from stepflow import StepExecutor, ToolCallingAgent
from stepflow.agent import AgentConfig
from stepflow.backends import HeadlessBackend
from stepflow.config import load_config
from stepflow.exceptions import BoundedIterationFailure


async def main():
    settings = load_config()
    config = AgentConfig(
        provider=settings.llm.provider,
        model=settings.llm.model,
        allowed_tools=["navigate", "extract", "setVariable"],
        max_iterations=6,
        store_key="answer",
    )

    async with HeadlessBackend.from_settings(settings.backend) as backend:
        executor = StepExecutor(backend=backend, settings=settings)
        provider = executor.create_provider(config.provider)
        agent = ToolCallingAgent(executor, provider)
        try:
            result = await agent.run("Open https://example.com and tell me the main heading", config)
        except BoundedIterationFailure as e:
            print(f"Gave up after {e.iterations} iterations")
            return
        finally:
            await provider.close()
            await executor.close()

    for call in result.tool_calls:
        print(f"[{call.iteration}] {call.name} -> {call.output[:60]}")
    print(result.final_text)


if __name__ == "__main__":
    asyncio.run(main())

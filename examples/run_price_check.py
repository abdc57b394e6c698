"""
Example: Price Check

Runs examples/price_check.json headlessly and prints the verdict.
"""

import asyncio
from pathlib import Path

from stepflow import GraphEngine, StepExecutor, load_snapshot
from stepflow.backends import HeadlessBackend
from stepflow.config import load_config


async def main():
    """Run the price check graph."""
    settings = load_config()
    snapshot = load_snapshot(Path(__file__).parent / "price_check.json")

    async with HeadlessBackend.from_settings(settings.backend) as backend:
        executor = StepExecutor(backend=backend, settings=settings)
        engine = GraphEngine(executor)
        try:
            outcome = await engine.run(snapshot, variables={"budget": 30})
        finally:
            await executor.close()

    print(f"Status: {outcome.status.value}")
    if outcome.error:
        print(f"Failed at {outcome.failed_node_id}: {outcome.error}")
    print(outcome.variables.get("verdict"))


if __name__ == "__main__":
    asyncio.run(main())

# /// script
# requires-python = ">=3.10"
# dependencies = ["stepwise-agent-sdk"]
# ///
"""02: Code generation. The universal code agent writes files to ./out.

Builds the default hub (save-file and list-files tools plus the
``universal-code`` agent) and asks for a small Python program.

    uv run examples/02_code_generation.py
"""

import asyncio
import logging

from stepwise_sdk import AgentHub, AgentOptions, BudgetExhausted, MemoryScope


async def main():
    logging.basicConfig(level=logging.INFO)
    options = AgentOptions.from_env(max_steps=15)

    async with AgentHub.create_default(options) as hub:
        agent = hub.get_agent("universal-code")
        outcome = await agent.run(
            "Write a Python script that prints the first 20 Fibonacci numbers and save it as fib.py",
            MemoryScope("demo-user", "python-demo"),
        )

    if isinstance(outcome, BudgetExhausted):
        print(f"Stopped after {outcome.steps} steps: {outcome.partial_text}")
    else:
        print(outcome.text)


if __name__ == "__main__":
    asyncio.run(main())

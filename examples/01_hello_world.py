# /// script
# requires-python = ">=3.10"
# dependencies = ["stepwise-agent-sdk"]
# ///
"""01: Hello World. The simplest possible agent run.

Send a single prompt through the top-level ``query()`` function and
print each step as it completes. Needs ``OPENAI_API_KEY``.

    uv run examples/01_hello_world.py
"""

import asyncio

from stepwise_sdk import FinalAnswer, StepEvent, query


async def main():
    async for item in query(prompt="Explain what an agent loop is in two sentences."):
        if isinstance(item, StepEvent):
            print(f"[step {item.step}] {item.state.value}")
        elif isinstance(item, FinalAnswer):
            print(item.text)


if __name__ == "__main__":
    asyncio.run(main())

# /// script
# requires-python = ">=3.10"
# dependencies = ["stepwise-agent-sdk"]
# ///
"""04: Multi-turn memory. Threads persist in SQLite across runs.

Run it twice: the second run sees the first conversation because the
thread is keyed by the same resource and thread ids.

    uv run examples/04_multi_turn_memory.py
"""

import asyncio

from stepwise_sdk import AgentHub, AgentOptions, MemoryScope, SQLiteMemoryStore


async def main():
    store = SQLiteMemoryStore("stepwise-memory.db")
    scope = MemoryScope("demo-user", "notes")

    async with AgentHub.create_default(AgentOptions.from_env(), store=store) as hub:
        agent = hub.get_agent("universal-code")
        history = await agent.history(scope)
        print(f"Thread {scope} has {len(history)} earlier messages")

        first = await agent.run("Remember that my favourite language is Go.", scope)
        print(first)
        second = await agent.run("Write a hello world in my favourite language.", scope)
        print(second)


if __name__ == "__main__":
    asyncio.run(main())

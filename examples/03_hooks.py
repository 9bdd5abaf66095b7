# /// script
# requires-python = ">=3.10"
# dependencies = ["stepwise-agent-sdk"]
# ///
"""03: Hooks. Audit every tool call and print step progress.

    uv run examples/03_hooks.py
"""

import asyncio
import json
from datetime import datetime, timezone

from stepwise_sdk import AgentHub, AgentOptions, HookType, MemoryScope


async def main():
    async with AgentHub.create_default(AgentOptions.from_env()) as hub:

        @hub.hooks.on(HookType.PreToolUse)
        async def audit_log(ctx):
            ts = datetime.now(timezone.utc).isoformat()
            print(f"[AUDIT {ts}] {ctx.get('tool_id')}: {json.dumps(ctx.get('tool_input'))[:100]}")

        @hub.hooks.on(HookType.PostToolUse)
        async def log_result(ctx):
            result = ctx.get("result")
            status = "error" if result.is_error else "ok"
            print(f"[POST] {result.tool_id} {status}")

        @hub.hooks.on(HookType.StepFinish)
        def progress(ctx):
            event = ctx.get("event")
            print(f"[STEP {event.step}] {event.state.value} {event.text[:60]}")

        outcome = await hub.get_agent("universal-code").run(
            "Create index.html with a hello world page, then list the out directory",
            MemoryScope("demo-user", "web-demo"),
        )
        print(outcome)


if __name__ == "__main__":
    asyncio.run(main())

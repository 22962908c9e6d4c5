from __future__ import annotations

import asyncio
import json

from kashub_client import ClientSettings, KashubClient

SCRIPT = """\
loop 3 {
  moveTo 10 64 10
  breakBlock
"""


async def main() -> None:
    # nothing listens on this port, so every advisory call answers offline
    settings = ClientSettings(api_url="http://127.0.0.1:1", probe_timeout=0.5)
    async with KashubClient(settings) as client:
        await client.start()
        validation = await client.validate(SCRIPT)
        completions = await client.get_completions(SCRIPT, "mo", 2, 4)
        print(
            json.dumps(
                {
                    "connected": client.connected,
                    "validation": validation.model_dump(mode="json"),
                    "completions": [item.label for item in completions],
                    "metrics": client.metrics.snapshot()["counters"],
                },
                indent=2,
                sort_keys=True,
            )
        )


if __name__ == "__main__":
    asyncio.run(main())

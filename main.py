"""Lead Research - deep research over a property insurance lead.

Simple CLI that runs one lead and prints progress as it streams.
"""

import argparse
import asyncio
import sys

from app.agents.orchestrator import ResearchStartError
from app.api.deps import get_orchestrator
from app.services.database import close_research_store


async def run_research(lead_id: int) -> int:
    """Run research for the given lead; returns a process exit code."""
    print(f"Research lead: #{lead_id}")
    print("-" * 50)

    try:
        run = await get_orchestrator().start(lead_id)
    except ResearchStartError as e:
        print(f"[!] Cannot start research: {e}")
        return 2

    async for event in run.events():
        event_type = event.event.value
        data = event.data

        if event_type == "init":
            print(f"[*] {data}")

        elif event_type == "thought":
            print(f"\n[~] Thought: {data}")

        elif event_type == "step":
            print(f"  [+] {data}")

        elif event_type == "answer":
            print(f"\n{'='*50}")
            print("REPORT:")
            print(f"{'='*50}")
            print(data)

        elif event_type == "warning":
            print(f"\n[!] {data}")

        elif event_type == "error":
            print(f"\n[!] Error: {data}")

    result = await run.wait()
    await close_research_store()
    print(f"\n[*] Finished: {result.outcome.value} after {result.steps_taken} step(s)")
    return 0 if result.outcome.value != "aborted" else 1


def main():
    parser = argparse.ArgumentParser(description="Lead deep research")
    parser.add_argument("--lead-id", "-l", type=int, required=True, help="Lead id to research")

    args = parser.parse_args()

    sys.exit(asyncio.run(run_research(args.lead_id)))


if __name__ == "__main__":
    main()

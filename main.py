"""WebResearch - multi-engine web research

Simple CLI for running one research session.
"""

import argparse
import asyncio
import sys

from webresearch.agents.orchestrator import ResearchOrchestrator
from webresearch.services.research_runner import ResearchTimeoutError, run_research


async def run(query: str, overrides: dict, timeout: float) -> int:
    """Run research on the given query and print the result."""
    print(f"Research query: {query}")
    print("-" * 50)

    orchestrator = ResearchOrchestrator()
    last_step: list[str] = []

    def print_progress(event):
        step = event.data.get("current_step", "")
        if step and step not in last_step[-1:]:
            last_step.append(step)
            print(f"[{event.percent:>3}%] {step}")

    try:
        outcome = await run_research(
            query,
            overrides,
            orchestrator=orchestrator,
            max_wait_seconds=timeout,
            on_progress=print_progress,
        )
    except ResearchTimeoutError as e:
        print(f"\n[!] {e}")
        return 2
    finally:
        await orchestrator.wait_closed()

    session = outcome.session
    if session.error:
        print(f"\n[!] Research failed: {session.error}")
        return 1
    if outcome.summary is None:
        print(f'\n[!] No relevant results found for "{query}" ({session.status.value}).')
        return 1

    print(f"\n{'=' * 50}")
    print(outcome.summary)
    return 0


def main():
    parser = argparse.ArgumentParser(description="WebResearch multi-engine research tool")
    parser.add_argument("--query", "-q", required=True, help="Research query")
    parser.add_argument("--max-searches", type=int, help="Maximum number of search queries")
    parser.add_argument("--engine", "-e", help="Preferred search engine (e.g. duckduckgo, brave)")
    parser.add_argument("--no-extract", action="store_true", help="Skip page content extraction")
    parser.add_argument("--timeout", type=float, default=120.0, help="Give up after this many seconds")

    args = parser.parse_args()

    overrides: dict = {"max_searches": args.max_searches}
    if args.no_extract:
        overrides["enable_content_extraction"] = False
    if args.engine:
        overrides["search_engine_overrides"] = {"preferred_engine": args.engine}

    sys.exit(asyncio.run(run(args.query, overrides, args.timeout)))


if __name__ == "__main__":
    main()

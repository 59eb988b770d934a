#!/usr/bin/env python3
"""
Demo script for the generation cache.

Runs the orchestrator against in-memory stores and a scripted generator,
showing cache hits, singleflight coalescing, force refresh, conversation
continuity and scoped cache clearing. No network access is needed.
"""

import asyncio
import itertools
import time

from generation_cache import GenerationOrchestrator, GeneratorReply, configure_logging


class ScriptedGenerator:
    """Generator that answers after a short delay with a canned challenge."""

    def __init__(self, delay: float = 0.3) -> None:
        self.delay = delay
        self.calls = 0
        self._ids = itertools.count(1)

    async def send(self, system_prompt, user_prompt, continuation_token=None, sampling=None):
        self.calls += 1
        await asyncio.sleep(self.delay)
        response_id = f"resp_{next(self._ids)}"
        return GeneratorReply(
            payload={
                "title": f"Challenge {response_id}",
                "content": "Identify the weakest argument in the transcript.",
                "questions": [{"id": "q1", "text": "Which argument is weakest, and why?"}],
            },
            continuation_token=response_id,
        )


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def challenge(subject_id: str, challenge_type: str = "critical-thinking", **extra) -> dict:
    return {
        "subject_id": subject_id,
        "request_type": "challenge",
        "domain_params": {"challenge_type": challenge_type},
        "user": {"full_name": "Ada Lovelace", "skill_level": "advanced"},
        "attitudes": {"tech_savvy": 85, "early_adopter": 80, "skeptical": 75},
        **extra,
    }


async def demo_cache_hits(orchestrator: GenerationOrchestrator, generator: ScriptedGenerator) -> None:
    """Demonstrate miss then hit."""
    print_section("Cache Miss / Hit")

    for attempt in (1, 2):
        start = time.perf_counter()
        result = await orchestrator.generate(challenge("user-1"))
        elapsed = (time.perf_counter() - start) * 1000
        status = "HIT" if result.from_cache else "MISS"
        print(f"  Attempt {attempt}: {status:4} {result.payload['title']} ({elapsed:.1f}ms)")

    print(f"\n  Generator calls so far: {generator.calls}")


async def demo_singleflight(orchestrator: GenerationOrchestrator, generator: ScriptedGenerator) -> None:
    """Demonstrate concurrent identical requests collapsing into one call."""
    print_section("Singleflight")

    before = generator.calls
    results = await asyncio.gather(*(orchestrator.generate(challenge("user-2")) for _ in range(5)))
    titles = {r.payload["title"] for r in results}
    print(f"  5 concurrent requests -> {generator.calls - before} generator call(s), titles: {titles}")


async def demo_force_refresh_and_continuity(
    orchestrator: GenerationOrchestrator, generator: ScriptedGenerator
) -> None:
    """Demonstrate force refresh and conversation continuity."""
    print_section("Force Refresh & Conversation Continuity")

    result = await orchestrator.generate(challenge("user-1", force_refresh=True))
    print(f"  Force refresh: from_cache={result.from_cache}, token={result.continuation_token}")

    result = await orchestrator.generate(challenge("user-1", challenge_type="ethics"))
    print(f"  Next challenge in the same scope: token={result.continuation_token}")
    print(f"  Conversation state id: {result.conversation_state_id}")


async def demo_clear_cache(orchestrator: GenerationOrchestrator) -> None:
    """Demonstrate scoped invalidation."""
    print_section("Clear Cache")

    removed = await orchestrator.clear_cache("user-1")
    print(f"  Cleared user-1: {removed} entr(ies) removed")

    kept = await orchestrator.generate(challenge("user-2"))
    print(f"  user-2 still cached: {kept.from_cache}")

    stats = await orchestrator.get_stats()
    print("\n  Cache statistics:")
    for key, value in stats["cache"].items():
        if key != "backend":
            print(f"    {key}: {value}")


async def main() -> None:
    """Run all demos."""
    configure_logging("WARNING")

    print("\n" + "=" * 70)
    print("  GENERATION CACHE DEMO")
    print("=" * 70)

    generator = ScriptedGenerator()
    orchestrator = GenerationOrchestrator.create(generator=generator)

    await demo_cache_hits(orchestrator, generator)
    await demo_singleflight(orchestrator, generator)
    await demo_force_refresh_and_continuity(orchestrator, generator)
    await demo_clear_cache(orchestrator)

    print_section("Demo Complete")


if __name__ == "__main__":
    asyncio.run(main())

#!/usr/bin/env python3
"""
Resilience patterns example.

This example demonstrates the guards every orchestrated call goes through:
- Retry with exponential backoff and jitter
- Circuit breaker shared across operations
- Sliding-window rate limiting
- Admission control for concurrent calls
- Response caching
- Cancellation of in-flight work

Scripted mock providers stand in for the remote APIs, so no keys are needed.

Usage:
    python examples/resilience.py
"""

import asyncio
import random

from ai_call_orchestrator import ErrorCode, Orchestrator, RemoteError
from ai_call_orchestrator.providers import MockTextProvider

SUMMARY = '{"summary": "Quarterly budget approved", "tldr": "Approved", "bulletPoints": []}'


def outage() -> RemoteError:
    return RemoteError("Service unavailable", status_code=503)


async def retry_with_backoff() -> None:
    """Recover from transient failures."""
    print("Retry with backoff...")
    print()

    provider = MockTextProvider([outage(), outage(), SUMMARY])
    orch = (
        Orchestrator.builder()
        .text_provider(provider)
        .max_retries(3)
        .rng(random.Random(7))
        .build()
    )

    async with orch:
        result = await orch.summarize("Notes from the quarterly budget meeting ...")
        if result.ok:
            print(f"Summary: {result.value['summary']}")
            print(f"Attempts: {result.attempts}")

        # Identical requests are answered from the cache
        cached = await orch.summarize("Notes from the quarterly budget meeting ...")
        print(f"Second call cached: {cached.ok and cached.cached}")
        print(f"Provider calls: {provider.call_count}")


async def circuit_breaker() -> None:
    """Stop calling a provider that keeps failing."""
    print("\n" + "=" * 50)
    print("Circuit breaker...")
    print()

    orch = (
        Orchestrator.builder()
        .text_provider(MockTextProvider([outage()]))
        .max_retries(0)
        .circuit_breaker(3, cooldown_seconds=60.0)
        .build()
    )

    async with orch:
        for i in range(5):
            result = await orch.generate_reply(f"Request {i + 1}")
            if not result.ok:
                print(f"Request {i + 1}: {result.code.value} ({result.message})")

        snapshot = orch.snapshot()
        print()
        print(f"Healthy: {snapshot.is_healthy}")
        if snapshot.circuit_breaker:
            print(f"Retry in: {snapshot.circuit_breaker.seconds_until_retry:.0f}s")


async def rate_limiting() -> None:
    """Refuse requests over the per-minute budget."""
    print("\n" + "=" * 50)
    print("Rate limiting...")
    print()

    orch = (
        Orchestrator.builder()
        .text_provider(MockTextProvider(["Sure."]))
        .requests_per_minute(3)
        .build()
    )

    async with orch:
        for i in range(5):
            result = await orch.generate_reply(f"Request {i + 1}")
            if result.ok:
                print(f"Request {i + 1}: ok")
            elif result.code is ErrorCode.RATE_LIMIT:
                print(f"Request {i + 1}: rate limited, retry in {result.details['retry_in']:.0f}s")


async def concurrent_requests() -> None:
    """Cap the number of calls in flight."""
    print("\n" + "=" * 50)
    print("Admission control...")
    print()

    provider = MockTextProvider(["Reply"], delay=0.05)
    orch = (
        Orchestrator.builder()
        .text_provider(provider)
        .max_concurrent(2)
        .build()
    )

    async with orch:
        print("Starting 6 concurrent requests (max 2 in flight)...")
        results = await asyncio.gather(
            *(orch.generate_reply(f"Request {i}") for i in range(6))
        )
        print(f"Succeeded: {sum(r.ok for r in results)}")
        print(f"Peak in flight: {provider.peak_in_flight}")
        print(f"Admission stats: {orch.get_stats()['admission']}")


async def cancellation() -> None:
    """Cancel an operation that is waiting to retry."""
    print("\n" + "=" * 50)
    print("Cancellation...")
    print()

    orch = Orchestrator(MockTextProvider([outage()]))

    async with orch:
        context = orch.new_context("generate_reply")
        task = asyncio.create_task(orch.generate_reply("Hello", context=context))
        await asyncio.sleep(0.1)

        print(f"In flight: {orch.active_requests}")
        orch.cancel(context.request_id)
        result = await task
        print(f"Result: {result.code.value if not result.ok else 'ok'}")


async def main() -> None:
    """Run resilience examples."""
    await retry_with_backoff()
    await circuit_breaker()
    await rate_limiting()
    await concurrent_requests()
    await cancellation()


if __name__ == "__main__":
    asyncio.run(main())

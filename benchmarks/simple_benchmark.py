#!/usr/bin/env python3
"""
Simple round-trip benchmark over loopback UDP.

This starts an in-process graph server on 127.0.0.1, binds a session to it
and measures how long single requests, operator expressions and whole
scripts take end to end.
"""

import asyncio
import statistics
import sys
import time
from pathlib import Path

import numpy as np

# Reuse the test fixtures' responder
sys.path.insert(0, str(Path(__file__).parent.parent))


async def measure_round_trips(samples=1000):
    """Measure request latency against a loopback graph server."""

    print("Simple patchscript Round-Trip Benchmark")
    print("=" * 40)
    print("This benchmark measures request/response latency over loopback UDP.")
    print()

    try:
        from tests.fixtures.mock_server import GraphResponder, UDPGraphServer

        import patchscript

        loop = asyncio.get_running_loop()
        responder = GraphResponder()
        server, _ = await loop.create_datagram_endpoint(
            lambda: UDPGraphServer(responder), local_addr=("127.0.0.1", 0)
        )
        host, port = server.get_extra_info("sockname")[:2]
        session = await patchscript.Session.bind(remote_addr=f"{host}:{port}", request_timeout=5.0)
        sine = await session.procedure("SineOscillator")

        test_cases = [
            ("play", lambda: session.play()),
            ("processor", lambda: session.procedure("SawOscillator")),
            ("mul_literal", lambda: sine.mul(0.5)),
            ("add_handles", lambda: sine.add(sine)),
            ("script", lambda: session.execute("dac(sine_oscillator(220) * 0.1)")),
        ]

        print(f"\nRunning benchmarks ({samples} samples per test)...")
        results = {}

        for name, make_call in test_cases:
            print(f"  Testing {name}...")

            # Warmup
            for _ in range(3):
                await make_call()

            times = []
            for _ in range(samples):
                start = time.perf_counter()
                await make_call()
                times.append(time.perf_counter() - start)

            data = np.array(times)
            results[name] = (statistics.mean(times), statistics.stdev(times), float(np.percentile(data, 99)))
            mean_time, std_time, p99 = results[name]
            print(f"    {mean_time * 1000:.3f}±{std_time * 1000:.3f}ms (p99 {p99 * 1000:.3f}ms)")

        # Print summary
        print("\n" + "=" * 50)
        print("BENCHMARK RESULTS")
        print("=" * 50)
        print(f"{'Test':<15} {'Mean (ms)':<12} {'Std Dev (ms)':<14} {'p99 (ms)':<10}")
        print("-" * 50)
        for name, (mean_time, std_time, p99) in results.items():
            print(f"{name:<15} {mean_time * 1000:<12.3f} {std_time * 1000:<14.3f} {p99 * 1000:<10.3f}")
        print(f"\nRequests answered: {len(responder.requests)}")

        await session.close()
        server.close()

    except Exception as e:
        print(f"Benchmark failed: {e}")
        import traceback

        traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Simple round-trip benchmark")
    parser.add_argument("--samples", type=int, default=1000, help="Samples per test")
    args = parser.parse_args()

    sys.exit(asyncio.run(measure_round_trips(samples=args.samples)))

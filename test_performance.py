"""
Latency check for the /v1/quotes endpoint against a running server.

Reports p50, p95 and p99 latencies; the p50 target is 250ms.
"""

import httpx
import time
import statistics
from typing import List

API_URL = "http://localhost:8000"
API_KEY = "OWNER_TEST_KEY"  # owner account from config/seed.yaml

QUOTE_PAYLOADS = [
    {"coverage_type": "premium", "species": "dog", "age_years": 3},
    {"coverage_type": "basic", "species": "bird", "age_years": 10},
    {"coverage_type": "standard", "species": "cat", "age_years": 6},
    {"coverage_type": "standard", "species": "rabbit", "age_years": 1},
]


def timed_quote(client, payload, headers):
    """Send one quote request and return timing + response."""
    start = time.time()
    try:
        response = client.post(
            f"{API_URL}/v1/quotes",
            json=payload,
            headers=headers,
            timeout=10.0
        )
        elapsed_ms = (time.time() - start) * 1000
        return {
            "success": response.status_code == 200,
            "status_code": response.status_code,
            "elapsed_ms": elapsed_ms,
            "server_time": response.headers.get("X-Response-Time-Ms"),
            "response_data": response.json() if response.status_code == 200 else None,
            "error": response.text if response.status_code != 200 else None
        }
    except httpx.HTTPError as e:
        elapsed_ms = (time.time() - start) * 1000
        return {
            "success": False,
            "status_code": None,
            "elapsed_ms": elapsed_ms,
            "server_time": None,
            "response_data": None,
            "error": str(e)
        }


def validate_payloads(headers) -> bool:
    """Check every payload prices before timing anything."""
    print("Validating payloads...")
    print("=" * 60)

    with httpx.Client() as client:
        for payload in QUOTE_PAYLOADS:
            label = f"{payload['coverage_type']}/{payload['species']}/{payload['age_years']}"
            result = timed_quote(client, payload, headers)
            if not result["success"]:
                print(f"✗ {label} FAILED: {result['status_code']}")
                print(f"  Error: {result['error'][:200] if result['error'] else 'Unknown'}")
                return False
            print(f"✓ {label} premium={result['response_data']['premium']} "
                  f"({result['elapsed_ms']:.2f}ms)")

    print()
    return True


def run_quote_benchmark(headers, num_requests: int = 100) -> List[float]:
    """
    Time a series of quote requests, cycling through the sample payloads.

    Args:
        headers: Request headers with the API key
        num_requests: Number of requests to make

    Returns:
        List of response times in milliseconds
    """
    times = []
    failures = 0

    print(f"Running {num_requests} requests to /v1/quotes...")
    print("=" * 60)

    with httpx.Client() as client:
        for i in range(num_requests):
            payload = QUOTE_PAYLOADS[i % len(QUOTE_PAYLOADS)]
            result = timed_quote(client, payload, {**headers, "X-Request-ID": f"perf-{i}"})

            if result["success"]:
                times.append(result["elapsed_ms"])
                if i % 10 == 0:
                    print(f"Request {i+1}: {result['elapsed_ms']:.2f}ms "
                          f"(server: {result['server_time']}ms)")
            else:
                failures += 1
                if failures <= 3:
                    print(f"Request {i+1} FAILED: {result['status_code']} {result['error'][:200]}")

    if failures:
        print(f"WARNING: {failures} requests failed")
    return times


def calculate_percentiles(times: List[float]) -> dict:
    if not times:
        return {}

    sorted_times = sorted(times)
    return {
        "count": len(times),
        "min": min(times),
        "max": max(times),
        "mean": statistics.mean(times),
        "p50": sorted_times[int(len(sorted_times) * 0.50)],
        "p95": sorted_times[int(len(sorted_times) * 0.95)],
        "p99": sorted_times[int(len(sorted_times) * 0.99)],
    }


def main():
    print("Pet Insurance API - Quote Latency")
    print("=" * 60)

    for attempt in range(10):
        try:
            if httpx.get(f"{API_URL}/health", timeout=2.0).status_code == 200:
                print("✓ Server is ready")
                break
        except httpx.HTTPError:
            time.sleep(1)
    else:
        print("✗ Server not responding after 10 attempts")
        return

    headers = {"Authorization": f"Bearer {API_KEY}"}
    if not validate_payloads(headers):
        print("✗ Payload validation failed - aborting")
        return

    times = run_quote_benchmark(headers, num_requests=100)
    if not times:
        print("✗ No successful requests")
        return

    stats = calculate_percentiles(times)
    print()
    print("=" * 60)
    print(f"Requests completed: {stats['count']}/100")
    for key in ("min", "mean", "p50", "p95", "p99", "max"):
        print(f"{key:<6} {stats[key]:.2f} ms")

    target_p50 = 250.0
    if stats["p50"] < target_p50:
        print(f"✓ PASS: p50 ({stats['p50']:.2f}ms) < {target_p50}ms target")
    else:
        print(f"✗ FAIL: p50 ({stats['p50']:.2f}ms) >= {target_p50}ms target")


if __name__ == "__main__":
    main()

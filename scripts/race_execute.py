"""Race N concurrent executions of one quote against the router API."""

import argparse
import asyncio
import statistics
import time
from collections import Counter
from uuid import uuid4

import httpx


async def execute_one(client: httpx.AsyncClient, base_url: str, quote_id: str, payment_method_id: int):
    """Send one execute request and return (status_code, latency_ms)."""

    started = time.perf_counter()
    try:
        resp = await client.post(
            f"{base_url}/api/execute",
            json={"quote_id": quote_id, "payment_method_id": payment_method_id},
            headers={"x-trace-id": str(uuid4())},
        )
        return resp.status_code, (time.perf_counter() - started) * 1000
    except httpx.HTTPError:
        return 599, (time.perf_counter() - started) * 1000


async def run(concurrency: int, base_url: str, source: str, target: str, amount: str):
    """Create one quote, then fire `concurrency` executions of its best route."""

    async with httpx.AsyncClient(timeout=30.0) as client:
        resp = await client.post(
            f"{base_url}/api/quotes",
            json={"source_currency": source, "target_currency": target, "source_amount": amount},
        )
        resp.raise_for_status()
        quote = resp.json()
        best = quote["routes"][0]
        print(f"quote_id={quote['quote_id']} route={best['method_name']}")

        tasks = [
            asyncio.create_task(execute_one(client, base_url, quote["quote_id"], best["payment_method_id"]))
            for _ in range(concurrency)
        ]
        results = await asyncio.gather(*tasks)

    codes = Counter(code for code, _ in results)
    lats = [latency for _, latency in results]
    print(f"attempts={concurrency}")
    for code, count in sorted(codes.items()):
        print(f"status_{code}={count}")
    print(f"avg_ms={statistics.mean(lats):.2f}")
    if codes.get(200, 0) != 1:
        raise SystemExit(f"expected exactly one successful execution, got {codes.get(200, 0)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--concurrency", type=int, default=20)
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--source", default="USD")
    parser.add_argument("--target", default="EUR")
    parser.add_argument("--amount", default="1000")
    args = parser.parse_args()
    asyncio.run(run(args.concurrency, args.base_url, args.source, args.target, args.amount))

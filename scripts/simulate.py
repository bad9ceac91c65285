"""
Rush Hour Simulation Script

Fires bursts of concurrent order requests at a running service to show that
stock never goes negative and a single-tab table never holds two open orders.
Run from project root: python scripts/simulate.py [--orders 50]

Needs the service running (uvicorn table_orders.main:app --port 8080).
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import date
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:8080"
TOTAL_ORDERS = 50

SCARCE_STOCK = 10


async def create_fixture(client: httpx.AsyncClient, url: str, payload: dict) -> dict:
    response = await client.post(url, json=payload)
    response.raise_for_status()
    return response.json()


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    table_id: int,
    product_id: int,
    mode: str,
) -> dict[str, Any]:
    """Send one order and record how the service answered."""
    payload = {
        "table_id": table_id,
        "date": date.today().isoformat(),
        "items": [{"product_id": product_id, "quantity": random.randint(1, 2)}],
    }
    start_time = time.time()

    try:
        response = await client.post("/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)
        body = response.json()
        return {
            "order_num": order_num,
            "mode": mode,
            "status": response.status_code,
            "error": body.get("error") if response.status_code >= 400 else None,
            "order_id": body.get("id"),
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "mode": mode,
            "status": None,
            "error": str(e)[:100],
            "order_id": None,
            "time": round(time.time() - start_time, 3),
        }


def print_summary(title: str, results: list[dict[str, Any]]) -> None:
    print(f"\n{title}")
    print("-" * 70)
    outcomes: dict[str, int] = {}
    for result in results:
        key = str(result["status"]) + (f" {result['error']}" if result["error"] else "")
        outcomes[key] = outcomes.get(key, 0) + 1
    for outcome, count in sorted(outcomes.items()):
        print(f"   {outcome:<30} {count}")

    timings = [r["time"] for r in results if r["status"] is not None]
    if timings:
        print(f"   Average Response: {round(sum(timings) / len(timings), 3)}s")
        print(f"   Slowest: {max(timings)}s")


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> bool:
    """
    Run both bursts and check the outcome.

    Returns:
        True if no invariant was broken
    """
    print("=" * 70)
    print("🍽️  RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"📍 Target: {API_BASE_URL}")
    print(f"📦 Orders per burst: {num_orders}")

    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        health = await client.get("/health")
        if health.status_code != 200:
            print(f"❌ Service not healthy: {health.text}")
            return False

        suffix = int(time.time())
        booth = await create_fixture(
            client, "/api/tables",
            {"name": f"Booth {suffix}", "capacity": 4, "single_tab": True},
        )
        bar = await create_fixture(
            client, "/api/tables",
            {"name": f"Bar {suffix}", "capacity": 20, "single_tab": False},
        )
        plenty = await create_fixture(
            client, "/api/products",
            {"name": f"House Bread {suffix}", "price": 3.5, "stock": num_orders * 2},
        )
        scarce = await create_fixture(
            client, "/api/products",
            {"name": f"Truffle Risotto {suffix}", "price": 24.0, "stock": SCARCE_STOCK},
        )

        start = time.time()
        booth_results, bar_results = await asyncio.gather(
            asyncio.gather(*(
                send_order(client, i, booth["id"], plenty["id"], "single-tab")
                for i in range(num_orders)
            )),
            asyncio.gather(*(
                send_order(client, i, bar["id"], scarce["id"], "scarce-stock")
                for i in range(num_orders)
            )),
        )
        total_time = round(time.time() - start, 2)

        print_summary("🪑 Single-tab table burst", booth_results)
        print_summary("🍄 Scarce product burst", bar_results)
        print(f"\n⏱️  Total Time: {total_time}s")

        scarce_after = (await client.get(f"/api/products/{scarce['id']}")).json()
        orders = (await client.get("/api/orders")).json()

    booth_open = [o for o in orders if o["table_id"] == booth["id"] and o["status"] == "open"]
    sold = sum(
        item["quantity"]
        for o in orders if o["table_id"] == bar["id"]
        for item in o["items"]
    )

    print("\n" + "=" * 70)
    print("🔍 INVARIANTS")
    print("=" * 70)
    ok = True

    if len(booth_open) == 1:
        print("✅ Single-tab table holds exactly one open order")
    else:
        print(f"❌ Single-tab table holds {len(booth_open)} open orders")
        ok = False

    if scarce_after["stock"] >= 0 and scarce_after["stock"] + sold == SCARCE_STOCK:
        print(f"✅ Scarce stock balanced: {sold} sold, {scarce_after['stock']} left")
    else:
        print(f"❌ Scarce stock off: {sold} sold, {scarce_after['stock']} left of {SCARCE_STOCK}")
        ok = False

    print("=" * 70)
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Orders per burst")
    parser.add_argument("--base-url", default=API_BASE_URL, help="Service base URL")
    args = parser.parse_args()

    API_BASE_URL = args.base_url
    sys.exit(0 if asyncio.run(run_simulation(args.orders)) else 1)

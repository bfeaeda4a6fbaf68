"""
Lunch Rush Simulation Script

Seeds a truck against a development server (mock identity tokens), then
fires concurrent public-menu orders and status updates at it and prints
the resulting dashboard.

Run from project root: python scripts/simulate.py
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
OWNER_TOKEN = "sim-owner|owner@simtruck.example|Sim Owner"

# Sample data for random orders
FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
MENU_ITEMS = [
    {"name": "Carnitas Taco", "category": "Tacos", "price": 4.50},
    {"name": "Al Pastor Taco", "category": "Tacos", "price": 4.75},
    {"name": "Veggie Burrito", "category": "Burritos", "price": 10.99},
    {"name": "Chips & Salsa", "category": "Sides", "price": 3.25},
    {"name": "Elote", "category": "Sides", "price": 4.00},
    {"name": "Horchata", "category": "Drinks", "price": 3.50, "menu_type": "drink"},
]


def owner_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {OWNER_TOKEN}"}


def generate_public_order(product_ids: list[str]) -> dict[str, Any]:
    """Menu form submission: most rows left blank, a few filled in."""
    quantities: dict[str, Any] = {pid: "" for pid in product_ids}
    for pid in random.sample(product_ids, k=random.randint(1, 3)):
        quantities[pid] = str(random.randint(1, 3))

    payload: dict[str, Any] = {"quantities": quantities}
    if random.random() < 0.7:
        payload["customer_name"] = random.choice(FIRST_NAMES)
        payload["customer_phone"] = f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}"
    return payload


# =============================================================================
# SEEDING
# =============================================================================

async def seed_truck(client: httpx.AsyncClient) -> tuple[str, list[str]]:
    """Sign the owner up (idempotent) and make sure the menu exists."""
    response = await client.post(
        f"{API_BASE_URL}/api/me/signup",
        json={"kind": "business_owner", "business_name": "Sim Taco Truck"},
        headers=owner_headers(),
    )
    response.raise_for_status()
    account_id = response.json()["account"]["id"]

    response = await client.get(f"{API_BASE_URL}/api/products", headers=owner_headers())
    response.raise_for_status()
    existing = {p["name"]: p["id"] for p in response.json()}

    for item in MENU_ITEMS:
        if item["name"] in existing:
            continue
        response = await client.post(f"{API_BASE_URL}/api/products", json=item, headers=owner_headers())
        response.raise_for_status()
        existing[item["name"]] = response.json()["id"]

    await client.post(
        f"{API_BASE_URL}/api/locations",
        json={"name": "Union Square", "address1": "201 Park Ave S", "city": "New York", "state": "NY"},
        headers=owner_headers(),
    )
    return account_id, list(existing.values())


# =============================================================================
# LOAD
# =============================================================================

async def send_public_order(
    client: httpx.AsyncClient,
    account_id: str,
    product_ids: list[str],
    order_num: int,
) -> dict[str, Any]:
    """Place one order through the public menu endpoint."""
    payload = generate_public_order(product_ids)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/public/orders",
            params={"account": account_id},
            json=payload,
            timeout=30.0,
        )
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": 0.0}

    elapsed = round(time.time() - start_time, 3)
    if response.status_code == 201:
        order = response.json()["order"]
        return {
            "order_num": order_num,
            "success": True,
            "order_id": order["id"],
            "total": order["total_amount"],
            "time": elapsed,
        }
    return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}


async def advance(client: httpx.AsyncClient, order_id: str) -> int:
    """Move an order to its next stage; returns the HTTP status."""
    response = await client.post(
        f"{API_BASE_URL}/api/orders/{order_id}/status",
        json={},
        headers=owner_headers(),
        timeout=30.0,
    )
    return response.status_code


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("LUNCH RUSH SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        account_id, product_ids = await seed_truck(client)
        print(f"\nTruck {account_id} with {len(product_ids)} menu items")

        tasks = [send_public_order(client, account_id, product_ids, i + 1) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        # Two writers race on each order; the loser of a race gets a 409
        racing = [r["order_id"] for r in successful[: min(10, len(successful))]]
        statuses = await asyncio.gather(*[advance(client, oid) for oid in racing for _ in range(2)])

        response = await client.get(f"{API_BASE_URL}/api/dashboard", headers=owner_headers())
        response.raise_for_status()
        dashboard = response.json()

        response = await client.post(f"{API_BASE_URL}/api/reports/orders-export", headers=owner_headers())
        export_task = response.json().get("task_id") if response.status_code == 202 else None

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)
        print(f"\nAverage Response: {avg_time}s")
        print(f"Total Revenue: ${total_revenue:.2f}")

    print(f"\nStatus updates: {statuses.count(200)} applied, {statuses.count(409)} rejected (409)")

    summaries = dashboard["summaries"]
    print("\nDashboard:")
    for window in ("today", "last_7_days", "all_time"):
        print(f"   {window:<12} {summaries[window]['count']:>4} orders  ${summaries[window]['revenue']:.2f}")
    print("   Top products:")
    for entry in dashboard["top_products"]:
        print(f"      {entry['name'] or entry['product_id']}: {entry['quantity']}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print(f"Export task: {export_task}")
    print(f"Verify with: python scripts/verify.py {account_id}")
    print("=" * 70)

    return {
        "account_id": account_id,
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
    }


async def check_health() -> bool:
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"Server not reachable: {e}")
            return False
    if response.status_code != 200:
        print(f"Health check failed: {response.text}")
        return False
    data = response.json()
    print(f"Status: {data.get('status')} (database: {data.get('database')}, redis: {data.get('redis')})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Lunch Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    args = parser.parse_args()

    if not asyncio.run(check_health()):
        sys.exit(1)

    asyncio.run(run_simulation(args.orders))

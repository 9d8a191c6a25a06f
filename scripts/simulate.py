"""
Storefront Shopper Simulation

Simulates concurrent shoppers browsing the catalog, filling carts and
composing WhatsApp checkouts against a running server.
Run from project root: python scripts/simulate.py

Author: Khalil_Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import os
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_SHOPPERS = 20


def pick_quantity(product: dict[str, Any]) -> float:
    """Random quantity respecting the product's unit step."""
    step = 0.5 if product.get("unitType") == "kilo" else 1
    return step * random.randint(1, 4)


def generate_cart_lines(products: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pick a few distinct products with random quantities."""
    chosen = random.sample(products, k=min(len(products), random.randint(1, 4)))
    return [
        {"productId": p["id"], "quantity": pick_quantity(p)}
        for p in chosen
    ]


# =============================================================================
# SHOPPER SIMULATION
# =============================================================================

async def run_shopper(
    client: httpx.AsyncClient,
    shopper_num: int,
    products: list[dict[str, Any]],
    locations: list[dict[str, Any]],
) -> dict[str, Any]:
    """Browse a category, then compose a takeaway or delivery checkout."""
    start_time = time.time()

    try:
        # Browse popular products like the home page does
        await client.get(f"{API_BASE_URL}/api/products", params={"isPopular": "true"})

        payload: dict[str, Any] = {"items": generate_cart_lines(products)}
        if locations and random.random() < 0.5:
            payload["deliveryLocationId"] = random.choice(locations)["id"]

        response = await client.post(
            f"{API_BASE_URL}/api/checkout/whatsapp",
            json=payload,
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            data = response.json()
            return {
                "shopper_num": shopper_num,
                "success": True,
                "fulfillment": data.get("fulfillment"),
                "total": data.get("total", 0) / 100,
                "time": elapsed,
            }
        return {
            "shopper_num": shopper_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "shopper_num": shopper_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_shoppers: int = TOTAL_SHOPPERS) -> dict[str, Any]:
    """
    Run the shopper simulation.

    Args:
        num_shoppers: Number of concurrent shoppers
    """
    print("=" * 70)
    print("🛒 STOREFRONT SIMULATION")
    print("=" * 70)
    print(f"📋 Shoppers: {num_shoppers}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        products = (await client.get(f"{API_BASE_URL}/api/products")).json()
        locations = (await client.get(f"{API_BASE_URL}/api/delivery-locations")).json()

        if not products:
            print("\n❌ Catalog is empty. Seed it or run an image sync first.")
            return {"total": 0, "successful": 0, "failed": 0, "results": []}

        tasks = [
            run_shopper(client, i + 1, products, locations)
            for i in range(num_shoppers)
        ]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    deliveries = [r for r in successful if r.get("fulfillment") == "delivery"]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful Checkouts: {len(successful)}/{num_shoppers}")
    print(f"❌ Failed Checkouts: {len(failed)}/{num_shoppers}")
    print(f"🚚 Delivery / 🏪 Takeaway: {len(deliveries)} / {len(successful) - len(deliveries)}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        basket_value = sum(r.get("total", 0) for r in successful)
        print(f"\n📈 Average Response: {avg_time}s")
        print(f"   💰 Basket Value: {basket_value:.2f}")

    if failed:
        print(f"\n⚠️  Failed Checkout Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Shopper #{f['shopper_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_shoppers,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results
    }


async def test_single_flows(trigger_sync: bool = False) -> bool:
    """Test individual flows before the simulation."""
    print("\n" + "=" * 70)
    print("🧪 TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        # Test 1: Health check
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code == 200:
            data = response.json()
            print(f"   ✅ Status: {data.get('status')}")
            print(f"   Storage: {data.get('storage_provider')} ({data.get('storage')})")
            print(f"   Redis: {data.get('redis')}")
        else:
            print(f"   ❌ Failed: {response.text}")
            return False

        # Test 2: Catalog
        print("\n2️⃣ Catalog...")
        categories = (await client.get(f"{API_BASE_URL}/api/categories")).json()
        products = (await client.get(f"{API_BASE_URL}/api/products")).json()
        print(f"   ✅ {len(categories)} categories, {len(products)} products")

        # Test 3: Optional image sync
        if trigger_sync:
            print("\n3️⃣ Image Sync...")
            response = await client.post(f"{API_BASE_URL}/api/imagekit/sync", timeout=60.0)
            if response.status_code == 200:
                data = response.json()
                print(f"   ✅ +{data.get('newProductsAdded')} products, "
                      f"+{data.get('newCategoriesAdded')} categories, "
                      f"+{data.get('newLocationsAdded')} locations")
            else:
                print(f"   ⚠️ Response: {response.text[:100]}")

        # Test 4: Single takeaway checkout
        print("\n4️⃣ Single Takeaway Checkout...")
        if not products:
            print("   ⚠️ No products to order")
            return False
        response = await client.post(
            f"{API_BASE_URL}/api/checkout/whatsapp",
            json={"items": generate_cart_lines(products)}
        )
        if response.status_code == 200:
            data = response.json()
            print(f"   ✅ Link: {data.get('url')[:80]}...")
            print(f"   Total: {data.get('total', 0) / 100:.2f}")
        else:
            print(f"   ❌ Failed: {response.text}")
            return False

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Storefront Shopper Simulation")
    parser.add_argument("--shoppers", type=int, default=TOTAL_SHOPPERS, help="Number of shoppers")
    parser.add_argument("--sync", action="store_true", help="Trigger an image sync first")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    parser.add_argument("--base-url", type=str, default=None, help="Server base URL")
    args = parser.parse_args()

    if args.base_url:
        API_BASE_URL = args.base_url.rstrip("/")

    if not args.skip_tests:
        success = asyncio.run(test_single_flows(trigger_sync=args.sync))
        if not success:
            print("\n❌ Pre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)

        print("\n✅ Pre-flight tests passed!")

    asyncio.run(run_simulation(args.shoppers))

"""
Data Verification Script

Loads products, tables and orders from a running service into DataFrames and
checks the invariants the order engine must keep: no negative stock, at most
one open order per single-tab table, every item pointing at a known product.
Run from project root: python scripts/verify.py [--base-url http://localhost:8080]
"""

import argparse
import sys
from datetime import datetime

import httpx
import pandas as pd

API_BASE_URL = "http://localhost:8080"


def load_frames(base_url: str) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    with httpx.Client(base_url=base_url, timeout=30.0) as client:
        products = client.get("/api/products").raise_for_status().json()
        tables = client.get("/api/tables").raise_for_status().json()
        orders = client.get("/api/orders").raise_for_status().json()

    items = [
        {"order_id": order["id"], "product_id": item["product_id"], "quantity": item["quantity"]}
        for order in orders
        for item in order["items"]
    ]
    order_rows = [{k: v for k, v in order.items() if k not in ("items", "table")} for order in orders]

    return (
        pd.DataFrame(products, columns=["id", "name", "price", "stock"]),
        pd.DataFrame(tables, columns=["id", "name", "capacity", "single_tab"]),
        pd.DataFrame(order_rows, columns=["id", "table_id", "status", "kitchen_status", "date"]),
        pd.DataFrame(items, columns=["order_id", "product_id", "quantity"]),
    )


def verify(base_url: str = API_BASE_URL) -> bool:
    """Print a report and return True when every check passes."""
    print("=" * 60)
    print("🔍 ORDER DATA VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📍 Service: {base_url}")
    print("=" * 60)

    try:
        products, tables, orders, items = load_frames(base_url)
    except httpx.HTTPError as e:
        print(f"\n❌ Could not load data: {e}")
        return False

    print(f"\n📊 STATISTICS:")
    print(f"   Products: {len(products)}")
    print(f"   Tables: {len(tables)}")
    print(f"   Orders: {len(orders)} ({(orders['status'] == 'open').sum()} open)")
    print(f"   Items: {len(items)}")

    ok = True

    negative = products[products["stock"] < 0]
    if len(negative) > 0:
        print(f"\n❌ {len(negative)} product(s) with negative stock:")
        print(negative.to_string(index=False))
        ok = False
    else:
        print(f"\n✅ No negative stock")

    open_per_table = (
        orders[orders["status"] == "open"]
        .groupby("table_id")
        .size()
        .rename("open_orders")
        .reset_index()
        .merge(tables, left_on="table_id", right_on="id")
    )
    crowded = open_per_table[open_per_table["single_tab"] & (open_per_table["open_orders"] > 1)]
    if len(crowded) > 0:
        print(f"\n❌ Single-tab table(s) with more than one open order:")
        print(crowded[["table_id", "name", "open_orders"]].to_string(index=False))
        ok = False
    else:
        print(f"✅ Every single-tab table has at most one open order")

    dangling = items[~items["product_id"].isin(products["id"])]
    if len(dangling) > 0:
        print(f"\n❌ {len(dangling)} item(s) reference unknown products")
        ok = False
    else:
        print(f"✅ All items reference known products")

    if len(items) > 0:
        committed = (
            items.groupby("product_id")["quantity"].sum()
            .rename("committed")
            .reset_index()
            .merge(products, left_on="product_id", right_on="id")
        )
        print(f"\n📦 COMMITTED STOCK:")
        print("-" * 60)
        print(committed[["product_id", "name", "committed", "stock"]].to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FAILED")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Data Verification Script")
    parser.add_argument("--base-url", default=API_BASE_URL, help="Service base URL")
    args = parser.parse_args()

    sys.exit(0 if verify(args.base_url) else 1)

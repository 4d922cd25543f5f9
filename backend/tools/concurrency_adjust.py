import argparse
import concurrent.futures
import json
import os

import requests

BASE = os.environ.get("INVENTORY_BASE", "http://127.0.0.1:8000")
TOKEN = os.environ.get("INVENTORY_TOKEN", "")


def _headers():
    headers = {"Content-Type": "application/json"}
    if TOKEN:
        headers["Authorization"] = f"Bearer {TOKEN}"
    return headers


def adjust_task(i, product_id, delta):
    payload = {"delta": delta, "changed_by": f"concurrency-{i}"}
    try:
        r = requests.post(
            f"{BASE}/api/products/{product_id}/adjust",
            json=payload,
            headers=_headers(),
            timeout=20,
        )
        return (i, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def current_quantity(product_id):
    r = requests.get(f"{BASE}/api/products/{product_id}", headers=_headers(), timeout=10)
    r.raise_for_status()
    return r.json()["quantity"]


def run_adjust_concurrent(workers, product_id, delta):
    start = current_quantity(product_id)
    print(f"Running adjust test: workers={workers}, product={product_id}, delta={delta}, start={start}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(adjust_task, i, product_id, delta) for i in range(workers)]
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    ok = sum(1 for r in results if r[1] == 200)
    final = current_quantity(product_id)
    # every request is a single step, so clamping only applies to the running total
    expected = start
    for _ in range(ok):
        expected = max(0, expected + delta)
    print(json.dumps({"succeeded": ok, "final": final, "expected": expected}))
    return final == expected


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire concurrent quantity adjustments at one product.")
    parser.add_argument("--product-id", type=int, required=True)
    parser.add_argument("--delta", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()

    if not run_adjust_concurrent(args.workers, args.product_id, args.delta):
        raise SystemExit("Lost update detected")

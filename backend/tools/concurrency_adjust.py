"""
Fire parallel stock removals at one product and check the ledger held.

With stock S and N workers each removing Q units, exactly min(N, S // Q)
requests must succeed; the rest must fail with insufficient_stock and the
final stock must never go negative.

    python tools/concurrency_adjust.py --email admin@example.com --password secret --product 1
"""
import argparse
import concurrent.futures
import os

import requests

BASE = os.environ.get("STOCKROOM_BASE", "http://127.0.0.1:8000")


def login(email, password):
    r = requests.post(f"{BASE}/api/auth/login", json={"email": email, "password": password}, timeout=10)
    r.raise_for_status()
    return r.json()["token"]


def remove_task(i, token, product_id, qty):
    headers = {"Authorization": f"Bearer {token}"}
    payload = {"operation": "remove", "quantity": qty, "reason": f"concurrency worker {i}"}
    try:
        r = requests.post(
            f"{BASE}/api/products/{product_id}/adjustments",
            json=payload,
            headers=headers,
            timeout=20,
        )
        return (i, r.status_code, r.json())
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def run(workers, token, product_id, qty):
    headers = {"Authorization": f"Bearer {token}"}
    before = requests.get(f"{BASE}/api/products/{product_id}", headers=headers, timeout=10).json()
    print(f"Starting stock={before['stock']} workers={workers} qty={qty}")

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(remove_task, i, token, product_id, qty) for i in range(workers)]
        results = [f.result() for f in futures]

    ok = [r for r in results if r[1] == 200]
    rejected = [r for r in results if r[1] != 200]
    after = requests.get(f"{BASE}/api/products/{product_id}", headers=headers, timeout=10).json()
    expected_ok = min(workers, before["stock"] // qty)
    print(f"succeeded={len(ok)} (expected {expected_ok}) rejected={len(rejected)}")
    for r in rejected:
        print(r)
    print(f"Final stock={after['stock']} (expected {before['stock'] - len(ok) * qty})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent stock removal test.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--product", type=int, required=True)
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()

    run(args.workers, login(args.email, args.password), args.product, args.qty)

"""
Seed the running API with mock post batches and print the alerts it publishes.

Run with the API already running (python run_api.py). Optionally set SIGNAL_API_URL in env.
Each batch uses a different seed so locations and templates vary between batches.
Usage: python seed_demo_posts.py [batches] [posts_per_batch]
"""

import os
import random
import sys
import time

import httpx
from dotenv import load_dotenv

from generators.mock_posts import generate_mock_posts

load_dotenv()
SIGNAL_API_URL = (os.environ.get("SIGNAL_API_URL") or "http://localhost:8000").rstrip("/")


def _payload(seed: int, count: int) -> dict:
    posts = generate_mock_posts(count, rng=random.Random(seed))
    return {
        "seed": seed,
        "posts": [
            {
                "id": p.id,
                "text": p.text,
                "author": p.author,
                "timestamp": p.timestamp,
                "platform": p.platform,
                "location": p.location,
                "lat": p.coordinates.lat,
                "lng": p.coordinates.lng,
            }
            for p in posts
        ],
    }


def main(batches: int = 3, per_batch: int = 50):
    print(f"Seeding {batches} batches of {per_batch} posts via {SIGNAL_API_URL}/analyze/posts")
    client = httpx.Client(timeout=30.0)
    try:
        for i in range(batches):
            r = client.post(
                f"{SIGNAL_API_URL}/analyze/posts",
                json=_payload(seed=1000 + i, count=per_batch),
                headers={"Content-Type": "application/json"},
            )
            if not r.is_success:
                print(f"  [{i+1}/{batches}] FAILED {r.status_code} {r.text[:200]}")
                continue
            data = r.json()
            print(f"  [{i+1}/{batches}] processed={data['processed']} alerts={len(data['alerts'])} errors={len(data['errors'])}")
            for alert in data["alerts"][:5]:
                print(f"      {alert['disaster_type']:<10} {alert['location_name']:<12} "
                      f"reports={alert['report_count']:<3} conf={alert['confidence']:.2f} sev={alert['severity']}")
            time.sleep(0.3)
        print("Done.")
    finally:
        client.close()


if __name__ == "__main__":
    args = [int(a) for a in sys.argv[1:3]]
    main(*args)

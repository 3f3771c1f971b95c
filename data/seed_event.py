"""Seed an event (metadata, roster and optional snapshot) from a JSON file.
    pip install -e .
    python3 data/seed_event.py 401580351 data/masters_2024.json
    STORAGE_BACKEND=kv python3 data/seed_event.py 401580351 data/masters_2024.json

The file has the same shape as the admin seed request body:
    {"event": {"name": ..., "score_view_step_factor": 3.0, "end_date": null},
     "refresh_from_espn": 1,
     "golfers": [{"eup_id": 1, "espn_id": 9478, "golfer_name": ..., "bettor_name": ..., "group": 1}],
     "score_struct": [...]}            (optional)
"""

import asyncio
import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from models import EventSeed
from database.factory import create_storage


async def seed(event_id: int, seed_path: str, backend: str = None):
    with open(seed_path) as f:
        doc = EventSeed.model_validate(json.load(f))

    print(f"Loaded event '{doc.event.name}' with {len(doc.golfers)} golfers from JSON")

    storage = await create_storage(backend)
    try:
        await storage.seed_event(
            event_id,
            doc.to_event_details(event_id),
            doc.golfers,
            doc.score_struct,
            doc.naive_last_refresh(),
        )
        print(f"Seeded event {event_id} into {storage.name} storage")
        if doc.score_struct is not None:
            print(f"  with {len(doc.score_struct)} score rows")

        details = await storage.get_event_details(event_id)
        print(f"  end_date={details.end_date} refresh_from_espn={details.refresh_from_espn}")
    finally:
        await storage.close()


if __name__ == "__main__":
    load_dotenv()
    if len(sys.argv) < 3:
        print("Usage: python3 data/seed_event.py <event_id> <seed.json> [sql|s3|kv]")
        sys.exit(1)

    asyncio.run(seed(
        event_id=int(sys.argv[1]),
        seed_path=sys.argv[2],
        backend=sys.argv[3] if len(sys.argv) > 3 else None,
    ))

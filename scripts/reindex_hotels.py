#!/usr/bin/env python3
"""
Reindex Hotels into Qdrant
Embeds a JSON file of hotel records and upserts them into the vector index.

Records may use snake_case or camelCase keys; missing display fields
(amenities, rating, description) are backfilled the same way search
results are.

Usage:
    python scripts/reindex_hotels.py data/hotels.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from travel_rag.config import settings  # noqa: E402
from travel_rag.container import ServiceContainer  # noqa: E402
from travel_rag.schemas.ai_schemas import Hotel, VectorMatch  # noqa: E402
from travel_rag.utils.hotel_formatting import format_vector_match  # noqa: E402


def load_hotels(path: Path) -> List[Hotel]:
    """Read a JSON list (or {"hotels": [...]}) of hotel records"""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    records: List[Dict[str, Any]] = data.get("hotels", []) if isinstance(data, dict) else data

    hotels = []
    for i, record in enumerate(records):
        hotel_id = record.get("id") or record.get("hotel_id") or record.get("_id")
        if not hotel_id:
            print(f"Skipping record {i}: no id")
            continue
        hotels.append(format_vector_match(VectorMatch(id=str(hotel_id), score=0.0, metadata=record), i))
    return hotels


async def reindex(path: Path) -> int:
    hotels = load_hotels(path)
    print(f"Loaded {len(hotels)} hotels from {path}")
    if not hotels:
        return 0

    container = await ServiceContainer.create(settings)
    try:
        total = await container.orchestrator.index_hotels(hotels)
    finally:
        await container.shutdown()
    return total


def main():
    """Main reindex function"""
    parser = argparse.ArgumentParser(description="Embed hotels and upsert them into Qdrant")
    parser.add_argument("file", type=Path, help="JSON file of hotel records")
    args = parser.parse_args()

    print("=" * 60)
    print(f"Reindexing hotels into '{settings.QDRANT_COLLECTION}'")
    print("=" * 60)

    if not args.file.exists():
        print(f"Error: {args.file} not found")
        sys.exit(1)

    total = asyncio.run(reindex(args.file))
    print(f"Indexed {total} hotels")


if __name__ == "__main__":
    main()

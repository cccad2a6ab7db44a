"""
Database initialization script - indexes and registry seed data

Creates indexes and (optionally) replaces the admin registries
(retailers, products, pdfs, shops) with the contents of a JSON file:

    python scripts/init_db.py
    python scripts/init_db.py --seed data/registries.json

The seed file maps collection names to lists of records:

    {"retailers": [{"name": "Farm & City", "full_name": "Farm and City Centre"}],
     "products": [...], "pdfs": [...], "shops": [...]}
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
import logging

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables before settings are read
load_dotenv()

from app.db.indexes import create_indexes  # noqa: E402
from app.db.mongo import connect_to_mongo, close_mongo_connection, get_collection  # noqa: E402
from app.db.store import MongoRecordStore  # noqa: E402

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

REGISTRIES = ("retailers", "products", "pdfs", "shops")


def load_seed(path: Path) -> dict:
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)

    unknown = set(data) - set(REGISTRIES)
    if unknown:
        raise ValueError(f"❌ Unknown collections in seed file: {', '.join(sorted(unknown))}")
    for name, records in data.items():
        if not isinstance(records, list):
            raise ValueError(f"❌ '{name}' must be a list of records")
    return data


async def seed_registries(seed: dict):
    store = MongoRecordStore()
    for name, records in seed.items():
        await store.save(name, records)
        logger.info(f"  ✅ {name}: {len(records)} record(s)")


async def print_stats():
    logger.info("\n📊 Current documents:")
    for name in ("users", "receipts", "agronomist_requests") + REGISTRIES:
        count = await get_collection(name).count_documents({})
        logger.info(f"  {name}: {count}")


async def main(seed_path: Path = None):
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  AgriBot Database Setup")
    logger.info("=" * 60 + "\n")

    seed = load_seed(seed_path) if seed_path else None

    await connect_to_mongo()
    try:
        await create_indexes()

        if seed:
            logger.info(f"\n🌱 Seeding registries from {seed_path}")
            await seed_registries(seed)

        await print_stats()
        logger.info("\n✅ Database initialization complete!")
    finally:
        await close_mongo_connection()

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create indexes and seed AgriBot registries")
    parser.add_argument("--seed", type=Path, help="JSON file with registry records")
    args = parser.parse_args()
    asyncio.run(main(args.seed))

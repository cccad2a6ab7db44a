"""
app/db/indexes.py

Purpose: Database index management

- Unique index on users.phone
- Receipt lookups by fingerprint, by user and by review status
- Receipts are never unique on hash: every submission is kept, replays included
"""

from app.core.logging import get_logger
from app.db.mongo import get_collection

logger = get_logger(__name__)

# collection -> [(keys, options)]
INDEXES = {
    "users": [
        ("phone", {"unique": True, "name": "phone_unique"}),
        ("premium_expiry_date", {"name": "premium_expiry_idx"}),
    ],
    "receipts": [
        ("hash", {"name": "receipt_hash_idx"}),
        ([("phone", 1), ("created_at", -1)], {"name": "receipt_user_idx"}),
        ("status", {"name": "receipt_status_idx"}),
    ],
    "agronomist_requests": [
        ([("status", 1), ("created_at", -1)], {"name": "request_status_idx"}),
    ],
}


async def create_indexes():
    """
    Idempotent; safe to run on every startup.
    """
    logger.info("Creating database indexes...")
    try:
        for collection_name, indexes in INDEXES.items():
            collection = get_collection(collection_name)
            for keys, options in indexes:
                await collection.create_index(keys, **options)
    except Exception as e:
        logger.error(f"Failed to create indexes: {e}", exc_info=True)
        raise
    logger.info(f"✅ Indexes ready on {', '.join(INDEXES)}")


if __name__ == "__main__":
    import asyncio

    from app.db.mongo import close_mongo_connection, connect_to_mongo

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())

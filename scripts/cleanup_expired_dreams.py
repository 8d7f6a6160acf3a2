#!/usr/bin/env python3
"""
cleanup_expired_dreams.py — Delete dreams, analytics events and pyjama party
signups past their expires_at.

The API never deletes anything: expired documents are simply filtered
out of every read. Run this occasionally to reclaim space.

Usage:
    python scripts/cleanup_expired_dreams.py            # report only
    python scripts/cleanup_expired_dreams.py --delete   # actually delete
"""

import argparse
import asyncio
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

from pajama_party.core.database import ANALYTICS_EVENTS, DREAMS, PYJAMA_PARTY_SIGNUPS, client_options

load_dotenv()

COLLECTIONS = (DREAMS, ANALYTICS_EVENTS, PYJAMA_PARTY_SIGNUPS)


async def cleanup(mongo_uri: str, db_name: str, delete: bool) -> None:
    client = AsyncIOMotorClient(mongo_uri, **client_options(mongo_uri))
    db = client[db_name]
    now = datetime.now(timezone.utc)
    expired = {"expires_at": {"$lte": now}}

    try:
        await client.admin.command("ping")
        for name in COLLECTIONS:
            if delete:
                result = await db[name].delete_many(expired)
                print(f"{name}: deleted {result.deleted_count} expired documents.")
            else:
                count = await db[name].count_documents(expired)
                print(f"{name}: {count} expired documents (run with --delete to remove).")
    finally:
        client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Remove expired Pajama Party documents")
    parser.add_argument("--mongo-uri", default=os.getenv("MONGO_URI", "mongodb://localhost:27017/pajama_party"))
    parser.add_argument("--db-name", default=os.getenv("MONGO_DB_NAME", "pajama_party"))
    parser.add_argument("--delete", action="store_true")
    args = parser.parse_args()
    asyncio.run(cleanup(args.mongo_uri, args.db_name, args.delete))


if __name__ == "__main__":
    main()

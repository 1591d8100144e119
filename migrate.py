"""
Migration: add the dedupe/status columns to an existing leads table and
backfill dedupe keys.

Run this ONCE against your existing database:
    python migrate.py

It is safe to run multiple times — uses IF NOT EXISTS and only rewrites keys
that are missing or no longer match the identity fields.
"""

import asyncio
import os
from dotenv import load_dotenv  # pip install python-dotenv  (only needed to run this script)

load_dotenv()  # reads your .env file

import asyncpg

from cardleads.services.dedupe import build_dedupe_key, encode_dedupe_key, parse_dedupe_key


async def migrate():
    conn = await asyncpg.connect(
        host=os.environ["DB_HOST"],
        port=int(os.environ.get("DB_PORT", 5432)),
        database=os.environ["DB_NAME"],
        user=os.environ["DB_USER"],
        password=os.environ["DB_PASSWORD"],
    )

    print("Connected to database. Running migration...")

    # Add 'status' column if it doesn't exist
    await conn.execute("""
        ALTER TABLE leads
        ADD COLUMN IF NOT EXISTS status VARCHAR(20) NOT NULL DEFAULT 'active';
    """)
    print("  ✓ Column 'status' ensured.")

    # Add 'dedupe_key' column if it doesn't exist
    await conn.execute("""
        ALTER TABLE leads
        ADD COLUMN IF NOT EXISTS dedupe_key TEXT DEFAULT NULL;
    """)
    await conn.execute("""
        CREATE INDEX IF NOT EXISTS ix_leads_dedupe_key ON leads (dedupe_key);
    """)
    print("  ✓ Column 'dedupe_key' ensured.")

    rows = await conn.fetch("""
        SELECT id, email, phone, full_name, first_name, last_name, company, dedupe_key
        FROM leads
    """)
    refreshed = 0
    for row in rows:
        key = build_dedupe_key(dict(row))
        if parse_dedupe_key(row["dedupe_key"]) == key:
            continue
        await conn.execute(
            "UPDATE leads SET dedupe_key = $1 WHERE id = $2", encode_dedupe_key(key), row["id"]
        )
        refreshed += 1
    print(f"  ✓ Refreshed {refreshed} of {len(rows)} dedupe keys.")

    await conn.close()
    print("\nMigration complete. You can now restart your FastAPI server.")


if __name__ == "__main__":
    asyncio.run(migrate())

#!/usr/bin/env python3
"""
Reset election results ahead of a benchmark run.

Runs the same reset as GET /initialize directly against PostgreSQL and Redis,
and can optionally pre-load every citizen into the identity cache so the first
vote of each citizen does not fall through to PostgreSQL.

Usage:
    python -m scripts.initialize_results [--warm-users] [--batch-size SIZE]

Environment Variables:
    POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER, POSTGRES_PASSWORD
    REDIS_HOST, REDIS_PORT, REDIS_DB, REDIS_PASSWORD
"""

import argparse
import asyncio
import sys

from tqdm import tqdm

from services.tally_api.config import settings
from services.tally_api.database import Database
from services.tally_api.redis_client import RedisClient
from services.tally_api.tally import VoteTally


async def run(warm_users: bool, batch_size: int) -> int:
    """
    Reset results and optionally warm the identity cache.

    Returns:
        int: Process exit code
    """
    redis_client = RedisClient(settings.redis_url, settings.REDIS_MAX_CONNECTIONS)
    database = Database(settings.postgres_dsn, min_size=1, max_size=2)

    try:
        client = await redis_client.connect()
        await database.initialize()
    except Exception as e:
        print(f"✗ Failed to connect: {e}", file=sys.stderr)
        await redis_client.close()
        await database.close()
        return 1

    try:
        tally = VoteTally.from_settings(client, database, settings)
        candidates = await tally.reset()
        print(f"✓ Results reset for {len(candidates)} candidates")

        if warm_users:
            citizens = await database.get_users()
            cached = await tally.identity.warm(
                tqdm(citizens, desc="Caching citizens", unit="user"),
                batch_size=batch_size
            )
            print(f"✓ Cached {cached:,} citizens")
        return 0
    finally:
        await redis_client.close()
        await database.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Reset election results')
    parser.add_argument('--warm-users', action='store_true',
                        help='Pre-load every citizen into the identity cache')
    parser.add_argument('--batch-size', type=int, default=1000,
                        help='SET commands per pipeline when warming (default: 1000)')
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.warm_users, args.batch_size)))


if __name__ == '__main__':
    main()

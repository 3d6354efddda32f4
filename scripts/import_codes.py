#!/usr/bin/env python3
"""
Import promotional codes for a registered app from a text file.

The file may separate codes with commas or newlines; blank entries and
exact duplicates are dropped.

Usage:
    ENV=staging python scripts/import_codes.py com.example.app codes.txt
    ENV=staging python scripts/import_codes.py com.example.app - < codes.csv
    ENV=staging python scripts/import_codes.py com.example.app codes.txt --dry-run
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

# Load environment-specific .env file
env = os.getenv("ENV", "local")
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
    print(f"Loaded environment from: {env_file}")

from sqlalchemy import select

from beta_signup.config import settings
from beta_signup.db import get_db_session
from beta_signup.models import App
from beta_signup.services.code_pool import CodePoolStore
from beta_signup.utils.code_list_utils import dedupe_codes, parse_promotional_codes


def read_codes(source: str) -> list[str]:
    if source == "-":
        text = sys.stdin.read()
    else:
        with open(source, "r") as f:
            text = f.read()
    return dedupe_codes(parse_promotional_codes(text))


async def import_codes(app_id: str, codes: list[str], dry_run: bool = False) -> int:
    async with get_db_session() as db:
        result = await db.execute(select(App).where(App.id == app_id))
        app = result.scalar_one_or_none()
        if app is None or not app.is_setup_complete:
            raise SystemExit(f"App not found: {app_id}")

        store = CodePoolStore(db)
        total_before, redeemed = await store.count_codes(app_id)
        print(f"App {app_id} ({app.app_name}): {total_before} codes, {redeemed} redeemed")

        if dry_run:
            print(f"Dry run: would add {len(codes)} codes")
            return 0

        ids = await store.add_codes(app_id, codes)
        print(f"Added {len(ids)} codes")
        return len(ids)


def main():
    parser = argparse.ArgumentParser(
        description="Import promotional codes into an app's code pool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("app_id", type=str, help="Play Store package id of the app")
    parser.add_argument("source", type=str, help="File with codes, or - for stdin")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and count codes without writing them",
    )
    args = parser.parse_args()

    codes = read_codes(args.source)
    if not codes:
        print("No promotional codes found in input")
        sys.exit(1)

    limit = settings.max_promotional_codes_per_request
    if len(codes) > limit:
        print(f"Too many codes ({len(codes)}); import at most {limit} at a time")
        sys.exit(1)

    print(f"Environment: {env_file}")
    asyncio.run(import_codes(args.app_id, codes, dry_run=args.dry_run))


if __name__ == "__main__":
    main()

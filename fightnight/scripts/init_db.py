#!/usr/bin/env python3
"""
Creates the FightNight schema and seeds games/characters from catalog.yaml.

Usage:
    python fightnight/scripts/init_db.py [--skip-seed]
"""

import argparse
import asyncio
import os
import sys
import yaml

# Add project root to path so we can import from fightnight.app
sys.path.append(os.path.join(os.path.dirname(__file__), '../../'))

from fightnight.app.core.config import settings
from fightnight.app.core.database import engine, init_models, AsyncSessionLocal
from fightnight.app.services.catalog_service import catalog_service


def load_catalog(path: str) -> dict:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return data.get("games", {})


async def main(seed: bool):
    await init_models()
    print("Database tables created.")

    if seed:
        catalog = load_catalog(settings.catalog_config_path)
        async with AsyncSessionLocal() as db:
            added = await catalog_service.seed_catalog(db, catalog)
        print(f"Catalog seeded ({added} new rows).")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--skip-seed", action="store_true", help="Only create tables")
    args = parser.parse_args()
    asyncio.run(main(seed=not args.skip_seed))

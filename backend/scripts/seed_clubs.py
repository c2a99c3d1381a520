#!/usr/bin/env python3
"""Create the club tables and load a seed file into them."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.clubhub.db.core import init_db, reset_db  # noqa: E402
from backend.clubhub.seed import SEED_PATH, load_seed_payload, seed_database  # noqa: E402
from backend.clubhub.settings import settings  # noqa: E402
from backend.clubhub.storage import DB  # noqa: E402


async def run(seed_path: Path = SEED_PATH, reset: bool = False) -> bool:
    if reset:
        await reset_db()
    else:
        await init_db()
    return await seed_database(DB, load_seed_payload(seed_path))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", type=Path, default=SEED_PATH, help="Seed JSON file")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop every table first (deletes profiles, follows and quiz answers)",
    )
    args = parser.parse_args(argv)
    if asyncio.run(run(args.seed, reset=args.reset)):
        print(f"Seeded {settings.database_url} from {args.seed}")
    else:
        print("Clubs already present; nothing written (use --reset to reload)")


if __name__ == "__main__":
    main()

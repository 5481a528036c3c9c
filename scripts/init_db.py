#!/usr/bin/env python3
"""
Create every table the service needs (users, reminders, messages).
Usage:
    python -m scripts.init_db [--database-url URL]
"""
import argparse
import asyncio

from sqlalchemy.ext.asyncio import create_async_engine

from config import settings
from services.db import init_models


async def _run(url: str) -> None:
    eng = create_async_engine(url)
    try:
        await init_models(eng)
    finally:
        await eng.dispose()
    print(f"✓ tables ready on {url}")


def main() -> None:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--database-url", default=settings.database_url)
    args = ap.parse_args()
    asyncio.run(_run(args.database_url))


if __name__ == "__main__":
    main()

"""
Create the referral tables if they do not exist.

Usage: python -m app.db.init_db
"""

import asyncio

from app.core.models import Referral, ReferralUsage  # noqa: F401  (register tables on Base.metadata)
from app.db.session import Base, engine


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Referral tables ready.")


def main() -> None:
    asyncio.run(init_db())


if __name__ == "__main__":
    main()

"""
Database seeding script for the first admin user.

The admin role can only be granted by another admin, so the first one
has to be created here. Run after the database is reachable:

    python -m courier_backend.seed_users admin@example.com
"""

import asyncio
import logging
import sys

from courier_backend.app.db.session import AsyncSessionLocal, engine, Base
from courier_backend.app.core.identity import create_identity_token
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.user import User
from courier_backend.app.services.user_directory import find_by_email

logger = logging.getLogger("courier.seed")


async def seed_admin(email: str) -> None:
    """
    Create ``email`` as an admin, or promote it if it already exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        user = await find_by_email(db, email)

        if user is None:
            db.add(User(email=email.lower(), role=UserRole.ADMIN))
            logger.info("Created admin user %s", email)
        elif user.effective_role == UserRole.ADMIN:
            logger.info("%s is already an admin, skipping seeding", email)
            return
        else:
            user.role = UserRole.ADMIN
            logger.info("Promoted %s to admin", email)

        await db.commit()

    # Handy for local testing against the JWT verifier
    logger.info("Development token: %s", create_identity_token(email.lower()))


async def main(argv: list[str]) -> int:
    if len(argv) != 1:
        logger.error("usage: python -m courier_backend.seed_users <admin-email>")
        return 2
    try:
        await seed_admin(argv[0])
    finally:
        await engine.dispose()
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    sys.exit(asyncio.run(main(sys.argv[1:])))

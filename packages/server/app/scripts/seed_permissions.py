"""
Seed the permission catalog and, optionally, a local user with an organization.

    python -m app.scripts.seed_permissions
    python -m app.scripts.seed_permissions --create-schema
    python -m app.scripts.seed_permissions --user-id dev-1 --email dev@example.com --org-name "Dev Studio"
"""

import argparse
import asyncio
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.auth import create_jwt
from app.core.authorization import RequestContext
from app.core.config import get_settings
from app.core.database import enable_sqlite_savepoints, init_db
from app.models.user import User
from app.services.members import find_by_org_and_user
from app.services.onboarding import create_organization_for_user
from app.services.role_permissions import seed_permission_catalog

from creatorhub_shared.schemas.onboarding import OnboardingRequest

settings = get_settings()


async def seed(
    user_id: Optional[str] = None,
    email: Optional[str] = None,
    org_name: Optional[str] = None,
    create_schema: bool = False,
) -> None:
    engine = create_async_engine(str(settings.database_url))
    if engine.dialect.name == "sqlite":
        enable_sqlite_savepoints(engine)
    if create_schema:
        await init_db(engine)
        print("Schema created.")
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        added = await seed_permission_catalog(session)
        print(f"Permission catalog: {len(added)} added.")

        if user_id:
            user = await session.get(User, user_id)
            if not user:
                user = User(id=user_id, name=email.split("@")[0], email=email)
                session.add(user)
                await session.flush()
                print(f"Created user: {email}")
            else:
                print(f"User {user_id} already exists.")

            if org_name:
                result = await create_organization_for_user(
                    session,
                    RequestContext.system_context(),
                    user_id,
                    OnboardingRequest(name=org_name),
                )
                owner = await find_by_org_and_user(session, result.organization.id, user_id)
                print(f"Created organization '{result.organization.slug}' owned by {owner.user_id}.")

        await session.commit()

    await engine.dispose()

    if user_id:
        token, _ = create_jwt(user_id, expires_delta=timedelta(minutes=settings.jwt_expire_minutes))
        print(f"Bearer token: {token}")
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed permissions and an optional local user.")
    parser.add_argument("--user-id", help="Identity provider user id to create locally")
    parser.add_argument("--email", help="Email address for the user")
    parser.add_argument("--org-name", help="Onboard an organization owned by the user")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create tables from the models first (local databases without migrations)",
    )

    args = parser.parse_args()
    if args.user_id and not args.email:
        parser.error("--email is required with --user-id")

    asyncio.run(seed(args.user_id, args.email, args.org_name, args.create_schema))

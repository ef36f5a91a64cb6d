"""FastAPI dependencies: database session, query cache, authenticated caller."""

from typing import Annotated
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.logging import get_logger, user_id_var
from app.core.query_cache import QueryCache
from app.database import get_db
from app.models.profile import Profile

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_query_cache(request: Request) -> QueryCache:
    """The process-wide cache created at startup."""
    return request.app.state.query_cache


QueryCacheDep = Annotated[QueryCache, Depends(get_query_cache)]


async def verify_supabase_token(token: str) -> UUID:
    """Resolve an access token to the auth user id via Supabase Auth."""
    try:
        async with httpx.AsyncClient(timeout=settings.auth_timeout_seconds) as client:
            resp = await client.get(
                f"{settings.supabase_url.rstrip('/')}/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {token}",
                    "apikey": settings.supabase_anon_key,
                },
            )
    except httpx.HTTPError as e:
        logger.warning("auth_provider_unreachable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        ) from e

    if resp.status_code != 200:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    try:
        return UUID(resp.json()["id"])
    except (KeyError, ValueError) as e:
        logger.warning("auth_provider_bad_payload", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e


async def get_current_user(
    db: DbSession,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Profile:
    if settings.dev_auth_bypass and settings.dev_user_id:
        user_id = UUID(settings.dev_user_id)
    else:
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
            )
        user_id = await verify_supabase_token(credentials.credentials)

    profile = await db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not found",
        )
    user_id_var.set(str(profile.id))
    return profile


CurrentUser = Annotated[Profile, Depends(get_current_user)]


async def require_admin(user: CurrentUser) -> Profile:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


AdminUser = Annotated[Profile, Depends(require_admin)]

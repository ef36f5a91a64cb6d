"""Order endpoints — the caller's order history."""

from fastapi import APIRouter, HTTPException, status

from app.deps import CurrentUser, DbSession, QueryCacheDep
from app.schemas.order import OrderWithItemsRead
from app.services.orders import order_service

router = APIRouter()


@router.get("", response_model=list[OrderWithItemsRead])
async def list_my_orders(
    user: CurrentUser,
    db: DbSession,
    cache: QueryCacheDep,
    refresh: bool = False,
) -> list[OrderWithItemsRead]:
    """Orders with their items, newest first. ``refresh`` bypasses the cache."""
    result = await order_service.list_user_orders(db, cache, user.id, refresh=refresh)
    if result.error:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not load orders.",
        )
    return result.data

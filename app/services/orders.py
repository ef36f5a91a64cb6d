"""Order service — customer order history and admin status changes."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.logging import get_logger
from app.core.query import OrderBy, QueryResult, TableQuery
from app.core.query_cache import QueryCache
from app.models.order import Order, OrderStatus
from app.schemas.audit import AuditAction, AuditLogEntry, AuditTargetType
from app.schemas.order import OrderWithItemsRead
from app.services.audit import audit_service

logger = get_logger(__name__)

ORDERS_PREFIX = "orders:"

_STATUS_ACTIONS: dict[str, AuditAction] = {
    OrderStatus.CANCELLED.value: AuditAction.CANCEL_ORDER,
    OrderStatus.REFUNDED.value: AuditAction.REFUND_ORDER,
}


class OrderService:
    def history_query(
        self,
        cache: QueryCache,
        user_id: UUID,
    ) -> TableQuery[OrderWithItemsRead, OrderWithItemsRead]:
        """One user's orders with their line items, newest first."""

        def _filter(stmt: Select) -> Select:
            return stmt.where(Order.user_id == user_id).options(selectinload(Order.items))

        return TableQuery(
            Order,
            OrderWithItemsRead,
            cache=cache,
            filter=_filter,
            order_by=OrderBy("created_at", ascending=False),
            cache_key=f"{ORDERS_PREFIX}{user_id}",
        )

    async def list_user_orders(
        self,
        db: AsyncSession,
        cache: QueryCache,
        user_id: UUID,
        *,
        refresh: bool = False,
    ) -> QueryResult[OrderWithItemsRead]:
        query = self.history_query(cache, user_id)
        if refresh:
            return await query.refetch(db)
        return await query.fetch(db)

    async def get_order(self, db: AsyncSession, order_id: UUID) -> Order | None:
        result = await db.execute(select(Order).where(Order.id == order_id))
        return result.scalar_one_or_none()

    async def update_status(
        self,
        db: AsyncSession,
        order_id: UUID,
        status: str,
        *,
        admin_id: UUID,
        cache: QueryCache | None = None,
    ) -> Order | None:
        order = await self.get_order(db, order_id)
        if order is None:
            return None

        previous = order.status
        order.status = status
        await db.flush()
        await db.refresh(order)

        await audit_service.log(
            db,
            AuditLogEntry(
                action=_STATUS_ACTIONS.get(status, AuditAction.UPDATE_ORDER_STATUS),
                target_type=AuditTargetType.ORDER,
                target_id=order.id,
                old_value={"status": previous},
                new_value={"status": status},
            ),
            admin_id=admin_id,
        )
        if cache is not None:
            removed = cache.invalidate_prefix(ORDERS_PREFIX)
            logger.info("order_status_updated", order_id=str(order.id), cache_entries_dropped=removed)
        return order


order_service = OrderService()

"""Catalog service — cached product/expert listings and admin product edits."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.query import OrderBy, QueryResult, TableQuery
from app.core.query_cache import QueryCache
from app.models.expert import Expert
from app.models.product import Product
from app.schemas.audit import AuditAction, AuditLogEntry, AuditTargetType
from app.schemas.catalog import ExpertRead, ProductRead, ProductUpdate
from app.services.audit import audit_service

logger = get_logger(__name__)

PRODUCTS_PREFIX = "products:"
EXPERTS_PREFIX = "experts:"


def _product_action(changed: set[str]) -> AuditAction:
    if changed == {"price"}:
        return AuditAction.UPDATE_PRICE
    if changed == {"stock"}:
        return AuditAction.UPDATE_INVENTORY
    return AuditAction.UPDATE_PRODUCT


def _featured_only(experts: list[ExpertRead]) -> list[ExpertRead]:
    return [e for e in experts if e.featured]


class CatalogService:
    """Storefront listings backed by TableQuery + the shared QueryCache."""

    def product_query(
        self,
        cache: QueryCache,
        category: str | None = None,
    ) -> TableQuery[ProductRead, ProductRead]:
        def _filter(stmt: Select) -> Select:
            stmt = stmt.where(Product.is_active.is_(True))
            if category:
                stmt = stmt.where(Product.category == category)
            return stmt

        return TableQuery(
            Product,
            ProductRead,
            cache=cache,
            filter=_filter,
            order_by=OrderBy("created_at", ascending=False),
            cache_key=f"{PRODUCTS_PREFIX}{category or 'all'}",
        )

    def expert_query(
        self,
        cache: QueryCache,
        *,
        featured_only: bool = False,
    ) -> TableQuery[ExpertRead, ExpertRead]:
        # Featured listing reuses the full cached row set
        return TableQuery(
            Expert,
            ExpertRead,
            cache=cache,
            order_by=OrderBy("rating", ascending=False),
            transform=_featured_only if featured_only else None,
            cache_key=f"{EXPERTS_PREFIX}all",
        )

    async def list_products(
        self,
        db: AsyncSession,
        cache: QueryCache,
        category: str | None = None,
    ) -> QueryResult[ProductRead]:
        return await self.product_query(cache, category).fetch(db)

    async def list_experts(
        self,
        db: AsyncSession,
        cache: QueryCache,
        *,
        featured_only: bool = False,
    ) -> QueryResult[ExpertRead]:
        return await self.expert_query(cache, featured_only=featured_only).fetch(db)

    async def get_product(self, db: AsyncSession, product_id: UUID) -> Product | None:
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalar_one_or_none()

    async def get_expert(self, db: AsyncSession, expert_id: UUID) -> Expert | None:
        result = await db.execute(select(Expert).where(Expert.id == expert_id))
        return result.scalar_one_or_none()

    async def update_product(
        self,
        db: AsyncSession,
        cache: QueryCache,
        product_id: UUID,
        data: ProductUpdate,
        *,
        admin_id: UUID,
    ) -> Product | None:
        """Apply an admin edit, audit it, and drop cached product listings."""
        product = await self.get_product(db, product_id)
        if product is None:
            return None

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return product

        before = ProductRead.model_validate(product).model_dump(mode="json")
        for field_name, value in changes.items():
            setattr(product, field_name, value)
        await db.flush()
        await db.refresh(product)
        after = ProductRead.model_validate(product).model_dump(mode="json")

        await audit_service.log(
            db,
            AuditLogEntry(
                action=_product_action(set(changes)),
                target_type=AuditTargetType.PRODUCT,
                target_id=product.id,
                old_value=before,
                new_value=after,
                metadata={"fields": sorted(changes)},
            ),
            admin_id=admin_id,
        )
        removed = cache.invalidate_prefix(PRODUCTS_PREFIX)
        logger.info("product_updated", product_id=str(product.id), cache_entries_dropped=removed)
        return product


catalog_service = CatalogService()

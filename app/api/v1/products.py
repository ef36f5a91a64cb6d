"""Product endpoints — public catalog listing."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from app.deps import DbSession, QueryCacheDep
from app.schemas.catalog import ProductRead
from app.services.catalog import catalog_service

router = APIRouter()


@router.get("", response_model=list[ProductRead])
async def list_products(
    db: DbSession,
    cache: QueryCacheDep,
    category: str | None = None,
) -> list[ProductRead]:
    """List active products, newest first. Served from cache when fresh."""
    result = await catalog_service.list_products(db, cache, category)
    if result.error:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not load products.",
        )
    return result.data


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(product_id: UUID, db: DbSession) -> ProductRead:
    product = await catalog_service.get_product(db, product_id)
    if not product or not product.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found.",
        )
    return ProductRead.model_validate(product)

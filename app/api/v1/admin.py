"""Admin endpoints — audited catalog/order/booking edits, audit browsing, cache control."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from app.deps import AdminUser, DbSession, QueryCacheDep
from app.schemas.audit import AuditAction, AuditLogPage, AuditLogRecord, AuditTargetType
from app.schemas.booking import (
    AppointmentRead,
    AppointmentStatusUpdate,
    AvailabilityReplace,
    AvailabilityRuleRead,
)
from app.schemas.cache import CacheInvalidateRequest, CacheInvalidateResponse
from app.schemas.catalog import ProductRead, ProductUpdate
from app.schemas.order import OrderRead, OrderStatusUpdate
from app.services.audit import audit_service
from app.services.booking import booking_service
from app.services.catalog import catalog_service
from app.services.orders import order_service

router = APIRouter()


# ── Experts ──────────────────────────────────────────────────────


@router.put("/experts/{expert_id}/availability", response_model=list[AvailabilityRuleRead])
async def replace_availability(
    expert_id: UUID,
    data: AvailabilityReplace,
    admin: AdminUser,
    db: DbSession,
    cache: QueryCacheDep,
) -> list[AvailabilityRuleRead]:
    """Replace all weekly rules of an expert."""
    expert = await catalog_service.get_expert(db, expert_id)
    if not expert:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expert not found.",
        )
    await booking_service.replace_availability(
        db, expert_id, data.rules, admin_id=admin.id, cache=cache,
    )
    rules = await booking_service.get_rules(db, expert_id)
    return [AvailabilityRuleRead.model_validate(r) for r in rules]


# ── Products ─────────────────────────────────────────────────────


@router.patch("/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: UUID,
    data: ProductUpdate,
    admin: AdminUser,
    db: DbSession,
    cache: QueryCacheDep,
) -> ProductRead:
    product = await catalog_service.update_product(db, cache, product_id, data, admin_id=admin.id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found.",
        )
    return ProductRead.model_validate(product)


# ── Orders ───────────────────────────────────────────────────────


@router.patch("/orders/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    admin: AdminUser,
    db: DbSession,
    cache: QueryCacheDep,
) -> OrderRead:
    order = await order_service.update_status(
        db, order_id, data.status, admin_id=admin.id, cache=cache,
    )
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found.",
        )
    return OrderRead.model_validate(order)


# ── Appointments ─────────────────────────────────────────────────


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentRead)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    admin: AdminUser,
    db: DbSession,
) -> AppointmentRead:
    appointment = await booking_service.update_appointment_status(
        db, appointment_id, data.status, admin_id=admin.id,
    )
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found.",
        )
    return AppointmentRead.model_validate(appointment)


# ── Audit log ────────────────────────────────────────────────────


@router.get("/audit-logs", response_model=AuditLogPage)
async def list_audit_logs(
    admin: AdminUser,
    db: DbSession,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin_id: UUID | None = None,
    action: AuditAction | None = None,
    target_type: AuditTargetType | None = None,
    target_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> AuditLogPage:
    return await audit_service.get_logs(
        db,
        limit=limit,
        offset=offset,
        admin_id=admin_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        start=start,
        end=end,
    )


@router.get("/audit-logs/resource/{target_type}/{target_id}", response_model=list[AuditLogRecord])
async def resource_history(
    target_type: AuditTargetType,
    target_id: str,
    admin: AdminUser,
    db: DbSession,
    limit: int = Query(20, ge=1, le=200),
) -> list[AuditLogRecord]:
    return await audit_service.get_resource_history(db, target_type, target_id, limit=limit)


@router.get("/audit-logs/admins/{admin_id}", response_model=list[AuditLogRecord])
async def admin_activity(
    admin_id: UUID,
    admin: AdminUser,
    db: DbSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[AuditLogRecord]:
    return await audit_service.get_admin_activity(db, admin_id, limit=limit)


# ── Query cache ──────────────────────────────────────────────────


@router.post("/cache/invalidate", response_model=CacheInvalidateResponse)
async def invalidate_cache(
    data: CacheInvalidateRequest,
    admin: AdminUser,
    cache: QueryCacheDep,
) -> CacheInvalidateResponse:
    """Drop one key, a key prefix, or (with neither) the whole cache."""
    if data.key is not None:
        removed = int(cache.invalidate(data.key))
    elif data.prefix is not None:
        removed = cache.invalidate_prefix(data.prefix)
    else:
        removed = len(cache)
        cache.clear()
    return CacheInvalidateResponse(removed=removed, remaining=len(cache))

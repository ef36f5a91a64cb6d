"""Pydantic schemas for API request/response validation."""

from app.schemas.catalog import ExpertRead, ProductRead, ProductUpdate
from app.schemas.booking import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
    AvailabilityReplace,
    AvailabilityRuleRead,
    AvailabilityRuleWrite,
    SlotList,
    SlotRead,
)
from app.schemas.order import OrderItemRead, OrderRead, OrderStatusUpdate, OrderWithItemsRead
from app.schemas.audit import (
    AuditAction,
    AuditLogEntry,
    AuditLogPage,
    AuditLogRecord,
    AuditLogResult,
    AuditTargetType,
)
from app.schemas.cache import CacheInvalidateRequest, CacheInvalidateResponse

__all__ = [
    "ExpertRead",
    "ProductRead",
    "ProductUpdate",
    "AppointmentCreate",
    "AppointmentRead",
    "AppointmentStatusUpdate",
    "AvailabilityReplace",
    "AvailabilityRuleRead",
    "AvailabilityRuleWrite",
    "SlotList",
    "SlotRead",
    "OrderItemRead",
    "OrderRead",
    "OrderStatusUpdate",
    "OrderWithItemsRead",
    "AuditAction",
    "AuditLogEntry",
    "AuditLogPage",
    "AuditLogRecord",
    "AuditLogResult",
    "AuditTargetType",
    "CacheInvalidateRequest",
    "CacheInvalidateResponse",
]

"""Audit service — best-effort logging and browsing of admin actions.

``log`` never raises: a failed write is logged and reported back as
``AuditLogResult(success=False, error=...)`` so the admin action it
accompanies still goes through. The insert runs in a savepoint, so a
failure only rolls back the audit row.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.logging import client_ip_var, get_logger, user_agent_var
from app.models.audit_log import AdminAuditLog
from app.models.profile import Profile
from app.schemas.audit import (
    AuditAction,
    AuditLogEntry,
    AuditLogPage,
    AuditLogRecord,
    AuditLogResult,
    AuditTargetType,
)

logger = get_logger(__name__)
settings = get_settings()

_ACTION_LABELS: dict[AuditAction, str] = {
    AuditAction.CREATE_PRODUCT: "Created product",
    AuditAction.UPDATE_PRODUCT: "Updated product",
    AuditAction.DELETE_PRODUCT: "Deleted product",
    AuditAction.UPDATE_PRICE: "Updated price",
    AuditAction.UPDATE_INVENTORY: "Updated inventory",
    AuditAction.UPDATE_ORDER_STATUS: "Updated order status",
    AuditAction.CANCEL_ORDER: "Cancelled order",
    AuditAction.REFUND_ORDER: "Refunded order",
    AuditAction.CREATE_APPOINTMENT: "Created appointment",
    AuditAction.UPDATE_APPOINTMENT: "Updated appointment",
    AuditAction.CANCEL_APPOINTMENT: "Cancelled appointment",
    AuditAction.UPDATE_USER_ROLE: "Updated user role",
    AuditAction.UPDATE_USER_TIER: "Updated user tier",
    AuditAction.BAN_USER: "Banned user",
    AuditAction.UPDATE_SETTING: "Updated setting",
    AuditAction.EXPORT_DATA: "Exported data",
    AuditAction.BULK_UPDATE: "Bulk update",
    AuditAction.DELETE_ARCHIVE: "Deleted archive",
    AuditAction.UPDATE_AVAILABILITY: "Updated availability",
}


def format_action(action: AuditAction | str) -> str:
    """Human label for an action, falling back to the raw value."""
    try:
        return _ACTION_LABELS[AuditAction(action)]
    except ValueError:
        return str(action)


def _to_record(log: AdminAuditLog, admin_name: str | None, admin_email: str | None) -> AuditLogRecord:
    return AuditLogRecord(
        id=log.id,
        admin_id=log.admin_id,
        action=log.action,
        target_type=log.target_type,
        target_id=log.target_id,
        old_value=log.old_value,
        new_value=log.new_value,
        metadata=log.metadata_ or {},
        ip_address=log.ip_address,
        user_agent=log.user_agent,
        created_at=log.created_at,
        admin_name=admin_name or "Unknown",
        admin_email=admin_email or "",
    )


class AuditService:
    """Writes and queries admin_audit_logs."""

    async def log(
        self,
        db: AsyncSession,
        entry: AuditLogEntry,
        *,
        admin_id: UUID | None,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AuditLogResult:
        """Record one admin action. Never raises.

        User agent and IP default to the ones captured for the current
        request by the request-context middleware.
        """
        if admin_id is None:
            logger.warning("audit_log_unauthenticated", action=entry.action.value)
            return AuditLogResult(success=False, error="Not authenticated")

        try:
            row = AdminAuditLog(
                admin_id=admin_id,
                action=entry.action.value,
                target_type=entry.target_type.value,
                target_id=str(entry.target_id) if entry.target_id is not None else None,
                old_value=to_jsonable_python(entry.old_value),
                new_value=to_jsonable_python(entry.new_value),
                metadata_=to_jsonable_python(entry.metadata or {}),
                user_agent=user_agent if user_agent is not None else user_agent_var.get(),
                ip_address=ip_address if ip_address is not None else client_ip_var.get(),
            )
            async with db.begin_nested():
                db.add(row)
                await db.flush()
        except Exception as e:
            logger.exception(
                "audit_log_failed",
                action=entry.action.value,
                target_type=entry.target_type.value,
                error=str(e),
            )
            return AuditLogResult(success=False, error=str(e))

        logger.info(
            "audit_logged",
            action=entry.action.value,
            target_type=entry.target_type.value,
            target_id=row.target_id,
        )
        return AuditLogResult(success=True)

    async def get_logs(
        self,
        db: AsyncSession,
        *,
        limit: int | None = None,
        offset: int = 0,
        admin_id: UUID | None = None,
        action: AuditAction | None = None,
        target_type: AuditTargetType | None = None,
        target_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> AuditLogPage:
        """Newest-first page of audit rows with the acting admin's name/email."""
        limit = limit or settings.audit_page_size

        conditions = []
        if admin_id is not None:
            conditions.append(AdminAuditLog.admin_id == admin_id)
        if action is not None:
            conditions.append(AdminAuditLog.action == action.value)
        if target_type is not None:
            conditions.append(AdminAuditLog.target_type == target_type.value)
        if target_id is not None:
            conditions.append(AdminAuditLog.target_id == target_id)
        if start is not None:
            conditions.append(AdminAuditLog.created_at >= start)
        if end is not None:
            conditions.append(AdminAuditLog.created_at <= end)

        count_q = await db.execute(
            select(func.count(AdminAuditLog.id)).where(*conditions)
        )
        total = count_q.scalar_one()

        rows_q = await db.execute(
            select(AdminAuditLog, Profile.display_name, Profile.email)
            .outerjoin(Profile, Profile.id == AdminAuditLog.admin_id)
            .where(*conditions)
            .order_by(AdminAuditLog.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        records = [_to_record(log, name, email) for log, name, email in rows_q.all()]
        return AuditLogPage(data=records, count=total)

    async def get_resource_history(
        self,
        db: AsyncSession,
        target_type: AuditTargetType,
        target_id: str,
        limit: int = 20,
    ) -> list[AuditLogRecord]:
        page = await self.get_logs(db, target_type=target_type, target_id=target_id, limit=limit)
        return page.data

    async def get_admin_activity(
        self,
        db: AsyncSession,
        admin_id: UUID,
        limit: int = 50,
    ) -> list[AuditLogRecord]:
        page = await self.get_logs(db, admin_id=admin_id, limit=limit)
        return page.data


# Singleton
audit_service = AuditService()

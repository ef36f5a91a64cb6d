"""Tests for the admin audit logger."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import client_ip_var, user_agent_var
from app.models.audit_log import AdminAuditLog
from app.schemas.audit import (
    AuditAction,
    AuditLogEntry,
    AuditTargetType,
)
from app.services.audit import AuditService, format_action

# ── Helpers ─────────────────────────────────────────────────────────


def _session() -> AsyncMock:
    session = AsyncMock()
    session.add = MagicMock()
    nested = MagicMock()
    nested.__aenter__ = AsyncMock(return_value=None)
    nested.__aexit__ = AsyncMock(return_value=False)
    session.begin_nested = MagicMock(return_value=nested)
    return session


def _entry(**overrides) -> AuditLogEntry:
    data = {
        "action": AuditAction.UPDATE_ORDER_STATUS,
        "target_type": AuditTargetType.ORDER,
        "target_id": 42,
        "old_value": {"status": "paid"},
        "new_value": {"status": "shipped"},
    }
    data.update(overrides)
    return AuditLogEntry(**data)


# ── log() ───────────────────────────────────────────────────────────


class TestLog:
    @pytest.mark.asyncio
    async def test_writes_one_row(self):
        session = _session()
        admin_id = uuid4()

        result = await AuditService().log(
            session,
            _entry(),
            admin_id=admin_id,
            user_agent="Mozilla/5.0",
            ip_address="203.0.113.7",
        )

        assert result.success is True
        assert result.error is None
        session.add.assert_called_once()
        row = session.add.call_args.args[0]
        assert isinstance(row, AdminAuditLog)
        assert row.admin_id == admin_id
        assert row.action == "update_order_status"
        assert row.target_type == "order"
        assert row.target_id == "42"
        assert row.old_value == {"status": "paid"}
        assert row.new_value == {"status": "shipped"}
        assert row.metadata_ == {}
        assert row.user_agent == "Mozilla/5.0"
        assert row.ip_address == "203.0.113.7"
        session.begin_nested.assert_called_once()

    @pytest.mark.asyncio
    async def test_request_context_used_by_default(self):
        session = _session()
        ua_token = user_agent_var.set("Safari/17")
        ip_token = client_ip_var.set("198.51.100.1")
        try:
            await AuditService().log(session, _entry(), admin_id=uuid4())
        finally:
            user_agent_var.reset(ua_token)
            client_ip_var.reset(ip_token)

        row = session.add.call_args.args[0]
        assert row.user_agent == "Safari/17"
        assert row.ip_address == "198.51.100.1"

    @pytest.mark.asyncio
    async def test_snapshots_made_json_safe(self):
        session = _session()
        target = uuid4()

        await AuditService().log(
            session,
            _entry(
                target_id=target,
                old_value={"price": Decimal("19.99")},
                metadata={"when": datetime(2026, 10, 19, 9, 0)},
            ),
            admin_id=uuid4(),
        )

        row = session.add.call_args.args[0]
        assert row.target_id == str(target)
        assert row.old_value == {"price": "19.99"}
        assert row.metadata_ == {"when": "2026-10-19T09:00:00"}

    @pytest.mark.asyncio
    async def test_target_id_optional(self):
        session = _session()
        await AuditService().log(
            session,
            _entry(action=AuditAction.EXPORT_DATA, target_type=AuditTargetType.SETTING, target_id=None),
            admin_id=uuid4(),
        )
        row = session.add.call_args.args[0]
        assert row.target_id is None

    @pytest.mark.asyncio
    async def test_unauthenticated(self):
        session = _session()

        result = await AuditService().log(session, _entry(), admin_id=None)

        assert result.success is False
        assert result.error == "Not authenticated"
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_failure_returns_error_without_raising(self):
        session = _session()
        session.flush.side_effect = SQLAlchemyError("permission denied for table admin_audit_logs")

        result = await AuditService().log(session, _entry(), admin_id=uuid4())

        assert result.success is False
        assert "permission denied" in result.error

    @pytest.mark.asyncio
    async def test_driver_error_outside_sqlalchemy_is_contained(self):
        session = _session()
        session.flush.side_effect = ConnectionResetError("connection reset by peer")

        result = await AuditService().log(session, _entry(), admin_id=uuid4())

        assert result.success is False
        assert "connection reset" in result.error

    @pytest.mark.asyncio
    async def test_failure_result_shape(self):
        session = _session()
        session.flush.side_effect = SQLAlchemyError("boom")

        result = await AuditService().log(session, _entry(), admin_id=uuid4())

        dumped = result.model_dump()
        assert dumped["success"] is False
        assert "boom" in dumped["error"]


# ── format_action ───────────────────────────────────────────────────


class TestFormatAction:
    def test_known_action(self):
        assert format_action(AuditAction.REFUND_ORDER) == "Refunded order"

    def test_known_action_as_string(self):
        assert format_action("ban_user") == "Banned user"

    def test_unknown_action_falls_back(self):
        assert format_action("rotate_keys") == "rotate_keys"

    def test_every_action_has_a_label(self):
        for action in AuditAction:
            assert format_action(action) != action.value


# ── get_logs() ──────────────────────────────────────────────────────


def _log_row(admin_id: UUID) -> AdminAuditLog:
    return AdminAuditLog(
        id=uuid4(),
        admin_id=admin_id,
        action="cancel_order",
        target_type="order",
        target_id="42",
        old_value={"status": "paid"},
        new_value={"status": "cancelled"},
        metadata_={"reason": "customer request"},
        user_agent="Mozilla/5.0",
        created_at=datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc),
    )


def _query_session(total: int, rows: list) -> AsyncMock:
    count_result = MagicMock()
    count_result.scalar_one.return_value = total
    rows_result = MagicMock()
    rows_result.all.return_value = rows
    session = AsyncMock()
    session.execute.side_effect = [count_result, rows_result]
    return session


class TestGetLogs:
    @pytest.mark.asyncio
    async def test_joins_admin_profile(self):
        admin_id = uuid4()
        session = _query_session(1, [(_log_row(admin_id), "Luna", "luna@silkspark.test")])

        page = await AuditService().get_logs(session, target_type=AuditTargetType.ORDER)

        assert page.count == 1
        record = page.data[0]
        assert record.admin_id == admin_id
        assert record.admin_name == "Luna"
        assert record.admin_email == "luna@silkspark.test"
        assert record.metadata == {"reason": "customer request"}
        assert session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_profile_defaults(self):
        session = _query_session(1, [(_log_row(uuid4()), None, None)])

        page = await AuditService().get_logs(session)

        assert page.data[0].admin_name == "Unknown"
        assert page.data[0].admin_email == ""

    @pytest.mark.asyncio
    async def test_empty_page(self):
        session = _query_session(0, [])

        page = await AuditService().get_logs(session, admin_id=uuid4(), action=AuditAction.BAN_USER)

        assert page.count == 0
        assert page.data == []

    @pytest.mark.asyncio
    async def test_resource_history_returns_records(self):
        session = _query_session(1, [(_log_row(uuid4()), "Luna", None)])

        history = await AuditService().get_resource_history(session, AuditTargetType.ORDER, "42")

        assert len(history) == 1
        assert history[0].target_id == "42"

"""Tests for cached catalog listings and audited admin edits."""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.query_cache import QueryCache
from app.models.order import Order
from app.models.product import Product
from app.schemas.audit import AuditAction, AuditLogResult, AuditTargetType
from app.schemas.catalog import ProductUpdate
from app.services.catalog import CatalogService
from app.services.orders import OrderService

# ── Helpers ─────────────────────────────────────────────────────────


def _product_row(name: str, category: str = "crystals") -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        name=name,
        description=None,
        category=category,
        price=Decimal("24.00"),
        stock=10,
        image_url=None,
        is_active=True,
        created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


def _product() -> Product:
    return Product(
        id=uuid4(),
        name="Rose Quartz Tower",
        category="crystals",
        price=Decimal("24.00"),
        stock=10,
        is_active=True,
        created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


def _scalars_result(rows: list) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def _one_result(obj) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = obj
    return result


def _ok_audit():
    return AsyncMock(return_value=AuditLogResult(success=True))


# ── Listings ────────────────────────────────────────────────────────


class TestListings:
    @pytest.mark.asyncio
    async def test_products_cached_per_category(self):
        cache = QueryCache()
        session = AsyncMock()
        session.execute.side_effect = [
            _scalars_result([_product_row("Amethyst")]),
            _scalars_result([_product_row("Sage", category="incense")]),
        ]
        service = CatalogService()

        await service.list_products(session, cache, "crystals")
        again = await service.list_products(session, cache, "crystals")
        other = await service.list_products(session, cache, "incense")

        assert again.from_cache is True
        assert [p.name for p in again.data] == ["Amethyst"]
        assert [p.name for p in other.data] == ["Sage"]
        assert "products:crystals" in cache
        assert "products:incense" in cache
        assert session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_featured_experts_from_shared_cache(self):
        cache = QueryCache()
        experts = [
            SimpleNamespace(
                id=uuid4(), name=name, title=None, bio=None, avatar_url=None,
                specialties=None, hourly_rate=Decimal("80"), rating=rating,
                review_count=3, featured=featured,
            )
            for name, rating, featured in [("Luna", 4.9, True), ("Sol", 4.1, False)]
        ]
        session = AsyncMock()
        session.execute.return_value = _scalars_result(experts)
        service = CatalogService()

        everyone = await service.list_experts(session, cache)
        featured = await service.list_experts(session, cache, featured_only=True)

        assert [e.name for e in everyone.data] == ["Luna", "Sol"]
        assert featured.from_cache is True
        assert [e.name for e in featured.data] == ["Luna"]
        assert session.execute.await_count == 1


# ── Product edits ───────────────────────────────────────────────────


class TestUpdateProduct:
    @pytest.mark.asyncio
    async def test_price_change_audited_and_cache_dropped(self):
        product = _product()
        session = AsyncMock()
        session.execute.return_value = _one_result(product)
        cache = QueryCache()
        cache.set("products:all", ["stale"])
        cache.set("products:crystals", ["stale"])
        cache.set("experts:all", ["keep"])
        admin_id = uuid4()

        with patch("app.services.catalog.audit_service.log", new=_ok_audit()) as mock_log:
            updated = await CatalogService().update_product(
                session, cache, product.id, ProductUpdate(price=Decimal("29.00")), admin_id=admin_id,
            )

        assert updated.price == Decimal("29.00")
        entry = mock_log.await_args.args[1]
        assert entry.action == AuditAction.UPDATE_PRICE
        assert entry.target_type == AuditTargetType.PRODUCT
        assert entry.old_value["price"] == "24.00"
        assert entry.new_value["price"] == "29.00"
        assert entry.metadata == {"fields": ["price"]}
        assert "products:all" not in cache
        assert "products:crystals" not in cache
        assert "experts:all" in cache

    @pytest.mark.asyncio
    async def test_stock_change_is_inventory_update(self):
        product = _product()
        session = AsyncMock()
        session.execute.return_value = _one_result(product)

        with patch("app.services.catalog.audit_service.log", new=_ok_audit()) as mock_log:
            await CatalogService().update_product(
                session, QueryCache(), product.id, ProductUpdate(stock=3), admin_id=uuid4(),
            )

        assert mock_log.await_args.args[1].action == AuditAction.UPDATE_INVENTORY

    @pytest.mark.asyncio
    async def test_multi_field_change_is_product_update(self):
        product = _product()
        session = AsyncMock()
        session.execute.return_value = _one_result(product)

        with patch("app.services.catalog.audit_service.log", new=_ok_audit()) as mock_log:
            await CatalogService().update_product(
                session, QueryCache(), product.id,
                ProductUpdate(name="Rose Quartz Point", stock=4), admin_id=uuid4(),
            )

        assert mock_log.await_args.args[1].action == AuditAction.UPDATE_PRODUCT

    @pytest.mark.asyncio
    async def test_missing_product(self):
        session = AsyncMock()
        session.execute.return_value = _one_result(None)

        with patch("app.services.catalog.audit_service.log", new=_ok_audit()) as mock_log:
            result = await CatalogService().update_product(
                session, QueryCache(), uuid4(), ProductUpdate(stock=1), admin_id=uuid4(),
            )

        assert result is None
        mock_log.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_block_edit(self):
        product = _product()
        session = AsyncMock()
        session.execute.return_value = _one_result(product)
        failing = AsyncMock(return_value=AuditLogResult(success=False, error="boom"))

        with patch("app.services.catalog.audit_service.log", new=failing):
            updated = await CatalogService().update_product(
                session, QueryCache(), product.id, ProductUpdate(stock=1), admin_id=uuid4(),
            )

        assert updated.stock == 1


# ── Order status ────────────────────────────────────────────────────


def _order() -> Order:
    return Order(
        id=uuid4(),
        user_id=uuid4(),
        status="paid",
        total=Decimal("48.00"),
        currency="USD",
    )


class TestOrderStatus:
    @pytest.mark.asyncio
    async def test_status_change_audited(self):
        order = _order()
        session = AsyncMock()
        session.execute.return_value = _one_result(order)

        with patch("app.services.orders.audit_service.log", new=_ok_audit()) as mock_log:
            updated = await OrderService().update_status(session, order.id, "shipped", admin_id=uuid4())

        assert updated.status == "shipped"
        entry = mock_log.await_args.args[1]
        assert entry.action == AuditAction.UPDATE_ORDER_STATUS
        assert entry.old_value == {"status": "paid"}
        assert entry.new_value == {"status": "shipped"}

    @pytest.mark.asyncio
    async def test_cancel_and_refund_actions(self):
        for status, action in [("cancelled", AuditAction.CANCEL_ORDER), ("refunded", AuditAction.REFUND_ORDER)]:
            order = _order()
            session = AsyncMock()
            session.execute.return_value = _one_result(order)

            with patch("app.services.orders.audit_service.log", new=_ok_audit()) as mock_log:
                await OrderService().update_status(session, order.id, status, admin_id=uuid4())

            assert mock_log.await_args.args[1].action == action

    @pytest.mark.asyncio
    async def test_missing_order(self):
        session = AsyncMock()
        session.execute.return_value = _one_result(None)

        result = await OrderService().update_status(session, uuid4(), "shipped", admin_id=uuid4())

        assert result is None

    @pytest.mark.asyncio
    async def test_status_change_drops_cached_histories(self):
        order = _order()
        session = AsyncMock()
        session.execute.return_value = _one_result(order)
        cache = QueryCache()
        cache.set(f"orders:{order.user_id}", ["stale"])
        cache.set("products:all", ["keep"])

        with patch("app.services.orders.audit_service.log", new=_ok_audit()):
            await OrderService().update_status(
                session, order.id, "shipped", admin_id=uuid4(), cache=cache,
            )

        assert f"orders:{order.user_id}" not in cache
        assert "products:all" in cache


# ── Order history ───────────────────────────────────────────────────


def _history_row(user_id, total: str, day: int) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        user_id=user_id,
        status="paid",
        total=Decimal(total),
        currency="USD",
        created_at=datetime(2026, 10, day, tzinfo=timezone.utc),
        items=[
            SimpleNamespace(id=uuid4(), product_id=uuid4(), quantity=2, unit_price=Decimal("12.00")),
        ],
    )


class TestOrderHistory:
    @pytest.mark.asyncio
    async def test_orders_with_items_cached_per_user(self):
        user_id = uuid4()
        cache = QueryCache()
        session = AsyncMock()
        session.execute.return_value = _scalars_result(
            [_history_row(user_id, "24.00", 12), _history_row(user_id, "9.90", 3)]
        )
        service = OrderService()

        first = await service.list_user_orders(session, cache, user_id)
        again = await service.list_user_orders(session, cache, user_id)

        assert [o.total for o in first.data] == [Decimal("24.00"), Decimal("9.90")]
        assert first.data[0].items[0].quantity == 2
        assert again.from_cache is True
        assert f"orders:{user_id}" in cache
        assert session.execute.await_count == 1

        executed = str(session.execute.await_args.args[0])
        assert "ORDER BY orders.created_at DESC" in executed
        assert "orders.user_id" in executed

    @pytest.mark.asyncio
    async def test_users_do_not_share_entries(self):
        cache = QueryCache()
        alice, bob = uuid4(), uuid4()
        session = AsyncMock()
        session.execute.side_effect = [
            _scalars_result([_history_row(alice, "24.00", 12)]),
            _scalars_result([]),
        ]
        service = OrderService()

        await service.list_user_orders(session, cache, alice)
        result = await service.list_user_orders(session, cache, bob)

        assert result.data == []
        assert result.from_cache is False

    @pytest.mark.asyncio
    async def test_refresh_skips_cache(self):
        user_id = uuid4()
        cache = QueryCache()
        cache.set(f"orders:{user_id}", [])
        session = AsyncMock()
        session.execute.return_value = _scalars_result([_history_row(user_id, "24.00", 12)])

        result = await OrderService().list_user_orders(session, cache, user_id, refresh=True)

        assert result.from_cache is False
        assert len(result.data) == 1
        session.execute.assert_awaited_once()

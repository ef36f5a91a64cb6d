"""Generic cached table query.

A TableQuery wraps one table (ORM model) plus an optional filter, ordering,
transform and cache key. ``fetch`` serves fresh cached rows without touching
the database, otherwise selects, validates rows against a pydantic schema,
caches the validated rows and returns the (optionally transformed) result.

Failures never raise out of ``fetch``: they are wrapped in QueryError, kept
on the instance, handed to ``on_error`` and returned in the QueryResult.
There is no automatic retry.

Usage::

    query = TableQuery(
        Expert,
        ExpertRead,
        cache=cache,
        order_by=OrderBy("rating", ascending=False),
        cache_key="experts:all",
    )
    result = await query.fetch(db)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.logging import get_logger
from app.core.query_cache import QueryCache

logger = get_logger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)
ResultT = TypeVar("ResultT")

QueryFilter = Callable[[Select], Select]


class QueryError(Exception):
    """A table fetch failed (database error or row failed validation)."""

    def __init__(self, table: str, message: str) -> None:
        self.table = table
        self.message = message
        super().__init__(f"Failed to fetch {table}: {message}")


@dataclass
class OrderBy:
    column: str
    ascending: bool = True


@dataclass
class QueryResult(Generic[ResultT]):
    """Outcome of a single fetch."""

    data: list[ResultT] = field(default_factory=list)
    error: QueryError | None = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class TableQuery(Generic[RowT, ResultT]):
    """Cached, typed select over a single table."""

    def __init__(
        self,
        model: type,
        schema: type[RowT],
        *,
        cache: QueryCache | None = None,
        filter: QueryFilter | None = None,
        order_by: OrderBy | None = None,
        transform: Callable[[list[RowT]], list[ResultT]] | None = None,
        enabled: bool = True,
        cache_key: str | None = None,
        cache_ttl: float | None = None,
        on_error: Callable[[QueryError], None] | None = None,
        on_success: Callable[[list[ResultT]], None] | None = None,
    ) -> None:
        if order_by is not None and not hasattr(model, order_by.column):
            raise ValueError(f"{model.__name__} has no column {order_by.column!r}")
        if cache_key is not None and cache is None:
            raise ValueError("cache_key given without a cache")

        self.model = model
        self.schema = schema
        self.cache = cache
        self.filter = filter
        self.order_by = order_by
        self.transform = transform
        self.enabled = enabled
        self.cache_key = cache_key
        self.cache_ttl = cache_ttl if cache_ttl is not None else get_settings().query_cache_ttl_seconds
        self.on_error = on_error
        self.on_success = on_success

        self.data: list[ResultT] = []
        self.loading: bool = False
        self.error: QueryError | None = None
        self._generation = 0

    @property
    def table(self) -> str:
        return getattr(self.model, "__tablename__", self.model.__name__)

    def _apply_transform(self, rows: list[RowT]) -> list[ResultT]:
        if self.transform is None:
            return list(rows)  # type: ignore[arg-type]
        return self.transform(rows)

    def _build_statement(self) -> Select:
        stmt = select(self.model)
        if self.filter is not None:
            stmt = self.filter(stmt)
        if self.order_by is not None:
            column = getattr(self.model, self.order_by.column)
            stmt = stmt.order_by(column.asc() if self.order_by.ascending else column.desc())
        return stmt

    async def fetch(self, db: AsyncSession, *, skip_cache: bool = False) -> QueryResult[ResultT]:
        """Return rows from cache when fresh, otherwise from the database."""
        self._generation += 1
        generation = self._generation

        if not self.enabled:
            self.data = []
            self.loading = False
            return QueryResult()

        if self.cache_key and not skip_cache:
            cached = self.cache.get(self.cache_key, ttl=self.cache_ttl)
            if cached is not None:
                logger.debug("query_cache_hit", table=self.table, cache_key=self.cache_key)
                self.data = self._apply_transform(cached)
                self.error = None
                self.loading = False
                return QueryResult(data=self.data, from_cache=True)

        self.loading = True
        self.error = None

        try:
            result = await db.execute(self._build_statement())
            rows = [self.schema.model_validate(obj) for obj in result.scalars().all()]
        except (SQLAlchemyError, ValidationError) as e:
            err = QueryError(self.table, str(e))
            if generation != self._generation:
                return QueryResult(error=err)
            self.error = err
            self.loading = False
            logger.warning("table_query_failed", table=self.table, error=err.message)
            if self.on_error is not None:
                self.on_error(err)
            return QueryResult(error=err)

        data = self._apply_transform(rows)

        # A newer fetch was started while this one was awaiting the database
        if generation != self._generation:
            logger.debug("table_query_superseded", table=self.table)
            return QueryResult(data=data)

        if self.cache_key:
            self.cache.set(self.cache_key, rows)

        self.data = data
        self.loading = False
        if self.on_success is not None:
            self.on_success(data)
        return QueryResult(data=data)

    async def refetch(self, db: AsyncSession) -> QueryResult[ResultT]:
        """Invalidate this query's cache entry and fetch from the database."""
        if self.cache_key:
            self.cache.invalidate(self.cache_key)
        return await self.fetch(db, skip_cache=True)

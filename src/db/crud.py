"""
Generic CRUD helpers shared by the domain services.

Each domain service subclasses `BaseCrudService` with its model and adds
cross-entity checks (existence, uniqueness, conflicts) on top.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.errors import NotFoundError

logger = structlog.get_logger()

ModelT = TypeVar("ModelT")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def normalize_pagination(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE."""
    page = max(1, int(page or 1))
    limit = min(max(1, int(limit or DEFAULT_PAGE_SIZE)), MAX_PAGE_SIZE)
    return page, limit


@dataclass
class PageResult(Generic[ModelT]):
    """One page of rows plus the counters the API exposes as `meta`."""

    items: list[ModelT]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self, serialize: Callable[[ModelT], Any]) -> dict[str, Any]:
        return {
            "data": [serialize(item) for item in self.items],
            "meta": {
                "totalItems": self.total,
                "itemsPerPage": self.limit,
                "totalPages": self.total_pages,
                "currentPage": self.page,
            },
        }


async def paginate_query(
    session: AsyncSession,
    query: Select,
    *,
    page: int | None,
    limit: int | None,
) -> PageResult:
    """Run `query` with offset/limit and a matching count query."""
    page, limit = normalize_pagination(page, limit)

    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await session.execute(count_query)).scalar_one()

    result = await session.execute(query.offset((page - 1) * limit).limit(limit))
    items = list(result.scalars().unique().all())
    return PageResult(items=items, total=int(total), page=page, limit=limit)


class BaseCrudService(Generic[ModelT]):
    """Session-bound repository helper for one model."""

    model: type[ModelT]
    entity_name: str = "Resource"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @property
    def _soft_deletable(self) -> bool:
        return hasattr(self.model, "is_deleted")

    def base_query(self, *, include_deleted: bool = False) -> Select:
        query = select(self.model)
        if self._soft_deletable and not include_deleted:
            query = query.where(self.model.is_deleted.is_(False))
        return query

    async def get(
        self,
        entity_id: int,
        *,
        include_deleted: bool = False,
        options: Sequence[Any] = (),
    ) -> ModelT | None:
        query = self.base_query(include_deleted=include_deleted).where(self.model.id == entity_id)
        if options:
            query = query.options(*options)
        result = await self.session.execute(query)
        return result.scalars().unique().one_or_none()

    async def get_or_404(
        self,
        entity_id: int,
        *,
        message: str | None = None,
        include_deleted: bool = False,
        options: Sequence[Any] = (),
    ) -> ModelT:
        instance = await self.get(entity_id, include_deleted=include_deleted, options=options)
        if instance is None:
            raise NotFoundError(message=message or f"{self.entity_name} with ID {entity_id} not found")
        return instance

    async def list(
        self,
        *filters: Any,
        order_by: Iterable[Any] | None = None,
        options: Sequence[Any] = (),
        include_deleted: bool = False,
    ) -> list[ModelT]:
        query = self.base_query(include_deleted=include_deleted).where(*filters)
        if order_by is not None:
            query = query.order_by(*order_by)
        if options:
            query = query.options(*options)
        result = await self.session.execute(query)
        return list(result.scalars().unique().all())

    async def paginate(
        self,
        page: int | None,
        limit: int | None,
        *filters: Any,
        order_by: Iterable[Any] | None = None,
        options: Sequence[Any] = (),
        include_deleted: bool = False,
    ) -> PageResult[ModelT]:
        query = self.base_query(include_deleted=include_deleted).where(*filters)
        if order_by is not None:
            query = query.order_by(*order_by)
        if options:
            query = query.options(*options)
        return await paginate_query(self.session, query, page=page, limit=limit)

    async def first(self, *filters: Any, order_by: Iterable[Any] | None = None, include_deleted: bool = False) -> ModelT | None:
        query = self.base_query(include_deleted=include_deleted).where(*filters)
        if order_by is not None:
            query = query.order_by(*order_by)
        result = await self.session.execute(query.limit(1))
        return result.scalars().first()

    async def exists(self, *filters: Any, include_deleted: bool = True) -> bool:
        return await self.first(*filters, include_deleted=include_deleted) is not None

    async def count(self, *filters: Any, include_deleted: bool = False) -> int:
        query = self.base_query(include_deleted=include_deleted).where(*filters)
        total = await self.session.execute(select(func.count()).select_from(query.subquery()))
        return int(total.scalar_one())

    async def create(self, **values: Any) -> ModelT:
        instance = self.model(**values)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, instance: ModelT, values: dict[str, Any]) -> ModelT:
        for key, value in values.items():
            setattr(instance, key, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, instance: ModelT) -> None:
        await self.session.delete(instance)
        await self.session.flush()

    async def soft_delete(self, instance: ModelT) -> ModelT:
        return await self.update(instance, {"is_deleted": True})

    async def restore(self, instance: ModelT) -> ModelT:
        return await self.update(instance, {"is_deleted": False})

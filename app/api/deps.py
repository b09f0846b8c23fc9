"""
Helpers shared by the resource routers: tenant-scoped lookups,
pagination and sorting.
"""
from typing import Any, Optional, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidReferenceException, NotFoundException
from app.models.order import CLOSED_ORDER_STATUSES, Order
from app.schemas.common import PaginationMeta

ModelT = TypeVar("ModelT")


async def get_tenant_entity(
    db: AsyncSession,
    model: type[ModelT],
    entity_id: UUID,
    tenant_id: UUID,
    message: str = "Nie znaleziono zasobu",
) -> ModelT:
    """Row of ``model`` owned by the tenant, or 404."""
    result = await db.execute(
        select(model).where(model.id == entity_id, model.tenant_id == tenant_id)
    )
    entity = result.scalar_one_or_none()
    if entity is None:
        raise NotFoundException(message)
    return entity


async def ensure_reference(
    db: AsyncSession,
    model: type,
    entity_id: Optional[UUID],
    tenant_id: UUID,
    field: str,
    message: str,
    active_only: bool = False,
) -> Any:
    """
    Referenced row must exist in the tenant (400 otherwise).
    ``None`` is accepted and returned as is.
    """
    if entity_id is None:
        return None
    query = select(model).where(model.id == entity_id, model.tenant_id == tenant_id)
    if active_only:
        query = query.where(model.is_active.is_(True))
    entity = (await db.execute(query)).scalar_one_or_none()
    if entity is None:
        raise InvalidReferenceException(message, field=field, value=entity_id)
    return entity


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int,
    limit: int,
) -> tuple[Sequence[Any], PaginationMeta]:
    """Run ``query`` for one page and count the full result."""
    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return result.scalars().all(), PaginationMeta.build(page, limit, total or 0)


def apply_sorting(query: Select, model: type, sort_by: str, sort_order: str) -> Select:
    column = getattr(model, sort_by)
    return query.order_by(column.asc() if sort_order == "asc" else column.desc())


async def count_active_orders(db: AsyncSession, column, entity_id: UUID) -> int:
    """Orders referencing the entity that are neither completed nor cancelled."""
    return await db.scalar(
        select(func.count(Order.id)).where(
            column == entity_id,
            Order.status.notin_(CLOSED_ORDER_STATUSES),
        )
    ) or 0


def model_to_dict(entity: Any) -> Optional[dict[str, Any]]:
    """Column values of a mapped object, as loaded."""
    if entity is None:
        return None
    return {attr.key: getattr(entity, attr.key) for attr in sa_inspect(entity).mapper.column_attrs}

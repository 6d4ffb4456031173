from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shms.modules.halls import models_halls


async def get_halls(
    db: AsyncSession,
    is_active: bool | None = None,
) -> Sequence[models_halls.Hall]:
    query = select(models_halls.Hall)
    if is_active is not None:
        query = query.where(models_halls.Hall.is_active.is_(is_active))
    result = await db.execute(query.order_by(models_halls.Hall.name))
    return result.scalars().all()


async def get_hall_by_id(
    db: AsyncSession,
    hall_id: str,
) -> models_halls.Hall | None:
    result = await db.execute(
        select(models_halls.Hall).where(models_halls.Hall.id == hall_id),
    )
    return result.scalars().first()


async def get_halls_by_ids(
    db: AsyncSession,
    hall_ids: list[str],
) -> Sequence[models_halls.Hall]:
    result = await db.execute(
        select(models_halls.Hall).where(models_halls.Hall.id.in_(hall_ids)),
    )
    return result.scalars().all()


async def count_halls(
    db: AsyncSession,
) -> int:
    result = await db.execute(select(func.count(models_halls.Hall.id)))
    return result.scalar_one()


async def replace_halls(
    db: AsyncSession,
    halls: list[models_halls.Hall],
) -> None:
    """
    Replace the hall catalogue: halls absent from `halls` are deleted, the others are inserted or updated
    """
    await db.execute(
        delete(models_halls.Hall).where(
            models_halls.Hall.id.not_in([hall.id for hall in halls]),
        ),
    )
    for hall in halls:
        await db.merge(hall)
    await db.flush()


async def create_halls(
    db: AsyncSession,
    halls: list[models_halls.Hall],
) -> None:
    db.add_all(halls)
    await db.flush()

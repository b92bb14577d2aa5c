"""Shared persistence helpers for repositories over async SQLModel sessions."""

from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, func
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Writes flush but never commit; the calling service owns the transaction."""

    model: ClassVar[type[SQLModel]]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, entity_id: int) -> ModelType | None:
        return await self._session.get(self.model, entity_id)  # type: ignore[return-value]

    async def add(self, instance: ModelType) -> ModelType:
        self._session.add(instance)
        await self._session.flush()
        return instance

    async def delete(self, instance: ModelType) -> None:
        await self._session.delete(instance)
        await self._session.flush()

    async def refresh(self, instance: ModelType) -> ModelType:
        await self._session.refresh(instance)
        return instance

    async def _all(self, statement: Select[Any]) -> list[ModelType]:
        result = await self._session.execute(statement)
        return list(result.scalars().all())

    async def _first(self, statement: Select[Any]) -> ModelType | None:
        result = await self._session.execute(statement)
        return result.scalar_one_or_none()

    async def _count(self, *criteria: ColumnElement[bool]) -> int:
        statement = select(func.count()).select_from(self.model)
        if criteria:
            statement = statement.where(*criteria)
        result = await self._session.execute(statement)
        return int(result.scalar_one())

    async def _count_grouped(self, column: Any) -> dict[Any, int]:
        """Map each distinct value of ``column`` to its row count."""
        result = await self._session.execute(select(column, func.count()).group_by(column))
        return {key: int(total) for key, total in result.all()}

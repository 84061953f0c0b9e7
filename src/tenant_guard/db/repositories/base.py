"""
tenant_guard.db.repositories.base

Tenant-scoped repository bases.

Responsibilities:
- Inject the tenant predicate into every read, update and delete.
- Stamp tenant ownership on every create.
- Translate storage failures into `TransientStoreError`.

Every model that mixes in `TenantOwned` or `TenantShared` must be accessed through a
subclass of these bases.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_guard.auth.context import current
from tenant_guard.db.base import Base
from tenant_guard.db.scoping import read_predicate, stamp_create, write_predicate
from tenant_guard.errors import AuthorizationDenied, TransientStoreError

ModelT = TypeVar("ModelT", bound=Base)

_OWNERSHIP_FIELDS = frozenset(("tenant_id", "is_system"))


class ScopedReadRepo(Generic[ModelT]):
    """
    Reads and creates only; used directly by append-only kinds.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _select(self) -> Select[tuple[ModelT]]:
        return select(self.model).where(read_predicate(self.model))

    async def _all(self, stmt: Select[Any]) -> list[ModelT]:
        try:
            return list((await self._session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            raise TransientStoreError(f"{self.model.__name__} read failed") from e

    async def _one_or_none(self, stmt: Select[Any]) -> ModelT | None:
        try:
            return (await self._session.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            raise TransientStoreError(f"{self.model.__name__} read failed") from e

    async def get(self, id: uuid.UUID) -> ModelT | None:
        return await self._one_or_none(self._select().where(self.model.id == id))

    async def find_one(self, *criteria: ColumnElement[bool]) -> ModelT | None:
        return await self._one_or_none(self._select().where(*criteria).limit(1))

    async def find_many(
        self,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = self._select().where(*criteria)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._all(stmt)

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(read_predicate(self.model), *criteria)
        )
        try:
            return int((await self._session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            raise TransientStoreError(f"{self.model.__name__} count failed") from e

    async def create(self, **values: Any) -> ModelT:
        obj = self.model(**stamp_create(self.model, values))
        self._session.add(obj)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise TransientStoreError(f"{self.model.__name__} create failed") from e
        return obj


class ScopedRepo(ScopedReadRepo[ModelT]):
    """
    Full CRUD; updates and deletes are AND-ed with the write predicate, so a known id
    from another tenant matches zero rows.
    """

    async def update(self, id: uuid.UUID, **values: Any) -> bool:
        return await self.update_many(self.model.id == id, values=values) > 0

    async def update_many(self, *criteria: ColumnElement[bool], values: dict[str, Any]) -> int:
        self._guard_ownership(values)
        rows = await self._writable(*criteria)
        for row in rows:
            for key, value in values.items():
                setattr(row, key, value)
        await self._flush("update")
        return len(rows)

    async def delete(self, id: uuid.UUID) -> bool:
        return await self.delete_many(self.model.id == id) > 0

    async def delete_many(self, *criteria: ColumnElement[bool]) -> int:
        rows = await self._writable(*criteria)
        for row in rows:
            await self._session.delete(row)
        await self._flush("delete")
        return len(rows)

    async def _writable(self, *criteria: ColumnElement[bool]) -> list[ModelT]:
        # Load through the write predicate so the session copies stay in sync with the rows.
        return await self._all(select(self.model).where(*criteria, write_predicate(self.model)))

    async def _flush(self, verb: str) -> None:
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise TransientStoreError(f"{self.model.__name__} {verb} failed") from e

    def _guard_ownership(self, values: dict[str, Any]) -> None:
        if _OWNERSHIP_FIELDS.isdisjoint(values):
            return
        if current().is_super_admin:
            return
        raise AuthorizationDenied("Tenant ownership of a record cannot be changed")


# --- Module Notes -----------------------------------------------------------
# Repositories stay thin: authorization decisions (RBAC/ABAC/eligibility) belong in
# services. Only tenant scoping lives here.

"""
Generic async repository (Data Access Layer).

Implements the Repository pattern on top of SQLAlchemy's ``AsyncSession``.
Concrete repositories inherit from ``BaseRepository[T]`` and override
:meth:`BaseRepository.ordering` or add queries when an entity needs them.

Error handling:
- Transport-level failures (``OperationalError``, connection/OS errors,
  timeouts) roll the session back and surface as
  :class:`StoreUnavailableException`.  Nothing is retried here.
- While the shared circuit breaker is open, calls fail fast with the same
  exception.
- ``IntegrityError`` is NOT translated; the service decides what it means.
"""

import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlmodel import SQLModel

from invtracker.core.exceptions import StoreUnavailableException
from invtracker.core.resilience import STORE_FAILURES, CircuitBreakerError, db_circuit_breaker

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic CRUD repository for SQLModel entities.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        An active async database session (injected per-request).
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # ── Internal helpers ──

    @property
    def _pk(self) -> Any:
        return self.model.__table__.primary_key.columns  # type: ignore[attr-defined]

    def ordering(self) -> List[Any]:
        """Columns ``list_all`` orders by.  Defaults to the primary key."""
        return list(self._pk)

    async def _execute(self, op: str, func: Any) -> Any:
        """Run ``func`` through the circuit breaker, translating store failures."""
        try:
            return await db_circuit_breaker.call(func)
        except CircuitBreakerError as exc:
            logger.warning("%s %s rejected: %s", op, self.model.__name__, exc)
            raise StoreUnavailableException(str(exc)) from exc
        except STORE_FAILURES as exc:
            logger.error(
                "Store failure during %s for %s: %s: %s",
                op,
                self.model.__name__,
                type(exc).__name__,
                exc,
            )
            raise StoreUnavailableException() from exc

    async def _commit(self, op: str) -> None:
        try:
            await self.db.commit()
        except OperationalError:
            await self.db.rollback()
            logger.error("OperationalError during %s for %s", op, self.model.__name__)
            raise

    # ── CRUD ──

    async def get(self, id: Any) -> Optional[ModelType]:
        """Fetch a single entity by primary key.  Returns ``None`` if not found."""

        async def _get() -> Optional[ModelType]:
            return await self.db.get(self.model, id)

        return await self._execute("get", _get)

    async def list_all(self) -> List[ModelType]:
        """Return every entity, ordered by :meth:`ordering`.  No pagination."""

        async def _list_all() -> List[ModelType]:
            stmt = select(self.model).order_by(*self.ordering())
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._execute("list_all", _list_all)

    async def create(self, obj_in: ModelType) -> ModelType:
        """Insert a new entity and return the refreshed instance."""

        async def _create() -> ModelType:
            self.db.add(obj_in)
            await self._commit("create")
            await self.db.refresh(obj_in)
            return obj_in

        return await self._execute("create", _create)

    async def update(self, entity: ModelType) -> ModelType:
        """
        Persist changes to an already-loaded entity.

        The caller mutates the entity's attributes first; this merges,
        commits and refreshes so the result reflects the stored row.
        """

        async def _update() -> ModelType:
            merged = await self.db.merge(entity)
            await self._commit("update")
            await self.db.refresh(merged)
            return merged

        return await self._execute("update", _update)

    async def delete_by_id(self, id: Any) -> int:
        """
        Delete an entity by primary key with a single DELETE statement.

        Returns the number of rows removed: 1, or 0 if nothing matched.
        """

        async def _delete() -> int:
            (pk_column,) = self._pk
            pk_attr = getattr(self.model, pk_column.name)
            result = await self.db.execute(delete(self.model).where(pk_attr == id))
            await self._commit("delete")
            return result.rowcount or 0

        return await self._execute("delete", _delete)

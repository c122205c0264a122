"""
Investment service — the record store adapter's business layer.

Turns repository results into domain outcomes: unknown ids become
:class:`NotFoundException`, constraint violations become
:class:`InvalidArgumentException`, and store outages arrive from the
repository as :class:`StoreUnavailableException`.  No call is retried.
"""

import logging
from typing import List

from sqlalchemy.exc import IntegrityError

from invtracker.core.dates import as_utc, utcnow
from invtracker.core.exceptions import InvalidArgumentException, NotFoundException
from invtracker.models.investment import Investment
from invtracker.repositories.investment_repo import InvestmentRepository
from invtracker.schemas.investment import InvestmentCreate, InvestmentPatch

logger = logging.getLogger(__name__)


class InvestmentService:
    """Encapsulates CRUD + business rules for :class:`Investment`."""

    def __init__(self, repo: InvestmentRepository):
        self._repo = repo

    # ── Queries ──

    async def list_investments(self) -> List[Investment]:
        """Return every investment in insertion order."""
        return await self._repo.list_all()

    async def get_investment(self, investment_id: str) -> Investment:
        """
        Retrieve a single investment by id.

        Raises :class:`NotFoundException` if it does not exist.
        """
        investment = await self._repo.get(investment_id)
        if investment is None:
            raise NotFoundException("Investment", investment_id)
        return investment

    # ── Commands ──

    async def create_investment(self, invest_in: InvestmentCreate) -> Investment:
        """
        Persist a new investment.

        ``id``, ``created_at`` and ``updated_at`` are assigned here; the
        returned instance is the refreshed row, so callers need no re-read.
        """
        now = utcnow()
        investment = Investment(
            **invest_in.model_dump(exclude={"id"}),
            created_at=now,
            updated_at=now,
        )
        try:
            created = await self._repo.create(investment)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError creating investment: %s", exc)
            raise InvalidArgumentException(
                "Investment data violates a database constraint. Check all fields."
            )
        logger.info(
            "Created investment %s (%s, holder %s, %s %s)",
            created.id,
            created.investment_name,
            created.holder_name,
            created.investment_kind,
            created.investment_amount,
        )
        return created

    async def update_investment(self, patch: InvestmentPatch) -> Investment:
        """
        Merge the fields present in ``patch`` over the stored investment.

        Omitted fields keep their stored value; ``start_date`` / ``end_date``
        sent as null are cleared.  ``updated_at`` is always bumped.

        Raises :class:`NotFoundException` for an unknown id and
        :class:`InvalidArgumentException` if the merged record ends before
        it starts or violates a database constraint.
        """
        investment = await self._repo.get(patch.id)
        if investment is None:
            raise NotFoundException("Investment", patch.id)

        changes = patch.changes()
        for key, value in changes.items():
            setattr(investment, key, value)

        start, end = investment.start_date, investment.end_date
        if start is not None and end is not None and as_utc(end) < as_utc(start):
            await self._repo.db.rollback()
            raise InvalidArgumentException("end_date must not be before start_date")

        investment.updated_at = utcnow()
        try:
            updated = await self._repo.update(investment)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError updating investment %s: %s", patch.id, exc)
            raise InvalidArgumentException(
                "Investment update violates a database constraint. Check all fields."
            )
        logger.info("Updated investment %s (fields: %s)", updated.id, ", ".join(changes) or "-")
        return updated

    async def delete_investment(self, investment_id: str) -> int:
        """
        Delete an investment by id.

        Idempotent: returns the number of rows removed, 0 when the id is
        unknown (or already deleted).
        """
        affected = await self._repo.delete_by_id(investment_id)
        if affected:
            logger.info("Deleted investment %s", investment_id)
        else:
            logger.debug("Delete of unknown investment %s affected no rows", investment_id)
        return affected

"""
Investment repository — data-access layer for the ``investments`` table.
"""

from typing import Any, List

from invtracker.models.investment import Investment
from invtracker.repositories.base import BaseRepository


class InvestmentRepository(BaseRepository[Investment]):
    """Concrete repository for :class:`Investment` entities."""

    def ordering(self) -> List[Any]:
        """Insertion order: creation time, ties broken by id."""
        return [Investment.created_at, Investment.id]  # type: ignore[list-item]

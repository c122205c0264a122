"""
Investment API endpoints.

- POST   /inv        — Create an investment
- GET    /inv/{id}   — Retrieve an investment
- PATCH  /inv        — Update / renew an investment (id in request body)
- DELETE /inv/{id}   — Delete an investment (idempotent)
- GET    /invs       — List every investment in insertion order

Pure translation layer: every rule lives in :class:`InvestmentService`.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invtracker.db.session import get_db
from invtracker.models.investment import Investment
from invtracker.repositories.investment_repo import InvestmentRepository
from invtracker.schemas.common import ErrorResponse, ValidationErrorResponse
from invtracker.schemas.investment import (
    AffectedRows,
    InvestmentCreate,
    InvestmentPatch,
    InvestmentResponse,
)
from invtracker.services.investment_service import InvestmentService

router = APIRouter()

_STORE_UNAVAILABLE = {503: {"model": ErrorResponse, "description": "Data store unavailable"}}


def _get_investment_service(db: AsyncSession = Depends(get_db)) -> InvestmentService:
    """Build an InvestmentService wired to the current request's DB session."""
    return InvestmentService(InvestmentRepository(Investment, db))


@router.post(
    "/inv",
    response_model=InvestmentResponse,
    summary="Create an investment",
    description=(
        "Persists a new investment.  The ``id`` must be absent (or null); the "
        "store assigns ``id``, ``created_at`` and ``updated_at``."
    ),
    responses={
        422: {"model": ValidationErrorResponse, "description": "Invalid argument"},
        **_STORE_UNAVAILABLE,
    },
)
async def create_investment(
    investment: InvestmentCreate,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.create_investment(investment)


@router.get(
    "/inv/{investment_id}",
    response_model=InvestmentResponse,
    summary="Get an investment",
    responses={
        404: {"model": ErrorResponse, "description": "Investment not found"},
        **_STORE_UNAVAILABLE,
    },
)
async def get_investment(
    investment_id: str,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.get_investment(investment_id)


@router.patch(
    "/inv",
    response_model=InvestmentResponse,
    summary="Update or renew an investment",
    description=(
        "Partial update keyed by the ``id`` in the body.  Omitted fields are "
        "unchanged; ``start_date`` / ``end_date`` sent as null are cleared.  "
        "Returns the full merged record."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Investment not found"},
        422: {"model": ValidationErrorResponse, "description": "Invalid argument"},
        **_STORE_UNAVAILABLE,
    },
)
async def update_investment(
    patch: InvestmentPatch,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.update_investment(patch)


@router.delete(
    "/inv/{investment_id}",
    response_model=AffectedRows,
    summary="Delete an investment",
    description="Idempotent: deleting an unknown id returns ``affected_rows: 0``.",
    responses=_STORE_UNAVAILABLE,
)
async def delete_investment(
    investment_id: str,
    service: InvestmentService = Depends(_get_investment_service),
) -> AffectedRows:
    affected = await service.delete_investment(investment_id)
    return AffectedRows(affected_rows=affected)


@router.get(
    "/invs",
    response_model=List[InvestmentResponse],
    summary="List investments",
    description="Every investment in insertion order.  No pagination or filtering.",
    responses=_STORE_UNAVAILABLE,
)
async def list_investments(
    service: InvestmentService = Depends(_get_investment_service),
) -> List[InvestmentResponse]:
    return await service.list_investments()

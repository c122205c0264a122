"""
Unit tests for InvestmentService — business logic layer.

All repository calls are mocked.  Tests cover:
- get/list: found, not found
- create_investment: store-assigned fields, IntegrityError
- update_investment: merge semantics, clearing dates, date order, not found
- delete_investment: affected-row passthrough
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from invtracker.core.exceptions import (
    InvalidArgumentException,
    NotFoundException,
    StoreUnavailableException,
)
from invtracker.models.investment import Investment
from invtracker.schemas.investment import InvestmentCreate, InvestmentPatch
from invtracker.services.investment_service import InvestmentService

from .conftest import CREATED, END, INVESTMENT_ID, investment_payload, make_investment


@pytest.fixture()
def repo():
    repo = AsyncMock()
    repo.db = AsyncMock()
    repo.create.side_effect = lambda inv: inv
    repo.update.side_effect = lambda inv: inv
    return repo


@pytest.fixture()
def service(repo):
    return InvestmentService(repo)


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_found(self, service, repo):
        repo.get.return_value = make_investment()
        result = await service.get_investment(INVESTMENT_ID)
        assert result.id == INVESTMENT_ID
        repo.get.assert_awaited_once_with(INVESTMENT_ID)

    @pytest.mark.asyncio
    async def test_get_not_found(self, service, repo):
        repo.get.return_value = None
        with pytest.raises(NotFoundException):
            await service.get_investment("missing")

    @pytest.mark.asyncio
    async def test_list_passthrough(self, service, repo):
        repo.list_all.return_value = [make_investment()]
        assert len(await service.list_investments()) == 1

    @pytest.mark.asyncio
    async def test_store_unavailable_propagates(self, service, repo):
        repo.list_all.side_effect = StoreUnavailableException()
        with pytest.raises(StoreUnavailableException):
            await service.list_investments()


class TestCreateInvestment:
    @pytest.mark.asyncio
    async def test_assigns_id_and_timestamps(self, service, repo):
        created = await service.create_investment(InvestmentCreate(**investment_payload()))

        assert isinstance(created, Investment)
        assert created.id
        assert created.created_at == created.updated_at
        assert created.created_at.tzinfo is not None
        assert created.investment_name == "Car Fund"
        repo.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_each_create_gets_a_fresh_id(self, service):
        first = await service.create_investment(InvestmentCreate(**investment_payload()))
        second = await service.create_investment(InvestmentCreate(**investment_payload()))
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_integrity_error_becomes_invalid_argument(self, service, repo):
        repo.create.side_effect = IntegrityError("INSERT", {}, Exception("ck"))
        with pytest.raises(InvalidArgumentException):
            await service.create_investment(InvestmentCreate(**investment_payload()))
        repo.db.rollback.assert_awaited_once()


class TestUpdateInvestment:
    @pytest.mark.asyncio
    async def test_merges_only_sent_fields(self, service, repo):
        repo.get.return_value = make_investment()
        patch = InvestmentPatch(id=INVESTMENT_ID, return_rate=12)

        updated = await service.update_investment(patch)

        assert updated.return_rate == 12
        assert updated.investment_name == "Car Fund"
        assert updated.end_date == END
        assert updated.updated_at > CREATED
        assert updated.created_at == CREATED

    @pytest.mark.asyncio
    async def test_explicit_null_clears_date(self, service, repo):
        repo.get.return_value = make_investment()
        patch = InvestmentPatch.model_validate({"id": INVESTMENT_ID, "end_date": None})

        updated = await service.update_investment(patch)

        assert updated.end_date is None
        assert updated.start_date is not None

    @pytest.mark.asyncio
    async def test_renewal_extends_end_date(self, service, repo):
        repo.get.return_value = make_investment()
        patch = InvestmentPatch(id=INVESTMENT_ID, end_date="2026-01-01")

        updated = await service.update_investment(patch)

        assert updated.end_date == datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_merged_end_before_start_rejected(self, service, repo):
        repo.get.return_value = make_investment()
        patch = InvestmentPatch(id=INVESTMENT_ID, end_date="2023-06-01")

        with pytest.raises(InvalidArgumentException, match="end_date"):
            await service.update_investment(patch)
        repo.update.assert_not_awaited()
        repo.db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_naive_stored_dates_compare_as_utc(self, service, repo):
        repo.get.return_value = make_investment(start_date=datetime(2024, 1, 1), end_date=None)
        patch = InvestmentPatch(id=INVESTMENT_ID, end_date="2024-01-01")

        updated = await service.update_investment(patch)

        assert updated.end_date == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_unknown_id(self, service, repo):
        repo.get.return_value = None
        with pytest.raises(NotFoundException):
            await service.update_investment(InvestmentPatch(id="missing", return_rate=1))
        repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_integrity_error_becomes_invalid_argument(self, service, repo):
        repo.get.return_value = make_investment()
        repo.update.side_effect = IntegrityError("UPDATE", {}, Exception("ck"))
        with pytest.raises(InvalidArgumentException):
            await service.update_investment(InvestmentPatch(id=INVESTMENT_ID, return_rate=1))


class TestDeleteInvestment:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("rows", [0, 1])
    async def test_returns_affected_rows(self, service, repo, rows):
        repo.delete_by_id.return_value = rows
        assert await service.delete_investment(INVESTMENT_ID) == rows
        repo.delete_by_id.assert_awaited_once_with(INVESTMENT_ID)

"""
End-to-end tests: client session → HTTP → real app → SQLite store.

The real application is served through ``httpx.ASGITransport`` with
``get_db`` overridden to a private in-memory database, and driven through
the client forms, controller and state exactly as a user would.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from invtracker.client.api_client import InvestmentApiClient
from invtracker.client.config import ClientSettings
from invtracker.client.forms import CreateInvestmentForm, InvestmentDraft, RenewInvestmentForm
from invtracker.client.session import ClientSession
from invtracker.core.exceptions import NotFoundException, ValidationFailedException
from invtracker.db.session import get_db
from invtracker.main import app

from .conftest import investment_payload


@pytest_asyncio.fixture()
async def http(session_factory):
    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture()
async def session(http):
    errors = []
    api = InvestmentApiClient(client=http)
    async with ClientSession(
        ClientSettings(CLIENT_TIMEOUT=5.0, _env_file=None),  # type: ignore[call-arg]
        api=api,
        on_error=lambda intent, exc: errors.append((intent, exc)),
    ) as client_session:
        client_session.errors = errors
        yield client_session


def _fill(form: CreateInvestmentForm, **overrides) -> None:
    for name, value in investment_payload(**overrides).items():
        form.set_field(name, value)


class TestScenarios:
    @pytest.mark.asyncio
    async def test_session_starts_empty(self, session):
        assert session.loaded is True
        assert session.state.investments == ()

    @pytest.mark.asyncio
    async def test_create_then_read_back(self, session):
        form = CreateInvestmentForm()
        _fill(form)

        created = await form.submit(session.controller)

        assert created is not None and created.id
        assert session.state.investments == (created,)
        assert form.draft.investment_name == ""
        fetched = await session.api.get(created.id)
        assert fetched == created

    @pytest.mark.asyncio
    async def test_renew_extends_end_date(self, session):
        form = CreateInvestmentForm()
        _fill(form)
        created = await form.submit(session.controller)

        renew = RenewInvestmentForm(created)
        renew.set_field("end_date", "2026-01-01")
        renewed = await renew.submit(session.controller)

        assert renewed.end_date == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert renewed.start_date == created.start_date
        assert renewed.investment_amount == created.investment_amount
        assert renewed.created_at == created.created_at
        assert session.state.get(created.id) == renewed
        assert len(session.state) == 1

    @pytest.mark.asyncio
    async def test_delete_twice(self, session):
        form = CreateInvestmentForm()
        _fill(form)
        created = await form.submit(session.controller)

        assert await session.controller.delete(created.id) is True
        assert session.state.investments == ()
        assert await session.controller.delete(created.id) is False
        assert session.state.investments == ()
        assert session.errors == []
        with pytest.raises(NotFoundException):
            await session.api.get(created.id)

    @pytest.mark.asyncio
    async def test_incomplete_form_never_reaches_backend(self, session, http):
        form = CreateInvestmentForm()
        form.set_field("investment_name", "Car Fund")

        with pytest.raises(ValidationFailedException) as exc_info:
            await form.submit(session.controller)

        assert "holder_name" in exc_info.value.errors
        assert (await http.get("/invs")).json() == []
        assert session.state.investments == ()

    @pytest.mark.asyncio
    async def test_reload_sees_insertion_order(self, session):
        for name in ("A", "B", "C"):
            form = CreateInvestmentForm()
            _fill(form, investment_name=name)
            await form.submit(session.controller)

        session.state.replace_all([])
        assert await session.controller.initialize() is True
        assert [r.investment_name for r in session.state] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_backend_rejection_leaves_state_unchanged(self, session):
        draft = InvestmentDraft(
            **investment_payload(
                start_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
                end_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        )

        assert await session.controller.create(draft) is None
        assert session.state.investments == ()
        intent, exc = session.errors[-1]
        assert exc.kind == "InvalidArgument"


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, http):
        resp = await http.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["circuit_breaker"]["state"] == "closed"


class TestWireScenarios:
    """The documented request/response walk-through, over raw HTTP."""

    @pytest.mark.asyncio
    async def test_car_fund_walkthrough(self, http):
        created = (await http.post("/inv", json=investment_payload())).json()
        assert created["id"]
        assert created["start_date"].startswith("2024-01-01T00:00:00")

        listed = (await http.get("/invs")).json()
        assert [item["id"] for item in listed] == [created["id"]]

        resp = await http.delete("/inv/missing-1")
        assert resp.status_code == 200
        assert resp.json() == {"affected_rows": 0}

        resp = await http.patch("/inv", json={"id": created["id"], "return_amount": 1200})
        assert resp.status_code == 200
        patched = resp.json()
        assert patched["return_amount"] == 1200
        unchanged = set(created) - {"return_amount", "updated_at"}
        assert {k: patched[k] for k in unchanged} == {k: created[k] for k in unchanged}

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found(self, http):
        resp = await http.get("/inv/missing-1")
        assert resp.status_code == 404
        assert resp.json()["kind"] == "NotFound"

        resp = await http.patch("/inv", json={"id": "missing-1", "return_rate": 3})
        assert resp.status_code == 404

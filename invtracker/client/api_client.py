"""HTTP client for the investment API."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from invtracker.core.exceptions import AppException, StoreUnavailableException, exception_from_body
from invtracker.schemas.investment import AffectedRows, InvestmentPatch, InvestmentResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class InvestmentApiClient:
    """
    Thin async wrapper over the five investment endpoints.

    Error responses are decoded back into the domain exception named by the
    body's ``kind``; connection failures and timeouts are raised as
    :class:`StoreUnavailableException`.  Nothing is retried.

    Pass ``client`` to reuse an existing ``httpx.AsyncClient`` (tests hand in
    one bound to an ``ASGITransport``); it is then left open by :meth:`aclose`.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout_seconds
        )

    async def __aenter__(self) -> "InvestmentApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Endpoints ──

    async def create(self, payload: dict[str, Any]) -> InvestmentResponse:
        data = await self._request("POST", "/inv", json=payload)
        return _parse(InvestmentResponse, data)

    async def get(self, investment_id: str) -> InvestmentResponse:
        data = await self._request("GET", f"/inv/{quote(investment_id, safe='')}")
        return _parse(InvestmentResponse, data)

    async def update(self, patch: InvestmentPatch) -> InvestmentResponse:
        # exclude_unset keeps "omitted" and "explicitly null" apart on the wire
        data = await self._request(
            "PATCH", "/inv", json=patch.model_dump(mode="json", exclude_unset=True)
        )
        return _parse(InvestmentResponse, data)

    async def delete(self, investment_id: str) -> int:
        data = await self._request("DELETE", f"/inv/{quote(investment_id, safe='')}")
        return _parse(AffectedRows, data).affected_rows

    async def list_all(self) -> List[InvestmentResponse]:
        data = await self._request("GET", "/invs")
        if not isinstance(data, list):
            raise AppException(status_code=502, message="List response is not a JSON array")
        return [_parse(InvestmentResponse, item) for item in data]

    # ── Transport ──

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise StoreUnavailableException(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise StoreUnavailableException(f"Failed to reach the investment API: {exc}") from exc
        except httpx.HTTPError as exc:
            raise AppException(
                status_code=502, message=f"{method} {path} failed: {exc}"
            ) from exc

        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            logger.debug("%s %s -> %d: %s", method, path, response.status_code, body)
            raise exception_from_body(response.status_code, body)

        try:
            return response.json()
        except ValueError as exc:
            raise AppException(
                status_code=502, message="Investment API returned invalid JSON"
            ) from exc


def _parse(model: Type[ModelT], data: Any) -> ModelT:
    """Validate a success body; a body of the wrong shape is a bad gateway response."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning("Unexpected %s body from investment API: %s", model.__name__, exc)
        raise AppException(
            status_code=502,
            message=f"Investment API returned a malformed {model.__name__}",
            details=exc.errors(include_url=False),
        ) from exc

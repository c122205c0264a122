"""
Client controller: one backend call, then at most one state mutation.

The visible state only ever reflects confirmed backend results.  Nothing is
applied optimistically and nothing is retried.  A failed, timed-out or
cancelled intent leaves the state untouched; failures are reported through
``on_error`` instead of being raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set, TypeVar

from invtracker.client.api_client import InvestmentApiClient
from invtracker.client.forms import InvestmentDraft
from invtracker.client.state import InvestmentState
from invtracker.core.exceptions import AppException, StoreUnavailableException
from invtracker.schemas.investment import InvestmentPatch, InvestmentResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")
ErrorHandler = Callable[[str, AppException], None]


def _log_error(intent: str, exc: AppException) -> None:
    logger.warning("%s failed (%s): %s", intent, exc.kind, exc.message)


class InvestmentController:
    """
    Orchestrates investment intents against the API and the state store.

    Parameters
    ----------
    api : InvestmentApiClient
        Backend access.
    state : InvestmentState
        The session's state store; mutated only after a successful response.
    timeout_seconds : float
        Upper bound for one intent, network included.  Expiry is reported as
        ``StoreUnavailable``.
    on_error : callable, optional
        Receives ``(intent, exception)`` for every failed intent.  Defaults to
        logging a warning.
    """

    def __init__(
        self,
        api: InvestmentApiClient,
        state: InvestmentState,
        *,
        timeout_seconds: float = 10.0,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self.api = api
        self.state = state
        self.timeout_seconds = timeout_seconds
        self.last_error: Optional[AppException] = None
        self._on_error = on_error or _log_error
        self._pending: Set[asyncio.Task[Any]] = set()

    # ── Intents ──

    async def initialize(self) -> bool:
        """Load every investment and replace the state wholesale."""
        records = await self._call("initialize", self.api.list_all)
        if records is None:
            return False
        self.state.replace_all(records)
        logger.info("Loaded %d investments", len(records))
        return True

    async def create(self, draft: InvestmentDraft) -> Optional[InvestmentResponse]:
        """
        Create an investment from a validated draft and append the stored
        record (with its server-assigned id).
        """
        created = await self._call("create", self.api.create, draft.to_payload())
        if created is None:
            return None
        self.state.append(created)
        return created

    async def delete(self, investment_id: str) -> bool:
        """Delete by id; the record leaves the state only if a row was removed."""
        affected = await self._call("delete", self.api.delete, investment_id)
        if not affected:
            if affected == 0:
                logger.info("Delete of %s affected no rows; state unchanged", investment_id)
            return False
        self.state.remove_by_id(investment_id)
        return True

    async def edit(self, patch: InvestmentPatch) -> Optional[InvestmentResponse]:
        """Apply ``patch`` and replace the record with the merged result."""
        updated = await self._call("edit", self.api.update, patch)
        if updated is None:
            return None
        self.state.replace_by_id(updated)
        return updated

    renew = edit

    # ── Scheduling & cancellation ──

    def dispatch(self, intent: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """
        Run an intent in the background, e.g.
        ``controller.dispatch(controller.delete(inv_id))``.

        The returned task is the intent's cancellation handle; a cancelled
        intent never touches the state.
        """
        task = asyncio.ensure_future(intent)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def cancel_pending(self) -> None:
        """Cancel every dispatched intent that is still in flight."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending intents", len(tasks))

    # ── Internals ──

    async def _call(
        self, intent: str, func: Callable[..., Awaitable[T]], *args: Any
    ) -> Optional[T]:
        """Await one backend call under the timeout; None means it failed."""
        try:
            return await asyncio.wait_for(func(*args), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self._report(
                intent,
                StoreUnavailableException(
                    f"{intent} did not complete within {self.timeout_seconds:g}s"
                ),
            )
        except AppException as exc:
            self._report(intent, exc)
        return None

    def _report(self, intent: str, exc: AppException) -> None:
        self.last_error = exc
        self._on_error(intent, exc)

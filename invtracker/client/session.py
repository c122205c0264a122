"""
Client session wiring.

A :class:`ClientSession` owns exactly one API client, one state store and one
controller.  Entering it loads the collection; leaving it cancels anything
still in flight and closes the HTTP connection pool::

    async with ClientSession() as session:
        await session.controller.create(draft)
        print(session.state.investments)
"""

import logging
from typing import Any, Optional

from invtracker.client.api_client import InvestmentApiClient
from invtracker.client.config import ClientSettings
from invtracker.client.controller import ErrorHandler, InvestmentController
from invtracker.client.state import InvestmentState

logger = logging.getLogger(__name__)


class ClientSession:
    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        api: Optional[InvestmentApiClient] = None,
        state: Optional[InvestmentState] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.api = api or InvestmentApiClient(
            self.settings.API_BASE_URL, timeout_seconds=self.settings.CLIENT_TIMEOUT
        )
        self.state = state or InvestmentState()
        self.controller = InvestmentController(
            self.api,
            self.state,
            timeout_seconds=self.settings.CLIENT_TIMEOUT,
            on_error=on_error,
        )
        self.loaded = False

    async def __aenter__(self) -> "ClientSession":
        logger.info("Opening client session against %s", self.settings.API_BASE_URL)
        self.loaded = await self.controller.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.controller.cancel_pending()
        await self.api.aclose()
        logger.info("Client session closed")

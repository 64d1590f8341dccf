"""Asynchronous casedesk client.

:class:`AsyncCasedeskClient` mirrors :class:`~casedesk.client.CasedeskClient`
over the async transport; every component it hands out has coroutine I/O
methods.

Usage::

    import asyncio
    from casedesk import AsyncCasedeskClient

    async def main():
        async with AsyncCasedeskClient(url="https://xyz.supabase.co", api_key="...") as client:
            cases = client.cases()
            await cases.refresh()
            session = cases.begin_edit(42)
            session.set_field("status", "in_review")
            print((await session.save()).summary())

    asyncio.run(main())
"""

from __future__ import annotations

from typing import Any

import httpx

from casedesk.checklist import AsyncDocumentChecklist
from casedesk.config import CasedeskConfig
from casedesk.documents import AsyncDocumentReview
from casedesk.edit.fields import FieldMap, case_fields, client_fields
from casedesk.edit.session import AsyncRecordEditSession
from casedesk.faq import AsyncFaqCatalog
from casedesk.notifications import AsyncNotificationCenter
from casedesk.records import AsyncRecordList
from casedesk.store import AsyncRpcAPI, AsyncStorageAPI, AsyncStoreTransport, AsyncTableAPI
from casedesk.webhook import AsyncTelegramWebhookHandler


class AsyncCasedeskClient:
    """Asynchronous casedesk client.

    Parameters
    ----------
    url:
        Supabase project URL.
    api_key:
        Project API key (anon or service role).
    http_transport:
        Optional :class:`httpx.AsyncBaseTransport`, mainly for tests.
    **kwargs:
        All remaining keyword arguments are forwarded to
        :class:`CasedeskConfig`.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        self._setup(CasedeskConfig(url=url, api_key=api_key, **kwargs), http_transport)

    @classmethod
    def from_config(
        cls,
        config: CasedeskConfig,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> AsyncCasedeskClient:
        client = cls.__new__(cls)
        client._setup(config, http_transport)
        return client

    def _setup(
        self, config: CasedeskConfig, http_transport: httpx.AsyncBaseTransport | None,
    ) -> None:
        self._config = config
        self._transport = AsyncStoreTransport(config, http_transport)
        self._rpc = AsyncRpcAPI(self._transport)
        self._storage = AsyncStorageAPI(self._transport, config.storage_bucket)
        self._documents = AsyncDocumentReview(self.table("user_documents"), self._storage, config)
        self._notifications = AsyncNotificationCenter(self._rpc, config.metrics)
        self._faq = AsyncFaqCatalog(self.table("faq"))
        self._checklist = AsyncDocumentChecklist(self.table("processes"))

    @property
    def config(self) -> CasedeskConfig:
        return self._config

    @property
    def rpc(self) -> AsyncRpcAPI:
        return self._rpc

    @property
    def storage(self) -> AsyncStorageAPI:
        return self._storage

    def table(self, name: str) -> AsyncTableAPI:
        return AsyncTableAPI(self._transport, name)

    def cases(self) -> AsyncRecordList:
        return AsyncRecordList(
            self.table("cases"),
            case_fields(self._config.currency),
            order="created_at",
            descending=True,
            metrics=self._config.metrics,
        )

    def clients(self) -> AsyncRecordList:
        return AsyncRecordList(
            self.table("users"),
            client_fields(),
            filters={"role": "client"},
            order="created_at",
            descending=True,
            metrics=self._config.metrics,
        )

    def edit_session(self, field_map: FieldMap) -> AsyncRecordEditSession:
        return AsyncRecordEditSession(
            self.table(field_map.table), field_map, self._config.metrics,
        )

    @property
    def documents(self) -> AsyncDocumentReview:
        return self._documents

    @property
    def notifications(self) -> AsyncNotificationCenter:
        return self._notifications

    @property
    def faq(self) -> AsyncFaqCatalog:
        return self._faq

    @property
    def checklist(self) -> AsyncDocumentChecklist:
        return self._checklist

    def webhook_handler(self) -> AsyncTelegramWebhookHandler:
        return AsyncTelegramWebhookHandler(
            self.table("users"), self.table("questions"), self._config.metrics,
        )

    async def close(self) -> None:
        """Close the HTTP transport."""
        await self._transport.close()

    async def __aenter__(self) -> AsyncCasedeskClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

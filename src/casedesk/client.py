"""Synchronous casedesk client.

:class:`CasedeskClient` wires one :class:`~casedesk.store.StoreTransport`
to the table, storage and RPC wrappers and hands out the dashboard
components built on them.

Usage::

    from casedesk import CasedeskClient

    with CasedeskClient(url="https://xyz.supabase.co", api_key="...") as client:
        cases = client.cases()
        cases.refresh()
        session = cases.begin_edit(42)
        session.set_field("payment", "1500 PLN")
        result = session.save()
        print(result.summary())
"""

from __future__ import annotations

from typing import Any

import httpx

from casedesk.checklist import DocumentChecklist
from casedesk.config import CasedeskConfig
from casedesk.documents import DocumentReview
from casedesk.edit.fields import FieldMap, case_fields, client_fields
from casedesk.edit.session import RecordEditSession
from casedesk.faq import FaqCatalog
from casedesk.notifications import NotificationCenter
from casedesk.records import RecordList
from casedesk.store import RpcAPI, StorageAPI, StoreTransport, TableAPI
from casedesk.webhook import TelegramWebhookHandler


class CasedeskClient:
    """Synchronous casedesk client.

    Parameters
    ----------
    url:
        Supabase project URL.
    api_key:
        Project API key (anon or service role).
    http_transport:
        Optional :class:`httpx.BaseTransport`, mainly for tests.
    **kwargs:
        All remaining keyword arguments are forwarded to
        :class:`CasedeskConfig`.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        http_transport: httpx.BaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        self._setup(CasedeskConfig(url=url, api_key=api_key, **kwargs), http_transport)

    @classmethod
    def from_config(
        cls,
        config: CasedeskConfig,
        http_transport: httpx.BaseTransport | None = None,
    ) -> CasedeskClient:
        """Build a client around an existing configuration."""
        client = cls.__new__(cls)
        client._setup(config, http_transport)
        return client

    def _setup(self, config: CasedeskConfig, http_transport: httpx.BaseTransport | None) -> None:
        self._config = config
        self._transport = StoreTransport(config, http_transport)
        self._rpc = RpcAPI(self._transport)
        self._storage = StorageAPI(self._transport, config.storage_bucket)
        self._documents = DocumentReview(self.table("user_documents"), self._storage, config)
        self._notifications = NotificationCenter(self._rpc, config.metrics)
        self._faq = FaqCatalog(self.table("faq"))
        self._checklist = DocumentChecklist(self.table("processes"))

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    @property
    def config(self) -> CasedeskConfig:
        return self._config

    @property
    def rpc(self) -> RpcAPI:
        return self._rpc

    @property
    def storage(self) -> StorageAPI:
        return self._storage

    def table(self, name: str) -> TableAPI:
        return TableAPI(self._transport, name)

    # ------------------------------------------------------------------
    # Dashboard components
    # ------------------------------------------------------------------

    def cases(self) -> RecordList:
        """Case list, newest first, with amounts in the configured currency."""
        return RecordList(
            self.table("cases"),
            case_fields(self._config.currency),
            order="created_at",
            descending=True,
            metrics=self._config.metrics,
        )

    def clients(self) -> RecordList:
        """Users with the ``client`` role, newest first."""
        return RecordList(
            self.table("users"),
            client_fields(),
            filters={"role": "client"},
            order="created_at",
            descending=True,
            metrics=self._config.metrics,
        )

    def edit_session(self, field_map: FieldMap) -> RecordEditSession:
        """A standalone edit session for entities of ``field_map.table``."""
        return RecordEditSession(self.table(field_map.table), field_map, self._config.metrics)

    @property
    def documents(self) -> DocumentReview:
        return self._documents

    @property
    def notifications(self) -> NotificationCenter:
        return self._notifications

    @property
    def faq(self) -> FaqCatalog:
        return self._faq

    @property
    def checklist(self) -> DocumentChecklist:
        return self._checklist

    def webhook_handler(self) -> TelegramWebhookHandler:
        return TelegramWebhookHandler(
            self.table("users"), self.table("questions"), self._config.metrics,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> CasedeskClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

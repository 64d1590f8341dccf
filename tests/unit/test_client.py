"""End-to-end tests for CasedeskClient / AsyncCasedeskClient over httpx.MockTransport."""

from __future__ import annotations

import copy
import json

import httpx
import pytest
from conftest import CASE_ROW

from casedesk import AsyncCasedeskClient, CasedeskClient, CasedeskConfig, SaveOutcome
from casedesk.edit import case_fields
from casedesk.errors import CasedeskStoreWriteError


class FakeSupabase:
    """Minimal PostgREST emulation for the ``cases`` table."""

    def __init__(self) -> None:
        self.rows = {CASE_ROW["id"]: copy.deepcopy(CASE_ROW)}
        self.requests: list[httpx.Request] = []
        self.fail_patch = False
        self.patch_error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params
        if path == "/rest/v1/cases" and request.method == "GET":
            rows = list(self.rows.values())
            if "id" in params:
                rows = [r for r in rows if f"eq.{r['id']}" == params["id"]]
            return httpx.Response(200, json=rows)
        if path == "/rest/v1/cases" and request.method == "PATCH":
            if self.patch_error is not None:
                raise self.patch_error
            if self.fail_patch:
                return httpx.Response(503, json={"message": "unavailable"})
            record_id = int(params["id"].removeprefix("eq."))
            self.rows[record_id].update(json.loads(request.content))
            return httpx.Response(204)
        return httpx.Response(404, json={"message": f"no route {path}"})

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]


def _client(store: FakeSupabase) -> CasedeskClient:
    return CasedeskClient(
        url="https://project.supabase.co",
        api_key="test-key-1234",
        http_transport=httpx.MockTransport(store),
        retry_base_delay=0.0,
        retry_jitter=False,
        rate_limit_rps=10_000.0,
    )


class TestCasedeskClient:
    def test_edit_single_field(self):
        store = FakeSupabase()
        with _client(store) as client:
            cases = client.cases()
            cases.refresh()
            session = cases.begin_edit(1)
            session.set_field("payment", "1600 PLN")
            result = session.save()

        assert result.outcome is SaveOutcome.SAVED
        assert result.summary() == "1 field updated"
        patches = [r for r in store.requests if r.method == "PATCH"]
        assert len(patches) == 1
        assert json.loads(patches[0].content) == {"payment_amount": 1600}
        assert cases.get(1)["payment"] == "1600 PLN"
        assert store.methods() == ["GET", "PATCH", "GET"]

    def test_no_changes_makes_no_request(self):
        store = FakeSupabase()
        client = _client(store)
        cases = client.cases()
        cases.refresh()
        session = cases.begin_edit(1)
        session.set_field("payment", 1500)
        assert session.save().summary() == "no changes"
        assert store.methods() == ["GET"]
        client.close()

    def test_write_failure_is_not_retried(self):
        store = FakeSupabase()
        store.fail_patch = True
        client = _client(store)
        cases = client.cases()
        cases.refresh()
        session = cases.begin_edit(1)
        session.set_field("status", "approved")
        with pytest.raises(CasedeskStoreWriteError):
            session.save()
        assert store.methods() == ["GET", "PATCH"]
        assert session.editing
        assert cases.get(1)["status"] == "approved"
        client.close()

    def test_dropped_connection_surfaces_as_write_error(self):
        store = FakeSupabase()
        store.patch_error = httpx.RemoteProtocolError("Server disconnected")
        client = _client(store)
        cases = client.cases()
        cases.refresh()
        session = cases.begin_edit(1)
        session.set_field("notes", "Call back on Monday")
        with pytest.raises(CasedeskStoreWriteError) as exc_info:
            session.save()
        assert isinstance(exc_info.value.cause.cause, httpx.RemoteProtocolError)
        assert store.methods() == ["GET", "PATCH"]
        assert session.editing
        client.close()

    def test_list_query(self):
        store = FakeSupabase()
        client = _client(store)
        client.cases().refresh()
        params = store.requests[0].url.params
        assert params["select"] == "*"
        assert params["order"] == "created_at.desc"
        client.close()

    def test_from_config(self):
        config = CasedeskConfig(url="https://project.supabase.co", api_key="k" * 8, currency="EUR")
        client = CasedeskClient.from_config(config, httpx.MockTransport(FakeSupabase()))
        assert client.config is config
        cases = client.cases()
        cases.refresh()
        assert cases.get(1)["payment"] == "1500 EUR"
        client.close()

    def test_components_are_wired(self):
        client = _client(FakeSupabase())
        assert client.storage.bucket == "legal-bot"
        assert client.table("questions").table == "questions"
        assert client.notifications.unread_count == 0
        assert client.faq is not None
        assert client.checklist is not None
        assert client.webhook_handler() is not None
        assert client.edit_session(case_fields()).state.value == "viewing"
        client.close()


class TestAsyncCasedeskClient:
    @pytest.mark.asyncio
    async def test_edit_single_field(self):
        store = FakeSupabase()
        async with AsyncCasedeskClient(
            url="https://project.supabase.co",
            api_key="test-key-1234",
            http_transport=httpx.MockTransport(store),
            rate_limit_rps=10_000.0,
        ) as client:
            cases = client.cases()
            await cases.refresh()
            session = cases.begin_edit(1)
            session.set_field("notes", "Waiting for passport copy")
            result = await session.save()

        assert result.outcome is SaveOutcome.SAVED
        assert store.rows[1]["notes"] == "Waiting for passport copy"
        assert store.methods() == ["GET", "PATCH", "GET"]

"""Tests for the Firestore REST client."""

import json

import httpx
import pytest

from herdbook.core import client
from herdbook.core.client import DocumentNotFound, HerdbookAPIError

DOCUMENTS = "/v1/projects/test-project/databases/(default)/documents"


def _document(doc_id: str, **fields) -> dict:
    return {
        "name": f"projects/test-project/databases/(default)/documents/animals/{doc_id}",
        "fields": {key: {"stringValue": value} for key, value in fields.items()},
    }


class TestFirestoreRequest:
    """Tests for the low-level request function."""

    async def test_sends_api_key(self, mock_firestore):
        route = mock_firestore.get(f"{DOCUMENTS}/animals/cow-1").mock(
            return_value=httpx.Response(200, json=_document("cow-1", brinco="V001"))
        )

        await client.firestore_request("GET", "/animals/cow-1")

        assert route.calls[0].request.url.params["key"] == "test-api-key"

    async def test_no_bearer_token_without_account(self, mock_firestore):
        route = mock_firestore.get(f"{DOCUMENTS}/animals").mock(return_value=httpx.Response(200, json={}))

        await client.firestore_request("GET", "/animals")

        assert "authorization" not in route.calls[0].request.headers

    async def test_empty_body_returns_empty_dict(self, mock_firestore):
        mock_firestore.delete(f"{DOCUMENTS}/animals/cow-1").mock(return_value=httpx.Response(200))

        assert await client.firestore_request("DELETE", "/animals/cow-1") == {}

    async def test_raises_on_http_error(self, mock_firestore):
        mock_firestore.get(f"{DOCUMENTS}/animals").mock(return_value=httpx.Response(403))

        with pytest.raises(httpx.HTTPStatusError):
            await client.firestore_request("GET", "/animals")


class TestRetry:
    """Tests for error classification in firestore_request_with_retry."""

    async def test_404_is_document_not_found(self, mock_firestore):
        mock_firestore.get(f"{DOCUMENTS}/animals/nope").mock(return_value=httpx.Response(404))

        with pytest.raises(DocumentNotFound):
            await client.get_document("animals", "nope")

    async def test_403_is_not_retried(self, mock_firestore):
        route = mock_firestore.get(f"{DOCUMENTS}/animals/cow-1").mock(
            return_value=httpx.Response(403, json={"error": {"message": "denied"}})
        )

        with pytest.raises(HerdbookAPIError):
            await client.get_document("animals", "cow-1")

        assert route.call_count == 1

    async def test_server_error_is_retried(self, mock_firestore):
        route = mock_firestore.get(f"{DOCUMENTS}/animals/cow-1").mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json=_document("cow-1", brinco="V001")),
            ]
        )

        record = await client.get_document("animals", "cow-1")

        assert record == {"id": "cow-1", "brinco": "V001"}
        assert route.call_count == 2


class TestListDocuments:
    """Tests for list_documents."""

    async def test_follows_page_tokens(self, mock_firestore):
        route = mock_firestore.get(f"{DOCUMENTS}/animals").mock(
            side_effect=[
                httpx.Response(200, json={"documents": [_document("a", brinco="A1")], "nextPageToken": "p2"}),
                httpx.Response(200, json={"documents": [_document("b", brinco="B1")]}),
            ]
        )

        records = await client.list_documents("animals")

        assert [r["id"] for r in records] == ["a", "b"]
        assert route.calls[1].request.url.params["pageToken"] == "p2"

    async def test_empty_collection(self, mock_firestore):
        mock_firestore.get(f"{DOCUMENTS}/tasks").mock(return_value=httpx.Response(200, json={}))

        assert await client.list_documents("tasks") == []


class TestQueryDocuments:
    """Tests for query_documents."""

    async def test_sends_equality_filter_and_skips_empty_rows(self, mock_firestore):
        route = mock_firestore.post(f"{DOCUMENTS}:runQuery").mock(
            return_value=httpx.Response(
                200,
                json=[{"document": _document("cow-1", userId="u1")}, {"readTime": "2025-01-15T00:00:00Z"}],
            )
        )

        records = await client.query_documents("animals", "userId", "u1")

        assert records == [{"id": "cow-1", "userId": "u1"}]
        body = json.loads(route.calls[0].request.content)
        where = body["structuredQuery"]["where"]["fieldFilter"]
        assert where["field"]["fieldPath"] == "userId"
        assert where["op"] == "EQUAL"
        assert where["value"] == {"stringValue": "u1"}


class TestWrites:
    """Tests for create_document and set_document."""

    async def test_create_passes_document_id_and_strips_id_field(self, mock_firestore):
        route = mock_firestore.post(f"{DOCUMENTS}/animals").mock(
            return_value=httpx.Response(200, json=_document("cow-1", brinco="V001"))
        )

        await client.create_document("animals", {"id": "cow-1", "brinco": "V001"}, doc_id="cow-1")

        request = route.calls[0].request
        assert request.url.params["documentId"] == "cow-1"
        assert "id" not in json.loads(request.content)["fields"]

    async def test_merge_sets_update_mask_including_removed_fields(self, mock_firestore):
        route = mock_firestore.patch(f"{DOCUMENTS}/animals/cow-1").mock(
            return_value=httpx.Response(200, json=_document("cow-1", brinco="V002"))
        )

        await client.set_document("animals", "cow-1", {"brinco": "V002", "managementAreaId": None})

        request = route.calls[0].request
        assert request.url.params.get_list("updateMask.fieldPaths") == ["brinco", "managementAreaId"]
        assert json.loads(request.content)["fields"] == {"brinco": {"stringValue": "V002"}}


class TestPing:
    """Tests for ping."""

    async def test_reachable(self, mock_firestore):
        mock_firestore.get(f"{DOCUMENTS}/animals").mock(return_value=httpx.Response(200, json={}))

        assert await client.ping() is True

    async def test_unreachable(self, mock_firestore):
        mock_firestore.get(f"{DOCUMENTS}/animals").mock(side_effect=httpx.ConnectError("down"))

        assert await client.ping() is False

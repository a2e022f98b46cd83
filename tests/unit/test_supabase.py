"""Unit tests for the aiohttp Supabase client."""

import json

import aiohttp
import pytest

from snapchef.storage.supabase import SupabaseClient, SupabaseHTTPError
from snapchef.utils.errors import ReadError, StorageError, WriteError


class FakeResponse:
    def __init__(self, status: int, body: str):
        self.status = status
        self._body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def text(self):
        return self._body


class FakeSession:
    """Records requests and replays canned (status, body) responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        status, body = response
        return FakeResponse(status, body if isinstance(body, str) else json.dumps(body))


def make_client(*responses):
    session = FakeSession(*responses)
    return SupabaseClient("https://example.supabase.co/", "anon-key", session=session), session


class TestClientSetup:
    """Test construction and headers."""

    def test_requires_url_and_key(self):
        """Test that URL and key are mandatory."""
        with pytest.raises(ValueError):
            SupabaseClient("", "key")
        with pytest.raises(ValueError):
            SupabaseClient("https://example.supabase.co", "")

    def test_from_config(self, settings):
        """Test building the client from settings."""
        client = SupabaseClient.from_config(settings)

        assert client.url == "https://example.supabase.co"
        assert client.key == "test-supabase-key"

    def test_public_url(self):
        """Test public object URLs."""
        client, _ = make_client()

        assert (
            client.public_url("snapimages", "public/1.jpg")
            == "https://example.supabase.co/storage/v1/object/public/snapimages/public/1.jpg"
        )


class TestUpload:
    """Test storage uploads."""

    @pytest.mark.asyncio
    async def test_upload(self):
        """Test that bytes are posted with auth and content headers."""
        client, session = make_client((200, {"Key": "snapimages/public/1.jpg"}))

        result = await client.upload("snapimages", "public/1.jpg", b"jpeg", "image/jpeg")

        assert result.path == "public/1.jpg"
        assert result.full_path == "snapimages/public/1.jpg"
        request = session.requests[0]
        assert request["method"] == "POST"
        assert request["url"] == "https://example.supabase.co/storage/v1/object/snapimages/public/1.jpg"
        assert request["data"] == b"jpeg"
        assert request["headers"]["apikey"] == "anon-key"
        assert request["headers"]["Authorization"] == "Bearer anon-key"
        assert request["headers"]["Content-Type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_upload_http_error(self):
        """Test that a non-2xx response becomes a StorageError."""
        client, _ = make_client((409, '{"error": "Duplicate"}'))

        with pytest.raises(StorageError, match="Duplicate") as exc:
            await client.upload("snapimages", "public/1.jpg", b"jpeg", "image/jpeg")
        assert isinstance(exc.value.__cause__, SupabaseHTTPError)
        assert exc.value.__cause__.status == 409

    @pytest.mark.asyncio
    async def test_upload_connection_error(self):
        """Test that connection failures become a StorageError."""
        client, _ = make_client(aiohttp.ClientConnectionError("refused"))

        with pytest.raises(StorageError, match="refused"):
            await client.upload("snapimages", "public/1.jpg", b"jpeg", "image/jpeg")


class TestInsert:
    """Test PostgREST inserts."""

    @pytest.mark.asyncio
    async def test_insert_returns_rows(self):
        """Test that inserts ask for the representation and return it."""
        client, session = make_client((201, [{"id": 7}]))

        rows = await client.insert("snap", {"image_url": "public/1.jpg"}, returning="id")

        assert rows == [{"id": 7}]
        request = session.requests[0]
        assert request["url"] == "https://example.supabase.co/rest/v1/snap"
        assert request["params"] == {"select": "id"}
        assert request["json"] == {"image_url": "public/1.jpg"}
        assert request["headers"]["Prefer"] == "return=representation"

    @pytest.mark.asyncio
    async def test_insert_empty_body(self):
        """Test that an empty response body yields no rows."""
        client, _ = make_client((201, ""))

        assert await client.insert("recipe", {"title": "A"}) == []

    @pytest.mark.asyncio
    async def test_insert_error(self):
        """Test that a failed insert becomes a WriteError."""
        client, _ = make_client((400, '{"message": "null value in column"}'))

        with pytest.raises(WriteError, match="Insert into recipe failed"):
            await client.insert("recipe", {"title": "A"})


class TestSelect:
    """Test PostgREST selects."""

    @pytest.mark.asyncio
    async def test_select_builds_query(self):
        """Test equality filters, ordering and limit."""
        client, session = make_client((200, [{"id": 1}]))

        rows = await client.select("recipe", filters={"parent_snap": 3}, order="created_at.desc", limit=4)

        assert rows == [{"id": 1}]
        request = session.requests[0]
        assert request["method"] == "GET"
        assert request["params"] == {
            "select": "*",
            "parent_snap": "eq.3",
            "order": "created_at.desc",
            "limit": "4",
        }

    @pytest.mark.asyncio
    async def test_select_error(self):
        """Test that a failed select becomes a ReadError."""
        client, _ = make_client((500, "internal error"))

        with pytest.raises(ReadError, match="Select from snap failed"):
            await client.select("snap")

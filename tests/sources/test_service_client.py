"""Tests for the shared async HTTP client."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from sources.base import ServiceClient, format_datetime, parse_datetime
from sync.errors import TransportError


class TestDatetimes:
    def test_parse_z_suffix(self):
        assert parse_datetime("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)

    def test_parse_offset_normalised_to_utc(self):
        parsed = parse_datetime("2024-01-01T10:00:00+02:00")
        assert parsed == datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_parse_naive_assumed_utc(self):
        assert parse_datetime("2024-01-01T10:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_parse_invalid(self, value):
        assert parse_datetime(value) is None

    def test_format(self):
        assert format_datetime(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "2024-01-01T00:00:00Z"


class TestServiceClient:
    @pytest.mark.asyncio
    async def test_get_json(self, mock_transport_client, no_wait_retry):
        def handler(request):
            assert request.url.path == "/api/items"
            assert request.url.params["q"] == "x"
            return httpx.Response(200, json={"ok": True})

        client = ServiceClient("http://svc/api/", client=mock_transport_client(handler), retry=no_wait_retry)
        assert await client.get_json("items", params={"q": "x"}) == {"ok": True}
        await client.close()

    @pytest.mark.asyncio
    async def test_http_error_translated(self, mock_transport_client, no_wait_retry):
        client = ServiceClient(
            "http://svc",
            client=mock_transport_client(lambda r: httpx.Response(500, text="boom")),
            retry=no_wait_retry,
        )
        with pytest.raises(TransportError, match="HTTP 500"):
            await client.get("x")

    @pytest.mark.asyncio
    async def test_transport_error_retried(self, mock_transport_client, no_wait_retry):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=[])

        client = ServiceClient("http://svc", client=mock_transport_client(handler), retry=no_wait_retry)
        assert await client.get_json("x") == []
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_transport_error_gives_up(self, mock_transport_client, no_wait_retry):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = ServiceClient("http://svc", client=mock_transport_client(handler), retry=no_wait_retry)
        with pytest.raises(TransportError, match="failed"):
            await client.get("x")

    @pytest.mark.asyncio
    async def test_post_not_retried(self, mock_transport_client, no_wait_retry):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        client = ServiceClient("http://svc", client=mock_transport_client(handler), retry=no_wait_retry)
        with pytest.raises(TransportError):
            await client.post("x", json={})
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_json(self, mock_transport_client, no_wait_retry):
        client = ServiceClient(
            "http://svc",
            client=mock_transport_client(lambda r: httpx.Response(200, text="<html>")),
            retry=no_wait_retry,
        )
        with pytest.raises(TransportError, match="invalid JSON"):
            await client.get_json("x")

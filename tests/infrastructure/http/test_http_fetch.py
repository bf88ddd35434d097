"""Tests for HTTP fetch helpers."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from infrastructure.http.client import (
    fetch_bytes,
    fetch_json,
    fetch_text,
    make_http_session,
)

URL = 'https://assets.test/co-op.png?access_token=secret'


def _response(status, body=b''):
    resp = MagicMock()
    resp.status = status
    resp.read = AsyncMock(return_value=body)
    resp.release = MagicMock()
    return resp


def _client(*responses):
    client = MagicMock()
    client.get = AsyncMock(side_effect=list(responses))
    return client


class TestMakeHttpSession:
    """Tests for make_http_session function."""

    @pytest.mark.asyncio
    async def test_creates_session(self):
        session = make_http_session()
        assert isinstance(session, aiohttp.ClientSession)
        await session.close()


class TestFetchBytes:
    """Tests for fetch_bytes retry policy."""

    @pytest.mark.asyncio
    async def test_ok(self):
        resp = _response(200, b'data')
        client = _client(resp)
        assert await fetch_bytes(client, URL) == b'data'
        resp.release.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', [401, 403, 404])
    async def test_fatal_status_not_retried(self, status):
        client = _client(_response(status), _response(200, b'data'))
        with pytest.raises(RuntimeError, match=f'HTTP {status}'):
            await fetch_bytes(client, URL, retries=3)
        assert client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self):
        client = _client(_response(503), _response(200, b'data'))
        with pytest.raises(RuntimeError, match='Не удалось загрузить'):
            await fetch_bytes(client, URL)
        assert client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_5xx_and_429(self):
        client = _client(_response(503), _response(429), _response(200, b'data'))
        with patch('infrastructure.http.client.asyncio.sleep', new=AsyncMock()) as sleep:
            assert await fetch_bytes(client, URL, retries=3) == b'data'
        assert client.get.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        client = MagicMock()
        error = aiohttp.ClientConnectionError('boom')
        client.get = AsyncMock(side_effect=error)
        with pytest.raises(RuntimeError) as exc_info:
            await fetch_bytes(client, URL)
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_query_not_leaked(self):
        client = _client(_response(404))
        with pytest.raises(RuntimeError) as exc_info:
            await fetch_bytes(client, URL)
        assert 'secret' not in str(exc_info.value)
        assert 'https://assets.test/co-op.png' in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unexpected_status(self):
        client = _client(_response(302))
        with pytest.raises(RuntimeError, match='302'):
            await fetch_bytes(client, URL)


class TestFetchDecoded:
    """Tests for fetch_text and fetch_json."""

    @pytest.mark.asyncio
    async def test_text(self):
        client = _client(_response(200, 'Liège'.encode()))
        assert await fetch_text(client, URL) == 'Liège'

    @pytest.mark.asyncio
    async def test_json(self):
        client = _client(_response(200, b'[{"partner": "iq"}]'))
        assert await fetch_json(client, URL) == [{'partner': 'iq'}]

    @pytest.mark.asyncio
    async def test_bad_json(self):
        client = _client(_response(200, b'<html>'))
        with pytest.raises(RuntimeError, match='JSON'):
            await fetch_json(client, URL)

    @pytest.mark.asyncio
    async def test_text_not_utf8(self):
        client = _client(_response(200, b'\xff\xfe\x00'))
        with pytest.raises(RuntimeError, match='UTF-8'):
            await fetch_text(client, URL)

    @pytest.mark.asyncio
    async def test_json_not_utf8(self):
        client = _client(_response(200, 'Liège'.encode('latin-1')))
        with pytest.raises(RuntimeError, match='UTF-8'):
            await fetch_json(client, URL)

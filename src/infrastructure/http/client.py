from __future__ import annotations

import asyncio
import json
import logging
import ssl
from http import HTTPStatus
from typing import Any

import aiohttp
import certifi

from shared.constants import (
    HTTP_5XX_MAX,
    HTTP_5XX_MIN,
    HTTP_BACKOFF_FACTOR,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
)

logger = logging.getLogger(__name__)

_FATAL_STATUSES = (
    HTTPStatus.UNAUTHORIZED,
    HTTPStatus.FORBIDDEN,
    HTTPStatus.NOT_FOUND,
)


def make_http_session() -> aiohttp.ClientSession:
    # Создать SSL-контекст с сертификатами из certifi
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)
    return aiohttp.ClientSession(connector=connector)


def _strip_query(url: str) -> str:
    # Токены передаются в query и не должны попадать в логи и ошибки
    return url.split('?', 1)[0]


def _release(resp: Any) -> None:
    try:
        release = getattr(resp, 'release', None)
        if callable(release):
            release()
    except Exception as e:
        logger.debug('Failed to cleanup HTTP response: %s', e, exc_info=True)


async def fetch_bytes(
    client: aiohttp.ClientSession,
    url: str,
    *,
    timeout: float = HTTP_TIMEOUT_DEFAULT,
    retries: int = HTTP_RETRIES_DEFAULT,
    backoff: float = HTTP_BACKOFF_FACTOR,
) -> bytes:
    """
    Загружает ресурс целиком и возвращает тело ответа.

    - 401/403/404: ошибка сразу, без повторов;
    - 429/5xx и сетевые ошибки: повтор с экспоненциальной задержкой,
      всего не более ``retries`` попыток.
    """
    path = _strip_query(url)
    last_exc: Exception | None = None
    for attempt in range(max(1, retries)):
        if attempt:
            await asyncio.sleep(backoff**attempt)
        try:
            resp = await client.get(url, timeout=aiohttp.ClientTimeout(total=timeout))
        except (TimeoutError, aiohttp.ClientError) as e:
            last_exc = e
            logger.debug('Attempt %d for %s failed: %s', attempt + 1, path, e)
            continue
        try:
            sc = resp.status
            if sc == HTTPStatus.OK:
                return await resp.read()
            if sc in _FATAL_STATUSES:
                msg = f'HTTP {sc} при загрузке {path}'
                raise RuntimeError(msg)
            if sc == HTTPStatus.TOO_MANY_REQUESTS or HTTP_5XX_MIN <= sc < HTTP_5XX_MAX:
                last_exc = RuntimeError(f'HTTP {sc} при загрузке {path}')
            else:
                last_exc = RuntimeError(f'Неожиданный ответ HTTP {sc} для {path}')
        except (TimeoutError, aiohttp.ClientError) as e:
            last_exc = e
        finally:
            _release(resp)
    msg = f'Не удалось загрузить {path}: {last_exc}'
    raise RuntimeError(msg) from last_exc


async def fetch_text(
    client: aiohttp.ClientSession,
    url: str,
    **kwargs: Any,
) -> str:
    data = await fetch_bytes(client, url, **kwargs)
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError as e:
        msg = f'Ответ {_strip_query(url)} не в кодировке UTF-8: {e}'
        raise RuntimeError(msg) from e


async def fetch_json(
    client: aiohttp.ClientSession,
    url: str,
    **kwargs: Any,
) -> Any:
    text = await fetch_text(client, url, **kwargs)
    try:
        return json.loads(text)
    except ValueError as e:
        msg = f'Некорректный JSON по адресу {_strip_query(url)}: {e}'
        raise RuntimeError(msg) from e

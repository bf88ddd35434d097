"""Station feed loading: remote JSON resource or local file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from domain.models import StationRecord
from infrastructure.http.client import fetch_json
from shared.constants import HTTP_RETRIES_DEFAULT, HTTP_TIMEOUT_DEFAULT

if TYPE_CHECKING:
    import aiohttp

logger = logging.getLogger(__name__)


def parse_station_records(payload: Any) -> list[StationRecord]:
    """Validate a decoded feed payload; malformed entries are skipped with a warning."""
    if not isinstance(payload, list):
        msg = f'Station feed must be a JSON array, got {type(payload).__name__}'
        raise ValueError(msg)
    records: list[StationRecord] = []
    for idx, item in enumerate(payload):
        try:
            records.append(StationRecord.model_validate(item))
        except ValidationError as e:
            logger.warning('Skipping malformed station #%d: %s', idx, e)
    return records


def load_station_records(path: str | Path) -> list[StationRecord]:
    path = Path(path)
    with path.open(encoding='utf-8') as f:
        payload = json.load(f)
    records = parse_station_records(payload)
    logger.info('Loaded %d station records from %s', len(records), path)
    return records


async def fetch_station_records(
    client: aiohttp.ClientSession,
    url: str,
    *,
    timeout: float = HTTP_TIMEOUT_DEFAULT,
    retries: int = HTTP_RETRIES_DEFAULT,
) -> list[StationRecord]:
    payload = await fetch_json(client, url, timeout=timeout, retries=retries)
    records = parse_station_records(payload)
    logger.info('Fetched %d station records from %s', len(records), url)
    return records

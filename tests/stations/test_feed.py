"""Tests for station feed loading."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stations.feed import (
    fetch_station_records,
    load_station_records,
    parse_station_records,
)


class TestParseStationRecords:
    """Tests for payload validation."""

    def test_parses_list(self, station_payload):
        records = parse_station_records(station_payload)
        assert len(records) == len(station_payload)
        assert records[0].partner == 'co-op'
        assert records[1].lat == 53.96

    def test_non_list_rejected(self):
        with pytest.raises(ValueError):
            parse_station_records({'partner': 'co-op'})

    def test_malformed_items_skipped(self):
        records = parse_station_records(['oops', {'partner': 'iq', 'lat': 1, 'lng': 2}])
        assert [r.partner for r in records] == ['iq']

    def test_text_fields_coerced(self):
        (record,) = parse_station_records([{'partner': 'iq', 'zip': 1000, 'city': None}])
        assert record.zip == '1000'
        assert record.city == ''

    def test_unknown_fields_kept(self):
        (record,) = parse_station_records([{'partner': 'iq', 'brand_id': 7}])
        assert record.raw_fields()['brand_id'] == 7


class TestLoadStationRecords:
    """Tests for local file loading."""

    def test_reads_json_file(self, tmp_path, station_payload):
        path = tmp_path / 'stations.json'
        path.write_text(json.dumps(station_payload), encoding='utf-8')
        records = load_station_records(path)
        assert [r.city for r in records][:2] == ['LEEDS', 'York']

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_station_records(tmp_path / 'missing.json')


class TestFetchStationRecords:
    """Tests for remote feed loading."""

    @pytest.mark.asyncio
    async def test_fetches_and_validates(self, station_payload):
        client = MagicMock()
        with patch(
            'stations.feed.fetch_json', new=AsyncMock(return_value=station_payload)
        ) as fetch_json:
            records = await fetch_station_records(
                client, 'https://feed.test/stations.json', timeout=5.0, retries=2
            )
        assert len(records) == len(station_payload)
        fetch_json.assert_awaited_once_with(
            client, 'https://feed.test/stations.json', timeout=5.0, retries=2
        )

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self):
        with patch(
            'stations.feed.fetch_json',
            new=AsyncMock(side_effect=RuntimeError('HTTP 404')),
        ):
            with pytest.raises(RuntimeError):
                await fetch_station_records(MagicMock(), 'https://feed.test/x.json')

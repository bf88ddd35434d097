"""Pytest configuration and fixtures for station map tests."""

import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

ASSET_BASE = 'https://assets.test'
MARKER_URL = f'{ASSET_BASE}/marker.png'

BASE_COLOR = (0, 0, 255, 255)
LOGO_COLOR = (255, 0, 0, 255)


def _png(size: tuple[int, int], color: tuple[int, int, int, int]) -> bytes:
    buf = BytesIO()
    Image.new('RGBA', size, color).save(buf, format='PNG')
    return buf.getvalue()


class FakeAssets:
    """Async fetcher over an in-memory url -> bytes table.

    Optional ``gates`` hold a fetch until the matching asyncio.Event is set.
    Unknown URLs fail the way a 404 does.
    """

    def __init__(self, assets, gates=None):
        self.assets = dict(assets)
        self.gates = dict(gates or {})
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        data = self.assets.get(url)
        if data is None:
            msg = f'HTTP 404 при загрузке {url}'
            raise RuntimeError(msg)
        return data

    def count(self, url):
        return self.calls.count(url)


@pytest.fixture
def png_factory():
    """PNG bytes of a solid color."""
    return _png


@pytest.fixture
def asset_table():
    """Marker (35x48 blue) and png logos (20x20 red) for co-op and argos."""
    logo = _png((20, 20), LOGO_COLOR)
    return {
        MARKER_URL: _png((35, 48), BASE_COLOR),
        f'{ASSET_BASE}/co-op.png': logo,
        f'{ASSET_BASE}/argos.png': logo,
    }


@pytest.fixture
def fake_assets(asset_table):
    return FakeAssets(asset_table)


@pytest.fixture
def fake_assets_cls():
    return FakeAssets


@pytest.fixture
def station_payload():
    """Feed sample: co-op x2 valid + 1 invalid, argos x1, shell x1 (no logo asset)."""
    return [
        {
            'partner': 'co-op',
            'city': 'LEEDS',
            'street': 'HIGH STREET',
            'zip': 'LS1',
            'lat': '53.8',
            'lng': '-1.55',
        },
        {
            'partner': 'argos',
            'city': 'York',
            'street': 'main road',
            'zip': 'YO1',
            'lat': 53.96,
            'lng': -1.08,
        },
        {
            'partner': 'co-op',
            'city': 'Hull',
            'street': 'dock lane',
            'zip': 'HU1',
            'lat': 'n/a',
            'lng': '-0.33',
        },
        {
            'partner': 'shell',
            'city': 'Leeds',
            'street': 'ring road',
            'zip': 'LS2',
            'lat': '53.81',
            'lng': '-1.6',
        },
        {
            'partner': 'co-op',
            'city': 'Bradford',
            'street': 'market st',
            'zip': 'BD1',
            'lat': '53.79',
            'lng': '-1.75',
            'opening_hours': '24/7',
        },
    ]

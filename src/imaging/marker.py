"""
Composite partner markers: shared base pin + partner logo overlay.

Each partner composition owns its own surface. The shared base marker is
loaded once per session and only read afterwards. The logo is always drawn
after the base marker, whichever of the two assets arrives first.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from io import BytesIO
from types import MappingProxyType
from typing import TYPE_CHECKING

from PIL import Image

from domain.partners import logo_asset
from imaging.decode import (
    decode_raster,
    force_svg_size,
    image_from_data_url,
    rasterize_svg,
    to_data_url,
)
from shared.constants import (
    COMPOSE_TIMEOUT_S,
    LOGO_MIME_TYPES,
    LOGO_OFFSET_PX,
    LOGO_SIZE_PX,
    MARKER_HEIGHT_PX,
    MARKER_OUTPUT_FORMAT,
    MARKER_WIDTH_PX,
)

if TYPE_CHECKING:
    from domain.models import MapSettings

logger = logging.getLogger(__name__)

FetchBytes = Callable[[str], Awaitable[bytes]]


@dataclass(frozen=True)
class CompositeMarkerImage:
    """Готовый маркер партнёра (PNG), неизменяемый."""

    partner: str
    png: bytes
    size: tuple[int, int]

    @property
    def data_url(self) -> str:
        return to_data_url(self.png, LOGO_MIME_TYPES['png'])

    def to_image(self) -> Image.Image:
        return decode_raster(self.png)


class MarkerSurface:
    """Offscreen RGBA surface used by exactly one composition."""

    def __init__(self, size: tuple[int, int]):
        self._image = Image.new('RGBA', size, (0, 0, 0, 0))
        self.base_drawn = False

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    def draw_base(self, marker: Image.Image) -> None:
        if marker.size != self.size:
            marker = marker.resize(self.size, Image.Resampling.LANCZOS)
        self._image.alpha_composite(marker.convert('RGBA'), (0, 0))
        self.base_drawn = True

    def draw_logo(
        self,
        logo: Image.Image,
        offset: tuple[float, float],
        size: int,
    ) -> None:
        """
        Рисует логотип поверх подложки.

        Смещение может быть дробным (7.5 px): логотип переносится аффинным
        преобразованием в премультиплицированном RGBa, чтобы края не темнели.
        """
        if not self.base_drawn:
            msg = 'Base marker must be drawn before the logo'
            raise RuntimeError(msg)
        if logo.size != (size, size):
            logo = logo.resize((size, size), Image.Resampling.LANCZOS)
        dx, dy = offset
        shifted = logo.convert('RGBa').transform(
            self.size,
            Image.Transform.AFFINE,
            (1, 0, -dx, 0, 1, -dy),
            resample=Image.Resampling.BICUBIC,
        )
        self._image.alpha_composite(shifted.convert('RGBA'))

    def to_png(self) -> bytes:
        buf = BytesIO()
        self._image.save(buf, format=MARKER_OUTPUT_FORMAT)
        return buf.getvalue()


def default_logo_offset(
    marker_size: tuple[int, int], logo_size: int = LOGO_SIZE_PX
) -> tuple[float, float]:
    """Logo centered horizontally, fixed distance from the top of the pin."""
    return (marker_size[0] - logo_size) / 2.0, LOGO_OFFSET_PX[1]


class MarkerSession:
    """
    Сессия сборки маркеров.

    Владеет общим растром подложки (загружается один раз и больше не
    перезапрашивается) и кэширует готовые маркеры по партнёрам на время
    жизни сессии.
    """

    def __init__(
        self,
        fetch_bytes: FetchBytes,
        *,
        marker_url: str,
        asset_base_url: str,
        marker_size: tuple[int, int] = (MARKER_WIDTH_PX, MARKER_HEIGHT_PX),
        logo_size: int = LOGO_SIZE_PX,
        logo_offset: tuple[float, float] | None = None,
        compose_timeout_s: float = COMPOSE_TIMEOUT_S,
    ):
        self._fetch = fetch_bytes
        self.marker_url = marker_url
        self.asset_base_url = asset_base_url
        self.marker_size = marker_size
        self.logo_size = logo_size
        self.logo_offset = logo_offset or default_logo_offset(marker_size, logo_size)
        self.compose_timeout_s = compose_timeout_s
        self._base_marker: asyncio.Future[Image.Image] | None = None
        self._compositions: dict[str, asyncio.Future[CompositeMarkerImage]] = {}

    @classmethod
    def from_settings(
        cls, fetch_bytes: FetchBytes, settings: MapSettings
    ) -> MarkerSession:
        return cls(
            fetch_bytes,
            marker_url=settings.marker_url,
            asset_base_url=settings.asset_base_url,
            marker_size=settings.marker_size.as_tuple(),
            compose_timeout_s=settings.compose_timeout_s,
        )

    def load_base_marker(self) -> asyncio.Future[Image.Image]:
        """Start (once) and return the shared base-marker load."""
        if self._base_marker is None:
            self._base_marker = asyncio.ensure_future(self._fetch_base_marker())
        return self._base_marker

    async def _fetch_base_marker(self) -> Image.Image:
        data = await self._fetch(self.marker_url)
        if self.marker_url.split('?', 1)[0].lower().endswith('.svg'):
            svg = force_svg_size(data, *self.marker_size)
            marker = rasterize_svg(svg, *self.marker_size)
        else:
            marker = decode_raster(data)
        logger.info('Base marker loaded: %s (%dx%d)', self.marker_url, *marker.size)
        return marker

    async def load_logo(self, partner: str) -> Image.Image:
        asset = logo_asset(partner)
        url = asset.url(self.asset_base_url)
        data = await self._fetch(url)
        size = (self.logo_size, self.logo_size)
        if asset.is_svg:
            return rasterize_svg(force_svg_size(data, *size), *size)
        # png/jpg: встраиваемый data URL как источник изображения
        return image_from_data_url(to_data_url(data, asset.mime_type), size)

    async def _draw_base(self, surface: MarkerSurface) -> None:
        # shield: отмена одной сборки не должна отменять общую загрузку
        marker = await asyncio.shield(self.load_base_marker())
        surface.draw_base(marker)

    async def _compose(self, partner: str) -> CompositeMarkerImage:
        t0 = time.monotonic()
        surface = MarkerSurface(self.marker_size)
        _, logo = await asyncio.gather(
            self._draw_base(surface),
            self.load_logo(partner),
        )
        surface.draw_logo(logo, self.logo_offset, self.logo_size)
        result = CompositeMarkerImage(
            partner=partner, png=surface.to_png(), size=surface.size
        )
        logger.debug(
            'Marker for %r composed in %.3f s', partner, time.monotonic() - t0
        )
        return result

    async def composite(self, partner: str) -> CompositeMarkerImage:
        """Composite marker for ``partner``; built once per session."""
        task = self._compositions.get(partner)
        if task is None or task.cancelled():
            task = asyncio.ensure_future(self._compose(partner))
            self._compositions[partner] = task
        return await task

    async def composite_many(
        self, partners: Iterable[str]
    ) -> Mapping[str, CompositeMarkerImage | BaseException]:
        """
        Run compositions concurrently, one per distinct partner.

        A failed or timed-out partner yields its exception in the result
        instead of aborting the others. Keys keep the input order.
        """
        ordered = list(dict.fromkeys(partners))

        async def _bounded(partner: str) -> CompositeMarkerImage:
            return await asyncio.wait_for(
                self.composite(partner), timeout=self.compose_timeout_s
            )

        results = await asyncio.gather(
            *(_bounded(p) for p in ordered),
            return_exceptions=True,
        )
        out: dict[str, CompositeMarkerImage | BaseException] = {}
        for partner, result in zip(ordered, results):
            if isinstance(result, BaseException):
                logger.warning(
                    'Marker for partner %r failed: %r',
                    partner,
                    result,
                )
            out[partner] = result
        ok = sum(1 for r in out.values() if isinstance(r, CompositeMarkerImage))
        logger.info('Composited %d/%d partner markers', ok, len(out))
        return MappingProxyType(out)

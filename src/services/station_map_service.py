"""Station map service - orchestrates the feed -> markers -> layers pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any

from domain.models import FeatureCollection, MapSettings, StationFeature, StationRecord
from imaging.marker import CompositeMarkerImage, FetchBytes, MarkerSession
from infrastructure.http.client import fetch_bytes, make_http_session
from render.engine import MapEngine, StyleDocument
from render.layers import LayerConfigurator, LayerSetupReport
from render.popup import PopupContentBuilder
from stations.feed import fetch_station_records, load_station_records
from stations.grouping import PartnerGroups, group_by_partner
from stations.normalizer import normalize_all

logger = logging.getLogger(__name__)

POPUP_PROPERTY = 'popup'


@dataclass
class StationMapResult:
    collection: FeatureCollection
    groups: PartnerGroups
    markers: Mapping[str, CompositeMarkerImage | BaseException]
    report: LayerSetupReport

    @property
    def failed_partners(self) -> list[str]:
        return [p for p, m in self.markers.items() if isinstance(m, BaseException)]


class StationMapService:
    """Builds the station map against one engine within one marker session."""

    def __init__(
        self,
        engine: MapEngine,
        settings: MapSettings,
        fetch: FetchBytes,
    ):
        self.engine = engine
        self.settings = settings
        self.session = MarkerSession.from_settings(fetch, settings)
        self.popup_builder = PopupContentBuilder(
            settings.asset_base_url,
            settings.origin,
            default_center=settings.center,
        )

    def _popup_properties(self, feature: StationFeature) -> dict[str, Any]:
        markup = self.popup_builder.build(
            feature.display_properties(), feature.coordinates
        )
        return {POPUP_PROPERTY: markup}

    async def _await_base_marker(self) -> None:
        try:
            await asyncio.wait_for(
                asyncio.shield(self.session.load_base_marker()),
                timeout=self.settings.compose_timeout_s,
            )
        except Exception as e:
            # Сборки всех партнёров завершатся ошибкой, но слои кластеров будут
            logger.error('Base marker unavailable: %r', e)

    async def build(self, records: Iterable[StationRecord]) -> StationMapResult:
        t0 = time.monotonic()
        collection = normalize_all(records)
        groups = group_by_partner(collection)
        logger.info(
            '%d stations across %d partners', len(collection), len(groups)
        )

        await self._await_base_marker()
        markers = await self.session.composite_many(groups.keys())

        if self.settings.geocoder_enabled:
            self.engine.add_control('geocoder', {'placeholder': 'Search address'})

        configurator = LayerConfigurator(
            self.engine, self.settings, popup_builder=self.popup_builder
        )
        report = await configurator.configure(
            collection, markers, enrich=self._popup_properties
        )
        logger.info('Station map built in %.2f s', time.monotonic() - t0)
        return StationMapResult(
            collection=collection,
            groups=groups,
            markers=markers,
            report=report,
        )


async def generate_station_map(
    settings: MapSettings,
    *,
    stations_path: str | Path | None = None,
    access_token: str = '',
    output_path: str | Path | None = None,
) -> tuple[Path, StationMapResult]:
    """
    Full run: load stations, composite markers, register layers, write HTML.

    Returns:
        Tuple of (written page path, pipeline result)

    """
    engine = StyleDocument.from_settings(settings, access_token=access_token)
    async with make_http_session() as client:
        fetch = partial(
            fetch_bytes,
            client,
            timeout=settings.http_timeout_s,
            retries=settings.http_retries,
        )
        if stations_path is not None:
            records = load_station_records(stations_path)
        else:
            records = await fetch_station_records(
                client,
                settings.feed_url,
                timeout=settings.http_timeout_s,
                retries=settings.http_retries,
            )
        result = await StationMapService(engine, settings, fetch).build(records)
    path = engine.write_html(output_path or settings.output_path)
    return path, result

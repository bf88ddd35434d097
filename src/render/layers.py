"""
Clustered source and layer registration.

Order of calls against the engine:
  1. clustered GeoJSON source;
  2. cluster circles, then cluster counts;
  3. per partner, in enumeration order: load image -> add image -> leaf layer
     -> click/hover subscriptions. A partner whose marker or image failed is
     skipped; the rest continue.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from domain.models import icon_name_for
from imaging.marker import CompositeMarkerImage
from render.engine import ICON_METADATA_KEY, ClickEvent, MapEngine
from shared.constants import (
    CLUSTER_CIRCLE_COLOR_STEPS,
    CLUSTER_CIRCLE_RADIUS_STEPS,
    CLUSTER_COUNT_LAYER_ID,
    CLUSTER_LAYER_ID,
    CLUSTER_LABEL_FONT,
    CLUSTER_LABEL_SIZE,
    ICON_PROPERTY,
    LAYER_ID_SUFFIX,
    STATION_SOURCE_ID,
)

if TYPE_CHECKING:
    from domain.models import FeatureCollection, MapSettings, StationFeature
    from render.popup import PopupContentBuilder

logger = logging.getLogger(__name__)

Enrich = Callable[['StationFeature'], Mapping[str, Any]]


def leaf_layer_id(partner: str) -> str:
    return f'{partner}{LAYER_ID_SUFFIX}'


def cluster_source_spec(
    data: Mapping[str, Any], *, cluster_zoom: int, cluster_radius: int
) -> dict[str, Any]:
    return {
        'type': 'geojson',
        'data': data,
        'cluster': True,
        'clusterMaxZoom': cluster_zoom,
        'clusterRadius': cluster_radius,
    }


def cluster_circle_layer(source_id: str = STATION_SOURCE_ID) -> dict[str, Any]:
    return {
        'id': CLUSTER_LAYER_ID,
        'type': 'circle',
        'source': source_id,
        'filter': ['has', 'point_count'],
        'paint': {
            'circle-color': ['step', ['get', 'point_count'], *CLUSTER_CIRCLE_COLOR_STEPS],
            'circle-radius': ['step', ['get', 'point_count'], *CLUSTER_CIRCLE_RADIUS_STEPS],
        },
    }


def cluster_count_layer(source_id: str = STATION_SOURCE_ID) -> dict[str, Any]:
    return {
        'id': CLUSTER_COUNT_LAYER_ID,
        'type': 'symbol',
        'source': source_id,
        'filter': ['has', 'point_count'],
        'layout': {
            'text-field': ['get', 'point_count_abbreviated'],
            'text-font': list(CLUSTER_LABEL_FONT),
            'text-size': CLUSTER_LABEL_SIZE,
        },
    }


def leaf_symbol_layer(partner: str, source_id: str = STATION_SOURCE_ID) -> dict[str, Any]:
    """Unclustered markers of one partner; the icon comes from each feature."""
    return {
        'id': leaf_layer_id(partner),
        'type': 'symbol',
        'source': source_id,
        'filter': [
            'all',
            ['!', ['has', 'point_count']],
            ['==', ['get', 'partner'], partner],
        ],
        'layout': {
            'icon-image': ['get', ICON_PROPERTY],
            'icon-size': 1,
            'icon-anchor': 'bottom',
            'icon-allow-overlap': True,
        },
        'metadata': {ICON_METADATA_KEY: icon_name_for(partner)},
    }


@dataclass
class LayerSetupReport:
    registered: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    layer_ids: list[str] = field(default_factory=list)


class LayerConfigurator:
    def __init__(
        self,
        engine: MapEngine,
        settings: MapSettings,
        *,
        popup_builder: PopupContentBuilder | None = None,
        source_id: str = STATION_SOURCE_ID,
    ):
        self.engine = engine
        self.settings = settings
        self.popup_builder = popup_builder
        self.source_id = source_id

    def _add_layer(self, layer: dict[str, Any], report: LayerSetupReport) -> None:
        self.engine.add_layer(layer)
        report.layer_ids.append(layer['id'])

    async def configure(
        self,
        collection: FeatureCollection,
        markers: Mapping[str, CompositeMarkerImage | BaseException],
        *,
        enrich: Enrich | None = None,
    ) -> LayerSetupReport:
        """
        Register the clustered source, cluster layers and per-partner leaf layers.

        Args:
            collection: All valid station features.
            markers: Composition result per partner (image or the failure).
            enrich: Optional extra properties per feature (e.g. popup markup).

        """
        report = LayerSetupReport()
        self.engine.add_source(
            self.source_id,
            cluster_source_spec(
                collection.to_geojson(enrich),
                cluster_zoom=self.settings.cluster_zoom,
                cluster_radius=self.settings.cluster_radius,
            ),
        )
        self._add_layer(cluster_circle_layer(self.source_id), report)
        self._add_layer(cluster_count_layer(self.source_id), report)

        for partner in collection.partners:
            marker = markers.get(partner)
            if not isinstance(marker, CompositeMarkerImage):
                reason = repr(marker) if marker is not None else 'no marker'
                logger.warning('Skipping layer for %r: %s', partner, reason)
                report.skipped[partner] = reason
                continue
            try:
                await self._register_partner(partner, marker, report)
            except (ValueError, RuntimeError) as e:
                logger.warning('Image registration failed for %r: %s', partner, e)
                report.skipped[partner] = str(e)
                continue
            report.registered.append(partner)

        logger.info(
            'Layers configured: %d partners registered, %d skipped',
            len(report.registered),
            len(report.skipped),
        )
        return report

    async def _register_partner(
        self,
        partner: str,
        marker: CompositeMarkerImage,
        report: LayerSetupReport,
    ) -> None:
        # Изображение регистрируется строго до слоя, который на него ссылается
        name = icon_name_for(partner)
        image = await self.engine.load_image(marker.data_url)
        self.engine.add_image(name, image)
        layer = leaf_symbol_layer(partner, self.source_id)
        try:
            self._add_layer(layer, report)
        except (ValueError, RuntimeError):
            # Изображение без слоя не остаётся в движке
            self.engine.remove_image(name)
            raise
        self._subscribe(layer['id'])

    def _subscribe(self, layer_id: str) -> None:
        engine = self.engine
        if self.popup_builder is not None:
            builder = self.popup_builder

            def _on_click(event: ClickEvent) -> None:
                popup = builder.on_click(event)
                if popup is not None:
                    engine.show_popup(popup)

            engine.on('click', layer_id, _on_click)
        engine.on('mouseenter', layer_id, lambda _e: engine.set_cursor('pointer'))
        engine.on('mouseleave', layer_id, lambda _e: engine.set_cursor(''))

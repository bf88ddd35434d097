"""Popup markup for a clicked station: address, logo, geo link, distance."""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Mapping
from typing import Any

from domain.partners import logo_asset
from geo.geodesy import distance_meters, wrap_longitude_near
from render.engine import ClickEvent, Popup
from shared.constants import DEFAULT_MAP_CENTER, DISTANCE_KM_DECIMALS

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r'\S+')


def human_case(text: str) -> str:
    """'RUE de la LOI' -> 'Rue De La Loi'; whitespace is preserved."""
    return _WORD_RE.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text)


def meters_to_km(meters: float) -> float:
    return round(meters / 1000.0, DISTANCE_KM_DECIMALS)


def format_distance_km(meters: float) -> str:
    return f'{meters_to_km(meters):.{DISTANCE_KM_DECIMALS}f} km'


def _text(properties: Mapping[str, Any], key: str) -> str:
    value = properties.get(key)
    return '' if value is None else str(value)


class PopupContentBuilder:
    """
    Builds popup HTML for station features.

    Distances are measured from ``reference`` (user location); without it
    the default map center is used.
    """

    def __init__(
        self,
        logo_base_url: str,
        reference: tuple[float, float] | None = None,
        *,
        default_center: tuple[float, float] = DEFAULT_MAP_CENTER,
    ):
        self.logo_base_url = logo_base_url
        self.reference = reference if reference is not None else default_center
        if reference is None:
            logger.debug('No user location, distances from map center %s', default_center)

    def build(
        self,
        properties: Mapping[str, Any],
        coordinates: tuple[float, float],
    ) -> str:
        partner = _text(properties, 'partner')
        name = _text(properties, 'name')
        street = human_case(_text(properties, 'street'))
        locality = human_case(
            f'{_text(properties, "zip")} - {_text(properties, "city")}'
        )
        lng, lat = coordinates
        distance = format_distance_km(distance_meters(self.reference, coordinates))
        logo_url = logo_asset(partner).url(self.logo_base_url)
        esc = html.escape
        return (
            '<div class="station-popup">'
            f'<img class="station-popup__logo" src="{esc(logo_url)}" alt="{esc(partner)}">'
            f'<h3 class="station-popup__name">{esc(name)}</h3>'
            f'<p class="station-popup__address">{esc(street)}<br>{esc(locality)}</p>'
            f'<a class="station-popup__geo" href="geo:{lat},{lng}">{lat}, {lng}</a>'
            f'<p class="station-popup__distance">{esc(distance)}</p>'
            '</div>'
        )

    def on_click(self, event: ClickEvent) -> Popup | None:
        """Popup for the first feature under the pointer, anchored to the clicked world copy."""
        if not event.features:
            return None
        feature = event.features[0]
        geometry = feature.get('geometry') or {}
        lng, lat = (float(c) for c in geometry['coordinates'][:2])
        properties = feature.get('properties') or {}
        markup = self.build(properties, (lng, lat))
        anchor_lng = wrap_longitude_near(lng, event.lng_lat[0])
        return Popup(lng_lat=(anchor_lng, lat), html=markup)

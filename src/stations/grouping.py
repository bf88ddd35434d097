from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from domain.models import FeatureCollection, StationFeature

PartnerGroups = Mapping[str, FeatureCollection]


def group_by_partner(features: Iterable[StationFeature]) -> PartnerGroups:
    """
    Разбивает признаки по партнёрам за один проход.

    Ключи идут в порядке первого появления партнёра, признаки внутри группы
    в порядке ввода. Ключом может быть любая строка, включая пустую.
    """
    buckets: defaultdict[str, list[StationFeature]] = defaultdict(list)
    for feature in features:
        buckets[feature.partner].append(feature)
    return MappingProxyType(
        {partner: FeatureCollection.of(items) for partner, items in buckets.items()}
    )

# Регистрация слоёв карты и содержимое всплывающих окон
from render.engine import ClickEvent, MapEngine, Popup, StyleDocument
from render.layers import (
    LayerConfigurator,
    LayerSetupReport,
    cluster_circle_layer,
    cluster_count_layer,
    cluster_source_spec,
    leaf_layer_id,
    leaf_symbol_layer,
)
from render.popup import (
    PopupContentBuilder,
    format_distance_km,
    human_case,
    meters_to_km,
)

__all__ = [
    'ClickEvent',
    'LayerConfigurator',
    'LayerSetupReport',
    'MapEngine',
    'Popup',
    'PopupContentBuilder',
    'StyleDocument',
    'cluster_circle_layer',
    'cluster_count_layer',
    'cluster_source_spec',
    'format_distance_km',
    'human_case',
    'leaf_layer_id',
    'leaf_symbol_layer',
    'meters_to_km',
]

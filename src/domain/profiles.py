import logging
from pathlib import Path

import tomlkit

from domain.models import MapSettings

logger = logging.getLogger(__name__)


def load_profile(path: str | Path) -> MapSettings:
    """
    Загрузка и валидация профиля TOML -> MapSettings.

    Ключи clusterZoom/clusterRadius/markerSize распознаются наравне
    с cluster_zoom/cluster_radius/marker_size.
    """
    path = Path(path)
    if not path.exists():
        msg = f'Профиль не найден: {path}'
        raise FileNotFoundError(msg)
    text = path.read_text(encoding='utf-8')
    data = tomlkit.parse(text).unwrap()
    settings = MapSettings.model_validate(data)
    logger.info(
        'Profile loaded: %s (cluster_zoom=%s, cluster_radius=%s)',
        path,
        settings.cluster_zoom,
        settings.cluster_radius,
    )
    return settings


def save_profile(settings: MapSettings, path: str | Path) -> Path:
    """Сохранение профиля в TOML (None-поля пропускаются)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(exclude_none=True)
    # Таблицы TOML идут после скалярных ключей
    data = dict(sorted(data.items(), key=lambda kv: isinstance(kv[1], dict)))
    path.write_text(tomlkit.dumps(data), encoding='utf-8')
    logger.info('Profile saved: %s', path)
    return path

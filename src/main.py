"""Entry point: build the clustered fuel-station map page."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from domain.models import MapSettings
from domain.profiles import load_profile, save_profile
from services.station_map_service import generate_station_map
from shared.constants import LOG_FORMAT, MAPBOX_TOKEN_ENV

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO', log_file: str | Path | None = None) -> None:
    """Configure root logging: stdout plus an optional UTF-8 log file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path), encoding='utf-8'))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def parse_origin(value: str) -> tuple[float, float]:
    """'LAT,LNG' -> (lng, lat)."""
    parts = value.split(',')
    if len(parts) != 2:
        msg = f'Ожидается LAT,LNG, получено: {value!r}'
        raise argparse.ArgumentTypeError(msg)
    try:
        lat, lng = (float(p) for p in parts)
    except ValueError as e:
        msg = f'Некорректные координаты: {value!r}'
        raise argparse.ArgumentTypeError(msg) from e
    return lng, lat


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Station map - карта заправочных станций с кластеризацией'
    )
    parser.add_argument(
        '--stations',
        type=Path,
        help='Локальный JSON со станциями (по умолчанию загружается из сети)',
    )
    parser.add_argument('--profile', type=Path, help='Профиль настроек (TOML)')
    parser.add_argument(
        '--save-profile',
        type=Path,
        metavar='PATH',
        help='Сохранить итоговые настройки в профиль TOML',
    )
    parser.add_argument('--output', type=Path, help='Путь к HTML-странице')
    parser.add_argument(
        '--origin',
        type=parse_origin,
        metavar='LAT,LNG',
        help='Точка отсчёта расстояний во всплывающих окнах',
    )
    parser.add_argument('--cluster-zoom', type=int, help='clusterMaxZoom')
    parser.add_argument('--cluster-radius', type=int, help='clusterRadius (px)')
    parser.add_argument(
        '--access-token',
        help=f'Mapbox access token (или переменная окружения {MAPBOX_TOKEN_ENV})',
    )
    parser.add_argument(
        '--no-geocoder',
        action='store_true',
        help='Не добавлять строку поиска адресов',
    )
    parser.add_argument('--log-level', default='INFO', help='Уровень логирования')
    parser.add_argument('--log-file', type=Path, help='Файл журнала')
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> MapSettings:
    """Profile (or defaults) with command-line overrides applied on top."""
    settings = load_profile(args.profile) if args.profile else MapSettings()
    overrides: dict[str, object] = {}
    if args.cluster_zoom is not None:
        overrides['cluster_zoom'] = args.cluster_zoom
    if args.cluster_radius is not None:
        overrides['cluster_radius'] = args.cluster_radius
    if args.origin is not None:
        overrides['origin_lng'], overrides['origin_lat'] = args.origin
    if args.no_geocoder:
        overrides['geocoder_enabled'] = False
    if args.output is not None:
        overrides['output_path'] = str(args.output)
    if not overrides:
        return settings
    # Повторная валидация, чтобы переопределения проходили те же проверки
    data = settings.model_dump()
    data.update(overrides)
    return MapSettings.model_validate(data)


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    logger.info('Starting station map build')

    try:
        settings = build_settings(args)
        if args.save_profile is not None:
            save_profile(settings, args.save_profile)
        token = args.access_token or os.getenv(MAPBOX_TOKEN_ENV, '')
        if not token:
            logger.warning(
                'Mapbox access token is not set; the page will not load tiles'
            )
        path, result = asyncio.run(
            generate_station_map(
                settings,
                stations_path=args.stations,
                access_token=token,
            )
        )
    except Exception as e:
        logger.error(f'Station map build failed: {e}', exc_info=True)
        return 1

    if result.failed_partners:
        logger.warning(
            'Partners without markers: %s', ', '.join(result.failed_partners)
        )
    logger.info('Done: %s', path)
    return 0


if __name__ == '__main__':
    sys.exit(main())

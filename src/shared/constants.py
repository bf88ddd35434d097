from types import MappingProxyType

# Базовый URL репозитория с данными станций и графикой
ASSET_BASE_URL = 'https://raw.githubusercontent.com/Booster2ooo/dump/main'

# Лента станций (JSON-массив записей)
STATION_FEED_URL = f'{ASSET_BASE_URL}/stations.json'

# Общий для всех партнёров маркер (подложка)
MARKER_URL = f'{ASSET_BASE_URL}/yellow_marker2.svg'

# Шаблон URL логотипа партнёра
LOGO_URL_TEMPLATE = '{base}/{partner}.{extension}'

# Радиус Земли (экваториальный, метры)
EARTH_RADIUS_M = 6378137.0

# --- Композитный маркер
# Размер маркера (px)
MARKER_WIDTH_PX = 35
MARKER_HEIGHT_PX = 48
# Размер логотипа внутри маркера (px)
LOGO_SIZE_PX = 20
# Смещение логотипа от верхнего левого угла маркера (px)
LOGO_OFFSET_PX = (7.5, 7.5)
# Формат сериализации готового маркера
MARKER_OUTPUT_FORMAT = 'PNG'

# MIME-типы логотипов
SVG_MIME = 'image/svg+xml'
LOGO_MIME_TYPES = MappingProxyType(
    {
        'svg': SVG_MIME,
        'png': 'image/png',
        'jpg': 'image/jpeg',
    }
)
DEFAULT_LOGO_EXTENSION = 'svg'

# Расширения файлов логотипов партнёров (для остальных используется svg)
LOGO_FILE_EXTENSIONS = MappingProxyType(
    {
        'co-op': 'png',
        'evf': 'png',
        'gleaners': 'png',
        'iq': 'png',
        'manx_petroleums': 'png',
        'mol': 'png',
        'pace': 'png',
        'smartdiesel': 'png',
        'regent': 'png',
        'power': 'png',
        'scottish_fuels': 'png',
        'argos': 'png',
        'air_liquide': 'jpg',
    }
)

# --- Кластеризация
# Зум, начиная с которого кластеры распадаются на отдельные маркеры
CLUSTER_MAX_ZOOM = 14
# Радиус объединения точек в кластер (px)
CLUSTER_RADIUS_PX = 50
# Ступенчатая таблица радиуса круга кластера: base, (порог, радиус)...
CLUSTER_CIRCLE_RADIUS_STEPS = (30, 100, 30, 750, 30)
# Цвета кругов кластеров по тем же порогам
CLUSTER_CIRCLE_COLOR_STEPS = ('#51bbd6', 100, '#f1f075', 750, '#f28cb1')
CLUSTER_LABEL_FONT = ('DIN Offc Pro Medium', 'Arial Unicode MS Bold')
CLUSTER_LABEL_SIZE = 12
# Максимально допустимый зум карты
MAX_MAP_ZOOM = 24

# --- Идентификаторы источника и слоёв
STATION_SOURCE_ID = 'stations'
CLUSTER_LAYER_ID = 'clusters'
CLUSTER_COUNT_LAYER_ID = 'cluster-count'
ICON_PROPERTY = 'icon'
IMAGE_NAME_SUFFIX = '_image'
LAYER_ID_SUFFIX = '_layer'

# --- Карта по умолчанию (Брюссель)
DEFAULT_MAP_CENTER = (4.3053507, 50.8549541)
DEFAULT_MAP_ZOOM = 12
DEFAULT_MAP_STYLE = 'mapbox://styles/mapbox/streets-v12'
MAPBOX_GL_VERSION = 'v3.6.0'
MAPBOX_GEOCODER_VERSION = 'v5.0.3'
MAPBOX_TOKEN_ENV = 'MAPBOX_ACCESS_TOKEN'
DEFAULT_OUTPUT_PATH = 'station_map.html'

# Количество знаков после запятой для расстояния в километрах
DISTANCE_KM_DECIMALS = 2

# --- HTTP
HTTP_TIMEOUT_DEFAULT = 20.0
# Одна попытка на ресурс; повторы включаются через настройки
HTTP_RETRIES_DEFAULT = 1
HTTP_BACKOFF_FACTOR = 1.6
HTTP_5XX_MIN = 500
HTTP_5XX_MAX = 600

# Ограничение времени на сборку маркера одного партнёра (секунды)
COMPOSE_TIMEOUT_S = 30.0

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

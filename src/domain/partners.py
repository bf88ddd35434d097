"""Partner logo lookup: static extension table and asset URLs."""

from __future__ import annotations

from dataclasses import dataclass

from shared.constants import (
    DEFAULT_LOGO_EXTENSION,
    LOGO_FILE_EXTENSIONS,
    LOGO_MIME_TYPES,
    LOGO_URL_TEMPLATE,
)


def get_logo_file_extension(partner: str) -> str:
    """Расширение файла логотипа партнёра; по умолчанию svg."""
    return LOGO_FILE_EXTENSIONS.get(partner, DEFAULT_LOGO_EXTENSION)


@dataclass(frozen=True)
class LogoAsset:
    partner: str
    extension: str

    @property
    def is_svg(self) -> bool:
        return self.extension == 'svg'

    @property
    def mime_type(self) -> str:
        return LOGO_MIME_TYPES[self.extension]

    def url(self, base_url: str) -> str:
        return LOGO_URL_TEMPLATE.format(
            base=base_url.rstrip('/'),
            partner=self.partner,
            extension=self.extension,
        )


def logo_asset(partner: str) -> LogoAsset:
    return LogoAsset(partner=partner, extension=get_logo_file_extension(partner))


__all__ = [
    'LOGO_FILE_EXTENSIONS',
    'LogoAsset',
    'get_logo_file_extension',
    'logo_asset',
]

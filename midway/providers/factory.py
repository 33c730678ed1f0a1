"""
Provider backend selection.
"""
import enum
import logging
from typing import Optional

import httpx

from midway.config import Settings
from midway.providers.base import MapProviders
from midway.providers.kakao import KakaoMapProvider
from midway.providers.naver import NaverMapProvider

logger = logging.getLogger(__name__)


class ProviderKind(str, enum.Enum):
    kakao = "kakao"
    naver = "naver"


def build_providers(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MapProviders:
    """Build the configured backend once. Unknown names raise ValueError."""
    kind = ProviderKind(settings.map_provider.lower())

    if kind is ProviderKind.kakao:
        provider = KakaoMapProvider(settings, transport=transport)
    else:
        provider = NaverMapProvider(settings, transport=transport)

    logger.info(f"Map provider: {kind.value}")
    return MapProviders(
        kind=kind.value,
        directions=provider,
        geocoding=provider,
        search=provider,
    )

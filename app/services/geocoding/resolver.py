import logging
from typing import Optional

from app.core.settings import settings
from .base import GeocodingProvider, NoOpProvider
from .nominatim_provider import NominatimProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[GeocodingProvider] = None


def get_geocoding_provider() -> GeocodingProvider:
    """
    Resolve the active geocoding provider based on settings.

    - GEOCODING_ENABLED=false (default): no-op provider.
    - Otherwise Nominatim.
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    if settings.GEOCODING_ENABLED:
        _provider_instance = NominatimProvider()
    else:
        _provider_instance = NoOpProvider()
    logger.info(f"Geocoding provider initialized: {_provider_instance.name}")
    return _provider_instance


def resolve_address(latitude: float, longitude: float) -> Optional[str]:
    """Best-effort address for a coordinate pair; None when unavailable."""
    return get_geocoding_provider().reverse_geocode(latitude, longitude)

from abc import ABC, abstractmethod
from typing import Optional


class GeocodingProvider(ABC):
    """
    Reverse-geocoding provider: coordinates -> human-readable address.

    Contract:
    - Returns the formatted address, or None when nothing could be resolved.
    - MUST NEVER raise upstream exceptions.
    - Implementations should enforce a network timeout <= 3 seconds.
    """

    name = "base"

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        raise NotImplementedError


class NoOpProvider(GeocodingProvider):
    """Used while geocoding is disabled; never touches the network."""

    name = "noop"

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        return None

"""Resolve a ZIP code to city, county and state for the property fields."""

import asyncio
import logging
import re
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import aiohttp

from quick_pricer.configuration import ZIP_LOOKUP_URL

logger = logging.getLogger(__name__)

_ZIP_CODE = re.compile(r"^\d{5}$")


@dataclass(frozen=True)
class ZipLocation:
    city: str
    county: str
    state: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


# Frequently quoted ZIP codes, answered without a network call.
KNOWN_LOCATIONS: Dict[str, ZipLocation] = {
    "90210": ZipLocation(city="Beverly Hills", county="Los Angeles", state="CA"),
    "90120": ZipLocation(city="Beverly Hills", county="Los Angeles", state="CA"),
    "10001": ZipLocation(city="New York", county="New York", state="NY"),
    "33101": ZipLocation(city="Miami", county="Miami-Dade", state="FL"),
    "60601": ZipLocation(city="Chicago", county="Cook", state="IL"),
    "75201": ZipLocation(city="Dallas", county="Dallas", state="TX"),
    "85001": ZipLocation(city="Phoenix", county="Maricopa", state="AZ"),
    "98101": ZipLocation(city="Seattle", county="King", state="WA"),
}


def location_from_payload(data: dict) -> Optional[ZipLocation]:
    """Build a ZipLocation from the first place of a zippopotam.us answer."""
    places = data.get("places") or []
    if not places:
        return None
    place = places[0]
    city = place.get("place name") or ""
    return ZipLocation(
        city=city,
        county=place.get("county") or city,
        state=place.get("state abbreviation") or "",
    )


class ZipLookup:
    """Cached ZIP code lookup.

    Lookups are best effort: an unknown ZIP code or a failed request yields
    None so the caller can leave the location fields for manual entry.
    """

    def __init__(self, url_template: str = ZIP_LOOKUP_URL, timeout: float = 5.0):
        self.url_template = url_template
        self.timeout = timeout
        self._cache: Dict[str, ZipLocation] = dict(KNOWN_LOCATIONS)

    def cached(self, zip_code: str) -> Optional[ZipLocation]:
        return self._cache.get(zip_code)

    async def fetch(self, zip_code: str) -> Optional[dict]:
        url = self.url_template.format(zip_code=zip_code)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    logger.info(f"ZIP lookup for {zip_code} returned HTTP {response.status}")
                    return None
                return await response.json(content_type=None)

    async def lookup(self, zip_code: str) -> Optional[ZipLocation]:
        zip_code = (zip_code or "").strip()
        if not _ZIP_CODE.match(zip_code):
            return None
        if zip_code in self._cache:
            return self._cache[zip_code]

        try:
            data = await self.fetch(zip_code)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"ZIP lookup for {zip_code} failed: {e}")
            return None

        location = location_from_payload(data or {})
        if location is not None:
            self._cache[zip_code] = location
        return location

# airport_database.py - Airport lookup

"""
Airport Database - ICAO/IATA lookup backed by airportsdata

Logbook entries are written with ICAO codes (VHHH, EDDF) while crew-system
exports often print IATA codes (HKG, FRA). Both indexes are loaded once at
module import.
"""

import logging
from typing import Dict, List, Optional

import airportsdata

from models.data_models import Airport

logger = logging.getLogger(__name__)

# Module-level load (cached)
_ICAO_DB = airportsdata.load('ICAO')
_IATA_DB = airportsdata.load('IATA')


def _to_airport(entry: dict) -> Airport:
    return Airport(
        icao=entry.get('icao', ''),
        iata=entry.get('iata', ''),
        name=entry.get('name', ''),
        timezone=entry.get('tz') or 'UTC',
        latitude=entry.get('lat', 0.0),
        longitude=entry.get('lon', 0.0),
    )


class AirportDatabase:
    """
    Airport lookup by ICAO (4-letter) or IATA (3-letter) code.

    Runtime overrides take precedence, for private strips and military
    fields not in airportsdata.
    """

    _custom_airports: Dict[str, Airport] = {}

    @classmethod
    def find(cls, code: str) -> Optional[Airport]:
        """Look up an airport; None if the code is unknown."""
        code = (code or '').strip().upper()
        if not code:
            return None

        if code in cls._custom_airports:
            return cls._custom_airports[code]

        entry = _ICAO_DB.get(code) if len(code) == 4 else _IATA_DB.get(code)
        if entry:
            return _to_airport(entry)

        logger.warning("Airport '%s' not found in airportsdata", code)
        return None

    @classmethod
    def to_icao(cls, code: str) -> str:
        """ICAO code for an IATA/ICAO code, or the input unchanged if unknown"""
        airport = cls.find(code)
        if airport and airport.icao:
            return airport.icao
        return (code or '').strip().upper()

    @classmethod
    def search(cls, query: str, limit: int = 20) -> List[Airport]:
        """Prefix search over ICAO and IATA codes"""
        q = (query or '').strip().upper()
        if not q:
            return []

        matches = []
        seen = set()
        for airport in cls._custom_airports.values():
            if airport.icao not in seen and (airport.icao.startswith(q) or airport.iata.startswith(q)):
                matches.append(airport)
                seen.add(airport.icao)

        for code, entry in _ICAO_DB.items():
            if len(matches) >= limit:
                break
            if code in seen:
                continue
            if code.startswith(q) or (entry.get('iata') or '').startswith(q):
                matches.append(_to_airport(entry))
                seen.add(code)
        return matches[:limit]

    @classmethod
    def add_custom_airport(cls, icao: str, iata: str, name: str, timezone: str,
                           lat: float, lon: float):
        """Add/override an airport at runtime, reachable by either code"""
        airport = Airport(icao=icao.upper(), iata=iata.upper(), name=name,
                          timezone=timezone, latitude=lat, longitude=lon)
        cls._custom_airports[airport.icao] = airport
        if airport.iata:
            cls._custom_airports[airport.iata] = airport
        logger.info("Added custom airport %s/%s (%s)", airport.icao, airport.iata, name)

    @classmethod
    def clear_custom_airports(cls):
        cls._custom_airports.clear()

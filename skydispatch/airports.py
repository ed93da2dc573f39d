"""
Airport reference dataset.

Loaded once at startup from a JSON file and treated as read-only. The file
may be either a list of airport objects or an object keyed by ICAO code
(the layout of the common open airports dumps).

Usage:
    from skydispatch.airports import AirportDirectory

    airports = AirportDirectory.from_file('airports.json')
    airports.get('UUEE').name  # 'Sheremetyevo International Airport'
"""

import json
import logging
import math
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 8


@dataclass(frozen=True)
class Airport:
    """Static airport information keyed by ICAO code."""
    icao: str
    iata: str
    name: str
    city: str
    country: str
    lat: float
    lon: float

    @property
    def position(self):
        return (self.lat, self.lon)

    def to_dict(self) -> dict:
        return asdict(self)


def _coerce_airport(raw: dict) -> Optional[Airport]:
    """Build an Airport from a raw record, or None if it is unusable."""
    icao = str(raw.get('icao') or '').strip().upper()
    try:
        lat = float(raw.get('lat'))
        lon = float(raw.get('lon'))
    except (TypeError, ValueError):
        return None
    if not icao or not math.isfinite(lat) or not math.isfinite(lon):
        return None
    return Airport(
        icao=icao,
        iata=str(raw.get('iata') or '').strip().upper(),
        name=raw.get('name') or '',
        city=raw.get('city') or '',
        country=raw.get('country') or '',
        lat=lat,
        lon=lon,
    )


class AirportDirectory:
    """Lookup and search over the airport dataset."""

    def __init__(self, airports: Iterable[Airport]):
        self._airports: List[Airport] = list(airports)
        self._by_icao: Dict[str, Airport] = {a.icao: a for a in self._airports}

    @classmethod
    def from_records(cls, records) -> 'AirportDirectory':
        if isinstance(records, dict):
            records = records.values()
        airports = [a for a in (_coerce_airport(r) for r in records) if a is not None]
        return cls(airports)

    @classmethod
    def from_file(cls, path: str) -> 'AirportDirectory':
        """
        Load the dataset from disk.

        A missing or unreadable dataset is fatal: zones and flight positions
        cannot be computed without it.
        """
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
        directory = cls.from_records(data)
        logger.info(f'Loaded {len(directory)} airports from {path}')
        return directory

    def __len__(self) -> int:
        return len(self._airports)

    def __contains__(self, icao: str) -> bool:
        return icao in self._by_icao

    def get(self, icao: Optional[str]) -> Optional[Airport]:
        if not icao:
            return None
        return self._by_icao.get(icao.upper())

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[Airport]:
        """
        Rank airports against a free-text query.

        Ranking, best first: exact ICAO/IATA, ICAO/IATA prefix, name/city
        prefix, ICAO/IATA substring, name/city substring. Ties break on ICAO.
        """
        query = (query or '').strip().lower()
        if len(query) < 2:
            return []

        matches = []
        for airport in self._airports:
            icao = airport.icao.lower()
            iata = airport.iata.lower()
            name = airport.name.lower()
            city = airport.city.lower()

            if icao == query or (iata and iata == query):
                score = 0
            elif icao.startswith(query) or (iata and iata.startswith(query)):
                score = 1
            elif name.startswith(query) or city.startswith(query):
                score = 2
            elif query in icao or (iata and query in iata):
                score = 3
            elif query in name or query in city:
                score = 4
            else:
                continue
            matches.append((score, airport.icao, airport))

        matches.sort(key=lambda m: (m[0], m[1]))
        return [m[2] for m in matches[:limit]]

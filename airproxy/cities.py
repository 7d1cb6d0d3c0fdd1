# file: airproxy/cities.py

from types import MappingProxyType
from typing import List, Mapping, Optional

from airproxy.models import City

_CITIES = [
    City(id = "tashkent", name = "Tashkent", lat = 41.2995, lon = 69.2401),
    City(id = "samarkand", name = "Samarkand", lat = 39.6542, lon = 66.9597),
    City(id = "bukhara", name = "Bukhara", lat = 39.7681, lon = 64.4556),
    City(id = "namangan", name = "Namangan", lat = 40.9983, lon = 71.6726),
    City(id = "andijan", name = "Andijan", lat = 40.7821, lon = 72.3442),
    City(id = "fergana", name = "Fergana", lat = 40.3864, lon = 71.7864),
    City(id = "nukus", name = "Nukus", lat = 42.4619, lon = 59.6166),
    City(id = "urgench", name = "Urgench", lat = 41.5500, lon = 60.6333),
    City(id = "kokand", name = "Kokand", lat = 40.5286, lon = 70.9425),
    City(id = "navoi", name = "Navoi", lat = 40.0844, lon = 65.3792),
    City(id = "jizzakh", name = "Jizzakh", lat = 40.1158, lon = 67.8422),
    City(id = "termez", name = "Termez", lat = 37.2242, lon = 67.2783),
    City(id = "qarshi", name = "Qarshi", lat = 38.8600, lon = 65.8000),
    City(id = "margilan", name = "Margilan", lat = 40.4703, lon = 71.7144),
]


def build_registry(cities: List[City]) -> Mapping[str, City]:
    """Build a read-only, insertion-ordered registry keyed by city id."""
    registry = {}
    for city in cities:
        if city.id in registry:
            raise ValueError(f"Duplicate city id in registry: {city.id}")
        registry[city.id] = city
    return MappingProxyType(registry)


CITIES: Mapping[str, City] = build_registry(_CITIES)


def get_city(city_id: str) -> Optional[City]:
    return CITIES.get(city_id)

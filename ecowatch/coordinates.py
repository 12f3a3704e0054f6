"""Coordinate lookup for destinations and the built-in fallback catalog.

Lookup order, first match wins: destination id, normalized name, the name
with spaces removed, each name token in order, then the destination's own
stored latitude/longitude.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from ecowatch.domain import Coordinates, Destination, Sensitivity

KNOWN_COORDINATES: Dict[str, Coordinates] = {
    # by destination id
    "dest-1": Coordinates(33.0305, 74.9496, "Vaishno Devi"),
    "dest-2": Coordinates(32.2396, 77.1887, "Manali"),
    "dest-3": Coordinates(31.1048, 77.1734, "Shimla"),
    "dest-4": Coordinates(32.2190, 76.3234, "Dharamshala"),
    "dest-5": Coordinates(32.2985, 78.0339, "Spiti Valley"),
    # by normalized name
    "vaishno devi": Coordinates(33.0305, 74.9496, "Vaishno Devi"),
    "manali": Coordinates(32.2396, 77.1887, "Manali"),
    "shimla": Coordinates(31.1048, 77.1734, "Shimla"),
    "dharamshala": Coordinates(32.2190, 76.3234, "Dharamshala"),
    "spiti valley": Coordinates(32.2985, 78.0339, "Spiti Valley"),
    "mcleod ganj": Coordinates(32.2190, 76.3234, "McLeod Ganj"),
    "dalhousie": Coordinates(32.5448, 75.9600, "Dalhousie"),
    "kasol": Coordinates(32.0998, 77.3152, "Kasol"),
    "srinagar": Coordinates(34.0837, 74.7973, "Srinagar"),
    "jammu": Coordinates(32.7266, 74.8570, "Jammu"),
    "gulmarg": Coordinates(34.0484, 74.3858, "Gulmarg"),
    "pahalgam": Coordinates(34.0169, 75.3312, "Pahalgam"),
    "sonamarg": Coordinates(34.2996, 75.2941, "Sonamarg"),
    "leh": Coordinates(34.1526, 77.5771, "Leh"),
    "ladakh": Coordinates(34.2268, 77.5619, "Ladakh"),
    "katra": Coordinates(32.9916, 74.9455, "Katra"),
}

FALLBACK_DESTINATIONS: List[Destination] = [
    Destination(
        id="manali-fallback",
        name="Manali",
        location="Himachal Pradesh",
        max_capacity=1000,
        ecological_sensitivity=Sensitivity.HIGH,
    ),
    Destination(
        id="shimla-fallback",
        name="Shimla",
        location="Himachal Pradesh",
        max_capacity=1500,
        ecological_sensitivity=Sensitivity.MEDIUM,
    ),
    Destination(
        id="jammu-fallback",
        name="Jammu",
        location="Jammu and Kashmir",
        max_capacity=2000,
        ecological_sensitivity=Sensitivity.MEDIUM,
    ),
    Destination(
        id="srinagar-fallback",
        name="Srinagar",
        location="Jammu and Kashmir",
        max_capacity=1200,
        ecological_sensitivity=Sensitivity.HIGH,
    ),
    Destination(
        id="dharamshala-fallback",
        name="Dharamshala",
        location="Himachal Pradesh",
        max_capacity=800,
        ecological_sensitivity=Sensitivity.HIGH,
    ),
]

_TOKEN_SPLIT = re.compile(r"[\s,/\-()]+")


def normalize_name(name: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join((name or "").lower().split())


def resolve_coordinates(
    destination: Destination,
    table: Dict[str, Coordinates] = KNOWN_COORDINATES,
) -> Optional[Coordinates]:
    """Return coordinates for a destination, or None when nothing matches."""
    found = table.get(destination.id)
    if found:
        return found

    name = normalize_name(destination.name)
    if name:
        found = table.get(name) or table.get(name.replace(" ", ""))
        if found:
            return found
        for token in _TOKEN_SPLIT.split(name):
            if token and token in table:
                return table[token]

    if destination.latitude is not None and destination.longitude is not None:
        try:
            return Coordinates(destination.latitude, destination.longitude, destination.name)
        except ValueError:
            return None
    return None


def fallback_destination(destination_id: str) -> Optional[Destination]:
    """Look up a built-in fallback destination by id."""
    for dest in FALLBACK_DESTINATIONS:
        if dest.id == destination_id:
            return dest
    return None

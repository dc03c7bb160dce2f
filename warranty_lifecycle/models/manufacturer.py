"""
Manufacturer and Platform Enumerations

Also hosts manufacturer detection from free-text names, shared by every
device source (RMM platforms and CSV import).
"""

from enum import Enum
from typing import Optional


class Manufacturer(str, Enum):
    """Hardware manufacturer."""
    DELL = "dell"
    HP = "hp"
    LENOVO = "lenovo"
    APPLE = "apple"
    MICROSOFT = "microsoft"


class Platform(str, Enum):
    """Device source platform."""
    DATTO = "datto"
    NCENTRAL = "ncentral"
    HALOPSA = "halopsa"
    CSV = "csv"


# Checked in order; the first family with a matching keyword wins
_MANUFACTURER_KEYWORDS = [
    (Manufacturer.DELL, ("dell",)),
    (Manufacturer.HP, ("hp", "hewlett", "packard")),
    (Manufacturer.LENOVO, ("lenovo", "thinkpad", "thinkcentre", "ideapad")),
    (Manufacturer.APPLE, ("apple", "mac", "macbook", "imac", "mac pro", "mac mini")),
    (Manufacturer.MICROSOFT, ("microsoft", "surface")),
]


def determine_manufacturer(
    manufacturer_name: Optional[str],
    default: Optional[Manufacturer] = Manufacturer.DELL
) -> Optional[Manufacturer]:
    """
    Determine the manufacturer from a manufacturer name string.

    Args:
        manufacturer_name: Raw name as reported by the device source
        default: Returned when the name is empty or nothing matches

    Returns:
        The detected Manufacturer, or ``default``
    """
    if not manufacturer_name or not isinstance(manufacturer_name, str):
        return default

    normalized = manufacturer_name.lower().strip()

    for manufacturer, keywords in _MANUFACTURER_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return manufacturer

    return default

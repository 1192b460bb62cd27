"""
Lookup helpers over the runtime's IANA time zone database.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@lru_cache(maxsize=512)
def resolve_zone(zone_id: str) -> ZoneInfo | None:
    """Returns the ZoneInfo for `zone_id`, or None if it does not resolve."""
    if not isinstance(zone_id, str) or not zone_id.strip():
        return None
    try:
        return ZoneInfo(zone_id)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def is_valid_zone(zone_id: str) -> bool:
    return resolve_zone(zone_id) is not None

"""
Dataclass summarising the health of the persistent cache.
"""

from dataclasses import asdict, dataclass


@dataclass
class CacheStats:
    """Aggregated store figures used for health reporting, not correctness."""

    total_size: int = 0
    entry_count: int = 0
    secondary_entry_count: int = 0
    exchange_rates_age: float | None = None
    user_preferences_exists: bool = False
    hits: int = 0
    misses: int = 0
    last_cleanup: float = 0.0

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["hit_ratio"] = round(self.hit_ratio, 3)
        return data

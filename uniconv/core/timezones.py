"""
Current-time lookup and DST-aware conversion between IANA time zones.
"""

import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from uniconv.api.worldtime import TimeAPIClient
from uniconv.exceptions import ConverterError, InvalidInputError, NetworkError
from uniconv.models.entities import TimeConversionResult, TimeZone, TimeZoneData
from uniconv.storage.cache_manager import CacheManager
from uniconv.utils.connectivity import ConnectivityMonitor
from uniconv.utils.memo import TTLCache, memoize
from uniconv.utils.retry import RetryPolicy, retry_async
from uniconv.utils.singleflight import SingleFlight
from uniconv.utils.zones import resolve_zone

log = logging.getLogger(__name__)

DST_ABBREVIATIONS = frozenset(
    {"EDT", "CDT", "MDT", "PDT", "BST", "CEST", "EEST", "AEDT", "ACDT", "NZDT"}
)
STANDARD_ABBREVIATIONS = frozenset(
    {"EST", "CST", "MST", "PST", "GMT", "CET", "EET", "AEST", "ACST", "NZST"}
)

DEFAULT_RESULTS = 20
MAX_SEARCH_RESULTS = 50

# (id, display name, country, region)
ZONE_TABLE: tuple[tuple[str, str, str | None, str], ...] = (
    ("UTC", "Coordinated Universal Time", None, "UTC"),
    # Americas
    ("America/New_York", "New York (Eastern Time)", "United States", "Americas"),
    ("America/Chicago", "Chicago (Central Time)", "United States", "Americas"),
    ("America/Denver", "Denver (Mountain Time)", "United States", "Americas"),
    ("America/Los_Angeles", "Los Angeles (Pacific Time)", "United States", "Americas"),
    ("America/Anchorage", "Anchorage (Alaska Time)", "United States", "Americas"),
    ("Pacific/Honolulu", "Honolulu (Hawaii Time)", "United States", "Pacific"),
    ("America/Toronto", "Toronto", "Canada", "Americas"),
    ("America/Vancouver", "Vancouver", "Canada", "Americas"),
    ("America/Mexico_City", "Mexico City", "Mexico", "Americas"),
    ("America/Sao_Paulo", "São Paulo", "Brazil", "Americas"),
    ("America/Argentina/Buenos_Aires", "Buenos Aires", "Argentina", "Americas"),
    ("America/Lima", "Lima", "Peru", "Americas"),
    ("America/Bogota", "Bogotá", "Colombia", "Americas"),
    # Europe
    ("Europe/London", "London (GMT/BST)", "United Kingdom", "Europe"),
    ("Europe/Paris", "Paris (CET/CEST)", "France", "Europe"),
    ("Europe/Berlin", "Berlin (CET/CEST)", "Germany", "Europe"),
    ("Europe/Rome", "Rome (CET/CEST)", "Italy", "Europe"),
    ("Europe/Madrid", "Madrid (CET/CEST)", "Spain", "Europe"),
    ("Europe/Amsterdam", "Amsterdam (CET/CEST)", "Netherlands", "Europe"),
    ("Europe/Zurich", "Zurich (CET/CEST)", "Switzerland", "Europe"),
    ("Europe/Vienna", "Vienna (CET/CEST)", "Austria", "Europe"),
    ("Europe/Stockholm", "Stockholm (CET/CEST)", "Sweden", "Europe"),
    ("Europe/Oslo", "Oslo (CET/CEST)", "Norway", "Europe"),
    ("Europe/Copenhagen", "Copenhagen (CET/CEST)", "Denmark", "Europe"),
    ("Europe/Helsinki", "Helsinki (EET/EEST)", "Finland", "Europe"),
    ("Europe/Moscow", "Moscow (MSK)", "Russia", "Europe"),
    ("Europe/Istanbul", "Istanbul (TRT)", "Turkey", "Europe"),
    # Asia
    ("Asia/Tokyo", "Tokyo (JST)", "Japan", "Asia"),
    ("Asia/Shanghai", "Shanghai (CST)", "China", "Asia"),
    ("Asia/Hong_Kong", "Hong Kong (HKT)", "Hong Kong", "Asia"),
    ("Asia/Singapore", "Singapore (SGT)", "Singapore", "Asia"),
    ("Asia/Seoul", "Seoul (KST)", "South Korea", "Asia"),
    ("Asia/Taipei", "Taipei (CST)", "Taiwan", "Asia"),
    ("Asia/Bangkok", "Bangkok (ICT)", "Thailand", "Asia"),
    ("Asia/Jakarta", "Jakarta (WIB)", "Indonesia", "Asia"),
    ("Asia/Manila", "Manila (PST)", "Philippines", "Asia"),
    ("Asia/Kuala_Lumpur", "Kuala Lumpur (MYT)", "Malaysia", "Asia"),
    ("Asia/Kolkata", "Kolkata / Mumbai (IST)", "India", "Asia"),
    ("Asia/Dubai", "Dubai (GST)", "UAE", "Asia"),
    ("Asia/Riyadh", "Riyadh (AST)", "Saudi Arabia", "Asia"),
    ("Asia/Tehran", "Tehran (IRST)", "Iran", "Asia"),
    # Africa
    ("Africa/Cairo", "Cairo (EET)", "Egypt", "Africa"),
    ("Africa/Lagos", "Lagos (WAT)", "Nigeria", "Africa"),
    ("Africa/Johannesburg", "Johannesburg (SAST)", "South Africa", "Africa"),
    ("Africa/Nairobi", "Nairobi (EAT)", "Kenya", "Africa"),
    ("Africa/Casablanca", "Casablanca (WET)", "Morocco", "Africa"),
    # Oceania
    ("Australia/Sydney", "Sydney (AEST/AEDT)", "Australia", "Oceania"),
    ("Australia/Melbourne", "Melbourne (AEST/AEDT)", "Australia", "Oceania"),
    ("Australia/Perth", "Perth (AWST)", "Australia", "Oceania"),
    ("Pacific/Auckland", "Auckland (NZST/NZDT)", "New Zealand", "Pacific"),
    ("Pacific/Fiji", "Suva (FJT)", "Fiji", "Pacific"),
)


@memoize(TTLCache(max_size=256, ttl=3600.0))
def _matching_zone_ids(term: str) -> tuple[str, ...]:
    if len(term) < 2:
        return tuple(row[0] for row in ZONE_TABLE[:DEFAULT_RESULTS])
    matches = (
        row[0]
        for row in ZONE_TABLE
        if any(term in field.lower() for field in row if field)
    )
    return tuple(matches)[:MAX_SEARCH_RESULTS]


def _localize(instant: datetime, zone: ZoneInfo) -> datetime:
    """Naive instants are wall-clock times in `zone`; aware ones are converted."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=zone)
    return instant.astimezone(zone)


def _offset_minutes(instant: datetime) -> int:
    offset = instant.utcoffset()
    return int(offset.total_seconds() // 60) if offset is not None else 0


class TimeZoneService:
    """Zone metadata, current time and conversions with DST awareness."""

    def __init__(
        self,
        client: TimeAPIClient,
        cache_manager: CacheManager,
        connectivity: ConnectivityMonitor,
        retry_policy: RetryPolicy | None = None,
    ):
        self.client = client
        self.cache_manager = cache_manager
        self.connectivity = connectivity
        self.retry_policy = retry_policy or RetryPolicy()
        self._inflight = SingleFlight()
        self._table = {row[0]: row for row in ZONE_TABLE}

    # --- Validation and metadata ----------------------------------------------

    def validate_time_zone(self, zone_id: str) -> bool:
        return resolve_zone(zone_id) is not None

    def _require_zone(self, zone_id: str) -> ZoneInfo:
        zone = resolve_zone(zone_id)
        if zone is None:
            raise InvalidInputError(
                f"Invalid time zone identifier: {zone_id!r}", {"zone": zone_id}
            )
        return zone

    def get_utc_offset(self, zone_id: str, when: datetime | None = None) -> int:
        """UTC offset of `zone_id` in minutes at `when` (default: now)."""
        zone = self._require_zone(zone_id)
        instant = _localize(when, zone) if when else datetime.now(zone)
        return _offset_minutes(instant)

    def get_time_zone_info(self, zone_id: str) -> TimeZone:
        """Table entry for `zone_id`, or a derived entry for other valid zones."""
        zone = self._require_zone(zone_id)
        now = datetime.now(zone)
        row = self._table.get(zone_id)
        if row:
            _, name, country, region = row
        else:
            name = zone_id.replace("_", " ").replace("/", " - ", 1)
            country = None
            region = zone_id.split("/", 1)[0] if "/" in zone_id else None
        return TimeZone(
            id=zone_id,
            name=name,
            offset=_offset_minutes(now),
            is_dst=self.is_dst_active(zone_id, now),
            country=country,
            region=region,
        )

    def get_supported_time_zones(self) -> list[TimeZone]:
        return [self.get_time_zone_info(row[0]) for row in ZONE_TABLE]

    def search_time_zones(self, query: str) -> list[TimeZone]:
        """
        Case-insensitive substring search over name, id, country and region.

        Queries shorter than two characters return the first entries of the
        table instead of everything.
        """
        term = (query or "").strip().lower()
        return [
            self.get_time_zone_info(zone_id) for zone_id in _matching_zone_ids(term)
        ]

    # --- DST ------------------------------------------------------------------

    def is_dst_active(self, zone_id: str, when: datetime) -> bool:
        """
        Whether daylight saving time is in effect in `zone_id` at `when`.

        Known abbreviations decide directly. Otherwise the zone is in DST when
        its winter and summer offsets differ and the current offset is the
        larger one, which holds in both hemispheres.
        """
        zone = resolve_zone(zone_id)
        if zone is None or not isinstance(when, datetime):
            return False

        local = _localize(when, zone)
        abbreviation = local.tzname() or ""
        if abbreviation in DST_ABBREVIATIONS:
            return True
        if abbreviation in STANDARD_ABBREVIATIONS:
            return False

        january = _offset_minutes(datetime(local.year, 1, 15, 12, tzinfo=zone))
        july = _offset_minutes(datetime(local.year, 7, 15, 12, tzinfo=zone))
        if january == july:
            return False
        return _offset_minutes(local) == max(january, july)

    def _spans_dst_transition(self, instant: datetime, *zone_ids: str) -> bool:
        utc_instant = instant.astimezone(timezone.utc)
        window = (
            utc_instant - timedelta(days=1),
            utc_instant,
            utc_instant + timedelta(days=1),
        )
        for zone_id in zone_ids:
            states = {self.is_dst_active(zone_id, moment) for moment in window}
            if len(states) > 1:
                return True
        return False

    # --- Conversion -----------------------------------------------------------

    async def convert_time(
        self, instant: datetime, from_zone: str, to_zone: str
    ) -> TimeConversionResult:
        """
        Expresses `instant` in `to_zone`.

        A naive `instant` is read as wall-clock time in `from_zone`.

        Raises:
            InvalidInputError: If either zone id is invalid or `instant` is not
                a datetime.
        """
        source_zone = self._require_zone(from_zone)
        target_zone = self._require_zone(to_zone)
        if not isinstance(instant, datetime):
            raise InvalidInputError(
                "Invalid date provided for conversion.", {"instant": instant}
            )

        source_time = _localize(instant, source_zone)
        target_time = source_time.astimezone(target_zone)
        return TimeConversionResult(
            source_time=source_time,
            target_time=target_time,
            source_time_zone=self.get_time_zone_info(from_zone),
            target_time_zone=self.get_time_zone_info(to_zone),
            is_dst_transition=self._spans_dst_transition(source_time, from_zone, to_zone),
        )

    # --- Current time ---------------------------------------------------------

    async def _fetch_snapshot(self, zone_id: str) -> TimeZoneData:
        data = await retry_async(
            lambda: self.client.fetch_timezone(zone_id),
            self.retry_policy,
            description=f"Fetching current time for {zone_id}",
        )
        try:
            await self.cache_manager.cache_time_zone_data(zone_id, data)
        except ConverterError as e:
            log.warning(f"Could not cache time zone data for {zone_id}: {e.message}")
        return data

    async def get_time_zone_data(self, zone_id: str) -> TimeZoneData:
        """
        Returns the cached provider snapshot for `zone_id`, fetching it if needed.

        Raises:
            NetworkError: Offline with nothing cached.
        """
        self._require_zone(zone_id)
        cached = await self.cache_manager.get_cached_time_zone_data(zone_id)
        if cached is not None:
            return cached
        if not self.connectivity.is_online:
            raise NetworkError(
                f"No internet connection and no cached data for {zone_id}.",
                {"zone": zone_id},
            )
        return await self._inflight.run(zone_id, lambda: self._fetch_snapshot(zone_id))

    async def get_current_time(self, zone_id: str) -> datetime:
        """
        Current time in `zone_id` as an aware datetime.

        The remote provider is preferred when online; any failure falls back to
        the local clock converted into the zone.
        """
        zone = self._require_zone(zone_id)

        if self.connectivity.is_online:
            try:
                data = await self._inflight.run(
                    zone_id, lambda: self._fetch_snapshot(zone_id)
                )
                return datetime.fromisoformat(data.datetime).astimezone(zone)
            except (ConverterError, ValueError) as e:
                log.warning(
                    f"Failed to fetch time for {zone_id}, falling back to local time: {e}"
                )

        return datetime.now(zone)

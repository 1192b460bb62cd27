"""
Client for the remote time provider (WorldTimeAPI-compatible `timezone` endpoint).
"""

from pydantic import ValidationError

from uniconv.exceptions import ApiError
from uniconv.models.entities import TimeZoneData

from .client import BaseAPIClient


class TimeAPIClient(BaseAPIClient):
    """Fetches an authoritative current-time snapshot for an IANA zone."""

    name = "Time provider"

    async def fetch_timezone(self, zone_id: str) -> TimeZoneData:
        payload = await self.get_json(f"timezone/{zone_id}")

        if (
            not isinstance(payload, dict)
            or not payload.get("datetime")
            or not payload.get("timezone")
        ):
            raise ApiError(
                "Invalid response format from time API: missing datetime or timezone.",
                {"provider": self.name, "zone": zone_id},
            )

        try:
            return TimeZoneData(
                datetime=payload["datetime"],
                timezone=payload["timezone"],
                utc_offset=payload.get("utc_offset") or "+00:00",
                dst=payload.get("dst", False),
                dst_offset=payload.get("dst_offset") or 0,
            )
        except ValidationError as e:
            raise ApiError(
                f"Time API returned an unusable snapshot for {zone_id}.",
                {"provider": self.name, "zone": zone_id, "errors": e.error_count()},
            ) from e

"""
minyan.services.prayer_times — Prayer-Time Provider Chain
==========================================================

:class:`PrayerTimeResolver` walks an ordered list of interchangeable
providers and returns the first answer:

    1. MyZmanim  — primary, needs ``MYZMANIM_API_KEY``
    2. Hebcal    — secondary, free
    3. local solar calculation — cannot fail

Each remote provider runs under ``asyncio.wait_for`` with a per-provider
timeout, so a hung upstream is cancelled and the chain moves on.  Network
errors, non-2xx responses, malformed payloads and timeouts are logged and
absorbed; :meth:`PrayerTimeResolver.resolve` never raises.  Cancellation of
the caller's own request is *not* absorbed and propagates normally.

Adding a provider means appending an object with ``name`` and an async
``fetch(client, lat, lng, day)`` to the list.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from minyan.config import MinyanConfig
from minyan.engine.zmanim import (
    MAARIV_AFTER_SUNSET,
    MINCHA_BEFORE_SUNSET,
    SHACHARIT_AFTER_SUNRISE,
    PrayerTimes,
    add_minutes,
    calculate_prayer_times,
    normalize_time,
)
from minyan.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class TimeProvider(Protocol):
    name: str

    async def fetch(
        self, client: httpx.AsyncClient, lat: float, lng: float, day: date
    ) -> PrayerTimes: ...


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------
def _json_payload(provider: str, response: httpx.Response) -> dict[str, Any]:
    if not response.is_success:
        raise UpstreamUnavailable(provider, f"HTTP {response.status_code}")
    try:
        data = response.json()
    except ValueError:
        raise UpstreamUnavailable(provider, "response is not JSON") from None
    if not isinstance(data, dict):
        raise UpstreamUnavailable(provider, "unexpected payload shape")
    return data


def _first_time(values: dict[str, Any], keys: Sequence[str]) -> str | None:
    for key in keys:
        if values.get(key):
            return normalize_time(values[key])
    return None


def _build_times(
    provider: str,
    values: dict[str, Any],
    *,
    shacharit_keys: Sequence[str],
    mincha_keys: Sequence[str],
    maariv_keys: Sequence[str],
) -> PrayerTimes:
    """Map a provider's time table onto :class:`PrayerTimes`.

    Sunrise and sunset are mandatory; a missing service time is derived from
    them with the same offsets as the local calculation.
    """
    try:
        sunrise = _first_time(values, ("sunrise",))
        sunset = _first_time(values, ("sunset",))
        if sunrise is None or sunset is None:
            raise UpstreamUnavailable(provider, "sunrise/sunset missing from payload")

        return PrayerTimes(
            shacharit=_first_time(values, shacharit_keys)
            or add_minutes(sunrise, SHACHARIT_AFTER_SUNRISE),
            mincha=_first_time(values, mincha_keys)
            or add_minutes(sunset, -MINCHA_BEFORE_SUNSET),
            maariv=_first_time(values, maariv_keys)
            or add_minutes(sunset, MAARIV_AFTER_SUNSET),
            sunrise=sunrise,
            sunset=sunset,
            source=provider,
        )
    except ValueError as exc:
        raise UpstreamUnavailable(provider, f"malformed time: {exc}") from None


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------
class MyZmanimProvider:
    """MyZmanim web service (bearer-token authenticated)."""

    name = "myzmanim"

    def __init__(self, url: str, api_key: str | None, timezone: str) -> None:
        self.url = url
        self.api_key = api_key
        self.timezone = timezone

    async def fetch(
        self, client: httpx.AsyncClient, lat: float, lng: float, day: date
    ) -> PrayerTimes:
        if not self.api_key:
            raise UpstreamUnavailable(self.name, "MYZMANIM_API_KEY is not configured")

        response = await client.get(
            self.url,
            params={
                "latitude": lat,
                "longitude": lng,
                "date": day.isoformat(),
                "timezone": self.timezone,
                "format": "json",
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        data = _json_payload(self.name, response)
        return _build_times(
            self.name,
            data,
            shacharit_keys=("shacharit",),
            mincha_keys=("mincha",),
            maariv_keys=("maariv",),
        )


class HebcalProvider:
    """Hebcal zmanim API (``cfg=json``); times arrive as ISO-8601 datetimes."""

    name = "hebcal"

    def __init__(self, url: str, timezone: str) -> None:
        self.url = url
        self.timezone = timezone

    async def fetch(
        self, client: httpx.AsyncClient, lat: float, lng: float, day: date
    ) -> PrayerTimes:
        response = await client.get(
            self.url,
            params={
                "cfg": "json",
                "latitude": lat,
                "longitude": lng,
                "date": day.isoformat(),
                "tzid": self.timezone,
            },
        )
        data = _json_payload(self.name, response)
        times = data.get("times")
        if not isinstance(times, dict):
            raise UpstreamUnavailable(self.name, "payload has no 'times' table")
        return _build_times(
            self.name,
            times,
            shacharit_keys=("shacharit",),
            mincha_keys=("mincha",),
            maariv_keys=("maariv", "tzeit7083deg"),
        )


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------
class PrayerTimeResolver:
    """Ordered fallback over *providers*, ending in the local calculation."""

    def __init__(
        self,
        providers: Sequence[TimeProvider],
        *,
        timeout_seconds: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.providers = list(providers)
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def _try_remote(self, lat: float, lng: float, day: date) -> PrayerTimes | None:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            for provider in self.providers:
                try:
                    return await asyncio.wait_for(
                        provider.fetch(client, lat, lng, day), timeout=self.timeout_seconds
                    )
                except TimeoutError:
                    logger.warning(
                        "Prayer-time provider %s timed out after %.1fs — falling back",
                        provider.name, self.timeout_seconds,
                    )
                except UpstreamUnavailable as exc:
                    logger.warning(
                        "Prayer-time provider %s unavailable (%s) — falling back",
                        provider.name, exc.reason,
                    )
                except Exception as exc:
                    logger.warning(
                        "Prayer-time provider %s failed (%s: %s) — falling back",
                        provider.name, exc.__class__.__name__, exc,
                    )
        return None

    async def resolve(self, lat: float, lng: float, day: date) -> PrayerTimes:
        """Prayer times for (*lat*, *lng*) on *day*; never raises."""
        remote: PrayerTimes | None = None
        if self.providers:
            try:
                remote = await self._try_remote(lat, lng, day)
            except Exception as exc:
                # Client setup/teardown failure; the local step still answers.
                logger.warning("Remote prayer-time lookup aborted: %s", exc)
        if remote is not None:
            return remote
        logger.info("Using calculated prayer times for (%.4f, %.4f) on %s", lat, lng, day)
        return calculate_prayer_times(lat, lng, day)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------
def build_resolver(cfg: MinyanConfig) -> PrayerTimeResolver:
    """The production chain: MyZmanim → Hebcal → calculated."""
    return PrayerTimeResolver(
        [
            MyZmanimProvider(cfg.myzmanim_url, os.getenv("MYZMANIM_API_KEY"), cfg.timezone),
            HebcalProvider(cfg.hebcal_url, cfg.timezone),
        ],
        timeout_seconds=cfg.provider_timeout_seconds,
    )


def local_today(timezone: str) -> date:
    """Today's date in *timezone* (server-local date if the zone is unknown)."""
    try:
        return datetime.now(ZoneInfo(timezone)).date()
    except (ZoneInfoNotFoundError, ValueError):
        return date.today()

import os
import uuid
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _system_zone() -> tzinfo:
    # $TZ wins (optionally ":"-prefixed), then the zone file the OS points at
    name = os.environ.get("TZ", "").lstrip(":")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone in TZ: {name}") from exc
    try:
        with open("/etc/localtime", "rb") as fh:
            return ZoneInfo.from_file(fh, key="localtime")
    except OSError as exc:
        raise ValueError("Cannot determine the system timezone; set TZ or an IANA name") from exc


def resolve_timezone(tz_name: Optional[str]) -> tzinfo:
    """Map a configured timezone name to a tzinfo.

    - None, "" or "UTC": UTC.
    - "local": the system zone with its DST rules (from $TZ or /etc/localtime).
    - IANA name (e.g., 'America/New_York'): that zone.

    Raises ValueError for unknown names.
    """
    if not tz_name or tz_name.upper() == "UTC":
        return timezone.utc
    if tz_name == "local":
        return _system_zone()
    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Unknown timezone: {tz_name}") from exc


def ensure_utc(dt: datetime) -> datetime:
    """Return `dt` as an aware UTC datetime. Naive values are assumed UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, always UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a given instant; tests move it with `advance`."""

    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)

    def advance(self, **kwargs) -> datetime:
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant


IdGenerator = Callable[[], str]


def new_id() -> str:
    """Default goal id generator (UUID4 string)."""
    return str(uuid.uuid4())

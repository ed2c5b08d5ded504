"""Attendance code generation and TTL / countdown helpers."""
import secrets
from datetime import datetime, timedelta, timezone

CODE_LENGTH = 6
MAX_CODE_TTL_MINUTES = 24 * 60


def generate_code(length: int = CODE_LENGTH) -> str:
    """Uniform random numeric code; leading zeros allowed."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def ttl_from_parts(minutes: int, seconds: int = 0) -> timedelta:
    """Build a code TTL from the teacher's minutes + seconds setting."""
    if minutes < 0 or not 0 <= seconds <= 59:
        raise ValueError("Please enter valid minutes (>= 0) and seconds (0-59)")
    if minutes == 0 and seconds == 0:
        raise ValueError("Please set at least 1 second")
    if minutes * 60 + seconds > MAX_CODE_TTL_MINUTES * 60:
        raise ValueError(f"Code lifetime cannot exceed {MAX_CODE_TTL_MINUTES} minutes")
    return timedelta(minutes=minutes, seconds=seconds)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Mongo hands back naive UTC datetimes; make them comparable with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_remaining(expires_at: datetime, now: datetime) -> int:
    """Whole seconds until expiry, never negative."""
    remaining = (as_utc(expires_at) - as_utc(now)).total_seconds()
    return max(0, int(remaining))


def format_time_left(seconds: int) -> str:
    if seconds <= 0:
        return "00:00"
    mins, secs = divmod(seconds, 60)
    return f"{mins:02d}:{secs:02d}"
